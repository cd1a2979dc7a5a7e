# caasbase/caascli/main.py
import functools
import logging
import sys
from pathlib import Path

import click

import caascontext._globals as _globals
from caasazure.inputs import resolve_inputs
from caasazure.passwords import Passwords
from caasazure.pipeline import ProvisioningPipeline
from caascontext.config import Config
from caascontext.logger import Logger
from caasutil.error_handling import CaasError

logger = logging.getLogger(__name__)


def _envvar(name: str) -> str:
    return f"{_globals.ENV_PREFIX}_{name}"


@click.group()
@click.option("--config", "config_path", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Settings file (TOML, JSON or YAML). Defaults to ./caasbase.toml if present.")
@click.option("--log-level", default=_globals.DEFAULT_LOG_LEVEL, envvar=_envvar("LOG_LEVEL"),
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False), show_default=True)
@click.option("--log-dir", type=click.Path(file_okay=False, path_type=Path), default=_globals.DEFAULT_LOG_DIR,
              envvar=_envvar("LOG_DIR"), show_default=True)
@click.pass_context
def cli(ctx, config_path, log_level, log_dir):
    """Provision the Azure infrastructure behind a cluster and deploy its template."""
    ctx.ensure_object(dict)
    Logger.init_logger(log_dir=log_dir, level=log_level.upper())
    Logger.intercept_stdlib()

    try:
        ctx.default_map = Config.default_map(config_path, required=config_path is not None)
    except (FileNotFoundError, TypeError, RuntimeError) as e:
        raise click.ClickException(str(e)) from e


@cli.command()
@click.option("--subscription-id", required=True, envvar=_envvar("SUBSCRIPTION_ID"))
@click.option("--resource-group", required=True, envvar=_envvar("RESOURCE_GROUP"))
@click.option("--location", default=None, envvar=_envvar("LOCATION"),
              help="Region for the resource group. Only needed if the group does not exist.")
@click.option("--cluster-name", required=True, envvar=_envvar("CLUSTER_NAME"))
@click.option("--vault-name", required=True, envvar=_envvar("VAULT_NAME"))
@click.option("--registry-name", required=True, envvar=_envvar("REGISTRY_NAME"))
@click.option("--registry-sku", default=_globals.DEFAULT_REGISTRY_SKU, envvar=_envvar("REGISTRY_SKU"),
              type=click.Choice(_globals.REGISTRY_SKUS), show_default=True)
@click.option("--vm-instance-count", default=_globals.DEFAULT_VM_INSTANCE_COUNT, envvar=_envvar("VM_INSTANCE_COUNT"),
              type=click.IntRange(min=1), show_default=True)
@click.option("--admin-username", default=None, envvar=_envvar("ADMIN_USERNAME"),
              help="Defaults to the cluster name followed by 'admin'.")
@click.option("--admin-password", default=None, envvar=_envvar("ADMIN_PASSWORD"),
              help="Generated and stored in the vault if omitted.")
@click.option("--deployment-name", default=_globals.DEFAULT_DEPLOYMENT_NAME, envvar=_envvar("DEPLOYMENT_NAME"),
              show_default=True)
@click.option("--template-file", default=str(_globals.DEFAULT_TEMPLATE_FILE), envvar=_envvar("TEMPLATE_FILE"),
              type=click.Path(dir_okay=False, path_type=Path), show_default=True)
@click.option("--non-interactive", is_flag=True, default=False,
              help="Never prompt; missing inputs are fatal.")
@click.option("--dry-run", is_flag=True, default=False,
              help="Provision supporting resources and print the parameters without deploying.")
@click.pass_context
def deploy(ctx, subscription_id, resource_group, location, cluster_name, vault_name, registry_name,
           registry_sku, vm_instance_count, admin_username, admin_password, deployment_name,
           template_file, non_interactive, dry_run):
    """
    Resolve or create the resource group, registry, vault, certificate and admin
    credentials, then deploy the cluster template.

    Examples:
        $ caasbase deploy --subscription-id <id> --resource-group caas-rg --location westus2 \\
            --cluster-name caas01 --vault-name caas01-kv --registry-name caas01acr
    """
    interactive = not non_interactive and sys.stdin.isatty()
    prompt = functools.partial(click.prompt, type=str) if interactive else None

    try:
        inputs = resolve_inputs(
            subscription_id=subscription_id,
            resource_group=resource_group,
            cluster_name=cluster_name,
            vault_name=vault_name,
            registry_name=registry_name,
            location=location,
            admin_username=admin_username,
            admin_password=admin_password,
            registry_sku=registry_sku,
            vm_instance_count=vm_instance_count,
            deployment_name=deployment_name,
            template_file=template_file,
            prompt=prompt,
        )
        pipeline = ctx.obj.get("pipeline") or ProvisioningPipeline()
        state = pipeline.run(inputs, dry_run=dry_run)
    except CaasError as e:
        logger.error(str(e))
        raise click.ClickException(str(e)) from e

    registry = state["registry"]
    click.echo(f"Resource group : {state['resource_group'].name} ({state['resource_group'].location})")
    click.echo(f"Registry       : {registry.login_server}")
    click.echo(f"Vault          : {state['vault'].uri}")
    click.echo(f"Certificate    : {state['certificate'].thumbprint}")
    click.echo(f"Admin username : {state['credentials'].username}")
    click.echo(f"VM instances   : {inputs.vm_instance_count}")

    if dry_run:
        click.echo("Parameters (dry run, not deployed):")
        for key, value in state["parameters"].masked().items():
            click.echo(f"  {key} = {value}")
        return

    result = state["deployment"]
    click.echo(f"Deployment     : {result.name} {result.provisioning_state}")
    for key, value in result.outputs.items():
        click.echo(f"  {key} = {value}")


@cli.command("generate-password")
def generate_password():
    """Print a password with the same composition the deploy command generates."""
    click.echo(Passwords.generate_password())


def main():
    cli(prog_name="caasbase")


if __name__ == "__main__":
    main()
