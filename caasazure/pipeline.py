import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from caasazure.certificate import ClusterCertificate
from caasazure.credentials import AdminCredentialStore
from caasazure.deploy import TemplateDeployment
from caasazure.group import AzureResourceGroup
from caasazure.inputs import DeploymentInputs
from caasazure.parameters import assemble_parameters
from caasazure.registry import ContainerRegistry
from caasazure.session import AzureLogin, AzureSession
from caasazure.vault import VaultSetup
from caascontext.logger import step_scope
from caasutil.error_handling import PipelineError

logger = logging.getLogger(__name__)

State = Dict[str, Any]


@dataclass(frozen=True)
class Step:
    """
    One named stage of the provisioning run.

    `action(inputs, state)` returns a dict holding exactly the keys in `provides`.
    """
    name: str
    action: Callable[[DeploymentInputs, State], State]
    requires: Tuple[str, ...] = ()
    provides: Tuple[str, ...] = ()


Connect = Callable[[DeploymentInputs], AzureSession]


def _connect(inputs: DeploymentInputs) -> AzureSession:
    return AzureLogin.connect(inputs.subscription_id, interactive=inputs.interactive)


def build_steps(connect: Optional[Connect] = None) -> List[Step]:
    """
    The provisioning sequence in dependency order.

    Args:
        connect (callable | None): Produces the AzureSession. Defaults to an Azure CLI login.
    """
    connect = connect or _connect

    def authenticate(inputs: DeploymentInputs, state: State) -> State:
        return {"session": connect(inputs)}

    def resource_group(inputs: DeploymentInputs, state: State) -> State:
        return {
            "resource_group": AzureResourceGroup.ensure(
                state["session"], inputs.resource_group, inputs.location, prompt=inputs.prompt
            )
        }

    def registry(inputs: DeploymentInputs, state: State) -> State:
        return {
            "registry": ContainerRegistry.ensure(
                state["session"], state["resource_group"], inputs.registry_name, inputs.registry_sku
            )
        }

    def vault(inputs: DeploymentInputs, state: State) -> State:
        return {"vault": VaultSetup.ensure_vault_ready(state["session"], state["resource_group"], inputs.vault_name)}

    def certificate(inputs: DeploymentInputs, state: State) -> State:
        return {
            "certificate": ClusterCertificate.ensure(
                state["session"], state["vault"], state["resource_group"], inputs.cluster_name
            )
        }

    def credentials(inputs: DeploymentInputs, state: State) -> State:
        return {
            "credentials": AdminCredentialStore.ensure(
                state["session"], state["vault"], inputs.cluster_name, inputs.admin_username, inputs.admin_password
            )
        }

    def parameters(inputs: DeploymentInputs, state: State) -> State:
        return {
            "parameters": assemble_parameters(
                inputs.cluster_name,
                state.get("resource_group"),
                state.get("vault"),
                state.get("certificate"),
                state.get("credentials"),
            )
        }

    def deploy(inputs: DeploymentInputs, state: State) -> State:
        return {
            "deployment": TemplateDeployment.submit(
                state["session"],
                state["resource_group"],
                state["parameters"],
                inputs.template_file,
                inputs.deployment_name,
            )
        }

    return [
        Step("authenticate", authenticate, (), ("session",)),
        Step("resource_group", resource_group, ("session",), ("resource_group",)),
        Step("registry", registry, ("session", "resource_group"), ("registry",)),
        Step("vault", vault, ("session", "resource_group"), ("vault",)),
        Step("certificate", certificate, ("session", "vault", "resource_group"), ("certificate",)),
        Step("credentials", credentials, ("session", "vault"), ("credentials",)),
        Step("parameters", parameters, ("resource_group", "vault", "certificate", "credentials"), ("parameters",)),
        Step("deploy", deploy, ("session", "resource_group", "parameters"), ("deployment",)),
    ]


class ProvisioningPipeline:
    """
    Runs the steps strictly in order. The first failure aborts the run; nothing is
    rolled back and nothing is retried.
    """

    def __init__(self, steps: Optional[List[Step]] = None, connect: Optional[Connect] = None):
        self.steps = steps if steps is not None else build_steps(connect)

    def run(self, inputs: DeploymentInputs, dry_run: bool = False) -> State:
        """
        Execute every step and return the accumulated state.

        Args:
            inputs (DeploymentInputs): Resolved inputs.
            dry_run (bool): Stop before the "deploy" step.

        Raises:
            PipelineError: A step ran without its inputs or did not produce its outputs.
            CaasError: Whatever a step raised.
        """
        state: State = {}
        for step in self.steps:
            if dry_run and step.name == "deploy":
                logger.info("[Pipeline] Dry run: skipping deploy.")
                break

            missing = [k for k in step.requires if k not in state]
            if missing:
                raise PipelineError(f"[Pipeline] ❌ Step '{step.name}' is missing inputs: {', '.join(missing)}")

            with step_scope(step.name):
                logger.info(f"[Pipeline] ▶ {step.name}")
                start = time.perf_counter()
                produced = step.action(inputs, state) or {}
                duration = time.perf_counter() - start

            absent = [k for k in step.provides if k not in produced]
            if absent:
                raise PipelineError(f"[Pipeline] ❌ Step '{step.name}' did not provide: {', '.join(absent)}")
            overlap = [k for k in produced if k in state]
            if overlap:
                raise PipelineError(f"[Pipeline] ❌ Step '{step.name}' overwrote: {', '.join(overlap)}")

            state.update(produced)
            logger.info(f"[Pipeline] ✅ {step.name} completed in {duration:.3f}s")
        return state
