import pytest

from caasazure.parameters import REQUIRED_KEYS
from caasazure.pipeline import ProvisioningPipeline, Step, build_steps
from caasutil.error_handling import DeploymentError, MissingInputError, PipelineError


@pytest.fixture
def pipeline(session):
    return ProvisioningPipeline(connect=lambda inputs: session)


def test_step_order():
    names = [s.name for s in build_steps(connect=lambda inputs: None)]
    assert names == [
        "authenticate", "resource_group", "registry", "vault",
        "certificate", "credentials", "parameters", "deploy",
    ]


def test_scenario_group_absent_creates_everything_in_order(pipeline, azure, make_inputs):
    '''
    Resource group absent, region supplied: every resource is created in dependency
    order and the deployment receives a seven-key parameter table.
    '''
    state = pipeline.run(make_inputs(location="westus2"))

    assert azure.calls == [
        ("create_group", "caas-rg"),
        ("create_registry", "caas01acr"),
        ("create_vault", "caas01-kv"),
        ("create_certificate", "caas01-cert"),
        ("set_secret", "caas01-admin-password"),
        ("deploy", "CaasBase"),
    ]
    submitted = azure.deployments["CaasBase"].properties.parameters
    assert set(submitted) == set(REQUIRED_KEYS)
    assert submitted["clusterLocation"] == {"value": "westus2"}
    assert submitted["adminUserName"] == {"value": "caas01admin"}
    assert state["deployment"].provisioning_state == "Succeeded"
    assert state["credentials"].generated


def test_scenario_everything_exists_only_looks_up(pipeline, azure, make_inputs):
    azure.add_group("caas-rg", "eastus")
    azure.add_registry("caas-rg", "caas01acr")
    azure.add_vault("caas-rg", "caas01-kv", "eastus")
    uri = "https://caas01-kv.vault.azure.net/"
    azure.add_certificate(uri, "caas01-cert")
    azure.add_secret(uri, "caas01-admin-password", "Stored-Passw0rd!")

    state = pipeline.run(make_inputs(location=None))

    assert azure.creates() == []
    assert azure.calls == [("deploy", "CaasBase")]
    submitted = azure.deployments["CaasBase"].properties.parameters
    assert set(submitted) == set(REQUIRED_KEYS)
    assert submitted["adminPassword"] == {"value": "Stored-Passw0rd!"}
    assert submitted["clusterLocation"] == {"value": "eastus"}
    assert not state["registry"].created


def test_scenario_vault_exists_secret_absent(pipeline, azure, make_inputs):
    azure.add_group("caas-rg", "westus2")
    azure.add_registry("caas-rg", "caas01acr")
    azure.add_vault("caas-rg", "caas01-kv")
    uri = "https://caas01-kv.vault.azure.net/"
    azure.add_certificate(uri, "caas01-cert")
    vault_before = azure.vaults[("caas-rg", "caas01-kv")]

    state = pipeline.run(make_inputs())

    assert azure.creates() == [("set_secret", "caas01-admin-password")]
    assert state["credentials"].generated
    assert azure.secrets[(uri, "caas01-admin-password")].value == state["credentials"].password
    assert azure.vaults[("caas-rg", "caas01-kv")] is vault_before


def test_dry_run_skips_deploy(pipeline, azure, make_inputs):
    state = pipeline.run(make_inputs(), dry_run=True)

    assert "deployment" not in state
    assert len(state["parameters"]) == 7
    assert ("deploy", "CaasBase") not in azure.calls


def test_missing_region_halts_before_any_create(pipeline, azure, make_inputs):
    with pytest.raises(MissingInputError):
        pipeline.run(make_inputs(location=None))
    assert azure.calls == []


def test_failed_deployment_is_fatal_without_rollback(pipeline, azure, make_inputs):
    azure.deployment_state = "Failed"

    with pytest.raises(DeploymentError, match="Template validation failed"):
        pipeline.run(make_inputs())
    assert ("create_vault", "caas01-kv") in azure.calls
    assert "caas01-kv" in [v.name for v in azure.vaults.values()]


def test_step_missing_inputs_is_rejected(make_inputs):
    steps = [Step("orphan", lambda inputs, state: {"x": 1}, requires=("session",), provides=("x",))]
    with pytest.raises(PipelineError, match="missing inputs"):
        ProvisioningPipeline(steps=steps).run(make_inputs())


def test_step_missing_outputs_is_rejected(make_inputs):
    steps = [Step("lazy", lambda inputs, state: {}, provides=("session",))]
    with pytest.raises(PipelineError, match="did not provide"):
        ProvisioningPipeline(steps=steps).run(make_inputs())


def test_step_overwrite_is_rejected(make_inputs):
    steps = [
        Step("one", lambda inputs, state: {"x": 1}, provides=("x",)),
        Step("two", lambda inputs, state: {"x": 2}, provides=("x",)),
    ]
    with pytest.raises(PipelineError, match="overwrote"):
        ProvisioningPipeline(steps=steps).run(make_inputs())
