import hashlib
import json
from types import SimpleNamespace

import pytest
from azure.core.exceptions import ResourceNotFoundError

from caasazure.inputs import resolve_inputs
from caasazure.session import AzureSession
from caascontext.logger import Logger

SUBSCRIPTION_ID = "00000000-0000-0000-0000-000000000001"
TENANT_ID = "00000000-0000-0000-0000-0000000000aa"
OBJECT_ID = "00000000-0000-0000-0000-0000000000bb"


# ─── In-memory Azure ──────────────────────────────────────────────────────────

class FakePoller:
    def __init__(self, result):
        self._result = result

    def result(self):
        return self._result


class FakeAzure:
    """
    Shared in-memory state behind the fake SDK clients.

    Every mutating call is appended to `calls` as (operation, name) so tests can
    assert on ordering and on the absence of creates.
    """

    def __init__(self):
        self.groups = {}
        self.registries = {}
        self.vaults = {}
        self.secrets = {}
        self.certificates = {}
        self.deployments = {}
        self.calls = []
        self.deployment_state = "Succeeded"

    def creates(self):
        return [c for c in self.calls if c[0] != "deploy"]

    # Seeding helpers
    def add_group(self, name, location="westus2"):
        self.groups[name.lower()] = SimpleNamespace(
            id=f"/subscriptions/{SUBSCRIPTION_ID}/resourceGroups/{name}", name=name, location=location
        )

    def add_registry(self, rg, name):
        self.registries[(rg.lower(), name.lower())] = SimpleNamespace(
            id=f"/subscriptions/{SUBSCRIPTION_ID}/resourceGroups/{rg}/providers/Microsoft.ContainerRegistry/registries/{name}",
            name=name,
            login_server=f"{name.lower()}.azurecr.io",
        )

    def add_vault(self, rg, name, location="westus2", template_deployment=True):
        self.vaults[(rg.lower(), name.lower())] = SimpleNamespace(
            id=f"/subscriptions/{SUBSCRIPTION_ID}/resourceGroups/{rg}/providers/Microsoft.KeyVault/vaults/{name}",
            name=name,
            location=location,
            properties=SimpleNamespace(
                vault_uri=f"https://{name}.vault.azure.net/",
                enabled_for_template_deployment=template_deployment,
            ),
        )

    def add_secret(self, vault_uri, name, value):
        self.secrets[(vault_uri, name)] = SimpleNamespace(
            id=f"{vault_uri}secrets/{name}/v1", name=name, value=value
        )

    def add_certificate(self, vault_uri, name):
        thumbprint = hashlib.sha1(name.encode()).digest()
        self.certificates[(vault_uri, name)] = SimpleNamespace(
            name=name,
            secret_id=f"{vault_uri}secrets/{name}/v1",
            properties=SimpleNamespace(x509_thumbprint=thumbprint),
        )


class FakeResourceGroups:
    def __init__(self, azure):
        self.azure = azure

    def check_existence(self, name):
        return name.lower() in self.azure.groups

    def get(self, name):
        try:
            return self.azure.groups[name.lower()]
        except KeyError:
            raise ResourceNotFoundError(message=f"Resource group '{name}' could not be found.")

    def create_or_update(self, name, parameters):
        self.azure.calls.append(("create_group", name))
        self.azure.add_group(name, parameters["location"])
        return self.azure.groups[name.lower()]


class FakeDeployments:
    def __init__(self, azure):
        self.azure = azure

    def begin_create_or_update(self, rg, name, deployment):
        self.azure.calls.append(("deploy", name))
        self.azure.deployments[name] = deployment
        properties = SimpleNamespace(
            provisioning_state=self.azure.deployment_state,
            outputs={"clusterEndpoint": {"type": "String", "value": "https://caas01.westus2.cloudapp.azure.com:19080"}},
            error=SimpleNamespace(message="Template validation failed.") if self.azure.deployment_state != "Succeeded" else None,
        )
        return FakePoller(SimpleNamespace(
            id=f"/subscriptions/{SUBSCRIPTION_ID}/resourceGroups/{rg}/providers/Microsoft.Resources/deployments/{name}",
            name=name,
            properties=properties,
        ))


class FakeRegistries:
    def __init__(self, azure):
        self.azure = azure

    def get(self, rg, name):
        try:
            return self.azure.registries[(rg.lower(), name.lower())]
        except KeyError:
            raise ResourceNotFoundError(message=f"Registry '{name}' not found.")

    def list_by_resource_group(self, rg):
        return [r for (group, _), r in self.azure.registries.items() if group == rg.lower()]

    def begin_create(self, resource_group_name, registry_name, registry):
        self.azure.calls.append(("create_registry", registry_name))
        self.azure.add_registry(resource_group_name, registry_name)
        return FakePoller(self.azure.registries[(resource_group_name.lower(), registry_name.lower())])


class FakeVaults:
    def __init__(self, azure):
        self.azure = azure
        self.last_parameters = None

    def get(self, resource_group_name, vault_name):
        try:
            return self.azure.vaults[(resource_group_name.lower(), vault_name.lower())]
        except KeyError:
            raise ResourceNotFoundError(message=f"Vault '{vault_name}' not found.")

    def begin_create_or_update(self, resource_group_name, vault_name, parameters):
        self.azure.calls.append(("create_vault", vault_name))
        self.last_parameters = parameters
        self.azure.add_vault(resource_group_name, vault_name, parameters.location)
        return FakePoller(self.azure.vaults[(resource_group_name.lower(), vault_name.lower())])


class FakeSecretClient:
    def __init__(self, azure, vault_uri):
        self.azure = azure
        self.vault_uri = vault_uri

    def get_secret(self, name):
        try:
            return self.azure.secrets[(self.vault_uri, name)]
        except KeyError:
            raise ResourceNotFoundError(message=f"Secret '{name}' not found.")

    def set_secret(self, name, value):
        self.azure.calls.append(("set_secret", name))
        self.azure.add_secret(self.vault_uri, name, value)
        return self.azure.secrets[(self.vault_uri, name)]


class FakeCertificateClient:
    def __init__(self, azure, vault_uri):
        self.azure = azure
        self.vault_uri = vault_uri
        self.last_policy = None

    def get_certificate(self, name):
        try:
            return self.azure.certificates[(self.vault_uri, name)]
        except KeyError:
            raise ResourceNotFoundError(message=f"Certificate '{name}' not found.")

    def begin_create_certificate(self, certificate_name, policy):
        self.azure.calls.append(("create_certificate", certificate_name))
        self.last_policy = policy
        self.azure.add_certificate(self.vault_uri, certificate_name)
        return FakePoller(self.azure.certificates[(self.vault_uri, certificate_name)])


class FakeSession(AzureSession):
    """
    AzureSession whose SDK clients are served from a FakeAzure.
    """

    def __init__(self, azure: FakeAzure, object_id: str | None = OBJECT_ID):
        super().__init__(
            subscription_id=SUBSCRIPTION_ID,
            tenant_id=TENANT_ID,
            object_id=object_id,
            credential=object(),
        )
        self.azure = azure

    def resources(self):
        return self._client("resources", lambda: SimpleNamespace(
            resource_groups=FakeResourceGroups(self.azure),
            deployments=FakeDeployments(self.azure),
        ))

    def registries(self):
        return self._client("registries", lambda: SimpleNamespace(registries=FakeRegistries(self.azure)))

    def vaults(self):
        return self._client("vaults", lambda: SimpleNamespace(vaults=FakeVaults(self.azure)))

    def secrets(self, vault_uri):
        return self._client(f"secrets:{vault_uri}", lambda: FakeSecretClient(self.azure, vault_uri))

    def certificates(self, vault_uri):
        return self._client(f"certificates:{vault_uri}", lambda: FakeCertificateClient(self.azure, vault_uri))


# ─── Fixtures ─────────────────────────────────────────────────────────────────

@pytest.fixture
def azure():
    """
    Returns an empty in-memory Azure subscription.

    Example:
        def test_empty(azure):
            assert azure.groups == {}
    """
    return FakeAzure()


@pytest.fixture
def session(azure):
    """
    Returns a FakeSession bound to the `azure` fixture.
    """
    return FakeSession(azure)


@pytest.fixture
def template_file(tmp_path):
    """
    Returns the path of a minimal ARM template declaring the seven cluster parameters.
    """
    template = {
        "$schema": "https://schema.management.azure.com/schemas/2019-04-01/deploymentTemplate.json#",
        "contentVersion": "1.0.0.0",
        "parameters": {
            name: {"type": "securestring" if name == "adminPassword" else "string"}
            for name in (
                "clusterName", "clusterLocation", "certificateThumbprint", "certificateUrlValue",
                "sourceVaultValue", "adminUserName", "adminPassword",
            )
        },
        "resources": [],
    }
    path = tmp_path / "SFDeployTemplate.json"
    path.write_text(json.dumps(template), encoding="utf-8")
    return path


@pytest.fixture
def make_inputs(template_file):
    """
    Factory for resolved DeploymentInputs with test defaults.

    Example:
        def test_region(make_inputs):
            inputs = make_inputs(location="West US 2")
            assert inputs.location == "westus2"
    """
    def _make(**overrides):
        values = dict(
            subscription_id=SUBSCRIPTION_ID,
            resource_group="caas-rg",
            cluster_name="caas01",
            vault_name="caas01-kv",
            registry_name="caas01acr",
            location="westus2",
            template_file=template_file,
        )
        values.update(overrides)
        return resolve_inputs(**values)
    return _make


@pytest.fixture
def reset_logger():
    """
    Ensures the global loguru configuration does not leak between tests.
    """
    Logger.reset()
    yield
    Logger.reset()
