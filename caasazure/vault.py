import logging

from azure.keyvault.secrets import KeyVaultSecret
from azure.mgmt.keyvault.models import (
    AccessPolicyEntry,
    Permissions,
    Sku,
    VaultCreateOrUpdateParameters,
    VaultProperties,
)

from caasazure.handles import ResourceGroupHandle, VaultHandle
from caasazure.session import AzureSession
from caasutil import sanitization as sanny
from caasutil.error_handling import (
    MissingInputError,
    ResourceCreationError,
    ResourceLookupError,
    is_not_found,
    surface,
)

logger = logging.getLogger(__name__)

SECRET_PERMISSIONS = ["get", "list", "set", "delete"]
CERTIFICATE_PERMISSIONS = ["get", "list", "create", "import", "update", "delete"]


class VaultSetup:
    """
    Handles creation and retrieval of the Azure Key Vault that holds the cluster
    certificate and admin password.

    Responsibilities:
    - Look the vault up by name in the resource group (KeyVaultManagementClient)
    - Create it enabled for deployment and template deployment, with an access
      policy for the signed-in principal
    """

    @staticmethod
    def _handle(vault, created: bool = False) -> VaultHandle:
        return VaultHandle(
            id=vault.id,
            name=vault.name,
            uri=vault.properties.vault_uri,
            location=vault.location,
            created=created,
        )

    @staticmethod
    def get_vault(session: AzureSession, group: ResourceGroupHandle, vault_name: str) -> VaultHandle | None:
        """
        Fetch existing Key Vault metadata, or None if the vault does not exist.

        Raises:
            ResourceLookupError: Any failure other than 'not found'.
        """
        try:
            with surface("VaultSetup", ResourceLookupError):
                vault = session.vaults().vaults.get(resource_group_name=group.name, vault_name=vault_name)
        except ResourceLookupError as e:
            if is_not_found(e):
                return None
            raise

        if not vault.properties.enabled_for_template_deployment:
            logger.warning(
                f"[VaultSetup] ⚠️ Vault '{vault.name}' is not enabled for template deployment; "
                f"the cluster deployment may not be able to read its certificate."
            )
        return VaultSetup._handle(vault)

    @staticmethod
    def build_parameters(session: AzureSession, location: str) -> VaultCreateOrUpdateParameters:
        """
        Vault create body: standard SKU, deployment access on, access policy for the caller.
        """
        policies = []
        if session.object_id:
            policies.append(
                AccessPolicyEntry(
                    tenant_id=session.tenant_id,
                    object_id=session.object_id,
                    permissions=Permissions(
                        secrets=SECRET_PERMISSIONS,
                        certificates=CERTIFICATE_PERMISSIONS,
                    ),
                )
            )
        else:
            logger.warning(
                "[VaultSetup] ⚠️ Signed-in object ID unknown; creating vault without an access policy."
            )

        return VaultCreateOrUpdateParameters(
            location=location,
            properties=VaultProperties(
                tenant_id=session.tenant_id,
                sku=Sku(family="A", name="standard"),
                access_policies=policies,
                enabled_for_deployment=True,
                enabled_for_template_deployment=True,
            ),
        )

    @staticmethod
    def create_vault(session: AzureSession, group: ResourceGroupHandle, vault_name: str) -> VaultHandle:
        """
        Create a new Azure Key Vault in `group`'s region.

        Raises:
            ResourceCreationError: If the provider rejects the request.
        """
        logger.info(f"[VaultSetup] 🚀 Creating Key Vault: {vault_name} in {group.name} (region={group.location})")
        with surface("VaultSetup", ResourceCreationError):
            poller = session.vaults().vaults.begin_create_or_update(
                resource_group_name=group.name,
                vault_name=vault_name,
                parameters=VaultSetup.build_parameters(session, group.location),
            )
            vault = poller.result()

        handle = VaultSetup._handle(vault, created=True)
        if not handle.uri:
            raise ResourceCreationError(f"[VaultSetup] ❌ Vault '{vault_name}' was created but has no URI.")
        logger.info(f"[VaultSetup] ✅ Vault created: {handle.name} ({handle.uri})")
        return handle

    @staticmethod
    def ensure_vault_ready(session: AzureSession, group: ResourceGroupHandle, vault_name: str) -> VaultHandle:
        """
        Return the vault `vault_name`, creating it if it does not exist.
        """
        if not vault_name:
            raise MissingInputError("[VaultSetup] ❌ A vault name is required.")

        vault = VaultSetup.get_vault(session, group, vault_name)
        if vault:
            logger.info(f"[VaultSetup] ✅ Vault exists: {vault.name} ({vault.uri})")
            return vault

        logger.info(f"[VaultSetup] Vault '{vault_name}' not found.")
        return VaultSetup.create_vault(session, group, vault_name)


class Secrets:
    """
    Key Vault secret access for a resolved vault. Nothing is cached locally and
    secret values are never logged.
    """

    @staticmethod
    def sanitize(name: str) -> str:
        return sanny.Sanitization.keyvault_object(name)

    @staticmethod
    def get(session: AzureSession, vault: VaultHandle, name: str) -> KeyVaultSecret | None:
        """
        Retrieve the secret `name`, or None if the vault has no such secret.

        Raises:
            ResourceLookupError: Any failure other than 'not found'.
        """
        secret_key = Secrets.sanitize(name)
        try:
            with surface("Secrets", ResourceLookupError):
                return session.secrets(vault.uri).get_secret(secret_key)
        except ResourceLookupError as e:
            if is_not_found(e):
                return None
            raise

    @staticmethod
    def store(session: AzureSession, vault: VaultHandle, name: str, value: str) -> KeyVaultSecret:
        """
        Persist the secret to Azure Key Vault. Writing an existing name adds a new version.

        Raises:
            ResourceCreationError: If the vault rejects the write.
        """
        secret_key = Secrets.sanitize(name)
        with surface("Secrets", ResourceCreationError):
            secret = session.secrets(vault.uri).set_secret(secret_key, value)
        logger.info(f"[Secrets] ✅ Stored secret '{secret_key}' in {vault.name}.")
        return secret
