# session.py
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from azure.identity import AzureCliCredential
from azure.keyvault.certificates import CertificateClient
from azure.keyvault.secrets import SecretClient
from azure.mgmt.containerregistry import ContainerRegistryManagementClient
from azure.mgmt.keyvault import KeyVaultManagementClient
from azure.mgmt.resource import ResourceManagementClient

from caasazure.run import run_az
from caasutil.error_handling import AuthenticationError, AzureCliError

logger = logging.getLogger(__name__)


@dataclass
class AzureSession:
    """
    Explicit authenticated context threaded through every provisioning call.

    Holds the selected subscription, the tenant and signed-in principal, and a credential.
    SDK clients are built lazily, once per session (data-plane clients once per vault URI).
    """
    subscription_id: str
    tenant_id: str
    object_id: Optional[str]
    credential: Any
    _clients: Dict[str, Any] = field(default_factory=dict, repr=False)

    def _client(self, key: str, factory):
        if key not in self._clients:
            self._clients[key] = factory()
        return self._clients[key]

    def resources(self) -> ResourceManagementClient:
        return self._client(
            "resources", lambda: ResourceManagementClient(self.credential, self.subscription_id)
        )

    def registries(self) -> ContainerRegistryManagementClient:
        return self._client(
            "registries", lambda: ContainerRegistryManagementClient(self.credential, self.subscription_id)
        )

    def vaults(self) -> KeyVaultManagementClient:
        return self._client(
            "vaults", lambda: KeyVaultManagementClient(self.credential, self.subscription_id)
        )

    def secrets(self, vault_uri: str) -> SecretClient:
        return self._client(
            f"secrets:{vault_uri}", lambda: SecretClient(vault_url=vault_uri, credential=self.credential)
        )

    def certificates(self, vault_uri: str) -> CertificateClient:
        return self._client(
            f"certificates:{vault_uri}", lambda: CertificateClient(vault_url=vault_uri, credential=self.credential)
        )


class AzureLogin:
    """
    Establishes the Azure CLI identity session and selects the subscription.

    Ensures:
      - A usable CLI login (interactive `az login` only when allowed)
      - The requested subscription is active and confirmed
      - The signed-in principal's object ID is known for vault access policies
    """

    @staticmethod
    def _account() -> Dict[str, Any]:
        """
        Return `az account show`, or raise AzureCliError when not logged in.
        """
        info = run_az(["az", "account", "show"], capture_output=True)
        if not isinstance(info, dict) or not info.get("id"):
            raise AzureCliError(f"[AzureLogin] Unexpected 'az account show' output: {info!r}")
        return info

    @staticmethod
    def login(interactive: bool) -> Dict[str, Any]:
        """
        Reuse the existing CLI session, or run `az login` when interactive.

        Raises:
            AuthenticationError: If no session exists and prompting is not allowed, or login fails.
        """
        try:
            logger.info("[AzureLogin] Attempting to reuse existing Azure CLI session...")
            return AzureLogin._account()
        except AzureCliError as e:
            if e.returncode is None and not e.stderr:
                # 'az' itself is missing; logging in will not help
                raise AuthenticationError(str(e)) from e
            if not interactive:
                raise AuthenticationError(
                    f"[AzureLogin] ❌ No Azure CLI session and prompting is disabled. Run 'az login' first. ({e})"
                ) from e
            logger.warning(f"[AzureLogin] Existing session invalid or missing. Reason: {e}")

        try:
            run_az(["az", "login"], capture_output=False)
            return AzureLogin._account()
        except AzureCliError as e:
            raise AuthenticationError(f"[AzureLogin] ❌ 'az login' failed: {e}") from e

    @staticmethod
    def select_subscription(subscription_id: str) -> Dict[str, Any]:
        """
        Run `az account set` and confirm the switch with `az account show`.

        Returns:
            dict: The confirmed account record.
        """
        try:
            run_az(["az", "account", "set", "--subscription", subscription_id], capture_output=True)
            account = AzureLogin._account()
        except AzureCliError as e:
            raise AuthenticationError(
                f"[AzureLogin] ❌ Could not select subscription '{subscription_id}': {e}"
            ) from e

        current = str(account.get("id", ""))
        if current.lower() != subscription_id.lower():
            raise AuthenticationError(
                f"[AzureLogin] ❌ Subscription switch not confirmed: wanted '{subscription_id}', got '{current}'"
            )
        logger.info(f"[AzureLogin] ✅ Subscription '{account.get('name', current)}' ({current}) is active.")
        return account

    @staticmethod
    def current_object_id(account: Dict[str, Any]) -> Optional[str]:
        """
        Return the Object ID of the signed-in user or service principal, or None.
        """
        user = account.get("user") or {}
        if user.get("type") == "servicePrincipal":
            cmd = ["az", "ad", "sp", "show", "--id", user.get("name", ""), "--query", "id"]
        else:
            cmd = ["az", "ad", "signed-in-user", "show", "--query", "id"]

        try:
            obj_id = run_az(cmd, capture_output=True)
        except AzureCliError as e:
            logger.warning(f"[AzureLogin] Could not resolve signed-in object ID: {e}")
            return None

        if not isinstance(obj_id, str) or not obj_id:
            logger.warning(f"[AzureLogin] Unexpected object ID format: {obj_id!r}")
            return None
        return obj_id

    @staticmethod
    def connect(subscription_id: str, interactive: bool = True) -> AzureSession:
        """
        Log in, select `subscription_id` and return the session.

        Args:
            subscription_id (str): Subscription to operate in.
            interactive (bool): Allow `az login` to prompt.

        Returns:
            AzureSession: Session bound to the subscription.

        Raises:
            AuthenticationError: On any login or subscription failure.
        """
        if not subscription_id:
            raise AuthenticationError("[AzureLogin] ❌ A subscription ID is required.")

        AzureLogin.login(interactive)
        account = AzureLogin.select_subscription(subscription_id)
        tenant_id = account.get("tenantId")
        if not tenant_id:
            raise AuthenticationError(f"[AzureLogin] ❌ Account record has no tenantId: {account!r}")

        object_id = AzureLogin.current_object_id(account)
        credential = AzureCliCredential(tenant_id=tenant_id)
        user = (account.get("user") or {}).get("name", "<unknown>")
        logger.info(f"[AzureLogin] ✅ Session ready for {user} (tenant={tenant_id})")
        return AzureSession(
            subscription_id=account["id"],
            tenant_id=tenant_id,
            object_id=object_id,
            credential=credential,
        )
