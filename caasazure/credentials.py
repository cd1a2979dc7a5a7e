import logging
from typing import Optional

from caasazure.handles import AdminCredentials, VaultHandle
from caasazure.passwords import Passwords
from caasazure.session import AzureSession
from caasazure.vault import Secrets

logger = logging.getLogger(__name__)


class AdminCredentialStore:
    """
    Resolves the cluster VM admin username/password pair and keeps the password in the vault.

    - Password supplied: stored as the vault secret and used.
    - No password, secret present: the stored value is reused untouched.
    - No password, secret absent: a new password is generated and stored.
    """

    @staticmethod
    def secret_name(cluster_name: str) -> str:
        return Secrets.sanitize(f"{cluster_name}-admin-password")

    @staticmethod
    def ensure(
            session: AzureSession,
            vault: VaultHandle,
            cluster_name: str,
            username: str,
            password: Optional[str] = None
    ) -> AdminCredentials:
        name = AdminCredentialStore.secret_name(cluster_name)

        if password:
            logger.info(f"[AdminCredentialStore] Storing supplied admin password as '{name}'.")
            secret = Secrets.store(session, vault, name, password)
            return AdminCredentials(username=username, password=password, secret_id=secret.id)

        existing = Secrets.get(session, vault, name)
        if existing is not None and existing.value:
            logger.info(f"[AdminCredentialStore] ✅ Reusing admin password from secret '{name}'.")
            if not Passwords.validate_password(existing.value):
                logger.warning(
                    f"[AdminCredentialStore] ⚠️ Stored password '{name}' does not meet the generator's "
                    f"composition policy; using it anyway."
                )
            return AdminCredentials(username=username, password=existing.value, secret_id=existing.id)

        logger.info(f"[AdminCredentialStore] No secret '{name}' in {vault.name}. Generating a new password.")
        generated = Passwords.generate_password()
        secret = Secrets.store(session, vault, name, generated)
        return AdminCredentials(username=username, password=generated, secret_id=secret.id, generated=True)
