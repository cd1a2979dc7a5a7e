import logging
from typing import Callable, Optional

from caasazure.handles import ResourceGroupHandle
from caasazure.session import AzureSession
from caasutil.error_handling import (
    MissingInputError,
    ResourceCreationError,
    ResourceLookupError,
    surface,
)

logger = logging.getLogger(__name__)


class AzureResourceGroup:
    """
    Ensures the named resource group exists under the session's subscription.
    """

    @staticmethod
    def _exists(session: AzureSession, rg_name: str) -> bool:
        with surface("AzureResourceGroup", ResourceLookupError):
            return bool(session.resources().resource_groups.check_existence(rg_name))

    @staticmethod
    def get(session: AzureSession, rg_name: str) -> ResourceGroupHandle:
        with surface("AzureResourceGroup", ResourceLookupError):
            group = session.resources().resource_groups.get(rg_name)
        return ResourceGroupHandle(id=group.id, name=group.name, location=group.location)

    @staticmethod
    def _create(session: AzureSession, rg_name: str, location: str) -> ResourceGroupHandle:
        logger.info(f"[AzureResourceGroup] 🚀 Creating resource group '{rg_name}' in {location}")
        with surface("AzureResourceGroup", ResourceCreationError):
            group = session.resources().resource_groups.create_or_update(rg_name, {"location": location})
        logger.info(f"[AzureResourceGroup] ✅ Created resource group '{group.name}' ({group.location})")
        return ResourceGroupHandle(id=group.id, name=group.name, location=group.location, created=True)

    @staticmethod
    def ensure(
            session: AzureSession,
            rg_name: str,
            location: Optional[str] = None,
            prompt: Optional[Callable[[str], str]] = None
    ) -> ResourceGroupHandle:
        """
        Return the resource group `rg_name`, creating it in `location` if missing.

        Args:
            session (AzureSession): Authenticated session.
            rg_name (str): Resource group name.
            location (str | None): Region; only needed when the group must be created.
            prompt (callable | None): Asks the user for a region. None means non-interactive.

        Returns:
            ResourceGroupHandle: Existing or newly created group.

        Raises:
            MissingInputError: Group is absent, no region given and no prompt available.
            ResourceLookupError / ResourceCreationError: Provider failures.
        """
        if not rg_name:
            raise MissingInputError("[AzureResourceGroup] ❌ A resource group name is required.")

        if AzureResourceGroup._exists(session, rg_name):
            group = AzureResourceGroup.get(session, rg_name)
            logger.info(f"[AzureResourceGroup] ✅ Resource group exists: {group.name} ({group.location})")
            if location and location.replace(" ", "").lower() != group.location.lower():
                logger.warning(
                    f"[AzureResourceGroup] ⚠️ Requested region '{location}' ignored; "
                    f"'{group.name}' lives in '{group.location}'."
                )
            return group

        if not location:
            if prompt is None:
                raise MissingInputError(
                    f"[AzureResourceGroup] ❌ Resource group '{rg_name}' does not exist and no region was supplied."
                )
            location = (prompt(f"Resource group '{rg_name}' not found. Region to create it in") or "").strip()
            if not location:
                raise MissingInputError("[AzureResourceGroup] ❌ Region input was empty.")

        return AzureResourceGroup._create(session, rg_name, location)
