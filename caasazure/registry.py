import logging
from typing import List

import caascontext._globals as _globals
from caasazure.handles import RegistryHandle, ResourceGroupHandle
from caasazure.session import AzureSession
from caasutil.error_handling import (
    MissingInputError,
    ResourceCreationError,
    ResourceLookupError,
    is_not_found,
    surface,
)

logger = logging.getLogger(__name__)


class ContainerRegistry:
    """
    Looks up or creates the Azure Container Registry the cluster pulls images from.

    Lookup is by exact name inside the resource group. Other registries that happen to
    live in the same group are reported, never adopted.
    """

    @staticmethod
    def _handle(registry, created: bool = False) -> RegistryHandle:
        return RegistryHandle(
            id=registry.id,
            name=registry.name,
            login_server=registry.login_server,
            created=created,
        )

    @staticmethod
    def get(session: AzureSession, group: ResourceGroupHandle, name: str) -> RegistryHandle | None:
        """
        Return the registry called `name` in `group`, or None if it does not exist.
        """
        try:
            with surface("ContainerRegistry", ResourceLookupError):
                registry = session.registries().registries.get(group.name, name)
        except ResourceLookupError as e:
            if is_not_found(e):
                return None
            raise
        return ContainerRegistry._handle(registry)

    @staticmethod
    def list_names(session: AzureSession, group: ResourceGroupHandle) -> List[str]:
        """
        Names of every registry in `group` (diagnostic).
        """
        with surface("ContainerRegistry", ResourceLookupError):
            return [r.name for r in session.registries().registries.list_by_resource_group(group.name)]

    @staticmethod
    def create(
            session: AzureSession,
            group: ResourceGroupHandle,
            name: str,
            sku: str = _globals.DEFAULT_REGISTRY_SKU
    ) -> RegistryHandle:
        logger.info(f"[ContainerRegistry] 🚀 Creating registry '{name}' ({sku}) in {group.name}/{group.location}")
        with surface("ContainerRegistry", ResourceCreationError):
            poller = session.registries().registries.begin_create(
                resource_group_name=group.name,
                registry_name=name,
                registry={
                    "location": group.location,
                    "sku": {"name": sku},
                    "admin_user_enabled": False,
                },
            )
            registry = poller.result()
        logger.info(f"[ContainerRegistry] ✅ Registry created: {registry.login_server}")
        return ContainerRegistry._handle(registry, created=True)

    @staticmethod
    def ensure(
            session: AzureSession,
            group: ResourceGroupHandle,
            name: str,
            sku: str = _globals.DEFAULT_REGISTRY_SKU
    ) -> RegistryHandle:
        """
        Return the registry `name` in `group`, creating it if it does not exist.

        Raises:
            MissingInputError: If `name` is empty.
            ResourceLookupError / ResourceCreationError: Provider failures.
        """
        if not name:
            raise MissingInputError("[ContainerRegistry] ❌ A registry name is required.")

        registry = ContainerRegistry.get(session, group, name)
        if registry:
            logger.info(f"[ContainerRegistry] ✅ Registry exists: {registry.name} ({registry.login_server})")
            return registry

        others = [n for n in ContainerRegistry.list_names(session, group) if n.lower() != name.lower()]
        if others:
            logger.warning(
                f"[ContainerRegistry] ⚠️ '{group.name}' holds other registries ({', '.join(others)}); "
                f"creating '{name}' as requested."
            )
        return ContainerRegistry.create(session, group, name, sku)
