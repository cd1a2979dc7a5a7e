import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

import caascontext._globals as _globals
from caasutil import sanitization as sanny
from caasutil.error_handling import MissingInputError

logger = logging.getLogger(__name__)

ADMIN_SUFFIX = "admin"
ADMIN_USERNAME_MAX = 20


@dataclass(frozen=True)
class DeploymentInputs:
    """
    Validated inputs for one provisioning run, with every default resolved.
    """
    subscription_id: str
    resource_group: str
    cluster_name: str
    vault_name: str
    registry_name: str
    admin_username: str
    location: Optional[str] = None
    admin_password: Optional[str] = field(default=None, repr=False)
    registry_sku: str = _globals.DEFAULT_REGISTRY_SKU
    vm_instance_count: int = _globals.DEFAULT_VM_INSTANCE_COUNT
    deployment_name: str = _globals.DEFAULT_DEPLOYMENT_NAME
    template_file: Path = _globals.DEFAULT_TEMPLATE_FILE
    prompt: Optional[Callable[[str], str]] = field(default=None, repr=False, compare=False)

    @property
    def interactive(self) -> bool:
        return self.prompt is not None


def default_admin_username(cluster_name: str) -> str:
    """
    Derive the VM admin username from the cluster name.

    Rule: lowercase alphanumerics of the cluster name (leading digits dropped) followed
    by "admin", cut to 20 characters with the suffix kept intact.

        >>> default_admin_username("Caas-West-01")
        'caaswest01admin'
    """
    try:
        stem = sanny.Sanitization.username(cluster_name, max_length=ADMIN_USERNAME_MAX - len(ADMIN_SUFFIX))
    except ValueError as e:
        raise MissingInputError(
            f"[Inputs] ❌ Cannot derive an admin username from cluster name '{cluster_name}'; "
            f"pass --admin-username."
        ) from e
    return f"{stem}{ADMIN_SUFFIX}"


def resolve_region(location: Optional[str]) -> Optional[str]:
    """
    Normalise a region name ("West US 2" -> "westus2"); None or blank stays None.
    """
    if location is None or not location.strip():
        return None
    return location.replace(" ", "").lower()


def resolve_cluster_name(cluster_name: str) -> str:
    """
    The cluster name becomes the first label of its public DNS name, so it must
    already be one: letters, digits and hyphens, no leading or trailing hyphen.
    """
    name = cluster_name.strip()
    try:
        label = sanny.Sanitization.dns_label(name)
    except ValueError:
        label = ""
    if label != name.lower():
        hint = f" (e.g. '{label}')" if label else ""
        raise MissingInputError(
            f"[Inputs] ❌ Cluster name '{name}' is not a valid DNS label; "
            f"use letters, digits and hyphens{hint}."
        )
    return name


def resolve_template(template_file) -> Path:
    path = Path(template_file or _globals.DEFAULT_TEMPLATE_FILE)
    if not path.is_file():
        raise MissingInputError(f"[Inputs] ❌ Template file not found: {path}")
    return path


def resolve_inputs(
        *,
        subscription_id: str,
        resource_group: str,
        cluster_name: str,
        vault_name: str,
        registry_name: str,
        location: Optional[str] = None,
        admin_username: Optional[str] = None,
        admin_password: Optional[str] = None,
        registry_sku: str = _globals.DEFAULT_REGISTRY_SKU,
        vm_instance_count: int = _globals.DEFAULT_VM_INSTANCE_COUNT,
        deployment_name: Optional[str] = None,
        template_file=None,
        prompt: Optional[Callable[[str], str]] = None
) -> DeploymentInputs:
    """
    Validate raw inputs and apply every default exactly once.

    Raises:
        MissingInputError: A required value is empty, the instance count is below 1,
            or the template file does not exist.
    """
    required = {
        "subscription_id": subscription_id,
        "resource_group": resource_group,
        "cluster_name": cluster_name,
        "vault_name": vault_name,
        "registry_name": registry_name,
    }
    missing = [k for k, v in required.items() if not v or not str(v).strip()]
    if missing:
        raise MissingInputError(f"[Inputs] ❌ Missing required input(s): {', '.join(missing)}")

    resolve_cluster_name(cluster_name)

    if vm_instance_count is None or int(vm_instance_count) < 1:
        raise MissingInputError(f"[Inputs] ❌ VM instance count must be at least 1, got {vm_instance_count!r}")

    if not admin_username:
        admin_username = default_admin_username(cluster_name)
        logger.info(f"[Inputs] Admin username derived from cluster name: {admin_username}")

    return DeploymentInputs(
        subscription_id=subscription_id.strip(),
        resource_group=resource_group.strip(),
        cluster_name=cluster_name.strip(),
        vault_name=vault_name.strip(),
        registry_name=registry_name.strip(),
        admin_username=admin_username,
        location=resolve_region(location),
        admin_password=admin_password or None,
        registry_sku=registry_sku or _globals.DEFAULT_REGISTRY_SKU,
        vm_instance_count=int(vm_instance_count),
        deployment_name=deployment_name or _globals.DEFAULT_DEPLOYMENT_NAME,
        template_file=resolve_template(template_file),
        prompt=prompt,
    )
