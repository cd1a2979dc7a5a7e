import logging
from typing import Dict, Iterator, Mapping, Optional

from caasazure.handles import (
    AdminCredentials,
    CertificateHandle,
    ResourceGroupHandle,
    VaultHandle,
)
from caasutil.error_handling import ParameterAssemblyError

logger = logging.getLogger(__name__)

CLUSTER_NAME = "clusterName"
CLUSTER_LOCATION = "clusterLocation"
CERTIFICATE_THUMBPRINT = "certificateThumbprint"
CERTIFICATE_URL = "certificateUrlValue"
SOURCE_VAULT = "sourceVaultValue"
ADMIN_USERNAME = "adminUserName"
ADMIN_PASSWORD = "adminPassword"

REQUIRED_KEYS = (
    CLUSTER_NAME,
    CLUSTER_LOCATION,
    CERTIFICATE_THUMBPRINT,
    CERTIFICATE_URL,
    SOURCE_VAULT,
    ADMIN_USERNAME,
    ADMIN_PASSWORD,
)
SECRET_KEYS = frozenset({ADMIN_PASSWORD})


class ParameterTable(Mapping[str, str]):
    """
    Write-once mapping of template parameter name to string value.
    """

    def __init__(self):
        self._values: Dict[str, str] = {}

    def set(self, key: str, value: str) -> None:
        if key in self._values:
            raise ParameterAssemblyError(f"[ParameterTable] ❌ Parameter '{key}' is already set.")
        if not isinstance(value, str) or not value:
            raise ParameterAssemblyError(f"[ParameterTable] ❌ Parameter '{key}' has no value.")
        self._values[key] = value

    def __getitem__(self, key: str) -> str:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def missing(self) -> list[str]:
        return [k for k in REQUIRED_KEYS if k not in self._values]

    def to_arm(self) -> Dict[str, Dict[str, str]]:
        """
        ARM parameter object: {name: {"value": value}}.
        """
        return {k: {"value": v} for k, v in self._values.items()}

    def masked(self) -> Dict[str, str]:
        return {k: ("********" if k in SECRET_KEYS else v) for k, v in self._values.items()}

    def __repr__(self) -> str:
        return f"ParameterTable({self.masked()!r})"


def assemble_parameters(
        cluster_name: str,
        group: Optional[ResourceGroupHandle],
        vault: Optional[VaultHandle],
        certificate: Optional[CertificateHandle],
        credentials: Optional[AdminCredentials]
) -> ParameterTable:
    """
    Extract the template parameters from the resolved handles.

    Returns:
        ParameterTable: Exactly the seven required keys.

    Raises:
        ParameterAssemblyError: A handle is missing or a required field is empty.
    """
    handles = {
        "resource group": group,
        "vault": vault,
        "certificate": certificate,
        "credentials": credentials,
    }
    absent = [k for k, v in handles.items() if v is None]
    if absent:
        raise ParameterAssemblyError(f"[ParameterTable] ❌ Unresolved handle(s): {', '.join(absent)}")

    table = ParameterTable()
    table.set(CLUSTER_NAME, cluster_name)
    table.set(CLUSTER_LOCATION, group.location)
    table.set(CERTIFICATE_THUMBPRINT, certificate.thumbprint)
    table.set(CERTIFICATE_URL, certificate.secret_id)
    table.set(SOURCE_VAULT, vault.id)
    table.set(ADMIN_USERNAME, credentials.username)
    table.set(ADMIN_PASSWORD, credentials.password)

    missing = table.missing()
    if missing:
        raise ParameterAssemblyError(f"[ParameterTable] ❌ Missing parameter(s): {', '.join(missing)}")

    logger.info(f"[ParameterTable] ✅ Assembled {len(table)} parameters: {', '.join(table)}")
    return table
