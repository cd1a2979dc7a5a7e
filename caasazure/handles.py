from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass(frozen=True)
class ResourceGroupHandle:
    id: str
    name: str
    location: str
    created: bool = False


@dataclass(frozen=True)
class RegistryHandle:
    id: str
    name: str
    login_server: str
    created: bool = False


@dataclass(frozen=True)
class VaultHandle:
    id: str
    name: str
    uri: str
    location: str
    created: bool = False


@dataclass(frozen=True)
class CertificateHandle:
    """
    A vault-held certificate.

    `thumbprint` is the upper-case hex SHA-1 thumbprint; `secret_id` is the versioned
    secret URL that a VM scale set uses to pull the PFX.
    """
    name: str
    thumbprint: str
    secret_id: str
    created: bool = False


@dataclass(frozen=True)
class AdminCredentials:
    username: str
    password: str = field(repr=False)
    secret_id: str = ""
    generated: bool = False

    def __repr__(self) -> str:
        return (
            f"AdminCredentials(username={self.username!r}, password='********', "
            f"secret_id={self.secret_id!r}, generated={self.generated!r})"
        )


@dataclass(frozen=True)
class DeploymentResult:
    name: str
    id: str
    provisioning_state: str
    outputs: Dict[str, Any] = field(default_factory=dict)
