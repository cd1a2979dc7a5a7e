from contextlib import contextmanager
from typing import Type

from azure.core.exceptions import (
    AzureError,
    ClientAuthenticationError,
    ResourceNotFoundError,
)


class CaasError(RuntimeError):
    """Base class for every failure that should abort a provisioning run."""


class AuthenticationError(CaasError):
    """Login, subscription selection or credential acquisition failed."""


class MissingInputError(CaasError):
    """A required input is absent and cannot be prompted for."""


class ResourceLookupError(CaasError):
    """Looking up an existing resource failed for a reason other than 'not found'."""


class ResourceCreationError(CaasError):
    """Creating a resource failed. Earlier resources are left in place."""


class ParameterAssemblyError(CaasError):
    """The resolved handles do not cover every template parameter."""


class DeploymentError(CaasError):
    """The template deployment was rejected or ended in a non-success state."""


class PipelineError(CaasError):
    """A pipeline step did not honour its declared inputs or outputs."""


class AzureCliError(CaasError):
    """
    The Azure CLI is missing or exited non-zero.

    Attributes:
        cmd (list[str]): The command that was run.
        returncode (int | None): Exit code, or None if 'az' could not be started.
        stderr (str): Captured standard error.
    """

    def __init__(self, message: str, cmd: list[str] | None = None, returncode: int | None = None, stderr: str = ""):
        super().__init__(message)
        self.cmd = cmd or []
        self.returncode = returncode
        self.stderr = stderr


class ErrorHandling:
    @staticmethod
    @contextmanager
    def surface(label: str, error_cls: Type[CaasError] = CaasError):
        """
        Translate Azure SDK exceptions raised inside the block into the caasbase taxonomy.

        Authentication failures always become AuthenticationError. Every other AzureError
        becomes `error_cls`. The provider's message is kept verbatim and the original
        exception is chained. Nothing is retried.

        Args:
            label (str): Component tag used as the message prefix, e.g. "VaultSetup".
            error_cls (type): CaasError subclass for non-authentication failures.

        Raises:
            AuthenticationError: On ClientAuthenticationError.
            CaasError: `error_cls` on any other AzureError.
        """
        try:
            yield
        except CaasError:
            raise
        except ClientAuthenticationError as e:
            raise AuthenticationError(f"[{label}] ❌ Authentication failed: {e.message or e}") from e
        except AzureError as e:
            raise error_cls(f"[{label}] ❌ {e.message or e}") from e

    @staticmethod
    def is_not_found(exc: BaseException) -> bool:
        """
        True if `exc` is the SDK's 404 signal, or wraps one.
        """
        while exc is not None:
            if isinstance(exc, ResourceNotFoundError):
                return True
            exc = exc.__cause__
        return False


surface = ErrorHandling.surface
is_not_found = ErrorHandling.is_not_found
