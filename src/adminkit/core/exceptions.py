"""Custom exceptions for adminkit."""


class AdminKitError(Exception):
    """Base exception for all adminkit errors."""


class ConfigurationError(AdminKitError):
    """Configuration-related errors."""


class InvalidArgumentError(AdminKitError):
    """Command-line input could not be resolved into a provisioning config."""


class PreconditionFailedError(AdminKitError):
    """Required cluster state is missing and cannot be created under the current flags."""


class ResourceUnavailableError(AdminKitError):
    """A credential could not be obtained by any strategy."""


class KubernetesError(AdminKitError):
    """Kubernetes operation failed.

    Attributes:
        status: HTTP status returned by the API server, if any
    """

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status
