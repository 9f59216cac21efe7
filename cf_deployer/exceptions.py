"""
Exception hierarchy for the Cloud Foundry deployer.

Every error raised by the deployer derives from DeployerError so callers can
catch the whole family in one place. Platform failures are propagated to the
caller unchanged; the deployer performs no retries.
"""

from typing import Optional


class DeployerError(Exception):
    """Base class for all deployer errors."""


class ConfigurationError(DeployerError):
    """Raised when the deployer configuration is invalid."""


class AlreadyDeployedError(DeployerError):
    """Raised when deploying an app that is already deployed or deploying."""

    def __init__(self, deployment_id: str):
        self.deployment_id = deployment_id
        super().__init__(f"{deployment_id} is already deployed")


class UnsupportedStateError(DeployerError):
    """Raised when the platform reports a state outside the known vocabulary."""

    def __init__(self, state: str):
        self.state = state
        super().__init__(f"Unsupported CF state {state}")


class PlatformError(DeployerError):
    """Raised for any failure reported by the platform."""


class CloudFoundryClientError(PlatformError):
    """Error returned by the Cloud Foundry API or its transport."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        error_code: Optional[str] = None,
        description: Optional[str] = None,
    ):
        self.status = status
        self.error_code = error_code
        self.description = description
        super().__init__(message)


class ApplicationNotFoundError(CloudFoundryClientError):
    """Raised when an application does not exist in the target space."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Application {name} does not exist", status=404)


class ServiceInstanceNotFoundError(CloudFoundryClientError):
    """Raised when a service instance does not exist in the target space."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Service instance {name} does not exist", status=404)
