"""
CF Deployer - deploy apps to Cloud Foundry from generic deployment requests.

The deployer supports:
- Namespaced, optionally randomized deployment ids
- Push, environment, service binding and start as one asynchronous pipeline
- Normalized deployment status from platform instance states
- Synchronous and asyncio APIs plus a command line
"""

from .cloudfoundry import (
    CloudFoundryAppDeployer,
    CloudFoundryConnectionProperties,
    CloudFoundryDeployerProperties,
)
from .spi import (
    AppDefinition,
    AppDeployer,
    AppDeploymentRequest,
    AppInstanceStatus,
    AppStatus,
    DeploymentState,
)

__version__ = "1.0.0"

__all__ = [
    "AppDefinition",
    "AppDeployer",
    "AppDeploymentRequest",
    "AppInstanceStatus",
    "AppStatus",
    "CloudFoundryAppDeployer",
    "CloudFoundryConnectionProperties",
    "CloudFoundryDeployerProperties",
    "DeploymentState",
]
