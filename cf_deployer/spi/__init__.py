"""
Platform independent deployer SPI.
"""

from .base import AppDeployer
from .models import (
    AppDefinition,
    AppDeploymentRequest,
    AppInstanceStatus,
    AppStatus,
    DeploymentState,
)

__all__ = [
    "AppDeployer",
    "AppDefinition",
    "AppDeploymentRequest",
    "AppInstanceStatus",
    "AppStatus",
    "DeploymentState",
]
