"""
Deployer interface for deploying apps to a target platform.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Optional

from .models import AppDeploymentRequest, AppStatus


class AppDeployer(ABC):
    """Abstract base class for app deployers.

    This defines the interface that all platform deployers must implement.
    Every operation has a coroutine variant; the synchronous methods block
    until the coroutine completes.
    """

    GROUP_PROPERTY_KEY = "spring.cloud.deployer.group"
    COUNT_PROPERTY_KEY = "spring.cloud.deployer.count"
    MEMORY_PROPERTY_KEY = "spring.cloud.deployer.memory"
    DISK_PROPERTY_KEY = "spring.cloud.deployer.disk"

    @abstractmethod
    async def async_deploy(self, request: AppDeploymentRequest) -> str:
        """Deploy an app.

        Args:
            request: The app definition, artifact and deployment properties

        Returns:
            The deployment id assigned to the app
        """

    @abstractmethod
    async def async_undeploy(self, deployment_id: str) -> None:
        """Remove a deployed app.

        Args:
            deployment_id: Id returned by a previous deploy
        """

    @abstractmethod
    async def async_status(self, deployment_id: str) -> AppStatus:
        """Get the status of a deployment.

        Args:
            deployment_id: Id returned by a previous deploy

        Returns:
            AppStatus snapshot; state is unknown when the platform does not
            report the app
        """

    @abstractmethod
    def environment_info(self) -> dict[str, Any]:
        """Describe the deployer and the platform it targets."""

    def deploy(
        self, request: AppDeploymentRequest, timeout: Optional[float] = None
    ) -> str:
        """Blocking variant of async_deploy."""
        return self._run(self.async_deploy(request), timeout)

    def undeploy(self, deployment_id: str, timeout: Optional[float] = None) -> None:
        """Blocking variant of async_undeploy."""
        return self._run(self.async_undeploy(deployment_id), timeout)

    def status(self, deployment_id: str, timeout: Optional[float] = None) -> AppStatus:
        """Blocking variant of async_status."""
        return self._run(self.async_status(deployment_id), timeout)

    def _run(self, coro, timeout: Optional[float]):
        """Run a coroutine to completion in a fresh event loop.

        Args:
            coro: Coroutine to run
            timeout: Optional deadline in seconds supplied by the caller
        """
        if timeout is not None:
            coro = asyncio.wait_for(coro, timeout)
        return asyncio.run(coro)
