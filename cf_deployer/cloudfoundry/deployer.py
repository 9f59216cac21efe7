"""
Cloud Foundry implementation of the AppDeployer SPI.

A deploy is a fixed sequence of asynchronous stages (check, push, get,
environment, bind, start). Stages run one after the other; the first failure
aborts the remaining stages and is raised to the caller unchanged. Earlier
stages are not rolled back, so a failed bind or start leaves the pushed app
in place.

The "already deployed" check queries the platform before pushing. It is not
atomic: two concurrent deploys of the same app can both pass it.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from cf_deployer.exceptions import (
    AlreadyDeployedError,
    ApplicationNotFoundError,
    ConfigurationError,
)
from cf_deployer.spi.base import AppDeployer
from cf_deployer.spi.models import AppDeploymentRequest, AppStatus, DeploymentState

from .app_name_generator import CloudFoundryAppNameGenerator
from .client import CloudFoundryClient
from .models import PushApplicationRequest
from .operations import CloudFoundryOperations
from .properties import (
    CloudFoundryConnectionProperties,
    CloudFoundryDeployerProperties,
    parse_megabytes,
)
from .status import build_app_status

logger = logging.getLogger(__name__)


@dataclass
class DeploymentContext:
    """State handed from one deploy stage to the next."""

    deployment_id: str
    request: AppDeploymentRequest
    application_id: Optional[str] = None


Stage = Callable[[DeploymentContext], Awaitable[None]]


class CloudFoundryAppDeployer(AppDeployer):
    """Deploys apps to Cloud Foundry."""

    SERVICES_PROPERTY_KEY = "spring.cloud.deployer.cloudfoundry.services"
    BUILDPACK_PROPERTY_KEY = "spring.cloud.deployer.cloudfoundry.buildpack"
    DOMAIN_PROPERTY_KEY = "spring.cloud.deployer.cloudfoundry.domain"
    HOST_PROPERTY_KEY = "spring.cloud.deployer.cloudfoundry.host"
    HEALTH_CHECK_PROPERTY_KEY = "spring.cloud.deployer.cloudfoundry.health-check"
    NO_ROUTE_PROPERTY_KEY = "spring.cloud.deployer.cloudfoundry.no-route"

    SPRING_APPLICATION_JSON = "SPRING_APPLICATION_JSON"

    DEPLOYMENT_PROPERTY_KEYS = frozenset(
        {
            AppDeployer.GROUP_PROPERTY_KEY,
            AppDeployer.COUNT_PROPERTY_KEY,
            AppDeployer.MEMORY_PROPERTY_KEY,
            AppDeployer.DISK_PROPERTY_KEY,
            SERVICES_PROPERTY_KEY,
            BUILDPACK_PROPERTY_KEY,
            DOMAIN_PROPERTY_KEY,
            HOST_PROPERTY_KEY,
            HEALTH_CHECK_PROPERTY_KEY,
            NO_ROUTE_PROPERTY_KEY,
        }
    )

    def __init__(
        self,
        properties: CloudFoundryDeployerProperties,
        operations: CloudFoundryOperations,
        client: CloudFoundryClient,
        app_name_generator: CloudFoundryAppNameGenerator,
    ):
        """
        Initialize the deployer.

        Args:
            properties: Deployer defaults
            operations: Application and service operations
            client: Low level client used for environment updates
            app_name_generator: Generator for deployment ids
        """
        self._properties = properties
        self.operations = operations
        self.client = client
        self.app_name_generator = app_name_generator

    @classmethod
    def create(
        cls,
        properties: CloudFoundryDeployerProperties,
        connection: CloudFoundryConnectionProperties,
    ) -> "CloudFoundryAppDeployer":
        """Build a deployer wired to a real Cloud Foundry client."""
        client = CloudFoundryClient(connection)
        return cls(
            properties,
            CloudFoundryOperations(client),
            client,
            CloudFoundryAppNameGenerator(properties),
        )

    @property
    def properties(self) -> CloudFoundryDeployerProperties:
        return self._properties

    def reconfigure(self, properties: CloudFoundryDeployerProperties) -> None:
        """Replace the deployer properties as a whole.

        Calls already in flight keep the value they started with.
        """
        self._properties = properties
        logger.info("Deployer properties replaced")

    def deployment_id(self, request: AppDeploymentRequest) -> str:
        """Compute the deployment id for a request."""
        return self.app_name_generator.generate(
            request.definition.name,
            request.deployment_properties.get(self.GROUP_PROPERTY_KEY),
        )

    async def async_deploy(self, request: AppDeploymentRequest) -> str:
        context = DeploymentContext(
            deployment_id=self.deployment_id(request), request=request
        )
        properties = self._properties
        stages: list[tuple[str, Stage]] = [
            ("check", self._check_not_deployed),
            ("push", lambda ctx: self._push(ctx, properties)),
            ("get", self._get_application_id),
            ("environment", self._update_environment),
            ("bind", lambda ctx: self._bind_services(ctx, properties)),
            ("start", self._start),
        ]

        logger.info(f"Deploying {context.deployment_id}")
        for name, stage in stages:
            logger.debug(f"{context.deployment_id}: running stage {name}")
            try:
                await stage(context)
            except asyncio.CancelledError:
                logger.warning(f"Deployment of {context.deployment_id} cancelled")
                raise
            except Exception as e:
                logger.error(
                    f"Deployment of {context.deployment_id} failed at stage "
                    f"{name}: {e}"
                )
                raise

        logger.info(f"Deployed {context.deployment_id}")
        return context.deployment_id

    async def _check_not_deployed(self, context: DeploymentContext):
        status = await self.async_status(context.deployment_id)
        if status.state in (DeploymentState.DEPLOYED, DeploymentState.DEPLOYING):
            raise AlreadyDeployedError(context.deployment_id)

    async def _push(
        self, context: DeploymentContext, properties: CloudFoundryDeployerProperties
    ):
        deployment_properties = context.request.deployment_properties

        ignored = set(deployment_properties) - self.DEPLOYMENT_PROPERTY_KEYS
        if ignored:
            logger.debug(f"Ignoring deployment properties {sorted(ignored)}")

        await self.operations.applications.push(
            PushApplicationRequest(
                name=context.deployment_id,
                path=context.request.resource,
                instances=self._instances(deployment_properties, properties),
                memory=parse_megabytes(
                    deployment_properties.get(
                        self.MEMORY_PROPERTY_KEY, properties.memory
                    )
                ),
                disk_quota=parse_megabytes(
                    deployment_properties.get(self.DISK_PROPERTY_KEY, properties.disk)
                ),
                buildpack=deployment_properties.get(
                    self.BUILDPACK_PROPERTY_KEY, properties.buildpack
                ),
                stack=properties.stack,
                health_check_type=deployment_properties.get(
                    self.HEALTH_CHECK_PROPERTY_KEY, properties.health_check
                ),
                domain=deployment_properties.get(
                    self.DOMAIN_PROPERTY_KEY, properties.domain
                ),
                host=deployment_properties.get(self.HOST_PROPERTY_KEY),
                no_route=_is_true(
                    deployment_properties.get(self.NO_ROUTE_PROPERTY_KEY)
                ),
                no_start=True,
            )
        )

    def _instances(
        self,
        deployment_properties: dict[str, str],
        properties: CloudFoundryDeployerProperties,
    ) -> int:
        value = deployment_properties.get(self.COUNT_PROPERTY_KEY)
        if value is None:
            return properties.instances
        try:
            count = int(value)
        except ValueError:
            raise ConfigurationError(f"Invalid instance count: {value!r}") from None
        if count < 1:
            raise ConfigurationError(f"Invalid instance count: {value!r}")
        return count

    async def _get_application_id(self, context: DeploymentContext):
        detail = await self.operations.applications.get(context.deployment_id)
        context.application_id = detail.id

    async def _update_environment(self, context: DeploymentContext):
        # Only app definition properties reach the app; deployment
        # properties configure the deployer itself.
        environment = {
            self.SPRING_APPLICATION_JSON: json.dumps(
                context.request.definition.properties, separators=(",", ":")
            )
        }
        await self.client.applications_v2.update(
            context.application_id, environment
        )

    def services_for(
        self,
        request: AppDeploymentRequest,
        properties: Optional[CloudFoundryDeployerProperties] = None,
    ) -> list[str]:
        """Services to bind: configured ones first, then request additions."""
        properties = properties or self._properties
        services = list(properties.services)
        extra = request.deployment_properties.get(self.SERVICES_PROPERTY_KEY, "")
        for name in extra.split(","):
            name = name.strip()
            if name and name not in services:
                services.append(name)
        return services

    async def _bind_services(
        self, context: DeploymentContext, properties: CloudFoundryDeployerProperties
    ):
        for service in self.services_for(context.request, properties):
            await self.operations.services.bind(context.deployment_id, service)

    async def _start(self, context: DeploymentContext):
        await self.operations.applications.start(context.deployment_id)

    async def async_undeploy(self, deployment_id: str) -> None:
        logger.info(f"Undeploying {deployment_id}")
        await self.operations.applications.delete(deployment_id, delete_routes=True)

    async def async_status(self, deployment_id: str) -> AppStatus:
        try:
            detail = await self.operations.applications.get(deployment_id)
        except ApplicationNotFoundError:
            logger.debug(f"{deployment_id} is not reported by the platform")
            return AppStatus.empty(deployment_id)
        return build_app_status(deployment_id, detail)

    def environment_info(self) -> dict[str, Any]:
        connection = getattr(self.client, "connection", None)
        return {
            "spi_class": type(self).__name__,
            "platform_type": "Cloud Foundry",
            "platform_api_url": getattr(connection, "url", None),
            "org": getattr(connection, "org", None),
            "space": getattr(connection, "space", None),
        }

    def _run(self, coro, timeout: Optional[float]):
        """Run a coroutine in a fresh event loop, releasing the HTTP session after."""

        async def run():
            try:
                if timeout is not None:
                    return await asyncio.wait_for(coro, timeout)
                return await coro
            finally:
                await self.client.close()

        return asyncio.run(run())

    async def close(self):
        """Release the platform client."""
        await self.client.close()


def _is_true(value: Optional[str]) -> bool:
    return str(value).strip().lower() in ("true", "yes", "1")
