"""
High level Cloud Foundry operations.

Composes the raw v2 endpoints of CloudFoundryClient into the application and
service operations the deployer needs: get, push, start, delete and bind.
"""

import asyncio
import io
import json
import logging
import zipfile
from pathlib import Path
from typing import Any, Optional

import aiohttp

from cf_deployer.exceptions import (
    ApplicationNotFoundError,
    CloudFoundryClientError,
    ServiceInstanceNotFoundError,
)

from .client import CloudFoundryClient
from .models import ApplicationDetail, InstanceDetail, PushApplicationRequest

logger = logging.getLogger(__name__)

# Instance listing errors a started app reports while it has no instances yet
STAGING_ERROR_CODES = frozenset(
    {
        "CF-NotStaged",
        "CF-InstancesError",
        "CF-StagingTimeExpired",
        "CF-BuildpackCompileFailed",
    }
)


def package_application(path: Path) -> bytes:
    """
    Read an application artifact as a zip archive.

    Jars and zips are uploaded unchanged; directories are zipped in memory.
    """
    path = Path(path)
    if path.is_dir():
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
            for file in sorted(path.rglob("*")):
                if file.is_file():
                    archive.write(file, file.relative_to(path).as_posix())
        return buffer.getvalue()
    return path.read_bytes()


class Applications:
    """Application level operations in the target space."""

    def __init__(self, client: CloudFoundryClient):
        self._client = client

    async def find(self, name: str) -> dict[str, Any]:
        """Find the application resource by name."""
        space_guid = await self._client.get_space_guid()
        resource = await self._client.find_first(
            f"/v2/spaces/{space_guid}/apps", {"q": f"name:{name}"}
        )
        if resource is None:
            raise ApplicationNotFoundError(name)
        return resource

    async def get(self, name: str) -> ApplicationDetail:
        """
        Get an application with its instance details.

        Args:
            name: Application name

        Returns:
            ApplicationDetail for the application

        Raises:
            ApplicationNotFoundError: if the application does not exist
        """
        resource = await self.find(name)
        guid = resource["metadata"]["guid"]
        summary = await self._client.get_json(f"/v2/apps/{guid}/summary")

        stack = None
        stack_guid = resource["entity"].get("stack_guid")
        if stack_guid:
            stack_data = await self._client.get_json(f"/v2/stacks/{stack_guid}")
            stack = stack_data.get("entity", {}).get("name")

        instance_details = []
        if summary.get("state") == "STARTED":
            instances = await self._instances(guid, name)
            instance_details = [
                InstanceDetail.from_instance(index, data)
                for index, data in sorted(
                    instances.items(), key=lambda item: int(item[0])
                )
            ]

        urls = []
        for route in summary.get("routes", []):
            domain = route.get("domain", {}).get("name")
            host = route.get("host")
            urls.append(f"{host}.{domain}" if host else domain)

        return ApplicationDetail(
            id=guid,
            name=summary.get("name", name),
            stack=stack,
            disk_quota=summary.get("disk_quota", 0),
            instances=summary.get("instances", 0),
            memory_limit=summary.get("memory", 0),
            requested_state=summary.get("state", "UNKNOWN"),
            running_instances=summary.get("running_instances", 0),
            urls=urls,
            instance_details=instance_details,
        )

    async def _instances(self, guid: str, name: str) -> dict[str, Any]:
        try:
            return await self._client.get_json(f"/v2/apps/{guid}/instances")
        except CloudFoundryClientError as e:
            if e.error_code not in STAGING_ERROR_CODES:
                raise
            logger.debug(f"No instances for {name} yet: {e.error_code}")
            return {}

    async def push(self, request: PushApplicationRequest) -> None:
        """
        Create or update an application, map its route and upload its bits.

        The application is left stopped when ``no_start`` is set.
        """
        space_guid = await self._client.get_space_guid()
        body: dict[str, Any] = {
            "name": request.name,
            "space_guid": space_guid,
            "instances": request.instances,
            "memory": request.memory,
            "disk_quota": request.disk_quota,
            "health_check_type": request.health_check_type,
            "state": "STOPPED" if request.no_start else "STARTED",
        }
        if request.buildpack:
            body["buildpack"] = request.buildpack
        if request.stack:
            body["stack_guid"] = await self._find_guid(
                "/v2/stacks", request.stack, "Stack"
            )

        try:
            existing = await self.find(request.name)
        except ApplicationNotFoundError:
            existing = None

        if existing:
            guid = existing["metadata"]["guid"]
            await self._client.put_json(f"/v2/apps/{guid}", body)
            logger.info(f"Updated application {request.name}")
        else:
            data = await self._client.post_json("/v2/apps", body)
            guid = data["metadata"]["guid"]
            logger.info(f"Created application {request.name}")

        if not request.no_route:
            await self._map_route(guid, space_guid, request)

        if request.path:
            bits = await asyncio.to_thread(package_application, request.path)
            form = aiohttp.FormData()
            form.add_field("resources", json.dumps([]))
            form.add_field(
                "application",
                bits,
                filename="application.zip",
                content_type="application/zip",
            )
            await self._client.put_multipart(f"/v2/apps/{guid}/bits", form)
            logger.info(f"Uploaded {len(bits)} bytes for {request.name}")

    async def _find_guid(self, path: str, name: str, kind: str) -> str:
        resource = await self._client.find_first(path, {"q": f"name:{name}"})
        if resource is None:
            raise CloudFoundryClientError(f"{kind} {name} does not exist", status=404)
        return resource["metadata"]["guid"]

    async def _domain_guid(self, domain: Optional[str]) -> str:
        """Resolve a domain by name, defaulting to the first shared domain."""
        if domain is None:
            resource = await self._client.find_first("/v2/shared_domains")
            if resource is None:
                raise CloudFoundryClientError("No shared domain available")
            return resource["metadata"]["guid"]

        for path in ("/v2/shared_domains", "/v2/private_domains"):
            resource = await self._client.find_first(path, {"q": f"name:{domain}"})
            if resource is not None:
                return resource["metadata"]["guid"]
        raise CloudFoundryClientError(f"Domain {domain} does not exist", status=404)

    async def _map_route(
        self, app_guid: str, space_guid: str, request: PushApplicationRequest
    ):
        host = request.host or request.name.lower()
        domain_guid = await self._domain_guid(request.domain)

        route = await self._client.find_first(
            "/v2/routes", [("q", f"host:{host}"), ("q", f"domain_guid:{domain_guid}")]
        )
        if route is None:
            route = await self._client.post_json(
                "/v2/routes",
                {"domain_guid": domain_guid, "space_guid": space_guid, "host": host},
            )
        route_guid = route["metadata"]["guid"]
        await self._client.put_json(f"/v2/routes/{route_guid}/apps/{app_guid}")
        logger.debug(f"Mapped route {host} to {request.name}")

    async def start(self, name: str) -> None:
        """Start an application."""
        resource = await self.find(name)
        await self._client.put_json(
            f"/v2/apps/{resource['metadata']['guid']}", {"state": "STARTED"}
        )
        logger.info(f"Started application {name}")

    async def delete(self, name: str, delete_routes: bool = False) -> None:
        """
        Delete an application.

        Args:
            name: Application name
            delete_routes: Whether to delete the routes mapped to the application

        Raises:
            ApplicationNotFoundError: if the application does not exist
        """
        resource = await self.find(name)
        guid = resource["metadata"]["guid"]

        if delete_routes:
            async for route in self._client.paginate(f"/v2/apps/{guid}/routes"):
                await self._client.delete(f"/v2/routes/{route['metadata']['guid']}")

        await self._client.delete(f"/v2/apps/{guid}")
        logger.info(f"Deleted application {name}")


class Services:
    """Service instance operations in the target space."""

    def __init__(self, client: CloudFoundryClient, applications: Applications):
        self._client = client
        self._applications = applications

    async def bind(self, application_name: str, service_instance_name: str) -> None:
        """
        Bind a service instance to an application.

        Raises:
            ApplicationNotFoundError: if the application does not exist
            ServiceInstanceNotFoundError: if the service instance does not exist
        """
        app = await self._applications.find(application_name)
        space_guid = await self._client.get_space_guid()
        service = await self._client.find_first(
            f"/v2/spaces/{space_guid}/service_instances",
            {
                "q": f"name:{service_instance_name}",
                "return_user_provided_service_instances": "true",
            },
        )
        if service is None:
            raise ServiceInstanceNotFoundError(service_instance_name)

        await self._client.post_json(
            "/v2/service_bindings",
            {
                "app_guid": app["metadata"]["guid"],
                "service_instance_guid": service["metadata"]["guid"],
            },
        )
        logger.info(f"Bound service {service_instance_name} to {application_name}")


class CloudFoundryOperations:
    """Entry point to the application and service operations."""

    def __init__(self, client: CloudFoundryClient):
        self.client = client
        self.applications = Applications(client)
        self.services = Services(client, self.applications)
