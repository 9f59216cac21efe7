"""
Cloud Foundry v2 REST API client.

Thin asyncio wrapper around the Cloud Foundry Cloud Controller API using
aiohttp. Handles UAA authentication, org/space resolution, pagination and
error translation. Higher level push/start/delete/bind operations live in
``cf_deployer.cloudfoundry.operations``.
"""

import logging
import time
from typing import Any, AsyncIterator, Optional

import aiohttp

from cf_deployer.exceptions import CloudFoundryClientError

from .models import UpdateApplicationResponse
from .properties import CloudFoundryConnectionProperties

logger = logging.getLogger(__name__)

# Refresh the token this many seconds before it expires
TOKEN_EXPIRY_MARGIN = 30


class ApplicationsV2:
    """Low level application endpoints."""

    def __init__(self, client: "CloudFoundryClient"):
        self._client = client

    async def update(
        self, application_id: str, environment_jsons: dict[str, str]
    ) -> UpdateApplicationResponse:
        """
        Replace the user provided environment of an application.

        Args:
            application_id: Platform guid of the application
            environment_jsons: Environment variables to set

        Returns:
            UpdateApplicationResponse with the resulting environment
        """
        data = await self._client.put_json(
            f"/v2/apps/{application_id}", {"environment_json": environment_jsons}
        )
        entity = data.get("entity", {})
        return UpdateApplicationResponse(
            id=data.get("metadata", {}).get("guid"),
            name=entity.get("name"),
            environment_json=entity.get("environment_json") or {},
        )


class CloudFoundryClient:
    """
    Async client for the Cloud Foundry Cloud Controller v2 API.

    Sessions are created lazily and should be released with ``close()`` or by
    using the client as an async context manager.
    """

    def __init__(
        self,
        connection: CloudFoundryConnectionProperties,
        max_connections: int = 100,
    ):
        """
        Initialize the client.

        Args:
            connection: API url, target org/space and credentials
            max_connections: Maximum number of concurrent connections
        """
        self.connection = connection
        self.base_url = connection.url
        self.max_connections = max_connections

        self._session: Optional[aiohttp.ClientSession] = None
        self._closed = False
        self._token: Optional[str] = None
        self._token_expires_at = 0.0
        self._space_guid: Optional[str] = None
        self.applications_v2 = ApplicationsV2(self)

    async def __aenter__(self):
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Create the HTTP session if needed."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=self.max_connections,
                ssl=not self.connection.skip_ssl_validation,
            )
            self._session = aiohttp.ClientSession(connector=connector)
            self._closed = False
        return self._session

    async def close(self):
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._closed = True

    def _get_headers(self) -> dict[str, str]:
        """Get request headers."""
        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def _authenticate(self):
        """Obtain an access token from UAA with the password grant."""
        if self._token and time.monotonic() < self._token_expires_at:
            return

        if not self.connection.username or not self.connection.password:
            raise CloudFoundryClientError("Cloud Foundry credentials are not configured")

        session = await self._ensure_session()
        try:
            async with session.get(f"{self.base_url}/v2/info") as response:
                info = await self._read_response(response)

            token_endpoint = info.get("token_endpoint") or info.get(
                "authorization_endpoint"
            )
            async with session.post(
                f"{token_endpoint}/oauth/token",
                data={
                    "grant_type": "password",
                    "username": self.connection.username,
                    "password": self.connection.password,
                },
                auth=aiohttp.BasicAuth("cf", ""),
                headers={"Accept": "application/json"},
            ) as response:
                token = await self._read_response(response)
        except aiohttp.ClientError as e:
            raise CloudFoundryClientError(f"Authentication failed: {e}") from e

        self._token = token["access_token"]
        self._token_expires_at = (
            time.monotonic() + int(token.get("expires_in", 0)) - TOKEN_EXPIRY_MARGIN
        )
        logger.debug(f"Authenticated against {self.base_url}")

    @staticmethod
    async def _read_response(response: aiohttp.ClientResponse) -> dict[str, Any]:
        """Decode a response, raising CloudFoundryClientError on failure."""
        if response.status == 204:
            return {}
        try:
            data = await response.json(content_type=None)
        except ValueError:
            data = None
        data = data or {}

        if response.status >= 400:
            description = data.get("description") or data.get("error_description")
            raise CloudFoundryClientError(
                f"Request failed with status {response.status}: "
                f"{description or response.reason}",
                status=response.status,
                error_code=data.get("error_code") or data.get("error"),
                description=description,
            )
        return data

    async def _request(self, method: str, path: str, **kwargs) -> dict[str, Any]:
        """Make an authenticated request against the Cloud Controller."""
        await self._authenticate()
        session = await self._ensure_session()
        url = path if path.startswith("http") else f"{self.base_url}{path}"
        logger.debug(f"{method} {url}")

        try:
            async with session.request(
                method, url, headers=self._get_headers(), **kwargs
            ) as response:
                return await self._read_response(response)
        except aiohttp.ClientError as e:
            raise CloudFoundryClientError(f"Request failed: {e}") from e

    async def get_json(self, path: str, params: Any = None) -> dict[str, Any]:
        return await self._request("GET", path, params=params)

    async def post_json(self, path: str, data: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", path, json=data)

    async def put_json(
        self, path: str, data: Optional[dict[str, Any]] = None
    ) -> dict[str, Any]:
        return await self._request("PUT", path, json=data)

    async def put_multipart(self, path: str, form: aiohttp.FormData) -> dict[str, Any]:
        return await self._request("PUT", path, data=form)

    async def delete(self, path: str, params: Any = None) -> dict[str, Any]:
        return await self._request("DELETE", path, params=params)

    async def paginate(
        self, path: str, params: Any = None
    ) -> AsyncIterator[dict[str, Any]]:
        """Iterate over every resource of a paginated listing."""
        data = await self.get_json(path, params)
        while True:
            for resource in data.get("resources", []):
                yield resource
            next_url = data.get("next_url")
            if not next_url:
                break
            data = await self.get_json(next_url)

    async def find_first(
        self, path: str, params: Any = None
    ) -> Optional[dict[str, Any]]:
        """Return the first resource of a listing, or None."""
        async for resource in self.paginate(path, params):
            return resource
        return None

    async def get_space_guid(self) -> str:
        """Resolve (and cache) the guid of the target space."""
        if self._space_guid:
            return self._space_guid

        org_name, space_name = self.connection.org, self.connection.space
        if not org_name or not space_name:
            raise CloudFoundryClientError("Target org and space are not configured")

        org = await self.find_first("/v2/organizations", {"q": f"name:{org_name}"})
        if org is None:
            raise CloudFoundryClientError(f"Organization {org_name} does not exist")

        space = await self.find_first(
            f"/v2/organizations/{org['metadata']['guid']}/spaces",
            {"q": f"name:{space_name}"},
        )
        if space is None:
            raise CloudFoundryClientError(
                f"Space {space_name} does not exist in organization {org_name}"
            )

        self._space_guid = space["metadata"]["guid"]
        logger.info(f"Targeting org {org_name} / space {space_name}")
        return self._space_guid
