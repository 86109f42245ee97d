"""
HTTP capability registry.

Talks to an Enact registry service:

    GET {base_url}/api/capabilities/{id}   -> capability document (404 = unknown)
    GET {base_url}/api/yaml/search?q=...   -> list of search hits
"""

import logging
from typing import Any
from urllib.parse import quote

import httpx

from enact.errors import CapabilityParseError, RegistryError
from enact.registry.base import CapabilityRegistry
from enact.schema import Capability, parse_capability

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:8081"


class HttpCapabilityRegistry(CapabilityRegistry):
    """
    Capability registry backed by a remote service.

    Attributes:
        base_url: Registry service root
        timeout: HTTP timeout in seconds
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
        )

    async def _get(self, path: str, params: dict[str, str] | None = None) -> httpx.Response:
        try:
            return await self._client.get(path, params=params)
        except httpx.HTTPError as e:
            raise RegistryError(underlying_error=str(e)) from e

    async def lookup(self, capability_id: str) -> Capability | None:
        logger.info("Fetching capability with ID: %s", capability_id)
        response = await self._get(f"/api/capabilities/{quote(capability_id, safe='')}")
        if response.status_code == 404:
            return None
        if response.is_error:
            raise RegistryError(
                underlying_error=f"Server responded with status: {response.status_code}",
            )

        try:
            return parse_capability(response.json())
        except ValueError as e:
            raise RegistryError(underlying_error=f"invalid JSON response: {e}") from e
        except CapabilityParseError as e:
            raise RegistryError(underlying_error=e.message) from e

    async def search(self, query: str) -> list[dict[str, Any]]:
        response = await self._get("/api/yaml/search", params={"q": query})
        if response.is_error:
            raise RegistryError(
                underlying_error=f"Server responded with status: {response.status_code}",
            )
        try:
            results = response.json()
        except ValueError as e:
            raise RegistryError(underlying_error=f"invalid JSON response: {e}") from e
        return results if isinstance(results, list) else [results]

    async def close(self) -> None:
        await self._client.aclose()
