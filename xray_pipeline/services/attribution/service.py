"""
Attribution Service client.

Maps hostnames to the companies operating them through the external
attribution API, and geolocates hostnames through a GeoIP endpoint.
"""

from __future__ import annotations

import asyncio
import socket
from collections.abc import Sequence
from urllib.parse import quote

import httpx
import structlog
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ...core.config import Config
from ...core.exceptions import (
    AttributionDecodeError,
    AttributionError,
    AttributionNetworkError,
    AttributionStatusError,
    GeoLookupError,
)
from ...core.logging import get_logger
from ...models.mapping import CompanyMapping, GeoLocation, MappingRequest


class AttributionClient:
    """Client for the company attribution and geolocation services.

    One request is issued per call and awaited to completion; response
    bodies are read inside a streaming context so the connection is released
    on every exit path.
    """

    def __init__(
        self,
        config: Config,
        http_client: httpx.AsyncClient | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Pipeline configuration
            http_client: HTTP client to use, created from config if not provided
            logger: Logger handle, defaults to the module logger
        """
        self.settings = config.attribution
        self.geoip_host = config.geoip_host
        self.logger = logger or get_logger(__name__)
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=self.settings.timeout_seconds)

    async def __aenter__(self) -> AttributionClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    @property
    def hosts_url(self) -> str:
        return f"{self.settings.endpoint.rstrip('/')}/hosts"

    async def _fetch(
        self,
        method: str,
        url: str,
        service_name: str,
        json: dict | None = None,
    ) -> bytes:
        """Issue one request and return the body of a 2xx response."""
        headers = {"Content-Type": "application/json"} if json is not None else None
        try:
            async with self._client.stream(method, url, json=json, headers=headers) as response:
                body = await response.aread()
                if not response.is_success:
                    raise AttributionStatusError(
                        message=f"Got status {response.status_code} from {url}",
                        service_name=service_name,
                        operation=method.lower(),
                        url=url,
                        status_code=response.status_code,
                    )
        except httpx.HTTPError as e:
            raise AttributionNetworkError(
                message=f"Request to {url} failed: {type(e).__name__}",
                service_name=service_name,
                operation=method.lower(),
                url=url,
                cause=e,
            )
        return body

    def _decode(self, body: bytes, model_type: type[BaseModel], url: str, service_name: str):
        try:
            return model_type.model_validate_json(body)
        except PydanticValidationError as e:
            raise AttributionDecodeError(
                message=f"Couldn't decode response from {url}",
                service_name=service_name,
                operation="decode",
                url=url,
                cause=e,
            )

    async def _post_hosts(self, request: MappingRequest) -> CompanyMapping:
        url = self.hosts_url
        body = await self._fetch("POST", url, "attribution", json=request.model_dump(by_alias=True))
        return self._decode(body, CompanyMapping, url, "attribution")

    async def map_hosts(self, host_names: Sequence[str]) -> CompanyMapping:
        """Attribute hostnames to a company.

        The request may carry several hostnames but the service answers with
        a single mapping, so callers send one hostname per call.

        Raises:
            AttributionNetworkError: Connection failure or timeout
            AttributionStatusError: Non-2xx response
            AttributionDecodeError: Response body is not a company mapping
        """
        request = MappingRequest(host_names=list(host_names))
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.settings.max_attempts),
            wait=wait_exponential(multiplier=self.settings.backoff_seconds, max=30),
            retry=retry_if_exception_type(AttributionNetworkError),
            reraise=True,
        )
        mapping = await retrying(self._post_hosts, request)
        self.logger.debug(
            "Mapped host",
            host=mapping.host_name,
            company=mapping.company_name,
            company_id=mapping.company_id,
        )
        return mapping

    async def _resolve(self, host: str) -> list[str]:
        """Resolve a hostname to its unique addresses."""
        loop = asyncio.get_running_loop()
        try:
            infos = await loop.getaddrinfo(host, None, proto=socket.IPPROTO_TCP)
        except (socket.gaierror, UnicodeError) as e:
            raise GeoLookupError(
                message=f"Couldn't resolve {host}",
                operation="resolve",
                host=host,
                cause=e,
            )
        return list(dict.fromkeys(info[4][0] for info in infos))

    async def geo_lookup(self, geoip_host: str | None, host: str) -> list[GeoLocation]:
        """Geolocate every address a hostname resolves to.

        Addresses whose lookup fails are logged and left out; a partial
        result is still a success.

        Args:
            geoip_host: GeoIP endpoint base URL, the configured one if None
            host: Hostname to resolve

        Raises:
            GeoLookupError: The hostname does not resolve
        """
        base = (geoip_host or self.geoip_host).rstrip("/")
        addresses = await self._resolve(host)

        ret: list[GeoLocation] = []
        for address in addresses:
            url = f"{base}/{quote(address, safe='')}"
            try:
                body = await self._fetch("GET", url, "geoip")
                ret.append(self._decode(body, GeoLocation, url, "geoip"))
            except AttributionError as e:
                self.logger.warning(
                    "Couldn't lookup geoip info",
                    host=host,
                    address=address,
                    error_kind=e.kind.value,
                    error=str(e),
                )
        return ret
