"""Unit tests for the attribution client."""

import asyncio
import json
import socket

import httpx
import pytest

from xray_pipeline.core.config import AttributionConfig
from xray_pipeline.core.exceptions import (
    AttributionDecodeError,
    AttributionNetworkError,
    AttributionStatusError,
    ErrorKind,
    GeoLookupError,
)
from xray_pipeline.services.attribution import AttributionClient

MAPPING = {
    "hostName": "graph.facebook.com",
    "hostID": 12,
    "companyName": "Facebook",
    "companyID": 3,
    "locale": "US",
    "categories": ["advertising", "social"],
}

GEO = {
    "ip": "1.1.1.1",
    "country_code": "AU",
    "country_name": "Australia",
    "region_code": "",
    "region_name": "",
    "city": "",
    "zip_code": "",
    "time_zone": "Australia/Sydney",
    "latitude": -33.494,
    "longitude": 143.2104,
    "metro_code": 0,
}


@pytest.mark.asyncio
class TestMapHosts:
    """Tests for map_hosts."""

    async def test_request_and_decode(self, config, mock_http):
        """One POST to /hosts with a JSON body, decoded into a mapping."""
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=MAPPING)

        client = AttributionClient(config, http_client=mock_http(handler))
        mapping = await client.map_hosts(["graph.facebook.com"])

        assert len(seen) == 1
        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == "http://tracker.test/hosts"
        assert request.headers["content-type"] == "application/json"
        assert json.loads(request.content) == {"hostNames": ["graph.facebook.com"]}

        assert mapping.host_name == "graph.facebook.com"
        assert mapping.company_name == "Facebook"
        assert mapping.company_id == 3
        assert mapping.categories == ["advertising", "social"]

    async def test_batch_yields_single_mapping(self, config, mock_http):
        """A multi-host request still decodes exactly one mapping."""
        client = AttributionClient(config, http_client=mock_http(lambda r: httpx.Response(200, json=MAPPING)))
        mapping = await client.map_hosts(["a.com", "b.com"])
        assert mapping.company_id == 3

    async def test_status_error(self, config, mock_http):
        """Non-2xx responses raise a status error."""
        client = AttributionClient(config, http_client=mock_http(lambda r: httpx.Response(500, text="oops")))

        with pytest.raises(AttributionStatusError) as exc_info:
            await client.map_hosts(["x.com"])
        assert exc_info.value.status_code == 500
        assert exc_info.value.kind is ErrorKind.STATUS

    async def test_decode_error(self, config, mock_http):
        """Bodies that are not a mapping raise a decode error."""
        client = AttributionClient(config, http_client=mock_http(lambda r: httpx.Response(200, json=[MAPPING])))

        with pytest.raises(AttributionDecodeError) as exc_info:
            await client.map_hosts(["x.com"])
        assert exc_info.value.kind is ErrorKind.DECODE

    async def test_invalid_json(self, config, mock_http):
        """Unparseable bodies raise a decode error."""
        client = AttributionClient(config, http_client=mock_http(lambda r: httpx.Response(200, text="{")))

        with pytest.raises(AttributionDecodeError):
            await client.map_hosts(["x.com"])

    async def test_network_error(self, config, mock_http):
        """Connection failures raise a network error."""

        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = AttributionClient(config, http_client=mock_http(handler))

        with pytest.raises(AttributionNetworkError) as exc_info:
            await client.map_hosts(["x.com"])
        assert exc_info.value.kind is ErrorKind.NETWORK
        assert isinstance(exc_info.value.cause, httpx.ConnectError)

    async def test_timeout_is_network_error(self, config, mock_http):
        """Timeouts are network errors and are not retried by default."""
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ReadTimeout("timed out", request=request)

        client = AttributionClient(config, http_client=mock_http(handler))

        with pytest.raises(AttributionNetworkError):
            await client.map_hosts(["x.com"])
        assert len(calls) == 1

    async def test_retry_policy(self, config, mock_http):
        """With retries configured, network errors are retried."""
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) < 3:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json=MAPPING)

        cfg = config.model_copy(
            update={"attribution": AttributionConfig(endpoint="http://tracker.test", max_attempts=3, backoff_seconds=0)}
        )
        client = AttributionClient(cfg, http_client=mock_http(handler))

        mapping = await client.map_hosts(["graph.facebook.com"])

        assert mapping.company_id == 3
        assert len(calls) == 3

    async def test_status_errors_not_retried(self, config, mock_http):
        """Only network errors are retried."""
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(503)

        cfg = config.model_copy(
            update={"attribution": AttributionConfig(endpoint="http://tracker.test", max_attempts=3, backoff_seconds=0)}
        )
        client = AttributionClient(cfg, http_client=mock_http(handler))

        with pytest.raises(AttributionStatusError):
            await client.map_hosts(["x.com"])
        assert len(calls) == 1

    async def test_context_manager_closes_owned_client(self, config):
        """A client created internally is closed on exit."""
        async with AttributionClient(config) as client:
            inner = client._client
        assert inner.is_closed

    async def test_injected_client_left_open(self, config, mock_http):
        """An injected client belongs to the caller."""
        http = mock_http(lambda r: httpx.Response(200, json=MAPPING))
        async with AttributionClient(config, http_client=http):
            pass
        assert not http.is_closed
        await http.aclose()


@pytest.mark.asyncio
class TestGeoLookup:
    """Tests for geo_lookup."""

    async def test_partial_results(self, config, mock_http, monkeypatch):
        """A failed address is omitted; the rest is still returned."""

        def handler(request):
            if request.url.path == "/json/1.1.1.1":
                return httpx.Response(200, json=GEO)
            return httpx.Response(500)

        client = AttributionClient(config, http_client=mock_http(handler))

        async def resolve(host):
            return ["1.1.1.1", "2.2.2.2"]

        monkeypatch.setattr(client, "_resolve", resolve)

        locations = await client.geo_lookup(None, "y.com")

        assert len(locations) == 1
        assert locations[0].ip == "1.1.1.1"
        assert locations[0].country_code == "AU"

    async def test_explicit_geoip_host_and_escaping(self, config, mock_http, monkeypatch):
        """Addresses are path-escaped under the given GeoIP host."""
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={**GEO, "ip": "::1"})

        client = AttributionClient(config, http_client=mock_http(handler))

        async def resolve(host):
            return ["::1"]

        monkeypatch.setattr(client, "_resolve", resolve)

        locations = await client.geo_lookup("http://other.test/geo/", "localhost")

        assert locations[0].ip == "::1"
        assert seen[0].url.host == "other.test"
        assert seen[0].url.raw_path == b"/geo/%3A%3A1"

    async def test_all_addresses_fail(self, config, mock_http, monkeypatch):
        """Failures for every address give an empty list, not an error."""

        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        client = AttributionClient(config, http_client=mock_http(handler))

        async def resolve(host):
            return ["1.1.1.1"]

        monkeypatch.setattr(client, "_resolve", resolve)

        assert await client.geo_lookup(None, "y.com") == []

    async def test_resolution_failure(self, config, mock_http, monkeypatch):
        """A hostname that does not resolve is an error."""

        async def getaddrinfo(*args, **kwargs):
            raise socket.gaierror(socket.EAI_NONAME, "Name or service not known")

        loop = asyncio.get_running_loop()
        monkeypatch.setattr(loop, "getaddrinfo", getaddrinfo)
        client = AttributionClient(config, http_client=mock_http(lambda r: httpx.Response(200, json=GEO)))

        with pytest.raises(GeoLookupError) as exc_info:
            await client.geo_lookup(None, "nowhere.invalid")
        assert exc_info.value.host == "nowhere.invalid"

    async def test_resolve_deduplicates(self, config, mock_http, monkeypatch):
        """Each resolved address is queried once."""

        async def getaddrinfo(*args, **kwargs):
            return [
                (socket.AF_INET, socket.SOCK_STREAM, 6, "", ("10.0.0.1", 0)),
                (socket.AF_INET, socket.SOCK_STREAM, 6, "", ("10.0.0.1", 0)),
                (socket.AF_INET, socket.SOCK_STREAM, 6, "", ("10.0.0.2", 0)),
            ]

        loop = asyncio.get_running_loop()
        monkeypatch.setattr(loop, "getaddrinfo", getaddrinfo)
        client = AttributionClient(config, http_client=mock_http(lambda r: httpx.Response(200, json=GEO)))

        assert await client._resolve("y.com") == ["10.0.0.1", "10.0.0.2"]
