"""Tests for the HealthProber and ProbeResult."""

from __future__ import annotations

import asyncio
import socket

import httpx
import pytest

from config.constants import CheckStatus, ProbeErrors
from config.settings import MonitoringSettings
from exceptions import InvalidURLError, ValidationException
from monitoring.prober import HealthProber, ProbeResult


def make_prober(handler) -> HealthProber:
    return HealthProber(MonitoringSettings(request_timeout_ms=1_000), transport=httpx.MockTransport(handler))


# ── ProbeResult ──────────────────────────────────────────────────────────────


class TestProbeResult:
    def test_up(self) -> None:
        result = ProbeResult.up(42, 200)
        assert result.is_up
        assert result.status == CheckStatus.UP
        assert result.error is None

    def test_down_keeps_cause(self) -> None:
        result = ProbeResult.down("Request timed out")
        assert not result.is_up
        assert result.latency_ms is None
        assert result.to_dict()["status"] == "down"


# ── Status classification ────────────────────────────────────────────────────


class TestProbeClassification:
    @pytest.mark.asyncio
    async def test_2xx_is_up_with_latency(self) -> None:
        prober = make_prober(lambda request: httpx.Response(200, text="ok"))

        result = await prober.probe("https://example.com/health")

        assert result.status == CheckStatus.UP
        assert result.latency_ms is not None and result.latency_ms >= 0
        assert result.error is None
        assert result.status_code == 200

    @pytest.mark.asyncio
    async def test_4xx_counts_as_up(self) -> None:
        prober = make_prober(lambda request: httpx.Response(404))

        result = await prober.probe("https://example.com/missing")

        assert result.is_up
        assert result.status_code == 404

    @pytest.mark.asyncio
    async def test_5xx_is_down_with_reason(self) -> None:
        prober = make_prober(lambda request: httpx.Response(503))

        result = await prober.probe("https://example.com/health")

        assert result.status == CheckStatus.DOWN
        assert result.error == "HTTP 503: Service Unavailable"
        assert result.latency_ms is not None

    @pytest.mark.asyncio
    async def test_follows_redirects(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/old":
                return httpx.Response(301, headers={"Location": "https://example.com/new"})
            return httpx.Response(200)

        result = await make_prober(handler).probe("https://example.com/old")

        assert result.is_up
        assert result.status_code == 200

    @pytest.mark.asyncio
    async def test_sends_user_agent(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["ua"] = request.headers.get("user-agent")
            return httpx.Response(200)

        await make_prober(handler).probe("http://example.com")

        assert seen["ua"].startswith("UptimeWatch/")


# ── Transport failures ───────────────────────────────────────────────────────


class TestProbeFailures:
    @pytest.mark.asyncio
    async def test_read_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        result = await make_prober(handler).probe("https://slow.example.com")

        assert result.status == CheckStatus.DOWN
        assert result.error == ProbeErrors.TIMEOUT
        assert result.latency_ms is None

    @pytest.mark.asyncio
    async def test_overall_deadline(self) -> None:
        async def handler(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(1)
            return httpx.Response(200)

        result = await make_prober(handler).probe("https://hang.example.com", timeout_ms=50)

        assert result.error == "Request timed out"

    @pytest.mark.asyncio
    async def test_connection_refused(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("[Errno 111] Connection refused", request=request)

        result = await make_prober(handler).probe("http://localhost:9")

        assert result.error == "Connection refused - server may be down"

    @pytest.mark.asyncio
    async def test_dns_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("[Errno -2] Name or service not known", request=request)

        result = await make_prober(handler).probe("https://no-such-host.invalid")

        assert result.error == "DNS resolution failed - domain not found"

    @pytest.mark.asyncio
    async def test_no_response(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.RemoteProtocolError("Server disconnected without sending a response.", request=request)

        result = await make_prober(handler).probe("https://example.com")

        assert result.error == ProbeErrors.NO_RESPONSE

    @pytest.mark.asyncio
    async def test_other_errors_become_network_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ProxyError("proxy exploded", request=request)

        result = await make_prober(handler).probe("https://example.com")

        assert result.status == CheckStatus.DOWN
        assert result.error == "Network error: proxy exploded"


class TestClassifyError:
    def test_gaierror_in_cause_chain(self) -> None:
        exc = httpx.ConnectError("connect failed")
        exc.__cause__ = socket.gaierror(-2, "lookup failed")
        assert HealthProber.classify_error(exc) == ProbeErrors.DNS_FAILURE

    def test_refused_in_cause_chain(self) -> None:
        exc = httpx.ConnectError("connect failed")
        exc.__cause__ = ConnectionRefusedError(111, "refused")
        assert HealthProber.classify_error(exc) == ProbeErrors.CONNECTION_REFUSED


# ── Input validation ─────────────────────────────────────────────────────────


class TestProbeValidation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("url", ["example.com", "ftp://example.com", "", None])
    async def test_rejects_non_http_url(self, url) -> None:
        prober = make_prober(lambda request: httpx.Response(200))
        with pytest.raises(InvalidURLError):
            await prober.probe(url)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("timeout_ms", [0, -5])
    async def test_rejects_non_positive_timeout(self, timeout_ms) -> None:
        prober = make_prober(lambda request: httpx.Response(200))
        with pytest.raises(ValidationException):
            await prober.probe("https://example.com", timeout_ms=timeout_ms)
