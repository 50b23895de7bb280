"""
============================================================================
UPTIME WATCH - HEALTH PROBER
============================================================================
Performs one bounded-time HTTP GET against a target URL and classifies
the outcome as ``up`` or ``down`` with a human-readable cause.

Classification
--------------
• any response with status < 500            → up   (latency recorded)
• response with status >= 500               → down "HTTP <code>: <reason>"
• timeout (connect, read or overall)        → down "Request timed out"
• connection refused                        → down "Connection refused - ..."
• DNS resolution failure                    → down "DNS resolution failed - ..."
• connection dropped before a response      → down "No response received ..."
• any other transport failure               → down "Network error: <detail>"

Network failures never raise. Malformed input (non-http(s) URL,
non-positive timeout) raises a validation exception before any I/O.
There is no retry inside a single probe.
============================================================================
"""

import asyncio
import errno
import socket
import time
from typing import Any, Dict, Optional

import httpx

from config.constants import CheckStatus, Limits, ProbeErrors
from config.settings import MonitoringSettings
from exceptions import InvalidURLError, ValidationException
from utils.helpers import StringHelper
from utils.logger import get_logger
from utils.validators import URLValidator


logger = get_logger("HealthProber")

_DNS_MARKERS = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo failed",
    "temporary failure in name resolution",
    "no address associated with hostname",
    "name resolution",
)
_REFUSED_MARKERS = (
    "connection refused",
    "actively refused",
    "errno 111",
    "errno 61",
)


# ============================================================================
# PROBE RESULT
# ============================================================================

class ProbeResult:
    """
    Value object carrying the outcome of a single probe.
    """
    __slots__ = ("status", "latency_ms", "error", "status_code")

    def __init__(
        self,
        status: CheckStatus,
        latency_ms: Optional[int] = None,
        error: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        self.status = status
        self.latency_ms = latency_ms
        self.error = error
        self.status_code = status_code

    @property
    def is_up(self) -> bool:
        return self.status == CheckStatus.UP

    @classmethod
    def up(cls, latency_ms: int, status_code: int) -> "ProbeResult":
        return cls(CheckStatus.UP, latency_ms=latency_ms, status_code=status_code)

    @classmethod
    def down(
        cls,
        error: str,
        latency_ms: Optional[int] = None,
        status_code: Optional[int] = None,
    ) -> "ProbeResult":
        return cls(CheckStatus.DOWN, latency_ms=latency_ms, error=error, status_code=status_code)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "latency_ms": self.latency_ms,
            "error": self.error,
            "status_code": self.status_code,
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ProbeResult):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return (
            f"ProbeResult(status={self.status.value}, latency_ms={self.latency_ms}, "
            f"error={self.error!r})"
        )


# ============================================================================
# HEALTH PROBER
# ============================================================================

class HealthProber:
    """
    Performs HTTP liveness probes using an httpx async client.

    Parameters
    ----------
    settings : MonitoringSettings
        Supplies the default timeout, user agent and TLS verification flag.
    transport : httpx.AsyncBaseTransport | None
        Optional transport override (``httpx.MockTransport`` in tests).
    """

    def __init__(
        self,
        settings: Optional[MonitoringSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or MonitoringSettings()
        self.default_timeout_ms = self.settings.request_timeout_ms
        self._transport = transport

    async def probe(self, url: Any, timeout_ms: Optional[int] = None) -> ProbeResult:
        """
        Execute one GET against *url*.

        Parameters
        ----------
        url : str
            Absolute http:// or https:// URL.
        timeout_ms : int | None
            Upper bound on the whole request; defaults to the configured
            request timeout (10 000 ms).

        Returns
        -------
        ProbeResult
            ``up`` with latency, or ``down`` with a cause string.

        Raises
        ------
        InvalidURLError
            *url* is not a string with an http(s) scheme and host.
        ValidationException
            *timeout_ms* is not a positive integer.
        """
        if not URLValidator.has_http_scheme(url):
            raise InvalidURLError(url=url, reason="not an absolute http(s) URL")

        if timeout_ms is None:
            timeout_ms = self.default_timeout_ms
        if isinstance(timeout_ms, bool) or not isinstance(timeout_ms, (int, float)) or timeout_ms <= 0:
            raise ValidationException("Timeout must be a positive number of milliseconds",
                                      field="timeout_ms", value=timeout_ms)

        timeout = timeout_ms / 1000
        start_time = time.perf_counter()

        try:
            response = await asyncio.wait_for(self._get(url, timeout), timeout=timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            logger.debug(f"[Probe] {url} → timed out after {timeout_ms}ms")
            return ProbeResult.down(ProbeErrors.TIMEOUT)
        except httpx.InvalidURL as e:
            raise InvalidURLError(url=url, reason=str(e), cause=e)
        except httpx.HTTPError as e:
            error = self.classify_error(e)
            logger.debug(f"[Probe] {url} → {error}")
            return ProbeResult.down(error)

        latency_ms = int(round((time.perf_counter() - start_time) * 1000))

        if response.status_code >= 500:
            error = ProbeErrors.http_error(response.status_code, response.reason_phrase)
            logger.debug(f"[Probe] {url} → {error} in {latency_ms}ms")
            return ProbeResult.down(error, latency_ms=latency_ms, status_code=response.status_code)

        logger.debug(f"[Probe] {url} → {response.status_code} in {latency_ms}ms")
        return ProbeResult.up(latency_ms, response.status_code)

    async def _get(self, url: str, timeout: float) -> httpx.Response:
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            follow_redirects=True,
            verify=self.settings.verify_ssl,
            headers={"User-Agent": self.settings.user_agent},
            transport=self._transport,
        ) as client:
            return await client.get(url)

    # ------------------------------------------------------------------
    # ERROR CLASSIFICATION
    # ------------------------------------------------------------------

    @staticmethod
    def _exception_chain(exc: BaseException):
        seen = set()
        current: Optional[BaseException] = exc
        while current is not None and id(current) not in seen:
            seen.add(id(current))
            yield current
            current = current.__cause__ or current.__context__

    @classmethod
    def classify_error(cls, exc: httpx.HTTPError) -> str:
        """Map an httpx transport failure to its cause string."""
        if isinstance(exc, httpx.TimeoutException):
            return ProbeErrors.TIMEOUT

        if isinstance(exc, httpx.ConnectError):
            for link in cls._exception_chain(exc):
                if isinstance(link, ConnectionRefusedError):
                    return ProbeErrors.CONNECTION_REFUSED
                if isinstance(link, socket.gaierror):
                    return ProbeErrors.DNS_FAILURE
                if isinstance(link, OSError) and link.errno == errno.ECONNREFUSED:
                    return ProbeErrors.CONNECTION_REFUSED

                message = str(link).lower()
                if any(marker in message for marker in _REFUSED_MARKERS):
                    return ProbeErrors.CONNECTION_REFUSED
                if any(marker in message for marker in _DNS_MARKERS):
                    return ProbeErrors.DNS_FAILURE

        if isinstance(exc, (httpx.RemoteProtocolError, httpx.ReadError)):
            return ProbeErrors.NO_RESPONSE

        detail = str(exc) or exc.__class__.__name__
        return StringHelper.truncate(ProbeErrors.network_error(detail), Limits.MAX_ERROR_LENGTH)
