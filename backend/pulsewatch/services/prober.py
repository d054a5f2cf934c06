"""Prober service - performs one bounded HTTP check and classifies the outcome."""
import asyncio
import socket
import ssl
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterator, Optional

import httpx

from ..schemas import ErrorCategory, Status

DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_MAX_REDIRECTS = 5
DEFAULT_USER_AGENT = "PulseWatch/1.0 Uptime Monitor"

# Checked in order against the lowercased messages of the whole error chain
_MESSAGE_PATTERNS = [
    (ErrorCategory.TLS_CERTIFICATE_EXPIRED, ("certificate has expired", "cert_has_expired")),
    (ErrorCategory.DNS_FAILURE, (
        "name or service not known",
        "nodename nor servname",
        "getaddrinfo failed",
        "temporary failure in name resolution",
        "no address associated with hostname",
        "enotfound",
    )),
    (ErrorCategory.CONNECTION_REFUSED, ("connection refused", "econnrefused", "actively refused")),
    (ErrorCategory.CONNECTION_RESET, ("connection reset", "econnreset", "reset by peer")),
    (ErrorCategory.TIMEOUT, ("timed out", "timeout", "etimedout")),
]


@dataclass
class CheckOutcome:
    """Result of a single probe."""
    status: Status
    response_time_ms: int
    checked_at: datetime
    http_status_code: Optional[int] = None
    error_category: Optional[str] = None


def _iter_error_chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield exc, its causes/contexts and the members of any exception groups."""
    seen = set()
    pending = [exc]
    while pending:
        err = pending.pop(0)
        if err is None or id(err) in seen:
            continue
        seen.add(id(err))
        yield err
        pending.extend(getattr(err, "exceptions", None) or ())
        pending.append(err.__cause__)
        pending.append(err.__context__)


def classify_error(exc: BaseException) -> ErrorCategory:
    """Map a transport failure onto the closed ErrorCategory set.

    Exception types are checked across the whole chain first, since HTTP
    clients wrap the socket-level error; message text is the fallback.
    """
    chain = list(_iter_error_chain(exc))

    for err in chain:
        if isinstance(err, ssl.SSLCertVerificationError) and "expired" in str(err).lower():
            return ErrorCategory.TLS_CERTIFICATE_EXPIRED
        if isinstance(err, (httpx.TimeoutException, asyncio.TimeoutError, TimeoutError)):
            return ErrorCategory.TIMEOUT
        if isinstance(err, ConnectionRefusedError):
            return ErrorCategory.CONNECTION_REFUSED
        if isinstance(err, ConnectionResetError):
            return ErrorCategory.CONNECTION_RESET
        if isinstance(err, socket.gaierror):
            return ErrorCategory.DNS_FAILURE

    message = " | ".join(str(err).lower() for err in chain)
    for category, needles in _MESSAGE_PATTERNS:
        if any(needle in message for needle in needles):
            return category

    return ErrorCategory.UNKNOWN


class Prober:
    """Performs single HTTP GET checks against targets.

    Any HTTP status counts as a completed exchange; only 2xx/3xx is UP.
    Exactly one attempt per call, no retries.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        max_redirects: int = DEFAULT_MAX_REDIRECTS,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self.max_redirects = max_redirects
        self.user_agent = user_agent
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            max_redirects=self.max_redirects,
            headers={"User-Agent": self.user_agent},
            transport=self._transport,
        )

    async def probe(self, url: str) -> CheckOutcome:
        """Probe a URL once and classify the outcome."""
        checked_at = datetime.now(timezone.utc)
        start = time.monotonic()

        try:
            async with self._client() as client:
                # httpx timeouts are per phase; wait_for bounds the whole exchange
                response = await asyncio.wait_for(client.get(url), timeout=self.timeout)
        except Exception as e:
            return CheckOutcome(
                status=Status.DOWN,
                response_time_ms=self._elapsed_ms(start),
                checked_at=checked_at,
                error_category=classify_error(e).value,
            )

        response_time = self._elapsed_ms(start)
        status_code = response.status_code

        if 200 <= status_code < 400:
            return CheckOutcome(
                status=Status.UP,
                response_time_ms=response_time,
                checked_at=checked_at,
                http_status_code=status_code,
            )

        return CheckOutcome(
            status=Status.DOWN,
            response_time_ms=response_time,
            checked_at=checked_at,
            http_status_code=status_code,
            error_category=f"HTTP {status_code}",
        )

    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return int((time.monotonic() - start) * 1000)
