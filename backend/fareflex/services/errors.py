"""Error taxonomy for flight search and the retry policy built on it."""

import httpx

# Upstream statuses worth another attempt
TRANSIENT_STATUSES = frozenset({503, 504})


class FlightSearchError(Exception):
    """Base class for search failures."""


class AuthError(FlightSearchError):
    """The upstream credential could not be acquired or was rejected."""


class AttemptTimeout(FlightSearchError, TimeoutError):
    """A single attempt exceeded its time budget."""

    def __init__(self, timeout: float):
        super().__init__(f"Attempt exceeded {timeout:g}s")
        self.timeout = timeout


class UpstreamError(FlightSearchError):
    """Non-2xx response from the flight-data API."""

    def __init__(self, status: int, body: str = ""):
        super().__init__(f"Upstream returned {status}: {body[:200]}")
        self.status = status
        self.body = body

    @property
    def transient(self) -> bool:
        return self.status in TRANSIENT_STATUSES


class MalformedResponseError(UpstreamError):
    """A 2xx response whose body could not be used."""


class QueryValidationError(FlightSearchError, ValueError):
    """The caller's search parameters are unusable."""


def is_transient(exc: BaseException) -> bool:
    """True when a failed attempt is worth retrying."""
    if isinstance(exc, AttemptTimeout):
        return True
    if isinstance(exc, MalformedResponseError):
        return False
    if isinstance(exc, UpstreamError):
        return exc.transient
    # Connection resets, DNS failures, read timeouts
    return isinstance(exc, httpx.TransportError)
