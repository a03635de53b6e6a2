"""Exceptions for the CEP race coordinator."""

from enum import Enum


class ErrorKind(str, Enum):
    """Category of a single source failure."""

    REQUEST_BUILD = "request_build"
    TRANSPORT = "transport"
    HTTP_STATUS = "http_status"
    BODY_READ = "body_read"
    DECODE = "decode"
    UNKNOWN_SOURCE = "unknown_source"


class RaceError(Exception):
    """Base exception for race coordinator errors."""


class ParseError(ValueError):
    """Raised when a payload cannot be decoded into a source's expected shape."""


class ScopeCancelledError(RaceError):
    """Raised when work is skipped because the race scope was already cancelled."""


class FetchError(RaceError):
    """A failed attempt to fetch one source, annotated with timing.

    Args:
        source: Name of the source that failed.
        message: Human-readable description of the failure.
        elapsed: Seconds from attempt start to failure.
    """

    kind: ErrorKind = ErrorKind.TRANSPORT

    def __init__(self, source: str, message: str, elapsed: float = 0.0):
        super().__init__(source, message, elapsed)
        self.source = source
        self.message = message
        self.elapsed = elapsed
        # Set by the retry loop once the source gives up.
        self.attempts = 1

    def __str__(self) -> str:
        return (
            f"{self.source} failed ({self.kind.value}): {self.message} "
            f"(took {self.elapsed * 1000:.0f}ms)"
        )


class RequestBuildError(FetchError):
    """Raised when the request for a source cannot be constructed."""

    kind = ErrorKind.REQUEST_BUILD


class TransportError(FetchError):
    """Raised on connection failures and transport-level timeouts."""

    kind = ErrorKind.TRANSPORT


class HTTPStatusError(TransportError):
    """Raised when a source answers with a non-2xx status."""

    kind = ErrorKind.HTTP_STATUS

    def __init__(self, source: str, status: int, elapsed: float = 0.0):
        super().__init__(source, f"HTTP {status}", elapsed)
        self.status = status


class BodyReadError(FetchError):
    """Raised when the response body cannot be read."""

    kind = ErrorKind.BODY_READ


class DecodeError(FetchError):
    """Raised when the normalizer rejects a source payload."""

    kind = ErrorKind.DECODE


class UnknownSourceError(FetchError):
    """Raised when no normalizer is registered for a source name."""

    kind = ErrorKind.UNKNOWN_SOURCE

    def __init__(self, source: str, elapsed: float = 0.0):
        super().__init__(source, f"Unknown source: {source}", elapsed)


class AggregatedFailure(RaceError):
    """Raised when a race ends because its sources exhausted their retries.

    Holds a single failure when the race short-circuits on the first one, or
    every source's last failure when the race waits for all of them.
    """

    def __init__(self, failures: list[FetchError]):
        if not failures:
            raise ValueError("AggregatedFailure requires at least one failure")
        self.failures = list(failures)
        super().__init__("; ".join(str(f) for f in self.failures))

    @property
    def source(self) -> str:
        return self.failures[0].source

    @property
    def kind(self) -> ErrorKind:
        return self.failures[0].kind

    @property
    def elapsed(self) -> float:
        return max(f.elapsed for f in self.failures)


class RaceTimeoutError(RaceError, TimeoutError):
    """Raised when no source answers before the race deadline."""

    def __init__(self, timeout: float, elapsed: float):
        super().__init__(
            f"No source answered within {timeout:.3f}s (waited {elapsed:.3f}s)"
        )
        self.timeout = timeout
        self.elapsed = elapsed
