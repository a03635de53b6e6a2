"""First-success race coordinator for Brazilian CEP lookups."""

from .config import RaceSettings, get_settings
from .coordinator import RaceCoordinator, fetch_fastest
from .exceptions import (
    AggregatedFailure,
    BodyReadError,
    DecodeError,
    ErrorKind,
    FetchError,
    HTTPStatusError,
    ParseError,
    RaceError,
    RaceTimeoutError,
    RequestBuildError,
    TransportError,
    UnknownSourceError,
)
from .fetcher import SourceFetcher
from .http_client import create_session
from .models import FailurePolicy, NormalizedResult, RaceResult, SourceDescriptor
from .normalizer import normalize

__all__ = [
    "AggregatedFailure",
    "BodyReadError",
    "DecodeError",
    "ErrorKind",
    "FailurePolicy",
    "FetchError",
    "HTTPStatusError",
    "NormalizedResult",
    "ParseError",
    "RaceCoordinator",
    "RaceError",
    "RaceResult",
    "RaceSettings",
    "RaceTimeoutError",
    "RequestBuildError",
    "SourceDescriptor",
    "SourceFetcher",
    "TransportError",
    "UnknownSourceError",
    "create_session",
    "fetch_fastest",
    "get_settings",
    "normalize",
]
