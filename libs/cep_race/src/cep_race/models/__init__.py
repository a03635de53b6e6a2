"""Data models for the CEP race coordinator."""

from .address import FailurePolicy, NormalizedResult, RaceResult, SourceDescriptor
from .source_models import BrasilAPIResponse, ViaCEPResponse

__all__ = [
    "BrasilAPIResponse",
    "FailurePolicy",
    "NormalizedResult",
    "RaceResult",
    "SourceDescriptor",
    "ViaCEPResponse",
]
