"""Utility helpers for the CEP race coordinator."""

from .retry import backoff_delay, retry_with_backoff

__all__ = ["backoff_delay", "retry_with_backoff"]
