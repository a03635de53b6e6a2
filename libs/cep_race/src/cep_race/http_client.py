"""
HTTP session factory for race sources.

The session is created explicitly and injected into the coordinator, so tests
and long-running callers control its lifecycle instead of sharing a global.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import aiohttp

if TYPE_CHECKING:
    from .config import RaceSettings

logger = logging.getLogger(__name__)


def create_session(
    settings: RaceSettings | None = None,
    *,
    max_connections: int = 10,
    keepalive_timeout: float = 30.0,
    request_timeout: float | None = None,
) -> aiohttp.ClientSession:
    """
    Build an aiohttp session with a pooled, keep-alive connector.

    Must be called from a running event loop. The caller owns the session and
    must close it.

    Parameters:
        settings (RaceSettings | None): When given, pool and timeout values are read from it and the keyword arguments are ignored.
        max_connections (int): Total connection pool size.
        keepalive_timeout (float): Seconds an idle connection is kept open.
        request_timeout (float | None): Per-request transport timeout in seconds; None leaves requests bounded only by the race deadline.

    Returns:
        aiohttp.ClientSession: A new session.
    """
    if settings is not None:
        max_connections = settings.max_connections
        keepalive_timeout = settings.keepalive_timeout
        request_timeout = settings.request_timeout

    connector = aiohttp.TCPConnector(
        limit=max_connections, keepalive_timeout=keepalive_timeout
    )
    logger.debug(
        "Creating HTTP session (max_connections=%d, keepalive=%.1fs, request_timeout=%s)",
        max_connections,
        keepalive_timeout,
        request_timeout,
    )
    return aiohttp.ClientSession(
        connector=connector,
        timeout=aiohttp.ClientTimeout(total=request_timeout),
        headers={"Accept": "application/json"},
    )
