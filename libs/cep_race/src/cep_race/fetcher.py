"""
Single-source fetcher.

Performs one GET against one source, normalizes the body and maps every
failure into a FetchError subclass annotated with the attempt's wall time.
`fetch_with_retry` wraps it in serialized, cancellable retries.
"""

import asyncio
import json
import logging
import time
from urllib.parse import urlsplit

import aiohttp

from .exceptions import (
    BodyReadError,
    DecodeError,
    FetchError,
    HTTPStatusError,
    ParseError,
    RequestBuildError,
    TransportError,
    UnknownSourceError,
)
from .models import NormalizedResult
from .normalizer import is_registered, normalize
from .scope import RaceScope
from .utils.retry import retry_with_backoff

logger = logging.getLogger(__name__)


class SourceFetcher:
    """Fetches and normalizes one source response through a shared aiohttp session.

    Args:
        session: An aiohttp-style session whose `get(...)` returns an async
            context manager. Used read-only; never closed here.
    """

    def __init__(self, session: aiohttp.ClientSession) -> None:
        self._session = session

    async def fetch(self, source_name: str, url: str) -> NormalizedResult:
        """
        Perform one request to `url` and normalize the response for `source_name`.

        Logs `request.start` before the request and `request.end` once it
        resolves, either way.

        Raises:
            FetchError: A subclass matching the failure stage, with `elapsed` set
                to the seconds since the attempt started.
        """
        start = time.monotonic()
        logger.info("request.start source=%s url=%s", source_name, url)
        try:
            result = await self._fetch_once(source_name, url, start)
        except FetchError as e:
            logger.warning(
                "request.end source=%s status=error kind=%s elapsed_ms=%d message=%s",
                source_name,
                e.kind.value,
                e.elapsed * 1000,
                e.message,
            )
            raise
        logger.info(
            "request.end source=%s status=ok elapsed_ms=%d",
            source_name,
            (time.monotonic() - start) * 1000,
        )
        return result

    async def _fetch_once(
        self, source_name: str, url: str, start: float
    ) -> NormalizedResult:
        def elapsed() -> float:
            return time.monotonic() - start

        if not is_registered(source_name):
            raise UnknownSourceError(source_name, elapsed())

        try:
            parts = urlsplit(url)
        except ValueError as e:
            raise RequestBuildError(
                source_name, f"Invalid URL: {url!r} ({e})", elapsed()
            ) from e
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise RequestBuildError(source_name, f"Invalid URL: {url!r}", elapsed())

        try:
            async with self._session.get(url) as response:
                if not 200 <= response.status < 300:
                    raise HTTPStatusError(source_name, response.status, elapsed())
                try:
                    body = await response.read()
                except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                    raise BodyReadError(
                        source_name, f"Failed to read body: {e!r}", elapsed()
                    ) from e
        except FetchError:
            raise
        except (aiohttp.InvalidURL, ValueError) as e:
            raise RequestBuildError(
                source_name, f"Invalid URL: {e}", elapsed()
            ) from e
        except asyncio.TimeoutError as e:
            raise TransportError(
                source_name, "Request timed out", elapsed()
            ) from e
        except (aiohttp.ClientError, OSError) as e:
            raise TransportError(source_name, str(e) or repr(e), elapsed()) from e

        try:
            payload = json.loads(body)
        except ValueError as e:
            raise DecodeError(
                source_name, f"Response is not valid JSON: {e}", elapsed()
            ) from e

        try:
            return normalize(source_name, payload)
        except ParseError as e:
            raise DecodeError(source_name, str(e), elapsed()) from e

    async def fetch_with_retry(
        self,
        source_name: str,
        url: str,
        scope: RaceScope | None = None,
        max_attempts: int = 3,
        backoff_step: float = 0.1,
    ) -> NormalizedResult:
        """
        Fetch with up to `max_attempts` serialized attempts.

        Returns the first success. When every attempt fails, the last attempt's
        error is raised with `attempts` set to the number of attempts made;
        earlier errors are discarded. No attempt starts once `scope` is cancelled.
        """
        attempts = 0

        async def attempt() -> NormalizedResult:
            nonlocal attempts
            attempts += 1
            return await self.fetch(source_name, url)

        try:
            return await retry_with_backoff(
                attempt,
                max_attempts=max_attempts,
                backoff_step=backoff_step,
                scope=scope,
            )
        except FetchError as e:
            e.attempts = attempts
            logger.warning(
                "source.exhausted source=%s attempts=%d kind=%s",
                source_name,
                attempts,
                e.kind.value,
            )
            raise
