"""
First-success race coordinator.

Queries every configured source concurrently and resolves to exactly one of:
the first normalized success (losers are cancelled), an AggregatedFailure,
or a RaceTimeoutError once the single race deadline passes.
"""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from types import TracebackType
from typing import Any

import aiohttp

from .config import RaceSettings, get_settings
from .exceptions import AggregatedFailure, FetchError, RaceTimeoutError, ScopeCancelledError
from .fetcher import SourceFetcher
from .http_client import create_session
from .models import FailurePolicy, NormalizedResult, RaceResult, SourceDescriptor
from .scope import RaceScope

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Success:
    result: NormalizedResult
    source: str
    elapsed: float


@dataclass(frozen=True)
class Failure:
    error: FetchError

    @property
    def source(self) -> str:
        return self.error.source


Outcome = Success | Failure


class RaceCoordinator:
    """
    Races one fetcher task per source and returns the first success.

    The HTTP session is injected; when none is given, entering the coordinator
    as an async context manager creates one and exiting closes it.
    """

    def __init__(
        self,
        sources: Sequence[SourceDescriptor],
        *,
        session: aiohttp.ClientSession | None = None,
        fetcher: SourceFetcher | None = None,
        timeout: float = 1.0,
        max_attempts: int = 3,
        backoff_step: float = 0.1,
        failure_policy: FailurePolicy = FailurePolicy.SHORT_CIRCUIT,
        settings: RaceSettings | None = None,
    ):
        """
        Initialize the coordinator with an ordered list of sources and race parameters.

        Parameters:
            sources (Sequence[SourceDescriptor]): Sources in dispatch order; names must be unique.
            session (aiohttp.ClientSession | None): Shared session used by the default fetcher.
            fetcher (SourceFetcher | None): Fetcher override; takes precedence over `session`.
            timeout (float): Overall race deadline in seconds.
            max_attempts (int): Attempts per source, including the first.
            backoff_step (float): Linear backoff step in seconds between attempts.
            failure_policy (FailurePolicy): Reaction to a source that exhausted its retries.
            settings (RaceSettings | None): Transport settings for a session created on enter.
        """
        if not sources:
            raise ValueError("At least one source is required")
        names = [s.name for s in sources]
        if len(set(names)) != len(names):
            raise ValueError(f"Source names must be unique: {names}")
        if timeout <= 0:
            raise ValueError("timeout must be > 0")
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if backoff_step < 0:
            raise ValueError("backoff_step must be >= 0")

        self.sources = list(sources)
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.backoff_step = backoff_step
        self.failure_policy = failure_policy

        self._settings = settings
        self._session = session
        self._fetcher = fetcher
        self._owns_session = False

    @classmethod
    def from_settings(cls, settings: RaceSettings, **kwargs: Any) -> "RaceCoordinator":
        """Build a coordinator for the sources and race parameters in `settings`."""
        return cls(
            settings.source_descriptors(),
            timeout=settings.api_timeout,
            max_attempts=settings.max_attempts,
            backoff_step=settings.retry_backoff,
            failure_policy=settings.failure_policy,
            settings=settings,
            **kwargs,
        )

    async def __aenter__(self) -> "RaceCoordinator":
        if self._fetcher is None and self._session is None:
            self._session = create_session(self._settings)
            self._owns_session = True
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None
            self._fetcher = None
            self._owns_session = False

    def _get_fetcher(self) -> SourceFetcher:
        if self._fetcher is None:
            if self._session is None:
                raise RuntimeError(
                    "No HTTP session: pass session= or use 'async with RaceCoordinator(...)'"
                )
            self._fetcher = SourceFetcher(self._session)
        return self._fetcher

    async def race(self, query: str) -> RaceResult:
        """
        Resolve `query` against every source and return the first success.

        Raises:
            AggregatedFailure: A source exhausted its retries before any success
                (short-circuit policy), or every source failed (wait-all policy).
            RaceTimeoutError: No source succeeded before the deadline.
        """
        fetcher = self._get_fetcher()
        scope = RaceScope(self.timeout)
        logger.info(
            "race.start query=%s sources=%s timeout=%.3fs policy=%s",
            query,
            ",".join(s.name for s in self.sources),
            self.timeout,
            self.failure_policy.value,
        )

        tasks = [
            asyncio.create_task(
                self._run_source(fetcher, source, query, scope),
                name=f"race-{source.name}",
            )
            for source in self.sources
        ]
        try:
            return await self._resolve(tasks, scope)
        finally:
            scope.cancel()
            await self._cancel_pending(tasks)

    async def _run_source(
        self,
        fetcher: SourceFetcher,
        source: SourceDescriptor,
        query: str,
        scope: RaceScope,
    ) -> Outcome | None:
        """Run one source to its terminal outcome; None when the race is already over."""
        if scope.cancelled:
            return None

        outcome: Outcome
        try:
            result = await fetcher.fetch_with_retry(
                source.name,
                source.build_url(query),
                scope=scope,
                max_attempts=self.max_attempts,
                backoff_step=self.backoff_step,
            )
        except ScopeCancelledError:
            return None
        except FetchError as e:
            outcome = Failure(e)
        else:
            outcome = Success(result=result, source=source.name, elapsed=scope.elapsed())

        if scope.cancelled:
            logger.debug("race.discard source=%s", source.name)
            return None
        return outcome

    async def _resolve(self, tasks: list[asyncio.Task], scope: RaceScope) -> RaceResult:
        order = {task: i for i, task in enumerate(tasks)}
        pending = set(tasks)
        failures: list[FetchError] = []

        while pending:
            remaining = scope.remaining()
            if remaining <= 0:
                break
            done, pending = await asyncio.wait(
                pending, timeout=remaining, return_when=asyncio.FIRST_COMPLETED
            )
            if not done:
                break

            outcomes = [
                outcome
                for outcome in (t.result() for t in sorted(done, key=order.__getitem__))
                if outcome is not None
            ]

            # Successes that land in the same wake-up as a failure take priority
            for outcome in outcomes:
                if isinstance(outcome, Success):
                    scope.cancel()
                    logger.info(
                        "race.win source=%s elapsed_ms=%d",
                        outcome.source,
                        outcome.elapsed * 1000,
                    )
                    return RaceResult(
                        result=outcome.result,
                        source=outcome.source,
                        elapsed=outcome.elapsed,
                    )

            for outcome in outcomes:
                failures.append(outcome.error)
                if self.failure_policy is FailurePolicy.SHORT_CIRCUIT:
                    logger.warning(
                        "race.failed source=%s kind=%s elapsed_ms=%d",
                        outcome.source,
                        outcome.error.kind.value,
                        scope.elapsed() * 1000,
                    )
                    raise AggregatedFailure([outcome.error])

        if not pending and failures:
            logger.warning(
                "race.failed sources=%s elapsed_ms=%d",
                ",".join(f.source for f in failures),
                scope.elapsed() * 1000,
            )
            raise AggregatedFailure(failures)

        logger.warning("race.timeout timeout=%.3fs", self.timeout)
        raise RaceTimeoutError(self.timeout, scope.elapsed())

    @staticmethod
    async def _cancel_pending(tasks: list[asyncio.Task]) -> None:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


async def fetch_fastest(
    query: str,
    settings: RaceSettings | None = None,
    *,
    session: aiohttp.ClientSession | None = None,
) -> RaceResult:
    """
    Look up `query` against every configured source and return the fastest answer.

    Parameters:
        query (str): Lookup key, e.g. a CEP such as "01153000".
        settings (RaceSettings | None): Source URLs and race parameters; defaults to get_settings().
        session (aiohttp.ClientSession | None): Shared session; a temporary one is created and closed when omitted.

    Returns:
        RaceResult: The winning normalized result with its source name.
    """
    settings = settings or get_settings()
    async with RaceCoordinator.from_settings(settings, session=session) as coordinator:
        return await coordinator.race(query)
