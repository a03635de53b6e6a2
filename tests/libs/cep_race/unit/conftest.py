"""Shared test fixtures for cep_race unit tests."""

import asyncio
import json
import time
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from cep_race.fetcher import SourceFetcher
from cep_race.models import NormalizedResult, SourceDescriptor


def response_cm(status: int = 200, body: Any = None, delay: float = 0.0) -> AsyncMock:
    """
    Build an async context manager mimicking `session.get(...)`.

    `body` may be bytes, or any JSON-serializable value which is encoded.
    When `delay` is set, entering the context sleeps first to simulate latency.
    """
    if body is None:
        raw = b""
    elif isinstance(body, bytes):
        raw = body
    else:
        raw = json.dumps(body).encode("utf-8")

    response = AsyncMock()
    response.status = status
    response.read = AsyncMock(return_value=raw)

    async def enter(*args: Any, **kwargs: Any) -> AsyncMock:
        if delay:
            await asyncio.sleep(delay)
        return response

    cm = AsyncMock()
    cm.__aenter__ = AsyncMock(side_effect=enter)
    cm.__aexit__ = AsyncMock(return_value=None)
    return cm


class ScriptedFetcher(SourceFetcher):
    """
    SourceFetcher whose single attempts follow a per-source script.

    Each script step is `(delay_seconds, outcome)` where outcome is a
    NormalizedResult to return or an exception to raise. The last step repeats
    once the script is exhausted. Calls, start times and cancellations are recorded.
    """

    def __init__(self, scripts: dict[str, list[tuple[float, Any]]]):
        super().__init__(session=MagicMock())
        self.scripts = {name: list(steps) for name, steps in scripts.items()}
        self.calls: list[tuple[str, str]] = []
        self.call_times: dict[str, list[float]] = {name: [] for name in scripts}
        self.cancelled: list[str] = []

    def attempts(self, source_name: str) -> int:
        return len(self.call_times.get(source_name, []))

    async def fetch(self, source_name: str, url: str) -> NormalizedResult:
        self.calls.append((source_name, url))
        self.call_times.setdefault(source_name, []).append(time.monotonic())
        steps = self.scripts[source_name]
        delay, outcome = steps.pop(0) if len(steps) > 1 else steps[0]
        try:
            if delay:
                await asyncio.sleep(delay)
        except asyncio.CancelledError:
            self.cancelled.append(source_name)
            raise
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture
def brasil_api_payload() -> dict[str, Any]:
    """BrasilAPI v1 response for CEP 01153000."""
    return {
        "cep": "01153000",
        "state": "SP",
        "city": "São Paulo",
        "neighborhood": "Barra Funda",
        "street": "Rua Vitorino Carmilo",
        "service": "open-cep",
    }


@pytest.fixture
def viacep_payload() -> dict[str, Any]:
    """ViaCEP /json response for CEP 01153000."""
    return {
        "cep": "01153-000",
        "logradouro": "Rua Vitorino Carmilo",
        "complemento": "",
        "bairro": "Barra Funda",
        "localidade": "São Paulo",
        "uf": "SP",
        "ibge": "3550308",
        "gia": "1004",
        "ddd": "11",
        "siafi": "7107",
    }


@pytest.fixture
def lapa() -> NormalizedResult:
    return NormalizedResult(key="01153000", district="Lapa", city="São Paulo", region="SP")


@pytest.fixture
def sources() -> list[SourceDescriptor]:
    """The two production sources pointing at test hosts."""
    return [
        SourceDescriptor(name="BrasilAPI", url_template="https://brasil.test/api/cep/v1/{query}"),
        SourceDescriptor(name="ViaCEP", url_template="https://viacep.test/ws/{query}/json"),
    ]


@pytest.fixture
def make_response():
    """Factory for fake `session.get(...)` context managers."""
    return response_cm


@pytest.fixture
def scripted_fetcher():
    """Factory for ScriptedFetcher instances."""
    return ScriptedFetcher
