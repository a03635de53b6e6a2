"""Tests for the cep-race command-line entry point."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from cep_race import cli
from cep_race.exceptions import AggregatedFailure, RaceTimeoutError, TransportError
from cep_race.models import FailurePolicy, NormalizedResult, RaceResult


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ["API_TIMEOUT", "MAX_ATTEMPTS", "FAILURE_POLICY", "LOG_LEVEL"]:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir("/")


@pytest.fixture
def session_factory():
    session = MagicMock()
    cm = MagicMock()
    cm.__aenter__ = AsyncMock(return_value=session)
    cm.__aexit__ = AsyncMock(return_value=None)
    with patch("cep_race.cli.create_session", return_value=cm) as factory:
        yield factory


@pytest.fixture
def barra_funda() -> RaceResult:
    return RaceResult(
        result=NormalizedResult(
            key="01153000",
            street_line="Rua Vitorino Carmilo",
            district="Barra Funda",
            city="São Paulo",
            region="SP",
        ),
        source="BrasilAPI",
        elapsed=0.042,
    )


def test_prints_winning_result(session_factory, barra_funda, capsys):
    with patch("cep_race.cli.fetch_fastest", AsyncMock(return_value=barra_funda)) as fetch:
        exit_code = cli.main(["01153000"])

    assert exit_code == 0
    out = capsys.readouterr().out
    assert "Result from BrasilAPI for 01153000 in 42ms" in out
    assert "district='Barra Funda'" in out
    assert fetch.await_args.args[0] == "01153000"
    session_factory.assert_called_once()


def test_default_cep_is_used(session_factory, barra_funda):
    with patch("cep_race.cli.fetch_fastest", AsyncMock(return_value=barra_funda)) as fetch:
        cli.main([])

    assert fetch.await_args.args[0] == cli.DEFAULT_CEP


def test_failure_sets_exit_code_and_continues(session_factory, barra_funda, capsys):
    failure = AggregatedFailure([TransportError("BrasilAPI", "Connection refused")])
    fetch = AsyncMock(side_effect=[failure, barra_funda])

    with patch("cep_race.cli.fetch_fastest", fetch):
        exit_code = cli.main(["00000000", "01153000"])

    assert exit_code == 1
    out = capsys.readouterr().out
    assert "Error for 00000000: BrasilAPI failed (transport): Connection refused" in out
    assert "Result from BrasilAPI for 01153000" in out
    assert fetch.await_count == 2


def test_json_output(session_factory, barra_funda, capsys):
    with patch("cep_race.cli.fetch_fastest", AsyncMock(return_value=barra_funda)):
        cli.main(["01153000", "--json"])

    payload = json.loads(capsys.readouterr().out)
    assert payload["cep"] == "01153000"
    assert payload["source"] == "BrasilAPI"
    assert payload["result"]["city"] == "São Paulo"


def test_json_error_output(session_factory, capsys):
    with patch("cep_race.cli.fetch_fastest", AsyncMock(side_effect=RaceTimeoutError(1.0, 1.0))):
        exit_code = cli.main(["01153000", "--json"])

    assert exit_code == 1
    payload = json.loads(capsys.readouterr().out)
    assert payload["type"] == "RaceTimeoutError"
    assert "1.000s" in payload["error"]


def test_flags_override_settings(session_factory, barra_funda):
    with patch("cep_race.cli.fetch_fastest", AsyncMock(return_value=barra_funda)) as fetch:
        cli.main(["01153000", "--timeout", "500ms", "--attempts", "2", "--wait-all"])

    settings = fetch.await_args.args[1]
    assert settings.api_timeout == pytest.approx(0.5)
    assert settings.max_attempts == 2
    assert settings.failure_policy is FailurePolicy.WAIT_ALL


def test_invalid_configuration_exits_with_2(session_factory, capsys):
    with patch("cep_race.cli.fetch_fastest", AsyncMock()) as fetch:
        exit_code = cli.main(["01153000", "--timeout", "soon"])

    assert exit_code == 2
    assert "invalid configuration" in capsys.readouterr().err
    fetch.assert_not_awaited()
    session_factory.assert_not_called()
