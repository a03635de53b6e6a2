#!/usr/bin/env python3
"""
Command-line entry point: look up one or more CEPs and print the fastest answer.

Usage:
    cep-race 01153000
    cep-race 01153000 01310100 --timeout 2s --wait-all --json
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any

from pydantic import ValidationError

from .config import RaceSettings
from .coordinator import fetch_fastest
from .exceptions import RaceError
from .http_client import create_session
from .models import FailurePolicy, RaceResult

DEFAULT_CEP = "01153000"


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="cep-race",
        description="Query BrasilAPI and ViaCEP concurrently and keep the fastest answer.",
    )
    parser.add_argument(
        "ceps", nargs="*", default=[DEFAULT_CEP], help=f"CEPs to look up (default: {DEFAULT_CEP})"
    )
    parser.add_argument(
        "--timeout", help="Overall race deadline, e.g. '1s' or '500ms' (env: API_TIMEOUT)"
    )
    parser.add_argument(
        "--attempts", type=int, help="Attempts per source (env: MAX_ATTEMPTS)"
    )
    parser.add_argument(
        "--wait-all",
        action="store_true",
        help="Only fail when every source has failed instead of on the first failure",
    )
    parser.add_argument(
        "--json", action="store_true", help="Print one JSON object per lookup"
    )
    parser.add_argument("--log-level", help="Logging level (env: LOG_LEVEL)")
    return parser.parse_args(argv)


def _build_settings(args: argparse.Namespace) -> RaceSettings:
    overrides: dict[str, Any] = {}
    if args.timeout is not None:
        overrides["api_timeout"] = args.timeout
    if args.attempts is not None:
        overrides["max_attempts"] = args.attempts
    if args.wait_all:
        overrides["failure_policy"] = FailurePolicy.WAIT_ALL
    if args.log_level is not None:
        overrides["log_level"] = args.log_level
    return RaceSettings(**overrides)


def format_result(cep: str, race: RaceResult) -> str:
    r = race.result
    return (
        f"Result from {race.source} for {cep} in {race.elapsed * 1000:.0f}ms: "
        f"CEP={r.key} street={r.street_line!r} district={r.district!r} "
        f"city={r.city!r} region={r.region!r}"
    )


async def _lookup_all(ceps: list[str], settings: RaceSettings, as_json: bool) -> int:
    exit_code = 0
    async with create_session(settings) as session:
        for cep in ceps:
            try:
                race = await fetch_fastest(cep, settings, session=session)
            except RaceError as e:
                exit_code = 1
                if as_json:
                    print(json.dumps({"cep": cep, "error": str(e), "type": type(e).__name__}))
                else:
                    print(f"Error for {cep}: {e}")
                continue

            if as_json:
                print(json.dumps({"cep": cep, **race.model_dump()}, ensure_ascii=False))
            else:
                print(format_result(cep, race))
    return exit_code


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    try:
        settings = _build_settings(args)
    except ValidationError as e:
        print(f"ERROR: invalid configuration: {e}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=getattr(logging, settings.log_level), format=settings.log_format
    )
    settings.log_configuration()

    try:
        return asyncio.run(_lookup_all(args.ceps, settings, args.json))
    except KeyboardInterrupt:
        print("\n[info] Interrupted by user (Ctrl+C).", file=sys.stderr)
        return 130
