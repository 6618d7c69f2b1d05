"""Tests for location resolution (infra/location.py, infra/system_location.py).

The system locator is a fake coroutine object and the provider session
is a ``MagicMock`` — no subprocess, no network.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from ingresso_finder.core.models import UserLocation
from ingresso_finder.exceptions import (
    LocationError,
    LocationPermissionDeniedError,
    LocationServicesDisabledError,
    LocationTimeoutError,
    LocationUnsupportedError,
    SystemLocationError,
)
from ingresso_finder.infra.location import (
    LocationProvider,
    LocationResolver,
    compact_snippet,
    parse_ipapi,
    parse_ipinfo,
    parse_ipwhois,
)
from ingresso_finder.infra.system_location import (
    CoreLocationCliLocator,
    _classify_failure,
    parse_locator_output,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class _HangingHelper:
    """Helper process that never answers until it is killed."""

    def __init__(self) -> None:
        self.returncode: int | None = None
        self.waited = False

    def kill(self) -> None:
        self.returncode = -9

    async def wait(self) -> int | None:
        self.waited = True
        return self.returncode

    async def communicate(self) -> tuple[bytes, bytes]:
        await asyncio.Event().wait()
        return b"", b""


def _hanging_locator(
    monkeypatch: pytest.MonkeyPatch,
    wait_seconds: float,
) -> tuple[CoreLocationCliLocator, _HangingHelper]:
    helper = _HangingHelper()
    monkeypatch.setattr(
        "ingresso_finder.infra.system_location.asyncio.create_subprocess_exec",
        AsyncMock(return_value=helper),
    )
    locator = CoreLocationCliLocator(
        binary=Path("/usr/local/bin/CoreLocationCLI"),
        wait_seconds=wait_seconds,
        platform="darwin",
    )
    return locator, helper


class _System:
    def __init__(self, result: UserLocation | BaseException) -> None:
        self.result = result
        self.calls = 0

    async def locate(self) -> UserLocation:
        self.calls += 1
        if isinstance(self.result, BaseException):
            raise self.result
        return self.result


def _response(status_code: int = 200, payload: Any = None, *, text: str | None = None) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.reason = "OK" if status_code == 200 else "Error"
    body = text if text is not None else json.dumps(payload)
    response.text = body
    response.content = body.encode("utf-8")
    return response


def _provider(name: str, parse: Any = parse_ipwhois) -> LocationProvider:
    return LocationProvider(name, f"https://{name}.test/", parse)


def _resolver(system: _System, *responses: Any, **overrides: Any) -> tuple[LocationResolver, MagicMock]:
    session = MagicMock()
    session.get.side_effect = list(responses)
    defaults: dict[str, Any] = {
        "providers": (_provider("first"), _provider("second")),
        "session": session,
    }
    defaults.update(overrides)
    providers = defaults.pop("providers")
    return LocationResolver(system, providers, **defaults), session


_WHOIS_OK = {"success": True, "latitude": -23.5, "longitude": -46.6, "city": "São Paulo", "region": "SP"}


# ---------------------------------------------------------------------------
# Provider parsers
# ---------------------------------------------------------------------------

class TestProviderParsers:
    def test_ipapi(self) -> None:
        body = json.dumps({"latitude": 1.5, "longitude": 2.5, "city": "X", "country_name": "BR"}).encode()
        loc = parse_ipapi(body)
        assert (loc.latitude, loc.longitude, loc.country) == (1.5, 2.5, "BR")

    def test_ipapi_error_flag(self) -> None:
        with pytest.raises(LocationError, match="RateLimited"):
            parse_ipapi(json.dumps({"error": True, "reason": "RateLimited"}).encode())

    def test_ipwhois_unsuccessful(self) -> None:
        with pytest.raises(LocationError, match="reserved range"):
            parse_ipwhois(json.dumps({"success": False, "message": "reserved range"}).encode())

    def test_ipinfo_loc_string(self) -> None:
        loc = parse_ipinfo(json.dumps({"loc": "-8.05,-34.9", "city": "Recife"}).encode())
        assert (loc.latitude, loc.longitude) == (-8.05, -34.9)

    @pytest.mark.parametrize("payload", [{"bogon": True}, {"loc": "nope"}, {"error": {"message": "bad"}}])
    def test_ipinfo_failures(self, payload: dict[str, Any]) -> None:
        with pytest.raises(LocationError):
            parse_ipinfo(json.dumps(payload).encode())

    def test_non_json(self) -> None:
        with pytest.raises(LocationError):
            parse_ipapi(b"<html>")


class TestCompactSnippet:
    def test_collapses_whitespace(self) -> None:
        assert compact_snippet("  too \n many\trequests ") == "too many requests"

    def test_html_is_dropped(self) -> None:
        assert compact_snippet("<!DOCTYPE html><html>...") == ""

    def test_capped(self) -> None:
        assert len(compact_snippet("x" * 500)) == 120


# ---------------------------------------------------------------------------
# Resolver chain
# ---------------------------------------------------------------------------

class TestLocationResolver:
    def test_system_success_skips_providers(self) -> None:
        system = _System(UserLocation(1.0, 2.0))
        resolver, session = _resolver(system)
        loc = asyncio.run(resolver.detect_location())
        assert loc.source == "system"
        session.get.assert_not_called()

    def test_falls_back_to_first_working_provider(self) -> None:
        system = _System(LocationUnsupportedError("no tool"))
        resolver, session = _resolver(system, _response(500, text="oops"), _response(200, _WHOIS_OK))
        loc = asyncio.run(resolver.detect_location())
        assert loc.source == "second"
        assert loc.city == "São Paulo"
        assert session.get.call_count == 2

    def test_zero_coordinates_are_a_failure(self) -> None:
        system = _System(SystemLocationError("x"))
        zero = dict(_WHOIS_OK, latitude=0, longitude=0)
        resolver, _ = _resolver(system, _response(200, zero), _response(200, _WHOIS_OK))
        assert asyncio.run(resolver.detect_location()).source == "second"

    def test_all_failures_are_combined(self) -> None:
        system = _System(LocationPermissionDeniedError("location permission denied"))
        resolver, _ = _resolver(
            system,
            _response(429, text="slow down"),
            _response(200, {"success": False, "message": "nope"}),
        )
        with pytest.raises(LocationError) as exc_info:
            asyncio.run(resolver.detect_location())
        message = str(exc_info.value)
        assert "system location failed (location permission denied)" in message
        assert "first: 429 Error: slow down" in message
        assert "second: nope" in message
        assert exc_info.value.hint

    def test_cancellation_stops_the_chain(self) -> None:
        system = _System(asyncio.CancelledError())
        resolver, session = _resolver(system)
        with pytest.raises(asyncio.CancelledError):
            asyncio.run(resolver.detect_location())
        session.get.assert_not_called()

    def test_deadline_stops_the_chain(self) -> None:
        system = _System(TimeoutError())
        resolver, session = _resolver(system)
        with pytest.raises(TimeoutError):
            asyncio.run(resolver.detect_location())
        session.get.assert_not_called()

    def test_no_providers(self) -> None:
        resolver, _ = _resolver(_System(SystemLocationError("x")), providers=())
        with pytest.raises(LocationError, match="no location providers configured"):
            asyncio.run(resolver.detect_location())

    def test_debug_logs_fallback_source(self, caplog: pytest.LogCaptureFixture) -> None:
        system = _System(LocationUnsupportedError("no tool"))
        resolver, _ = _resolver(system, _response(200, _WHOIS_OK), debug=True)
        with caplog.at_level(logging.WARNING, logger="ingresso_finder"):
            asyncio.run(resolver.detect_location())
        assert "using fallback source: first" in caplog.text

    def test_quiet_without_debug(self, caplog: pytest.LogCaptureFixture) -> None:
        system = _System(LocationUnsupportedError("no tool"))
        resolver, _ = _resolver(system, _response(200, _WHOIS_OK))
        with caplog.at_level(logging.WARNING, logger="ingresso_finder"):
            asyncio.run(resolver.detect_location())
        assert "fallback" not in caplog.text


# ---------------------------------------------------------------------------
# Native system locator
# ---------------------------------------------------------------------------

class TestSystemLocator:
    def test_unsupported_platform(self) -> None:
        locator = CoreLocationCliLocator(platform="linux")
        with pytest.raises(LocationUnsupportedError):
            asyncio.run(locator.locate())

    def test_missing_binary(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("ingresso_finder.infra.system_location.shutil.which", lambda name: None)
        locator = CoreLocationCliLocator(platform="darwin")
        with pytest.raises(LocationUnsupportedError) as exc_info:
            asyncio.run(locator.locate())
        assert exc_info.value.hint is not None

    def test_parse_output(self) -> None:
        raw = json.dumps(
            {"latitude": "-23.5", "longitude": "-46.6", "locality": "São Paulo", "administrativeArea": "SP"},
        )
        loc = parse_locator_output(raw)
        assert loc.latitude == -23.5
        assert loc.region == "SP"
        assert loc.source == "system"

    @pytest.mark.parametrize("raw", ["not json", "[]", json.dumps({"latitude": 1})])
    def test_parse_output_failures(self, raw: str) -> None:
        with pytest.raises(SystemLocationError):
            parse_locator_output(raw)

    @pytest.mark.parametrize(
        ("message", "expected"),
        [
            ("kCLErrorDenied: user denied", LocationPermissionDeniedError),
            ("app is not authorized", LocationPermissionDeniedError),
            ("Location services disabled", LocationServicesDisabledError),
            ("something else", SystemLocationError),
        ],
    )
    def test_classify_failure(self, message: str, expected: type[Exception]) -> None:
        assert type(_classify_failure(message)) is expected

    def test_timeout_kills_and_reaps_helper(self, monkeypatch: pytest.MonkeyPatch) -> None:
        locator, helper = _hanging_locator(monkeypatch, wait_seconds=0.01)
        with pytest.raises(LocationTimeoutError):
            asyncio.run(locator.locate())
        assert helper.returncode == -9
        assert helper.waited is True

    def test_cancel_kills_and_reaps_helper(self, monkeypatch: pytest.MonkeyPatch) -> None:
        locator, helper = _hanging_locator(monkeypatch, wait_seconds=5.0)

        async def scenario() -> None:
            task = asyncio.ensure_future(locator.locate())
            await asyncio.sleep(0.01)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(scenario())
        assert helper.returncode == -9
        assert helper.waited is True
