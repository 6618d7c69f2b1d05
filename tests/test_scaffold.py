"""Smoke tests — verify scaffold wiring.

These tests prove that:
* The CLI entry point is importable and callable.
* The exception hierarchy is correctly structured.
* Version is accessible.
* Exit codes are defined.
"""

from __future__ import annotations

import asyncio
from unittest.mock import patch

import pytest

from ingresso_finder import __version__
from ingresso_finder.cli import exit_codes
from ingresso_finder.cli.app import cli, main
from ingresso_finder.exceptions import (
    ApiError,
    CacheDecodeError,
    CacheError,
    DecodeError,
    EnvironmentError,
    ErrorKind,
    GatewayError,
    IngressoError,
    InvalidRequestError,
    LocationError,
    LocationPermissionDeniedError,
    LocationServicesDisabledError,
    LocationTimeoutError,
    LocationUnsupportedError,
    NetworkError,
    NoSessionsError,
    NotFoundError,
    SystemLocationError,
    is_cancellation,
    is_not_found,
)


# ---------------------------------------------------------------------------
# Version
# ---------------------------------------------------------------------------

class TestVersion:
    def test_version_is_string(self) -> None:
        assert isinstance(__version__, str)

    def test_version_is_semver_like(self) -> None:
        parts = __version__.split(".")
        assert len(parts) == 3
        assert all(part.isdigit() for part in parts)


# ---------------------------------------------------------------------------
# Exception hierarchy
# ---------------------------------------------------------------------------

class TestExceptions:
    @pytest.mark.parametrize(
        "exc_class",
        [
            GatewayError,
            ApiError,
            NotFoundError,
            NetworkError,
            DecodeError,
            InvalidRequestError,
            CacheError,
            CacheDecodeError,
            LocationError,
            NoSessionsError,
            EnvironmentError,
        ],
    )
    def test_all_exceptions_inherit_from_base(
        self, exc_class: type[IngressoError]
    ) -> None:
        assert issubclass(exc_class, IngressoError)

    @pytest.mark.parametrize(
        "exc_class",
        [
            LocationUnsupportedError,
            LocationPermissionDeniedError,
            LocationServicesDisabledError,
            LocationTimeoutError,
        ],
    )
    def test_system_location_errors(self, exc_class: type[IngressoError]) -> None:
        assert issubclass(exc_class, SystemLocationError)
        assert issubclass(exc_class, LocationError)

    def test_hint_is_stored(self) -> None:
        err = IngressoError("boom", hint="try this")
        assert str(err) == "boom"
        assert err.hint == "try this"

    def test_hint_defaults_to_none(self) -> None:
        assert IngressoError("boom").hint is None

    def test_no_sessions_carries_counts_and_hint(self) -> None:
        err = NoSessionsError("none", failed_count=2, ignored_count=3)
        assert err.failed_count == 2
        assert err.ignored_count == 3
        assert err.hint is not None


class TestErrorKinds:
    def test_not_found_kind(self) -> None:
        err = NotFoundError(404, "Not Found", "/x")
        assert err.kind is ErrorKind.NOT_FOUND
        assert is_not_found(err)

    @pytest.mark.parametrize("status", [429, 500, 503])
    def test_transient_statuses(self, status: int) -> None:
        assert ApiError(status, "", "/x").kind is ErrorKind.TRANSIENT

    def test_client_error_is_permanent(self) -> None:
        err = ApiError(400, "Bad Request", "/x", "nope")
        assert err.kind is ErrorKind.PERMANENT
        assert not is_not_found(err)
        assert str(err) == "ingresso api error: 400 Bad Request: nope"

    def test_network_error_is_transient(self) -> None:
        assert NetworkError("down").kind is ErrorKind.TRANSIENT

    def test_other_errors_are_not_not_found(self) -> None:
        assert not is_not_found(ValueError("x"))

    @pytest.mark.parametrize(
        "exc",
        [asyncio.CancelledError(), TimeoutError(), asyncio.TimeoutError()],
    )
    def test_cancellation_signals(self, exc: BaseException) -> None:
        assert is_cancellation(exc)

    def test_location_timeout_is_not_cancellation(self) -> None:
        assert not is_cancellation(LocationTimeoutError("slow"))


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

class TestExitCodes:
    def test_success_is_zero(self) -> None:
        assert exit_codes.SUCCESS == 0

    def test_general_error_is_one(self) -> None:
        assert exit_codes.GENERAL_ERROR == 1

    def test_keyboard_interrupt_is_130(self) -> None:
        assert exit_codes.KEYBOARD_INTERRUPT == 130

    def test_unexpected_error_is_two(self) -> None:
        assert exit_codes.UNEXPECTED_ERROR == 2


# ---------------------------------------------------------------------------
# CLI routing
# ---------------------------------------------------------------------------

class TestCLIRouting:
    def test_version_flag(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])
        assert exc_info.value.code == 0

    @patch("ingresso_finder.cli.doctor.run_doctor", return_value=exit_codes.SUCCESS)
    def test_doctor_returns_success(self, _mock_doc: object) -> None:
        code = main(["doctor"])
        assert code == exit_codes.SUCCESS

    def test_no_args_starts_browser(self, monkeypatch: pytest.MonkeyPatch) -> None:
        from ingresso_finder.cli import app as app_module

        seen: list[object] = []
        monkeypatch.setattr(
            app_module, "_handle_browse", lambda city: seen.append(city) or exit_codes.SUCCESS,
        )
        assert main([]) == exit_codes.SUCCESS
        assert seen == [None]

    def test_city_flag_is_forwarded(self, monkeypatch: pytest.MonkeyPatch) -> None:
        from ingresso_finder.cli import app as app_module

        seen: list[object] = []
        monkeypatch.setattr(
            app_module, "_handle_browse", lambda city: seen.append(city) or exit_codes.SUCCESS,
        )
        main(["--city", "Recife"])
        assert seen == ["Recife"]

    def test_unknown_command_is_usage_error(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["download"])
        assert exc_info.value.code == 2


class TestErrorBoundary:
    def _run_cli(self, monkeypatch: pytest.MonkeyPatch, error: BaseException) -> int:
        from ingresso_finder.cli import app as app_module

        def boom(argv: list[str] | None = None) -> int:
            raise error

        monkeypatch.setattr(app_module, "main", boom)
        with pytest.raises(SystemExit) as exc_info:
            cli()
        return int(exc_info.value.code)

    def test_known_error_exits_one(self, monkeypatch: pytest.MonkeyPatch) -> None:
        code = self._run_cli(monkeypatch, IngressoError("bad", hint="fix it"))
        assert code == exit_codes.GENERAL_ERROR

    def test_keyboard_interrupt_exits_130(self, monkeypatch: pytest.MonkeyPatch) -> None:
        assert self._run_cli(monkeypatch, KeyboardInterrupt()) == exit_codes.KEYBOARD_INTERRUPT

    def test_unexpected_error_exits_two(self, monkeypatch: pytest.MonkeyPatch) -> None:
        assert self._run_cli(monkeypatch, RuntimeError("oops")) == exit_codes.UNEXPECTED_ERROR
