"""Infrastructure: native OS location via ``CoreLocationCLI``.

macOS exposes Core Location only to signed applications, so the locator
shells out to the ``CoreLocationCLI`` helper (``brew install
corelocationcli``) when it is on PATH.

Rules
-----
* Detection via :func:`shutil.which` — no permanent PATH modification.
* Only macOS is supported; every other host raises
  :class:`LocationUnsupportedError` so the resolver falls through to the
  network providers.
* The helper gets a bounded wait (12 s).  Our own deadline maps to
  :class:`LocationTimeoutError`; a cancelled caller propagates unchanged
  and the helper process is killed and reaped.
"""

from __future__ import annotations

import asyncio
import json
import logging
import shutil
import sys
from pathlib import Path

from ingresso_finder.core.models import UserLocation
from ingresso_finder.exceptions import (
    LocationPermissionDeniedError,
    LocationServicesDisabledError,
    LocationTimeoutError,
    LocationUnsupportedError,
    SystemLocationError,
)

logger = logging.getLogger(__name__)

SYSTEM_SOURCE = "system"
LOCATOR_BINARY = "CoreLocationCLI"
DEFAULT_WAIT_SECONDS = 12.0


def find_locator() -> Path | None:
    """Return the absolute path of ``CoreLocationCLI``, or ``None``."""
    result = shutil.which(LOCATOR_BINARY)
    if result is None:
        return None
    return Path(result).resolve()


def _classify_failure(message: str) -> SystemLocationError:
    lowered = message.lower()
    if "denied" in lowered or "not authorized" in lowered:
        return LocationPermissionDeniedError(
            "location permission denied",
            hint="Allow your terminal in System Settings → Privacy & Security → Location Services.",
        )
    if "disabled" in lowered:
        return LocationServicesDisabledError(
            "location services are disabled",
            hint="Turn on Location Services in System Settings.",
        )
    return SystemLocationError(message or "system location request failed")


def parse_locator_output(raw: str) -> UserLocation:
    """Parse the ``--json`` output of ``CoreLocationCLI``."""
    try:
        payload = json.loads(raw)
    except ValueError as exc:
        raise SystemLocationError(f"unexpected system location output: {raw.strip()[:120]}") from exc
    if not isinstance(payload, dict):
        raise SystemLocationError("system location request returned no coordinates")
    try:
        latitude = float(payload["latitude"])
        longitude = float(payload["longitude"])
    except (KeyError, TypeError, ValueError) as exc:
        raise SystemLocationError("system location request returned no coordinates") from exc
    return UserLocation(
        latitude=latitude,
        longitude=longitude,
        city=str(payload.get("locality") or ""),
        region=str(payload.get("administrativeArea") or ""),
        country=str(payload.get("country") or ""),
        source=SYSTEM_SOURCE,
    )


class CoreLocationCliLocator:
    """Concrete :class:`~ingresso_finder.core.protocols.SystemLocator`."""

    def __init__(
        self,
        *,
        binary: Path | None = None,
        wait_seconds: float = DEFAULT_WAIT_SECONDS,
        platform: str | None = None,
    ) -> None:
        self._binary = binary
        self._wait_seconds = wait_seconds
        self._platform = platform or sys.platform

    async def locate(self) -> UserLocation:
        if self._platform != "darwin":
            raise LocationUnsupportedError("system location is not supported on this OS")
        binary = self._binary or find_locator()
        if binary is None:
            raise LocationUnsupportedError(
                f"{LOCATOR_BINARY} is not installed",
                hint="Install it with: brew install corelocationcli",
            )

        process = await asyncio.create_subprocess_exec(
            str(binary),
            "--json",
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(),
                timeout=self._wait_seconds,
            )
        except asyncio.TimeoutError as exc:
            await _terminate(process)
            raise LocationTimeoutError("timed out waiting for system location") from exc
        except asyncio.CancelledError:
            await _terminate(process)
            raise

        if process.returncode != 0:
            message = (stderr or stdout).decode("utf-8", "replace").strip()
            raise _classify_failure(message)
        location = parse_locator_output(stdout.decode("utf-8", "replace"))
        logger.debug(
            "system_location_ok lat=%.4f lng=%.4f",
            location.latitude,
            location.longitude,
        )
        return location


async def _terminate(process: asyncio.subprocess.Process) -> None:
    """Kill the helper and reap it."""
    if process.returncode is None:
        try:
            process.kill()
        except ProcessLookupError:
            pass
    await process.wait()
