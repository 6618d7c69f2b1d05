"""Location resolution: native system service first, then IP geolocation.

Chain
-----
1. The injected :class:`~ingresso_finder.core.protocols.SystemLocator`.
2. Network providers in a fixed priority order (``ipapi``, ``ipwhois``,
   ``ipinfo``); the first success wins.

Cancellation (``asyncio.CancelledError`` / ``TimeoutError``) aborts the
chain immediately and propagates unchanged.  Every other failure falls
through to the next step; if all of them fail a single
:class:`LocationError` names the system failure and every provider
failure.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from typing import Any

import requests

from ingresso_finder.core.models import UserLocation
from ingresso_finder.core.protocols import SystemLocator
from ingresso_finder.exceptions import LocationError
from ingresso_finder.infra.ingresso_gateway import DEFAULT_USER_AGENT
from ingresso_finder.infra.system_location import SYSTEM_SOURCE, CoreLocationCliLocator

logger = logging.getLogger(__name__)

SNIPPET_MAX_CHARS = 120
PROVIDER_TIMEOUT_SECONDS = 8.0
_MAX_ERROR_BODY_BYTES = 4 * 1024


# ---------------------------------------------------------------------------
# Provider payload parsers
# ---------------------------------------------------------------------------

def _load(body: bytes) -> dict[str, Any]:
    try:
        payload = json.loads(body)
    except ValueError as exc:
        raise LocationError(f"decode location response: {exc}") from exc
    if not isinstance(payload, dict):
        raise LocationError("decode location response: expected an object")
    return payload


def _coordinate(payload: dict[str, Any], key: str) -> float:
    try:
        return float(payload.get(key) or 0)
    except (TypeError, ValueError) as exc:
        raise LocationError(f"parse {key}: {exc}") from exc


def parse_ipapi(body: bytes) -> UserLocation:
    payload = _load(body)
    if payload.get("error"):
        raise LocationError(str(payload.get("reason") or "unknown error"))
    return UserLocation(
        latitude=_coordinate(payload, "latitude"),
        longitude=_coordinate(payload, "longitude"),
        city=str(payload.get("city") or ""),
        region=str(payload.get("region") or ""),
        country=str(payload.get("country_name") or ""),
    )


def parse_ipwhois(body: bytes) -> UserLocation:
    payload = _load(body)
    if not payload.get("success"):
        message = str(payload.get("message") or "").strip()
        raise LocationError(message or "provider returned unsuccessful response")
    return UserLocation(
        latitude=_coordinate(payload, "latitude"),
        longitude=_coordinate(payload, "longitude"),
        city=str(payload.get("city") or ""),
        region=str(payload.get("region") or ""),
        country=str(payload.get("country") or ""),
    )


def parse_ipinfo(body: bytes) -> UserLocation:
    payload = _load(body)
    if payload.get("bogon"):
        raise LocationError("bogon IP")
    error = payload.get("error")
    if isinstance(error, dict) and error.get("message"):
        raise LocationError(str(error["message"]))

    parts = str(payload.get("loc") or "").strip().split(",")
    if len(parts) != 2:
        raise LocationError("provider did not return valid loc")
    try:
        latitude = float(parts[0].strip())
        longitude = float(parts[1].strip())
    except ValueError as exc:
        raise LocationError(f"parse coordinates: {exc}") from exc
    return UserLocation(
        latitude=latitude,
        longitude=longitude,
        city=str(payload.get("city") or ""),
        region=str(payload.get("region") or ""),
        country=str(payload.get("country") or ""),
    )


@dataclass(frozen=True, slots=True)
class LocationProvider:
    """One network geolocation endpoint and the parser for its payload."""

    name: str
    endpoint: str
    parse: Callable[[bytes], UserLocation]


DEFAULT_PROVIDERS: tuple[LocationProvider, ...] = (
    LocationProvider("ipapi", "https://ipapi.co/json/", parse_ipapi),
    LocationProvider("ipwhois", "https://ipwho.is/", parse_ipwhois),
    LocationProvider("ipinfo", "https://ipinfo.io/json", parse_ipinfo),
)


def compact_snippet(raw: str, limit: int = SNIPPET_MAX_CHARS) -> str:
    """Single-line, length-capped error text; HTML pages become ``""``."""
    text = raw.strip()
    if not text:
        return ""
    lowered = text.lower()
    if "<html" in lowered or "<!doctype" in lowered:
        return ""
    return " ".join(text.split())[:limit]


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------

class LocationResolver:
    """Concrete :class:`~ingresso_finder.core.protocols.LocationDetector`.

    Parameters
    ----------
    system:
        Native location capability; defaults to ``CoreLocationCLI``.
    providers:
        Ordered network providers; the first success wins.
    session:
        ``requests.Session`` used for the provider calls.
    debug:
        When set, a system failure followed by a network success is
        logged at WARNING level with the chosen source.
    """

    def __init__(
        self,
        system: SystemLocator | None = None,
        providers: Sequence[LocationProvider] = DEFAULT_PROVIDERS,
        *,
        session: requests.Session | None = None,
        timeout: float = PROVIDER_TIMEOUT_SECONDS,
        debug: bool = False,
    ) -> None:
        self._system = system if system is not None else CoreLocationCliLocator()
        self._providers = tuple(providers)
        self._session = session if session is not None else requests.Session()
        self._timeout = timeout
        self._debug = debug

    async def detect_location(self) -> UserLocation:
        try:
            location = await self._system.locate()
        except (asyncio.CancelledError, asyncio.TimeoutError, TimeoutError):
            raise
        except Exception as exc:
            system_error = exc
        else:
            if not location.source.strip():
                location = replace(location, source=SYSTEM_SOURCE)
            return location

        try:
            location = await self.detect_with_providers()
        except LocationError as exc:
            raise LocationError(
                f"system location failed ({system_error}); ip fallback failed ({exc})",
                hint="Check your network connection or set a city with --city.",
            ) from exc

        self._log_fallback(system_error, location.source)
        return location

    async def detect_with_providers(self) -> UserLocation:
        """Walk the network providers only."""
        if not self._providers:
            raise LocationError("no location providers configured")

        failures: list[str] = []
        for provider in self._providers:
            try:
                return await self._from_provider(provider)
            except LocationError as exc:
                logger.debug("location_provider_failed provider=%s reason=%s", provider.name, exc)
                failures.append(f"{provider.name}: {exc}")
        raise LocationError(f"all location providers failed ({' | '.join(failures)})")

    async def _from_provider(self, provider: LocationProvider) -> UserLocation:
        try:
            response = await asyncio.to_thread(
                self._session.get,
                provider.endpoint,
                headers={"Accept": "application/json", "User-Agent": DEFAULT_USER_AGENT},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise LocationError(f"location request failed: {exc}") from exc

        status = f"{response.status_code} {response.reason or ''}".strip()
        if not 200 <= response.status_code < 300:
            snippet = compact_snippet((response.text or "")[:_MAX_ERROR_BODY_BYTES])
            raise LocationError(f"{status}: {snippet}" if snippet else status)

        location = provider.parse(response.content or b"")
        if location.latitude == 0 and location.longitude == 0:
            raise LocationError("provider returned empty coordinates")
        if not location.source.strip():
            location = replace(location, source=provider.name.strip())
        return location

    def _log_fallback(self, system_error: BaseException, source: str) -> None:
        if not self._debug:
            return
        logger.warning(
            "[location] system lookup failed: %s; using fallback source: %s",
            system_error,
            source.strip() or "unknown",
        )
