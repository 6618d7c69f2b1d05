"""Protocols (interfaces) consumed by the core layer.

These define the contracts that infrastructure adapters must satisfy.
Core code depends ONLY on these protocols — never on concrete
implementations — preserving the dependency inversion principle.

Every coroutine here runs inside a background task.  Cancelling that
task (or letting a caller deadline expire) is the cancellation scope:
implementations must let ``asyncio.CancelledError`` and ``TimeoutError``
propagate unchanged.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Protocol

from ingresso_finder.core.models import (
    CacheKind,
    City,
    RecentCity,
    RecentTheater,
    SeatMap,
    SessionDay,
    SessionDetail,
    Theater,
    UserLocation,
)


class ContentGateway(Protocol):
    """Contract for the remote catalog backend.

    Implementations map every transport or HTTP failure to a
    :class:`~ingresso_finder.exceptions.GatewayError` subclass.  A 404
    surfaces as :class:`~ingresso_finder.exceptions.NotFoundError` so that
    callers can treat it as an empty result.
    """

    async def get_cities(self) -> list[City]:
        ...  # pragma: no cover

    async def get_city_by_name(self, name: str) -> City:
        ...  # pragma: no cover

    async def get_theaters(self, city_id: str) -> list[Theater]:
        ...  # pragma: no cover

    async def get_sessions(
        self,
        city_id: str,
        theater_id: str,
        on_date: date | None = None,
    ) -> list[SessionDay]:
        ...  # pragma: no cover

    async def get_session_details(self, session_id: str) -> SessionDetail:
        ...  # pragma: no cover

    async def get_seat_map(self, session_id: str, section_id: str) -> SeatMap:
        ...  # pragma: no cover


class CacheStore(Protocol):
    """Contract for the durable, TTL-governed key/value store.

    ``load`` returns ``(data, is_fresh)``; a missing entry is
    ``(None, False)`` and is not an error.  Malformed entries raise
    :class:`~ingresso_finder.exceptions.CacheDecodeError`.
    """

    def load(self, kind: CacheKind, *key: str) -> tuple[Any, bool]:
        ...  # pragma: no cover

    def save(self, kind: CacheKind, *key: str, data: Any) -> None:
        ...  # pragma: no cover


class PreferenceStore(Protocol):
    """Contract for recency history and theater visibility records."""

    def load_recent_cities(self) -> list[RecentCity]:
        ...  # pragma: no cover

    def remember_city(self, city: City) -> None:
        ...  # pragma: no cover

    def load_recent_theaters(self) -> list[RecentTheater]:
        ...  # pragma: no cover

    def remember_theater(self, city_id: str, theater: Theater) -> None:
        ...  # pragma: no cover

    def load_hidden_theaters(self, city_id: str) -> set[str]:
        ...  # pragma: no cover

    def set_theater_hidden(self, city_id: str, theater_id: str, hidden: bool) -> None:
        ...  # pragma: no cover


class SystemLocator(Protocol):
    """Contract for the native OS location service.

    Raises a :class:`~ingresso_finder.exceptions.SystemLocationError`
    subclass when the service is unsupported, denied, disabled or slow.
    """

    async def locate(self) -> UserLocation:
        ...  # pragma: no cover


class LocationDetector(Protocol):
    """Contract for the full location provider chain."""

    async def detect_location(self) -> UserLocation:
        ...  # pragma: no cover


class SessionSource(Protocol):
    """Anything that can list one theater's session days (cache-first or not)."""

    async def get_sessions(
        self,
        city_id: str,
        theater_id: str,
        on_date: date,
    ) -> list[SessionDay]:
        ...  # pragma: no cover
