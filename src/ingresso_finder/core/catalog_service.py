"""Cache-first catalog reads with write-through.

Each read consults the :class:`~ingresso_finder.core.protocols.CacheStore`
first.  A fresh, non-empty entry is returned without touching the
network; anything else (miss, stale, malformed) goes to the
:class:`~ingresso_finder.core.protocols.ContentGateway`, and a non-empty
answer is written back.  Cache problems are logged and never fail a
read; gateway errors propagate unchanged.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date
from typing import Any, TypeVar

from ingresso_finder.core import codec
from ingresso_finder.core.models import (
    CacheKind,
    City,
    RecentCity,
    SeatMap,
    SessionDay,
    SessionDetail,
    Theater,
)
from ingresso_finder.core.protocols import CacheStore, ContentGateway
from ingresso_finder.exceptions import CacheError, IngressoError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CatalogService:
    """Reads the catalog through the persistent cache.

    Parameters
    ----------
    gateway:
        Remote catalog backend.
    cache:
        Envelope store keyed by :class:`CacheKind`.
    """

    def __init__(self, gateway: ContentGateway, cache: CacheStore) -> None:
        self._gateway = gateway
        self._cache = cache

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_cities(self) -> list[City]:
        cached = self._cached(CacheKind.CITIES, (), codec.parse_cities)
        if cached:
            return cached
        cities = await self._gateway.get_cities()
        if cities:
            self._store(CacheKind.CITIES, (), [codec.city_to_wire(c) for c in cities])
        return cities

    async def get_theaters(self, city_id: str) -> list[Theater]:
        cached = self._cached(CacheKind.THEATERS, (city_id,), codec.parse_theaters)
        if cached:
            return cached
        theaters = await self._gateway.get_theaters(city_id)
        if theaters:
            self._store(CacheKind.THEATERS, (city_id,), [codec.theater_to_wire(t) for t in theaters])
        return theaters

    async def get_sessions(self, city_id: str, theater_id: str, on_date: date) -> list[SessionDay]:
        """Session days for one theater; a 404 from the gateway propagates."""
        key = (city_id, theater_id, on_date.isoformat())
        cached = self._cached(CacheKind.SESSIONS, key, codec.parse_session_days)
        if cached:
            return cached
        days = await self._gateway.get_sessions(city_id, theater_id, on_date)
        if days:
            self._store(CacheKind.SESSIONS, key, [codec.session_day_to_wire(d) for d in days])
        return days

    async def get_city_by_name(self, name: str) -> City:
        return await self._gateway.get_city_by_name(name)

    async def get_session_details(self, session_id: str) -> SessionDetail:
        return await self._gateway.get_session_details(session_id)

    async def get_seat_map(self, session_id: str, section_id: str) -> SeatMap:
        return await self._gateway.get_seat_map(session_id, section_id)

    async def resolve_city(self, recent: RecentCity) -> City:
        """Resolve a remembered or requested city.

        The cached city list is searched first (id, then case-insensitive
        name plus state); otherwise the gateway looks the name up.
        """
        city = self.city_from_cache(recent)
        if city is not None:
            return city
        if not recent.name.strip():
            raise IngressoError("recent city not found")
        return await self._gateway.get_city_by_name(recent.name)

    def city_from_cache(self, recent: RecentCity) -> City | None:
        """Match *recent* against the cached city list, stale or not."""
        try:
            data, _fresh = self._cache.load(CacheKind.CITIES)
            cities = codec.parse_cities(data)
        except IngressoError as exc:
            logger.warning("cache_unreadable kind=cities reason=%s", exc)
            return None

        recent_id = recent.id.strip()
        recent_name = recent.name.strip().casefold()
        recent_uf = recent.uf.strip().casefold()
        for city in cities:
            if recent_id and city.id == recent_id:
                return city
            if recent_name and city.name.casefold() == recent_name:
                if not recent_uf or city.uf.casefold() == recent_uf:
                    return city
        return None

    # ------------------------------------------------------------------
    # Cache helpers
    # ------------------------------------------------------------------

    def _cached(self, kind: CacheKind, key: tuple[str, ...], parse: Callable[[Any], list[T]]) -> list[T]:
        try:
            data, fresh = self._cache.load(kind, *key)
            if not fresh or not data:
                return []
            return parse(data)
        except IngressoError as exc:
            logger.warning("cache_unreadable kind=%s key=%s reason=%s", kind.prefix, key, exc)
            return []

    def _store(self, kind: CacheKind, key: tuple[str, ...], data: Any) -> None:
        try:
            self._cache.save(kind, *key, data=data)
        except CacheError as exc:
            logger.warning("cache_write_failed kind=%s key=%s reason=%s", kind.prefix, key, exc)
