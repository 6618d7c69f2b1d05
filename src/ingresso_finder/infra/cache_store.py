"""File-backed persistent cache and preference records.

Layout
------
Cache directory (one envelope file per kind/key)::

    cities.json
    theaters_<cityId>.json
    sessions_<cityId>_<theaterId>_<date>.json

Each holds ``{"updated_at": <ISO timestamp>, "data": <wire payload>}``.

Config directory (small read-modify-write records)::

    history.json              recent cities
    theaters.json             recent theaters
    theater_visibility.json   hidden theater ids per city

Rules
-----
* A missing file is a cache miss, never an error.
* A malformed file raises :class:`CacheDecodeError` — it is surfaced,
  not silently ignored.  The city history alone also accepts the legacy
  bare-list-of-names schema.
* Writes overwrite the whole file and create directories as needed.
  There is no cross-process locking: a single interactive instance is
  assumed and a write race only loses the last writer.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ingresso_finder.core.models import CacheKind, City, RecentCity, RecentTheater, Theater
from ingresso_finder.exceptions import CacheDecodeError, CacheError

logger = logging.getLogger(__name__)

MAX_RECENT_CITIES = 8
MAX_RECENT_THEATERS = 8

_CITY_HISTORY_FILE = "history.json"
_THEATER_HISTORY_FILE = "theaters.json"
_VISIBILITY_FILE = "theater_visibility.json"


def cache_filename(kind: CacheKind, *key: str) -> str:
    """``<prefix>[_<key>...].json``; key parts must be non-empty path-safe strings."""
    if len(key) != kind.arity:
        raise CacheError(
            f"cache kind {kind.prefix} expects {kind.arity} key part(s), got {len(key)}",
        )
    parts = [part.strip() for part in key]
    if any(not part or "/" in part or "\\" in part for part in parts):
        raise CacheError(f"invalid cache key for {kind.prefix}: {key!r}")
    return "_".join([kind.prefix, *parts]) + ".json"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _same_name(a: str, b: str) -> bool:
    """Case-insensitive equality where an empty side never matches."""
    return bool(a) and bool(b) and a.casefold() == b.casefold()


class FileCacheStore:
    """Durable TTL cache plus recency/visibility preferences.

    Parameters
    ----------
    cache_dir:
        Directory for catalog envelopes.
    config_dir:
        Directory for history and visibility records.
    clock:
        Returns the current aware datetime; injectable for TTL tests.
    """

    def __init__(
        self,
        cache_dir: Path,
        config_dir: Path,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._cache_dir = Path(cache_dir)
        self._config_dir = Path(config_dir)
        self._clock = clock

    # ------------------------------------------------------------------
    # Envelope cache
    # ------------------------------------------------------------------

    def path_for(self, kind: CacheKind, *key: str) -> Path:
        return self._cache_dir / cache_filename(kind, *key)

    def load(self, kind: CacheKind, *key: str) -> tuple[Any, bool]:
        """Return ``(data, is_fresh)`` for one cache entry.

        Raises
        ------
        CacheDecodeError
            If the envelope is malformed.
        CacheError
            If the file exists but cannot be read.
        """
        path = self.path_for(kind, *key)
        raw = self._read_json(path)
        if raw is None:
            logger.debug("cache_load_miss path=%s", path)
            return None, False

        if not isinstance(raw, dict) or "data" not in raw:
            raise CacheDecodeError(f"malformed cache envelope: {path}")
        try:
            updated_at = datetime.fromisoformat(str(raw.get("updated_at")))
        except ValueError as exc:
            raise CacheDecodeError(f"malformed cache timestamp: {path}") from exc
        if updated_at.tzinfo is None:
            updated_at = updated_at.replace(tzinfo=timezone.utc)

        fresh = self._clock() - updated_at <= kind.ttl
        logger.debug("cache_load_hit path=%s fresh=%s", path, fresh)
        return raw["data"], fresh

    def save(self, kind: CacheKind, *key: str, data: Any) -> None:
        """Overwrite one cache entry with a fresh envelope."""
        envelope = {"updated_at": self._clock().isoformat(), "data": data}
        path = self.path_for(kind, *key)
        self._write_json(path, envelope)
        logger.debug("cache_saved path=%s", path)

    # ------------------------------------------------------------------
    # Recent cities
    # ------------------------------------------------------------------

    def load_recent_cities(self) -> list[RecentCity]:
        """Most recent first.  Accepts the legacy list-of-names schema."""
        path = self._config_dir / _CITY_HISTORY_FILE
        raw = self._read_json(path)
        if raw is None:
            return []
        if isinstance(raw, dict) and isinstance(raw.get("cities", []), list):
            return [
                RecentCity(
                    id=str(entry.get("id") or ""),
                    name=str(entry.get("name") or ""),
                    uf=str(entry.get("uf") or ""),
                )
                for entry in raw.get("cities", [])
                if isinstance(entry, dict)
            ]
        if isinstance(raw, list) and all(isinstance(name, str) for name in raw):
            return [RecentCity(name=name) for name in raw if name]
        raise CacheDecodeError("invalid city history format")

    def remember_city(self, city: City) -> None:
        """Move *city* to the front of the history, capped at 8."""
        history = self._load_or_reset(self.load_recent_cities, _CITY_HISTORY_FILE)
        entries = [RecentCity(id=city.id, name=city.name, uf=city.uf)]
        for existing in history:
            if existing.id and existing.id == city.id:
                continue
            if _same_name(existing.name, city.name) and (
                not existing.uf or _same_name(existing.uf, city.uf)
            ):
                continue
            entries.append(existing)
            if len(entries) >= MAX_RECENT_CITIES:
                break

        payload = {
            "cities": [{"id": e.id, "name": e.name, "uf": e.uf} for e in entries],
        }
        self._write_json(self._config_dir / _CITY_HISTORY_FILE, payload)

    # ------------------------------------------------------------------
    # Recent theaters
    # ------------------------------------------------------------------

    def load_recent_theaters(self) -> list[RecentTheater]:
        path = self._config_dir / _THEATER_HISTORY_FILE
        raw = self._read_json(path)
        if raw is None:
            return []
        if not isinstance(raw, dict) or not isinstance(raw.get("theaters", []), list):
            raise CacheDecodeError("invalid theater history format")
        return [
            RecentTheater(
                city_id=str(entry.get("city_id") or ""),
                theater_id=str(entry.get("theater_id") or ""),
                name=str(entry.get("name") or ""),
            )
            for entry in raw.get("theaters", [])
            if isinstance(entry, dict)
        ]

    def remember_theater(self, city_id: str, theater: Theater) -> None:
        """Move *theater* to the front of the history, capped at 8."""
        history = self._load_or_reset(self.load_recent_theaters, _THEATER_HISTORY_FILE)
        entries = [RecentTheater(city_id=city_id, theater_id=theater.id, name=theater.name)]
        for existing in history:
            same_city = existing.city_id == city_id
            if same_city and existing.theater_id and existing.theater_id == theater.id:
                continue
            if same_city and _same_name(existing.name, theater.name):
                continue
            entries.append(existing)
            if len(entries) >= MAX_RECENT_THEATERS:
                break

        payload = {
            "theaters": [
                {"city_id": e.city_id, "theater_id": e.theater_id, "name": e.name}
                for e in entries
            ],
        }
        self._write_json(self._config_dir / _THEATER_HISTORY_FILE, payload)

    # ------------------------------------------------------------------
    # Theater visibility
    # ------------------------------------------------------------------

    def load_hidden_theaters(self, city_id: str) -> set[str]:
        if not city_id.strip():
            return set()
        hidden_by_city = self._load_visibility()
        return {tid for tid in hidden_by_city.get(city_id, []) if tid}

    def set_theater_hidden(self, city_id: str, theater_id: str, hidden: bool) -> None:
        """Hide or unhide one theater.  Idempotent in both directions."""
        city_id = city_id.strip()
        theater_id = theater_id.strip()
        if not city_id or not theater_id:
            raise CacheError("city id and theater id are required")

        hidden_by_city = self._load_visibility()
        current = set(hidden_by_city.get(city_id, []))
        if hidden:
            current.add(theater_id)
        else:
            current.discard(theater_id)

        if current:
            hidden_by_city[city_id] = sorted(current)
        else:
            hidden_by_city.pop(city_id, None)
        self._write_json(
            self._config_dir / _VISIBILITY_FILE,
            {"hidden_by_city": hidden_by_city},
        )

    def _load_visibility(self) -> dict[str, list[str]]:
        raw = self._read_json(self._config_dir / _VISIBILITY_FILE)
        if raw is None:
            return {}
        hidden = raw.get("hidden_by_city") if isinstance(raw, dict) else None
        if hidden is None and isinstance(raw, dict):
            return {}
        if not isinstance(hidden, dict):
            raise CacheDecodeError("invalid theater visibility format")
        return {
            str(city): [str(tid) for tid in ids]
            for city, ids in hidden.items()
            if isinstance(ids, list)
        }

    # ------------------------------------------------------------------
    # File helpers
    # ------------------------------------------------------------------

    def _load_or_reset(self, loader: Callable[[], list[Any]], name: str) -> list[Any]:
        try:
            return loader()
        except CacheError:
            logger.warning("history_reset file=%s", name, exc_info=True)
            return []

    @staticmethod
    def _read_json(path: Path) -> Any:
        """Return parsed JSON, or ``None`` when *path* does not exist."""
        try:
            text = path.read_text("utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise CacheError(f"cannot read {path}: {exc}") from exc
        try:
            return json.loads(text)
        except ValueError as exc:
            raise CacheDecodeError(f"malformed JSON in {path}: {exc}") from exc

    @staticmethod
    def _write_json(path: Path, payload: Any) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), "utf-8")
        except OSError as exc:
            raise CacheError(f"cannot write {path}: {exc}") from exc
