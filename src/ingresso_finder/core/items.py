"""List items and the builders that order them.

Every item exposes ``title``, ``description`` and ``filter_value`` for
:class:`~ingresso_finder.core.listing.ListModel`.  Builders are pure:
they take the catalog data plus preferences and return a new ordered
list.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace
from datetime import date, timedelta

from ingresso_finder.core.geo import sort_theaters_by_distance, theater_distance_km
from ingresso_finder.core.models import (
    City,
    MovieAggregate,
    MovieCatalogEntry,
    RecentCity,
    RecentTheater,
    SeatCountState,
    SessionDay,
    SessionRecord,
    SessionSection,
    SessionWithTheater,
    Theater,
    UserLocation,
)

DATE_PICKER_DAYS = 5


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------

def format_price(price: float) -> str:
    if price <= 0:
        return "-"
    return f"R$ {price:.2f}"


def half_price(price: float) -> float:
    return price / 2 if price > 0 else 0.0


def format_session_types(types: Sequence[str]) -> str:
    """Join type tags, eliding ``Normal``; nothing left means ``Normal``."""
    cleaned = [t.strip() for t in types if t.strip() and t.strip().lower() != "normal"]
    return ", ".join(cleaned) if cleaned else "Normal"


def _join(*parts: str) -> str:
    return " • ".join(part for part in parts if part)


def _distance(distance_km: float | None) -> str:
    return f"{distance_km:.1f} km" if distance_km is not None else ""


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class CityItem:
    city: City
    recent: bool = False

    @property
    def title(self) -> str:
        if self.city.uf:
            return f"{self.city.name} ({self.city.uf})"
        return self.city.name

    @property
    def description(self) -> str:
        return "Recent" if self.recent else self.city.state

    @property
    def filter_value(self) -> str:
        return " ".join((self.city.name, self.city.uf, self.city.state, self.city.url_key)).lower()


@dataclass(frozen=True, slots=True)
class TheaterItem:
    theater: Theater
    recent: bool = False
    distance_km: float | None = None

    @property
    def title(self) -> str:
        return self.theater.name

    @property
    def description(self) -> str:
        return _join(
            "Recent" if self.recent else "",
            self.theater.neighborhood or self.theater.address,
            _distance(self.distance_km),
        )

    @property
    def filter_value(self) -> str:
        t = self.theater
        return " ".join((t.name, t.neighborhood, t.address)).lower()


@dataclass(frozen=True, slots=True)
class TheaterVisibilityItem:
    theater: Theater
    hidden: bool = False
    distance_km: float | None = None

    @property
    def title(self) -> str:
        mark = "[ ]" if self.hidden else "[x]"
        return f"{mark} {self.theater.name}"

    @property
    def description(self) -> str:
        return _join(
            self.theater.neighborhood,
            _distance(self.distance_km),
            "hidden" if self.hidden else "visible",
        )

    @property
    def filter_value(self) -> str:
        t = self.theater
        return " ".join((t.name, t.neighborhood, t.address)).lower()


@dataclass(frozen=True, slots=True)
class MovieItem:
    movie: MovieCatalogEntry
    count: int = 0
    global_sessions: tuple[SessionWithTheater, ...] = ()
    """Theater-tagged sessions when browsing across theaters."""

    @property
    def title(self) -> str:
        return self.movie.title

    @property
    def description(self) -> str:
        return f"{self.count} sessions" if self.count > 0 else ""

    @property
    def filter_value(self) -> str:
        m = self.movie
        return " ".join((m.title, m.original_title, m.content_rating)).lower()


@dataclass(frozen=True, slots=True)
class SessionItem:
    session: SessionRecord
    theater: Theater | None = None
    distance_km: float | None = None
    seats: SeatCountState | None = None

    @property
    def title(self) -> str:
        starts = self.session.starts_at.strftime("%H:%M") if self.session.starts_at else "--:--"
        room = self.session.room.strip() or "Sala"
        if self.theater is not None and self.theater.name:
            return _join(starts, self.theater.name, room)
        return _join(starts, room)

    @property
    def description(self) -> str:
        price = self.session.price
        text = _join(
            _distance(self.distance_km),
            format_session_types(self.session.types),
            f"Full {format_price(price)}",
            f"Half {format_price(half_price(price))}",
        )
        return _join(text, self.seat_hint)

    @property
    def seat_hint(self) -> str:
        if not self.session.has_seat_selection:
            return ""
        state = self.seats
        if state is None or not state.loaded:
            return "seats ..."
        if state.error is not None:
            return "seats n/a"
        c = state.count
        if c.non_ideal_available > 0:
            return (
                f"seats {c.available} (ideal {c.ideal_available} • "
                f"front {c.non_ideal_available} • pairs {c.pair_available})"
            )
        return f"seats {c.available} (ideal {c.ideal_available} • pairs {c.pair_available})"

    @property
    def filter_value(self) -> str:
        theater_name = self.theater.name if self.theater is not None else ""
        return " ".join((*self.session.types, self.session.room, theater_name)).lower()


@dataclass(frozen=True, slots=True)
class SectionItem:
    section: SessionSection

    @property
    def title(self) -> str:
        return self.section.name

    @property
    def description(self) -> str:
        s = self.section
        if s.highest_price > 0 or s.lowest_price > 0:
            return f"R$ {s.lowest_price:.2f} - R$ {s.highest_price:.2f}"
        return ""

    @property
    def filter_value(self) -> str:
        return self.section.name.lower()


@dataclass(frozen=True, slots=True)
class DateItem:
    day: date
    today: date

    @property
    def title(self) -> str:
        label = f"{self.day.strftime('%a')} • {self.day.strftime('%d/%m')}"
        if self.day == self.today:
            return f"{label} (Today)"
        return label

    @property
    def description(self) -> str:
        return self.day.isoformat()

    @property
    def filter_value(self) -> str:
        return self.title.lower()


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------

def build_city_items(cities: Sequence[City], recents: Sequence[RecentCity]) -> list[CityItem]:
    """Recent cities first (in recency order), then the rest by name."""
    by_id = {city.id: city for city in cities}
    by_name = {city.name.lower(): city for city in cities}

    items: list[CityItem] = []
    used: set[str] = set()
    for recent in recents:
        city = by_id.get(recent.id) if recent.id else None
        if city is None and recent.name:
            city = by_name.get(recent.name.lower())
        if city is not None and city.id not in used:
            items.append(CityItem(city, recent=True))
            used.add(city.id)

    remaining = sorted((c for c in cities if c.id not in used), key=lambda c: c.name.lower())
    items.extend(CityItem(city) for city in remaining)
    return items


def is_recent_theater(theater: Theater, city_id: str, recents: Sequence[RecentTheater]) -> bool:
    for recent in recents:
        if recent.city_id and city_id and recent.city_id != city_id:
            continue
        if recent.theater_id and recent.theater_id == theater.id:
            return True
        if recent.name and recent.name.lower() == theater.name.lower():
            return True
    return False


def build_theater_items(
    theaters: Sequence[Theater],
    city_id: str,
    hidden: set[str],
    recents: Sequence[RecentTheater],
    location: UserLocation | None = None,
) -> list[TheaterItem]:
    """Visible theaters: by distance with a location, else recent-first then by name."""
    visible = [t for t in theaters if t.id not in hidden]

    if location is not None:
        return [
            TheaterItem(
                theater,
                recent=is_recent_theater(theater, city_id, recents),
                distance_km=theater_distance_km(theater, location),
            )
            for theater in sort_theaters_by_distance(visible, location)
        ]

    by_id = {t.id: t for t in visible}
    by_name = {t.name.lower(): t for t in visible}
    items: list[TheaterItem] = []
    used: set[str] = set()
    for recent in recents:
        if recent.city_id and recent.city_id != city_id:
            continue
        theater = by_id.get(recent.theater_id) if recent.theater_id else None
        if theater is None and recent.name:
            theater = by_name.get(recent.name.lower())
        if theater is not None and theater.id not in used:
            items.append(TheaterItem(theater, recent=True))
            used.add(theater.id)

    remaining = sorted((t for t in visible if t.id not in used), key=lambda t: t.name.lower())
    items.extend(TheaterItem(theater) for theater in remaining)
    return items


def build_theater_visibility_items(
    theaters: Sequence[Theater],
    hidden: set[str],
    location: UserLocation | None = None,
) -> list[TheaterVisibilityItem]:
    if location is not None:
        ordered = sort_theaters_by_distance(theaters, location)
    else:
        ordered = sorted(theaters, key=lambda t: t.name.lower())
    return [
        TheaterVisibilityItem(
            theater,
            hidden=theater.id in hidden,
            distance_km=theater_distance_km(theater, location),
        )
        for theater in ordered
    ]


def build_movie_items(day: SessionDay | None) -> list[MovieItem]:
    if day is None:
        return []
    items = [MovieItem(movie, count=movie.session_count) for movie in day.movies]
    items.sort(key=lambda item: item.movie.title.lower())
    return items


def build_movie_items_from_catalog(movies: Sequence[MovieAggregate]) -> list[MovieItem]:
    items = [
        MovieItem(aggregate.movie, count=len(aggregate.sessions), global_sessions=aggregate.sessions)
        for aggregate in movies
    ]
    items.sort(key=lambda item: item.movie.title.lower())
    return items


def _start_ts(session: SessionRecord) -> float:
    return session.starts_at.timestamp() if session.starts_at else 0.0


def build_session_items(
    movie: MovieCatalogEntry,
    counts: Mapping[str, SeatCountState],
) -> list[SessionItem]:
    """One theater's sessions for *movie*, by start time."""
    sessions: list[SessionRecord] = []
    for room in movie.rooms:
        for session in room.sessions:
            if not session.room.strip():
                session = replace(session, room=room.name)
            sessions.append(session)
    sessions.sort(key=_start_ts)
    return [SessionItem(session, seats=counts.get(session.id)) for session in sessions]


def build_global_session_items(
    sessions: Sequence[SessionWithTheater],
    counts: Mapping[str, SeatCountState],
) -> list[SessionItem]:
    """Cross-theater sessions: nearest first, then start time, then theater name."""

    def key(entry: SessionWithTheater) -> tuple[int, float, float, str]:
        distance = entry.distance_km
        return (
            0 if distance is not None else 1,
            round(distance, 6) if distance is not None and math.isfinite(distance) else 0.0,
            _start_ts(entry.session),
            entry.theater.name.lower(),
        )

    return [
        SessionItem(
            entry.session,
            theater=entry.theater,
            distance_km=entry.distance_km,
            seats=counts.get(entry.session.id),
        )
        for entry in sorted(sessions, key=key)
    ]


def seat_sections(sections: Sequence[SessionSection]) -> list[SessionSection]:
    """Only sections that sell individual seats."""
    return [section for section in sections if section.has_seat_selection]


def build_section_items(sections: Sequence[SessionSection]) -> list[SectionItem]:
    return sorted((SectionItem(s) for s in sections), key=lambda item: item.section.name.lower())


def build_date_items(base: date, today: date) -> list[DateItem]:
    return [DateItem(base + timedelta(days=offset), today) for offset in range(DATE_PICKER_DAYS)]
