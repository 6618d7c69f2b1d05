"""Wire codec — camelCase catalog JSON ↔ domain models.

The persistent cache stores the same wire shape the API returns, so one
set of parsers serves both.  Parsers are lenient: missing keys fall back
to empty values and malformed entries inside lists are skipped.
Anything structurally wrong at the top level raises
:class:`~ingresso_finder.exceptions.DecodeError`.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from ingresso_finder.core.models import (
    City,
    Geolocation,
    MovieCatalogEntry,
    Room,
    Seat,
    SeatLine,
    SeatMap,
    SessionDay,
    SessionDetail,
    SessionRecord,
    SessionSection,
    Theater,
)
from ingresso_finder.exceptions import DecodeError


# ---------------------------------------------------------------------------
# Primitive coercion
# ---------------------------------------------------------------------------

def _str(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _dicts(value: Any) -> list[dict[str, Any]]:
    """Keep only dict entries of a list; anything else yields ``[]``."""
    if not isinstance(value, list):
        return []
    return [entry for entry in value if isinstance(entry, dict)]


def _require_list(payload: Any, what: str) -> list[dict[str, Any]]:
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise DecodeError(f"expected a list of {what}, got {type(payload).__name__}")
    return _dicts(payload)


def _require_dict(payload: Any, what: str) -> dict[str, Any]:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise DecodeError(f"expected a {what} object, got {type(payload).__name__}")
    return payload


def parse_datetime(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp; ``None`` when absent or invalid."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Cities / theaters
# ---------------------------------------------------------------------------

def parse_city(raw: dict[str, Any]) -> City:
    return City(
        id=_str(raw.get("id")),
        name=_str(raw.get("name")),
        uf=_str(raw.get("uf")),
        state=_str(raw.get("state")),
        url_key=_str(raw.get("urlKey")),
        time_zone=_str(raw.get("timeZone")),
    )


def city_to_wire(city: City) -> dict[str, Any]:
    return {
        "id": city.id,
        "name": city.name,
        "uf": city.uf,
        "state": city.state,
        "urlKey": city.url_key,
        "timeZone": city.time_zone,
    }


def parse_cities(payload: Any) -> list[City]:
    return [parse_city(raw) for raw in _require_list(payload, "cities")]


def parse_states(payload: Any) -> list[City]:
    """Flatten ``GET /states`` into a single city list."""
    cities: list[City] = []
    for state in _require_list(payload, "states"):
        cities.extend(parse_city(raw) for raw in _dicts(state.get("cities")))
    return cities


def _parse_geolocation(raw: Any) -> Geolocation | None:
    if not isinstance(raw, dict):
        return None
    return Geolocation(lat=_float(raw.get("lat")), lng=_float(raw.get("lng")))


def parse_theater(raw: dict[str, Any]) -> Theater:
    return Theater(
        id=_str(raw.get("id")),
        name=_str(raw.get("name")),
        address=_str(raw.get("address")),
        neighborhood=_str(raw.get("neighborhood")),
        city=_str(raw.get("city")),
        uf=_str(raw.get("uf")),
        url_key=_str(raw.get("urlKey")),
        geolocation=_parse_geolocation(raw.get("geolocation")),
    )


def theater_to_wire(theater: Theater) -> dict[str, Any]:
    wire: dict[str, Any] = {
        "id": theater.id,
        "name": theater.name,
        "address": theater.address,
        "neighborhood": theater.neighborhood,
        "city": theater.city,
        "uf": theater.uf,
        "urlKey": theater.url_key,
    }
    if theater.geolocation is not None:
        wire["geolocation"] = {
            "lat": theater.geolocation.lat,
            "lng": theater.geolocation.lng,
        }
    return wire


def parse_theaters(payload: Any) -> list[Theater]:
    return [parse_theater(raw) for raw in _require_list(payload, "theaters")]


# ---------------------------------------------------------------------------
# Session days
# ---------------------------------------------------------------------------

def _parse_session(raw: dict[str, Any]) -> SessionRecord:
    raw_date = raw.get("date")
    local = raw_date.get("localDate") if isinstance(raw_date, dict) else None
    raw_types = raw.get("type")
    types = tuple(_str(t) for t in raw_types) if isinstance(raw_types, list) else ()
    return SessionRecord(
        id=_str(raw.get("id")),
        starts_at=parse_datetime(local),
        room=_str(raw.get("room")),
        price=_float(raw.get("price")),
        has_seat_selection=bool(raw.get("hasSeatSelection")),
        types=types,
    )


def _session_to_wire(session: SessionRecord) -> dict[str, Any]:
    return {
        "id": session.id,
        "price": session.price,
        "room": session.room,
        "type": list(session.types),
        "hasSeatSelection": session.has_seat_selection,
        "date": {
            "localDate": session.starts_at.isoformat() if session.starts_at else None,
        },
    }


def _parse_movie(raw: dict[str, Any]) -> MovieCatalogEntry:
    rooms = tuple(
        Room(
            name=_str(room.get("name")),
            sessions=tuple(_parse_session(s) for s in _dicts(room.get("sessions"))),
        )
        for room in _dicts(raw.get("rooms"))
    )
    return MovieCatalogEntry(
        id=_str(raw.get("id")),
        title=_str(raw.get("title")),
        original_title=_str(raw.get("originalTitle")),
        content_rating=_str(raw.get("contentRating")),
        duration=_str(raw.get("duration")),
        rooms=rooms,
    )


def _movie_to_wire(movie: MovieCatalogEntry) -> dict[str, Any]:
    return {
        "id": movie.id,
        "title": movie.title,
        "originalTitle": movie.original_title,
        "contentRating": movie.content_rating,
        "duration": movie.duration,
        "rooms": [
            {"name": room.name, "sessions": [_session_to_wire(s) for s in room.sessions]}
            for room in movie.rooms
        ],
    }


def parse_session_days(payload: Any) -> list[SessionDay]:
    return [
        SessionDay(
            date=_str(raw.get("date")),
            date_formatted=_str(raw.get("dateFormatted")),
            day_of_week=_str(raw.get("dayOfWeek")),
            is_today=bool(raw.get("isToday")),
            movies=tuple(_parse_movie(m) for m in _dicts(raw.get("movies"))),
        )
        for raw in _require_list(payload, "session days")
    ]


def session_day_to_wire(day: SessionDay) -> dict[str, Any]:
    return {
        "date": day.date,
        "dateFormatted": day.date_formatted,
        "dayOfWeek": day.day_of_week,
        "isToday": day.is_today,
        "movies": [_movie_to_wire(m) for m in day.movies],
    }


# ---------------------------------------------------------------------------
# Checkout: session details and seat maps
# ---------------------------------------------------------------------------

def parse_session_detail(payload: Any) -> SessionDetail:
    raw = _require_dict(payload, "session detail")
    sections = tuple(
        SessionSection(
            id=_str(section.get("id")),
            name=_str(section.get("name")),
            capacity=_int(section.get("capacity")),
            has_seat_selection=bool(section.get("hasSeatSelection")),
            layout=_str(section.get("layout")),
            highest_price=_float(section.get("highestPrice")),
            lowest_price=_float(section.get("lowestPrice")),
        )
        for section in _dicts(raw.get("sections"))
    )
    return SessionDetail(id=_str(raw.get("id")), sections=sections)


def parse_seat_map(payload: Any) -> SeatMap:
    raw = _require_dict(payload, "seat map")
    bounds = raw.get("bounds") if isinstance(raw.get("bounds"), dict) else {}
    rows = []
    for line in _dicts(raw.get("lines")):
        line_number = _int(line.get("line"))
        seats = tuple(
            Seat(
                id=_str(seat.get("id")),
                label=_str(seat.get("label")),
                status=_str(seat.get("status")),
                type=_str(seat.get("type")),
                line=_int(seat.get("line")) or line_number,
                column=_int(seat.get("column")),
                row_index=_int(seat.get("rowIndex")),
                column_index=_int(seat.get("columnIndex")),
            )
            for seat in _dicts(line.get("seats"))
        )
        rows.append(SeatLine(line=line_number, seats=seats))
    return SeatMap(
        id=_str(raw.get("id")),
        lines=_int(bounds.get("lines")),
        columns=_int(bounds.get("columns")),
        rows=tuple(rows),
    )
