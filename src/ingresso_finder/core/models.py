"""Domain models for ingresso-finder.

All models are **frozen** dataclasses — immutable value objects with no
behaviour beyond data access and a few derived properties.  They carry
zero I/O and no dependencies on external packages.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum


# ---------------------------------------------------------------------------
# Places
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class City:
    """A city served by the catalog."""

    id: str
    name: str
    uf: str = ""
    """Two-letter state code (e.g. ``SP``)."""

    state: str = ""
    url_key: str = ""
    time_zone: str = ""


@dataclass(frozen=True, slots=True)
class Geolocation:
    lat: float
    lng: float


@dataclass(frozen=True, slots=True)
class Theater:
    """A movie theater in a city."""

    id: str
    name: str
    address: str = ""
    neighborhood: str = ""
    city: str = ""
    uf: str = ""
    url_key: str = ""
    geolocation: Geolocation | None = None
    """Coordinates, or ``None`` when the catalog does not publish them."""


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class SessionRecord:
    """A single screening instance."""

    id: str
    starts_at: datetime | None = None
    room: str = ""
    price: float = 0.0
    has_seat_selection: bool = False
    types: tuple[str, ...] = ()
    """Type tags such as ``Dublado``, ``Legendado`` or ``3D``."""


@dataclass(frozen=True, slots=True)
class Room:
    name: str
    sessions: tuple[SessionRecord, ...] = ()


@dataclass(frozen=True, slots=True)
class MovieCatalogEntry:
    """A movie plus its rooms and sessions for one theater on one day."""

    id: str
    title: str
    original_title: str = ""
    content_rating: str = ""
    duration: str = ""
    rooms: tuple[Room, ...] = ()

    @property
    def session_count(self) -> int:
        return sum(len(room.sessions) for room in self.rooms)


@dataclass(frozen=True, slots=True)
class SessionDay:
    """All movies one theater shows on one calendar day."""

    date: str
    """ISO date (``YYYY-MM-DD``)."""

    date_formatted: str = ""
    day_of_week: str = ""
    is_today: bool = False
    movies: tuple[MovieCatalogEntry, ...] = ()


@dataclass(frozen=True, slots=True)
class SessionWithTheater:
    """One entry in a cross-theater session list."""

    session: SessionRecord
    theater: Theater
    distance_km: float | None = None


@dataclass(frozen=True, slots=True)
class MovieAggregate:
    """A movie merged across theaters."""

    movie: MovieCatalogEntry
    """Movie metadata with ``rooms`` stripped."""

    sessions: tuple[SessionWithTheater, ...] = ()


@dataclass(frozen=True, slots=True)
class AggregationResult:
    """Outcome of a fan-out across theaters."""

    movies: tuple[MovieAggregate, ...]
    failed_count: int = 0
    ignored_count: int = 0

    @property
    def no_sessions(self) -> bool:
        return len(self.movies) == 0


# ---------------------------------------------------------------------------
# Seats
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class SessionSection:
    """A seat-selling area of a session (e.g. a room or a VIP block)."""

    id: str
    name: str
    capacity: int = 0
    has_seat_selection: bool = False
    layout: str = ""
    highest_price: float = 0.0
    lowest_price: float = 0.0


@dataclass(frozen=True, slots=True)
class SessionDetail:
    id: str
    sections: tuple[SessionSection, ...] = ()


@dataclass(frozen=True, slots=True)
class Seat:
    """A single cell of a seat map.

    ``line`` and ``column`` are 1-based grid positions; a higher ``line``
    is closer to the screen.
    """

    id: str
    label: str = ""
    status: str = ""
    type: str = ""
    line: int = 0
    column: int = 0
    row_index: int = 0
    column_index: int = 0

    @property
    def normalized_status(self) -> str:
        """Return ``available``, ``occupied``, ``blocked`` or ``unknown``."""
        status = self.status.strip().lower()
        if status in ("available", "occupied"):
            return status
        if status in ("blocked", "unavailable"):
            return "blocked"
        return "unknown"

    @property
    def is_accessible(self) -> bool:
        return self.type.strip().lower() == "disability"


@dataclass(frozen=True, slots=True)
class SeatLine:
    line: int
    seats: tuple[Seat, ...] = ()


@dataclass(frozen=True, slots=True)
class SeatMap:
    """A bounded grid of seats for one section."""

    id: str
    lines: int = 0
    """Grid height."""

    columns: int = 0
    """Grid width."""

    rows: tuple[SeatLine, ...] = ()

    def iter_seats(self):
        for row in self.rows:
            yield from row.seats


@dataclass(frozen=True, slots=True)
class SeatCount:
    """Availability counters derived from a seat map.

    All counters are non-negative; counts from several sections are
    combined with ``+``.
    """

    available: int = 0
    occupied: int = 0
    blocked: int = 0
    total: int = 0
    non_ideal_available: int = 0
    ideal_available: int = 0
    pair_available: int = 0

    def __add__(self, other: SeatCount) -> SeatCount:
        return SeatCount(
            available=self.available + other.available,
            occupied=self.occupied + other.occupied,
            blocked=self.blocked + other.blocked,
            total=self.total + other.total,
            non_ideal_available=self.non_ideal_available + other.non_ideal_available,
            ideal_available=self.ideal_available + other.ideal_available,
            pair_available=self.pair_available + other.pair_available,
        )


@dataclass(frozen=True, slots=True)
class SeatCountState:
    """Lazy seat-count slot for one session.

    A slot with ``loaded=False`` marks a fetch that is in flight.
    """

    loaded: bool = False
    count: SeatCount = field(default_factory=SeatCount)
    error: str | None = None


# ---------------------------------------------------------------------------
# User context
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class UserLocation:
    """The detected current location of the user."""

    latitude: float
    longitude: float
    city: str = ""
    region: str = ""
    country: str = ""
    source: str = ""
    """``system`` or the name of the network provider that answered."""


@dataclass(frozen=True, slots=True)
class RecentCity:
    id: str = ""
    name: str = ""
    uf: str = ""


@dataclass(frozen=True, slots=True)
class RecentTheater:
    city_id: str = ""
    theater_id: str = ""
    name: str = ""


# ---------------------------------------------------------------------------
# Cache namespaces
# ---------------------------------------------------------------------------

class CacheKind(Enum):
    """Cache namespaces with their file prefix, key arity and TTL."""

    CITIES = ("cities", 0, timedelta(days=7))
    THEATERS = ("theaters", 1, timedelta(hours=72))
    SESSIONS = ("sessions", 3, timedelta(minutes=10))

    def __init__(self, prefix: str, arity: int, ttl: timedelta) -> None:
        self.prefix = prefix
        self.arity = arity
        self.ttl = ttl
