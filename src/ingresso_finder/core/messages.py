"""Messages consumed by the navigation state machine.

Input events (:class:`KeyPressed`, :class:`Resized`) come from the
terminal; every other message is the single terminal result of one
background command.  Results carry the request identity so that stale
answers can be recognised and dropped.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import date
from typing import Union

from ingresso_finder.core.models import (
    AggregationResult,
    City,
    SeatCountState,
    SeatMap,
    SessionDay,
    SessionDetail,
    Theater,
    UserLocation,
)


# ---------------------------------------------------------------------------
# Terminal input
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Key:
    """A normalized key press.

    ``name`` is ``"rune"`` for printable text (carried in ``text``) or a
    symbolic name such as ``"enter"``, ``"esc"``, ``"space"``,
    ``"backspace"``, ``"up"``, ``"pgdown"``, ``"tab"`` or ``"ctrl+d"``.
    """

    name: str
    text: str = ""

    def is_rune(self, value: str) -> bool:
        return self.name == "rune" and self.text == value


@dataclass(frozen=True, slots=True)
class KeyPressed:
    key: Key


@dataclass(frozen=True, slots=True)
class Resized:
    width: int
    height: int


# ---------------------------------------------------------------------------
# Background results
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class CitiesLoaded:
    cities: tuple[City, ...] = ()
    error: Exception | None = None


@dataclass(frozen=True, slots=True)
class CityResolved:
    city: City | None = None
    error: Exception | None = None


@dataclass(frozen=True, slots=True)
class TheatersLoaded:
    city_id: str
    theaters: tuple[Theater, ...] = ()
    error: Exception | None = None


@dataclass(frozen=True, slots=True)
class SessionsLoaded:
    city_id: str
    theater_id: str
    on_date: date
    days: tuple[SessionDay, ...] = ()
    error: Exception | None = None


@dataclass(frozen=True, slots=True)
class CatalogLoaded:
    city_id: str
    on_date: date
    result: AggregationResult | None = None
    error: Exception | None = None


@dataclass(frozen=True, slots=True)
class LocationDetected:
    location: UserLocation | None = None
    error: Exception | None = None


@dataclass(frozen=True, slots=True)
class SessionDetailsLoaded:
    session_id: str
    detail: SessionDetail | None = None
    error: Exception | None = None


@dataclass(frozen=True, slots=True)
class SeatMapLoaded:
    session_id: str
    section_id: str
    seat_map: SeatMap | None = None
    error: Exception | None = None


@dataclass(frozen=True, slots=True)
class SeatCountLoaded:
    session_id: str
    state: SeatCountState


@dataclass(frozen=True, slots=True)
class BrowserOpened:
    url: str
    error: Exception | None = None


Message = Union[
    KeyPressed,
    Resized,
    CitiesLoaded,
    CityResolved,
    TheatersLoaded,
    SessionsLoaded,
    CatalogLoaded,
    LocationDetected,
    SessionDetailsLoaded,
    SeatMapLoaded,
    SeatCountLoaded,
    BrowserOpened,
]

Command = Callable[[], Awaitable[Message]]
"""A unit of background work that resolves to exactly one message."""
