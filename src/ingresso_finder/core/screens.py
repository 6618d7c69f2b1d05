"""Navigation screens as a tagged union of frozen dataclasses.

Each screen carries only the data it needs, so an illegal combination
(e.g. a seat map without a session) cannot be constructed.  ``None`` for
a ``theater`` means the user is browsing a movie across all visible
theaters.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from ingresso_finder.core.models import (
    City,
    MovieCatalogEntry,
    SeatMap,
    SessionRecord,
    SessionSection,
    SessionWithTheater,
    Theater,
)


@dataclass(frozen=True, slots=True)
class LoadingCities:
    pass


@dataclass(frozen=True, slots=True)
class SelectCity:
    pass


@dataclass(frozen=True, slots=True)
class LoadingTheaters:
    city: City


@dataclass(frozen=True, slots=True)
class SelectTheater:
    city: City


@dataclass(frozen=True, slots=True)
class ManageTheaters:
    city: City


@dataclass(frozen=True, slots=True)
class LoadingSessions:
    city: City
    theater: Theater | None = None

    @property
    def across_theaters(self) -> bool:
        return self.theater is None


@dataclass(frozen=True, slots=True)
class SelectMovie:
    city: City
    theater: Theater | None = None


@dataclass(frozen=True, slots=True)
class ShowSessions:
    city: City
    theater: Theater | None
    movie: MovieCatalogEntry
    sessions: tuple[SessionWithTheater, ...] = ()
    """Theater-tagged sessions; empty for a single-theater browse."""


@dataclass(frozen=True, slots=True)
class SelectDate:
    return_to: Screen
    refetch: LoadingSessions | None = None
    """Fetch to issue with the picked date; ``None`` just returns."""


@dataclass(frozen=True, slots=True)
class LoadingSeatMap:
    parent: ShowSessions
    session: SessionRecord
    section: SessionSection | None = None
    """``None`` while the session's sections are being fetched."""


@dataclass(frozen=True, slots=True)
class SelectSection:
    parent: ShowSessions
    session: SessionRecord


@dataclass(frozen=True, slots=True)
class ShowSeatMap:
    parent: ShowSessions
    session: SessionRecord
    section: SessionSection
    seat_map: SeatMap


@dataclass(frozen=True, slots=True)
class ErrorScreen:
    message: str
    recover_to: Screen
    next_day: LoadingSessions | None = None
    """Fetch to repeat one day later, set only for "no sessions" errors."""

    hint: str | None = None

    @property
    def suggest_next_day(self) -> bool:
        return self.next_day is not None


Screen = Union[
    LoadingCities,
    SelectCity,
    LoadingTheaters,
    SelectTheater,
    ManageTheaters,
    LoadingSessions,
    SelectMovie,
    ShowSessions,
    SelectDate,
    LoadingSeatMap,
    SelectSection,
    ShowSeatMap,
    ErrorScreen,
]

LOADING_SCREENS = (LoadingCities, LoadingTheaters, LoadingSessions, LoadingSeatMap)


def is_loading(screen: Screen) -> bool:
    return isinstance(screen, LOADING_SCREENS)


def recovery_target(screen: Screen) -> Screen:
    """Screen to return to when a fetch started from *screen* fails."""
    if isinstance(screen, (LoadingCities, LoadingTheaters)):
        return SelectCity()
    if isinstance(screen, LoadingSessions):
        return SelectTheater(screen.city)
    if isinstance(screen, LoadingSeatMap):
        return screen.parent
    if isinstance(screen, ErrorScreen):
        return screen.recover_to
    return screen


def screen_city(screen: Screen) -> City | None:
    """City in context for *screen*, looking through pickers and errors."""
    if isinstance(screen, SelectDate):
        return screen_city(screen.return_to)
    if isinstance(screen, ErrorScreen):
        return screen_city(screen.recover_to)
    if isinstance(screen, (LoadingSeatMap, SelectSection, ShowSeatMap)):
        return screen.parent.city
    return getattr(screen, "city", None)


def screen_theater(screen: Screen) -> Theater | None:
    if isinstance(screen, SelectDate):
        return screen_theater(screen.return_to)
    if isinstance(screen, ErrorScreen):
        return screen_theater(screen.recover_to)
    if isinstance(screen, (LoadingSeatMap, SelectSection, ShowSeatMap)):
        return screen.parent.theater
    return getattr(screen, "theater", None)


def across_theaters(screen: Screen) -> bool:
    """Whether *screen* belongs to a cross-theater browse."""
    if isinstance(screen, SelectDate):
        return across_theaters(screen.return_to)
    if isinstance(screen, ErrorScreen):
        return across_theaters(screen.recover_to)
    if isinstance(screen, (LoadingSeatMap, SelectSection, ShowSeatMap)):
        return screen.parent.theater is None
    if isinstance(screen, (LoadingSessions, SelectMovie, ShowSessions)):
        return screen.theater is None
    return False
