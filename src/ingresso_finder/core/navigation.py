"""The navigation state machine.

:class:`NavigationStateMachine` is the only writer of in-memory browsing
state.  It never awaits: :meth:`~NavigationStateMachine.update` takes one
message, mutates state synchronously and returns the background
:data:`~ingresso_finder.core.messages.Command` s to schedule.  Each
command resolves to exactly one result message, which the runtime feeds
back through ``update``.  No ordering is assumed between results of
different commands; a loading result that no longer matches the current
loading screen is dropped.

Key handling is layered: printable text, space and backspace go to the
active list's filter first; everything else (or text the list does not
take) is a navigation command.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from datetime import date, timedelta
from functools import partial
from typing import Any, TypeVar

from ingresso_finder.core.aggregation import AggregationEngine, select_day
from ingresso_finder.core.catalog_service import CatalogService
from ingresso_finder.core.items import (
    CityItem,
    DateItem,
    MovieItem,
    SectionItem,
    SessionItem,
    TheaterItem,
    TheaterVisibilityItem,
    build_city_items,
    build_date_items,
    build_global_session_items,
    build_movie_items,
    build_movie_items_from_catalog,
    build_section_items,
    build_session_items,
    build_theater_items,
    build_theater_visibility_items,
    seat_sections,
)
from ingresso_finder.core.listing import ListModel
from ingresso_finder.core.messages import (
    BrowserOpened,
    CatalogLoaded,
    CitiesLoaded,
    CityResolved,
    Command,
    Key,
    KeyPressed,
    LocationDetected,
    Message,
    Resized,
    SeatCountLoaded,
    SeatMapLoaded,
    SessionDetailsLoaded,
    SessionsLoaded,
    TheatersLoaded,
)
from ingresso_finder.core.models import (
    City,
    RecentCity,
    SeatCount,
    SeatCountState,
    SessionRecord,
    Theater,
    UserLocation,
)
from ingresso_finder.core.protocols import LocationDetector, PreferenceStore
from ingresso_finder.core.screens import (
    ErrorScreen,
    LoadingCities,
    LoadingSeatMap,
    LoadingSessions,
    LoadingTheaters,
    ManageTheaters,
    Screen,
    SelectCity,
    SelectDate,
    SelectMovie,
    SelectSection,
    SelectTheater,
    ShowSeatMap,
    ShowSessions,
    recovery_target,
)
from ingresso_finder.core.seat_scorer import compute_seat_counts
from ingresso_finder.exceptions import (
    IngressoError,
    NoSessionsError,
    is_cancellation,
    is_not_found,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

CHECKOUT_URL = "https://checkout.ingresso.com/assentos?sessionId={session_id}&partnership=home"
MIN_LIST_HEIGHT = 6
HEADER_ROWS = 6

_MOVEMENT_KEYS = {"up", "down", "pgup", "pgdown", "home", "end"}


async def _capture(awaitable: Awaitable[T]) -> tuple[T | None, Exception | None]:
    """Await *awaitable*, returning ``(value, None)`` or ``(None, error)``.

    Cancellation and deadline errors are never captured.
    """
    try:
        return await awaitable, None
    except Exception as exc:  # noqa: BLE001
        if is_cancellation(exc):
            raise
        return None, exc


class NavigationStateMachine:
    """Coordinates screens, lists and background work for one session.

    Parameters
    ----------
    catalog:
        Cache-first catalog reads.
    preferences:
        Recent cities/theaters and theater visibility.
    aggregator:
        Cross-theater fan-out engine.
    locator:
        Location provider chain.
    open_url:
        Opens a URL in the user's browser; returns ``False`` on failure.
    today:
        Returns the current local date.
    initial_city:
        City name to jump to at startup, skipping the city list.
    """

    def __init__(
        self,
        catalog: CatalogService,
        preferences: PreferenceStore,
        aggregator: AggregationEngine,
        locator: LocationDetector,
        *,
        open_url: Callable[[str], bool] | None = None,
        today: Callable[[], date] = date.today,
        initial_city: str | None = None,
    ) -> None:
        self._catalog = catalog
        self._preferences = preferences
        self._aggregator = aggregator
        self._locator = locator
        self._open_url = open_url
        self._today = today
        self._initial_city = (initial_city or "").strip()

        self.screen: Screen = LoadingCities()
        self.on_date: date = today()
        self.width = 0
        self.height = 0
        self.quit_requested = False
        self.show_seat_numbers = True

        self.cities: list[City] = []
        self.theaters: list[Theater] = []
        self.hidden: set[str] = set()
        self.location: UserLocation | None = None
        self.seat_counts: dict[str, SeatCountState] = {}

        self.city_list: ListModel[CityItem] = ListModel("Select City")
        self.theater_list: ListModel[TheaterItem] = ListModel("Theaters")
        self.theater_prefs: ListModel[TheaterVisibilityItem] = ListModel(
            "Visible Theaters",
            filtering_enabled=False,
        )
        self.movie_list: ListModel[MovieItem] = ListModel("Select Movie")
        self.session_list: ListModel[SessionItem] = ListModel("Sessions")
        self.section_list: ListModel[SectionItem] = ListModel("Select Section")
        self.date_list: ListModel[DateItem] = ListModel("Select Date", filtering_enabled=False)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def start(self) -> list[Command]:
        """Initial commands: resolve the override or most recent city, else list cities."""
        if self._initial_city:
            return [partial(self._resolve_city, RecentCity(name=self._initial_city))]
        recent = self._startup_recent_city()
        if recent is not None:
            return [partial(self._resolve_city, recent)]
        return [self._fetch_cities]

    def update(self, msg: Message) -> list[Command]:
        """Apply one message and return the commands to schedule."""
        if isinstance(msg, KeyPressed):
            return self._on_key(msg.key)
        if isinstance(msg, Resized):
            return self._on_resize(msg.width, msg.height)
        if isinstance(msg, CitiesLoaded):
            return self._on_cities(msg)
        if isinstance(msg, CityResolved):
            return self._on_city_resolved(msg)
        if isinstance(msg, TheatersLoaded):
            return self._on_theaters(msg)
        if isinstance(msg, SessionsLoaded):
            return self._on_sessions(msg)
        if isinstance(msg, CatalogLoaded):
            return self._on_catalog(msg)
        if isinstance(msg, LocationDetected):
            return self._on_location(msg)
        if isinstance(msg, SessionDetailsLoaded):
            return self._on_session_details(msg)
        if isinstance(msg, SeatMapLoaded):
            return self._on_seat_map(msg)
        if isinstance(msg, SeatCountLoaded):
            return self._on_seat_count(msg)
        if isinstance(msg, BrowserOpened):
            if msg.error is not None:
                self._fail(msg.error)
            return []
        logger.debug("unhandled_message type=%s", type(msg).__name__)
        return []

    def active_list(self) -> ListModel[Any] | None:
        screen = self.screen
        if isinstance(screen, SelectCity):
            return self.city_list
        if isinstance(screen, SelectTheater):
            return self.theater_list
        if isinstance(screen, ManageTheaters):
            return self.theater_prefs
        if isinstance(screen, SelectMovie):
            return self.movie_list
        if isinstance(screen, ShowSessions):
            return self.session_list
        if isinstance(screen, SelectSection):
            return self.section_list
        if isinstance(screen, SelectDate):
            return self.date_list
        return None

    def visible_theaters(self) -> list[Theater]:
        return [t for t in self.theaters if t.id not in self.hidden]

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    def _on_key(self, key: Key) -> list[Command]:
        active = self.active_list()
        if active is not None and active.filtering_enabled and self._feed_filter(active, key):
            return self._prefetch_seat_counts()

        screen = self.screen
        if key.name == "ctrl+c" or key.is_rune("q"):
            self.quit_requested = True
            return []
        if key.name == "esc":
            if active is not None and active.is_filtered:
                active.reset_filter()
                return self._prefetch_seat_counts()
            return self._go_back()
        if key.is_rune("n") and isinstance(screen, ShowSeatMap):
            self.show_seat_numbers = not self.show_seat_numbers
            return []
        if key.name == "tab" and isinstance(screen, ShowSessions):
            return self._open_seat_map(screen)
        if key.name == "ctrl+l" and isinstance(screen, (SelectTheater, ManageTheaters)):
            return [self._detect_location]
        if key.is_rune("x") and isinstance(screen, ManageTheaters):
            return self._toggle_visibility()
        if key.name == "ctrl+f" and isinstance(screen, SelectTheater):
            return self._browse_across_theaters(screen.city)
        if key.name == "ctrl+t" and isinstance(screen, SelectTheater):
            self.screen = ManageTheaters(screen.city)
            self._refresh_theater_lists()
            return []
        if key.name == "ctrl+d":
            return self._open_date_picker(screen)
        if key.name == "enter":
            return self._on_enter(screen)
        if key.name in _MOVEMENT_KEYS and active is not None:
            _move(active, key.name)
            return self._prefetch_seat_counts()
        return []

    @staticmethod
    def _feed_filter(active: ListModel[Any], key: Key) -> bool:
        if key.name == "rune" and key.text:
            active.append_filter(key.text)
            return True
        if key.name == "space":
            active.append_filter(" ")
            return True
        if key.name in ("backspace", "delete"):
            return active.pop_filter()
        return False

    def _go_back(self) -> list[Command]:
        screen = self.screen
        if isinstance(screen, SelectTheater):
            if not self.city_list.items:
                self.screen = LoadingCities()
                return [self._fetch_cities]
            self.screen = SelectCity()
        elif isinstance(screen, (SelectMovie, ManageTheaters)):
            self.screen = SelectTheater(screen.city)
        elif isinstance(screen, ShowSessions):
            self.screen = SelectMovie(screen.city, screen.theater)
        elif isinstance(screen, LoadingSessions):
            self.screen = SelectTheater(screen.city)
        elif isinstance(screen, (SelectSection, ShowSeatMap, LoadingSeatMap)):
            self.screen = screen.parent
        elif isinstance(screen, SelectDate):
            self.screen = screen.return_to
        elif isinstance(screen, ErrorScreen):
            self.screen = screen.recover_to
        return []

    def _on_enter(self, screen: Screen) -> list[Command]:
        if isinstance(screen, ErrorScreen):
            if screen.next_day is not None:
                self.on_date = self.on_date + timedelta(days=1)
                return self._load_sessions(screen.next_day)
            self.screen = screen.recover_to
            return []
        if isinstance(screen, SelectCity):
            item = self.city_list.selected
            if item is None:
                return []
            return self._choose_city(item.city)
        if isinstance(screen, SelectTheater):
            theater_item = self.theater_list.selected
            if theater_item is None:
                return []
            self._remember_theater(screen.city, theater_item.theater)
            return self._load_sessions(LoadingSessions(screen.city, theater_item.theater))
        if isinstance(screen, SelectMovie):
            return self._open_movie(screen)
        if isinstance(screen, ManageTheaters):
            return self._toggle_visibility()
        if isinstance(screen, ShowSessions):
            session_item = self.session_list.selected
            if session_item is None:
                return []
            url = CHECKOUT_URL.format(session_id=session_item.session.id)
            return [partial(self._open_browser, url)]
        if isinstance(screen, SelectSection):
            section_item = self.section_list.selected
            if section_item is None:
                return []
            loading = LoadingSeatMap(screen.parent, screen.session, section_item.section)
            self.screen = loading
            return [partial(self._fetch_seat_map, screen.session.id, section_item.section.id)]
        if isinstance(screen, SelectDate):
            date_item = self.date_list.selected
            if date_item is None:
                return []
            self.on_date = date_item.day
            if screen.refetch is not None:
                return self._load_sessions(screen.refetch)
            self.screen = screen.return_to
            return []
        return []

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _choose_city(self, city: City) -> list[Command]:
        try:
            self._preferences.remember_city(city)
        except IngressoError as exc:
            logger.warning("remember_city_failed city=%s reason=%s", city.id, exc)
        self.screen = LoadingTheaters(city)
        return [partial(self._fetch_theaters, city.id)]

    def _remember_theater(self, city: City, theater: Theater) -> None:
        try:
            self._preferences.remember_theater(city.id, theater)
        except IngressoError as exc:
            logger.warning("remember_theater_failed theater=%s reason=%s", theater.id, exc)

    def _load_sessions(self, loading: LoadingSessions) -> list[Command]:
        """Enter *loading* and fetch for the working date."""
        if loading.theater is None:
            return self._browse_across_theaters(loading.city)
        self.screen = loading
        return [partial(self._fetch_sessions, loading.city.id, loading.theater.id, self.on_date)]

    def _browse_across_theaters(self, city: City) -> list[Command]:
        visible = self.visible_theaters()
        if not visible:
            self._fail(IngressoError("no visible theaters selected"), recover_to=SelectTheater(city))
            return []
        self.screen = LoadingSessions(city, None)
        return [partial(self._fetch_catalog, city.id, tuple(visible), self.on_date)]

    def _open_movie(self, screen: SelectMovie) -> list[Command]:
        item = self.movie_list.selected
        if item is None:
            return []
        self.session_list.title = f"Sessions • {item.movie.title}"
        self.session_list.reset_filter()
        self.session_list.select(0)
        self.screen = ShowSessions(screen.city, screen.theater, item.movie, item.global_sessions)
        self._rebuild_sessions()
        return self._prefetch_seat_counts()

    def _open_seat_map(self, screen: ShowSessions) -> list[Command]:
        item = self.session_list.selected
        if item is None:
            return []
        if not item.session.has_seat_selection:
            self._fail(
                IngressoError("this session does not support seat selection"),
                recover_to=screen,
            )
            return []
        self.screen = LoadingSeatMap(screen, item.session)
        return [partial(self._fetch_session_details, item.session.id)]

    def _open_date_picker(self, screen: Screen) -> list[Command]:
        if isinstance(screen, (SelectCity, SelectTheater)):
            picker = SelectDate(screen)
        elif isinstance(screen, (SelectMovie, ShowSessions)):
            picker = SelectDate(screen, LoadingSessions(screen.city, screen.theater))
        elif isinstance(screen, ErrorScreen) and screen.next_day is not None:
            picker = SelectDate(screen, screen.next_day)
        else:
            return []
        self.date_list.set_items(build_date_items(self.on_date, self._today()))
        self.date_list.select(0)
        self.screen = picker
        return []

    def _toggle_visibility(self) -> list[Command]:
        screen = self.screen
        item = self.theater_prefs.selected
        if not isinstance(screen, ManageTheaters) or item is None:
            return []
        hidden = not item.hidden
        try:
            self._preferences.set_theater_hidden(screen.city.id, item.theater.id, hidden)
        except IngressoError as exc:
            self._fail(exc, recover_to=screen)
            return []
        if hidden:
            self.hidden.add(item.theater.id)
        else:
            self.hidden.discard(item.theater.id)

        index = self.theater_prefs.index
        self._refresh_theater_lists()
        self.theater_prefs.select(index)
        return []

    def _fail(
        self,
        error: Exception | str,
        *,
        recover_to: Screen | None = None,
        next_day: LoadingSessions | None = None,
    ) -> None:
        message = str(error)
        hint = error.hint if isinstance(error, IngressoError) else None
        target = recover_to if recover_to is not None else recovery_target(self.screen)
        logger.info("navigation_error message=%s recover_to=%s", message, type(target).__name__)
        self.screen = ErrorScreen(message, target, next_day, hint)

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def _on_cities(self, msg: CitiesLoaded) -> list[Command]:
        if not isinstance(self.screen, LoadingCities):
            return self._drop(msg)
        if msg.error is not None:
            self._fail(msg.error)
            return []
        self.cities = list(msg.cities)
        self.city_list.set_items(build_city_items(self.cities, self._recent_cities()))
        self.city_list.select(0)
        self.screen = SelectCity()
        return []

    def _on_city_resolved(self, msg: CityResolved) -> list[Command]:
        if not isinstance(self.screen, LoadingCities):
            return self._drop(msg)
        if msg.error is not None or msg.city is None:
            logger.info("startup_city_unresolved reason=%s", msg.error)
            return [self._fetch_cities]
        return self._choose_city(msg.city)

    def _on_theaters(self, msg: TheatersLoaded) -> list[Command]:
        screen = self.screen
        if not isinstance(screen, LoadingTheaters) or screen.city.id != msg.city_id:
            return self._drop(msg)
        if msg.error is not None:
            self._fail(msg.error)
            return []
        try:
            hidden = self._preferences.load_hidden_theaters(screen.city.id)
        except IngressoError as exc:
            self._fail(exc)
            return []
        self.theaters = list(msg.theaters)
        self.hidden = set(hidden)
        self.seat_counts.clear()
        self._refresh_theater_lists()
        self.theater_list.select(0)
        self.screen = SelectTheater(screen.city)
        return []

    def _on_sessions(self, msg: SessionsLoaded) -> list[Command]:
        screen = self.screen
        if (
            not isinstance(screen, LoadingSessions)
            or screen.theater is None
            or screen.theater.id != msg.theater_id
            or msg.on_date != self.on_date
        ):
            return self._drop(msg)
        if msg.error is not None:
            self._fail(msg.error, recover_to=SelectTheater(screen.city))
            return []
        if not msg.days:
            self._fail(
                NoSessionsError(f"no sessions found for this theater on {self.on_date.isoformat()}"),
                recover_to=SelectTheater(screen.city),
                next_day=screen,
            )
            return []
        self.movie_list.title = "Select Movie"
        self.movie_list.reset_filter()
        self.movie_list.set_items(build_movie_items(select_day(msg.days, self.on_date)))
        self.movie_list.select(0)
        self.screen = SelectMovie(screen.city, screen.theater)
        return []

    def _on_catalog(self, msg: CatalogLoaded) -> list[Command]:
        screen = self.screen
        if (
            not isinstance(screen, LoadingSessions)
            or screen.theater is not None
            or msg.on_date != self.on_date
        ):
            return self._drop(msg)
        if msg.error is not None:
            next_day = screen if isinstance(msg.error, NoSessionsError) else None
            self._fail(msg.error, recover_to=SelectTheater(screen.city), next_day=next_day)
            return []
        movies = msg.result.movies if msg.result is not None else ()
        self.movie_list.title = "Select Movie • All Theaters"
        self.movie_list.reset_filter()
        self.movie_list.set_items(build_movie_items_from_catalog(movies))
        self.movie_list.select(0)
        self.screen = SelectMovie(screen.city, None)
        return []

    def _on_location(self, msg: LocationDetected) -> list[Command]:
        if msg.error is not None:
            self._fail(f"failed to detect current location: {msg.error}")
            return []
        self.location = msg.location
        self._refresh_theater_lists()
        return []

    def _on_session_details(self, msg: SessionDetailsLoaded) -> list[Command]:
        screen = self.screen
        if (
            not isinstance(screen, LoadingSeatMap)
            or screen.section is not None
            or screen.session.id != msg.session_id
        ):
            return self._drop(msg)
        if msg.error is not None or msg.detail is None:
            self._fail(msg.error or IngressoError("no seat map available for this session"))
            return []
        sections = seat_sections(msg.detail.sections)
        if not sections:
            self._fail(IngressoError("no seat map available for this session"))
            return []
        if len(sections) == 1:
            self.screen = LoadingSeatMap(screen.parent, screen.session, sections[0])
            return [partial(self._fetch_seat_map, screen.session.id, sections[0].id)]
        self.section_list.reset_filter()
        self.section_list.set_items(build_section_items(sections))
        self.section_list.select(0)
        self.screen = SelectSection(screen.parent, screen.session)
        return []

    def _on_seat_map(self, msg: SeatMapLoaded) -> list[Command]:
        screen = self.screen
        if (
            not isinstance(screen, LoadingSeatMap)
            or screen.section is None
            or screen.session.id != msg.session_id
            or screen.section.id != msg.section_id
        ):
            return self._drop(msg)
        if msg.error is not None or msg.seat_map is None:
            self._fail(msg.error or IngressoError("no seat map available for this session"))
            return []
        self.screen = ShowSeatMap(screen.parent, screen.session, screen.section, msg.seat_map)
        return []

    def _on_seat_count(self, msg: SeatCountLoaded) -> list[Command]:
        self.seat_counts[msg.session_id] = msg.state
        if isinstance(self.screen, ShowSessions):
            self._rebuild_sessions()
        return []

    def _on_resize(self, width: int, height: int) -> list[Command]:
        self.width, self.height = width, height
        list_height = max(MIN_LIST_HEIGHT, height - HEADER_ROWS)
        for model in self._lists():
            model.set_height(list_height)
        return self._prefetch_seat_counts()

    def _drop(self, msg: Message) -> list[Command]:
        logger.debug(
            "stale_result_dropped type=%s screen=%s",
            type(msg).__name__,
            type(self.screen).__name__,
        )
        return []

    # ------------------------------------------------------------------
    # List helpers
    # ------------------------------------------------------------------

    def _lists(self) -> Sequence[ListModel[Any]]:
        return (
            self.city_list,
            self.theater_list,
            self.theater_prefs,
            self.movie_list,
            self.session_list,
            self.section_list,
            self.date_list,
        )

    def _refresh_theater_lists(self) -> None:
        city = getattr(self.screen, "city", None)
        city_id = city.id if isinstance(city, City) else ""
        self.theater_list.set_items(
            build_theater_items(
                self.theaters,
                city_id,
                self.hidden,
                self._recent_theaters(),
                self.location,
            ),
        )
        self.theater_prefs.set_items(
            build_theater_visibility_items(self.theaters, self.hidden, self.location),
        )

    def _rebuild_sessions(self) -> None:
        screen = self.screen
        if not isinstance(screen, ShowSessions):
            return
        if screen.sessions:
            items = build_global_session_items(screen.sessions, self.seat_counts)
        else:
            items = build_session_items(screen.movie, self.seat_counts)
        self.session_list.set_items(items)

    def _prefetch_seat_counts(self) -> list[Command]:
        """Schedule seat counts for the visible page, at most once per session."""
        if not isinstance(self.screen, ShowSessions):
            return []
        commands: list[Command] = []
        for item in self.session_list.page():
            session = item.session
            if not session.has_seat_selection or not session.id:
                continue
            if session.id in self.seat_counts:
                continue
            self.seat_counts[session.id] = SeatCountState(loaded=False)
            commands.append(partial(self._fetch_seat_count, session))
        return commands

    def _recent_cities(self) -> list[RecentCity]:
        try:
            return self._preferences.load_recent_cities()
        except IngressoError as exc:
            logger.warning("recent_cities_unreadable reason=%s", exc)
            return []

    def _recent_theaters(self) -> list[Any]:
        try:
            return self._preferences.load_recent_theaters()
        except IngressoError as exc:
            logger.warning("recent_theaters_unreadable reason=%s", exc)
            return []

    def _startup_recent_city(self) -> RecentCity | None:
        recents = self._recent_cities()
        if not recents:
            return None
        recent = recents[0]
        if not recent.id.strip() and not recent.name.strip():
            return None
        return recent

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def _fetch_cities(self) -> Message:
        cities, error = await _capture(self._catalog.get_cities())
        return CitiesLoaded(tuple(cities or ()), error)

    async def _resolve_city(self, recent: RecentCity) -> Message:
        city, error = await _capture(self._catalog.resolve_city(recent))
        return CityResolved(city, error)

    async def _fetch_theaters(self, city_id: str) -> Message:
        theaters, error = await _capture(self._catalog.get_theaters(city_id))
        return TheatersLoaded(city_id, tuple(theaters or ()), error)

    async def _fetch_sessions(self, city_id: str, theater_id: str, on_date: date) -> Message:
        days, error = await _capture(self._catalog.get_sessions(city_id, theater_id, on_date))
        if error is not None and is_not_found(error):
            error = None
        return SessionsLoaded(city_id, theater_id, on_date, tuple(days or ()), error)

    async def _fetch_catalog(
        self,
        city_id: str,
        theaters: tuple[Theater, ...],
        on_date: date,
    ) -> Message:
        result, error = await _capture(
            self._aggregator.aggregate(city_id, theaters, on_date, self.location),
        )
        if result is not None and result.no_sessions:
            error = NoSessionsError(
                f"no sessions found in visible theaters on {on_date.isoformat()}",
                failed_count=result.failed_count,
                ignored_count=result.ignored_count,
            )
        return CatalogLoaded(city_id, on_date, result, error)

    async def _detect_location(self) -> Message:
        location, error = await _capture(self._locator.detect_location())
        return LocationDetected(location, error)

    async def _fetch_session_details(self, session_id: str) -> Message:
        detail, error = await _capture(self._catalog.get_session_details(session_id))
        return SessionDetailsLoaded(session_id, detail, error)

    async def _fetch_seat_map(self, session_id: str, section_id: str) -> Message:
        seat_map, error = await _capture(self._catalog.get_seat_map(session_id, section_id))
        return SeatMapLoaded(session_id, section_id, seat_map, error)

    async def _fetch_seat_count(self, session: SessionRecord) -> Message:
        detail, error = await _capture(self._catalog.get_session_details(session.id))
        if error is not None or detail is None:
            reason = str(error or "no session details")
            return SeatCountLoaded(session.id, SeatCountState(loaded=True, error=reason))

        total = SeatCount()
        failure: str | None = None
        for section in seat_sections(detail.sections):
            seat_map, section_error = await _capture(
                self._catalog.get_seat_map(session.id, section.id),
            )
            if section_error is not None or seat_map is None:
                failure = str(section_error or "no seat map")
                continue
            total = total + compute_seat_counts(seat_map)
        return SeatCountLoaded(session.id, SeatCountState(loaded=True, count=total, error=failure))

    async def _open_browser(self, url: str) -> Message:
        if self._open_url is None:
            return BrowserOpened(url, IngressoError("no browser available", hint=url))
        opened, error = await _capture(asyncio.to_thread(self._open_url, url))
        if error is None and not opened:
            error = IngressoError("could not open the browser", hint=url)
        return BrowserOpened(url, error)


def _move(model: ListModel[Any], key_name: str) -> None:
    if key_name == "up":
        model.cursor_up()
    elif key_name == "down":
        model.cursor_down()
    elif key_name == "pgup":
        model.page_up()
    elif key_name == "pgdown":
        model.page_down()
    elif key_name == "home":
        model.select(0)
    elif key_name == "end":
        model.select(len(model.visible_items) - 1)
