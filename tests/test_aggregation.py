"""Tests for cross-theater aggregation (core/aggregation.py)."""

from __future__ import annotations

import asyncio
from datetime import date, datetime
from typing import Any

import pytest

from ingresso_finder.core.aggregation import AggregationEngine, movie_key, select_day
from ingresso_finder.core.models import (
    Geolocation,
    MovieCatalogEntry,
    Room,
    SessionDay,
    SessionRecord,
    Theater,
    UserLocation,
)
from ingresso_finder.exceptions import ApiError, InvalidRequestError, NotFoundError

DAY = date(2025, 3, 10)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _session(session_id: str, hour: int, room: str = "") -> SessionRecord:
    return SessionRecord(id=session_id, starts_at=datetime(2025, 3, 10, hour, 0), room=room)


def _movie(movie_id: str = "m1", title: str = "Dune", *sessions: SessionRecord, room: str = "Sala 1") -> MovieCatalogEntry:
    return MovieCatalogEntry(id=movie_id, title=title, rooms=(Room(room, tuple(sessions)),))


def _day(*movies: MovieCatalogEntry, on: str = "2025-03-10") -> SessionDay:
    return SessionDay(date=on, movies=tuple(movies))


class _Source:
    """Scripted per-theater session source that records peak concurrency."""

    def __init__(self, results: dict[str, Any], delay: float = 0.0) -> None:
        self.results = results
        self.delay = delay
        self.active = 0
        self.peak = 0
        self.calls: list[tuple[str, str, date]] = []

    async def get_sessions(self, city_id: str, theater_id: str, on_date: date) -> list[SessionDay]:
        self.calls.append((city_id, theater_id, on_date))
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            await asyncio.sleep(self.delay)
            result = self.results[theater_id]
            if isinstance(result, BaseException):
                raise result
            return result
        finally:
            self.active -= 1


def _theaters(*ids: str) -> list[Theater]:
    return [Theater(tid, f"Theater {tid}") for tid in ids]


# ---------------------------------------------------------------------------
# Helpers under test
# ---------------------------------------------------------------------------

class TestSelectDay:
    def test_matching_date(self) -> None:
        days = [_day(on="2025-03-09"), _day(on="2025-03-10")]
        assert select_day(days, DAY) is days[1]

    def test_falls_back_to_first(self) -> None:
        days = [_day(on="2025-03-12")]
        assert select_day(days, DAY) is days[0]

    def test_empty(self) -> None:
        assert select_day([], DAY) is None


class TestMovieKey:
    def test_id_wins(self) -> None:
        assert movie_key(MovieCatalogEntry(id="7", title="X")) == "id:7"

    def test_titles_when_no_id(self) -> None:
        movie = MovieCatalogEntry(id=" ", title=" Dune ", original_title="DUNE")
        assert movie_key(movie) == "dune|dune"


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class TestAggregationEngine:
    def test_same_movie_merges_across_theaters(self) -> None:
        source = _Source(
            {
                "A": [_day(_movie("m1", "X", _session("a1", 19)))],
                "B": [_day(_movie("m1", "X", _session("b1", 21)))],
            },
        )
        result = asyncio.run(AggregationEngine(source).aggregate("1", _theaters("A", "B"), DAY))
        assert len(result.movies) == 1
        sessions = result.movies[0].sessions
        assert [(s.session.id, s.theater.id) for s in sessions] == [("a1", "A"), ("b1", "B")]
        assert result.failed_count == 0
        assert result.ignored_count == 0

    def test_not_found_and_empty_days_are_ignored(self) -> None:
        source = _Source(
            {
                "A": [_day(_movie("m1", "X", _session("a1", 19)))],
                "B": NotFoundError(404, "Not Found", "/x"),
                "C": [],
                "D": [_day()],
            },
        )
        result = asyncio.run(AggregationEngine(source).aggregate("1", _theaters("A", "B", "C", "D"), DAY))
        assert result.ignored_count == 3
        assert result.failed_count == 0
        assert len(result.movies) == 1

    def test_failures_are_counted_not_raised(self) -> None:
        source = _Source(
            {
                "A": ApiError(500, "Server Error", "/x"),
                "B": [_day(_movie("m1", "X", _session("b1", 19)))],
            },
        )
        result = asyncio.run(AggregationEngine(source).aggregate("1", _theaters("A", "B"), DAY))
        assert result.failed_count == 1
        assert not result.no_sessions

    def test_all_failed_means_no_sessions(self) -> None:
        source = _Source({"A": ApiError(500, "", "/x")})
        result = asyncio.run(AggregationEngine(source).aggregate("1", _theaters("A"), DAY))
        assert result.no_sessions
        assert result.failed_count == 1

    def test_order_is_independent_of_completion(self) -> None:
        class _Reversed(_Source):
            async def get_sessions(self, city_id: str, theater_id: str, on_date: date) -> list[SessionDay]:
                await asyncio.sleep(0.02 if theater_id == "A" else 0.0)
                return self.results[theater_id]

        source = _Reversed(
            {
                "A": [_day(_movie("m1", "X", _session("a1", 22)))],
                "B": [_day(_movie("m1", "X", _session("b1", 10)))],
            },
        )
        result = asyncio.run(AggregationEngine(source).aggregate("1", _theaters("A", "B"), DAY))
        assert [s.session.id for s in result.movies[0].sessions] == ["a1", "b1"]

    def test_metadata_from_first_theater_and_movies_sorted(self) -> None:
        source = _Source(
            {
                "A": [_day(_movie("m2", "Zorro", _session("a1", 19)), _movie("m1", "Alien v1", _session("a2", 20)))],
                "B": [_day(_movie("m1", "Alien v2", _session("b1", 21)))],
            },
        )
        result = asyncio.run(AggregationEngine(source).aggregate("1", _theaters("A", "B"), DAY))
        assert [m.movie.title for m in result.movies] == ["Alien v1", "Zorro"]
        assert result.movies[0].movie.rooms == ()

    def test_blank_session_room_takes_room_name(self) -> None:
        source = _Source({"A": [_day(_movie("m1", "X", _session("a1", 19), room="Sala 7"))]})
        result = asyncio.run(AggregationEngine(source).aggregate("1", _theaters("A"), DAY))
        assert result.movies[0].sessions[0].session.room == "Sala 7"

    def test_distance_is_attached(self) -> None:
        theater = Theater("A", "A", geolocation=Geolocation(-23.55, -46.63))
        source = _Source({"A": [_day(_movie("m1", "X", _session("a1", 19)))]})
        location = UserLocation(-23.55, -46.63)
        result = asyncio.run(AggregationEngine(source).aggregate("1", [theater], DAY, location))
        assert result.movies[0].sessions[0].distance_km == pytest.approx(0.0, abs=1e-6)

    def test_concurrency_is_bounded(self) -> None:
        ids = [str(i) for i in range(12)]
        source = _Source({tid: [] for tid in ids}, delay=0.01)
        asyncio.run(AggregationEngine(source, max_concurrency=3).aggregate("1", _theaters(*ids), DAY))
        assert source.peak <= 3
        assert len(source.calls) == 12

    def test_no_theaters_is_rejected(self) -> None:
        with pytest.raises(InvalidRequestError):
            asyncio.run(AggregationEngine(_Source({})).aggregate("1", [], DAY))

    def test_cancellation_propagates(self) -> None:
        source = _Source({"A": asyncio.CancelledError(), "B": []})
        with pytest.raises(asyncio.CancelledError):
            asyncio.run(AggregationEngine(source).aggregate("1", _theaters("A", "B"), DAY))

    def test_caller_cancellation_cancels_fetches(self) -> None:
        source = _Source({"A": []}, delay=10)

        async def scenario() -> None:
            task = asyncio.create_task(AggregationEngine(source).aggregate("1", _theaters("A"), DAY))
            await asyncio.sleep(0.01)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task
            await asyncio.sleep(0)
            assert source.active == 0

        asyncio.run(scenario())
