"""Cross-theater movie aggregation.

Fans out one session fetch per theater (bounded by a semaphore), funnels
the outcomes through an :class:`asyncio.Queue` and merges them in a
single consumer, so the merge never races and its output does not
depend on completion order.

Outcome per theater
-------------------
* success with movies on the day → merged;
* ``NotFoundError`` or an empty day → ``ignored_count``;
* any other non-cancellation failure → ``failed_count``.

Neither kind of failure aborts the run.  Cancelling the caller cancels
every outstanding fetch.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from datetime import date

from ingresso_finder.core.geo import theater_distance_km
from ingresso_finder.core.models import (
    AggregationResult,
    MovieAggregate,
    MovieCatalogEntry,
    SessionDay,
    SessionWithTheater,
    Theater,
    UserLocation,
)
from ingresso_finder.core.protocols import SessionSource
from ingresso_finder.exceptions import InvalidRequestError, is_cancellation, is_not_found

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 6


def select_day(days: Sequence[SessionDay], on_date: date) -> SessionDay | None:
    """Return the day matching *on_date*, else the first day, else ``None``."""
    if not days:
        return None
    target = on_date.isoformat()
    for day in days:
        if day.date == target:
            return day
    return days[0]


def movie_key(movie: MovieCatalogEntry) -> str:
    """Merge key: the stable id when present, else normalized titles."""
    if movie.id.strip():
        return f"id:{movie.id}"
    return f"{movie.title.strip().lower()}|{movie.original_title.strip().lower()}"


def _start_key(entry: SessionWithTheater) -> float:
    starts_at = entry.session.starts_at
    return starts_at.timestamp() if starts_at is not None else 0.0


@dataclass
class _Bucket:
    movie: MovieCatalogEntry
    order: int
    entries: list[tuple[int, SessionWithTheater]] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class _Outcome:
    order: int
    theater: Theater
    days: list[SessionDay] | None = None
    error: BaseException | None = None


class AggregationEngine:
    """Merges every theater's catalog for one day into per-movie entries.

    Parameters
    ----------
    source:
        Session lister, usually the cache-first catalog service.
    max_concurrency:
        Upper bound on in-flight fetches regardless of theater count.
    """

    def __init__(self, source: SessionSource, max_concurrency: int = DEFAULT_MAX_CONCURRENCY) -> None:
        self._source = source
        self._max_concurrency = max(1, max_concurrency)

    async def aggregate(
        self,
        city_id: str,
        theaters: Sequence[Theater],
        on_date: date,
        location: UserLocation | None = None,
    ) -> AggregationResult:
        if not theaters:
            raise InvalidRequestError("no theaters available")

        semaphore = asyncio.Semaphore(self._max_concurrency)
        queue: asyncio.Queue[_Outcome] = asyncio.Queue()

        async def worker(order: int, theater: Theater) -> None:
            async with semaphore:
                try:
                    days = await self._source.get_sessions(city_id, theater.id, on_date)
                except (Exception, asyncio.CancelledError) as exc:  # noqa: BLE001
                    queue.put_nowait(_Outcome(order, theater, error=exc))
                    if is_cancellation(exc):
                        raise
                    return
            queue.put_nowait(_Outcome(order, theater, days=days))

        tasks = [
            asyncio.create_task(worker(order, theater))
            for order, theater in enumerate(theaters)
        ]
        outcomes: list[_Outcome] = []
        try:
            for _ in tasks:
                outcome = await queue.get()
                if outcome.error is not None and is_cancellation(outcome.error):
                    raise outcome.error
                outcomes.append(outcome)
        finally:
            for task in tasks:
                task.cancel()

        result = self._merge(outcomes, on_date, location)
        logger.info(
            "aggregate_done city=%s date=%s theaters=%s movies=%s failed=%s ignored=%s",
            city_id,
            on_date.isoformat(),
            len(theaters),
            len(result.movies),
            result.failed_count,
            result.ignored_count,
        )
        return result

    @staticmethod
    def _merge(
        outcomes: Sequence[_Outcome],
        on_date: date,
        location: UserLocation | None,
    ) -> AggregationResult:
        buckets: dict[str, _Bucket] = {}
        failed = ignored = 0

        for outcome in outcomes:
            if outcome.error is not None:
                if is_not_found(outcome.error):
                    ignored += 1
                else:
                    failed += 1
                    logger.warning(
                        "aggregate_theater_failed theater=%s reason=%s",
                        outcome.theater.id,
                        outcome.error,
                    )
                continue

            day = select_day(outcome.days or [], on_date)
            if day is None or not day.movies:
                ignored += 1
                continue

            distance = theater_distance_km(outcome.theater, location)
            for movie in day.movies:
                key = movie_key(movie)
                bucket = buckets.get(key)
                if bucket is None or outcome.order < bucket.order:
                    metadata = replace(movie, rooms=())
                    if bucket is None:
                        bucket = buckets[key] = _Bucket(metadata, outcome.order)
                    else:
                        bucket.movie, bucket.order = metadata, outcome.order
                for room in movie.rooms:
                    for session in room.sessions:
                        if not session.room.strip():
                            session = replace(session, room=room.name)
                        bucket.entries.append(
                            (outcome.order, SessionWithTheater(session, outcome.theater, distance)),
                        )

        movies = []
        for bucket in buckets.values():
            entries = sorted(bucket.entries, key=lambda item: (item[0], _start_key(item[1])))
            movies.append(MovieAggregate(bucket.movie, tuple(entry for _, entry in entries)))
        movies.sort(key=lambda aggregate: (aggregate.movie.title.lower(), movie_key(aggregate.movie)))

        return AggregationResult(
            movies=tuple(movies),
            failed_count=failed,
            ignored_count=ignored,
        )
