"""Pure seat-availability scoring over a seat map.

Every function in this module is a **pure** transformation — no I/O,
no side effects, fully deterministic.

Rules
-----
* The last ``front_rows`` distinct line numbers are the *front rows*
  (closest to the screen).  Available seats there are "non ideal".
* ``ideal_available = max(0, available - non_ideal_available)``.
* Adjacent pairs are counted per line, greedily left-to-right over the
  sorted available columns; a seat used by one pair is never reused.
  This undercounts compared to a maximum matching and must stay that
  way — the displayed figures depend on it.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping

from ingresso_finder.core.models import SeatCount, SeatMap

DEFAULT_FRONT_ROWS = 3


def front_line_set(seat_map: SeatMap, count: int = DEFAULT_FRONT_ROWS) -> set[int]:
    """Return the ``count`` highest line numbers present in *seat_map*."""
    lines = sorted({seat.line for seat in seat_map.iter_seats() if seat.line > 0})
    if not lines or count <= 0:
        return set()
    return set(lines[-count:])


def count_adjacent_pairs(columns_by_line: Mapping[int, Iterable[int]]) -> int:
    """Count disjoint consecutive column pairs, greedily per line."""
    count = 0
    for columns in columns_by_line.values():
        ordered = sorted(columns)
        i = 0
        while i < len(ordered) - 1:
            if ordered[i] + 1 == ordered[i + 1]:
                count += 1
                i += 2
                continue
            i += 1
    return count


def available_columns_by_line(seat_map: SeatMap) -> dict[int, list[int]]:
    """Group the columns of available seats by line number."""
    columns: dict[int, list[int]] = defaultdict(list)
    for seat in seat_map.iter_seats():
        if seat.normalized_status == "available" and seat.column > 0:
            columns[seat.line].append(seat.column)
    return dict(columns)


def compute_seat_counts(
    seat_map: SeatMap,
    front_rows: int = DEFAULT_FRONT_ROWS,
) -> SeatCount:
    """Derive a :class:`SeatCount` from a single pass over *seat_map*."""
    front = front_line_set(seat_map, front_rows)
    available = occupied = blocked = total = non_ideal = 0

    for seat in seat_map.iter_seats():
        total += 1
        status = seat.normalized_status
        if status == "available":
            available += 1
            if seat.line in front:
                non_ideal += 1
        elif status == "occupied":
            occupied += 1
        elif status == "blocked":
            blocked += 1

    return SeatCount(
        available=available,
        occupied=occupied,
        blocked=blocked,
        total=total,
        non_ideal_available=non_ideal,
        ideal_available=max(0, available - non_ideal),
        pair_available=count_adjacent_pairs(available_columns_by_line(seat_map)),
    )
