"""Tests for the pure seat-availability scorer (core/seat_scorer.py)."""

from __future__ import annotations

from ingresso_finder.core.models import Seat, SeatCount, SeatLine, SeatMap
from ingresso_finder.core.seat_scorer import (
    available_columns_by_line,
    compute_seat_counts,
    count_adjacent_pairs,
    front_line_set,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _seat(line: int, column: int, status: str = "Available", **overrides: object) -> Seat:
    defaults: dict[str, object] = {
        "id": f"{line}-{column}",
        "label": f"{chr(64 + line)} {column}",
        "status": status,
        "line": line,
        "column": column,
    }
    defaults.update(overrides)
    return Seat(**defaults)  # type: ignore[arg-type]


def _seat_map(*seats: Seat, lines: int = 10, columns: int = 20) -> SeatMap:
    by_line: dict[int, list[Seat]] = {}
    for seat in seats:
        by_line.setdefault(seat.line, []).append(seat)
    rows = tuple(SeatLine(line, tuple(row)) for line, row in sorted(by_line.items()))
    return SeatMap(id="map", lines=lines, columns=columns, rows=rows)


# ---------------------------------------------------------------------------
# Adjacent pairs
# ---------------------------------------------------------------------------

class TestCountAdjacentPairs:
    def test_greedy_left_to_right(self) -> None:
        assert count_adjacent_pairs({1: [1, 2, 4, 5, 6]}) == 2

    def test_unsorted_columns(self) -> None:
        assert count_adjacent_pairs({1: [6, 1, 5, 4, 2]}) == 2

    def test_three_in_a_row_is_one_pair(self) -> None:
        assert count_adjacent_pairs({1: [3, 4, 5]}) == 1

    def test_no_neighbours(self) -> None:
        assert count_adjacent_pairs({1: [1, 3, 5]}) == 0

    def test_lines_are_independent(self) -> None:
        assert count_adjacent_pairs({1: [1, 2], 2: [1, 2], 3: [7]}) == 2

    def test_empty(self) -> None:
        assert count_adjacent_pairs({}) == 0


# ---------------------------------------------------------------------------
# Front rows
# ---------------------------------------------------------------------------

class TestFrontLineSet:
    def test_highest_lines_are_front(self) -> None:
        seat_map = _seat_map(*(_seat(line, 1) for line in range(1, 7)))
        assert front_line_set(seat_map) == {4, 5, 6}

    def test_fewer_lines_than_count(self) -> None:
        seat_map = _seat_map(_seat(1, 1), _seat(2, 1))
        assert front_line_set(seat_map, 3) == {1, 2}

    def test_empty_map(self) -> None:
        assert front_line_set(SeatMap(id="x")) == set()


# ---------------------------------------------------------------------------
# Full counts
# ---------------------------------------------------------------------------

class TestComputeSeatCounts:
    def test_counts_statuses_and_quality(self) -> None:
        seat_map = _seat_map(
            _seat(1, 1),
            _seat(1, 2),
            _seat(1, 3, "Occupied"),
            _seat(1, 4, "Blocked"),
            _seat(2, 1, "Unavailable"),
            _seat(2, 2, "weird"),
            *(_seat(line, 1) for line in (3, 4, 5)),
        )
        counts = compute_seat_counts(seat_map)
        assert counts.total == 9
        assert counts.available == 5
        assert counts.occupied == 1
        assert counts.blocked == 2
        assert counts.non_ideal_available == 3
        assert counts.ideal_available == 2
        assert counts.pair_available == 1

    def test_ideal_never_negative(self) -> None:
        seat_map = _seat_map(_seat(1, 1), _seat(1, 2))
        counts = compute_seat_counts(seat_map)
        assert counts.non_ideal_available == 2
        assert counts.ideal_available == 0

    def test_accessible_seats_count_as_available(self) -> None:
        seat_map = _seat_map(_seat(1, 1, type="Disability"))
        assert compute_seat_counts(seat_map).available == 1

    def test_available_columns_by_line_skips_taken(self) -> None:
        seat_map = _seat_map(_seat(1, 1), _seat(1, 2, "Occupied"), _seat(2, 5))
        assert available_columns_by_line(seat_map) == {1: [1], 2: [5]}

    def test_empty_map_is_zero(self) -> None:
        assert compute_seat_counts(SeatMap(id="x")) == SeatCount()


class TestSeatCountAddition:
    def test_sum_is_fieldwise(self) -> None:
        a = SeatCount(available=2, total=4, pair_available=1)
        b = SeatCount(available=1, total=2, occupied=1)
        total = a + b
        assert total.available == 3
        assert total.total == 6
        assert total.occupied == 1
        assert total.pair_available == 1
