"""Tests for distance helpers (core/geo.py)."""

from __future__ import annotations

import pytest

from ingresso_finder.core.geo import (
    haversine_km,
    location_label,
    location_source_label,
    sort_theaters_by_distance,
    theater_distance_km,
)
from ingresso_finder.core.models import Geolocation, Theater, UserLocation


class TestDistance:
    def test_known_distance(self) -> None:
        # São Paulo to Rio de Janeiro.
        assert haversine_km(-23.5505, -46.6333, -22.9068, -43.1729) == pytest.approx(361, abs=5)

    def test_same_point(self) -> None:
        assert haversine_km(1.0, 2.0, 1.0, 2.0) == 0.0

    def test_unknown_without_location_or_coordinates(self) -> None:
        theater = Theater("t", "T", geolocation=Geolocation(0.0, 0.0))
        assert theater_distance_km(theater, UserLocation(1.0, 1.0)) is None
        assert theater_distance_km(Theater("t", "T"), UserLocation(1.0, 1.0)) is None
        assert theater_distance_km(Theater("t", "T", geolocation=Geolocation(1, 1)), None) is None

    def test_sort_puts_unknown_last_by_name(self) -> None:
        here = UserLocation(-23.55, -46.63)
        theaters = [
            Theater("z", "Zeta"),
            Theater("far", "Far", geolocation=Geolocation(-22.9, -43.17)),
            Theater("a", "Alpha"),
            Theater("near", "Near", geolocation=Geolocation(-23.56, -46.64)),
        ]
        assert [t.id for t in sort_theaters_by_distance(theaters, here)] == ["near", "far", "a", "z"]


class TestLabels:
    @pytest.mark.parametrize(
        ("source", "expected"),
        [
            ("", ""),
            ("system", "via system"),
            ("ipapi.co", "via IP (ipapi.co)"),
            ("GPS", "via GPS"),
        ],
    )
    def test_source_label(self, source: str, expected: str) -> None:
        assert location_source_label(source) == expected

    def test_location_label(self) -> None:
        location = UserLocation(0, 0, city="Recife", region="PE", source="system")
        assert location_label(location) == "Recife, PE (via system)"
        assert location_label(UserLocation(0, 0, source="system")) == "via system"
        assert location_label(None) == ""
