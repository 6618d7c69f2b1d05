"""Distance helpers for location-aware ordering."""

from __future__ import annotations

import math
from collections.abc import Sequence

from ingresso_finder.core.models import Theater, UserLocation

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two coordinates, in kilometres."""
    lat1_rad, lon1_rad = math.radians(lat1), math.radians(lon1)
    lat2_rad, lon2_rad = math.radians(lat2), math.radians(lon2)
    d_lat = lat2_rad - lat1_rad
    d_lon = lon2_rad - lon1_rad
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def theater_distance_km(
    theater: Theater,
    location: UserLocation | None,
) -> float | None:
    """Return the distance to *theater*, or ``None`` when unknown.

    A theater at ``(0, 0)`` is treated as having no coordinates.
    """
    if location is None or theater.geolocation is None:
        return None
    geo = theater.geolocation
    if geo.lat == 0 and geo.lng == 0:
        return None
    return haversine_km(location.latitude, location.longitude, geo.lat, geo.lng)


def sort_theaters_by_distance(
    theaters: Sequence[Theater],
    location: UserLocation | None,
) -> list[Theater]:
    """Nearest first; theaters without coordinates last, then by name."""

    def key(theater: Theater) -> tuple[int, float, str]:
        distance = theater_distance_km(theater, location)
        if distance is None:
            return (1, 0.0, theater.name.lower())
        return (0, round(distance, 6), theater.name.lower())

    return sorted(theaters, key=key)


def location_source_label(source: str) -> str:
    raw = source.strip()
    if not raw:
        return ""
    normalized = raw.lower()
    if normalized == "system":
        return "via system"
    if "ip" in normalized:
        return f"via IP ({normalized})"
    return f"via {raw}"


def location_label(location: UserLocation | None) -> str:
    """Render ``"City, Region (via …)"`` for the header line."""
    if location is None:
        return ""
    place = ", ".join(part for part in (location.city, location.region) if part.strip())
    source = location_source_label(location.source)
    if place and source:
        return f"{place} ({source})"
    return place or source
