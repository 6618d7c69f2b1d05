"""Core / service layer — pure domain logic and the navigation state machine.

Rules
-----
* No ``print()`` calls and no terminal rendering.
* No direct network or filesystem access; collaborators arrive through
  the protocols in :mod:`ingresso_finder.core.protocols`.
* No imports from ``cli`` or ``infra``.
"""

from ingresso_finder.core.aggregation import AggregationEngine
from ingresso_finder.core.catalog_service import CatalogService
from ingresso_finder.core.models import (
    AggregationResult,
    CacheKind,
    City,
    MovieAggregate,
    MovieCatalogEntry,
    SeatCount,
    SeatMap,
    SessionRecord,
    Theater,
    UserLocation,
)
from ingresso_finder.core.navigation import NavigationStateMachine
from ingresso_finder.core.protocols import (
    CacheStore,
    ContentGateway,
    LocationDetector,
    PreferenceStore,
    SystemLocator,
)
from ingresso_finder.core.seat_scorer import compute_seat_counts

__all__: list[str] = [
    "AggregationEngine",
    "AggregationResult",
    "CacheKind",
    "CacheStore",
    "CatalogService",
    "City",
    "ContentGateway",
    "LocationDetector",
    "MovieAggregate",
    "MovieCatalogEntry",
    "NavigationStateMachine",
    "PreferenceStore",
    "SeatCount",
    "SeatMap",
    "SessionRecord",
    "SystemLocator",
    "Theater",
    "UserLocation",
    "compute_seat_counts",
]
