"""Infrastructure layer — external system integration.

This layer wraps all interaction with the Ingresso HTTP APIs, the IP
geolocation services, the native location tool and the local cache
files.  Every raw third-party exception is caught here and re-raised
as an :class:`~ingresso_finder.exceptions.IngressoError` subclass;
cancellation always propagates unchanged.

Rules
-----
* No imports from ``cli``.
* No user-facing output (no ``print()``, no Rich rendering).
* Must expose clean, typed interfaces consumed by the core layer.
"""

from ingresso_finder.infra.cache_store import FileCacheStore
from ingresso_finder.infra.ingresso_gateway import IngressoGateway, RetryPolicy
from ingresso_finder.infra.location import LocationProvider, LocationResolver
from ingresso_finder.infra.system_location import CoreLocationCliLocator

__all__: list[str] = [
    "CoreLocationCliLocator",
    "FileCacheStore",
    "IngressoGateway",
    "LocationProvider",
    "LocationResolver",
    "RetryPolicy",
]
