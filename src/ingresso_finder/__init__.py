"""ingresso-finder — interactive terminal browser for movie sessions.

Browse city → theater → movie → session → seat on top of the Ingresso
catalog API, with a local time-boxed cache and location-aware ordering.
"""

from ingresso_finder.version import __version__

__all__: list[str] = ["__version__"]
