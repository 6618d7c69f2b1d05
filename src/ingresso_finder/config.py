"""Runtime configuration from the environment.

:func:`load_config` reads an optional ``.env`` file (python-dotenv), then
the ``INGRESSO_*`` environment variables, into a frozen :class:`Config`.
Malformed numbers fall back to their defaults with a warning; they never
abort startup.

:func:`setup_logging` sends log records to a file, because the terminal
belongs to the TUI while it runs.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

from ingresso_finder.infra.ingresso_gateway import DEFAULT_API_URL, DEFAULT_CHECKOUT_URL

logger = logging.getLogger(__name__)

APP_NAME = "ingresso-finder"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True, slots=True)
class Config:
    """Effective settings for one run."""

    city: str | None = None
    """Initial-city override; skips the city list at startup."""

    location_debug: bool = False
    api_url: str = DEFAULT_API_URL
    checkout_url: str = DEFAULT_CHECKOUT_URL
    cache_dir: Path = Path(".")
    config_dir: Path = Path(".")
    max_attempts: int = 3
    retry_base_ms: int = 200
    retry_cap_ms: int = 1200
    http_timeout: float = 12.0
    aggregate_concurrency: int = 6
    log_level: str = "WARNING"
    log_file: Path | None = None


# ---------------------------------------------------------------------------
# Directories
# ---------------------------------------------------------------------------

def default_cache_dir(env: Mapping[str, str] | None = None, platform: str | None = None) -> Path:
    """Per-user cache directory following the host OS convention."""
    env = os.environ if env is None else env
    platform = sys.platform if platform is None else platform
    home = Path(env.get("HOME") or Path.home())
    if platform == "darwin":
        return home / "Library" / "Caches" / APP_NAME
    if platform.startswith("win"):
        base = env.get("LOCALAPPDATA") or str(home / "AppData" / "Local")
        return Path(base) / APP_NAME / "Cache"
    base = env.get("XDG_CACHE_HOME") or str(home / ".cache")
    return Path(base) / APP_NAME


def default_config_dir(env: Mapping[str, str] | None = None, platform: str | None = None) -> Path:
    """Per-user config directory following the host OS convention."""
    env = os.environ if env is None else env
    platform = sys.platform if platform is None else platform
    home = Path(env.get("HOME") or Path.home())
    if platform == "darwin":
        return home / "Library" / "Application Support" / APP_NAME
    if platform.startswith("win"):
        base = env.get("APPDATA") or str(home / "AppData" / "Roaming")
        return Path(base) / APP_NAME
    base = env.get("XDG_CONFIG_HOME") or str(home / ".config")
    return Path(base) / APP_NAME


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------

def _text(env: Mapping[str, str], name: str) -> str | None:
    value = env.get(name, "").strip()
    return value or None


def _int(env: Mapping[str, str], name: str, default: int, *, minimum: int = 1) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("config_invalid name=%s value=%r default=%s", name, raw, default)
        return default
    if value < minimum:
        logger.warning("config_out_of_range name=%s value=%s default=%s", name, value, default)
        return default
    return value


def _float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("config_invalid name=%s value=%r default=%s", name, raw, default)
        return default
    if value <= 0:
        logger.warning("config_out_of_range name=%s value=%s default=%s", name, value, default)
        return default
    return value


def _bool(env: Mapping[str, str], name: str, default: bool = False) -> bool:
    raw = env.get(name, "").strip().lower()
    if not raw:
        return default
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    logger.warning("config_invalid name=%s value=%r default=%s", name, raw, default)
    return default


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def load_config(
    env: Mapping[str, str] | None = None,
    *,
    dotenv: bool = True,
    platform: str | None = None,
) -> Config:
    """Build a :class:`Config` from *env* (default: the process environment).

    When *dotenv* is set, a ``.env`` file in the working directory is
    loaded first; variables already present in the environment win.
    """
    if dotenv:
        load_dotenv(find_dotenv(usecwd=True))
    env = os.environ if env is None else env

    cache_dir = Path(_text(env, "INGRESSO_CACHE_DIR") or default_cache_dir(env, platform))
    config_dir = Path(_text(env, "INGRESSO_CONFIG_DIR") or default_config_dir(env, platform))
    log_file = _text(env, "INGRESSO_LOG_FILE")
    level = (_text(env, "INGRESSO_LOG_LEVEL") or "WARNING").upper()
    if not isinstance(logging.getLevelName(level), int):
        logger.warning("config_invalid name=INGRESSO_LOG_LEVEL value=%r default=WARNING", level)
        level = "WARNING"

    return Config(
        city=_text(env, "INGRESSO_CITY"),
        location_debug=_bool(env, "INGRESSO_LOCATION_DEBUG"),
        api_url=_text(env, "INGRESSO_API_URL") or DEFAULT_API_URL,
        checkout_url=_text(env, "INGRESSO_CHECKOUT_URL") or DEFAULT_CHECKOUT_URL,
        cache_dir=cache_dir,
        config_dir=config_dir,
        max_attempts=_int(env, "INGRESSO_MAX_ATTEMPTS", 3),
        retry_base_ms=_int(env, "INGRESSO_RETRY_BASE_MS", 200, minimum=0),
        retry_cap_ms=_int(env, "INGRESSO_RETRY_CAP_MS", 1200, minimum=0),
        http_timeout=_float(env, "INGRESSO_HTTP_TIMEOUT", 12.0),
        aggregate_concurrency=_int(env, "INGRESSO_AGGREGATE_CONCURRENCY", 6),
        log_level=level,
        log_file=Path(log_file) if log_file else cache_dir / f"{APP_NAME}.log",
    )


def setup_logging(config: Config) -> None:
    """Route the package logger to the log file (and stderr in debug mode).

    A log file that cannot be opened is not fatal; records then go
    nowhere unless location debug mirrors them to stderr.
    """
    root = logging.getLogger("ingresso_finder")
    root.setLevel(logging.INFO if config.location_debug else config.log_level)
    root.propagate = False
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    if config.log_file is not None:
        try:
            config.log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(config.log_file, encoding="utf-8")
        except OSError as exc:
            sys.stderr.write(f"warning: cannot open log file {config.log_file}: {exc}\n")
        else:
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)

    if config.location_debug:
        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setFormatter(formatter)
        stream_handler.setLevel(logging.WARNING)
        root.addHandler(stream_handler)

    if not root.handlers:
        root.addHandler(logging.NullHandler())
