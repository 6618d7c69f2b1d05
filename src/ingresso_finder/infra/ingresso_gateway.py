"""``requests``-backed implementation of :class:`~ingresso_finder.core.protocols.ContentGateway`.

This module is the **only** place in the codebase that talks to the
Ingresso catalog API.  All ``requests`` exceptions are caught here and
re-raised as typed :class:`~ingresso_finder.exceptions.GatewayError`
subclasses — nothing raw escapes the infrastructure boundary.

Retry policy
------------
* Up to ``max_attempts`` attempts (default 3).
* Retried: transport errors, HTTP 429 and any 5xx.
* Not retried: any other 4xx, decode errors, cancellation.
* Backoff: ``min(cap, base * 2 ** (attempt - 1))`` — 200 ms, 400 ms,
  800 ms, then capped at 1.2 s.  The wait is an ``asyncio.sleep`` so a
  cancelled caller aborts it immediately.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import date
from typing import Any
from urllib.parse import quote

import requests

from ingresso_finder.core.models import City, SeatMap, SessionDay, SessionDetail, Theater
from ingresso_finder.exceptions import (
    ApiError,
    DecodeError,
    GatewayError,
    InvalidRequestError,
    NetworkError,
    NotFoundError,
)
from ingresso_finder.core import codec

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api-content.ingresso.com/v0"
DEFAULT_CHECKOUT_URL = "https://api.ingresso.com/v1"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/16.5.2 Safari/605.1.15"
)
DEFAULT_TIMEOUT_SECONDS = 12.0
MAX_ERROR_BODY_CHARS = 8 * 1024


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Bounded, capped-exponential retry settings."""

    max_attempts: int = 3
    base_delay: float = 0.2
    """Seconds before the first retry."""

    max_delay: float = 1.2
    """Upper bound for any single wait, in seconds."""

    def delay(self, attempt: int) -> float:
        """Wait after failed attempt number *attempt* (1-based)."""
        attempt = max(1, attempt)
        base = self.base_delay if self.base_delay > 0 else 0.2
        cap = self.max_delay if self.max_delay > 0 else 1.2
        return min(cap, base * 2 ** (attempt - 1))

    @staticmethod
    def should_retry_status(status_code: int) -> bool:
        return status_code == 429 or status_code >= 500


class IngressoGateway:
    """Concrete :class:`ContentGateway` for the Ingresso content and checkout APIs.

    Usage::

        gateway = IngressoGateway()
        cities = await gateway.get_cities()

    Blocking ``requests`` calls run in a worker thread via
    :func:`asyncio.to_thread`; cancelling the awaiting task returns
    control immediately.
    """

    def __init__(
        self,
        session: requests.Session | None = None,
        *,
        api_url: str = DEFAULT_API_URL,
        checkout_url: str = DEFAULT_CHECKOUT_URL,
        retry: RetryPolicy | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        user_agent: str = DEFAULT_USER_AGENT,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._session = session if session is not None else requests.Session()
        self._api_url = api_url.rstrip("/")
        self._checkout_url = checkout_url.rstrip("/")
        self._retry = retry or RetryPolicy()
        self._timeout = timeout
        self._user_agent = user_agent
        self._sleep = sleep

    # ------------------------------------------------------------------
    # Catalog API
    # ------------------------------------------------------------------

    async def get_cities(self) -> list[City]:
        """Return every city, flattened across states."""
        payload = await self._get_json(f"{self._api_url}/states")
        if not payload:
            raise GatewayError("no states found")
        cities = codec.parse_states(payload)
        if not cities:
            raise GatewayError("no cities found")
        return cities

    async def get_city_by_name(self, name: str) -> City:
        stripped = name.strip()
        if not stripped:
            raise InvalidRequestError("city name is required")
        endpoint = f"{self._api_url}/states/city/name/{quote(stripped, safe='')}"
        payload = await self._get_json(endpoint)
        city = codec.parse_city(payload) if isinstance(payload, dict) else None
        if city is None or not city.id:
            raise NotFoundError(404, "Not Found", endpoint, "city not found")
        return city

    async def get_theaters(self, city_id: str) -> list[Theater]:
        if not city_id:
            raise InvalidRequestError("city id is required")
        payload = await self._get_json(f"{self._api_url}/theaters/city/{city_id}")
        return codec.parse_theaters(payload)

    async def get_sessions(
        self,
        city_id: str,
        theater_id: str,
        on_date: date | None = None,
    ) -> list[SessionDay]:
        if not city_id or not theater_id:
            raise InvalidRequestError("city id and theater id are required")
        endpoint = f"{self._api_url}/sessions/city/{city_id}/theater/{theater_id}"
        if on_date is not None:
            endpoint = f"{endpoint}?date={on_date.isoformat()}"
        return codec.parse_session_days(await self._get_json(endpoint))

    # ------------------------------------------------------------------
    # Checkout API
    # ------------------------------------------------------------------

    async def get_session_details(self, session_id: str) -> SessionDetail:
        if not session_id:
            raise InvalidRequestError("session id is required")
        payload = await self._get_json(f"{self._checkout_url}/sessions/{session_id}")
        return codec.parse_session_detail(payload)

    async def get_seat_map(self, session_id: str, section_id: str) -> SeatMap:
        if not session_id or not section_id:
            raise InvalidRequestError("session id and section id are required")
        endpoint = f"{self._checkout_url}/sessions/{session_id}/sections/{section_id}/seats"
        return codec.parse_seat_map(await self._get_json(endpoint))

    # ------------------------------------------------------------------
    # Transport with retry
    # ------------------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        return {"User-Agent": self._user_agent, "Accept": "application/json"}

    async def _get_json(self, endpoint: str) -> Any:
        """GET *endpoint* and decode its JSON body, retrying transient failures."""
        max_attempts = max(1, self._retry.max_attempts)

        for attempt in range(1, max_attempts + 1):
            try:
                response = await asyncio.to_thread(
                    self._session.get,
                    endpoint,
                    headers=self._headers(),
                    timeout=self._timeout,
                )
            except requests.RequestException as exc:
                if attempt < max_attempts:
                    await self._wait_retry(endpoint, attempt, str(exc))
                    continue
                raise NetworkError(
                    f"request failed: {exc}",
                    hint="Check your internet connection and try again.",
                ) from exc

            status_code = int(response.status_code)
            if not 200 <= status_code < 300:
                error = self._api_error(response, endpoint)
                if RetryPolicy.should_retry_status(status_code) and attempt < max_attempts:
                    await self._wait_retry(endpoint, attempt, f"status {status_code}")
                    continue
                raise error

            return self._decode(response, endpoint)

        raise NetworkError("request failed after retries")  # pragma: no cover

    async def _wait_retry(self, endpoint: str, attempt: int, reason: str) -> None:
        delay = self._retry.delay(attempt)
        logger.info(
            "gateway_retry endpoint=%s attempt=%s delay=%.2f reason=%s",
            endpoint,
            attempt,
            delay,
            reason,
        )
        await self._sleep(delay)

    @staticmethod
    def _api_error(response: Any, endpoint: str) -> ApiError:
        body = (response.text or "")[:MAX_ERROR_BODY_CHARS].strip()
        status = str(response.reason or "")
        if response.status_code == 404:
            return NotFoundError(404, status, endpoint, body)
        return ApiError(int(response.status_code), status, endpoint, body)

    @staticmethod
    def _decode(response: Any, endpoint: str) -> Any:
        """Decode a 2xx body; an empty body yields ``None``."""
        if not (response.content or b"").strip():
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise DecodeError(f"decode response from {endpoint}: {exc}") from exc
