"""Async client for the Kandilli earthquake API."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional

import httpx

from quake_monitor.filters import FeedQuery, FilterCriteria
from quake_monitor.models import ResponseEnvelope
from quake_monitor.parsers import PARSER_MAP
from quake_monitor.parsers.base import EventParser, ValidationError
from quake_monitor.sources import SourceConfig, get_source

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """The remote call did not produce a usable response."""


class RateLimiter:
    """Simple token-bucket rate limiter."""

    def __init__(self, rpm: int):
        self.min_interval = 60.0 / max(rpm, 1)
        self._last_call = 0.0

    async def acquire(self) -> None:
        now = time.monotonic()
        elapsed = now - self._last_call
        if elapsed < self.min_interval:
            await asyncio.sleep(self.min_interval - elapsed)
        self._last_call = time.monotonic()


class KandilliClient:
    """Gateway over the provider's live, filtered and per-city feeds.

    Every operation returns a ResponseEnvelope; anything that prevents one
    from being built raises FetchError.
    """

    def __init__(
        self,
        config: SourceConfig | None = None,
        parser: EventParser | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config or get_source()
        self.parser = parser or PARSER_MAP[self.config.name]
        self._transport = transport
        self._rate_limiter = RateLimiter(self.config.rate_limit_rpm)
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url,
                timeout=self.config.timeout_seconds,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def fetch(self, query: FeedQuery) -> ResponseEnvelope:
        if query.is_filtered and query.criteria is not None:
            return await self.fetch_filtered(query.criteria)
        return await self.fetch_live()

    async def fetch_live(self) -> ResponseEnvelope:
        """Rolling window of the most recent events (last 24 hours)."""
        return await self._get_envelope("/kandilli/live")

    async def fetch_filtered(self, criteria: FilterCriteria) -> ResponseEnvelope:
        return await self._get_envelope("/kandilli/filtered", criteria.to_params())

    async def fetch_by_city(
        self, city_code: int, criteria: Optional[FilterCriteria] = None,
    ) -> ResponseEnvelope:
        params = criteria.to_params() if criteria else {}
        return await self._get_envelope(f"/kandilli/city/{city_code}", params)

    async def fetch_latest(self, limit: int = 10) -> ResponseEnvelope:
        return await self._get_envelope(f"/kandilli/latest/{limit}")

    async def fetch_historical(self, year: int, month: int) -> ResponseEnvelope:
        return await self._get_envelope(f"/kandilli/historical/{year}/{month}")

    async def _get_envelope(self, path: str, params: dict | None = None) -> ResponseEnvelope:
        payload = await self._request_with_retry(path, params or {})

        if payload.get("status") is False:
            raise FetchError(
                f"{self.config.name}: provider reported failure "
                f"({payload.get('httpStatus')}: {payload.get('desc')})"
            )
        try:
            envelope = self.parser.parse(payload)
        except ValidationError as exc:
            raise FetchError(f"{self.config.name}: unexpected response shape") from exc

        if envelope.rejected:
            logger.warning(
                "%s %s: dropped %d malformed record(s)",
                self.config.name, path, envelope.rejected,
            )
        return envelope

    async def _request_with_retry(self, path: str, params: dict) -> dict:
        """GET ``path`` and decode the JSON body, retrying with backoff."""
        client = await self._get_client()
        last_exc: Exception | None = None

        for attempt in range(self.config.max_retries + 1):
            await self._rate_limiter.acquire()
            try:
                resp = await client.get(path, params=params)
                resp.raise_for_status()
                payload = resp.json()
                if not isinstance(payload, dict):
                    raise FetchError(f"{self.config.name}: response body is not a JSON object")
                return payload
            except (httpx.HTTPStatusError, httpx.RequestError, ValueError) as exc:
                last_exc = exc
                if attempt < self.config.max_retries:
                    backoff = self.config.retry_backoff_base ** attempt
                    logger.warning(
                        "%s: attempt %d/%d failed (%s), retrying in %.1fs",
                        self.config.name, attempt + 1, self.config.max_retries + 1,
                        exc, backoff,
                    )
                    await asyncio.sleep(backoff)

        raise FetchError(
            f"{self.config.name}: all {self.config.max_retries + 1} attempts failed"
        ) from last_exc
