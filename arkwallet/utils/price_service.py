"""BTC/USD price with a single-slot fallback cache.

Every lookup goes to the live feed first. The cached slot is only consulted
when the feed fails, and only while it is younger than the TTL.
"""

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Awaitable, Callable, Dict, Optional

import aiohttp

from .clock import now_ms
from .http_client import get_session
from ..config.settings import DEFAULT_PRICE_CACHE_TTL_MS, DEFAULT_PRICE_FEED_URL

logger = logging.getLogger(__name__)

ERROR_LOG_INTERVAL_MS = 120_000

PriceFetcher = Callable[[], Awaitable[Decimal]]


class PriceFeedError(Exception):
    """The price feed answered, but not with a usable price."""


@dataclass(frozen=True)
class PriceSnapshot:
    """A price and the moment it was fetched (never backdated)."""

    usd: Decimal
    timestamp_ms: int

    def age_ms(self, now: int) -> int:
        return now - self.timestamp_ms


def parse_ticker_usd(payload: Any) -> Decimal:
    """Extract ``USD.last`` from a ticker payload."""
    usd = payload.get("USD") if isinstance(payload, Mapping) else None
    last = usd.get("last") if isinstance(usd, Mapping) else None
    if last is None or isinstance(last, bool):
        raise PriceFeedError("Price payload is missing USD.last")
    try:
        price = Decimal(str(last))
    except (InvalidOperation, ValueError):
        raise PriceFeedError(f"Price payload has non-numeric USD.last: {last!r}")
    if not price.is_finite() or price <= 0:
        raise PriceFeedError(f"Price payload has invalid USD.last: {last!r}")
    return price


async def fetch_ticker_usd(url: str = DEFAULT_PRICE_FEED_URL) -> Decimal:
    session = await get_session()
    async with session.get(url) as response:
        if response.status != 200:
            raise PriceFeedError(f"Price API responded with HTTP {response.status}")
        try:
            payload = await response.json(content_type=None)
        except (aiohttp.ContentTypeError, ValueError) as e:
            raise PriceFeedError(f"Price API returned invalid JSON: {e}") from e
    return parse_ticker_usd(payload)


class PriceCache:
    """Single-slot BTC/USD cache owned by whoever composes it."""

    def __init__(
        self,
        fetcher: Optional[PriceFetcher] = None,
        *,
        feed_url: str = DEFAULT_PRICE_FEED_URL,
        ttl_ms: int = DEFAULT_PRICE_CACHE_TTL_MS,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.feed_url = feed_url
        self.ttl_ms = ttl_ms
        self._fetcher: PriceFetcher = fetcher or (lambda: fetch_ticker_usd(self.feed_url))
        self._clock = clock
        self._slot: Optional[PriceSnapshot] = None
        self._last_error_at: Optional[int] = None
        self.fetch_attempts = 0

    @property
    def snapshot(self) -> Optional[PriceSnapshot]:
        return self._slot

    async def fetch_snapshot(self) -> Optional[PriceSnapshot]:
        """Fetch a live price, falling back to a cached one younger than the TTL."""
        self.fetch_attempts += 1
        try:
            usd = await self._fetcher()
        except Exception as e:
            self._log_failure(e)
            return self._fallback()

        if not isinstance(usd, Decimal):
            usd = Decimal(str(usd))
        snapshot = PriceSnapshot(usd=usd, timestamp_ms=self._clock())
        self._slot = snapshot
        logger.debug(f"Fetched BTC price: ${snapshot.usd}")
        return snapshot

    async def fetch_price(self) -> Optional[Decimal]:
        snapshot = await self.fetch_snapshot()
        return snapshot.usd if snapshot is not None else None

    def usable_snapshot(self) -> Optional[PriceSnapshot]:
        """The cached slot if it is still inside the TTL, without fetching."""
        slot = self._slot
        if slot is not None and slot.age_ms(self._clock()) < self.ttl_ms:
            return slot
        return None

    def _fallback(self) -> Optional[PriceSnapshot]:
        # Read the clock and the slot only after the failed await has resolved.
        now = self._clock()
        slot = self._slot
        if slot is not None and slot.age_ms(now) < self.ttl_ms:
            logger.info(f"Using cached BTC price ${slot.usd} (age: {slot.age_ms(now)}ms)")
            return slot
        if slot is not None:
            logger.info(f"Dropping expired BTC price (age: {slot.age_ms(now)}ms)")
        self._slot = None
        return None

    def _log_failure(self, error: Exception) -> None:
        if isinstance(error, PriceFeedError):
            detail = f"bad price response: {error}"
        elif isinstance(error, asyncio.TimeoutError):
            detail = "price request timed out"
        elif isinstance(error, aiohttp.ClientError):
            detail = f"price request failed: {error}"
        else:
            detail = f"unexpected price error: {type(error).__name__}: {error}"

        # Reduce log noise when the feed is down for a while
        now = self._clock()
        if self._last_error_at is None or now - self._last_error_at > ERROR_LOG_INTERVAL_MS:
            logger.error(f"Error fetching BTC price ({detail})")
            self._last_error_at = now
        else:
            logger.debug(f"Price fetch error suppressed (recent): {detail}")

    def clear(self) -> None:
        self._slot = None

    def get_cache_stats(self) -> Dict[str, Any]:
        """Get cache statistics for debugging."""
        slot = self._slot
        stats: Dict[str, Any] = {
            "ttl_ms": self.ttl_ms,
            "fetch_attempts": self.fetch_attempts,
            "cached": slot is not None,
        }
        if slot is not None:
            now = self._clock()
            stats.update(
                {
                    "price_usd": str(slot.usd),
                    "timestamp_ms": slot.timestamp_ms,
                    "age_ms": slot.age_ms(now),
                    "usable_as_fallback": slot.age_ms(now) < self.ttl_ms,
                }
            )
        return stats
