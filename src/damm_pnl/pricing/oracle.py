"""Reference-asset price oracle (CoinGecko simple-price, with caching and fallbacks).

Fallback chain, first hit wins:
1. in-memory price younger than the cache TTL
2. on-disk cached price younger than the cache TTL
3. live fetch (cached in memory and on disk when positive)
4. cached price younger than the staleness window
5. the constant fallback price

`get_reference_price_usd` never raises.
"""

from __future__ import annotations

import math
import time
from collections.abc import Callable

import httpx
import structlog
from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from damm_pnl.exceptions import PriceOracleError
from damm_pnl.pricing.cache import CachedPrice, PriceCache
from damm_pnl.pricing.config import OracleConfig
from damm_pnl.pricing.models import SimplePriceResponse

logger = structlog.get_logger()

_RETRY_WAIT = wait_exponential(multiplier=0.5, min=0.5, max=4)


def _epoch_ms() -> int:
    return int(time.time() * 1000)


class PriceOracle:
    """Supplies the reference-asset price in USD."""

    def __init__(
        self,
        config: OracleConfig | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        clock_ms: Callable[[], int] | None = None,
    ) -> None:
        self._config = config or OracleConfig()
        self._cache = PriceCache(self._config.cache_path)
        self._client = client
        self._clock_ms = clock_ms or _epoch_ms
        self._memory: CachedPrice | None = None

    @classmethod
    def from_env(cls) -> PriceOracle:
        return cls(OracleConfig.from_env())

    @property
    def config(self) -> OracleConfig:
        return self._config

    def _is_fresh(self, cached: CachedPrice, now_ms: int) -> bool:
        return cached.age_seconds(now_ms) < self._config.cache_ttl_seconds

    async def get_reference_price_usd(self) -> float:
        """Return the reference price in USD, falling back to cached or constant values."""
        now_ms = self._clock_ms()

        memory = self._memory
        if memory is not None and self._is_fresh(memory, now_ms):
            return memory.price

        if memory is None:
            self._memory = disk = self._cache.read()
            if disk is not None and self._is_fresh(disk, now_ms):
                logger.debug("Price cache hit", price=disk.price)
                return disk.price

        if not self._config.offline:
            try:
                price = await self._fetch_price()
            except PriceOracleError as e:
                logger.warning("Reference price fetch failed", error=str(e))
            except Exception as e:
                logger.warning("Unexpected reference price error", error=repr(e))
            else:
                self._memory = CachedPrice(price=price, timestamp=now_ms)
                self._cache.write(self._memory)
                return price

        if self._memory is not None:
            age = self._memory.age_seconds(now_ms)
            if age < self._config.staleness_window_seconds:
                logger.info("Using stale cached price", price=self._memory.price, age_s=int(age))
                return self._memory.price

        logger.warning("Using fallback reference price", price=self._config.fallback_price_usd)
        return self._config.fallback_price_usd

    async def _fetch_price(self) -> float:
        """Fetch the live price. Raises PriceOracleError on any upstream problem."""
        config = self._config
        client = self._client or httpx.AsyncClient(
            timeout=config.timeout_seconds, headers={"Accept": "application/json"}
        )
        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type((httpx.NetworkError, httpx.TimeoutException)),
                stop=stop_after_attempt(config.max_retries),
                wait=_RETRY_WAIT,
                reraise=True,
            ):
                with attempt:
                    response = await client.get(
                        config.price_url,
                        params={"ids": config.coin_id, "vs_currencies": "usd"},
                    )
        except httpx.HTTPError as e:
            raise PriceOracleError(f"Price request failed: {e!r}") from e
        finally:
            if self._client is None:
                await client.aclose()

        if response.status_code >= 400:
            raise PriceOracleError(f"Price API returned HTTP {response.status_code}")

        try:
            quotes = SimplePriceResponse.validate_python(response.json())
        except (ValueError, ValidationError) as e:
            raise PriceOracleError(f"Unexpected price payload: {e}") from e

        quote = quotes.get(config.coin_id)
        price = quote.usd if quote is not None else None
        if price is None or not math.isfinite(price) or price <= 0:
            raise PriceOracleError(f"No usable USD price for {config.coin_id!r}")
        return price
