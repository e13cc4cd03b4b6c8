"""Configuration for the reference-price oracle."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from damm_pnl.constants import (
    DEFAULT_PRICE_COIN_ID,
    DEFAULT_PRICE_URL,
    FALLBACK_REFERENCE_PRICE_USD,
    PRICE_CACHE_TTL_SECONDS,
    PRICE_MAX_RETRIES,
    PRICE_REQUEST_TIMEOUT_SECONDS,
    PRICE_STALENESS_WINDOW_SECONDS,
)
from damm_pnl.paths import DEFAULT_PRICE_CACHE_PATH

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class OracleConfig:
    """Configuration for the CoinGecko-backed price oracle."""

    price_url: str = DEFAULT_PRICE_URL
    coin_id: str = DEFAULT_PRICE_COIN_ID
    timeout_seconds: float = PRICE_REQUEST_TIMEOUT_SECONDS
    max_retries: int = PRICE_MAX_RETRIES
    cache_ttl_seconds: float = PRICE_CACHE_TTL_SECONDS
    staleness_window_seconds: float = PRICE_STALENESS_WINDOW_SECONDS
    fallback_price_usd: float = FALLBACK_REFERENCE_PRICE_USD
    cache_path: Path = DEFAULT_PRICE_CACHE_PATH
    offline: bool = False

    @classmethod
    def from_env(cls) -> OracleConfig:
        """Load configuration from environment variables.

        Optional:
            DAMM_PRICE_URL: Override the simple-price endpoint
            DAMM_PRICE_COIN_ID: Reference coin id (default: solana)
            DAMM_PRICE_TIMEOUT: Request timeout in seconds (default: 10)
            DAMM_PRICE_MAX_RETRIES: Attempts per fetch (default: 2)
            DAMM_FALLBACK_PRICE: Constant used when no price is available (default: 185)
            DAMM_PRICE_CACHE_FILE: Price cache location (default: data/sol_price_cache.json)
            DAMM_PRICE_OFFLINE: Skip the network and use cache/fallback only
        """
        try:
            timeout_seconds = float(
                os.environ.get("DAMM_PRICE_TIMEOUT", str(PRICE_REQUEST_TIMEOUT_SECONDS))
            )
            max_retries = int(os.environ.get("DAMM_PRICE_MAX_RETRIES", str(PRICE_MAX_RETRIES)))
            fallback_price_usd = float(
                os.environ.get("DAMM_FALLBACK_PRICE", str(FALLBACK_REFERENCE_PRICE_USD))
            )
        except ValueError as e:
            raise ValueError(f"Invalid price oracle setting in environment: {e}") from e

        return cls(
            price_url=os.environ.get("DAMM_PRICE_URL", DEFAULT_PRICE_URL),
            coin_id=os.environ.get("DAMM_PRICE_COIN_ID", DEFAULT_PRICE_COIN_ID),
            timeout_seconds=timeout_seconds,
            max_retries=max(1, max_retries),
            fallback_price_usd=fallback_price_usd,
            cache_path=Path(
                os.environ.get("DAMM_PRICE_CACHE_FILE", str(DEFAULT_PRICE_CACHE_PATH))
            ),
            offline=os.environ.get("DAMM_PRICE_OFFLINE", "").strip().lower() in _TRUTHY,
        )
