"""Reference-asset price oracle."""

from damm_pnl.pricing.cache import CachedPrice, PriceCache
from damm_pnl.pricing.config import OracleConfig
from damm_pnl.pricing.oracle import PriceOracle

__all__ = [
    "CachedPrice",
    "OracleConfig",
    "PriceCache",
    "PriceOracle",
]
