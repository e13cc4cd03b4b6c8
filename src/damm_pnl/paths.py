"""
Centralized path defaults for the DAMM PnL tracker.

All paths are expressed relative to the current working directory. Every path default can be
overridden via CLI options or environment variables.
"""

from pathlib import Path

DEFAULT_DATA_DIR = Path("data")
DEFAULT_POSITIONS_PATH = DEFAULT_DATA_DIR / "damm_positions.json"
DEFAULT_PRICE_CACHE_PATH = DEFAULT_DATA_DIR / "sol_price_cache.json"

__all__ = [
    "DEFAULT_DATA_DIR",
    "DEFAULT_POSITIONS_PATH",
    "DEFAULT_PRICE_CACHE_PATH",
]
