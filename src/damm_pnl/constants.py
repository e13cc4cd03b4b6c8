"""Centralized policy constants for the DAMM PnL tracker.

Named constants for the thresholds and limits shared by the analysis, pricing and CLI layers.
"""

from __future__ import annotations

# =============================================================================
# Suggestion Thresholds (PnL percentage of total invested capital)
# =============================================================================

# Used by:
# - analysis/suggestions.py: the ordered rule table
TAKE_PROFIT_PCT: float = 25.0
STRONG_PROFIT_PCT: float = 15.0
MODERATE_PROFIT_PCT: float = 5.0
BREAK_EVEN_PCT: float = 0.0
MODERATE_LOSS_PCT: float = -10.0
STOP_LOSS_PCT: float = -20.0

# Realized / unrealized ratio above which claimed fees are considered at risk.
HIGH_FEES_RATIO: float = 0.8

# The fee-risk rule only fires once unrealized gains exceed this many dollars.
MIN_UNREALIZED_FOR_FEE_RISK_USD: float = 10.0

# A losing position older than this many days is flagged for reduction instead of a hold.
STALE_LOSS_DAYS: int = 30

# =============================================================================
# Store Maintenance
# =============================================================================

# `clean` drops positions whose initial value exceeds this ceiling (almost certainly a
# value typed in the wrong unit).
SANITY_MAX_INITIAL_VALUE_USD: float = 10_000.0

# =============================================================================
# Reporting
# =============================================================================

# Trailing calendar-day window shown by `summary` (today included).
SUMMARY_WINDOW_DAYS: int = 7

# =============================================================================
# Price Oracle
# =============================================================================

REFERENCE_ASSET_SYMBOL: str = "SOL"
DEFAULT_PRICE_COIN_ID: str = "solana"
DEFAULT_PRICE_URL: str = "https://api.coingecko.com/api/v3/simple/price"

# Cached prices younger than this are returned without a network call.
PRICE_CACHE_TTL_SECONDS: float = 5 * 60

# After a failed fetch, a cached price is still trusted up to this age.
PRICE_STALENESS_WINDOW_SECONDS: float = 60 * 60

# Last resort when there is neither a live price nor a usable cached one.
FALLBACK_REFERENCE_PRICE_USD: float = 185.0

PRICE_REQUEST_TIMEOUT_SECONDS: float = 10.0
PRICE_MAX_RETRIES: int = 2
