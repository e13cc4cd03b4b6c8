"""
DAMM PnL tracker.

Local single-user bookkeeping for manually entered liquidity positions: capital flows,
profit and loss against a live reference price, and a rule-based trade suggestion.
"""

__version__ = "0.1.0"

from damm_pnl.analysis import PnlSnapshot, Suggestion, compute_pnl, suggest

# Configure structlog once at import time (quiet by default).
from damm_pnl.logging import configure_structlog
from damm_pnl.positions import JsonPositionStore, Position, PositionManager

configure_structlog()

__all__ = [
    "JsonPositionStore",
    "PnlSnapshot",
    "Position",
    "PositionManager",
    "Suggestion",
    "__version__",
    "compute_pnl",
    "suggest",
]
