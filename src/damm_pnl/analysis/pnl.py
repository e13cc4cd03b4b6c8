"""PnL engine: profit and loss of a position at a given current value.

Accounting model:
    total invested      = initial value + capital additions
    currently invested  = total invested - withdrawn
    unrealized PnL      = current value - currently invested
    realized PnL        = withdrawn + fees claimed
    total value         = current value + withdrawn + fees claimed
    total PnL           = total value - total invested

Every USD figure is also expressed in reference-asset units (SOL by default). A missing or
non-positive reference price yields 0 for every reference-asset field, never NaN/inf.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from damm_pnl.positions.models import Position


@dataclass(frozen=True)
class PnlSnapshot:
    """Point-in-time PnL of a position. Derived on demand, never persisted."""

    # Primary USD values
    unrealized_pnl_usd: float
    realized_pnl_usd: float
    total_pnl_usd: float
    pnl_percentage: float
    initial_value_usd: float
    current_value_usd: float
    total_invested_usd: float
    currently_invested_usd: float
    total_value_usd: float

    # Reference-asset equivalents
    reference_price_usd: float
    unrealized_pnl_ref: float
    realized_pnl_ref: float
    total_pnl_ref: float
    initial_value_ref: float
    current_value_ref: float
    total_invested_ref: float
    currently_invested_ref: float
    total_value_ref: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def pnl_percentage(total_pnl_usd: float, total_invested_usd: float) -> float:
    """Total PnL as a percentage of invested capital; exactly 0 when nothing was invested."""
    if total_invested_usd > 0:
        return total_pnl_usd / total_invested_usd * 100
    return 0.0


def _usable_price(reference_price_usd: float | None) -> float:
    if reference_price_usd is None or not math.isfinite(reference_price_usd):
        return 0.0
    return max(reference_price_usd, 0.0)


def to_reference_units(value_usd: float, reference_price_usd: float | None) -> float:
    """Convert USD into reference-asset units, 0 when no usable price is available."""
    price = _usable_price(reference_price_usd)
    if price == 0:
        return 0.0
    return value_usd / price


def compute_pnl(
    position: Position,
    current_value_usd: float,
    reference_price_usd: float | None,
) -> PnlSnapshot:
    """
    Compute the PnL snapshot of `position` valued at `current_value_usd`.

    Pure: the position is not modified, so this is safe to call repeatedly with different
    current values.

    Args:
        position: Position to evaluate (active or closed).
        current_value_usd: Market value of what is still held, in USD.
        reference_price_usd: Reference-asset price in USD (None/0 when unavailable).

    Returns:
        The computed snapshot.
    """
    total_invested = position.initial_value_usd + position.capital_additions_usd
    withdrawn = position.withdrawn_usd
    fees = position.fees_claimed_usd

    currently_invested = total_invested - withdrawn
    unrealized = current_value_usd - currently_invested
    realized = withdrawn + fees
    total_value = current_value_usd + withdrawn + fees
    total_pnl = total_value - total_invested

    price = _usable_price(reference_price_usd)

    def ref(value: float) -> float:
        return to_reference_units(value, price)

    return PnlSnapshot(
        unrealized_pnl_usd=unrealized,
        realized_pnl_usd=realized,
        total_pnl_usd=total_pnl,
        pnl_percentage=pnl_percentage(total_pnl, total_invested),
        initial_value_usd=position.initial_value_usd,
        current_value_usd=current_value_usd,
        total_invested_usd=total_invested,
        currently_invested_usd=currently_invested,
        total_value_usd=total_value,
        reference_price_usd=price,
        unrealized_pnl_ref=ref(unrealized),
        realized_pnl_ref=ref(realized),
        total_pnl_ref=ref(total_pnl),
        initial_value_ref=ref(position.initial_value_usd),
        current_value_ref=ref(current_value_usd),
        total_invested_ref=ref(total_invested),
        currently_invested_ref=ref(currently_invested),
        total_value_ref=ref(total_value),
    )
