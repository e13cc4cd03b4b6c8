"""Suggestion engine: one advisory action per position, from an ordered rule table.

Rules are evaluated top to bottom and the first matching rule wins. Reason strings embed the
numbers that triggered the rule so identical inputs always produce identical output.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from damm_pnl.constants import (
    BREAK_EVEN_PCT,
    HIGH_FEES_RATIO,
    MIN_UNREALIZED_FOR_FEE_RISK_USD,
    MODERATE_LOSS_PCT,
    MODERATE_PROFIT_PCT,
    STALE_LOSS_DAYS,
    STOP_LOSS_PCT,
    STRONG_PROFIT_PCT,
    TAKE_PROFIT_PCT,
)

if TYPE_CHECKING:
    from damm_pnl.analysis.pnl import PnlSnapshot
    from damm_pnl.positions.models import Position


class Action(str, Enum):
    """Advisory actions."""

    HOLD = "HOLD"
    TOP_UP = "TOP_UP"
    REDUCE = "REDUCE"
    TAKE_PROFIT = "TAKE_PROFIT"
    STOP_LOSS = "STOP_LOSS"


class Confidence(str, Enum):
    """Confidence tier of a suggestion."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


@dataclass(frozen=True)
class Suggestion:
    """The advice for one position at one point in time."""

    action: Action
    reason: str
    confidence: Confidence
    rule: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action.value,
            "reason": self.reason,
            "confidence": self.confidence.value,
            "rule": self.rule,
        }


@dataclass(frozen=True)
class RuleInputs:
    """The figures the rules look at."""

    pnl_percentage: float
    unrealized_pnl_usd: float
    realized_pnl_usd: float
    days_open: int

    @property
    def fee_ratio(self) -> float:
        """Realized over unrealized PnL; only meaningful when unrealized PnL is positive."""
        if self.unrealized_pnl_usd <= 0:
            return 0.0
        return self.realized_pnl_usd / self.unrealized_pnl_usd


@dataclass(frozen=True)
class SuggestionRule:
    """One row of the decision list."""

    name: str
    applies: Callable[[RuleInputs], bool]
    action: Action
    confidence: Confidence
    reason: Callable[[RuleInputs], str]


def _fee_risk(x: RuleInputs) -> bool:
    # Ratio only evaluated for positive unrealized PnL to avoid a sign flip.
    return x.unrealized_pnl_usd > MIN_UNREALIZED_FOR_FEE_RISK_USD and x.fee_ratio > HIGH_FEES_RATIO


RULES: tuple[SuggestionRule, ...] = (
    SuggestionRule(
        name="fee_risk",
        applies=_fee_risk,
        action=Action.TAKE_PROFIT,
        confidence=Confidence.HIGH,
        reason=lambda x: (
            f"High fees earned ({x.fee_ratio * 100:.1f}% of ${x.unrealized_pnl_usd:.2f} "
            "unrealized gains). Secure profits before market turns."
        ),
    ),
    SuggestionRule(
        name="take_profit",
        applies=lambda x: x.pnl_percentage >= TAKE_PROFIT_PCT,
        action=Action.TAKE_PROFIT,
        confidence=Confidence.HIGH,
        reason=lambda x: (
            f"Excellent {x.pnl_percentage:.1f}% return! "
            "Consider taking partial profits to secure gains."
        ),
    ),
    SuggestionRule(
        name="strong_profit",
        applies=lambda x: x.pnl_percentage >= STRONG_PROFIT_PCT,
        action=Action.REDUCE,
        confidence=Confidence.MEDIUM,
        reason=lambda x: (
            f"Strong {x.pnl_percentage:.1f}% profit. Consider reducing position size to lock "
            "in gains while maintaining exposure."
        ),
    ),
    SuggestionRule(
        name="stop_loss",
        applies=lambda x: x.pnl_percentage <= STOP_LOSS_PCT,
        action=Action.STOP_LOSS,
        confidence=Confidence.HIGH,
        reason=lambda x: (
            f"Position down {abs(x.pnl_percentage):.1f}%. "
            "Consider cutting losses to preserve capital."
        ),
    ),
    SuggestionRule(
        name="stale_loss",
        applies=lambda x: x.pnl_percentage <= MODERATE_LOSS_PCT and x.days_open > STALE_LOSS_DAYS,
        action=Action.REDUCE,
        confidence=Confidence.MEDIUM,
        reason=lambda x: (
            f"Position down {abs(x.pnl_percentage):.1f}% for {x.days_open} days. "
            "Consider reducing exposure or reevaluating thesis."
        ),
    ),
    SuggestionRule(
        name="recent_loss",
        applies=lambda x: x.pnl_percentage <= MODERATE_LOSS_PCT,
        action=Action.HOLD,
        confidence=Confidence.LOW,
        reason=lambda x: (
            f"Down {abs(x.pnl_percentage):.1f}% but position is recent "
            f"({x.days_open} days). Monitor closely."
        ),
    ),
    SuggestionRule(
        name="breakeven_with_fees",
        applies=lambda x: (
            BREAK_EVEN_PCT <= x.pnl_percentage < MODERATE_PROFIT_PCT and x.realized_pnl_usd > 0
        ),
        action=Action.TOP_UP,
        confidence=Confidence.MEDIUM,
        reason=lambda x: (
            f"Near breakeven ({x.pnl_percentage:.1f}%) with ${x.realized_pnl_usd:.2f} in fees "
            "earned. Position showing promise - consider increasing."
        ),
    ),
    SuggestionRule(
        name="breakeven",
        applies=lambda x: BREAK_EVEN_PCT <= x.pnl_percentage < MODERATE_PROFIT_PCT,
        action=Action.HOLD,
        confidence=Confidence.LOW,
        reason=lambda x: (
            f"Position near breakeven ({x.pnl_percentage:.1f}%). "
            "Monitor for clear direction before making changes."
        ),
    ),
    SuggestionRule(
        name="moderate_profit",
        applies=lambda x: MODERATE_PROFIT_PCT <= x.pnl_percentage < STRONG_PROFIT_PCT,
        action=Action.HOLD,
        confidence=Confidence.MEDIUM,
        reason=lambda x: (
            f"Good {x.pnl_percentage:.1f}% profit with momentum. "
            "Hold position and monitor for further gains."
        ),
    ),
)

# Catch-all for inputs outside every band above (e.g. between -10% and 0%).
DEFAULT_RULE = SuggestionRule(
    name="default",
    applies=lambda x: True,
    action=Action.HOLD,
    confidence=Confidence.LOW,
    reason=lambda x: (
        f"Position performing as expected ({x.pnl_percentage:.1f}%). "
        "Continue monitoring market conditions."
    ),
)


def suggest(
    position: Position,
    snapshot: PnlSnapshot,
    now: datetime | None = None,
    *,
    rules: tuple[SuggestionRule, ...] = RULES,
) -> Suggestion:
    """
    Derive the suggestion for a position from its PnL snapshot.

    Args:
        position: The position (only `created_at` is used, for its age).
        snapshot: PnL snapshot computed for the position.
        now: Evaluation instant; defaults to the current UTC time. A naive value is
            taken to be UTC.
        rules: Ordered decision list; the default rule is always appended.

    Returns:
        Exactly one suggestion.
    """
    now = now or datetime.now(UTC)
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    inputs = RuleInputs(
        pnl_percentage=snapshot.pnl_percentage,
        unrealized_pnl_usd=snapshot.unrealized_pnl_usd,
        realized_pnl_usd=snapshot.realized_pnl_usd,
        days_open=(now - position.created_at).days,
    )
    rule = next((r for r in (*rules, DEFAULT_RULE) if r.applies(inputs)), DEFAULT_RULE)
    return Suggestion(
        action=rule.action,
        reason=rule.reason(inputs),
        confidence=rule.confidence,
        rule=rule.name,
    )
