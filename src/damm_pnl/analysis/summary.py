"""Aggregate reporting over closed positions.

All functions are pure: the current instant is passed in, so reports are reproducible.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING, Any

from damm_pnl.analysis.pnl import pnl_percentage
from damm_pnl.constants import SUMMARY_WINDOW_DAYS

if TYPE_CHECKING:
    from collections.abc import Iterable

    from damm_pnl.positions.models import Position


@dataclass(frozen=True)
class SummaryStats:
    """Win/loss statistics for a set of closed positions."""

    total_positions: int
    winning_positions: int
    losing_positions: int
    win_rate: float
    loss_rate: float
    total_invested_usd: float
    total_pnl_usd: float
    overall_pnl_percentage: float
    total_win_pnl_usd: float
    total_loss_pnl_usd: float
    avg_win_usd: float
    avg_loss_usd: float
    biggest_win_usd: float
    biggest_loss_usd: float
    biggest_win_percentage: float
    biggest_loss_percentage: float
    expected_value_usd: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class DailySummary:
    """Statistics for positions closed on one calendar day."""

    day: date
    label: str
    stats: SummaryStats

    def to_dict(self) -> dict[str, Any]:
        return {"day": self.day.isoformat(), "label": self.label, "stats": self.stats.to_dict()}


@dataclass(frozen=True)
class SummaryReport:
    """Trailing-window daily breakdown plus the all-time rollup."""

    generated_at: datetime
    days: list[DailySummary]
    all_time: SummaryStats

    def to_dict(self) -> dict[str, Any]:
        return {
            "generated_at": self.generated_at.isoformat(),
            "days": [d.to_dict() for d in self.days],
            "all_time": self.all_time.to_dict(),
        }


def calculate_summary_stats(positions: Iterable[Position]) -> SummaryStats:
    """
    Compute win/loss statistics from closed positions.

    A position with zero final PnL counts as neither a win nor a loss. Largest win/loss are
    tracked independently in USD and in percent, so the two need not come from the same trade.
    Expected value is `P(win) * avg_win + P(loss) * avg_loss` (avg_loss is negative).
    """
    total = 0
    wins = 0
    losses = 0
    total_invested = 0.0
    total_pnl = 0.0
    win_pnl = 0.0
    loss_pnl = 0.0
    biggest_win_usd = 0.0
    biggest_loss_usd = 0.0
    biggest_win_pct = 0.0
    biggest_loss_pct = 0.0

    for position in positions:
        total += 1
        total_invested += position.total_invested_usd
        pnl = position.final_pnl_usd or 0.0
        pct = position.final_pnl_percentage or 0.0
        total_pnl += pnl

        if pnl > 0:
            wins += 1
            win_pnl += pnl
            biggest_win_usd = max(biggest_win_usd, pnl)
            biggest_win_pct = max(biggest_win_pct, pct)
        elif pnl < 0:
            losses += 1
            loss_pnl += pnl
            biggest_loss_usd = min(biggest_loss_usd, pnl)
            biggest_loss_pct = min(biggest_loss_pct, pct)

    win_probability = wins / total if total else 0.0
    loss_probability = losses / total if total else 0.0
    avg_win = win_pnl / wins if wins else 0.0
    avg_loss = loss_pnl / losses if losses else 0.0

    return SummaryStats(
        total_positions=total,
        winning_positions=wins,
        losing_positions=losses,
        win_rate=win_probability,
        loss_rate=loss_probability,
        total_invested_usd=total_invested,
        total_pnl_usd=total_pnl,
        overall_pnl_percentage=pnl_percentage(total_pnl, total_invested),
        total_win_pnl_usd=win_pnl,
        total_loss_pnl_usd=loss_pnl,
        avg_win_usd=avg_win,
        avg_loss_usd=avg_loss,
        biggest_win_usd=biggest_win_usd,
        biggest_loss_usd=biggest_loss_usd,
        biggest_win_percentage=biggest_win_pct,
        biggest_loss_percentage=biggest_loss_pct,
        expected_value_usd=win_probability * avg_win + loss_probability * avg_loss,
    )


def _day_label(offset: int, day: date) -> str:
    if offset == 0:
        return "Today"
    if offset == 1:
        return "Yesterday"
    return day.strftime("%A")


def summarize_by_day(
    positions: Iterable[Position],
    now: datetime,
    *,
    window_days: int = SUMMARY_WINDOW_DAYS,
) -> list[DailySummary]:
    """
    Group closed positions by the calendar day of `closed_at`, newest day first.

    Days are taken in `now`'s timezone and cover `window_days` days ending today. Positions
    closed outside the window (or without `closed_at`) are ignored here.
    """
    tz = now.tzinfo
    today = now.date()
    by_day: dict[date, list[Position]] = {}
    for position in positions:
        if not position.is_closed or position.closed_at is None:
            continue
        closed_day = position.closed_at.astimezone(tz).date()
        by_day.setdefault(closed_day, []).append(position)

    summaries: list[DailySummary] = []
    for offset in range(window_days):
        day = today - timedelta(days=offset)
        summaries.append(
            DailySummary(
                day=day,
                label=_day_label(offset, day),
                stats=calculate_summary_stats(by_day.get(day, [])),
            )
        )
    return summaries


def build_summary_report(
    positions: Iterable[Position],
    now: datetime,
    *,
    window_days: int = SUMMARY_WINDOW_DAYS,
) -> SummaryReport:
    """Build the trailing-window + all-time report from every closed position in `positions`."""
    closed = [p for p in positions if p.is_closed]
    return SummaryReport(
        generated_at=now,
        days=summarize_by_day(closed, now, window_days=window_days),
        all_time=calculate_summary_stats(closed),
    )


def group_closed_by_token(positions: Iterable[Position]) -> dict[str, list[Position]]:
    """Closed positions keyed by token (alphabetical), each list newest close first."""
    groups: dict[str, list[Position]] = {}
    for position in positions:
        if position.is_closed:
            groups.setdefault(position.token, []).append(position)
    return {
        token: sorted(
            groups[token],
            key=lambda p: p.closed_at or p.last_updated,
            reverse=True,
        )
        for token in sorted(groups)
    }
