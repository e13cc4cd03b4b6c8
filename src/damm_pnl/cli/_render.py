"""Shared formatting helpers for position CLI output."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from rich.table import Table

from damm_pnl.analysis.suggestions import Action, Confidence
from damm_pnl.cli.utils import console
from damm_pnl.constants import REFERENCE_ASSET_SYMBOL

if TYPE_CHECKING:
    from damm_pnl.analysis import PnlSnapshot, Suggestion, SummaryStats
    from damm_pnl.positions import Position

_ACTION_STYLES = {
    Action.TAKE_PROFIT: "bold green",
    Action.REDUCE: "yellow",
    Action.STOP_LOSS: "bold red",
    Action.TOP_UP: "cyan",
    Action.HOLD: "white",
}

_CONFIDENCE_STYLES = {
    Confidence.HIGH: "bold",
    Confidence.MEDIUM: "",
    Confidence.LOW: "dim",
}


def format_usd(value: float) -> str:
    """Format a USD amount without sign coloring."""
    return f"${value:,.2f}"


def format_signed_usd(value: float) -> str:
    """Format a USD amount as a signed string with color.

    Args:
        value: Amount in USD (can be positive, negative, or zero).

    Returns:
        Formatted string with color markup.
    """
    text = f"${abs(value):,.2f}"
    if value > 0:
        return f"[green]+{text}[/green]"
    if value < 0:
        return f"[red]-{text}[/red]"
    return text


def format_percentage(value: float) -> str:
    text = f"{value:+.2f}%"
    if value > 0:
        return f"[green]{text}[/green]"
    if value < 0:
        return f"[red]{text}[/red]"
    return f"{value:.2f}%"


def format_ref(value: float, *, signed: bool = False) -> str:
    """Format a reference-asset amount, e.g. `1.2500 SOL`."""
    amount = f"{value:+.4f}" if signed else f"{value:.4f}"
    return f"[dim]{amount} {REFERENCE_ASSET_SYMBOL}[/dim]"


def format_timestamp(value: datetime | None) -> str:
    if value is None:
        return "-"
    return value.astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _plural_days(days: int) -> str:
    return f"{days} day" if days == 1 else f"{days} days"


def print_position_report(
    position: Position,
    snapshot: PnlSnapshot,
    suggestion: Suggestion,
    now: datetime,
) -> None:
    """Print the full PnL report (figures, percentage and suggestion) for one position."""
    table = Table(title=f"{position.display_token} Position", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("USD", justify="right")
    table.add_column(REFERENCE_ASSET_SYMBOL, justify="right")

    table.add_row(
        "Initial Value:",
        format_usd(snapshot.initial_value_usd),
        format_ref(snapshot.initial_value_ref),
    )
    if position.capital_additions_usd > 0:
        table.add_row("Capital Additions:", format_usd(position.capital_additions_usd), "")
    table.add_row(
        "Total Invested:",
        format_usd(snapshot.total_invested_usd),
        format_ref(snapshot.total_invested_ref),
    )
    if position.withdrawn_usd > 0:
        table.add_row("Withdrawn:", format_usd(position.withdrawn_usd), "")
    table.add_row(
        "Current Value:",
        f"[bold yellow]{format_usd(snapshot.current_value_usd)}[/bold yellow]",
        format_ref(snapshot.current_value_ref),
    )
    table.add_row("Fees Claimed:", format_usd(position.fees_claimed_usd), "")
    table.add_row("", "", "")
    table.add_row(
        "Unrealized P&L:",
        format_signed_usd(snapshot.unrealized_pnl_usd),
        format_ref(snapshot.unrealized_pnl_ref, signed=True),
    )
    table.add_row(
        "Realized P&L:",
        format_signed_usd(snapshot.realized_pnl_usd),
        format_ref(snapshot.realized_pnl_ref, signed=True),
    )
    table.add_row(
        "Total P&L:",
        format_signed_usd(snapshot.total_pnl_usd),
        format_ref(snapshot.total_pnl_ref, signed=True),
    )
    table.add_row("P&L %:", format_percentage(snapshot.pnl_percentage), "")
    table.add_row("", "", "")
    table.add_row(
        f"{REFERENCE_ASSET_SYMBOL} Price:", format_usd(snapshot.reference_price_usd), ""
    )
    table.add_row("Opened:", f"{_plural_days(position.days_open(now))} ago", "")
    table.add_row("Last Updated:", format_timestamp(position.last_updated), "")
    console.print(table)

    action_style = _ACTION_STYLES.get(suggestion.action, "white")
    confidence_style = _CONFIDENCE_STYLES.get(suggestion.confidence, "")
    confidence = suggestion.confidence.value
    if confidence_style:
        confidence = f"[{confidence_style}]{confidence}[/{confidence_style}]"
    console.print(
        f"[bold]Suggestion:[/bold] [{action_style}]{suggestion.action.value}[/{action_style}]"
        f" (confidence: {confidence})"
    )
    console.print(suggestion.reason)


def build_stats_table(title: str, stats: SummaryStats, reference_price_usd: float) -> Table:
    """Build the win/loss statistics table used by the summary report."""
    from damm_pnl.analysis.pnl import to_reference_units

    table = Table(title=title, show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Total Positions:", str(stats.total_positions))
    table.add_row(
        "Win Rate:", f"{stats.win_rate * 100:.1f}% ({stats.winning_positions} wins)"
    )
    table.add_row(
        "Loss Rate:", f"{stats.loss_rate * 100:.1f}% ({stats.losing_positions} losses)"
    )
    table.add_row("", "")
    table.add_row(
        "Total Invested:",
        f"{format_usd(stats.total_invested_usd)} "
        f"{format_ref(to_reference_units(stats.total_invested_usd, reference_price_usd))}",
    )
    table.add_row(
        "Total P&L:",
        f"{format_signed_usd(stats.total_pnl_usd)} "
        f"{format_ref(to_reference_units(stats.total_pnl_usd, reference_price_usd), signed=True)}",
    )
    table.add_row("Overall Return:", format_percentage(stats.overall_pnl_percentage))
    table.add_row("", "")
    if stats.winning_positions:
        table.add_row("Avg Win:", format_signed_usd(stats.avg_win_usd))
    if stats.losing_positions:
        table.add_row("Avg Loss:", format_signed_usd(stats.avg_loss_usd))
    table.add_row("Expected Value (EV):", format_signed_usd(stats.expected_value_usd))
    if stats.winning_positions:
        table.add_row(
            "Biggest Win:",
            f"{format_signed_usd(stats.biggest_win_usd)} "
            f"{format_percentage(stats.biggest_win_percentage)}",
        )
    if stats.losing_positions:
        table.add_row(
            "Biggest Loss:",
            f"{format_signed_usd(stats.biggest_loss_usd)} "
            f"{format_percentage(stats.biggest_loss_percentage)}",
        )
    return table
