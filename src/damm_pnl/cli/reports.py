"""Reporting commands: list active positions, closed history, trading summary."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from rich.table import Table

from damm_pnl.cli._render import (
    build_stats_table,
    format_percentage,
    format_ref,
    format_signed_usd,
    format_timestamp,
    format_usd,
)
from damm_pnl.cli.utils import (
    DEFAULT_POSITIONS_PATH,
    DataFileOption,
    JsonOption,
    console,
    echo_json,
    exit_on_error,
    fetch_reference_price,
    open_manager,
)
from damm_pnl.constants import SUMMARY_WINDOW_DAYS


def list_positions(
    data_file: DataFileOption = DEFAULT_POSITIONS_PATH,
    output_json: JsonOption = False,
) -> None:
    """List active positions."""
    with exit_on_error():
        positions = open_manager(data_file).active_positions()
    positions.sort(key=lambda p: p.token)

    if output_json:
        echo_json([p.to_dict() for p in positions])
        return

    if not positions:
        console.print("[dim]No active positions found.[/dim]")
        return

    now = datetime.now(UTC)
    table = Table(title="Active Positions")
    table.add_column("Token", style="cyan", no_wrap=True)
    table.add_column("Total Invested", justify="right")
    table.add_column("Initial", justify="right")
    table.add_column("Added", justify="right")
    table.add_column("Withdrawn", justify="right")
    table.add_column("Fees", justify="right")
    table.add_column("Days", justify="right")

    for position in positions:
        table.add_row(
            position.display_token,
            format_usd(position.total_invested_usd),
            format_usd(position.initial_value_usd),
            format_usd(position.capital_additions_usd) if position.capital_additions_usd else "-",
            format_usd(position.withdrawn_usd) if position.withdrawn_usd else "-",
            format_usd(position.fees_claimed_usd),
            str(position.days_open(now)),
        )

    console.print(table)
    console.print(f"\n[dim]{len(positions)} active position(s)[/dim]")


def list_closed(
    data_file: DataFileOption = DEFAULT_POSITIONS_PATH,
    output_json: JsonOption = False,
) -> None:
    """List closed positions grouped by token, newest first."""
    from damm_pnl.analysis import group_closed_by_token
    from damm_pnl.analysis.pnl import to_reference_units

    with exit_on_error():
        groups = group_closed_by_token(open_manager(data_file).closed_positions())

    if not groups:
        if output_json:
            echo_json({"reference_price_usd": None, "tokens": {}})
        else:
            console.print("[dim]No closed positions found.[/dim]")
        return

    price = fetch_reference_price()
    now = datetime.now(UTC)

    if output_json:
        payload: dict[str, Any] = {"reference_price_usd": price, "tokens": {}}
        for token, closed in groups.items():
            payload["tokens"][token.upper()] = [
                {
                    **p.to_dict(),
                    "days_held": p.days_open(now),
                    "total_invested_ref": to_reference_units(p.total_invested_usd, price),
                    "exit_value_ref": to_reference_units(p.exit_value_usd or 0.0, price),
                    "final_pnl_ref": to_reference_units(p.final_pnl_usd or 0.0, price),
                }
                for p in closed
            ]
        echo_json(payload)
        return

    table = Table(title="Closed Positions")
    table.add_column("Token", style="cyan", no_wrap=True)
    table.add_column("#", justify="right")
    table.add_column("Invested", justify="right")
    table.add_column("Exit", justify="right")
    table.add_column("Final P&L", justify="right")
    table.add_column("P&L %", justify="right")
    table.add_column("Days", justify="right")
    table.add_column("Closed", style="dim")

    for token, closed in groups.items():
        for index, p in enumerate(closed, start=1):
            table.add_row(
                token.upper() if index == 1 else "",
                str(index),
                f"{format_usd(p.total_invested_usd)} "
                f"{format_ref(to_reference_units(p.total_invested_usd, price))}",
                f"{format_usd(p.exit_value_usd or 0.0)} "
                f"{format_ref(to_reference_units(p.exit_value_usd or 0.0, price))}",
                f"{format_signed_usd(p.final_pnl_usd or 0.0)} "
                f"{format_ref(to_reference_units(p.final_pnl_usd or 0.0, price), signed=True)}",
                format_percentage(p.final_pnl_percentage or 0.0),
                str(p.days_open(now)),
                format_timestamp(p.closed_at),
            )

    console.print(table)


def summary(
    data_file: DataFileOption = DEFAULT_POSITIONS_PATH,
    output_json: JsonOption = False,
) -> None:
    """Show trading performance: the last 7 days plus all time."""
    from damm_pnl.analysis import build_summary_report
    from damm_pnl.analysis.pnl import to_reference_units

    with exit_on_error():
        closed = open_manager(data_file).closed_positions()

    # Local time, so "Today" matches the user's calendar.
    now = datetime.now().astimezone()
    report = build_summary_report(closed, now, window_days=SUMMARY_WINDOW_DAYS)

    if not closed:
        if output_json:
            echo_json({**report.to_dict(), "reference_price_usd": None})
        else:
            console.print("[dim]No closed positions found for summary.[/dim]")
        return

    price = fetch_reference_price()

    if output_json:
        echo_json({**report.to_dict(), "reference_price_usd": price})
        return

    console.print(f"[bold]Daily Breakdown - Last {SUMMARY_WINDOW_DAYS} Days[/bold]\n")
    for day in report.days:
        heading = f"{day.label} ({day.day.isoformat()})"
        stats = day.stats
        if not stats.total_positions:
            console.print(f"[dim]{heading}[/dim]")
            console.print("  [dim]No positions closed[/dim]")
            continue
        console.print(f"[bold cyan]{heading}[/bold cyan]")
        console.print(
            f"  Positions: {stats.total_positions} | "
            f"Win Rate: {stats.win_rate * 100:.1f}% | "
            f"P&L: {format_signed_usd(stats.total_pnl_usd)} "
            f"{format_percentage(stats.overall_pnl_percentage)}"
        )
        console.print(
            f"  [dim]Invested:[/dim] {format_usd(stats.total_invested_usd)} "
            f"{format_ref(to_reference_units(stats.total_invested_usd, price))}"
        )

    console.print()
    console.print(build_stats_table("All Time Performance", report.all_time, price))


__all__ = ["list_closed", "list_positions", "summary"]
