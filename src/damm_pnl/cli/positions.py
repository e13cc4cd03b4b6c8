"""Position lifecycle commands (record, show, capital flows, close, reset, remove)."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Annotated

import typer

from damm_pnl.cli._render import (
    format_percentage,
    format_signed_usd,
    format_usd,
    print_position_report,
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
    parse_amount,
)
from damm_pnl.positions.lifecycle import require_amount

if TYPE_CHECKING:
    from damm_pnl.positions import Position

TokenArg = Annotated[str, typer.Argument(help="Token symbol (case-insensitive).")]


def _report(position: Position, current_value: float, *, as_json: bool = False) -> None:
    from damm_pnl.analysis import compute_pnl, suggest

    now = datetime.now(UTC)
    snapshot = compute_pnl(position, current_value, fetch_reference_price())
    suggestion = suggest(position, snapshot, now)

    if as_json:
        echo_json(
            {
                "position": position.to_dict(),
                "pnl": snapshot.to_dict(),
                "suggestion": suggestion.to_dict(),
            }
        )
        return
    print_position_report(position, snapshot, suggestion, now)


def record_position(
    token: TokenArg,
    value: Annotated[str, typer.Argument(help="Current position value in USD.")],
    fees: Annotated[
        str | None,
        typer.Argument(help="Fees claimed since the last update, in USD."),
    ] = None,
    data_file: DataFileOption = DEFAULT_POSITIONS_PATH,
) -> None:
    """Record the current value of a position (creates it on first use)."""
    with exit_on_error():
        current_value = parse_amount(value, "Current position value")
        fees_usd = parse_amount(fees, "Fees claimed") if fees is not None else 0.0
        result = open_manager(data_file).record(token, current_value, fees_usd)

    position = result.position
    if result.created:
        console.print(
            f"[green]✓[/green] New position for {position.display_token} "
            f"at {format_usd(position.initial_value_usd)}"
        )
        if result.closed_count:
            console.print(
                f"[dim]Note: {result.closed_count} closed position(s) for "
                f"{position.display_token} remain on record; this starts a new round.[/dim]"
            )
        if fees_usd > 0:
            console.print(
                "[yellow]Fees are not applied to a new position; "
                "use `claim-fee` to record them.[/yellow]"
            )
    elif result.fees_added_usd > 0:
        console.print(
            f"[green]✓[/green] Added {format_usd(result.fees_added_usd)} in fees "
            f"to {position.display_token}"
        )

    _report(position, current_value)


def show_position(
    token: TokenArg,
    value: Annotated[str, typer.Argument(help="Current position value in USD.")],
    data_file: DataFileOption = DEFAULT_POSITIONS_PATH,
    output_json: JsonOption = False,
) -> None:
    """Show P&L and a suggestion for an active position without saving anything."""
    with exit_on_error():
        current_value = parse_amount(value, "Current position value")
        require_amount(current_value, "Current position value", allow_zero=True)
        position = open_manager(data_file).get_active(token)

    _report(position, current_value, as_json=output_json)


def add_capital(
    token: TokenArg,
    amount: Annotated[str, typer.Argument(help="Additional capital in USD.")],
    data_file: DataFileOption = DEFAULT_POSITIONS_PATH,
) -> None:
    """Add capital to an active position."""
    with exit_on_error():
        amount_usd = parse_amount(amount, "Additional capital")
        position = open_manager(data_file).add_capital(token, amount_usd)

    console.print(
        f"[green]✓[/green] Added {format_usd(amount_usd)} capital to {position.display_token}"
    )
    console.print(
        f"[dim]Total invested:[/dim] {format_usd(position.total_invested_usd)} "
        f"[dim](initial: {format_usd(position.initial_value_usd)} "
        f"+ additions: {format_usd(position.capital_additions_usd)})[/dim]"
    )


def withdraw(
    token: TokenArg,
    amount: Annotated[str, typer.Argument(help="Amount withdrawn in USD.")],
    data_file: DataFileOption = DEFAULT_POSITIONS_PATH,
) -> None:
    """Record a withdrawal from an active position (total invested is unchanged)."""
    with exit_on_error():
        amount_usd = parse_amount(amount, "Amount")
        position = open_manager(data_file).withdraw(token, amount_usd)

    console.print(
        f"[green]✓[/green] Withdrew {format_usd(amount_usd)} from {position.display_token}"
    )
    console.print(
        f"[dim]Total invested (unchanged):[/dim] {format_usd(position.total_invested_usd)}"
    )
    console.print(f"[dim]Total withdrawn:[/dim] {format_signed_usd(position.withdrawn_usd)}")


def claim_fee(
    token: TokenArg,
    amount: Annotated[str, typer.Argument(help="Fees claimed in USD.")],
    data_file: DataFileOption = DEFAULT_POSITIONS_PATH,
) -> None:
    """Record claimed fees for an active position."""
    with exit_on_error():
        amount_usd = parse_amount(amount, "Fees claimed")
        position = open_manager(data_file).claim_fee(token, amount_usd)

    console.print(
        f"[green]✓[/green] Claimed {format_usd(amount_usd)} in fees for {position.display_token}"
    )
    console.print(f"[dim]Total fees claimed:[/dim] {format_usd(position.fees_claimed_usd)}")


def close_position(
    token: TokenArg,
    exit_value: Annotated[str, typer.Argument(help="Exit value in USD.")],
    final_fees: Annotated[
        str | None,
        typer.Argument(help="Fees claimed at exit, in USD."),
    ] = None,
    data_file: DataFileOption = DEFAULT_POSITIONS_PATH,
) -> None:
    """Close an active position and record its final P&L."""
    with exit_on_error():
        exit_usd = parse_amount(exit_value, "Exit value")
        fees_usd = parse_amount(final_fees, "Final fees") if final_fees is not None else 0.0
        position = open_manager(data_file).close(token, exit_usd, fees_usd)

    console.print(f"[bold magenta]Position {position.display_token} CLOSED[/bold magenta]")
    console.print(f"Exit Value: {format_usd(exit_usd)}")
    if fees_usd > 0:
        console.print(f"Final Fees: {format_usd(fees_usd)}")
    console.print(f"Total Invested: {format_usd(position.total_invested_usd)}")
    console.print(f"Final P&L: {format_signed_usd(position.final_pnl_usd or 0.0)}")
    console.print(f"Final P&L %: {format_percentage(position.final_pnl_percentage or 0.0)}")
    days = position.days_open(datetime.now(UTC))
    console.print(f"[dim]Duration: {days} day{'' if days == 1 else 's'}[/dim]")


def reset_position(
    token: TokenArg,
    new_value: Annotated[str, typer.Argument(help="New initial value in USD.")],
    data_file: DataFileOption = DEFAULT_POSITIONS_PATH,
) -> None:
    """Discard the active position's history and start over at a new initial value."""
    with exit_on_error():
        new_value_usd = parse_amount(new_value, "New initial value")
        result = open_manager(data_file).reset(token, new_value_usd)

    console.print(
        f"[green]✓[/green] Active position for {result.position.display_token} has been reset."
    )
    console.print(
        f"[dim]Old initial value:[/dim] {format_usd(result.previous.initial_value_usd)} "
        f"[dim]->[/dim] {format_usd(result.position.initial_value_usd)}"
    )


def remove_position(
    token: TokenArg,
    data_file: DataFileOption = DEFAULT_POSITIONS_PATH,
) -> None:
    """Delete the active position for a token (closed history is kept)."""
    with exit_on_error():
        result = open_manager(data_file).remove(token)

    display = result.removed.display_token
    console.print(f"[green]✓[/green] Active position for {display} has been removed.")
    if result.remaining_closed:
        console.print(
            f"[dim]Note: You still have {result.remaining_closed} closed position(s) "
            f"for {display}.[/dim]"
        )


__all__ = [
    "add_capital",
    "claim_fee",
    "close_position",
    "record_position",
    "remove_position",
    "reset_position",
    "show_position",
    "withdraw",
]
