"""
CLI application for the DAMM PnL tracker.

Provides commands for recording liquidity positions, capital flows, and performance reports.
"""

from __future__ import annotations

import typer
from dotenv import find_dotenv, load_dotenv

from damm_pnl.cli.maintenance import clean, fix
from damm_pnl.cli.positions import (
    add_capital,
    claim_fee,
    close_position,
    record_position,
    remove_position,
    reset_position,
    show_position,
    withdraw,
)
from damm_pnl.cli.reports import list_closed, list_positions, summary
from damm_pnl.cli.utils import console

app = typer.Typer(
    name="damm-pnl",
    help="DAMM PnL tracker - profit and loss for liquidity pool positions.",
    add_completion=False,
    no_args_is_help=True,
)

app.command("record")(record_position)
app.command("show")(show_position)
app.command("add-capital")(add_capital)
app.command("withdraw")(withdraw)
app.command("claim-fee")(claim_fee)
app.command("close")(close_position)
app.command("reset")(reset_position)
app.command("remove")(remove_position)
app.command("list")(list_positions)
app.command("closed")(list_closed)
app.command("summary")(summary)
app.command("clean")(clean)
app.command("fix")(fix)


@app.callback()
def main() -> None:
    """DAMM PnL tracker CLI."""
    load_dotenv(find_dotenv(usecwd=True))


@app.command()
def version() -> None:
    """Show version information."""
    from damm_pnl import __version__

    console.print(f"damm-pnl v{__version__}")


__all__ = ["app"]
