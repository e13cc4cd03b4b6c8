"""Data maintenance commands: clean implausible records, migrate legacy data."""

from __future__ import annotations

from typing import Annotated

import typer

from damm_pnl.cli._render import format_usd
from damm_pnl.cli.utils import (
    DEFAULT_POSITIONS_PATH,
    DataFileOption,
    console,
    exit_on_error,
    open_manager,
)
from damm_pnl.constants import SANITY_MAX_INITIAL_VALUE_USD


def clean(
    max_initial: Annotated[
        float,
        typer.Option(
            "--max-initial",
            help="Remove positions whose initial value exceeds this many USD.",
        ),
    ] = SANITY_MAX_INITIAL_VALUE_USD,
    data_file: DataFileOption = DEFAULT_POSITIONS_PATH,
) -> None:
    """Remove positions with an implausibly large initial value."""
    with exit_on_error():
        result = open_manager(data_file).clean(max_initial)

    if not result.removed:
        console.print("[green]✓[/green] No positions needed cleaning.")
        return

    for position in result.removed:
        console.print(
            f"[yellow]Removed {position.display_token} with unrealistic value: "
            f"{format_usd(position.initial_value_usd)}[/yellow]"
        )
    console.print(f"[green]✓[/green] Cleaned {len(result.removed)} position(s)")

    if result.remaining:
        console.print("\nRemaining positions:")
        for position in sorted(result.remaining, key=lambda p: p.token):
            status = "closed" if position.is_closed else "active"
            console.print(
                f"  {position.display_token}: {format_usd(position.initial_value_usd)} "
                f"[dim]({status})[/dim]"
            )


def fix(data_file: DataFileOption = DEFAULT_POSITIONS_PATH) -> None:
    """Upgrade legacy position records to the current format (safe to re-run)."""
    with exit_on_error():
        result = open_manager(data_file).fix()

    if not result.changed:
        console.print("[green]✓[/green] Positions file is already up to date.")
        return

    console.print(f"[green]✓[/green] Migrated {len(result.migrated_ids)} position record(s)")
    for position_id in result.migrated_ids:
        console.print(f"  [dim]{position_id}[/dim]")
    if result.skipped_keys:
        console.print(
            f"[yellow]Dropped {len(result.skipped_keys)} unreadable entr"
            f"{'y' if len(result.skipped_keys) == 1 else 'ies'}: "
            f"{', '.join(result.skipped_keys)}[/yellow]"
        )
