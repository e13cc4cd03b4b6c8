"""Shared utilities for CLI commands (console output, argument parsing, error exits)."""

from __future__ import annotations

import asyncio
import json
import math
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any, TypeVar

import typer
from rich.console import Console

from damm_pnl.exceptions import InvalidInputError, PositionNotFoundError, StorageError
from damm_pnl.paths import DEFAULT_POSITIONS_PATH

if TYPE_CHECKING:
    from collections.abc import Coroutine

    from damm_pnl.positions import PositionManager

console = Console()

T = TypeVar("T")

DataFileOption = Annotated[
    Path,
    typer.Option(
        "--data-file",
        "-f",
        envvar="DAMM_POSITIONS_FILE",
        help="Path to the positions JSON file.",
    ),
]

JsonOption = Annotated[bool, typer.Option("--json", help="Output as JSON")]


def run_async(coro: Coroutine[object, object, T]) -> T:
    """Run a coroutine from a sync CLI command.

    Raises:
        typer.Exit: With code 130 on KeyboardInterrupt (standard SIGINT exit code).
    """
    try:
        return asyncio.run(coro)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted.[/yellow]")
        raise typer.Exit(130) from None


def parse_amount(raw: str, label: str) -> float:
    """Parse a CLI amount argument into a finite float.

    Range checks (positive, non-negative) are left to the lifecycle manager.

    Raises:
        InvalidInputError: If `raw` is not a well-formed finite number.
    """
    try:
        value = float(raw.strip())
    except ValueError:
        raise InvalidInputError(f"{label} must be a number, got '{raw}'") from None
    if not math.isfinite(value):
        raise InvalidInputError(f"{label} must be a finite number, got '{raw}'")
    return value


@contextmanager
def exit_on_error() -> Iterator[None]:
    """Translate tracker errors into a console message and a non-zero exit.

    Exit codes: 1 for invalid input and storage failures, 2 when no active position exists.
    """
    try:
        yield
    except InvalidInputError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None
    except PositionNotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(2) from None
    except StorageError as e:
        console.print(f"[red]Error:[/red] {e}")
        console.print("[dim]No changes were saved.[/dim]")
        raise typer.Exit(1) from None


def open_manager(data_file: Path) -> PositionManager:
    """Build a lifecycle manager over the JSON store at `data_file`."""
    from damm_pnl.positions import JsonPositionStore, PositionManager

    return PositionManager(JsonPositionStore(data_file))


def fetch_reference_price() -> float:
    """Current reference-asset price in USD (never fails; see PriceOracle)."""
    from damm_pnl.pricing import PriceOracle

    try:
        oracle = PriceOracle.from_env()
    except ValueError as e:
        console.print(f"[yellow]Warning:[/yellow] {e}; using default price settings.")
        oracle = PriceOracle()
    return run_async(oracle.get_reference_price_usd())


def echo_json(payload: Any) -> None:
    """Print a JSON document to stdout (no rich markup processing)."""
    typer.echo(json.dumps(payload, indent=2, default=str))


__all__ = [
    "DEFAULT_POSITIONS_PATH",
    "DataFileOption",
    "JsonOption",
    "console",
    "echo_json",
    "exit_on_error",
    "fetch_reference_price",
    "open_manager",
    "parse_amount",
    "run_async",
]
