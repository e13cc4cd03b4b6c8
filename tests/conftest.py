"""
Shared test fixtures.

PHILOSOPHY: Use REAL objects wherever possible. Only mock at system boundaries.
- Real Position dataclasses (not dicts pretending to be models)
- Real JSON files under tmp_path, or the in-memory store
- respx ONLY for the price API HTTP boundary
"""

from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import pytest

from damm_pnl.positions import InMemoryPositionStore, Position, PositionManager

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

FIXED_NOW = datetime(2025, 6, 15, 12, 0, tzinfo=UTC)


# ============================================================================
# Isolation
# ============================================================================
@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep tests away from the user's data files and the live price API."""
    for var in (
        "DAMM_POSITIONS_FILE",
        "DAMM_PRICE_URL",
        "DAMM_PRICE_COIN_ID",
        "DAMM_PRICE_TIMEOUT",
        "DAMM_PRICE_MAX_RETRIES",
        "DAMM_FALLBACK_PRICE",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("DAMM_PRICE_CACHE_FILE", str(tmp_path / "sol_price_cache.json"))
    monkeypatch.setenv("DAMM_PRICE_OFFLINE", "1")


# ============================================================================
# Clock
# ============================================================================
@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def clock() -> Callable[[], datetime]:
    """A controllable clock: call `.advance(days=...)` to move it forward."""

    class _Clock:
        def __init__(self) -> None:
            self.current = FIXED_NOW

        def __call__(self) -> datetime:
            return self.current

        def advance(self, **kwargs: float) -> None:
            self.current += timedelta(**kwargs)

    return _Clock()


# ============================================================================
# Domain Object Builders (create REAL objects)
# ============================================================================
@pytest.fixture
def make_position() -> Callable[..., Position]:
    """Factory for Position records with sensible defaults."""

    def _make(
        token: str = "tok",
        initial_value_usd: float = 200.0,
        *,
        position_id: str | None = None,
        created_at: datetime = FIXED_NOW,
        **overrides: Any,
    ) -> Position:
        return Position(
            id=position_id or f"{token.lower()}_1718452800000_abc123xyz",
            token=token,
            initial_value_usd=initial_value_usd,
            created_at=created_at,
            last_updated=overrides.pop("last_updated", created_at),
            **overrides,
        )

    return _make


@pytest.fixture
def make_closed_position(make_position: Callable[..., Position]) -> Callable[..., Position]:
    """Factory for closed positions with a given final PnL."""
    counter = iter(range(1_000_000))

    def _make(
        final_pnl_usd: float,
        *,
        token: str = "tok",
        invested: float = 100.0,
        final_pnl_percentage: float | None = None,
        closed_at: datetime = FIXED_NOW,
    ) -> Position:
        pct = (
            final_pnl_percentage
            if final_pnl_percentage is not None
            else final_pnl_usd / invested * 100
        )
        return make_position(
            token,
            invested,
            position_id=f"{token}_closed_{next(counter)}",
            created_at=closed_at - timedelta(days=3),
            last_updated=closed_at,
            is_closed=True,
            closed_at=closed_at,
            exit_value_usd=invested + final_pnl_usd,
            final_pnl_usd=final_pnl_usd,
            final_pnl_percentage=pct,
        )

    return _make


# ============================================================================
# Stores and Managers
# ============================================================================
@pytest.fixture
def memory_store() -> InMemoryPositionStore:
    return InMemoryPositionStore()


@pytest.fixture
def manager(memory_store: InMemoryPositionStore, clock: Callable[[], datetime]) -> PositionManager:
    return PositionManager(memory_store, clock=clock)


@pytest.fixture
def positions_file(tmp_path: Path) -> Path:
    return tmp_path / "damm_positions.json"


@pytest.fixture
def write_positions(positions_file: Path) -> Callable[[dict[str, Any]], Path]:
    """Write a raw JSON document to the positions file (for legacy-format fixtures)."""

    def _write(data: dict[str, Any]) -> Path:
        positions_file.write_text(json.dumps(data, indent=2), encoding="utf-8")
        return positions_file

    return _write
