"""Position record: one tracked capital commitment to a token."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

# Bumped whenever the persisted record layout changes (see positions/migration.py).
SCHEMA_VERSION = 2

_MONEY_FIELDS = (
    "initial_value_usd",
    "capital_additions_usd",
    "withdrawn_usd",
    "fees_claimed_usd",
)


@dataclass
class Position:
    """
    A manually tracked position in a single token.

    Withdrawals are modeled as capital returned, not un-investment: they never change
    `total_invested_usd`, which is always `initial_value_usd + capital_additions_usd`.
    """

    id: str
    token: str
    initial_value_usd: float
    created_at: datetime
    last_updated: datetime

    # Cumulative capital flows
    capital_additions_usd: float = 0.0
    withdrawn_usd: float = 0.0
    fees_claimed_usd: float = 0.0

    # Closure data (present iff is_closed)
    is_closed: bool = False
    closed_at: datetime | None = None
    exit_value_usd: float | None = None
    final_pnl_usd: float | None = None
    final_pnl_percentage: float | None = None

    def __post_init__(self) -> None:
        self.token = self.token.lower()

    @property
    def total_invested_usd(self) -> float:
        """Capital committed so far: initial value plus every addition."""
        return self.initial_value_usd + self.capital_additions_usd

    @property
    def display_token(self) -> str:
        return self.token.upper()

    @property
    def is_active(self) -> bool:
        return not self.is_closed

    def days_open(self, now: datetime) -> int:
        """Whole days between creation and `now` (or closure, for closed positions)."""
        end = self.closed_at if self.closed_at is not None else now
        return (end - self.created_at).days

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        data: dict[str, Any] = {
            "id": self.id,
            "token": self.token,
            "initial_value_usd": self.initial_value_usd,
            "capital_additions_usd": self.capital_additions_usd,
            "withdrawn_usd": self.withdrawn_usd,
            "fees_claimed_usd": self.fees_claimed_usd,
            "total_invested_usd": self.total_invested_usd,
            "created_at": self.created_at.isoformat(),
            "last_updated": self.last_updated.isoformat(),
            "is_closed": self.is_closed,
            "schema_version": SCHEMA_VERSION,
        }
        if self.is_closed:
            data["closed_at"] = self.closed_at.isoformat() if self.closed_at else None
            data["exit_value_usd"] = self.exit_value_usd
            data["final_pnl_usd"] = self.final_pnl_usd
            data["final_pnl_percentage"] = self.final_pnl_percentage
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Position:
        """Create from a current-schema dictionary (run legacy data through migration first)."""
        money = {name: float(data.get(name) or 0.0) for name in _MONEY_FIELDS}
        invalid = [
            name for name, value in money.items() if not math.isfinite(value) or value < 0
        ]
        if invalid:
            raise ValueError(
                f"Monetary fields must be finite and non-negative: {', '.join(invalid)}"
            )

        is_closed = bool(data.get("is_closed", False))
        closed_at_raw = data.get("closed_at")
        return cls(
            id=str(data["id"]),
            token=str(data["token"]),
            created_at=_parse_timestamp(data["created_at"]),
            last_updated=_parse_timestamp(data["last_updated"]),
            is_closed=is_closed,
            closed_at=(
                _parse_timestamp(closed_at_raw) if is_closed and closed_at_raw else None
            ),
            exit_value_usd=_optional_float(data.get("exit_value_usd")) if is_closed else None,
            final_pnl_usd=_optional_float(data.get("final_pnl_usd")) if is_closed else None,
            final_pnl_percentage=(
                _optional_float(data.get("final_pnl_percentage")) if is_closed else None
            ),
            **money,
        )


def _optional_float(value: Any) -> float | None:
    return None if value is None else float(value)


def _parse_timestamp(raw: str) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken to be UTC."""
    parsed = datetime.fromisoformat(raw)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed
