"""Position Lifecycle Manager.

Every operation is one atomic read-modify-write of the store: load everything, mutate the
in-memory copy, save everything. Validation and lookups happen before the save, so a failed
operation never writes.

States: ACTIVE -> CLOSED (close), ACTIVE -> removed (remove / reset). Lookups for mutating
operations only consider ACTIVE positions, so a closed position can no longer be changed.
At most one ACTIVE position exists per token.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

import structlog

from damm_pnl.analysis.pnl import compute_pnl
from damm_pnl.constants import SANITY_MAX_INITIAL_VALUE_USD
from damm_pnl.exceptions import InvalidInputError, PositionNotFoundError
from damm_pnl.positions.models import Position
from damm_pnl.positions.store import PositionStore

logger = structlog.get_logger()

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(UTC)


def require_amount(value: float, label: str, *, allow_zero: bool = False) -> float:
    """Validate a USD amount: finite and positive (or non-negative with `allow_zero`)."""
    if not isinstance(value, int | float) or isinstance(value, bool):
        raise InvalidInputError(f"{label} must be a number, got {value!r}")
    if not math.isfinite(value):
        raise InvalidInputError(f"{label} must be a finite number, got '{value}'")
    if allow_zero and value < 0:
        raise InvalidInputError(f"{label} must not be negative, got '{value}'")
    if not allow_zero and value <= 0:
        raise InvalidInputError(f"{label} must be positive, got '{value}'")
    return float(value)


def normalize_token(token: str) -> str:
    normalized = token.strip().lower()
    if not normalized:
        raise InvalidInputError("Token name must not be empty")
    return normalized


@dataclass(frozen=True)
class RecordResult:
    """Outcome of `record`: the created or revisited position."""

    position: Position
    created: bool
    fees_added_usd: float
    closed_count: int


@dataclass(frozen=True)
class ResetResult:
    previous: Position
    position: Position


@dataclass(frozen=True)
class RemoveResult:
    removed: Position
    remaining_closed: int


@dataclass(frozen=True)
class CleanResult:
    removed: list[Position]
    remaining: list[Position]


@dataclass(frozen=True)
class FixResult:
    migrated_ids: list[str] = field(default_factory=list)
    skipped_keys: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.migrated_ids or self.skipped_keys)


def find_active(positions: dict[str, Position], token: str) -> Position | None:
    """Return the active position for `token` (case-insensitive), if any."""
    token = token.lower()
    return next((p for p in positions.values() if p.token == token and not p.is_closed), None)


def find_closed(positions: dict[str, Position], token: str) -> list[Position]:
    """Return every closed position for `token` (case-insensitive)."""
    token = token.lower()
    return [p for p in positions.values() if p.token == token and p.is_closed]


class PositionManager:
    """Enforces valid state transitions and the capital-flow invariants."""

    def __init__(self, store: PositionStore, *, clock: Clock | None = None) -> None:
        self._store = store
        self._clock = clock or _utc_now

    def _now(self) -> datetime:
        return self._clock()

    def _new_position(
        self, positions: dict[str, Position], token: str, initial_value_usd: float
    ) -> Position:
        now = self._now()
        return Position(
            id=self._store.generate_id(token, set(positions)),
            token=token,
            initial_value_usd=initial_value_usd,
            created_at=now,
            last_updated=now,
        )

    def _load_active(self, token: str) -> tuple[dict[str, Position], Position]:
        positions = self._store.load()
        position = find_active(positions, token)
        if position is None:
            raise PositionNotFoundError(token)
        return positions, position

    # ------------------------------------------------------------------ queries

    def get_active(self, token: str) -> Position:
        _, position = self._load_active(normalize_token(token))
        return position

    def active_positions(self) -> list[Position]:
        return [p for p in self._store.load().values() if not p.is_closed]

    def closed_positions(self) -> list[Position]:
        return [p for p in self._store.load().values() if p.is_closed]

    def all_positions(self) -> list[Position]:
        return list(self._store.load().values())

    # ---------------------------------------------------------------- mutations

    def record(self, token: str, current_value_usd: float, fees_usd: float = 0.0) -> RecordResult:
        """
        Create the active position for `token`, or revisit the existing one.

        A new position starts at `current_value_usd` with every cumulative field at zero
        (`fees_usd` is not applied). Revisiting adds `fees_usd` to the claimed fees and leaves
        the initial value untouched.
        """
        token = normalize_token(token)
        current_value_usd = require_amount(
            current_value_usd, "Current position value", allow_zero=True
        )
        fees_usd = require_amount(fees_usd, "Fees claimed", allow_zero=True)

        positions = self._store.load()
        position = find_active(positions, token)
        closed_count = len(find_closed(positions, token))

        if position is None:
            position = self._new_position(positions, token, current_value_usd)
            positions[position.id] = position
            self._store.save(positions)
            logger.info("Position created", token=token, id=position.id, value=current_value_usd)
            return RecordResult(
                position=position, created=True, fees_added_usd=0.0, closed_count=closed_count
            )

        position.fees_claimed_usd += fees_usd
        position.last_updated = self._now()
        self._store.save(positions)
        logger.info("Position revisited", token=token, id=position.id, fees_added=fees_usd)
        return RecordResult(
            position=position, created=False, fees_added_usd=fees_usd, closed_count=closed_count
        )

    def add_capital(self, token: str, amount_usd: float) -> Position:
        """Add capital to the active position; total invested grows by the same amount."""
        token = normalize_token(token)
        amount_usd = require_amount(amount_usd, "Additional capital")
        positions, position = self._load_active(token)

        position.capital_additions_usd += amount_usd
        position.last_updated = self._now()
        self._store.save(positions)
        logger.info("Capital added", token=token, id=position.id, amount=amount_usd)
        return position

    def withdraw(self, token: str, amount_usd: float) -> Position:
        """Record a withdrawal. Total invested is unchanged: this is capital returned."""
        token = normalize_token(token)
        amount_usd = require_amount(amount_usd, "Amount")
        positions, position = self._load_active(token)

        position.withdrawn_usd += amount_usd
        position.last_updated = self._now()
        self._store.save(positions)
        logger.info("Withdrawal recorded", token=token, id=position.id, amount=amount_usd)
        return position

    def claim_fee(self, token: str, amount_usd: float) -> Position:
        """Record claimed fees without touching invested or withdrawn amounts."""
        token = normalize_token(token)
        amount_usd = require_amount(amount_usd, "Fees claimed")
        positions, position = self._load_active(token)

        position.fees_claimed_usd += amount_usd
        position.last_updated = self._now()
        self._store.save(positions)
        logger.info("Fees claimed", token=token, id=position.id, amount=amount_usd)
        return position

    def close(self, token: str, exit_value_usd: float, final_fees_usd: float = 0.0) -> Position:
        """
        Close the active position at `exit_value_usd` and freeze its final PnL.

        `final_fees_usd` is added to the claimed fees before the final PnL is computed.
        """
        token = normalize_token(token)
        exit_value_usd = require_amount(exit_value_usd, "Exit value")
        final_fees_usd = require_amount(final_fees_usd, "Final fees", allow_zero=True)
        positions, position = self._load_active(token)

        position.fees_claimed_usd += final_fees_usd
        snapshot = compute_pnl(position, exit_value_usd, None)

        now = self._now()
        position.is_closed = True
        position.closed_at = now
        position.exit_value_usd = exit_value_usd
        position.final_pnl_usd = snapshot.total_pnl_usd
        position.final_pnl_percentage = snapshot.pnl_percentage
        position.last_updated = now
        self._store.save(positions)
        logger.info(
            "Position closed",
            token=token,
            id=position.id,
            exit_value=exit_value_usd,
            final_pnl=snapshot.total_pnl_usd,
        )
        return position

    def reset(self, token: str, new_initial_value_usd: float) -> ResetResult:
        """Discard the active position (not archived) and start a fresh one."""
        token = normalize_token(token)
        new_initial_value_usd = require_amount(
            new_initial_value_usd, "New initial value", allow_zero=True
        )
        positions, previous = self._load_active(token)

        del positions[previous.id]
        position = self._new_position(positions, token, new_initial_value_usd)
        positions[position.id] = position
        self._store.save(positions)
        logger.info("Position reset", token=token, old_id=previous.id, new_id=position.id)
        return ResetResult(previous=previous, position=position)

    def remove(self, token: str) -> RemoveResult:
        """Delete the active position outright. Closed positions for the token are kept."""
        token = normalize_token(token)
        positions, position = self._load_active(token)

        del positions[position.id]
        self._store.save(positions)
        remaining_closed = len(find_closed(positions, token))
        logger.info("Position removed", token=token, id=position.id)
        return RemoveResult(removed=position, remaining_closed=remaining_closed)

    # -------------------------------------------------------------- maintenance

    def clean(self, max_initial_value_usd: float = SANITY_MAX_INITIAL_VALUE_USD) -> CleanResult:
        """Drop positions (active or closed) whose initial value exceeds the sanity ceiling."""
        max_initial_value_usd = require_amount(max_initial_value_usd, "Maximum initial value")
        positions = self._store.load()

        removed = [p for p in positions.values() if p.initial_value_usd > max_initial_value_usd]
        for position in removed:
            del positions[position.id]
        if removed:
            self._store.save(positions)
            logger.info("Removed implausible positions", count=len(removed))
        return CleanResult(removed=removed, remaining=list(positions.values()))

    def fix(self) -> FixResult:
        """Apply the legacy-schema migration and persist it. Idempotent."""
        positions, migration = self._store.load_with_report()
        if not migration.changed:
            return FixResult()
        self._store.save(positions)
        logger.info("Positions file migrated", migrated=len(migration.migrated_ids))
        return FixResult(
            migrated_ids=list(migration.migrated_ids),
            skipped_keys=list(migration.skipped_keys),
        )
