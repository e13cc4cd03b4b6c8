"""Position records, persistence, legacy migration and lifecycle management."""

from damm_pnl.positions.lifecycle import (
    CleanResult,
    FixResult,
    PositionManager,
    RecordResult,
    RemoveResult,
    ResetResult,
    find_active,
    find_closed,
)
from damm_pnl.positions.migration import MigrationResult, migrate_positions, migrate_record
from damm_pnl.positions.models import SCHEMA_VERSION, Position
from damm_pnl.positions.store import InMemoryPositionStore, JsonPositionStore, PositionStore

__all__ = [
    "SCHEMA_VERSION",
    "CleanResult",
    "FixResult",
    "InMemoryPositionStore",
    "JsonPositionStore",
    "MigrationResult",
    "Position",
    "PositionManager",
    "PositionStore",
    "RecordResult",
    "RemoveResult",
    "ResetResult",
    "find_active",
    "find_closed",
    "migrate_positions",
    "migrate_record",
]
