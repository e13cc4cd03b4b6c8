"""Position Store: durable mapping from position id to Position record."""

from __future__ import annotations

import copy
import json
import os
import secrets
import string
import time
import uuid
from pathlib import Path
from typing import Protocol

import structlog

from damm_pnl.exceptions import StorageError
from damm_pnl.paths import DEFAULT_POSITIONS_PATH
from damm_pnl.positions.migration import MigrationResult, migrate_positions
from damm_pnl.positions.models import Position

logger = structlog.get_logger()

_ID_ALPHABET = string.ascii_lowercase + string.digits


def new_position_id(token: str, existing: set[str] | frozenset[str] = frozenset()) -> str:
    """Build a `<token>_<epoch-ms>_<suffix>` id not present in `existing`."""
    while True:
        suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
        candidate = f"{token.lower()}_{int(time.time() * 1000)}_{suffix}"
        if candidate not in existing:
            return candidate


class PositionStore(Protocol):
    """Load-all / save-all persistence used by the lifecycle manager."""

    def load(self) -> dict[str, Position]: ...

    def save(self, positions: dict[str, Position]) -> None: ...

    def load_with_report(self) -> tuple[dict[str, Position], MigrationResult]: ...

    def generate_id(self, token: str, existing: set[str]) -> str: ...


class InMemoryPositionStore:
    """Dict-backed store; snapshots are deep-copied so callers never share state."""

    def __init__(self, positions: dict[str, Position] | None = None) -> None:
        self._positions: dict[str, Position] = copy.deepcopy(positions or {})
        self.save_count = 0

    def load(self) -> dict[str, Position]:
        return copy.deepcopy(self._positions)

    def load_with_report(self) -> tuple[dict[str, Position], MigrationResult]:
        return self.load(), MigrationResult(records={})

    def save(self, positions: dict[str, Position]) -> None:
        self._positions = copy.deepcopy(positions)
        self.save_count += 1

    def generate_id(self, token: str, existing: set[str]) -> str:
        return new_position_id(token, existing)


class JsonPositionStore:
    """
    JSON-file store: one object mapping position id to record.

    The file is rewritten wholesale on every save via temp file + fsync + rename, so a failed
    save never leaves a partially written file behind. Legacy layouts are migrated
    transparently on load; the upgraded form is persisted by the next save.
    """

    def __init__(self, path: str | Path = DEFAULT_POSITIONS_PATH) -> None:
        self.path = Path(path)

    def _read_raw(self) -> dict[str, object]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open(encoding="utf-8") as f:
                raw = json.load(f)
        except json.JSONDecodeError as e:
            raise StorageError(
                f"Positions file is not valid JSON: {self.path}. "
                "Fix the file or restore from backup."
            ) from e
        except OSError as e:
            raise StorageError(f"Could not read positions file {self.path}: {e}") from e

        if not isinstance(raw, dict):
            raise StorageError(f"Positions file must contain a JSON object: {self.path}")
        return raw

    def load_with_report(self) -> tuple[dict[str, Position], MigrationResult]:
        """Load every position, also returning what the legacy migration changed."""
        raw = self._read_raw()
        try:
            migration = migrate_positions(raw)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Positions file is invalid: {self.path} ({e})") from e
        if migration.changed:
            logger.info(
                "Migrated legacy position records",
                path=str(self.path),
                migrated=len(migration.migrated_ids),
                skipped=len(migration.skipped_keys),
            )

        positions: dict[str, Position] = {}
        for position_id, record in migration.records.items():
            try:
                positions[position_id] = Position.from_dict(record)
            except (KeyError, TypeError, ValueError) as e:
                raise StorageError(
                    f"Positions file contains an invalid position '{position_id}': "
                    f"{self.path} ({e})"
                ) from e
        return positions, migration

    def load(self) -> dict[str, Position]:
        positions, _ = self.load_with_report()
        return positions

    def save(self, positions: dict[str, Position]) -> None:
        data = {position_id: p.to_dict() for position_id, p in positions.items()}
        tmp_path = self.path.with_suffix(f"{self.path.suffix}.tmp.{uuid.uuid4().hex}")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            tmp_path.replace(self.path)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise StorageError(f"Error saving positions to {self.path}: {e}") from e
        logger.debug("Saved positions", path=str(self.path), count=len(data))

    def generate_id(self, token: str, existing: set[str]) -> str:
        return new_position_id(token, existing)
