"""Legacy positions-file migration.

Older files differ from the current layout in three ways:

- v0: records keyed by token instead of by id, with no `id`/`token` fields.
- v1: withdrawals split into `capital_reduction_usd` + `profit_taken_usd`, and a stored
  `total_invested_usd` that subtracted reductions.
- pre-USD: the initial value stored as `initial_value`.

`migrate_record` upgrades one raw record to the current schema. It is pure and idempotent:
a current record comes back unchanged with `changed=False`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from damm_pnl.positions.models import SCHEMA_VERSION


@dataclass
class MigrationResult:
    """Outcome of migrating a whole positions file."""

    records: dict[str, dict[str, Any]]
    migrated_ids: list[str] = field(default_factory=list)
    skipped_keys: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.migrated_ids or self.skipped_keys)


def _epoch_ms(created_at: Any) -> int:
    if isinstance(created_at, str):
        try:
            parsed = datetime.fromisoformat(created_at)
        except ValueError:
            parsed = None
        if parsed is not None:
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=UTC)
            return int(parsed.timestamp() * 1000)
    return int(datetime.now(UTC).timestamp() * 1000)


def migrate_record(key: str, record: dict[str, Any]) -> tuple[dict[str, Any], bool]:
    """Upgrade one raw record to the current schema.

    Args:
        key: The key the record was stored under (a token in v0 files, an id afterwards).
        record: Raw record as loaded from JSON. Not mutated.

    Returns:
        Tuple of (upgraded record, whether anything changed).
    """
    pos = dict(record)

    if not pos.get("id"):
        pos["id"] = f"{key}_{_epoch_ms(pos.get('created_at'))}"
        pos["token"] = key

    if "capital_reduction_usd" in pos:
        reduction = float(pos.pop("capital_reduction_usd") or 0.0)
        profit_taken = float(pos.pop("profit_taken_usd", 0.0) or 0.0)
        pos["withdrawn_usd"] = reduction + profit_taken
    elif "profit_taken_usd" in pos:
        pos["withdrawn_usd"] = float(pos.get("withdrawn_usd") or 0.0) + float(
            pos.pop("profit_taken_usd") or 0.0
        )

    if "initial_value_usd" not in pos and "initial_value" in pos:
        pos["initial_value_usd"] = pos.pop("initial_value")

    pos.setdefault("fees_claimed_usd", 0.0)
    pos.setdefault("capital_additions_usd", 0.0)
    pos.setdefault("withdrawn_usd", 0.0)
    pos.setdefault("is_closed", False)
    if "created_at" not in pos:
        pos["created_at"] = datetime.now(UTC).isoformat()
    pos.setdefault("last_updated", pos["created_at"])

    if "initial_value_usd" in pos:
        pos["total_invested_usd"] = float(pos["initial_value_usd"] or 0.0) + float(
            pos["capital_additions_usd"] or 0.0
        )

    pos["schema_version"] = SCHEMA_VERSION
    return pos, pos != record


def migrate_positions(raw: dict[str, Any]) -> MigrationResult:
    """Migrate every record of a loaded positions file, re-keying records by id.

    Entries that are not JSON objects are dropped and reported in `skipped_keys`.

    Raises:
        ValueError: If two entries resolve to the same id.
    """
    result = MigrationResult(records={})
    for key, value in raw.items():
        if not isinstance(value, dict):
            result.skipped_keys.append(key)
            continue
        record, changed = migrate_record(key, value)
        if record["id"] in result.records:
            raise ValueError(f"Duplicate position id '{record['id']}' (entry '{key}')")
        if changed or key != record["id"]:
            result.migrated_ids.append(record["id"])
        result.records[record["id"]] = record
    return result
