"""Tests for position stores - REAL JSON files under tmp_path."""

from __future__ import annotations

import json
import re
from pathlib import Path
from unittest.mock import patch

import pytest

from damm_pnl.exceptions import StorageError
from damm_pnl.positions import InMemoryPositionStore, JsonPositionStore
from damm_pnl.positions.store import new_position_id


class TestNewPositionId:
    """Test id generation."""

    def test_format(self) -> None:
        position_id = new_position_id("AIXBT")

        assert re.fullmatch(r"aixbt_\d{13}_[a-z0-9]{9}", position_id)

    def test_avoids_existing_ids(self) -> None:
        with patch(
            "damm_pnl.positions.store.secrets.choice",
            side_effect=["a"] * 9 + ["b"] * 9,
        ), patch("damm_pnl.positions.store.time.time", return_value=1.0):
            position_id = new_position_id("tok", {"tok_1000_aaaaaaaaa"})

        assert position_id == "tok_1000_bbbbbbbbb"


class TestJsonPositionStore:
    """Test the JSON-file store."""

    def test_missing_file_loads_empty(self, positions_file: Path) -> None:
        assert JsonPositionStore(positions_file).load() == {}

    def test_round_trip_is_field_for_field(self, positions_file: Path, make_position, now) -> None:
        store = JsonPositionStore(positions_file)
        active = make_position("aaa", 200.0, capital_additions_usd=100.0, withdrawn_usd=50.0)
        closed = make_position(
            "bbb",
            80.0,
            is_closed=True,
            closed_at=now,
            exit_value_usd=120.0,
            final_pnl_usd=40.0,
            final_pnl_percentage=50.0,
        )
        positions = {active.id: active, closed.id: closed}

        store.save(positions)

        assert store.load() == positions

    def test_round_trip_does_not_trigger_migration(
        self, positions_file: Path, make_position
    ) -> None:
        store = JsonPositionStore(positions_file)
        position = make_position()
        store.save({position.id: position})

        _, migration = store.load_with_report()

        assert migration.changed is False

    def test_file_is_keyed_by_id(self, positions_file: Path, make_position) -> None:
        position = make_position()
        JsonPositionStore(positions_file).save({position.id: position})

        data = json.loads(positions_file.read_text(encoding="utf-8"))

        assert list(data) == [position.id]
        assert data[position.id]["token"] == "tok"

    def test_save_creates_parent_directory(self, tmp_path: Path, make_position) -> None:
        path = tmp_path / "nested" / "dir" / "positions.json"
        position = make_position()

        JsonPositionStore(path).save({position.id: position})

        assert path.exists()

    def test_legacy_file_is_migrated_on_load(self, write_positions) -> None:
        path = write_positions(
            {
                "aixbt": {
                    "initial_value_usd": 100.0,
                    "created_at": "2025-01-10T08:00:00+00:00",
                    "last_updated": "2025-01-10T08:00:00+00:00",
                }
            }
        )

        positions = JsonPositionStore(path).load()

        (position,) = positions.values()
        assert position.token == "aixbt"
        assert position.id.startswith("aixbt_")

    def test_invalid_json_raises_storage_error(self, positions_file: Path) -> None:
        positions_file.write_text("{ not json", encoding="utf-8")

        with pytest.raises(StorageError, match="not valid JSON"):
            JsonPositionStore(positions_file).load()

    def test_non_object_document_raises_storage_error(self, positions_file: Path) -> None:
        positions_file.write_text("[1, 2, 3]", encoding="utf-8")

        with pytest.raises(StorageError, match="JSON object"):
            JsonPositionStore(positions_file).load()

    def test_invalid_record_raises_storage_error(self, write_positions) -> None:
        path = write_positions(
            {
                "tok_1": {
                    "id": "tok_1",
                    "token": "tok",
                    "initial_value_usd": -10.0,
                    "created_at": "2025-01-10T08:00:00+00:00",
                }
            }
        )

        with pytest.raises(StorageError, match="tok_1"):
            JsonPositionStore(path).load()

    def test_non_finite_money_raises_storage_error(self, write_positions) -> None:
        path = write_positions(
            {
                "tok_1": {
                    "id": "tok_1",
                    "token": "tok",
                    "initial_value_usd": float("nan"),
                    "created_at": "2025-01-10T08:00:00+00:00",
                }
            }
        )

        with pytest.raises(StorageError, match="initial_value_usd"):
            JsonPositionStore(path).load()

    def test_duplicate_ids_raise_storage_error(self, write_positions) -> None:
        record = {
            "id": "same",
            "token": "tok",
            "initial_value_usd": 10.0,
            "created_at": "2025-01-10T08:00:00+00:00",
        }
        path = write_positions({"a": record, "b": {**record, "is_closed": True}})

        with pytest.raises(StorageError, match="Duplicate position id"):
            JsonPositionStore(path).load()

        assert '"a"' in path.read_text(encoding="utf-8")

    def test_failed_save_leaves_previous_file_intact(
        self, positions_file: Path, make_position
    ) -> None:
        store = JsonPositionStore(positions_file)
        original = make_position("aaa")
        store.save({original.id: original})
        before = positions_file.read_text(encoding="utf-8")

        replacement = make_position("bbb")
        with (
            patch.object(Path, "replace", side_effect=OSError("disk full")),
            pytest.raises(StorageError, match="disk full"),
        ):
            store.save({replacement.id: replacement})

        assert positions_file.read_text(encoding="utf-8") == before
        assert [p.name for p in positions_file.parent.iterdir()] == [positions_file.name]


class TestInMemoryPositionStore:
    """Test the in-memory store used by lifecycle tests."""

    def test_load_returns_independent_copies(self, make_position) -> None:
        position = make_position()
        store = InMemoryPositionStore({position.id: position})

        loaded = store.load()
        loaded[position.id].fees_claimed_usd = 99.0

        assert store.load()[position.id].fees_claimed_usd == 0.0

    def test_save_counts(self, make_position) -> None:
        store = InMemoryPositionStore()
        position = make_position()

        store.save({position.id: position})

        assert store.save_count == 1
        assert list(store.load()) == [position.id]
