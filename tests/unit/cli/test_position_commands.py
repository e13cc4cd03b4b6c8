"""CLI tests for position lifecycle commands - REAL JSON store under tmp_path."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from typer.testing import CliRunner

from damm_pnl.cli import app
from damm_pnl.positions import JsonPositionStore

runner = CliRunner()

REFERENCE_PRICE = 100.0


@pytest.fixture(autouse=True)
def _fixed_reference_price():
    with patch(
        "damm_pnl.pricing.PriceOracle.get_reference_price_usd",
        new=AsyncMock(return_value=REFERENCE_PRICE),
    ) as mock_price:
        yield mock_price


def _invoke(positions_file: Path, *args: str):
    return runner.invoke(app, [*args, "--data-file", str(positions_file)])


def _only_position(positions_file: Path):
    (position,) = JsonPositionStore(positions_file).load().values()
    return position


class TestRecord:
    """Tests for `record`."""

    def test_creates_position(self, positions_file: Path) -> None:
        result = _invoke(positions_file, "record", "aixbt", "249.07")

        assert result.exit_code == 0, result.stdout
        assert "New position for AIXBT" in result.stdout
        assert "Suggestion:" in result.stdout
        position = _only_position(positions_file)
        assert position.token == "aixbt"
        assert position.initial_value_usd == 249.07

    def test_revisit_adds_fees(self, positions_file: Path) -> None:
        _invoke(positions_file, "record", "aixbt", "249.07")

        result = _invoke(positions_file, "record", "AIXBT", "275.50", "12.30")

        assert result.exit_code == 0, result.stdout
        assert "Added $12.30 in fees" in result.stdout
        position = _only_position(positions_file)
        assert position.initial_value_usd == 249.07
        assert position.fees_claimed_usd == 12.30

    def test_notes_closed_rounds(self, positions_file: Path) -> None:
        _invoke(positions_file, "record", "tok", "100")
        _invoke(positions_file, "close", "tok", "120")

        result = _invoke(positions_file, "record", "tok", "50")

        assert result.exit_code == 0, result.stdout
        assert "1 closed position(s)" in result.stdout

    @pytest.mark.parametrize("value", ["abc", "nan", "inf"])
    def test_invalid_value_exits_1_without_writing(self, positions_file: Path, value: str) -> None:
        result = _invoke(positions_file, "record", "tok", value)

        assert result.exit_code == 1
        assert "Error:" in result.stdout
        assert not positions_file.exists()

    def test_invalid_fees_leave_store_untouched(self, positions_file: Path) -> None:
        _invoke(positions_file, "record", "tok", "100")
        before = positions_file.read_text(encoding="utf-8")

        result = _invoke(positions_file, "record", "tok", "110", "lots")

        assert result.exit_code == 1
        assert "Fees claimed must be a number" in result.stdout
        assert positions_file.read_text(encoding="utf-8") == before

    def test_corrupt_store_exits_1(self, positions_file: Path) -> None:
        positions_file.write_text("{ broken", encoding="utf-8")

        result = _invoke(positions_file, "record", "tok", "100")

        assert result.exit_code == 1
        assert "not valid JSON" in result.stdout
        assert positions_file.read_text(encoding="utf-8") == "{ broken"

    def test_data_file_from_environment(
        self, positions_file: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("DAMM_POSITIONS_FILE", str(positions_file))

        result = runner.invoke(app, ["record", "tok", "100"])

        assert result.exit_code == 0, result.stdout
        assert _only_position(positions_file).token == "tok"


class TestShow:
    """Tests for `show`."""

    def test_json_output(self, positions_file: Path) -> None:
        _invoke(positions_file, "record", "tok", "200")
        before = positions_file.read_text(encoding="utf-8")

        result = _invoke(positions_file, "show", "tok", "260", "--json")

        assert result.exit_code == 0, result.stdout
        payload = json.loads(result.stdout)
        assert payload["position"]["token"] == "tok"
        assert payload["pnl"]["total_pnl_usd"] == pytest.approx(60.0)
        assert payload["pnl"]["pnl_percentage"] == pytest.approx(30.0)
        assert payload["pnl"]["total_pnl_ref"] == pytest.approx(0.6)
        assert payload["suggestion"]["action"] == "TAKE_PROFIT"
        assert positions_file.read_text(encoding="utf-8") == before

    def test_unknown_token_exits_2(self, positions_file: Path) -> None:
        result = _invoke(positions_file, "show", "nope", "10")

        assert result.exit_code == 2
        assert "No active position for NOPE found." in result.stdout


class TestCapitalFlowCommands:
    """Tests for add-capital, withdraw and claim-fee."""

    def test_add_capital_then_withdraw(self, positions_file: Path) -> None:
        _invoke(positions_file, "record", "tok", "200")

        added = _invoke(positions_file, "add-capital", "tok", "100")
        withdrawn = _invoke(positions_file, "withdraw", "tok", "50")

        assert added.exit_code == 0, added.stdout
        assert withdrawn.exit_code == 0, withdrawn.stdout
        assert "Total invested (unchanged)" in withdrawn.stdout
        position = _only_position(positions_file)
        assert position.total_invested_usd == 300.0
        assert position.withdrawn_usd == 50.0
        data = json.loads(positions_file.read_text(encoding="utf-8"))
        assert data[position.id]["total_invested_usd"] == 300.0

    def test_claim_fee(self, positions_file: Path) -> None:
        _invoke(positions_file, "record", "tok", "200")

        result = _invoke(positions_file, "claim-fee", "tok", "12.30")

        assert result.exit_code == 0, result.stdout
        assert "Claimed $12.30 in fees for TOK" in result.stdout
        assert _only_position(positions_file).fees_claimed_usd == 12.30

    @pytest.mark.parametrize("command", ["add-capital", "withdraw", "claim-fee"])
    def test_zero_amount_exits_1(self, positions_file: Path, command: str) -> None:
        _invoke(positions_file, "record", "tok", "200")
        before = positions_file.read_text(encoding="utf-8")

        result = _invoke(positions_file, command, "tok", "0")

        assert result.exit_code == 1
        assert "must be positive" in result.stdout
        assert positions_file.read_text(encoding="utf-8") == before

    @pytest.mark.parametrize("command", ["add-capital", "withdraw", "claim-fee"])
    def test_missing_position_exits_2(self, positions_file: Path, command: str) -> None:
        result = _invoke(positions_file, command, "tok", "10")

        assert result.exit_code == 2
        assert "No active position for TOK found." in result.stdout


class TestCloseResetRemove:
    """Tests for close, reset and remove."""

    def test_close_scenario(self, positions_file: Path) -> None:
        _invoke(positions_file, "record", "tok", "200")
        _invoke(positions_file, "add-capital", "tok", "100")
        _invoke(positions_file, "withdraw", "tok", "50")
        _invoke(positions_file, "claim-fee", "tok", "5")

        result = _invoke(positions_file, "close", "tok", "500", "10")

        assert result.exit_code == 0, result.stdout
        assert "CLOSED" in result.stdout
        assert "+$265.00" in result.stdout
        assert "+88.33%" in result.stdout
        position = _only_position(positions_file)
        assert position.is_closed is True
        assert position.fees_claimed_usd == 15.0
        assert position.final_pnl_usd == pytest.approx(265.0)

    def test_closed_position_cannot_be_changed(self, positions_file: Path) -> None:
        _invoke(positions_file, "record", "tok", "200")
        _invoke(positions_file, "close", "tok", "210")

        result = _invoke(positions_file, "add-capital", "tok", "10")

        assert result.exit_code == 2

    def test_close_requires_positive_exit_value(self, positions_file: Path) -> None:
        _invoke(positions_file, "record", "tok", "200")

        result = _invoke(positions_file, "close", "tok", "0")

        assert result.exit_code == 1
        assert _only_position(positions_file).is_closed is False

    def test_reset(self, positions_file: Path) -> None:
        _invoke(positions_file, "record", "tok", "200")
        _invoke(positions_file, "add-capital", "tok", "50")

        result = _invoke(positions_file, "reset", "tok", "80")

        assert result.exit_code == 0, result.stdout
        assert "has been reset" in result.stdout
        position = _only_position(positions_file)
        assert position.initial_value_usd == 80.0
        assert position.capital_additions_usd == 0.0

    def test_remove_reports_remaining_closed(self, positions_file: Path) -> None:
        _invoke(positions_file, "record", "tok", "100")
        _invoke(positions_file, "close", "tok", "150")
        _invoke(positions_file, "record", "tok", "60")

        result = _invoke(positions_file, "remove", "tok")

        assert result.exit_code == 0, result.stdout
        assert "1 closed position(s)" in result.stdout
        assert _only_position(positions_file).is_closed is True

    def test_remove_missing_exits_2(self, positions_file: Path) -> None:
        result = _invoke(positions_file, "remove", "tok")

        assert result.exit_code == 2
