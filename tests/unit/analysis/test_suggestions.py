"""Tests for the suggestion engine's ordered rule table."""

from __future__ import annotations

from datetime import timedelta

import pytest

from damm_pnl.analysis import Action, Confidence, compute_pnl, suggest
from damm_pnl.analysis.suggestions import RULES, RuleInputs


def _suggest_at(make_position, now, *, value: float, days_open: int = 1, **fields):
    position = make_position(
        initial_value_usd=fields.pop("initial_value_usd", 100.0),
        created_at=now - timedelta(days=days_open),
        **fields,
    )
    return suggest(position, compute_pnl(position, value, 100.0), now)


class TestRulePrecedence:
    """First matching rule wins."""

    def test_fee_risk_beats_percentage_take_profit(self, make_position, now) -> None:
        # invested 100, withdrawn 0, fees 14.2; value 116 -> unrealized 16, realized 14.2
        # total pnl 30.2% and fee ratio 0.8875.
        fee_risk = _suggest_at(make_position, now, value=116.0, fees_claimed_usd=14.2)
        # Same percentage without fees: only the percentage rule can fire.
        take_profit = _suggest_at(make_position, now, value=130.2)

        assert fee_risk.rule == "fee_risk"
        assert take_profit.rule == "take_profit"
        assert fee_risk.action == take_profit.action == Action.TAKE_PROFIT
        assert fee_risk.reason != take_profit.reason
        assert "High fees earned" in fee_risk.reason
        assert "Excellent 30.2% return" in take_profit.reason

    def test_fee_risk_needs_unrealized_above_ten_dollars(self, make_position, now) -> None:
        # unrealized 5, realized 9.5 -> ratio 1.9 but gains too small.
        result = _suggest_at(make_position, now, value=105.0, fees_claimed_usd=9.5)

        assert result.rule != "fee_risk"

    def test_fee_ratio_ignores_negative_unrealized(self) -> None:
        inputs = RuleInputs(
            pnl_percentage=-5.0, unrealized_pnl_usd=-20.0, realized_pnl_usd=15.0, days_open=1
        )

        assert inputs.fee_ratio == 0.0


class TestRuleBands:
    """Every documented band maps to its action and confidence."""

    @pytest.mark.parametrize(
        ("value", "days_open", "fees", "rule", "action", "confidence"),
        [
            (125.0, 1, 0.0, "take_profit", Action.TAKE_PROFIT, Confidence.HIGH),
            (115.0, 1, 0.0, "strong_profit", Action.REDUCE, Confidence.MEDIUM),
            (80.0, 1, 0.0, "stop_loss", Action.STOP_LOSS, Confidence.HIGH),
            (90.0, 31, 0.0, "stale_loss", Action.REDUCE, Confidence.MEDIUM),
            (90.0, 30, 0.0, "recent_loss", Action.HOLD, Confidence.LOW),
            (100.0, 1, 2.0, "breakeven_with_fees", Action.TOP_UP, Confidence.MEDIUM),
            (100.0, 1, 0.0, "breakeven", Action.HOLD, Confidence.LOW),
            (105.0, 1, 0.0, "moderate_profit", Action.HOLD, Confidence.MEDIUM),
            (95.0, 1, 0.0, "default", Action.HOLD, Confidence.LOW),
        ],
    )
    def test_band(
        self, make_position, now, value, days_open, fees, rule, action, confidence
    ) -> None:
        if fees:
            # Keep total PnL at the same percentage: fees offset by a lower value.
            value -= fees
        result = _suggest_at(
            make_position, now, value=value, days_open=days_open, fees_claimed_usd=fees
        )

        assert result.rule == rule
        assert result.action == action
        assert result.confidence == confidence

    def test_reasons_embed_formatted_numbers(self, make_position, now) -> None:
        result = _suggest_at(make_position, now, value=88.0, days_open=45)

        assert result.rule == "stale_loss"
        assert "12.0%" in result.reason
        assert "45 days" in result.reason

    def test_identical_inputs_give_identical_output(self, make_position, now) -> None:
        first = _suggest_at(make_position, now, value=117.3)
        second = _suggest_at(make_position, now, value=117.3)

        assert first == second

    def test_custom_rule_table(self, make_position, now) -> None:
        position = make_position()
        # 50% would normally be a take-profit.
        snapshot = compute_pnl(position, 300.0, 100.0)

        result = suggest(position, snapshot, now, rules=RULES[2:])

        assert result.rule == "strong_profit"

    def test_to_dict_uses_plain_values(self, make_position, now) -> None:
        data = _suggest_at(make_position, now, value=100.0).to_dict()

        assert data["action"] == "HOLD"
        assert data["confidence"] == "LOW"

    def test_naive_now_is_taken_as_utc(self, make_position, now) -> None:
        position = make_position(initial_value_usd=100.0, created_at=now - timedelta(days=45))
        snapshot = compute_pnl(position, 88.0, 100.0)

        naive = suggest(position, snapshot, now.replace(tzinfo=None))
        aware = suggest(position, snapshot, now)

        assert naive == aware
        assert "45 days" in naive.reason
