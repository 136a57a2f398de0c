"""
Rebalancing Analysis Schema — Unit Tests
Output contract validators. No pipeline involved.
"""

from __future__ import annotations

import json
from decimal import Decimal

import pytest
from pydantic import ValidationError

from allocation_engine.schemas.advisory_payload import AdvisoryInsight
from allocation_engine.schemas.allocation_output import (
    AllocationEntry,
    AllocationSnapshot,
    PortfolioMetrics,
    RebalancingAlert,
    RebalancingAnalysis,
    RecommendedAction,
)
from allocation_engine.schemas.holdings import Holding


def _alert(**overrides) -> RebalancingAlert:
    data = dict(
        asset_class="stocks",
        target_bucket="stocks",
        current_percent=Decimal("90"),
        target_percent=Decimal("60"),
        deviation=Decimal("30"),
        direction="reduce",
        severity="high",
        dollar_amount=Decimal("3000.00"),
        recommendation_text="Consider reducing stocks by 30.0% (sell ~$3,000)",
    )
    data.update(overrides)
    return RebalancingAlert(**data)


def _snapshot() -> AllocationSnapshot:
    return AllocationSnapshot(
        total_value=Decimal("10000"),
        allocations={
            "stocks": AllocationEntry(asset_class="stocks", value_sum=Decimal("9000"),
                                      current_percent=Decimal("90")),
            "cash": AllocationEntry(asset_class="cash", value_sum=Decimal("1000"),
                                    current_percent=Decimal("10")),
        },
    )


def _metrics() -> PortfolioMetrics:
    return PortfolioMetrics(
        total_value=Decimal("10000"),
        total_cost_basis=Decimal("0"),
        total_gain_loss=Decimal("0"),
        return_pct=Decimal("0"),
    )


def _analysis(**overrides) -> RebalancingAnalysis:
    data = dict(
        status="rebalance_needed",
        snapshot=_snapshot(),
        alerts=[_alert()],
        metrics=_metrics(),
        summary="Rebalancing needed: 1 alert(s), 1 high severity.",
    )
    data.update(overrides)
    return RebalancingAnalysis(**data)


class TestHoldingSchema:

    @pytest.mark.schema
    def test_defaults(self):
        holding = Holding()
        assert holding.asset_class == "other"
        assert holding.current_value == 0
        assert holding.label == "Other"

    @pytest.mark.schema
    def test_label_preference(self):
        assert Holding(id="h1", symbol="VTI", name="Vanguard").label == "Vanguard"
        assert Holding(id="h1", symbol="VTI").label == "VTI"
        assert Holding(id="h1").label == "h1"

    @pytest.mark.schema
    @pytest.mark.parametrize("data", [
        {"asset_class": "beanie_babies"},
        {"current_value": -1},
        {"risk_level": "extreme"},
        {"current_value": Decimal("1e999999")},
        {"cost_basis": Decimal("-1e20")},
    ])
    def test_invalid(self, data):
        with pytest.raises(ValidationError):
            Holding(**data)

    @pytest.mark.schema
    def test_frozen(self):
        holding = Holding(current_value=Decimal("1"))
        with pytest.raises(ValidationError):
            holding.current_value = Decimal("2")


class TestAllocationSnapshotSchema:

    @pytest.mark.schema
    def test_empty_snapshot(self):
        snap = AllocationSnapshot()
        assert snap.is_empty
        assert snap.percent_for("stocks") == 0

    @pytest.mark.schema
    def test_percentages_must_sum_to_100(self):
        with pytest.raises(ValidationError, match="sum to"):
            AllocationSnapshot(
                total_value=Decimal("100"),
                allocations={"stocks": AllocationEntry(asset_class="stocks", value_sum=Decimal("100"),
                                                       current_percent=Decimal("90"))},
            )

    @pytest.mark.schema
    def test_zero_total_must_be_empty(self):
        with pytest.raises(ValidationError, match="must be empty"):
            AllocationSnapshot(
                total_value=Decimal("0"),
                allocations={"stocks": AllocationEntry(asset_class="stocks", value_sum=Decimal("0"),
                                                       current_percent=Decimal("0"))},
            )


class TestRebalancingAlertSchema:

    @pytest.mark.schema
    def test_valid(self):
        assert _alert().severity == "high"

    @pytest.mark.schema
    def test_deviation_must_exceed_five(self):
        with pytest.raises(ValidationError):
            _alert(current_percent=Decimal("65"), deviation=Decimal("5"), severity="low",
                   dollar_amount=Decimal("500.00"))

    @pytest.mark.schema
    def test_deviation_must_match(self):
        with pytest.raises(ValidationError, match="doesn't match"):
            _alert(deviation=Decimal("25"))

    @pytest.mark.schema
    def test_direction_must_match(self):
        with pytest.raises(ValidationError, match="direction"):
            _alert(direction="increase")

    @pytest.mark.schema
    def test_json_numbers(self):
        data = json.loads(_alert().model_dump_json())
        assert data["deviation"] == 30.0
        assert data["dollar_amount"] == 3000.0


class TestRecommendedActionSchema:

    @pytest.mark.schema
    def test_negative_amount_rejected(self):
        with pytest.raises(ValidationError):
            RecommendedAction(holding_label="Stocks", action="sell", amount=-1, reason="r")

    @pytest.mark.schema
    def test_unknown_action_rejected(self):
        with pytest.raises(ValidationError):
            RecommendedAction(holding_label="Stocks", action="short", amount=1, reason="r")


class TestRebalancingAnalysisSchema:

    @pytest.mark.schema
    def test_valid(self):
        analysis = _analysis()
        assert not analysis.is_balanced

    @pytest.mark.schema
    def test_status_must_match_alerts(self):
        with pytest.raises(ValidationError, match="status should be 'rebalance_needed'"):
            _analysis(status="balanced")

    @pytest.mark.schema
    def test_balanced_without_alerts(self):
        analysis = _analysis(status="balanced", alerts=[],
                             summary="Portfolio well balanced: 2 asset classes.")
        assert analysis.is_balanced

    @pytest.mark.schema
    def test_empty_snapshot_is_insufficient_data(self):
        with pytest.raises(ValidationError, match="insufficient_data"):
            _analysis(status="balanced", snapshot=AllocationSnapshot(), alerts=[])

    @pytest.mark.schema
    def test_alert_order_enforced(self):
        low = _alert(asset_class="cash", target_bucket="cash", current_percent=Decimal("10"),
                     target_percent=Decimal("16"), deviation=Decimal("6"), direction="increase",
                     severity="low", dollar_amount=Decimal("600.00"))
        with pytest.raises(ValidationError, match="ordered"):
            _analysis(alerts=[low, _alert()])

    @pytest.mark.schema
    def test_merged_requires_advisory(self):
        with pytest.raises(ValidationError, match="requires"):
            _analysis(action_source="merged")
        analysis = _analysis(action_source="merged", advisory=AdvisoryInsight(summary="ok"))
        assert analysis.advisory.summary == "ok"

    @pytest.mark.schema
    def test_summary_min_length(self):
        with pytest.raises(ValidationError):
            _analysis(summary="too short")
