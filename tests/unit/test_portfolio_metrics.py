"""
Portfolio Metrics — Unit Tests
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from allocation_engine.tools.holdings_aggregator import aggregate_holdings
from allocation_engine.tools.portfolio_metrics import compute_portfolio_metrics

from tests.fixtures.conftest import SAMPLE_HOLDINGS, make_holding


class TestComputePortfolioMetrics:

    @pytest.mark.behavior
    def test_totals(self):
        metrics = compute_portfolio_metrics(aggregate_holdings(SAMPLE_HOLDINGS))
        assert metrics.total_value == Decimal("100000.00")
        assert metrics.total_cost_basis == Decimal("68000.00")
        assert metrics.total_gain_loss == Decimal("32000.00")
        assert metrics.return_pct == Decimal("47.06")

    @pytest.mark.behavior
    def test_risk_profile(self):
        metrics = compute_portfolio_metrics(aggregate_holdings(SAMPLE_HOLDINGS))
        assert metrics.risk_profile == {
            "high": Decimal("38000.00"),
            "medium": Decimal("42000.00"),
            "low": Decimal("20000.00"),
        }

    @pytest.mark.behavior
    def test_per_holding_rows(self):
        metrics = compute_portfolio_metrics(aggregate_holdings(SAMPLE_HOLDINGS))
        rows = {r.label: r for r in metrics.holdings}
        assert list(rows) == [
            "Vanguard Total Stock", "Apple Inc", "Total Bond Market", "Bitcoin", "High-Yield Savings",
        ]
        assert rows["Vanguard Total Stock"].gain_loss == Decimal("12000.00")
        assert rows["Vanguard Total Stock"].roi_pct == Decimal("40.00")
        assert rows["Vanguard Total Stock"].allocation_pct == Decimal("42.00")
        assert rows["Total Bond Market"].roi_pct == Decimal("-6.25")
        assert rows["Bitcoin"].roi_pct == Decimal("300.00")

    @pytest.mark.behavior
    def test_missing_cost_basis(self):
        metrics = compute_portfolio_metrics(aggregate_holdings([make_holding("stocks", 500)]))
        row = metrics.holdings[0]
        assert row.cost_basis is None
        assert row.gain_loss is None
        assert row.roi_pct is None
        assert metrics.total_cost_basis == 0
        assert metrics.return_pct == 0

    @pytest.mark.behavior
    def test_zero_cost_basis_has_no_roi(self):
        metrics = compute_portfolio_metrics(
            aggregate_holdings([make_holding("crypto", 500, cost_basis=0)])
        )
        assert metrics.holdings[0].gain_loss == Decimal("500.00")
        assert metrics.holdings[0].roi_pct is None

    @pytest.mark.behavior
    def test_empty_portfolio(self):
        metrics = compute_portfolio_metrics(aggregate_holdings([]))
        assert metrics.total_value == 0
        assert metrics.holdings == []
        assert metrics.risk_profile == {"high": 0, "medium": 0, "low": 0}

    @pytest.mark.behavior
    def test_zero_value_holding_allocation(self):
        metrics = compute_portfolio_metrics(aggregate_holdings([make_holding("cash", 0)]))
        assert metrics.holdings[0].allocation_pct == 0
