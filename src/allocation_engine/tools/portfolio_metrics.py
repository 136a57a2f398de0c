"""
Portfolio Metrics
Gain/loss, return, risk profile and per-holding performance for the
dashboard header. Cost basis feeds these figures only, never allocation.
"""

from __future__ import annotations

from decimal import ROUND_HALF_EVEN, Decimal
from typing import Optional

from allocation_engine.config.constants import CURRENCY_QUANTUM, HUNDRED, RISK_LEVELS
from allocation_engine.schemas.allocation_output import HoldingPerformance, PortfolioMetrics
from allocation_engine.tools.holdings_aggregator import HoldingsAggregate


PERCENT_QUANTUM = Decimal("0.01")


def _money(value: Decimal) -> Decimal:
    return value.quantize(CURRENCY_QUANTUM, rounding=ROUND_HALF_EVEN)


def _pct(numerator: Decimal, denominator: Decimal) -> Optional[Decimal]:
    if denominator <= 0:
        return None
    return (HUNDRED * numerator / denominator).quantize(PERCENT_QUANTUM, rounding=ROUND_HALF_EVEN)


def compute_portfolio_metrics(aggregate: HoldingsAggregate) -> PortfolioMetrics:
    """Portfolio totals plus a performance row per holding, in input order."""
    total_value = aggregate.total_value
    total_cost = sum(aggregate.cost_by_class.values(), Decimal("0"))
    gain = total_value - total_cost

    risk_profile = {level: Decimal("0") for level in RISK_LEVELS}
    rows = []
    for holding in aggregate.holdings:
        if holding.risk_level in risk_profile:
            risk_profile[holding.risk_level] += holding.current_value

        gain_loss = None
        roi = None
        if holding.cost_basis is not None:
            gain_loss = _money(holding.current_value - holding.cost_basis)
            roi = _pct(holding.current_value - holding.cost_basis, holding.cost_basis)

        rows.append(HoldingPerformance(
            label=holding.label,
            asset_class=holding.asset_class,
            current_value=_money(holding.current_value),
            cost_basis=_money(holding.cost_basis) if holding.cost_basis is not None else None,
            gain_loss=gain_loss,
            roi_pct=roi,
            allocation_pct=_pct(holding.current_value, total_value) or Decimal("0"),
        ))

    return PortfolioMetrics(
        total_value=_money(total_value),
        total_cost_basis=_money(total_cost),
        total_gain_loss=_money(gain),
        return_pct=_pct(gain, total_cost) or Decimal("0"),
        risk_profile={level: _money(v) for level, v in risk_profile.items()},
        holdings=rows,
    )
