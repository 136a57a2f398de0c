"""
Rebalancing Analysis — Output Schema

Output contract of the rebalancing pipeline: allocation snapshot, ordered
deviation alerts, ordered recommended actions and portfolio metrics. Every
model is JSON-serializable through model_dump_json(); Decimal fields become
plain JSON numbers.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from allocation_engine.config.constants import (
    ALERT_THRESHOLD,
    HUNDRED,
    PERCENT_SUM_TOLERANCE,
    SEVERITY_RANK,
)
from allocation_engine.schemas.advisory_payload import AdvisoryInsight
from allocation_engine.schemas.holdings import DecimalNumber
from allocation_engine.schemas.target_model import TargetModel


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

ANALYSIS_STATUSES = ("insufficient_data", "balanced", "rebalance_needed")
ACTION_SOURCES = ("rule", "advisory", "merged")


# ---------------------------------------------------------------------------
# Allocation Snapshot
# ---------------------------------------------------------------------------

class AllocationEntry(BaseModel):
    """Value and share of the portfolio held in one asset class."""

    asset_class: str = Field(..., min_length=1)
    value_sum: DecimalNumber = Field(..., ge=0)
    current_percent: DecimalNumber = Field(..., ge=0, le=100)


class AllocationSnapshot(BaseModel):
    """Current allocation by asset class. Empty when total value is zero."""

    total_value: DecimalNumber = Field(default=Decimal("0"), ge=0)
    allocations: Dict[str, AllocationEntry] = Field(default_factory=dict)

    @model_validator(mode="after")
    def validate_percent_sum(self) -> "AllocationSnapshot":
        """Percentages sum to 100, or there are none when nothing is held."""
        if self.total_value == 0:
            if self.allocations:
                raise ValueError("Snapshot with zero total value must be empty")
            return self
        total_pct = sum((e.current_percent for e in self.allocations.values()), Decimal("0"))
        if abs(total_pct - HUNDRED) > HUNDRED * PERCENT_SUM_TOLERANCE:
            raise ValueError(f"Allocation percentages sum to {total_pct}, expected 100")
        return self

    @property
    def is_empty(self) -> bool:
        return not self.allocations

    def percent_for(self, asset_class: str) -> Decimal:
        entry = self.allocations.get(asset_class)
        return entry.current_percent if entry else Decimal("0")


# ---------------------------------------------------------------------------
# Alerts & Actions
# ---------------------------------------------------------------------------

class RebalancingAlert(BaseModel):
    """An asset class whose allocation deviates more than 5 points from target."""

    asset_class: str = Field(..., min_length=1)
    target_bucket: str = Field(..., min_length=1)
    current_percent: DecimalNumber = Field(..., ge=0)
    target_percent: DecimalNumber = Field(..., ge=0)
    deviation: DecimalNumber = Field(..., gt=ALERT_THRESHOLD)
    direction: Literal["increase", "reduce"]
    severity: Literal["high", "medium", "low"]
    dollar_amount: DecimalNumber = Field(..., ge=0)
    recommendation_text: str = Field(..., min_length=10)

    @model_validator(mode="after")
    def validate_deviation(self) -> "RebalancingAlert":
        """deviation == |current - target| and direction follows the sign."""
        expected = abs(self.current_percent - self.target_percent)
        if self.deviation != expected:
            raise ValueError(
                f"deviation={self.deviation} doesn't match |{self.current_percent} - "
                f"{self.target_percent}| = {expected}"
            )
        expected_direction = "increase" if self.current_percent < self.target_percent else "reduce"
        if self.direction != expected_direction:
            raise ValueError(f"direction should be '{expected_direction}', got '{self.direction}'")
        return self


class RecommendedAction(BaseModel):
    """A suggested buy/sell/hold adjustment in currency terms."""

    holding_label: str = Field(..., min_length=1)
    asset_class: Optional[str] = None
    action: Literal["buy", "sell", "hold"]
    amount: DecimalNumber = Field(..., ge=0)
    percentage: Optional[DecimalNumber] = Field(None, ge=0)
    priority: Optional[int] = Field(None, description="Lower = more urgent")
    reason: str = Field(..., min_length=1)
    source: Literal["rule", "advisory", "merged"] = "rule"


# ---------------------------------------------------------------------------
# Portfolio Metrics
# ---------------------------------------------------------------------------

class HoldingPerformance(BaseModel):
    """Gain/loss and weight of one holding."""

    label: str
    asset_class: str
    current_value: DecimalNumber = Field(..., ge=0)
    cost_basis: Optional[DecimalNumber] = None
    gain_loss: Optional[DecimalNumber] = None
    roi_pct: Optional[DecimalNumber] = None
    allocation_pct: DecimalNumber = Field(..., ge=0)


class PortfolioMetrics(BaseModel):
    """Portfolio-wide value, cost and risk breakdown."""

    total_value: DecimalNumber = Field(..., ge=0)
    total_cost_basis: DecimalNumber
    total_gain_loss: DecimalNumber
    return_pct: DecimalNumber
    risk_profile: Dict[str, DecimalNumber] = Field(default_factory=dict)
    holdings: List[HoldingPerformance] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Top-level Output
# ---------------------------------------------------------------------------

class RebalancingAnalysis(BaseModel):
    """Top-level output contract for the rebalancing pipeline."""

    status: Literal["insufficient_data", "balanced", "rebalance_needed"]
    snapshot: AllocationSnapshot
    alerts: List[RebalancingAlert] = Field(default_factory=list)
    actions: List[RecommendedAction] = Field(default_factory=list)
    metrics: PortfolioMetrics
    target_model: Optional[TargetModel] = None
    advisory: Optional[AdvisoryInsight] = None
    action_source: Literal["deterministic", "merged"] = "deterministic"
    issues: List[dict] = Field(default_factory=list)
    summary: str = Field(..., min_length=20)

    @model_validator(mode="after")
    def validate_status(self) -> "RebalancingAnalysis":
        """Status agrees with the snapshot and the alert list."""
        if self.snapshot.is_empty:
            expected = "insufficient_data"
        elif self.alerts:
            expected = "rebalance_needed"
        else:
            expected = "balanced"
        if self.status != expected:
            raise ValueError(f"status should be '{expected}', got '{self.status}'")
        return self

    @model_validator(mode="after")
    def validate_alert_order(self) -> "RebalancingAnalysis":
        """Alerts ordered by severity, then deviation, both descending."""
        keys = [(SEVERITY_RANK[a.severity], a.deviation) for a in self.alerts]
        if keys != sorted(keys, reverse=True):
            raise ValueError("Alerts must be ordered by severity then deviation, descending")
        return self

    @model_validator(mode="after")
    def validate_action_source(self) -> "RebalancingAnalysis":
        if self.action_source == "merged" and self.advisory is None:
            raise ValueError("action_source 'merged' requires a validated advisory payload")
        return self

    @property
    def is_balanced(self) -> bool:
        return self.status == "balanced"
