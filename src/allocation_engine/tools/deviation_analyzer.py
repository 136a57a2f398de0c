"""
Deviation Analyzer
Compare current allocation against the target model and produce ordered
rebalancing alerts.

Evaluated classes are the union of the snapshot (first-seen order) and the
target table (declaration order), so a class the target expects but the
user doesn't hold is still checked. Thresholds are strict: > 5 low,
> 10 medium, > 15 high.

No LLM, no file I/O.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_EVEN, Decimal
from typing import Optional, Union

from allocation_engine.config.constants import (
    ALERT_THRESHOLD,
    CURRENCY_QUANTUM,
    HUNDRED,
    SEVERITY_HIGH_THRESHOLD,
    SEVERITY_MEDIUM_THRESHOLD,
    SEVERITY_RANK,
)
from allocation_engine.schemas.allocation_output import AllocationSnapshot, RebalancingAlert
from allocation_engine.schemas.target_model import TargetModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeviationRow:
    """Current vs target for one evaluated class, alert or not."""

    asset_class: str
    target_bucket: str
    current_percent: Decimal
    target_percent: Decimal
    deviation: Decimal

    @property
    def direction(self) -> str:
        return "increase" if self.current_percent < self.target_percent else "reduce"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def classify_severity(deviation: Union[Decimal, float, int]) -> Optional[str]:
    """Severity tier for a deviation in percentage points, None if <= 5."""
    if not isinstance(deviation, Decimal):
        deviation = Decimal(str(deviation))
    if deviation > SEVERITY_HIGH_THRESHOLD:
        return "high"
    if deviation > SEVERITY_MEDIUM_THRESHOLD:
        return "medium"
    if deviation > ALERT_THRESHOLD:
        return "low"
    return None


def rebalance_amount(deviation: Decimal, total_value: Decimal) -> Decimal:
    """Dollar amount to move: deviation% of total value, to the cent (half-even)."""
    return (deviation / HUNDRED * total_value).quantize(CURRENCY_QUANTUM, rounding=ROUND_HALF_EVEN)


def build_recommendation_text(
    asset_class: str,
    direction: str,
    deviation: Decimal,
    amount: Decimal,
) -> str:
    if direction == "reduce":
        return f"Consider reducing {asset_class} by {deviation:.1f}% (sell ~${amount:,.0f})"
    return f"Consider increasing {asset_class} by {deviation:.1f}% (buy ~${amount:,.0f})"


def sort_alerts(alerts: list[RebalancingAlert]) -> list[RebalancingAlert]:
    """Severity descending, then deviation descending; ties keep input order."""
    return sorted(alerts, key=lambda a: (-SEVERITY_RANK[a.severity], -a.deviation))


# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------

def evaluate_deviations(
    snapshot: AllocationSnapshot,
    target_model: TargetModel,
) -> list[DeviationRow]:
    """Deviation for every class in the snapshot or the target table."""
    if snapshot.is_empty or target_model.is_empty:
        return []

    classes = list(snapshot.allocations)
    classes.extend(c for c in target_model.targets if c not in snapshot.allocations)

    rows = []
    for asset_class in classes:
        current = snapshot.percent_for(asset_class)
        target = target_model.target_percent_for(asset_class)
        rows.append(DeviationRow(
            asset_class=asset_class,
            target_bucket=target_model.resolve_bucket(asset_class),
            current_percent=current,
            target_percent=target,
            deviation=abs(current - target),
        ))
    return rows


def build_alerts(
    rows: list[DeviationRow],
    total_value: Decimal,
) -> list[RebalancingAlert]:
    """Alerts for rows deviating more than 5 points, in severity order."""
    alerts = []
    for row in rows:
        severity = classify_severity(row.deviation)
        if severity is None:
            continue
        amount = rebalance_amount(row.deviation, total_value)
        alerts.append(RebalancingAlert(
            asset_class=row.asset_class,
            target_bucket=row.target_bucket,
            current_percent=row.current_percent,
            target_percent=row.target_percent,
            deviation=row.deviation,
            direction=row.direction,
            severity=severity,
            dollar_amount=amount,
            recommendation_text=build_recommendation_text(
                row.asset_class, row.direction, row.deviation, amount,
            ),
        ))
    return sort_alerts(alerts)


def analyze_deviations(
    snapshot: AllocationSnapshot,
    target_model: TargetModel,
) -> list[RebalancingAlert]:
    """Ordered alerts for a snapshot. Never fails; empty inputs give no alerts."""
    alerts = build_alerts(evaluate_deviations(snapshot, target_model), snapshot.total_value)
    if alerts:
        logger.info(
            f"Deviation analysis: {len(alerts)} alert(s), "
            f"{sum(1 for a in alerts if a.severity == 'high')} high, "
            f"{sum(1 for a in alerts if a.severity == 'medium')} medium, "
            f"{sum(1 for a in alerts if a.severity == 'low')} low"
        )
    return alerts
