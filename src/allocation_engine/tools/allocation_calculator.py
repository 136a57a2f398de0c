"""
Allocation Calculator
Turn per-class value sums into percentage-of-portfolio figures.

Only classes present in the holdings are materialized. A zero total value
yields an empty snapshot, which callers must read as "not enough data".
"""

from __future__ import annotations

import logging

from allocation_engine.config.constants import HUNDRED
from allocation_engine.schemas.allocation_output import AllocationEntry, AllocationSnapshot
from allocation_engine.tools.holdings_aggregator import HoldingsAggregate

logger = logging.getLogger(__name__)


def compute_allocation(aggregate: HoldingsAggregate) -> AllocationSnapshot:
    """currentPercent = 100 * value_sum / total_value for each held class."""
    total = aggregate.total_value
    if total <= 0:
        logger.info("Total portfolio value is zero, allocation snapshot is empty")
        return AllocationSnapshot()

    allocations = {
        asset_class: AllocationEntry(
            asset_class=asset_class,
            value_sum=value,
            current_percent=HUNDRED * value / total,
        )
        for asset_class, value in aggregate.value_by_class.items()
    }
    return AllocationSnapshot(total_value=total, allocations=allocations)
