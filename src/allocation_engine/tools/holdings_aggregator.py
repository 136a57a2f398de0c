"""
Holdings Aggregator
Normalize raw holding records and sum current value / cost basis per
asset class.

This is the single coercion boundary: every amount becomes a Decimal (or
None) here, unknown asset classes become "other", and nothing downstream
re-parses raw input. Never raises.

No LLM, no file I/O.
"""

from __future__ import annotations

import logging
import math
import numbers
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Optional

from pydantic import ValidationError as PydanticValidationError

from allocation_engine.config.constants import (
    ASSET_CLASS_ALIASES,
    ASSET_CLASS_LABELS,
    ASSET_CLASSES,
    FALLBACK_ASSET_CLASS,
    MAX_AMOUNT,
    RISK_LEVELS,
)
from allocation_engine.exceptions import ErrorSeverity, ProcessingError
from allocation_engine.schemas.holdings import Holding

logger = logging.getLogger(__name__)

# Raw record keys accepted for each Holding field, first match wins
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "id": ("id", "_id", "holding_id"),
    "name": ("name", "holding_name"),
    "symbol": ("symbol", "ticker"),
    "asset_class": ("asset_class", "assetClass", "asset_type", "assetType"),
    "current_value": ("current_value", "currentValue", "market_value"),
    "cost_basis": ("cost_basis", "costBasis", "purchase_price"),
    "risk_level": ("risk_level", "riskLevel"),
}

_LABEL_TO_CLASS = {label.lower(): cls for cls, label in ASSET_CLASS_LABELS.items()}


@dataclass
class HoldingsAggregate:
    """Per-class sums over one holdings list, in first-seen class order."""

    holdings: list[Holding] = field(default_factory=list)
    value_by_class: dict[str, Decimal] = field(default_factory=dict)
    cost_by_class: dict[str, Decimal] = field(default_factory=dict)
    total_value: Decimal = Decimal("0")
    issues: list[ProcessingError] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------

def _bounded(value: Decimal) -> Optional[Decimal]:
    if not value.is_finite() or value.copy_abs() >= MAX_AMOUNT:
        return None
    return value


def to_decimal(value: Any) -> Optional[Decimal]:
    """
    Convert a raw amount to a finite Decimal, or None when it isn't one.

    Magnitudes at or above MAX_AMOUNT ("1e999999" and the like) count as
    unusable, so no later percentage or rounding step can overflow.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return _bounded(value)
    if isinstance(value, numbers.Integral):
        return _bounded(Decimal(int(value)))
    if isinstance(value, numbers.Real):
        as_float = float(value)
        return _bounded(Decimal(repr(as_float))) if math.isfinite(as_float) else None
    if isinstance(value, str):
        text = value.strip().replace(",", "")
        if not text:
            return None
        try:
            parsed = Decimal(text)
        except InvalidOperation:
            return None
        return _bounded(parsed)
    return None


def match_asset_class(value: Any) -> Optional[str]:
    """Map a free-form class name ("Mutual Funds", "ETFs", "bond") to a class."""
    if not isinstance(value, str):
        return None
    key = re.sub(r"[\s\-]+", "_", value.strip().lower())
    if key in ASSET_CLASSES:
        return key
    if key in ASSET_CLASS_ALIASES:
        return ASSET_CLASS_ALIASES[key]
    return _LABEL_TO_CLASS.get(value.strip().lower())


def _lookup(record: Mapping, field_name: str) -> Any:
    for key in FIELD_ALIASES[field_name]:
        if key in record:
            return record[key]
    return None


def _optional_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip()
    return text or None


def normalize_holding(
    record: Mapping,
    index: int,
    issues: list[ProcessingError],
) -> Holding:
    """Coerce one raw record into a Holding, recording what had to change."""
    context = {"index": index, "id": _optional_text(_lookup(record, "id"))}

    raw_class = _lookup(record, "asset_class")
    asset_class = match_asset_class(raw_class)
    if asset_class is None:
        asset_class = FALLBACK_ASSET_CLASS
        if raw_class not in (None, ""):
            issues.append(ProcessingError(
                source="holdings",
                error_type="UNKNOWN_ASSET_CLASS",
                message=f"Unknown asset class {raw_class!r}, bucketed under '{FALLBACK_ASSET_CLASS}'",
                severity=ErrorSeverity.INFO,
                context=context,
            ))

    raw_value = _lookup(record, "current_value")
    current_value = to_decimal(raw_value)
    if current_value is None:
        if raw_value is not None:
            issues.append(ProcessingError(
                source="holdings",
                error_type="NON_NUMERIC_VALUE",
                message=f"current_value {raw_value!r} is not a usable amount, treated as 0",
                context=context,
            ))
        current_value = Decimal("0")
    elif current_value < 0:
        issues.append(ProcessingError(
            source="holdings",
            error_type="NEGATIVE_VALUE",
            message=f"current_value {current_value} is negative, treated as 0",
            context=context,
        ))
        current_value = Decimal("0")

    raw_cost = _lookup(record, "cost_basis")
    cost_basis = to_decimal(raw_cost)
    if cost_basis is None and raw_cost is not None:
        issues.append(ProcessingError(
            source="holdings",
            error_type="NON_NUMERIC_COST_BASIS",
            message=f"cost_basis {raw_cost!r} is not a usable amount, ignored",
            severity=ErrorSeverity.INFO,
            context=context,
        ))

    risk_level = _optional_text(_lookup(record, "risk_level"))
    if risk_level is not None:
        risk_level = risk_level.lower()
        if risk_level not in RISK_LEVELS:
            risk_level = None

    return Holding(
        id=context["id"],
        name=_optional_text(_lookup(record, "name")),
        symbol=_optional_text(_lookup(record, "symbol")),
        asset_class=asset_class,
        current_value=current_value,
        cost_basis=cost_basis,
        risk_level=risk_level,
    )


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

def aggregate_holdings(records: Optional[Iterable[Any]]) -> HoldingsAggregate:
    """
    Group holdings by asset class and sum their values.

    Args:
        records: Holding models or plain mappings, in any order. None is
            treated as an empty list.

    Returns:
        HoldingsAggregate with per-class sums in first-seen order.
    """
    aggregate = HoldingsAggregate()
    if records is None:
        return aggregate

    for index, record in enumerate(records):
        if isinstance(record, Holding):
            holding = record
        elif isinstance(record, Mapping):
            try:
                holding = normalize_holding(record, index, aggregate.issues)
            except PydanticValidationError as e:
                aggregate.issues.append(ProcessingError.from_exception(
                    "holdings", "INVALID_HOLDING", e, context={"index": index},
                ))
                continue
        else:
            aggregate.issues.append(ProcessingError(
                source="holdings",
                error_type="INVALID_HOLDING",
                message=f"Holding record must be a mapping, got {type(record).__name__}",
                context={"index": index},
            ))
            continue

        aggregate.holdings.append(holding)
        cls = holding.asset_class
        aggregate.value_by_class[cls] = aggregate.value_by_class.get(cls, Decimal("0")) + holding.current_value
        if holding.cost_basis is not None:
            aggregate.cost_by_class[cls] = aggregate.cost_by_class.get(cls, Decimal("0")) + holding.cost_basis
        aggregate.total_value += holding.current_value

    if aggregate.issues:
        logger.warning(
            f"Holdings aggregation recovered {len(aggregate.issues)} issue(s) "
            f"across {len(aggregate.holdings)} holdings"
        )
    logger.debug(
        f"Aggregated {len(aggregate.holdings)} holdings into "
        f"{len(aggregate.value_by_class)} classes, total ${aggregate.total_value:,.2f}"
    )
    return aggregate
