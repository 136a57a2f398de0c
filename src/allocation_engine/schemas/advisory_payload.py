"""
Advisory Payload — Input Schema

Normalized shape of the qualitative analysis returned by the external
advisory service. The payload is untrusted: required fields are strict and
fail validation (the entry or payload is dropped), optional fields are
coerced to None/empty when badly typed.
"""

from __future__ import annotations

import math
from decimal import Decimal
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from allocation_engine.config.constants import ADVISORY_SEVERITIES, HUNDRED, MAX_AMOUNT
from allocation_engine.schemas.holdings import DecimalNumber


def _coerce_non_negative(v: Any) -> Optional[Decimal]:
    """Real, finite numbers in [0, MAX_AMOUNT) only; anything else becomes None."""
    if isinstance(v, bool) or not isinstance(v, (int, float, Decimal)):
        return None
    if isinstance(v, float):
        if not math.isfinite(v):
            return None
        v = Decimal(str(v))
    v = Decimal(v)
    if not v.is_finite() or v < 0 or v >= MAX_AMOUNT:
        return None
    return v


class AdvisoryAction(BaseModel):
    """One buy/sell/hold suggestion from the advisory service."""

    holding: str = Field(..., min_length=1)
    action: Literal["buy", "sell", "hold"]
    amount: Optional[DecimalNumber] = None
    percentage: Optional[DecimalNumber] = None
    reason: Optional[str] = None
    priority: Optional[int] = None

    @field_validator("holding", mode="before")
    @classmethod
    def strip_holding(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("action", mode="before")
    @classmethod
    def normalize_action(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("amount", mode="before")
    @classmethod
    def coerce_amount(cls, v: Any) -> Optional[Decimal]:
        return _coerce_non_negative(v)

    @field_validator("percentage", mode="before")
    @classmethod
    def coerce_percentage(cls, v: Any) -> Optional[Decimal]:
        pct = _coerce_non_negative(v)
        return pct if pct is not None and pct <= HUNDRED else None

    @field_validator("reason", mode="before")
    @classmethod
    def coerce_reason(cls, v: Any) -> Optional[str]:
        if not isinstance(v, str) or not v.strip():
            return None
        return v.strip()

    @field_validator("priority", mode="before")
    @classmethod
    def coerce_priority(cls, v: Any) -> Optional[int]:
        if isinstance(v, bool):
            return None
        if isinstance(v, int):
            return v
        if isinstance(v, float) and math.isfinite(v) and v.is_integer():
            return int(v)
        return None


class AdvisoryInsight(BaseModel):
    """Validated advisory analysis, safe to expose to presentation layers."""

    summary: str = Field(..., min_length=1)
    actions: List[AdvisoryAction] = Field(default_factory=list)
    rebalancing_needed: Optional[bool] = None
    severity: Optional[str] = None
    tax_considerations: List[str] = Field(default_factory=list)
    expected_outcome: Optional[str] = None
    risk_impact: Optional[str] = None
    execution_timeline: Optional[str] = None
    estimated_costs: Optional[DecimalNumber] = None
    step_by_step_plan: List[str] = Field(default_factory=list)

    @field_validator("rebalancing_needed", mode="before")
    @classmethod
    def coerce_flag(cls, v: Any) -> Optional[bool]:
        return v if isinstance(v, bool) else None

    @field_validator("severity", mode="before")
    @classmethod
    def coerce_severity(cls, v: Any) -> Optional[str]:
        if isinstance(v, str) and v.strip().lower() in ADVISORY_SEVERITIES:
            return v.strip().lower()
        return None

    @field_validator("tax_considerations", "step_by_step_plan", mode="before")
    @classmethod
    def coerce_string_list(cls, v: Any) -> List[str]:
        if not isinstance(v, list):
            return []
        return [item.strip() for item in v if isinstance(item, str) and item.strip()]

    @field_validator("estimated_costs", mode="before")
    @classmethod
    def coerce_costs(cls, v: Any) -> Optional[Decimal]:
        return _coerce_non_negative(v)

    @field_validator("expected_outcome", "risk_impact", "execution_timeline", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> Optional[str]:
        if not isinstance(v, str) or not v.strip():
            return None
        return v.strip()
