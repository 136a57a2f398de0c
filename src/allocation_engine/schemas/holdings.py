"""
Holdings — Input Schema

A normalized investment holding. Raw records (plain dicts from the entity
store or a file export) are coerced into this shape once, by the holdings
aggregator; every later stage reads only these fields.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, field_validator

from allocation_engine.config.constants import (
    ASSET_CLASS_LABELS,
    ASSET_CLASSES,
    MAX_AMOUNT,
    RISK_LEVELS,
)


DecimalNumber = Annotated[
    Decimal, PlainSerializer(float, return_type=float, when_used="json")
]
"""Exact in Python, a plain number in JSON output"""


class Holding(BaseModel):
    """One investment position, already normalized."""

    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    name: Optional[str] = None
    symbol: Optional[str] = None
    asset_class: str = Field(default="other")
    current_value: DecimalNumber = Field(default=Decimal("0"), ge=0, lt=MAX_AMOUNT)
    cost_basis: Optional[DecimalNumber] = Field(None, gt=-MAX_AMOUNT, lt=MAX_AMOUNT)
    risk_level: Optional[str] = None

    @field_validator("asset_class")
    @classmethod
    def validate_asset_class(cls, v: str) -> str:
        if v not in ASSET_CLASSES:
            raise ValueError(f"asset_class must be one of {ASSET_CLASSES}, got '{v}'")
        return v

    @field_validator("risk_level")
    @classmethod
    def validate_risk_level(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in RISK_LEVELS:
            raise ValueError(f"risk_level must be one of {RISK_LEVELS}, got '{v}'")
        return v

    @property
    def label(self) -> str:
        """Best human-readable name for the position."""
        return self.name or self.symbol or self.id or ASSET_CLASS_LABELS[self.asset_class]
