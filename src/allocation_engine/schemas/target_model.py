"""
Target Model — Configuration Schema

Desired allocation per asset class plus the grouping table that maps a class
onto the bucket whose target it is compared against (etf and mutual_funds
are compared against stocks by default). Grouping is data, so target policy
can change without touching the deviation analyzer.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from allocation_engine.config.constants import (
    ASSET_CLASSES,
    HUNDRED,
    TARGET_SUM_TOLERANCE,
)
from allocation_engine.schemas.holdings import DecimalNumber


class TargetModel(BaseModel):
    """Target fractions (0.0-1.0) per asset class and the class grouping table."""

    model_config = ConfigDict(frozen=True)

    targets: Dict[str, DecimalNumber] = Field(default_factory=dict)
    grouping: Dict[str, str] = Field(default_factory=dict)

    @field_validator("targets", mode="before")
    @classmethod
    def coerce_fractions(cls, v: Any) -> Any:
        """Floats go through str() so 0.3 stays 0.3 and not its binary neighbour."""
        if not isinstance(v, dict):
            return v
        coerced = {}
        for asset_class, fraction in v.items():
            if isinstance(fraction, bool):
                raise ValueError(f"target for '{asset_class}' must be a number, got {fraction!r}")
            if isinstance(fraction, float):
                fraction = Decimal(str(fraction))
            coerced[asset_class] = fraction
        return coerced

    @field_validator("targets")
    @classmethod
    def validate_targets(cls, v: Dict[str, Decimal]) -> Dict[str, Decimal]:
        for asset_class, fraction in v.items():
            if asset_class not in ASSET_CLASSES:
                raise ValueError(f"Unknown asset class in targets: '{asset_class}'")
            if not fraction.is_finite() or fraction < 0 or fraction > 1:
                raise ValueError(
                    f"Target for '{asset_class}' must be within [0, 1], got {fraction}"
                )
        return v

    @field_validator("grouping")
    @classmethod
    def validate_grouping_keys(cls, v: Dict[str, str]) -> Dict[str, str]:
        for asset_class, bucket in v.items():
            if asset_class not in ASSET_CLASSES:
                raise ValueError(f"Unknown asset class in grouping: '{asset_class}'")
            if bucket not in ASSET_CLASSES:
                raise ValueError(f"Unknown bucket '{bucket}' for grouped class '{asset_class}'")
            if bucket == asset_class:
                raise ValueError(f"Class '{asset_class}' cannot be grouped onto itself")
        return v

    @model_validator(mode="after")
    def validate_fraction_sum(self) -> "TargetModel":
        """Non-empty target tables must sum to 1.0."""
        if not self.targets:
            return self
        total = sum(self.targets.values(), Decimal("0"))
        if abs(total - 1) > TARGET_SUM_TOLERANCE:
            raise ValueError(f"Target fractions sum to {total}, expected 1.0")
        return self

    @model_validator(mode="after")
    def validate_grouping_consistency(self) -> "TargetModel":
        """Grouped classes have no target of their own and buckets are not grouped."""
        for asset_class, bucket in self.grouping.items():
            if asset_class in self.targets:
                raise ValueError(
                    f"Class '{asset_class}' is grouped onto '{bucket}' but also has its own target"
                )
            if bucket in self.grouping:
                raise ValueError(
                    f"Bucket '{bucket}' for '{asset_class}' is itself grouped onto "
                    f"'{self.grouping[bucket]}'"
                )
        return self

    @property
    def is_empty(self) -> bool:
        return not self.targets

    def resolve_bucket(self, asset_class: str) -> str:
        """Bucket whose target a class is compared against."""
        return self.grouping.get(asset_class, asset_class)

    def target_percent_for(self, asset_class: str) -> Decimal:
        """Target percentage (0-100) for a class, through the grouping table."""
        fraction = self.targets.get(self.resolve_bucket(asset_class), Decimal("0"))
        return fraction * HUNDRED
