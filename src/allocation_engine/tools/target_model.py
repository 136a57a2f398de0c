"""
Target Model Loader
Build and validate TargetModel instances from configuration.

Invalid configuration is the one error class the engine surfaces: it raises
TargetModelError at load time instead of clamping, since a bad target table
invalidates every downstream comparison.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Union

from pydantic import ValidationError as PydanticValidationError

from allocation_engine.config.constants import DEFAULT_CLASS_GROUPING, DEFAULT_TARGET_FRACTIONS
from allocation_engine.exceptions import TargetModelError
from allocation_engine.schemas.target_model import TargetModel

logger = logging.getLogger(__name__)


def default_target_model() -> TargetModel:
    """Balanced 60/30/5/5 model with etf and mutual_funds grouped onto stocks."""
    return TargetModel(targets=DEFAULT_TARGET_FRACTIONS, grouping=DEFAULT_CLASS_GROUPING)


def load_target_model(config: Union[TargetModel, Mapping[str, Any]]) -> TargetModel:
    """
    Validate a target model configuration.

    Accepts either {"targets": {...}, "grouping": {...}} or a flat
    {asset_class: fraction} mapping, which gets the default grouping table.

    Raises:
        TargetModelError: fractions outside [0, 1], not summing to 1.0,
            unknown classes, or an inconsistent grouping table.
    """
    if isinstance(config, TargetModel):
        return config
    if not isinstance(config, Mapping):
        raise TargetModelError(
            f"Target model config must be a mapping, got {type(config).__name__}"
        )

    if "targets" in config:
        targets = config["targets"]
        grouping = config.get("grouping", DEFAULT_CLASS_GROUPING)
    else:
        targets = dict(config)
        grouping = DEFAULT_CLASS_GROUPING

    try:
        model = TargetModel(targets=targets, grouping=grouping)
    except PydanticValidationError as e:
        raise TargetModelError(f"Invalid target model: {e}") from e

    logger.info(
        f"Loaded target model: {len(model.targets)} targets, "
        f"{len(model.grouping)} grouped classes"
    )
    return model


def load_target_model_file(path: Union[str, Path]) -> TargetModel:
    """Load a target model from a JSON file."""
    p = Path(path)
    if not p.exists():
        raise TargetModelError(f"Target model file not found: {p}")
    try:
        config = json.loads(p.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise TargetModelError(f"Target model file {p.name} is not valid JSON: {e}") from e
    return load_target_model(config)
