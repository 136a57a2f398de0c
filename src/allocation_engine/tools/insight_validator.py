"""
Insight Validator
Structurally validate and normalize the advisory analysis payload before it
reaches presentation layers or the action merge.

Follows the same dual-path rule as every LLM touchpoint: a bad entry is
dropped, a bad payload is dropped, and the deterministic output stays
authoritative. Never raises.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Optional

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from allocation_engine.exceptions import AdvisoryPayloadError, ProcessingError
from allocation_engine.schemas.advisory_payload import AdvisoryAction, AdvisoryInsight

logger = logging.getLogger(__name__)

_OPTIONAL_FIELDS = (
    "rebalancing_needed",
    "severity",
    "tax_considerations",
    "expected_outcome",
    "risk_impact",
    "execution_timeline",
    "estimated_costs",
    "step_by_step_plan",
)


def _parse_payload_text(text: str) -> dict:
    """Extract the JSON object from a model response (fences and prose allowed)."""
    text = text.strip()
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end <= start:
        raise AdvisoryPayloadError("Advisory response did not contain a JSON object")
    try:
        data = json.loads(text[start:end + 1])
    except json.JSONDecodeError as e:
        raise AdvisoryPayloadError(f"Failed to parse advisory JSON: {e}") from e
    if not isinstance(data, dict):
        raise AdvisoryPayloadError("Advisory JSON is not an object")
    return data


def _as_mapping(payload: Any) -> Mapping:
    if isinstance(payload, str):
        payload = _parse_payload_text(payload)
    elif isinstance(payload, BaseModel):
        payload = payload.model_dump()
    if not isinstance(payload, Mapping):
        raise AdvisoryPayloadError(
            f"Advisory payload must be an object, got {type(payload).__name__}"
        )
    # {"success": true, "rebalancing": {...}} envelope
    envelope = payload.get("rebalancing")
    if isinstance(envelope, Mapping) and "summary" not in payload:
        payload = envelope
    return payload


def _validate_shape(payload: Any, issues: list[ProcessingError]) -> AdvisoryInsight:
    data = _as_mapping(payload)

    summary = data.get("summary")
    if not isinstance(summary, str) or not summary.strip():
        raise AdvisoryPayloadError("Advisory payload missing 'summary' string")

    raw_actions = data.get("actions", data.get("recommended_actions"))
    if not isinstance(raw_actions, list):
        raise AdvisoryPayloadError("Advisory payload missing 'actions' array")

    actions: list[AdvisoryAction] = []
    for index, entry in enumerate(raw_actions):
        if not isinstance(entry, Mapping):
            issues.append(ProcessingError(
                source="advisory",
                error_type="INVALID_ADVISORY_ACTION",
                message=f"Action entry must be an object, got {type(entry).__name__}",
                context={"index": index},
            ))
            continue
        try:
            actions.append(AdvisoryAction.model_validate(dict(entry)))
        except PydanticValidationError as e:
            issues.append(ProcessingError(
                source="advisory",
                error_type="INVALID_ADVISORY_ACTION",
                message="; ".join(
                    f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
                ),
                context={"index": index, "holding": entry.get("holding")},
            ))

    extras = {key: data[key] for key in _OPTIONAL_FIELDS if key in data}
    return AdvisoryInsight(summary=summary.strip(), actions=actions, **extras)


def validate_advisory_payload(
    payload: Any,
) -> tuple[Optional[AdvisoryInsight], list[ProcessingError]]:
    """
    Validate an untrusted advisory payload.

    Args:
        payload: dict, JSON text (optionally fenced), pydantic model, or None.

    Returns:
        (insight, issues). insight is None when the payload is absent or
        malformed; issues lists every dropped entry or the payload failure.
    """
    issues: list[ProcessingError] = []
    if payload is None:
        return None, issues

    try:
        insight = _validate_shape(payload, issues)
    except (AdvisoryPayloadError, PydanticValidationError) as e:
        logger.warning(f"Advisory payload rejected, using rule-based output only: {e}")
        issues.append(ProcessingError.from_exception(
            "advisory", "INVALID_ADVISORY_PAYLOAD", e,
        ))
        return None, issues

    if issues:
        logger.warning(f"Advisory payload: dropped {len(issues)} invalid action(s)")
    return insight, issues
