"""
Advisory Client
Request a qualitative rebalancing analysis from the hosted model.

The prompt is built from the engine's own numbers (allocation, alerts,
metrics). The raw response text is returned untouched for the insight
validator; any failure returns None so the caller falls back to rule-based
output.
"""

from __future__ import annotations

import logging
import os
import time
from typing import Optional

from allocation_engine.config.constants import (
    ADVISORY_MAX_TOKENS,
    ADVISORY_MODEL,
    ADVISORY_TIMEOUT_SECONDS,
    ASSET_CLASS_LABELS,
    HUNDRED,
)
from allocation_engine.schemas.allocation_output import RebalancingAnalysis
from allocation_engine.schemas.target_model import TargetModel

logger = logging.getLogger(__name__)


_ADVISORY_PROMPT_TEMPLATE = """\
You are a portfolio rebalancing advisor. Generate rebalancing recommendations.

CURRENT PORTFOLIO VALUE: ${total_value:,.2f}

TARGET ALLOCATION:
{target_lines}

CURRENT ALLOCATION:
{allocation_lines}

CURRENT HOLDINGS:
{holding_lines}

DEVIATION ALERTS (rule-based, percentage points from target):
{alert_lines}

Return ONLY a JSON object (no markdown, no code fences, no extra text) with fields:
- summary: str (2-3 sentences)
- rebalancing_needed: bool
- severity: one of "minor", "moderate", "significant", "urgent"
- actions: array of objects with
    holding: str (an asset class name or one of the holdings above)
    action: one of "buy", "sell", "hold"
    amount: number (dollars)
    percentage: number (percentage points)
    reason: str (1-2 sentences)
    priority: int (1 = most urgent)
- tax_considerations: array of str
- expected_outcome: str
- risk_impact: str
- execution_timeline: str
- estimated_costs: number (estimated transaction costs in dollars)
- step_by_step_plan: array of str
"""


def _target_lines(target_model: Optional[TargetModel]) -> str:
    """One line per target bucket, naming the classes grouped onto it."""
    if target_model is None or target_model.is_empty:
        return "- No specific target provided, suggest an optimal allocation"
    grouped: dict[str, list[str]] = {}
    for asset_class, bucket in target_model.grouping.items():
        grouped.setdefault(bucket, []).append(ASSET_CLASS_LABELS.get(asset_class, asset_class))
    lines = []
    for bucket, fraction in target_model.targets.items():
        line = f"- {ASSET_CLASS_LABELS.get(bucket, bucket)}: {fraction * HUNDRED:.1f}%"
        if bucket in grouped:
            line += f" (includes {', '.join(grouped[bucket])})"
        lines.append(line)
    return "\n".join(lines)


def build_advisory_prompt(analysis: RebalancingAnalysis) -> str:
    """Render the advisory prompt for a rule-based analysis."""
    snapshot = analysis.snapshot
    allocation_lines = "\n".join(
        f"- {ASSET_CLASS_LABELS.get(e.asset_class, e.asset_class)}: "
        f"${e.value_sum:,.2f} ({e.current_percent:.1f}%)"
        for e in snapshot.allocations.values()
    ) or "- (none)"
    holding_lines = "\n".join(
        f"- {h.label} ({h.asset_class}): ${h.current_value:,.2f} ({h.allocation_pct:.1f}%)"
        for h in analysis.metrics.holdings
    ) or "- (none)"
    alert_lines = "\n".join(
        f"- {a.asset_class}: {a.current_percent:.1f}% vs target {a.target_percent:.1f}% "
        f"({a.severity}, {a.direction} by {a.deviation:.1f})"
        for a in analysis.alerts
    ) or "- none, allocation is within target ranges"

    return _ADVISORY_PROMPT_TEMPLATE.format(
        total_value=snapshot.total_value,
        target_lines=_target_lines(analysis.target_model),
        allocation_lines=allocation_lines,
        holding_lines=holding_lines,
        alert_lines=alert_lines,
    )


def request_advisory_payload(
    analysis: RebalancingAnalysis,
    model: str = ADVISORY_MODEL,
    timeout: float = ADVISORY_TIMEOUT_SECONDS,
) -> Optional[str]:
    """
    Ask the advisory model for a qualitative analysis.

    Args:
        analysis: Rule-based analysis the advice should build on.
        model: Anthropic model ID.
        timeout: Client-side request timeout in seconds.

    Returns:
        Raw response text, or None on any failure (missing SDK or key,
        network error, empty response).
    """
    if analysis.snapshot.is_empty:
        return None

    _t0 = time.monotonic()
    try:
        import anthropic
        client = anthropic.Anthropic(
            api_key=os.environ.get("ANTHROPIC_API_KEY"),
            timeout=timeout,
            max_retries=0,
        )

        response = client.messages.create(
            model=model,
            max_tokens=ADVISORY_MAX_TOKENS,
            messages=[{"role": "user", "content": build_advisory_prompt(analysis)}],
        )
        text = response.content[0].text if response.content else ""
        logger.info(
            f"Advisory response received in {time.monotonic() - _t0:.1f}s "
            f"({len(text)} chars)"
        )
        return text or None

    except ImportError:
        logger.warning("anthropic SDK not installed, skipping advisory analysis")
    except Exception as e:
        logger.warning(f"Advisory request failed: {e}")

    return None
