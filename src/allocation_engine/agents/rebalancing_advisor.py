"""
Rebalancing Advisor
Allocation & Rebalancing Specialist

Receives a holdings list (+ optional target model and advisory payload).
Produces RebalancingAnalysis with:
- Allocation snapshot by asset class
- Severity-ordered deviation alerts
- Priority-ordered recommended actions
- Portfolio metrics

The pipeline is pure and recomputed in full on every holdings change. The
advisory call is the only slow step; run_advised_pipeline bounds it with a
timeout and falls back to the rule-based result.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from functools import partial
from typing import Any, Callable, Iterable, Optional, Union

try:
    from crewai import Agent, Task
    HAS_CREWAI = True
except ImportError:
    HAS_CREWAI = False
    Agent = None  # type: ignore
    Task = None  # type: ignore

from allocation_engine.config.constants import ADVISORY_TIMEOUT_SECONDS
from allocation_engine.schemas.allocation_output import (
    AllocationSnapshot,
    RebalancingAlert,
    RebalancingAnalysis,
    RecommendedAction,
)
from allocation_engine.schemas.target_model import TargetModel
from allocation_engine.tools.action_recommender import actions_from_alerts, merge_advisory_actions
from allocation_engine.tools.advisory_client import request_advisory_payload
from allocation_engine.tools.allocation_calculator import compute_allocation
from allocation_engine.tools.deviation_analyzer import build_alerts, evaluate_deviations
from allocation_engine.tools.holdings_aggregator import aggregate_holdings
from allocation_engine.tools.insight_validator import validate_advisory_payload
from allocation_engine.tools.portfolio_metrics import compute_portfolio_metrics
from allocation_engine.tools.target_model import default_target_model, load_target_model

logger = logging.getLogger(__name__)

AdvisorFn = Callable[[RebalancingAnalysis], Any]


# ---------------------------------------------------------------------------
# CrewAI Agent Builder
# ---------------------------------------------------------------------------

def build_advisor_agent() -> "Agent":
    """Create the Rebalancing Advisor Agent. Requires crewai."""
    if not HAS_CREWAI:
        raise ImportError("crewai is required for agentic mode. pip install allocation-engine[agents]")
    from allocation_engine.tools.crew_tools import AllocationAnalysisTool

    return Agent(
        role="Allocation & Rebalancing Specialist",
        goal=(
            "Compare the user's allocation by asset class against the target "
            "model, flag every class more than 5 points off target, and "
            "explain the buy/sell moves that bring the portfolio back in line."
        ),
        backstory=(
            "You are a careful portfolio reviewer. You rely on the allocation "
            "tool for every number and never invent amounts; your job is to "
            "frame and prioritize the moves for the user."
        ),
        tools=[AllocationAnalysisTool()],
        verbose=True,
        allow_delegation=False,
        max_iter=5,
        temperature=0.3,
    )


def build_advisor_task(
    agent: "Agent",
    holdings_json: str = "",
) -> "Task":
    """Create the rebalancing review task. Requires crewai."""
    if not HAS_CREWAI:
        raise ImportError("crewai is required for agentic mode. pip install allocation-engine[agents]")
    return Task(
        description=f"""Review the portfolio allocation and recommend rebalancing moves.

STEPS:
1. Run the allocation analysis tool on the holdings below
2. Summarize the allocation and every alert
3. For each alert give a buy/sell/hold action, the tool's dollar amount,
   a short reason and a priority (1 = most urgent)

Holdings:
{holdings_json}
""",
        expected_output=(
            "JSON with summary and actions[{holding, action, amount, "
            "percentage, reason, priority}]."
        ),
        agent=agent,
    )


# ---------------------------------------------------------------------------
# Deterministic Pipeline
# ---------------------------------------------------------------------------

def _resolve_target_model(
    target_model: Union[TargetModel, Mapping, None],
) -> TargetModel:
    if target_model is None:
        return default_target_model()
    return load_target_model(target_model)


def run_rebalancing_pipeline(
    holdings: Optional[Iterable[Any]],
    target_model: Union[TargetModel, Mapping, None] = None,
    advisory_payload: Any = None,
) -> RebalancingAnalysis:
    """
    Run the allocation analysis without any external call.

    Args:
        holdings: Holding records (dicts or Holding models), any order.
        target_model: TargetModel or config mapping. Defaults to the
            balanced model in config.constants.
        advisory_payload: Optional advisory analysis (dict or JSON text).
            Malformed payloads are dropped and the rule-based result stands.

    Returns:
        Validated RebalancingAnalysis

    Raises:
        TargetModelError: the target model configuration is invalid.
    """
    model = _resolve_target_model(target_model)
    logger.info("[Rebalancer] Running allocation pipeline ...")

    # Step 1: Aggregate holdings by asset class
    aggregate = aggregate_holdings(holdings)

    # Step 2: Allocation snapshot
    snapshot = compute_allocation(aggregate)
    logger.info(
        f"[Rebalancer] Snapshot: {len(snapshot.allocations)} classes, "
        f"${snapshot.total_value:,.2f} total"
    )

    # Step 3: Deviations and alerts
    rows = evaluate_deviations(snapshot, model)
    alerts = build_alerts(rows, snapshot.total_value)

    # Step 4: Rule-based actions
    actions = actions_from_alerts(alerts)

    # Step 5: Advisory payload validation + merge
    insight, advisory_issues = validate_advisory_payload(advisory_payload)
    actions = merge_advisory_actions(actions, insight, rows, snapshot.total_value, aggregate.holdings)
    action_source = "merged" if insight is not None else "deterministic"

    # Step 6: Portfolio metrics
    metrics = compute_portfolio_metrics(aggregate)

    status = _status(snapshot, alerts)
    issues = [issue.to_dict() for issue in aggregate.issues + advisory_issues]

    output = RebalancingAnalysis(
        status=status,
        snapshot=snapshot,
        alerts=alerts,
        actions=actions,
        metrics=metrics,
        target_model=model,
        advisory=insight,
        action_source=action_source,
        issues=issues,
        summary=_build_summary(status, snapshot, alerts, actions, action_source),
    )

    logger.info(
        f"[Rebalancer] Done: status={status}, {len(alerts)} alerts, "
        f"{len(actions)} actions ({action_source})"
    )
    return output


def _call_advisor(
    advisor: AdvisorFn,
    baseline: RebalancingAnalysis,
    timeout: float,
) -> Any:
    """
    Call the advisor on a daemon thread; None on timeout or error.

    A call still running at the deadline is abandoned, and being a daemon
    it never holds up interpreter exit.
    """
    outcome: dict[str, Any] = {}

    def _worker() -> None:
        try:
            outcome["payload"] = advisor(baseline)
        except Exception as e:
            outcome["error"] = e

    worker = threading.Thread(target=_worker, name="advisory", daemon=True)
    worker.start()
    worker.join(timeout)

    if worker.is_alive():
        logger.warning(f"[Rebalancer] Advisory call timed out after {timeout:.1f}s, using rule-based output")
        return None
    if "error" in outcome:
        logger.warning(f"[Rebalancer] Advisory call failed ({outcome['error']}), using rule-based output")
        return None
    return outcome.get("payload")


def run_advised_pipeline(
    holdings: Optional[Iterable[Any]],
    target_model: Union[TargetModel, Mapping, None] = None,
    advisor: Optional[AdvisorFn] = None,
    timeout: float = ADVISORY_TIMEOUT_SECONDS,
) -> RebalancingAnalysis:
    """
    Run the pipeline, then merge an advisory payload if one arrives in time.

    Args:
        holdings: Holding records, any order.
        target_model: TargetModel or config mapping.
        advisor: Callable taking the rule-based analysis and returning an
            advisory payload. Defaults to the anthropic advisory client,
            which gets the same timeout as its request budget.
        timeout: Seconds to wait for the advisor before falling back.

    Returns:
        Merged RebalancingAnalysis, or the rule-based one when the advisor
        is slow, fails, or returns nothing usable.
    """
    holdings = list(holdings or [])
    model = _resolve_target_model(target_model)
    baseline = run_rebalancing_pipeline(holdings, model)
    if baseline.status == "insufficient_data":
        return baseline

    if advisor is None:
        advisor = partial(request_advisory_payload, timeout=timeout)
    payload = _call_advisor(advisor, baseline, timeout)
    if payload is None:
        return baseline
    return run_rebalancing_pipeline(holdings, model, advisory_payload=payload)


# ---------------------------------------------------------------------------
# String Builders
# ---------------------------------------------------------------------------

def _status(snapshot: AllocationSnapshot, alerts: list[RebalancingAlert]) -> str:
    if snapshot.is_empty:
        return "insufficient_data"
    return "rebalance_needed" if alerts else "balanced"


def _build_summary(
    status: str,
    snapshot: AllocationSnapshot,
    alerts: list[RebalancingAlert],
    actions: list[RecommendedAction],
    action_source: str,
) -> str:
    """Build summary string (>= 20 chars)."""
    if status == "insufficient_data":
        return "Not enough data: no holdings with a current value to analyze."
    if status == "balanced":
        return (
            f"Portfolio well balanced: {len(snapshot.allocations)} asset classes, "
            f"${snapshot.total_value:,.0f} total, all within target ranges."
        )

    high = sum(1 for a in alerts if a.severity == "high")
    parts = [
        f"Rebalancing needed: {len(alerts)} alert(s), {high} high severity.",
        f"Largest deviation: {alerts[0].asset_class} at {alerts[0].deviation:.1f} points.",
        f"{len(actions)} recommended action(s)",
    ]
    summary = " ".join(parts)
    if action_source == "merged":
        summary += " with advisory framing."
    else:
        summary += "."
    return summary
