"""
Action Recommender
Turn alerts into dollar-denominated buy/sell actions and merge them with
the advisory payload.

The engine's arithmetic is the source of truth for amounts and for the
buy/sell direction of alert-backed actions. The advisory payload is the
source of truth for qualitative framing (reason) and priority ordering.

No LLM, no file I/O.
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_EVEN, Decimal
from typing import Iterable, Optional

from allocation_engine.config.constants import ASSET_CLASS_LABELS, CURRENCY_QUANTUM
from allocation_engine.schemas.advisory_payload import AdvisoryAction, AdvisoryInsight
from allocation_engine.schemas.allocation_output import RebalancingAlert, RecommendedAction
from allocation_engine.schemas.holdings import Holding
from allocation_engine.tools.deviation_analyzer import DeviationRow, rebalance_amount
from allocation_engine.tools.holdings_aggregator import match_asset_class

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Rule-based actions
# ---------------------------------------------------------------------------

def actions_from_alerts(alerts: list[RebalancingAlert]) -> list[RecommendedAction]:
    """One action per alert, in alert order. No priority of their own."""
    return [
        RecommendedAction(
            holding_label=ASSET_CLASS_LABELS.get(alert.asset_class, alert.asset_class),
            asset_class=alert.asset_class,
            action="sell" if alert.direction == "reduce" else "buy",
            amount=alert.dollar_amount,
            percentage=alert.deviation,
            priority=None,
            reason=alert.recommendation_text,
            source="rule",
        )
        for alert in alerts
    ]


def sort_actions(actions: list[RecommendedAction]) -> list[RecommendedAction]:
    """Priority ascending; entries without a priority last, order preserved."""
    return sorted(
        actions,
        key=lambda a: (a.priority is None, a.priority if a.priority is not None else 0),
    )


# ---------------------------------------------------------------------------
# Advisory merge
# ---------------------------------------------------------------------------

def resolve_asset_class(label: str, holdings: Iterable[Holding]) -> Optional[str]:
    """
    Asset class an advisory label refers to.

    The label may name a class directly ("bonds", "Mutual Funds") or one of
    the user's holdings by name, symbol or id.
    """
    asset_class = match_asset_class(label)
    if asset_class is not None:
        return asset_class

    needle = label.strip().lower()
    for holding in holdings:
        for candidate in (holding.name, holding.symbol, holding.id):
            if candidate and candidate.strip().lower() == needle:
                return holding.asset_class
    return None


def _advisory_amount(
    advisory: AdvisoryAction,
    asset_class: Optional[str],
    deviation_by_class: dict[str, Decimal],
    total_value: Decimal,
) -> Decimal:
    """Advisory amount when usable, else recomputed from the engine's numbers."""
    if advisory.amount is not None:
        return advisory.amount.quantize(CURRENCY_QUANTUM, rounding=ROUND_HALF_EVEN)
    if advisory.action == "hold":
        return Decimal("0.00")
    if asset_class is not None and asset_class in deviation_by_class:
        return rebalance_amount(deviation_by_class[asset_class], total_value)
    if advisory.percentage is not None:
        return rebalance_amount(advisory.percentage, total_value)
    return Decimal("0.00")


def merge_advisory_actions(
    rule_actions: list[RecommendedAction],
    advisory: Optional[AdvisoryInsight],
    rows: list[DeviationRow],
    total_value: Decimal,
    holdings: Iterable[Holding] = (),
) -> list[RecommendedAction]:
    """
    Merge validated advisory actions into the rule-based actions.

    Args:
        rule_actions: Actions derived from alerts, in alert order.
        advisory: Validated advisory insight, or None for rule-based only.
        rows: Every evaluated deviation (alerts and sub-threshold classes).
        total_value: Portfolio value the deviations are measured against.
        holdings: Normalized holdings, used to resolve holding names.

    Returns:
        Sorted action list. Without an advisory payload this is the
        rule-based list unchanged.
    """
    if advisory is None:
        return sort_actions(list(rule_actions))

    holdings = list(holdings)
    merged = list(rule_actions)
    index_by_class = {a.asset_class: i for i, a in enumerate(merged) if a.asset_class}
    deviation_by_class = {row.asset_class: row.deviation for row in rows}
    claimed: set[str] = set()
    extras: list[RecommendedAction] = []

    for adv in advisory.actions:
        asset_class = resolve_asset_class(adv.holding, holdings)

        if asset_class in index_by_class and asset_class not in claimed:
            idx = index_by_class[asset_class]
            base = merged[idx]
            if adv.action != base.action:
                logger.info(
                    f"Advisory suggests '{adv.action}' for {adv.holding}, "
                    f"keeping rule-based '{base.action}'"
                )
            merged[idx] = base.model_copy(update={
                "reason": adv.reason or base.reason,
                "priority": adv.priority if adv.priority is not None else base.priority,
                "source": "merged",
            })
            claimed.add(asset_class)
            continue

        extras.append(RecommendedAction(
            holding_label=adv.holding,
            asset_class=asset_class,
            action=adv.action,
            amount=_advisory_amount(adv, asset_class, deviation_by_class, total_value),
            percentage=adv.percentage,
            priority=adv.priority,
            reason=adv.reason or f"Advisor recommends to {adv.action} {adv.holding}",
            source="advisory",
        ))

    logger.info(
        f"Advisory merge: {len(claimed)}/{len(rule_actions)} rule actions reframed, "
        f"{len(extras)} advisory-only actions added"
    )
    return sort_actions(merged + extras)
