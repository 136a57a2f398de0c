"""
CrewAI tool wrappers for the allocation engine. Requires crewai.
"""

from __future__ import annotations

import json

from crewai.tools import BaseTool
from pydantic import BaseModel, Field


class AllocationAnalysisInput(BaseModel):
    holdings_json: str = Field(..., description="JSON array of holdings records")
    targets_json: str = Field(
        "", description="Optional JSON target model ({asset_class: fraction})"
    )


class AllocationAnalysisTool(BaseTool):
    """Run the deterministic allocation analysis on a holdings list."""

    name: str = "allocation_analysis"
    description: str = (
        "Compute allocation by asset class, deviation alerts against the "
        "target model, and dollar-denominated rebalancing actions"
    )
    args_schema: type[BaseModel] = AllocationAnalysisInput

    def _run(self, holdings_json: str, targets_json: str = "") -> str:
        from allocation_engine.agents.rebalancing_advisor import run_rebalancing_pipeline

        holdings = json.loads(holdings_json)
        targets = json.loads(targets_json) if targets_json.strip() else None
        analysis = run_rebalancing_pipeline(holdings, targets)
        return analysis.model_dump_json(indent=2)
