"""
Shared test fixtures for the allocation engine tests.
Provides sample holdings, target models and advisory payloads.
"""

from __future__ import annotations

import json
from pathlib import Path

import pandas as pd

FIXTURES_DIR = Path(__file__).parent


def make_holding(asset_class: str, value, **extra) -> dict:
    """Raw holding record as the entity store returns it."""
    record = {"asset_class": asset_class, "current_value": value}
    record.update(extra)
    return record


# Target model used throughout the scenarios (stocks/bonds/cash only)
SCENARIO_TARGETS = {"stocks": 0.6, "bonds": 0.3, "cash": 0.1}

# Scenario A: stocks on target, bonds and cash exactly 10 points off
SCENARIO_A_HOLDINGS = [
    make_holding("stocks", 6000),
    make_holding("bonds", 4000),
]

# Every class within 5 points of SCENARIO_TARGETS
BALANCED_HOLDINGS = [
    make_holding("stocks", 6200),
    make_holding("bonds", 3300),
    make_holding("cash", 500),
]

# Scenario B: two high alerts with equal deviation
SCENARIO_B_HOLDINGS = [
    make_holding("stocks", 9000),
    make_holding("cash", 1000),
]

# A realistic household portfolio, camelCase and snake_case mixed
SAMPLE_HOLDINGS = [
    {"id": "h1", "name": "Vanguard Total Stock", "symbol": "VTI", "assetClass": "etf",
     "currentValue": 42000, "costBasis": 30000, "risk_level": "medium"},
    {"id": "h2", "name": "Apple Inc", "symbol": "AAPL", "asset_type": "stocks",
     "current_value": 18000, "purchase_price": 12000, "risk_level": "high"},
    {"id": "h3", "name": "Total Bond Market", "symbol": "BND", "asset_class": "bonds",
     "current_value": 15000, "cost_basis": 16000, "risk_level": "low"},
    {"id": "h4", "name": "Bitcoin", "symbol": "BTC", "asset_class": "crypto",
     "current_value": 20000, "cost_basis": 5000, "risk_level": "high"},
    {"id": "h5", "name": "High-Yield Savings", "asset_class": "cash",
     "current_value": 5000, "cost_basis": 5000, "risk_level": "low"},
]

# Well-formed advisory payload for SAMPLE_HOLDINGS
SAMPLE_ADVISORY_PAYLOAD = {
    "summary": "Crypto is well above target and bonds are underweight. "
               "Trim crypto and add to bonds.",
    "rebalancing_needed": True,
    "severity": "significant",
    "actions": [
        {"holding": "bonds", "action": "buy", "amount": 14000, "percentage": 15,
         "reason": "Bond sleeve is far below the 30% target.", "priority": 1},
        {"holding": "BTC", "action": "sell", "amount": 20000,
         "reason": "Crypto exposure adds volatility with no target weight.", "priority": 2},
        {"holding": "AAPL", "action": "hold", "reason": "Single-stock position is fine for now.",
         "priority": 3},
    ],
    "tax_considerations": ["Selling BTC realizes a large long-term gain."],
    "expected_outcome": "Allocation within 5 points of target.",
}


def write_holdings_json(path: Path, holdings: list[dict]) -> Path:
    path.write_text(json.dumps(holdings), encoding="utf-8")
    return path


def write_holdings_csv(path: Path, rows: list[dict]) -> Path:
    pd.DataFrame(rows).to_csv(path, index=False)
    return path
