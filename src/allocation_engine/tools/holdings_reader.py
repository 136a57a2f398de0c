"""
Holdings Reader
Load a holdings export (JSON, CSV or Excel) into plain records for the
aggregator.

Values are passed through raw; coercion belongs to the aggregator. Only
file-level problems raise (HoldingsReadError).
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional, Union

import pandas as pd

from allocation_engine.exceptions import HoldingsReadError

logger = logging.getLogger(__name__)

# Spreadsheet headers vary by export source
COLUMN_ALIASES: dict[str, list[str]] = {
    "id": ["id", "ID", "Holding ID"],
    "name": ["name", "Name", "Holding", "Description", "Security"],
    "symbol": ["symbol", "Symbol", "Ticker"],
    "asset_class": ["asset_class", "asset_type", "Asset Class", "Asset Type", "Type"],
    "current_value": [
        "current_value", "Current Value", "Market Value", "Value", "Mkt Val",
    ],
    "cost_basis": ["cost_basis", "Cost Basis", "purchase_price", "Purchase Price", "Cost"],
    "risk_level": ["risk_level", "Risk Level", "Risk"],
}

SPREADSHEET_SUFFIXES = {".csv", ".xls", ".xlsx"}


def _find_column(df: pd.DataFrame, target: str) -> Optional[str]:
    """Find a column in the DataFrame matching known aliases."""
    for alias in COLUMN_ALIASES[target]:
        if alias in df.columns:
            return alias
        for col in df.columns:
            if str(col).strip().lower() == alias.lower():
                return col
    return None


def _clean_cell(val: Any) -> Any:
    """NaN -> None, numpy scalars -> Python scalars."""
    if val is None or (not isinstance(val, str) and pd.isna(val)):
        return None
    if hasattr(val, "item"):
        return val.item()
    return val


def _read_json(path: Path) -> list[dict]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise HoldingsReadError(f"{path.name} is not valid JSON: {e}") from e

    if isinstance(data, dict):
        data = data.get("holdings")
    if not isinstance(data, list):
        raise HoldingsReadError(
            f"{path.name} must contain a list of holdings or {{\"holdings\": [...]}}"
        )
    return data


def _read_spreadsheet(path: Path) -> list[dict]:
    try:
        if path.suffix.lower() == ".csv":
            df = pd.read_csv(path)
        else:
            df = pd.read_excel(path)
    except Exception as e:
        raise HoldingsReadError(f"Unable to read {path.name}: {e}") from e

    columns = {field: _find_column(df, field) for field in COLUMN_ALIASES}
    if columns["current_value"] is None:
        raise HoldingsReadError(
            f"{path.name} has no value column (expected one of "
            f"{COLUMN_ALIASES['current_value']})"
        )

    records = []
    for _, row in df.iterrows():
        records.append({
            field: _clean_cell(row[col])
            for field, col in columns.items()
            if col is not None
        })
    return records


def read_holdings_file(path: Union[str, Path]) -> list[dict]:
    """
    Read holdings records from a file.

    Args:
        path: .json (list, or object with a "holdings" list), .csv, .xls or .xlsx

    Returns:
        List of plain dict records.

    Raises:
        HoldingsReadError: missing file, unsupported type or unreadable content.
    """
    p = Path(path)
    if not p.exists():
        raise HoldingsReadError(f"Holdings file not found: {p}")

    suffix = p.suffix.lower()
    if suffix == ".json":
        records = _read_json(p)
    elif suffix in SPREADSHEET_SUFFIXES:
        records = _read_spreadsheet(p)
    else:
        raise HoldingsReadError(f"Unsupported holdings file type: {p.suffix or '(none)'}")

    logger.info(f"Read {len(records)} holdings from {p.name}")
    return records
