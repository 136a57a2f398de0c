"""
Centralized configuration for the allocation engine.

Thresholds, asset classes, the default target table and the class grouping
table. Target policy lives here as data so it can change without touching
the comparison algorithm.
"""

from decimal import Decimal

# ============================================================================
# ASSET CLASSES
# ============================================================================

ASSET_CLASSES: tuple[str, ...] = (
    "stocks",
    "bonds",
    "mutual_funds",
    "etf",
    "crypto",
    "real_estate",
    "commodities",
    "cash",
    "other",
)
"""Every asset class a holding can carry"""

FALLBACK_ASSET_CLASS = "other"
"""Bucket for unknown or missing asset classes"""

ASSET_CLASS_LABELS: dict[str, str] = {
    "stocks": "Stocks",
    "bonds": "Bonds",
    "mutual_funds": "Mutual Funds",
    "etf": "ETF",
    "crypto": "Cryptocurrency",
    "real_estate": "Real Estate",
    "commodities": "Commodities",
    "cash": "Cash",
    "other": "Other",
}
"""Display labels, also accepted as input spellings"""

ASSET_CLASS_ALIASES: dict[str, str] = {
    "stock": "stocks",
    "equity": "stocks",
    "equities": "stocks",
    "bond": "bonds",
    "fixed_income": "bonds",
    "mutual_fund": "mutual_funds",
    "etfs": "etf",
    "cryptocurrency": "crypto",
    "reit": "real_estate",
    "property": "real_estate",
    "commodity": "commodities",
}
"""Common spellings normalized to an asset class"""

RISK_LEVELS: tuple[str, ...] = ("high", "medium", "low")

# ============================================================================
# DEFAULT TARGET MODEL
# ============================================================================
# Balanced portfolio. Grouped classes carry no target of their own.

DEFAULT_TARGET_FRACTIONS: dict[str, float] = {
    "stocks": 0.60,
    "bonds": 0.30,
    "cash": 0.05,
    "real_estate": 0.05,
    "crypto": 0.00,
    "commodities": 0.00,
    "other": 0.00,
}

DEFAULT_CLASS_GROUPING: dict[str, str] = {
    "etf": "stocks",
    "mutual_funds": "stocks",
}
"""Class -> bucket whose target it is compared against"""

TARGET_SUM_TOLERANCE = Decimal("0.001")
"""Allowed distance of the target fraction sum from 1.0"""

# ============================================================================
# DEVIATION SEVERITY (percentage points, strict ">" comparisons)
# ============================================================================

ALERT_THRESHOLD = Decimal("5")
"""Deviation must exceed this to produce an alert"""

SEVERITY_MEDIUM_THRESHOLD = Decimal("10")
"""Deviation above this is at least medium"""

SEVERITY_HIGH_THRESHOLD = Decimal("15")
"""Deviation above this is high"""

SEVERITY_RANK: dict[str, int] = {"high": 3, "medium": 2, "low": 1}
"""Sort weight, higher first"""

# ============================================================================
# CURRENCY & PERCENT ARITHMETIC
# ============================================================================

CURRENCY_QUANTUM = Decimal("0.01")
"""Currency precision for recommended amounts (round-half-even)"""

MAX_AMOUNT = Decimal("1e15")
"""Amounts at or above this magnitude are rejected as unusable input"""

PERCENT_SUM_TOLERANCE = Decimal("0.000001")
"""Relative tolerance for the snapshot percentages summing to 100"""

HUNDRED = Decimal("100")

# ============================================================================
# ADVISORY SERVICE
# ============================================================================

ADVISORY_ACTIONS: tuple[str, ...] = ("buy", "sell", "hold")

ADVISORY_SEVERITIES: tuple[str, ...] = ("minor", "moderate", "significant", "urgent")

ADVISORY_MODEL = "claude-haiku-4-5-20251001"
"""Anthropic model used for the advisory payload"""

ADVISORY_MAX_TOKENS = 2048

ADVISORY_TIMEOUT_SECONDS = 30.0
"""Caller-level budget for the advisory call before falling back"""
