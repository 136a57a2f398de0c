"""Run the allocation & rebalancing analysis on a holdings export.

Usage:
    python run_analysis.py data/holdings.json                     # rule-based only
    python run_analysis.py data/holdings.csv --targets targets.json
    python run_analysis.py data/holdings.xlsx --advisor --timeout 20
    python run_analysis.py data/holdings.json --output output/analysis.json
"""

import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent / "src"))

from dotenv import load_dotenv
load_dotenv()

from allocation_engine.agents.rebalancing_advisor import (
    run_advised_pipeline,
    run_rebalancing_pipeline,
)
from allocation_engine.config.constants import ADVISORY_TIMEOUT_SECONDS, ASSET_CLASS_LABELS
from allocation_engine.exceptions import AllocationEngineException
from allocation_engine.schemas.allocation_output import RebalancingAnalysis
from allocation_engine.tools.holdings_reader import read_holdings_file
from allocation_engine.tools.target_model import default_target_model, load_target_model_file


# ---------------------------------------------------------------------------
# CLI Argument Parsing
# ---------------------------------------------------------------------------

def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Portfolio allocation & rebalancing analysis",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
examples:
  python run_analysis.py holdings.json                   rule-based alerts and actions
  python run_analysis.py holdings.csv --targets t.json   custom target model
  python run_analysis.py holdings.json --advisor         merge advisory analysis (needs ANTHROPIC_API_KEY)
""",
    )
    parser.add_argument("holdings", help="Holdings file (.json, .csv, .xls, .xlsx)")
    parser.add_argument(
        "--targets", default=None,
        help="Target model JSON file (default: balanced 60/30/5/5 model)",
    )
    parser.add_argument(
        "--advisor", action="store_true", default=False,
        help="Request an advisory analysis and merge it into the actions.",
    )
    parser.add_argument(
        "--timeout", type=float, default=ADVISORY_TIMEOUT_SECONDS,
        help=f"Seconds to wait for the advisory call (default: {ADVISORY_TIMEOUT_SECONDS:.0f})",
    )
    parser.add_argument(
        "--output", default=None,
        help="Write the full analysis as JSON to this file.",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", default=False,
        help="Debug logging.",
    )
    return parser.parse_args(argv)


# ---------------------------------------------------------------------------
# Console Report
# ---------------------------------------------------------------------------

def print_report(analysis: RebalancingAnalysis) -> None:
    snapshot = analysis.snapshot
    print(f"\n=== Portfolio Allocation ({analysis.status}) ===")
    print(f"Total value: ${snapshot.total_value:,.2f}")
    for entry in snapshot.allocations.values():
        label = ASSET_CLASS_LABELS.get(entry.asset_class, entry.asset_class)
        print(f"  {label:<15} ${entry.value_sum:>14,.2f}  {entry.current_percent:6.1f}%")

    if analysis.status == "balanced":
        print("\nPortfolio well balanced: allocation is within target ranges.")
    elif analysis.alerts:
        print(f"\n=== Rebalancing Alerts ({len(analysis.alerts)}) ===")
        for alert in analysis.alerts:
            print(f"  [{alert.severity.upper():<6}] {alert.recommendation_text}")

    if analysis.actions:
        print("\n=== Recommended Actions ===")
        for action in analysis.actions:
            priority = f"P{action.priority}" if action.priority is not None else "--"
            print(
                f"  {priority:<4} {action.action.upper():<4} {action.holding_label:<20} "
                f"${action.amount:>12,.2f}  {action.reason}"
            )

    if analysis.advisory is not None:
        print(f"\nAdvisor: {analysis.advisory.summary}")

    print(f"\n{analysis.summary}")


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        holdings = read_holdings_file(args.holdings)
        target_model = (
            load_target_model_file(args.targets) if args.targets else default_target_model()
        )
    except AllocationEngineException as e:
        print(f"\nERROR [{e.error_code}]: {e.message}")
        return 1

    if args.advisor:
        analysis = run_advised_pipeline(holdings, target_model, timeout=args.timeout)
    else:
        analysis = run_rebalancing_pipeline(holdings, target_model)

    print_report(analysis)

    if args.output:
        out_path = Path(args.output)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(analysis.model_dump_json(indent=2), encoding="utf-8")
        print(f"\nSaved: {out_path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
