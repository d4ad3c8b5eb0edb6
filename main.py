"""
Order Tally Orchestrator - End-to-End Execution

Turns one marketplace order export into a size-bucketed summary:

1. Load configuration and the rule table
2. Load order rows (latest file in 01_orders/ unless --file is given)
3. Resolve and aggregate every row
4. Report rejection counts and samples per reason
5. Compare against a hand-made reference tally (optional)
6. Export the summary workbook

Usage:
    python main.py [--file <orders.xlsx>] [--rules <rules.json>] [--reference <final.xlsx>]

Examples:
    python main.py                                  # Process latest file
    python main.py --file path/to/orders.xlsx       # Process specific file
    python main.py --file orders.xlsx --no-export   # Diagnostics only
    python main.py --file orders.xlsx -v            # Per-row rejections on console
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path

from order_tally.aggregator import AggregateResult, aggregate
from order_tally.config import (
    INPUT_PATH,
    OUTPUT_SETTINGS,
    ensure_directories,
    load_config,
    load_rule_table,
    validate_config,
)
from order_tally.diagnostics import (
    compare_with_reference,
    get_aggregate_statistics,
    read_reference_summary,
    rejection_samples,
)
from order_tally.excel_formatter import create_summary_workbook
from order_tally.file_loader import detect_latest_file, load_order_rows
from order_tally.logger import configure_logging


def log(message: str, level: str = "INFO") -> None:
    """Simple logging function."""
    timestamp = datetime.now().strftime("%H:%M:%S")
    print(f"[{timestamp}] [{level}] {message}")


def run_pipeline(
    filepath: Path | str | None = None,
    rules_path: Path | str | None = None,
    output_path: Path | str | None = None,
    reference_path: Path | str | None = None,
    samples: int | None = None,
    export: bool = True,
) -> tuple[AggregateResult, Path | None] | None:
    """
    Run the complete tally pipeline.

    Args:
        filepath: Order export. If None, the latest file in INPUT_PATH is used.
        rules_path: Optional JSON rules merged over the defaults.
        output_path: Output directory. If None, uses default.
        reference_path: Optional final tally workbook to compare against.
        samples: Rejected rows shown per reason.
        export: Whether to write the summary workbook.

    Returns:
        (result, workbook path or None), or None if the run could not start.
    """
    start_time = datetime.now()
    samples = OUTPUT_SETTINGS["sample_limit"] if samples is None else samples
    log("=" * 60)
    log("ORDER TALLY EXECUTION")
    log("=" * 60)

    # Step 1: Validate configuration
    log("Step 1: Validating configuration...")
    is_valid, errors = validate_config()
    if not is_valid:
        log(f"Configuration errors: {errors}", "ERROR")
        return None
    ensure_directories()
    rules = load_rule_table(rules_path)
    log(f"Rule table: {len(rules.allowed_sizes)} sizes, {len(rules.colors)} colors, "
        f"{len(rules.keywords)} keywords, {len(rules.stopwords)} stopwords")

    # Step 2: Load order rows
    log("Step 2: Loading order rows...")
    if filepath:
        filepath = Path(filepath)
    else:
        filepath = detect_latest_file(INPUT_PATH)
        if filepath is None:
            log(f"No order files found in {INPUT_PATH}", "ERROR")
            return None
    rows = load_order_rows(filepath)
    log(f"Loaded: {filepath.name} ({len(rows)} rows)")

    # Step 3: Aggregate
    log("Step 3: Resolving and aggregating rows...")
    result = aggregate(rows, rules)
    stats = get_aggregate_statistics(result)
    log(f"  Resolved: {stats['resolved_rows']}/{stats['total_rows']} ({stats['success_rate']:.1f}%)")
    log(f"  Summary rows: {stats['summary_rows']}, total quantity: {stats['grand_total']}")

    # Step 4: Rejections
    log("Step 4: Rejection report...")
    if not stats["rejection_distribution"]:
        log("  No rejected rows")
    for reason, count in stats["rejection_distribution"].items():
        log(f"  {reason}: {count}", "WARN")
        for rejection in rejection_samples(result, reason, samples):
            detail = rejection.detail
            log(f"    row {rejection.index}: sale={detail.get('sale')!r} "
                f"option={detail.get('option')!r} exposure={detail.get('exposure')!r}")

    # Step 5: Reference comparison
    if reference_path:
        log("Step 5: Comparing with reference tally...")
        reference = read_reference_summary(reference_path, rules)
        diffs = compare_with_reference(result, reference, rules)
        if diffs:
            log(f"  {len(diffs)} differences", "WARN")
            for diff in diffs:
                log(f"    {diff['design']} size {diff['size']}: "
                    f"computed={diff['computed']}, reference={diff['reference']}")
        else:
            log("  OK: summaries match")

    # Step 6: Export
    workbook = None
    if export:
        log("Step 6: Exporting summary workbook...")
        config = load_config()
        config["input_file"] = str(filepath)
        config["rules_file"] = str(rules_path) if rules_path else "(defaults)"
        workbook = create_summary_workbook(
            result,
            config=config,
            source=filepath.stem,
            output_path=output_path,
        )
        log(f"  Written: {workbook}")

    elapsed = (datetime.now() - start_time).total_seconds()
    log("=" * 60)
    log("TALLY COMPLETE")
    log("=" * 60)
    log(f"Execution time: {elapsed:.1f} seconds")

    return result, workbook


def main() -> int:
    """Main entry point with argument parsing."""
    parser = argparse.ArgumentParser(
        description="Order Tally - marketplace order size summary",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py                                   # Process latest file in 01_orders/
  python main.py --file orders.xlsx                # Process specific file
  python main.py --file orders.xlsx --rules my_rules.json
  python main.py --file orders.xlsx --reference final.xlsx --no-export
        """
    )

    parser.add_argument(
        "--file", "-f",
        type=str,
        default=None,
        help="Path to order export (optional, detects latest if not provided)"
    )
    parser.add_argument(
        "--rules", "-r",
        type=str,
        default=None,
        help="JSON rules file merged over the defaults (optional)"
    )
    parser.add_argument(
        "--output", "-o",
        type=str,
        default=None,
        help="Output directory (optional, uses default 02_output/ if not provided)"
    )
    parser.add_argument(
        "--reference",
        type=str,
        default=None,
        help="Hand-made final tally workbook to compare against (optional)"
    )
    parser.add_argument(
        "--samples",
        type=int,
        default=None,
        help="Rejected rows to show per reason"
    )
    parser.add_argument(
        "--no-export",
        action="store_true",
        help="Skip writing the summary workbook"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show DEBUG output (per-row rejections) on the console"
    )

    args = parser.parse_args()
    if args.verbose:
        configure_logging(console_level=logging.DEBUG)

    try:
        outcome = run_pipeline(
            filepath=args.file,
            rules_path=args.rules,
            output_path=args.output,
            reference_path=args.reference,
            samples=args.samples,
            export=not args.no_export,
        )
        return 0 if outcome is not None else 1

    except (OSError, ValueError) as e:
        log(f"Tally failed: {e}", "ERROR")
        import traceback
        traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
