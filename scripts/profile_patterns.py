"""
Pattern Profile Script

Groups the rows of an order export by the shape of their sale and exposure
text (labels, slashes, codes, trailing sizes, ...) and prints each distinct
shape with its row count and one sample. New or unexpectedly large shapes are
where the rule table or the extractors need attention.

Usage:
    python scripts/profile_patterns.py <orders.xlsx> [--top N] [--csv out.csv]
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from order_tally.config import load_rule_table
from order_tally.diagnostics import profile_patterns
from order_tally.file_loader import load_order_rows


def main() -> int:
    parser = argparse.ArgumentParser(description="Profile the text shapes of an order export")
    parser.add_argument("file", type=str, help="Order export (csv/xlsx)")
    parser.add_argument("--rules", type=str, default=None, help="JSON rules file (optional)")
    parser.add_argument("--top", type=int, default=None, help="Show only the N most common shapes")
    parser.add_argument("--csv", type=str, default=None, help="Also write the profile to this CSV")
    args = parser.parse_args()

    rules = load_rule_table(args.rules)
    rows = load_order_rows(args.file)
    profile = profile_patterns(rows, rules)

    print("=" * 60)
    print(f"Pattern profile: {Path(args.file).name}")
    print("=" * 60)
    print(f"Rows: {len(rows)}, unique patterns: {len(profile)}")

    shown = profile.head(args.top) if args.top else profile
    for record in shown.to_dict(orient="records"):
        print(f"\n[{record['count']} rows] {record['pattern']}")
        print(f"  sample row {record['sample_row']}: mall={record['mall']!r} "
              f"sale={record['sale']!r} exposure={record['exposure']!r} qty={record['quantity']}")

    if args.csv:
        profile.to_csv(args.csv, index=False, encoding="utf-8-sig")
        print(f"\nProfile written to {args.csv}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
