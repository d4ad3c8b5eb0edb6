"""
Diagnostics for tuning the rule table.

- Rejection counts and samples per reason
- Extraction-path counts (which adapter and strategies resolved each row)
- Pattern profile: groups rows by the shape features of their text
- Comparison against a hand-made final tally workbook
"""

from __future__ import annotations

import re
from collections import Counter
from pathlib import Path
from typing import Any, Iterable, Mapping

import pandas as pd

from order_tally.aggregator import AggregateResult, Rejection
from order_tally.extractors import CODE_PATTERN
from order_tally.file_loader import load_file
from order_tally.logger import get_logger
from order_tally.marketplaces import ADAPTERS, GENERIC_KEY, MarketplaceAdapter, mall_name
from order_tally.resolver import REJECT_REASONS, find_quantity
from order_tally.rules import RuleTable
from order_tally.value_parser import clean_cell, parse_quantity

logger = get_logger(__name__)

# Reference workbook rows whose first cell is a title or header, not a design
_REFERENCE_SKIP_EXACT = {"상품명", "디자인명", "칼라", "합계"}
_REFERENCE_SKIP_CONTAINS = ("주문현황", "실내복")


# ============================================================================
# REJECTIONS AND SOURCES
# ============================================================================

def rejection_counts(result: AggregateResult) -> dict[str, int]:
    """Rejected-row count per reason, in reason order, omitting zero counts."""
    counts = Counter(r.reason for r in result.rejections)
    ordered = {reason: counts[reason] for reason in REJECT_REASONS if counts[reason]}
    for reason, count in counts.items():
        ordered.setdefault(reason, count)
    return ordered


def rejection_samples(result: AggregateResult, reason: str, limit: int = 10) -> list[Rejection]:
    return [r for r in result.rejections if r.reason == reason][:limit]


def source_counts(result: AggregateResult) -> dict[str, int]:
    """Resolved-row count per extraction path, most common first."""
    return dict(result.sources.most_common())


def build_rejection_report(result: AggregateResult) -> pd.DataFrame:
    """One line per rejected row: index, reason and the row's text fields."""
    records = [{"row": r.index, "reason": r.reason, **r.detail} for r in result.rejections]
    columns = ["row", "reason", "mall", "adapter", "quantity", "sale", "option", "exposure", "design", "size"]
    return pd.DataFrame(records, columns=columns)


def get_aggregate_statistics(result: AggregateResult) -> dict[str, Any]:
    """
    Calculate batch statistics for reporting.

    Returns:
        Dictionary with row counts, success rate and distributions.
    """
    total = result.rows_seen
    return {
        "total_rows": total,
        "resolved_rows": result.resolved_rows,
        "rejected_rows": len(result.rejections),
        "success_rate": (result.resolved_rows / total) * 100 if total else 0.0,
        "summary_rows": len(result.cells),
        "grand_total": result.grand_total,
        "rejection_distribution": rejection_counts(result),
        "source_distribution": source_counts(result),
    }


# ============================================================================
# PATTERN PROFILE
# ============================================================================

def _shape_features(text: str, rules: RuleTable) -> list[str]:
    features = []
    if re.search(r"사이즈\s*[:=]\s*(\d{2,3}|2XL|XL|S|M|L)", text, re.IGNORECASE):
        features.append("LABEL_SIZE")
    if re.search(r"색상\s*[:=]\s*[^,/\s)]+", text):
        features.append("LABEL_COLOR")
    if re.search(r"/[^\s/]+\s+\d{2,3}\s*$", text):
        features.append("SLASH_COLOR_SIZE")
    if re.search(r"^\s*\d+\.", text):
        features.append("NUMBERED")
    if re.search(r"\d{2,3}\s*$", text):
        features.append("END_SIZE")
    if re.search(r"(?<![A-Za-z0-9])(2XL|XL|S|M|L)(?![A-Za-z0-9])", text, re.IGNORECASE):
        features.append("ADULT")
    if CODE_PATTERN.search(text):
        features.append("CODE")
    if any(k in text for k in rules.keywords):
        features.append("KW")
    if re.search(r"\([^)]+\)", text):
        features.append("PAREN_COLOR")
    return features


def pattern_of(row: Mapping[str, Any], rules: RuleTable, adapter: MarketplaceAdapter | None = None) -> str:
    """
    Describe the shape of a row's sale and exposure text, e.g.
    "SALE_END_SIZE+SALE_KW+EXPO_CODE". Rows with no feature are "PLAIN".
    """
    fields = (adapter or ADAPTERS[GENERIC_KEY]).gather_fields(row)
    parts = [f"SALE_{f}" for f in _shape_features(fields.sale, rules)]

    tokens = re.findall(r"[가-힣]{2,}", fields.sale)
    if tokens and all(rules.is_color(t) for t in tokens):
        parts.append("SALE_COLOR_ONLY")

    parts.extend(f"EXPO_{f}" for f in _shape_features(fields.exposure, rules))
    if re.search(r",\s*[^,]+,\s*\d{2,3}\s*$", fields.exposure):
        parts.append("EXPO_COMMA_TRIPLET")

    return "+".join(parts) if parts else "PLAIN"


def profile_patterns(rows: Iterable[Mapping[str, Any]], rules: RuleTable) -> pd.DataFrame:
    """
    Group rows by text shape.

    Returns:
        DataFrame with pattern, count and one sample row per pattern, most
        common pattern first.
    """
    seen: dict[str, dict[str, Any]] = {}
    generic = ADAPTERS[GENERIC_KEY]
    for index, row in enumerate(rows):
        pattern = pattern_of(row, rules, generic)
        if pattern not in seen:
            fields = generic.gather_fields(row)
            seen[pattern] = {
                "pattern": pattern,
                "count": 0,
                "sample_row": index,
                "mall": mall_name(row),
                "sale": fields.sale,
                "exposure": fields.exposure,
                "quantity": find_quantity(row),
            }
        seen[pattern]["count"] += 1

    columns = ["pattern", "count", "sample_row", "mall", "sale", "exposure", "quantity"]
    df = pd.DataFrame(list(seen.values()), columns=columns)
    return df.sort_values("count", ascending=False, kind="stable").reset_index(drop=True)


# ============================================================================
# REFERENCE COMPARISON
# ============================================================================

def read_reference_summary(path: Path | str, rules: RuleTable) -> dict[str, dict[int, int]]:
    """
    Read a hand-made final tally workbook as design -> size -> quantity.

    The first column holds the design, the second the color, and the next
    len(rules.allowed_sizes) columns the quantities per size in ascending
    order. Title, header and total rows are skipped.
    """
    df = load_file(path, header=None)
    reference: dict[str, dict[int, int]] = {}
    for values in df.itertuples(index=False, name=None):
        first = clean_cell(values[0]) if values else ""
        if not first or first in _REFERENCE_SKIP_EXACT:
            continue
        if any(marker in first for marker in _REFERENCE_SKIP_CONTAINS):
            continue
        counts = reference.setdefault(first, {})
        for offset, size in enumerate(rules.allowed_sizes, start=2):
            if offset >= len(values):
                break
            qty = parse_quantity(values[offset])
            if qty:
                counts[size] = counts.get(size, 0) + qty
    logger.info(f"Read {len(reference)} designs from reference {Path(path).name}")
    return reference


def compare_with_reference(
    result: AggregateResult,
    reference: Mapping[str, Mapping[int, int]],
    rules: RuleTable,
) -> list[dict[str, Any]]:
    """
    Diff computed quantities against a reference, by design and size.

    Colors are summed per design, since reference sheets key on design only.

    Returns:
        One dict per mismatching (design, size): design, size, computed, reference.
    """
    computed: dict[str, dict[int, int]] = {}
    for row in result.summary_rows:
        counts = computed.setdefault(row.design, {})
        for size, qty in row.size_counts.items():
            counts[size] = counts.get(size, 0) + qty

    diffs = []
    for design in sorted(set(computed) | set(reference)):
        ours = computed.get(design, {})
        theirs = reference.get(design, {})
        for size in rules.allowed_sizes:
            a, b = ours.get(size, 0), theirs.get(size, 0)
            if a != b:
                diffs.append({"design": design, "size": size, "computed": a, "reference": b})
    return diffs
