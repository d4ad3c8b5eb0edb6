"""
Aggregator - folds resolved rows into per (design, color) size-count rows.

Counts are plain integer addition, so results computed on separate shards of
a batch can be combined with AggregateResult.merge in any order.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

import pandas as pd

from order_tally.config import OUTPUT_SETTINGS, load_rule_table
from order_tally.extractors import SizeStrategy
from order_tally.logger import debug_watcher, get_logger
from order_tally.marketplaces import MarketplaceAdapter
from order_tally.resolver import RowResolution, resolve_row
from order_tally.rules import RuleTable

logger = get_logger(__name__)


@dataclass
class SummaryRow:
    """One output line: a design/color pair with a count per allowed size."""

    design: str
    color: str
    size_counts: dict[int, int]

    @property
    def total(self) -> int:
        return sum(self.size_counts.values())

    @property
    def label(self) -> str:
        return f"{self.design}({self.color})" if self.color else self.design

    def to_record(self) -> dict[str, Any]:
        record: dict[str, Any] = {
            OUTPUT_SETTINGS["design_header"]: self.design,
            OUTPUT_SETTINGS["color_header"]: self.color,
        }
        for size in sorted(self.size_counts):
            record[size] = self.size_counts[size]
        record[OUTPUT_SETTINGS["total_header"]] = self.total
        return record


@dataclass
class Rejection:
    """A row left out of the totals, with enough context to tune the rules."""

    index: int | None
    reason: str
    detail: dict[str, Any] = field(default_factory=dict)


@dataclass
class AggregateResult:
    """Summary cells, rejections and extraction-path counts for one batch."""

    sizes: tuple[int, ...]
    cells: dict[tuple[str, str], dict[int, int]] = field(default_factory=dict)
    rejections: list[Rejection] = field(default_factory=list)
    sources: Counter = field(default_factory=Counter)
    rows_seen: int = 0

    def add(self, resolution: RowResolution) -> None:
        """Fold one resolution into the result."""
        self.rows_seen += 1
        if not resolution.ok:
            self.rejections.append(Rejection(
                index=resolution.index,
                reason=resolution.reason,
                detail={
                    "mall": resolution.mall,
                    "adapter": resolution.adapter,
                    "quantity": resolution.quantity,
                    "sale": resolution.sale,
                    "option": resolution.option,
                    "exposure": resolution.exposure,
                    "design": resolution.design,
                    "size": resolution.size,
                },
            ))
            return

        key = (resolution.design, resolution.color)
        counts = self.cells.setdefault(key, dict.fromkeys(self.sizes, 0))
        counts[resolution.size] += resolution.quantity
        self.sources[resolution.source] += 1

    @property
    def summary_rows(self) -> list[SummaryRow]:
        """One SummaryRow per (design, color), sorted by design then color."""
        return [
            SummaryRow(design=design, color=color, size_counts=dict(counts))
            for (design, color), counts in sorted(self.cells.items())
        ]

    @property
    def resolved_rows(self) -> int:
        return self.rows_seen - len(self.rejections)

    @property
    def grand_total(self) -> int:
        return sum(sum(counts.values()) for counts in self.cells.values())

    def size_totals(self) -> dict[int, int]:
        totals = dict.fromkeys(self.sizes, 0)
        for counts in self.cells.values():
            for size, qty in counts.items():
                totals[size] += qty
        return totals

    def merge(self, other: AggregateResult) -> AggregateResult:
        """
        Combine two partial results into a new one.

        Raises:
            ValueError: If the two results were built with different size sets.
        """
        if self.sizes != other.sizes:
            raise ValueError(f"Cannot merge results with different sizes: {self.sizes} vs {other.sizes}")

        merged = AggregateResult(sizes=self.sizes)
        for source in (self, other):
            for key, counts in source.cells.items():
                target = merged.cells.setdefault(key, dict.fromkeys(self.sizes, 0))
                for size, qty in counts.items():
                    target[size] += qty
            merged.rejections.extend(source.rejections)
            merged.sources.update(source.sources)
            merged.rows_seen += source.rows_seen
        return merged

    def to_dataframe(self, include_totals: bool = True) -> pd.DataFrame:
        """
        Tabular summary: design, color, one column per size, total.

        Args:
            include_totals: Append a grand-total row labelled with the total header.
        """
        design_col = OUTPUT_SETTINGS["design_header"]
        color_col = OUTPUT_SETTINGS["color_header"]
        total_col = OUTPUT_SETTINGS["total_header"]
        columns = [design_col, color_col, *self.sizes, total_col]

        records = [row.to_record() for row in self.summary_rows]
        if include_totals:
            totals_record: dict[str, Any] = {design_col: total_col, color_col: ""}
            totals_record.update(self.size_totals())
            totals_record[total_col] = self.grand_total
            records.append(totals_record)

        return pd.DataFrame(records, columns=columns)


@debug_watcher
def aggregate(
    rows: Iterable[Mapping[str, Any]] | pd.DataFrame,
    rules: RuleTable | None = None,
    adapters: Mapping[str, MarketplaceAdapter] | None = None,
    size_strategies: list[SizeStrategy] | None = None,
) -> AggregateResult:
    """
    Resolve every row and accumulate quantities per (design, color, size).

    Args:
        rows: Order rows as mappings, or a DataFrame of them.
        rules: Rule table; the configured one is loaded when None.
        adapters: Marketplace registry; defaults to the configured adapters.
        size_strategies: Size cascade override passed to resolve_row.

    Returns:
        AggregateResult covering every input row.
    """
    rules = rules or load_rule_table()
    if isinstance(rows, pd.DataFrame):
        rows = rows.fillna("").to_dict(orient="records")

    result = AggregateResult(sizes=rules.allowed_sizes)
    for index, row in enumerate(rows):
        result.add(resolve_row(
            row, rules, adapters=adapters, index=index, size_strategies=size_strategies
        ))

    logger.info(
        f"Aggregated {result.rows_seen} rows: {result.resolved_rows} resolved, "
        f"{len(result.rejections)} rejected, {len(result.cells)} design/color rows, "
        f"total quantity {result.grand_total}"
    )
    return result


def rebuild_summary(summary_rows: Iterable[SummaryRow], rules: RuleTable) -> list[SummaryRow]:
    """
    Re-aggregate summary rows by (design, color), e.g. after manual edits.

    Raises:
        ValueError: If a row carries a size outside rules.allowed_sizes.
    """
    cells: dict[tuple[str, str], dict[int, int]] = {}
    for row in summary_rows:
        counts = cells.setdefault((row.design, row.color), dict.fromkeys(rules.allowed_sizes, 0))
        for size, qty in row.size_counts.items():
            if size not in counts:
                raise ValueError(f"Size {size} of {row.label!r} is not an allowed size")
            counts[size] += qty
    return [
        SummaryRow(design=design, color=color, size_counts=counts)
        for (design, color), counts in sorted(cells.items())
    ]
