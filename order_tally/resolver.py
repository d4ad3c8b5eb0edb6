"""
Row Resolver - turns one raw order row into a (design, color, size) triple
or a typed rejection.

Resolution never raises for row-level problems: every failure becomes one of
the REJECT_REASONS so that a batch always completes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from order_tally.config import QUANTITY_FIELDS
from order_tally.design import canonicalize_design, finalize_design_color, match_design
from order_tally.extractors import (
    CODE_PATTERN,
    SizeStrategy,
    extract_design_from_code,
    match_color,
    match_size,
)
from order_tally.logger import get_logger
from order_tally.marketplaces import MarketplaceAdapter, classify_mall, mall_name
from order_tally.rules import RuleTable
from order_tally.value_parser import parse_quantity

logger = get_logger(__name__)

NO_QUANTITY = "no_quantity"
UNPARSED = "unparsed"
FILTERED_DESIGN = "filtered_design"
INVALID_SIZE = "invalid_size"

REJECT_REASONS = (NO_QUANTITY, UNPARSED, FILTERED_DESIGN, INVALID_SIZE)


@dataclass
class RowResolution:
    """Outcome of resolving one row, with the rule path that produced it."""

    index: int | None = None
    quantity: int = 0
    mall: str = ""
    adapter: str = ""
    classified_by: str = ""
    sale: str = ""
    option: str = ""
    exposure: str = ""
    design: str = ""
    color: str = ""
    size: int | None = None
    size_rule: str = ""
    color_rule: str = ""
    design_rule: str = ""
    reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.reason is None

    @property
    def source(self) -> str:
        """Extraction path, e.g. "coupang:trailing_digits/code"."""
        return f"{self.adapter}:{self.size_rule or '-'}/{self.design_rule or '-'}"

    @property
    def variant(self) -> tuple[str, str, int | None]:
        return self.design, self.color, self.size


def find_quantity(row: Mapping[str, Any]) -> int:
    """Read the quantity column (a known name, else any column containing 수량)."""
    for column in QUANTITY_FIELDS:
        if column in row:
            return parse_quantity(row[column])
    for column in row:
        if "수량" in str(column):
            return parse_quantity(row[column])
    return 0


def _reject(resolution: RowResolution, reason: str) -> RowResolution:
    resolution.reason = reason
    logger.debug(
        f"Row {resolution.index} rejected ({reason}): "
        f"sale={resolution.sale!r} option={resolution.option!r} exposure={resolution.exposure!r}"
    )
    return resolution


def resolve_row(
    row: Mapping[str, Any],
    rules: RuleTable,
    adapters: Mapping[str, MarketplaceAdapter] | None = None,
    index: int | None = None,
    size_strategies: list[SizeStrategy] | None = None,
) -> RowResolution:
    """
    Resolve one order row.

    Args:
        row: Column name to cell value mapping.
        rules: Active rule table.
        adapters: Marketplace registry; defaults to the configured adapters.
        index: Position of the row in its batch, carried into rejections.
        size_strategies: Size cascade override; defaults to SIZE_STRATEGIES.

    Returns:
        RowResolution with reason None on success.
    """
    resolution = RowResolution(index=index, mall=mall_name(row))

    adapter, how = classify_mall(row, adapters)
    fields = adapter.gather_fields(row)
    resolution.adapter = adapter.key
    resolution.classified_by = how
    resolution.sale, resolution.option, resolution.exposure = fields.sale, fields.option, fields.exposure

    resolution.quantity = find_quantity(row)
    if resolution.quantity <= 0:
        return _reject(resolution, NO_QUANTITY)

    candidates = fields.candidates()

    for text in candidates:
        size, rule = match_size(text, rules, size_strategies)
        if size is not None:
            resolution.size, resolution.size_rule = size, rule
            break
    if resolution.size is None:
        return _reject(resolution, UNPARSED)

    for text in candidates:
        color, rule = match_color(text, rules)
        if color:
            resolution.color, resolution.color_rule = color, rule
            break

    design, design_rule = match_design(candidates, resolution.color, rules, size=resolution.size)
    if adapter.prefer_exposure_code and fields.exposure:
        preferred = extract_design_from_code(fields.exposure, rules)
        if preferred and preferred != resolution.color and CODE_PATTERN.match(preferred):
            design, design_rule = preferred, "exposure_code"
    resolution.design_rule = design_rule

    design = rules.apply_aliases(design).strip()
    if rules.is_stopword(design) or rules.is_color(design):
        resolution.design = design
        return _reject(resolution, FILTERED_DESIGN)

    if not rules.is_allowed_size(resolution.size):
        return _reject(resolution, INVALID_SIZE)

    design = canonicalize_design(design, rules)
    resolution.design, resolution.color = finalize_design_color(design, resolution.color, rules)
    return resolution
