"""
Design resolution across the text fields of one order row.

Candidates are collected strategy by strategy (code, free text, Hangul word),
each strategy scanning every field in order, and the first acceptable one wins.
"""

from __future__ import annotations

import re
from typing import Callable, Sequence

from order_tally.extractors import (
    extract_design_from_code,
    extract_design_from_free_text,
    extract_design_from_native_script,
)
from order_tally.rules import RuleTable
from order_tally.value_parser import clean_cell

_LEADING_CODE = re.compile(r"^([A-Z]{1,4}\d{2,3})(?!\d)")
_TRAILING_PAREN = re.compile(r"\s*\(([^)]*)\)\s*$")
_AGE_TAG_RE = re.compile(r"\((?:성인|아동)\)")

DESIGN_STRATEGIES: list[tuple[str, Callable[[str, RuleTable, int | None], str]]] = [
    ("code", lambda text, rules, size: extract_design_from_code(text, rules)),
    ("free_text", lambda text, rules, size: extract_design_from_free_text(text, rules, size=size)),
    ("native_script", lambda text, rules, size: extract_design_from_native_script(text, rules)),
]


def _acceptable(candidate: str, color: str, rules: RuleTable) -> bool:
    return len(candidate) > 1 and candidate != color and not rules.is_color(candidate)


def match_design(
    fields: Sequence[object],
    color: str,
    rules: RuleTable,
    size: int | None = None,
) -> tuple[str, str]:
    """
    Pick the design for a row.

    Args:
        fields: Text fields in priority order (combined, sale, option, exposure).
        color: Color already resolved for the row.
        rules: Active rule table.
        size: Size already resolved for the row, removed from free-text candidates.

    Returns:
        (design, strategy name). Falls back to (rules.unnamed_design, "unnamed").
    """
    texts = [t for t in (clean_cell(f) for f in fields) if t]
    for name, strategy in DESIGN_STRATEGIES:
        for text in texts:
            candidate = strategy(text, rules, size).strip()
            if _acceptable(candidate, color, rules):
                return candidate, name
    return rules.unnamed_design, "unnamed"


def resolve_design(
    fields: Sequence[object],
    color: str,
    rules: RuleTable,
    size: int | None = None,
) -> str:
    return match_design(fields, color, rules, size=size)[0]


def finalize_design_color(design: str, color: str, rules: RuleTable) -> tuple[str, str]:
    """
    Settle the final (design, color) pair.

    A trailing "(...)" on the design becomes the color when none was found,
    a color repeated at the end of the design is dropped, and a design that is
    empty or itself a color word gives way to the unnamed-design sentinel.
    """
    d = _AGE_TAG_RE.sub("", clean_cell(design)).strip()
    c = clean_cell(color)

    m = _TRAILING_PAREN.search(d)
    if m and (not c or m.group(1).strip() == c):
        c = c or m.group(1).strip()
        d = d[:m.start()].strip()

    if c and d != c and d.endswith(" " + c):
        d = d[: -len(c)].strip()

    if not d or rules.is_color(d):
        if not c:
            c = d
        d = rules.unnamed_design

    return d, c


def canonicalize_design(design: str, rules: RuleTable) -> str:
    """Rewrite a design led by a known product code to code + canonical name."""
    m = _LEADING_CODE.match(design)
    if m and m.group(1) in rules.code_canon:
        return f"{m.group(1)}{rules.code_canon[m.group(1)]}"
    return design
