"""
Rule Table - immutable vocabulary and size rules threaded through every extractor.

A RuleTable is built once per process (see config.load_rule_table) and passed
explicitly to the extractors, so tests can swap in synthetic tables without
touching the production vocabulary.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

from order_tally.logger import get_logger

logger = get_logger(__name__)

DEFAULT_UNNAMED_DESIGN = "상품명 없음"


class RuleTableError(ValueError):
    """Raised when a rule table violates its invariants."""


@dataclass(frozen=True)
class RuleTable:
    """Sizes, vocabularies and rewrite rules used by the parsing engine."""

    allowed_sizes: tuple[int, ...]
    adult_size_map: Mapping[str, int]
    colors: frozenset[str]
    keywords: tuple[str, ...]
    stopwords: frozenset[str]
    code_canon: Mapping[str, str] = field(default_factory=dict)
    aliases: tuple[tuple[re.Pattern, str], ...] = ()
    unnamed_design: str = DEFAULT_UNNAMED_DESIGN

    def __post_init__(self) -> None:
        sizes = tuple(int(s) for s in self.allowed_sizes)
        if not sizes:
            raise RuleTableError("allowed_sizes must not be empty")
        for prev, cur in zip(sizes, sizes[1:]):
            if cur <= prev:
                raise RuleTableError(
                    f"allowed_sizes must be strictly increasing: {prev} followed by {cur}"
                )

        adult = {str(k).strip().upper(): int(v) for k, v in self.adult_size_map.items()}
        for token, size in adult.items():
            if size not in sizes:
                raise RuleTableError(f"adult size {token} -> {size} is not an allowed size")

        if not str(self.unnamed_design).strip():
            raise RuleTableError("unnamed_design must be a non-empty string")

        # Longest keyword first so the greedy match picks the most specific one
        keywords = tuple(sorted(dict.fromkeys(k for k in self.keywords if k), key=len, reverse=True))

        object.__setattr__(self, "allowed_sizes", sizes)
        object.__setattr__(self, "adult_size_map", MappingProxyType(adult))
        object.__setattr__(self, "colors", frozenset(c.strip() for c in self.colors if c and c.strip()))
        object.__setattr__(self, "keywords", keywords)
        object.__setattr__(self, "stopwords", frozenset(s.strip() for s in self.stopwords if s and s.strip()))
        object.__setattr__(self, "code_canon", MappingProxyType(dict(self.code_canon)))
        object.__setattr__(self, "aliases", tuple(self.aliases))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RuleTable:
        """
        Build a rule table from its JSON form.

        Keys follow the exported layout: allowedSizes, adultSizeMap, colors,
        keywords, stopwords, codeCanon, aliases, unnamedDesign. Aliases are
        either {"pattern": ..., "replace": ...} objects or [pattern, replacement]
        pairs; entries whose pattern does not compile are skipped.
        """
        aliases: list[tuple[re.Pattern, str]] = []
        for entry in data.get("aliases") or []:
            if isinstance(entry, Mapping):
                pattern, replacement = entry.get("pattern"), entry.get("replace", "")
            else:
                pattern, replacement = entry[0], entry[1]
            if not pattern:
                continue
            try:
                aliases.append((re.compile(pattern), str(replacement)))
            except re.error as exc:
                logger.warning(f"Skipping alias with invalid pattern {pattern!r}: {exc}")

        return cls(
            allowed_sizes=tuple(data.get("allowedSizes") or ()),
            adult_size_map=dict(data.get("adultSizeMap") or {}),
            colors=frozenset(data.get("colors") or ()),
            keywords=tuple(data.get("keywords") or ()),
            stopwords=frozenset(data.get("stopwords") or ()),
            code_canon=dict(data.get("codeCanon") or {}),
            aliases=tuple(aliases),
            unnamed_design=data.get("unnamedDesign") or DEFAULT_UNNAMED_DESIGN,
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON-serialisable form, the inverse of from_dict."""
        return {
            "allowedSizes": list(self.allowed_sizes),
            "adultSizeMap": dict(self.adult_size_map),
            "colors": sorted(self.colors),
            "keywords": list(self.keywords),
            "stopwords": sorted(self.stopwords),
            "codeCanon": dict(self.code_canon),
            "aliases": [{"pattern": p.pattern, "replace": r} for p, r in self.aliases],
            "unnamedDesign": self.unnamed_design,
        }

    def is_allowed_size(self, size: int | None) -> bool:
        return size is not None and size in self.allowed_sizes

    def adult_size(self, token: str | None) -> int | None:
        """Map an adult-size letter (S, M, L, XL, 2XL) to its numeric size."""
        if not token:
            return None
        return self.adult_size_map.get(token.strip().upper())

    def is_adult_token(self, token: str | None) -> bool:
        return bool(token) and token.strip().upper() in self.adult_size_map

    def is_color(self, token: str | None) -> bool:
        return bool(token) and token.strip() in self.colors

    def is_stopword(self, token: str | None) -> bool:
        return bool(token) and token.strip() in self.stopwords

    def apply_aliases(self, text: str) -> str:
        out = text
        for pattern, replacement in self.aliases:
            out = pattern.sub(replacement, out)
        return out
