"""
Marketplace Adapters - per-platform column candidates and the mall classifier.

Every marketplace is a MarketplaceAdapter built from config.MARKETPLACES. The
classifier picks one per row: by the mall-name column when it is recognisable,
otherwise by the shape of the text itself, otherwise the "generic" adapter.

Supported platforms:
- 쿠팡 (coupang): "code, name, size" triplets in the exposure name
- G마켓 (gmarket): "option: value / option: value"
- 카페24 (cafe24): "색상=블랙, 사이즈=110"
- 스마트스토어/스토어팜 (smartstore): "색상: 블랙 / 사이즈: 110"
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from order_tally.config import MALL_NAME_FIELDS, MARKETPLACES
from order_tally.logger import get_logger
from order_tally.value_parser import clean_cell

logger = get_logger(__name__)

GENERIC_KEY = "generic"

# Shape signals, checked from the most specific to the least specific
_COMMA_TRIPLET = re.compile(r",\s*[^,]+,\s*\d{2,3}\s*$")
_EQ_LABEL = re.compile(r"(?:색상|사이즈)\s*=")
_COLON_COLOR_LABEL = re.compile(r"색상\s*:")
_COLON_SIZE_LABEL = re.compile(r"사이즈\s*:")
_PLATFORM_NAME = re.compile(r"스마트스토어|스토어팜|네이버")


def pick_field(row: Mapping[str, Any], candidates: Sequence[str]) -> str:
    """Return the first present, non-empty column among candidates, else ""."""
    for column in candidates:
        if column in row:
            value = clean_cell(row[column])
            if value:
                return value
    return ""


@dataclass(frozen=True)
class MallFields:
    """Candidate text fields gathered from one row."""

    sale: str = ""
    option: str = ""
    exposure: str = ""

    @property
    def combined(self) -> str:
        return " ".join(f for f in (self.sale, self.option, self.exposure) if f)

    def candidates(self) -> list[str]:
        """Non-empty fields in extraction priority order, combined text first."""
        ordered = [self.combined, self.sale, self.option, self.exposure]
        return list(dict.fromkeys(f for f in ordered if f))


@dataclass(frozen=True)
class MarketplaceAdapter:
    """Column candidates and preferences for one marketplace."""

    key: str
    name: str
    aliases: tuple[str, ...] = ()
    sale_fields: tuple[str, ...] = ()
    option_fields: tuple[str, ...] = ()
    exposure_fields: tuple[str, ...] = ()
    prefer_exposure_code: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> MarketplaceAdapter:
        return cls(
            key=data["key"],
            name=data.get("name", data["key"]),
            aliases=tuple(data.get("aliases") or ()),
            sale_fields=tuple(data.get("saleFields") or ()),
            option_fields=tuple(data.get("optionFields") or ()),
            exposure_fields=tuple(data.get("exposureFields") or ()),
            prefer_exposure_code=bool(data.get("preferExposureWithCode", False)),
        )

    def gather_fields(self, row: Mapping[str, Any]) -> MallFields:
        return MallFields(
            sale=pick_field(row, self.sale_fields),
            option=pick_field(row, self.option_fields),
            exposure=pick_field(row, self.exposure_fields),
        )


def load_adapters(definitions: Sequence[Mapping[str, Any]] | None = None) -> dict[str, MarketplaceAdapter]:
    """
    Build the adapter registry keyed by marketplace key.

    Raises:
        ValueError: If no "generic" fallback adapter is defined.
    """
    if definitions is None:
        definitions = MARKETPLACES
    adapters = {}
    for entry in definitions:
        adapter = MarketplaceAdapter.from_dict(entry)
        adapters[adapter.key] = adapter
    if GENERIC_KEY not in adapters:
        raise ValueError("Marketplace definitions must include a 'generic' fallback adapter")
    return adapters


ADAPTERS = load_adapters()


def _squash(text: str) -> str:
    return text.lower().replace(" ", "")


def mall_name(row: Mapping[str, Any]) -> str:
    return pick_field(row, MALL_NAME_FIELDS)


def match_mall_name(name: str, adapters: Mapping[str, MarketplaceAdapter]) -> MarketplaceAdapter | None:
    """
    Exact alias match first, then substring ("쿠팡(로켓)" -> coupang).

    The substring pass follows adapter order, so a broad alias such as
    smartstore's "스토어" only claims names no earlier adapter matched.
    """
    squashed = _squash(name)
    if not squashed:
        return None
    for adapter in adapters.values():
        if any(squashed == _squash(a) for a in adapter.aliases):
            return adapter
    for adapter in adapters.values():
        if any(_squash(a) and _squash(a) in squashed for a in adapter.aliases):
            return adapter
    return None


def detect_mall_by_pattern(
    row: Mapping[str, Any],
    adapters: Mapping[str, MarketplaceAdapter] | None = None,
) -> MarketplaceAdapter | None:
    """Guess the marketplace from the shape of the row's text, or None."""
    adapters = adapters or ADAPTERS
    fields = adapters[GENERIC_KEY].gather_fields(row)
    sale_option = " ".join(f for f in (fields.sale, fields.option) if f)
    everything = fields.combined

    if _COMMA_TRIPLET.search(fields.exposure) or _COMMA_TRIPLET.search(sale_option):
        key = "coupang"
    elif _EQ_LABEL.search(everything):
        key = "cafe24"
    elif (
        (_COLON_COLOR_LABEL.search(everything) and _COLON_SIZE_LABEL.search(everything))
        or _PLATFORM_NAME.search(everything)
    ):
        key = "smartstore"
    elif ":" in sale_option and "/" in sale_option:
        key = "gmarket"
    else:
        return None
    return adapters.get(key)


def classify_mall(
    row: Mapping[str, Any],
    adapters: Mapping[str, MarketplaceAdapter] | None = None,
) -> tuple[MarketplaceAdapter, str]:
    """
    Select the adapter for a row.

    Returns:
        (adapter, how) where how is "name", "pattern" or "default".
    """
    adapters = adapters or ADAPTERS

    name = mall_name(row)
    if name:
        adapter = match_mall_name(name, adapters)
        if adapter is not None:
            return adapter, "name"
        logger.debug(f"Unrecognised mall name {name!r}, falling back to text shape")

    adapter = detect_mall_by_pattern(row, adapters)
    if adapter is not None:
        return adapter, "pattern"

    return adapters[GENERIC_KEY], "default"
