"""
Configuration Module - Centralized Configuration Hub

Contains all configurable parameters for the order tally:
- Directory paths
- Rule Table defaults (sizes, colors, keywords, stopwords, code canon, aliases)
- Marketplace adapter definitions (column candidates per platform)
- Output settings for the summary workbook

JSON files in config/ override the Python defaults when present.
"""

from __future__ import annotations

import json
import warnings
from pathlib import Path
from typing import Any

from order_tally.rules import RuleTable


# ============================================================================
# DIRECTORY PATHS
# ============================================================================

# Project root directory (parent of order_tally/)
PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Order exports are dropped here by default
INPUT_PATH = PROJECT_ROOT / "01_orders"

# Summary workbooks are written here
OUTPUT_PATH = PROJECT_ROOT / "02_output"

# Configuration file directory
CONFIG_DIR = PROJECT_ROOT / "config"


# ============================================================================
# ROW COLUMNS
# ============================================================================
# Column names are the localized labels used by the order-management export.
# The first present, non-empty candidate wins.

MALL_NAME_FIELDS = ["쇼핑몰명", "판매처", "마켓명"]
QUANTITY_FIELDS = ["수량", "주문수량", "판매수량"]


# ============================================================================
# OUTPUT FORMAT SETTINGS
# ============================================================================

OUTPUT_SETTINGS = {
    "workbook_name_pattern": "집계표_{source}_{timestamp}.xlsx",
    "timestamp_format": "%Y%m%d_%H%M%S",
    "integer_format": "#,##0",
    "design_header": "디자인명",
    "color_header": "칼라",
    "total_header": "합계",
    "sample_limit": 10,
}


# ============================================================================
# RULE TABLE DEFAULTS
# ============================================================================
# Note: Rules are loaded from config/rules.json if available (see bottom of file)

_RULES_DEFAULT: dict[str, Any] = {
    "allowedSizes": [90, 100, 110, 120, 130, 140, 150, 160, 170, 180],
    "adultSizeMap": {"S": 90, "M": 100, "L": 110, "XL": 120, "2XL": 130},
    "colors": [
        "블랙", "검정", "화이트", "흰색", "아이보리", "크림", "베이지", "오트밀",
        "그레이", "회색", "멜란지", "차콜", "먹색", "네이비", "곤색", "블루",
        "소라", "스카이블루", "민트", "그린", "카키", "올리브", "옐로우", "노랑",
        "오렌지", "레드", "와인", "핑크", "연핑크", "라벤더", "퍼플", "보라",
        "브라운", "모카",
    ],
    "keywords": [
        "맨투맨", "오버핏맨투맨", "기모맨투맨", "스웨트셔츠",
        "후드", "후드티", "캐주얼후드", "기모오버핏후드",
        "기모트레이닝팬츠", "기모트레이닝세트", "트레이닝세트", "조거팬츠",
        "반팔", "긴팔", "티셔츠", "레깅스", "원피스",
    ],
    "stopwords": [
        "상품명", "사이즈", "색상", "옵션", "옵션명", "옵션정보", "선택",
        "수량", "단품", "기본", "공용", "성인", "아동", "무료배송",
    ],
    "codeCanon": {
        "J015": "맨투맨",
        "H201": "후드티",
        "T310": "반팔티셔츠",
    },
    "aliases": [
        {"pattern": "맨투멘", "replace": "맨투맨"},
        {"pattern": "후드티셔츠", "replace": "후드티"},
        {"pattern": "스웻셔츠", "replace": "스웨트셔츠"},
    ],
    "unnamedDesign": "상품명 없음",
}


# ============================================================================
# MARKETPLACE DEFAULTS
# ============================================================================
# Note: Marketplaces are loaded from config/marketplaces.json if available.
# The entry keyed "generic" is the fallback adapter and must exist.

_MARKETPLACES_DEFAULT: list[dict[str, Any]] = [
    {
        "key": "coupang",
        "name": "쿠팡",
        "aliases": ["쿠팡", "coupang"],
        "saleFields": ["판매처상품명", "상품명"],
        "optionFields": ["옵션명", "옵션"],
        "exposureFields": ["노출명"],
        "preferExposureWithCode": True,
    },
    {
        "key": "gmarket",
        "name": "G마켓",
        "aliases": ["g마켓", "지마켓", "gmarket"],
        "saleFields": ["판매처상품명", "상품명"],
        "optionFields": ["옵션명", "옵션"],
        "exposureFields": ["노출명"],
        "preferExposureWithCode": False,
    },
    {
        "key": "cafe24",
        "name": "카페24",
        "aliases": ["카페24", "cafe24"],
        "saleFields": ["판매처상품명", "상품명"],
        "optionFields": ["옵션명", "옵션", "옵션정보", "세부옵션", "추가옵션"],
        "exposureFields": ["노출명"],
        "preferExposureWithCode": False,
    },
    {
        "key": "smartstore",
        "name": "스마트스토어",
        "aliases": ["스마트스토어", "스토어팜", "네이버", "naver", "smartstore", "storefarm", "스토어"],
        "saleFields": ["판매처상품명", "상품명"],
        "optionFields": ["옵션명", "옵션", "옵션정보", "상품옵션", "상세옵션"],
        "exposureFields": ["노출명"],
        "preferExposureWithCode": False,
    },
    {
        "key": "generic",
        "name": "기타",
        "aliases": [],
        "saleFields": ["판매처상품명", "상품명", "발주명"],
        "optionFields": ["옵션명", "옵션", "옵션정보"],
        "exposureFields": ["노출명"],
        "preferExposureWithCode": False,
    },
]


# ============================================================================
# CONFIG LOADING AND VALIDATION
# ============================================================================

def _load_rules_from_json(defaults: dict[str, Any], rules_file: Path | None = None) -> dict[str, Any]:
    """Load rule table from JSON file, merge with defaults (JSON takes precedence)."""
    rules_file = rules_file or CONFIG_DIR / "rules.json"
    if rules_file.exists():
        try:
            with open(rules_file, "r", encoding="utf-8") as f:
                data = json.load(f)
            if isinstance(data, dict):
                merged = defaults.copy()
                merged.update(data.get("rules", data))
                return merged
        except Exception as e:
            warnings.warn(f"Failed to load rules from JSON: {e}. Using defaults.")
    return defaults


def _load_marketplaces_from_json(defaults: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Load marketplace definitions from JSON file, replacing entries by key."""
    marketplaces_file = CONFIG_DIR / "marketplaces.json"
    if marketplaces_file.exists():
        try:
            with open(marketplaces_file, "r", encoding="utf-8") as f:
                data = json.load(f)
            if "marketplaces" in data:
                by_key = {m["key"]: m for m in defaults}
                for entry in data["marketplaces"]:
                    if isinstance(entry, dict) and entry.get("key"):
                        base = by_key.get(entry["key"], {})
                        by_key[entry["key"]] = {**base, **entry}
                return list(by_key.values())
        except Exception as e:
            warnings.warn(f"Failed to load marketplaces from JSON: {e}. Using defaults.")
    return defaults


# Load from JSON if available, otherwise use defaults
# This happens at module import time
RULES = _load_rules_from_json(_RULES_DEFAULT)
MARKETPLACES = _load_marketplaces_from_json(_MARKETPLACES_DEFAULT)


def load_rule_table(path: Path | str | None = None) -> RuleTable:
    """
    Build the process-wide RuleTable.

    Args:
        path: Optional JSON rules file merged over the defaults. If None, the
              import-time rules (defaults plus config/rules.json) are used.

    Returns:
        Validated, immutable RuleTable.
    """
    if path is None:
        return RuleTable.from_dict(RULES)
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Rules file not found: {path}")
    return RuleTable.from_dict(_load_rules_from_json(_RULES_DEFAULT, path))


def load_config() -> dict[str, Any]:
    """
    Load and return all configuration as a dictionary.

    Returns:
        Dictionary with all configuration values.
    """
    return {
        "project_root": PROJECT_ROOT,
        "input_path": INPUT_PATH,
        "output_path": OUTPUT_PATH,
        "config_dir": CONFIG_DIR,
        "rules": RULES,
        "marketplaces": MARKETPLACES,
        "mall_name_fields": MALL_NAME_FIELDS,
        "quantity_fields": QUANTITY_FIELDS,
        "output_settings": OUTPUT_SETTINGS,
    }


def validate_config() -> tuple[bool, list[str]]:
    """
    Validate configuration settings.

    Returns:
        Tuple of (is_valid, list_of_errors).
    """
    errors = []

    try:
        RuleTable.from_dict(RULES)
    except ValueError as e:
        errors.append(f"Invalid rule table: {e}")

    keys = [m.get("key") for m in MARKETPLACES]
    if "generic" not in keys:
        errors.append("Marketplace definitions must include a 'generic' fallback")
    if len(keys) != len(set(keys)):
        errors.append(f"Duplicate marketplace keys: {keys}")

    for m in MARKETPLACES:
        if not m.get("saleFields"):
            errors.append(f"Marketplace {m.get('key')} has no saleFields")

    return len(errors) == 0, errors


def ensure_directories() -> None:
    """Create required directories if they don't exist."""
    OUTPUT_PATH.mkdir(parents=True, exist_ok=True)
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)


def save_rules_to_json(filepath: Path | str | None = None, rules: RuleTable | None = None) -> Path:
    """
    Save a rule table to a JSON file, for use as an editable template.

    Args:
        filepath: Output path. If None, saves to CONFIG_DIR/rules.json.
        rules: Rule table to save. If None, the active rules are saved.

    Returns:
        Path written.
    """
    if filepath is None:
        ensure_directories()
        filepath = CONFIG_DIR / "rules.json"

    filepath = Path(filepath)
    table = rules or load_rule_table()

    with open(filepath, "w", encoding="utf-8") as f:
        json.dump({"rules": table.to_dict()}, f, indent=2, ensure_ascii=False)

    return filepath


if __name__ == "__main__":
    # Validate configuration on direct execution
    print("=" * 60)
    print("Configuration Validation")
    print("=" * 60)

    is_valid, errors = validate_config()

    if is_valid:
        print("[OK] Configuration is valid")
    else:
        print("[ERROR] Configuration has errors:")
        for error in errors:
            print(f"  - {error}")

    print("\nDirectory paths:")
    print(f"  Project Root: {PROJECT_ROOT}")
    print(f"  Input: {INPUT_PATH}")
    print(f"  Output: {OUTPUT_PATH}")

    print(f"\nAllowed sizes: {RULES['allowedSizes']}")
    print(f"Colors: {len(RULES['colors'])}, Keywords: {len(RULES['keywords'])}, Stopwords: {len(RULES['stopwords'])}")
    print(f"Marketplaces: {[m['key'] for m in MARKETPLACES]}")
