"""
Unit tests for marketplace adapters and the mall classifier.
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from order_tally.marketplaces import (
    ADAPTERS,
    MallFields,
    classify_mall,
    load_adapters,
    pick_field,
)


class TestClassifyMall:
    """Tests for classify_mall."""

    @pytest.mark.parametrize("row, key", [
        ({"쇼핑몰명": "쿠팡"}, "coupang"),
        ({"쇼핑몰명": "COUPANG"}, "coupang"),
        ({"쇼핑몰명": "G마켓"}, "gmarket"),
        ({"쇼핑몰명": "카페24"}, "cafe24"),
        ({"판매처": "네이버 스마트스토어"}, "smartstore"),
        ({"쇼핑몰명": "OO스토어"}, "smartstore"),
        ({"쇼핑몰명": "쿠팡 스토어"}, "coupang"),
    ])
    def test_by_name(self, row, key):
        adapter, how = classify_mall(row)
        assert adapter.key == key
        assert how == "name"

    @pytest.mark.parametrize("row, key", [
        ({"상품명": "x", "노출명": "J015, 곰돌이 맨투맨, 110"}, "coupang"),
        ({"상품명": "곰돌이", "옵션명": "색상=블랙, 사이즈=110"}, "cafe24"),
        ({"상품명": "곰돌이", "옵션명": "색상: 블랙 / 사이즈: 110"}, "smartstore"),
        ({"상품명": "곰돌이 맨투맨", "옵션명": "컬러: 블랙 / 110"}, "gmarket"),
    ])
    def test_by_pattern(self, row, key):
        adapter, how = classify_mall(row)
        assert adapter.key == key
        assert how == "pattern"

    def test_unknown_name_falls_back_to_default(self):
        adapter, how = classify_mall({"쇼핑몰명": "알수없음", "상품명": "곰돌이 맨투맨 110"})
        assert adapter.key == "generic"
        assert how == "default"


class TestFields:
    """Tests for field lookup."""

    def test_pick_first_non_empty(self):
        row = {"판매처상품명": "", "상품명": "곰돌이"}
        assert pick_field(row, ADAPTERS["generic"].sale_fields) == "곰돌이"

    def test_pick_missing(self):
        assert pick_field({}, ["상품명"]) == ""

    def test_candidates_combined_first(self):
        assert MallFields(sale="a", exposure="b").candidates() == ["a b", "a", "b"]
        assert MallFields(sale="a").candidates() == ["a"]
        assert MallFields().candidates() == []

    def test_generic_adapter_required(self):
        with pytest.raises(ValueError):
            load_adapters([{"key": "coupang", "saleFields": ["상품명"]}])
