"""
Unit tests for single-row resolution and rejection reasons.
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from order_tally.config import load_rule_table
from order_tally.resolver import (
    FILTERED_DESIGN,
    INVALID_SIZE,
    NO_QUANTITY,
    UNPARSED,
    find_quantity,
    resolve_row,
)
from order_tally.rules import RuleTable


def _rules_with_stopword(word):
    data = load_rule_table().to_dict()
    data["stopwords"] = data["stopwords"] + [word]
    return RuleTable.from_dict(data)


class TestResolveRow:
    """Tests for resolve_row."""

    def setup_method(self):
        self.rules = load_rule_table()

    def test_labelled_name_and_size(self):
        res = resolve_row({"수량": 2, "상품명": "상품명: 29.노란나비 / 사이즈: 110"}, self.rules)
        assert res.ok
        assert res.variant == ("노란나비", "", 110)
        assert res.quantity == 2
        assert res.source == "gmarket:label/free_text"

    def test_code_slash_color_trailing_size(self):
        row = {"쇼핑몰명": "쿠팡", "수량": 1, "상품명": "J015 맨투맨/네이비 140"}
        res = resolve_row(row, self.rules)
        assert res.variant == ("J015맨투맨", "네이비", 140)
        assert res.adapter == "coupang"
        assert res.classified_by == "name"

    def test_keyword_with_adult_size(self):
        res = resolve_row({"수량": 1, "상품명": "후드 :XL"}, self.rules)
        assert res.variant == ("후드", "", 120)
        assert res.size_rule == "colon_letter"

    @pytest.mark.parametrize("hood_is_stopword, reason", [
        (False, None),
        (True, FILTERED_DESIGN),
    ])
    def test_stopword_design_is_filtered(self, hood_is_stopword, reason):
        rules = _rules_with_stopword("후드") if hood_is_stopword else self.rules
        res = resolve_row({"수량": 1, "상품명": "후드 :XL"}, rules)
        assert res.reason == reason

    def test_zero_quantity(self):
        res = resolve_row({"수량": 0, "상품명": "곰돌이 110"}, self.rules, index=4)
        assert res.reason == NO_QUANTITY
        assert res.index == 4

    def test_missing_quantity_column(self):
        assert resolve_row({"상품명": "곰돌이 110"}, self.rules).reason == NO_QUANTITY

    def test_no_size_signal(self):
        assert resolve_row({"수량": 1, "상품명": "곰돌이 맨투맨"}, self.rules).reason == UNPARSED

    def test_size_outside_allowed_set(self):
        # A cascade that ignores the allowed sizes is caught by the final check
        unchecked = [("fixed", lambda text, rules: 95)]
        res = resolve_row({"수량": 1, "상품명": "곰돌이 95"}, self.rules, size_strategies=unchecked)
        assert not res.ok
        assert res.reason == INVALID_SIZE
        assert res.size == 95
        assert res.size_rule == "fixed"

    def test_exposure_code_preferred_for_coupang(self):
        row = {"수량": 1, "상품명": "곰돌이 맨투맨 140", "노출명": "K300 후드티 140"}
        coupang = resolve_row({**row, "쇼핑몰명": "쿠팡"}, self.rules)
        gmarket = resolve_row({**row, "쇼핑몰명": "G마켓"}, self.rules)
        assert coupang.design == "K300후드티"
        assert coupang.design_rule == "exposure_code"
        assert gmarket.design == "K300맨투맨"
        assert gmarket.design_rule == "code"

    def test_canonical_code_applied(self):
        res = resolve_row({"수량": 1, "상품명": "J015 오버핏맨투맨 120"}, self.rules)
        assert res.design == "J015맨투맨"


class TestFindQuantity:
    """Tests for quantity column lookup."""

    def test_known_column(self):
        assert find_quantity({"주문수량": "3개"}) == 3

    def test_any_column_containing_quantity(self):
        assert find_quantity({"주문 수량(개)": "2", "상품명": "곰돌이 110"}) == 2

    def test_no_column(self):
        assert find_quantity({"상품명": "곰돌이 110"}) == 0
