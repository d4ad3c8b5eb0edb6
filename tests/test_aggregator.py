"""
Unit tests for aggregation, merging and summary reshaping.
"""

import sys
from pathlib import Path

import pandas as pd
import pytest

# Add project root to path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from order_tally.aggregator import AggregateResult, SummaryRow, aggregate, rebuild_summary
from order_tally.config import load_rule_table

ROWS = [
    {"수량": 3, "상품명": "곰돌이 맨투맨 100"},
    {"수량": 5, "상품명": "곰돌이 맨투맨 110"},
    {"쇼핑몰명": "쿠팡", "수량": 2, "상품명": "J015 맨투맨/네이비 140"},
    {"수량": 0, "상품명": "곰돌이 맨투맨 120"},
    {"수량": 1, "상품명": "곰돌이 맨투맨"},
    {"수량": 4, "상품명": "리틀베어 후드/블랙(성인) M"},
]


class TestAggregate:
    """Tests for aggregate."""

    def setup_method(self):
        self.rules = load_rule_table()
        self.result = aggregate(ROWS, self.rules)

    def test_same_key_sums_sizes(self):
        rows = {(r.design, r.color): r for r in self.result.summary_rows}
        bear = rows[("곰돌이 맨투맨", "")]
        assert bear.size_counts[100] == 3
        assert bear.size_counts[110] == 5
        assert bear.total == 8

    def test_summary_keys(self):
        keys = [(r.design, r.color) for r in self.result.summary_rows]
        assert keys == [("J015맨투맨", "네이비"), ("곰돌이 맨투맨", ""), ("리틀베어 후드", "블랙")]

    def test_every_allowed_size_present(self):
        for row in self.result.summary_rows:
            assert set(row.size_counts) == set(self.rules.allowed_sizes)
            assert row.total == sum(row.size_counts.values())

    def test_rejections_recorded(self):
        assert [(r.index, r.reason) for r in self.result.rejections] == [(3, "no_quantity"), (4, "unparsed")]
        assert self.result.rows_seen == len(ROWS)
        assert self.result.resolved_rows == 4

    def test_totals(self):
        assert self.result.grand_total == 14
        assert self.result.size_totals()[100] == 7

    def test_order_independent(self):
        reversed_result = aggregate(list(reversed(ROWS)), self.rules)
        assert reversed_result.summary_rows == self.result.summary_rows

    def test_dataframe_input(self):
        df = pd.DataFrame(ROWS)
        assert aggregate(df, self.rules).summary_rows == self.result.summary_rows

    def test_default_rules(self):
        assert aggregate(ROWS[:2]).grand_total == 8

    def test_infinite_quantity_does_not_stop_batch(self):
        rows = [
            {"수량": float("inf"), "상품명": "곰돌이 맨투맨 110"},
            {"수량": 1, "상품명": "곰돌이 맨투맨 110"},
        ]
        result = aggregate(rows, self.rules)
        assert [(r.index, r.reason) for r in result.rejections] == [(0, "no_quantity")]
        assert result.rows_seen == 2
        assert result.grand_total == 1

    def test_size_outside_allowed_set_excluded(self):
        rows = [{"수량": 2, "상품명": "곰돌이 95"}, {"수량": 3, "상품명": "곰돌이 95"}]
        result = aggregate(rows, self.rules, size_strategies=[("fixed", lambda text, rules: 95)])
        assert [r.reason for r in result.rejections] == ["invalid_size", "invalid_size"]
        assert result.grand_total == 0
        assert result.summary_rows == []


class TestMerge:
    """Tests for combining partial results."""

    def setup_method(self):
        self.rules = load_rule_table()

    def test_shards_merge_to_whole(self):
        whole = aggregate(ROWS, self.rules)
        merged = aggregate(ROWS[:3], self.rules).merge(aggregate(ROWS[3:], self.rules))
        assert merged.summary_rows == whole.summary_rows
        assert merged.rows_seen == whole.rows_seen
        assert len(merged.rejections) == len(whole.rejections)

    def test_merge_requires_same_sizes(self):
        with pytest.raises(ValueError):
            AggregateResult(sizes=(90, 100)).merge(AggregateResult(sizes=(90,)))


class TestReshaping:
    """Tests for tabular output and summary rebuilding."""

    def setup_method(self):
        self.rules = load_rule_table()
        self.result = aggregate(ROWS, self.rules)

    def test_dataframe_columns(self):
        df = self.result.to_dataframe()
        assert list(df.columns) == ["디자인명", "칼라", *self.rules.allowed_sizes, "합계"]

    def test_dataframe_totals_row(self):
        df = self.result.to_dataframe()
        assert df.iloc[-1]["디자인명"] == "합계"
        assert df.iloc[-1]["합계"] == 14
        assert len(self.result.to_dataframe(include_totals=False)) == len(df) - 1

    def test_label(self):
        assert SummaryRow("곰돌이", "블랙", {}).label == "곰돌이(블랙)"
        assert SummaryRow("곰돌이", "", {}).label == "곰돌이"

    def test_rebuild_merges_edited_rows(self):
        rows = self.result.summary_rows
        edited = [SummaryRow("곰돌이 맨투맨", "", dict(r.size_counts)) for r in rows]
        rebuilt = rebuild_summary(edited, self.rules)
        assert len(rebuilt) == 1
        assert rebuilt[0].total == self.result.grand_total

    def test_rebuild_rejects_unknown_size(self):
        with pytest.raises(ValueError):
            rebuild_summary([SummaryRow("곰돌이", "", {95: 1})], self.rules)
