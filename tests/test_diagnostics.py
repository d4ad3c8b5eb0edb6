"""
Unit tests for rejection reporting, pattern profiling and reference comparison.
"""

import sys
from pathlib import Path

import pandas as pd

# Add project root to path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from order_tally.aggregator import aggregate
from order_tally.config import load_rule_table
from order_tally.diagnostics import (
    build_rejection_report,
    compare_with_reference,
    get_aggregate_statistics,
    pattern_of,
    profile_patterns,
    read_reference_summary,
    rejection_counts,
    rejection_samples,
    source_counts,
)

ROWS = [
    {"수량": 3, "상품명": "곰돌이 맨투맨 100"},
    {"수량": 5, "상품명": "곰돌이 맨투맨 110"},
    {"수량": 0, "상품명": "곰돌이 맨투맨 120"},
    {"수량": "", "상품명": "토끼 120"},
    {"수량": 1, "상품명": "곰돌이 맨투맨"},
]


class TestRejectionReport:
    """Tests for rejection and source diagnostics."""

    def setup_method(self):
        self.rules = load_rule_table()
        self.result = aggregate(ROWS, self.rules)

    def test_counts_by_reason(self):
        counts = rejection_counts(self.result)
        assert counts == {"no_quantity": 2, "unparsed": 1}
        assert list(counts) == ["no_quantity", "unparsed"]

    def test_samples_limited(self):
        samples = rejection_samples(self.result, "no_quantity", limit=1)
        assert len(samples) == 1
        assert samples[0].index == 2

    def test_source_counts_cover_resolved_rows(self):
        assert sum(source_counts(self.result).values()) == self.result.resolved_rows

    def test_report_frame(self):
        report = build_rejection_report(self.result)
        assert len(report) == 3
        assert list(report["reason"]) == ["no_quantity", "no_quantity", "unparsed"]
        assert report.iloc[2]["sale"] == "곰돌이 맨투맨"

    def test_statistics(self):
        stats = get_aggregate_statistics(self.result)
        assert stats["total_rows"] == 5
        assert stats["resolved_rows"] == 2
        assert stats["success_rate"] == 40.0
        assert stats["grand_total"] == 8


class TestPatternProfile:
    """Tests for text-shape profiling."""

    def setup_method(self):
        self.rules = load_rule_table()

    def test_groups_by_shape(self):
        rows = [
            {"상품명": "곰돌이 110", "수량": 1},
            {"상품명": "토끼 120", "수량": 2},
            {"상품명": "상품명: 29.노란나비 / 사이즈: 110", "수량": 1},
        ]
        profile = profile_patterns(rows, self.rules)
        assert len(profile) == 2
        assert profile.iloc[0]["pattern"] == "SALE_END_SIZE"
        assert profile.iloc[0]["count"] == 2
        assert profile.iloc[0]["sample_row"] == 0
        assert profile.iloc[1]["pattern"] == "SALE_LABEL_SIZE+SALE_END_SIZE"

    def test_exposure_features(self):
        row = {"상품명": "곰돌이", "노출명": "J015, 곰돌이 맨투맨, 110"}
        pattern = pattern_of(row, self.rules)
        assert "EXPO_CODE" in pattern
        assert "EXPO_COMMA_TRIPLET" in pattern

    def test_plain(self):
        assert pattern_of({}, self.rules) == "PLAIN"


class TestReferenceComparison:
    """Tests for comparison with a hand-made final tally."""

    def setup_method(self):
        self.rules = load_rule_table()
        self.result = aggregate(ROWS, self.rules)

    def _write_reference(self, path, qty_110):
        sizes = list(self.rules.allowed_sizes)
        counts = {100: 3, 110: qty_110}
        rows = [
            ["12월 주문현황"] + [""] * (len(sizes) + 1),
            ["상품명", "칼라"] + sizes,
            ["곰돌이 맨투맨", ""] + [counts.get(s, 0) for s in sizes],
            ["합계", ""] + [counts.get(s, 0) for s in sizes],
        ]
        pd.DataFrame(rows).to_excel(path, header=False, index=False)
        return path

    def test_read_reference(self, tmp_path):
        path = self._write_reference(tmp_path / "final.xlsx", qty_110=5)
        reference = read_reference_summary(path, self.rules)
        assert reference == {"곰돌이 맨투맨": {100: 3, 110: 5}}

    def test_matching_reference(self, tmp_path):
        path = self._write_reference(tmp_path / "final.xlsx", qty_110=5)
        reference = read_reference_summary(path, self.rules)
        assert compare_with_reference(self.result, reference, self.rules) == []

    def test_mismatch_reported(self):
        reference = {"곰돌이 맨투맨": {100: 3, 110: 4}, "토끼": {120: 1}}
        diffs = compare_with_reference(self.result, reference, self.rules)
        assert diffs == [
            {"design": "곰돌이 맨투맨", "size": 110, "computed": 5, "reference": 4},
            {"design": "토끼", "size": 120, "computed": 0, "reference": 1},
        ]
