"""
Unit tests for shared cell and quantity parsing.
"""

import sys
from pathlib import Path

project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from order_tally.value_parser import clean_cell, parse_quantity


def test_parse_plain_quantities():
    assert parse_quantity(3) == 3
    assert parse_quantity(3.0) == 3
    assert parse_quantity("12") == 12


def test_parse_formatted_quantities():
    assert parse_quantity("1,200") == 1200
    assert parse_quantity("3개") == 3
    assert parse_quantity(" 4 ") == 4


def test_parse_missing_quantities():
    assert parse_quantity(None) == 0
    assert parse_quantity(float("nan")) == 0
    assert parse_quantity("") == 0
    assert parse_quantity("n/a") == 0
    assert parse_quantity("abc") == 0
    assert parse_quantity(True) == 0


def test_clean_cell():
    assert clean_cell("  블랙 ") == "블랙"
    assert clean_cell(110.0) == "110"
    assert clean_cell(None) == ""
    assert clean_cell(float("nan")) == ""


def test_parse_non_finite_quantities():
    # read_csv turns an overflowing cell such as "1e400" into inf
    assert parse_quantity(float("inf")) == 0
    assert parse_quantity(float("-inf")) == 0
