"""Unit tests for row normalization."""
from datetime import date

import numpy as np

from ragu.rag.normalizer import (
    NULL_LITERAL,
    UNSUPPORTED_PLACEHOLDER,
    normalize_row,
    normalize_rows,
    render_field,
)


class TestRenderField:
    """Tests for single field rendering."""

    def test_strings_pass_through(self):
        assert render_field("Alice") == "Alice"
        assert render_field("") == ""

    def test_integers_are_decimal(self):
        assert render_field(30) == "30"
        assert render_field(-7) == "-7"
        assert render_field(np.int64(42)) == "42"

    def test_none_is_null_literal(self):
        assert render_field(None) == NULL_LITERAL == "null"

    def test_unsupported_kinds_use_placeholder(self):
        for value in (1.5, True, np.bool_(False), date(2024, 1, 1), b"raw"):
            assert render_field(value) == UNSUPPORTED_PLACEHOLDER


class TestNormalizeRow:
    """Tests for whole-row normalization."""

    def test_fields_joined_with_comma_space(self):
        assert normalize_row(["Alice", 30, None]) == "Alice, 30, null"

    def test_empty_row(self):
        assert normalize_row([]) == ""

    def test_idempotent(self):
        row = ("Bob", 25, 2.5, None)
        assert normalize_row(row) == normalize_row(row)
        assert row == ("Bob", 25, 2.5, None)

    def test_one_text_per_row_in_order(self):
        rows = [("Alice", 30), ("Bob", 25), (None, None)]
        assert normalize_rows(rows) == ["Alice, 30", "Bob, 25", "null, null"]

    def test_accepts_generators(self):
        texts = normalize_rows((name, age) for name, age in [("a", 1), ("b", 2)])
        assert texts == ["a, 1", "b, 2"]
