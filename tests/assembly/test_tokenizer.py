"""Tests for mathtile.assembly.tokenizer."""

import pytest

from mathtile.assembly import (
    detokenize,
    estimate_range,
    is_operator,
    normalize_latex,
    tokenize,
)


class TestTokenize:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("x^2 + 4x + 4", ["x", "^", "2", "+", "4", "x", "+", "4"]),
            ("\\frac{a}{b}", ["\\frac", "{", "a", "}", "{", "b", "}"]),
            ("\\alpha+\\beta", ["\\alpha", "+", "\\beta"]),
            ("abc12", ["abc", "12"]),
            ("\\sqrt2", ["\\sqrt", "2"]),
            ("a_{i}", ["a", "_", "{", "i", "}"]),
            ("  x   =  y ", ["x", "=", "y"]),
        ],
    )
    def test_tokens(self, text, expected):
        assert tokenize(text) == expected

    @pytest.mark.parametrize("text", [None, "", "   "])
    def test_empty(self, text):
        assert tokenize(text) == []

    def test_operators(self):
        assert all(is_operator(op) for op in "+-=*/^_")
        assert not is_operator("x")
        assert not is_operator("\\times")


class TestDetokenize:
    @pytest.mark.parametrize(
        "text",
        ["x^2 + 4x + 4", "\\frac{a}{b}", "a_{i} = b"],
    )
    def test_round_trip(self, text):
        assert detokenize(tokenize(text)) == text

    @pytest.mark.parametrize(
        "text",
        [
            "\\sqrt{x}",
            "\\sum_{i=1}^{n} i",
            "\\frac{\\alpha}{2}",
            "x_1 + x_2",
            "a \\cdot b",
            "\\frac{1}{1 + \\frac{1}{x}}",
            "{{a}^{2}}",
            "\\alpha + \\beta = \\gamma",
            "\\int_{0}^{1} f",
            "x^2 + 4x + 4",
        ],
    )
    def test_round_trip_preserves_structure(self, text):
        assert normalize_latex(detokenize(tokenize(text))) == normalize_latex(text)

    def test_command_spacing(self):
        assert detokenize(["\\alpha", "x"]) == "\\alpha x"
        assert detokenize(["x", "\\cdot", "y"]) == "x \\cdot y"

    def test_empty(self):
        assert detokenize([]) == ""
        assert detokenize(None) == ""


class TestEstimateRange:
    TOKENS = list("abcdefghij")

    def test_right_quarter(self):
        assert estimate_range(self.TOKENS, 0.75, 1.0) == ["h", "i", "j"]

    def test_left_third(self):
        assert estimate_range(self.TOKENS, 0.0, 0.33) == ["a", "b", "c", "d"]

    def test_full(self):
        assert estimate_range(self.TOKENS, 0.0, 1.0) == self.TOKENS

    def test_empty(self):
        assert estimate_range([], 0.0, 1.0) == []
