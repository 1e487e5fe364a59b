"""String metrics and LaTeX normalization used to compare overlap text."""

from __future__ import annotations

import re

from rapidfuzz.distance import Levenshtein

_WS = re.compile(r"\s+")
_SPACED_OPERATOR = re.compile(r"\s*([+\-=*/])\s*")
_SPACED_BRACE = re.compile(r"\s*([{}])\s*")


def levenshtein_distance(a: str, b: str) -> int:
    """Minimum single-character insertions, deletions and substitutions."""
    return Levenshtein.distance(a, b)


def similarity_ratio(a: str, b: str) -> float:
    """``1 - distance / max_len``; two empty strings are identical (1.0)."""
    return Levenshtein.normalized_similarity(a, b)


def normalize_latex(text: str) -> str:
    """Collapse whitespace and drop the spaces around operators and braces."""
    text = _WS.sub(" ", text)
    text = _SPACED_OPERATOR.sub(r"\1", text)
    text = _SPACED_BRACE.sub(r"\1", text)
    return text.strip()


def latex_structurally_equal(a: str, b: str) -> bool:
    return normalize_latex(a) == normalize_latex(b)
