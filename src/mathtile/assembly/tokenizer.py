"""Reversible tokenizer for recognized LaTeX.

Tokens are control sequences (``\\frac``), single braces, single operators
from ``+-=*/^_`` and runs of ordinary characters, with digit runs split
from letter runs (``4x`` → ``4``, ``x``).  Whitespace only separates.

Examples::

    tokenize("x^2 + 4x + 4")   -> ["x", "^", "2", "+", "4", "x", "+", "4"]
    tokenize("\\frac{a}{b}")   -> ["\\frac", "{", "a", "}", "{", "b", "}"]
"""

from __future__ import annotations

import math
import re
from typing import List, Optional, Sequence

from ..models import Token

OPERATORS = frozenset("+-=*/^_")
_TIGHT_OPERATORS = frozenset("^_")
_DIGIT_SPLIT = re.compile(r"\d+|\D+")


def is_operator(token: str) -> bool:
    return token in OPERATORS


def _is_letter(ch: str) -> bool:
    return ("a" <= ch <= "z") or ("A" <= ch <= "Z")


def _is_digit(ch: str) -> bool:
    return "0" <= ch <= "9"


def _flush_run(run: str, tokens: List[Token]) -> None:
    for part in _DIGIT_SPLIT.findall(run):
        if part.strip():
            tokens.append(part)


def tokenize(text: Optional[str]) -> List[Token]:
    """Split *text* into tokens; None or empty text gives ``[]``."""
    if not text:
        return []
    tokens: List[Token] = []
    current = ""
    in_command = False

    def close_current() -> None:
        nonlocal current, in_command
        if in_command:
            tokens.append(current)
        elif current:
            _flush_run(current, tokens)
        current = ""
        in_command = False

    for ch in text:
        if ch == "\\":
            close_current()
            current = ch
            in_command = True
        elif in_command and _is_letter(ch):
            current += ch
        elif ch in "{}" or ch in OPERATORS:
            close_current()
            tokens.append(ch)
        elif ch.isspace():
            close_current()
        else:
            if in_command:
                close_current()
            if current and (
                (_is_digit(current[-1]) and _is_letter(ch))
                or (_is_letter(current[-1]) and _is_digit(ch))
            ):
                _flush_run(current, tokens)
                current = ""
            current += ch
    close_current()
    return [t for t in tokens if t]


def _needs_space(prev: Token, token: Token) -> bool:
    if prev == "{" or token == "}":
        return False
    if token == "{" and not prev.startswith("\\"):
        return False
    if prev in _TIGHT_OPERATORS or token in _TIGHT_OPERATORS:
        return False
    if is_operator(token) or is_operator(prev):
        return True
    if prev.startswith("\\") and token not in ("{", "}"):
        return True
    return token.startswith("\\")


def detokenize(tokens: Optional[Sequence[Token]]) -> str:
    """Join tokens with single spaces only where the layout rules need one."""
    if not tokens:
        return ""
    parts: List[str] = []
    prev: Optional[Token] = None
    for token in tokens:
        if prev is not None and _needs_space(prev, token):
            parts.append(" ")
        parts.append(token)
        prev = token
    return "".join(parts).strip()


def estimate_range(
    tokens: Sequence[Token], start_ratio: float, end_ratio: float
) -> List[Token]:
    """Tokens in ``[floor(n*start_ratio), ceil(n*end_ratio))``.

    A linear stand-in for "the tokens drawn in this horizontal fraction of
    the tile"; recognizers do not report glyph positions.
    """
    if not tokens:
        return []
    n = len(tokens)
    start = max(0, math.floor(n * start_ratio))
    end = max(0, math.ceil(n * end_ratio))
    return list(tokens[start:end])
