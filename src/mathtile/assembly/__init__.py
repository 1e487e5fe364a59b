"""Tokenization and restorative reassembly of recognized tile text."""

from .assembler import RestorativeAssembler, assemble_tiles, clean_text
from .strings import (
    latex_structurally_equal,
    levenshtein_distance,
    normalize_latex,
    similarity_ratio,
)
from .tokenizer import detokenize, estimate_range, is_operator, tokenize

__all__ = [
    "RestorativeAssembler",
    "assemble_tiles",
    "clean_text",
    "latex_structurally_equal",
    "levenshtein_distance",
    "normalize_latex",
    "similarity_ratio",
    "detokenize",
    "estimate_range",
    "is_operator",
    "tokenize",
]
