"""Restorative merge of per-tile recognized text.

Adjacent tiles both see their shared overlap band, so each seam gets two
independent readings of the same strokes.  The readings are compared:
identical seams merge cleanly, similar seams are repaired by a configured
strategy, and different seams keep the earlier tile's reading.  Every
non-identical seam leaves a :class:`~mathtile.models.RepairRecord`.

Public API
----------
RestorativeAssembler   – ``assemble(tiles) -> AssemblyResult``
assemble_tiles         – one-shot convenience wrapper
clean_text             – final whitespace / duplicate-operator cleanup
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import replace
from typing import List, Optional, Sequence, Tuple

from ..config import TilingConfig
from ..models import AssemblyResult, OverlapComparison, RepairRecord, Tile
from .strings import levenshtein_distance, normalize_latex, similarity_ratio
from .tokenizer import detokenize, estimate_range, tokenize

log = logging.getLogger("mathtile.assembly")

MISMATCH_CONFIDENCE = 0.5

# (pattern, replacement) applied in order by clean_text.
_CLEANUPS: List[Tuple[re.Pattern, str]] = [
    (re.compile(r"\s+"), " "),
    (re.compile(r"\\times\s*\\times"), r"\\times"),
    (re.compile(r"\+\s*\+"), "+"),
    (re.compile(r"-\s*-"), "+"),
    (re.compile(r"=\s*="), "="),
    (re.compile(r"\s*([+\-=])\s*"), r" \1 "),
    (re.compile(r"\s+"), " "),
    (re.compile(r"\{\s+"), "{"),
    (re.compile(r"\s+\}"), "}"),
]


def clean_text(text: Optional[str]) -> str:
    """Collapse whitespace and operator duplicates left behind at seams.

    ``\\times\\times`` → ``\\times``, ``++`` → ``+``, ``--`` → ``+``,
    ``==`` → ``=``; single spaces around ``+ - =``; no space just inside
    braces.
    """
    if not text:
        return ""
    for pattern, repl in _CLEANUPS:
        text = pattern.sub(repl, text)
    return text.strip()


class RestorativeAssembler:
    """Merge recognized tile text into one string with a confidence score.

    Parameters
    ----------
    cfg : TilingConfig, optional
        Supplies ``similarity_threshold`` and ``repair_strategy``.
    """

    def __init__(self, cfg: Optional[TilingConfig] = None) -> None:
        self.cfg = cfg or TilingConfig()

    # ── Entry point ───────────────────────────────────────────────────

    def assemble(self, tiles: Sequence[Tile]) -> AssemblyResult:
        """Merge *tiles* (left to right by position) into one result.

        Tiles are not modified; overlap text is computed on copies.  A tile
        whose text is None or empty contributes nothing and is not an
        error.
        """
        if not tiles:
            return AssemblyResult("", 0.0, [], 0)
        if len(tiles) == 1:
            return AssemblyResult(clean_text(tiles[0].text), 1.0, [], 1)

        ordered = self.with_overlap_text(sorted(tiles, key=lambda t: t.bounds.min_x))
        merged = ordered[0].text or ""
        repairs: List[RepairRecord] = []
        seam_confidences: List[float] = []

        for i in range(1, len(ordered)):
            prev, cur = ordered[i - 1], ordered[i]
            left = prev.right_overlap_text
            right = cur.left_overlap_text
            cmp = self.compare_overlaps(left, right)
            remainder = self.remove_overlap_prefix(cur.text or "", right)

            if cmp.identical:
                log.info("Seam %d↔%d: identical overlap", i - 1, i)
                seam_conf = 1.0
            elif cmp.similar:
                repaired, seam_conf = self.repair_overlap(left, right, cmp)
                log.warning(
                    "Seam %d↔%d: similar overlap (%.2f), repaired to %r",
                    i - 1,
                    i,
                    cmp.similarity,
                    repaired,
                )
                repairs.append(
                    RepairRecord(
                        seam_index=i,
                        kind="similarity",
                        original_pair=(left, right),
                        resolution=repaired,
                        confidence=seam_conf,
                        edit_distance=cmp.edit_distance,
                        action=f"repaired_{self.cfg.repair_strategy}",
                    )
                )
                merged = self.replace_overlap_suffix(merged, left, repaired)
            else:
                log.error(
                    "Seam %d↔%d: different overlaps %r vs %r "
                    "(distance %d, similarity %.2f), keeping left",
                    i - 1,
                    i,
                    left,
                    right,
                    cmp.edit_distance,
                    cmp.similarity,
                )
                seam_conf = MISMATCH_CONFIDENCE
                repairs.append(
                    RepairRecord(
                        seam_index=i,
                        kind="mismatch",
                        original_pair=(left, right),
                        resolution=left,
                        confidence=MISMATCH_CONFIDENCE,
                        edit_distance=cmp.edit_distance,
                        action="kept_left",
                    )
                )
            merged = f"{merged} {remainder}"
            seam_confidences.append(seam_conf)

        confidence = math.prod(seam_confidences) ** (1.0 / len(seam_confidences))
        result = AssemblyResult(
            text=clean_text(merged),
            confidence=confidence,
            repairs=repairs,
            tile_count=len(ordered),
        )
        log.info(
            "Assembled %d tiles: confidence %.2f, %d repairs",
            result.tile_count,
            result.confidence,
            len(repairs),
        )
        return result

    # ── Overlap text ──────────────────────────────────────────────────

    def with_overlap_text(self, tiles: Sequence[Tile]) -> List[Tile]:
        """Copies of *tiles* with ``left/right_overlap_text`` filled in.

        The overlap's share of the tile's logical width selects the same
        share of its tokens, from the right edge for the right overlap and
        from the left edge for the left overlap.
        """
        out: List[Tile] = []
        last = len(tiles) - 1
        for i, tile in enumerate(tiles):
            left_text = right_text = ""
            if tile.text:
                tokens = tokenize(tile.text)
                if tile.right_overlap is not None and i < last:
                    ratio = tile.right_overlap.size / tile.logical_width
                    right_text = detokenize(estimate_range(tokens, 1.0 - ratio, 1.0))
                if tile.left_overlap is not None and i > 0:
                    ratio = tile.left_overlap.size / tile.logical_width
                    left_text = detokenize(estimate_range(tokens, 0.0, ratio))
                log.debug(
                    "Tile %d: %d tokens, overlap text L=%r R=%r",
                    tile.index,
                    len(tokens),
                    left_text,
                    right_text,
                )
            out.append(
                replace(
                    tile, left_overlap_text=left_text, right_overlap_text=right_text
                )
            )
        return out

    # ── Seam comparison and repair ────────────────────────────────────

    def compare_overlaps(self, left: str, right: str) -> OverlapComparison:
        """Classify two readings of the same overlap band."""
        if not left or not right:
            return OverlapComparison(
                identical=False,
                similar=False,
                similarity=0.0,
                edit_distance=max(len(left or ""), len(right or "")),
            )
        if normalize_latex(left) == normalize_latex(right):
            return OverlapComparison(
                identical=True,
                similar=True,
                similarity=1.0,
                edit_distance=0,
                token_overlap_ratio=1.0,
            )

        a, b = left.strip(), right.strip()
        distance = levenshtein_distance(a, b)
        similarity = similarity_ratio(a, b)

        left_tokens = tokenize(left)
        right_tokens = tokenize(right)
        longest = max(len(left_tokens), len(right_tokens))
        common = sum(1 for t in left_tokens if t in right_tokens)
        token_overlap = common / longest if longest else 0.0

        similar = (
            similarity >= self.cfg.similarity_threshold
            or token_overlap > 0.5
            or (token_overlap > 0.4 and similarity > 0.7)
        )
        return OverlapComparison(
            identical=False,
            similar=similar,
            similarity=max(similarity, token_overlap * 0.88),
            edit_distance=distance,
            token_overlap_ratio=token_overlap,
        )

    def repair_overlap(
        self, left: str, right: str, comparison: OverlapComparison
    ) -> Tuple[str, float]:
        """Pick the seam text and its confidence under the repair strategy.

        ============  =========================  ========================
        strategy      chosen text                confidence
        ============  =========================  ========================
        ``longer``    longer (ties: right)       0.85 + 0.10·similarity
        ``shorter``   shorter (ties: right)      0.80 + 0.10·similarity
        ``average``   longer (ties: left)        0.75 + 0.15·similarity
        ``default``   left                       0.70 + 0.10·similarity
        ============  =========================  ========================
        """
        sim = comparison.similarity
        strategy = self.cfg.repair_strategy
        if strategy == "longer":
            return (left if len(left) > len(right) else right), 0.85 + sim * 0.1
        if strategy == "shorter":
            return (left if len(left) < len(right) else right), 0.80 + sim * 0.1
        if strategy == "average":
            return (left if len(left) >= len(right) else right), 0.75 + sim * 0.15
        return left, 0.70 + sim * 0.1

    # ── Token splicing ────────────────────────────────────────────────

    @staticmethod
    def remove_overlap_prefix(text: str, overlap: str) -> str:
        """*text* without as many leading tokens as *overlap* has."""
        if not text or not overlap:
            return text
        return detokenize(tokenize(text)[len(tokenize(overlap)) :])

    @staticmethod
    def replace_overlap_suffix(merged: str, old: str, new: str) -> str:
        """Swap the trailing ``len(tokenize(old))`` tokens of *merged* for *new*."""
        if not old or not new:
            return merged
        tokens = tokenize(merged)
        keep = len(tokens) - len(tokenize(old))
        return detokenize(tokens[: max(0, keep)] + tokenize(new))

    clean_text = staticmethod(clean_text)


def assemble_tiles(
    tiles: Sequence[Tile], cfg: Optional[TilingConfig] = None
) -> AssemblyResult:
    """Assemble *tiles* with a throwaway :class:`RestorativeAssembler`."""
    return RestorativeAssembler(cfg).assemble(tiles)
