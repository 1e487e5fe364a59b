"""Choosing where a tile ends.

A tile's right edge starts at the standard width and is then nudged so
that it does not cut a critical structural unit, or, failing that, so it
falls in a vertical strip of whitespace.

Public API
----------
find_units_in_range   – units starting in, ending in, or spanning a range
find_whitespace_gap   – centre of the first empty vertical strip in a range
choose_tile_end       – the full boundary decision for one tile
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..config import TilingConfig
from ..models import BoundingBox, StructuralUnit
from ..spatial_index import SpatialIndex

log = logging.getLogger("mathtile.tiling")


@dataclass
class Gap:
    """An empty vertical strip between ``start`` and ``end``."""

    start: float
    end: float

    @property
    def center(self) -> float:
        return (self.start + self.end) / 2.0

    @property
    def width(self) -> float:
        return self.end - self.start


@dataclass
class BoundaryDecision:
    end_x: float
    reason: str  # "standard" | "whitespace_gap" | "included_<type>" | "excluded_<type>"


def find_units_in_range(
    units: Sequence[StructuralUnit], start_x: float, end_x: float
) -> List[StructuralUnit]:
    """Units that start inside, end inside, or fully span ``[start_x, end_x]``."""
    hits = []
    for u in units:
        b = u.bounds
        starts_in = start_x <= b.min_x < end_x
        ends_in = start_x < b.max_x <= end_x
        spans = b.min_x < start_x and b.max_x > end_x
        if starts_in or ends_in or spans:
            hits.append(u)
    return hits


def find_whitespace_gap(
    start_x: float,
    end_x: float,
    index: SpatialIndex,
    content: BoundingBox,
    cfg: TilingConfig,
) -> Optional[Gap]:
    """Scan ``[start_x + margin, end_x - margin)`` for an empty vertical strip.

    Each probe is a strip ``gap_scan_step`` wide on either side of the scan
    position, spanning the content's full height.  An empty probe is grown
    step by step in both directions until it hits an element (or the range
    ends); the first grown strip at least ``gap_min_width`` wide wins.
    """
    step = cfg.gap_scan_step
    y0, y1 = content.min_y, content.max_y

    def empty(a: float, b: float) -> bool:
        return not index.query((a, y0, b, y1))

    x = start_x + cfg.gap_edge_margin
    stop = end_x - cfg.gap_edge_margin
    while x < stop:
        if empty(x - step, x + step):
            gap_start = gap_end = x
            while gap_start > start_x and empty(gap_start - step, gap_start):
                gap_start -= step
            while gap_end < end_x and empty(gap_end, gap_end + step):
                gap_end += step
            if gap_end - gap_start >= cfg.gap_min_width:
                return Gap(gap_start, gap_end)
        x += step
    return None


def choose_tile_end(
    start_x: float,
    proposed_end: float,
    units: Sequence[StructuralUnit],
    index: SpatialIndex,
    content: BoundingBox,
    cfg: TilingConfig,
) -> BoundaryDecision:
    """Decide where the tile starting at *start_x* should end.

    Parameters
    ----------
    start_x : float
        Left edge of the tile's own (non-overlap) span.
    proposed_end : float
        ``start_x + preferred_tile_width``.
    units : sequence of StructuralUnit
        Units intersecting ``[start_x, proposed_end]``.

    Returns
    -------
    BoundaryDecision
        The chosen end and a short reason tag for logging.
    """
    critical = [u for u in units if u.critical]
    margin = cfg.unit_margin
    search_end = min(proposed_end, content.max_x)

    if critical:
        for unit in critical:
            b = unit.bounds
            # Unit starts in this tile: try to take all of it.
            if start_x <= b.min_x < proposed_end:
                end = max(proposed_end, b.max_x + margin)
                if end - start_x <= cfg.max_tile_width:
                    return BoundaryDecision(end, f"included_{unit.type}")
            # Unit straddles the proposed edge: stop short of it, else take it.
            if b.min_x < proposed_end < b.max_x:
                end = b.min_x - margin
                if end - start_x >= cfg.min_tile_width:
                    return BoundaryDecision(end, f"excluded_{unit.type}")
                end = b.max_x + margin
                if end - start_x <= cfg.max_tile_width:
                    return BoundaryDecision(end, f"included_{unit.type}")
        gap = find_whitespace_gap(start_x, search_end, index, content, cfg)
        if gap is not None:
            return BoundaryDecision(gap.center, "whitespace_gap")
        log.debug(
            "No acceptable boundary around %d critical unit(s) at x=%.0f",
            len(critical),
            start_x,
        )
        return BoundaryDecision(proposed_end, "standard")

    gap = find_whitespace_gap(start_x, search_end, index, content, cfg)
    if gap is not None:
        return BoundaryDecision(gap.center, "whitespace_gap")
    return BoundaryDecision(min(proposed_end, content.max_x), "standard")
