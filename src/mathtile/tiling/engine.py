"""Variable-width tiling of a row into fixed-size recognizer inputs.

The row is swept left to right.  Each tile owns a non-overlapping span
``[current_x, end)`` and is padded on both sides by overlap bands shared
with its neighbours, so adjacent recognizer outputs can be cross-checked.

Public API
----------
TilingEngine     – ``generate_row_tiles(row, elements)`` entry point
TilingError      – the sweep could not advance
content_bounds   – union box of a row's (non-divider) elements
"""

from __future__ import annotations

import logging
import time
from typing import List, Optional, Sequence, Tuple

from ..config import TilingConfig
from ..models import (
    BoundingBox,
    Element,
    Overlap,
    RowSelection,
    StructuralUnit,
    Tile,
)
from ..spatial_index import SpatialIndex
from ..units import StructuralUnitDetector
from .boundaries import choose_tile_end, find_units_in_range
from .cache import TileCache
from .hashing import round_half_up, tile_content_hash

log = logging.getLogger("mathtile.tiling")


class TilingError(RuntimeError):
    """The tiling sweep failed to make progress."""


def content_bounds(elements: Sequence[Element]) -> Optional[BoundingBox]:
    """Union box of *elements*, ignoring row dividers.

    Returns None when nothing is left to bound.  Raises
    :class:`InvalidBoundsError` when the union is degenerate.
    """
    boxes = [el.bbox() for el in elements if not el.is_row_divider]
    if not boxes:
        return None
    return BoundingBox.union(boxes)


class TilingEngine:
    """Cover a row's content with overlapping, fixed-output-size tiles.

    Parameters
    ----------
    cfg : TilingConfig, optional
        Geometry, overlap and boundary tunables.
    detector : StructuralUnitDetector, optional
        Finds the units tile edges must avoid.
    cache : TileCache, optional
        Per-engine result cache keyed by tile content hash.
    """

    def __init__(
        self,
        cfg: Optional[TilingConfig] = None,
        detector: Optional[StructuralUnitDetector] = None,
        cache: Optional[TileCache] = None,
    ) -> None:
        self.cfg = cfg or TilingConfig()
        self.detector = detector or StructuralUnitDetector(self.cfg)
        self.cache = cache or TileCache(
            self.cfg.cache_max_entries, self.cfg.cache_ttl_seconds
        )
        self.overlap_size = self.cfg.overlap_size()
        log.debug(
            "TilingEngine: output %dx%d, preferred width %.0f, overlap %.0f",
            self.cfg.output_width,
            self.cfg.output_height,
            self.cfg.preferred_tile_width,
            self.overlap_size,
        )

    # ── Entry point ───────────────────────────────────────────────────

    def generate_row_tiles(
        self, row: RowSelection, elements: Sequence[Element]
    ) -> List[Tile]:
        """Tile the elements belonging to *row*.

        Returns ``[]`` when no element of *row* is present.  Raises
        :class:`InvalidBoundsError` when the row's content box is
        degenerate; no partial tile list is produced in that case.
        """
        t0 = time.perf_counter()
        members = [
            el
            for el in elements
            if el.id in row.member_element_ids and not el.is_row_divider
        ]
        if not members:
            log.debug("Row %s is empty", row.id)
            return []

        bounds = content_bounds(members)
        if bounds is None:
            return []
        index = SpatialIndex.from_elements(members)
        units = self.detector.find_units(members, index)
        tiles = self.generate_tiles(bounds, members, index, units, row_id=row.id)

        elapsed_ms = (time.perf_counter() - t0) * 1000
        log.info(
            "Row %s: %d tiles over %.0f units of width in %.1f ms",
            row.id,
            len(tiles),
            bounds.width(),
            elapsed_ms,
        )
        if elapsed_ms > self.cfg.tiling_budget_ms:
            log.warning(
                "Row %s tiling took %.1f ms (budget %.0f ms)",
                row.id,
                elapsed_ms,
                self.cfg.tiling_budget_ms,
            )
        return tiles

    # ── Sweep ─────────────────────────────────────────────────────────

    def generate_tiles(
        self,
        bounds: BoundingBox,
        elements: Sequence[Element],
        index: SpatialIndex,
        units: Sequence[StructuralUnit],
        row_id: Optional[str] = None,
    ) -> List[Tile]:
        """Tiles covering *bounds* left to right.

        Content no wider than the preferred tile width becomes a single
        tile with no overlap.
        """
        cfg = self.cfg
        if bounds.width() <= cfg.preferred_tile_width:
            log.debug("Single tile sufficient (width %.1f)", bounds.width())
            member_ids = [el.id for el in elements if not el.is_row_divider]
            return [self._make_tile(0, row_id, bounds, member_ids, units, None, None)]

        tiles: List[Tile] = []
        current_x = bounds.min_x
        prev: Optional[Tile] = None
        while current_x < bounds.max_x:
            idx = len(tiles)
            standard_end = current_x + cfg.preferred_tile_width
            affected = find_units_in_range(units, current_x, standard_end)
            decision = choose_tile_end(
                current_x, standard_end, affected, index, bounds, cfg
            )
            end_x = decision.end_x
            if end_x <= current_x:
                raise TilingError(
                    f"Tile {idx} of row {row_id!r} does not advance "
                    f"(start={current_x:.1f}, end={end_x:.1f}, {decision.reason})"
                )
            right_size = self.overlap_size if end_x < bounds.max_x else 0.0
            log.debug(
                "Tile %d: [%.0f, %.0f) %s, pad R=%.0f",
                idx,
                current_x,
                end_x,
                decision.reason,
                right_size,
            )

            tile_bounds = BoundingBox(
                current_x, bounds.min_y, end_x + right_size, bounds.max_y
            )
            # Left band: the span shared with the previous tile.
            shared_end = (
                min(prev.bounds.max_x, tile_bounds.max_x) if prev is not None else 0.0
            )
            left = (
                Overlap(
                    start=tile_bounds.min_x,
                    end=shared_end,
                    size=shared_end - tile_bounds.min_x,
                    shared_with_tile_index=prev.index,
                )
                if prev is not None and shared_end > tile_bounds.min_x
                else None
            )
            right = (
                Overlap(
                    start=end_x,
                    end=end_x + right_size,
                    size=right_size,
                    shared_with_tile_index=idx + 1,
                )
                if right_size > 0
                else None
            )
            tile_units = find_units_in_range(
                units, tile_bounds.min_x, tile_bounds.max_x
            )
            tile = self._make_tile(
                idx,
                row_id,
                tile_bounds,
                index.query(tile_bounds),
                tile_units,
                left,
                right,
            )
            tiles.append(tile)
            prev = tile
            current_x = end_x
        return tiles

    # ── Tile construction ─────────────────────────────────────────────

    def logical_dimensions(self, width: float) -> Tuple[int, int]:
        """Pre-scaling tile size for content *width* wide."""
        cfg = self.cfg
        if width <= cfg.preferred_tile_width:
            logical_w = cfg.preferred_tile_width
        elif width <= cfg.max_tile_width:
            logical_w = width
        else:
            logical_w = cfg.max_tile_width
            log.warning(
                "Tile width %.0f exceeds max tile width %.0f, content will be clipped",
                width,
                cfg.max_tile_width,
            )
        return round_half_up(logical_w), round_half_up(cfg.row_height)

    def _make_tile(
        self,
        index: int,
        row_id: Optional[str],
        bounds: BoundingBox,
        member_ids: List[str],
        units: Sequence[StructuralUnit],
        left: Optional[Overlap],
        right: Optional[Overlap],
    ) -> Tile:
        cfg = self.cfg
        logical_w, logical_h = self.logical_dimensions(bounds.width())
        scale = min(cfg.output_width / logical_w, cfg.output_height / logical_h, 1.0)
        pad_x = (cfg.output_width - logical_w * scale) / 2.0
        pad_y = (cfg.output_height - logical_h * scale) / 2.0

        for ov in (left, right):
            if ov is None:
                continue
            ov.start_in_tile = (ov.start - bounds.min_x) * scale + pad_x
            ov.end_in_tile = (ov.end - bounds.min_x) * scale + pad_x
            ov.width_in_tile = ov.size * scale

        return Tile(
            index=index,
            row_id=row_id,
            content_hash=tile_content_hash(member_ids, bounds, cfg.hash_budget_ms),
            member_element_ids=list(member_ids),
            bounds=bounds,
            logical_width=logical_w,
            logical_height=logical_h,
            output_width=cfg.output_width,
            output_height=cfg.output_height,
            scale=scale,
            centering_padding=(pad_x, pad_y),
            left_overlap=left,
            right_overlap=right,
            structural_units=list(units),
        )


__all__ = ["TilingEngine", "TilingError", "content_bounds"]
