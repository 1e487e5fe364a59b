"""Adaptive tiling of row content into overlapping recognizer inputs.

Public API
----------
TilingEngine        – sweep a row into tiles
TileCache           – per-engine LRU + TTL result cache
tile_content_hash   – cache key for a tile's geometry
row_content_hash    – change-detection hash of a row
"""

from .boundaries import (
    BoundaryDecision,
    Gap,
    choose_tile_end,
    find_units_in_range,
    find_whitespace_gap,
)
from .cache import TileCache
from .engine import TilingEngine, TilingError, content_bounds
from .hashing import round_half_up, row_content_hash, tile_content_hash

__all__ = [
    "BoundaryDecision",
    "Gap",
    "choose_tile_end",
    "find_units_in_range",
    "find_whitespace_gap",
    "TileCache",
    "TilingEngine",
    "TilingError",
    "content_bounds",
    "round_half_up",
    "row_content_hash",
    "tile_content_hash",
]
