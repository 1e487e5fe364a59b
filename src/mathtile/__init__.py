"""Adaptive tiling and restorative reassembly for handwritten math rows.

Frequently-used symbols are re-exported here for convenience.
For specialised imports (individual unit detectors, boundary helpers,
string metrics, etc.) import directly from the relevant submodule,
e.g.::

    from mathtile.units.fraction import FractionDetector
    from mathtile.tiling.boundaries import find_whitespace_gap
    from mathtile.assembly.strings import levenshtein_distance
"""

# ── Core models & config ──────────────────────────────────────────────

from .assembly import RestorativeAssembler, assemble_tiles, detokenize, tokenize
from .config import MODEL_PRESETS, ConfigValidationError, TilingConfig
from .export import (
    draw_tiling_overlay,
    load_elements,
    load_row,
    save_assembly,
    save_tiles,
)
from .models import (
    AssemblyResult,
    BoundingBox,
    Element,
    InvalidBoundsError,
    InvalidElementError,
    Overlap,
    OverlapComparison,
    RepairRecord,
    RowSelection,
    StructuralUnit,
    Tile,
    TileStateError,
)
from .pipeline import RowResult, StageResult, process_row, process_rows
from .spatial_index import SpatialIndex
from .tiling import TileCache, TilingEngine, TilingError, row_content_hash
from .units import StructuralUnitDetector

__all__ = [
    # Models & config
    "TilingConfig",
    "ConfigValidationError",
    "MODEL_PRESETS",
    "Element",
    "BoundingBox",
    "RowSelection",
    "StructuralUnit",
    "Overlap",
    "Tile",
    "OverlapComparison",
    "RepairRecord",
    "AssemblyResult",
    "InvalidBoundsError",
    "InvalidElementError",
    "TileStateError",
    # Detection & tiling
    "SpatialIndex",
    "StructuralUnitDetector",
    "TilingEngine",
    "TilingError",
    "TileCache",
    "row_content_hash",
    # Assembly
    "RestorativeAssembler",
    "assemble_tiles",
    "tokenize",
    "detokenize",
    # Pipeline
    "RowResult",
    "StageResult",
    "process_row",
    "process_rows",
    # Export
    "load_elements",
    "load_row",
    "save_tiles",
    "save_assembly",
    "draw_tiling_overlay",
]
