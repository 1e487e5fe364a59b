from .json_io import load_elements, load_row, load_tiles, save_assembly, save_tiles
from .overlay import draw_tiling_overlay

__all__ = [
    "load_elements",
    "load_row",
    "load_tiles",
    "save_assembly",
    "save_tiles",
    "draw_tiling_overlay",
]
