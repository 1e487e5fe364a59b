"""Debug overlay: tile bounds, overlap bands and structural units on one PNG."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from PIL import Image, ImageDraw, ImageFont

from ..models import BoundingBox, Element, StructuralUnit, Tile

# RGBA per drawn layer
COLORS: Dict[str, Tuple[int, int, int, int]] = {
    "element": (90, 90, 90, 255),
    "tile": (0, 0, 255, 200),
    "overlap": (255, 165, 0, 70),
    "critical_unit": (255, 0, 0, 200),
    "unit": (0, 160, 0, 160),
}

MARGIN = 20


def _font(size: int) -> ImageFont.ImageFont:
    try:
        return ImageFont.truetype("arial.ttf", size)
    except (OSError, IOError):
        return ImageFont.load_default()


def draw_tiling_overlay(
    tiles: Sequence[Tile],
    content_bounds: BoundingBox,
    out_path: Path,
    units: Optional[Iterable[StructuralUnit]] = None,
    elements: Optional[Iterable[Element]] = None,
    scale: float = 1.0,
    background: Image.Image | None = None,
) -> Path:
    """Render a row's tiling as an overlay PNG for quick visual QA.

    Tiles are drawn as outlines labelled ``T<index>``, overlap bands as
    translucent fills, and units as red (critical) or green boxes.  Content
    coordinates are shifted so ``content_bounds`` sits ``MARGIN`` pixels
    from the top-left corner, then multiplied by *scale*.
    """
    tiles = list(tiles)
    units_list: List[StructuralUnit] = list(units) if units is not None else []
    if units is None:
        seen = set()
        for t in tiles:
            for u in t.structural_units:
                key = (u.type, tuple(u.member_element_ids))
                if key not in seen:
                    seen.add(key)
                    units_list.append(u)

    min_x = min([content_bounds.min_x] + [t.bounds.min_x for t in tiles])
    max_x = max([content_bounds.max_x] + [t.bounds.max_x for t in tiles])
    min_y = min([content_bounds.min_y] + [t.bounds.min_y for t in tiles])
    max_y = max([content_bounds.max_y] + [t.bounds.max_y for t in tiles])

    def pt(x: float, y: float) -> Tuple[float, float]:
        return ((x - min_x) * scale + MARGIN, (y - min_y) * scale + MARGIN)

    img_w = int((max_x - min_x) * scale) + 2 * MARGIN
    img_h = int((max_y - min_y) * scale) + 2 * MARGIN
    if background is not None:
        img = background.convert("RGBA")
        if img.size != (img_w, img_h):
            img = img.resize((img_w, img_h))
    else:
        img = Image.new("RGBA", (img_w, img_h), (255, 255, 255, 255))

    overlay = Image.new("RGBA", img.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(overlay, "RGBA")
    font = _font(max(8, int(10 * scale)))

    for el in elements or []:
        if el.is_stroke and len(el.xs) > 1:
            draw.line([pt(x, y) for x, y in el.points()], fill=COLORS["element"])
        else:
            x0, y0, x1, y1 = el.bbox()
            draw.rectangle([pt(x0, y0), pt(x1, y1)], outline=COLORS["element"])

    for t in tiles:
        for ov in (t.left_overlap, t.right_overlap):
            if ov is None:
                continue
            draw.rectangle(
                [pt(ov.start, t.bounds.min_y), pt(ov.end, t.bounds.max_y)],
                fill=COLORS["overlap"],
            )

    for u in units_list:
        color = COLORS["critical_unit"] if u.critical else COLORS["unit"]
        b = u.bounds
        draw.rectangle(
            [pt(b.min_x, b.min_y), pt(b.max_x, b.max_y)], outline=color, width=2
        )
        draw.text(pt(b.min_x, b.max_y), u.type, fill=color, font=font)

    for t in tiles:
        b = t.bounds
        draw.rectangle(
            [pt(b.min_x, b.min_y), pt(b.max_x, b.max_y)],
            outline=COLORS["tile"],
            width=2,
        )
        x, y = pt(b.min_x, b.min_y)
        draw.text((x + 3, y + 3), f"T{t.index}", fill=COLORS["tile"], font=font)

    img = Image.alpha_composite(img, overlay)
    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    img.save(out, format="PNG")
    return out
