"""Shared test fixtures for mathtile."""

import pytest

from mathtile.config import TilingConfig
from mathtile.models import BoundingBox, Element, Overlap, RowSelection, Tile

# ── Helpers ────────────────────────────────────────────────────────────


def make_element(
    id: str,
    x: float,
    y: float,
    width: float = 10.0,
    height: float = 10.0,
    kind: str = "rect",
    **kwargs,
) -> Element:
    """Create a box Element with sane defaults."""
    return Element(id=id, x=x, y=y, width=width, height=height, kind=kind, **kwargs)


def make_stroke(id: str, points: list[tuple[float, float]], **kwargs) -> Element:
    """Create a freeform stroke from ``(x, y)`` points."""
    xs = [p[0] for p in points]
    ys = [p[1] for p in points]
    return Element.from_points(id, xs, ys, **kwargs)


def make_row(elements: list[Element], id: str = "row-0") -> RowSelection:
    """A row selection containing every element given."""
    return RowSelection(
        id=id,
        y_start=min(el.y for el in elements),
        y_end=max(el.y + el.height for el in elements),
        member_element_ids=frozenset(el.id for el in elements),
    )


def make_glyph_run(
    count: int, start_x: float = 0.0, step: float = 30.0, prefix: str = "g"
) -> list[Element]:
    """A line of ``count`` 20x20 glyph boxes ``step`` apart.

    The default 10-unit gaps are too narrow to cut a tile in."""
    return [
        make_element(f"{prefix}{i}", start_x + i * step, 100.0, 20.0, 20.0)
        for i in range(count)
    ]


def make_tile(
    index: int,
    text: str | None,
    min_x: float,
    max_x: float,
    left: float = 0.0,
    right: float = 0.0,
    logical_width: float = 384.0,
) -> Tile:
    """Create a Tile with optional left/right overlap sizes and text."""
    return Tile(
        index=index,
        row_id="row-0",
        content_hash=f"h{index}",
        member_element_ids=[],
        bounds=BoundingBox(min_x, 0.0, max_x, 100.0),
        logical_width=logical_width,
        logical_height=384,
        output_width=384,
        output_height=384,
        scale=1.0,
        left_overlap=(
            Overlap(min_x, min_x + left, left, index - 1) if left > 0 else None
        ),
        right_overlap=(
            Overlap(max_x - right, max_x, right, index + 1) if right > 0 else None
        ),
        text=text,
    )


# ── Fixtures ───────────────────────────────────────────────────────────


@pytest.fixture
def default_cfg() -> TilingConfig:
    """Return a default TilingConfig."""
    return TilingConfig()


@pytest.fixture
def wide_row() -> tuple[RowSelection, list[Element]]:
    """Thirty-three evenly spaced glyphs spanning 980 units."""
    elements = make_glyph_run(33)
    return make_row(elements), elements
