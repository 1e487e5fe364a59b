from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

import numpy as np

Token = str
BBox = Tuple[float, float, float, float]


class InvalidBoundsError(ValueError):
    """A bounding box is degenerate (zero/negative extent) or non-finite."""


class InvalidElementError(ValueError):
    """An input element has missing or non-finite coordinates."""


class TileStateError(RuntimeError):
    """A tile's recognized text was assigned more than once."""


def _finite(*values: float) -> bool:
    return all(isinstance(v, (int, float)) and math.isfinite(v) for v in values)


def _union_bbox(bboxes: Iterable[BBox]) -> Optional[BBox]:
    """Union of ``(x0, y0, x1, y1)`` tuples, or None when there are none."""
    xs0: List[float] = []
    ys0: List[float] = []
    xs1: List[float] = []
    ys1: List[float] = []
    for x0, y0, x1, y1 in bboxes:
        xs0.append(x0)
        ys0.append(y0)
        xs1.append(x1)
        ys1.append(y1)
    if not xs0:
        return None
    return (min(xs0), min(ys0), max(xs1), max(ys1))


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box in content coordinates.

    A degenerate box is an error, not a value: construction raises
    :class:`InvalidBoundsError` unless ``max_x > min_x`` and
    ``max_y > min_y`` with every coordinate finite.
    """

    min_x: float
    min_y: float
    max_x: float
    max_y: float

    def __post_init__(self) -> None:
        if not _finite(self.min_x, self.min_y, self.max_x, self.max_y):
            raise InvalidBoundsError(f"Non-finite bounding box: {self.bbox()}")
        if self.max_x <= self.min_x or self.max_y <= self.min_y:
            raise InvalidBoundsError(
                f"Invalid bounding box (width={self.max_x - self.min_x}, "
                f"height={self.max_y - self.min_y}): {self.bbox()}"
            )

    def width(self) -> float:
        """Horizontal extent."""
        return self.max_x - self.min_x

    def height(self) -> float:
        """Vertical extent."""
        return self.max_y - self.min_y

    def area(self) -> float:
        return self.width() * self.height()

    def center_x(self) -> float:
        return (self.min_x + self.max_x) / 2.0

    def bbox(self) -> BBox:
        """Bounding box as ``(x0, y0, x1, y1)``."""
        return (self.min_x, self.min_y, self.max_x, self.max_y)

    def intersects(self, other: "BoundingBox | BBox") -> bool:
        """True when the boxes share any point (touching edges count)."""
        ox0, oy0, ox1, oy1 = _as_bbox(other)
        return not (
            self.max_x < ox0 or self.min_x > ox1 or self.max_y < oy0 or self.min_y > oy1
        )

    def intersection_area(self, other: "BoundingBox") -> float:
        ix = max(0.0, min(self.max_x, other.max_x) - max(self.min_x, other.min_x))
        iy = max(0.0, min(self.max_y, other.max_y) - max(self.min_y, other.min_y))
        return ix * iy

    def overlap_ratio(self, other: "BoundingBox") -> float:
        """Intersection area relative to the smaller of the two boxes."""
        smaller = min(self.area(), other.area())
        return self.intersection_area(other) / smaller if smaller > 0 else 0.0

    def expand(self, dx: float, dy: Optional[float] = None) -> "BoundingBox":
        """Grown copy; ``dy`` defaults to ``dx``."""
        dy = dx if dy is None else dy
        return BoundingBox(
            self.min_x - dx, self.min_y - dy, self.max_x + dx, self.max_y + dy
        )

    @classmethod
    def from_bbox(cls, bbox: BBox) -> "BoundingBox":
        return cls(*bbox)

    @classmethod
    def union(cls, items: Iterable["BoundingBox | BBox | Element"]) -> "BoundingBox":
        """Smallest box enclosing every item.

        Raises :class:`InvalidBoundsError` when *items* is empty or the
        union is degenerate.
        """
        merged = _union_bbox(_as_bbox(it) for it in items)
        if merged is None:
            raise InvalidBoundsError("Cannot compute bounds of an empty collection")
        return cls(*merged)

    def to_dict(self) -> dict:
        """Serialize to a JSON-compatible dict."""
        return {
            "min_x": round(self.min_x, 3),
            "min_y": round(self.min_y, 3),
            "max_x": round(self.max_x, 3),
            "max_y": round(self.max_y, 3),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "BoundingBox":
        """Deserialize from a dict produced by :meth:`to_dict`."""
        return cls(
            min_x=d["min_x"], min_y=d["min_y"], max_x=d["max_x"], max_y=d["max_y"]
        )


def _as_bbox(item: Any) -> BBox:
    if isinstance(item, tuple):
        return item
    return item.bbox()


@dataclass(frozen=True)
class Element:
    """A drawn primitive supplied by the caller; never mutated here.

    Box-shaped elements carry ``x, y, width, height``.  Freeform strokes
    also carry their point sequence in ``xs``/``ys``; their box is the
    extent of those points (see :meth:`from_points`).
    """

    id: str
    x: float
    y: float
    width: float = 0.0
    height: float = 0.0
    kind: str = "rect"  # "line", "freedraw", "rect", "text", ...
    angle: float = 0.0  # radians
    xs: Optional[Tuple[float, ...]] = None
    ys: Optional[Tuple[float, ...]] = None
    is_row_divider: bool = False

    def __post_init__(self) -> None:
        if not _finite(self.x, self.y, self.width, self.height, self.angle):
            raise InvalidElementError(
                f"Element {self.id!r} has non-finite coordinates: "
                f"x={self.x}, y={self.y}, width={self.width}, height={self.height}"
            )
        if (self.xs is None) != (self.ys is None):
            raise InvalidElementError(f"Element {self.id!r}: xs and ys must be paired")
        if self.xs is not None and len(self.xs) != len(self.ys):
            raise InvalidElementError(
                f"Element {self.id!r}: {len(self.xs)} xs vs {len(self.ys)} ys"
            )

    @classmethod
    def from_points(
        cls,
        id: str,
        xs: Sequence[float],
        ys: Sequence[float],
        kind: str = "freedraw",
        **kwargs: Any,
    ) -> "Element":
        """Build a freeform stroke whose box is the extent of its points."""
        if len(xs) == 0 or len(xs) != len(ys):
            raise InvalidElementError(
                f"Stroke {id!r} needs matching, non-empty xs/ys "
                f"(got {len(xs)} and {len(ys)})"
            )
        try:
            ax = np.asarray(xs, dtype=float)
            ay = np.asarray(ys, dtype=float)
        except (TypeError, ValueError) as exc:
            raise InvalidElementError(f"Stroke {id!r}: {exc}") from exc
        if not (np.isfinite(ax).all() and np.isfinite(ay).all()):
            raise InvalidElementError(f"Stroke {id!r} has non-finite points")
        x0, x1 = float(ax.min()), float(ax.max())
        y0, y1 = float(ay.min()), float(ay.max())
        return cls(
            id=id,
            x=x0,
            y=y0,
            width=x1 - x0,
            height=y1 - y0,
            kind=kind,
            xs=tuple(float(v) for v in ax),
            ys=tuple(float(v) for v in ay),
            **kwargs,
        )

    @property
    def is_stroke(self) -> bool:
        return self.xs is not None

    def points(self) -> List[Tuple[float, float]]:
        """Stroke points as ``(x, y)`` pairs; empty for box elements."""
        if self.xs is None:
            return []
        return list(zip(self.xs, self.ys))

    def bbox(self) -> BBox:
        """Bounding box as ``(x0, y0, x1, y1)``."""
        return (self.x, self.y, self.x + self.width, self.y + self.height)

    def to_dict(self) -> dict:
        """Serialize to a JSON-compatible dict."""
        d: Dict[str, Any] = {"id": self.id, "kind": self.kind}
        if self.xs is not None:
            d["xs"] = list(self.xs)
            d["ys"] = list(self.ys)
        else:
            d.update(x=self.x, y=self.y, width=self.width, height=self.height)
        if self.angle:
            d["angle"] = self.angle
        if self.is_row_divider:
            d["is_row_divider"] = True
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "Element":
        """Deserialize an element in either box or stroke form.

        Accepted shapes::

            {"id": ..., "x": 1, "y": 2, "width": 3, "height": 4}
            {"id": ..., "xs": [...], "ys": [...]}
            {"id": ..., "x": [...], "y": [...]}      # stroke, list coords
        """
        if "id" not in d:
            raise InvalidElementError(f"Element without id: {d!r}")
        el_id = str(d["id"])
        extra = {
            "angle": d.get("angle", 0.0) or 0.0,
            "is_row_divider": bool(d.get("is_row_divider", False)),
        }
        xs = d.get("xs")
        ys = d.get("ys")
        if xs is None and isinstance(d.get("x"), (list, tuple)):
            xs, ys = d.get("x"), d.get("y")
        if xs is not None or ys is not None:
            if not isinstance(xs, (list, tuple)) or not isinstance(ys, (list, tuple)):
                raise InvalidElementError(f"Stroke {el_id!r} needs list xs and ys")
            return cls.from_points(
                el_id, xs, ys, kind=d.get("kind", "freedraw"), **extra
            )
        missing = [k for k in ("x", "y") if d.get(k) is None]
        if missing:
            raise InvalidElementError(f"Element {el_id!r} missing {missing}")
        try:
            return cls(
                id=el_id,
                x=float(d["x"]),
                y=float(d["y"]),
                width=float(d.get("width", 0.0) or 0.0),
                height=float(d.get("height", 0.0) or 0.0),
                kind=d.get("kind", "rect"),
                **extra,
            )
        except (TypeError, ValueError) as exc:
            if isinstance(exc, InvalidElementError):
                raise
            raise InvalidElementError(f"Element {el_id!r}: {exc}") from exc


@dataclass(frozen=True)
class RowSelection:
    """A horizontal band of the drawing surface and the elements inside it."""

    id: str
    y_start: float
    y_end: float
    member_element_ids: FrozenSet[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        if not _finite(self.y_start, self.y_end):
            raise InvalidElementError(
                f"Row {self.id!r} has non-finite extent ({self.y_start}, {self.y_end})"
            )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "y_start": self.y_start,
            "y_end": self.y_end,
            "member_element_ids": sorted(self.member_element_ids),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "RowSelection":
        for key in ("id", "y_start", "y_end"):
            if key not in d:
                raise InvalidElementError(f"Row selection missing {key!r}: {d!r}")
        return cls(
            id=str(d["id"]),
            y_start=d["y_start"],
            y_end=d["y_end"],
            member_element_ids=frozenset(
                str(i) for i in d.get("member_element_ids", [])
            ),
        )


@dataclass
class StructuralUnit:
    """A detected sub-expression (fraction, radical, ...) that should stay whole."""

    type: str
    member_element_ids: List[str]
    bounds: BoundingBox
    confidence: float  # 0–1 detection confidence
    critical: bool = False
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Serialize to a JSON-compatible dict."""
        return {
            "type": self.type,
            "member_element_ids": list(self.member_element_ids),
            "bounds": self.bounds.to_dict(),
            "confidence": round(self.confidence, 4),
            "critical": self.critical,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "StructuralUnit":
        return cls(
            type=d["type"],
            member_element_ids=list(d.get("member_element_ids", [])),
            bounds=BoundingBox.from_dict(d["bounds"]),
            confidence=d.get("confidence", 0.0),
            critical=d.get("critical", False),
            metadata=d.get("metadata", {}),
        )


@dataclass
class Overlap:
    """Horizontal span shared with a neighbouring tile.

    ``start``/``end``/``size`` are content coordinates; the ``*_in_tile``
    values are the same span after the tile's scale and centering padding.
    """

    start: float
    end: float
    size: float
    shared_with_tile_index: Optional[int] = None
    start_in_tile: float = 0.0
    end_in_tile: float = 0.0
    width_in_tile: float = 0.0

    def to_dict(self) -> dict:
        return {
            "start": round(self.start, 3),
            "end": round(self.end, 3),
            "size": round(self.size, 3),
            "shared_with_tile_index": self.shared_with_tile_index,
            "start_in_tile": round(self.start_in_tile, 3),
            "end_in_tile": round(self.end_in_tile, 3),
            "width_in_tile": round(self.width_in_tile, 3),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Overlap":
        return cls(
            start=d["start"],
            end=d["end"],
            size=d["size"],
            shared_with_tile_index=d.get("shared_with_tile_index"),
            start_in_tile=d.get("start_in_tile", 0.0),
            end_in_tile=d.get("end_in_tile", 0.0),
            width_in_tile=d.get("width_in_tile", 0.0),
        )


@dataclass
class Tile:
    """One fixed-output-size window submitted to the recognizer.

    Geometry is fixed at creation.  ``text`` starts as None and is set once,
    by whoever runs recognition, through :meth:`assign_text`.
    """

    index: int
    row_id: Optional[str]
    content_hash: str
    member_element_ids: List[str]
    bounds: BoundingBox
    logical_width: float
    logical_height: float
    output_width: int
    output_height: int
    scale: float
    centering_padding: Tuple[float, float] = (0.0, 0.0)
    left_overlap: Optional[Overlap] = None
    right_overlap: Optional[Overlap] = None
    structural_units: List[StructuralUnit] = field(default_factory=list)
    text: Optional[str] = None
    left_overlap_text: str = ""
    right_overlap_text: str = ""

    @property
    def offset_x(self) -> float:
        return self.bounds.min_x

    @property
    def offset_y(self) -> float:
        return self.bounds.min_y

    @property
    def is_extra_wide(self) -> bool:
        return self.logical_width > self.output_width

    @property
    def is_extra_tall(self) -> bool:
        return self.logical_height > self.output_height

    def assign_text(self, text: Optional[str]) -> None:
        """Record the recognizer's output for this tile (exactly once)."""
        if self.text is not None:
            raise TileStateError(
                f"Tile {self.index} of row {self.row_id!r} already has text"
            )
        self.text = text if text is not None else ""

    def to_tile_coords(self, x: float, y: float) -> Tuple[float, float]:
        """Map a content-space point into this tile's output raster."""
        pad_x, pad_y = self.centering_padding
        return (
            (x - self.bounds.min_x) * self.scale + pad_x,
            (y - self.bounds.min_y) * self.scale + pad_y,
        )

    def to_dict(self) -> dict:
        """Serialize to a JSON-compatible dict."""
        return {
            "index": self.index,
            "row_id": self.row_id,
            "content_hash": self.content_hash,
            "member_element_ids": list(self.member_element_ids),
            "bounds": self.bounds.to_dict(),
            "logical_width": self.logical_width,
            "logical_height": self.logical_height,
            "output_width": self.output_width,
            "output_height": self.output_height,
            "scale": round(self.scale, 6),
            "centering_padding": [round(v, 3) for v in self.centering_padding],
            "left_overlap": self.left_overlap.to_dict() if self.left_overlap else None,
            "right_overlap": (
                self.right_overlap.to_dict() if self.right_overlap else None
            ),
            "structural_units": [u.to_dict() for u in self.structural_units],
            "text": self.text,
            "left_overlap_text": self.left_overlap_text,
            "right_overlap_text": self.right_overlap_text,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Tile":
        """Deserialize from a dict produced by :meth:`to_dict`."""
        lo = d.get("left_overlap")
        ro = d.get("right_overlap")
        pad = d.get("centering_padding", (0.0, 0.0))
        return cls(
            index=d["index"],
            row_id=d.get("row_id"),
            content_hash=d.get("content_hash", ""),
            member_element_ids=list(d.get("member_element_ids", [])),
            bounds=BoundingBox.from_dict(d["bounds"]),
            logical_width=d["logical_width"],
            logical_height=d["logical_height"],
            output_width=d["output_width"],
            output_height=d["output_height"],
            scale=d["scale"],
            centering_padding=(pad[0], pad[1]),
            left_overlap=Overlap.from_dict(lo) if lo else None,
            right_overlap=Overlap.from_dict(ro) if ro else None,
            structural_units=[
                StructuralUnit.from_dict(u) for u in d.get("structural_units", [])
            ],
            text=d.get("text"),
            left_overlap_text=d.get("left_overlap_text", ""),
            right_overlap_text=d.get("right_overlap_text", ""),
        )


@dataclass
class OverlapComparison:
    """How two tiles' readings of their shared overlap relate."""

    identical: bool
    similar: bool
    similarity: float
    edit_distance: int
    token_overlap_ratio: float = 0.0


@dataclass
class RepairRecord:
    """Audit entry for a seam that was not an identical match."""

    seam_index: int
    kind: str  # "similarity" | "mismatch"
    original_pair: Tuple[str, str]
    resolution: str
    confidence: float
    edit_distance: int
    action: str = ""  # e.g. "repaired_longer", "kept_left"

    def to_dict(self) -> dict:
        return {
            "seam_index": self.seam_index,
            "kind": self.kind,
            "original_pair": list(self.original_pair),
            "resolution": self.resolution,
            "confidence": round(self.confidence, 4),
            "edit_distance": self.edit_distance,
            "action": self.action,
        }


@dataclass
class AssemblyResult:
    """Merged text for a row plus its confidence and repair audit trail."""

    text: str = ""
    confidence: float = 0.0
    repairs: List[RepairRecord] = field(default_factory=list)
    tile_count: int = 0

    def to_dict(self) -> dict:
        return {
            "text": self.text,
            "confidence": round(self.confidence, 4),
            "repairs": [r.to_dict() for r in self.repairs],
            "tile_count": self.tile_count,
        }
