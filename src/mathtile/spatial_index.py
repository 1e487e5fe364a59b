"""R-tree range index over element bounding boxes.

Public API
----------
SpatialIndex       – insert-once / query-many index keyed by element id
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Tuple, Union

from rtree import index

from .models import BBox, BoundingBox, Element

log = logging.getLogger("mathtile.spatial_index")

BoxLike = Union[BoundingBox, BBox]


def _to_tuple(box: BoxLike) -> BBox:
    if isinstance(box, BoundingBox):
        return box.bbox()
    x0, y0, x1, y1 = box
    return (float(x0), float(y0), float(x1), float(y1))


class SpatialIndex:
    """Element-id → box index answering "which boxes intersect this one".

    Boxes may be degenerate (a horizontal fraction bar has zero height).
    Boxes whose edges merely touch the query count as intersecting.
    """

    def __init__(self) -> None:
        self._tree = index.Index()
        # rtree keys are integers; map them back to element ids.
        self._ids: List[str] = []
        self._boxes: Dict[str, BBox] = {}

    @classmethod
    def from_elements(cls, elements: Iterable[Element]) -> "SpatialIndex":
        """Build an index of *elements*, skipping row-divider lines."""
        idx = cls()
        for el in elements:
            if el.is_row_divider:
                continue
            idx.insert(el.id, el.bbox())
        log.debug("Indexed %d elements", len(idx))
        return idx

    def insert(self, element_id: str, box: BoxLike) -> None:
        """Add *element_id* with its box.  Each id may be inserted once."""
        if element_id in self._boxes:
            raise ValueError(f"Element {element_id!r} is already indexed")
        bbox = _to_tuple(box)
        if bbox[2] < bbox[0] or bbox[3] < bbox[1]:
            raise ValueError(f"Inverted box for {element_id!r}: {bbox}")
        self._tree.insert(len(self._ids), bbox)
        self._ids.append(element_id)
        self._boxes[element_id] = bbox

    def query(self, box: BoxLike) -> List[str]:
        """Ids of indexed elements whose box intersects *box*, in insertion order."""
        bbox = _to_tuple(box)
        if not self._ids or bbox[2] < bbox[0] or bbox[3] < bbox[1]:
            return []
        hits = sorted(self._tree.intersection(bbox))
        return [self._ids[i] for i in hits]

    def bounds_of(self, element_id: str) -> Tuple[float, float, float, float]:
        """The box *element_id* was inserted with."""
        return self._boxes[element_id]

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, element_id: object) -> bool:
        return element_id in self._boxes
