"""Shared plumbing for structural-unit detectors.

Every detector answers one question ("where are the fractions?") through
the same :meth:`UnitDetector.detect` interface and carries a priority tag.
High-priority detections are the ones tiling must never cut.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

from ..models import BoundingBox, Element, InvalidBoundsError, StructuralUnit
from ..spatial_index import SpatialIndex

log = logging.getLogger("mathtile.units")

HIGH = "high"
MEDIUM = "medium"


class UnitDetector:
    """Base class: subclasses set ``unit_type``/``priority`` and implement
    :meth:`detect`."""

    unit_type: str = ""
    priority: str = MEDIUM

    @property
    def critical(self) -> bool:
        return self.priority == HIGH

    def detect(
        self, elements: Sequence[Element], index: SpatialIndex
    ) -> List[StructuralUnit]:
        raise NotImplementedError

    # ── Helpers ────────────────────────────────────────────────────────

    @staticmethod
    def lookup(elements: Iterable[Element]) -> Dict[str, Element]:
        return {el.id: el for el in elements}

    @staticmethod
    def search(
        index: SpatialIndex,
        by_id: Dict[str, Element],
        x0: float,
        y0: float,
        x1: float,
        y1: float,
        exclude: Optional[str] = None,
    ) -> List[Element]:
        """Elements intersecting the window, minus *exclude*."""
        return [
            by_id[i]
            for i in index.query((x0, y0, x1, y1))
            if i != exclude and i in by_id
        ]

    def make_unit(
        self,
        members: Sequence[Element],
        confidence: float,
        metadata: Dict[str, Any],
    ) -> Optional[StructuralUnit]:
        """Build a unit over *members*; None when their union is degenerate."""
        ids = list(dict.fromkeys(el.id for el in members))
        try:
            bounds = BoundingBox.union(members)
        except InvalidBoundsError:
            log.debug("Skipping %s over %s: degenerate bounds", self.unit_type, ids)
            return None
        return StructuralUnit(
            type=self.unit_type,
            member_element_ids=ids,
            bounds=bounds,
            confidence=confidence,
            critical=self.critical,
            metadata=metadata,
        )
