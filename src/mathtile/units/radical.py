"""Radical (√) detection from the shape of a single freeform stroke."""

from __future__ import annotations

from typing import List, Sequence

import numpy as np

from ..models import Element, StructuralUnit
from ..spatial_index import SpatialIndex
from .base import HIGH, UnitDetector

MIN_POINTS = 5
MIN_TREND = 5.0
TALL_RATIO = 1.2


def radical_shape_score(xs: Sequence[float], ys: Sequence[float]) -> float:
    """Score a stroke as a √ check mark.

    The first half of the stroke must travel down (y grows) and the second
    half back up, each by at least ``MIN_TREND``.  Taller-than-wide strokes
    score 0.85, other matching strokes 0.75, everything else 0.
    """
    if len(ys) < MIN_POINTS:
        return 0.0
    px = np.asarray(xs, dtype=float)
    py = np.asarray(ys, dtype=float)
    half = len(py) // 2
    first = py[:half]
    second = py[half:]
    if first[-1] - first[0] < MIN_TREND or second[-1] - second[0] > -MIN_TREND:
        return 0.0
    height = float(np.ptp(py))
    width = float(np.ptp(px))
    return 0.85 if height > width * TALL_RATIO else 0.75


class RadicalDetector(UnitDetector):
    unit_type = "radical"
    priority = HIGH

    def detect(
        self, elements: Sequence[Element], index: SpatialIndex
    ) -> List[StructuralUnit]:
        by_id = self.lookup(elements)
        units: List[StructuralUnit] = []
        for stroke in elements:
            if not stroke.is_stroke:
                continue
            score = radical_shape_score(stroke.xs, stroke.ys)
            if score <= 0:
                continue
            content = self.search(
                index,
                by_id,
                stroke.x + stroke.width * 0.5,
                stroke.y - 15,
                stroke.x + stroke.width + 120,
                stroke.y + stroke.height + 5,
                exclude=stroke.id,
            )
            if not content:
                continue
            unit = self.make_unit(
                [stroke, *content], score, {"content_count": len(content)}
            )
            if unit is not None:
                units.append(unit)
        return units
