"""Superscript / subscript detection relative to a base glyph."""

from __future__ import annotations

from typing import List, Sequence, Tuple

from ..models import Element, StructuralUnit
from ..spatial_index import SpatialIndex
from .base import HIGH, MEDIUM, UnitDetector

BASELINE_TOLERANCE = 20.0
MIN_RATIO = 0.2
MAX_RATIO = 0.6
IDEAL_RATIO = 0.4


def group_by_baseline(
    elements: Sequence[Element], tolerance: float = BASELINE_TOLERANCE
) -> List[List[Element]]:
    """Cluster elements into rough baselines by their top edge.

    Elements are sorted by ``y``; a new group starts whenever an element's
    ``y`` differs from the previous element's by more than *tolerance*.
    """
    groups: List[List[Element]] = []
    current: List[Element] = []
    last_y = None
    for el in sorted(elements, key=lambda e: e.y):
        if last_y is None or abs(el.y - last_y) <= tolerance:
            current.append(el)
        else:
            groups.append(current)
            current = [el]
        last_y = el.y
    if current:
        groups.append(current)
    return groups


class _ScriptDetector(UnitDetector):
    count_key: str = ""
    conf_range: Tuple[float, float] = (0.0, 1.0)

    def window(self, base: Element) -> Tuple[float, float, float, float]:
        raise NotImplementedError

    def in_position(self, el: Element, base: Element) -> bool:
        raise NotImplementedError

    def detect(
        self, elements: Sequence[Element], index: SpatialIndex
    ) -> List[StructuralUnit]:
        by_id = self.lookup(elements)
        units: List[StructuralUnit] = []
        for group in group_by_baseline(elements):
            for base in group:
                if base.width <= 0 or base.height <= 0:
                    continue
                scripts = [
                    el
                    for el in self.search(
                        index, by_id, *self.window(base), exclude=base.id
                    )
                    if el.height > 0
                    and MIN_RATIO < el.height / base.height < MAX_RATIO
                    and self.in_position(el, base)
                ]
                if not scripts:
                    continue
                avg_ratio = sum(el.height / base.height for el in scripts) / len(
                    scripts
                )
                lo, hi = self.conf_range
                confidence = max(lo, min(hi, 1.0 - abs(avg_ratio - IDEAL_RATIO)))
                unit = self.make_unit(
                    [base, *scripts],
                    confidence,
                    {
                        "base_id": base.id,
                        self.count_key: len(scripts),
                        "height_ratio": avg_ratio,
                    },
                )
                if unit is not None:
                    units.append(unit)
        return units


class ExponentDetector(_ScriptDetector):
    unit_type = "exponent"
    priority = HIGH
    count_key = "exponent_count"
    conf_range = (0.7, 0.95)

    def window(self, base: Element) -> Tuple[float, float, float, float]:
        return (
            base.x + base.width * 0.5,
            base.y - base.height * 0.7,
            base.x + base.width + 40,
            base.y + base.height * 0.3,
        )

    def in_position(self, el: Element, base: Element) -> bool:
        return el.y < base.y + base.height * 0.3


class SubscriptDetector(_ScriptDetector):
    unit_type = "subscript"
    priority = MEDIUM
    count_key = "subscript_count"
    conf_range = (0.65, 0.9)

    def window(self, base: Element) -> Tuple[float, float, float, float]:
        return (
            base.x + base.width * 0.5,
            base.y + base.height * 0.6,
            base.x + base.width + 40,
            base.y + base.height + 25,
        )

    def in_position(self, el: Element, base: Element) -> bool:
        return el.y > base.y + base.height * 0.6
