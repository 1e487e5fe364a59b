"""Fraction detection: a near-horizontal bar with content above and below."""

from __future__ import annotations

from typing import List, Sequence

from ..models import Element, StructuralUnit
from ..spatial_index import SpatialIndex
from .base import HIGH, UnitDetector

MAX_BAR_ANGLE = 0.15  # radians
MIN_BAR_WIDTH = 30.0
SIDE_PAD = 10.0
GAP = 5.0
REACH = 60.0


def fraction_confidence(
    bar: Element, above: Sequence[Element], below: Sequence[Element]
) -> float:
    """Score how well numerator and denominator sit on the bar.

    ``0.6 * alignment + 0.4 * width_symmetry`` clamped to [0, 1], where
    alignment measures how close the midpoint of the two content centres
    is to the bar centre (relative to bar width) and width symmetry is the
    narrower/wider ratio of numerator and denominator.
    """
    if not above or not below or bar.width <= 0:
        return 0.0
    a = [el.bbox() for el in above]
    b = [el.bbox() for el in below]
    a_x0, a_x1 = min(r[0] for r in a), max(r[2] for r in a)
    b_x0, b_x1 = min(r[0] for r in b), max(r[2] for r in b)

    bar_center = bar.x + bar.width / 2.0
    content_center = ((a_x0 + a_x1) / 2.0 + (b_x0 + b_x1) / 2.0) / 2.0
    alignment = 1.0 - abs(bar_center - content_center) / bar.width

    a_w, b_w = a_x1 - a_x0, b_x1 - b_x0
    widest = max(a_w, b_w)
    symmetry = min(a_w, b_w) / widest if widest > 0 else 1.0

    return max(0.0, min(1.0, alignment * 0.6 + symmetry * 0.4))


class FractionDetector(UnitDetector):
    unit_type = "fraction"
    priority = HIGH

    def detect(
        self, elements: Sequence[Element], index: SpatialIndex
    ) -> List[StructuralUnit]:
        by_id = self.lookup(elements)
        units: List[StructuralUnit] = []
        for bar in elements:
            if not self._is_bar(bar):
                continue
            x0 = bar.x - SIDE_PAD
            x1 = bar.x + bar.width + SIDE_PAD
            above = self.search(
                index, by_id, x0, bar.y - REACH, x1, bar.y - GAP, exclude=bar.id
            )
            below = self.search(
                index, by_id, x0, bar.y + GAP, x1, bar.y + REACH, exclude=bar.id
            )
            if not above or not below:
                continue
            unit = self.make_unit(
                [bar, *above, *below],
                fraction_confidence(bar, above, below),
                {
                    "line_length": bar.width,
                    "numerator_count": len(above),
                    "denominator_count": len(below),
                },
            )
            if unit is not None:
                units.append(unit)
        return units

    @staticmethod
    def _is_bar(el: Element) -> bool:
        return (
            el.kind == "line"
            and not el.is_row_divider
            and abs(el.angle) < MAX_BAR_ANGLE
            and el.width > MIN_BAR_WIDTH
        )
