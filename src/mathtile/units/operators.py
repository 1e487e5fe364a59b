"""Large-operator detection (∫ and Σ) by symbol aspect ratio.

Both look for one tall glyph with a mandatory operand to its right; limits
above and below are recorded when present but never required.
"""

from __future__ import annotations

from typing import List, Sequence

from ..models import BoundingBox, Element, StructuralUnit
from ..spatial_index import SpatialIndex
from .base import HIGH, MEDIUM, UnitDetector


class _LargeOperatorDetector(UnitDetector):
    confidence: float = 0.0
    limit_pad: float = 0.0
    limit_reach: float = 30.0
    operand_reach: float = 0.0

    def is_symbol(self, el: Element) -> bool:
        raise NotImplementedError

    def detect(
        self, elements: Sequence[Element], index: SpatialIndex
    ) -> List[StructuralUnit]:
        by_id = self.lookup(elements)
        units: List[StructuralUnit] = []
        for sym in elements:
            if sym.width <= 0 or sym.height <= 0 or not self.is_symbol(sym):
                continue
            x0, y0, x1, y1 = sym.bbox()
            reach = BoundingBox(x0, y0, x1, y1).expand(self.limit_pad, self.limit_reach)
            upper = self.search(
                index, by_id, reach.min_x, reach.min_y, reach.max_x, y0, exclude=sym.id
            )
            lower = self.search(
                index, by_id, reach.min_x, y1, reach.max_x, reach.max_y, exclude=sym.id
            )
            operand = self.search(
                index, by_id, x1, y0, x1 + self.operand_reach, y1, exclude=sym.id
            )
            if not operand:
                continue
            unit = self.make_unit(
                [sym, *upper, *lower, *operand],
                self.confidence,
                {
                    "symbol_id": sym.id,
                    "has_bounds": bool(upper or lower),
                    "upper_bound_ids": [el.id for el in upper],
                    "lower_bound_ids": [el.id for el in lower],
                    "operand_count": len(operand),
                },
            )
            if unit is not None:
                units.append(unit)
        return units


class IntegralDetector(_LargeOperatorDetector):
    """Tall narrow glyph: h/w > 3, h > 50, w < 30."""

    unit_type = "integral"
    priority = HIGH
    confidence = 0.75
    limit_pad = 15.0
    operand_reach = 150.0

    def is_symbol(self, el: Element) -> bool:
        return el.height / el.width > 3 and el.height > 50 and el.width < 30


class SummationDetector(_LargeOperatorDetector):
    """Wider glyph than ∫: 1.5 <= h/w < 3, h > 40."""

    unit_type = "summation"
    priority = MEDIUM
    confidence = 0.70
    limit_pad = 10.0
    operand_reach = 120.0

    def is_symbol(self, el: Element) -> bool:
        ratio = el.height / el.width
        return 1.5 <= ratio < 3 and el.height > 40
