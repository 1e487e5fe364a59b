"""Run every unit detector over a row and merge overlapping detections."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from ..config import TilingConfig
from ..models import BoundingBox, Element, StructuralUnit
from ..spatial_index import SpatialIndex
from .base import UnitDetector
from .fraction import FractionDetector
from .operators import IntegralDetector, SummationDetector
from .radical import RadicalDetector
from .scripts import ExponentDetector, SubscriptDetector

log = logging.getLogger("mathtile.units")


def default_detectors() -> List[UnitDetector]:
    return [
        FractionDetector(),
        RadicalDetector(),
        IntegralDetector(),
        SummationDetector(),
        ExponentDetector(),
        SubscriptDetector(),
    ]


def _leaf_types(unit: StructuralUnit) -> List[str]:
    if unit.type == "composite":
        return list(unit.metadata.get("merged_types", []))
    return [unit.type]


def merge_overlapping(
    units: Sequence[StructuralUnit], threshold: float = 0.3
) -> List[StructuralUnit]:
    """Fold units whose overlap ratio exceeds *threshold* into composites.

    Units are sorted by left edge and walked once; each unit is compared
    with the running (possibly already merged) unit only.
    """
    merged: List[StructuralUnit] = []
    current: Optional[StructuralUnit] = None
    for unit in sorted(units, key=lambda u: u.bounds.min_x):
        if current is None:
            current = unit
            continue
        if current.bounds.overlap_ratio(unit.bounds) > threshold:
            current = StructuralUnit(
                type="composite",
                member_element_ids=list(
                    dict.fromkeys(current.member_element_ids + unit.member_element_ids)
                ),
                bounds=BoundingBox.union([current.bounds, unit.bounds]),
                confidence=max(current.confidence, unit.confidence),
                critical=current.critical or unit.critical,
                metadata={
                    "merged_types": _leaf_types(current) + _leaf_types(unit),
                    "components": [current.metadata, unit.metadata],
                },
            )
        else:
            merged.append(current)
            current = unit
    if current is not None:
        merged.append(current)
    return merged


class StructuralUnitDetector:
    """Confidence-gated detection of sub-expressions tiling must keep whole.

    Parameters
    ----------
    cfg : TilingConfig, optional
        Supplies ``unit_confidence_threshold`` and ``unit_merge_overlap``.
    detectors : list of UnitDetector, optional
        Defaults to one detector per unit type.
    """

    def __init__(
        self,
        cfg: Optional[TilingConfig] = None,
        detectors: Optional[Sequence[UnitDetector]] = None,
    ) -> None:
        self.cfg = cfg or TilingConfig()
        self.detectors = (
            list(detectors) if detectors is not None else default_detectors()
        )

    def find_units(
        self, elements: Sequence[Element], index: SpatialIndex
    ) -> List[StructuralUnit]:
        """Detected units above the confidence threshold, overlaps merged."""
        candidates = [el for el in elements if not el.is_row_divider]
        threshold = self.cfg.unit_confidence_threshold
        units: List[StructuralUnit] = []
        for det in self.detectors:
            found = det.detect(candidates, index)
            kept = [u for u in found if u.confidence >= threshold]
            if found:
                log.debug(
                    "%s: %d detected, %d above %.2f",
                    det.unit_type,
                    len(found),
                    len(kept),
                    threshold,
                )
            units.extend(kept)
        result = merge_overlapping(units, self.cfg.unit_merge_overlap)
        log.debug(
            "Found %d structural units (%d critical)",
            len(result),
            sum(1 for u in result if u.critical),
        )
        return result
