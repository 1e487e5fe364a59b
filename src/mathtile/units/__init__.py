"""Structural sub-expression detection.

Public API
----------
StructuralUnitDetector  – run all detectors, gate by confidence, merge
merge_overlapping       – fold overlapping units into composites
UnitDetector            – detector interface (``detect(elements, index)``)
"""

from .base import HIGH, MEDIUM, UnitDetector
from .detector import StructuralUnitDetector, default_detectors, merge_overlapping
from .fraction import FractionDetector, fraction_confidence
from .operators import IntegralDetector, SummationDetector
from .radical import RadicalDetector, radical_shape_score
from .scripts import ExponentDetector, SubscriptDetector, group_by_baseline

__all__ = [
    "HIGH",
    "MEDIUM",
    "UnitDetector",
    "StructuralUnitDetector",
    "default_detectors",
    "merge_overlapping",
    "FractionDetector",
    "fraction_confidence",
    "RadicalDetector",
    "radical_shape_score",
    "IntegralDetector",
    "SummationDetector",
    "ExponentDetector",
    "SubscriptDetector",
    "group_by_baseline",
]
