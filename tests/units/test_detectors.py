"""Tests for mathtile.units: per-type detectors, gating, and merging."""

import pytest

from conftest import make_element, make_stroke

from mathtile.config import TilingConfig
from mathtile.models import BoundingBox, StructuralUnit
from mathtile.spatial_index import SpatialIndex
from mathtile.units import (
    ExponentDetector,
    FractionDetector,
    IntegralDetector,
    RadicalDetector,
    StructuralUnitDetector,
    SubscriptDetector,
    SummationDetector,
    fraction_confidence,
    group_by_baseline,
    merge_overlapping,
    radical_shape_score,
)

# ── Builders ───────────────────────────────────────────────────────────

RADICAL_POINTS = [(0, 30), (4, 40), (8, 50), (10, 60), (14, 40), (18, 20), (22, 0)]


def _detect(detector, elements):
    return detector.detect(elements, SpatialIndex.from_elements(elements))


def fraction_parts(num_x=115.0, num_w=30.0, den_x=115.0, den_w=30.0):
    bar = make_element("bar", 100, 100, 60, 0, kind="line")
    num = make_element("num", num_x, 60, num_w, 30)
    den = make_element("den", den_x, 110, den_w, 30)
    return [bar, num, den]


# ── Fraction ───────────────────────────────────────────────────────────


class TestFraction:
    def test_centered_fraction(self):
        units = _detect(FractionDetector(), fraction_parts())
        assert len(units) == 1
        u = units[0]
        assert u.type == "fraction"
        assert u.critical
        assert u.confidence == pytest.approx(1.0)
        assert u.member_element_ids == ["bar", "num", "den"]
        assert u.bounds.bbox() == (100, 60, 160, 140)
        assert u.metadata["numerator_count"] == 1

    def test_needs_content_on_both_sides(self):
        bar, num, _ = fraction_parts()
        assert _detect(FractionDetector(), [bar, num]) == []

    def test_steep_line_ignored(self):
        bar, num, den = fraction_parts()
        tilted = make_element("bar", 100, 100, 60, 0, kind="line", angle=0.3)
        assert _detect(FractionDetector(), [tilted, num, den]) == []

    def test_short_line_ignored(self):
        _, num, den = fraction_parts()
        short = make_element("bar", 100, 100, 25, 0, kind="line")
        assert _detect(FractionDetector(), [short, num, den]) == []

    def test_row_divider_ignored(self):
        _, num, den = fraction_parts()
        divider = make_element(
            "bar", 100, 100, 60, 0, kind="line", is_row_divider=True
        )
        assert _detect(FractionDetector(), [divider, num, den]) == []

    def test_lopsided_confidence(self):
        bar, num, den = fraction_parts(num_x=150, num_w=20, den_x=100, den_w=60)
        # alignment 1 - |130 - 145| / 60 = 0.75, symmetry 20 / 60
        assert fraction_confidence(bar, [num], [den]) == pytest.approx(
            0.75 * 0.6 + (20 / 60) * 0.4
        )

    def test_lopsided_fraction_gated_out(self):
        elements = fraction_parts(num_x=150, num_w=20, den_x=100, den_w=60)
        detector = StructuralUnitDetector()
        assert detector.find_units(elements, SpatialIndex.from_elements(elements)) == []


# ── Radical ────────────────────────────────────────────────────────────


class TestRadical:
    def test_shape_score_tall(self):
        xs, ys = zip(*RADICAL_POINTS)
        assert radical_shape_score(xs, ys) == 0.85

    def test_shape_score_wide(self):
        pts = [(x * 4, y) for x, y in RADICAL_POINTS]  # 88 wide, 60 tall
        xs, ys = zip(*pts)
        assert radical_shape_score(xs, ys) == 0.75

    def test_shape_needs_five_points(self):
        assert radical_shape_score([0, 5, 10, 15], [0, 20, 40, 0]) == 0.0

    def test_five_point_check_mark(self):
        assert radical_shape_score([0, 5, 10, 15, 20], [0, 10, 20, 10, 0]) == 0.75

    def test_trend_of_exactly_five_counts(self):
        assert radical_shape_score(range(6), [0, 2, 5, 10, 8, 5]) == 0.85

    def test_trend_just_under_five(self):
        assert radical_shape_score(range(6), [0, 2, 4.9, 10, 8, 5]) == 0.0

    def test_straight_stroke_scores_zero(self):
        assert radical_shape_score(range(8), [10] * 8) == 0.0

    def test_radical_with_radicand(self):
        stroke = make_stroke("sqrt", RADICAL_POINTS)
        radicand = make_element("x", 30, 20, 30, 30)
        units = _detect(RadicalDetector(), [stroke, radicand])
        assert len(units) == 1
        assert units[0].type == "radical"
        assert units[0].confidence == 0.85
        assert units[0].member_element_ids == ["sqrt", "x"]

    def test_radical_without_radicand(self):
        assert _detect(RadicalDetector(), [make_stroke("sqrt", RADICAL_POINTS)]) == []

    def test_box_elements_never_radicals(self):
        assert _detect(RadicalDetector(), [make_element("a", 0, 0, 22, 60)]) == []


# ── Large operators ────────────────────────────────────────────────────


class TestIntegral:
    def test_integral_with_upper_bound(self):
        elements = [
            make_element("int", 0, 0, 10, 80),
            make_element("up", 0, -25, 10, 10),
            make_element("f", 20, 30, 20, 20),
        ]
        units = _detect(IntegralDetector(), elements)
        assert len(units) == 1
        u = units[0]
        assert u.confidence == 0.75
        assert u.critical
        assert u.metadata["has_bounds"] is True
        assert u.metadata["upper_bound_ids"] == ["up"]
        assert u.metadata["lower_bound_ids"] == []
        assert set(u.member_element_ids) == {"int", "up", "f"}

    def test_integrand_is_mandatory(self):
        elements = [make_element("int", 0, 0, 10, 80), make_element("up", 0, -25, 10, 10)]
        assert _detect(IntegralDetector(), elements) == []

    def test_wide_symbol_is_not_integral(self):
        elements = [make_element("s", 0, 0, 40, 80), make_element("f", 50, 30, 20, 20)]
        assert _detect(IntegralDetector(), elements) == []


class TestSummation:
    def test_summation(self):
        elements = [make_element("sum", 0, 0, 25, 50), make_element("t", 35, 15, 20, 20)]
        units = _detect(SummationDetector(), elements)
        assert len(units) == 1
        assert units[0].confidence == 0.70
        assert not units[0].critical
        assert units[0].metadata["has_bounds"] is False

    def test_short_symbol_ignored(self):
        elements = [make_element("sum", 0, 0, 15, 30), make_element("t", 25, 5, 20, 20)]
        assert _detect(SummationDetector(), elements) == []

    def test_ratio_of_exactly_one_and_a_half(self):
        elements = [make_element("sum", 0, 0, 40, 60), make_element("t", 50, 20, 20, 20)]
        units = _detect(SummationDetector(), elements)
        assert len(units) == 1
        assert units[0].confidence == 0.70

    def test_ratio_below_one_and_a_half(self):
        elements = [make_element("sum", 0, 0, 41, 60), make_element("t", 51, 20, 20, 20)]
        assert _detect(SummationDetector(), elements) == []


# ── Scripts ────────────────────────────────────────────────────────────


class TestScripts:
    def test_group_by_baseline(self):
        elements = [make_element(f"e{y}", 0, y) for y in (60, 0, 25, 10)]
        groups = group_by_baseline(elements)
        assert [[el.y for el in g] for g in groups] == [[0, 10, 25], [60]]

    def test_exponent(self):
        base = make_element("x", 0, 100, 30, 40)
        sup = make_element("2", 32, 85, 12, 16)
        units = _detect(ExponentDetector(), [base, sup])
        assert len(units) == 1
        u = units[0]
        assert u.type == "exponent"
        assert u.critical
        assert u.confidence == pytest.approx(0.95)
        assert u.metadata["base_id"] == "x"
        assert u.metadata["height_ratio"] == pytest.approx(0.4)

    def test_same_size_neighbour_is_not_exponent(self):
        base = make_element("x", 0, 100, 30, 40)
        other = make_element("y", 32, 85, 30, 40)
        assert _detect(ExponentDetector(), [base, other]) == []

    def test_subscript(self):
        base = make_element("x", 0, 100, 30, 40)
        sub = make_element("i", 32, 130, 12, 16)
        units = _detect(SubscriptDetector(), [base, sub])
        assert len(units) == 1
        assert units[0].confidence == pytest.approx(0.9)
        assert not units[0].critical
        assert _detect(ExponentDetector(), [base, sub]) == []


# ── Merge & gating ─────────────────────────────────────────────────────


def _unit(t, box, conf=0.8, critical=True, ids=None):
    return StructuralUnit(t, ids or [t], BoundingBox(*box), conf, critical)


class TestMerge:
    def test_overlapping_units_merge(self):
        a = _unit("exponent", (0, 0, 50, 50), 0.9, True, ["x", "2"])
        b = _unit("subscript", (20, 20, 60, 60), 0.7, False, ["x", "i"])
        merged = merge_overlapping([b, a])
        assert len(merged) == 1
        c = merged[0]
        assert c.type == "composite"
        assert c.critical
        assert c.confidence == 0.9
        assert c.member_element_ids == ["x", "2", "i"]
        assert c.bounds.bbox() == (0, 0, 60, 60)
        assert c.metadata["merged_types"] == ["exponent", "subscript"]

    def test_disjoint_units_kept_in_order(self):
        a = _unit("fraction", (100, 0, 150, 50))
        b = _unit("radical", (0, 0, 50, 50))
        assert [u.type for u in merge_overlapping([a, b])] == ["radical", "fraction"]

    def test_small_overlap_not_merged(self):
        a = _unit("fraction", (0, 0, 100, 100))
        b = _unit("radical", (90, 0, 190, 100))  # 10% overlap
        assert len(merge_overlapping([a, b])) == 2

    def test_chain_merge_flattens_types(self):
        a = _unit("a", (0, 0, 50, 50))
        b = _unit("b", (10, 0, 60, 50))
        c = _unit("c", (20, 0, 70, 50))
        merged = merge_overlapping([a, b, c])
        assert len(merged) == 1
        assert merged[0].metadata["merged_types"] == ["a", "b", "c"]


class TestStructuralUnitDetector:
    def test_radical_and_summation_merge(self):
        elements = [make_stroke("sqrt", RADICAL_POINTS), make_element("x", 30, 20, 30, 30)]
        units = StructuralUnitDetector().find_units(
            elements, SpatialIndex.from_elements(elements)
        )
        assert len(units) == 1
        assert units[0].type == "composite"
        assert units[0].metadata["merged_types"] == ["radical", "summation"]
        assert units[0].critical
        assert units[0].confidence == 0.85

    def test_threshold_gates_detections(self):
        elements = [
            make_element("int", 0, 0, 10, 80),
            make_element("f", 20, 30, 20, 20),
        ]
        index = SpatialIndex.from_elements(elements)
        assert len(StructuralUnitDetector().find_units(elements, index)) == 1
        strict = StructuralUnitDetector(TilingConfig(unit_confidence_threshold=0.8))
        assert strict.find_units(elements, index) == []

    def test_plain_glyph_run_has_no_units(self):
        elements = [make_element(f"g{i}", i * 40.0, 100, 20, 20) for i in range(10)]
        index = SpatialIndex.from_elements(elements)
        assert StructuralUnitDetector().find_units(elements, index) == []

    def test_custom_detector_list(self):
        elements = fraction_parts()
        index = SpatialIndex.from_elements(elements)
        only_radicals = StructuralUnitDetector(detectors=[RadicalDetector()])
        assert only_radicals.find_units(elements, index) == []
