"""Tests for mathtile.tiling.engine: sweeping rows into tiles."""

import logging

import pytest

from conftest import make_element, make_glyph_run, make_row

from mathtile.config import TilingConfig
from mathtile.models import InvalidBoundsError, RowSelection
from mathtile.tiling import BoundaryDecision, TilingEngine, TilingError, content_bounds


def own_spans(tiles):
    """Each tile's ``[start, end)`` without its overlap padding."""
    return [
        (t.bounds.min_x, t.right_overlap.start if t.right_overlap else t.bounds.max_x)
        for t in tiles
    ]


def layout(name):
    if name == "dense":
        return make_glyph_run(40)
    if name == "fractional":
        return make_glyph_run(37, start_x=3.3, step=23.7)
    if name == "gapped":
        return make_glyph_run(15) + make_glyph_run(15, start_x=600, prefix="h")
    if name == "exponent":
        return [
            *make_glyph_run(9),
            make_element("x", 370, 100, 30, 40),
            make_element("2", 402, 85, 12, 16),
            *make_glyph_run(12, start_x=460, prefix="h"),
        ]
    raise ValueError(name)


@pytest.fixture
def engine() -> TilingEngine:
    return TilingEngine()


@pytest.fixture
def exponent_row():
    """Glyphs with an x² straddling the 384 mark."""
    elements = [
        *make_glyph_run(9),
        make_element("x", 370, 100, 30, 40),
        make_element("2", 402, 85, 12, 16),
        *make_glyph_run(12, start_x=460, prefix="h"),
    ]
    return make_row(elements), elements


class TestContentBounds:
    def test_ignores_dividers(self):
        elements = [
            make_element("a", 10, 10, 20, 20),
            make_element("d", 0, 500, 1000, 0, kind="line", is_row_divider=True),
        ]
        assert content_bounds(elements).bbox() == (10, 10, 30, 30)

    def test_nothing_to_bound(self):
        assert content_bounds([]) is None


class TestEmptyAndDegenerate:
    def test_row_without_members(self, engine):
        row = RowSelection("r", 0, 100, frozenset({"missing"}))
        assert engine.generate_row_tiles(row, make_glyph_run(3)) == []

    def test_only_dividers(self, engine):
        div = make_element("d", 0, 50, 900, 0, kind="line", is_row_divider=True)
        assert engine.generate_row_tiles(make_row([div]), [div]) == []

    def test_flat_content_rejected(self, engine):
        line = make_element("l", 0, 50, 900, 0, kind="line")
        with pytest.raises(InvalidBoundsError):
            engine.generate_row_tiles(make_row([line]), [line])


class TestSingleTile:
    def test_narrow_row(self, engine):
        elements = make_glyph_run(5)
        tiles = engine.generate_row_tiles(make_row(elements), elements)
        assert len(tiles) == 1
        t = tiles[0]
        assert t.left_overlap is None and t.right_overlap is None
        assert t.bounds.bbox() == (0, 100, 140, 120)
        assert t.member_element_ids == ["g0", "g1", "g2", "g3", "g4"]
        assert (t.logical_width, t.logical_height) == (384, 384)
        assert t.scale == 1.0
        assert t.centering_padding == (0.0, 0.0)
        assert t.text is None
        assert t.row_id == "row-0"

    def test_exactly_preferred_width(self, engine):
        elements = [make_element("a", 0, 0, 384, 40)]
        assert len(engine.generate_row_tiles(make_row(elements), elements)) == 1

    def test_row_membership_filters_elements(self, engine):
        inside = make_glyph_run(3)
        outside = make_glyph_run(20, start_x=200, prefix="o")
        tiles = engine.generate_row_tiles(make_row(inside), inside + outside)
        assert len(tiles) == 1
        assert tiles[0].member_element_ids == ["g0", "g1", "g2"]


class TestSweep:
    def test_wide_row_geometry(self, engine, wide_row):
        row, elements = wide_row
        tiles = engine.generate_row_tiles(row, elements)
        assert [t.index for t in tiles] == [0, 1, 2]
        assert [t.bounds.bbox()[::2] for t in tiles] == [
            (0, 518),
            (384, 902),
            (768, 980),
        ]
        assert [t.logical_width for t in tiles] == [518, 518, 384]
        assert all(t.output_width == 384 and t.output_height == 384 for t in tiles)

    @pytest.mark.parametrize("width", [256.0, 384.0, 512.0])
    @pytest.mark.parametrize("name", ["dense", "fractional", "gapped", "exponent"])
    def test_coverage_without_gaps(self, name, width):
        elements = layout(name)
        cfg = TilingConfig(
            preferred_tile_width=width,
            min_tile_width=width / 2,
            max_tile_width=width * 2,
        )
        tiles = TilingEngine(cfg).generate_row_tiles(make_row(elements), elements)
        bounds = content_bounds(elements)
        spans = own_spans(tiles)
        assert spans[0][0] == bounds.min_x
        assert spans[-1][1] >= bounds.max_x
        for (_, end), (start, _) in zip(spans, spans[1:]):
            assert start == end
        for prev, t in zip(tiles, tiles[1:]):
            assert t.bounds.min_x < prev.bounds.max_x
        covered = {i for t in tiles for i in t.member_element_ids}
        assert covered == {el.id for el in elements}

    def test_overlaps_link_neighbours(self, engine, wide_row):
        row, elements = wide_row
        t0, t1, t2 = engine.generate_row_tiles(row, elements)
        assert t0.left_overlap is None
        assert (t0.right_overlap.start, t0.right_overlap.end) == (384, 518)
        assert t0.right_overlap.shared_with_tile_index == 1
        assert (t1.left_overlap.start, t1.left_overlap.end) == (384, 518)
        assert t1.left_overlap.size == 134
        assert t1.left_overlap.shared_with_tile_index == 0
        assert t2.right_overlap is None
        assert t2.left_overlap.size == 134

    def test_overlap_tile_coordinates(self, engine, wide_row):
        row, elements = wide_row
        t0 = engine.generate_row_tiles(row, elements)[0]
        s = 384 / 518
        assert t0.scale == pytest.approx(s)
        assert t0.centering_padding[0] == pytest.approx(0.0)
        assert t0.centering_padding[1] == pytest.approx((384 - 384 * s) / 2)
        assert t0.right_overlap.start_in_tile == pytest.approx(384 * s)
        assert t0.right_overlap.width_in_tile == pytest.approx(134 * s)

    def test_members_include_overlap(self, engine, wide_row):
        row, elements = wide_row
        t0, t1, t2 = engine.generate_row_tiles(row, elements)
        assert t0.member_element_ids == [f"g{i}" for i in range(18)]
        assert t1.member_element_ids == [f"g{i}" for i in range(13, 31)]
        assert t2.member_element_ids == [f"g{i}" for i in range(25, 33)]

    def test_hashes_distinct_and_stable(self, engine, wide_row):
        row, elements = wide_row
        first = [t.content_hash for t in engine.generate_row_tiles(row, elements)]
        again = [t.content_hash for t in TilingEngine().generate_row_tiles(row, elements)]
        assert first == again
        assert len(set(first)) == 3
        assert all(len(h) == 64 for h in first)

    def test_wider_preset_needs_fewer_tiles(self, wide_row):
        row, elements = wide_row
        engine = TilingEngine(TilingConfig.for_model("texify"))
        tiles = engine.generate_row_tiles(row, elements)
        assert len(tiles) == 2
        assert tiles[0].right_overlap.size == 154


class TestCriticalUnits:
    def test_exponent_not_cut(self, engine, exponent_row):
        row, elements = exponent_row
        tiles = engine.generate_row_tiles(row, elements)
        boundaries = [end for _, end in own_spans(tiles)][:-1]
        assert boundaries[0] == 424
        assert all(not (370 < b < 414) for b in boundaries)

    def test_tile_carries_its_units(self, engine, exponent_row):
        row, elements = exponent_row
        tiles = engine.generate_row_tiles(row, elements)
        assert [u.type for u in tiles[0].structural_units] == ["exponent"]
        assert tiles[0].structural_units[0].critical
        assert tiles[-1].structural_units == []


class TestLogicalDimensions:
    def test_narrow_is_preferred(self, engine):
        assert engine.logical_dimensions(100) == (384, 384)

    def test_between_is_exact(self, engine):
        assert engine.logical_dimensions(500.4) == (500, 384)

    def test_clipped_to_max(self, engine, caplog):
        with caplog.at_level(logging.WARNING, logger="mathtile.tiling"):
            assert engine.logical_dimensions(900) == (768, 384)
        assert "exceeds max tile width" in caplog.text


class TestStall:
    def test_non_advancing_step_raises(self, monkeypatch, wide_row):
        monkeypatch.setattr(
            "mathtile.tiling.engine.choose_tile_end",
            lambda start, *a, **kw: BoundaryDecision(start, "standard"),
        )
        row, elements = wide_row
        with pytest.raises(TilingError, match="does not advance"):
            TilingEngine().generate_row_tiles(row, elements)
