"""Tile a row of drawn elements, or assemble recognized tiles, from JSON.

Examples::

    python scripts/run_row_tiling.py tile elements.json --row row.json --overlay
    python scripts/run_row_tiling.py assemble runs/<run>/artifacts/tiles.json
"""

import argparse
import logging
from datetime import datetime
from pathlib import Path

from mathtile import (
    RowSelection,
    TilingConfig,
    TilingEngine,
    assemble_tiles,
    draw_tiling_overlay,
    load_elements,
    load_row,
    save_assembly,
    save_tiles,
)
from mathtile.export.json_io import load_tiles
from mathtile.tiling import content_bounds


def make_run_dir(name: str | None = None) -> Path:
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    run_name = f"run_{stamp}" if not name else f"run_{stamp}_{name}"
    run_dir = Path("runs") / run_name
    for sub in ["artifacts", "overlays"]:
        (run_dir / sub).mkdir(parents=True, exist_ok=True)
    return run_dir


def build_config(model: str | None) -> TilingConfig:
    return TilingConfig.for_model(model) if model else TilingConfig()


def cmd_tile(args: argparse.Namespace) -> None:
    cfg = build_config(args.model)
    elements = load_elements(args.elements)
    if args.row:
        row = load_row(args.row)
    else:
        ys = [el.y for el in elements] + [el.y + el.height for el in elements]
        row = RowSelection(
            id="row-0",
            y_start=min(ys, default=0.0),
            y_end=max(ys, default=0.0),
            member_element_ids=frozenset(el.id for el in elements),
        )

    engine = TilingEngine(cfg)
    tiles = engine.generate_row_tiles(row, elements)
    run_dir = Path(args.out_dir) if args.out_dir else make_run_dir(args.run_name)
    tiles_path = save_tiles(tiles, run_dir / "artifacts" / "tiles.json")

    print(f"Row {row.id}: {len(tiles)} tiles -> {tiles_path}")
    for t in tiles:
        print(
            f"  T{t.index}: x=[{t.bounds.min_x:.0f}, {t.bounds.max_x:.0f}] "
            f"logical={t.logical_width}x{t.logical_height} scale={t.scale:.3f} "
            f"units={len(t.structural_units)} elements={len(t.member_element_ids)}"
        )

    if args.overlay and tiles:
        members = [el for el in elements if el.id in row.member_element_ids]
        bounds = content_bounds(members)
        out = draw_tiling_overlay(
            tiles,
            bounds,
            run_dir / "overlays" / "tiling.png",
            elements=members,
            scale=args.scale,
        )
        print(f"Overlay -> {out}")


def cmd_assemble(args: argparse.Namespace) -> None:
    cfg = build_config(args.model)
    tiles = load_tiles(args.tiles)
    result = assemble_tiles(tiles, cfg)
    out = Path(args.out) if args.out else Path(args.tiles).with_name("assembly.json")
    save_assembly(result, out)
    print(result.text)
    print(f"confidence={result.confidence:.3f} repairs={len(result.repairs)} -> {out}")


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument(
        "--model", default=None, help="Model preset (formulanet, texify)"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_tile = sub.add_parser("tile", help="Compute tiles for one row")
    p_tile.add_argument("elements", type=Path, help="Elements JSON")
    p_tile.add_argument("--row", type=Path, default=None, help="Row selection JSON")
    p_tile.add_argument("--out-dir", default=None, help="Output directory")
    p_tile.add_argument("--run-name", default=None, help="Run directory suffix")
    p_tile.add_argument("--overlay", action="store_true", help="Write overlay PNG")
    p_tile.add_argument("--scale", type=float, default=1.0, help="Overlay scale")
    p_tile.set_defaults(func=cmd_tile)

    p_asm = sub.add_parser("assemble", help="Merge recognized tiles")
    p_asm.add_argument("tiles", type=Path, help="tiles.json with text filled in")
    p_asm.add_argument("--out", default=None, help="Assembly JSON path")
    p_asm.set_defaults(func=cmd_assemble)

    args = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    args.func(args)


if __name__ == "__main__":
    main()
