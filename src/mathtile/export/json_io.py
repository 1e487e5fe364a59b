"""JSON import of drawing input and export of tiles / assembly results."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, List, Sequence, Union

from ..models import AssemblyResult, Element, InvalidElementError, RowSelection, Tile

log = logging.getLogger("mathtile.export")

PathLike = Union[str, Path]


def _read_json(path: PathLike) -> Any:
    return json.loads(Path(path).read_text(encoding="utf-8"))


def load_elements(path: PathLike) -> List[Element]:
    """Read elements from a JSON list or a ``{"elements": [...]}`` document.

    Raises :class:`InvalidElementError` for malformed entries.
    """
    data = _read_json(path)
    if isinstance(data, dict):
        data = data.get("elements", [])
    if not isinstance(data, list):
        raise InvalidElementError(f"{path}: expected a list of elements")
    elements = [Element.from_dict(d) for d in data]
    log.debug("Loaded %d elements from %s", len(elements), path)
    return elements


def load_row(path: PathLike) -> RowSelection:
    """Read a row selection, bare or under a ``"row"`` key."""
    data = _read_json(path)
    if isinstance(data, dict) and isinstance(data.get("row"), dict):
        data = data["row"]
    return RowSelection.from_dict(data)


def load_tiles(path: PathLike) -> List[Tile]:
    """Read tiles written by :func:`save_tiles` (text included)."""
    data = _read_json(path)
    if isinstance(data, dict):
        data = data.get("tiles", [])
    return [Tile.from_dict(d) for d in data]


def save_tiles(tiles: Sequence[Tile], path: PathLike) -> Path:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(
        json.dumps({"tiles": [t.to_dict() for t in tiles]}, indent=2),
        encoding="utf-8",
    )
    log.info("Wrote %d tiles to %s", len(tiles), out)
    return out


def save_assembly(result: AssemblyResult, path: PathLike) -> Path:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(json.dumps(result.to_dict(), indent=2), encoding="utf-8")
    log.info("Wrote assembly (%d tiles) to %s", result.tile_count, out)
    return out
