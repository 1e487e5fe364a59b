"""Content hashes for tiles (cache keys) and rows (change detection)."""

from __future__ import annotations

import hashlib
import json
import logging
import math
import time
from typing import Iterable, Optional

from ..models import BoundingBox, Element

log = logging.getLogger("mathtile.tiling")

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves toward +inf."""
    return int(math.floor(value + 0.5))


def _to_base36(n: int) -> str:
    if n == 0:
        return "0"
    digits = []
    while n:
        n, r = divmod(n, 36)
        digits.append(_BASE36[r])
    return "".join(reversed(digits))


def tile_content_hash(
    member_ids: Iterable[str],
    bounds: BoundingBox,
    budget_ms: Optional[float] = None,
) -> str:
    """SHA-256 hex digest over sorted member ids and integer-rounded bounds.

    Identical geometry always produces the same key, so a tile can be looked
    up in :class:`~mathtile.tiling.cache.TileCache` across requests.
    """
    t0 = time.perf_counter()
    payload = {
        "element_ids": sorted(member_ids),
        "bounds": {
            "x": round_half_up(bounds.min_x),
            "y": round_half_up(bounds.min_y),
            "w": round_half_up(bounds.width()),
            "h": round_half_up(bounds.height()),
        },
    }
    digest = hashlib.sha256(
        json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")
    ).hexdigest()
    elapsed_ms = (time.perf_counter() - t0) * 1000
    if budget_ms is not None and elapsed_ms > budget_ms:
        log.warning(
            "Tile hash took %.1f ms (budget %.1f ms) for %d elements",
            elapsed_ms,
            budget_ms,
            len(payload["element_ids"]),
        )
    return digest


def row_content_hash(elements: Iterable[Element]) -> str:
    """Cheap change-detection hash of a row's element ids and positions.

    djb2 over the sorted ``id:round(x):round(y)`` strings joined by ``|``,
    reduced to an unsigned 32-bit value and rendered in base 36.  Returns
    ``""`` for an empty row.
    """
    parts = sorted(
        f"{el.id}:{round_half_up(el.x)}:{round_half_up(el.y)}" for el in elements
    )
    if not parts:
        return ""
    h = 5381
    for ch in "|".join(parts):
        h = ((h * 33) ^ ord(ch)) & 0xFFFFFFFF
    return _to_base36(h)
