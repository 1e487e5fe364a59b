"""Row pipeline: stage timing, recognition hand-off and result recording.

Provides the canonical flow for one row of content::

    tiling → recognize → assemble

Every stage produces a :class:`StageResult`.  Rendering and recognition
are the caller's business: :func:`process_row` takes any callable that
turns a :class:`~mathtile.models.Tile` into text and calls it once per
tile that is not already in the engine's cache.

The :func:`process_row` function returns structured results without
performing any file I/O, making it suitable for embedding in scripts or
tests.
"""

from __future__ import annotations

import hashlib
import logging
import time
import traceback
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Generator, List, Optional, Sequence

from .assembly import RestorativeAssembler
from .config import TilingConfig
from .models import AssemblyResult, Element, RowSelection, Tile
from .tiling import TilingEngine, row_content_hash

logger = logging.getLogger("mathtile.pipeline")

Recognizer = Callable[[Tile], Optional[str]]

# ── Skip reasons ───────────────────────────────────────────────────────


class SkipReason(str, Enum):
    """Why a pipeline stage was skipped."""

    no_elements = "no_elements"


# ── Stage result ───────────────────────────────────────────────────────


@dataclass
class StageResult:
    """Outcome record for a single pipeline stage."""

    stage: str
    ran: bool = False
    status: str = "skipped"  # "success" | "skipped" | "failed"
    skip_reason: Optional[str] = None
    duration_ms: int = 0
    counts: Dict[str, Any] = field(default_factory=dict)
    error: Optional[Dict[str, str]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize stage result to a JSON-compatible dict."""
        d: Dict[str, Any] = {
            "stage": self.stage,
            "ran": self.ran,
            "status": self.status,
        }
        if self.skip_reason is not None:
            d["skip_reason"] = self.skip_reason
        d["duration_ms"] = self.duration_ms
        if self.counts:
            d["counts"] = self.counts
        if self.error is not None:
            d["error"] = self.error
        return d


# ── Stage context manager ──────────────────────────────────────────────


@contextmanager
def run_stage(
    stage: str, skip_reason: Optional[str] = None
) -> Generator[StageResult, None, None]:
    """Context manager that wraps a pipeline stage with timing.

    Usage::

        with run_stage("tiling") as sr:
            if sr.ran:
                tiles = engine.generate_row_tiles(row, elements)
                sr.counts["tiles"] = len(tiles)

    Pass *skip_reason* to record the stage as skipped; the yielded result
    then has ``ran=False``.  An exception inside the block marks the stage
    failed and is re-raised.
    """
    sr = StageResult(stage=stage)
    if skip_reason is not None:
        sr.skip_reason = skip_reason
        yield sr
        return

    sr.ran = True
    t0 = time.perf_counter()
    try:
        yield sr
        if sr.status not in ("success", "failed"):
            sr.status = "success"
    except Exception as exc:
        sr.status = "failed"
        sr.error = {
            "type": type(exc).__name__,
            "message": str(exc),
            "stack": traceback.format_exc(),
        }
        logger.error("Stage %s failed: %s", stage, exc)
        raise
    finally:
        sr.duration_ms = int((time.perf_counter() - t0) * 1000)


# ── Input fingerprint (determinism aid) ────────────────────────────────


def input_fingerprint(
    row: RowSelection, elements: Sequence[Element], cfg: TilingConfig
) -> str:
    """Reproducibility fingerprint for one row run (row, content, config)."""
    parts = [
        row.id,
        f"{row.y_start}:{row.y_end}",
        row_content_hash(el for el in elements if el.id in row.member_element_ids),
        str(sorted(vars(cfg).items())),
    ]
    return hashlib.sha256("|".join(parts).encode()).hexdigest()[:16]


# ── Row-level result container ─────────────────────────────────────────


@dataclass
class RowResult:
    """Everything :func:`process_row` produced for one row."""

    row_id: str
    fingerprint: str = ""
    stages: Dict[str, StageResult] = field(default_factory=dict)
    tiles: List[Tile] = field(default_factory=list)
    assembly: AssemblyResult = field(default_factory=AssemblyResult)

    @property
    def text(self) -> str:
        return self.assembly.text

    @property
    def confidence(self) -> float:
        return self.assembly.confidence

    def to_summary_dict(self) -> Dict[str, Any]:
        """Compact JSON-compatible summary (no per-tile geometry)."""
        return {
            "row_id": self.row_id,
            "fingerprint": self.fingerprint,
            "stages": {k: v.to_dict() for k, v in self.stages.items()},
            "tile_count": len(self.tiles),
            "assembly": self.assembly.to_dict(),
        }


# ── Stages ─────────────────────────────────────────────────────────────


def _recognize(
    tiles: Sequence[Tile],
    recognizer: Recognizer,
    engine: TilingEngine,
    sr: StageResult,
) -> None:
    hits = calls = failures = 0
    for tile in tiles:
        cached = engine.cache.get(tile.content_hash)
        if cached is not None:
            tile.assign_text(cached)
            hits += 1
            continue
        calls += 1
        try:
            text = recognizer(tile)
        except Exception as exc:  # failures leave the tile empty
            failures += 1
            logger.warning(
                "Recognizer failed on tile %d of row %s: %s",
                tile.index,
                tile.row_id,
                exc,
            )
            tile.assign_text("")
            continue
        tile.assign_text(text)
        if text:
            engine.cache.put(tile.content_hash, text)
    sr.counts.update(
        recognizer_calls=calls, cache_hits=hits, recognizer_failures=failures
    )


def process_row(
    row: RowSelection,
    elements: Sequence[Element],
    recognizer: Recognizer,
    cfg: Optional[TilingConfig] = None,
    engine: Optional[TilingEngine] = None,
) -> RowResult:
    """Tile one row, recognize each tile and merge the results.

    Parameters
    ----------
    row : RowSelection
        The row to process; only elements listed in it are used.
    elements : sequence of Element
        Candidate elements (typically the whole drawing).
    recognizer : callable
        ``Tile -> str``.  Exceptions are logged and leave that tile empty.
    cfg : TilingConfig, optional
        Ignored when *engine* is given.
    engine : TilingEngine, optional
        Reuse an engine (and its tile cache) across rows.

    Returns
    -------
    RowResult

    Raises
    ------
    InvalidBoundsError
        The row's content box is degenerate.
    """
    engine = engine or TilingEngine(cfg)
    result = RowResult(
        row_id=row.id, fingerprint=input_fingerprint(row, elements, engine.cfg)
    )

    with run_stage("tiling") as sr:
        result.stages["tiling"] = sr
        result.tiles = engine.generate_row_tiles(row, elements)
        sr.counts["tiles"] = len(result.tiles)
        sr.counts["critical_units"] = len(
            {
                tuple(u.member_element_ids)
                for t in result.tiles
                for u in t.structural_units
                if u.critical
            }
        )

    skip = None if result.tiles else SkipReason.no_elements.value
    with run_stage("recognize", skip) as sr:
        result.stages["recognize"] = sr
        if sr.ran:
            _recognize(result.tiles, recognizer, engine, sr)

    with run_stage("assemble", skip) as sr:
        result.stages["assemble"] = sr
        if sr.ran:
            result.assembly = RestorativeAssembler(engine.cfg).assemble(result.tiles)
            sr.counts["repairs"] = len(result.assembly.repairs)

    logger.info(
        "Row %s: %d tiles → %r (confidence %.2f)",
        row.id,
        len(result.tiles),
        result.text[:80],
        result.confidence,
    )
    return result


def process_rows(
    rows: Sequence[RowSelection],
    elements: Sequence[Element],
    recognizer: Recognizer,
    cfg: Optional[TilingConfig] = None,
) -> List[RowResult]:
    """Run :func:`process_row` for each row, sharing one engine and cache."""
    engine = TilingEngine(cfg)
    return [process_row(r, elements, recognizer, engine=engine) for r in rows]
