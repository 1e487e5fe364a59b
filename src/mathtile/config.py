from dataclasses import dataclass
from typing import Any, Dict


class ConfigValidationError(ValueError):
    """Raised when a TilingConfig field has an invalid value."""


def _check_range(
    name: str, value: float, lo: float, hi: float, *, inclusive: bool = True
) -> None:
    if inclusive:
        if not (lo <= value <= hi):
            raise ConfigValidationError(f"{name}={value} out of range [{lo}, {hi}]")
    else:
        if not (lo < value < hi):
            raise ConfigValidationError(f"{name}={value} out of range ({lo}, {hi})")


def _check_positive(name: str, value: float) -> None:
    if value <= 0:
        raise ConfigValidationError(f"{name}={value} must be > 0")


def _check_non_negative(name: str, value: float) -> None:
    if value < 0:
        raise ConfigValidationError(f"{name}={value} must be >= 0")


OVERLAP_STRATEGIES = ("percentage", "fixed")
REPAIR_STRATEGIES = ("longer", "shorter", "average", "default")


@dataclass
class TilingConfig:
    """Tunables for adaptive tiling and restorative reassembly."""

    # ── Model input ───────────────────────────────────────────────────
    # Fixed raster size every tile is scaled and padded into.
    output_width: int = 384
    output_height: int = 384
    # Logical height of one row of content (tile height before scaling).
    row_height: float = 384.0

    # ── Tile widths ───────────────────────────────────────────────────
    preferred_tile_width: float = 384.0
    # Shrinking a tile to avoid a structural unit may not go below this.
    min_tile_width: float = 192.0
    # Extending a tile to swallow a structural unit may not go above this.
    max_tile_width: float = 768.0

    # ── Overlap between adjacent tiles ────────────────────────────────
    # "percentage": overlap_value is a fraction of preferred_tile_width.
    # "fixed": overlap_value is an absolute width in content units.
    overlap_strategy: str = "percentage"
    overlap_value: float = 0.35
    min_overlap: float = 50.0
    max_overlap: float = 200.0

    # ── Boundary adjustment ───────────────────────────────────────────
    # Clearance kept between a tile edge and a structural unit it avoids.
    unit_margin: float = 10.0
    # Whitespace gap search: minimum empty strip, scan step, and distance
    # kept from both ends of the proposed tile.
    gap_min_width: float = 15.0
    gap_scan_step: float = 5.0
    gap_edge_margin: float = 50.0

    # ── Structural unit detection ─────────────────────────────────────
    # Detections below this confidence are never materialized.
    unit_confidence_threshold: float = 0.7
    # Units whose intersection / smaller-area ratio exceeds this are merged.
    unit_merge_overlap: float = 0.3

    # ── Restorative merge ─────────────────────────────────────────────
    similarity_threshold: float = 0.85
    # One of REPAIR_STRATEGIES.
    repair_strategy: str = "longer"

    # ── Tile cache (per engine instance) ──────────────────────────────
    cache_max_entries: int = 256
    cache_ttl_seconds: float = 3600.0

    # ── Soft performance budgets (logged, never enforced) ─────────────
    tiling_budget_ms: float = 200.0
    hash_budget_ms: float = 10.0

    def __post_init__(self) -> None:
        """Validate field ranges to catch misconfiguration early."""
        # -- Thresholds that must be in [0, 1] --
        _unit = [
            "unit_confidence_threshold",
            "unit_merge_overlap",
            "similarity_threshold",
        ]
        for name in _unit:
            _check_range(name, getattr(self, name), 0.0, 1.0)

        # -- Strictly positive floats --
        _pos_floats = [
            "row_height",
            "preferred_tile_width",
            "min_tile_width",
            "max_tile_width",
            "overlap_value",
            "gap_min_width",
            "gap_scan_step",
            "cache_ttl_seconds",
            "tiling_budget_ms",
            "hash_budget_ms",
        ]
        for name in _pos_floats:
            _check_positive(name, getattr(self, name))

        # -- Non-negative floats --
        _nn_floats = [
            "min_overlap",
            "max_overlap",
            "unit_margin",
            "gap_edge_margin",
        ]
        for name in _nn_floats:
            _check_non_negative(name, getattr(self, name))

        # -- Positive ints --
        for name in ("output_width", "output_height", "cache_max_entries"):
            val = getattr(self, name)
            if val < 1:
                raise ConfigValidationError(f"{name}={val} must be >= 1")

        # -- Width ordering --
        if not (
            self.min_tile_width <= self.preferred_tile_width <= self.max_tile_width
        ):
            raise ConfigValidationError(
                f"tile widths must satisfy min ({self.min_tile_width}) <= "
                f"preferred ({self.preferred_tile_width}) <= "
                f"max ({self.max_tile_width})"
            )

        if self.min_overlap > self.max_overlap:
            raise ConfigValidationError(
                f"min_overlap ({self.min_overlap}) must be <= "
                f"max_overlap ({self.max_overlap})"
            )

        # -- Enumerated strategies --
        if self.overlap_strategy not in OVERLAP_STRATEGIES:
            raise ConfigValidationError(
                f"overlap_strategy={self.overlap_strategy!r} must be one of "
                f"{OVERLAP_STRATEGIES}"
            )
        if self.overlap_strategy == "percentage":
            _check_range("overlap_value", self.overlap_value, 0.0, 1.0)
        if self.repair_strategy not in REPAIR_STRATEGIES:
            raise ConfigValidationError(
                f"repair_strategy={self.repair_strategy!r} must be one of "
                f"{REPAIR_STRATEGIES}"
            )

    def overlap_size(self) -> float:
        """Overlap width in content units, clamped to [min_overlap, max_overlap]."""
        if self.overlap_strategy == "percentage":
            base = self.preferred_tile_width * self.overlap_value
            return float(round(max(self.min_overlap, min(self.max_overlap, base))))
        return float(max(self.min_overlap, min(self.max_overlap, self.overlap_value)))

    @classmethod
    def for_model(cls, name: str, **overrides: Any) -> "TilingConfig":
        """Build a config from a named recognizer preset plus overrides."""
        try:
            preset = MODEL_PRESETS[name]
        except KeyError:
            raise ConfigValidationError(
                f"unknown model preset {name!r}; known: {sorted(MODEL_PRESETS)}"
            ) from None
        params = dict(preset)
        params.update(overrides)
        return cls(**params)


# Geometry of the recognizers the pipeline has been tuned against.
MODEL_PRESETS: Dict[str, Dict[str, Any]] = {
    "formulanet": {
        "output_width": 384,
        "output_height": 384,
        "row_height": 384.0,
        "preferred_tile_width": 384.0,
        "min_tile_width": 192.0,
        "max_tile_width": 768.0,
        "overlap_strategy": "percentage",
        "overlap_value": 0.35,
        "min_overlap": 50.0,
        "max_overlap": 200.0,
        "similarity_threshold": 0.85,
        "repair_strategy": "longer",
    },
    "texify": {
        "output_width": 512,
        "output_height": 512,
        "row_height": 512.0,
        "preferred_tile_width": 512.0,
        "min_tile_width": 256.0,
        "max_tile_width": 1024.0,
        "overlap_strategy": "percentage",
        "overlap_value": 0.3,
        "min_overlap": 60.0,
        "max_overlap": 250.0,
        "similarity_threshold": 0.85,
        "repair_strategy": "longer",
    },
}
