from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from polymemo.core.shapes import GridBounds

logger = logging.getLogger(__name__)

DEFAULT_DIFFICULTY_PATH = Path(__file__).resolve().parent.parent / "data" / "difficulty.yaml"


@dataclass(frozen=True)
class CountdownCurve:
    """Countdown length that drops by one second every ``levels_per_step`` levels."""

    base_seconds: int
    min_seconds: int
    levels_per_step: int = 1

    def seconds_for(self, level: int) -> int:
        level = max(1, level)
        return max(self.min_seconds, self.base_seconds - (level - 1) // self.levels_per_step)


@dataclass(frozen=True)
class DifficultyPolicy:
    """How shape size and countdown lengths scale with level."""

    grid_width: int = 8
    grid_height: int = 8
    base_shape_size: int = 3
    levels_per_cell: int = 2
    memorize: CountdownCurve = field(default_factory=lambda: CountdownCurve(5, 2, 3))
    recall: CountdownCurve = field(default_factory=lambda: CountdownCurve(10, 4, 2))
    starting_lives: int = 3
    round_start_delay_ms: int = 1000

    @property
    def bounds(self) -> GridBounds:
        return GridBounds(self.grid_width, self.grid_height)

    def shape_size(self, level: int) -> int:
        level = max(1, level)
        size = self.base_shape_size + (level - 1) // self.levels_per_cell
        return max(1, min(self.bounds.capacity, size))

    def memorize_seconds(self, level: int) -> int:
        return self.memorize.seconds_for(level)

    def recall_seconds(self, level: int) -> int:
        return self.recall.seconds_for(level)


def _int(raw: Dict[str, Any], key: str, default: int, minimum: int, source: str) -> int:
    value = raw.get(key, default)
    try:
        value = int(value)
    except (TypeError, ValueError):
        logger.warning("%s: '%s' is not an integer (%r); using %d", source, key, value, default)
        return default
    if value < minimum:
        logger.warning("%s: '%s' = %d is below %d; clamping", source, key, value, minimum)
        return minimum
    return value


def _curve(raw: Any, default: CountdownCurve, source: str) -> CountdownCurve:
    if raw is None:
        return default
    if not isinstance(raw, dict):
        raise ValueError(f"{source}: countdown settings must be a mapping")
    min_seconds = _int(raw, "min_seconds", default.min_seconds, 0, source)
    base_seconds = _int(raw, "base_seconds", default.base_seconds, min_seconds, source)
    levels_per_step = _int(raw, "levels_per_step", default.levels_per_step, 1, source)
    return CountdownCurve(base_seconds, min_seconds, levels_per_step)


def parse_difficulty(raw: Any, source: str = "difficulty") -> DifficultyPolicy:
    """Build a policy from a parsed YAML mapping, clamping out-of-range values."""
    if raw is None:
        return DifficultyPolicy()
    if not isinstance(raw, dict):
        raise ValueError(f"{source}: expected a YAML mapping")
    defaults = DifficultyPolicy()
    grid = raw.get("grid") or {}
    shape = raw.get("shape") or {}
    if not isinstance(grid, dict) or not isinstance(shape, dict):
        raise ValueError(f"{source}: 'grid' and 'shape' must be mappings")

    return DifficultyPolicy(
        grid_width=_int(grid, "width", defaults.grid_width, 1, source),
        grid_height=_int(grid, "height", defaults.grid_height, 1, source),
        base_shape_size=_int(shape, "base_size", defaults.base_shape_size, 1, source),
        levels_per_cell=_int(shape, "levels_per_cell", defaults.levels_per_cell, 1, source),
        memorize=_curve(raw.get("memorize"), defaults.memorize, source),
        recall=_curve(raw.get("recall"), defaults.recall, source),
        starting_lives=_int(raw, "lives", defaults.starting_lives, 1, source),
        round_start_delay_ms=_int(raw, "round_start_delay_ms", defaults.round_start_delay_ms, 0, source),
    )


def load_difficulty(path: Optional[Path] = None) -> DifficultyPolicy:
    path = Path(path) if path is not None else DEFAULT_DIFFICULTY_PATH
    if not path.exists():
        raise FileNotFoundError(f"Difficulty file not found: {path}")
    raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    policy = parse_difficulty(raw, source=path.name)
    logger.info("Loaded difficulty from %s", path)
    return policy
