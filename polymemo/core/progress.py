from __future__ import annotations

import json
import logging
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class Preferences:
    sound_enabled: bool = True
    dark_mode: bool = False


def _flag(prefs: dict, key: str, default: bool, source: Path) -> bool:
    value = prefs.get(key, default)
    if isinstance(value, bool):
        return value
    logger.warning("Invalid %s in %s (%r); using %s", key, source, value, default)
    return default


class ProgressStore:
    """Stores the highest level reached and the sound/theme preferences.

    Every change is written to disk immediately. Default file:
    ~/.polymemo/progress.json. Cleared only by ``reset``."""

    def __init__(self, file_path: Optional[Path] = None) -> None:
        self._file_path = Path(file_path) if file_path is not None else Path.home() / ".polymemo" / "progress.json"
        self._file_path.parent.mkdir(parents=True, exist_ok=True)
        self._highest_level, self._preferences = self._load()

    @property
    def file_path(self) -> Path:
        return self._file_path

    @property
    def highest_level(self) -> int:
        return self._highest_level

    @property
    def sound_enabled(self) -> bool:
        return self._preferences.sound_enabled

    @property
    def dark_mode(self) -> bool:
        return self._preferences.dark_mode

    def record_level(self, level: int) -> bool:
        """Raise the stored high-water mark to ``level``. Returns True if it changed."""
        if level <= self._highest_level:
            return False
        self._highest_level = level
        self._save()
        return True

    def set_sound_enabled(self, enabled: bool) -> None:
        if self._preferences.sound_enabled == enabled:
            return
        self._preferences.sound_enabled = bool(enabled)
        self._save()

    def set_dark_mode(self, enabled: bool) -> None:
        if self._preferences.dark_mode == enabled:
            return
        self._preferences.dark_mode = bool(enabled)
        self._save()

    def reset(self) -> None:
        """Clear all progress and preferences."""
        self._highest_level = 1
        self._preferences = Preferences()
        self._save()

    def _load(self) -> tuple[int, Preferences]:
        highest = 1
        preferences = Preferences()
        if not self._file_path.exists():
            return highest, preferences
        try:
            payload = json.loads(self._file_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Could not load progress from %s: %s", self._file_path, e)
            return highest, preferences
        if not isinstance(payload, dict):
            logger.warning("Ignoring malformed progress file %s", self._file_path)
            return highest, preferences

        try:
            highest = max(1, int(payload.get("highest_level", 1)))
        except (TypeError, ValueError):
            logger.warning("Invalid highest_level in %s; using 1", self._file_path)
        prefs = payload.get("preferences", {})
        if isinstance(prefs, dict):
            preferences.sound_enabled = _flag(prefs, "sound_enabled", True, self._file_path)
            preferences.dark_mode = _flag(prefs, "dark_mode", False, self._file_path)
        return highest, preferences

    def _save(self) -> None:
        self._file_path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "highest_level": self._highest_level,
            "preferences": asdict(self._preferences),
        }
        try:
            self._file_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError as e:
            logger.warning("Could not save progress to %s: %s", self._file_path, e)
