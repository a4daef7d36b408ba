"""Application wiring for the polymemo shape-memory game."""

import logging
import os
from pathlib import Path
from typing import Optional

from PySide6.QtCore import QObject

from polymemo.core.engine import RoundEngine
from polymemo.core.levels import load_difficulty
from polymemo.core.progress import ProgressStore

DIFFICULTY_ENV = "POLYMEMO_DIFFICULTY"


def configure_logging() -> None:
    """Configure application-wide logging with a standard format."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def build_engine(
    progress_store: Optional[ProgressStore] = None,
    difficulty_path: Optional[Path] = None,
    parent: Optional[QObject] = None,
) -> RoundEngine:
    """Create a round engine with the configured difficulty and stored progress.

    ``difficulty_path`` falls back to $POLYMEMO_DIFFICULTY, then to the bundled
    difficulty file.
    """
    if difficulty_path is None and os.environ.get(DIFFICULTY_ENV):
        difficulty_path = Path(os.environ[DIFFICULTY_ENV])
    policy = load_difficulty(difficulty_path)
    store = progress_store if progress_store is not None else ProgressStore()
    logging.info(f"Highest level so far: {store.highest_level}")
    return RoundEngine(policy=policy, progress_store=store, parent=parent)
