"""Shared fixtures: a Qt core application for QTimer-backed objects."""

from __future__ import annotations

import pytest
from PySide6.QtCore import QCoreApplication


@pytest.fixture(scope="session", autouse=True)
def qt_app() -> QCoreApplication:
    """QTimers need an application instance. Tests never run its event loop,
    so countdowns only move when a test calls ``advance()``."""
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app
