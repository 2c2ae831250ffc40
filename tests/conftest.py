"""Shared test fixtures."""

from __future__ import annotations

import pytest

from tabforge.core.canvas import new_canvas, new_lane
from tabforge.core.store import MemoryCanvasStore


@pytest.fixture
def lane():
    """A fresh two-bar lane with standard tuning."""
    return new_lane("ed-1")


@pytest.fixture
def canvas():
    return new_canvas("local")


@pytest.fixture
def store():
    return MemoryCanvasStore()
