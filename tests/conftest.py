"""
Shared fixtures for tourviz3d tests.

Provides a small 3x3x3 panel with one blocked cell and a recording sink.
"""

import matplotlib

matplotlib.use("Agg")

import pytest

from tourviz3d.grid3d import GridDims3D
from tourviz3d.panel3d import PanelController
from tourviz3d.sink3d import RecordingSink


@pytest.fixture
def dims() -> GridDims3D:
    return GridDims3D(3, 3, 3)


@pytest.fixture
def recording() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def panel(dims, recording) -> PanelController:
    """Panel at the origin, start (0, 0, 0), cell (1, 1, 1) blocked."""
    return PanelController(dims, sink=recording, blocked=[(1, 1, 1)])


@pytest.fixture
def strict_panel(dims) -> PanelController:
    return PanelController(dims, strict=True, blocked=[(1, 1, 1)])
