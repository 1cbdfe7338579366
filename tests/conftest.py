# tests/conftest.py
"""
Root pytest configuration and shared fixtures.

Provides synthetic frames, temporary parameter files and controller
window isolation for every test module.
"""

import os
import sys

import cv2
import numpy as np
import pytest

# Add repository root to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from attitude_controller import MouseController


# =============================================================================
# Parameter Files
# =============================================================================

@pytest.fixture
def write_params(tmp_path):
    """
    Factory writing a parameter file and returning its path.

    Usage:
        def test_something(write_params):
            path = write_params("255 0 0 10 80 80")
    """
    counter = {'n': 0}

    def _write(content: str) -> str:
        counter['n'] += 1
        path = tmp_path / f"params_{counter['n']}.txt"
        path.write_text(content)
        return str(path)

    return _write


@pytest.fixture
def red_params(write_params):
    """Parameter file for a pure red target (R G B  H S V tolerances)."""
    return write_params("255 0 0 10 80 80\n")


# =============================================================================
# Frames
# =============================================================================

@pytest.fixture
def target_frame():
    """
    160x120 black BGR frame with two red disks.

    Large disk: center (80, 60), radius 20
    Small disk: center (20, 20), radius 5
    """
    frame = np.zeros((120, 160, 3), dtype=np.uint8)
    cv2.circle(frame, (80, 60), 20, (0, 0, 255), -1)
    cv2.circle(frame, (20, 20), 5, (0, 0, 255), -1)
    return frame


# =============================================================================
# Controller window isolation
# =============================================================================

@pytest.fixture(autouse=True)
def no_leaked_controller_windows():
    """Fail a test that leaves a controller window open."""
    yield
    leaked = MouseController._count
    MouseController._count = 0
    assert leaked == 0, f"{leaked} MouseController window(s) left open"
