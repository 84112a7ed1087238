"""Global pytest fixtures.

Adds project root to path so tests import the package without installation.
"""
from __future__ import annotations

import os
import sys

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from factories import meridian_track, winding_track  # noqa: E402


@pytest.fixture
def straight_line():
    return meridian_track(200)


@pytest.fixture
def winding():
    return winding_track(12)
