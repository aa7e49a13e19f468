from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
ROOT_STR = str(ROOT)
if ROOT_STR not in sys.path:
    sys.path.insert(0, ROOT_STR)


@pytest.fixture
def sample_rate() -> float:
    return 44100.0


@pytest.fixture
def small_scope(sample_rate):
    """Oscilloscope with a short buffer so tests stay fast."""
    from core import Oscilloscope

    return Oscilloscope(sample_rate=sample_rate, buffer_size=4096, channels=2)
