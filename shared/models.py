from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

import numpy as np


def _freeze_array(array: np.ndarray) -> np.ndarray:
    """Return a read-only 1D copy of `array`, validating dimensions."""
    arr = np.array(array, copy=True)
    if arr.ndim != 1:
        raise ValueError(f"array must be 1D, got {arr.ndim}D")
    arr.setflags(write=False)
    return arr


class FocusMode(Enum):
    """How the display window follows the incoming stream."""

    STREAM = "stream"
    TRACK = "track"
    TRIGGER = "trigger"

    @classmethod
    def parse(cls, value: "FocusMode | str") -> "FocusMode":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(f"unknown focus mode: {value!r}") from None


class TriggerAlignment(Enum):
    """Where trigger mode anchors the view once a loud block arrives."""

    LEVEL = "level"
    RISING_EDGE = "rising_edge"


@dataclass(frozen=True)
class PeriodEstimate:
    """A period measured from the spacing of autocorrelation peaks.

    Only reliable estimates are ever constructed; an unreliable block yields
    ``None`` from the estimator instead of an instance.
    """

    period: float
    peak_count: int
    min_distance: float
    max_distance: float

    def __post_init__(self) -> None:
        if not self.period > 0:
            raise ValueError("period must be positive")
        if self.peak_count <= 0:
            raise ValueError("peak_count must be positive")

    @property
    def spread(self) -> float:
        """Relative spread of peak distances around the mean."""
        return (self.max_distance - self.min_distance) / self.period

    def frequency(self, sample_rate: float) -> float:
        return float(sample_rate) / self.period


# ----------------------------
# Frame models consumed by a renderer
# ----------------------------

def frequency_text(period: float, sure: bool, sample_rate: float) -> str:
    """Readout text for a period estimate in Hz, or ``--`` when not trusted."""
    if not sure or not period > 0:
        return "--"
    return f"{sample_rate / period:.1f} Hz"


def period_text(period: float, sure: bool, sample_rate: float) -> str:
    if not sure or not sample_rate > 0:
        return "--"
    return f"{period / sample_rate * 1000.0:.1f} ms"


@dataclass(frozen=True)
class TraceSnapshot:
    """State of one channel after a feed."""

    index: int
    buffer: np.ndarray = field(repr=False)
    focus: float
    estimated_period: float
    period_sure: bool
    visible: bool
    sample_rate: float

    def __post_init__(self) -> None:
        if self.index < 0:
            raise ValueError("index must be non-negative")
        if self.sample_rate <= 0:
            raise ValueError("sample_rate must be positive")
        object.__setattr__(self, "buffer", _freeze_array(self.buffer))

    @property
    def estimated_frequency(self) -> Optional[float]:
        """Frequency in Hz, or None when the period estimate is not trusted."""
        if not self.period_sure:
            return None
        return self.sample_rate / self.estimated_period

    @property
    def frequency_text(self) -> str:
        return frequency_text(self.estimated_period, self.period_sure, self.sample_rate)

    @property
    def period_text(self) -> str:
        return period_text(self.estimated_period, self.period_sure, self.sample_rate)


@dataclass(frozen=True)
class ScopeFrame:
    """Everything a renderer needs to draw one frame."""

    mode: FocusMode
    max_visible_length: int
    volume_per_division: float
    traces: Tuple[TraceSnapshot, ...]
    fed: bool = True

    @property
    def visible_traces(self) -> Tuple[TraceSnapshot, ...]:
        return tuple(trace for trace in self.traces if trace.visible)


__all__ = [
    "FocusMode",
    "TriggerAlignment",
    "PeriodEstimate",
    "TraceSnapshot",
    "ScopeFrame",
    "frequency_text",
    "period_text",
]
