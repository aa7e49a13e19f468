"""Channel - one display trace: rolling sample window plus period estimate."""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from analysis.periodicity import (
    find_autocorrelation_peaks,
    normalized_autocorrelation,
    period_from_peaks,
)
from analysis.zero_crossing import find_nearest_zero_crossing, find_zero_crossing_before
from shared.models import PeriodEstimate
from shared.rolling_buffer import RollingBuffer

logger = logging.getLogger(__name__)

DEFAULT_PERIOD = 1.0


class Channel:
    """
    Rolling sample window for a single trace.

    Attributes:
        focus: Real-valued index into `buffer` the display is aligned on. Every
            feed translates it left by the block length so it keeps pointing
            at the same instant of the stream.
        estimated_period: Last reliable period estimate in samples. Kept
            as-is when a block gives no reliable estimate.
        estimated_period_sure: Whether the most recent block produced a
            reliable estimate.
        visible: Display flag owned by the UI.
        autocorrelation_target: Optional channel that receives the normalized
            autocorrelation of every block fed here.
    """

    def __init__(self, size: float, *, dtype: np.dtype | str = np.float64) -> None:
        self._buffer = RollingBuffer(size, dtype=dtype)
        self.focus: float = self._buffer.capacity / 2
        self.visible: bool = False
        self.estimated_period: float = DEFAULT_PERIOD
        self.estimated_period_sure: bool = False
        self.last_estimate: Optional[PeriodEstimate] = None
        self.autocorrelation_target: Optional["Channel"] = None

    @property
    def buffer(self) -> np.ndarray:
        """Read-only view of the sample window, oldest to newest."""
        return self._buffer.view()

    @property
    def capacity(self) -> int:
        return self._buffer.capacity

    def __len__(self) -> int:
        return self._buffer.capacity

    def estimated_frequency(self, sample_rate: float) -> Optional[float]:
        """Frequency in Hz, or None while the estimate is not trusted."""
        if not self.estimated_period_sure or sample_rate <= 0:
            return None
        return float(sample_rate) / self.estimated_period

    # -------------------------------------------------------------------------
    # Stream input
    # -------------------------------------------------------------------------

    def feed(self, data: np.ndarray) -> None:
        """Append a block of samples and re-estimate the period from it."""
        block = np.asarray(data, dtype=np.float64).ravel()
        advanced = self._buffer.write(block)
        self.focus -= advanced

        estimate = self._estimate_period(block)
        self.last_estimate = estimate
        if estimate is None:
            # Keep the previous period so track mode has a stable anchor
            self.estimated_period_sure = False
            logger.debug("No reliable period in block of %d samples", block.size)
        else:
            self.estimated_period = estimate.period
            self.estimated_period_sure = True

    def _estimate_period(self, block: np.ndarray) -> Optional[PeriodEstimate]:
        corr = normalized_autocorrelation(block)
        target = self.autocorrelation_target
        if target is not None:
            target._buffer.overwrite_head(corr)
            target.focus = block.size / 2
        return period_from_peaks(find_autocorrelation_peaks(corr, block.size))

    # -------------------------------------------------------------------------
    # Zero crossings
    # -------------------------------------------------------------------------

    def find_nearest_zero_crossing(self, i: float) -> float:
        return find_nearest_zero_crossing(self._buffer.view(), i)

    def find_zero_crossing_before(self, i: float) -> float:
        return find_zero_crossing_before(self._buffer.view(), i)

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def clear(self) -> None:
        """Zero the sample window; focus and estimate are left alone."""
        self._buffer.fill(0.0)

    def copy_from(self, other: "Channel") -> None:
        """Take over `other`'s samples, focus and period state."""
        self._buffer.copy_from(other._buffer)
        self.focus = other.focus
        self.estimated_period = other.estimated_period
        self.estimated_period_sure = other.estimated_period_sure
        self.last_estimate = other.last_estimate

    def resize(self, size: float) -> None:
        """Change capacity; resets the window and all derived state."""
        self._buffer.resize(size)
        self.focus = self._buffer.capacity / 2
        self.estimated_period = DEFAULT_PERIOD
        self.estimated_period_sure = False
        self.last_estimate = None
        logger.info("Channel resized to %d samples", self._buffer.capacity)


__all__ = ["Channel", "DEFAULT_PERIOD"]
