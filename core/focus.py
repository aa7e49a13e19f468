"""FocusTracker - decides which part of a channel's window is on screen.

Three modes, selected externally:
- stream: always show the newest samples
- track: scroll in whole estimated periods and lock onto a zero crossing
- trigger: only accept loud blocks, so silence freezes the display
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, Dict

import numpy as np

from shared.models import FocusMode, TriggerAlignment

from .channel import Channel

logger = logging.getLogger(__name__)

DEFAULT_TRIGGER_THRESHOLD = 0.1
JUMP_SLACK = 1e-9


def max_visible_length(width: float, grid_width: float, samples_per_division: float) -> int:
    """Number of samples that fit across `width` pixels."""
    if width <= 0 or grid_width <= 0 or samples_per_division <= 0:
        return 0
    return int(math.ceil(width / grid_width * samples_per_division))


@dataclass(frozen=True)
class VisibleRange:
    """Sample range ``[start, end)`` to draw and the sub-sample shift of the center."""

    start: int
    end: int
    center: int
    shift: float

    def __len__(self) -> int:
        return self.end - self.start


def visible_range(focus: float, max_length: int, buffer_length: int) -> VisibleRange:
    """Clamp the window around `focus` to ``[0, buffer_length)``."""
    if not math.isfinite(focus):
        focus = buffer_length - max_length / 2
    center = int(math.floor(focus + 0.5))
    shift = center - focus
    start = min(max(0, int(math.floor(center - max_length / 2))), buffer_length)
    end = max(min(buffer_length, int(math.ceil(center + max_length / 2))), start)
    return VisibleRange(start=start, end=end, center=center, shift=shift)


class FocusTracker:
    """
    Feeds a channel and moves its focus according to the active mode.

    Holds no per-frame state of its own; the focus lives on the Channel.
    """

    def __init__(
        self,
        mode: FocusMode | str = FocusMode.STREAM,
        *,
        trigger_threshold: float = DEFAULT_TRIGGER_THRESHOLD,
        trigger_alignment: TriggerAlignment = TriggerAlignment.LEVEL,
    ) -> None:
        self._mode = FocusMode.parse(mode)
        self.trigger_threshold = abs(float(trigger_threshold))
        self.trigger_alignment = trigger_alignment
        self._handlers: Dict[FocusMode, Callable[[Channel, np.ndarray, int], bool]] = {
            FocusMode.STREAM: self._update_stream,
            FocusMode.TRACK: self._update_track,
            FocusMode.TRIGGER: self._update_trigger,
        }
        missing = set(FocusMode) - set(self._handlers)
        if missing:
            raise RuntimeError(f"no focus handler for {sorted(m.value for m in missing)}")

    @property
    def mode(self) -> FocusMode:
        return self._mode

    @mode.setter
    def mode(self, mode: FocusMode | str) -> None:
        new_mode = FocusMode.parse(mode)
        if new_mode is not self._mode:
            logger.debug("Focus mode %s -> %s", self._mode.value, new_mode.value)
        self._mode = new_mode

    def update(self, channel: Channel, data: np.ndarray, max_length: int) -> bool:
        """
        Feed `data` to `channel` (if the mode accepts it) and refocus.

        Args:
            channel: Channel receiving the block.
            data: 1D block of samples.
            max_length: Number of samples visible on screen.

        Returns:
            True if the channel was fed, False if the block was rejected.
        """
        block = np.asarray(data, dtype=np.float64).ravel()
        return self._handlers[self._mode](channel, block, max(0, int(max_length)))

    # -------------------------------------------------------------------------
    # Per-mode handlers
    # -------------------------------------------------------------------------

    @staticmethod
    def _target(channel: Channel, max_length: int) -> float:
        return len(channel) - max_length / 2

    def _update_stream(self, channel: Channel, block: np.ndarray, max_length: int) -> bool:
        channel.feed(block)
        channel.focus = self._target(channel, max_length)
        return True

    def _update_track(self, channel: Channel, block: np.ndarray, max_length: int) -> bool:
        channel.feed(block)
        target = self._target(channel, max_length)
        focus = channel.focus
        period = channel.estimated_period
        if not math.isfinite(focus):
            focus = target
        elif period > 0 and math.isfinite(period):
            # Jump in whole periods so the phase on screen stays put. A crossing a
            # rounding error past the target counts as on it.
            focus += period * math.floor((target - focus) / period + JUMP_SLACK)
        channel.focus = channel.find_nearest_zero_crossing(focus)
        return True

    def _update_trigger(self, channel: Channel, block: np.ndarray, max_length: int) -> bool:
        threshold = self.trigger_threshold
        if not np.any(np.abs(block) > threshold):
            logger.debug("Trigger: quiet block of %d samples, display frozen", block.size)
            return False

        channel.feed(block)
        quiet = np.flatnonzero(np.abs(channel.buffer) <= threshold)
        # Nothing quiet in the whole window: clamp to the oldest sample
        anchor = float(quiet[-1]) if quiet.size else 0.0
        if self.trigger_alignment is TriggerAlignment.RISING_EDGE:
            anchor = float(channel.find_zero_crossing_before(anchor))
        channel.focus = anchor - max_length / 2
        return True


__all__ = [
    "DEFAULT_TRIGGER_THRESHOLD",
    "FocusTracker",
    "VisibleRange",
    "max_visible_length",
    "visible_range",
]
