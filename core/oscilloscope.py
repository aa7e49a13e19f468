"""Oscilloscope - multi-channel engine between the audio feed and a renderer.

Channel 0 receives the live input; the other channels hold copies taken on
request (or the autocorrelation of the input when that display is enabled).
After every feed a ScopeFrame is built and handed to registered listeners.
"""

from __future__ import annotations

import logging
import math
import threading
from typing import Callable, Dict, List, Optional

import numpy as np

from shared.models import FocusMode, ScopeFrame, TraceSnapshot, TriggerAlignment, frequency_text, period_text
from shared.rolling_buffer import MAX_CAPACITY, clamp_capacity
from shared.settings import ScopeSettings, ScopeSettingsStore

from .channel import Channel
from .focus import (
    DEFAULT_TRIGGER_THRESHOLD,
    FocusTracker,
    VisibleRange,
    max_visible_length,
    visible_range,
)

logger = logging.getLogger(__name__)

MAX_CHANNELS = 4
INPUT_CHANNEL = 0

FrameListener = Callable[[ScopeFrame], None]


def _clamp_channel_count(count: float) -> int:
    try:
        value = int(count)
    except (TypeError, ValueError, OverflowError):
        return 1
    return min(MAX_CHANNELS, max(1, value))


class Oscilloscope:
    """
    Owns the channels, the focus mode and the horizontal/vertical scale.

    All calls are expected from one processing context; feeds, copies and
    clears simply apply in call order.
    """

    def __init__(
        self,
        *,
        sample_rate: float = 44100.0,
        buffer_size: int = MAX_CAPACITY,
        channels: int = MAX_CHANNELS,
        width: float = 1024.0,
        grid_width: float = 64.0,
        grid_height: float = 64.0,
        mode: FocusMode | str = FocusMode.STREAM,
        trigger_threshold: float = DEFAULT_TRIGGER_THRESHOLD,
        trigger_alignment: TriggerAlignment = TriggerAlignment.LEVEL,
    ) -> None:
        if not (math.isfinite(sample_rate) and sample_rate > 0):
            raise ValueError(f"sample_rate must be positive and finite, got {sample_rate!r}")
        self.sample_rate = float(sample_rate)
        self.width = float(width)
        self.grid_width = float(grid_width)
        self.grid_height = float(grid_height)
        # x = samples per horizontal division, y = value per vertical division
        self.scale_x: float = 64.0
        self.scale_y: float = 0.1
        self.tracker = FocusTracker(
            mode,
            trigger_threshold=trigger_threshold,
            trigger_alignment=trigger_alignment,
        )

        count = _clamp_channel_count(channels)
        if count != channels:
            logger.warning("Channel count %s clamped to %d", channels, count)
        self.channels: List[Channel] = [Channel(buffer_size) for _ in range(count)]
        self.channels[INPUT_CHANNEL].visible = True

        self._listeners: Dict[int, FrameListener] = {}
        self._next_token = 0
        self._lock = threading.Lock()
        logger.info(
            "Oscilloscope ready: %d channel(s) x %d samples at %.0f Hz",
            count,
            self.channels[INPUT_CHANNEL].capacity,
            self.sample_rate,
        )

    @classmethod
    def from_settings(cls, settings: ScopeSettings) -> "Oscilloscope":
        scope = cls(
            sample_rate=settings.sample_rate,
            buffer_size=settings.buffer_size,
            channels=settings.channels,
        )
        scope.apply_settings(settings)
        return scope

    def apply_settings(self, settings: ScopeSettings) -> None:
        """Apply a settings snapshot.

        Out-of-range values are clamped or ignored with a warning. A buffer
        size change resets every channel; a channel count change adds fresh
        channels or drops the highest ones.
        """
        if math.isfinite(settings.sample_rate) and settings.sample_rate > 0:
            self.sample_rate = float(settings.sample_rate)
        else:
            logger.warning("Ignoring sample rate %r", settings.sample_rate)
        self.width = float(settings.width)
        self.grid_width = float(settings.grid_width)
        self.grid_height = float(settings.grid_height)
        try:
            self.mode = settings.mode
        except ValueError:
            logger.warning("Ignoring unknown focus mode %r, keeping %s", settings.mode, self.mode.value)
        self.tracker.trigger_threshold = abs(float(settings.trigger_threshold))
        self.time_per_division = settings.time_per_division_ms
        self.volume_per_division = settings.volume_per_division
        if clamp_capacity(settings.buffer_size) != self.channels[INPUT_CHANNEL].capacity:
            self.set_buffer_size(settings.buffer_size)
        if _clamp_channel_count(settings.channels) != len(self.channels):
            self.set_channel_count(settings.channels)

    def bind_settings(self, store: ScopeSettingsStore, *, replay: bool = True) -> Callable[[], None]:
        """Follow `store`: every update is applied here. Returns an unbind function."""
        return store.subscribe(self.apply_settings, replay=replay)

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    @property
    def mode(self) -> FocusMode:
        return self.tracker.mode

    @mode.setter
    def mode(self, mode: FocusMode | str) -> None:
        self.tracker.mode = mode

    @property
    def time_per_division(self) -> float:
        """Horizontal scale in milliseconds per division."""
        return self.scale_x / self.sample_rate * 1000.0

    @time_per_division.setter
    def time_per_division(self, ms: float) -> None:
        self.scale_x = max(0.0, float(ms)) / 1000.0 * self.sample_rate

    @property
    def volume_per_division(self) -> float:
        return self.scale_y

    @volume_per_division.setter
    def volume_per_division(self, volume: float) -> None:
        self.scale_y = float(volume)

    @property
    def max_visible_length(self) -> int:
        """Number of samples that fit on screen at the current time scale."""
        return max_visible_length(self.width, self.grid_width, self.scale_x)

    def set_buffer_size(self, size: int) -> None:
        for channel in self.channels:
            channel.resize(size)

    def set_channel_count(self, count: int) -> None:
        """Grow or shrink the channel list; surviving channels keep their state."""
        new_count = _clamp_channel_count(count)
        if new_count != count:
            logger.warning("Channel count %s clamped to %d", count, new_count)
        old_count = len(self.channels)
        if new_count == old_count:
            return
        if new_count < old_count:
            dropped = self.channels[new_count:]
            del self.channels[new_count:]
            source = self.channels[INPUT_CHANNEL]
            if source.autocorrelation_target in dropped:
                source.autocorrelation_target = None
        else:
            capacity = self.channels[INPUT_CHANNEL].capacity
            self.channels.extend(Channel(capacity) for _ in range(new_count - old_count))
        logger.info("Channel count %d -> %d", old_count, new_count)

    def set_autocorrelation_display(self, target: Optional[int]) -> None:
        """Mirror the input's autocorrelation into channel `target` (None disables)."""
        source = self.channels[INPUT_CHANNEL]
        if target is None:
            source.autocorrelation_target = None
            return
        if not self._valid_index(target, "autocorrelation display") or target == INPUT_CHANNEL:
            return
        source.autocorrelation_target = self.channels[target]

    # -------------------------------------------------------------------------
    # Streaming
    # -------------------------------------------------------------------------

    def feed(self, data: np.ndarray) -> ScopeFrame:
        """Process one audio block and return the resulting frame."""
        fed = self.tracker.update(self.channels[INPUT_CHANNEL], data, self.max_visible_length)
        frame = self.frame(fed=fed)
        self._emit(frame)
        return frame

    def frame(self, *, fed: bool = True) -> ScopeFrame:
        traces = tuple(
            TraceSnapshot(
                index=i,
                buffer=channel.buffer,
                focus=channel.focus,
                estimated_period=channel.estimated_period,
                period_sure=channel.estimated_period_sure,
                visible=channel.visible,
                sample_rate=self.sample_rate,
            )
            for i, channel in enumerate(self.channels)
        )
        return ScopeFrame(
            mode=self.mode,
            max_visible_length=self.max_visible_length,
            volume_per_division=self.scale_y,
            traces=traces,
            fed=fed,
        )

    def visible_range(self, index: int) -> VisibleRange:
        """Window to draw for channel `index`; an empty range for a missing channel."""
        if not self._valid_index(index, "visible range"):
            return VisibleRange(start=0, end=0, center=0, shift=0.0)
        channel = self.channels[index]
        return visible_range(channel.focus, self.max_visible_length, len(channel))

    def readouts(self) -> List[Dict[str, str]]:
        """Frequency/period text for each visible channel."""
        lines = []
        for i, channel in enumerate(self.channels):
            if not channel.visible:
                continue
            period, sure = channel.estimated_period, channel.estimated_period_sure
            lines.append(
                {
                    "channel": str(i),
                    "frequency": frequency_text(period, sure, self.sample_rate),
                    "period": period_text(period, sure, self.sample_rate),
                }
            )
        return lines

    # -------------------------------------------------------------------------
    # Channel commands
    # -------------------------------------------------------------------------

    def _valid_index(self, index: int, action: str) -> bool:
        if isinstance(index, (int, np.integer)) and 0 <= index < len(self.channels):
            return True
        logger.warning("Ignoring %s for channel %r (have %d)", action, index, len(self.channels))
        return False

    def copy_channel(self, source: int, target: int) -> None:
        """Copy buffer, focus and period state from `source` into `target`."""
        if not (self._valid_index(source, "copy") and self._valid_index(target, "copy")):
            return
        if source == target:
            return
        self.channels[target].copy_from(self.channels[source])

    def clear_channel(self, index: int) -> None:
        if not self._valid_index(index, "clear"):
            return
        self.channels[index].clear()

    # -------------------------------------------------------------------------
    # Frame listeners
    # -------------------------------------------------------------------------

    def add_frame_listener(self, callback: FrameListener) -> int:
        """Register a callback run after every feed. Returns a removal token."""
        with self._lock:
            token = self._next_token
            self._next_token += 1
            self._listeners[token] = callback
            return token

    def remove_frame_listener(self, token: int) -> None:
        with self._lock:
            self._listeners.pop(token, None)

    def _emit(self, frame: ScopeFrame) -> None:
        with self._lock:
            listeners = list(self._listeners.values())
        for listener in listeners:
            try:
                listener(frame)
            except Exception as exc:
                logger.error("Frame listener failed: %s", exc, exc_info=True)


__all__ = ["FrameListener", "INPUT_CHANNEL", "MAX_CHANNELS", "Oscilloscope"]
