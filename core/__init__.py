"""Core signal-analysis engine."""

from .channel import Channel
from .focus import FocusTracker, VisibleRange, max_visible_length, visible_range
from .oscilloscope import Oscilloscope
from shared.models import FocusMode, PeriodEstimate, ScopeFrame, TraceSnapshot, TriggerAlignment

__all__ = [
    "Channel",
    "FocusMode",
    "FocusTracker",
    "Oscilloscope",
    "PeriodEstimate",
    "ScopeFrame",
    "TraceSnapshot",
    "TriggerAlignment",
    "VisibleRange",
    "max_visible_length",
    "visible_range",
]
