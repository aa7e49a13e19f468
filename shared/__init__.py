"""
Shared data structures available to both the analysis back end and the GUI.
"""

from .models import FocusMode, PeriodEstimate, ScopeFrame, TraceSnapshot, TriggerAlignment
from .rolling_buffer import RollingBuffer
from .settings import ScopeSettings, ScopeSettingsStore

__all__ = [
    "FocusMode",
    "PeriodEstimate",
    "RollingBuffer",
    "ScopeFrame",
    "ScopeSettings",
    "ScopeSettingsStore",
    "TraceSnapshot",
    "TriggerAlignment",
]
