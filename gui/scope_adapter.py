"""Qt signal adapter for oscilloscope frames.

This adapter bridges the core Oscilloscope's listener-based notification
system to Qt signals, so a Qt renderer can receive frames via signal/slot
connections. This keeps PySide6 dependencies out of the core module.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Callable

from PySide6 import QtCore

if TYPE_CHECKING:
    from core.oscilloscope import Oscilloscope


class ScopeSignals(QtCore.QObject):
    """Qt signals for oscilloscope events."""
    frameReady = QtCore.Signal(object)  # ScopeFrame


def connect_scope_signals(scope: "Oscilloscope") -> tuple[ScopeSignals, Callable[[], None]]:
    """Create Qt signal bridge for oscilloscope frames.

    Args:
        scope: The oscilloscope to connect to.

    Returns:
        A tuple of (signals object, disconnect function).
    """
    signals = ScopeSignals()
    token = scope.add_frame_listener(signals.frameReady.emit)

    def disconnect() -> None:
        scope.remove_frame_listener(token)

    return signals, disconnect
