import numpy as np
import pytest

pytest.importorskip("PySide6")

from PySide6 import QtCore

from gui import connect_scope_signals


@pytest.fixture(scope="module")
def qt_app():
    app = QtCore.QCoreApplication.instance() or QtCore.QCoreApplication([])
    yield app


def test_frame_ready_emitted_per_feed(qt_app, small_scope):
    scope = small_scope
    signals, disconnect = connect_scope_signals(scope)
    received = []
    signals.frameReady.connect(received.append, QtCore.Qt.DirectConnection)

    frame = scope.feed(np.ones(32))

    assert received == [frame]
    disconnect()


def test_disconnect_stops_frames(qt_app, small_scope):
    scope = small_scope
    signals, disconnect = connect_scope_signals(scope)
    received = []
    signals.frameReady.connect(received.append, QtCore.Qt.DirectConnection)

    disconnect()
    scope.feed(np.ones(32))

    assert received == []
