from __future__ import annotations

import logging
from threading import RLock

import numpy as np

logger = logging.getLogger(__name__)

MAX_CAPACITY = 65536


def clamp_capacity(capacity: float) -> int:
    """Clamp a requested capacity to ``[0, MAX_CAPACITY]``."""
    try:
        value = int(np.floor(float(capacity)))
    except (TypeError, ValueError, OverflowError):
        return 0
    return min(MAX_CAPACITY, max(0, value))


class RollingBuffer:
    """
    Fixed-capacity sliding window over a sample stream, backed by a NumPy array.

    Samples are kept oldest-to-newest. Writing a block of ``m`` samples shifts
    the contents left by ``m`` and stores the block in the trailing slots, so
    index ``capacity - 1`` always holds the most recent sample.
    """

    def __init__(self, capacity: float, dtype: np.dtype | str = np.float64) -> None:
        self._capacity = clamp_capacity(capacity)
        if self._capacity != capacity:
            logger.warning("Requested buffer capacity %s clamped to %d", capacity, self._capacity)
        self._data = np.zeros(self._capacity, dtype=dtype)
        self._lock = RLock()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def dtype(self) -> np.dtype:
        """Return the data type of the buffer elements."""
        return self._data.dtype

    def __len__(self) -> int:
        return self._capacity

    def write(self, data: np.ndarray) -> int:
        """
        Shift the window left by ``len(data)`` and append `data`.

        Blocks longer than the capacity keep only their trailing samples.
        Returns the number of samples the window advanced by.
        """
        arr = np.asarray(data, dtype=self._data.dtype)
        if arr.ndim != 1:
            raise ValueError(f"data must be 1D, got {arr.ndim}D")

        length = arr.shape[0]
        if length == 0:
            return 0

        with self._lock:
            cap = self._capacity
            if length >= cap:
                if cap:
                    self._data[:] = arr[length - cap:]
            else:
                self._data[: cap - length] = self._data[length:]
                self._data[cap - length:] = arr
        return length

    def view(self) -> np.ndarray:
        """Return a read-only view of the current window (oldest to newest)."""
        out = self._data.view()
        out.setflags(write=False)
        return out

    def snapshot(self) -> np.ndarray:
        """Return an independent copy of the current window."""
        with self._lock:
            return self._data.copy()

    def fill(self, value: float = 0.0) -> None:
        with self._lock:
            self._data.fill(value)

    def overwrite_head(self, values: np.ndarray) -> int:
        """Overwrite the oldest slots with `values`, truncated to the capacity."""
        arr = np.asarray(values, dtype=self._data.dtype).ravel()
        with self._lock:
            count = min(arr.shape[0], self._capacity)
            self._data[:count] = arr[:count]
        return count

    def copy_from(self, other: "RollingBuffer") -> None:
        """Copy `other`'s contents into this buffer, slot by slot from the start.

        When capacities differ only the overlapping prefix is copied.
        """
        if other is self:
            return
        # Locks are always taken in id order
        first, second = sorted((self, other), key=id)
        with first._lock, second._lock:
            count = min(self._capacity, other._capacity)
            self._data[:count] = other._data[:count]

    def resize(self, capacity: float) -> None:
        """Reallocate with a new capacity; contents are reset to zero."""
        with self._lock:
            self._capacity = clamp_capacity(capacity)
            self._data = np.zeros(self._capacity, dtype=self._data.dtype)


__all__ = ["MAX_CAPACITY", "RollingBuffer", "clamp_capacity"]
