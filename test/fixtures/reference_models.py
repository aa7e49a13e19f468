"""
Reference implementations for property-based testing.

These are deliberately simple, obviously-correct implementations used to
verify the production code via differential testing. They prioritize
correctness and clarity over performance.

- Each reference model matches the API of its production counterpart
- Implementations use plain Python loops without vectorization
- Operations are traceable for debugging test failures
"""
from __future__ import annotations

from typing import List, Optional

import numpy as np


class ReferenceRollingBuffer:
    """List-based sliding window for property testing.

    Keeps every sample ever written and exposes the last `capacity` of them,
    left-padded with zeros until the stream is long enough.
    """

    def __init__(self, capacity: int):
        self._capacity = capacity
        self._history: List[float] = []

    @property
    def capacity(self) -> int:
        return self._capacity

    def write(self, data) -> None:
        self._history.extend(float(x) for x in data)

    def window(self) -> np.ndarray:
        if self._capacity == 0:
            return np.zeros(0, dtype=np.float64)
        tail = self._history[-self._capacity:]
        padded = [0.0] * (self._capacity - len(tail)) + tail
        return np.array(padded, dtype=np.float64)


def reference_estimate_period(data) -> Optional[float]:
    """Lag-by-lag autocorrelation estimator; None when unreliable."""
    data = [float(x) for x in data]
    n = len(data)
    max_lag = (3 * n) // 4

    corr = []
    for k in range(max_lag):
        total = 0.0
        for i in range(n - k):
            total += data[i] * data[i + k]
        corr.append(total)
    if not corr or corr[0] == 0.0:
        return None
    corr = [c / corr[0] for c in corr]

    previous_peak = 0.0
    distances = []
    for k in range(2, max_lag):
        c1, c2, c3 = corr[k - 2], corr[k - 1], corr[k]
        threshold = 0.3 * (n - k) / n
        if c2 > threshold and c2 > c1 and c2 > c3:
            offset = (c1 - c3) / (2 * (c1 - 2 * c2 + c3))
            peak = (k - 1) + offset
            distances.append(peak - previous_peak)
            previous_peak = peak

    if not distances:
        return None
    mean = sum(distances) / len(distances)
    if min(distances) / mean < 0.95 or max(distances) / mean > 1.05:
        return None
    return mean


def reference_nearest_zero_crossing(buffer, i: float) -> float:
    """Outward search alternating before/after the rounded index."""
    buf = [float(x) for x in buffer]
    n = len(buf)
    c = int(np.floor(i + 0.5))
    for j in range(n):
        if 0 <= c - j - 1 and c - j < n:
            a, b = buf[c - j - 1], buf[c - j]
            if a * b <= 0:
                return (c - j - 1) + (a / (a - b) if a != b else 0.0)
        if 0 <= c + j and c + j + 1 < n:
            a, b = buf[c + j], buf[c + j + 1]
            if a * b <= 0:
                return (c + j) + (a / (a - b) if a != b else 0.0)
    return i
