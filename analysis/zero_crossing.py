"""Zero-crossing search used to phase-lock the displayed waveform."""
from __future__ import annotations

import math

import numpy as np


def _crossing_pairs(buffer: np.ndarray) -> np.ndarray:
    """Indices ``p`` where ``buffer[p] * buffer[p + 1] <= 0``."""
    return np.flatnonzero(buffer[:-1] * buffer[1:] <= 0)


def _interpolate(buffer: np.ndarray, p: int) -> float:
    a = float(buffer[p])
    b = float(buffer[p + 1])
    if a == b:
        # Both samples are exactly zero
        return float(p)
    return p + a / (a - b)


def find_nearest_zero_crossing(buffer: np.ndarray, i: float) -> float:
    """Return the sub-sample position of the sign change nearest to `i`.

    `i` is rounded to the nearest index, then pairs ``(i-j-1, i-j)`` and
    ``(i+j, i+j+1)`` are examined for ``j = 0, 1, 2, ...``; at equal distance
    the pair before `i` wins. The crossing is linearly interpolated between
    the two bracketing samples. If the buffer has no crossing at all, `i` is
    returned unchanged.
    """
    data = np.asarray(buffer, dtype=np.float64)
    n = data.size
    if n < 2 or not math.isfinite(i):
        return i

    center = min(max(int(math.floor(i + 0.5)), 0), n - 1)
    pairs = _crossing_pairs(data)
    if pairs.size == 0:
        return i

    # Nearest pair entirely before the center (p <= center - 1), distance center - 1 - p
    pos = int(np.searchsorted(pairs, center, side="left"))
    before = int(pairs[pos - 1]) if pos > 0 else None
    # Nearest pair starting at or after the center, distance p - center
    after = int(pairs[pos]) if pos < pairs.size else None

    if before is None:
        return _interpolate(data, after)
    if after is None:
        return _interpolate(data, before)
    if center - 1 - before <= after - center:
        return _interpolate(data, before)
    return _interpolate(data, after)


def find_zero_crossing_before(buffer: np.ndarray, i: float) -> float:
    """Return the last rising edge at or before `i`.

    A rising edge is an index ``j`` with ``buffer[j - 1] <= 0 < buffer[j]``.
    The search starts at ``min(i, len - 1)`` and walks backward; `i` is
    returned unchanged when there is no such edge.
    """
    data = np.asarray(buffer, dtype=np.float64)
    n = data.size
    if n < 2 or not math.isfinite(i):
        return i

    start = min(int(math.floor(i)), n - 1)
    if start < 1:
        return i

    rising = np.flatnonzero((data[: start] <= 0) & (data[1 : start + 1] > 0)) + 1
    if rising.size == 0:
        return i
    return int(rising[-1])


__all__ = ["find_nearest_zero_crossing", "find_zero_crossing_before"]
