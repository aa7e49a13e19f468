"""Autocorrelation-based period estimation for streaming sample blocks.

The estimator works on a single block at a time:
- normalized_autocorrelation: correlation for lags ``0 .. floor(3n/4) - 1``,
  divided by the zero-lag energy
- find_autocorrelation_peaks: strict local maxima above a lag-decaying
  threshold, refined to sub-sample positions with a parabolic fit
- period_from_peaks / estimate_period: mean peak spacing, rejected when the
  spacing is not consistent to within +/-5%
"""
from __future__ import annotations

from typing import Optional

import numpy as np
from scipy import signal

from shared.models import PeriodEstimate


PEAK_THRESHOLD = 0.3
SPACING_TOLERANCE = 0.05


def max_lag_for(n: int) -> int:
    return (3 * max(0, int(n))) // 4


def normalized_autocorrelation(data: np.ndarray, max_lag: Optional[int] = None) -> np.ndarray:
    """Return ``corr(k) / corr(0)`` for ``k = 0 .. max_lag - 1``.

    ``max_lag`` defaults to ``floor(3n/4)``. A silent block (zero energy) or a
    block with non-finite energy yields all zeros rather than NaN.
    """
    arr = np.asarray(data, dtype=np.float64).ravel()
    n = arr.size
    lags = max_lag_for(n) if max_lag is None else max(0, min(int(max_lag), n))
    if lags == 0:
        return np.zeros(0, dtype=np.float64)

    full = signal.correlate(arr, arr, mode="full", method="auto")
    corr = full[n - 1 : n - 1 + lags]
    energy = float(corr[0])
    if energy == 0.0 or not np.isfinite(energy):
        return np.zeros(lags, dtype=np.float64)
    return corr / energy


def find_autocorrelation_peaks(corr: np.ndarray, n: int) -> np.ndarray:
    """Locate refined peak lags in a normalized autocorrelation.

    Args:
        corr: Normalized autocorrelation, index = lag.
        n: Length of the block the correlation was computed from; sets the
            threshold decay ``PEAK_THRESHOLD * (n - k) / n``.

    Returns:
        Ascending float64 array of peak positions in samples.
    """
    values = np.asarray(corr, dtype=np.float64)
    if values.size < 3 or n <= 0:
        return np.zeros(0, dtype=np.float64)

    left = values[:-2]
    mid = values[1:-1]
    right = values[2:]
    # Lag at which the three-value window is complete; the candidate sits at k - 1.
    k = np.arange(2, values.size, dtype=np.float64)
    threshold = PEAK_THRESHOLD * (n - k) / n

    is_peak = (mid > threshold) & (mid > left) & (mid > right)
    idx = np.flatnonzero(is_peak)
    if idx.size == 0:
        return np.zeros(0, dtype=np.float64)

    a, b, c = left[idx], mid[idx], right[idx]
    # b is a strict maximum, so the denominator is strictly negative
    offset = (a - c) / (2.0 * (a - 2.0 * b + c))
    return (k[idx] - 1.0) + offset


def period_from_peaks(peaks: np.ndarray) -> Optional[PeriodEstimate]:
    """Turn refined peak lags into a period, or None when too uncertain."""
    peaks = np.asarray(peaks, dtype=np.float64)
    if peaks.size == 0:
        return None

    # Lag 0 is the implicit first peak
    distances = np.diff(peaks, prepend=0.0)
    mean = float(distances.mean())
    if not mean > 0:
        return None
    min_distance = float(distances.min())
    max_distance = float(distances.max())
    if min_distance / mean < 1.0 - SPACING_TOLERANCE or max_distance / mean > 1.0 + SPACING_TOLERANCE:
        return None

    return PeriodEstimate(
        period=mean,
        peak_count=int(peaks.size),
        min_distance=min_distance,
        max_distance=max_distance,
    )


def estimate_period(data: np.ndarray) -> Optional[PeriodEstimate]:
    """Estimate the period of `data` in samples; None if unreliable."""
    arr = np.asarray(data, dtype=np.float64).ravel()
    corr = normalized_autocorrelation(arr)
    return period_from_peaks(find_autocorrelation_peaks(corr, arr.size))
