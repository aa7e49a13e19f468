"""
Unit tests for the autocorrelation period estimator.

Covered behavior:
- normalized_autocorrelation: lag range, normalization, silent input
- find_autocorrelation_peaks: strict maxima, decaying threshold, parabolic refinement
- period_from_peaks: mean spacing and the +/-5% consistency check
- estimate_period: end-to-end on synthetic tones, noise and degenerate blocks
"""
from __future__ import annotations

import numpy as np
import pytest

from analysis.periodicity import (
    estimate_period,
    find_autocorrelation_peaks,
    max_lag_for,
    normalized_autocorrelation,
    period_from_peaks,
)
from test.fixtures.reference_models import reference_estimate_period
from test.fixtures.signal_generators import make_sine, make_square, make_white_noise

SAMPLE_RATE = 44100.0
BLOCK = 2048


class TestNormalizedAutocorrelation:
    def test_covers_three_quarters_of_block(self):
        corr = normalized_autocorrelation(make_sine(441.0, 1.0, BLOCK, SAMPLE_RATE))
        assert corr.shape == (max_lag_for(BLOCK),) == (1536,)

    def test_lag_zero_is_one(self):
        corr = normalized_autocorrelation(make_white_noise(512, seed=3))
        assert corr[0] == pytest.approx(1.0)
        assert np.all(np.abs(corr) <= 1.0 + 1e-9)

    def test_matches_direct_sum(self):
        data = make_white_noise(64, seed=11)
        corr = normalized_autocorrelation(data)
        direct = np.array([np.dot(data[: 64 - k], data[k:]) for k in range(48)])
        np.testing.assert_allclose(corr, direct / direct[0], atol=1e-12)

    def test_silent_block_gives_zeros_not_nan(self):
        corr = normalized_autocorrelation(np.zeros(256))
        assert corr.shape == (192,)
        assert np.all(corr == 0.0)

    def test_non_finite_energy_gives_zeros(self):
        data = np.ones(16)
        data[3] = np.inf
        corr = normalized_autocorrelation(data)
        assert np.all(corr == 0.0)

    def test_explicit_max_lag(self):
        corr = normalized_autocorrelation(np.ones(10), max_lag=4)
        np.testing.assert_allclose(corr, [1.0, 0.9, 0.8, 0.7])

    @pytest.mark.parametrize("n", [0, 1])
    def test_tiny_blocks(self, n):
        assert normalized_autocorrelation(np.ones(n)).size == 0


class TestPeakSearch:
    def test_symmetric_peak_is_not_shifted(self):
        corr = np.array([1.0, 0.2, 0.9, 0.2, 0.1])
        np.testing.assert_allclose(find_autocorrelation_peaks(corr, 8), [2.0])

    def test_parabolic_refinement(self):
        corr = np.array([1.0, 0.5, 0.9, 0.7, 0.0])
        peaks = find_autocorrelation_peaks(corr, 100)
        np.testing.assert_allclose(peaks, [2.0 + 1.0 / 6.0])

    def test_peak_below_decayed_threshold_is_ignored(self):
        # At k = 3 with n = 10 the threshold is 0.3 * 7 / 10 = 0.21
        corr = np.array([1.0, 0.0, 0.2, 0.0, 0.0])
        assert find_autocorrelation_peaks(corr, 10).size == 0

    def test_plateau_is_not_a_peak(self):
        corr = np.array([1.0, 0.0, 0.8, 0.8, 0.0])
        assert find_autocorrelation_peaks(corr, 100).size == 0

    def test_too_short(self):
        assert find_autocorrelation_peaks(np.array([1.0, 0.5]), 10).size == 0


class TestPeriodFromPeaks:
    def test_regular_spacing(self):
        estimate = period_from_peaks(np.array([10.0, 20.0, 30.0]))
        assert estimate is not None
        assert estimate.period == pytest.approx(10.0)
        assert estimate.peak_count == 3
        assert estimate.spread == pytest.approx(0.0)

    def test_single_peak_measures_from_lag_zero(self):
        estimate = period_from_peaks(np.array([12.5]))
        assert estimate is not None
        assert estimate.period == pytest.approx(12.5)

    def test_irregular_spacing_is_rejected(self):
        assert period_from_peaks(np.array([10.0, 20.0, 35.0])) is None

    def test_spacing_within_tolerance_is_kept(self):
        estimate = period_from_peaks(np.array([10.0, 20.2, 30.0]))
        assert estimate is not None
        assert estimate.period == pytest.approx(10.0)

    def test_no_peaks(self):
        assert period_from_peaks(np.zeros(0)) is None


class TestEstimatePeriod:
    @pytest.mark.parametrize("freq_hz", [220.5, 441.0, 1000.0, 2000.0])
    def test_pure_sine(self, freq_hz):
        estimate = estimate_period(make_sine(freq_hz, 0.8, BLOCK, SAMPLE_RATE))
        assert estimate is not None
        assert estimate.period == pytest.approx(SAMPLE_RATE / freq_hz, rel=0.01)
        assert estimate.frequency(SAMPLE_RATE) == pytest.approx(freq_hz, rel=0.01)

    @pytest.mark.parametrize("phase", [0.0, 0.7, 2.1, 4.0])
    def test_phase_does_not_matter(self, phase):
        estimate = estimate_period(make_sine(441.0, 1.0, BLOCK, SAMPLE_RATE, phase_rad=phase))
        assert estimate is not None
        assert estimate.period == pytest.approx(100.0, rel=0.01)

    def test_amplitude_does_not_matter(self):
        quiet = estimate_period(make_sine(441.0, 0.01, BLOCK, SAMPLE_RATE))
        loud = estimate_period(make_sine(441.0, 1.0, BLOCK, SAMPLE_RATE))
        assert quiet is not None and loud is not None
        assert quiet.period == pytest.approx(loud.period, rel=1e-9)

    def test_square_wave(self):
        estimate = estimate_period(make_square(80.0, 0.5, BLOCK))
        assert estimate is not None
        assert estimate.period == pytest.approx(80.0, rel=0.01)

    @pytest.mark.parametrize("seed", range(10))
    def test_white_noise_is_unreliable(self, seed):
        assert estimate_period(make_white_noise(BLOCK, seed=seed)) is None

    def test_dc_block_is_unreliable(self):
        assert estimate_period(np.full(BLOCK, 0.5)) is None

    def test_silence_is_unreliable(self):
        assert estimate_period(np.zeros(BLOCK)) is None

    @pytest.mark.parametrize("n", [0, 1, 2, 3, 4])
    def test_tiny_blocks_do_not_crash(self, n):
        assert estimate_period(np.ones(n)) is None

    @pytest.mark.parametrize(
        "signal",
        [
            make_sine(689.0625, 1.0, 512, SAMPLE_RATE),
            make_sine(1500.0, 0.3, 512, SAMPLE_RATE, phase_rad=1.0),
            make_square(40.0, 1.0, 512),
        ],
    )
    def test_matches_reference_loop(self, signal):
        estimate = estimate_period(signal)
        expected = reference_estimate_period(signal)
        assert expected is not None
        assert estimate is not None
        assert estimate.period == pytest.approx(expected, rel=1e-6)
