"""Tests for filters and signal processing."""
import numpy as np
import pytest

from forceplate.config import TestType, default_parameters
from forceplate.errors import InvalidParameterError
from forceplate.signal import (
    baseline_correction,
    butterworth_lowpass,
    condition,
    derivative,
    detect_noise,
    exponential_lowpass,
    impulse,
    moving_average,
    savgol_smooth,
)

from conftest import make_trial


class TestFilters:
    """Tests for smoothing filters."""

    def test_moving_average_shrinks_at_edges(self):
        """Test edge samples average over the available part of the window."""
        out = moving_average(np.array([1.0, 2.0, 3.0, 4.0, 5.0]), 3)
        np.testing.assert_allclose(out, [1.5, 2.0, 3.0, 4.0, 4.5])

    def test_moving_average_preserves_length(self):
        x = np.random.default_rng(1).normal(size=37)
        assert len(moving_average(x, 6)) == 37

    def test_moving_average_window_one_is_identity(self):
        x = np.array([3.0, 1.0, 2.0])
        np.testing.assert_array_equal(moving_average(x, 1), x)

    def test_moving_average_invalid_window(self):
        with pytest.raises(InvalidParameterError):
            moving_average(np.ones(5), 0)

    def test_exponential_first_sample(self):
        """Test y[0] = x[0] and the recurrence."""
        out = exponential_lowpass(np.array([10.0, 0.0, 0.0]), 0.5)
        np.testing.assert_allclose(out, [10.0, 5.0, 2.5])

    @pytest.mark.parametrize("alpha", [0.0, 1.5])
    def test_exponential_invalid_alpha(self, alpha):
        with pytest.raises(InvalidParameterError):
            exponential_lowpass(np.ones(3), alpha)

    def test_butterworth_keeps_constant(self):
        x = np.full(500, 800.0)
        np.testing.assert_allclose(butterworth_lowpass(x, 1000.0, 50.0), x, rtol=1e-6)

    def test_butterworth_above_nyquist_is_copy(self):
        x = np.arange(100.0)
        out = butterworth_lowpass(x, 100.0, 80.0)
        np.testing.assert_array_equal(out, x)
        assert out is not x

    def test_butterworth_attenuates_high_frequency(self):
        t = np.arange(2000) / 1000.0
        noisy = 800 + 50 * np.sin(2 * np.pi * 200 * t)
        out = butterworth_lowpass(noisy, 1000.0, 20.0)
        assert np.std(out[200:-200]) < 1.0

    def test_savgol_preserves_linear_ramp(self):
        x = np.linspace(0.0, 100.0, 101)
        np.testing.assert_allclose(savgol_smooth(x, 1000.0)[10:-10], x[10:-10], atol=1e-8)


class TestProcessing:
    """Tests for baseline, derivative, noise and impulse."""

    def test_baseline_removes_known_offset(self):
        """Test that an added offset c is removed exactly."""
        rng = np.random.default_rng(3)
        x = rng.normal(0, 1, 1000)
        np.testing.assert_allclose(baseline_correction(x + 37.5), baseline_correction(x), atol=1e-9)

    def test_baseline_uses_first_quarter_when_short(self):
        x = np.array([2.0, 2.0, 10.0, 10.0, 10.0, 10.0, 10.0, 10.0])
        np.testing.assert_allclose(baseline_correction(x), x - 2.0)

    def test_derivative_is_one_shorter(self):
        out = derivative(np.array([0.0, 1.0, 3.0]), 1000.0)
        np.testing.assert_allclose(out, [1000.0, 2000.0])

    def test_derivative_invalid_rate(self):
        with pytest.raises(InvalidParameterError):
            derivative(np.ones(3), 0.0)

    def test_detect_noise_never_flags_edges(self):
        mask = detect_noise(np.array([100.0, 0.0, 0.0, 0.0, 100.0]), 10.0)
        assert mask.tolist() == [False, True, False, True, False]

    def test_detect_noise_interior_spike(self):
        mask = detect_noise(np.array([0.0, 100.0, 0.0, 0.0]), 10.0)
        assert mask.tolist() == [False, True, True, False]

    def test_impulse_is_sum_times_dt(self):
        assert impulse(np.ones(4), 2.0) == pytest.approx(2.0)
        assert impulse(np.array([]), 1000.0) == 0.0


class TestCondition:
    """Tests for the conditioning chain."""

    def test_channels_filtered_identically(self):
        ratio = np.concatenate([np.ones(300), np.linspace(1.0, 2.0, 300)])
        trial = make_trial(ratio, TestType.COUNTERMOVEMENT_JUMP, left_share=0.6)
        signal = condition(trial, default_parameters(TestType.COUNTERMOVEMENT_JUMP))
        np.testing.assert_allclose(signal.left + signal.right, signal.total)
        np.testing.assert_allclose(signal.raw_total, trial.force)
        assert len(signal) == trial.sample_count

    def test_noise_mask_uses_raw_force(self):
        ratio = np.ones(500)
        ratio[250] = 1.5
        trial = make_trial(ratio, TestType.COUNTERMOVEMENT_JUMP)
        signal = condition(trial, default_parameters(TestType.COUNTERMOVEMENT_JUMP))
        assert signal.noise_mask[249] and signal.noise_mask[250] and signal.noise_mask[251]
        assert signal.noise_mask.sum() == 3

    def test_exponential_stage(self):
        ratio = np.ones(400)
        trial = make_trial(ratio, TestType.SQUAT_JUMP)
        params = default_parameters(TestType.SQUAT_JUMP, smoothing_window=1, lowpass_alpha=0.2)
        signal = condition(trial, params)
        np.testing.assert_allclose(signal.total, trial.force)
