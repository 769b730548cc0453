"""Derived sequences (baseline, derivative, noise mask, impulse) and the conditioning chain."""
import logging

import numpy as np

from ..config import TestParameters
from ..data.types import ConditionedSignal, ForceTrial
from ..errors import InvalidParameterError
from .filter import butterworth_lowpass, exponential_lowpass, moving_average

logger = logging.getLogger(__name__)

BASELINE_MAX_SAMPLES = 100


def baseline_correction(signal: np.ndarray) -> np.ndarray:
    """Subtract the mean of the first min(100, n // 4) samples from every sample.

    Sequences shorter than 4 samples have no quiet segment and are returned
    unchanged (as a copy).
    """
    x = np.asarray(signal, dtype=float)
    n_base = min(BASELINE_MAX_SAMPLES, len(x) // 4)
    if n_base == 0:
        return x.copy()
    return x - float(np.mean(x[:n_base]))


def derivative(signal: np.ndarray, sample_rate: float) -> np.ndarray:
    """First difference divided by the sampling interval; one sample shorter than the input."""
    if sample_rate <= 0:
        raise InvalidParameterError(f"sample_rate must be positive, got {sample_rate}")
    x = np.asarray(signal, dtype=float)
    if len(x) < 2:
        return np.zeros(0)
    return np.diff(x) * sample_rate


def detect_noise(signal: np.ndarray, threshold: float) -> np.ndarray:
    """Flag interior samples where either adjacent first difference exceeds threshold.

    The first and last samples are never flagged.
    """
    x = np.asarray(signal, dtype=float)
    mask = np.zeros(len(x), dtype=bool)
    if len(x) < 3:
        return mask
    jumps = np.abs(np.diff(x)) > threshold
    mask[1:-1] = jumps[:-1] | jumps[1:]
    return mask


def impulse(signal: np.ndarray, sample_rate: float) -> float:
    """Rectangle-rule integral: sum(signal) * dt. Slice before calling for a phase impulse."""
    if sample_rate <= 0:
        raise InvalidParameterError(f"sample_rate must be positive, got {sample_rate}")
    x = np.asarray(signal, dtype=float)
    if len(x) == 0:
        return 0.0
    return float(np.sum(x)) / sample_rate


def _smooth(x: np.ndarray, sample_rate: float, params: TestParameters) -> np.ndarray:
    if params.filter_cutoff_hz is not None:
        y = butterworth_lowpass(x, sample_rate, params.filter_cutoff_hz)
    elif params.smoothing_window > 1:
        y = moving_average(x, params.smoothing_window)
    else:
        y = np.asarray(x, dtype=float).copy()
    if params.lowpass_alpha is not None:
        y = exponential_lowpass(y, params.lowpass_alpha)
    return y


def condition(trial: ForceTrial, params: TestParameters) -> ConditionedSignal:
    """Apply the configured filter chain to left, right and total force.

    The noise mask is computed on the raw total force so filtering cannot
    hide spikes. COP channels pass through unchanged.
    """
    if params.filter_cutoff_hz is not None:
        logger.debug("Conditioning with Butterworth low-pass at %.1f Hz", params.filter_cutoff_hz)
    elif params.smoothing_window > 1:
        logger.debug("Conditioning with %d-sample moving average", params.smoothing_window)
    if params.lowpass_alpha is not None:
        logger.debug("Applying exponential low-pass, alpha=%.3f", params.lowpass_alpha)

    raw_total = trial.force.astype(float)
    left = _smooth(trial.left_force, trial.sample_rate, params)
    right = _smooth(trial.right_force, trial.sample_rate, params)
    total = _smooth(raw_total, trial.sample_rate, params)
    return ConditionedSignal(
        total=total,
        left=left,
        right=right,
        raw_total=raw_total,
        noise_mask=detect_noise(raw_total, params.noise_threshold_n),
        sample_rate=trial.sample_rate,
        cop=trial.cop,
    )
