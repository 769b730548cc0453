"""Smoothing and low-pass filters for force signals. All keep the input length."""
import numpy as np
from scipy.signal import butter, filtfilt, savgol_filter

from ..errors import InvalidParameterError

SAVGOL_WINDOW_MS = 20.0
SAVGOL_POLY = 3


def moving_average(signal: np.ndarray, window: int) -> np.ndarray:
    """Centered moving average; edge samples average over the part of the window that exists.

    Sample i averages signal[i - window // 2 : i + window // 2 + 1], clipped to
    the array bounds, so even windows are widened by one sample.
    """
    if window < 1:
        raise InvalidParameterError(f"window must be >= 1, got {window}")
    x = np.asarray(signal, dtype=float)
    n = len(x)
    if n == 0 or window == 1:
        return x.copy()
    half = window // 2
    csum = np.concatenate(([0.0], np.cumsum(x)))
    idx = np.arange(n)
    lo = np.maximum(idx - half, 0)
    hi = np.minimum(idx + half + 1, n)
    return (csum[hi] - csum[lo]) / (hi - lo)


def exponential_lowpass(signal: np.ndarray, alpha: float) -> np.ndarray:
    """Single-pole filter y[i] = alpha * x[i] + (1 - alpha) * y[i-1], with y[0] = x[0]."""
    if not 0.0 < alpha <= 1.0:
        raise InvalidParameterError(f"alpha must be in (0, 1], got {alpha}")
    x = np.asarray(signal, dtype=float)
    y = np.empty_like(x)
    if len(x) == 0:
        return y
    y[0] = x[0]
    for i in range(1, len(x)):
        y[i] = alpha * x[i] + (1.0 - alpha) * y[i - 1]
    return y


def butterworth_lowpass(signal: np.ndarray, sample_rate: float, cutoff_hz: float, order: int = 4) -> np.ndarray:
    """Zero-phase low-pass Butterworth filter.

    Args:
        signal: 1D force (or other) signal.
        sample_rate: Sampling frequency in Hz.
        cutoff_hz: Cutoff frequency in Hz (e.g. 50 or 100).
        order: Butterworth order (default 4).

    Returns:
        Filtered signal, same shape as input. A copy of the input when the
        cutoff is at or above Nyquist or the signal is too short for filtfilt.
    """
    if sample_rate <= 0 or cutoff_hz <= 0:
        raise InvalidParameterError(f"sample_rate and cutoff_hz must be positive, got {sample_rate}, {cutoff_hz}")
    x = np.asarray(signal, dtype=float)
    nyq = 0.5 * sample_rate
    normal_cutoff = cutoff_hz / nyq
    if normal_cutoff >= 1.0:
        return x.copy()
    b, a = butter(order, normal_cutoff, btype="low", analog=False)
    # filtfilt needs more than padlen = 3 * max(len(a), len(b)) samples
    if len(x) <= 3 * max(len(a), len(b)):
        return x.copy()
    return filtfilt(b, a, x)


def savgol_smooth(
    signal: np.ndarray,
    sample_rate: float,
    window_ms: float = SAVGOL_WINDOW_MS,
    poly: int = SAVGOL_POLY,
) -> np.ndarray:
    """Savitzky-Golay smoothing, used before differentiating for peak RFD."""
    x = np.asarray(signal, dtype=float)
    if len(x) < 3:
        return x.copy()
    w = max(3, int(sample_rate * window_ms / 1000.0) | 1)
    if w > len(x):
        w = len(x) if len(x) % 2 else len(x) - 1
    if poly >= w:
        poly = max(1, w - 1)
    return savgol_filter(x, window_length=w, polyorder=poly, mode="nearest")
