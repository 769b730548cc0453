"""Signal conditioning: filters and derived sequences."""
from .filter import butterworth_lowpass, exponential_lowpass, moving_average, savgol_smooth
from .processing import baseline_correction, condition, derivative, detect_noise, impulse

__all__ = [
    "baseline_correction",
    "butterworth_lowpass",
    "condition",
    "derivative",
    "detect_noise",
    "exponential_lowpass",
    "impulse",
    "moving_average",
    "savgol_smooth",
]
