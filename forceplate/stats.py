"""Descriptive statistics over ordered force sequences.

Every aggregate returns 0.0 on an empty sequence instead of failing, so short
or missing windows degrade to a defined value. Invalid arguments (percentile
outside [0, 100], mismatched lengths) raise InvalidParameterError.
"""
from typing import Sequence, Tuple, Union

import numpy as np

from .errors import InvalidParameterError

ArrayLike = Union[Sequence[float], np.ndarray]

DEFAULT_IQR_K = 1.5
DEFAULT_Z_THRESHOLD = 3.0


def _as_array(values: ArrayLike) -> np.ndarray:
    return np.asarray(values, dtype=float).ravel()


def mean(values: ArrayLike) -> float:
    x = _as_array(values)
    if x.size == 0:
        return 0.0
    return float(np.mean(x))


def standard_deviation(values: ArrayLike) -> float:
    """Sample standard deviation (divisor n-1); 0.0 for fewer than two values."""
    x = _as_array(values)
    if x.size < 2:
        return 0.0
    return float(np.std(x, ddof=1))


def rms(values: ArrayLike) -> float:
    x = _as_array(values)
    if x.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(x * x)))


def coefficient_of_variation(values: ArrayLike) -> float:
    """std / mean; 0.0 when the mean is zero."""
    m = mean(values)
    if m == 0:
        return 0.0
    return standard_deviation(values) / m


def percentile(values: ArrayLike, p: float) -> float:
    """Percentile with linear interpolation between order statistics.

    Raises:
        InvalidParameterError: If p is not in [0, 100].
    """
    if not 0.0 <= p <= 100.0:
        raise InvalidParameterError(f"percentile must be in [0, 100], got {p}")
    x = _as_array(values)
    if x.size == 0:
        return 0.0
    return float(np.percentile(x, p))


def find_max(values: ArrayLike) -> Tuple[float, int]:
    """(value, index) of the first maximum; (0.0, -1) when empty."""
    x = _as_array(values)
    if x.size == 0:
        return 0.0, -1
    idx = int(np.argmax(x))
    return float(x[idx]), idx


def find_min(values: ArrayLike) -> Tuple[float, int]:
    """(value, index) of the first minimum; (0.0, -1) when empty."""
    x = _as_array(values)
    if x.size == 0:
        return 0.0, -1
    idx = int(np.argmin(x))
    return float(x[idx]), idx


def correlation(x: ArrayLike, y: ArrayLike) -> float:
    """Pearson correlation; 0.0 for fewer than two pairs or zero variance."""
    a = _as_array(x)
    b = _as_array(y)
    if a.size != b.size:
        raise InvalidParameterError(f"length mismatch: {a.size} != {b.size}")
    if a.size < 2:
        return 0.0
    da = a - a.mean()
    db = b - b.mean()
    denom = float(np.sqrt(np.sum(da * da) * np.sum(db * db)))
    if denom == 0:
        return 0.0
    return float(np.sum(da * db) / denom)


def linear_slope(x: ArrayLike, y: ArrayLike) -> float:
    """Least-squares slope of y on x; 0.0 when x has no spread."""
    a = _as_array(x)
    b = _as_array(y)
    if a.size != b.size:
        raise InvalidParameterError(f"length mismatch: {a.size} != {b.size}")
    if a.size < 2:
        return 0.0
    da = a - a.mean()
    denom = float(np.sum(da * da))
    if denom == 0:
        return 0.0
    return float(np.sum(da * (b - b.mean())) / denom)


def detect_outliers_iqr(values: ArrayLike, k: float = DEFAULT_IQR_K) -> np.ndarray:
    """Boolean mask of values outside [Q1 - k*IQR, Q3 + k*IQR].

    All-false for fewer than 4 values. Quartiles use the same linear
    interpolation as percentile().
    """
    if k < 0:
        raise InvalidParameterError(f"k must be non-negative, got {k}")
    x = _as_array(values)
    if x.size < 4:
        return np.zeros(x.size, dtype=bool)
    q1, q3 = np.percentile(x, [25.0, 75.0])
    iqr = q3 - q1
    return (x < q1 - k * iqr) | (x > q3 + k * iqr)


def detect_outliers_zscore(values: ArrayLike, threshold: float = DEFAULT_Z_THRESHOLD) -> np.ndarray:
    """Boolean mask of |z| > threshold using the sample standard deviation.

    All-false for fewer than 2 values or zero spread.
    """
    if threshold <= 0:
        raise InvalidParameterError(f"threshold must be positive, got {threshold}")
    x = _as_array(values)
    sd = standard_deviation(x)
    if x.size < 2 or sd == 0:
        return np.zeros(x.size, dtype=bool)
    z = (x - x.mean()) / sd
    return np.abs(z) > threshold
