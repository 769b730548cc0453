"""Left/right asymmetry (peak force, impulses, time to peak, landing force)."""
from typing import Dict, List, Optional

import numpy as np

from ..data.types import AsymmetryKind, AsymmetryResult, ConditionedSignal, Phase
from ..signal.processing import impulse


def asymmetry_percentage(left: float, right: float) -> float:
    """|L - R| / (L + R) * 100; 0 when there is no load."""
    total = left + right
    if total == 0:
        return 0.0
    return float(abs(left - right) / total * 100.0)


def asymmetry_index(left: float, right: float) -> float:
    """Signed (R - L) / (L + R) * 100. Negative = left dominant; 0 when there is no load."""
    total = left + right
    if total == 0:
        return 0.0
    return float((right - left) / total * 100.0)


def compute_asymmetry(left: float, right: float, kind: AsymmetryKind, metric: str = "") -> AsymmetryResult:
    return AsymmetryResult(
        kind=kind,
        left_value=float(left),
        right_value=float(right),
        percentage=asymmetry_percentage(left, right),
        asymmetry_index=asymmetry_index(left, right),
        metric=metric,
    )


def _window(windows: Dict[Phase, tuple[int, int]], phase: Phase) -> Optional[slice]:
    if phase not in windows:
        return None
    start, end = windows[phase]
    if end <= start:
        return None
    return slice(start, end)


def compute_phase_asymmetries(
    signal: ConditionedSignal,
    windows: Dict[Phase, tuple[int, int]],
) -> List[AsymmetryResult]:
    """Force, impulse, temporal and landing asymmetries for whichever phases exist.

    Metric names are the output keys without the _pct/_index suffix.
    """
    out: List[AsymmetryResult] = []
    left_f = signal.left
    right_f = signal.right
    if len(left_f) != len(signal.total) or len(right_f) != len(signal.total):
        return out

    sl = _window(windows, Phase.PROPULSION)
    if sl is not None:
        out.append(compute_asymmetry(
            float(np.max(left_f[sl])), float(np.max(right_f[sl])), AsymmetryKind.FORCE, "peak_force_asymmetry"
        ))
        out.append(compute_asymmetry(
            impulse(left_f[sl], signal.sample_rate),
            impulse(right_f[sl], signal.sample_rate),
            AsymmetryKind.IMPULSE,
            "propulsion_impulse_asymmetry",
        ))
        # Time to each side's peak, measured from propulsion start
        t_left = int(np.argmax(left_f[sl])) / signal.sample_rate
        t_right = int(np.argmax(right_f[sl])) / signal.sample_rate
        out.append(compute_asymmetry(t_left, t_right, AsymmetryKind.TEMPORAL, "time_to_peak_force_asymmetry"))

    sl = _window(windows, Phase.LANDING)
    if sl is not None:
        out.append(compute_asymmetry(
            float(np.max(left_f[sl])), float(np.max(right_f[sl])), AsymmetryKind.FORCE, "landing_force_asymmetry"
        ))
    return out
