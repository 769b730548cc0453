"""Bodyweight, mass, and quiet-phase std from a weighing window."""
import numpy as np

from ..config import G


def compute_baseline(
    force: np.ndarray,
    sample_rate: float,
    weighing_seconds: float = 1.0,
    from_end: bool = False,
) -> tuple[float, float, float]:
    """Compute bodyweight (N), mass (kg), and sigma_quiet from a weighing window.

    Uses mean and std of total vertical force over the first weighing_seconds
    (or the last, when from_end is set: drop jumps start with an unloaded
    plate and the athlete only stands on it after landing); mass = BW / g.

    Returns:
        (bodyweight_N, mass_kg, sigma_quiet_N). All zero for an empty signal.
    """
    force = np.asarray(force, dtype=float)
    n = len(force)
    n_weighing = min(int(sample_rate * weighing_seconds), n)
    if n_weighing <= 0:
        n_weighing = min(int(sample_rate * 0.1), n)
    if n_weighing <= 0:
        return 0.0, 0.0, 0.0
    seg = force[n - n_weighing:] if from_end else force[:n_weighing]
    bodyweight = float(np.mean(seg))
    mass = bodyweight / G
    sigma_quiet = float(np.std(seg)) if len(seg) > 1 else 0.0
    return bodyweight, mass, sigma_quiet
