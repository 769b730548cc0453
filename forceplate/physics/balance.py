"""Centre-of-pressure sway metrics for balance tests."""
from typing import Dict, Optional

import numpy as np
from scipy.stats import chi2

from ..data.types import AsymmetryKind, AsymmetryResult, CopTraces
from .asymmetry import compute_asymmetry

ELLIPSE_CONFIDENCE = 0.95


def combined_cop(cop: CopTraces, left_force: np.ndarray, right_force: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Force-weighted COP of both plates; the plain mean where total force is zero."""
    left_force = np.clip(np.asarray(left_force, dtype=float), 0.0, None)
    right_force = np.clip(np.asarray(right_force, dtype=float), 0.0, None)
    total = left_force + right_force
    safe = np.where(total > 0, total, 1.0)
    wl = np.where(total > 0, left_force / safe, 0.5)
    wr = 1.0 - wl
    x = wl * cop.left_x + wr * cop.right_x
    y = wl * cop.left_y + wr * cop.right_y
    return x, y


def path_length(x: np.ndarray, y: np.ndarray) -> float:
    if len(x) < 2:
        return 0.0
    return float(np.sum(np.hypot(np.diff(x), np.diff(y))))


def ellipse_area(x: np.ndarray, y: np.ndarray, confidence: float = ELLIPSE_CONFIDENCE) -> float:
    """Area (mm^2) of the prediction ellipse covering `confidence` of the COP points."""
    if len(x) < 3:
        return 0.0
    cov = np.cov(np.vstack([x, y]))
    det = float(np.linalg.det(cov))
    if det <= 0:
        return 0.0
    return float(np.pi * chi2.ppf(confidence, 2) * np.sqrt(det))


def compute_balance_metrics(
    cop: Optional[CopTraces],
    left_force: np.ndarray,
    right_force: np.ndarray,
    sample_rate: float,
    single_leg: bool = False,
) -> tuple[Dict[str, float], Optional[AsymmetryResult]]:
    """COP range, path, velocity and ellipse area, plus left/right path asymmetry.

    Returns ({}, None) when no COP traces were recorded. The path asymmetry is
    skipped for single-leg stances, where one plate carries no meaningful COP.
    """
    if cop is None or len(cop) < 2:
        return {}, None
    x, y = combined_cop(cop, left_force, right_force)
    duration = (len(x) - 1) / sample_rate
    length = path_length(x, y)
    out = {
        "cop_range_ml_mm": float(np.ptp(x)),
        "cop_range_ap_mm": float(np.ptp(y)),
        "cop_path_length_mm": length,
        "cop_velocity_mm_s": length / duration if duration > 0 else 0.0,
        "cop_area_mm2": ellipse_area(x, y),
    }
    if single_leg:
        return out, None
    spatial = compute_asymmetry(
        path_length(cop.left_x, cop.left_y),
        path_length(cop.right_x, cop.right_y),
        AsymmetryKind.SPATIAL,
        "cop_path_asymmetry",
    )
    return out, spatial
