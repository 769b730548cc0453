"""Centre-of-mass kinematics from vertical force, and the two jump-height formulas."""
from typing import Optional

import numpy as np
from scipy.integrate import cumulative_trapezoid

from ..config import G


def compute_kinematics(
    force: np.ndarray,
    sample_rate: float,
    bodyweight: float,
    start_idx: Optional[int],
    end_idx: Optional[int],
    initial_velocity: float = 0.0,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Compute vertical COM velocity, acceleration and displacement over [start_idx, end_idx].

    a(t) = (F(t) - BW) / m. Velocity accumulates a * dt sample by sample from
    initial_velocity at start_idx, so v at end_idx equals v0 + net impulse / m
    (the same rectangle-rule impulse as signal.processing.impulse). Displacement
    integrates velocity with the trapezoid rule from zero at start_idx.

    Returns:
        (velocity, acceleration, displacement), all length len(force); zero
        outside the window. Units: m/s, m/s^2, m.
    """
    force = np.asarray(force, dtype=float)
    n = len(force)
    if bodyweight <= 0:
        return np.zeros(n), np.zeros(n), np.zeros(n)
    mass = bodyweight / G
    dt = 1.0 / sample_rate
    a = (force - bodyweight) / mass

    v = np.zeros(n)
    s = np.zeros(n)
    if start_idx is None or end_idx is None:
        return v, a, s
    start = max(0, start_idx)
    end = min(end_idx + 1, n)
    if start >= end:
        return v, a, s

    v_seg = initial_velocity + np.cumsum(a[start:end]) * dt
    v[start:end] = v_seg
    if len(v_seg) > 1:
        s[start:end] = cumulative_trapezoid(v_seg, dx=dt, initial=0)
    return v, a, s


def take_off_velocity(
    force: np.ndarray,
    sample_rate: float,
    bodyweight: float,
    start_idx: int,
    end_idx: int,
    initial_velocity: float = 0.0,
) -> float:
    """v0 + sum(F - BW) * dt / m over [start_idx, end_idx)."""
    force = np.asarray(force, dtype=float)
    mass = bodyweight / G
    seg = force[max(0, start_idx):max(0, end_idx)]
    return float(initial_velocity + np.sum(seg - bodyweight) / sample_rate / mass)


def jump_height_from_flight_time(flight_time_s: float) -> float:
    """h = g * t^2 / 8 (symmetric ballistic flight)."""
    return G * flight_time_s ** 2 / 8.0


def jump_height_from_velocity(take_off_velocity_m_s: float) -> float:
    """h = v^2 / (2g) (impulse-momentum method)."""
    return take_off_velocity_m_s ** 2 / (2.0 * G)
