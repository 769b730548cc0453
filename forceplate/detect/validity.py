"""Trial validity checks: phase completeness, take-off count, flight duration, protocol settings."""
from typing import Optional, Sequence

import numpy as np
from scipy.signal import detrend

from .. import stats
from ..config import TestParameters, TestType
from ..data.types import ConditionedSignal, Phase, PhaseEvent, TrialValidity
from .phases import phase_windows

MAX_NOISE_RMS_N = 10.0
MIN_DURATION_RATIO = 0.5


def count_takeoffs(force: np.ndarray, threshold: float) -> int:
    """Number of descending crossings of threshold."""
    force = np.asarray(force, dtype=float)
    if len(force) < 2:
        return 0
    return int(np.count_nonzero((force[:-1] >= threshold) & (force[1:] < threshold)))


def standing_noise_rms(signal: ConditionedSignal, start: int, end: int) -> float:
    """RMS (N) of the linearly detrended raw total force over [start, end); 0.0 below 3 samples."""
    seg = np.asarray(signal.raw_total[max(0, start):end], dtype=float)
    if len(seg) < 3:
        return 0.0
    return stats.rms(detrend(seg))


def validate_trial(
    signal: ConditionedSignal,
    events: Sequence[PhaseEvent],
    params: TestParameters,
    bodyweight: float,
    take_off_threshold: Optional[float] = None,
) -> TrialValidity:
    """Check phase completeness and protocol limits. Return flags only (no exception)."""
    flags: list = []
    n = len(signal)
    fs = signal.sample_rate
    test_type = params.test_type

    if n < MIN_DURATION_RATIO * params.total_samples:
        flags.append("short_recording")
    weighing = max(1, int(params.weighing_s * fs))
    if not events:
        if standing_noise_rms(signal, 0, min(n, weighing)) > MAX_NOISE_RMS_N:
            flags.append("excessive_noise")
        flags.append("insufficient_data")
        return TrialValidity(is_valid=False, flags=flags)

    windows = phase_windows(events, n)
    s0, s1 = windows[Phase.STANDING]
    if standing_noise_rms(signal, s0, min(s1, s0 + weighing)) > MAX_NOISE_RMS_N:
        flags.append("excessive_noise")

    if test_type.is_jump:
        if Phase.FLIGHT not in windows:
            flags.append("no_takeoff")
        elif Phase.LANDING not in windows:
            flags.append("no_landing")
        elif Phase.RECOVERY not in windows:
            flags.append("no_recovery")

        if take_off_threshold is None:
            take_off_threshold = max(params.force_threshold_n, params.takeoff_ratio * bodyweight)
        if count_takeoffs(signal.total, take_off_threshold) > 1:
            flags.append("multiple_takeoff")

        if Phase.FLIGHT in windows and Phase.LANDING in windows:
            t_flight = (windows[Phase.LANDING][0] - windows[Phase.FLIGHT][0]) / fs
            if t_flight < params.flight_time_min_s:
                flags.append("short_flight")
            if t_flight > params.flight_time_max_s:
                flags.append("long_flight")

    if test_type is TestType.COUNTERMOVEMENT_JUMP and Phase.UNLOADING in windows:
        u0, u1 = windows[Phase.UNLOADING]
        depth = bodyweight - float(np.min(signal.total[u0:max(u1, u0 + 1)]))
        if depth < float(params.setting("minCounterMovementDepth")):
            flags.append("shallow_countermovement")
        if Phase.FLIGHT in windows:
            preparation = (windows[Phase.FLIGHT][0] - u0) / fs
            if preparation > float(params.setting("maxPreparationTime")):
                flags.append("long_preparation")

    if test_type is TestType.SQUAT_JUMP and Phase.PROPULSION in windows:
        p0 = windows[Phase.PROPULSION][0]
        hold = int(float(params.setting("holdingTime")) * fs)
        seg = signal.total[max(0, p0 - hold):p0]
        if len(seg) and bodyweight - float(np.min(seg)) > float(params.setting("maxHoldingVariation")):
            flags.append("countermovement_detected")

    if test_type is TestType.DROP_JUMP and Phase.BRAKING in windows and Phase.FLIGHT in windows:
        contact = (windows[Phase.FLIGHT][0] - windows[Phase.BRAKING][0]) / fs
        if contact > float(params.setting("maxGroundContactTime")):
            flags.append("contact_time_exceeded")

    if test_type is TestType.ISOMETRIC_PULL:
        if Phase.PROPULSION not in windows:
            flags.append("no_pull")
        else:
            p0, p1 = windows[Phase.PROPULSION]
            if (p1 - p0) / fs < float(params.setting("holdTime")):
                flags.append("short_hold")

    is_valid = len(flags) == 0
    return TrialValidity(is_valid=is_valid, flags=flags)
