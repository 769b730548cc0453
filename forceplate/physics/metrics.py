"""Metrics engine: named metric set from conditioned force, phase events and test parameters.

Metrics whose required phase is missing are left out of the metric map and
recorded in MetricsReport.unavailable with a reason; they are never set to 0.
"""
import logging
import math
from typing import Dict, List, Optional, Sequence

import numpy as np

from .. import stats
from ..config import G, SUPPORTED_METRICS, TestParameters, TestType
from ..data.types import (
    AsymmetryResult,
    ConditionedSignal,
    JumpHeightMethod,
    MetricsReport,
    Phase,
    PhaseEvent,
    RfdMethod,
)
from ..detect.baseline import compute_baseline
from ..detect.phases import find_movement_onset, onset_tolerance, phase_windows
from ..signal.filter import savgol_smooth
from ..signal.processing import baseline_correction, derivative, impulse
from .asymmetry import compute_phase_asymmetries
from .balance import compute_balance_metrics
from .kinematics import (
    compute_kinematics,
    jump_height_from_flight_time,
    jump_height_from_velocity,
    take_off_velocity,
)

logger = logging.getLogger(__name__)

IMTP_WINDOWS_MS = (50, 100, 200)
IMTP_SAMPLE_POINTS_MS = (100, 200)

Windows = Dict[Phase, tuple[int, int]]


def _requires(phase: Phase) -> str:
    return f"requires phase: {phase.value}"


def _early_rfd(
    force: np.ndarray,
    start: int,
    stop: int,
    sample_rate: float,
    window_ms: float,
    method: RfdMethod,
) -> Optional[float]:
    """RFD over [start, start + window_ms], clipped at stop; None with fewer than two samples."""
    k = int(round(window_ms * sample_rate / 1000.0))
    end = min(start + k + 1, stop)
    seg = force[start:end]
    if len(seg) < 2:
        return None
    if method is RfdMethod.ENDPOINT:
        return float((seg[-1] - seg[0]) * sample_rate / (len(seg) - 1))
    t = np.arange(len(seg), dtype=float) / sample_rate
    return stats.linear_slope(t, seg)


def _peak_rfd(force: np.ndarray, start: int, stop: int, sample_rate: float) -> Optional[float]:
    seg = force[start:stop]
    if len(seg) < 2:
        return None
    rfd = derivative(savgol_smooth(seg, sample_rate), sample_rate)
    return float(np.max(rfd))


def _completed(windows: Windows, events: Sequence[PhaseEvent], phase: Phase) -> bool:
    """A phase is complete once a later phase has started."""
    return phase in windows and events[-1].phase is not phase


def _basic_metrics(
    signal: ConditionedSignal,
    windows: Windows,
    bodyweight: float,
    out: Dict[str, float],
    missing: Dict[str, str],
) -> None:
    total = signal.total
    peak, _ = stats.find_max(total)
    low, _ = stats.find_min(total)
    out["bodyweight_N"] = bodyweight
    out["peak_force_N"] = peak
    out["mean_force_N"] = stats.mean(total)
    out["min_force_N"] = low
    out["force_cv"] = stats.coefficient_of_variation(total)
    out["test_duration_s"] = len(total) / signal.sample_rate
    if bodyweight > 0:
        out["relative_peak_force"] = peak / bodyweight
    else:
        missing["relative_peak_force"] = "bodyweight unknown"

    if Phase.STANDING in windows:
        s0, s1 = windows[Phase.STANDING]
        left = stats.mean(signal.left[s0:s1])
        right = stats.mean(signal.right[s0:s1])
        if left + right > 0:
            out["left_load_pct"] = left / (left + right) * 100.0
            out["right_load_pct"] = right / (left + right) * 100.0
        else:
            missing["left_load_pct"] = missing["right_load_pct"] = "no load while standing"
        if s1 > s0:
            out["standing_noise_pct"] = float(np.mean(signal.noise_mask[s0:s1])) * 100.0
    else:
        for name in ("left_load_pct", "right_load_pct", "standing_noise_pct"):
            missing[name] = _requires(Phase.STANDING)


def _movement_start(
    signal: ConditionedSignal,
    windows: Windows,
    params: TestParameters,
    bodyweight: float,
    movement_onset: Optional[int],
) -> Optional[int]:
    """Sample where velocity integration starts: quiet-standing exit for CMJ/SJ, contact for DJ."""
    test_type = params.test_type
    first = {
        TestType.COUNTERMOVEMENT_JUMP: Phase.UNLOADING,
        TestType.SQUAT_JUMP: Phase.PROPULSION,
        TestType.DROP_JUMP: Phase.BRAKING,
        TestType.ISOMETRIC_PULL: Phase.PROPULSION,
    }.get(test_type)
    if first is None or first not in windows:
        return None
    event_start = windows[first][0]
    if test_type not in (TestType.COUNTERMOVEMENT_JUMP, TestType.SQUAT_JUMP):
        return event_start
    if movement_onset is not None:
        return min(movement_onset, event_start)
    _, _, sigma = compute_baseline(signal.total, signal.sample_rate, params.weighing_s)
    return find_movement_onset(
        signal.total,
        bodyweight,
        event_start,
        onset_tolerance(bodyweight, sigma),
        upward=test_type is TestType.SQUAT_JUMP,
    )


def _rfd_phase(test_type: TestType) -> Phase:
    if test_type in (TestType.COUNTERMOVEMENT_JUMP, TestType.DROP_JUMP):
        return Phase.BRAKING
    return Phase.PROPULSION


def _jump_metrics(
    signal: ConditionedSignal,
    events: Sequence[PhaseEvent],
    windows: Windows,
    params: TestParameters,
    bodyweight: float,
    out: Dict[str, float],
    missing: Dict[str, str],
    movement_onset: Optional[int] = None,
) -> Optional[JumpHeightMethod]:
    total = signal.total
    fs = signal.sample_rate
    test_type = params.test_type
    n = len(total)

    # Flight time method
    if Phase.FLIGHT in windows and Phase.LANDING in windows:
        flight_time = (windows[Phase.LANDING][0] - windows[Phase.FLIGHT][0]) / fs
        out["flight_time_s"] = flight_time
        out["jump_height_flight_m"] = jump_height_from_flight_time(flight_time)
    else:
        reason = _requires(Phase.FLIGHT if Phase.FLIGHT not in windows else Phase.LANDING)
        missing["flight_time_s"] = missing["jump_height_flight_m"] = reason

    start = _movement_start(signal, windows, params, bodyweight, movement_onset)
    take_off = windows[Phase.FLIGHT][0] if Phase.FLIGHT in windows else None
    v0 = 0.0
    if test_type is TestType.DROP_JUMP:
        v0 = -math.sqrt(2.0 * G * max(float(params.setting("dropHeight")) / 100.0, 0.0))

    # Impulse-momentum method
    if start is not None and take_off is not None and take_off > start and bodyweight > 0:
        v_to = take_off_velocity(total, fs, bodyweight, start, take_off, initial_velocity=v0)
        out["take_off_velocity_m_s"] = v_to
        if v_to > 0:
            out["jump_height_impulse_m"] = jump_height_from_velocity(v_to)
        else:
            missing["jump_height_impulse_m"] = "non-positive take-off velocity"
        velocity, _, displacement = compute_kinematics(total, fs, bodyweight, start, take_off - 1, v0)
        out["peak_power_W"] = float(np.max(total[start:take_off] * velocity[start:take_off]))
        if test_type is not TestType.DROP_JUMP:
            out["time_to_takeoff_s"] = (take_off - start) / fs
        if test_type is TestType.COUNTERMOVEMENT_JUMP:
            out["countermovement_depth_m"] = float(-np.min(displacement[start:take_off]))
    else:
        reason = _requires(Phase.FLIGHT) if take_off is None else "movement start not detected"
        if bodyweight <= 0:
            reason = "bodyweight unknown"
        for name in (
            "take_off_velocity_m_s",
            "jump_height_impulse_m",
            "peak_power_W",
            "time_to_takeoff_s",
            "countermovement_depth_m",
        ):
            missing[name] = reason

    # Canonical jump height
    by_method = {
        JumpHeightMethod.FLIGHT_TIME: "jump_height_flight_m",
        JumpHeightMethod.IMPULSE_MOMENTUM: "jump_height_impulse_m",
    }
    method = None
    preferred = params.jump_height_method
    fallback = next(m for m in JumpHeightMethod if m is not preferred)
    for candidate in (preferred, fallback):
        if by_method[candidate] in out:
            method = candidate
            out["jump_height_m"] = out[by_method[candidate]]
            break
    if method is None:
        missing["jump_height_m"] = missing.get(by_method[preferred], _requires(Phase.FLIGHT))
    elif method is not preferred:
        logger.info("Jump height falls back to the %s method", method.value)

    # Propulsion
    if _completed(windows, events, Phase.PROPULSION):
        p0, p1 = windows[Phase.PROPULSION]
        seg = total[p0:p1]
        out["propulsion_time_s"] = (p1 - p0) / fs
        out["peak_propulsive_force_N"] = float(np.max(seg))
        out["mean_propulsive_force_N"] = float(np.mean(seg))
        out["propulsion_impulse_Ns"] = impulse(seg, fs)
        out["propulsion_net_impulse_Ns"] = impulse(seg - bodyweight, fs)
    else:
        for name in (
            "propulsion_time_s",
            "peak_propulsive_force_N",
            "mean_propulsive_force_N",
            "propulsion_impulse_Ns",
            "propulsion_net_impulse_Ns",
        ):
            missing[name] = _requires(Phase.PROPULSION) if Phase.PROPULSION not in windows else _requires(Phase.FLIGHT)

    # RFD over the contact phase that loads the plate first
    rfd_phase = _rfd_phase(test_type)
    if rfd_phase in windows:
        r0 = windows[rfd_phase][0]
        stop = take_off if take_off is not None else n
        rfd = _early_rfd(total, r0, stop, fs, params.rfd_window_ms, params.rfd_method)
        peak_rfd = _peak_rfd(total, r0, stop, fs)
        if rfd is not None:
            out["rfd_N_per_s"] = rfd
        else:
            missing["rfd_N_per_s"] = "window shorter than two samples"
        if peak_rfd is not None:
            out["peak_rfd_N_per_s"] = peak_rfd
        else:
            missing["peak_rfd_N_per_s"] = "window shorter than two samples"
    else:
        missing["rfd_N_per_s"] = missing["peak_rfd_N_per_s"] = _requires(rfd_phase)

    # Landing
    if Phase.LANDING in windows:
        l0, l1 = windows[Phase.LANDING]
        out["peak_landing_force_N"] = float(np.max(total[l0:max(l1, l0 + 1)]))
    else:
        missing["peak_landing_force_N"] = _requires(Phase.LANDING)
    if Phase.LANDING in windows and Phase.RECOVERY in windows:
        out["landing_stabilization_time_s"] = (windows[Phase.RECOVERY][0] - windows[Phase.LANDING][0]) / fs
    else:
        missing["landing_stabilization_time_s"] = _requires(Phase.RECOVERY)

    # Braking and unloading
    for phase, prefix in ((Phase.BRAKING, "braking"), (Phase.UNLOADING, "unloading")):
        names = (
            [f"{prefix}_time_s", f"peak_{prefix}_force_N", f"mean_{prefix}_force_N", f"{prefix}_impulse_Ns"]
            if phase is Phase.BRAKING
            else [f"{prefix}_time_s", f"min_{prefix}_force_N", f"{prefix}_impulse_Ns"]
        )
        if not _completed(windows, events, phase):
            for name in names:
                missing[name] = _requires(phase)
            continue
        b0, b1 = windows[phase]
        seg = total[b0:b1]
        out[f"{prefix}_time_s"] = (b1 - b0) / fs
        out[f"{prefix}_impulse_Ns"] = impulse(seg - bodyweight, fs)
        if phase is Phase.BRAKING:
            out["peak_braking_force_N"] = float(np.max(seg))
            out["mean_braking_force_N"] = float(np.mean(seg))
        else:
            out["min_unloading_force_N"] = float(np.min(seg))

    # Reactive strength
    if "jump_height_m" in out and "time_to_takeoff_s" in out and out["time_to_takeoff_s"] > 0:
        out["rsi_mod"] = out["jump_height_m"] / out["time_to_takeoff_s"]
    else:
        missing["rsi_mod"] = missing.get("jump_height_m", _requires(Phase.FLIGHT))
    if test_type is TestType.DROP_JUMP:
        if Phase.BRAKING in windows and take_off is not None:
            contact = (take_off - windows[Phase.BRAKING][0]) / fs
            out["contact_time_s"] = contact
            if "jump_height_m" in out and contact > 0:
                out["rsi"] = out["jump_height_m"] / contact
            else:
                missing["rsi"] = missing.get("jump_height_m", "zero contact time")
        else:
            missing["contact_time_s"] = missing["rsi"] = _requires(Phase.FLIGHT)
    return method


def _isometric_metrics(
    signal: ConditionedSignal,
    windows: Windows,
    params: TestParameters,
    bodyweight: float,
    out: Dict[str, float],
    missing: Dict[str, str],
) -> None:
    total = signal.total
    fs = signal.sample_rate
    n = len(total)
    if Phase.PROPULSION not in windows:
        for name in SUPPORTED_METRICS[TestType.ISOMETRIC_PULL]:
            if name not in out:
                missing[name] = _requires(Phase.PROPULSION)
        return
    onset, end = windows[Phase.PROPULSION]
    pull = total[onset:end]

    net = baseline_correction(total)
    out["net_peak_force_N"] = float(np.max(net[onset:end]))
    out["time_to_peak_force_s"] = int(np.argmax(pull)) / fs
    target = float(params.setting("targetForce"))
    if target > 0:
        out["target_force_pct"] = float(np.max(pull)) / target * 100.0
    else:
        missing["target_force_pct"] = "target force not set"

    for ms in IMTP_WINDOWS_MS:
        k = int(round(ms * fs / 1000.0))
        name = f"rfd_0_{ms}ms_N_per_s"
        if onset + k < n:
            out[name] = float((total[onset + k] - total[onset]) / (k / fs))
        else:
            missing[name] = f"recording ends before {ms} ms after onset"
    for ms in IMTP_SAMPLE_POINTS_MS:
        k = int(round(ms * fs / 1000.0))
        if onset + k < n:
            out[f"force_at_{ms}ms_N"] = float(total[onset + k])
            out[f"impulse_0_{ms}ms_Ns"] = impulse(total[onset:onset + k] - bodyweight, fs)
        else:
            reason = f"recording ends before {ms} ms after onset"
            missing[f"force_at_{ms}ms_N"] = missing[f"impulse_0_{ms}ms_Ns"] = reason

    rfd = _early_rfd(total, onset, end, fs, params.rfd_window_ms, params.rfd_method)
    peak_rfd = _peak_rfd(total, onset, end, fs)
    if rfd is not None:
        out["rfd_N_per_s"] = rfd
    else:
        missing["rfd_N_per_s"] = "window shorter than two samples"
    if peak_rfd is not None:
        out["peak_rfd_N_per_s"] = peak_rfd
    else:
        missing["peak_rfd_N_per_s"] = "window shorter than two samples"


def compute_metrics(
    signal: ConditionedSignal,
    events: Sequence[PhaseEvent],
    params: TestParameters,
    bodyweight: float,
    movement_onset: Optional[int] = None,
) -> MetricsReport:
    """Compute the metric set supported by params.test_type.

    Args:
        signal: Conditioned left/right/total force.
        events: Ordered phase events from the segmenter. Empty means the session
            could not be segmented and every metric is reported unavailable.
        params: Session parameters.
        bodyweight: Static bodyweight in N.
        movement_onset: Last quiet-standing exit from the segmenter (CMJ/SJ);
            found from the signal when omitted.

    Returns:
        MetricsReport with finite metrics, unavailable reasons, asymmetry
        results and the method that produced jump_height_m.
    """
    test_type = params.test_type
    supported = SUPPORTED_METRICS[test_type]
    report = MetricsReport()
    if not events:
        report.unavailable = {name: "insufficient data: no phases detected" for name in sorted(supported)}
        return report

    n = len(signal)
    windows = phase_windows(events, n)
    out: Dict[str, float] = {}
    missing: Dict[str, str] = {}
    asymmetries: List[AsymmetryResult] = []

    _basic_metrics(signal, windows, bodyweight, out, missing)

    if test_type.is_jump:
        report.jump_height_method = _jump_metrics(
            signal, events, windows, params, bodyweight, out, missing, movement_onset
        )
        usable = {
            phase: window
            for phase, window in windows.items()
            if phase is Phase.LANDING or _completed(windows, events, phase)
        }
        asymmetries = compute_phase_asymmetries(signal, usable)
    elif test_type is TestType.ISOMETRIC_PULL:
        _isometric_metrics(signal, windows, params, bodyweight, out, missing)
        asymmetries = compute_phase_asymmetries(signal, windows)
    elif test_type is TestType.BALANCE:
        balance, spatial = compute_balance_metrics(
            signal.cop, signal.left, signal.right, signal.sample_rate, single_leg=bool(params.setting("singleLeg"))
        )
        out.update(balance)
        if spatial is not None:
            asymmetries = [spatial]
        if not balance:
            for name in supported:
                if name.startswith("cop_"):
                    missing[name] = "requires centre-of-pressure traces"
        elif spatial is None:
            missing["cop_path_asymmetry_pct"] = missing["cop_path_asymmetry_index"] = "single-leg stance"

    for result in asymmetries:
        out[f"{result.metric}_pct"] = result.percentage
        out[f"{result.metric}_index"] = result.asymmetry_index

    for name in sorted(supported):
        value = out.get(name)
        if value is None:
            reason = missing.get(name)
            if reason is None and name.startswith("landing_force_asymmetry"):
                reason = _requires(Phase.LANDING)
            elif reason is None:
                reason = _requires(Phase.PROPULSION) if "asymmetry" in name else "not computed"
            report.unavailable[name] = reason
        elif not math.isfinite(value):
            report.unavailable[name] = "non-finite result"
        else:
            report.metrics[name] = float(value)
    report.asymmetries = [r for r in asymmetries if f"{r.metric}_pct" in report.metrics]
    if report.unavailable:
        logger.debug("Unavailable metrics: %s", ", ".join(sorted(report.unavailable)))
    return report
