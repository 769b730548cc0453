"""Structured analysis response: phases and metrics with value + explanation for reporting."""
from typing import Any, Dict, List

from .data.types import Phase

# Display order for phases
PHASE_ORDER: List[str] = [phase.value for phase in Phase]

PHASE_EXPLANATIONS: Dict[str, str] = {
    "standing": "Standing still; force reflects body weight.",
    "unloading": "Force drops below body weight as the body starts to lower.",
    "braking": "Force rises back above body weight to stop the downward movement.",
    "propulsion": "Push upwards until the feet leave the plate.",
    "flight": "Airborne; force plate reads near zero.",
    "landing": "Impact and absorption after touchdown.",
    "recovery": "Force settles back around body weight.",
}

METRIC_EXPLANATIONS: Dict[str, str] = {
    "bodyweight_N": "Static body weight from the weighing window or the athlete profile (N).",
    "peak_force_N": "Maximum total force over the recording (N).",
    "mean_force_N": "Mean total force over the recording (N).",
    "min_force_N": "Minimum total force over the recording (N).",
    "relative_peak_force": "Peak force divided by body weight.",
    "force_cv": "Coefficient of variation of total force.",
    "left_load_pct": "Share of body weight on the left plate while standing (%).",
    "right_load_pct": "Share of body weight on the right plate while standing (%).",
    "standing_noise_pct": "Share of standing samples flagged as noise spikes (%).",
    "test_duration_s": "Length of the recording (s).",
    "flight_time_s": "Time airborne from takeoff to landing (s).",
    "jump_height_flight_m": "Jump height from flight time formula (m).",
    "take_off_velocity_m_s": "Vertical velocity at takeoff from impulse–momentum (m/s).",
    "jump_height_impulse_m": "Jump height from impulse–momentum method (m).",
    "jump_height_m": "Jump height from the method named in jump_height_method (m).",
    "time_to_takeoff_s": "Time from movement onset to takeoff (s).",
    "rsi_mod": "Reactive strength index (modified): jump height / time to takeoff.",
    "rsi": "Reactive strength index: jump height / ground contact time.",
    "contact_time_s": "Ground contact time from touchdown to takeoff (s).",
    "propulsion_time_s": "Duration of the propulsion phase (s).",
    "peak_propulsive_force_N": "Maximum force in the propulsion phase (N).",
    "mean_propulsive_force_N": "Mean force during the propulsion phase (N).",
    "propulsion_impulse_Ns": "Integral of force over the propulsion phase (N·s).",
    "propulsion_net_impulse_Ns": "Integral of force above body weight over the propulsion phase (N·s).",
    "rfd_N_per_s": "Rate of force development over the early loading window (N/s).",
    "peak_rfd_N_per_s": "Peak rate of force development during contact (N/s).",
    "peak_power_W": "Peak instantaneous power before takeoff (W).",
    "peak_landing_force_N": "Maximum force during landing (N).",
    "landing_stabilization_time_s": "Time from touchdown until force settles around body weight (s).",
    "unloading_time_s": "Duration of the unloading phase (s).",
    "unloading_impulse_Ns": "Net impulse during unloading (N·s).",
    "min_unloading_force_N": "Lowest force during unloading (N).",
    "braking_time_s": "Duration of the braking phase (s).",
    "peak_braking_force_N": "Maximum force during braking (N).",
    "mean_braking_force_N": "Mean force during braking (N).",
    "braking_impulse_Ns": "Net impulse during braking (N·s).",
    "countermovement_depth_m": "Maximum downward COM displacement before takeoff (m).",
    "net_peak_force_N": "Peak pull force above the baseline (N).",
    "time_to_peak_force_s": "Time from pull onset to peak force (s).",
    "rfd_0_50ms_N_per_s": "RFD over the first 50 ms from pull onset (N/s).",
    "rfd_0_100ms_N_per_s": "RFD over the first 100 ms from pull onset (N/s).",
    "rfd_0_200ms_N_per_s": "RFD over the first 200 ms from pull onset (N/s).",
    "force_at_100ms_N": "Force 100 ms after pull onset (N).",
    "force_at_200ms_N": "Force 200 ms after pull onset (N).",
    "impulse_0_100ms_Ns": "Net impulse over the first 100 ms of the pull (N·s).",
    "impulse_0_200ms_Ns": "Net impulse over the first 200 ms of the pull (N·s).",
    "target_force_pct": "Peak force as a share of the target force (%).",
    "cop_range_ml_mm": "Medial-lateral sway range of the centre of pressure (mm).",
    "cop_range_ap_mm": "Anterior-posterior sway range of the centre of pressure (mm).",
    "cop_path_length_mm": "Total distance travelled by the centre of pressure (mm).",
    "cop_velocity_mm_s": "Mean centre-of-pressure speed (mm/s).",
    "cop_area_mm2": "Area of the 95% centre-of-pressure ellipse (mm²).",
    "peak_force_asymmetry_pct": "Left–right asymmetry in peak force (%).",
    "peak_force_asymmetry_index": "Signed peak force asymmetry; negative = left dominant.",
    "propulsion_impulse_asymmetry_pct": "Left–right asymmetry in propulsion impulse (%).",
    "propulsion_impulse_asymmetry_index": "Signed propulsion impulse asymmetry; negative = left dominant.",
    "time_to_peak_force_asymmetry_pct": "Left–right asymmetry in time to peak force (%).",
    "time_to_peak_force_asymmetry_index": "Signed time-to-peak asymmetry; negative = left side slower.",
    "landing_force_asymmetry_pct": "Left–right asymmetry in peak landing force (%).",
    "landing_force_asymmetry_index": "Signed landing force asymmetry; negative = left dominant.",
    "cop_path_asymmetry_pct": "Left–right asymmetry in COP path length (%).",
    "cop_path_asymmetry_index": "Signed COP path asymmetry; negative = more left sway.",
}


def build_analysis_response(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Build the structured analysis block: phases, metrics as key -> { value, explanation }.

    Uses the export payload (phases, metrics, quality, unavailable). Unknown keys
    get an empty explanation. Unavailable metrics carry value None and the reason.
    """
    analysis: Dict[str, Any] = {
        "phases": {},
        "metrics": {},
        "phase_order": PHASE_ORDER,
    }

    for p in payload.get("phases") or []:
        slug = p.get("name") or ""
        analysis["phases"][slug] = {"value": dict(p), "explanation": PHASE_EXPLANATIONS.get(slug, "")}

    quality = payload.get("quality") or {}
    for k, v in (payload.get("metrics") or {}).items():
        entry = {"value": v, "explanation": METRIC_EXPLANATIONS.get(k, "")}
        if k in quality:
            entry["quality"] = quality[k]
        analysis["metrics"][k] = entry

    for k, reason in (payload.get("unavailable") or {}).items():
        analysis["metrics"][k] = {"value": None, "explanation": METRIC_EXPLANATIONS.get(k, ""), "reason": reason}

    return analysis
