from .baseline import compute_baseline
from .phases import PhaseSegmenter, find_movement_onset, onset_tolerance, phase_windows, segment_phases
from .validity import count_takeoffs, standing_noise_rms, validate_trial

__all__ = [
    "PhaseSegmenter",
    "compute_baseline",
    "count_takeoffs",
    "find_movement_onset",
    "onset_tolerance",
    "phase_windows",
    "segment_phases",
    "standing_noise_rms",
    "validate_trial",
]
