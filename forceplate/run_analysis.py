"""Run force-plate analysis from in-memory data (API entry point). No file I/O."""
from typing import Any, Dict, Optional

from .config import TestParameters, TestType, default_parameters
from .data import load_trial_from_dict
from .data.types import PipelineResult
from .export import build_payload
from .pipeline import SessionPipeline


def analyze(data: Dict[str, Any], params: Optional[TestParameters] = None) -> PipelineResult:
    """Replay a recorded trial through a fresh SessionPipeline.

    Parameters default to the defaults of the trial's test type, at the
    trial's sample rate.
    """
    trial = load_trial_from_dict(data)
    if params is None:
        params = default_parameters(TestType.from_code(trial.test_type), sampling_rate_hz=trial.sample_rate)
    pipeline = SessionPipeline(params, bodyweight_n=trial.bodyweight_n, athlete_id=trial.athlete_id)
    return pipeline.process(trial.samples())


def run_analysis(
    data: Dict[str, Any],
    params: Optional[TestParameters] = None,
    include_signal: bool = True,
) -> Dict[str, Any]:
    """Run the full pipeline on in-memory data and return the export payload.

    Intended for API use: no files are written.

    Args:
        data: Trial data (athlete_id, test_type, left_force, right_force and
              sample_rate or test_duration). Optional: timestamps_ms, COP
              arrays, bodyweight_n.
        params: Session parameters; defaults per test type when omitted.
        include_signal: Include the conditioned force arrays in the payload.

    Returns:
        Payload dict: metrics, unavailable, quality, phases, asymmetries,
        validity, jump_height_method and the structured "analysis" block.

    Raises:
        ValueError: If required keys are missing or data is invalid.
    """
    return build_payload(analyze(data, params), include_signal=include_signal)
