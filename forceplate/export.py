"""Export a session result as a JSON-ready payload for storage and reporting collaborators."""
import json
from pathlib import Path
from typing import Any, Dict, List, Union

import numpy as np

from .analysis_response import build_analysis_response
from .data.types import PipelineResult
from .detect.phases import phase_windows


def _to_list(arr: np.ndarray) -> List[float]:
    return arr.tolist()


def build_payload(result: PipelineResult, include_signal: bool = True) -> Dict[str, Any]:
    """Build a single dict with metrics, quality bands, phases and (optionally) the conditioned signal.

    Carries no session id or persistence timestamps; those belong to the
    storage collaborator.
    """
    signal = result.signal
    n = len(signal) if signal is not None else (result.phases[-1].sample_index + 1 if result.phases else 0)
    sr = signal.sample_rate if signal is not None else None
    windows = phase_windows(result.phases, n)

    phases: List[Dict[str, Any]] = []
    for event in result.phases:
        start, end = windows[event.phase]
        entry: Dict[str, Any] = {
            "name": event.phase.value,
            "start_index": start,
            "end_index": end,
        }
        if sr:
            entry["start_time_s"] = start / sr
            entry["end_time_s"] = end / sr
            entry["duration_s"] = (end - start) / sr
        phases.append(entry)

    payload: Dict[str, Any] = {
        "test_type": result.test_type.value,
        "sample_rate": sr,
        "bodyweight_N": result.bodyweight_n,
        "jump_height_method": result.jump_height_method.value if result.jump_height_method else None,
        "validity": {"is_valid": result.validity.is_valid, "flags": list(result.validity.flags)},
        "dropped_samples": result.dropped_samples,
        "movement_onset_index": result.movement_onset,
        "phases": phases,
        "metrics": {k: float(v) for k, v in result.metrics.items()},
        "unavailable": dict(result.unavailable),
        "quality": {k: band.value for k, band in result.quality.items()},
        "asymmetries": [
            {
                "metric": a.metric,
                "kind": a.kind.value,
                "left_value": a.left_value,
                "right_value": a.right_value,
                "percentage": a.percentage,
                "asymmetry_index": a.asymmetry_index,
            }
            for a in result.asymmetries
        ],
    }
    if include_signal and signal is not None:
        payload["time_s"] = _to_list(signal.t)
        payload["force_N"] = _to_list(signal.total)
        payload["left_force_N"] = _to_list(signal.left)
        payload["right_force_N"] = _to_list(signal.right)
    payload["analysis"] = build_analysis_response(payload)
    return payload


def export_json(payload: Dict[str, Any], path: Union[str, Path]) -> None:
    """Write the payload to a JSON file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)
