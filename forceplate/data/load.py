"""Load bilateral force-plate exports (replay input) into a ForceTrial."""
import json
from pathlib import Path
from typing import Any, Dict, Union

import numpy as np

from .types import CopTraces, ForceTrial

REQUIRED_KEYS = {"athlete_id", "test_type", "left_force", "right_force"}
COP_KEYS = ("left_cop_x", "left_cop_y", "right_cop_x", "right_cop_y")


def _sample_rate(data: Dict[str, Any], sample_count: int) -> float:
    if "sample_rate" in data:
        sample_rate = float(data["sample_rate"])
    elif "test_duration" in data:
        test_duration = float(data["test_duration"])
        if test_duration <= 0:
            raise ValueError(f"test_duration must be positive, got {test_duration}")
        sample_rate = int(data.get("sample_count", sample_count)) / test_duration
    else:
        raise ValueError("Missing required keys: {'sample_rate'} (or 'test_duration')")
    if sample_rate <= 0:
        raise ValueError(f"sample_rate must be positive, got {sample_rate}")
    return sample_rate


def load_trial_from_dict(data: Dict[str, Any]) -> ForceTrial:
    """Build a ForceTrial from an in-memory dict (e.g. from an API request).

    Required: athlete_id, test_type, left_force, right_force, and either
    sample_rate or test_duration. Optional: sample_count (checked against
    the arrays), force / total_force (checked against left + right),
    timestamps_ms (generated from the sample rate when absent), the four
    COP arrays in mm, and bodyweight_n.

    Raises:
        ValueError: If required keys are missing or array lengths mismatch.
    """
    missing = REQUIRED_KEYS - set(data.keys())
    if missing:
        raise ValueError(f"Missing required keys: {missing}")

    left_force = np.asarray(data["left_force"], dtype=float)
    right_force = np.asarray(data["right_force"], dtype=float)
    sample_count = int(data.get("sample_count", len(left_force)))
    if len(left_force) != sample_count:
        raise ValueError(f"left_force length {len(left_force)} != sample_count {sample_count}")
    if len(right_force) != sample_count:
        raise ValueError(f"right_force length {len(right_force)} != sample_count {sample_count}")

    force_key = "force" if "force" in data else "total_force"
    if force_key in data:
        force = np.asarray(data[force_key], dtype=float)
        if len(force) != sample_count:
            raise ValueError(f"{force_key} length {len(force)} != sample_count {sample_count}")

    sample_rate = _sample_rate(data, sample_count)
    if "timestamps_ms" in data:
        timestamps_ms = np.asarray(data["timestamps_ms"], dtype=np.int64)
    else:
        timestamps_ms = np.round(np.arange(sample_count) * 1000.0 / sample_rate).astype(np.int64)

    cop = None
    present = [key for key in COP_KEYS if key in data]
    if present:
        if len(present) != len(COP_KEYS):
            raise ValueError(f"Incomplete COP data: missing {set(COP_KEYS) - set(present)}")
        cop = CopTraces(*(np.asarray(data[key], dtype=float) for key in COP_KEYS))

    bodyweight = data.get("bodyweight_n")
    return ForceTrial(
        athlete_id=str(data["athlete_id"]),
        test_type=str(data["test_type"]),
        sample_rate=sample_rate,
        left_force=left_force,
        right_force=right_force,
        timestamps_ms=timestamps_ms,
        cop=cop,
        bodyweight_n=float(bodyweight) if bodyweight is not None else None,
    )


def load_trial(path: Union[str, Path]) -> ForceTrial:
    """Load a single export JSON and return a validated ForceTrial.

    Raises:
        FileNotFoundError: If path does not exist.
        ValueError: If required keys are missing or array lengths mismatch.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    return load_trial_from_dict(data)
