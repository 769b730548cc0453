"""Synthetic bilateral force traces shared by the test modules."""
from typing import Optional, Sequence, Tuple

import numpy as np
import pytest

from forceplate.config import TestType, default_parameters
from forceplate.data.types import ConditionedSignal, CopTraces, ForceSample, ForceTrial

BODYWEIGHT = 800.0
FS = 1000.0

# Index where each canonical CMJ segment starts
CMJ_UNLOAD_START = 1000
CMJ_RISE_START = 1300
CMJ_HOLD_START = 1400
CMJ_FLIGHT_START = 1650
CMJ_LANDING_START = 2050
CMJ_LENGTH = 2850


def ratio_trace(segments: Sequence[Tuple[float, float, int]]) -> np.ndarray:
    """Concatenate linear ramps (start_ratio, end_ratio, n_samples); end value is not included."""
    return np.concatenate([np.linspace(a, b, n, endpoint=False) for a, b, n in segments])


def cmj_ratio() -> np.ndarray:
    """Standing, unload to 0.8, brake, propel at 2.2, 400 ms flight at 0.05, land at 2.5, recover."""
    return ratio_trace([
        (1.0, 1.0, 1000),
        (1.0, 0.8, 150),
        (0.8, 1.0, 150),
        (1.0, 2.2, 100),
        (2.2, 2.2, 150),
        (2.2, 0.3, 100),
        (0.05, 0.05, 400),
        (2.5, 1.0, 200),
        (1.0, 1.0, 600),
    ])


def sj_ratio(with_dip: bool = False) -> np.ndarray:
    segments = [(1.0, 1.0, 1000)]
    if with_dip:
        segments += [(1.0, 0.9, 100), (0.9, 1.0, 100), (1.0, 1.0, 200)]
    segments += [
        (1.0, 2.5, 150),
        (2.5, 0.3, 150),
        (0.05, 0.05, 350),
        (2.5, 1.0, 200),
        (1.0, 1.0, 600),
    ]
    return ratio_trace(segments)


def dj_ratio() -> np.ndarray:
    """Plate unloaded while on the box, 200 ms contact, 350 ms flight, landing and 1.5 s standing."""
    return ratio_trace([
        (0.0, 0.0, 500),
        (0.0, 4.0, 30),
        (4.0, 2.0, 70),
        (2.0, 3.5, 50),
        (3.5, 0.3, 50),
        (0.05, 0.05, 350),
        (2.5, 1.0, 200),
        (1.0, 1.0, 1500),
    ])


def imtp_ratio() -> np.ndarray:
    return ratio_trace([
        (1.0, 1.0, 1000),
        (1.0, 3.0, 200),
        (3.0, 3.0, 3000),
        (3.0, 1.0, 200),
        (1.0, 1.0, 800),
    ])


def make_trial(
    ratio: np.ndarray,
    test_type: TestType,
    left_share: float = 0.5,
    bodyweight: float = BODYWEIGHT,
    fs: float = FS,
    cop: Optional[CopTraces] = None,
) -> ForceTrial:
    total = ratio * bodyweight
    return ForceTrial(
        athlete_id="athlete-1",
        test_type=test_type.value,
        sample_rate=fs,
        left_force=total * left_share,
        right_force=total * (1.0 - left_share),
        timestamps_ms=np.round(np.arange(len(total)) * 1000.0 / fs).astype(np.int64),
        cop=cop,
    )


def make_signal(ratio: np.ndarray, left_share: float = 0.5, fs: float = FS) -> ConditionedSignal:
    total = ratio * BODYWEIGHT
    return ConditionedSignal(
        total=total,
        left=total * left_share,
        right=total * (1.0 - left_share),
        raw_total=total.copy(),
        noise_mask=np.zeros(len(total), dtype=bool),
        sample_rate=fs,
    )


def to_samples(trial: ForceTrial):
    return list(trial.samples())


@pytest.fixture
def cmj_params():
    return default_parameters(TestType.COUNTERMOVEMENT_JUMP, duration_s=3.0)


@pytest.fixture
def cmj_trial():
    return make_trial(cmj_ratio(), TestType.COUNTERMOVEMENT_JUMP, left_share=0.55)


@pytest.fixture
def balance_trial():
    n = 1000
    fs = 100.0
    x = np.arange(n) * 0.01
    y = np.zeros(n)
    cop = CopTraces(left_x=x.copy(), left_y=y.copy(), right_x=x.copy(), right_y=y.copy())
    return make_trial(np.ones(n), TestType.BALANCE, fs=fs, cop=cop)


@pytest.fixture
def sample_stream():
    """Factory: ForceSample list for a ratio trace with a 50/50 split."""

    def _make(ratio: np.ndarray):
        total = ratio * BODYWEIGHT
        return [
            ForceSample(timestamp_ms=i, left_force=float(f) / 2, right_force=float(f) / 2)
            for i, f in enumerate(total)
        ]

    return _make
