"""Per-session pipeline: buffer samples, then condition, segment, measure and classify.

Live acquisition and offline replay both go through push() and finish(). Each
session owns one SessionPipeline; nothing is shared between instances.
"""
import logging
import math
import threading
from typing import AsyncIterable, Iterable, List, Optional

import numpy as np

from .config import TestParameters, TestType
from .data.types import CopTraces, ForceSample, ForceTrial, PipelineResult
from .detect.baseline import compute_baseline
from .detect.phases import PhaseSegmenter
from .detect.validity import validate_trial
from .physics.metrics import compute_metrics
from .quality import classify_metrics
from .signal.processing import condition

logger = logging.getLogger(__name__)


class SessionPipeline:
    """Owns the sample buffers and processing state for one test session.

    Args:
        params: Session parameters, fixed for the lifetime of the pipeline.
        bodyweight_n: Athlete bodyweight in N. Measured from the weighing
            window of the recording when omitted.
        athlete_id: Carried into the assembled trial only.
    """

    def __init__(self, params: TestParameters, bodyweight_n: Optional[float] = None, athlete_id: str = "") -> None:
        self.params = params
        self.bodyweight_n = bodyweight_n
        self.athlete_id = athlete_id
        self._timestamps: List[int] = []
        self._left: List[float] = []
        self._right: List[float] = []
        self._cop: List[tuple] = []
        self._cop_complete = True
        self._dropped = 0
        self._finished = False

    @property
    def sample_count(self) -> int:
        return len(self._left)

    @property
    def dropped_samples(self) -> int:
        return self._dropped

    @property
    def finished(self) -> bool:
        return self._finished

    def push(self, sample: ForceSample) -> bool:
        """Append one sample. Returns False when the sample was dropped.

        Samples with non-finite forces or a timestamp not after the previous
        one are dropped and counted.
        """
        if self._finished:
            raise RuntimeError("push() after finish(); create a new SessionPipeline per session")
        if not sample.is_finite:
            self._drop("non-finite force at t=%d ms", sample.timestamp_ms)
            return False
        if self._timestamps and sample.timestamp_ms <= self._timestamps[-1]:
            self._drop("non-increasing timestamp %d ms", sample.timestamp_ms)
            return False
        self._timestamps.append(int(sample.timestamp_ms))
        self._left.append(float(sample.left_force))
        self._right.append(float(sample.right_force))
        if sample.has_cop:
            self._cop.append((sample.left_cop_x, sample.left_cop_y, sample.right_cop_x, sample.right_cop_y))
        else:
            self._cop_complete = False
        return True

    def extend(self, samples: Iterable[ForceSample]) -> int:
        """Push every sample; return how many were accepted."""
        return sum(1 for sample in samples if self.push(sample))

    def process(self, samples: Iterable[ForceSample], stop_event: Optional[threading.Event] = None) -> PipelineResult:
        """Consume a batch or a live feed until it ends or stop_event is set, then finish."""
        for sample in samples:
            if stop_event is not None and stop_event.is_set():
                logger.info("Stop requested after %d samples", self.sample_count)
                break
            self.push(sample)
        return self.finish()

    async def process_async(self, samples: AsyncIterable[ForceSample], stop_event=None) -> PipelineResult:
        """Async variant of process(); stop_event may be a threading or asyncio Event."""
        async for sample in samples:
            if stop_event is not None and stop_event.is_set():
                logger.info("Stop requested after %d samples", self.sample_count)
                break
            self.push(sample)
        return self.finish()

    def to_trial(self) -> ForceTrial:
        """Snapshot of the buffered samples as a ForceTrial."""
        cop = None
        if self._cop_complete and self._cop:
            arr = np.asarray(self._cop, dtype=float)
            cop = CopTraces(left_x=arr[:, 0], left_y=arr[:, 1], right_x=arr[:, 2], right_y=arr[:, 3])
        return ForceTrial(
            athlete_id=self.athlete_id,
            test_type=self.params.test_type.value,
            sample_rate=self.params.sampling_rate_hz,
            left_force=np.asarray(self._left, dtype=float),
            right_force=np.asarray(self._right, dtype=float),
            timestamps_ms=np.asarray(self._timestamps, dtype=np.int64),
            cop=cop,
            bodyweight_n=self.bodyweight_n,
        )

    def finish(self) -> PipelineResult:
        """Run the pipeline over everything buffered and release the buffers.

        A truncated or cancelled session still yields every metric whose
        phases completed; the rest are listed in PipelineResult.unavailable.
        """
        if self._finished:
            raise RuntimeError("finish() already called for this session")
        trial = self.to_trial()
        self._finished = True
        self._timestamps, self._left, self._right, self._cop = [], [], [], []
        return analyze_trial(trial, self.params, self.bodyweight_n, dropped_samples=self._dropped)

    def _drop(self, msg: str, *args) -> None:
        self._dropped += 1
        logger.warning("Dropping sample: " + msg, *args)


def resolve_bodyweight(trial: ForceTrial, params: TestParameters, bodyweight_n: Optional[float] = None) -> float:
    """Bodyweight in N: the given value, the trial's value, or the weighing window of the force."""
    if bodyweight_n is not None:
        return float(bodyweight_n)
    if trial.bodyweight_n is not None:
        return float(trial.bodyweight_n)
    bodyweight, _, _ = compute_baseline(
        trial.force,
        trial.sample_rate,
        params.weighing_s,
        from_end=params.test_type is TestType.DROP_JUMP,
    )
    return bodyweight


def analyze_trial(
    trial: ForceTrial,
    params: TestParameters,
    bodyweight_n: Optional[float] = None,
    dropped_samples: int = 0,
) -> PipelineResult:
    """Condition, segment, measure, validate and classify one bounded trial."""
    signal = condition(trial, params)
    bodyweight = resolve_bodyweight(trial, params, bodyweight_n)
    if not math.isfinite(bodyweight) or bodyweight <= 0:
        logger.warning("Degenerate bodyweight %.1f N; session treated as invalid", bodyweight)
        bodyweight = 0.0

    _, _, sigma_quiet = compute_baseline(signal.total, signal.sample_rate, params.weighing_s)
    segmenter = PhaseSegmenter(params, bodyweight, sigma_quiet=sigma_quiet)
    events = segmenter.segment(signal)
    report = compute_metrics(signal, events, params, bodyweight, movement_onset=segmenter.movement_onset)
    validity = validate_trial(signal, events, params, bodyweight)
    quality = classify_metrics(report.metrics, params.test_type)

    logger.info(
        "Session finished: %d samples, %d phases, %d metrics (%d unavailable)",
        len(signal),
        len(events),
        len(report.metrics),
        len(report.unavailable),
    )
    return PipelineResult(
        test_type=params.test_type,
        metrics=report.metrics,
        unavailable=report.unavailable,
        quality=quality,
        phases=events,
        asymmetries=report.asymmetries,
        validity=validity,
        bodyweight_n=bodyweight,
        jump_height_method=report.jump_height_method,
        signal=signal,
        dropped_samples=dropped_samples,
        movement_onset=segmenter.movement_onset,
    )
