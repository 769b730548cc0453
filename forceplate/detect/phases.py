"""Phase segmentation state machine over bodyweight-normalized total force.

One PhaseSegmenter instance segments one movement. Samples are fed strictly
in order; each call to feed() evaluates the transition rule of the current
phase against r = force / bodyweight and returns the PhaseEvent confirmed by
that sample, if any. Debounced transitions are dated to the first sample of
the run that confirmed them, so a returned event may point a few samples back.
"""
import logging
import math
from typing import Dict, List, Optional, Sequence

import numpy as np

from ..config import G, PHASE_PATHS, TestParameters, TestType
from ..data.types import ConditionedSignal, Phase, PhaseEvent

logger = logging.getLogger(__name__)

ONSET_N_SIGMA = 5.0
ONSET_BELOW_BW = 0.05


def onset_tolerance(bodyweight_n: float, sigma_quiet: Optional[float] = None) -> float:
    """Deviation from bodyweight (N) still counted as quiet standing.

    ONSET_N_SIGMA * sigma_quiet when the quiet-standing sigma is known,
    otherwise ONSET_BELOW_BW * bodyweight.
    """
    if sigma_quiet is None:
        return ONSET_BELOW_BW * bodyweight_n
    return ONSET_N_SIGMA * sigma_quiet


def find_movement_onset(
    force: Sequence[float],
    bodyweight_n: float,
    before: int,
    tolerance: float,
    upward: bool = False,
) -> int:
    """First sample after the last quiet-standing sample preceding `before`.

    Quiet means F >= BW - tolerance (F <= BW + tolerance when upward, i.e. for
    a push or pull that starts by loading the plate). Returns 0 if no sample
    before `before` is quiet.
    """
    seg = np.asarray(force, dtype=float)[:max(0, before)]
    quiet = seg <= bodyweight_n + tolerance if upward else seg >= bodyweight_n - tolerance
    idx = np.flatnonzero(quiet)
    return int(idx[-1]) + 1 if len(idx) else 0


class _Debounce:
    """Counts consecutive samples meeting a condition; reports the run start once confirmed."""

    def __init__(self, needed: int) -> None:
        self.needed = max(1, needed)
        self.start = -1
        self.count = 0

    def update(self, condition: bool, index: int) -> Optional[int]:
        if not condition:
            self.reset()
            return None
        if self.count == 0:
            self.start = index
        self.count += 1
        if self.count >= self.needed:
            start = self.start
            self.reset()
            return start
        return None

    def reset(self) -> None:
        self.start = -1
        self.count = 0


class PhaseSegmenter:
    """Streaming segmenter for one test session.

    Args:
        params: Session parameters (thresholds, debounce windows, test type).
        bodyweight_n: Static bodyweight in N; segmentation is skipped when <= 0.
        test_type: Overrides params.test_type for the phase path.
        sigma_quiet: Std of the quiet-standing force in N; sets how far force
            may leave bodyweight before the movement is considered started.
    """

    def __init__(
        self,
        params: TestParameters,
        bodyweight_n: float,
        test_type: Optional[TestType] = None,
        sigma_quiet: Optional[float] = None,
    ) -> None:
        self.params = params
        self.test_type = test_type or params.test_type
        self.path = PHASE_PATHS[self.test_type]
        self.bodyweight_n = float(bodyweight_n)
        self.mass_kg = self.bodyweight_n / G if self.bodyweight_n > 0 else 0.0
        self.dt = params.sample_interval_s

        band = params.unloading_band
        if self.bodyweight_n > 0:
            band = max(band, params.force_threshold_n / self.bodyweight_n)
        self._onset_offset = band
        self._quiet_tolerance = onset_tolerance(self.bodyweight_n, sigma_quiet)
        self._upward = self.test_type in (TestType.SQUAT_JUMP, TestType.ISOMETRIC_PULL)

        self._min_standing = params.ms_to_samples(params.min_standing_ms)
        self._recovery_stable = params.ms_to_samples(params.recovery_stable_ms)
        self._onset = _Debounce(params.ms_to_samples(params.onset_debounce_ms))
        self._takeoff = _Debounce(params.ms_to_samples(params.takeoff_debounce_ms))
        self._landing = _Debounce(params.ms_to_samples(params.landing_debounce_ms))
        self._contact = _Debounce(params.ms_to_samples(params.landing_debounce_ms))

        self._events: List[PhaseEvent] = []
        self._phase: Optional[Phase] = None
        self._index = 0
        self._prev_r: Optional[float] = None
        self._prev_force: Optional[float] = None

        self._stable_run = 0
        self._stable_start = -1
        self._armed = False

        self._velocity = 0.0
        # Net impulse since the last quiet-standing sample
        self._pending_impulse = 0.0
        self._last_quiet = -1
        self._movement_onset: Optional[int] = None

        self._peak_force = -math.inf
        self._peak_index = -1
        self._decreases = 0

        if self.bodyweight_n <= 0:
            logger.warning("Bodyweight %.1f N is not positive; segmentation disabled", self.bodyweight_n)

    @property
    def phase(self) -> Optional[Phase]:
        return self._phase

    @property
    def events(self) -> List[PhaseEvent]:
        return list(self._events)

    @property
    def sample_count(self) -> int:
        return self._index

    @property
    def movement_onset(self) -> Optional[int]:
        """First sample after quiet standing for CMJ and SJ; velocity is integrated from here."""
        return self._movement_onset

    def feed(self, force: float) -> Optional[PhaseEvent]:
        """Process one conditioned total-force sample; return the event it confirms, if any."""
        i = self._index
        self._index += 1
        if self.bodyweight_n <= 0:
            return None

        force = float(force)
        r = force / self.bodyweight_n
        if self._phase is None or self._phase is Phase.STANDING:
            self._track_quiet(i, force)
        if self._phase is None:
            event = self._enter(Phase.STANDING, 0)
        else:
            event = self._step(i, force, r)
        self._prev_r = r
        self._prev_force = force
        return event

    def finish(self) -> List[PhaseEvent]:
        """Ordered events for everything fed so far; empty when segmentation was not possible."""
        if self.bodyweight_n <= 0:
            return []
        if self._index < self.params.min_sample_count:
            logger.warning(
                "Only %d samples (minimum %d); no phases emitted", self._index, self.params.min_sample_count
            )
            return []
        if self._phase is not None and self._phase is not self.path[-1]:
            logger.warning(
                "Segmentation of %s ended in %s before reaching %s",
                self.test_type.value,
                self._phase.value,
                self.path[-1].value,
            )
        return list(self._events)

    def segment(self, signal: ConditionedSignal) -> List[PhaseEvent]:
        """Batch wrapper: feed every sample of the conditioned total force, then finish."""
        return segment_force(self, signal.total)

    def _enter(self, phase: Phase, index: int) -> PhaseEvent:
        event = PhaseEvent(sample_index=index, phase=phase)
        self._events.append(event)
        logger.debug("Phase %s starts at sample %d", phase.value, index)
        self._phase = phase
        self._stable_run = 0
        self._stable_start = -1
        return event

    def _in_stable_band(self, r: float) -> bool:
        return abs(r - 1.0) <= self.params.stable_band

    def _stable_for(self, r: float, i: int, needed: int) -> Optional[int]:
        """Track a run inside the stable band; return its start once it lasts `needed` samples."""
        if not self._in_stable_band(r):
            self._stable_run = 0
            self._stable_start = -1
            return None
        if self._stable_run == 0:
            self._stable_start = i
        self._stable_run += 1
        if self._stable_run >= needed:
            return self._stable_start
        return None

    def _track_quiet(self, i: int, force: float) -> None:
        if self._upward:
            quiet = force <= self.bodyweight_n + self._quiet_tolerance
        else:
            quiet = force >= self.bodyweight_n - self._quiet_tolerance
        if quiet:
            self._last_quiet = i
            self._pending_impulse = 0.0
        else:
            self._pending_impulse += (force - self.bodyweight_n) * self.dt

    def _integrate(self, force: float) -> None:
        self._velocity += (force - self.bodyweight_n) / self.mass_kg * self.dt

    def _step(self, i: int, force: float, r: float) -> Optional[PhaseEvent]:
        phase = self._phase
        if phase is Phase.STANDING:
            return self._step_standing(i, force, r)
        if phase is Phase.UNLOADING:
            self._integrate(force)
            prev = self._prev_r
            if prev is not None and prev < 1.0 <= r and r > prev:
                self._reset_peak()
                return self._enter(Phase.BRAKING, i)
            return None
        if phase is Phase.BRAKING:
            return self._step_braking(i, force, r)
        if phase is Phase.PROPULSION:
            if self.test_type is TestType.ISOMETRIC_PULL:
                start = self._stable_for(r, i, self._recovery_stable)
                if start is not None:
                    return self._enter(Phase.RECOVERY, start)
                return None
            start = self._takeoff.update(r < self.params.takeoff_ratio, i)
            if start is not None:
                return self._enter(Phase.FLIGHT, start)
            return None
        if phase is Phase.FLIGHT:
            start = self._landing.update(r > self.params.landing_ratio, i)
            if start is not None:
                return self._enter(Phase.LANDING, start)
            return None
        if phase is Phase.LANDING:
            start = self._stable_for(r, i, self._recovery_stable)
            if start is not None:
                return self._enter(Phase.RECOVERY, start)
            return None
        return None

    def _step_standing(self, i: int, force: float, r: float) -> Optional[PhaseEvent]:
        test_type = self.test_type
        if test_type is TestType.BALANCE:
            return None
        if test_type is TestType.DROP_JUMP:
            # Athlete starts on the box; the plate reads near zero until contact.
            start = self._contact.update(r > self.params.landing_ratio, i)
            if start is None:
                return None
            drop_height_m = float(self.params.setting("dropHeight")) / 100.0
            self._velocity = -math.sqrt(2.0 * G * max(drop_height_m, 0.0))
            self._reset_peak()
            return self._enter(Phase.BRAKING, start)

        if not self._armed:
            if self._stable_for(r, i, self._min_standing) is not None:
                self._armed = True
                logger.debug("Stable standing confirmed at sample %d", i)
            return None

        if test_type in (TestType.SQUAT_JUMP, TestType.ISOMETRIC_PULL):
            start = self._onset.update(r > 1.0 + self._onset_offset, i)
            if start is not None:
                if test_type is TestType.SQUAT_JUMP:
                    self._movement_onset = self._last_quiet + 1
                return self._enter(Phase.PROPULSION, start)
            return None

        start = self._onset.update(r < 1.0 - self._onset_offset, i)
        if start is not None:
            # Velocity is zero at the last quiet-standing sample
            self._movement_onset = self._last_quiet + 1
            self._velocity = self._pending_impulse / self.mass_kg
            return self._enter(Phase.UNLOADING, start)
        return None

    def _step_braking(self, i: int, force: float, r: float) -> Optional[PhaseEvent]:
        self._integrate(force)
        start = self._takeoff.update(r < self.params.takeoff_ratio, i)
        if start is not None:
            logger.warning("Take-off at sample %d confirmed before propulsion was detected", start)
            return self._enter(Phase.FLIGHT, start)

        if self.params.track_velocity:
            if self._velocity >= 0.0:
                return self._enter(Phase.PROPULSION, i)
            return None

        if force > self._peak_force:
            self._peak_force = force
            self._peak_index = i
            self._decreases = 0
        elif self._prev_force is not None and force < self._prev_force:
            self._decreases += 1
        if self._decreases >= self.params.peak_decrease_samples and self._peak_force > self.bodyweight_n:
            return self._enter(Phase.PROPULSION, self._peak_index)
        return None

    def _reset_peak(self) -> None:
        self._peak_force = -math.inf
        self._peak_index = -1
        self._decreases = 0


def segment_force(segmenter: PhaseSegmenter, force: Sequence[float]) -> List[PhaseEvent]:
    for value in np.asarray(force, dtype=float):
        segmenter.feed(value)
    return segmenter.finish()


def segment_phases(
    signal: ConditionedSignal,
    params: TestParameters,
    bodyweight_n: float,
    sigma_quiet: Optional[float] = None,
) -> List[PhaseEvent]:
    """Segment a whole conditioned signal with a fresh segmenter."""
    return PhaseSegmenter(params, bodyweight_n, sigma_quiet=sigma_quiet).segment(signal)


def phase_windows(events: Sequence[PhaseEvent], n: int) -> Dict[Phase, tuple[int, int]]:
    """Map each emitted phase to its [start, end) sample range; the last phase runs to n."""
    windows: Dict[Phase, tuple[int, int]] = {}
    for k, event in enumerate(events):
        end = events[k + 1].sample_index if k + 1 < len(events) else n
        windows[event.phase] = (event.sample_index, max(event.sample_index, end))
    return windows
