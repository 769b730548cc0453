"""Tests for the phase segmentation state machine."""
import numpy as np
import pytest

from forceplate.config import PHASE_PATHS, TestType, default_parameters
from forceplate.data.types import Phase, PhaseEvent
from forceplate.detect import (
    PhaseSegmenter,
    find_movement_onset,
    onset_tolerance,
    phase_windows,
    segment_phases,
)
from forceplate.signal import condition

from conftest import (
    BODYWEIGHT,
    CMJ_FLIGHT_START,
    CMJ_HOLD_START,
    CMJ_LANDING_START,
    CMJ_RISE_START,
    CMJ_UNLOAD_START,
    cmj_ratio,
    dj_ratio,
    imtp_ratio,
    make_signal,
    make_trial,
    ratio_trace,
    sj_ratio,
)


def _phases(events):
    return [e.phase for e in events]


class TestCountermovementJump:
    """Tests for CMJ segmentation."""

    def test_canonical_seven_phases(self, cmj_params, cmj_trial):
        """Test the canonical trace yields all seven phases in order."""
        signal = condition(cmj_trial, cmj_params)
        events = segment_phases(signal, cmj_params, BODYWEIGHT)
        assert _phases(events) == list(PHASE_PATHS[TestType.COUNTERMOVEMENT_JUMP])
        indices = [e.sample_index for e in events]
        assert indices[0] == 0
        assert all(a < b for a, b in zip(indices, indices[1:]))

    def test_unsmoothed_edges_are_exact(self, cmj_params):
        params = cmj_params.replace(smoothing_window=1)
        events = segment_phases(make_signal(cmj_ratio()), params, BODYWEIGHT)
        windows = phase_windows(events, len(cmj_ratio()))
        assert windows[Phase.FLIGHT] == (CMJ_FLIGHT_START, CMJ_LANDING_START)
        assert windows[Phase.LANDING][0] == CMJ_LANDING_START

    def test_peak_fallback_when_velocity_not_tracked(self, cmj_params):
        """Test propulsion starts at the force peak once the decrease is sustained."""
        params = cmj_params.replace(smoothing_window=1, track_velocity=False)
        events = segment_phases(make_signal(cmj_ratio()), params, BODYWEIGHT)
        windows = phase_windows(events, len(cmj_ratio()))
        assert windows[Phase.PROPULSION][0] == CMJ_HOLD_START

    def test_unloading_requires_stable_standing(self, cmj_params):
        """Test an early dip before the stable period does not start the movement."""
        ratio = ratio_trace([(1.0, 1.0, 100), (0.7, 0.7, 50), (1.0, 1.0, 100)])
        ratio = np.concatenate([ratio, cmj_ratio()])
        events = segment_phases(make_signal(ratio), cmj_params, BODYWEIGHT)
        assert events[1].phase is Phase.UNLOADING
        assert events[1].sample_index > 250 + 1000

    def test_single_sample_dropout_is_not_takeoff(self, cmj_params):
        ratio = cmj_ratio()
        ratio[1500] = 0.0
        params = cmj_params.replace(smoothing_window=1)
        events = segment_phases(make_signal(ratio), params, BODYWEIGHT)
        windows = phase_windows(events, len(ratio))
        assert windows[Phase.FLIGHT][0] == CMJ_FLIGHT_START

    def test_streaming_matches_batch(self, cmj_params):
        """Test feed() returns each event as it is confirmed and matches segment()."""
        force = cmj_ratio() * BODYWEIGHT
        segmenter = PhaseSegmenter(cmj_params.replace(smoothing_window=1), BODYWEIGHT)
        streamed = [event for event in (segmenter.feed(f) for f in force) if event is not None]
        batch = segment_phases(make_signal(cmj_ratio()), cmj_params.replace(smoothing_window=1), BODYWEIGHT)
        assert streamed == segmenter.finish() == batch
        assert segmenter.phase is Phase.RECOVERY


class TestEdgeCases:
    """Tests for truncated, short and degenerate input."""

    def test_truncated_after_landing_has_no_recovery(self, cmj_params):
        ratio = cmj_ratio()[: CMJ_LANDING_START + 100]
        events = segment_phases(make_signal(ratio), cmj_params, BODYWEIGHT)
        assert _phases(events)[-1] is Phase.LANDING
        assert Phase.RECOVERY not in _phases(events)

    def test_too_few_samples_returns_empty(self, cmj_params):
        events = segment_phases(make_signal(np.ones(150)), cmj_params, BODYWEIGHT)
        assert events == []

    @pytest.mark.parametrize("bodyweight", [0.0, -10.0])
    def test_non_positive_bodyweight_returns_empty(self, cmj_params, bodyweight):
        assert segment_phases(make_signal(cmj_ratio()), cmj_params, bodyweight) == []

    def test_phase_windows_partition(self):
        events = [
            PhaseEvent(0, Phase.STANDING),
            PhaseEvent(100, Phase.PROPULSION),
            PhaseEvent(250, Phase.FLIGHT),
        ]
        assert phase_windows(events, 400) == {
            Phase.STANDING: (0, 100),
            Phase.PROPULSION: (100, 250),
            Phase.FLIGHT: (250, 400),
        }


class TestOtherProtocols:
    """Tests for SJ, DJ, IMTP and balance phase paths."""

    def test_squat_jump_path(self):
        params = default_parameters(TestType.SQUAT_JUMP)
        trial = make_trial(sj_ratio(), TestType.SQUAT_JUMP)
        events = segment_phases(condition(trial, params), params, BODYWEIGHT)
        assert _phases(events) == list(PHASE_PATHS[TestType.SQUAT_JUMP])

    def test_drop_jump_path(self):
        params = default_parameters(TestType.DROP_JUMP)
        trial = make_trial(dj_ratio(), TestType.DROP_JUMP)
        events = segment_phases(condition(trial, params), params, BODYWEIGHT)
        assert _phases(events) == list(PHASE_PATHS[TestType.DROP_JUMP])
        assert 500 <= events[1].sample_index < 510

    def test_isometric_pull_path(self):
        params = default_parameters(TestType.ISOMETRIC_PULL)
        trial = make_trial(imtp_ratio(), TestType.ISOMETRIC_PULL)
        events = segment_phases(condition(trial, params), params, BODYWEIGHT)
        assert _phases(events) == [Phase.STANDING, Phase.PROPULSION, Phase.RECOVERY]
        assert 1000 < events[1].sample_index < 1020

    def test_balance_is_standing_only(self):
        params = default_parameters(TestType.BALANCE)
        events = segment_phases(make_signal(np.ones(500), fs=100.0), params, BODYWEIGHT)
        assert events == [PhaseEvent(0, Phase.STANDING)]


class TestMovementOnset:
    """Tests for the quiet-standing exit that velocity integration starts from."""

    def test_onset_is_first_sample_after_quiet_standing(self, cmj_params):
        params = cmj_params.replace(smoothing_window=1)
        segmenter = PhaseSegmenter(params, BODYWEIGHT, sigma_quiet=0.0)
        segmenter.segment(make_signal(cmj_ratio()))
        assert segmenter.movement_onset == CMJ_UNLOAD_START + 1

    def test_onset_falls_back_to_bodyweight_fraction(self, cmj_params):
        """Test an unknown quiet sigma uses 95 % of bodyweight as the quiet limit."""
        params = cmj_params.replace(smoothing_window=1)
        segmenter = PhaseSegmenter(params, BODYWEIGHT)
        segmenter.segment(make_signal(cmj_ratio()))
        # ratio first drops below 0.95 at 38 samples into the dip
        assert segmenter.movement_onset == CMJ_UNLOAD_START + 38

    def test_batch_onset_matches_streaming(self, cmj_params):
        force = cmj_ratio() * BODYWEIGHT
        params = cmj_params.replace(smoothing_window=1)
        segmenter = PhaseSegmenter(params, BODYWEIGHT, sigma_quiet=0.0)
        events = segmenter.segment(make_signal(cmj_ratio()))
        unloading = next(e.sample_index for e in events if e.phase is Phase.UNLOADING)
        assert find_movement_onset(force, BODYWEIGHT, unloading, 0.0) == segmenter.movement_onset
        assert onset_tolerance(BODYWEIGHT) == pytest.approx(0.05 * BODYWEIGHT)
        assert onset_tolerance(BODYWEIGHT, 2.0) == pytest.approx(10.0)

    def test_propulsion_at_velocity_zero(self, cmj_params):
        """Test braking ends on the sample where the integrated velocity turns non-negative."""
        force = cmj_ratio() * BODYWEIGHT
        velocity = np.cumsum(force - BODYWEIGHT) / 1000.0 / (BODYWEIGHT / 9.81)
        zero = CMJ_RISE_START + int(np.argmax(velocity[CMJ_RISE_START:] >= 0.0))
        params = cmj_params.replace(smoothing_window=1)
        events = segment_phases(make_signal(cmj_ratio()), params, BODYWEIGHT, sigma_quiet=0.0)
        propulsion = phase_windows(events, len(force))[Phase.PROPULSION][0]
        assert abs(propulsion - zero) <= 1

    def test_squat_jump_onset_on_rise(self):
        params = default_parameters(TestType.SQUAT_JUMP, smoothing_window=1)
        segmenter = PhaseSegmenter(params, BODYWEIGHT, sigma_quiet=0.0)
        events = segmenter.segment(make_signal(sj_ratio()))
        propulsion = next(e.sample_index for e in events if e.phase is Phase.PROPULSION)
        assert segmenter.movement_onset is not None
        assert segmenter.movement_onset <= propulsion
