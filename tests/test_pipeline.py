"""Tests for SessionPipeline: live/replay ingestion, truncation and isolation."""
import asyncio
import threading
from dataclasses import replace

import numpy as np
import pytest

from forceplate.data.types import ForceSample, JumpHeightMethod, Phase
from forceplate.detect import standing_noise_rms
from forceplate.errors import InsufficientDataError
from forceplate.pipeline import SessionPipeline, analyze_trial
from forceplate.quality import QualityBand
from forceplate.signal import condition

from conftest import BODYWEIGHT, CMJ_FLIGHT_START, cmj_ratio


class TestSessionPipeline:
    """Tests for a full CMJ session."""

    def test_full_session(self, cmj_params, cmj_trial):
        pipeline = SessionPipeline(cmj_params)
        result = pipeline.process(cmj_trial.samples())
        assert [e.phase for e in result.phases][-1] is Phase.RECOVERY
        assert len(result.phases) == 7
        assert result.bodyweight_n == pytest.approx(BODYWEIGHT)
        assert result.validity.is_valid, result.validity.flags
        assert result.jump_height_method is JumpHeightMethod.FLIGHT_TIME
        assert result.metrics["jump_height_m"] > 0.15
        assert result.metrics["peak_force_asymmetry_pct"] == pytest.approx(10.0, rel=1e-3)
        assert result.quality["peak_force_asymmetry_pct"] in (QualityBand.GOOD, QualityBand.FAIR)
        assert result.signal is not None and len(result.signal) == cmj_trial.sample_count

    def test_given_bodyweight_is_used(self, cmj_params, cmj_trial):
        result = SessionPipeline(cmj_params, bodyweight_n=790.0).process(cmj_trial.samples())
        assert result.bodyweight_n == 790.0
        assert result.metrics["bodyweight_N"] == 790.0

    def test_truncated_mid_flight(self, cmj_params, sample_stream):
        """Test a session cut off in flight keeps completed-phase metrics and omits the rest."""
        samples = sample_stream(cmj_ratio()[: CMJ_FLIGHT_START + 200])
        result = SessionPipeline(cmj_params).process(samples)
        assert result.phases[-1].phase is Phase.FLIGHT
        assert result.metrics
        assert "peak_propulsive_force_N" in result.metrics
        assert "flight_time_s" not in result.metrics
        assert result.unavailable["flight_time_s"] == "requires phase: landing"
        assert "landing_stabilization_time_s" in result.unavailable
        assert result.jump_height_method is JumpHeightMethod.IMPULSE_MOMENTUM
        assert "no_landing" in result.validity.flags
        with pytest.raises(InsufficientDataError):
            result.require("flight_time_s")
        assert result.require("peak_propulsive_force_N") == result.metrics["peak_propulsive_force_N"]

    def test_aborted_session_is_invalid(self, cmj_params, sample_stream):
        result = SessionPipeline(cmj_params).process(sample_stream(cmj_ratio()[:120]))
        assert result.phases == []
        assert result.metrics == {}
        assert "insufficient_data" in result.validity.flags
        assert not result.validity.is_valid

    def test_stop_event_ends_feed(self, cmj_params, sample_stream):
        stop = threading.Event()
        samples = sample_stream(cmj_ratio())

        def feed():
            for i, sample in enumerate(samples):
                if i == 1500:
                    stop.set()
                yield sample

        result = SessionPipeline(cmj_params).process(feed(), stop_event=stop)
        assert len(result.signal) == 1500
        assert result.phases[-1].phase in (Phase.BRAKING, Phase.PROPULSION)


class TestIngestion:
    """Tests for sample validation and buffer ownership."""

    def test_drops_non_finite_and_out_of_order(self, cmj_params):
        pipeline = SessionPipeline(cmj_params)
        assert pipeline.push(ForceSample(0, 400.0, 400.0))
        assert not pipeline.push(ForceSample(1, float("nan"), 400.0))
        assert not pipeline.push(ForceSample(0, 400.0, 400.0))
        assert pipeline.push(ForceSample(2, 400.0, float("inf"))) is False
        assert pipeline.push(ForceSample(3, 400.0, 400.0))
        assert pipeline.sample_count == 2
        assert pipeline.dropped_samples == 3
        assert pipeline.finish().dropped_samples == 3

    def test_push_after_finish_raises(self, cmj_params):
        pipeline = SessionPipeline(cmj_params)
        pipeline.finish()
        with pytest.raises(RuntimeError):
            pipeline.push(ForceSample(0, 400.0, 400.0))
        with pytest.raises(RuntimeError):
            pipeline.finish()

    def test_extend_counts_accepted(self, cmj_params, sample_stream):
        pipeline = SessionPipeline(cmj_params)
        assert pipeline.extend(sample_stream(cmj_ratio()[:10])) == 10

    def test_concurrent_sessions_are_independent(self, cmj_params, sample_stream):
        """Test interleaved sessions give the same result as separate ones."""
        samples = sample_stream(cmj_ratio())
        a = SessionPipeline(cmj_params)
        b = SessionPipeline(cmj_params.replace(smoothing_window=1))
        for sample in samples:
            a.push(sample)
            b.push(sample)
        interleaved = a.finish()
        separate = SessionPipeline(cmj_params).process(samples)
        assert interleaved.metrics == pytest.approx(separate.metrics)
        assert interleaved.phases == separate.phases
        assert b.finish().phases != []


class TestAsyncIngestion:
    """Tests for the asynchronous feed."""

    def test_async_matches_sync(self, cmj_params, sample_stream):
        samples = sample_stream(cmj_ratio())

        async def feed():
            for sample in samples:
                yield sample

        async_result = asyncio.run(SessionPipeline(cmj_params).process_async(feed()))
        sync_result = SessionPipeline(cmj_params).process(samples)
        assert async_result.phases == sync_result.phases
        assert async_result.metrics == pytest.approx(sync_result.metrics)

    def test_async_stop_event(self, cmj_params, sample_stream):
        samples = sample_stream(cmj_ratio())

        async def run():
            stop = asyncio.Event()

            async def feed():
                for i, sample in enumerate(samples):
                    if i == 200:
                        stop.set()
                    yield sample

            return await SessionPipeline(cmj_params).process_async(feed(), stop_event=stop)

        result = asyncio.run(run())
        assert len(result.signal) == 200


def _noisy(trial, sigma: float, seed: int = 7):
    """Trial with independent Gaussian noise (N, per plate) on both plates."""
    rng = np.random.default_rng(seed)
    n = trial.sample_count
    return replace(
        trial,
        left_force=trial.left_force + rng.normal(0.0, sigma, n),
        right_force=trial.right_force + rng.normal(0.0, sigma, n),
    )


class TestStandingNoise:
    """Tests for the excessive_noise validity flag."""

    @pytest.mark.parametrize("sigma", [2.0, 5.0])
    def test_typical_plate_noise_is_accepted(self, cmj_params, cmj_trial, sigma):
        result = analyze_trial(_noisy(cmj_trial, sigma), cmj_params)
        assert "excessive_noise" not in result.validity.flags
        assert len(result.phases) == 7

    def test_heavy_noise_is_flagged(self, cmj_params, cmj_trial):
        result = analyze_trial(_noisy(cmj_trial, 20.0), cmj_params)
        assert "excessive_noise" in result.validity.flags
        assert not result.validity.is_valid

    def test_noise_rms_ignores_slow_drift(self, cmj_params, cmj_trial):
        """Test a linear drift across the standing window is not counted as noise."""
        signal = condition(cmj_trial, cmj_params)
        drift = replace(signal, raw_total=signal.raw_total + np.linspace(0.0, 50.0, len(signal)))
        assert standing_noise_rms(drift, 0, 1000) == pytest.approx(0.0, abs=1e-9)
        assert standing_noise_rms(signal, 0, 2) == 0.0
