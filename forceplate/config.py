"""Per-test-type configuration: TestType, TestParameters and their lookup tables."""
import dataclasses
import math
from types import MappingProxyType
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

from .data.types import JumpHeightMethod, Phase, RfdMethod
from .errors import InvalidParameterError

G = 9.81


class TestType(Enum):
    """Closed set of supported protocols."""

    COUNTERMOVEMENT_JUMP = "CMJ"
    SQUAT_JUMP = "SJ"
    DROP_JUMP = "DJ"
    ISOMETRIC_PULL = "IMTP"
    BALANCE = "BALANCE"

    # Keep pytest from collecting this enum as a test class.
    __test__ = False

    @classmethod
    def from_code(cls, code: str) -> "TestType":
        """Parse a code ("CMJ") or member name ("countermovement_jump"), case-insensitive."""
        key = str(code).strip().upper()
        for member in cls:
            if key in (member.value, member.name):
                return member
        raise InvalidParameterError(f"Unknown test type: {code!r}")

    @property
    def is_jump(self) -> bool:
        return self in (TestType.COUNTERMOVEMENT_JUMP, TestType.SQUAT_JUMP, TestType.DROP_JUMP)


@dataclass(frozen=True)
class TestParameters:
    """Thresholds and windows for one session. Immutable once the test starts.

    Ratios are relative to bodyweight; *_ms fields are converted to sample
    counts with ms_to_samples().
    """

    __test__ = False

    test_type: TestType = TestType.COUNTERMOVEMENT_JUMP
    sampling_rate_hz: float = 1000.0
    duration_s: float = 10.0
    force_threshold_n: float = 10.0
    noise_threshold_n: float = 5.0
    smoothing_window: int = 5
    filter_cutoff_hz: Optional[float] = None
    lowpass_alpha: Optional[float] = None
    weighing_s: float = 1.0
    unloading_band: float = 0.15
    takeoff_ratio: float = 0.1
    landing_ratio: float = 0.5
    stable_band: float = 0.05
    min_standing_ms: float = 500.0
    onset_debounce_ms: float = 10.0
    takeoff_debounce_ms: float = 5.0
    landing_debounce_ms: float = 5.0
    recovery_stable_ms: float = 300.0
    track_velocity: bool = True
    peak_decrease_samples: int = 3
    min_sample_count: int = 200
    rfd_window_ms: float = 100.0
    rfd_method: RfdMethod = RfdMethod.LINEAR_FIT
    jump_height_method: JumpHeightMethod = JumpHeightMethod.FLIGHT_TIME
    flight_time_min_s: float = 0.1
    flight_time_max_s: float = 2.0
    custom_settings: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not (math.isfinite(self.sampling_rate_hz) and self.sampling_rate_hz > 0):
            raise InvalidParameterError(f"sampling_rate_hz must be positive, got {self.sampling_rate_hz}")
        if self.duration_s <= 0:
            raise InvalidParameterError(f"duration_s must be positive, got {self.duration_s}")
        if self.smoothing_window < 1:
            raise InvalidParameterError(f"smoothing_window must be >= 1, got {self.smoothing_window}")
        if self.lowpass_alpha is not None and not 0.0 < self.lowpass_alpha <= 1.0:
            raise InvalidParameterError(f"lowpass_alpha must be in (0, 1], got {self.lowpass_alpha}")
        if self.filter_cutoff_hz is not None and self.filter_cutoff_hz <= 0:
            raise InvalidParameterError(f"filter_cutoff_hz must be positive, got {self.filter_cutoff_hz}")
        if not 0.0 < self.unloading_band < 1.0:
            raise InvalidParameterError(f"unloading_band must be in (0, 1), got {self.unloading_band}")
        if not 0.0 < self.takeoff_ratio < self.landing_ratio:
            raise InvalidParameterError(
                f"expected 0 < takeoff_ratio < landing_ratio, got {self.takeoff_ratio}, {self.landing_ratio}"
            )
        if not 0.0 < self.stable_band < 1.0:
            raise InvalidParameterError(f"stable_band must be in (0, 1), got {self.stable_band}")
        for name in (
            "weighing_s",
            "min_standing_ms",
            "onset_debounce_ms",
            "takeoff_debounce_ms",
            "landing_debounce_ms",
            "recovery_stable_ms",
            "rfd_window_ms",
            "force_threshold_n",
            "noise_threshold_n",
        ):
            if getattr(self, name) < 0:
                raise InvalidParameterError(f"{name} must be non-negative, got {getattr(self, name)}")
        if self.peak_decrease_samples < 1:
            raise InvalidParameterError(f"peak_decrease_samples must be >= 1, got {self.peak_decrease_samples}")
        if self.min_sample_count < 1:
            raise InvalidParameterError(f"min_sample_count must be >= 1, got {self.min_sample_count}")
        if self.flight_time_min_s > self.flight_time_max_s:
            raise InvalidParameterError("flight_time_min_s must not exceed flight_time_max_s")
        # Read-only copy; the caller's dict stays theirs
        object.__setattr__(self, "custom_settings", MappingProxyType(dict(self.custom_settings)))

    @property
    def sample_interval_s(self) -> float:
        return 1.0 / self.sampling_rate_hz

    @property
    def total_samples(self) -> int:
        return int(round(self.duration_s * self.sampling_rate_hz))

    def ms_to_samples(self, ms: float) -> int:
        """Window length in samples, at least 1."""
        return max(1, int(math.ceil(self.sampling_rate_hz * ms / 1000.0)))

    def setting(self, key: str) -> Any:
        """Custom setting, falling back to the per-test-type default."""
        if key in self.custom_settings:
            return self.custom_settings[key]
        defaults = DEFAULT_CUSTOM_SETTINGS.get(self.test_type, {})
        if key in defaults:
            return defaults[key]
        raise KeyError(f"No custom setting {key!r} for {self.test_type.value}")

    def replace(self, **changes: Any) -> "TestParameters":
        return dataclasses.replace(self, **changes)


DEFAULT_PARAMETERS: Dict[TestType, Dict[str, Any]] = {
    TestType.COUNTERMOVEMENT_JUMP: dict(
        duration_s=10.0, force_threshold_n=10.0, noise_threshold_n=5.0, smoothing_window=5, unloading_band=0.15,
    ),
    TestType.SQUAT_JUMP: dict(
        duration_s=8.0, force_threshold_n=15.0, noise_threshold_n=5.0, smoothing_window=3, unloading_band=0.1,
    ),
    TestType.DROP_JUMP: dict(
        duration_s=12.0, force_threshold_n=20.0, noise_threshold_n=8.0, smoothing_window=3, unloading_band=0.2,
        min_standing_ms=0.0, flight_time_min_s=0.05,
    ),
    TestType.ISOMETRIC_PULL: dict(
        duration_s=5.0, force_threshold_n=50.0, noise_threshold_n=10.0, smoothing_window=5, unloading_band=0.1,
        stable_band=0.08, rfd_method=RfdMethod.ENDPOINT,
    ),
    TestType.BALANCE: dict(
        sampling_rate_hz=100.0, duration_s=60.0, force_threshold_n=2.0, noise_threshold_n=1.0, smoothing_window=1,
        min_sample_count=100,
    ),
}

DEFAULT_CUSTOM_SETTINGS: Dict[TestType, Dict[str, Any]] = {
    TestType.COUNTERMOVEMENT_JUMP: {
        "minCounterMovementDepth": 50.0,  # N below bodyweight
        "maxPreparationTime": 3.0,  # s, onset to take-off
    },
    TestType.SQUAT_JUMP: {
        "holdingTime": 2.0,  # s
        "maxHoldingVariation": 30.0,  # N
    },
    TestType.DROP_JUMP: {
        "dropHeight": 30.0,  # cm
        "maxGroundContactTime": 0.3,  # s
    },
    TestType.ISOMETRIC_PULL: {
        "targetForce": 1000.0,  # N
        "holdTime": 3.0,  # s
    },
    TestType.BALANCE: {
        "eyesOpen": True,
        "singleLeg": False,
    },
}

PHASE_PATHS: Dict[TestType, Tuple[Phase, ...]] = {
    TestType.COUNTERMOVEMENT_JUMP: (
        Phase.STANDING, Phase.UNLOADING, Phase.BRAKING, Phase.PROPULSION, Phase.FLIGHT, Phase.LANDING, Phase.RECOVERY,
    ),
    TestType.SQUAT_JUMP: (Phase.STANDING, Phase.PROPULSION, Phase.FLIGHT, Phase.LANDING, Phase.RECOVERY),
    TestType.DROP_JUMP: (
        Phase.STANDING, Phase.BRAKING, Phase.PROPULSION, Phase.FLIGHT, Phase.LANDING, Phase.RECOVERY,
    ),
    TestType.ISOMETRIC_PULL: (Phase.STANDING, Phase.PROPULSION, Phase.RECOVERY),
    TestType.BALANCE: (Phase.STANDING,),
}

BASIC_METRICS = frozenset({
    "bodyweight_N",
    "peak_force_N",
    "mean_force_N",
    "min_force_N",
    "relative_peak_force",
    "force_cv",
    "left_load_pct",
    "right_load_pct",
    "standing_noise_pct",
    "test_duration_s",
})

_JUMP_METRICS = frozenset({
    "flight_time_s",
    "jump_height_flight_m",
    "take_off_velocity_m_s",
    "jump_height_impulse_m",
    "jump_height_m",
    "propulsion_time_s",
    "peak_propulsive_force_N",
    "mean_propulsive_force_N",
    "propulsion_impulse_Ns",
    "propulsion_net_impulse_Ns",
    "rfd_N_per_s",
    "peak_rfd_N_per_s",
    "peak_power_W",
    "peak_landing_force_N",
    "landing_stabilization_time_s",
    "peak_force_asymmetry_pct",
    "peak_force_asymmetry_index",
    "propulsion_impulse_asymmetry_pct",
    "propulsion_impulse_asymmetry_index",
    "time_to_peak_force_asymmetry_pct",
    "time_to_peak_force_asymmetry_index",
    "landing_force_asymmetry_pct",
    "landing_force_asymmetry_index",
})

_BRAKING_METRICS = frozenset({
    "braking_time_s",
    "peak_braking_force_N",
    "mean_braking_force_N",
    "braking_impulse_Ns",
})

SUPPORTED_METRICS: Dict[TestType, FrozenSet[str]] = {
    TestType.COUNTERMOVEMENT_JUMP: BASIC_METRICS | _JUMP_METRICS | _BRAKING_METRICS | frozenset({
        "time_to_takeoff_s",
        "rsi_mod",
        "unloading_time_s",
        "unloading_impulse_Ns",
        "min_unloading_force_N",
        "countermovement_depth_m",
    }),
    TestType.SQUAT_JUMP: BASIC_METRICS | _JUMP_METRICS | frozenset({"time_to_takeoff_s", "rsi_mod"}),
    TestType.DROP_JUMP: BASIC_METRICS | _JUMP_METRICS | _BRAKING_METRICS | frozenset({"contact_time_s", "rsi"}),
    TestType.ISOMETRIC_PULL: BASIC_METRICS | frozenset({
        "net_peak_force_N",
        "time_to_peak_force_s",
        "rfd_0_50ms_N_per_s",
        "rfd_0_100ms_N_per_s",
        "rfd_0_200ms_N_per_s",
        "force_at_100ms_N",
        "force_at_200ms_N",
        "impulse_0_100ms_Ns",
        "impulse_0_200ms_Ns",
        "target_force_pct",
        "rfd_N_per_s",
        "peak_rfd_N_per_s",
        "peak_force_asymmetry_pct",
        "peak_force_asymmetry_index",
    }),
    TestType.BALANCE: BASIC_METRICS | frozenset({
        "cop_range_ml_mm",
        "cop_range_ap_mm",
        "cop_path_length_mm",
        "cop_velocity_mm_s",
        "cop_area_mm2",
        "cop_path_asymmetry_pct",
        "cop_path_asymmetry_index",
    }),
}


def default_parameters(test_type: TestType, **overrides: Any) -> TestParameters:
    """Default TestParameters for a test type, with optional field overrides."""
    values: Dict[str, Any] = dict(DEFAULT_PARAMETERS.get(test_type, {}))
    values.update(overrides)
    return TestParameters(test_type=test_type, **values)
