"""Typed structures for bilateral force-plate data and pipeline outputs."""
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Dict, Iterator, List, Optional

import numpy as np

from ..errors import InsufficientDataError

if TYPE_CHECKING:
    from ..config import TestType
    from ..quality import QualityBand


class Phase(Enum):
    """Movement phases in the order a single jump passes through them."""

    STANDING = "standing"
    UNLOADING = "unloading"
    BRAKING = "braking"
    PROPULSION = "propulsion"
    FLIGHT = "flight"
    LANDING = "landing"
    RECOVERY = "recovery"


class AsymmetryKind(Enum):
    FORCE = "force"
    IMPULSE = "impulse"
    TEMPORAL = "temporal"
    SPATIAL = "spatial"


class JumpHeightMethod(Enum):
    """How a jump height value was derived; the two methods are not interchangeable."""

    FLIGHT_TIME = "flight_time"
    IMPULSE_MOMENTUM = "impulse_momentum"


class RfdMethod(Enum):
    LINEAR_FIT = "linear_fit"
    ENDPOINT = "endpoint"


@dataclass(frozen=True)
class ForceSample:
    """One acquisition tick from the dual plate. Forces in N, COP in mm."""

    timestamp_ms: int
    left_force: float
    right_force: float
    left_cop_x: Optional[float] = None
    left_cop_y: Optional[float] = None
    right_cop_x: Optional[float] = None
    right_cop_y: Optional[float] = None

    @property
    def total_force(self) -> float:
        return self.left_force + self.right_force

    @property
    def is_finite(self) -> bool:
        return math.isfinite(self.left_force) and math.isfinite(self.right_force)

    @property
    def has_cop(self) -> bool:
        return None not in (self.left_cop_x, self.left_cop_y, self.right_cop_x, self.right_cop_y)


@dataclass
class CopTraces:
    """Per-plate centre-of-pressure coordinates (mm), x = medial-lateral, y = anterior-posterior."""

    left_x: np.ndarray
    left_y: np.ndarray
    right_x: np.ndarray
    right_y: np.ndarray

    def __len__(self) -> int:
        return len(self.left_x)


@dataclass
class ForceTrial:
    """A bounded bilateral recording (replay input or a finished live buffer)."""

    athlete_id: str
    test_type: str
    sample_rate: float
    left_force: np.ndarray
    right_force: np.ndarray
    timestamps_ms: np.ndarray
    cop: Optional[CopTraces] = None
    bodyweight_n: Optional[float] = None

    def __post_init__(self) -> None:
        n = len(self.left_force)
        if len(self.right_force) != n or len(self.timestamps_ms) != n:
            raise ValueError(
                f"Array length mismatch: left_force={len(self.left_force)}, "
                f"right_force={len(self.right_force)}, timestamps_ms={len(self.timestamps_ms)}"
            )
        if self.cop is not None and len(self.cop) != n:
            raise ValueError(f"COP length {len(self.cop)} != sample count {n}")

    @property
    def sample_count(self) -> int:
        return len(self.left_force)

    @property
    def force(self) -> np.ndarray:
        return self.left_force + self.right_force

    @property
    def t(self) -> np.ndarray:
        return np.arange(self.sample_count, dtype=float) / self.sample_rate

    def samples(self) -> Iterator[ForceSample]:
        """Replay the trial as an ordered stream of ForceSample."""
        for i in range(self.sample_count):
            if self.cop is not None:
                yield ForceSample(
                    timestamp_ms=int(self.timestamps_ms[i]),
                    left_force=float(self.left_force[i]),
                    right_force=float(self.right_force[i]),
                    left_cop_x=float(self.cop.left_x[i]),
                    left_cop_y=float(self.cop.left_y[i]),
                    right_cop_x=float(self.cop.right_x[i]),
                    right_cop_y=float(self.cop.right_y[i]),
                )
            else:
                yield ForceSample(
                    timestamp_ms=int(self.timestamps_ms[i]),
                    left_force=float(self.left_force[i]),
                    right_force=float(self.right_force[i]),
                )


@dataclass
class ConditionedSignal:
    """Filtered channels handed from the conditioner to segmentation and metrics."""

    total: np.ndarray
    left: np.ndarray
    right: np.ndarray
    raw_total: np.ndarray
    noise_mask: np.ndarray
    sample_rate: float
    cop: Optional[CopTraces] = None

    def __len__(self) -> int:
        return len(self.total)

    @property
    def dt(self) -> float:
        return 1.0 / self.sample_rate

    @property
    def t(self) -> np.ndarray:
        return np.arange(len(self.total), dtype=float) / self.sample_rate


@dataclass(frozen=True)
class PhaseEvent:
    """Start of a phase interval; events are ordered by sample_index."""

    sample_index: int
    phase: Phase


@dataclass(frozen=True)
class AsymmetryResult:
    """Left/right comparison. asymmetry_index < 0 means left-dominant."""

    kind: AsymmetryKind
    left_value: float
    right_value: float
    percentage: float
    asymmetry_index: float
    metric: str = ""

    @property
    def is_left_dominant(self) -> bool:
        return self.asymmetry_index < 0

    @property
    def is_right_dominant(self) -> bool:
        return self.asymmetry_index > 0


@dataclass
class TrialValidity:
    """Result of trial validity checks."""

    is_valid: bool
    flags: list


@dataclass
class MetricsReport:
    """Metrics engine output: computed values plus explicit unavailable markers."""

    metrics: Dict[str, float] = field(default_factory=dict)
    unavailable: Dict[str, str] = field(default_factory=dict)
    asymmetries: List[AsymmetryResult] = field(default_factory=list)
    jump_height_method: Optional[JumpHeightMethod] = None


@dataclass
class PipelineResult:
    """Everything one session hands to the storage/reporting collaborators."""

    test_type: "TestType"
    metrics: Dict[str, float]
    unavailable: Dict[str, str]
    quality: Dict[str, "QualityBand"]
    phases: List[PhaseEvent]
    asymmetries: List[AsymmetryResult]
    validity: TrialValidity
    bodyweight_n: float
    jump_height_method: Optional[JumpHeightMethod] = None
    signal: Optional[ConditionedSignal] = None
    dropped_samples: int = 0
    movement_onset: Optional[int] = None

    def require(self, name: str) -> float:
        """Return a metric or raise InsufficientDataError with the recorded reason."""
        if name in self.metrics:
            return self.metrics[name]
        raise InsufficientDataError(name, self.unavailable.get(name, "not computed for this test type"))
