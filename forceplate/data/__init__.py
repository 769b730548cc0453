from .load import load_trial, load_trial_from_dict
from .types import (
    AsymmetryKind,
    AsymmetryResult,
    ConditionedSignal,
    CopTraces,
    ForceSample,
    ForceTrial,
    JumpHeightMethod,
    MetricsReport,
    Phase,
    PhaseEvent,
    PipelineResult,
    RfdMethod,
    TrialValidity,
)

__all__ = [
    "load_trial",
    "load_trial_from_dict",
    "AsymmetryKind",
    "AsymmetryResult",
    "ConditionedSignal",
    "CopTraces",
    "ForceSample",
    "ForceTrial",
    "JumpHeightMethod",
    "MetricsReport",
    "Phase",
    "PhaseEvent",
    "PipelineResult",
    "RfdMethod",
    "TrialValidity",
]
