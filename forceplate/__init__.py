from .config import TestParameters, TestType, default_parameters
from .data import ForceSample, ForceTrial, Phase, PhaseEvent, PipelineResult, load_trial, load_trial_from_dict
from .errors import ForcePlateError, InsufficientDataError, InvalidParameterError
from .pipeline import SessionPipeline, analyze_trial
from .quality import QualityBand
from .run_analysis import analyze, run_analysis

__all__ = [
    "ForcePlateError",
    "ForceSample",
    "ForceTrial",
    "InsufficientDataError",
    "InvalidParameterError",
    "Phase",
    "PhaseEvent",
    "PipelineResult",
    "QualityBand",
    "SessionPipeline",
    "TestParameters",
    "TestType",
    "analyze",
    "analyze_trial",
    "default_parameters",
    "load_trial",
    "load_trial_from_dict",
    "run_analysis",
]
