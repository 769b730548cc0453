"""Ordinal quality bands for metric values, driven by fixed threshold tables."""
from enum import Enum
from typing import Dict, Mapping, Optional, Tuple

from .config import TestType


class QualityBand(Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    VERY_POOR = "very_poor"


_BANDS = (QualityBand.EXCELLENT, QualityBand.GOOD, QualityBand.FAIR, QualityBand.POOR, QualityBand.VERY_POOR)

# (cutoffs from best to worst, higher_is_better)
Table = Tuple[Tuple[float, float, float, float], bool]

ASYMMETRY_TABLE: Table = ((5.0, 10.0, 15.0, 25.0), False)

_CMJ_HEIGHT: Table = ((0.45, 0.35, 0.25, 0.15), True)
_JUMP_FORCE: Table = ((2.5, 2.1, 1.8, 1.5), True)

QUALITY_TABLES: Dict[TestType, Dict[str, Table]] = {
    TestType.COUNTERMOVEMENT_JUMP: {
        "jump_height_m": _CMJ_HEIGHT,
        "relative_peak_force": _JUMP_FORCE,
        "rsi_mod": ((0.6, 0.45, 0.35, 0.25), True),
    },
    TestType.SQUAT_JUMP: {
        "jump_height_m": ((0.40, 0.30, 0.22, 0.14), True),
        "relative_peak_force": _JUMP_FORCE,
        "rsi_mod": ((0.6, 0.45, 0.35, 0.25), True),
    },
    TestType.DROP_JUMP: {
        "jump_height_m": _CMJ_HEIGHT,
        "relative_peak_force": _JUMP_FORCE,
        "rsi": ((2.5, 2.0, 1.5, 1.0), True),
    },
    TestType.ISOMETRIC_PULL: {
        "relative_peak_force": ((4.0, 3.5, 3.0, 2.5), True),
    },
    TestType.BALANCE: {
        "cop_velocity_mm_s": ((10.0, 15.0, 20.0, 30.0), False),
    },
}

# Applies to every test type
COMMON_TABLES: Dict[str, Table] = {
    "standing_noise_pct": ((1.0, 2.0, 5.0, 10.0), False),
}


def band_for(value: float, table: Table) -> QualityBand:
    """Band of value in table. Lower-is-better cutoffs are exclusive upper bounds; higher-is-better inclusive lower bounds."""
    cutoffs, higher_is_better = table
    for cutoff, band in zip(cutoffs, _BANDS):
        if (value >= cutoff) if higher_is_better else (value < cutoff):
            return band
    return QualityBand.VERY_POOR


def table_for(metric: str, test_type: TestType) -> Optional[Table]:
    if metric.endswith("_asymmetry_pct"):
        return ASYMMETRY_TABLE
    table = QUALITY_TABLES.get(test_type, {}).get(metric)
    if table is None:
        table = COMMON_TABLES.get(metric)
    return table


def classify(metric: str, value: float, test_type: TestType) -> Optional[QualityBand]:
    """Band for one metric, or None when the metric has no table."""
    table = table_for(metric, test_type)
    if table is None:
        return None
    return band_for(value, table)


def classify_metrics(metrics: Mapping[str, float], test_type: TestType) -> Dict[str, QualityBand]:
    out: Dict[str, QualityBand] = {}
    for name, value in metrics.items():
        band = classify(name, value, test_type)
        if band is not None:
            out[name] = band
    return out
