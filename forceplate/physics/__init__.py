from .asymmetry import asymmetry_index, asymmetry_percentage, compute_asymmetry, compute_phase_asymmetries
from .balance import compute_balance_metrics
from .kinematics import compute_kinematics, jump_height_from_flight_time, jump_height_from_velocity
from .metrics import compute_metrics

__all__ = [
    "asymmetry_index",
    "asymmetry_percentage",
    "compute_asymmetry",
    "compute_balance_metrics",
    "compute_kinematics",
    "compute_metrics",
    "compute_phase_asymmetries",
    "jump_height_from_flight_time",
    "jump_height_from_velocity",
]
