"""
Simulation components for odometry validation.

This module drives a steered vehicle along analytic twist profiles, integrates
the ground truth with scipy and records the wheel feedback a hardware
interface would report, so odometry drift can be measured against truth.
"""

from .profiles import TwistProfile, PROFILE_TYPES
from .vehicle import (
    VehicleSimulation,
    SimulationParameters,
    SimulationResult,
    PoseErrorStatistics,
    replay_odometry,
    compute_pose_errors
)

__all__ = [
    "TwistProfile",
    "PROFILE_TYPES",
    "VehicleSimulation",
    "SimulationParameters",
    "SimulationResult",
    "PoseErrorStatistics",
    "replay_odometry",
    "compute_pose_errors"
]
