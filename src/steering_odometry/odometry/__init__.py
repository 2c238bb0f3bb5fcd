"""
Odometry integration for steered vehicles.

This module contains the pose/velocity integrator, its state and parameter
containers, and the rolling mean accumulators used for velocity smoothing.
"""

from .accumulator import RollingMeanAccumulator
from .integrator import SteeringOdometry, integrate_pose
from .state import IntegrationMethod, OdometryParameters, OdometryState, SampleKind, WheelSample

__all__ = [
    "SteeringOdometry",
    "integrate_pose",
    "RollingMeanAccumulator",
    "IntegrationMethod",
    "OdometryParameters",
    "OdometryState",
    "SampleKind",
    "WheelSample"
]
