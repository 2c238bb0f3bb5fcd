"""
Steering Odometry: pose estimation and Ackermann kinematics for steered vehicles

A scientific Python package for dead reckoning of steered ground vehicles from
wheel feedback, and for converting body twist commands into steering and
traction setpoints.

This package implements:
- Forward and inverse kinematics for bicycle and tricycle wheel layouts
- Odometry from wheel positions, wheel velocities or open-loop commands
- Exact (constant curvature) and 2nd order Runge-Kutta pose integration
- Rolling mean velocity smoothing
- Ground-truth simulation and trajectory plots for drift analysis
"""

from .kinematics import SteeringKinematics, VehicleGeometry, WheelCommand, WheelLayout
from .odometry import (
    IntegrationMethod,
    OdometryParameters,
    OdometryState,
    RollingMeanAccumulator,
    SampleKind,
    SteeringOdometry,
    WheelSample,
    integrate_pose
)

__version__ = "1.0.0"
__author__ = "Steering Odometry Team"

__all__ = [
    "SteeringKinematics",
    "VehicleGeometry",
    "WheelCommand",
    "WheelLayout",
    "SteeringOdometry",
    "OdometryState",
    "OdometryParameters",
    "IntegrationMethod",
    "RollingMeanAccumulator",
    "SampleKind",
    "WheelSample",
    "integrate_pose"
]
