"""
Kinematic models for steered vehicles.

This module holds the vehicle geometry and the forward/inverse kinematics of
the bicycle and tricycle wheel layouts.
"""

from .geometry import VehicleGeometry, WheelLayout
from .model import SteeringKinematics, WheelCommand

__all__ = [
    "VehicleGeometry",
    "WheelLayout",
    "SteeringKinematics",
    "WheelCommand"
]
