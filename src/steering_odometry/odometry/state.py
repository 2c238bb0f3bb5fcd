"""
State, parameter and sample containers for steering odometry.
"""

import math
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import numpy as np

from ..constants import DEFAULT_ROLLING_WINDOW_SIZE
from ..kinematics.geometry import WheelLayout
from .accumulator import validate_window_size


class IntegrationMethod(Enum):
    """Pose integration scheme."""
    EXACT = "exact"                  # Closed-form arc, RK2 below the epsilon
    RUNGE_KUTTA_2 = "runge_kutta_2"  # Midpoint heading for every step


class SampleKind(Enum):
    """Quantity carried by a wheel sample."""
    POSITION = "position"
    VELOCITY = "velocity"


@dataclass
class OdometryState:
    """
    Pose and smoothed velocity of the vehicle.

    Heading is not wrapped: it accumulates without bound, callers that need a
    canonical range wrap it themselves.

    Attributes:
        timestamp: Time of the last successful update [s]
        x: Position along the world x axis [m]
        y: Position along the world y axis [m]
        heading: Yaw in the world frame [rad]
        linear: Smoothed linear velocity [m/s]
        angular: Smoothed angular velocity [rad/s]
    """
    timestamp: float = 0.0
    x: float = 0.0
    y: float = 0.0
    heading: float = 0.0
    linear: float = 0.0
    angular: float = 0.0

    def copy(self) -> "OdometryState":
        return replace(self)

    @property
    def pose(self) -> Tuple[float, float, float]:
        return self.x, self.y, self.heading


@dataclass
class OdometryParameters:
    """Configuration of the odometry integrator with validation."""

    velocity_rolling_window_size: int = DEFAULT_ROLLING_WINDOW_SIZE
    integration_method: IntegrationMethod = IntegrationMethod.EXACT
    layout: WheelLayout = WheelLayout.BICYCLE
    per_side_steering: bool = False

    def __post_init__(self):
        """Validate and coerce enum values given as strings."""
        if isinstance(self.integration_method, str):
            self.integration_method = IntegrationMethod(self.integration_method)
        if isinstance(self.layout, str):
            self.layout = WheelLayout(self.layout)

        self.velocity_rolling_window_size = validate_window_size(self.velocity_rolling_window_size)

        if self.per_side_steering and self.layout != WheelLayout.TRICYCLE:
            raise ValueError("Per-side steering requires the tricycle layout")

    @classmethod
    def from_dict(cls, values: Mapping[str, Any]) -> "OdometryParameters":
        """
        Build parameters from a plain mapping, e.g. a loaded YAML section.

        Raises:
            ValueError: If the mapping contains unknown keys or invalid values
        """
        known = {f.name for f in fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise ValueError(f"Unknown odometry parameters: {sorted(unknown)}")
        return cls(**dict(values))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'velocity_rolling_window_size': self.velocity_rolling_window_size,
            'integration_method': self.integration_method.value,
            'layout': self.layout.value,
            'per_side_steering': self.per_side_steering,
        }


@dataclass(frozen=True)
class WheelSample:
    """
    One tick of wheel feedback.

    Attributes:
        kind: Whether `wheels` holds positions [rad] or velocities [rad/s]
        wheels: One value for a single traction wheel, (right, left) for two
        steering: Steering angle [rad], or (right, left) per-side angles
        dt: Time elapsed since the previous sample [s]
        timestamp: Optional absolute time of the sample [s]
    """
    kind: SampleKind
    wheels: Tuple[float, ...]
    steering: Union[float, Tuple[float, float]]
    dt: float
    timestamp: Optional[float] = None

    def __post_init__(self):
        if len(self.wheels) not in (1, 2):
            raise ValueError(f"Expected one or two wheel values, got {len(self.wheels)}")

    def is_finite(self) -> bool:
        steering = (self.steering,) if np.ndim(self.steering) == 0 else tuple(self.steering)
        return all(math.isfinite(v) for v in (*self.wheels, *steering, self.dt))
