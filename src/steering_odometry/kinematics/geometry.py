"""
Vehicle geometry for steered ground vehicles.

The geometry describes the traction wheel(s), the distance between the rear
axle and the steered axle (wheelbase) and the lateral distance between the two
traction wheels of a dual-traction vehicle (wheel separation, or track).

Supported layouts:
    BICYCLE:  one effective steered wheel and one effective traction wheel
    TRICYCLE: two traction wheels separated by the track, sharing one
              steering axle (common or per-side steering angle)

A wheel separation of zero collapses the tricycle layout onto the bicycle
layout; both produce identical kinematics in that case.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class WheelLayout(Enum):
    """Traction wheel arrangement of the vehicle."""
    BICYCLE = "bicycle"
    TRICYCLE = "tricycle"


@dataclass(frozen=True)
class VehicleGeometry:
    """
    Physical parameters of a steered vehicle.

    Attributes:
        wheel_radius: Traction wheel radius [m], used for both traction wheels
            unless an independent radius is given
        wheelbase: Distance between rear and front axle [m]
        wheel_separation: Distance between the two traction wheels [m]
        right_wheel_radius: Optional independent radius of the right wheel [m]
        left_wheel_radius: Optional independent radius of the left wheel [m]
    """

    wheel_radius: float
    wheelbase: float
    wheel_separation: float = 0.0
    right_wheel_radius: Optional[float] = None
    left_wheel_radius: Optional[float] = None

    def __post_init__(self):
        """Validate geometry so no update can divide by zero later on."""
        for name in ("wheel_radius", "right_wheel_radius", "left_wheel_radius"):
            value = getattr(self, name)
            if value is None:
                continue
            if not math.isfinite(value) or value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")
        if not math.isfinite(self.wheelbase) or self.wheelbase <= 0:
            raise ValueError(f"Wheelbase must be positive, got {self.wheelbase}")
        if not math.isfinite(self.wheel_separation) or self.wheel_separation < 0:
            raise ValueError(
                f"Wheel separation must be non-negative, got {self.wheel_separation}")

    @property
    def traction_radii(self) -> Tuple[float, float]:
        """Radii of the (right, left) traction wheels [m]."""
        right = self.right_wheel_radius if self.right_wheel_radius is not None else self.wheel_radius
        left = self.left_wheel_radius if self.left_wheel_radius is not None else self.wheel_radius
        return right, left

    @property
    def half_separation(self) -> float:
        return self.wheel_separation / 2.0
