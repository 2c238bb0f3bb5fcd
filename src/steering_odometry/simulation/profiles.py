"""
Commanded body twist profiles for odometry validation.

A profile maps time to a desired body twist (Vx, ω). The profiles are smooth
and analytic so the ground-truth path can be integrated to high accuracy:

    straight: Vx(t) = V,                      ω(t) = 0
    arc:      Vx(t) = V,                      ω(t) = Ω
    slalom:   Vx(t) = V,                      ω(t) = Ω sin(2πt/T)
    spin:     Vx(t) = 0,                      ω(t) = Ω
"""

import math
from dataclasses import dataclass
from typing import Tuple


PROFILE_TYPES = ("straight", "arc", "slalom", "spin")


@dataclass
class TwistProfile:
    """Body twist command as a function of time, with validation."""

    profile_type: str = "arc"
    linear_speed: float = 1.0      # Forward speed V [m/s]
    angular_speed: float = 0.2     # Yaw rate amplitude Ω [rad/s]
    period: float = 20.0           # Slalom period T [s]

    def __post_init__(self):
        """Validate profile parameters."""
        if self.profile_type not in PROFILE_TYPES:
            raise ValueError(f"Unknown twist profile: {self.profile_type}")
        if self.period <= 0:
            raise ValueError(f"Period must be positive, got {self.period}")
        if not (math.isfinite(self.linear_speed) and math.isfinite(self.angular_speed)):
            raise ValueError("Profile speeds must be finite")

    def get_twist(self, t: float) -> Tuple[float, float]:
        """
        Desired body twist at time t.

        Returns:
            Tuple of (linear_velocity [m/s], angular_velocity [rad/s])
        """
        if self.profile_type == "straight":
            return self.linear_speed, 0.0
        if self.profile_type == "arc":
            return self.linear_speed, self.angular_speed
        if self.profile_type == "slalom":
            return self.linear_speed, self.angular_speed * math.sin(2 * math.pi * t / self.period)
        return 0.0, self.angular_speed
