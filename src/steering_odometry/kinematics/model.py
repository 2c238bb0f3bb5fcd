"""
Forward and inverse kinematics for steered vehicles.

The traction drive is modelled as a virtual traction wheel travelling along the
steering direction with ground speed v_w. For a steering angle δ and a
wheelbase L the body twist is:

    Vx = v_w * cos(δ)                 # linear velocity along the heading
    ω  = Vx * tan(δ) / L              # angular velocity about the vertical axis

With two traction wheels at lateral offsets y = -s/2 (right) and y = +s/2
(left) each wheel rolls at

    v(y) = v_w * c(y),    c(y) = 1 - y * sin(δ) / L

so that v_right - v_left = ω * s, the differential speed of a rigid body turning
about its instantaneous center of rotation. A separation of zero gives
c(y) = 1 for both wheels and the dual-wheel model becomes the single-wheel one.

Inverse kinematics (twist -> steering angle and wheel velocities):

    δ   = atan(ω * L / Vx)
    v_w = Vx / cos(δ)

For |Vx| < STEERING_EPSILON the speed is replaced by ±STEERING_EPSILON (sign of
Vx), so δ saturates toward ±π/2 with the sign of ω. A twist with zero forward
speed therefore maps to a turn in place rather than a division by zero. A zero
twist is a stop command: zero wheel velocities and straight wheels.

Per-side steering:
    A steered wheel at lateral offset y rolls without scrub when its angle is

    δ(y) = atan2(L * sin(δ), L * cos(δ) - y * sin(δ))

    and the common angle is recovered with
    δ = atan2(L * sin(δ(y)), L * cos(δ(y)) + y * sin(δ(y))).

References:
    - Siegwart, R., Nourbakhsh, I. R. (2004). Introduction to Autonomous Mobile Robots
    - Corke, P. (2017). Robotics, Vision and Control, ch. 4
"""

import logging
import math
from dataclasses import dataclass
from typing import Sequence, Tuple, Union

import numpy as np

from ..constants import STEERING_EPSILON
from .geometry import VehicleGeometry, WheelLayout

logger = logging.getLogger(__name__)

SteeringInput = Union[float, Sequence[float]]


@dataclass(frozen=True)
class WheelCommand:
    """
    Actuator setpoints produced by inverse kinematics.

    Attributes:
        steering_angle: Common (virtual) steering angle [rad]
        steering_angles: Per-wheel steering angles [rad]; (δ,) for a common
            steering axle, (right, left) for per-side steering
        wheel_velocities: Traction wheel angular velocities [rad/s]; one value
            for the bicycle layout, (right, left) for the tricycle layout
    """
    steering_angle: float
    steering_angles: Tuple[float, ...]
    wheel_velocities: Tuple[float, ...]


class SteeringKinematics:
    """
    Kinematic model selector for bicycle and tricycle layouts.

    The instance holds the vehicle geometry and the configured wheel layout.
    Forward kinematics convert measured wheel motion into a body twist
    (linear, angular); inverse kinematics convert a desired twist into
    steering and traction setpoints. Neither direction holds mutable state.

    Attributes:
        geometry (VehicleGeometry): Wheel radii, wheelbase and separation
        layout (WheelLayout): Number of traction wheels commanded by the
            inverse kinematics
        per_side_steering (bool): Report one steering angle per steered wheel
    """

    def __init__(self,
                 geometry: VehicleGeometry,
                 layout: WheelLayout = WheelLayout.BICYCLE,
                 per_side_steering: bool = False):
        if not isinstance(geometry, VehicleGeometry):
            raise ValueError(f"Expected VehicleGeometry, got {type(geometry).__name__}")
        if per_side_steering and layout != WheelLayout.TRICYCLE:
            raise ValueError("Per-side steering requires the tricycle layout")
        self.geometry = geometry
        self.layout = layout
        self.per_side_steering = per_side_steering

    def __repr__(self) -> str:
        return (f"SteeringKinematics(layout={self.layout.value}, "
                f"wheelbase={self.geometry.wheelbase}, "
                f"wheel_separation={self.geometry.wheel_separation})")

    # ------------------------------------------------------------------
    # Steering angle helpers
    # ------------------------------------------------------------------

    def _traction_factors(self, steer_angle: float) -> Tuple[float, float]:
        """Speed factors c(y) of the (right, left) wheels relative to v_w."""
        offset = self.geometry.half_separation * math.sin(steer_angle) / self.geometry.wheelbase
        return 1.0 + offset, 1.0 - offset

    def per_side_steering_angles(self, steer_angle: float) -> Tuple[float, float]:
        """
        Compute no-scrub steering angles of the (right, left) steered wheels.

        Args:
            steer_angle: Common (virtual) steering angle [rad]

        Returns:
            Tuple of (right_angle, left_angle) in radians
        """
        wheelbase = self.geometry.wheelbase
        half_track = self.geometry.half_separation
        sin_d, cos_d = math.sin(steer_angle), math.cos(steer_angle)

        right = math.atan2(wheelbase * sin_d, wheelbase * cos_d + half_track * sin_d)
        left = math.atan2(wheelbase * sin_d, wheelbase * cos_d - half_track * sin_d)
        return right, left

    def steering_angle_from(self, steer: SteeringInput) -> float:
        """
        Reduce a steering measurement to the common steering angle.

        Args:
            steer: Common steering angle, or a (right, left) pair of per-side
                steering angles [rad]

        Returns:
            Common (virtual) steering angle [rad]
        """
        if np.ndim(steer) == 0:
            return float(steer)

        right, left = steer
        wheelbase = self.geometry.wheelbase
        half_track = self.geometry.half_separation

        from_right = math.atan2(wheelbase * math.sin(right),
                                wheelbase * math.cos(right) - half_track * math.sin(right))
        from_left = math.atan2(wheelbase * math.sin(left),
                               wheelbase * math.cos(left) + half_track * math.sin(left))
        return 0.5 * (from_right + from_left)

    # ------------------------------------------------------------------
    # Forward kinematics
    # ------------------------------------------------------------------

    def _twist_from_ground_speed(self, ground_speed: float, steer_angle: float) -> Tuple[float, float]:
        linear = ground_speed * math.cos(steer_angle)
        angular = linear * math.tan(steer_angle) / self.geometry.wheelbase
        return linear, angular

    def forward_single(self, wheel_velocity: float, steer: SteeringInput) -> Tuple[float, float]:
        """
        Body twist from a single traction wheel.

        Args:
            wheel_velocity: Traction wheel angular velocity [rad/s]
            steer: Steering angle [rad] or (right, left) per-side angles

        Returns:
            Tuple of (linear_velocity [m/s], angular_velocity [rad/s])
        """
        steer_angle = self.steering_angle_from(steer)
        ground_speed = self.geometry.wheel_radius * wheel_velocity
        return self._twist_from_ground_speed(ground_speed, steer_angle)

    def forward_dual(self,
                     right_wheel_velocity: float,
                     left_wheel_velocity: float,
                     steer: SteeringInput) -> Tuple[float, float]:
        """
        Body twist from two traction wheels.

        Each wheel's linear speed is corrected for its turning radius and the
        two estimates of the virtual wheel speed are combined by least squares:

            v_w = (c_r * v_r + c_l * v_l) / (c_r^2 + c_l^2)

        The denominator is at least 2, so the combination never divides by
        zero even when one wheel sits on the instantaneous center of rotation.

        Args:
            right_wheel_velocity: Right traction wheel angular velocity [rad/s]
            left_wheel_velocity: Left traction wheel angular velocity [rad/s]
            steer: Steering angle [rad] or (right, left) per-side angles

        Returns:
            Tuple of (linear_velocity [m/s], angular_velocity [rad/s])
        """
        steer_angle = self.steering_angle_from(steer)
        right_radius, left_radius = self.geometry.traction_radii
        right_speed = right_radius * right_wheel_velocity
        left_speed = left_radius * left_wheel_velocity

        c_right, c_left = self._traction_factors(steer_angle)
        ground_speed = (c_right * right_speed + c_left * left_speed) / (c_right**2 + c_left**2)
        return self._twist_from_ground_speed(ground_speed, steer_angle)

    # ------------------------------------------------------------------
    # Inverse kinematics
    # ------------------------------------------------------------------

    def convert_twist_to_steering_angle(self, linear: float, angular: float) -> Tuple[float, float]:
        """
        Steering angle realising a desired twist.

        Args:
            linear: Desired linear velocity Vx [m/s]
            angular: Desired angular velocity [rad/s]

        Returns:
            Tuple of (steering_angle [rad], effective_linear [m/s]) where
            effective_linear is Vx after near-zero substitution
        """
        if abs(linear) < STEERING_EPSILON:
            effective = math.copysign(STEERING_EPSILON, linear)
            logger.debug(f"Vx={linear:.3e} below steering epsilon, using {effective:.1e}")
        else:
            effective = linear
        return math.atan(angular * self.geometry.wheelbase / effective), effective

    def _stop_command(self) -> WheelCommand:
        """Zero traction with the wheels pointing straight ahead."""
        wheel_count = 1 if self.layout == WheelLayout.BICYCLE else 2
        steering_count = 2 if self.per_side_steering else 1
        return WheelCommand(
            steering_angle=0.0,
            steering_angles=(0.0,) * steering_count,
            wheel_velocities=(0.0,) * wheel_count,
        )

    def twist_to_ackermann(self, linear: float, angular: float) -> WheelCommand:
        """
        Convert a desired body twist into steering and traction setpoints.

        A zero twist yields zero wheel velocities and zero steering.

        Args:
            linear: Desired linear velocity Vx [m/s]
            angular: Desired angular velocity [rad/s]

        Returns:
            WheelCommand with the steering angle(s) and the traction wheel
            angular velocity (bicycle) or (right, left) velocities (tricycle)
        """
        if linear == 0.0 and angular == 0.0:
            return self._stop_command()

        steer_angle, effective = self.convert_twist_to_steering_angle(linear, angular)
        # atan keeps steer_angle inside (-pi/2, pi/2), so cos is strictly positive
        ground_speed = effective / math.cos(steer_angle)

        if self.layout == WheelLayout.BICYCLE:
            velocities = (ground_speed / self.geometry.wheel_radius,)
        else:
            right_radius, left_radius = self.geometry.traction_radii
            c_right, c_left = self._traction_factors(steer_angle)
            velocities = (ground_speed * c_right / right_radius,
                          ground_speed * c_left / left_radius)

        if self.per_side_steering:
            steering_angles = self.per_side_steering_angles(steer_angle)
        else:
            steering_angles = (steer_angle,)

        return WheelCommand(
            steering_angle=steer_angle,
            steering_angles=steering_angles,
            wheel_velocities=velocities,
        )
