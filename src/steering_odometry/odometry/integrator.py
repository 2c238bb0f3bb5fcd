"""
Steering odometry: pose and velocity estimation for steered vehicles.

This module turns wheel feedback into a planar pose estimate. Every update
follows the same chain:

    wheel sample(s) + dt -> kinematic model -> body twist (Vx, ω)
        -> rolling mean accumulators (smoothed twist)
        -> pose integration (x, y, heading)

Three entry points feed the chain:
    update_from_position: absolute wheel positions, differenced over dt
    update_from_velocity: wheel angular velocities
    update_open_loop:     body twist supplied directly (e.g. last command)

Pose Integration:
    With d = Vx * dt and Δθ = ω * dt, the exact (constant curvature) update is

        r  = d / Δθ
        θ' = θ + Δθ
        x' = x + r * (sin(θ') - sin(θ))
        y' = y - r * (cos(θ') - cos(θ))

    which has no discretization error on circular arcs. For |Δθ| below
    INTEGRATION_EPSILON the 2nd order Runge-Kutta (midpoint heading) update is
    used instead:

        x' = x + d * cos(θ + Δθ/2)
        y' = y + d * sin(θ + Δθ/2)
        θ' = θ + Δθ

Degenerate input (dt <= 0, the first position sample, non-finite values) is
not an error: the update returns False and leaves the state untouched.
"""

import logging
import math
from typing import Optional, Sequence, Tuple, Union

import numpy as np

from ..constants import INTEGRATION_EPSILON
from ..kinematics.geometry import VehicleGeometry
from ..kinematics.model import SteeringInput, SteeringKinematics, WheelCommand
from .accumulator import RollingMeanAccumulator, validate_window_size
from .state import IntegrationMethod, OdometryParameters, OdometryState, SampleKind, WheelSample

logger = logging.getLogger(__name__)

WheelInput = Union[float, Sequence[float]]


def integrate_pose(x: float,
                   y: float,
                   heading: float,
                   displacement: float,
                   rotation: float,
                   method: IntegrationMethod = IntegrationMethod.EXACT) -> Tuple[float, float, float]:
    """
    Advance a planar pose by one step of constant curvature motion.

    Args:
        x, y, heading: Pose before the step [m, m, rad]
        displacement: Linear displacement along the path (Vx * dt) [m]
        rotation: Angular displacement (ω * dt) [rad]
        method: EXACT uses the closed-form arc when |rotation| is at least
            INTEGRATION_EPSILON; RUNGE_KUTTA_2 always uses the midpoint heading

    Returns:
        Tuple of (x, y, heading) after the step
    """
    if method == IntegrationMethod.EXACT and abs(rotation) >= INTEGRATION_EPSILON:
        radius = displacement / rotation
        new_heading = heading + rotation
        x += radius * (math.sin(new_heading) - math.sin(heading))
        y -= radius * (math.cos(new_heading) - math.cos(heading))
        return x, y, new_heading

    direction = heading + 0.5 * rotation
    x += displacement * math.cos(direction)
    y += displacement * math.sin(direction)
    return x, y, heading + rotation


def _as_tuple(values: WheelInput) -> Tuple[float, ...]:
    if np.ndim(values) == 0:
        return (float(values),)
    return tuple(float(v) for v in values)


def _all_finite(*values) -> bool:
    return all(math.isfinite(v) for v in _flatten(values))


def _flatten(values):
    for value in values:
        if np.ndim(value) == 0:
            yield value
        else:
            yield from value


class SteeringOdometry:
    """
    Odometry integrator for bicycle and tricycle steered vehicles.

    The integrator owns one OdometryState and two rolling mean accumulators
    (linear and angular velocity). It is meant to be driven once per control
    loop tick from a single thread; it is not thread-safe.

    Example:
        >>> geometry = VehicleGeometry(wheel_radius=0.45, wheelbase=3.24644)
        >>> odom = SteeringOdometry(geometry)
        >>> odom.update_from_velocity(1.0, 0.0, 0.1)
        True
        >>> round(odom.x, 3)
        0.045

    Attributes:
        kinematics (SteeringKinematics): Forward/inverse kinematic model
        params (OdometryParameters): Integrator configuration
    """

    def __init__(self,
                 geometry: VehicleGeometry,
                 params: Optional[OdometryParameters] = None):
        """
        Args:
            geometry: Vehicle geometry (validated on construction)
            params: Integrator configuration. If None, uses defaults.

        Raises:
            ValueError: If geometry or parameters are invalid
        """
        self.params = params if params is not None else OdometryParameters()
        self.kinematics = SteeringKinematics(
            geometry, self.params.layout, self.params.per_side_steering)

        self._state = OdometryState()
        self._previous_wheel_pos: Optional[Tuple[float, ...]] = None
        self._linear_acc = RollingMeanAccumulator(self.params.velocity_rolling_window_size)
        self._angular_acc = RollingMeanAccumulator(self.params.velocity_rolling_window_size)

        logger.info(f"Steering odometry initialized: {self.kinematics!r}, "
                    f"window={self.params.velocity_rolling_window_size}, "
                    f"integration={self.params.integration_method.value}")

    def __repr__(self) -> str:
        return (f"SteeringOdometry(x={self._state.x:.3f}, y={self._state.y:.3f}, "
                f"heading={self._state.heading:.3f})")

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def geometry(self) -> VehicleGeometry:
        return self.kinematics.geometry

    @property
    def timestamp(self) -> float:
        return self._state.timestamp

    @property
    def x(self) -> float:
        return self._state.x

    @property
    def y(self) -> float:
        return self._state.y

    @property
    def heading(self) -> float:
        return self._state.heading

    @property
    def linear(self) -> float:
        """Smoothed linear velocity [m/s]."""
        return self._state.linear

    @property
    def angular(self) -> float:
        """Smoothed angular velocity [rad/s]."""
        return self._state.angular

    def get_state(self) -> OdometryState:
        """Snapshot of the current state, safe to hand to another consumer."""
        return self._state.copy()

    # ------------------------------------------------------------------
    # Lifecycle and configuration
    # ------------------------------------------------------------------

    def initialize(self, timestamp: float) -> None:
        """Reset the estimate and set the reference time."""
        self.reset_odometry()
        self._state.timestamp = float(timestamp)

    def reset_odometry(self) -> None:
        """
        Reset pose, velocities, accumulators and the previous wheel position.

        The timestamp is kept; use initialize() to move the reference time.
        """
        timestamp = self._state.timestamp
        self._state = OdometryState(timestamp=timestamp)
        self._previous_wheel_pos = None
        self._reset_accumulators()
        logger.info("Steering odometry reset")

    def set_wheel_params(self,
                         wheel_radius: float,
                         wheel_separation: float = 0.0,
                         wheelbase: Optional[float] = None,
                         right_wheel_radius: Optional[float] = None,
                         left_wheel_radius: Optional[float] = None) -> None:
        """
        Replace the vehicle geometry.

        Args:
            wheel_radius: Traction wheel radius [m]
            wheel_separation: Distance between the traction wheels [m]
            wheelbase: Distance between the axles [m]; keeps the current
                value when None
            right_wheel_radius: Optional independent right wheel radius [m]
            left_wheel_radius: Optional independent left wheel radius [m]

        Raises:
            ValueError: If the new geometry is invalid (state is unchanged)
        """
        geometry = VehicleGeometry(
            wheel_radius=wheel_radius,
            wheelbase=self.geometry.wheelbase if wheelbase is None else wheelbase,
            wheel_separation=wheel_separation,
            right_wheel_radius=right_wheel_radius,
            left_wheel_radius=left_wheel_radius,
        )
        self.set_geometry(geometry)

    def set_geometry(self, geometry: VehicleGeometry) -> None:
        """Replace the vehicle geometry and clear the smoothing history."""
        self.kinematics = SteeringKinematics(
            geometry, self.params.layout, self.params.per_side_steering)
        self._reset_accumulators()
        logger.info(f"Vehicle geometry updated: {geometry}")

    def set_velocity_rolling_window_size(self, velocity_rolling_window_size: int) -> None:
        """
        Resize the velocity smoothing window. Clears the smoothing history.

        Raises:
            ValueError: If the size is smaller than one
        """
        self.params.velocity_rolling_window_size = validate_window_size(velocity_rolling_window_size)
        self._reset_accumulators()
        logger.debug(f"Velocity rolling window resized to {velocity_rolling_window_size}")

    def _reset_accumulators(self) -> None:
        size = self.params.velocity_rolling_window_size
        self._linear_acc = RollingMeanAccumulator(size)
        self._angular_acc = RollingMeanAccumulator(size)

    # ------------------------------------------------------------------
    # Update entry points
    # ------------------------------------------------------------------

    def update_from_position(self, wheel_pos: WheelInput, steer_pos: SteeringInput, dt: float) -> bool:
        """
        Update the odometry from absolute traction wheel positions.

        Args:
            wheel_pos: Traction wheel position [rad], or (right, left) positions
            steer_pos: Steering angle [rad], or (right, left) per-side angles
            dt: Time elapsed since the previous call [s]

        Returns:
            True if the odometry was updated. False on the first sample (the
            position is only remembered), when dt <= 0, or when the sample is
            not finite.
        """
        positions = _as_tuple(wheel_pos)
        if not _all_finite(positions, steer_pos, dt):
            logger.warning(f"Ignoring non-finite position sample: {positions}, {steer_pos}, dt={dt}")
            return False
        if dt <= 0:
            logger.debug(f"Skipping position update with dt={dt}")
            return False

        previous = self._previous_wheel_pos
        self._previous_wheel_pos = positions
        if previous is None or len(previous) != len(positions):
            logger.debug("First wheel position sample stored, no velocity estimate yet")
            return False

        velocities = tuple((current - old) / dt for current, old in zip(positions, previous))
        return self.update_from_velocity(velocities, steer_pos, dt)

    def update_from_velocity(self, wheel_vel: WheelInput, steer_pos: SteeringInput, dt: float) -> bool:
        """
        Update the odometry from traction wheel angular velocities.

        Args:
            wheel_vel: Traction wheel velocity [rad/s], or (right, left) velocities
            steer_pos: Steering angle [rad], or (right, left) per-side angles
            dt: Time elapsed since the previous call [s]

        Returns:
            True if the odometry was updated
        """
        velocities = _as_tuple(wheel_vel)
        if not _all_finite(velocities, steer_pos, dt):
            logger.warning(f"Ignoring non-finite velocity sample: {velocities}, {steer_pos}, dt={dt}")
            return False

        if len(velocities) == 1:
            linear, angular = self.kinematics.forward_single(velocities[0], steer_pos)
        elif len(velocities) == 2:
            linear, angular = self.kinematics.forward_dual(velocities[0], velocities[1], steer_pos)
        else:
            raise ValueError(f"Expected one or two wheel values, got {len(velocities)}")

        return self._update_odometry(linear, angular, dt)

    def update_open_loop(self, linear: float, angular: float, dt: float) -> bool:
        """
        Update the odometry from a body twist, bypassing the wheel feedback.

        Args:
            linear: Linear velocity [m/s]
            angular: Angular velocity [rad/s]
            dt: Time elapsed since the previous call [s]

        Returns:
            True if the odometry was updated
        """
        if not _all_finite(linear, angular, dt):
            logger.warning(f"Ignoring non-finite open loop twist: ({linear}, {angular}), dt={dt}")
            return False
        return self._update_odometry(linear, angular, dt)

    def update_from_sample(self, sample: WheelSample) -> bool:
        """Dispatch a WheelSample to the matching update entry point."""
        if not sample.is_finite():
            logger.warning(f"Ignoring non-finite {sample.kind.value} sample at t={sample.timestamp}")
            return False
        wheels = sample.wheels[0] if len(sample.wheels) == 1 else sample.wheels
        if sample.kind == SampleKind.POSITION:
            return self.update_from_position(wheels, sample.steering, sample.dt)
        return self.update_from_velocity(wheels, sample.steering, sample.dt)

    def _update_odometry(self, linear: float, angular: float, dt: float) -> bool:
        """
        Smooth the instantaneous twist and integrate the pose.

        Args:
            linear: Instantaneous linear velocity [m/s]
            angular: Instantaneous angular velocity [rad/s]
            dt: Step duration [s]
        """
        if dt <= 0:
            logger.debug(f"Skipping odometry update with dt={dt}")
            return False

        linear, angular, dt = float(linear), float(angular), float(dt)
        state = self._state
        state.x, state.y, state.heading = integrate_pose(
            state.x, state.y, state.heading,
            linear * dt, angular * dt,
            self.params.integration_method,
        )

        self._linear_acc.accumulate(linear)
        self._angular_acc.accumulate(angular)
        state.linear = self._linear_acc.get_rolling_mean()
        state.angular = self._angular_acc.get_rolling_mean()
        state.timestamp += dt
        return True

    # ------------------------------------------------------------------
    # Inverse kinematics
    # ------------------------------------------------------------------

    def twist_to_ackermann(self, linear: float, angular: float) -> WheelCommand:
        """
        Convert a desired body twist into steering and traction setpoints.

        Does not modify the odometry state.
        """
        return self.kinematics.twist_to_ackermann(linear, angular)
