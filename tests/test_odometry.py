import math

import pytest
import numpy as np
import sys
import os

# Add the src directory to Python path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from steering_odometry.kinematics import VehicleGeometry, WheelLayout
from steering_odometry.odometry import (
    IntegrationMethod,
    OdometryParameters,
    RollingMeanAccumulator,
    SampleKind,
    SteeringOdometry,
    WheelSample,
    integrate_pose
)
from steering_odometry.odometry.accumulator import validate_window_size


WHEELBASE = 3.24644
WHEEL_RADIUS = 0.45


def make_odometry(**param_kwargs):
    geometry = VehicleGeometry(wheel_radius=WHEEL_RADIUS, wheelbase=WHEELBASE, wheel_separation=1.2)
    return SteeringOdometry(geometry, OdometryParameters(**param_kwargs))


def assert_state_zero(odom):
    assert odom.x == 0.0
    assert odom.y == 0.0
    assert odom.heading == 0.0
    assert odom.linear == 0.0
    assert odom.angular == 0.0


class TestRollingMeanAccumulator:
    """Test fixed-window moving average"""

    def test_empty_mean_is_zero(self):
        acc = RollingMeanAccumulator(10)
        assert len(acc) == 0
        assert acc.get_rolling_mean() == 0.0

    def test_mean_reflects_last_window_only(self):
        """Test 15 pushes into a window of 10 report the mean of the last 10"""
        acc = RollingMeanAccumulator(10)
        values = [float(v) for v in range(1, 16)]
        for value in values:
            acc.accumulate(value)

        assert len(acc) == 10
        assert acc.get_rolling_mean() == pytest.approx(np.mean(values[-10:]))
        np.testing.assert_allclose(acc.get_samples(), values[-10:])

    def test_partial_window_mean(self):
        acc = RollingMeanAccumulator(10)
        for value in [2.0, 4.0, 9.0]:
            acc.accumulate(value)
        assert acc.get_rolling_mean() == pytest.approx(5.0)
        np.testing.assert_allclose(acc.get_samples(), [2.0, 4.0, 9.0])

    def test_mean_matches_reference_on_random_sequence(self):
        rng = np.random.default_rng(42)
        values = rng.normal(0.0, 3.0, 57)
        acc = RollingMeanAccumulator(7)
        for i, value in enumerate(values):
            acc.accumulate(value)
            window = values[max(0, i - 6):i + 1]
            assert acc.get_rolling_mean() == pytest.approx(np.mean(window), abs=1e-12)

    def test_window_of_one_tracks_latest_sample(self):
        acc = RollingMeanAccumulator(1)
        for value in [3.0, -1.0, 8.5]:
            acc.accumulate(value)
            assert acc.get_rolling_mean() == value

    @pytest.mark.parametrize("size", [0, -3, 2.5, True])
    def test_invalid_window_size(self, size):
        with pytest.raises(ValueError):
            RollingMeanAccumulator(size)

    def test_window_size_validation_is_shared(self):
        assert validate_window_size(np.int64(3)) == 3
        assert validate_window_size(4.0) == 4
        for size in (0, 1.5, False):
            with pytest.raises(ValueError):
                validate_window_size(size)
            with pytest.raises(ValueError):
                OdometryParameters(velocity_rolling_window_size=size)
            with pytest.raises(ValueError):
                make_odometry().set_velocity_rolling_window_size(size)

    def test_reset_clears_history(self):
        acc = RollingMeanAccumulator(4)
        for value in [1.0, 2.0, 3.0]:
            acc.accumulate(value)
        acc.reset()

        assert len(acc) == 0
        assert acc.get_rolling_mean() == 0.0
        acc.accumulate(10.0)
        assert acc.get_rolling_mean() == 10.0


class TestIntegratePose:
    """Test exact and Runge-Kutta pose integration"""

    @pytest.mark.parametrize("heading", [0.0, 0.7, -2.5])
    def test_straight_line_schemes_agree(self, heading):
        """Test zero rotation gives identical positions for both schemes"""
        exact = integrate_pose(1.0, -2.0, heading, 0.8, 0.0, IntegrationMethod.EXACT)
        rk2 = integrate_pose(1.0, -2.0, heading, 0.8, 0.0, IntegrationMethod.RUNGE_KUTTA_2)
        assert exact == rk2
        assert exact[0] == pytest.approx(1.0 + 0.8 * math.cos(heading))
        assert exact[1] == pytest.approx(-2.0 + 0.8 * math.sin(heading))

    def test_pure_rotation_full_turn_returns_to_start(self):
        """Test Vx = 0 rotation for 2*pi/omega keeps (x, y) fixed"""
        omega, dt = 0.7, 0.013
        steps = int(round(2 * math.pi / omega / dt))
        dt = 2 * math.pi / omega / steps

        x, y, heading = 2.0, 3.0, 0.1
        for _ in range(steps):
            x, y, heading = integrate_pose(x, y, heading, 0.0, omega * dt)

        assert x == pytest.approx(2.0, abs=1e-12)
        assert y == pytest.approx(3.0, abs=1e-12)
        assert heading == pytest.approx(0.1 + 2 * math.pi)

    @pytest.mark.parametrize("steps", [3, 8, 50])
    def test_exact_closes_circle_at_any_step_size(self, steps):
        """Test exact integration has no drift on circular arcs"""
        linear, omega = 1.5, 0.4
        dt = 2 * math.pi / omega / steps

        x, y, heading = 0.0, 0.0, 0.0
        for _ in range(steps):
            x, y, heading = integrate_pose(x, y, heading, linear * dt, omega * dt)

        assert x == pytest.approx(0.0, abs=1e-9)
        assert y == pytest.approx(0.0, abs=1e-9)

    def test_exact_matches_arc_geometry(self):
        """Test a quarter circle of radius r ends at (r, r)"""
        radius = 2.0
        x, y, heading = integrate_pose(0.0, 0.0, 0.0, radius * math.pi / 2, math.pi / 2)
        assert x == pytest.approx(radius)
        assert y == pytest.approx(radius)
        assert heading == pytest.approx(math.pi / 2)

    def test_runge_kutta_overshoots_coarse_arc(self):
        """Test RK2 moves the full arc length along the mid heading, unlike the exact chord"""
        radius = 2.0
        rk2 = integrate_pose(0.0, 0.0, 0.0, radius * math.pi / 2, math.pi / 2,
                             IntegrationMethod.RUNGE_KUTTA_2)
        exact = integrate_pose(0.0, 0.0, 0.0, radius * math.pi / 2, math.pi / 2)

        assert rk2[2] == exact[2]
        assert rk2[0] == pytest.approx(rk2[1])
        assert math.hypot(rk2[0], rk2[1]) == pytest.approx(radius * math.pi / 2)
        assert math.hypot(rk2[0], rk2[1]) > math.hypot(exact[0], exact[1])

    def test_schemes_continuous_at_threshold(self):
        """Test exact and RK2 agree just above the switch-over rotation"""
        rotation = 1.01e-6
        exact = integrate_pose(0.0, 0.0, 0.3, 0.05, rotation, IntegrationMethod.EXACT)
        rk2 = integrate_pose(0.0, 0.0, 0.3, 0.05, rotation, IntegrationMethod.RUNGE_KUTTA_2)
        np.testing.assert_allclose(exact, rk2, atol=1e-9)


class TestOdometryParameters:
    """Test integrator configuration"""

    def test_defaults(self):
        params = OdometryParameters()
        assert params.velocity_rolling_window_size == 10
        assert params.integration_method == IntegrationMethod.EXACT
        assert params.layout == WheelLayout.BICYCLE

    def test_from_dict_coerces_enums(self):
        params = OdometryParameters.from_dict({
            'velocity_rolling_window_size': 5,
            'integration_method': 'runge_kutta_2',
            'layout': 'tricycle',
            'per_side_steering': True,
        })
        assert params.integration_method == IntegrationMethod.RUNGE_KUTTA_2
        assert params.layout == WheelLayout.TRICYCLE
        assert OdometryParameters.from_dict(params.to_dict()) == params

    def test_from_dict_rejects_unknown_keys(self):
        with pytest.raises(ValueError, match="wheel_radius"):
            OdometryParameters.from_dict({'wheel_radius': 0.3})

    @pytest.mark.parametrize("window", [0, -1, 1.5])
    def test_invalid_window(self, window):
        with pytest.raises(ValueError):
            OdometryParameters(velocity_rolling_window_size=window)

    def test_unknown_layout(self):
        with pytest.raises(ValueError):
            OdometryParameters(layout='quadricycle')


class TestSteeringOdometry:
    """Test the odometry integrator update paths"""

    def test_initial_state_is_zero(self):
        odom = make_odometry()
        assert_state_zero(odom)
        assert odom.timestamp == 0.0

    def test_first_position_sample_is_not_an_update(self):
        """Test the first position call only seeds the differencing"""
        odom = make_odometry()
        assert odom.update_from_position(12.3, 0.2, 0.1) is False
        assert_state_zero(odom)

    def test_position_update_differences_positions(self):
        odom = make_odometry()
        odom.update_from_position(1.0, 0.0, 0.1)
        assert odom.update_from_position(2.0, 0.0, 0.1) is True

        # 1 rad in 0.1 s -> 10 rad/s -> 4.5 m/s for 0.1 s
        assert odom.x == pytest.approx(0.45)
        assert odom.y == pytest.approx(0.0)
        assert odom.linear == pytest.approx(4.5)
        assert odom.angular == pytest.approx(0.0)

    @pytest.mark.parametrize("dt", [0.0, -0.01])
    def test_non_positive_dt_is_not_an_update(self, dt):
        odom = make_odometry()
        odom.update_from_position(0.0, 0.1, 0.1)
        odom.update_from_position(1.0, 0.1, 0.1)
        before = odom.get_state()

        assert odom.update_from_position(5.0, 0.1, dt) is False
        assert odom.update_from_velocity(5.0, 0.1, dt) is False
        assert odom.update_open_loop(1.0, 0.1, dt) is False
        assert odom.get_state() == before

        # The skipped sample did not replace the stored previous position
        assert odom.update_from_position(2.0, 0.1, 0.1) is True
        assert odom.linear == pytest.approx(
            np.mean([WHEEL_RADIUS * 10.0 * math.cos(0.1)] * 2))

    def test_dual_position_update(self):
        odom = make_odometry(layout=WheelLayout.TRICYCLE)
        assert odom.update_from_position((0.0, 0.0), 0.0, 0.05) is False
        assert odom.update_from_position((0.5, 0.5), 0.0, 0.05) is True
        assert odom.x == pytest.approx(0.5 * WHEEL_RADIUS)

    def test_switching_wheel_count_reseeds(self):
        odom = make_odometry()
        odom.update_from_position(1.0, 0.0, 0.1)
        assert odom.update_from_position((1.0, 1.0), 0.0, 0.1) is False
        assert_state_zero(odom)

    def test_velocity_update_needs_no_seed(self):
        odom = make_odometry()
        assert odom.update_from_velocity(2.0, 0.0, 0.5) is True
        assert odom.x == pytest.approx(WHEEL_RADIUS * 2.0 * 0.5)

    def test_velocity_update_on_arc(self):
        """Test a steered velocity sample follows the exact arc"""
        odom = make_odometry()
        steer, wheel_vel, dt = 0.3, 4.0, 0.2
        linear = WHEEL_RADIUS * wheel_vel * math.cos(steer)
        angular = linear * math.tan(steer) / WHEELBASE

        odom.update_from_velocity(wheel_vel, steer, dt)

        radius = linear / angular
        assert odom.heading == pytest.approx(angular * dt)
        assert odom.x == pytest.approx(radius * math.sin(angular * dt))
        assert odom.y == pytest.approx(radius * (1 - math.cos(angular * dt)))
        assert odom.angular == pytest.approx(angular)

    def test_per_side_steering_matches_common_angle(self):
        common = make_odometry(layout=WheelLayout.TRICYCLE)
        per_side = make_odometry(layout=WheelLayout.TRICYCLE, per_side_steering=True)
        pair = per_side.kinematics.per_side_steering_angles(0.35)

        common.update_from_velocity((3.0, 2.5), 0.35, 0.1)
        per_side.update_from_velocity((3.0, 2.5), pair, 0.1)

        np.testing.assert_allclose(
            (per_side.x, per_side.y, per_side.heading),
            (common.x, common.y, common.heading), atol=1e-12)

    def test_open_loop_skips_kinematics(self):
        odom = make_odometry()
        assert odom.update_open_loop(1.0, 0.0, 2.0) is True
        assert odom.x == pytest.approx(2.0)
        assert odom.linear == pytest.approx(1.0)

    def test_open_loop_full_circle(self):
        odom = make_odometry()
        omega = 0.5
        steps = 40
        dt = 2 * math.pi / omega / steps
        for _ in range(steps):
            odom.update_open_loop(2.0, omega, dt)

        assert odom.x == pytest.approx(0.0, abs=1e-9)
        assert odom.y == pytest.approx(0.0, abs=1e-9)
        # Heading is not wrapped
        assert odom.heading == pytest.approx(2 * math.pi)

    def test_velocities_are_smoothed(self):
        odom = make_odometry(velocity_rolling_window_size=3)
        for linear in [1.0, 2.0, 3.0, 4.0]:
            odom.update_open_loop(linear, 0.1 * linear, 0.1)

        assert odom.linear == pytest.approx(3.0)
        assert odom.angular == pytest.approx(0.3)
        # Pose integrates the instantaneous twist, not the smoothed one
        assert odom.heading == pytest.approx(0.1 * (0.1 + 0.2 + 0.3 + 0.4))

    def test_resizing_window_clears_history(self):
        odom = make_odometry()
        for _ in range(5):
            odom.update_open_loop(1.0, 0.0, 0.1)
        odom.set_velocity_rolling_window_size(4)
        odom.update_open_loop(3.0, 0.0, 0.1)

        assert odom.params.velocity_rolling_window_size == 4
        assert odom.linear == pytest.approx(3.0)

    def test_invalid_window_resize_keeps_configuration(self):
        odom = make_odometry(velocity_rolling_window_size=6)
        with pytest.raises(ValueError):
            odom.set_velocity_rolling_window_size(0)
        assert odom.params.velocity_rolling_window_size == 6

    def test_reset_zeroes_everything(self):
        odom = make_odometry()
        odom.update_from_position(0.0, 0.2, 0.1)
        for k in range(1, 6):
            odom.update_from_position(float(k), 0.2, 0.1)

        odom.reset_odometry()
        assert_state_zero(odom)

        # Previous position forgotten: next sample is a seed again
        assert odom.update_from_position(100.0, 0.2, 0.1) is False
        assert_state_zero(odom)

        # Smoothing history is empty
        odom.update_open_loop(7.0, 0.0, 0.1)
        assert odom.linear == pytest.approx(7.0)

    def test_reset_is_idempotent(self):
        odom = make_odometry()
        odom.reset_odometry()
        odom.reset_odometry()
        assert_state_zero(odom)

    def test_initialize_sets_reference_time(self):
        odom = make_odometry()
        odom.update_open_loop(1.0, 0.2, 0.1)
        odom.initialize(42.0)

        assert_state_zero(odom)
        assert odom.timestamp == 42.0
        odom.update_open_loop(1.0, 0.2, 0.25)
        assert odom.timestamp == pytest.approx(42.25)

    def test_non_finite_samples_are_ignored(self):
        odom = make_odometry()
        assert odom.update_from_velocity(float('nan'), 0.0, 0.1) is False
        assert odom.update_from_position(float('inf'), 0.0, 0.1) is False
        assert odom.update_open_loop(1.0, float('nan'), 0.1) is False
        assert_state_zero(odom)
        # The non-finite position was not stored as a seed
        assert odom.update_from_position(1.0, 0.0, 0.1) is False

    def test_set_wheel_params(self):
        odom = make_odometry()
        odom.update_open_loop(5.0, 0.0, 0.1)
        odom.set_wheel_params(wheel_radius=0.2, wheel_separation=0.5)

        assert odom.geometry.wheel_radius == 0.2
        assert odom.geometry.wheelbase == WHEELBASE
        odom.update_from_velocity(10.0, 0.0, 0.1)
        # Accumulators were reset with the new geometry
        assert odom.linear == pytest.approx(2.0)

    def test_invalid_wheel_params_keep_geometry(self):
        odom = make_odometry()
        with pytest.raises(ValueError):
            odom.set_wheel_params(wheel_radius=0.0)
        with pytest.raises(ValueError):
            odom.set_wheel_params(wheel_radius=0.3, wheelbase=-1.0)
        assert odom.geometry.wheel_radius == WHEEL_RADIUS

    def test_twist_to_ackermann_leaves_state_untouched(self):
        odom = make_odometry(layout=WheelLayout.TRICYCLE)
        odom.update_open_loop(1.0, 0.1, 0.1)
        before = odom.get_state()

        command = odom.twist_to_ackermann(0.1, 0.2)
        assert command.steering_angle == pytest.approx(1.4179821977774734)
        assert len(command.wheel_velocities) == 2
        assert odom.get_state() == before

    def test_state_snapshot_is_a_copy(self):
        odom = make_odometry()
        snapshot = odom.get_state()
        odom.update_open_loop(1.0, 0.0, 1.0)
        assert snapshot.x == 0.0
        x, y, heading = odom.get_state().pose
        assert (x, y, heading) == (1.0, 0.0, 0.0)

    def test_update_from_sample_dispatch(self):
        odom = make_odometry()
        seed = WheelSample(SampleKind.POSITION, (0.0,), 0.0, 0.1)
        step = WheelSample(SampleKind.POSITION, (1.0,), 0.0, 0.1)
        velocity = WheelSample(SampleKind.VELOCITY, (10.0,), 0.0, 0.1)

        assert odom.update_from_sample(seed) is False
        assert odom.update_from_sample(step) is True
        assert odom.update_from_sample(velocity) is True
        assert odom.x == pytest.approx(0.9)

    def test_wheel_sample_validation(self):
        with pytest.raises(ValueError):
            WheelSample(SampleKind.VELOCITY, (1.0, 2.0, 3.0), 0.0, 0.1)
        assert not WheelSample(SampleKind.VELOCITY, (1.0,), float('nan'), 0.1).is_finite()
        assert WheelSample(SampleKind.VELOCITY, (1.0, 2.0), (0.1, 0.2), 0.1).is_finite()

    def test_non_finite_sample_is_not_dispatched(self):
        odom = make_odometry()
        seed = WheelSample(SampleKind.POSITION, (0.0,), 0.0, 0.1)
        broken = WheelSample(SampleKind.POSITION, (float('inf'),), 0.0, 0.1)

        assert odom.update_from_sample(seed) is False
        assert odom.update_from_sample(broken) is False
        # The seed is still the reference for the next valid sample
        assert odom.update_from_sample(WheelSample(SampleKind.POSITION, (1.0,), 0.0, 0.1)) is True
        assert odom.x == pytest.approx(WHEEL_RADIUS)

    def test_numpy_scalar_inputs(self):
        """Test numpy scalar wheel, steering and dt values are accepted"""
        odom = make_odometry()
        assert odom.update_from_velocity(np.float32(1.0), np.float32(0.0), np.float64(0.1)) is True
        assert odom.x == pytest.approx(0.1 * WHEEL_RADIUS)

        assert odom.update_from_position(np.int64(0), np.float32(0.0), np.int64(1)) is False
        assert odom.update_from_position(np.int64(2), np.float32(0.0), np.int64(1)) is True
        assert odom.x == pytest.approx(0.1 * WHEEL_RADIUS + 2 * WHEEL_RADIUS)
        assert odom.timestamp == pytest.approx(1.1)
        assert isinstance(odom.timestamp, float)

        assert odom.update_from_velocity(np.array([1.0, 1.0]), np.float32(0.0), 0.1) is True
        assert odom.update_open_loop(np.float32(1.0), np.int64(0), np.float32(0.5)) is True

    def test_numpy_scalar_non_finite_is_ignored(self):
        odom = make_odometry()
        assert odom.update_from_velocity(np.float32('nan'), 0.0, 0.1) is False
        assert odom.update_from_velocity(1.0, np.float64('inf'), 0.1) is False
        assert_state_zero(odom)
