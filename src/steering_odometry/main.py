#!/usr/bin/env python3
"""
Steering odometry demo.

Drives a simulated steered vehicle along a twist profile, replays the recorded
wheel feedback through the odometry (position, velocity and open-loop paths)
and reports the drift of each estimate against the ground truth.

Run with: steering-odometry-demo --layout tricycle --profile slalom
"""

import argparse
import logging
from dataclasses import asdict

import numpy as np

from .kinematics import VehicleGeometry, WheelLayout
from .odometry import IntegrationMethod, OdometryParameters, SampleKind, SteeringOdometry
from .simulation import (
    PROFILE_TYPES,
    SimulationParameters,
    TwistProfile,
    VehicleSimulation,
    compute_pose_errors,
    replay_odometry
)

logger = logging.getLogger(__name__)


def replay_open_loop(odometry, result, profile):
    """Integrate the commanded twists, ignoring the wheel feedback."""
    odometry.initialize(float(result.times[0]))
    poses = [(odometry.x, odometry.y, odometry.heading)]
    for previous, current in zip(result.times[:-1], result.times[1:]):
        dt = float(current - previous)
        linear, angular = profile.get_twist(float(previous) + dt / 2)
        odometry.update_open_loop(linear, angular, dt)
        poses.append((odometry.x, odometry.y, odometry.heading))
    return np.array(poses)


def run_demo(args) -> int:
    """Run the simulation and print the error statistics of each estimate."""
    geometry = VehicleGeometry(
        wheel_radius=args.wheel_radius,
        wheelbase=args.wheelbase,
        wheel_separation=args.wheel_separation,
    )
    params = OdometryParameters(
        velocity_rolling_window_size=args.window,
        integration_method=IntegrationMethod(args.integration),
        layout=WheelLayout(args.layout),
        per_side_steering=args.per_side_steering,
    )
    odometry = SteeringOdometry(geometry, params)

    profile = TwistProfile(
        profile_type=args.profile,
        linear_speed=args.linear_speed,
        angular_speed=args.angular_speed,
    )
    simulation = VehicleSimulation(
        odometry.kinematics, profile,
        SimulationParameters(dt=args.dt, duration=args.duration,
                             encoder_noise_std=args.noise, seed=args.seed),
    )
    result = simulation.run()

    estimates = {
        'position': replay_odometry(odometry, result, SampleKind.POSITION),
        'velocity': replay_odometry(odometry, result, SampleKind.VELOCITY),
        'open loop': replay_open_loop(odometry, result, profile),
    }

    print(f"=== Steering odometry: {args.layout} layout, '{args.profile}' profile ===")
    print(f"Final true pose: x={result.true_poses[-1, 0]:.4f} m, "
          f"y={result.true_poses[-1, 1]:.4f} m, heading={result.true_poses[-1, 2]:.4f} rad")
    for label, poses in estimates.items():
        stats = compute_pose_errors(result.true_poses, poses)
        summary = ", ".join(f"{key}={value:.2e}" for key, value in asdict(stats).items())
        print(f"  {label:>9}: {summary}")

    if args.plot:
        from .visualization import plot_trajectories
        plot_trajectories(result.times, result.true_poses, estimates,
                          title=f"{args.layout} / {args.profile}", output_path=args.plot)
        print(f"Plot written to {args.plot}")

    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Steering odometry demo')
    parser.add_argument('--layout', choices=[layout.value for layout in WheelLayout],
                        default=WheelLayout.BICYCLE.value,
                        help='Traction wheel layout (default: bicycle)')
    parser.add_argument('--profile', choices=PROFILE_TYPES, default='arc',
                        help='Commanded twist profile (default: arc)')
    parser.add_argument('--duration', type=float, default=20.0,
                        help='Simulated time in seconds (default: 20)')
    parser.add_argument('--dt', type=float, default=0.01,
                        help='Control loop period in seconds (default: 0.01)')
    parser.add_argument('--linear-speed', type=float, default=1.0,
                        help='Profile forward speed in m/s (default: 1.0)')
    parser.add_argument('--angular-speed', type=float, default=0.2,
                        help='Profile yaw rate in rad/s (default: 0.2)')
    parser.add_argument('--wheelbase', type=float, default=3.24644,
                        help='Distance between axles in meters')
    parser.add_argument('--wheel-radius', type=float, default=0.45,
                        help='Traction wheel radius in meters')
    parser.add_argument('--wheel-separation', type=float, default=0.0,
                        help='Distance between traction wheels in meters')
    parser.add_argument('--per-side-steering', action='store_true',
                        help='Report one steering angle per steered wheel (tricycle only)')
    parser.add_argument('--window', type=int, default=10,
                        help='Velocity rolling window size (default: 10)')
    parser.add_argument('--integration', choices=[m.value for m in IntegrationMethod],
                        default=IntegrationMethod.EXACT.value,
                        help='Pose integration scheme (default: exact)')
    parser.add_argument('--noise', type=float, default=0.0,
                        help='Encoder noise standard deviation in rad')
    parser.add_argument('--seed', type=int, default=None,
                        help='Random seed for encoder noise')
    parser.add_argument('--plot', metavar='PATH', default=None,
                        help='Save a trajectory plot to PATH')
    parser.add_argument('--log-level', default='WARNING',
                        help='Logging level (default: WARNING)')
    return parser


def main(argv=None) -> int:
    """Main entry point"""
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.WARNING))

    try:
        return run_demo(args)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
