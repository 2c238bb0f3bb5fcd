"""
Trajectory plots for odometry analysis.

Builds a figure comparing the ground-truth path with one or more odometry
estimates, together with the position and heading error over time. The
figure is created without pyplot so it can be rendered on headless machines.
"""

import logging
from typing import Dict, Optional

import numpy as np
import matplotlib.gridspec as gridspec
from matplotlib.figure import Figure

logger = logging.getLogger(__name__)


def plot_trajectories(times: np.ndarray,
                      true_poses: np.ndarray,
                      estimates: Dict[str, np.ndarray],
                      title: str = "Steering odometry",
                      output_path: Optional[str] = None) -> Figure:
    """
    Plot estimated paths against the ground truth.

    Args:
        times: Tick instants, shape (N,)
        true_poses: Ground-truth (x, y, heading), shape (N, 3)
        estimates: Label -> estimated (x, y, heading), each shape (N, 3)
        title: Figure title
        output_path: Save the figure there when given

    Returns:
        The matplotlib Figure

    Raises:
        ValueError: If an estimate does not match the ground-truth shape
    """
    true_poses = np.asarray(true_poses)
    for label, poses in estimates.items():
        if np.shape(poses) != true_poses.shape:
            raise ValueError(f"Estimate '{label}' has shape {np.shape(poses)}, "
                             f"expected {true_poses.shape}")

    figure = Figure(figsize=(12, 8))
    gs = gridspec.GridSpec(2, 2, figure=figure, hspace=0.3, wspace=0.3)

    ax_path = figure.add_subplot(gs[:, 0])
    ax_path.plot(true_poses[:, 0], true_poses[:, 1], 'k-', linewidth=2, label='Ground truth')
    for label, poses in estimates.items():
        ax_path.plot(poses[:, 0], poses[:, 1], '--', linewidth=1.5, label=label)
    ax_path.set_xlabel('X (m)')
    ax_path.set_ylabel('Y (m)')
    ax_path.set_title('Path')
    ax_path.axis('equal')
    ax_path.grid(True)
    ax_path.legend()

    ax_pos = figure.add_subplot(gs[0, 1])
    ax_head = figure.add_subplot(gs[1, 1])
    for label, poses in estimates.items():
        position_error = np.linalg.norm(np.asarray(poses)[:, :2] - true_poses[:, :2], axis=1)
        heading_error = np.asarray(poses)[:, 2] - true_poses[:, 2]
        ax_pos.plot(times, position_error, label=label)
        ax_head.plot(times, np.degrees(heading_error), label=label)

    ax_pos.set_ylabel('Position error (m)')
    ax_pos.set_title('Position error')
    ax_pos.grid(True)
    ax_head.set_xlabel('Time (s)')
    ax_head.set_ylabel('Heading error (deg)')
    ax_head.set_title('Heading error')
    ax_head.grid(True)

    figure.suptitle(title)

    if output_path is not None:
        figure.savefig(output_path, dpi=120)
        logger.info(f"Trajectory plot saved to {output_path}")

    return figure
