"""
Visualization components for steering odometry.

Plots of estimated versus ground-truth paths for offline analysis.
"""

from .plotter import plot_trajectories

__all__ = [
    "plot_trajectories"
]
