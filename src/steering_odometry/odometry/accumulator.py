"""
Rolling mean accumulator for velocity smoothing.

Samples are stored in a ring buffer preallocated at construction time, and a
running sum is maintained alongside it, so accumulating a sample is O(1) and
never allocates.

    mean = sum(samples held) / count,    count = min(window_size, samples seen)
"""

import numpy as np


def validate_window_size(window_size) -> int:
    """
    Check a rolling window size and return it as an int.

    Raises:
        ValueError: If the size is not an integer >= 1
    """
    if isinstance(window_size, bool) or int(window_size) != window_size or window_size < 1:
        raise ValueError(f"Rolling window size must be an integer >= 1, got {window_size}")
    return int(window_size)


class RollingMeanAccumulator:
    """
    Fixed-capacity moving average.

    Attributes:
        window_size: Maximum number of samples contributing to the mean
    """

    def __init__(self, window_size: int = 10):
        """
        Args:
            window_size: Number of most recent samples to average (>= 1)

        Raises:
            ValueError: If window_size is smaller than one
        """
        self.window_size = validate_window_size(window_size)
        self._buffer = np.zeros(self.window_size)
        self._next_insert = 0
        self._count = 0
        self._sum = 0.0

    def __len__(self) -> int:
        return self._count

    def accumulate(self, value: float) -> None:
        """Push a sample, evicting the oldest one when the window is full."""
        if self._count == self.window_size:
            self._sum -= self._buffer[self._next_insert]
        else:
            self._count += 1

        self._buffer[self._next_insert] = value
        self._sum += value
        self._next_insert = (self._next_insert + 1) % self.window_size

    def get_rolling_mean(self) -> float:
        """Mean of the held samples, 0.0 while empty."""
        if self._count == 0:
            return 0.0
        return float(self._sum / self._count)

    def get_samples(self) -> np.ndarray:
        """Held samples ordered from oldest to newest."""
        if self._count < self.window_size:
            return self._buffer[:self._count].copy()
        return np.roll(self._buffer, -self._next_insert)

    def reset(self) -> None:
        self._buffer.fill(0.0)
        self._next_insert = 0
        self._count = 0
        self._sum = 0.0
