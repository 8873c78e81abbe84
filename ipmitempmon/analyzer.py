#!/usr/bin/env python3
"""
Thermal analysis module.

Smooths temperature readings with a rolling average.
"""

from collections import deque
from typing import Deque, Tuple

# Returned while no readings exist yet; above any real threshold so an
# empty window counts as hot.
EMPTY_WINDOW_AVERAGE = 9999.0


class RollingAggregator:
    """
    Fixed-size FIFO window of the most recent readings.

    Once full, each push evicts the oldest reading.
    """

    def __init__(self, window_size: int):
        if window_size < 1:
            raise ValueError(f"window_size must be >= 1, got {window_size}")
        self.window_size = window_size
        self._window: Deque[int] = deque(maxlen=window_size)

    def push(self, reading: int) -> None:
        """Append a reading, evicting the oldest once full."""
        self._window.append(reading)

    def average(self) -> float:
        """Mean of the window rounded to one decimal place."""
        if not self._window:
            return EMPTY_WINDOW_AVERAGE
        return round(sum(self._window) / len(self._window), 1)

    @property
    def readings(self) -> Tuple[int, ...]:
        """Current window, oldest first."""
        return tuple(self._window)

    def __len__(self) -> int:
        return len(self._window)
