"""
Rolling History Module
Fixed-capacity ring buffer for per-tick time series.
"""

from __future__ import annotations

from typing import Union

import numpy as np

DEFAULT_HISTORY_SIZE = 1000


class RollingHistory:
    """
    Keeps the most recent ``capacity`` samples; the oldest is evicted first.

    Appends are O(1): samples are written into a preallocated numpy array at
    a moving head index instead of shifting a list.
    """

    def __init__(self, capacity: int = DEFAULT_HISTORY_SIZE, dtype: Union[type, str] = float):
        if capacity < 1:
            raise ValueError("History capacity must be at least 1")
        self.capacity = capacity
        self._data = np.zeros(capacity, dtype=dtype)
        self._head = 0      # Next write position
        self._count = 0

    def append(self, value: float) -> None:
        self._data[self._head] = value
        self._head = (self._head + 1) % self.capacity
        if self._count < self.capacity:
            self._count += 1

    def values(self) -> np.ndarray:
        """Copy of the retained samples, oldest first."""
        if self._count < self.capacity:
            return self._data[:self._count].copy()
        return np.concatenate((self._data[self._head:], self._data[:self._head]))

    def latest(self, count: int = 50) -> np.ndarray:
        """Up to ``count`` most recent samples, oldest first."""
        if count <= 0:
            return self._data[:0].copy()
        return self.values()[-count:]

    def mean(self) -> float:
        if self._count == 0:
            return 0.0
        return float(self._data[:self._count].mean())

    def max(self) -> float:
        if self._count == 0:
            return 0.0
        return float(self._data[:self._count].max())

    def clear(self) -> None:
        self._data[:] = 0
        self._head = 0
        self._count = 0

    def __len__(self) -> int:
        return self._count

    def __repr__(self) -> str:
        return f"RollingHistory({self._count}/{self.capacity})"
