"""Fixed-capacity FIFO windows for scalar sensor channels."""

from collections import deque
from typing import Iterable

import numpy as np


class RingBuffer:
    """FIFO window holding at most ``capacity`` floats.

    Appending to a full buffer evicts the oldest value.

    Parameters
    ----------
    capacity : int
        Maximum number of retained samples (must be >= 1).
    """

    def __init__(self, capacity: int):
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self.capacity = int(capacity)
        self._data = deque(maxlen=self.capacity)

    def append(self, value: float) -> None:
        self._data.append(float(value))

    def extend(self, values: Iterable[float]) -> None:
        for v in values:
            self.append(v)

    def clear(self) -> None:
        self._data.clear()

    def __len__(self) -> int:
        return len(self._data)

    @property
    def is_full(self) -> bool:
        return len(self._data) == self.capacity

    def to_array(self) -> np.ndarray:
        """Contents oldest-first as a float array."""
        return np.fromiter(self._data, dtype=float, count=len(self._data))

    def tail(self, n: int) -> np.ndarray:
        """The ``n`` most recent values (fewer if not yet buffered)."""
        if n <= 0:
            return np.empty(0)
        return self.to_array()[-n:]

    def rms(self, n: int = None) -> float:
        """Root-mean-square of the last ``n`` values (all by default)."""
        arr = self.to_array() if n is None else self.tail(n)
        if arr.size == 0:
            return 0.0
        return float(np.sqrt(np.mean(arr ** 2)))
