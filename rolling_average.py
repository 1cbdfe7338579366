"""
Rolling average over the last N samples.
"""

from collections import deque


class RollingAverage:
    """Mean of the most recent n values added"""

    def __init__(self, n: int):
        if n <= 0:
            raise ValueError(f"Window size must be positive, got {n}")
        self.n = n
        self._values = deque(maxlen=n)
        self._total = 0.0

    def add(self, x: float) -> float:
        if len(self._values) == self.n:
            self._total -= self._values[0]
        self._values.append(x)
        self._total += x
        return self.value

    def reset(self):
        self._values.clear()
        self._total = 0.0

    @property
    def value(self) -> float:
        if not self._values:
            return 0.0
        return self._total / len(self._values)

    def __len__(self):
        return len(self._values)
