# history.py
from collections import deque
from typing import Tuple

from ..models.detection import FrameTally


class HistoryWindow:
    """Fixed-capacity FIFO of recent frame tallies, oldest first"""

    def __init__(self, capacity: int = 10):
        """
        Initialize window

        Args:
            capacity: Maximum number of tallies kept before the oldest is evicted
        """
        if capacity < 1:
            raise ValueError(f"History capacity must be at least 1, got {capacity}")
        self.capacity = capacity
        self._tallies = deque(maxlen=capacity)

    def push(self, tally: FrameTally) -> None:
        """Append a tally, evicting the oldest one when full"""
        self._tallies.append(tally)

    def snapshot(self) -> Tuple[FrameTally, ...]:
        """Immutable oldest-to-newest copy of the window"""
        return tuple(self._tallies)

    def clear(self) -> None:
        self._tallies.clear()

    def __len__(self):
        return len(self._tallies)
