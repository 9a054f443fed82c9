"""Thread-safe time-bounded series of timestamped 3-vector samples."""

import threading
from collections import deque
from typing import Deque, Optional, Tuple
import numpy as np
from numpy.typing import NDArray

from ..core.types import TimestampedSample

DEFAULT_WINDOW_SECONDS = 3.0


class SlidingWindowSeries:
    """Append-only series keeping only the last window_seconds of samples.

    After every append, leading samples older than
    newest.t - window_seconds are evicted. Samples must be appended in
    non-decreasing time order.
    """

    def __init__(self, window_seconds: float = DEFAULT_WINDOW_SECONDS):
        """
        Initialize series.

        Args:
            window_seconds: Time horizon kept behind the newest sample.
        """
        if window_seconds <= 0:
            raise ValueError(f"window_seconds must be positive, got {window_seconds}")
        self.window_seconds = window_seconds
        self._lock = threading.Lock()
        self._samples: Deque[TimestampedSample] = deque()

    def append(self, sample: TimestampedSample) -> None:
        """Add a sample and evict the ones that fell out of the window."""
        with self._lock:
            self._samples.append(sample)
            threshold = sample.t - self.window_seconds
            while self._samples[0].t < threshold:
                self._samples.popleft()

    def snapshot(self) -> Tuple[TimestampedSample, ...]:
        """Return the current contents, oldest first."""
        with self._lock:
            return tuple(self._samples)

    def to_array(self) -> NDArray[np.float64]:
        """Return the current contents as an (N, 4) array of [t, x, y, z]."""
        samples = self.snapshot()
        if not samples:
            return np.empty((0, 4), dtype=np.float64)
        return np.array([[s.t, s.x, s.y, s.z] for s in samples], dtype=np.float64)

    def latest(self) -> Optional[TimestampedSample]:
        """Newest sample, or None when empty."""
        with self._lock:
            return self._samples[-1] if self._samples else None

    def clear(self) -> None:
        """Remove all samples."""
        with self._lock:
            self._samples.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._samples)
