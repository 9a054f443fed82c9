"""Streaming session owning the fusion state and the five series."""

import logging
import threading
import time
from typing import Callable, Dict, List, Optional, Tuple

from ..core.config import Config
from ..core.types import SeriesName, TimestampedSample
from .accuracy import AccuracyTracker
from .series import SlidingWindowSeries
from .state import FusionState

logger = logging.getLogger(__name__)

Listener = Callable[[float], None]


class Session:
    """One start/stop cycle of magnetic field streaming.

    The session is the only owner of its FusionState and series. All
    mutations go through ``lock``; series snapshots may be read from any
    thread at any time. Series contents survive ``stop()`` and are only
    cleared by the next ``start()``.

    Usage:
        session = Session(config)
        session.start()
        router.dispatch(event)
        raw = session.snapshot(SeriesName.RAW)
        session.stop()
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize session.

        Args:
            config: System configuration. If None, uses defaults.
            clock: Time source in seconds; elapsed time is measured on it.
        """
        if config is None:
            config = Config()

        self._config = config
        self._clock = clock
        self.lock = threading.RLock()

        self.state = FusionState()
        self.accuracy = AccuracyTracker()
        window = config.session.window_seconds
        self.series: Dict[SeriesName, SlidingWindowSeries] = {
            name: SlidingWindowSeries(window) for name in SeriesName
        }

        self._start_time = 0.0
        self._active = False
        self._listeners: List[Listener] = []

    @property
    def config(self) -> Config:
        """Configuration the session was built with."""
        return self._config

    @property
    def is_active(self) -> bool:
        """True between start() and stop()."""
        return self._active

    @property
    def start_time(self) -> float:
        """Clock reading at the last start()."""
        return self._start_time

    def start(self) -> None:
        """Reset all series and fusion state and begin accepting events."""
        with self.lock:
            for series in self.series.values():
                series.clear()
            self.state.reset()
            self._start_time = self._clock()
            self._active = True
        logger.info("Session started")

    def stop(self) -> None:
        """Stop accepting events; series contents are kept for display."""
        with self.lock:
            was_active = self._active
            self._active = False
        if was_active:
            logger.info("Session stopped")

    def elapsed(self) -> float:
        """Seconds since the last start()."""
        return self._clock() - self._start_time

    def snapshot(self, name: SeriesName) -> Tuple[TimestampedSample, ...]:
        """Current contents of one series."""
        return self.series[SeriesName(name)].snapshot()

    def snapshots(self) -> Dict[SeriesName, Tuple[TimestampedSample, ...]]:
        """Current contents of every series."""
        return {name: series.snapshot() for name, series in self.series.items()}

    def add_listener(self, listener: Listener) -> None:
        """Register a callback invoked with t after each magnetic tick."""
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        """Unregister a callback added with add_listener()."""
        self._listeners.remove(listener)

    def notify(self, t: float) -> None:
        """Call every listener with the tick time.

        A failing listener is logged and does not stop the others.
        """
        for listener in list(self._listeners):
            try:
                listener(t)
            except Exception:
                logger.exception("Listener %r failed at t=%.3f", listener, t)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "active": self._active,
            "series": {
                name.name: {
                    "title": name.title,
                    "samples": [s.to_dict() for s in samples],
                }
                for name, samples in self.snapshots().items()
            },
            "accuracy": self.accuracy.to_dict(),
        }
