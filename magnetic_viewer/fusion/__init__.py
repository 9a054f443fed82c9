"""Sensor fusion module for magnetic field visualization."""

from .series import SlidingWindowSeries, DEFAULT_WINDOW_SECONDS
from .state import FusionState
from .accuracy import AccuracyTracker
from .session import Session
from .router import (
    SensorEventRouter,
    RouteResult,
    SKIP_NO_GRAVITY,
    SKIP_DEGENERATE,
)

__all__ = [
    "SlidingWindowSeries",
    "DEFAULT_WINDOW_SECONDS",
    "FusionState",
    "AccuracyTracker",
    "Session",
    "SensorEventRouter",
    "RouteResult",
    "SKIP_NO_GRAVITY",
    "SKIP_DEGENERATE",
]
