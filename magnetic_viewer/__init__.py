"""Live magnetometer visualization in device and world frames."""

from .core import Config, load_config, SeriesName, SensorSource, Accuracy, make_event
from .fusion import Session, SensorEventRouter

__version__ = "0.1.0"

__all__ = [
    "Config",
    "load_config",
    "SeriesName",
    "SensorSource",
    "Accuracy",
    "make_event",
    "Session",
    "SensorEventRouter",
]
