"""Communication module for sensor event sources."""

from .uart import SerialSensorSource, MockSensorSource, SourceError

__all__ = ["SerialSensorSource", "MockSensorSource", "SourceError"]
