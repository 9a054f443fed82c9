"""Core module for magnetic field visualization."""

from .types import (
    SensorSource,
    Accuracy,
    SeriesName,
    Quaternion,
    TimestampedSample,
    GameRotationEvent,
    FusedRotationEvent,
    AccelerometerEvent,
    MagneticEvent,
    AccuracyChangedEvent,
    SensorEvent,
    make_event,
    ValidationResult,
    SourceStats,
)
from .quaternion import QuaternionOps
from .rotation import (
    TiltResult,
    rotate_by_quaternion,
    rotate_by_matrix,
    rotation_matrix_from_vector,
    tilt_compensation_matrix,
    inclination_angle,
)
from .validation import SensorValidator
from .config import Config, load_config

__all__ = [
    "SensorSource",
    "Accuracy",
    "SeriesName",
    "Quaternion",
    "TimestampedSample",
    "GameRotationEvent",
    "FusedRotationEvent",
    "AccelerometerEvent",
    "MagneticEvent",
    "AccuracyChangedEvent",
    "SensorEvent",
    "make_event",
    "ValidationResult",
    "SourceStats",
    "QuaternionOps",
    "TiltResult",
    "rotate_by_quaternion",
    "rotate_by_matrix",
    "rotation_matrix_from_vector",
    "tilt_compensation_matrix",
    "inclination_angle",
    "SensorValidator",
    "Config",
    "load_config",
]
