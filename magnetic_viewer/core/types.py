"""Data types for magnetic field visualization."""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import ClassVar, Optional, Tuple, Union
import numpy as np
from numpy.typing import NDArray


class SensorSource(IntEnum):
    """Sensor streams feeding the viewer.

    Values match the platform sensor type codes.
    """
    ACCELEROMETER = 1
    MAGNETIC_FIELD = 2
    ROTATION_VECTOR = 11
    GAME_ROTATION_VECTOR = 15


class Accuracy(IntEnum):
    """Reliability of a sensor stream, as reported by the platform."""
    UNRELIABLE = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3

    @classmethod
    def from_code(cls, code: int) -> "Accuracy":
        """Map a platform status integer to an Accuracy.

        Raises:
            ValueError: If the code is not a known status.
        """
        try:
            return cls(int(code))
        except ValueError:
            raise ValueError(f"Unknown accuracy code: {code}") from None

    @property
    def color(self) -> str:
        """Indicator color (hex RGB) for this accuracy level."""
        return _ACCURACY_COLORS[self]


_ACCURACY_COLORS = {
    Accuracy.HIGH: "#4CAF50",
    Accuracy.MEDIUM: "#FFC107",
    Accuracy.LOW: "#FF9800",
    Accuracy.UNRELIABLE: "#F44336",
}


class SeriesName(Enum):
    """The five magnetic field series shown side by side."""
    RAW = "Device Magnetic Field (X, Y, Z)"
    GAME_ROTATION = "Global Magnetic Field via Game Rotation Vector (X, Y, Z)"
    FUSED_ROTATION = "Global Magnetic Field via Rotation Vector (X, Y, Z)"
    TILT = "Global Magnetic Field via Accelerometer + Rotation Matrix (X, Y, Z)"
    FUSED_MATRIX = "Global Magnetic Field via Rotation Vector + Rotation Matrix"

    @property
    def title(self) -> str:
        """Chart title for this series."""
        return self.value


@dataclass
class Quaternion:
    """Unit quaternion representing orientation.

    Convention: [w, x, y, z] where w is the scalar component.
    """
    w: float
    x: float
    y: float
    z: float

    @classmethod
    def identity(cls) -> "Quaternion":
        """Return identity quaternion (no rotation)."""
        return cls(w=1.0, x=0.0, y=0.0, z=0.0)

    def to_array(self) -> NDArray[np.float64]:
        """Convert to numpy array [w, x, y, z]."""
        return np.array([self.w, self.x, self.y, self.z], dtype=np.float64)

    @property
    def norm(self) -> float:
        """Euclidean norm of quaternion."""
        return float(np.sqrt(self.w**2 + self.x**2 + self.y**2 + self.z**2))

    def is_valid(self, tolerance: float = 0.01) -> bool:
        """Check if quaternion is unit quaternion within tolerance."""
        return abs(self.norm - 1.0) <= tolerance and self._is_finite()

    def _is_finite(self) -> bool:
        """Check all components are finite."""
        return all(np.isfinite([self.w, self.x, self.y, self.z]))


@dataclass(frozen=True)
class TimestampedSample:
    """One point of a series.

    t is seconds elapsed since the session start.
    """
    t: float
    x: float
    y: float
    z: float

    @classmethod
    def from_vector(cls, t: float, v: NDArray[np.float64]) -> "TimestampedSample":
        """Create from an elapsed time and a 3-vector."""
        return cls(t=float(t), x=float(v[0]), y=float(v[1]), z=float(v[2]))

    @property
    def vector(self) -> NDArray[np.float64]:
        """Sample value [x, y, z]."""
        return np.array([self.x, self.y, self.z], dtype=np.float64)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {"t": self.t, "x": self.x, "y": self.y, "z": self.z}


def _as_values(values) -> Tuple[float, ...]:
    return tuple(float(v) for v in values)


@dataclass(frozen=True)
class _ValuesEvent:
    """Base for events carrying a float payload."""
    values: Tuple[float, ...]
    timestamp: Optional[float] = None

    source: ClassVar[SensorSource]
    allowed_lengths: ClassVar[Tuple[int, ...]] = (3,)

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", _as_values(self.values))
        if len(self.values) not in self.allowed_lengths:
            raise ValueError(
                f"{self.source.name} event needs {self.allowed_lengths} values, "
                f"got {len(self.values)}"
            )

    @property
    def vector(self) -> NDArray[np.float64]:
        """First three components as a numpy vector."""
        return np.array(self.values[:3], dtype=np.float64)


@dataclass(frozen=True)
class GameRotationEvent(_ValuesEvent):
    """Rotation vector from the game rotation source (no magnetometer)."""
    source: ClassVar[SensorSource] = SensorSource.GAME_ROTATION_VECTOR
    allowed_lengths: ClassVar[Tuple[int, ...]] = (3, 4)


@dataclass(frozen=True)
class FusedRotationEvent(_ValuesEvent):
    """Rotation vector from the fused rotation source.

    An optional fifth value is the estimated heading accuracy in radians.
    """
    source: ClassVar[SensorSource] = SensorSource.ROTATION_VECTOR
    allowed_lengths: ClassVar[Tuple[int, ...]] = (3, 4, 5)


@dataclass(frozen=True)
class AccelerometerEvent(_ValuesEvent):
    """Accelerometer reading in m/s^2."""
    source: ClassVar[SensorSource] = SensorSource.ACCELEROMETER


@dataclass(frozen=True)
class MagneticEvent(_ValuesEvent):
    """Magnetometer reading in uT."""
    source: ClassVar[SensorSource] = SensorSource.MAGNETIC_FIELD


@dataclass(frozen=True)
class AccuracyChangedEvent:
    """Accuracy notification for one sensor source."""
    source: SensorSource
    accuracy: Accuracy
    timestamp: Optional[float] = None


SensorEvent = Union[
    GameRotationEvent,
    FusedRotationEvent,
    AccelerometerEvent,
    MagneticEvent,
    AccuracyChangedEvent,
]

_EVENT_TYPES = {
    SensorSource.GAME_ROTATION_VECTOR: GameRotationEvent,
    SensorSource.ROTATION_VECTOR: FusedRotationEvent,
    SensorSource.ACCELEROMETER: AccelerometerEvent,
    SensorSource.MAGNETIC_FIELD: MagneticEvent,
}


def make_event(source: SensorSource, values, timestamp: Optional[float] = None) -> SensorEvent:
    """Build the data event matching a sensor source.

    Args:
        source: Originating sensor stream.
        values: Raw float payload.
        timestamp: Optional source timestamp in seconds.

    Returns:
        Typed sensor event.

    Raises:
        ValueError: If the payload length does not fit the source.
    """
    return _EVENT_TYPES[SensorSource(source)](values=values, timestamp=timestamp)


@dataclass
class ValidationResult:
    """Result of sensor data validation."""
    is_valid: bool
    errors: list = field(default_factory=list)
    warnings: list = field(default_factory=list)

    def add_error(self, message: str) -> None:
        """Add validation error."""
        self.is_valid = False
        self.errors.append(message)

    def add_warning(self, message: str) -> None:
        """Add validation warning."""
        self.warnings.append(message)


@dataclass
class SourceStats:
    """Statistics for event source quality."""
    total_packets: int = 0
    valid_packets: int = 0
    crc_errors: int = 0
    decode_errors: int = 0
    timeouts: int = 0

    @property
    def packet_loss_rate(self) -> float:
        """Fraction of packets lost."""
        if self.total_packets == 0:
            return 0.0
        return 1.0 - (self.valid_packets / self.total_packets)

    @property
    def crc_error_rate(self) -> float:
        """Fraction of packets with CRC errors."""
        if self.total_packets == 0:
            return 0.0
        return self.crc_errors / self.total_packets
