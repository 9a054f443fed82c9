"""Latest orientation and raw vector values per sensor source."""

from dataclasses import dataclass, field
from typing import Sequence
import numpy as np
from numpy.typing import NDArray

from ..core.quaternion import QuaternionOps
from ..core.rotation import rotation_matrix_from_vector
from ..core.types import Quaternion


def _zero_vector() -> NDArray[np.float64]:
    return np.zeros(3, dtype=np.float64)


def _zero_matrix() -> NDArray[np.float64]:
    return np.zeros((3, 3), dtype=np.float64)


@dataclass
class FusionState:
    """Snapshot of the most recent estimate from each source.

    Each field is owned by one source; a new event overwrites it in
    place. The fused rotation matrix starts at zero, not identity, so
    it rotates everything to zero until the first fused event.
    inclination is the magnetic dip angle (radians) of the last
    successful tilt derivation.
    """
    game_quaternion: Quaternion = field(default_factory=Quaternion.identity)
    fused_quaternion: Quaternion = field(default_factory=Quaternion.identity)
    fused_rotation_matrix: NDArray[np.float64] = field(default_factory=_zero_matrix)
    gravity: NDArray[np.float64] = field(default_factory=_zero_vector)
    magnetic: NDArray[np.float64] = field(default_factory=_zero_vector)
    has_gravity: bool = False
    has_magnetic: bool = False
    heading_accuracy: float = float("nan")
    inclination: float = float("nan")

    def on_game_rotation(self, values: Sequence[float]) -> None:
        """Store the game rotation vector as a quaternion."""
        self.game_quaternion = QuaternionOps.from_rotation_vector(values)

    def on_fused_rotation(self, values: Sequence[float]) -> None:
        """Store the fused rotation vector as a quaternion and a matrix."""
        self.fused_quaternion = QuaternionOps.from_rotation_vector(values)
        self.fused_rotation_matrix = rotation_matrix_from_vector(values)
        if len(values) >= 5:
            self.heading_accuracy = float(values[4])

    def on_accelerometer(self, v: NDArray[np.float64]) -> None:
        """Store the latest gravity reading."""
        self.gravity = np.array(v[:3], dtype=np.float64)
        self.has_gravity = True

    def on_magnetic(self, v: NDArray[np.float64]) -> None:
        """Store the latest geomagnetic reading."""
        self.magnetic = np.array(v[:3], dtype=np.float64)
        self.has_magnetic = True

    def reset(self) -> None:
        """Return to the session start state."""
        self.game_quaternion = Quaternion.identity()
        self.fused_quaternion = Quaternion.identity()
        self.fused_rotation_matrix = _zero_matrix()
        self.gravity = _zero_vector()
        self.magnetic = _zero_vector()
        self.has_gravity = False
        self.has_magnetic = False
        self.heading_accuracy = float("nan")
        self.inclination = float("nan")

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "game_quaternion": self.game_quaternion.to_array().tolist(),
            "fused_quaternion": self.fused_quaternion.to_array().tolist(),
            "fused_rotation_matrix": self.fused_rotation_matrix.tolist(),
            "gravity": self.gravity.tolist(),
            "magnetic": self.magnetic.tolist(),
            "has_gravity": self.has_gravity,
            "has_magnetic": self.has_magnetic,
            "heading_accuracy": None if np.isnan(self.heading_accuracy) else self.heading_accuracy,
            "inclination": None if np.isnan(self.inclination) else self.inclination,
        }
