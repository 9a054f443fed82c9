"""Quaternion operations and utilities."""

from typing import Sequence
import numpy as np

from .types import Quaternion


class QuaternionOps:
    """Static methods for quaternion operations."""

    @staticmethod
    def scalar_from_rotation_vector(values: Sequence[float]) -> float:
        """Scalar part of the quaternion encoded by a rotation vector.

        The first three components are the rotation axis scaled by
        sin(angle/2). When a fourth component is present it is the scalar
        part itself; otherwise it is reconstructed from the unit norm and
        clamped to 0 when rounding makes the radicand non-positive.

        Args:
            values: Rotation vector, 3 to 5 floats.

        Returns:
            Quaternion scalar component w.
        """
        if len(values) >= 4:
            return float(values[3])
        w = 1.0 - values[0] * values[0] - values[1] * values[1] - values[2] * values[2]
        return float(np.sqrt(w)) if w > 0 else 0.0

    @staticmethod
    def from_rotation_vector(values: Sequence[float]) -> Quaternion:
        """Convert a platform rotation vector to a quaternion.

        No normalization is applied; the source guarantees unit norm.

        Args:
            values: Rotation vector [x*sin, y*sin, z*sin(, cos(, accuracy))].

        Returns:
            Quaternion [w, x, y, z].
        """
        return Quaternion(
            w=QuaternionOps.scalar_from_rotation_vector(values),
            x=float(values[0]),
            y=float(values[1]),
            z=float(values[2]),
        )
