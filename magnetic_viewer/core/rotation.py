"""Rotation of device-frame vectors into the world frame.

Three derivations are provided:

- quaternion sandwich product, for rotation-vector quaternions
- rotation matrix built from a rotation vector
- tilt-compensation matrix built from gravity and the geomagnetic field,
  giving an east-north-up basis

All matrices are row-major: R[i, j] is element 3*i + j of the
9-float platform layout.
"""

from dataclasses import dataclass
from typing import Optional, Sequence
import numpy as np
from numpy.typing import NDArray

from .quaternion import QuaternionOps
from .types import Quaternion

GRAVITY_EARTH = 9.81


def rotate_by_quaternion(v: NDArray[np.float64], q: Quaternion) -> NDArray[np.float64]:
    """Rotate a vector by a quaternion: q (0, v) q*.

    q is assumed unit-norm and is not normalized; a non-unit q scales
    the result by |q|^2.

    Args:
        v: Vector [x, y, z] in device frame.
        q: Orientation quaternion.

    Returns:
        Rotated vector.
    """
    qw, qx, qy, qz = q.w, q.x, q.y, q.z
    vx, vy, vz = float(v[0]), float(v[1]), float(v[2])

    # q * (0, v)
    ix = qw * vx + qy * vz - qz * vy
    iy = qw * vy + qz * vx - qx * vz
    iz = qw * vz + qx * vy - qy * vx
    iw = -qx * vx - qy * vy - qz * vz

    # ... * q*
    return np.array([
        ix * qw - iw * qx - iy * qz + iz * qy,
        iy * qw - iw * qy - iz * qx + ix * qz,
        iz * qw - iw * qz - ix * qy + iy * qx,
    ], dtype=np.float64)


def rotate_by_matrix(v: NDArray[np.float64], m: NDArray[np.float64]) -> NDArray[np.float64]:
    """Rotate a vector by a row-major 3x3 matrix.

    Args:
        v: Vector [x, y, z].
        m: Rotation matrix, shape (3, 3) or 9 floats.

    Returns:
        m @ v.
    """
    m = np.asarray(m, dtype=np.float64).reshape(3, 3)
    return m @ np.asarray(v, dtype=np.float64)


def rotation_matrix_from_vector(values: Sequence[float]) -> NDArray[np.float64]:
    """Build a rotation matrix from a platform rotation vector.

    The scalar part is reconstructed exactly as in
    QuaternionOps.from_rotation_vector.

    Args:
        values: Rotation vector, 3 to 5 floats.

    Returns:
        3x3 rotation matrix.
    """
    q1, q2, q3 = float(values[0]), float(values[1]), float(values[2])
    q0 = QuaternionOps.scalar_from_rotation_vector(values)

    sq_q1 = 2.0 * q1 * q1
    sq_q2 = 2.0 * q2 * q2
    sq_q3 = 2.0 * q3 * q3
    q1_q2 = 2.0 * q1 * q2
    q3_q0 = 2.0 * q3 * q0
    q1_q3 = 2.0 * q1 * q3
    q2_q0 = 2.0 * q2 * q0
    q2_q3 = 2.0 * q2 * q3
    q1_q0 = 2.0 * q1 * q0

    return np.array([
        [1.0 - sq_q2 - sq_q3, q1_q2 - q3_q0, q1_q3 + q2_q0],
        [q1_q2 + q3_q0, 1.0 - sq_q1 - sq_q3, q2_q3 - q1_q0],
        [q1_q3 - q2_q0, q2_q3 + q1_q0, 1.0 - sq_q1 - sq_q2],
    ], dtype=np.float64)


@dataclass(frozen=True)
class TiltResult:
    """Output of the gravity + geomagnetic fusion."""
    rotation: NDArray[np.float64]     # device -> east-north-up
    inclination: NDArray[np.float64]  # rotates the field into the horizon plane

    @property
    def inclination_angle(self) -> float:
        """Magnetic dip angle in radians."""
        return inclination_angle(self.inclination)


def tilt_compensation_matrix(
    gravity: NDArray[np.float64],
    geomagnetic: NDArray[np.float64],
    gravity_nominal: float = GRAVITY_EARTH,
    free_fall_ratio: float = 0.1,
    min_horizontal_norm: float = 0.1,
) -> Optional[TiltResult]:
    """Compute the east-north-up rotation from gravity and magnetic field.

    East is E x A, north is A x East, up is A, each normalized. The
    result is None when the geometry is degenerate: the device is in
    free fall (|A| below free_fall_ratio * g), or the field is nearly
    parallel to gravity (|E x A| below min_horizontal_norm).

    Args:
        gravity: Accelerometer vector in m/s^2.
        geomagnetic: Magnetometer vector in uT.
        gravity_nominal: Reference gravity in m/s^2.
        free_fall_ratio: Fraction of gravity below which the device is
            considered in free fall.
        min_horizontal_norm: Minimum |E x A| (uT * m/s^2).

    Returns:
        TiltResult, or None if degenerate.
    """
    ax, ay, az = (float(c) for c in gravity)
    ex, ey, ez = (float(c) for c in geomagnetic)

    norm_sq_a = ax * ax + ay * ay + az * az
    free_fall = free_fall_ratio * gravity_nominal
    if norm_sq_a < free_fall * free_fall:
        return None

    hx = ey * az - ez * ay
    hy = ez * ax - ex * az
    hz = ex * ay - ey * ax
    norm_h = np.sqrt(hx * hx + hy * hy + hz * hz)
    if norm_h < min_horizontal_norm:
        return None

    inv_h = 1.0 / norm_h
    hx *= inv_h
    hy *= inv_h
    hz *= inv_h

    inv_a = 1.0 / np.sqrt(norm_sq_a)
    ax *= inv_a
    ay *= inv_a
    az *= inv_a

    mx = ay * hz - az * hy
    my = az * hx - ax * hz
    mz = ax * hy - ay * hx

    rotation = np.array([
        [hx, hy, hz],
        [mx, my, mz],
        [ax, ay, az],
    ], dtype=np.float64)

    inv_e = 1.0 / np.sqrt(ex * ex + ey * ey + ez * ez)
    c = (ex * mx + ey * my + ez * mz) * inv_e
    s = (ex * ax + ey * ay + ez * az) * inv_e
    inclination = np.array([
        [1.0, 0.0, 0.0],
        [0.0, c, s],
        [0.0, -s, c],
    ], dtype=np.float64)

    return TiltResult(rotation=rotation, inclination=inclination)


def inclination_angle(inclination: NDArray[np.float64]) -> float:
    """Magnetic dip angle in radians from an inclination matrix."""
    m = np.asarray(inclination, dtype=np.float64).reshape(3, 3)
    return float(np.arctan2(m[1, 2], m[1, 1]))
