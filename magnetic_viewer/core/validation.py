"""Input validation for sensor events."""

import numpy as np

from .config import Config
from .quaternion import QuaternionOps
from .types import (
    AccelerometerEvent,
    AccuracyChangedEvent,
    FusedRotationEvent,
    GameRotationEvent,
    MagneticEvent,
    SensorEvent,
    ValidationResult,
)


class SensorValidator:
    """Validates sensor event payloads for plausibility.

    Payload length is already enforced by the event types; this checks
    the values themselves.
    """

    def __init__(self, config: Config):
        """Initialize validator with configuration.

        Args:
            config: System configuration with validation thresholds.
        """
        self._config = config

    def validate_event(self, event: SensorEvent) -> ValidationResult:
        """Validate one sensor event.

        Args:
            event: Event to validate.

        Returns:
            ValidationResult with validation status and any errors/warnings.
        """
        result = ValidationResult(is_valid=True)

        if isinstance(event, AccuracyChangedEvent):
            return result

        self._check_finite(event.values, result)
        if not result.is_valid:
            return result

        if isinstance(event, (GameRotationEvent, FusedRotationEvent)):
            self._check_rotation(event, result)
        elif isinstance(event, AccelerometerEvent):
            self._check_accelerometer(event, result)
        elif isinstance(event, MagneticEvent):
            self._check_magnetometer(event, result)

        return result

    def _check_finite(self, values, result: ValidationResult) -> None:
        """Check all values are finite (not NaN or Inf)."""
        for i, val in enumerate(values):
            if not np.isfinite(val):
                result.add_error(f"Non-finite value at index {i}: {val}")

    def _check_rotation(self, event, result: ValidationResult) -> None:
        """Check the rotation vector encodes a unit quaternion."""
        tolerance = self._config.validation.quaternion_norm_tolerance
        x, y, z = event.values[:3]
        axis_sq = x * x + y * y + z * z

        if len(event.values) == 3:
            if axis_sq > 1.0 + tolerance:
                result.add_warning(
                    f"{event.source.name} axis part exceeds unit norm: {np.sqrt(axis_sq):.4f}"
                )
            return

        q = QuaternionOps.from_rotation_vector(event.values)
        if not q.is_valid(tolerance):
            result.add_warning(f"{event.source.name} quaternion norm drift: {q.norm:.6f}")

    def _check_accelerometer(self, event: AccelerometerEvent, result: ValidationResult) -> None:
        """Check the acceleration magnitude is plausible for gravity."""
        cfg = self._config
        acc_mag = float(np.linalg.norm(event.vector))
        expected_g = cfg.tilt.gravity_nominal
        tolerance = cfg.validation.gravity_tolerance

        if abs(acc_mag - expected_g) > tolerance:
            result.add_warning(
                f"Acceleration magnitude {acc_mag:.2f} deviates from "
                f"expected {expected_g:.2f} +/- {tolerance:.2f} m/s^2"
            )

    def _check_magnetometer(self, event: MagneticEvent, result: ValidationResult) -> None:
        """Check the field strength lies within the Earth field range."""
        cfg = self._config.validation
        mag_mag = float(np.linalg.norm(event.vector))

        if mag_mag < cfg.magnetic_min_field_ut:
            result.add_warning(f"Magnetic field too weak: {mag_mag:.1f} uT")
        elif mag_mag > cfg.magnetic_max_field_ut:
            result.add_warning(f"Magnetic field too strong: {mag_mag:.1f} uT")
