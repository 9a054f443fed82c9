"""Dispatch of sensor events into the fusion state and series.

Orientation and gravity events only update FusionState. A magnetic
event fans out into every series using one shared timestamp:

1. raw device-frame field
2. rotated by the game rotation quaternion
3. rotated by the fused rotation quaternion
4. rotated by the gravity + geomagnetic tilt matrix (skipped when no
   gravity has arrived yet or the geometry is degenerate)
5. rotated by the fused rotation matrix

Steps 3 and 5 are the quaternion and matrix forms of the same estimate.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from ..core.rotation import rotate_by_matrix, rotate_by_quaternion, tilt_compensation_matrix
from ..core.types import (
    AccelerometerEvent,
    AccuracyChangedEvent,
    FusedRotationEvent,
    GameRotationEvent,
    MagneticEvent,
    SensorEvent,
    SeriesName,
    TimestampedSample,
)
from .session import Session

logger = logging.getLogger(__name__)

SKIP_NO_GRAVITY = "no_gravity"
SKIP_DEGENERATE = "degenerate"


@dataclass(frozen=True)
class RouteResult:
    """Outcome of dispatching one event."""
    accepted: bool
    t: Optional[float] = None
    appended: Tuple[SeriesName, ...] = ()
    tilt_skip: Optional[str] = None


DROPPED = RouteResult(accepted=False)
ACCEPTED = RouteResult(accepted=True)


class SensorEventRouter:
    """Single entry point for events of the active session."""

    def __init__(self, session: Session):
        """Initialize router.

        Args:
            session: Session whose state and series are updated.
        """
        self._session = session
        self._tilt_cfg = session.config.tilt

    @property
    def session(self) -> Session:
        """Session receiving the events."""
        return self._session

    def dispatch(self, event: SensorEvent) -> RouteResult:
        """Apply one event to the session.

        Data events arriving while the session is stopped are dropped.
        Accuracy changes are applied whether or not the session is active.

        Args:
            event: Typed sensor event.

        Returns:
            RouteResult naming the series that received a sample.

        Raises:
            TypeError: If the event is not a known variant.
        """
        session = self._session
        with session.lock:
            if isinstance(event, AccuracyChangedEvent):
                session.accuracy.update(event.source, event.accuracy)
                return ACCEPTED

            if not session.is_active:
                logger.debug("Dropped %s while stopped", type(event).__name__)
                return DROPPED

            state = session.state
            if isinstance(event, MagneticEvent):
                result = self._on_magnetic(event)
            elif isinstance(event, GameRotationEvent):
                state.on_game_rotation(event.values)
                result = ACCEPTED
            elif isinstance(event, FusedRotationEvent):
                state.on_fused_rotation(event.values)
                result = ACCEPTED
            elif isinstance(event, AccelerometerEvent):
                state.on_accelerometer(event.vector)
                result = ACCEPTED
            else:
                raise TypeError(f"Unsupported event: {event!r}")

        if result.t is not None:
            session.notify(result.t)
        return result

    def _on_magnetic(self, event: MagneticEvent) -> RouteResult:
        session = self._session
        state = session.state
        series = session.series

        t = session.elapsed()
        m = event.vector
        state.on_magnetic(m)

        appended = [SeriesName.RAW]
        series[SeriesName.RAW].append(TimestampedSample.from_vector(t, m))

        game = rotate_by_quaternion(m, state.game_quaternion)
        series[SeriesName.GAME_ROTATION].append(TimestampedSample.from_vector(t, game))
        appended.append(SeriesName.GAME_ROTATION)

        fused = rotate_by_quaternion(m, state.fused_quaternion)
        series[SeriesName.FUSED_ROTATION].append(TimestampedSample.from_vector(t, fused))
        appended.append(SeriesName.FUSED_ROTATION)

        tilt_skip = None
        if state.has_gravity and state.has_magnetic:
            tilt = tilt_compensation_matrix(
                state.gravity,
                state.magnetic,
                gravity_nominal=self._tilt_cfg.gravity_nominal,
                free_fall_ratio=self._tilt_cfg.free_fall_ratio,
                min_horizontal_norm=self._tilt_cfg.min_horizontal_norm,
            )
            if tilt is not None:
                state.inclination = tilt.inclination_angle
                world = rotate_by_matrix(m, tilt.rotation)
                series[SeriesName.TILT].append(TimestampedSample.from_vector(t, world))
                appended.append(SeriesName.TILT)
            else:
                tilt_skip = SKIP_DEGENERATE
                logger.debug("Tilt compensation degenerate at t=%.3f", t)
        else:
            tilt_skip = SKIP_NO_GRAVITY

        matrix = rotate_by_matrix(m, state.fused_rotation_matrix)
        series[SeriesName.FUSED_MATRIX].append(TimestampedSample.from_vector(t, matrix))
        appended.append(SeriesName.FUSED_MATRIX)

        return RouteResult(accepted=True, t=t, appended=tuple(appended), tilt_skip=tilt_skip)
