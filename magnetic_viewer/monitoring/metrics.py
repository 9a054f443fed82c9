"""Event rate and fusion health monitoring."""

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, Optional
import numpy as np

from ..core.config import Config
from ..core.types import AccuracyChangedEvent, SensorEvent, SensorSource, SeriesName
from ..fusion.router import RouteResult, SKIP_DEGENERATE, SKIP_NO_GRAVITY
from ..fusion.session import Session

logger = logging.getLogger(__name__)


@dataclass
class SourceRate:
    """Arrival statistics for one sensor source."""
    count: int
    rate_hz: float
    mean_dt_ms: float
    max_dt_ms: float


@dataclass
class MonitorStats:
    """Aggregated event statistics."""
    sources: Dict[SensorSource, SourceRate] = field(default_factory=dict)
    magnetic_ticks: int = 0
    dropped_events: int = 0
    tilt_skipped_no_gravity: int = 0
    tilt_skipped_degenerate: int = 0
    rotation_divergence_ut: float = 0.0
    max_rotation_divergence_ut: float = 0.0
    inclination_deg: float = float("nan")

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        result = {
            "magnetic_ticks": self.magnetic_ticks,
            "dropped_events": self.dropped_events,
            "tilt_skipped_no_gravity": self.tilt_skipped_no_gravity,
            "tilt_skipped_degenerate": self.tilt_skipped_degenerate,
            "rotation_divergence_ut": self.rotation_divergence_ut,
            "max_rotation_divergence_ut": self.max_rotation_divergence_ut,
            "inclination_deg": None if np.isnan(self.inclination_deg) else self.inclination_deg,
        }
        for source, rate in self.sources.items():
            result[f"{source.name.lower()}_rate_hz"] = rate.rate_hz
        return result


class EventMonitor:
    """Monitors event arrival and fusion outcomes for one session.

    Tracks per-source rates, dropped events, skipped tilt derivations,
    and how far the quaternion and matrix forms of the fused rotation
    drift apart.
    """

    def __init__(self, config: Config, session: Session):
        """Initialize event monitor.

        Args:
            config: System configuration with monitoring settings.
            session: Session whose series are inspected.
        """
        self._mon_cfg = config.monitoring
        self._session = session

        window = self._mon_cfg.window_size
        self._arrivals: Dict[SensorSource, Deque[float]] = {
            source: deque(maxlen=window) for source in SensorSource
        }
        self._counts: Dict[SensorSource, int] = {source: 0 for source in SensorSource}

        self._magnetic_ticks = 0
        self._dropped = 0
        self._skipped_no_gravity = 0
        self._skipped_degenerate = 0
        self._divergence = 0.0
        self._max_divergence = 0.0
        self._last_log_time = 0.0

    def record(self, event: SensorEvent, result: RouteResult, now: Optional[float] = None) -> None:
        """Account for one dispatched event.

        Args:
            event: Event that was dispatched.
            result: Router outcome for the event.
            now: Arrival time in seconds; defaults to time.monotonic().
        """
        if now is None:
            now = time.monotonic()

        if not result.accepted:
            self._dropped += 1
            return

        if isinstance(event, AccuracyChangedEvent):
            return

        self._counts[event.source] += 1
        self._arrivals[event.source].append(now)

        if result.t is not None:
            self._magnetic_ticks += 1
            if result.tilt_skip == SKIP_NO_GRAVITY:
                self._skipped_no_gravity += 1
            elif result.tilt_skip == SKIP_DEGENERATE:
                self._skipped_degenerate += 1
            self._update_divergence()

        self._maybe_log_stats()

    def _update_divergence(self) -> None:
        """Distance between the quaternion and matrix fused series heads."""
        fused = self._session.series[SeriesName.FUSED_ROTATION].latest()
        matrix = self._session.series[SeriesName.FUSED_MATRIX].latest()
        if fused is None or matrix is None:
            return

        self._divergence = float(np.linalg.norm(fused.vector - matrix.vector))
        self._max_divergence = max(self._max_divergence, self._divergence)

    def _maybe_log_stats(self) -> None:
        """Log statistics periodically."""
        now = time.time()
        interval = self._mon_cfg.log_interval_s

        if now - self._last_log_time >= interval:
            stats = self.get_stats()
            mag = stats.sources[SensorSource.MAGNETIC_FIELD]
            logger.info(
                "Events: mag=%.1f Hz, ticks=%d, dropped=%d, "
                "tilt skipped=%d/%d, divergence=%.3f uT, dip=%.1f deg",
                mag.rate_hz,
                stats.magnetic_ticks,
                stats.dropped_events,
                stats.tilt_skipped_no_gravity,
                stats.tilt_skipped_degenerate,
                stats.rotation_divergence_ut,
                stats.inclination_deg,
            )
            self._last_log_time = now

    def _source_rate(self, source: SensorSource) -> SourceRate:
        arrivals = self._arrivals[source]
        if len(arrivals) < 2:
            return SourceRate(count=self._counts[source], rate_hz=0.0,
                              mean_dt_ms=0.0, max_dt_ms=0.0)

        dt_array = np.diff(np.array(arrivals)) * 1000.0
        mean_dt = float(np.mean(dt_array))
        return SourceRate(
            count=self._counts[source],
            rate_hz=1000.0 / mean_dt if mean_dt > 0 else 0.0,
            mean_dt_ms=mean_dt,
            max_dt_ms=float(np.max(dt_array)),
        )

    def get_stats(self) -> MonitorStats:
        """Get aggregated event statistics.

        Returns:
            MonitorStats with current metrics.
        """
        return MonitorStats(
            sources={source: self._source_rate(source) for source in SensorSource},
            magnetic_ticks=self._magnetic_ticks,
            dropped_events=self._dropped,
            tilt_skipped_no_gravity=self._skipped_no_gravity,
            tilt_skipped_degenerate=self._skipped_degenerate,
            rotation_divergence_ut=self._divergence,
            max_rotation_divergence_ut=self._max_divergence,
            inclination_deg=float(np.rad2deg(self._session.state.inclination)),
        )

    def reset(self) -> None:
        """Reset all metrics."""
        for arrivals in self._arrivals.values():
            arrivals.clear()
        self._counts = {source: 0 for source in SensorSource}
        self._magnetic_ticks = 0
        self._dropped = 0
        self._skipped_no_gravity = 0
        self._skipped_degenerate = 0
        self._divergence = 0.0
        self._max_divergence = 0.0
