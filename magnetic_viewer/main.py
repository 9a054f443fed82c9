#!/usr/bin/env python3
"""Main entry point for magnetic field streaming.

Reads sensor events from a serial or mock source, feeds them through
the router into a session, and logs event statistics. The web bridge
in web_server.py uses the same loop to serve the series to a browser.
"""

import argparse
import logging
import signal
import sys
import time
from typing import Callable, Optional

from .communication import MockSensorSource, SerialSensorSource, SourceError
from .core import Config, SensorValidator, load_config
from .fusion import Session, SensorEventRouter
from .monitoring import EventMonitor

logger = logging.getLogger(__name__)

SHUTDOWN_REQUESTED = False


def signal_handler(signum, frame):
    """Handle shutdown signals gracefully."""
    global SHUTDOWN_REQUESTED
    SHUTDOWN_REQUESTED = True
    logger.info("Shutdown requested")


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application.

    Args:
        verbose: If True, set DEBUG level; otherwise INFO.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


def create_source(config: Config, use_mock: bool = False):
    """Build the configured event source."""
    if use_mock:
        return MockSensorSource(config)
    return SerialSensorSource(config)


def run_ingestion(
    source,
    router: SensorEventRouter,
    validator: SensorValidator,
    monitor: Optional[EventMonitor] = None,
    should_stop: Callable[[], bool] = lambda: SHUTDOWN_REQUESTED,
    max_events: Optional[int] = None,
) -> int:
    """Pump events from an open source into the router.

    Invalid events are logged and dropped; warnings are logged at
    debug level.

    Args:
        source: Open event source with read_event().
        router: Router of the target session.
        validator: Payload validator.
        monitor: Optional event monitor.
        should_stop: Polled before each read; True ends the loop.
        max_events: Stop after this many events read, if given.

    Returns:
        Number of validation failures.
    """
    validation_failures = 0
    events_read = 0

    while not should_stop():
        if max_events is not None and events_read >= max_events:
            break

        event = source.read_event(timeout_s=0.5)
        if event is None:
            continue
        events_read += 1

        validation = validator.validate_event(event)
        if not validation.is_valid:
            validation_failures += 1
            for error in validation.errors:
                logger.warning("Validation: %s", error)
            continue

        for warning in validation.warnings:
            logger.debug("Validation warning: %s", warning)

        result = router.dispatch(event)
        if monitor is not None:
            monitor.record(event, result)

    return validation_failures


def run_session(config: Config, use_mock: bool = False, duration_s: Optional[float] = None) -> int:
    """Run one streaming session until interrupted.

    Args:
        config: System configuration.
        use_mock: If True, use the mock source.
        duration_s: Stop after this many seconds, if given.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    session = Session(config)
    router = SensorEventRouter(session)
    validator = SensorValidator(config)
    monitor = EventMonitor(config, session)
    source = create_source(config, use_mock)

    deadline = None if duration_s is None else time.monotonic() + duration_s

    def should_stop() -> bool:
        if SHUTDOWN_REQUESTED:
            return True
        return deadline is not None and time.monotonic() >= deadline

    validation_failures = 0
    try:
        source.open()
        session.start()
        validation_failures = run_ingestion(source, router, validator, monitor, should_stop)

    except SourceError as e:
        logger.error("Source error: %s", e)
        return 1

    except KeyboardInterrupt:
        logger.info("Interrupted by user")

    finally:
        session.stop()
        source.close()
        stats = monitor.get_stats()
        source_stats = source.stats

        logger.info("Final statistics:")
        logger.info("  Magnetic ticks: %d", stats.magnetic_ticks)
        for src, rate in stats.sources.items():
            logger.info("  %s: %d events, %.1f Hz", src.name, rate.count, rate.rate_hz)
        logger.info("  Packets: %d total, %d valid (%.2f%% lost)",
                    source_stats.total_packets, source_stats.valid_packets,
                    100.0 * source_stats.packet_loss_rate)
        logger.info("  CRC errors: %d (%.2f%%), decode errors: %d",
                    source_stats.crc_errors, 100.0 * source_stats.crc_error_rate,
                    source_stats.decode_errors)
        logger.info("  Validation failures: %d", validation_failures)
        logger.info("  Tilt skipped: %d without gravity, %d degenerate",
                    stats.tilt_skipped_no_gravity, stats.tilt_skipped_degenerate)
        logger.info("  Max rotation divergence: %.3f uT", stats.max_rotation_divergence_ut)
        logger.info("  Last magnetic dip: %.1f deg", stats.inclination_deg)

    return 0


def main() -> int:
    """Application entry point.

    Returns:
        Exit code.
    """
    parser = argparse.ArgumentParser(
        description="Stream magnetometer data into world-frame series"
    )
    parser.add_argument(
        "-c", "--config",
        type=str,
        default=None,
        help="Path to configuration file",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--mock",
        action="store_true",
        help="Use mock sensor source for testing",
    )
    parser.add_argument(
        "-d", "--duration",
        type=float,
        default=None,
        help="Stop after this many seconds",
    )
    args = parser.parse_args()

    setup_logging(verbose=args.verbose)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        config = load_config(args.config)
    except FileNotFoundError as e:
        logger.error("Configuration error: %s", e)
        return 1
    except Exception as e:
        logger.error("Failed to load configuration: %s", e)
        return 1

    return run_session(config, use_mock=args.mock, duration_s=args.duration)


if __name__ == "__main__":
    sys.exit(main())
