"""Serial reception of sensor events.

Frame layout (little endian)::

    0xAA 0x55 | kind:u8 source:u8 count:u8 values:5*f32 | crc:u16

kind 0 carries a data event with ``count`` meaningful values. kind 1
carries an accuracy change, with the accuracy code in ``count``. The
CRC-16-CCITT covers everything between the sync bytes and the CRC.
"""

import struct
import time
import logging
from typing import List, Optional

import numpy as np
import serial

from ..core.config import Config
from ..core.types import (
    Accuracy,
    AccuracyChangedEvent,
    SensorEvent,
    SensorSource,
    SourceStats,
    make_event,
)

logger = logging.getLogger(__name__)

SYNC1 = 0xAA
SYNC2 = 0x55
PACKET_FORMAT = "<BBB5fH"
PACKET_SIZE = struct.calcsize(PACKET_FORMAT)
MAX_VALUES = 5

KIND_DATA = 0
KIND_ACCURACY = 1


class SourceError(Exception):
    """Base exception for sensor source communication errors."""
    pass


def crc16_ccitt(data: bytes, init: int = 0xFFFF) -> int:
    """Calculate CRC-16-CCITT checksum.

    Args:
        data: Bytes to checksum.
        init: Initial CRC value.

    Returns:
        16-bit CRC value.
    """
    crc = init
    for b in data:
        crc ^= (b << 8) & 0xFFFF
        for _ in range(8):
            if crc & 0x8000:
                crc = ((crc << 1) ^ 0x1021) & 0xFFFF
            else:
                crc = (crc << 1) & 0xFFFF
    return crc


def encode_packet(event: SensorEvent) -> bytes:
    """Encode an event as a complete frame, sync bytes included.

    Args:
        event: Event to encode.

    Returns:
        Frame bytes.
    """
    if isinstance(event, AccuracyChangedEvent):
        kind, count, values = KIND_ACCURACY, int(event.accuracy), []
    else:
        kind, count, values = KIND_DATA, len(event.values), list(event.values)

    padded = values + [0.0] * (MAX_VALUES - len(values))
    body = struct.pack(PACKET_FORMAT[:-1], kind, int(event.source), count, *padded)
    crc = crc16_ccitt(body)
    return bytes([SYNC1, SYNC2]) + body + struct.pack("<H", crc)


def decode_payload(payload: bytes) -> SensorEvent:
    """Decode a CRC-checked payload into an event.

    Args:
        payload: Packet bytes without sync bytes.

    Returns:
        Parsed sensor event.

    Raises:
        ValueError: If the kind, source, count or accuracy is invalid.
    """
    kind, source_code, count, *values = struct.unpack(PACKET_FORMAT, payload)[:-1]
    source = SensorSource(source_code)

    if kind == KIND_ACCURACY:
        return AccuracyChangedEvent(
            source=source,
            accuracy=Accuracy.from_code(count),
            timestamp=time.time(),
        )
    if kind != KIND_DATA:
        raise ValueError(f"Unknown packet kind: {kind}")
    if count > MAX_VALUES:
        raise ValueError(f"Value count {count} exceeds {MAX_VALUES}")

    return make_event(source, values[:count], timestamp=time.time())


class SerialSensorSource:
    """Serial interface delivering sensor events.

    Handles sync bytes, CRC validation and frame parsing. Thread-safe
    for a single reader.
    """

    def __init__(self, config: Config):
        """Initialize serial source.

        Args:
            config: System configuration with source settings.
        """
        self._config = config
        self._port = config.source.port
        self._baudrate = config.source.baudrate
        self._timeout = config.source.timeout_s
        self._write_timeout = config.source.write_timeout_s

        self._serial: Optional[serial.Serial] = None
        self._buffer = bytearray()
        self._stats = SourceStats()
        self._is_open = False

    def open(self) -> None:
        """Open serial connection.

        Raises:
            SourceError: If connection cannot be established.
        """
        if self._is_open:
            return

        try:
            self._serial = serial.Serial(
                port=self._port,
                baudrate=self._baudrate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                timeout=self._timeout,
                write_timeout=self._write_timeout,
            )
            self._serial.reset_input_buffer()
            self._serial.reset_output_buffer()
            self._is_open = True
            logger.info("Serial source opened: %s @ %d baud", self._port, self._baudrate)

        except serial.SerialException as e:
            raise SourceError(f"Failed to open {self._port}: {e}") from e

    def close(self) -> None:
        """Close serial connection."""
        if self._serial is not None and self._serial.is_open:
            self._serial.close()
            self._serial = None
        self._is_open = False
        logger.info("Serial source closed")

    def read_event(self, timeout_s: float = 1.0) -> Optional[SensorEvent]:
        """Read the next sensor event.

        Blocks until a valid frame is received or timeout expires.

        Args:
            timeout_s: Maximum time to wait for a frame.

        Returns:
            SensorEvent if successful, None on timeout.

        Raises:
            SourceError: If connection is not open.
        """
        if not self._is_open or self._serial is None:
            raise SourceError("Serial source not open")

        deadline = time.perf_counter() + timeout_s

        while True:
            self._feed()
            event = self._try_parse_packet()
            if event is not None:
                return event

            if time.perf_counter() > deadline:
                self._stats.timeouts += 1
                return None

            time.sleep(0.001)

    def feed_bytes(self, data: bytes) -> None:
        """Append raw bytes to the parse buffer."""
        self._buffer.extend(data)

    def _feed(self) -> None:
        """Read available data from serial port into buffer."""
        if self._serial is not None and self._serial.in_waiting > 0:
            self.feed_bytes(self._serial.read(self._serial.in_waiting))

    def _try_parse_packet(self) -> Optional[SensorEvent]:
        """Try to parse a frame from the buffer.

        Returns:
            SensorEvent if a valid frame was found, None otherwise.
        """
        while True:
            idx = self._buffer.find(bytes([SYNC1, SYNC2]))

            if idx < 0:
                if len(self._buffer) > 1:
                    self._buffer[:] = self._buffer[-1:]
                return None

            if idx > 0:
                del self._buffer[:idx]

            if len(self._buffer) < 2 + PACKET_SIZE:
                return None

            payload = bytes(self._buffer[2:2 + PACKET_SIZE])
            del self._buffer[:2 + PACKET_SIZE]

            self._stats.total_packets += 1

            rx_crc = struct.unpack_from("<H", payload, PACKET_SIZE - 2)[0]
            calc_crc = crc16_ccitt(payload[:-2])

            if rx_crc != calc_crc:
                self._stats.crc_errors += 1
                logger.debug("CRC error: received 0x%04X, expected 0x%04X", rx_crc, calc_crc)
                continue

            try:
                event = decode_payload(payload)
            except ValueError as e:
                self._stats.decode_errors += 1
                logger.warning("Dropped malformed frame: %s", e)
                continue

            self._stats.valid_packets += 1
            return event

    @property
    def stats(self) -> SourceStats:
        """Get communication statistics."""
        return self._stats

    def reset_stats(self) -> None:
        """Reset communication statistics."""
        self._stats = SourceStats()

    @property
    def is_open(self) -> bool:
        """Check if connection is open."""
        return self._is_open

    def __enter__(self) -> "SerialSensorSource":
        """Context manager entry."""
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()


class MockSensorSource:
    """Mock sensor source for testing.

    Simulates a device lying flat and slowly turning about the vertical
    axis in a northern-hemisphere field. Emits accelerometer, game
    rotation, rotation vector and magnetometer events in turn, after
    one HIGH accuracy notification per source.
    """

    WORLD_FIELD_UT = np.array([0.0, 20.0, -40.0])  # east, north, up
    GAME_YAW_OFFSET_RAD = 0.3

    def __init__(self, config: Config, yaw_rate_dps: float = 20.0, sleep: bool = True):
        """Initialize mock source.

        Args:
            config: System configuration.
            yaw_rate_dps: Simulated turn rate in degrees per second.
            sleep: If False, events are produced without pacing.
        """
        self._config = config
        self._stats = SourceStats()
        self._is_open = False
        self._rate_hz = config.source.mock_rate_hz
        self._yaw_rate = np.deg2rad(yaw_rate_dps)
        self._sleep = sleep
        self._order = [
            SensorSource.ACCELEROMETER,
            SensorSource.GAME_ROTATION_VECTOR,
            SensorSource.ROTATION_VECTOR,
            SensorSource.MAGNETIC_FIELD,
        ]
        self._pending: List[SensorEvent] = []
        self._index = 0
        self._sim_time = 0.0

    def open(self) -> None:
        """Simulate opening connection."""
        self._is_open = True
        self._index = 0
        self._sim_time = 0.0
        self._pending = [
            AccuracyChangedEvent(source=source, accuracy=Accuracy.HIGH)
            for source in self._order
        ]
        logger.info("Mock sensor source opened")

    def close(self) -> None:
        """Simulate closing connection."""
        self._is_open = False
        logger.info("Mock sensor source closed")

    def read_event(self, timeout_s: float = 1.0) -> Optional[SensorEvent]:
        """Generate the next synthetic event.

        Args:
            timeout_s: Ignored in mock.

        Returns:
            Synthetic sensor event.
        """
        if not self._is_open:
            raise SourceError("Mock sensor source not open")

        self._stats.total_packets += 1
        self._stats.valid_packets += 1

        if self._pending:
            return self._pending.pop(0)

        dt = 1.0 / (self._rate_hz * len(self._order))
        if self._sleep:
            time.sleep(dt * 0.9)
        self._sim_time += dt

        source = self._order[self._index]
        self._index = (self._index + 1) % len(self._order)
        yaw = self._yaw_rate * self._sim_time

        if source == SensorSource.ACCELEROMETER:
            values = np.array([0.0, 0.0, 9.81]) + np.random.normal(0, 0.02, 3)
        elif source == SensorSource.GAME_ROTATION_VECTOR:
            half = (yaw + self.GAME_YAW_OFFSET_RAD) / 2.0
            values = np.array([0.0, 0.0, np.sin(half), np.cos(half)])
        elif source == SensorSource.ROTATION_VECTOR:
            half = yaw / 2.0
            values = np.array([0.0, 0.0, np.sin(half), np.cos(half), 0.05])
        else:
            # device frame = transpose of the device -> world yaw rotation
            c, s = np.cos(yaw), np.sin(yaw)
            east, north, up = self.WORLD_FIELD_UT
            values = np.array([
                c * east + s * north,
                -s * east + c * north,
                up,
            ]) + np.random.normal(0, 0.1, 3)

        return make_event(source, values.tolist(), timestamp=time.time())

    @property
    def stats(self) -> SourceStats:
        """Get mock statistics."""
        return self._stats

    def reset_stats(self) -> None:
        """Reset statistics."""
        self._stats = SourceStats()

    @property
    def is_open(self) -> bool:
        """Check if mock is open."""
        return self._is_open

    def __enter__(self) -> "MockSensorSource":
        """Context manager entry."""
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()
