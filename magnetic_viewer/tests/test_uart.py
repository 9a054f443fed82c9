"""Tests for serial frame codec and event sources."""

import struct

import pytest
import numpy as np
import serial

from magnetic_viewer.communication import uart
from magnetic_viewer.communication.uart import (
    KIND_ACCURACY,
    KIND_DATA,
    PACKET_FORMAT,
    PACKET_SIZE,
    MockSensorSource,
    SerialSensorSource,
    SourceError,
    crc16_ccitt,
    decode_payload,
    encode_packet,
)
from magnetic_viewer.core.types import (
    Accuracy,
    AccuracyChangedEvent,
    AccelerometerEvent,
    FusedRotationEvent,
    GameRotationEvent,
    MagneticEvent,
    SensorSource,
)


class FakeSerial:
    """In-memory stand-in for serial.Serial."""

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.data = bytearray()
        self.is_open = True

    @property
    def in_waiting(self) -> int:
        return len(self.data)

    def read(self, n: int) -> bytes:
        chunk = bytes(self.data[:n])
        del self.data[:n]
        return chunk

    def reset_input_buffer(self) -> None:
        self.data.clear()

    def reset_output_buffer(self) -> None:
        pass

    def close(self) -> None:
        self.is_open = False


def raw_frame(kind: int, source: int, count: int, values=(0.0,) * 5) -> bytes:
    body = struct.pack(PACKET_FORMAT[:-1], kind, source, count, *values)
    return bytes([0xAA, 0x55]) + body + struct.pack("<H", crc16_ccitt(body))


@pytest.fixture
def fake_serial(monkeypatch):
    ports = []

    def factory(**kwargs):
        port = FakeSerial(**kwargs)
        ports.append(port)
        return port

    monkeypatch.setattr(uart.serial, "Serial", factory)
    return ports


@pytest.fixture
def source(config, fake_serial):
    src = SerialSensorSource(config)
    src.open()
    yield src
    src.close()


class TestCrc:
    """Tests for CRC-16-CCITT."""

    def test_check_value(self):
        """Standard check string should give 0x29B1."""
        assert crc16_ccitt(b"123456789") == 0x29B1

    def test_empty(self):
        """Empty input should return the initial value."""
        assert crc16_ccitt(b"") == 0xFFFF


class TestCodec:
    """Tests for frame encoding and payload decoding."""

    def test_frame_size(self):
        """Frame should be sync bytes plus one packet."""
        frame = encode_packet(MagneticEvent(values=[1.0, 2.0, 3.0]))

        assert len(frame) == 2 + PACKET_SIZE
        assert frame[:2] == b"\xaa\x55"

    def test_decode_data(self):
        """Data payload should decode to the matching event type."""
        frame = encode_packet(FusedRotationEvent(values=[0.0, 0.0, 0.5, 0.75, 0.125]))
        event = decode_payload(frame[2:])

        assert isinstance(event, FusedRotationEvent)
        assert event.values == (0.0, 0.0, 0.5, 0.75, 0.125)
        assert event.timestamp is not None

    def test_decode_keeps_count(self):
        """Only count values should be carried into the event."""
        frame = encode_packet(GameRotationEvent(values=[0.0, 0.0, 0.5]))
        event = decode_payload(frame[2:])

        assert event.values == (0.0, 0.0, 0.5)

    def test_decode_accuracy(self):
        """Accuracy payload should carry the code in the count byte."""
        frame = encode_packet(AccuracyChangedEvent(
            source=SensorSource.ROTATION_VECTOR, accuracy=Accuracy.MEDIUM))
        event = decode_payload(frame[2:])

        assert isinstance(event, AccuracyChangedEvent)
        assert event.source == SensorSource.ROTATION_VECTOR
        assert event.accuracy == Accuracy.MEDIUM

    @pytest.mark.parametrize("kind,source,count", [
        (7, int(SensorSource.MAGNETIC_FIELD), 3),
        (KIND_DATA, 99, 3),
        (KIND_DATA, int(SensorSource.MAGNETIC_FIELD), 6),
        (KIND_DATA, int(SensorSource.MAGNETIC_FIELD), 4),
        (KIND_ACCURACY, int(SensorSource.MAGNETIC_FIELD), 9),
    ])
    def test_decode_rejects_malformed(self, kind, source, count):
        """Unknown kinds, sources, counts or codes should raise ValueError."""
        with pytest.raises(ValueError):
            decode_payload(raw_frame(kind, source, count)[2:])


class TestSerialSensorSource:
    """Tests for SerialSensorSource framing."""

    def test_read_event(self, source, fake_serial):
        """Complete frame should be returned as an event."""
        fake_serial[0].data.extend(encode_packet(MagneticEvent(values=[20.0, 0.0, -40.0])))

        event = source.read_event(timeout_s=0.1)

        assert isinstance(event, MagneticEvent)
        assert event.values == (20.0, 0.0, -40.0)
        assert source.stats.valid_packets == 1

    def test_serial_settings(self, source, fake_serial, config):
        """Port settings should come from configuration."""
        kwargs = fake_serial[0].kwargs
        assert kwargs["port"] == config.source.port
        assert kwargs["baudrate"] == config.source.baudrate

    def test_skips_leading_garbage(self, source):
        """Bytes before the sync pair should be discarded."""
        source.feed_bytes(b"\x01\x02\xaa\x03")
        source.feed_bytes(encode_packet(AccelerometerEvent(values=[0.0, 0.0, 9.75])))

        event = source.read_event(timeout_s=0.1)
        assert isinstance(event, AccelerometerEvent)
        assert event.values == (0.0, 0.0, 9.75)

    def test_split_frame(self, source):
        """Frame split across reads should be reassembled."""
        frame = encode_packet(MagneticEvent(values=[1.0, 2.0, 3.0]))
        source.feed_bytes(frame[:10])
        assert source.read_event(timeout_s=0.0) is None
        assert source.stats.timeouts == 1

        source.feed_bytes(frame[10:])
        assert source.read_event(timeout_s=0.1).values == (1.0, 2.0, 3.0)

    def test_crc_error_dropped(self, source):
        """Frames with a bad CRC should be counted and skipped."""
        bad = bytearray(raw_frame(KIND_DATA, int(SensorSource.MAGNETIC_FIELD), 3))
        bad[-1] ^= 0xFF
        good = encode_packet(MagneticEvent(values=[4.0, 5.0, 6.0]))
        source.feed_bytes(bytes(bad) + good)

        event = source.read_event(timeout_s=0.1)

        assert event.values == (4.0, 5.0, 6.0)
        assert source.stats.crc_errors == 1
        assert source.stats.total_packets == 2

    def test_malformed_frame_dropped(self, source):
        """Frames that fail to decode should be counted and skipped."""
        bad = raw_frame(KIND_DATA, int(SensorSource.MAGNETIC_FIELD), 2)
        good = encode_packet(AccuracyChangedEvent(
            source=SensorSource.MAGNETIC_FIELD, accuracy=Accuracy.HIGH))
        source.feed_bytes(bad + good)

        event = source.read_event(timeout_s=0.1)

        assert isinstance(event, AccuracyChangedEvent)
        assert source.stats.decode_errors == 1
        assert source.stats.valid_packets == 1

    def test_read_when_closed(self, config):
        """Reading a closed source should raise SourceError."""
        with pytest.raises(SourceError):
            SerialSensorSource(config).read_event()

    def test_open_failure(self, config, monkeypatch):
        """Serial errors on open should become SourceError."""
        def failing(**kwargs):
            raise serial.SerialException("no such port")

        monkeypatch.setattr(uart.serial, "Serial", failing)
        with pytest.raises(SourceError):
            SerialSensorSource(config).open()

    def test_context_manager(self, config, fake_serial):
        """Context manager should open and close the port."""
        with SerialSensorSource(config) as src:
            assert src.is_open
        assert not src.is_open
        assert not fake_serial[0].is_open

    def test_reset_stats(self, source):
        """reset_stats should zero every counter."""
        source.feed_bytes(encode_packet(MagneticEvent(values=[1.0, 2.0, 3.0])))
        source.read_event(timeout_s=0.1)
        source.reset_stats()

        assert source.stats.total_packets == 0
        assert source.stats.valid_packets == 0


class TestMockSensorSource:
    """Tests for MockSensorSource."""

    def test_read_before_open(self, config):
        """Mock should refuse reads until opened."""
        with pytest.raises(SourceError):
            MockSensorSource(config, sleep=False).read_event()

    def test_accuracy_first(self, config):
        """Mock should announce HIGH accuracy for every source first."""
        with MockSensorSource(config, sleep=False) as mock:
            events = [mock.read_event() for _ in range(4)]

        assert all(isinstance(e, AccuracyChangedEvent) for e in events)
        assert {e.source for e in events} == set(SensorSource)
        assert all(e.accuracy == Accuracy.HIGH for e in events)

    def test_event_cycle(self, config):
        """Mock should cycle through the four data sources."""
        with MockSensorSource(config, sleep=False) as mock:
            for _ in range(4):
                mock.read_event()
            events = [mock.read_event() for _ in range(8)]

        assert [type(e) for e in events[:4]] == [
            AccelerometerEvent, GameRotationEvent, FusedRotationEvent, MagneticEvent,
        ]
        assert [type(e) for e in events[4:]] == [type(e) for e in events[:4]]
        assert len(events[2].values) == 5

    def test_plausible_values(self, config):
        """Mock readings should be physically plausible."""
        with MockSensorSource(config, sleep=False) as mock:
            for _ in range(4):
                mock.read_event()
            accel, game, fused, mag = (mock.read_event() for _ in range(4))

        assert abs(np.linalg.norm(accel.vector) - 9.81) < 0.5
        assert abs(np.linalg.norm(game.values[:4]) - 1.0) < 1e-9
        assert abs(np.linalg.norm(fused.values[:4]) - 1.0) < 1e-9
        assert abs(np.linalg.norm(mag.vector) - np.sqrt(20.0 ** 2 + 40.0 ** 2)) < 2.0

    def test_stats_count_events(self, config):
        """Every generated event should be counted."""
        with MockSensorSource(config, sleep=False) as mock:
            for _ in range(6):
                mock.read_event()

        assert mock.stats.total_packets == 6
        assert mock.stats.valid_packets == 6
