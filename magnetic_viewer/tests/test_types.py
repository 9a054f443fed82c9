"""Tests for event and value types."""

import pytest
import numpy as np

from magnetic_viewer.core.types import (
    Accuracy,
    AccelerometerEvent,
    FusedRotationEvent,
    GameRotationEvent,
    MagneticEvent,
    SensorSource,
    SeriesName,
    SourceStats,
    TimestampedSample,
    make_event,
)


class TestEvents:
    """Tests for sensor event payload checks."""

    def test_make_event_by_source(self):
        """make_event should pick the event type of the source."""
        assert isinstance(make_event(SensorSource.MAGNETIC_FIELD, [1, 2, 3]), MagneticEvent)
        assert isinstance(make_event(SensorSource.ACCELEROMETER, [0, 0, 9.8]), AccelerometerEvent)
        assert isinstance(make_event(SensorSource.ROTATION_VECTOR, [0, 0, 0]), FusedRotationEvent)
        assert isinstance(make_event(SensorSource.GAME_ROTATION_VECTOR, [0, 0, 0]), GameRotationEvent)

    def test_make_event_from_code(self):
        """Raw platform codes should be accepted."""
        assert isinstance(make_event(2, [1, 2, 3]), MagneticEvent)

    def test_values_stored_as_float_tuple(self):
        """Payload should be normalized to a tuple of floats."""
        event = MagneticEvent(values=np.array([1, 2, 3]))

        assert event.values == (1.0, 2.0, 3.0)
        assert all(isinstance(v, float) for v in event.values)

    @pytest.mark.parametrize("values", [[1.0, 2.0], [1.0, 2.0, 3.0, 4.0]])
    def test_vector_event_needs_three_values(self, values):
        """Vector events should reject any other length."""
        with pytest.raises(ValueError):
            MagneticEvent(values=values)
        with pytest.raises(ValueError):
            AccelerometerEvent(values=values)

    def test_game_rotation_lengths(self):
        """Game rotation should accept 3 or 4 values only."""
        GameRotationEvent(values=[0.0, 0.0, 0.0])
        GameRotationEvent(values=[0.0, 0.0, 0.0, 1.0])
        with pytest.raises(ValueError):
            GameRotationEvent(values=[0.0, 0.0, 0.0, 1.0, 0.1])

    def test_fused_rotation_lengths(self):
        """Fused rotation should accept 3 to 5 values."""
        for n in (3, 4, 5):
            FusedRotationEvent(values=[0.0] * n)
        with pytest.raises(ValueError):
            FusedRotationEvent(values=[0.0, 0.0])

    def test_events_are_immutable(self):
        """Events should be frozen."""
        event = MagneticEvent(values=[1.0, 2.0, 3.0])
        with pytest.raises(AttributeError):
            event.values = (0.0, 0.0, 0.0)

    def test_vector_property(self):
        """vector should expose the first three values."""
        event = FusedRotationEvent(values=[0.1, 0.2, 0.3, 0.9])
        assert event.vector.tolist() == [0.1, 0.2, 0.3]

    def test_source_tags(self):
        """Each event type should carry its source."""
        assert MagneticEvent.source == SensorSource.MAGNETIC_FIELD
        assert GameRotationEvent.source == SensorSource.GAME_ROTATION_VECTOR


class TestAccuracy:
    """Tests for the Accuracy enum."""

    def test_from_code(self):
        """Platform codes should map to accuracy levels."""
        assert Accuracy.from_code(0) is Accuracy.UNRELIABLE
        assert Accuracy.from_code(3) is Accuracy.HIGH

    def test_unknown_code(self):
        """Unknown codes should raise ValueError."""
        with pytest.raises(ValueError):
            Accuracy.from_code(7)

    def test_colors(self):
        """Every level should have an indicator color."""
        assert Accuracy.HIGH.color == "#4CAF50"
        assert Accuracy.MEDIUM.color == "#FFC107"
        assert Accuracy.LOW.color == "#FF9800"
        assert Accuracy.UNRELIABLE.color == "#F44336"


class TestTimestampedSample:
    """Tests for TimestampedSample."""

    def test_from_vector(self):
        """Sample should be built from t and a numpy vector."""
        s = TimestampedSample.from_vector(0.5, np.array([1.0, 2.0, 3.0]))

        assert s == TimestampedSample(t=0.5, x=1.0, y=2.0, z=3.0)
        assert isinstance(s.x, float)

    def test_series_titles(self):
        """Every series should have a distinct title."""
        titles = {name.title for name in SeriesName}
        assert len(titles) == len(SeriesName)


class TestSourceStats:
    """Tests for SourceStats rates."""

    def test_rates_empty(self):
        """No packets should give zero rates."""
        stats = SourceStats()

        assert stats.packet_loss_rate == 0.0
        assert stats.crc_error_rate == 0.0

    def test_rates(self):
        """Rates should be fractions of the total packet count."""
        stats = SourceStats(total_packets=8, valid_packets=6, crc_errors=1, decode_errors=1)

        assert stats.packet_loss_rate == 0.25
        assert stats.crc_error_rate == 0.125
