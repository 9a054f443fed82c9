"""Pytest fixtures for magnetic viewer tests."""

import pytest
import numpy as np

from magnetic_viewer.core.config import Config
from magnetic_viewer.core.types import Quaternion
from magnetic_viewer.fusion import Session, SensorEventRouter


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def config() -> Config:
    """Create default configuration for tests."""
    return Config()


@pytest.fixture
def clock() -> FakeClock:
    """Create a manually advanced clock."""
    return FakeClock()


@pytest.fixture
def session(config, clock) -> Session:
    """Create a stopped session on the fake clock."""
    return Session(config, clock=clock)


@pytest.fixture
def router(session) -> SensorEventRouter:
    """Create a router for the session fixture."""
    return SensorEventRouter(session)


@pytest.fixture
def identity_quaternion() -> Quaternion:
    """Create identity quaternion (no rotation)."""
    return Quaternion.identity()


@pytest.fixture
def sample_quaternion() -> Quaternion:
    """Create a sample non-identity quaternion.

    Represents a 30 degree rotation about Z axis.
    """
    angle = np.deg2rad(30)
    return Quaternion(
        w=np.cos(angle / 2),
        x=0.0,
        y=0.0,
        z=np.sin(angle / 2),
    )


@pytest.fixture
def gravity_flat() -> np.ndarray:
    """Accelerometer reading of a device lying flat."""
    return np.array([0.0, 0.0, 9.8])


@pytest.fixture
def field_north_down() -> np.ndarray:
    """Northern hemisphere field seen by a device lying flat."""
    return np.array([20.0, 0.0, -40.0])
