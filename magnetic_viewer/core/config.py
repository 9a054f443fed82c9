"""Configuration management for the magnetic field viewer."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
import os

import yaml

CONFIG_ENV_VAR = "MAGVIEW_CONFIG_PATH"


@dataclass
class SessionConfig:
    """Sliding window configuration."""
    window_seconds: float = 3.0


@dataclass
class TiltConfig:
    """Gravity + geomagnetic fusion thresholds."""
    gravity_nominal: float = 9.81
    free_fall_ratio: float = 0.1
    min_horizontal_norm: float = 0.1


@dataclass
class ValidationConfig:
    """Event payload validation thresholds."""
    quaternion_norm_tolerance: float = 0.01
    magnetic_min_field_ut: float = 20.0
    magnetic_max_field_ut: float = 100.0
    gravity_tolerance: float = 4.0


@dataclass
class SourceConfig:
    """Sensor event source configuration."""
    port: str = "/dev/ttyUSB0"
    baudrate: int = 115200
    timeout_s: float = 0.1
    write_timeout_s: float = 1.0
    mock_rate_hz: float = 50.0


@dataclass
class MonitoringConfig:
    """Event monitoring configuration."""
    window_size: int = 500
    log_interval_s: float = 10.0


@dataclass
class WebConfig:
    """Web server configuration."""
    host: str = "0.0.0.0"
    port: int = 5000
    emit_rate_hz: int = 10


@dataclass
class Config:
    """Complete configuration for the magnetic field viewer."""
    session: SessionConfig = field(default_factory=SessionConfig)
    tilt: TiltConfig = field(default_factory=TiltConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)
    source: SourceConfig = field(default_factory=SourceConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)
    web: WebConfig = field(default_factory=WebConfig)


def load_config(config_path: Optional[str] = None) -> Config:
    """Load configuration from YAML file.

    Args:
        config_path: Path to configuration file. If None, uses the
            MAGVIEW_CONFIG_PATH environment variable, then the packaged
            default.

    Returns:
        Configuration object with all settings.

    Raises:
        FileNotFoundError: If specified config file doesn't exist.
    """
    if config_path is None:
        env_path = os.environ.get(CONFIG_ENV_VAR)
        if env_path:
            config_path = env_path
        else:
            default_path = Path(__file__).parent.parent / "config" / "default.yaml"
            if default_path.exists():
                config_path = str(default_path)
            else:
                return Config()

    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if data is None:
        return Config()

    return _build_config(data)


def _build_config(data: dict) -> Config:
    """Build Config object from dictionary."""
    return Config(
        session=SessionConfig(**data.get("session", {})),
        tilt=TiltConfig(**data.get("tilt", {})),
        validation=ValidationConfig(**data.get("validation", {})),
        source=SourceConfig(**data.get("source", {})),
        monitoring=MonitoringConfig(**data.get("monitoring", {})),
        web=WebConfig(**data.get("web", {})),
    )
