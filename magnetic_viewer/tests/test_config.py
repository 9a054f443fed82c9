"""Tests for configuration loading."""

import pytest

from magnetic_viewer.core.config import CONFIG_ENV_VAR, Config, load_config


class TestLoadConfig:
    """Tests for load_config."""

    def test_packaged_default(self, monkeypatch):
        """Without a path, the packaged defaults should load."""
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        config = load_config()

        assert config == Config()

    def test_explicit_path(self, tmp_path):
        """Values from the file should override defaults."""
        path = tmp_path / "viewer.yaml"
        path.write_text(
            "session:\n"
            "  window_seconds: 5.0\n"
            "source:\n"
            "  port: /dev/ttyACM0\n"
        )

        config = load_config(str(path))

        assert config.session.window_seconds == 5.0
        assert config.source.port == "/dev/ttyACM0"
        assert config.source.baudrate == 115200
        assert config.tilt.gravity_nominal == 9.81

    def test_env_var(self, tmp_path, monkeypatch):
        """Environment variable should name the file when no path is given."""
        path = tmp_path / "env.yaml"
        path.write_text("web:\n  port: 8080\n")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(path))

        assert load_config().web.port == 8080

    def test_missing_file(self, tmp_path):
        """Missing explicit file should raise FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "absent.yaml"))

    def test_empty_file(self, tmp_path):
        """Empty file should give defaults."""
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert load_config(str(path)) == Config()

    def test_unknown_key(self, tmp_path):
        """Unknown keys should be rejected."""
        path = tmp_path / "bad.yaml"
        path.write_text("session:\n  window_secs: 5.0\n")

        with pytest.raises(TypeError):
            load_config(str(path))
