"""Tests for loopmock settings."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from loopmock.config import MockSettings, configure, get_settings, load_settings, reset_settings


class TestMockSettings:
    def test_defaults(self) -> None:
        settings = MockSettings()
        assert settings.record_limit == 100
        assert settings.allow_real_network is True
        assert settings.real_request_timeout == 30.0
        assert settings.log_level == "WARNING"
        assert settings.log_json is False

    def test_log_level_normalized(self) -> None:
        assert MockSettings(log_level="debug").log_level == "DEBUG"

    def test_invalid_values_rejected(self) -> None:
        with pytest.raises(ValidationError):
            MockSettings(log_level="chatty")
        with pytest.raises(ValidationError):
            MockSettings(record_limit=-1)
        with pytest.raises(ValidationError):
            MockSettings(real_request_timeout=0)


class TestLoadSettings:
    def test_yaml_section(self, tmp_path: Path) -> None:
        config_file = tmp_path / "loopmock.yaml"
        config_file.write_text("loopmock:\n  record_limit: 7\n  allow_real_network: false\n")

        settings = load_settings(config_file)

        assert settings.record_limit == 7
        assert settings.allow_real_network is False

    def test_yaml_top_level_keys(self, tmp_path: Path) -> None:
        config_file = tmp_path / "loopmock.yaml"
        config_file.write_text("log_level: info\n")
        assert load_settings(config_file).log_level == "INFO"

    def test_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        assert load_settings(tmp_path / "absent.yaml").record_limit == 100

    def test_env_overrides_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        config_file = tmp_path / "loopmock.yaml"
        config_file.write_text("record_limit: 7\n")
        monkeypatch.setenv("LOOPMOCK_RECORD_LIMIT", "11")
        monkeypatch.setenv("LOOPMOCK_ALLOW_REAL_NETWORK", "no")

        settings = load_settings(config_file)

        assert settings.record_limit == 11
        assert settings.allow_real_network is False


class TestProcessSettings:
    def test_get_settings_is_cached(self) -> None:
        assert get_settings() is get_settings()

    def test_configure_overrides(self) -> None:
        configured = configure(record_limit=5)
        assert get_settings() is configured
        assert configured.record_limit == 5
        assert configured.allow_real_network is True

    def test_reset_reloads_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        configure(record_limit=5)
        monkeypatch.setenv("LOOPMOCK_RECORD_LIMIT", "9")
        reset_settings()
        assert get_settings().record_limit == 9
