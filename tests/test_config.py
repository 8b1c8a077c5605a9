"""Tests for sensorpanel.config."""

from __future__ import annotations

import signal
import tomllib
from pathlib import Path

import pytest

from sensorpanel.config import (
    DEFAULT_CONFIG,
    _deep_merge,
    dump_default_config,
    load_config,
    load_settings,
)
from sensorpanel.errors import ConfigError


@pytest.fixture(autouse=True)
def _no_user_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    # Keep a real ~/.config/sensorpanel/config.toml out of the tests
    monkeypatch.setattr("sensorpanel.config._DEFAULT_PATH", tmp_path / "absent.toml")


class TestLoadConfigDefaults:
    def test_defaults_returned_when_no_file(self) -> None:
        cfg = load_config(None)
        assert cfg["interface"] == "wlan0"
        assert cfg["refresh_interval"] == 1.0
        assert cfg["companions"] == {"BCV": "bombuscv", "DL": "datalogger"}
        assert cfg["display"]["driver"] == "ssd1306"

    def test_all_default_keys_present(self) -> None:
        cfg = load_config(None)
        assert set(cfg.keys()) == set(DEFAULT_CONFIG.keys())

    def test_returned_dict_is_a_copy(self) -> None:
        cfg = load_config(None)
        cfg["display"]["driver"] = "terminal"
        assert DEFAULT_CONFIG["display"]["driver"] == "ssd1306"


class TestTomlOverlay:
    def test_overrides_display_key(self, tmp_path: Path) -> None:
        toml_file = tmp_path / "config.toml"
        toml_file.write_text("[display]\ncontrast = 64\n")
        cfg = load_config(toml_file)
        assert cfg["display"]["contrast"] == 64
        # Other display keys remain at defaults
        assert cfg["display"]["i2c_address"] == 0x3C

    def test_companions_replaced_wholesale(self, tmp_path: Path) -> None:
        toml_file = tmp_path / "config.toml"
        toml_file.write_text('[companions]\nCAM = "motion"\n')
        cfg = load_config(toml_file)
        assert cfg["companions"] == {"CAM": "motion"}

    def test_overrides_scalar(self, tmp_path: Path) -> None:
        toml_file = tmp_path / "config.toml"
        toml_file.write_text('interface = "eth0"\nrefresh_interval = 0.5\n')
        cfg = load_config(toml_file)
        assert cfg["interface"] == "eth0"
        assert cfg["refresh_interval"] == 0.5
        assert cfg["sample_delay"] == 1.0


class TestExplicitPath:
    def test_missing_explicit_path_errors(self, tmp_path: Path) -> None:
        missing = tmp_path / "nonexistent.toml"
        with pytest.raises(SystemExit):
            load_config(missing)

    def test_invalid_toml_errors(self, tmp_path: Path) -> None:
        bad_file = tmp_path / "bad.toml"
        bad_file.write_text("this is [not valid toml\n")
        with pytest.raises(SystemExit):
            load_config(bad_file)


class TestDefaultPath:
    def test_user_file_picked_up(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        user_file = tmp_path / "config.toml"
        user_file.write_text('interface = "eth0"\n')
        monkeypatch.setattr("sensorpanel.config._DEFAULT_PATH", user_file)
        assert load_config(None)["interface"] == "eth0"

    def test_invalid_user_file_warns_and_uses_defaults(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        user_file = tmp_path / "config.toml"
        user_file.write_text("this is [not valid toml\n")
        monkeypatch.setattr("sensorpanel.config._DEFAULT_PATH", user_file)

        cfg = load_config(None)

        assert cfg == DEFAULT_CONFIG
        assert cfg is not DEFAULT_CONFIG
        err = capsys.readouterr().err
        assert "sensorpanel: warning: ignoring invalid TOML" in err
        assert str(user_file) in err


class TestDumpDefaultConfig:
    def test_is_valid_toml(self) -> None:
        parsed = tomllib.loads(dump_default_config())
        assert "companions" in parsed
        assert "display" in parsed

    def test_roundtrips_defaults(self) -> None:
        parsed = tomllib.loads(dump_default_config())
        assert parsed["thermal_zone"] == DEFAULT_CONFIG["thermal_zone"]
        assert parsed["toggle_signal"] == "SIGUSR1"
        assert parsed["display"]["i2c_address"] == 0x3C
        assert parsed["companions"]["DL"] == "datalogger"

    def test_dump_loads_as_settings(self) -> None:
        parsed = tomllib.loads(dump_default_config())
        settings = load_settings(_deep_merge(DEFAULT_CONFIG, parsed))
        assert settings.display.driver == "ssd1306"


class TestDeepMerge:
    def test_scalar_overwrite(self) -> None:
        result = _deep_merge({"a": 1, "b": 2}, {"a": 10})
        assert result == {"a": 10, "b": 2}

    def test_nested_dict_merge(self) -> None:
        base = {"x": {"a": 1, "b": 2}}
        overlay = {"x": {"b": 3, "c": 4}}
        result = _deep_merge(base, overlay)
        assert result["x"] == {"a": 1, "b": 3, "c": 4}

    def test_base_not_mutated(self) -> None:
        base = {"x": {"a": 1}}
        _deep_merge(base, {"x": {"a": 2}})
        assert base == {"x": {"a": 1}}


# ── load_settings ─────────────────────────────────────────────────────────


class TestLoadSettings:
    def test_defaults(self) -> None:
        settings = load_settings(load_config(None))
        assert settings.thermal_zone == Path("/sys/class/thermal/thermal_zone0/temp")
        assert settings.toggle_signal == signal.SIGUSR1
        assert settings.refresh_interval == 1.0
        assert settings.display.contrast == 255

    def test_sample_delay_clamped(self) -> None:
        cfg = _deep_merge(DEFAULT_CONFIG, {"sample_delay": 0.01})
        assert load_settings(cfg).sample_delay == pytest.approx(0.1)

    def test_zero_interval_rejected(self) -> None:
        cfg = _deep_merge(DEFAULT_CONFIG, {"refresh_interval": 0})
        with pytest.raises(ConfigError, match="refresh_interval"):
            load_settings(cfg)

    def test_non_numeric_interval_rejected(self) -> None:
        cfg = _deep_merge(DEFAULT_CONFIG, {"refresh_interval": "fast"})
        with pytest.raises(ConfigError):
            load_settings(cfg)

    def test_unknown_signal_rejected(self) -> None:
        cfg = _deep_merge(DEFAULT_CONFIG, {"toggle_signal": "SIGNOPE"})
        with pytest.raises(ConfigError, match="toggle_signal"):
            load_settings(cfg)

    def test_short_signal_name(self) -> None:
        cfg = _deep_merge(DEFAULT_CONFIG, {"toggle_signal": "usr2"})
        assert load_settings(cfg).toggle_signal == signal.SIGUSR2

    def test_unknown_driver_rejected(self) -> None:
        cfg = _deep_merge(DEFAULT_CONFIG, {"display": {"driver": "vga"}})
        with pytest.raises(ConfigError, match="display.driver"):
            load_settings(cfg)

    def test_contrast_out_of_range(self) -> None:
        cfg = _deep_merge(DEFAULT_CONFIG, {"display": {"contrast": 300}})
        with pytest.raises(ConfigError, match="display.contrast"):
            load_settings(cfg)

    def test_settings_are_frozen(self) -> None:
        settings = load_settings(load_config(None))
        with pytest.raises(AttributeError):
            settings.interface = "eth0"  # type: ignore[misc]
