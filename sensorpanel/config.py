"""Configuration loading for sensorpanel.

Loads settings from TOML config files with sensible defaults.
Search order: explicit --config path → ~/.config/sensorpanel/config.toml → defaults only.
"""

from __future__ import annotations

import copy
import signal
import sys
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from sensorpanel.errors import ConfigError
from sensorpanel.sampler import MIN_SAMPLE_DELAY
from sensorpanel.signals import resolve_signal

DEFAULT_CONFIG: dict[str, Any] = {
    "thermal_zone": "/sys/class/thermal/thermal_zone0/temp",
    "interface": "wlan0",
    "sample_delay": 1.0,
    "refresh_interval": 1.0,
    "toggle_signal": "SIGUSR1",
    "companions": {
        "BCV": "bombuscv",
        "DL": "datalogger",
    },
    "display": {
        "driver": "ssd1306",
        "i2c_port": 1,
        "i2c_address": 0x3C,
        "contrast": 255,
        "rotate": 0,
    },
}

DISPLAY_DRIVERS = ("ssd1306", "terminal")

# Tables replaced wholesale by the user config instead of merged key by key
_REPLACED_TABLES = {"companions"}

_DEFAULT_PATH = Path.home() / ".config" / "sensorpanel" / "config.toml"


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Merge overlay into base. Nested dicts are merged at the first level only."""
    merged = copy.deepcopy(base)
    for key, value in overlay.items():
        if (
            key in merged
            and key not in _REPLACED_TABLES
            and isinstance(merged[key], dict)
            and isinstance(value, dict)
        ):
            # Merge one level: overlay sub-keys into base sub-keys
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Load configuration, merging user TOML over defaults.

    Args:
        path: Explicit config file path (from --config). If None, tries the
              default location ~/.config/sensorpanel/config.toml.

    Returns:
        Merged configuration dict.

    Raises:
        SystemExit: If an explicit path doesn't exist or can't be parsed.
    """
    if path is not None:
        if not path.is_file():
            print(f"sensorpanel: config file not found: {path}", file=sys.stderr)
            raise SystemExit(1)
        try:
            user_config = tomllib.loads(path.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as e:
            print(f"sensorpanel: invalid TOML in {path}: {e}", file=sys.stderr)
            raise SystemExit(1) from e
        return _deep_merge(DEFAULT_CONFIG, user_config)

    # Try default location silently
    if _DEFAULT_PATH.is_file():
        try:
            user_config = tomllib.loads(_DEFAULT_PATH.read_text(encoding="utf-8"))
            return _deep_merge(DEFAULT_CONFIG, user_config)
        except tomllib.TOMLDecodeError:
            print(
                f"sensorpanel: warning: ignoring invalid TOML in {_DEFAULT_PATH}",
                file=sys.stderr,
            )

    return copy.deepcopy(DEFAULT_CONFIG)


def dump_default_config() -> str:
    """Return the default configuration as a TOML string."""
    lines = [
        "# sensorpanel configuration",
        "# Place this file at ~/.config/sensorpanel/config.toml",
        "",
        f'thermal_zone = "{DEFAULT_CONFIG["thermal_zone"]}"',
        f'interface = "{DEFAULT_CONFIG["interface"]}"',
        f"sample_delay = {DEFAULT_CONFIG['sample_delay']}",
        f"refresh_interval = {DEFAULT_CONFIG['refresh_interval']}",
        f'toggle_signal = "{DEFAULT_CONFIG["toggle_signal"]}"',
        "",
        "# Status-line label = executable name",
        "[companions]",
    ]
    for label, name in DEFAULT_CONFIG["companions"].items():
        lines.append(f'{label} = "{name}"')
    lines.append("")

    display = DEFAULT_CONFIG["display"]
    lines += [
        "[display]",
        f"# one of: {', '.join(DISPLAY_DRIVERS)}",
        f'driver = "{display["driver"]}"',
        f"i2c_port = {display['i2c_port']}",
        f"i2c_address = 0x{display['i2c_address']:02X}",
        f"contrast = {display['contrast']}",
        f"rotate = {display['rotate']}",
        "",
    ]

    return "\n".join(lines) + "\n"


# ── Validated settings ─────────────────────────────────────────────────────


@dataclass(slots=True, frozen=True)
class DisplaySettings:
    driver: str = "ssd1306"
    i2c_port: int = 1
    i2c_address: int = 0x3C
    contrast: int = 255
    rotate: int = 0


@dataclass(slots=True, frozen=True)
class Settings:
    """Immutable runtime settings built from the merged config."""

    thermal_zone: Path
    interface: str
    sample_delay: float
    refresh_interval: float
    toggle_signal: signal.Signals
    companions: dict[str, str] = field(default_factory=dict)
    display: DisplaySettings = field(default_factory=DisplaySettings)


def _number(cfg: dict[str, Any], key: str) -> float:
    value = cfg[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(key, f"expected a number, got {value!r}")
    return float(value)


def _int_in_range(table: dict[str, Any], key: str, low: int, high: int) -> int:
    value = table[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"display.{key}", f"expected an integer, got {value!r}")
    if not low <= value <= high:
        raise ConfigError(f"display.{key}", f"must be between {low} and {high}")
    return value


def _string(cfg: dict[str, Any], key: str) -> str:
    value = cfg[key]
    if not isinstance(value, str) or not value:
        raise ConfigError(key, f"expected a non-empty string, got {value!r}")
    return value


def load_settings(cfg: dict[str, Any]) -> Settings:
    """Validate a merged config dict.

    The sample delay is clamped to its minimum rather than rejected.

    Raises:
        ConfigError: on the first invalid value.
    """
    refresh_interval = _number(cfg, "refresh_interval")
    if refresh_interval <= 0:
        raise ConfigError("refresh_interval", "must be greater than 0")

    companions = cfg["companions"]
    if not isinstance(companions, dict) or not all(
        isinstance(v, str) and v for v in companions.values()
    ):
        raise ConfigError("companions", "expected a table of label = \"executable\"")

    display = cfg["display"]
    if not isinstance(display, dict):
        raise ConfigError("display", "expected a table")
    driver = display["driver"]
    if driver not in DISPLAY_DRIVERS:
        raise ConfigError("display.driver", f"expected one of {', '.join(DISPLAY_DRIVERS)}")

    return Settings(
        thermal_zone=Path(_string(cfg, "thermal_zone")),
        interface=_string(cfg, "interface"),
        sample_delay=max(MIN_SAMPLE_DELAY, _number(cfg, "sample_delay")),
        refresh_interval=refresh_interval,
        toggle_signal=resolve_signal(_string(cfg, "toggle_signal")),
        companions=dict(companions),
        display=DisplaySettings(
            driver=driver,
            i2c_port=_int_in_range(display, "i2c_port", 0, 255),
            i2c_address=_int_in_range(display, "i2c_address", 0x03, 0x77),
            contrast=_int_in_range(display, "contrast", 0, 255),
            rotate=_int_in_range(display, "rotate", 0, 3),
        ),
    )
