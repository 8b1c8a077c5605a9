"""Error types for sensorpanel.

Each component boundary raises its own subclass of PanelError. Library
exceptions are converted where they cross into sensorpanel code, so callers
only ever need to handle PanelError.
"""

from __future__ import annotations

from pathlib import Path


class PanelError(Exception):
    """Base class for every error sensorpanel reports."""


# ── Telemetry ──────────────────────────────────────────────────────────────


class MalformedTelemetry(PanelError):
    """A telemetry line is not `<humidity>,<temperature>`."""

    def __init__(self, line: str, reason: str) -> None:
        self.line = line
        self.reason = reason
        super().__init__(f"malformed telemetry {line!r}: {reason}")


# ── Resource access ────────────────────────────────────────────────────────


class KernelStatsError(PanelError):
    def __init__(self, path: Path, cause: str) -> None:
        self.path = path
        super().__init__(f"unable to read kernel stats from '{path}': {cause}")


class ThermalReadError(PanelError):
    def __init__(self, path: Path, cause: str) -> None:
        self.path = path
        super().__init__(f"unable to read CPU temperature from '{path}': {cause}")


class ProcessScanError(PanelError):
    def __init__(self, cause: str) -> None:
        super().__init__(f"unable to enumerate processes: {cause}")


class DiskFreeError(PanelError):
    def __init__(self, reason: str) -> None:
        super().__init__(f"unable to query free disk space: {reason}")


class InterfaceError(PanelError):
    """No IPv4 address is bound to the interface (or it does not exist)."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"no IPv4 address on network interface '{name}'")


# ── Startup / output ───────────────────────────────────────────────────────


class SignalSetupError(PanelError):
    def __init__(self, signal_name: str, cause: str) -> None:
        super().__init__(f"unable to register {signal_name} handler: {cause}")


class RenderError(PanelError):
    def __init__(self, reason: str) -> None:
        super().__init__(f"unable to render to display: {reason}")


class ConfigError(PanelError):
    def __init__(self, key: str, reason: str) -> None:
        self.key = key
        super().__init__(f"invalid config value for '{key}': {reason}")


class SourceTerminated(PanelError):
    """A producer thread exited without leaving an error behind."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"{name} stopped unexpectedly")
