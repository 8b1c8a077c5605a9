"""sensorpanel entry point: show sensor telemetry and system status on a small display.

Usage:
    datalogger | sensorpanel
    datalogger | sensorpanel --terminal --interval 2 --config path/to/config.toml
    kill -USR1 $(pidof sensorpanel)   # toggle the logging-mode line
"""

from __future__ import annotations

import argparse
import signal
import sys
from pathlib import Path
from queue import Queue

from sensorpanel.config import Settings, dump_default_config, load_config, load_settings
from sensorpanel.display import Display, OledDisplay, TerminalDisplay
from sensorpanel.errors import PanelError
from sensorpanel.measurement import Measurement, MeasurementSource
from sensorpanel.refresh import RefreshLoop
from sensorpanel.sampler import SystemSample, SystemSampler
from sensorpanel.signals import SignalFlag, interrupt_on, register_flag

# The stdin reader may be blocked on a read that never returns
_SOURCE_STOP_TIMEOUT = 0.5


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Render piped humidity/temperature readings and system status to an I2C display.",
    )
    parser.add_argument(
        "--config", type=Path, default=None,
        help="Path to a TOML config file (default: ~/.config/sensorpanel/config.toml)",
    )
    parser.add_argument(
        "-t", "--thermal", default=None,
        help="CPU thermal-zone temp file (default from config)",
    )
    parser.add_argument(
        "-i", "--interface", default=None,
        help="Network interface for the local IPv4 line (default from config)",
    )
    parser.add_argument(
        "--interval", type=float, default=None,
        help="Seconds between display refreshes (default: 1.0)",
    )
    parser.add_argument(
        "--sample-delay", type=float, default=None,
        help="Seconds between CPU samples, minimum 0.1 (default: 1.0)",
    )
    parser.add_argument(
        "--terminal", action="store_true",
        help="Render to the terminal instead of the SSD1306 display",
    )
    parser.add_argument(
        "--verbose", action="store_true",
        help="Print tick timing to stderr",
    )
    parser.add_argument(
        "--dump-config", action="store_true",
        help="Print the default configuration as TOML and exit",
    )
    return parser


def _apply_overrides(cfg: dict, args: argparse.Namespace) -> dict:
    overrides = {
        "thermal_zone": args.thermal,
        "interface": args.interface,
        "refresh_interval": args.interval,
        "sample_delay": args.sample_delay,
    }
    for key, value in overrides.items():
        if value is not None:
            cfg[key] = value
    if args.terminal:
        cfg["display"]["driver"] = "terminal"
    return cfg


def make_display(settings: Settings) -> Display:
    ds = settings.display
    if ds.driver == "terminal":
        return TerminalDisplay()
    return OledDisplay(
        i2c_port=ds.i2c_port,
        address=ds.i2c_address,
        contrast=ds.contrast,
        rotate=ds.rotate,
    )


def run(settings: Settings, verbose: bool = False) -> None:
    """Wire producers, signal handling and display, then run the refresh loop.

    Returns when the telemetry stream closes. Raises PanelError on any
    failure and KeyboardInterrupt on SIGINT/SIGTERM.
    """
    toggle = SignalFlag()
    register_flag(toggle, settings.toggle_signal)
    interrupt_on(signal.SIGTERM)

    display = make_display(settings)

    measurements: Queue[Measurement] = Queue()
    samples: Queue[SystemSample] = Queue()
    source = MeasurementSource(measurements)
    sampler = SystemSampler(samples, settings.thermal_zone, settings.sample_delay)

    loop = RefreshLoop(
        display,
        measurements,
        samples,
        producers=[source, sampler],
        toggle=toggle,
        interface=settings.interface,
        companions=settings.companions,
        interval=settings.refresh_interval,
        verbose=verbose,
    )

    source.start()
    sampler.start()
    print(
        f"sensorpanel: refreshing every {settings.refresh_interval}s (Ctrl+C to stop)",
        file=sys.stderr,
    )
    try:
        loop.run()
        print("sensorpanel: telemetry stream closed.", file=sys.stderr)
    finally:
        sampler.stop()
        source.stop(timeout=_SOURCE_STOP_TIMEOUT)


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    if args.dump_config:
        print(dump_default_config(), end="")
        return

    cfg = _apply_overrides(load_config(args.config), args)
    try:
        settings = load_settings(cfg)
        run(settings, verbose=args.verbose)
    except KeyboardInterrupt:
        print("\nsensorpanel: stopped.", file=sys.stderr)
    except PanelError as e:
        print(f"sensorpanel: error: {e}", file=sys.stderr)
        raise SystemExit(1) from e


if __name__ == "__main__":
    main()
