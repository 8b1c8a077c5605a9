"""Fixed-cadence refresh loop: drain producers, gather, render, sleep the remainder."""

from __future__ import annotations

import sys
import time
from collections.abc import Callable, Mapping, Sequence
from datetime import datetime
from enum import Enum
from queue import Queue
from typing import Any

from sensorpanel.display import Display
from sensorpanel.errors import InterfaceError, PanelError
from sensorpanel.measurement import Measurement
from sensorpanel.probes import (
    PLACEHOLDER_IPV4,
    disk_free,
    local_ipv4,
    memory_used_percent,
    scan_processes,
)
from sensorpanel.producer import Producer
from sensorpanel.sampler import SystemSample
from sensorpanel.signals import SignalFlag
from sensorpanel.snapshot import Snapshot, drain_latest, format_report


class LoopState(Enum):
    IDLE = "idle"
    GATHERING = "gathering"
    RENDERING = "rendering"
    STOPPED = "stopped"  # a producer finished cleanly (telemetry pipe closed)
    FAILED = "failed"


def corrective_sleep(elapsed: float, interval: float) -> float:
    """Time left in the tick. Never negative, so an overrun is not paid back later."""
    return max(0.0, interval - elapsed)


class RefreshLoop:
    """
    Sole consumer of the producer queues and sole owner of the Snapshot.

    Each tick checks the producers are alive, takes the newest queued
    measurement and sample (older ones are discarded), applies a pending
    logging toggle, re-queries disk, memory, network and companion
    processes, renders the report, then sleeps whatever is left of
    `interval`. Any PanelError moves the loop to FAILED and propagates.
    """

    def __init__(
        self,
        display: Display,
        measurements: Queue[Measurement],
        samples: Queue[SystemSample],
        producers: Sequence[Producer[Any]],
        toggle: SignalFlag,
        interface: str,
        companions: Mapping[str, str],
        interval: float = 1.0,
        verbose: bool = False,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """
        Args:
            display: Render sink.
            measurements: Queue fed by the MeasurementSource.
            samples: Queue fed by the SystemSampler.
            producers: Threads whose liveness is checked every tick.
            toggle: Flag set by the logging-mode signal handler.
            interface: Network interface whose IPv4 is shown.
            companions: Status-line label -> executable name.
            interval: Target seconds per tick.
            verbose: Print per-tick timing and logging-mode flips to stderr.
        """
        self._display = display
        self._measurements = measurements
        self._samples = samples
        self._producers = producers
        self._toggle = toggle
        self._interface = interface
        self._companions = dict(companions)
        self._interval = interval
        self._verbose = verbose
        self._clock = clock
        self._sleep = sleep

        self.state = LoopState.IDLE
        self.ticks = 0
        self.last_sleep = 0.0
        self.snapshot = Snapshot(companions=self._check_companions())

    @property
    def interval(self) -> float:
        return self._interval

    def run(self) -> None:
        """Tick until a producer finishes. Raises the PanelError that ended it otherwise."""
        while self.tick():
            pass

    def tick(self) -> bool:
        """Run one gather-render-sleep cycle.

        Returns:
            False if a producer has finished cleanly and the loop should stop.
        """
        start = self._clock()
        self.state = LoopState.GATHERING
        try:
            alive = [p.check_alive() for p in self._producers]
            if not all(alive):
                self.state = LoopState.STOPPED
                return False
            self._gather()
            self.state = LoopState.RENDERING
            self._display.render(format_report(self.snapshot, datetime.now()))
        except PanelError:
            self.state = LoopState.FAILED
            raise

        self.ticks += 1
        elapsed = self._clock() - start
        self.last_sleep = corrective_sleep(elapsed, self._interval)
        if self._verbose:
            print(
                f"sensorpanel: tick {self.ticks} took {elapsed:.3f}s, "
                f"sleeping {self.last_sleep:.3f}s",
                file=sys.stderr,
            )

        self.state = LoopState.IDLE
        if self.last_sleep > 0:
            self._sleep(self.last_sleep)
        return True

    def _gather(self) -> None:
        snap = self.snapshot

        measurement = drain_latest(self._measurements)
        if measurement is not None:
            snap.measurement = measurement

        sample = drain_latest(self._samples)
        if sample is not None:
            snap.sample = sample

        if self._toggle.take():
            logging = snap.toggle_logging()
            if self._verbose:
                print(f"sensorpanel: logging mode {'on' if logging else 'off'}", file=sys.stderr)

        snap.disk_free = disk_free()
        snap.memory_used = memory_used_percent()
        try:
            snap.ip = local_ipv4(self._interface)
        except InterfaceError:
            snap.ip = PLACEHOLDER_IPV4
        snap.companions = self._check_companions()

    def _check_companions(self) -> dict[str, bool]:
        running = scan_processes(self._companions.values())
        return {label: name in running for label, name in self._companions.items()}
