"""The aggregate status rendered on every refresh tick."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from queue import Empty, Queue
from typing import TypeVar

from sensorpanel.measurement import Measurement
from sensorpanel.probes import PLACEHOLDER_IPV4
from sensorpanel.sampler import SystemSample

T = TypeVar("T")

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass(slots=True)
class Snapshot:
    """Latest known value of every source. Owned and mutated by the refresh loop only."""

    measurement: Measurement = field(default_factory=Measurement)
    sample: SystemSample = field(default_factory=SystemSample)
    logging: bool = False
    disk_free: str = "--"
    memory_used: float = 0.0
    ip: str = PLACEHOLDER_IPV4
    companions: dict[str, bool] = field(default_factory=dict)  # label -> running

    def toggle_logging(self) -> bool:
        self.logging = not self.logging
        return self.logging


def drain_latest(queue: Queue[T]) -> T | None:
    """Empty `queue` without waiting and return its newest item, or None if it was empty."""
    latest: T | None = None
    while True:
        try:
            latest = queue.get_nowait()
        except Empty:
            return latest


def format_report(snapshot: Snapshot, now: datetime) -> str:
    """Format the fixed eight-line status report."""
    companions = " ".join(
        f"{label}: {'on' if running else '--'}"
        for label, running in snapshot.companions.items()
    )
    return "\n".join([
        now.strftime(TIMESTAMP_FORMAT),
        str(snapshot.measurement),
        f"IP: {snapshot.ip}",
        f"CPU: {snapshot.sample}",
        f"MEM: {snapshot.memory_used:.1f}%",
        f"DISK: {snapshot.disk_free}",
        f"LOG: {'on' if snapshot.logging else 'off'}",
        companions,
    ])
