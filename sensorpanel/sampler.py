"""Local CPU usage and temperature sampling.

Usage comes from the aggregate `cpu` line of /proc/stat, computed as a
delta between consecutive reads so no blocking sleep is needed. Temperature
is read from a thermal-zone file holding milli-degrees Celsius.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from queue import Queue

from sensorpanel.errors import KernelStatsError, ThermalReadError
from sensorpanel.producer import Producer

PROC_STAT = Path("/proc/stat")
DEFAULT_THERMAL_ZONE = Path("/sys/class/thermal/thermal_zone0/temp")
MIN_SAMPLE_DELAY = 0.1

# Counters summed into the total; index 3 is idle. Missing ones count as 0.
_CPU_FIELDS = ("user", "nice", "system", "idle", "iowait", "irq", "softirq")
_IDLE = 3


@dataclass(slots=True, frozen=True)
class SystemSample:
    """CPU usage (0-100 %) and CPU temperature (°C)."""

    usage: float = 0.0
    temperature: float = 0.0

    def __str__(self) -> str:
        return f"{self.usage:.1f}% {self.temperature:.1f}C"


# ── Raw reads ──────────────────────────────────────────────────────────────


def read_cpu_times(path: Path = PROC_STAT) -> tuple[int, int]:
    """Read (idle, total) jiffies from the aggregate `cpu` line of /proc/stat."""
    try:
        with open(path) as f:
            parts = f.readline().split()
    except OSError as e:
        raise KernelStatsError(path, e.strerror or str(e)) from e

    if not parts or parts[0] != "cpu":
        raise KernelStatsError(path, "missing aggregate 'cpu' line")

    try:
        values = [int(x) for x in parts[1 : 1 + len(_CPU_FIELDS)]]
    except ValueError as e:
        raise KernelStatsError(path, f"bad counter: {e}") from e
    values += [0] * (len(_CPU_FIELDS) - len(values))

    return values[_IDLE], sum(values)


def calc_cpu_usage(prev: tuple[int, int], curr: tuple[int, int]) -> float:
    """Compute overall CPU% from two (idle, total) samples.

    Returns 0.0 when the total did not advance, and clamps to [0, 100] in
    case the kernel counters step backwards.
    """
    idle_delta = curr[0] - prev[0]
    total_delta = curr[1] - prev[1]
    if total_delta <= 0:
        return 0.0
    usage = 100.0 * (1.0 - idle_delta / total_delta)
    return min(100.0, max(0.0, usage))


def read_thermal(path: Path) -> float:
    """Read a thermal-zone file (milli-degrees) and return °C."""
    try:
        with open(path) as f:
            raw = f.read().strip()
    except OSError as e:
        raise ThermalReadError(path, e.strerror or str(e)) from e
    try:
        return float(raw) / 1000.0
    except ValueError:
        raise ThermalReadError(path, f"not a number: {raw!r}") from None


class CpuCounter:
    """Keeps the previous /proc/stat counters between usage reads."""

    def __init__(self, stat_path: Path = PROC_STAT) -> None:
        self._stat_path = stat_path
        self._prev: tuple[int, int] | None = None

    @property
    def has_baseline(self) -> bool:
        return self._prev is not None

    def usage(self) -> float:
        """CPU% since the previous call. The first call only sets the baseline and returns 0.0."""
        curr = read_cpu_times(self._stat_path)
        prev, self._prev = self._prev, curr
        if prev is None:
            return 0.0
        return calc_cpu_usage(prev, curr)


# ── Sampler thread ─────────────────────────────────────────────────────────


class SystemSampler(Producer[SystemSample]):
    """
    Samples CPU usage and temperature every `delay` seconds.

    The first read only establishes the usage baseline (and proves both
    files are readable); it is never queued. Any read failure ends the
    sampler with KernelStatsError or ThermalReadError.
    """

    name = "SystemSampler"

    def __init__(
        self,
        queue: Queue[SystemSample],
        thermal_zone: Path | str = DEFAULT_THERMAL_ZONE,
        delay: float = 1.0,
        stat_path: Path = PROC_STAT,
    ) -> None:
        super().__init__(queue)
        self._thermal_zone = Path(thermal_zone)
        self._cpu = CpuCounter(stat_path)
        self.delay = delay

    @property
    def delay(self) -> float:
        return self._delay

    @delay.setter
    def delay(self, value: float) -> None:
        self._delay = max(MIN_SAMPLE_DELAY, value)

    def sample(self) -> SystemSample:
        """Take one sample, advancing the usage baseline."""
        usage = self._cpu.usage()
        return SystemSample(usage=usage, temperature=read_thermal(self._thermal_zone))

    def _produce(self) -> None:
        self.sample()
        while not self._stop_event.wait(timeout=self._delay):
            self._queue.put(self.sample())
