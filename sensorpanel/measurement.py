"""Humidity/temperature telemetry piped in on standard input.

Each line has the form `<humidity>,<temperature>`, e.g. `55.2,21.0`, as
written by the datalogger that drives the sensor.
"""

from __future__ import annotations

import math
import re
import sys
from dataclasses import dataclass
from queue import Queue
from typing import BinaryIO

from sensorpanel.errors import MalformedTelemetry
from sensorpanel.producer import Producer


@dataclass(slots=True, frozen=True)
class Measurement:
    """Immutable humidity (%) and temperature (°C) reading."""

    humidity: float = 0.0
    temperature: float = 0.0

    def __str__(self) -> str:
        return f"H: {self.humidity:.1f}% T: {self.temperature:.1f}C"


# plain decimal or exponent notation; no digit separators, nan or inf
_NUMBER = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)


def _parse_field(line: str, value: str) -> float:
    text = value.strip()
    if not _NUMBER.fullmatch(text):
        raise MalformedTelemetry(line, f"not a number: {text!r}")
    number = float(text)
    if not math.isfinite(number):
        raise MalformedTelemetry(line, f"not a finite number: {text!r}")
    return number


def parse_measurement(line: str) -> Measurement:
    """Parse one `<humidity>,<temperature>` line.

    Raises:
        MalformedTelemetry: empty line, wrong field count or non-numeric field.
    """
    text = line.strip()
    if not text:
        raise MalformedTelemetry(line, "empty line")

    fields = text.split(",")
    if len(fields) != 2:
        raise MalformedTelemetry(line, f"expected 2 fields, got {len(fields)}")

    humidity, temperature = (_parse_field(line, f) for f in fields)
    return Measurement(humidity=humidity, temperature=temperature)


class MeasurementSource(Producer[Measurement]):
    """
    Reads telemetry lines and forwards each parsed Measurement to the queue.

    Blank lines are skipped. The first malformed line terminates the source
    with MalformedTelemetry; end of stream terminates it cleanly. Reading
    blocks on the stream, so a stop request only takes effect once the next
    line (or EOF) arrives.
    """

    name = "MeasurementSource"

    def __init__(self, queue: Queue[Measurement], stream: BinaryIO | None = None) -> None:
        super().__init__(queue)
        self._stream = stream if stream is not None else sys.stdin.buffer

    def _produce(self) -> None:
        for raw in self._stream:
            if self._stop_event.is_set():
                return
            try:
                line = raw.decode("utf-8")
            except UnicodeDecodeError:
                raise MalformedTelemetry(
                    raw.decode("utf-8", "replace"), "not valid UTF-8"
                ) from None
            if not line.strip():
                continue
            self._queue.put(parse_measurement(line))
