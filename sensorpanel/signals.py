"""Signal-driven toggles.

A signal handler may interrupt the main thread between any two bytecodes,
including while it holds a lock, so the handler must not take one. The flag
is a one-slot deque instead: `append` and `popleft` are single atomic
operations, and repeated appends overwrite the same slot, so any number of
deliveries before the next read coalesce into one.
"""

from __future__ import annotations

import signal
from collections import deque
from types import FrameType

from sensorpanel.errors import ConfigError, SignalSetupError


class SignalFlag:
    """Process-wide boolean set by a signal handler, read-and-cleared by the refresh loop."""

    def __init__(self) -> None:
        self._pending: deque[bool] = deque(maxlen=1)

    def set(self) -> None:
        self._pending.append(True)

    def is_set(self) -> bool:
        return bool(self._pending)

    def take(self) -> bool:
        """Return True if the flag was set since the last call, clearing it."""
        try:
            return self._pending.popleft()
        except IndexError:
            return False


def resolve_signal(name: str) -> signal.Signals:
    """Map a name such as "SIGUSR1" (or "USR1") to a signal number."""
    key = name.upper()
    if not key.startswith("SIG"):
        key = "SIG" + key
    try:
        return signal.Signals[key]
    except KeyError:
        raise ConfigError("toggle_signal", f"unknown signal {name!r}") from None


def register_flag(flag: SignalFlag, signum: signal.Signals) -> None:
    """Install a handler that only sets `flag` when `signum` is delivered.

    Must be called from the main thread.
    """

    def _handler(_signum: int, _frame: FrameType | None) -> None:
        flag.set()

    try:
        signal.signal(signum, _handler)
    except (OSError, ValueError) as e:
        raise SignalSetupError(signum.name, str(e)) from e


def interrupt_on(signum: signal.Signals) -> None:
    """Make `signum` raise KeyboardInterrupt in the main thread, like Ctrl+C."""
    try:
        signal.signal(signum, signal.default_int_handler)
    except (OSError, ValueError) as e:
        raise SignalSetupError(signum.name, str(e)) from e
