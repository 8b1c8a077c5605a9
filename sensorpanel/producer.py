"""Producer thread lifecycle shared by the telemetry and system-metrics sources."""

from __future__ import annotations

import threading
from queue import Queue
from typing import Generic, TypeVar

from sensorpanel.errors import PanelError, SourceTerminated

T = TypeVar("T")


class Producer(Generic[T]):
    """
    Background daemon thread that pushes values into a queue.

    Subclasses implement `_produce()`, which loops until `_stop_event` is set
    or the source is exhausted. A PanelError raised from `_produce()` ends the
    thread and is kept so the consumer can collect it on its next liveness
    check; nothing is retried.
    """

    name = "producer"

    def __init__(self, queue: Queue[T]) -> None:
        self._queue = queue
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._error: PanelError | None = None
        self._finished = False

    @property
    def is_running(self) -> bool:
        """Check if the producer thread is running."""
        return self._thread is not None and self._thread.is_alive()

    @property
    def error(self) -> PanelError | None:
        return self._error

    @property
    def finished(self) -> bool:
        """True once `_produce()` returned normally (source exhausted or stopped)."""
        return self._finished

    def start(self) -> None:
        """Start the producer thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._error = None
        self._finished = False
        self._thread = threading.Thread(
            target=self._run,
            daemon=True,
            name=self.name,
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Ask the producer to exit and wait for it.

        Args:
            timeout: How long to wait for the thread to stop (seconds). A
                thread still blocked in I/O after this is left to die with
                the process.
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            if not self._thread.is_alive():
                self._thread = None

    def check_alive(self) -> bool:
        """
        Liveness check used by the refresh loop once per tick.

        Returns:
            True while the thread runs, False if it finished cleanly.

        Raises:
            PanelError: the error that terminated the thread, or
                SourceTerminated if it died without leaving one.
        """
        if self.is_running:
            return True
        if self._error is not None:
            raise self._error
        if self._finished:
            return False
        raise SourceTerminated(self.name)

    def _run(self) -> None:
        try:
            self._produce()
        except PanelError as e:
            self._error = e
            return
        self._finished = True

    def _produce(self) -> None:
        raise NotImplementedError
