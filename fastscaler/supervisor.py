from __future__ import annotations

import logging
import signal
from threading import Event, Thread
from typing import Any, Callable, Iterable

from .config import ServiceSpec
from .loop import ServiceLoop

LOGGER = logging.getLogger(__name__)


class Supervisor:
    """Runs one ServiceLoop per service, each on its own thread."""

    def __init__(self, services: Iterable[ServiceSpec], loop_factory: Callable[[ServiceSpec], ServiceLoop]):
        self.services = list(services)
        self.loop_factory = loop_factory
        self.stop_event = Event()
        self._threads: list[Thread] = []

    def start(self) -> None:
        if self._threads:
            return
        for spec in self.services:
            loop = self.loop_factory(spec)
            thr = Thread(target=loop.run, args=(self.stop_event,), name=f"loop-{spec.service}")
            thr.start()
            self._threads.append(thr)
        LOGGER.info("started %d service loop(s)", len(self._threads))

    def stop(self) -> None:
        if not self.stop_event.is_set():
            LOGGER.info("shutting down, no new checks will be scheduled")
        self.stop_event.set()

    def wait(self, timeout: float | None = None) -> bool:
        """Join all loops. True once every loop has exited."""
        for thr in self._threads:
            thr.join(timeout)
        return not any(thr.is_alive() for thr in self._threads)

    def run(self) -> None:
        self.start()
        # Short joins keep the main thread responsive to signals.
        while not self.wait(timeout=1.0):
            pass


def install_signal_handlers(supervisor: Supervisor) -> dict[int, Any]:
    """Route SIGTERM / SIGINT to ``supervisor.stop``. Main thread only.

    Returns the previous handlers.
    """

    def _handler(signum: int, frame: Any) -> None:
        LOGGER.info("%s received", signal.Signals(signum).name)
        supervisor.stop()

    previous = {}
    for sig in (signal.SIGTERM, signal.SIGINT):
        previous[sig] = signal.signal(sig, _handler)
    return previous
