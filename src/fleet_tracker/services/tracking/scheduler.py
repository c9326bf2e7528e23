"""Cancellable periodic task running on its own thread."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from .engine import TickOutcome

logger = logging.getLogger(__name__)


class PeriodicTask:
    """
    Runs ``tick`` once per ``interval`` seconds until cancelled or finished.

    Cancellation is signalled through a per-task event, so a cancelled task
    never fires again even if it was between ticks. A tick that raises is
    logged and the task waits for the next period.
    """

    def __init__(
        self,
        name: str,
        tick: Callable[[], TickOutcome],
        interval: float,
        on_finished: Optional[Callable[["PeriodicTask", TickOutcome], None]] = None,
    ) -> None:
        self.name = name
        self.interval = interval
        self._tick = tick
        self._on_finished = on_finished
        self._cancelled = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self._thread is not None:
            logger.warning(f"Task {self.name} is already running")
            return
        self._thread = threading.Thread(target=self._run, name=f"track-{self.name}", daemon=True)
        self._thread.start()

    def cancel(self) -> None:
        self._cancelled.set()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)

    def run_once(self) -> TickOutcome:
        """Run a single tick, absorbing failures so the schedule survives them."""
        try:
            return self._tick()
        except Exception:
            logger.exception(f"Error tracking {self.name}; retrying next period")
            return TickOutcome.CONTINUE

    def _run(self) -> None:
        while not self._cancelled.wait(self.interval):
            outcome = self.run_once()
            if outcome.finished:
                self._cancelled.set()
                if self._on_finished is not None:
                    self._on_finished(self, outcome)
                return
