import logging
import threading
from typing import Any, Callable

log = logging.getLogger(__name__)


class Scheduler:
    """Runs ``task`` every ``interval`` seconds until :meth:`stop` is called.

    A pass always completes before the next one starts. Exceptions raised by
    the task are logged and the next pass is attempted after the interval.
    """

    def __init__(self, interval: float, task: Callable[[], Any]) -> None:
        self.interval = interval
        self.task = task
        self.passes = 0
        self.failures = 0
        self._stop_event = threading.Event()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def stop(self) -> None:
        log.info("Stopping reconciliation loop...")
        self._stop_event.set()

    def run_once(self) -> bool:
        self.passes += 1
        try:
            self.task()
        except Exception as e:
            self.failures += 1
            log.exception(f"Reconciliation pass #{self.passes} failed ({type(e).__name__}): {e}")
            return False
        return True

    def run_forever(self) -> None:
        log.info(f"Starting reconciliation loop (interval={self.interval}s)")

        while not self.stopped:
            log.debug("Checking for label changes...")
            self.run_once()
            self._stop_event.wait(self.interval)

        log.info(f"Reconciliation loop stopped after {self.passes} pass(es), {self.failures} failed")
