"""Background sampling loop for pidwatch."""

import logging
import threading
import time
from datetime import datetime
from queue import Queue

import psutil

from pidwatch.errors import ProcessUnavailableError, SamplingError
from pidwatch.models import Observation
from pidwatch.sampler import ProcessSampler

logger = logging.getLogger(__name__)

MIN_INTERVAL = 0.1


class ProcessMonitor:
    """
    Drives a ProcessSampler on a fixed schedule in a daemon thread.

    Each successful sample is pushed to a thread-safe Queue as an Observation.
    A failed sample is logged and skipped; the loop keeps its schedule. When the
    tracked process disappears the loop ends, unless stop_on_exit is False.
    """

    def __init__(
        self,
        sampler: ProcessSampler,
        update_queue: Queue[Observation],
        interval: float = 1.0,
        *,
        stop_on_exit: bool = True,
        child: psutil.Popen | None = None,
    ) -> None:
        """
        Initialize the ProcessMonitor.

        Args:
            sampler: Sampler bound to the tracked process.
            update_queue: Thread-safe queue to push observations to.
            interval: Seconds between samples. Default 1.0s.
            stop_on_exit: End the loop once the process is unavailable.
            child: Popen handle of the tracked process when it is our child.
                It is polled every cycle so the exited child gets reaped.
        """
        self._sampler = sampler
        self._queue = update_queue
        self._interval = max(MIN_INTERVAL, interval)
        self._stop_on_exit = stop_on_exit
        self._child = child
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._process_exited = False
        self._failures = 0

    @property
    def pid(self) -> int:
        """The process id being monitored."""
        return self._sampler.pid

    @property
    def interval(self) -> float:
        """Get the sampling interval."""
        return self._interval

    @interval.setter
    def interval(self, value: float) -> None:
        """Set the sampling interval."""
        self._interval = max(MIN_INTERVAL, value)

    @property
    def is_running(self) -> bool:
        """Check if the monitor thread is running."""
        return self._thread is not None and self._thread.is_alive()

    @property
    def process_exited(self) -> bool:
        """True once the loop ended because the tracked process went away."""
        return self._process_exited

    @property
    def failures(self) -> int:
        """Number of sampling cycles that produced no observation."""
        return self._failures

    @property
    def returncode(self) -> int | None:
        """Exit status of the child, if it has been reaped."""
        return self._child.returncode if self._child is not None else None

    def start(self) -> None:
        """Start the monitoring thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._poll_loop,
            daemon=True,
            name=f"ProcessMonitor-{self.pid}",
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the monitoring thread.

        The loop only checks for cancellation between cycles, so a sample in
        progress always completes.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the loop ends on its own. Return True if it has."""
        thread = self._thread
        if thread is not None:
            thread.join(timeout=timeout)
            return not thread.is_alive()
        return True

    def _poll_loop(self) -> None:
        """Main polling loop running in the background thread."""
        deadline = time.monotonic()
        while not self._stop_event.is_set():
            deadline += self._interval
            delay = deadline - time.monotonic()
            if delay < 0:
                # Overran the schedule; sample now and re-base instead of bursting
                deadline = time.monotonic()
                delay = 0

            if self._stop_event.wait(timeout=delay):
                break

            if not self._sample_once():
                break

    def _sample_once(self) -> bool:
        """Take one sample and queue it. Return False when the loop should end."""
        self._reap_child()
        try:
            stat = self._sampler.sample()
        except ProcessUnavailableError as exc:
            self._failures += 1
            if self._stop_on_exit:
                logger.info("%s; stopping monitor", exc)
                self._process_exited = True
                return False
            logger.warning("Skipping sample: %s", exc)
            return True
        except SamplingError as exc:
            self._failures += 1
            logger.warning("Skipping sample: %s", exc)
            return True
        except Exception:
            # A single bad cycle must not end monitoring
            self._failures += 1
            logger.exception("Unexpected error while sampling pid %d", self.pid)
            return True

        self._queue.put(Observation(timestamp=datetime.now(), pid=self.pid, stat=stat))
        return True

    def _reap_child(self) -> None:
        if self._child is not None and self._child.returncode is None:
            if self._child.poll() is not None:
                logger.info("Process %d exited with status %d", self.pid, self._child.returncode)
