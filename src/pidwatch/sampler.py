"""Incremental resource sampling for a single tracked process."""

import functools
import logging
import time
from collections.abc import Callable

from pidwatch.errors import DegenerateIntervalError, FdEnumerationError
from pidwatch.models import HostConfig, ProcessSample, Stat
from pidwatch.procfs import DEFAULT_PROC_ROOT, count_fds, parse_stat, read_stat

logger = logging.getLogger(__name__)


class ProcessSampler:
    """
    Computes CPU, memory and fd usage of one process between successive calls.

    The sampler keeps the previous accounting sample and the monotonic time it
    was taken. Each successful sample() measures CPU usage against exactly that
    baseline and then replaces it. A failed sample() leaves the baseline as it
    was, so the next success covers the whole time since the last good read.

    Instances are not thread-safe; confine each one to a single thread.
    """

    def __init__(
        self,
        pid: int,
        config: HostConfig,
        *,
        proc_root: str = DEFAULT_PROC_ROOT,
        clock: Callable[[], float] = time.monotonic,
        fd_counter: Callable[[int], int] | None = None,
    ) -> None:
        """
        Initialize the sampler and take the baseline snapshot.

        Args:
            pid: Process id to track.
            config: Host constants used for unit conversion.
            proc_root: Mount point of the proc filesystem.
            clock: Monotonic clock returning seconds.
            fd_counter: Callable returning the open fd count of a pid.
                Defaults to count_fds over proc_root.

        Raises:
            ProcessUnavailableError: If the process does not exist.
            ParseError: If its accounting snapshot cannot be parsed.
        """
        self._pid = pid
        self._config = config
        self._proc_root = proc_root
        self._clock = clock
        if fd_counter is None:
            fd_counter = functools.partial(count_fds, proc_root=proc_root)
        self._fd_counter = fd_counter
        self._samples_taken = 0

        self._previous_timestamp = clock()
        self._previous_sample = self._read_sample()

        try:
            self._last_fd_count: int | None = fd_counter(pid)
        except FdEnumerationError as exc:
            logger.debug("No initial fd count for pid %d: %s", pid, exc)
            self._last_fd_count = None

    @property
    def pid(self) -> int:
        """The tracked process id."""
        return self._pid

    @property
    def previous_sample(self) -> ProcessSample:
        """The baseline the next sample() is measured against."""
        return self._previous_sample

    @property
    def previous_timestamp(self) -> float:
        """Monotonic time at which the baseline was taken."""
        return self._previous_timestamp

    @property
    def samples_taken(self) -> int:
        """Number of successful sample() calls so far."""
        return self._samples_taken

    def _read_sample(self) -> ProcessSample:
        line = read_stat(self._pid, self._proc_root)
        return parse_stat(line, pid=self._pid)

    def _count_fds(self) -> tuple[int, bool]:
        """Return (fd count, stale) falling back to the last known count."""
        try:
            return self._fd_counter(self._pid), False
        except FdEnumerationError as exc:
            fallback = self._last_fd_count or 0
            logger.warning("%s; reporting last known fd count %d", exc, fallback)
            return fallback, True

    def sample(self) -> Stat:
        """
        Take a new snapshot and compute usage since the previous one.

        Raises:
            ProcessUnavailableError: If the process vanished.
            ParseError: If the snapshot is malformed.
            DegenerateIntervalError: If no time elapsed since the previous sample.
        """
        now = self._clock()
        elapsed = now - self._previous_timestamp

        current = self._read_sample()

        if elapsed <= 0:
            raise DegenerateIntervalError(
                self._pid, f"elapsed time since previous sample is {elapsed:.6f}s"
            )

        # Ticks across all threads, so a busy multi-threaded process can exceed 100%
        ticks_delta = current.total_ticks - self._previous_sample.total_ticks
        cpu_percent = ticks_delta / (elapsed * self._config.ticks_per_second) * 100.0
        memory_bytes = current.resident_pages * self._config.page_size_bytes
        fd_count, fd_stale = self._count_fds()

        self._previous_sample = current
        self._previous_timestamp = now
        if not fd_stale:
            self._last_fd_count = fd_count
        self._samples_taken += 1

        return Stat(
            cpu_percent=cpu_percent,
            memory_bytes=memory_bytes,
            open_fd_count=fd_count,
            fd_count_stale=fd_stale,
        )
