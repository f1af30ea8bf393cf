"""Stat log output: one timestamped line per observation."""

import logging
from pathlib import Path
from types import TracebackType
from typing import TextIO

from pidwatch.models import Observation

logger = logging.getLogger(__name__)

DEFAULT_LOG_PATH = "log.txt"


def format_observation(observation: Observation) -> str:
    """Format an observation as a log line (without trailing newline)."""
    stat = observation.stat
    stamp = observation.timestamp.strftime("%c")
    fds = f"{stat.open_fd_count} (last known)" if stat.fd_count_stale else str(stat.open_fd_count)
    return (
        f"[{stamp}] cpu (%): {stat.cpu_percent:g}, "
        f"memory (bytes): {stat.memory_bytes}, fds: {fds}"
    )


class StatLogWriter:
    """Appends formatted observations to a log file, flushing every line."""

    def __init__(self, path: str | Path = DEFAULT_LOG_PATH) -> None:
        self._path = Path(path)
        self._file: TextIO | None = None
        self._lines_written = 0

    @property
    def path(self) -> Path:
        return self._path

    @property
    def lines_written(self) -> int:
        return self._lines_written

    def open(self) -> TextIO:
        """Open the log for appending if needed and return the file."""
        if self._file is None:
            self._file = self._path.open("a", encoding="utf-8")
            logger.debug("Appending observations to %s", self._path)
        return self._file

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None

    def write(self, observation: Observation) -> None:
        """Append one observation. Opens the file on first use."""
        log_file = self.open()
        log_file.write(format_observation(observation) + "\n")
        log_file.flush()
        self._lines_written += 1

    def __enter__(self) -> "StatLogWriter":
        self.open()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
