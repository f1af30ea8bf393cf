"""Data models for pidwatch."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(slots=True, frozen=True)
class HostConfig:
    """Immutable host constants needed to convert raw accounting fields."""

    ticks_per_second: int
    page_size_bytes: int
    cpu_count: int = 1


@dataclass(slots=True, frozen=True)
class ProcessSample:
    """The fields of one accounting snapshot that sampling needs."""

    user_ticks: int
    system_ticks: int
    resident_pages: int

    @property
    def total_ticks(self) -> int:
        """CPU time consumed in user and kernel mode, in clock ticks."""
        return self.user_ticks + self.system_ticks


@dataclass(slots=True, frozen=True)
class Stat:
    """Resource usage of a process over one sampling interval."""

    cpu_percent: float  # not normalized by core count, may exceed 100.0
    memory_bytes: int
    open_fd_count: int
    fd_count_stale: bool = False  # True when open_fd_count is a fallback value


@dataclass(slots=True, frozen=True)
class Observation:
    """A Stat stamped with the wall-clock time it was taken."""

    timestamp: datetime
    pid: int
    stat: Stat
