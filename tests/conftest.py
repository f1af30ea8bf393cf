"""Shared fixtures for pidwatch tests."""

from pathlib import Path

import pytest

from pidwatch.models import HostConfig

# A real /proc/<pid>/stat line (bash), utime=100 stime=50 rss=1000
STAT_FIELDS = (
    "R 1 4321 4321 34816 4321 4194304 1208 0 0 0 100 50 0 0 20 0 1 0 "
    "123456 12345678 1000 18446744073709551615 94 95 140 0 0 0 65536 3670020 "
    "1266777851 0 0 0 17 3 0 0 0 0 0"
)


def make_stat_line(
    pid: int = 4321,
    name: str = "bash",
    user: int = 100,
    system: int = 50,
    resident: int = 1000,
) -> str:
    """Build a stat line with the given counters in their documented positions."""
    fields = STAT_FIELDS.split()
    # Positions in `fields` are the zero-based stat field index minus 2
    fields[13 - 2] = str(user)
    fields[14 - 2] = str(system)
    fields[23 - 2] = str(resident)
    return f"{pid} ({name}) {' '.join(fields)}\n"


class FakeProc:
    """A writable stand-in for /proc rooted in a temporary directory."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def write(self, pid: int, line: str) -> None:
        directory = self.root / str(pid)
        directory.mkdir(parents=True, exist_ok=True)
        (directory / "stat").write_text(line)

    def set_counters(self, pid: int, user: int, system: int, resident: int = 1000) -> None:
        self.write(pid, make_stat_line(pid, user=user, system=system, resident=resident))

    def set_fds(self, pid: int, count: int) -> None:
        directory = self.root / str(pid) / "fd"
        directory.mkdir(parents=True, exist_ok=True)
        for fd in range(count):
            (directory / str(fd)).touch()

    def remove(self, pid: int) -> None:
        (self.root / str(pid) / "stat").unlink()


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_proc(tmp_path: Path) -> FakeProc:
    return FakeProc(tmp_path / "proc")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def host_config() -> HostConfig:
    return HostConfig(ticks_per_second=100, page_size_bytes=4096, cpu_count=4)
