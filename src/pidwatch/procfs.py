"""Readers for the Linux /proc process accounting interface."""

import os

import psutil

from pidwatch.errors import (
    FdEnumerationError,
    ParseError,
    ProcessGoneError,
    ProcessUnavailableError,
)
from pidwatch.models import ProcessSample

DEFAULT_PROC_ROOT = "/proc"

# Zero-based field positions in /proc/<pid>/stat (see proc(5))
UTIME_INDEX = 13
STIME_INDEX = 14
RSS_INDEX = 23

# Fields 0 (pid) and 1 (comm) precede the closing parenthesis
_FIRST_FIELD_AFTER_COMM = 2


def stat_path(pid: int, proc_root: str = DEFAULT_PROC_ROOT) -> str:
    """Return the path of the accounting snapshot for a pid."""
    return os.path.join(proc_root, str(pid), "stat")


def read_stat(pid: int, proc_root: str = DEFAULT_PROC_ROOT) -> str:
    """
    Read the raw accounting record of a process.

    The whole file is read: the process name is written unescaped and may
    contain newlines, so the record can span several lines.

    Raises:
        ProcessUnavailableError: If the process is gone or its stat file is unreadable.
    """
    path = stat_path(pid, proc_root)
    try:
        with open(path, encoding="utf-8", errors="replace", newline="") as f:
            line = f.read().removesuffix("\n")
    except (FileNotFoundError, ProcessLookupError) as exc:
        raise ProcessUnavailableError(pid, "process no longer exists") from exc
    except OSError as exc:
        raise ProcessUnavailableError(pid, f"cannot read {path}: {exc}") from exc
    if not line:
        # The kernel hands out an empty file while a process is being reaped
        raise ProcessUnavailableError(pid, f"{path} is empty")
    return line


def _field(pid: int, fields: list[str], index: int) -> int:
    if index < _FIRST_FIELD_AFTER_COMM:
        raise ParseError(pid, f"field {index} lies inside the pid/comm prefix")
    position = index - _FIRST_FIELD_AFTER_COMM
    if position >= len(fields):
        raise ParseError(
            pid,
            f"field {index} missing, snapshot has {len(fields) + _FIRST_FIELD_AFTER_COMM} fields",
        )
    token = fields[position]
    if not (token.isascii() and token.isdigit()):
        raise ParseError(pid, f"field {index} is not a non-negative integer: {token!r}")
    return int(token)


def parse_stat(
    line: str,
    user_index: int = UTIME_INDEX,
    system_index: int = STIME_INDEX,
    resident_index: int = RSS_INDEX,
    pid: int = 0,
) -> ProcessSample:
    """
    Extract user time, system time and resident pages from a stat line.

    The second field is the executable name in parentheses and may itself
    contain spaces or parentheses, so tokenizing starts after the last ')'.

    Args:
        line: Raw contents of /proc/<pid>/stat.
        user_index: Zero-based position of utime.
        system_index: Zero-based position of stime.
        resident_index: Zero-based position of rss (in pages).
        pid: Process id, only used in error messages.

    Raises:
        ParseError: If the name field or a requested field is missing or invalid.
    """
    open_paren = line.find("(")
    close_paren = line.rfind(")")
    if open_paren == -1 or close_paren < open_paren:
        raise ParseError(pid, "snapshot has no parenthesized process name")

    fields = line[close_paren + 1 :].split()
    return ProcessSample(
        user_ticks=_field(pid, fields, user_index),
        system_ticks=_field(pid, fields, system_index),
        resident_pages=_field(pid, fields, resident_index),
    )


def count_fds(pid: int, proc_root: str = DEFAULT_PROC_ROOT) -> int:
    """
    Count the open file descriptors of a process.

    psutil only reads its own process-wide procfs path, so a different
    proc_root is enumerated directly.

    Raises:
        ProcessGoneError: If the process no longer exists (or is a zombie).
        FdEnumerationError: If the fd table cannot be read.
    """
    if os.path.normpath(proc_root) != DEFAULT_PROC_ROOT:
        return _list_fds(pid, proc_root)
    try:
        return psutil.Process(pid).num_fds()
    except psutil.NoSuchProcess as exc:
        # Also covers ZombieProcess: a zombie has already released its fds
        raise ProcessGoneError(pid, "process no longer exists") from exc
    except psutil.AccessDenied as exc:
        raise FdEnumerationError(pid, "access to the fd table was denied") from exc
    except OSError as exc:
        raise FdEnumerationError(pid, f"cannot enumerate fds: {exc}") from exc


def _list_fds(pid: int, proc_root: str) -> int:
    path = os.path.join(proc_root, str(pid), "fd")
    try:
        return len(os.listdir(path))
    except (FileNotFoundError, ProcessLookupError) as exc:
        raise ProcessGoneError(pid, "process no longer exists") from exc
    except OSError as exc:
        raise FdEnumerationError(pid, f"cannot enumerate {path}: {exc}") from exc
