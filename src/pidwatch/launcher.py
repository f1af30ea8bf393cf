"""Starting the program to be monitored."""

import logging
from collections.abc import Sequence

import psutil

from pidwatch.errors import LaunchError

logger = logging.getLogger(__name__)


def launch(program: str, args: Sequence[str] = ()) -> psutil.Popen:
    """
    Start program as a child process.

    The child inherits stdin/stdout/stderr. The returned psutil.Popen exposes
    both the subprocess API (poll, wait) and the psutil.Process API.

    Raises:
        LaunchError: If the program cannot be executed.
    """
    argv = [program, *args]
    try:
        child = psutil.Popen(argv)
    except OSError as exc:
        raise LaunchError(f"failed to execute {program}: {exc}") from exc
    logger.info("Started %s as pid %d", " ".join(argv), child.pid)
    return child
