"""Discovery of host constants used to interpret /proc accounting data."""

import functools
import logging
import os

import psutil

from pidwatch.errors import HostEnvironmentError
from pidwatch.models import HostConfig

logger = logging.getLogger(__name__)


def _sysconf(name: str) -> int:
    try:
        value = os.sysconf(name)
    except (ValueError, OSError) as exc:
        raise HostEnvironmentError(f"sysconf({name}) is not available: {exc}") from exc
    if value <= 0:
        raise HostEnvironmentError(f"sysconf({name}) returned {value}")
    return value


def initialize() -> HostConfig:
    """
    Query the host for clock ticks per second, page size and core count.

    Raises:
        HostEnvironmentError: If the host refuses to report ticks or page size.
    """
    config = HostConfig(
        ticks_per_second=_sysconf("SC_CLK_TCK"),
        page_size_bytes=_sysconf("SC_PAGE_SIZE"),
        # cpu_count() may return None when undeterminable; it is informational only
        cpu_count=psutil.cpu_count() or 1,
    )
    logger.debug(
        "Host config: %d ticks/s, %d byte pages, %d cores",
        config.ticks_per_second,
        config.page_size_bytes,
        config.cpu_count,
    )
    return config


@functools.cache
def current() -> HostConfig:
    """Return the process-wide HostConfig, detecting it on first use only."""
    return initialize()
