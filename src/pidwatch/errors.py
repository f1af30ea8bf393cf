"""Exception hierarchy for pidwatch."""


class PidwatchError(Exception):
    """Base class for all pidwatch errors."""


class HostEnvironmentError(PidwatchError):
    """Host constants (clock ticks, page size) could not be determined."""


class LaunchError(PidwatchError):
    """The target program could not be started."""


class SamplingError(PidwatchError):
    """A single sampling cycle failed. The sampler state is left untouched."""

    def __init__(self, pid: int, message: str) -> None:
        super().__init__(f"pid {pid}: {message}")
        self.pid = pid


class ProcessUnavailableError(SamplingError):
    """The tracked process no longer exposes an accounting snapshot."""


class ParseError(SamplingError):
    """The accounting snapshot is malformed or lacks a required field."""


class DegenerateIntervalError(ParseError):
    """No measurable time passed since the previous sample."""


class FdEnumerationError(SamplingError):
    """The file descriptor table of the process could not be read."""


class ProcessGoneError(FdEnumerationError):
    """The process disappeared while its fd table was being enumerated."""
