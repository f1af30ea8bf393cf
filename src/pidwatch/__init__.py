"""pidwatch - launch a process and log its CPU, memory and fd usage."""

__version__ = "0.1.0"
