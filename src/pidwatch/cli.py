"""Command line entry point for pidwatch."""

import argparse
import logging
import shlex
import signal
import sys
import threading
from queue import Empty, Queue

from pidwatch import __version__
from pidwatch.app import WatchApp
from pidwatch.errors import HostEnvironmentError, LaunchError, SamplingError
from pidwatch.host import current
from pidwatch.launcher import launch
from pidwatch.models import Observation
from pidwatch.monitor import ProcessMonitor
from pidwatch.sampler import ProcessSampler
from pidwatch.statlog import DEFAULT_LOG_PATH, StatLogWriter

logger = logging.getLogger(__name__)

DEBUG_LOG_PATH = "pidwatch.debug.log"


def positive_float(value: str) -> float:
    """argparse type for a strictly positive number of seconds."""
    try:
        seconds = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid interval: {value!r}") from None
    if not seconds > 0:
        raise argparse.ArgumentTypeError(f"interval must be positive, got {value}")
    return seconds


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pidwatch",
        description="Run PROGRAM and periodically log its CPU, memory and open fd usage.",
    )
    parser.add_argument(
        "-i",
        "--interval",
        type=positive_float,
        default=1.0,
        help="seconds between samples (default: 1.0)",
    )
    parser.add_argument(
        "-o",
        "--output",
        default=DEFAULT_LOG_PATH,
        help=f"log file to append observations to (default: {DEFAULT_LOG_PATH})",
    )
    parser.add_argument(
        "-w",
        "--watch",
        action="store_true",
        help="show observations live in a terminal UI",
    )
    parser.add_argument(
        "--keep-polling",
        action="store_true",
        help="keep sampling after the process disappears",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="increase diagnostic output (-v info, -vv debug)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("program", help="executable to run and monitor")
    parser.add_argument("args", nargs=argparse.REMAINDER, help="arguments for PROGRAM")
    return parser


def configure_logging(verbosity: int, watch: bool = False) -> None:
    """Send diagnostics to stderr, or to a file when the terminal UI owns the screen."""
    level = {0: logging.WARNING, 1: logging.INFO}.get(verbosity, logging.DEBUG)
    handler: logging.Handler
    if watch:
        handler = logging.FileHandler(DEBUG_LOG_PATH) if verbosity else logging.NullHandler()
    else:
        handler = logging.StreamHandler(sys.stderr)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=[handler],
        force=True,
    )


def run_headless(
    monitor: ProcessMonitor,
    update_queue: Queue[Observation],
    stat_log: StatLogWriter,
    shutdown: threading.Event,
) -> None:
    """Write observations to the log until the monitor ends or shutdown is set."""
    monitor.start()
    try:
        while not shutdown.is_set():
            try:
                observation = update_queue.get(timeout=0.2)
            except Empty:
                if not monitor.is_running:
                    break
                continue
            stat_log.write(observation)
    finally:
        monitor.stop()
        # Observations queued before the loop ended still belong in the log
        while True:
            try:
                stat_log.write(update_queue.get_nowait())
            except Empty:
                break


def _install_signal_handlers(shutdown: threading.Event) -> dict:
    """Route SIGINT and SIGTERM to shutdown. Returns the previous handlers."""

    def handle(signum: int, frame: object) -> None:
        logger.info("Received %s, shutting down", signal.Signals(signum).name)
        shutdown.set()

    return {signum: signal.signal(signum, handle) for signum in (signal.SIGINT, signal.SIGTERM)}


def main(argv: list[str] | None = None) -> int:
    """Entry point for pidwatch. Returns the process exit status."""
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose, watch=args.watch)

    try:
        config = current()
    except HostEnvironmentError as exc:
        logger.error("Cannot determine host constants: %s", exc)
        return 1

    try:
        child = launch(args.program, args.args)
    except LaunchError as exc:
        logger.error("%s", exc)
        return 1

    try:
        sampler = ProcessSampler(child.pid, config)
    except SamplingError as exc:
        logger.error("Cannot track %s: %s", args.program, exc)
        if child.poll() is None:
            child.kill()
            child.wait()
        return 1

    update_queue: Queue[Observation] = Queue()
    monitor = ProcessMonitor(
        sampler,
        update_queue,
        args.interval,
        stop_on_exit=not args.keep_polling,
        child=child,
    )

    with StatLogWriter(args.output) as stat_log:
        if args.watch:
            command = shlex.join([args.program, *args.args])
            WatchApp(monitor, update_queue, stat_log, config, command).run()
        else:
            shutdown = threading.Event()
            previous_handlers = _install_signal_handlers(shutdown)
            try:
                run_headless(monitor, update_queue, stat_log, shutdown)
            finally:
                for signum, handler in previous_handlers.items():
                    signal.signal(signum, handler)

    logger.info("Wrote %d observations to %s", stat_log.lines_written, stat_log.path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
