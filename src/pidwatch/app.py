"""pidwatch - live Textual view of a monitored process."""

from queue import Empty, Queue

from textual.app import App, ComposeResult
from textual.containers import Container
from textual.widgets import DataTable, Footer, Static

from pidwatch.models import HostConfig, Observation
from pidwatch.monitor import ProcessMonitor
from pidwatch.statlog import StatLogWriter

MAX_ROWS = 500


def format_bytes(size: int) -> str:
    """Format bytes as human-readable string."""
    for unit in ["B", "K", "M", "G", "T"]:
        if size < 1024:
            return f"{size:5.1f}{unit}" if unit != "B" else f"{size:5d}{unit}"
        size = size / 1024
    return f"{size:.1f}P"


class ProcessHeader(Static):
    """Header widget describing the tracked process and its latest sample."""

    DEFAULT_CSS = """
    ProcessHeader {
        height: auto;
        min-height: 3;
        padding: 0 1;
        background: $surface;
    }
    """

    def __init__(self, command: str, config: HostConfig, interval: float, *args, **kwargs) -> None:
        """Initialize ProcessHeader."""
        super().__init__(*args, **kwargs)
        self._command = command
        self._host_config = config
        self._interval = interval
        self._pid: int | None = None
        self._latest: Observation | None = None
        self._status = "running"

    def on_mount(self) -> None:
        self.update(self._describe())

    def show(self, observation: Observation) -> None:
        """Show the latest observation."""
        self._pid = observation.pid
        self._latest = observation
        self.update(self._describe())

    def set_status(self, status: str) -> None:
        """Show a new process status. Unchanged statuses are not re-rendered."""
        if status == self._status:
            return
        self._status = status
        self.update(self._describe())

    def _describe(self) -> str:
        first = (
            f"[b]{self._command}[/b]  status: {self._status}  "
            f"every {self._interval:g}s  cores: {self._host_config.cpu_count}"
        )
        if self._latest is None:
            return first + "\nWaiting for first sample..."
        stat = self._latest.stat
        fds = f"{stat.open_fd_count}?" if stat.fd_count_stale else str(stat.open_fd_count)
        return (
            f"{first}\n"
            f"pid {self._pid}  CPU {stat.cpu_percent:6.1f}%  "
            f"RES {format_bytes(stat.memory_bytes)}  FDs {fds}"
        )


class ObservationTable(Container):
    """Container for the table of recent observations, newest last."""

    DEFAULT_CSS = """
    ObservationTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize ObservationTable."""
        super().__init__(*args, **kwargs)
        self._next_key = 0
        self._keys: list[str] = []

    @property
    def row_count(self) -> int:
        return len(self._keys)

    def compose(self) -> ComposeResult:
        """Compose the observation table."""
        yield DataTable(id="observation-table")

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        table = self.query_one("#observation-table", DataTable)
        table.cursor_type = "row"

        table.add_column("Time", key="time", width=10)
        table.add_column("CPU%", key="cpu", width=8)
        table.add_column("RES", key="rss", width=8)
        table.add_column("Bytes", key="bytes", width=14)
        table.add_column("FDs", key="fds")

    def add_observation(self, observation: Observation) -> None:
        """Append a row, dropping the oldest once MAX_ROWS is reached."""
        table = self.query_one("#observation-table", DataTable)
        stat = observation.stat
        row_key = str(self._next_key)
        self._next_key += 1
        table.add_row(
            observation.timestamp.strftime("%H:%M:%S"),
            f"{stat.cpu_percent:6.1f}",
            format_bytes(stat.memory_bytes),
            str(stat.memory_bytes),
            f"{stat.open_fd_count}?" if stat.fd_count_stale else str(stat.open_fd_count),
            key=row_key,
        )
        self._keys.append(row_key)
        if len(self._keys) > MAX_ROWS:
            table.remove_row(self._keys.pop(0))
        table.move_cursor(row=table.row_count - 1)

    def clear_rows(self) -> None:
        table = self.query_one("#observation-table", DataTable)
        table.clear()
        self._keys.clear()


class WatchApp(App):
    """Live view of a process monitored by pidwatch."""

    TITLE = "pidwatch"
    SUB_TITLE = "Process Resource Monitor"

    CSS = """
    Screen {
        layout: vertical;
    }

    #process-header {
        dock: top;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("c", "clear", "Clear"),
    ]

    def __init__(
        self,
        monitor: ProcessMonitor,
        update_queue: Queue[Observation],
        stat_log: StatLogWriter,
        config: HostConfig,
        command: str = "",
    ) -> None:
        """Initialize the WatchApp."""
        super().__init__()
        self._monitor = monitor
        self._update_queue = update_queue
        self._stat_log = stat_log
        self._host_config = config
        self._command = command or f"pid {monitor.pid}"

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield ProcessHeader(self._command, self._host_config, self._monitor.interval, id="process-header")
        yield ObservationTable()
        yield Footer()

    def on_mount(self) -> None:
        """Start the monitor when the app is mounted."""
        self._monitor.start()
        self.set_interval(0.25, self._check_for_updates)

    def _check_for_updates(self) -> None:
        """Drain the queue: log every observation and show it."""
        header = self.query_one(ProcessHeader)
        table = self.query_one(ObservationTable)
        while True:
            try:
                observation = self._update_queue.get_nowait()
            except Empty:
                break
            self._stat_log.write(observation)
            table.add_observation(observation)
            header.show(observation)

        if self._monitor.process_exited:
            returncode = self._monitor.returncode
            status = "exited" if returncode is None else f"exited ({returncode})"
            header.set_status(status)

    def action_clear(self) -> None:
        """Clear the observation table. The log file is unaffected."""
        self.query_one(ObservationTable).clear_rows()

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        self._monitor.stop()
        self._check_for_updates()
        self.exit()
