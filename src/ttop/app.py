"""ttop - Textual replay viewer for a parsed capture."""

from enum import Enum

from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal
from textual.widgets import DataTable, Footer, Sparkline, Static
from textual.widgets.data_table import CellDoesNotExist, RowDoesNotExist

from ttop.aligner import SeriesSet, align
from ttop.models import ParseResult, ProcessRecord, Snapshot


class SortKey(Enum):
    """Sort keys for the process table."""

    CPU = "cpu"
    MEM = "mem"
    PID = "pid"
    USER = "user"


def cpu_busy(series: SeriesSet) -> list[float]:
    """User plus system CPU for every snapshot of the run."""
    return [user + system for user, system in zip(series.metric("cpu_user"), series.metric("cpu_system"))]


class HeaderStats(Static):
    """Header widget showing the current snapshot's system summary."""

    DEFAULT_CSS = """
    HeaderStats {
        height: auto;
        min-height: 5;
        padding: 1;
        background: $surface;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize HeaderStats."""
        super().__init__(*args, **kwargs)
        self._snapshot: Snapshot | None = None
        self._position: int = 0
        self._total: int = 0

    def compose(self) -> ComposeResult:
        """Compose the header stats layout."""
        yield Horizontal(
            Static(self._get_system_info(), id="system-info"),
            Static(self._get_mem_info(), id="mem-info"),
        )

    def update_snapshot(self, snapshot: Snapshot, position: int, total: int) -> None:
        """Show ``snapshot``, the ``position``-th (1-based) of ``total``."""
        self._snapshot = snapshot
        self._position = position
        self._total = total
        self.query_one("#system-info", Static).update(self._get_system_info())
        self.query_one("#mem-info", Static).update(self._get_mem_info())

    def _get_system_info(self) -> Text:
        """Get time, load, thread and CPU display.

        Returned as plain Text: the uptime comes from the capture and may
        contain square brackets.
        """
        if self._snapshot is None:
            return Text("No snapshots in capture")
        meta = self._snapshot.metadata
        uptime = meta.uptime or "up ?"
        return Text(
            f"Snapshot {self._position}/{self._total}  {self._snapshot.timestamp:%H:%M:%S}  "
            f"{uptime}, {meta.users} users\n"
            f"Load average: {meta.load_avg_1:.2f} {meta.load_avg_5:.2f} {meta.load_avg_15:.2f}\n"
            f"Threads: {meta.threads_total} total, {meta.threads_running} running, "
            f"{meta.threads_sleeping} sleeping, {meta.threads_stopped} stopped, "
            f"{meta.threads_zombie} zombie\n"
            f"CPU: {meta.cpu_user:.1f} us, {meta.cpu_system:.1f} sy, {meta.cpu_idle:.1f} id, "
            f"{meta.cpu_wait:.1f} wa, {meta.cpu_steal:.1f} st"
        )

    def _get_mem_info(self) -> str:
        """Get memory and swap display."""
        if self._snapshot is None:
            return ""
        meta = self._snapshot.metadata

        # Memory bar
        mem_percent = meta.mem_used / meta.mem_total * 100 if meta.mem_total else 0.0
        mem_bar_len = min(int(mem_percent / 5), 20)
        mem_bar = "[cyan]█[/cyan]" * mem_bar_len + "[dim]░[/dim]" * (20 - mem_bar_len)

        # Swap bar
        swap_percent = meta.swap_used / meta.swap_total * 100 if meta.swap_total else 0.0
        swap_bar_len = min(int(swap_percent / 5), 20)
        swap_bar = "[yellow]█[/yellow]" * swap_bar_len + "[dim]░[/dim]" * (20 - swap_bar_len)

        # Use escaped brackets for the bar containers
        return (
            f"Mem\\[{mem_bar}] {meta.mem_used:.1f}/{meta.mem_total:.1f}\n"
            f"Swp\\[{swap_bar}] {meta.swap_used:.1f}/{meta.swap_total:.1f}\n"
            f"Buff/cache: {meta.mem_buff_cache:.1f}  Free: {meta.mem_free:.1f}"
        )


class ProcessTable(Container):
    """Container for the process data table."""

    DEFAULT_CSS = """
    ProcessTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize ProcessTable."""
        super().__init__(*args, **kwargs)
        self._current_pids: set[int] = set()
        self._sort_key: SortKey = SortKey.CPU
        self._sort_reverse: bool = True  # Default: descending for CPU

    @property
    def sort_key(self) -> SortKey:
        """Get current sort key."""
        return self._sort_key

    def cycle_sort(self) -> SortKey:
        """Cycle to the next sort key, re-sort the rows and return the key."""
        keys = list(SortKey)
        current_index = keys.index(self._sort_key)
        self._sort_key = keys[(current_index + 1) % len(keys)]
        self._sort_reverse = self._sort_key in (SortKey.CPU, SortKey.MEM)
        self._apply_sort()
        return self._sort_key

    def compose(self) -> ComposeResult:
        """Compose the process table."""
        yield DataTable(id="process-table")

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        table = self.query_one("#process-table", DataTable)
        table.cursor_type = "row"

        table.add_column("PID", key="pid", width=8)
        table.add_column("USER", key="user", width=10)
        table.add_column("PR", key="priority", width=4)
        table.add_column("NI", key="nice", width=4)
        table.add_column("VIRT", key="virt", width=9)
        table.add_column("RES", key="res", width=8)
        table.add_column("S", key="state", width=3)
        table.add_column("CPU%", key="cpu", width=7)
        table.add_column("MEM%", key="mem", width=7)
        table.add_column("TIME+", key="time", width=10)
        table.add_column("Command", key="command")

    def update_processes(self, processes: list[ProcessRecord]) -> None:
        """
        Show the process table of another snapshot.

        Rows are keyed by PID; PIDs present in both snapshots are updated in
        place with update_cell instead of being re-added.
        """
        table = self.query_one("#process-table", DataTable)

        # A PID listed twice in one snapshot keeps its first row
        by_pid: dict[int, ProcessRecord] = {}
        for proc in processes:
            by_pid.setdefault(proc.pid, proc)
        new_pids = set(by_pid)

        for pid in self._current_pids - new_pids:
            try:
                table.remove_row(str(pid))
            except RowDoesNotExist:
                continue

        for pid, proc in by_pid.items():
            row_key = str(pid)
            if pid in self._current_pids:
                self._update_row(table, row_key, proc)
            else:
                self._add_row(table, row_key, proc)

        self._current_pids = new_pids
        self._apply_sort()

    def _apply_sort(self) -> None:
        """Order the rows by the current sort key."""
        table = self.query_one("#process-table", DataTable)
        key_func = {
            SortKey.CPU: float,
            SortKey.MEM: float,
            SortKey.PID: int,
            SortKey.USER: lambda user: str(user).lower(),
        }
        table.sort(self._sort_key.value, key=key_func[self._sort_key], reverse=self._sort_reverse)

    def _update_row(self, table: DataTable, row_key: str, proc: ProcessRecord) -> None:
        """Update an existing row using update_cell."""
        try:
            for column_key, value in self._cells(proc).items():
                table.update_cell(row_key, column_key, value)
        except (RowDoesNotExist, CellDoesNotExist):
            self._add_row(table, row_key, proc)

    def _add_row(self, table: DataTable, row_key: str, proc: ProcessRecord) -> None:
        """Add a new row to the table."""
        table.add_row(*self._cells(proc).values(), key=row_key)

    @staticmethod
    def _cells(proc: ProcessRecord) -> dict[str, str | Text]:
        """Display values for a process, keyed by column.

        Text copied from the capture is wrapped in Text so brackets in it
        (e.g. "[kworker/0:1H]") are shown as is.
        """
        return {
            "pid": str(proc.pid),
            "user": Text(proc.user[:10]),
            "priority": str(proc.priority),
            "nice": str(proc.nice),
            "virt": Text(proc.virt),
            "res": Text(proc.res),
            "state": Text(proc.state),
            "cpu": f"{proc.cpu_percent:5.1f}",
            "mem": f"{proc.memory_percent:5.1f}",
            "time": Text(proc.cpu_time),
            "command": Text(proc.command[:50]),
        }


class ReplayApp(App):
    """Step through the snapshots of a capture."""

    TITLE = "ttop"
    SUB_TITLE = "Threaded Top Replay"

    CSS = """
    Screen {
        layout: vertical;
    }

    #header-stats {
        dock: top;
        height: auto;
        min-height: 6;
    }

    Horizontal {
        height: auto;
    }

    #system-info {
        width: 2fr;
        padding-right: 2;
    }

    #mem-info {
        width: 1fr;
        padding-left: 2;
    }

    #cpu-sparkline {
        height: 3;
        margin: 0 1;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("n", "next_snapshot", "Next"),
        ("right", "next_snapshot", "Next"),
        ("p", "previous_snapshot", "Previous"),
        ("left", "previous_snapshot", "Previous"),
        ("home", "first_snapshot", "First"),
        ("end", "last_snapshot", "Last"),
        ("f6", "sort", "Sort"),
    ]

    def __init__(self, result: ParseResult, series: SeriesSet | None = None, title: str | None = None) -> None:
        """
        Initialize the ReplayApp.

        Args:
            result: Parsed capture to replay.
            series: Aligned series for ``result``; computed if not given.
            title: Replaces the default sub-title, e.g. with the report name.
        """
        super().__init__()
        self._result = result
        self._series = series if series is not None else align(result)
        self._index = 0
        if title:
            self.sub_title = title

    @property
    def index(self) -> int:
        """Zero-based index of the snapshot on screen."""
        return self._index

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield HeaderStats(id="header-stats")
        # A flat line stands in for an empty capture
        yield Sparkline(cpu_busy(self._series) or [0.0], summary_function=max, id="cpu-sparkline")
        yield ProcessTable()
        yield Footer()

    def on_mount(self) -> None:
        """Show the first snapshot once the widgets exist."""
        self.call_after_refresh(self._show_snapshot)

    def _show_snapshot(self) -> None:
        """Refresh the header and process table for the current index."""
        if not self._result.snapshots:
            return
        snapshot = self._result.snapshots[self._index]
        header = self.query_one("#header-stats", HeaderStats)
        header.update_snapshot(snapshot, self._index + 1, len(self._result))
        self.query_one(ProcessTable).update_processes(snapshot.processes)

    def _go_to(self, index: int) -> None:
        """Move to ``index``, clamped to the capture."""
        if not self._result.snapshots:
            return
        index = max(0, min(index, len(self._result) - 1))
        if index != self._index:
            self._index = index
            self._show_snapshot()

    def action_next_snapshot(self) -> None:
        """Step forward one snapshot."""
        self._go_to(self._index + 1)

    def action_previous_snapshot(self) -> None:
        """Step back one snapshot."""
        self._go_to(self._index - 1)

    def action_first_snapshot(self) -> None:
        """Jump to the first snapshot."""
        self._go_to(0)

    def action_last_snapshot(self) -> None:
        """Jump to the last snapshot."""
        self._go_to(len(self._result) - 1)

    def action_sort(self) -> None:
        """Handle sort action - cycle through sort keys."""
        new_sort_key = self.query_one(ProcessTable).cycle_sort()
        self.notify(f"Sort: {new_sort_key.value.upper()}")
