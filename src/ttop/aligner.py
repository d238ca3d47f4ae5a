"""Align parsed snapshots into dense, equal-length time series."""

from collections.abc import Iterable
from dataclasses import dataclass, field

from ttop.models import ParseResult, Snapshot

TIME_FORMAT = "%H:%M:%S"

# Metadata attributes exported as series, in display order.
CPU_METRICS = ("cpu_user", "cpu_system", "cpu_idle", "cpu_wait", "cpu_steal")
MEMORY_METRICS = ("mem_total", "mem_free", "mem_used", "mem_buff_cache")
SWAP_METRICS = ("swap_total", "swap_free", "swap_used")
THREAD_METRICS = (
    "threads_total",
    "threads_running",
    "threads_sleeping",
    "threads_stopped",
    "threads_zombie",
)
LOAD_METRICS = ("load_avg_1", "load_avg_5", "load_avg_15")
METRIC_NAMES = CPU_METRICS + MEMORY_METRICS + SWAP_METRICS + THREAD_METRICS + LOAD_METRICS


@dataclass(slots=True, frozen=True)
class SnapshotSummary:
    """One row of the per-snapshot summary table."""

    time: str
    process_count: int


@dataclass(slots=True)
class SeriesSet:
    """
    Every series of a run, aligned index-for-index with ``times``.

    ``metrics`` maps a Metadata attribute name to its values, ``processes``
    maps a ``"<command>-<pid>"`` label to that process's CPU percent, zero
    where the process was not listed.
    """

    times: list[str] = field(default_factory=list)
    metrics: dict[str, list[float] | list[int]] = field(default_factory=dict)
    processes: dict[str, list[float]] = field(default_factory=dict)
    snapshots: list[SnapshotSummary] = field(default_factory=list)

    @property
    def length(self) -> int:
        """Number of snapshots, the length of every series."""
        return len(self.times)

    @property
    def process_names(self) -> list[str]:
        """Process labels in order of first appearance."""
        return list(self.processes)

    def metric(self, name: str) -> list[float] | list[int]:
        """Return one metric series by Metadata attribute name."""
        return self.metrics[name]


def process_label(command: str, pid: int) -> str:
    """Label a process series the way the report shows it."""
    return f"{command}-{pid}"


def align(snapshots: ParseResult | Iterable[Snapshot]) -> SeriesSet:
    """
    Reshape snapshots into dense series sharing one time axis.

    A process is identified by PID alone; its label comes from the first
    snapshot it appears in, even if a later snapshot shows another command
    under the same PID.
    """
    ordered = list(snapshots)
    count = len(ordered)

    series = SeriesSet()
    series.times = [snapshot.timestamp.strftime(TIME_FORMAT) for snapshot in ordered]
    series.metrics = {
        name: [getattr(snapshot.metadata, name) for snapshot in ordered] for name in METRIC_NAMES
    }
    series.snapshots = [
        SnapshotSummary(time=time, process_count=len(snapshot.processes))
        for time, snapshot in zip(series.times, ordered)
    ]

    # First pass: discover every PID and fix its label on first sight
    cpu_by_pid: dict[int, list[float]] = {}
    labels: dict[int, str] = {}
    for snapshot in ordered:
        for process in snapshot.processes:
            if process.pid not in cpu_by_pid:
                cpu_by_pid[process.pid] = [0.0] * count
                labels[process.pid] = process_label(process.command, process.pid)

    # Second pass: overwrite the zero fill wherever the PID was observed
    for index, snapshot in enumerate(ordered):
        seen: set[int] = set()
        for process in snapshot.processes:
            if process.pid in seen:
                continue
            seen.add(process.pid)
            cpu_by_pid[process.pid][index] = process.cpu_percent

    series.processes = {labels[pid]: values for pid, values in cpu_by_pid.items()}
    return series
