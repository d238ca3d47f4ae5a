"""Data models for ttop."""

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import time


@dataclass(slots=True)
class Metadata:
    """System summary for one snapshot, filled in as its header lines are read."""

    threads_total: int = 0
    threads_running: int = 0
    threads_sleeping: int = 0
    threads_stopped: int = 0
    threads_zombie: int = 0
    cpu_user: float = 0.0
    cpu_system: float = 0.0
    cpu_idle: float = 0.0
    cpu_wait: float = 0.0
    cpu_steal: float = 0.0
    mem_total: float = 0.0  # Unit is whatever the capture used (usually MiB)
    mem_free: float = 0.0
    mem_used: float = 0.0
    mem_buff_cache: float = 0.0
    swap_total: float = 0.0
    swap_free: float = 0.0
    swap_used: float = 0.0
    load_avg_1: float = 0.0
    load_avg_5: float = 0.0
    load_avg_15: float = 0.0
    uptime: str = ""
    users: int = 0


@dataclass(slots=True, frozen=True)
class ProcessRecord:
    """Immutable row of a snapshot's process table."""

    pid: int
    user: str
    priority: int
    nice: int
    virt: str  # Display strings, unit suffixes such as 'g' kept as-is
    res: str
    shr: str
    state: str  # 'R', 'S', 'Z', 'D', etc.
    cpu_percent: float
    memory_percent: float
    cpu_time: str
    command: str


@dataclass(slots=True)
class Snapshot:
    """One point-in-time capture: system metadata plus its process table."""

    timestamp: time = field(default_factory=time)  # No date in the source format
    metadata: Metadata = field(default_factory=Metadata)
    processes: list[ProcessRecord] = field(default_factory=list)


@dataclass(slots=True)
class ParseResult:
    """Snapshots of a capture, in the order their boundary lines appeared."""

    snapshots: list[Snapshot] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.snapshots)

    def __iter__(self) -> Iterator[Snapshot]:
        return iter(self.snapshots)

    @property
    def process_count(self) -> int:
        """Total number of process records across all snapshots."""
        return sum(len(snapshot.processes) for snapshot in self.snapshots)
