"""Snapshot parser for captured ``top`` batch output.

A capture is the text printed by a repeated ``top -b`` run: each iteration
starts with a ``top - HH:MM:SS up ...`` header, followed by labelled summary
lines (``Threads:``, ``%Cpu(s):``, ``MiB Mem :``, ``MiB Swap:``), a column
header and one line per process.

Parsing never fails on content. Lines that cannot be understood are skipped
with a warning on this module's logger and the rest of the capture is still
read; only a read error on an input stream aborts the parse.
"""

import io
import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import IO

from ttop.models import Metadata, ParseResult, ProcessRecord, Snapshot

logger = logging.getLogger(__name__)

BOUNDARY_PREFIX = "top - "
HEADER_TOKEN = "PID"
BYTE_ORDER_MARK = "\ufeff"
MIN_PROCESS_FIELDS = 12

_TIME_RE = re.compile(r"^top - (\d{2}:\d{2}:\d{2})", re.ASCII)
_HEADER_RE = re.compile(
    r"^top - \d{2}:\d{2}:\d{2} up\s+(.+?),\s+(\d+)\s+users?,"
    r"\s+load average:\s*([\d.]+),\s*([\d.]+),\s*([\d.]+)",
    re.ASCII,
)
_INT_RE = re.compile(r"[+-]?\d+", re.ASCII)
_FLOAT_RE = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)", re.ASCII)

_MEMORY_UNITS = ("KiB", "MiB", "GiB", "TiB", "PiB", "EiB")

RawCapture = str | bytes | bytearray | IO[str] | IO[bytes]


class CaptureReadError(OSError):
    """Raised when the capture stream itself cannot be read."""


class ParserState(Enum):
    """Whether a snapshot is open to receive lines."""

    NO_SNAPSHOT = "no_snapshot"
    IN_SNAPSHOT = "in_snapshot"


def parse_int(text: str) -> int:
    """Parse a signed base-10 integer, rejecting anything else."""
    if not _INT_RE.fullmatch(text):
        raise ValueError(f"invalid integer {text!r}")
    return int(text)


def parse_float(text: str) -> float:
    """Parse a plain decimal number (no exponent, no nan/inf)."""
    if not _FLOAT_RE.fullmatch(text):
        raise ValueError(f"invalid number {text!r}")
    return float(text)


def lenient_int(text: str) -> int:
    """Parse an integer, returning 0 when the text is not one (e.g. 'rt')."""
    try:
        return parse_int(text)
    except ValueError:
        return 0


@dataclass(slots=True, frozen=True)
class SummaryLayout:
    """Expected shape of a labelled summary line.

    ``fields`` lists, in order, the unit word that must follow each number and
    the Metadata attribute it is stored in (``None`` for values that are
    checked but not kept).
    """

    name: str
    kind: type
    fields: tuple[tuple[str, str | None], ...]
    trailing_period: bool = False

    def parse(self, value: str) -> dict[str, int | float]:
        """
        Parse a value clause into ``{attribute: number}``.

        Raises:
            ValueError: If the clause does not have the expected shape.
        """
        segments = value.split(",")
        expected = len(self.fields)
        if len(segments) < expected:
            raise ValueError(f"expected {expected} fields, found {len(segments)}")

        values: dict[str, int | float] = {}
        for index, (unit, attribute) in enumerate(self.fields):
            tokens = segments[index].split()
            is_last = index == expected - 1
            # Only the final field may carry trailing text ("used.  12032.0 avail Mem")
            if len(tokens) < 2 or (len(tokens) > 2 and not is_last):
                raise ValueError(f"malformed field {segments[index].strip()!r}")
            number, word = tokens[0], tokens[1]
            if is_last and self.trailing_period:
                word = word.removesuffix(".")
            if word != unit:
                raise ValueError(f"expected {unit!r} after {number!r}, found {word!r}")
            parsed = parse_int(number) if self.kind is int else parse_float(number)
            if attribute is not None:
                values[attribute] = parsed
        return values


_THREAD_FIELDS = (
    ("total", "threads_total"),
    ("running", "threads_running"),
    ("sleeping", "threads_sleeping"),
    ("stopped", "threads_stopped"),
    ("zombie", "threads_zombie"),
)
_CPU_FIELDS = (
    ("us", "cpu_user"),
    ("sy", "cpu_system"),
    ("ni", None),
    ("id", "cpu_idle"),
    ("wa", "cpu_wait"),
    ("hi", None),
    ("si", None),
    ("st", "cpu_steal"),
)
_MEMORY_FIELDS = (
    ("total", "mem_total"),
    ("free", "mem_free"),
    ("used", "mem_used"),
    ("buff/cache", "mem_buff_cache"),
)
_SWAP_FIELDS = (
    ("total", "swap_total"),
    ("free", "swap_free"),
    ("used", "swap_used"),
)

SUMMARY_LAYOUTS: dict[str, SummaryLayout] = {
    "Threads": SummaryLayout("threads", int, _THREAD_FIELDS),
    "Tasks": SummaryLayout("tasks", int, _THREAD_FIELDS),
    "%Cpu(s)": SummaryLayout("cpu", float, _CPU_FIELDS),
    **{f"{unit} Mem": SummaryLayout("memory", float, _MEMORY_FIELDS) for unit in _MEMORY_UNITS},
    **{
        f"{unit} Swap": SummaryLayout("swap", float, _SWAP_FIELDS, trailing_period=True)
        for unit in _MEMORY_UNITS
    },
}


def split_label(line: str) -> tuple[str, str] | None:
    """Split a summary line on its first colon, or return None if it has none."""
    label, sep, value = line.partition(":")
    if not sep:
        return None
    return label.strip(), value.strip()


def parse_header_fields(line: str, metadata: Metadata) -> bool:
    """
    Fill uptime, user count and load averages from a ``top -`` header line.

    Each number is stored independently, so one bad value leaves only that
    field at zero.

    Returns:
        True if the header carried the uptime/users/load average clauses.
    """
    match = _HEADER_RE.match(line)
    if match is None:
        return False

    uptime, users, load_1, load_5, load_15 = match.groups()
    metadata.uptime = f"up {uptime.strip()}"
    metadata.users = lenient_int(users)
    for attribute, text in (("load_avg_1", load_1), ("load_avg_5", load_5), ("load_avg_15", load_15)):
        try:
            setattr(metadata, attribute, parse_float(text))
        except ValueError:
            logger.debug("Ignoring malformed load average %r", text)
    return True


def _read_stream(stream: IO[str] | IO[bytes]) -> str | bytes:
    """Read a whole stream, keeping lone ``\\r`` characters inside their line."""
    reconfigure = getattr(stream, "reconfigure", None)
    if reconfigure is not None:
        try:
            reconfigure(newline="")
        except io.UnsupportedOperation:
            # Already partly read; the stream keeps its own newline handling
            logger.debug("Capture stream already read from, newline translation left as is")
    try:
        return stream.read()
    except (OSError, UnicodeDecodeError) as exc:
        raise CaptureReadError(f"error reading capture: {exc}") from exc


def _iter_lines(raw: RawCapture) -> Iterator[str]:
    """Yield the capture line by line, decoding bytes as UTF-8."""
    if not isinstance(raw, (str, bytes, bytearray)):
        raw = _read_stream(raw)
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")
    yield from raw.removeprefix(BYTE_ORDER_MARK).split("\n")


class SnapshotParser:
    """
    State machine turning a ``top`` capture into snapshots.

    A parser holds state only for the duration of one ``parse`` call; each
    call starts from ``NO_SNAPSHOT`` with an empty result.
    """

    def __init__(self, min_process_fields: int = MIN_PROCESS_FIELDS) -> None:
        """
        Initialize the SnapshotParser.

        Args:
            min_process_fields: Fields a process line needs to be accepted.
                Never lower than 12, the column count of the process table.
        """
        self._min_process_fields = max(MIN_PROCESS_FIELDS, min_process_fields)
        self._state = ParserState.NO_SNAPSHOT
        self._snapshots: list[Snapshot] = []
        self._current: Snapshot | None = None

    @property
    def state(self) -> ParserState:
        """Current state of the parser."""
        return self._state

    def parse(self, raw: RawCapture) -> ParseResult:
        """
        Parse a complete capture.

        Args:
            raw: Capture text, its UTF-8 bytes, or a readable stream.

        Returns:
            The snapshots found, in input order.

        Raises:
            CaptureReadError: If reading from a stream fails.
        """
        self._state = ParserState.NO_SNAPSHOT
        self._snapshots = []
        self._current = None

        skipped = 0
        for line_number, raw_line in enumerate(_iter_lines(raw), start=1):
            line = raw_line.strip()
            if not line:
                continue
            if not self._feed(line, line_number):
                skipped += 1

        result = ParseResult(snapshots=self._snapshots)
        logger.info(
            "Parsed %d snapshots with %d process records (%d lines skipped)",
            len(result),
            result.process_count,
            skipped,
        )
        self._snapshots = []
        self._current = None
        self._state = ParserState.NO_SNAPSHOT
        return result

    def _feed(self, line: str, line_number: int) -> bool:
        """Apply one non-blank line. Returns False if the line was discarded."""
        if line.startswith(BOUNDARY_PREFIX):
            self._start_snapshot(line, line_number)
            return True

        snapshot = self._ensure_snapshot()

        labelled = split_label(line)
        if labelled is not None and labelled[0] in SUMMARY_LAYOUTS:
            label, value = labelled
            return self._apply_summary(snapshot.metadata, label, value, line_number)

        fields = line.split()
        if fields[0] == HEADER_TOKEN:
            logger.debug("Line %d: skipping process table header", line_number)
            return True

        process = self._parse_process(fields, line_number)
        if process is None:
            return False
        snapshot.processes.append(process)
        return True

    def _start_snapshot(self, line: str, line_number: int) -> None:
        """Open a new snapshot from a ``top -`` boundary line."""
        snapshot = Snapshot()

        time_match = _TIME_RE.match(line)
        if time_match is None:
            logger.warning("Line %d: no HH:MM:SS time in snapshot header: %s", line_number, line)
        else:
            token = time_match.group(1)
            try:
                snapshot.timestamp = datetime.strptime(token, "%H:%M:%S").time()
            except ValueError as exc:
                logger.warning("Line %d: error parsing time %r: %s", line_number, token, exc)

        if not parse_header_fields(line, snapshot.metadata):
            logger.debug("Line %d: snapshot header without uptime/load average", line_number)

        self._snapshots.append(snapshot)
        self._current = snapshot
        self._state = ParserState.IN_SNAPSHOT
        logger.debug("Line %d: snapshot %d at %s", line_number, len(self._snapshots), snapshot.timestamp)

    def _ensure_snapshot(self) -> Snapshot:
        """Return the open snapshot, creating the implicit first one if needed."""
        if self._state is ParserState.NO_SNAPSHOT or self._current is None:
            self._current = Snapshot()
            self._snapshots.append(self._current)
            self._state = ParserState.IN_SNAPSHOT
            logger.debug("Data before first snapshot header, starting an implicit snapshot")
        return self._current

    def _apply_summary(self, metadata: Metadata, label: str, value: str, line_number: int) -> bool:
        """Parse a labelled summary line into ``metadata``, all fields or none."""
        layout = SUMMARY_LAYOUTS[label]
        try:
            values = layout.parse(value)
        except ValueError as exc:
            logger.warning("Line %d: error parsing %s summary: %s", line_number, layout.name, exc)
            return False

        for attribute, number in values.items():
            setattr(metadata, attribute, number)
        return True

    def _parse_process(self, fields: list[str], line_number: int) -> ProcessRecord | None:
        """Build a ProcessRecord from a split process line, or None if it is unusable."""
        if len(fields) < self._min_process_fields:
            logger.warning(
                "Line %d could not be parsed as process data or unrecognized format: %s",
                line_number,
                " ".join(fields),
            )
            return None

        try:
            pid = parse_int(fields[0])
        except ValueError:
            logger.warning("Line %d: error converting PID %r to int", line_number, fields[0])
            return None
        try:
            cpu = parse_float(fields[8])
        except ValueError:
            logger.warning("Line %d: error converting CPU %r to float", line_number, fields[8])
            return None
        try:
            mem = parse_float(fields[9])
        except ValueError:
            logger.warning("Line %d: error converting MEM %r to float", line_number, fields[9])
            return None

        return ProcessRecord(
            pid=pid,
            user=fields[1],
            priority=lenient_int(fields[2]),
            nice=lenient_int(fields[3]),
            virt=fields[4],
            res=fields[5],
            shr=fields[6],
            state=fields[7],
            cpu_percent=cpu,
            memory_percent=mem,
            cpu_time=fields[10],
            command=" ".join(fields[11:]),
        )


def parse(raw: RawCapture) -> ParseResult:
    """Parse a ``top`` capture with a fresh SnapshotParser."""
    return SnapshotParser().parse(raw)
