"""Command line entry point: turn a ``top`` capture into a report."""

import argparse
import hashlib
import logging
import os
import sys
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

from ttop.aligner import align
from ttop.parser import parse
from ttop.report import DEFAULT_TITLE, ReportError, ReportOptions, write_report

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
LOG_LEVEL_ENV = "TTOP_LOG_LEVEL"
_HANDLER_NAME = "ttop-cli"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

try:
    __version__ = version("ttop-report")
except PackageNotFoundError:
    __version__ = "dev"


def configure_logging(level: str | int = logging.WARNING) -> None:
    """Send log records to stderr at ``level``, installing the handler once."""
    root = logging.getLogger()
    root.setLevel(level)
    if any(handler.get_name() == _HANDLER_NAME for handler in root.handlers):
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)


def clean_input_path(raw: str) -> Path:
    """
    Normalize the capture path, refusing any that climbs with ``..``.

    Raises:
        ValueError: If the normalized path contains a ``..`` part.
    """
    cleaned = os.path.normpath(raw)
    if ".." in Path(cleaned).parts:
        raise ValueError(f"invalid input path: {raw}")
    return Path(cleaned)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="ttop",
        description="Convert captured 'top -H -b' output into an HTML report or replay it in the terminal.",
    )
    parser.add_argument("input", nargs="?", help="Capture file produced by a repeated top run")
    parser.add_argument("-o", "--output", default="ttop.html", help="Output HTML file path (default: ttop.html)")
    parser.add_argument("-n", "--name", default=DEFAULT_TITLE, help="Report title")
    parser.add_argument("-m", "--metadata", default="", help="Additional metadata as JSON string")
    parser.add_argument("--view", action="store_true", help="Replay the capture in the terminal instead of writing HTML")
    parser.add_argument("--version", action="store_true", help="Show version and exit")

    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Log debug detail")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Only log errors")
    verbosity.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default=os.environ.get(LOG_LEVEL_ENV, "WARNING").upper(),
        help=f"Log level (default: ${LOG_LEVEL_ENV} or WARNING)",
    )
    return parser


def _log_level(args: argparse.Namespace) -> str:
    if args.verbose:
        return "DEBUG"
    if args.quiet:
        return "ERROR"
    return args.log_level if args.log_level in LOG_LEVELS else "WARNING"


def main(argv: list[str] | None = None) -> int:
    """Run ttop and return the process exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return 0
    if not args.input:
        parser.error("Please provide an input file")

    configure_logging(_log_level(args))

    try:
        input_path = clean_input_path(args.input)
        data = input_path.read_bytes()
    except (ValueError, OSError) as exc:
        logger.error("Error reading input file: %s", exc)
        return 1

    result = parse(data)
    series = align(result)

    if args.view:
        # textual is only loaded for --view
        from ttop.app import ReplayApp

        ReplayApp(result, series, title=args.name).run()
        return 0

    options = ReportOptions(
        title=args.name,
        metadata=args.metadata,
        file_name=input_path.name,
        file_hash=hashlib.sha256(data).hexdigest(),
        app_version=__version__,
    )
    try:
        output_path = write_report(series, args.output, options)
    except ReportError as exc:
        logger.error("Error generating report: %s", exc)
        return 1

    print(f"report '{args.name}' written to {output_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
