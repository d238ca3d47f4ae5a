"""Tests for the ttop command line."""

import hashlib
import logging

import pytest

from ttop import cli


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Undo the handler and level main() installs on the root logger."""
    root = logging.getLogger()
    saved_level = root.level
    yield
    for handler in [h for h in root.handlers if h.get_name() == "ttop-cli"]:
        root.removeHandler(handler)
    root.setLevel(saved_level)


@pytest.fixture
def capture_file(tmp_path, sample_capture):
    path = tmp_path / "ttop.txt"
    path.write_text(sample_capture, encoding="utf-8")
    return path


def test_main_writes_report(tmp_path, capture_file, capsys):
    """Test the default run writes an HTML report and says where."""
    out = tmp_path / "report.html"

    status = cli.main([str(capture_file), "-o", str(out), "-n", "Nightly", "-m", '{"host": "db1"}'])

    assert status == 0
    content = out.read_text(encoding="utf-8")
    assert "<title>Nightly</title>" in content
    assert "{&quot;host&quot;: &quot;db1&quot;}" in content
    assert "ttop.txt" in content
    assert hashlib.sha256(capture_file.read_bytes()).hexdigest()[:6] in content
    assert f"report 'Nightly' written to {out}" in capsys.readouterr().out


def test_main_version(capsys):
    """Test --version prints the version and exits cleanly."""
    assert cli.main(["--version"]) == 0
    assert capsys.readouterr().out.strip() == cli.__version__


def test_main_requires_input():
    """Test a missing input argument is a usage error."""
    with pytest.raises(SystemExit) as excinfo:
        cli.main([])

    assert excinfo.value.code == 2


def test_main_missing_file(tmp_path, caplog):
    """Test an unreadable input file fails with status 1."""
    with caplog.at_level(logging.ERROR):
        status = cli.main([str(tmp_path / "missing.txt"), "-o", str(tmp_path / "out.html")])

    assert status == 1
    assert "Error reading input file" in caplog.text
    assert not (tmp_path / "out.html").exists()


def test_main_refuses_parent_traversal(caplog):
    """Test an input path climbing out with .. is refused."""
    with caplog.at_level(logging.ERROR):
        status = cli.main(["../capture.txt"])

    assert status == 1
    assert "invalid input path" in caplog.text


def test_main_bad_output_path(capture_file, caplog):
    """Test a refused output path fails with status 1."""
    with caplog.at_level(logging.ERROR):
        status = cli.main([str(capture_file), "-o", "../out.html"])

    assert status == 1
    assert "Error generating report" in caplog.text


def test_main_view_launches_replay(capture_file, monkeypatch):
    """Test --view hands the parsed capture to the replay app."""
    launched = {}

    def fake_run(self):
        launched["snapshots"] = len(self._result)
        launched["sub_title"] = self.sub_title

    monkeypatch.setattr("ttop.app.ReplayApp.run", fake_run)

    assert cli.main([str(capture_file), "--view", "-n", "Nightly"]) == 0
    assert launched == {"snapshots": 3, "sub_title": "Nightly"}


def test_clean_input_path():
    """Test input paths are normalized."""
    assert str(cli.clean_input_path("data/./x/../ttop.txt")) == str(cli.clean_input_path("data/ttop.txt"))
    with pytest.raises(ValueError):
        cli.clean_input_path("data/../../ttop.txt")


@pytest.mark.parametrize(
    "argv,expected",
    [
        (["in.txt"], "WARNING"),
        (["in.txt", "-v"], "DEBUG"),
        (["in.txt", "-q"], "ERROR"),
        (["in.txt", "--log-level", "INFO"], "INFO"),
    ],
)
def test_log_level_flags(argv, expected):
    """Test verbosity flags pick the log level."""
    args = cli.build_parser().parse_args(argv)

    assert cli._log_level(args) == expected


def test_log_level_from_environment(monkeypatch):
    """Test TTOP_LOG_LEVEL sets the default level."""
    monkeypatch.setenv("TTOP_LOG_LEVEL", "info")

    args = cli.build_parser().parse_args(["in.txt"])

    assert cli._log_level(args) == "INFO"


def test_configure_logging_installs_one_handler():
    """Test repeated configuration does not stack handlers."""
    cli.configure_logging("INFO")
    cli.configure_logging("DEBUG")

    root = logging.getLogger()
    handlers = [h for h in root.handlers if h.get_name() == "ttop-cli"]
    assert len(handlers) == 1
    assert root.level == logging.DEBUG
