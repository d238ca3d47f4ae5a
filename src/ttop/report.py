"""Self-contained HTML report for an aligned capture.

The page embeds every series as JSON and draws it with ECharts loaded from a
CDN, so the output is a single file that can be mailed or attached to a
ticket.
"""

import html
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ttop.aligner import SeriesSet

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Threaded Top Report"
ECHARTS_URL = "https://cdn.jsdelivr.net/npm/echarts@5.5.0/dist/echarts.min.js"

# (element id, chart title, [(series label, metric name), ...])
CHARTS: tuple[tuple[str, str, tuple[tuple[str, str], ...]], ...] = (
    (
        "cpu-chart",
        "CPU (%)",
        (
            ("user", "cpu_user"),
            ("system", "cpu_system"),
            ("idle", "cpu_idle"),
            ("wait", "cpu_wait"),
            ("steal", "cpu_steal"),
        ),
    ),
    (
        "mem-chart",
        "Memory",
        (
            ("total", "mem_total"),
            ("free", "mem_free"),
            ("used", "mem_used"),
            ("buff/cache", "mem_buff_cache"),
        ),
    ),
    (
        "swap-chart",
        "Swap",
        (("total", "swap_total"), ("free", "swap_free"), ("used", "swap_used")),
    ),
    (
        "threads-chart",
        "Threads",
        (
            ("total", "threads_total"),
            ("running", "threads_running"),
            ("sleeping", "threads_sleeping"),
            ("stopped", "threads_stopped"),
            ("zombie", "threads_zombie"),
        ),
    ),
    (
        "load-chart",
        "Load average",
        (("1 min", "load_avg_1"), ("5 min", "load_avg_5"), ("15 min", "load_avg_15")),
    ),
)


class ReportError(Exception):
    """Raised when the report cannot be written."""


@dataclass(slots=True)
class ReportOptions:
    """Text shown around the charts."""

    title: str = DEFAULT_TITLE
    metadata: str = ""
    file_name: str = ""
    file_hash: str = ""
    app_version: str = "dev"

    @property
    def file_hash_short(self) -> str:
        """First six characters of the input hash."""
        return self.file_hash[:6]


def script_json(value: Any) -> str:
    """Serialize ``value`` as JSON that is safe inside a <script> element."""
    text = json.dumps(value, separators=(",", ":"))
    return text.replace("<", "\\u003c").replace(">", "\\u003e").replace("&", "\\u0026")


def sanitize_output_path(output_path: str | os.PathLike[str]) -> Path:
    """
    Normalize an output path, refusing any that climbs with ``..``.

    Raises:
        ReportError: If the normalized path still contains a ``..`` part.
    """
    cleaned = os.path.normpath(os.fspath(output_path))
    if ".." in Path(cleaned).parts:
        raise ReportError(f"invalid output path: {output_path}")
    return Path(cleaned)


def build_payload(series: SeriesSet) -> dict[str, Any]:
    """Collect the JSON blobs the page scripts read."""
    return {
        "times": series.times,
        "metrics": series.metrics,
        "processNames": series.process_names,
        "processCpuSeries": [
            {"name": name, "type": "line", "data": values} for name, values in series.processes.items()
        ],
    }


def _chart_layout() -> list[dict[str, Any]]:
    return [
        {"id": element_id, "title": title, "series": [{"name": label, "metric": metric} for label, metric in lines]}
        for element_id, title, lines in CHARTS
    ]


def _snapshot_rows(series: SeriesSet) -> str:
    rows = [
        f"<tr><td>{index}</td><td>{html.escape(row.time)}</td><td>{row.process_count}</td></tr>"
        for index, row in enumerate(series.snapshots, start=1)
    ]
    if not rows:
        return '<tr><td colspan="3">No snapshots in this capture.</td></tr>'
    return "\n        ".join(rows)


def render_report(series: SeriesSet, options: ReportOptions | None = None) -> str:
    """Render the full HTML document for ``series``."""
    options = options or ReportOptions()
    title = html.escape(options.title)
    metadata = html.escape(options.metadata)
    file_name = html.escape(options.file_name)
    file_hash = html.escape(options.file_hash)
    file_hash_short = html.escape(options.file_hash_short)
    app_version = html.escape(options.app_version)
    payload = build_payload(series)

    chart_divs = "\n    ".join(
        f'<section class="card"><div id="{element_id}" class="chart"></div></section>'
        for element_id, _, _ in CHARTS
    )

    return f"""<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <title>{title}</title>
  <script src="{ECHARTS_URL}"></script>
  <style>
    body {{
      margin: 0;
      padding: 16px 24px;
      font-family: ui-sans-serif, system-ui, -apple-system, "Segoe UI", Roboto, Helvetica, Arial, sans-serif;
      background: #f6f7f9;
      color: #1f2328;
    }}
    header h1 {{ margin: 0 0 4px 0; font-size: 22px; }}
    .meta {{ color: #57606a; font-size: 13px; white-space: pre-wrap; }}
    .source {{ color: #57606a; font-size: 12px; font-family: ui-monospace, Menlo, Consolas, monospace; }}
    .card {{
      background: #fff;
      border: 1px solid #d0d7de;
      border-radius: 6px;
      margin: 16px 0;
      padding: 8px;
    }}
    .chart {{ width: 100%; height: 320px; }}
    #process-chart {{ height: 480px; }}
    table {{ border-collapse: collapse; font-size: 13px; }}
    th, td {{ border-bottom: 1px solid #d0d7de; padding: 4px 12px; text-align: left; }}
  </style>
</head>
<body>
  <header>
    <h1>{title}</h1>
    <div class="meta">{metadata}</div>
    <div class="source">
      {file_name} <span title="{file_hash}">sha256:{file_hash_short}</span> &middot; ttop {app_version}
    </div>
  </header>
  <main>
    {chart_divs}
    <section class="card"><div id="process-chart" class="chart"></div></section>
    <section class="card">
      <h2>Snapshots</h2>
      <table>
        <thead><tr><th>#</th><th>Time</th><th>Processes</th></tr></thead>
        <tbody>
        {_snapshot_rows(series)}
        </tbody>
      </table>
    </section>
  </main>
  <script>
    const times = {script_json(payload["times"])};
    const metrics = {script_json(payload["metrics"])};
    const processNames = {script_json(payload["processNames"])};
    const processCpuSeries = {script_json(payload["processCpuSeries"])};
    const charts = {script_json(_chart_layout())};

    function lineChart(elementId, title, legend, series) {{
      const chart = echarts.init(document.getElementById(elementId));
      chart.setOption({{
        title: {{ text: title }},
        tooltip: {{ trigger: "axis" }},
        legend: {{ data: legend, top: 24, type: "scroll" }},
        grid: {{ top: 64, left: 56, right: 24, bottom: 56 }},
        xAxis: {{ type: "category", data: times }},
        yAxis: {{ type: "value" }},
        dataZoom: [{{ type: "inside" }}, {{ type: "slider" }}],
        series: series
      }});
      window.addEventListener("resize", () => chart.resize());
      return chart;
    }}

    for (const layout of charts) {{
      lineChart(
        layout.id,
        layout.title,
        layout.series.map((s) => s.name),
        layout.series.map((s) => ({{ name: s.name, type: "line", showSymbol: false, data: metrics[s.metric] }}))
      );
    }}

    lineChart("process-chart", "Process CPU (%)", processNames, processCpuSeries);
  </script>
</body>
</html>
"""


def write_report(
    series: SeriesSet,
    output_path: str | os.PathLike[str],
    options: ReportOptions | None = None,
) -> Path:
    """
    Render ``series`` and write it to ``output_path``.

    Parent directories are created as needed.

    Returns:
        The normalized path written.

    Raises:
        ReportError: If the path is refused or the file cannot be written.
    """
    path = sanitize_output_path(output_path)
    document = render_report(series, options)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(document, encoding="utf-8")
    except OSError as exc:
        raise ReportError(f"cannot write report to {path}: {exc}") from exc

    logger.info("Report written to %s (%d snapshots, %d processes)", path, series.length, len(series.processes))
    return path
