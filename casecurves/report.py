from __future__ import annotations

"""
casecurves chart + report
-------------------------
The rendering surface for a `VisibleView`:

- `render_chart` draws the "days since N cases" line chart to a PNG
- `generate_docx_report` wraps that chart in a DOCX with summary tables

Design goals:
- The pipeline never touches matplotlib/python-docx; this module only reads
  a finished `VisibleView`.
- Keep casecurves usable without plotting dependencies (lazy imports).
- Regions of the same country share a colour (ordinal palette on the
  Country/Region key), labels sit at the end of each line.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional
import io
import os
import tempfile

from .models import RegionSeries, VisibleView
from .parsing import is_invalid

METRIC_LABELS = {
    "cases": "Cases",
    "deaths": "Deaths",
    "recovered": "Recovered",
    "current_cases": "Current cases",
}


# -----------------------------
# Configuration types
# -----------------------------

@dataclass
class ChartConfig:
    """Knobs for the PNG chart."""
    title: Optional[str] = None
    width_in: float = 9.0
    height_in: float = 7.0
    dpi: int = 150
    line_width: float = 1.5
    # Skip end-of-line labels when more regions than this are drawn
    max_labels: int = 40
    show_events: bool = True


@dataclass
class ReportConfig:
    """High-level knobs to control how the report is written."""
    title: str = "Case Curves Report"
    subtitle: str = "Days since the case threshold, per region"
    sources: Dict[str, str] = field(default_factory=dict)
    chart: ChartConfig = field(default_factory=ChartConfig)

    # How many regions to list in the latest-values table
    max_rows_preview: int = 30

    # Optional: list of CLI commands used to create the current view
    command_log: Optional[List[str]] = None


def _require_matplotlib():
    try:
        import matplotlib
        import matplotlib.pyplot as plt
    except ImportError as e:
        raise ImportError(
            "Missing dependency: matplotlib.\n"
            "Install it with: python -m pip install matplotlib"
        ) from e
    return matplotlib, plt


def make_palette(keys: Iterable[str]) -> Dict[str, tuple]:
    """Ordinal colour scale: each new key takes the next tab10 colour."""
    matplotlib, _ = _require_matplotlib()
    colours = matplotlib.colormaps["tab10"].colors
    palette: Dict[str, tuple] = {}
    for k in keys:
        if k not in palette:
            palette[k] = colours[len(palette) % len(colours)]
    return palette


def _last_finite(values: List[float]) -> Optional[int]:
    for i in range(len(values) - 1, -1, -1):
        if not is_invalid(values[i]):
            return i
    return None


def _y_limits(view: VisibleView):
    if view.extent is None:
        return None
    lo, hi = view.extent
    metric = view.view.metric
    if view.view.scale == "log":
        # Series start just above the threshold, so that is the natural floor
        floor = view.view.threshold if metric == "cases" and view.view.threshold > 0 else max(lo, 1)
        return (floor, hi) if hi > floor else None
    return (min(lo, 0), hi) if hi > min(lo, 0) else None


def render_chart(
    view: VisibleView,
    out_path: str,
    config: Optional[ChartConfig] = None,
    palette: Optional[Dict[str, tuple]] = None,
) -> str:
    """Draw one line per visible region and save a PNG. Returns `out_path`."""
    config = config or ChartConfig()
    _, plt = _require_matplotlib()
    from matplotlib.ticker import FuncFormatter

    metric = view.view.metric
    palette = palette or make_palette(r.region_key for r in view.series)

    fig, ax = plt.subplots(figsize=(config.width_in, config.height_in))
    label_lines = len(view.series) <= config.max_labels

    for region in view.series:
        ys = [r.value(metric) for r in region.series]
        xs = list(range(len(ys)))
        colour = palette.get(region.region_key, "C0")
        ax.plot(xs, ys, color=colour, linewidth=config.line_width)

        last = _last_finite(ys)
        if label_lines and last is not None:
            ax.annotate(region.display_name, (xs[last], ys[last]),
                        xytext=(4, 0), textcoords="offset points",
                        va="center", fontsize="small", color=colour)

        if config.show_events:
            for day, r in enumerate(region.series):
                if r.event is None or is_invalid(ys[day]):
                    continue
                ax.scatter([day], [ys[day]], color=colour, marker="o", s=18, zorder=3)
                ax.annotate(r.event, (day, ys[day]), xytext=(0, 8), textcoords="offset points",
                            ha="center", fontsize="x-small", color=colour)

    if view.view.scale == "log":
        ax.set_yscale("log")
    limits = _y_limits(view)
    if limits is not None:
        ax.set_ylim(*limits)
    ax.set_xlim(0, max(view.max_days, 1))
    ax.yaxis.set_major_formatter(FuncFormatter(lambda v, _pos: f"{v:,.0f}"))

    threshold = view.view.threshold
    ax.set_xlabel(f"Days since >{threshold:g} cases")
    ax.set_ylabel(METRIC_LABELS.get(metric, metric))
    if config.title:
        ax.set_title(config.title)
    if not view.series:
        ax.text(0.5, 0.5, "No regions selected", transform=ax.transAxes, ha="center", va="center")

    os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
    fig.tight_layout()
    fig.savefig(out_path, dpi=config.dpi)
    plt.close(fig)
    return out_path


def _fmt(v) -> str:
    if v is None or is_invalid(v):
        return ""
    return f"{int(v):,}"


def _latest(region: RegionSeries):
    return region.series[-1] if region.series else None


def _sort_value(region: RegionSeries, metric: str) -> float:
    v = _latest(region).value(metric)
    return -1.0 if is_invalid(v) else float(v)


# -----------------------------
# Main entry point used by CLI
# -----------------------------

def generate_docx_report(
    view: VisibleView,
    out_path: str,
    *,
    config: Optional[ReportConfig] = None,
) -> str:
    """
    Generate a DOCX report (summary, chart, tables) for the visible view.

    The report only reads the view; the loaded dataset is not changed.
    """
    config = config or ReportConfig()

    # Lazy imports: only required when "report" is used.
    try:
        from docx import Document
        from docx.shared import Pt, Inches
        from docx.enum.text import WD_ALIGN_PARAGRAPH
    except ImportError as e:
        raise ImportError(
            "Missing dependency: python-docx.\n"
            "Install it with: python -m pip install python-docx"
        ) from e

    regions = [r for r in view.series if r.series]
    if not regions:
        raise ValueError("No regions to report on (visible view is empty).")

    # The PNG only lives long enough to be read back into memory
    with tempfile.TemporaryDirectory(prefix="casecurves_report_") as tmpdir:
        chart_path = render_chart(view, os.path.join(tmpdir, "chart.png"), config=config.chart)
        with open(chart_path, "rb") as f:
            chart_png = io.BytesIO(f.read())

    doc = Document()
    style = doc.styles["Normal"]
    style.font.name = "Calibri"
    style.font.size = Pt(11)

    def _center_title(text: str, size: int, bold: bool = False, italic: bool = False) -> None:
        p = doc.add_paragraph()
        r = p.add_run(text)
        r.bold = bold
        r.italic = italic
        r.font.size = Pt(size)
        p.alignment = WD_ALIGN_PARAGRAPH.CENTER

    def _kv(key: str, value: str) -> None:
        p = doc.add_paragraph()
        r = p.add_run(f"{key}: ")
        r.bold = True
        p.add_run(value)

    def _table(header: List[str], rows: List[List[str]]) -> None:
        t = doc.add_table(rows=1, cols=len(header))
        for i, h in enumerate(header):
            t.rows[0].cells[i].text = h
        for row in rows:
            cells = t.add_row().cells
            for i, v in enumerate(row):
                cells[i].text = v

    _center_title(config.title, 22, bold=True)
    _center_title(config.subtitle, 12, italic=True)

    state = view.view
    doc.add_paragraph("")
    _kv("Metric", METRIC_LABELS.get(state.metric, state.metric))
    _kv("Scale", state.scale)
    _kv("Threshold", f"first day with more than {state.threshold:g} cases")
    _kv("Regions in view", str(len(view.series)))
    _kv("Days shown", str(view.max_days))
    if view.extent is not None:
        _kv("Value range", f"{_fmt(view.extent[0])} to {_fmt(view.extent[1])}")

    if config.sources:
        doc.add_paragraph("")
        doc.add_heading("Data sources", level=1)
        for name, src in config.sources.items():
            doc.add_paragraph(f"{name}: {src}", style="List Bullet")

    doc.add_paragraph("")
    doc.add_heading("Chart", level=1)
    doc.add_picture(chart_png, width=Inches(6.5))

    doc.add_paragraph("")
    doc.add_heading("Latest values", level=1)
    ranked = sorted(regions, key=lambda r: _sort_value(r, state.metric), reverse=True)[:config.max_rows_preview]
    _table(
        ["Region", "Days", "Last date", "Cases", "Deaths", "Recovered", "Current"],
        [[r.display_name, str(len(r.series)), _latest(r).date.isoformat(),
          _fmt(_latest(r).cases), _fmt(_latest(r).deaths), _fmt(_latest(r).recovered),
          _fmt(_latest(r).current_cases)] for r in ranked],
    )

    events = [(r.display_name, day, rec) for r in view.series for day, rec in enumerate(r.series) if rec.event]
    if events:
        doc.add_paragraph("")
        doc.add_heading("Lockdown events", level=1)
        _table(["Region", "Day", "Date", "Action"],
               [[name, str(day), rec.date.isoformat(), rec.event] for name, day, rec in events])

    if config.command_log:
        doc.add_paragraph("")
        doc.add_heading("Command log (reproducibility)", level=1)
        for line in config.command_log:
            doc.add_paragraph(line, style="List Bullet")

    # -----------------------------
    # Reproducibility footer
    # -----------------------------
    doc.add_paragraph("")
    doc.add_heading("Reproducibility footer", level=1)
    from . import __version__ as casecurves_version
    from datetime import datetime as _dt
    doc.add_paragraph(f"casecurves version: {casecurves_version}")
    doc.add_paragraph(f"Report generated at: {_dt.now().isoformat(timespec='seconds')}")
    doc.add_paragraph(
        "Day 0 of each line is the first day its confirmed count exceeds the threshold. "
        "Counts that could not be parsed are left out of the chart."
    )

    os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
    doc.save(out_path)
    return out_path
