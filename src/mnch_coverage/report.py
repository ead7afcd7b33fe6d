"""
Chart and document rendering for a finished coverage summary.

Nothing here computes coverage; it only lays out what
:func:`analysis.aggregate_coverage` produced.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Dict, Optional

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
from jinja2 import Environment, FileSystemLoader, select_autoescape

from .analysis import SUMMARY_COLUMNS, missing_groups
from .ingest_health import INDICATORS
from .ingest_mortality import OFF_TRACK, ON_TRACK, TRACK_STATUSES

STATUS_COLOURS = {ON_TRACK: "#1f78b4", OFF_TRACK: "#e31a1c"}
TEMPLATES = {"html": "coverage_report.html.j2", "markdown": "coverage_report.md.j2"}
EXTENSIONS = {"html": "html", "markdown": "md"}

SUMMARY_CSV = "coverage_summary.csv"
CHART_HTML = "coverage_chart.html"


@dataclass
class ReportArtifacts:
    summary_csv: Path
    chart_html: Path
    document: Path


def _get_template_env() -> Environment:
    """Jinja2 loader over the packaged report templates; only .html.j2 is autoescaped."""
    templates_dir = Path(__file__).parent / "templates"
    return Environment(
        loader=FileSystemLoader(str(templates_dir)),
        autoescape=select_autoescape(enabled_extensions=("html.j2",)),
        trim_blocks=True,
        lstrip_blocks=True,
    )


def format_pct(value: float) -> str:
    return f"{value}%"


def build_coverage_chart(summary: pd.DataFrame) -> go.Figure:
    """Grouped bars per indicator, one per track status, on a 0-100 axis."""
    data = summary[SUMMARY_COLUMNS].assign(
        label=summary["weighted_coverage"].map(format_pct)
    )
    fig = px.bar(
        data,
        x="indicator",
        y="weighted_coverage",
        color="track_status",
        barmode="group",
        text="label",
        color_discrete_map=STATUS_COLOURS,
        category_orders={
            "track_status": list(TRACK_STATUSES),
            "indicator": list(INDICATORS),
        },
        labels={
            "indicator": "Health Service Indicator",
            "weighted_coverage": "Population-Weighted Coverage (%)",
            "track_status": "U5MR Target Status",
        },
        title="Population-Weighted Coverage of ANC4 and SBA",
    )
    fig.update_traces(textposition="outside")
    fig.update_yaxes(range=[0, 100])
    fig.update_layout(
        template="plotly_white",
        legend=dict(orientation="h", yanchor="top", y=-0.15, xanchor="center", x=0.5),
        title_x=0.5,
    )
    return fig


def _prepare_context(
    summary: pd.DataFrame,
    chart: go.Figure,
    context: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    records = summary.to_dict(orient="records")
    base = {
        "generated_on": date.today().strftime("%B %d, %Y"),
        "rows": records,
        "missing_groups": missing_groups(summary),
        "chart_html": chart.to_html(full_html=False, include_plotlyjs="cdn"),
        "chart_file": CHART_HTML,
        "min_year": None,
        "max_year": None,
        "target_year": None,
        "format_pct": format_pct,
    }
    base.update(context or {})
    return base


def render_document(
    summary: pd.DataFrame,
    chart: go.Figure,
    fmt: str = "html",
    context: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Render the report document.

    Failure modes:
        - Raises KeyError for a format other than "html" or "markdown"
        - Raises jinja2.TemplateError if a template is malformed
    """

    env = _get_template_env()
    template = env.get_template(TEMPLATES[fmt])
    return template.render(**_prepare_context(summary, chart, context))


def write_report(
    summary: pd.DataFrame,
    output_dir: Path,
    report_name: str = "coverage_report",
    fmt: str = "html",
    context: Optional[Dict[str, Any]] = None,
) -> ReportArtifacts:
    """Write the summary CSV, the chart and the report document."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    summary_csv = output_dir / SUMMARY_CSV
    summary.to_csv(summary_csv, index=False)

    chart = build_coverage_chart(summary)
    chart_html = output_dir / CHART_HTML
    chart.write_html(str(chart_html), include_plotlyjs="cdn")

    document = output_dir / f"{report_name}.{EXTENSIONS[fmt]}"
    document.write_text(render_document(summary, chart, fmt, context), encoding="utf-8")
    return ReportArtifacts(summary_csv=summary_csv, chart_html=chart_html, document=document)
