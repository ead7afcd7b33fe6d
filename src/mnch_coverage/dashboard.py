"""
Streamlit viewer for the coverage summary of a finished run.

    streamlit run src/mnch_coverage/dashboard.py
"""

from __future__ import annotations

from pathlib import Path

import pandas as pd
import streamlit as st

from mnch_coverage.analysis import REPORT_COLUMNS, missing_groups
from mnch_coverage.report import SUMMARY_CSV, build_coverage_chart, format_pct
from mnch_coverage.settings import PipelineConfig


@st.cache_data
def load_summary(output_dir: str) -> pd.DataFrame:
    path = Path(output_dir) / SUMMARY_CSV
    df = pd.read_csv(path)
    return df[REPORT_COLUMNS]


def main():
    st.set_page_config(page_title="MNCH coverage by U5MR status", layout="wide")
    st.title("ANC4 and SBA coverage by U5MR track status")
    st.caption(
        "Births-weighted coverage for countries on-track and off-track toward the under-five mortality target."
    )

    default_dir = str(PipelineConfig.from_env().output_dir)
    output_dir = st.sidebar.text_input("Output directory", value=default_dir)
    if not (Path(output_dir) / SUMMARY_CSV).exists():
        st.info(f"No {SUMMARY_CSV} in {output_dir}. Run `mnch-coverage` first.")
        return

    summary = load_summary(output_dir)
    gaps = missing_groups(summary)
    if gaps:
        st.warning(
            "No data for: " + ", ".join(f"{indicator} ({status})" for status, indicator in gaps)
        )

    cols = st.columns(max(len(summary), 1))
    for col, row in zip(cols, summary.itertuples(index=False)):
        col.metric(f"{row.indicator} · {row.track_status}", format_pct(row.weighted_coverage))

    st.plotly_chart(build_coverage_chart(summary), use_container_width=True)
    st.dataframe(summary, hide_index=True)


if __name__ == "__main__":
    main()
