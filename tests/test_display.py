from __future__ import annotations

from datetime import date

import pandas as pd

from diet_log.display import (
    display_frame,
    format_preview_value,
    history_text,
    summary_lines,
)
from diet_log.metrics import DashboardSummary
from diet_log.model import LogEntry


def test_format_preview_value() -> None:
    assert format_preview_value(None) == ""
    assert format_preview_value(float("nan")) == ""
    assert format_preview_value(80.0) == "80"
    assert format_preview_value(79.46) == "79.5"
    assert format_preview_value(date(2024, 3, 1)) == "2024-03-01"
    assert format_preview_value("gym") == "gym"


def test_display_frame_rounds_calories() -> None:
    df = pd.DataFrame({"weight": [80.25, None], "calories_kcal": [399.6, None]})
    out = display_frame(df)
    assert out["weight"].tolist() == ["80.2", ""]
    assert out["calories_kcal"].tolist() == ["400", ""]


def test_history_text_newest_first() -> None:
    entries = [
        LogEntry(date=date(2024, 3, 1), weight=80.0),
        LogEntry(date=date(2024, 3, 2), weight=79.5, notes="ok"),
    ]
    text = history_text(entries)
    lines = text.splitlines()
    assert "Fecha" in lines[0]
    assert "2024-03-02" in lines[1]
    assert "2024-03-01" in lines[2]
    assert history_text([]) == ""


def test_summary_lines_with_missing_weight() -> None:
    lines = summary_lines(
        DashboardSummary(
            current_weight=None,
            total_change=None,
            weekly_entries=0,
            streak=0,
            weekly_calories=0.0,
        )
    )
    assert lines[0] == "Peso actual: —"
    assert lines[-1] == "Calorias esta semana: 0"
