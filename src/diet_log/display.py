"""Formato de texto para vistas previas (CLI y app)."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date

import pandas as pd

from diet_log.metrics import DashboardSummary, entries_to_frame
from diet_log.model import LogEntry

HISTORY_HEADERS: dict[str, str] = {
    "date": "Fecha",
    "weight": "Peso",
    "activity_type": "Actividad",
    "duration_minutes": "Min",
    "calories_kcal": "Kcal",
    "notes": "Notas",
}


def history_text(entries: Sequence[LogEntry], limit: int = 120) -> str:
    """Historial newest-first como tabla alineada; vacio si no hay datos."""
    df = entries_to_frame(entries)
    if df.empty:
        return ""
    display_df = display_frame(df.head(limit)).rename(columns=HISTORY_HEADERS)
    return display_df.to_string(index=False, max_colwidth=28)


def summary_lines(summary: DashboardSummary) -> list[str]:
    return [
        f"Peso actual: {format_preview_value(summary.current_weight) or '—'}",
        f"Cambio total: {format_preview_value(summary.total_change) or '—'}",
        f"Registros esta semana: {summary.weekly_entries}",
        f"Racha: {summary.streak}",
        f"Calorias esta semana: {summary.weekly_calories:.0f}",
    ]


def display_frame(df: pd.DataFrame) -> pd.DataFrame:
    """Prepare a string-renderable DataFrame for aligned preview."""
    if df.empty:
        return df.copy()
    out = df.copy()
    for col in out.columns:
        out[col] = out[col].map(format_preview_value).astype(object)
    if "calories_kcal" in df.columns:
        out["calories_kcal"] = df["calories_kcal"].map(_format_calories)
    return out


def format_preview_value(value: object) -> str:
    """Format preview values without NaN/scientific notation."""
    if value is None or (not isinstance(value, str | date) and pd.isna(value)):
        return ""
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        value = round(value, 1)
        if value.is_integer():
            return str(int(value))
        return format(value, "f").rstrip("0").rstrip(".")
    return str(value)


def _format_calories(value: object) -> str:
    if value is None or pd.isna(value):
        return ""
    return f"{float(value):.0f}"
