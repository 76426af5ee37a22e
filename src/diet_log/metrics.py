"""Metricas derivadas (peso, BMI, racha, calorias) a partir de los registros.

Todas las funciones son puras: reciben un snapshot de registros (y el perfil
cuando hace falta) y no guardan estado entre llamadas.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, timedelta

import pandas as pd

from diet_log.model import LogEntry, UserSettings

DEFAULT_MET = 5.0

_MET_BY_ACTIVITY: dict[str, float] = {
    "walking": 4.0,
    "running": 10.0,
    "cycling": 8.0,
    "gym": 5.0,
    "other": 5.0,
}

WEEK_DAYS = 7

HISTORY_COLUMNS = [
    "date",
    "weight",
    "activity_type",
    "duration_minutes",
    "calories_kcal",
    "notes",
]


@dataclass(frozen=True)
class BmiResult:
    """BMI value and its category label."""

    value: float
    category: str


@dataclass(frozen=True)
class DashboardSummary:
    """Valores del tablero principal."""

    current_weight: float | None
    total_change: float | None
    weekly_entries: int
    streak: int
    weekly_calories: float


def latest_weight_up_to(
    entries: Sequence[LogEntry], cutoff: date | None = None
) -> float | None:
    """Weight of the latest weight-bearing entry on or before ``cutoff``.

    Args:
        entries: Store snapshot.
        cutoff: Optional inclusive upper bound for entry dates.

    Returns:
        Weight in kg, or None if no entry qualifies.
    """
    eligible = [
        e for e in entries if e.has_weight and (cutoff is None or e.date <= cutoff)
    ]
    if not eligible:
        return None
    return max(eligible, key=lambda e: e.date).weight


def met_for_activity(activity_type: str) -> float:
    return _MET_BY_ACTIVITY.get(activity_type, DEFAULT_MET)


def calories_for_entry(entry: LogEntry, entries: Sequence[LogEntry]) -> float | None:
    """Calorias = MET * peso (kg) * (minutos / 60).

    Usa el peso del propio registro o, si falta, el ultimo peso conocido hasta
    esa fecha. Devuelve None (no cero) cuando no hay duracion o peso.
    """
    duration = entry.duration_minutes
    if duration is None or duration <= 0:
        return None

    weight = entry.weight
    if weight is None or weight <= 0:
        weight = latest_weight_up_to(entries, entry.date)
    if weight is None or weight <= 0:
        return None

    calories = met_for_activity(entry.activity_type) * weight * (duration / 60)
    return calories if calories > 0 else None


def week_window(today: date) -> tuple[date, date]:
    """Inclusive trailing 7-day window ending today."""
    return today - timedelta(days=WEEK_DAYS - 1), today


def entries_in_week(entries: Sequence[LogEntry], today: date) -> list[LogEntry]:
    start, end = week_window(today)
    return [e for e in entries if start <= e.date <= end]


def weekly_entry_count(entries: Sequence[LogEntry], today: date) -> int:
    return len(entries_in_week(entries, today))


def weekly_calories(entries: Sequence[LogEntry], today: date) -> float:
    total = 0.0
    for entry in entries_in_week(entries, today):
        calories = calories_for_entry(entry, entries)
        if calories is not None:
            total += calories
    return total


def current_streak(entries: Sequence[LogEntry], today: date) -> int:
    """Consecutive logged days ending at the most recent entry.

    The streak is alive only if the most recent entry is today or
    yesterday; the count runs backwards from that entry, not from today.
    """
    days = {e.date for e in entries}
    if not days:
        return 0
    most_recent = max(days)
    if most_recent not in (today, today - timedelta(days=1)):
        return 0

    streak = 1
    cursor = most_recent - timedelta(days=1)
    while cursor in days:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


def bmi_category(value: float) -> str:
    if value < 18.5:
        return "underweight"
    if value < 25:
        return "normal"
    if value < 30:
        return "overweight"
    return "obese"


def bmi(entries: Sequence[LogEntry], settings: UserSettings) -> BmiResult | None:
    """BMI from the latest recorded weight and the profile height."""
    height_cm = settings.height_cm
    if height_cm is None or height_cm <= 0:
        return None
    weight = latest_weight_up_to(entries)
    if weight is None:
        return None
    height_m = height_cm / 100
    value = weight / (height_m * height_m)
    return BmiResult(value=value, category=bmi_category(value))


def dashboard_summary(entries: Sequence[LogEntry], today: date) -> DashboardSummary:
    weighed = sorted((e.date, e.weight) for e in entries if e.weight is not None)
    current_weight: float | None = None
    total_change: float | None = None
    if weighed:
        earliest, latest = weighed[0][1], weighed[-1][1]
        current_weight = latest
        # Positivo = perdida de peso.
        total_change = earliest - latest

    return DashboardSummary(
        current_weight=current_weight,
        total_change=total_change,
        weekly_entries=weekly_entry_count(entries, today),
        streak=current_streak(entries, today),
        weekly_calories=weekly_calories(entries, today),
    )


def entries_to_frame(entries: Sequence[LogEntry]) -> pd.DataFrame:
    """History table: one row per entry, newest first, with calories."""
    rows = [
        {
            "date": e.date,
            "weight": e.weight,
            "activity_type": e.activity_type,
            "duration_minutes": e.duration_minutes,
            "calories_kcal": calories_for_entry(e, entries),
            "notes": e.notes,
        }
        for e in entries
    ]
    if not rows:
        return pd.DataFrame(columns=HISTORY_COLUMNS)
    df = pd.DataFrame(rows, columns=HISTORY_COLUMNS)
    return df.sort_values("date", ascending=False).reset_index(drop=True)


def weight_trend(entries: Sequence[LogEntry]) -> pd.DataFrame:
    """Weight-bearing entries oldest first, with ``MM-DD`` labels."""
    rows = [
        {"date": e.date, "label": e.date.strftime("%m-%d"), "weight": e.weight}
        for e in entries
        if e.has_weight
    ]
    if not rows:
        return pd.DataFrame(columns=["date", "label", "weight"])
    df = pd.DataFrame(rows)
    return df.sort_values("date").reset_index(drop=True)
