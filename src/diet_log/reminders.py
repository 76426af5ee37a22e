"""Recordatorios: saludo, frases motivadoras, avisos de pesaje y calendario."""

from __future__ import annotations

import random
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from urllib.parse import urlencode

from dateutil import tz

from diet_log.model import LogEntry, UserSettings

CALENDAR_URL = "https://calendar.google.com/calendar/render"
REMINDER_HOUR = 20
REMINDER_MINUTES = 15

MOTIVATIONAL_QUOTES: tuple[str, ...] = (
    "The first step is always the hardest.",
    "Persistence is the key to success.",
    "Don't give up what you want most for what you want now.",
    "Your body can do anything. It's your mind you have to convince.",
    "Every day is a new opportunity.",
    "Believe in yourself and in what you can do.",
)


@dataclass(frozen=True)
class Notification:
    title: str
    body: str


def weekday_index(day: date) -> int:
    """Dia de la semana con domingo = 0 (convencion de ``weighInDay``)."""
    return day.isoweekday() % 7


def greeting(settings: UserSettings, now: datetime) -> str:
    if now.hour < 12:
        base = "Good morning"
    elif now.hour < 18:
        base = "Good afternoon"
    else:
        base = "Good evening"
    name = settings.first_name.strip()
    return f"{base}, {name}!" if name else f"{base}!"


def motivational_quote(
    rng: random.Random, quotes: Sequence[str] = MOTIVATIONAL_QUOTES
) -> str:
    """Frase al azar para el tablero; vacio si no hay frases."""
    if not quotes:
        return ""
    return rng.choice(quotes)


def pending_notifications(
    entries: Sequence[LogEntry], settings: UserSettings, now: datetime
) -> list[Notification]:
    """Weigh-in reminders due at ``now``.

    - Today is the weigh-in day and nothing is logged today.
    - Yesterday was the weigh-in day, yesterday has no entry and today
      has none either.
    """
    if settings.weigh_in_day is None:
        return []
    logged = {e.date for e in entries}
    today = now.date()
    yesterday = today - timedelta(days=1)
    out: list[Notification] = []

    if today not in logged and weekday_index(today) == settings.weigh_in_day:
        name = settings.first_name.strip()
        title = f"Hi {name}, today is your weigh-in day!" if name else (
            "Today is your weigh-in day!"
        )
        out.append(Notification(title, "Don't forget to step on the scale and log it."))

    if (
        weekday_index(yesterday) == settings.weigh_in_day
        and yesterday not in logged
        and today not in logged
    ):
        out.append(
            Notification(
                "You missed yesterday's weigh-in",
                "No problem, you can weigh in and log it today.",
            )
        )
    return out


def calendar_reminder_url(now: datetime) -> str:
    """Google Calendar link for a daily 20:00-20:15 reminder starting today."""
    local_now = now if now.tzinfo is not None else now.replace(tzinfo=tz.tzlocal())
    start = local_now.replace(hour=REMINDER_HOUR, minute=0, second=0, microsecond=0)
    end = start + timedelta(minutes=REMINDER_MINUTES)
    params = {
        "action": "TEMPLATE",
        "text": "Diet log reminder",
        "details": "Time to log today's weight and activity.",
        "dates": f"{_calendar_stamp(start)}/{_calendar_stamp(end)}",
        "recur": "RRULE:FREQ=DAILY",
    }
    return f"{CALENDAR_URL}?{urlencode(params)}"


def _calendar_stamp(moment: datetime) -> str:
    return moment.astimezone(tz.tzutc()).strftime("%Y%m%dT%H%M%SZ")
