"""Modelos tipados para registros diarios y perfil de usuario."""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from typing import Any

_ISO_DAY = re.compile(r"\d{4}-\d{2}-\d{2}")

ACTIVITY_TYPES: tuple[str, ...] = ("walking", "running", "cycling", "gym", "other")


@dataclass(frozen=True)
class LogEntry:
    """One day's recorded weight and/or activity."""

    date: date
    weight: float | None = None
    activity_type: str = ""
    duration_minutes: int | None = None
    notes: str = ""

    @property
    def has_weight(self) -> bool:
        return self.weight is not None

    def to_dict(self) -> dict[str, Any]:
        """Serializa con los nombres de campo del formato de backup."""
        return {
            "date": self.date.isoformat(),
            "weight": self.weight,
            "activityType": self.activity_type,
            "notes": self.notes,
            "durationMinutes": self.duration_minutes,
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> LogEntry:
        """Build an entry from a stored/imported mapping.

        Args:
            raw: Mapping with ``date`` and optional ``weight``,
                ``activityType``, ``durationMinutes`` and ``notes``.

        Returns:
            Entry with coerced fields (invalid numbers become ``None``).

        Raises:
            ValueError: If ``date`` is not a ``YYYY-MM-DD`` calendar date.
        """
        return cls(
            date=parse_day(raw.get("date")),
            weight=coerce_weight(raw.get("weight")),
            activity_type=_coerce_text(raw.get("activityType")),
            duration_minutes=coerce_duration(raw.get("durationMinutes")),
            notes=_coerce_text(raw.get("notes")),
        )


@dataclass(frozen=True)
class UserSettings:
    """Perfil del usuario (registro unico)."""

    first_name: str = ""
    height_cm: float | None = None
    weigh_in_day: int | None = None
    profile_pic_url: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "firstName": self.first_name,
            "heightCm": self.height_cm,
            "weighInDay": self.weigh_in_day,
            "profilePicUrl": self.profile_pic_url,
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> UserSettings:
        """Build settings from a mapping, coercing height and weigh-in day."""
        return cls(
            first_name=_coerce_text(raw.get("firstName")),
            height_cm=coerce_height(raw.get("heightCm")),
            weigh_in_day=coerce_weekday(raw.get("weighInDay")),
            profile_pic_url=_coerce_text(raw.get("profilePicUrl")).strip(),
        )

    def normalized(self) -> UserSettings:
        """Return a copy with height and weigh-in day coerced."""
        return UserSettings(
            first_name=self.first_name or "",
            height_cm=coerce_height(self.height_cm),
            weigh_in_day=coerce_weekday(self.weigh_in_day),
            profile_pic_url=(self.profile_pic_url or "").strip(),
        )


def parse_day(value: object) -> date:
    """Parse a ``YYYY-MM-DD`` string (or pass a ``date`` through).

    Raises:
        ValueError: If the value is not a valid calendar date.
    """
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Invalid date: {value!r}")
    text = value.strip()
    if not _ISO_DAY.fullmatch(text):
        raise ValueError(f"Invalid date: {value!r}")
    return date.fromisoformat(text)


def coerce_weight(value: object) -> float | None:
    """Numero o texto numerico positivo -> float; cualquier otra cosa -> None."""
    number = _to_float(value)
    if number is None or number <= 0:
        return None
    return number


def coerce_duration(value: object) -> int | None:
    """Numero o texto numerico -> minutos enteros positivos; si no, None."""
    number = _to_float(value)
    if number is None:
        return None
    minutes = int(number)
    return minutes if minutes > 0 else None


def coerce_height(value: object) -> float | None:
    return coerce_weight(value)


def coerce_weekday(value: object) -> int | None:
    """Indice de dia 0-6 (0 = domingo) o None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, int) and 0 <= value <= 6:
        return value
    return None


def _to_float(value: object) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int | float):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(number):
        return None
    return number


def _coerce_text(value: object) -> str:
    if value is None:
        return ""
    return str(value)
