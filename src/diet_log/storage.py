"""Persistencia SQLite clave/valor para registros, perfil y configuracion."""

from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any

from diet_log.model import LogEntry, UserSettings, parse_day

logger = logging.getLogger(__name__)

ENTRIES_KEY = "dietEntries"
SETTINGS_KEY = "dietUserSettings"
APP_CONFIG_KEY = "dietAppConfig"

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""


@dataclass(frozen=True)
class AppConfig:
    """Preferencias locales que no viajan en el backup."""

    export_dir: str = ""
    notifications_enabled: bool = False


@dataclass(frozen=True)
class MergePlan:
    """Resultado de un merge aun no guardado."""

    entries: dict[date, LogEntry]
    applied: int


class KeyValueStore:
    """Tabla SQLite ``key -> texto JSON``; cada escritura reemplaza el valor."""

    def __init__(self, db_path: Path) -> None:
        """Create store and ensure schema exists."""
        self._db_path = db_path
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.executescript(SCHEMA_SQL)
            conn.commit()

    def get(self, key: str) -> str | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT value FROM kv_store WHERE key = ?", (key,)
            ).fetchone()
        if row is None:
            return None
        return str(row["value"])

    def set(self, key: str, value: str) -> None:
        self.set_many({key: value})

    def set_many(self, values: Mapping[str, str]) -> None:
        """Write several keys in a single transaction."""
        with self._connect() as conn:
            conn.executemany(
                """
                INSERT INTO kv_store(key, value) VALUES(?, ?)
                ON CONFLICT(key) DO UPDATE SET value=excluded.value
                """,
                values.items(),
            )
            conn.commit()

    def load_app_config(self) -> AppConfig:
        """Devuelve configuracion guardada o defaults."""
        raw = _load_json(self.get(APP_CONFIG_KEY), APP_CONFIG_KEY)
        if not isinstance(raw, dict):
            return AppConfig()
        return AppConfig(
            export_dir=str(raw.get("exportDir") or ""),
            notifications_enabled=bool(raw.get("notificationsEnabled", False)),
        )

    def save_app_config(self, config: AppConfig) -> None:
        payload = {
            "exportDir": config.export_dir,
            "notificationsEnabled": config.notifications_enabled,
        }
        self.set(APP_CONFIG_KEY, json.dumps(payload))


class EntryStore:
    """Registros diarios, a lo sumo uno por fecha."""

    def __init__(self, kv: KeyValueStore) -> None:
        self._kv = kv
        self._entries: dict[date, LogEntry] = _entries_from_json(kv.get(ENTRIES_KEY))

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, day: date) -> LogEntry | None:
        return self._entries.get(day)

    def list_all(self) -> tuple[LogEntry, ...]:
        """Snapshot in storage order; callers sort as needed."""
        return tuple(self._entries.values())

    def add_or_replace(self, entry: LogEntry) -> None:
        """Store ``entry``, dropping any previous entry for the same date."""
        if not isinstance(entry, LogEntry):
            raise TypeError(f"Expected LogEntry, got {type(entry).__name__}")
        entries = dict(self._entries)
        entries.pop(entry.date, None)
        entries[entry.date] = entry
        self._commit(entries)

    def delete(self, entry: LogEntry) -> bool:
        """Remove the stored record equal to ``entry``.

        Returns:
            True if a record was removed.
        """
        current = self._entries.get(entry.date)
        if current is None or current != entry:
            return False
        entries = dict(self._entries)
        del entries[entry.date]
        self._commit(entries)
        return True

    def merge_import(self, records: Iterable[object]) -> int:
        """Merge external records by date; imported records win.

        Dates absent from ``records`` are left untouched. The result is
        committed in one write.

        Returns:
            Number of records applied.
        """
        plan = self.plan_merge(records)
        self.apply(plan)
        return plan.applied

    def plan_merge(self, records: Iterable[object]) -> MergePlan:
        """Compute a merge over a copy of the store without committing it."""
        merged = dict(self._entries)
        applied = 0
        for record in records:
            entry = _entry_from_record(record)
            if entry is None:
                continue
            merged[entry.date] = entry
            applied += 1
        ordered = dict(sorted(merged.items(), reverse=True))
        return MergePlan(entries=ordered, applied=applied)

    def apply(self, plan: MergePlan, extra: Mapping[str, str] | None = None) -> None:
        """Commit a merge plan, plus any ``extra`` keys, in one transaction."""
        values = {ENTRIES_KEY: self.serialized(plan.entries), **(extra or {})}
        self._kv.set_many(values)
        self._entries = plan.entries

    def clear_all(self) -> None:
        self._commit({})

    def serialized(self, entries: dict[date, LogEntry] | None = None) -> str:
        values = (entries if entries is not None else self._entries).values()
        return json.dumps([e.to_dict() for e in values], ensure_ascii=False)

    def _commit(self, entries: dict[date, LogEntry]) -> None:
        self._kv.set(ENTRIES_KEY, self.serialized(entries))
        self._entries = entries


class SettingsStore:
    """Perfil de usuario; se sobreescribe completo en cada guardado."""

    def __init__(self, kv: KeyValueStore) -> None:
        self._kv = kv

    def load(self) -> UserSettings:
        """Devuelve el perfil guardado o el registro por defecto."""
        raw = _load_json(self._kv.get(SETTINGS_KEY), SETTINGS_KEY)
        if not isinstance(raw, dict):
            return UserSettings()
        return UserSettings.from_dict(raw)

    def save(self, settings: UserSettings) -> UserSettings:
        normalized = settings.normalized()
        self._kv.set(SETTINGS_KEY, self.serialized(normalized))
        return normalized

    def reset(self) -> None:
        self.save(UserSettings())

    @staticmethod
    def serialized(settings: UserSettings) -> str:
        return json.dumps(settings.normalized().to_dict(), ensure_ascii=False)


def _load_json(raw: str | None, key: str) -> Any:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        logger.error("Stored value for %s is not valid JSON; using defaults", key)
        return None


def _entries_from_json(raw: str | None) -> dict[date, LogEntry]:
    parsed = _load_json(raw, ENTRIES_KEY)
    if parsed is None:
        return {}
    if not isinstance(parsed, list):
        logger.error("Stored entries are not a JSON array; starting empty")
        return {}
    out: dict[date, LogEntry] = {}
    for item in parsed:
        entry = _entry_from_record(item)
        if entry is not None:
            out.pop(entry.date, None)
            out[entry.date] = entry
    return out


def _entry_from_record(record: object) -> LogEntry | None:
    """Convierte un dict externo en LogEntry; None si falta o falla la fecha."""
    if not isinstance(record, dict):
        return None
    raw_date = record.get("date")
    if not raw_date:
        return None
    try:
        parse_day(raw_date)
    except ValueError:
        logger.warning("Skipping record with invalid date %r", raw_date)
        return None
    return LogEntry.from_dict(record)
