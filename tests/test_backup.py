from __future__ import annotations

import csv
import io
import json
from datetime import date, datetime
from pathlib import Path

import pytest
from dateutil import tz

from diet_log.backup import (
    BACKUP_VERSION,
    export_backup,
    export_csv,
    format_timestamp,
    import_backup,
    parse_backup,
)
from diet_log.errors import MalformedBackupError, NoDataError
from diet_log.model import LogEntry, UserSettings
from diet_log.storage import EntryStore, KeyValueStore, SettingsStore


def _stores(path: Path) -> tuple[EntryStore, SettingsStore]:
    kv = KeyValueStore(path)
    return EntryStore(kv), SettingsStore(kv)


def test_export_backup_envelope() -> None:
    stamp = datetime(2024, 1, 2, 3, 4, 5, 678000, tzinfo=tz.tzutc())
    entries = [LogEntry(date=date(2024, 1, 2), weight=80.0, notes="ok")]
    text = export_backup(entries, UserSettings(first_name="Ana"), exported_at=stamp)

    data = json.loads(text)
    assert data["version"] == BACKUP_VERSION
    assert data["exportedAt"] == "2024-01-02T03:04:05.678Z"
    assert data["userSettings"]["firstName"] == "Ana"
    assert data["logs"] == [
        {
            "date": "2024-01-02",
            "weight": 80.0,
            "activityType": "",
            "notes": "ok",
            "durationMinutes": None,
        }
    ]


def test_format_timestamp_converts_to_utc() -> None:
    local = datetime(2024, 1, 2, 12, 0, tzinfo=tz.tzoffset(None, -3 * 3600))
    assert format_timestamp(local) == "2024-01-02T15:00:00.000Z"


def test_backup_round_trip_restores_entries_and_settings(tmp_path: Path) -> None:
    source_entries, source_settings = _stores(tmp_path / "a.sqlite3")
    source_entries.add_or_replace(
        LogEntry(
            date=date(2024, 3, 1),
            weight=80.5,
            activity_type="running",
            duration_minutes=30,
            notes='dijo "hola"',
        )
    )
    source_entries.add_or_replace(LogEntry(date=date(2024, 3, 2), notes="descanso"))
    settings = source_settings.save(
        UserSettings(first_name="Ana", height_cm=170.0, weigh_in_day=1)
    )
    text = export_backup(source_entries.list_all(), settings)

    entries, settings_store = _stores(tmp_path / "b.sqlite3")
    result = import_backup(text, entries, settings_store)

    assert result.total_entries == 2
    assert result.applied_records == 2
    assert result.settings_replaced is True
    assert result.exported_at is not None
    assert sorted(entries.list_all(), key=lambda e: e.date) == sorted(
        source_entries.list_all(), key=lambda e: e.date
    )
    assert settings_store.load() == settings


def test_import_merges_with_existing_entries(tmp_path: Path) -> None:
    entries, settings = _stores(tmp_path / "db.sqlite3")
    entries.add_or_replace(LogEntry(date=date(2024, 3, 1), weight=80.0))
    entries.add_or_replace(LogEntry(date=date(2024, 3, 5), weight=79.0))
    text = json.dumps(
        {
            "logs": [
                {"date": "2024-03-01", "weight": "78.5"},
                {"date": "2024-03-02", "weight": "abc"},
            ]
        }
    )

    result = import_backup(text, entries, settings)

    assert result.total_entries == 3
    assert result.settings_replaced is False
    assert entries.get(date(2024, 3, 1)) == LogEntry(date=date(2024, 3, 1), weight=78.5)
    assert entries.get(date(2024, 3, 2)) == LogEntry(date=date(2024, 3, 2))
    assert entries.get(date(2024, 3, 5)) == LogEntry(date=date(2024, 3, 5), weight=79.0)


@pytest.mark.parametrize("text", ["not json", "[1, 2]", '"text"', ""])
def test_malformed_backup_leaves_store_untouched(tmp_path: Path, text: str) -> None:
    entries, settings = _stores(tmp_path / "db.sqlite3")
    entries.add_or_replace(LogEntry(date=date(2024, 3, 1), weight=80.0))
    settings.save(UserSettings(first_name="Ana"))

    with pytest.raises(MalformedBackupError):
        import_backup(text, entries, settings)

    assert entries.list_all() == (LogEntry(date=date(2024, 3, 1), weight=80.0),)
    assert settings.load() == UserSettings(first_name="Ana")


def test_settings_only_backup_replaces_profile(tmp_path: Path) -> None:
    entries, settings = _stores(tmp_path / "db.sqlite3")
    settings.save(UserSettings(first_name="Ana", height_cm=170.0))

    result = import_backup('{"userSettings": {"firstName": "Bea"}}', entries, settings)

    assert result.total_entries == 0
    assert settings.load() == UserSettings(first_name="Bea")


def test_require_logs_rejects_envelope_without_logs(tmp_path: Path) -> None:
    entries, settings = _stores(tmp_path / "db.sqlite3")
    with pytest.raises(MalformedBackupError):
        import_backup(
            '{"userSettings": {"firstName": "Bea"}}',
            entries,
            settings,
            require_logs=True,
        )
    assert settings.load() == UserSettings()


def test_parse_backup_returns_mapping() -> None:
    assert parse_backup('{"version": 1}') == {"version": 1}


def test_export_csv_format() -> None:
    entries = [
        LogEntry(
            date=date(2024, 3, 1),
            weight=80.0,
            activity_type="running",
            duration_minutes=30,
            notes='dijo "hola", chau',
        ),
        LogEntry(date=date(2024, 3, 2), weight=79.25),
        LogEntry(date=date(2024, 3, 3)),
    ]
    text = export_csv(entries)

    assert text.startswith("\ufeff")
    lines = text.lstrip("\ufeff").split("\n")
    assert lines[0] == "Date,Weight (kg),Activity,Duration (min),Calories,Notes"
    assert lines[1] == '2024-03-01,80,running,30,400,"dijo ""hola"", chau"'
    assert lines[2] == '2024-03-02,79.25,,,,""'
    assert lines[3] == '2024-03-03,,,,,""'
    assert len(lines) == 4


def test_export_csv_without_bom_and_empty() -> None:
    text = export_csv([LogEntry(date=date(2024, 3, 1))], bom=False)
    assert text.startswith("Date,")
    with pytest.raises(NoDataError):
        export_csv([])


def test_export_csv_reads_back_with_csv_module(tmp_path: Path) -> None:
    entries, _ = _stores(tmp_path / "db.sqlite3")
    entries.merge_import(
        [
            {"date": "2024-03-01", "activityType": "yoga, stretch", "notes": "a"},
            {"date": "2024-03-02", "activityType": 'say "om"', "notes": "x\ny"},
        ]
    )
    text = export_csv(entries.list_all(), bom=False)

    rows = list(csv.reader(io.StringIO(text)))
    assert [len(row) for row in rows] == [6, 6, 6]
    assert rows[1] == ["2024-03-02", "", 'say "om"', "", "", "x\ny"]
    assert rows[2] == ["2024-03-01", "", "yoga, stretch", "", "", "a"]


def test_import_overwrite_does_not_inherit_fields(tmp_path: Path) -> None:
    entries, settings = _stores(tmp_path / "db.sqlite3")
    entries.add_or_replace(LogEntry(date=date(2024, 1, 1), weight=80.0, notes="x"))

    import_backup(
        '{"logs": [{"date": "2024-01-01", "weight": "79.5"}]}', entries, settings
    )

    stored = entries.get(date(2024, 1, 1))
    assert stored is not None
    assert stored.weight == 79.5
    assert stored.notes == ""
    assert len(entries) == 1
