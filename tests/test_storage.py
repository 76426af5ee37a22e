from __future__ import annotations

import logging
from datetime import date
from pathlib import Path

import pytest

from diet_log.model import LogEntry, UserSettings
from diet_log.storage import (
    ENTRIES_KEY,
    SETTINGS_KEY,
    AppConfig,
    EntryStore,
    KeyValueStore,
    SettingsStore,
)


def _kv(tmp_path: Path) -> KeyValueStore:
    return KeyValueStore(tmp_path / "nested" / "diet.sqlite3")


def test_kv_store_get_set_and_app_config(tmp_path: Path) -> None:
    kv = _kv(tmp_path)
    assert kv.get("missing") is None
    kv.set("a", "1")
    kv.set("a", "2")
    kv.set_many({"b": "3", "c": "4"})
    assert kv.get("a") == "2"
    assert kv.get("c") == "4"

    assert kv.load_app_config() == AppConfig()
    kv.save_app_config(AppConfig(export_dir="/out", notifications_enabled=True))
    assert KeyValueStore(kv.db_path).load_app_config() == AppConfig(
        export_dir="/out", notifications_enabled=True
    )


def test_add_or_replace_keeps_one_entry_per_date(tmp_path: Path) -> None:
    kv = _kv(tmp_path)
    store = EntryStore(kv)
    store.add_or_replace(LogEntry(date=date(2024, 3, 1), weight=80.0))
    store.add_or_replace(LogEntry(date=date(2024, 3, 2), weight=79.5))
    store.add_or_replace(LogEntry(date=date(2024, 3, 1), weight=79.0, notes="x"))

    assert len(store) == 2
    assert store.get(date(2024, 3, 1)) == LogEntry(
        date=date(2024, 3, 1), weight=79.0, notes="x"
    )

    reloaded = EntryStore(KeyValueStore(kv.db_path))
    assert reloaded.list_all() == store.list_all()


def test_add_or_replace_rejects_non_entries(tmp_path: Path) -> None:
    store = EntryStore(_kv(tmp_path))
    with pytest.raises(TypeError):
        store.add_or_replace({"date": "2024-03-01"})  # type: ignore[arg-type]


def test_delete_requires_exact_match(tmp_path: Path) -> None:
    store = EntryStore(_kv(tmp_path))
    stored = LogEntry(date=date(2024, 3, 1), weight=80.0)
    store.add_or_replace(stored)

    assert store.delete(LogEntry(date=date(2024, 3, 1), weight=81.0)) is False
    assert len(store) == 1
    assert store.delete(stored) is True
    assert len(store) == 0
    assert store.delete(stored) is False


def test_merge_import_overwrites_matching_dates_only(tmp_path: Path) -> None:
    store = EntryStore(_kv(tmp_path))
    store.add_or_replace(LogEntry(date=date(2024, 3, 1), weight=80.0, notes="old"))
    store.add_or_replace(LogEntry(date=date(2024, 3, 3), weight=79.0))

    applied = store.merge_import(
        [
            {"date": "2024-03-01", "weight": 78.0, "notes": "new"},
            {"date": "2024-03-02", "activityType": "walking", "durationMinutes": 20},
            {"date": "2024-02-30", "weight": 70},
            {"weight": 70},
            "garbage",
        ]
    )

    assert applied == 2
    assert [e.date for e in store.list_all()] == [
        date(2024, 3, 3),
        date(2024, 3, 2),
        date(2024, 3, 1),
    ]
    assert store.get(date(2024, 3, 1)) == LogEntry(
        date=date(2024, 3, 1), weight=78.0, notes="new"
    )
    assert store.get(date(2024, 3, 3)) == LogEntry(date=date(2024, 3, 3), weight=79.0)


def test_plan_merge_does_not_write(tmp_path: Path) -> None:
    kv = _kv(tmp_path)
    store = EntryStore(kv)
    plan = store.plan_merge([{"date": "2024-03-01", "weight": 80}])
    assert plan.applied == 1
    assert len(store) == 0
    assert kv.get(ENTRIES_KEY) is None


def test_corrupt_values_fall_back_to_defaults(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    kv = _kv(tmp_path)
    kv.set(ENTRIES_KEY, "{not json")
    kv.set(SETTINGS_KEY, "[]")

    with caplog.at_level(logging.ERROR):
        store = EntryStore(kv)
    assert len(store) == 0
    assert "not valid JSON" in caplog.text
    assert SettingsStore(kv).load() == UserSettings()


def test_settings_store_save_normalizes_and_reset(tmp_path: Path) -> None:
    kv = _kv(tmp_path)
    settings = SettingsStore(kv)
    saved = settings.save(
        UserSettings(first_name="Ana", height_cm=0, weigh_in_day=3)
    )
    assert saved == UserSettings(first_name="Ana", weigh_in_day=3)
    assert SettingsStore(kv).load() == saved

    settings.reset()
    assert settings.load() == UserSettings()
