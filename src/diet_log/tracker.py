"""Fachada de la app: posee los stores y expone cada accion del usuario."""

from __future__ import annotations

import logging
import math
import random
from collections.abc import Callable
from datetime import date, datetime
from pathlib import Path

from dateutil import tz

from diet_log.backup import ImportResult, export_backup, export_csv, import_backup
from diet_log.delivery import ExportPayload, backup_filename, csv_filename
from diet_log.errors import InvalidEntryError, MalformedBackupError
from diet_log.metrics import (
    BmiResult,
    DashboardSummary,
    bmi,
    dashboard_summary,
    latest_weight_up_to,
)
from diet_log.model import LogEntry, UserSettings, coerce_duration, parse_day
from diet_log.reminders import (
    Notification,
    calendar_reminder_url,
    greeting,
    motivational_quote,
    pending_notifications,
)
from diet_log.storage import (
    AppConfig,
    EntryStore,
    KeyValueStore,
    SettingsStore,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def local_now() -> datetime:
    return datetime.now(tz=tz.tzlocal())


class DietTracker:
    """Registro de dieta/actividad de un usuario sobre un archivo SQLite."""

    def __init__(
        self,
        kv: KeyValueStore,
        clock: Clock = local_now,
        rng: random.Random | None = None,
    ) -> None:
        self.kv = kv
        self.entries = EntryStore(kv)
        self.settings = SettingsStore(kv)
        self._clock = clock
        self._rng = rng or random.Random()

    @classmethod
    def open(
        cls,
        db_path: Path,
        clock: Clock = local_now,
        rng: random.Random | None = None,
    ) -> DietTracker:
        return cls(KeyValueStore(db_path), clock=clock, rng=rng)

    def now(self) -> datetime:
        return self._clock()

    def today(self) -> date:
        return self._clock().date()

    def add_entry(
        self,
        *,
        day: str | date | None = None,
        weight: str | float | None = None,
        activity_type: str = "",
        duration: str | int | None = None,
        notes: str = "",
        carry_forward_weight: bool = True,
    ) -> LogEntry:
        """Create or replace the entry for ``day`` from form input.

        A blank weight falls back to the latest known weight up to that
        date; a blank date means today. A blank or invalid duration is
        dropped.

        Raises:
            InvalidEntryError: If the weight is given but not a positive
                number, or the date is not ``YYYY-MM-DD``.
        """
        entry_day = self._parse_form_day(day)
        weight_value = self._parse_form_weight(weight)
        if weight_value is None and carry_forward_weight:
            weight_value = latest_weight_up_to(self.entries.list_all(), entry_day)

        entry = LogEntry(
            date=entry_day,
            weight=weight_value,
            activity_type=activity_type or "",
            duration_minutes=coerce_duration(duration),
            notes=notes or "",
        )
        self.entries.add_or_replace(entry)
        logger.debug("Saved entry for %s", entry_day.isoformat())
        return entry

    def delete_entry(self, entry: LogEntry) -> bool:
        return self.entries.delete(entry)

    def delete_day(self, day: str | date) -> bool:
        """Delete whatever entry is stored for ``day``."""
        entry = self.entries.get(self._parse_form_day(day))
        if entry is None:
            return False
        return self.entries.delete(entry)

    def clear_all_data(self) -> None:
        """Borra todos los registros y el perfil. Irreversible."""
        self.entries.clear_all()
        self.settings.reset()
        logger.info("All entries and settings cleared")

    def save_settings(self, settings: UserSettings) -> UserSettings:
        return self.settings.save(settings)

    def summary(self) -> DashboardSummary:
        return dashboard_summary(self.entries.list_all(), self.today())

    def current_bmi(self) -> BmiResult | None:
        return bmi(self.entries.list_all(), self.settings.load())

    def export_backup_json(self) -> str:
        return export_backup(
            self.entries.list_all(),
            self.settings.load(),
            exported_at=self.now(),
        )

    def export_csv(self, *, bom: bool = True) -> str:
        return export_csv(self.entries.list_all(), bom=bom)

    def backup_payload(self) -> ExportPayload:
        return ExportPayload(
            filename=backup_filename(self.today()),
            content=self.export_backup_json(),
            media_type="application/json",
        )

    def csv_payload(self) -> ExportPayload:
        return ExportPayload(
            filename=csv_filename(self.today()),
            content=self.export_csv(),
            media_type="text/csv;charset=utf-8",
        )

    def import_backup_text(self, text: str) -> ImportResult:
        return import_backup(text, self.entries, self.settings)

    def import_backup_file(self, path: Path) -> ImportResult:
        """Restore from a backup file (UTF-8, optional BOM).

        Raises:
            MalformedBackupError: If the file is not UTF-8 text or not a
                backup envelope.
        """
        try:
            text = path.read_text(encoding="utf-8-sig")
        except UnicodeDecodeError as exc:
            raise MalformedBackupError(
                f"El archivo {path.name} no es texto UTF-8."
            ) from exc
        return self.import_backup_text(text)

    def import_pasted_text(self, text: str) -> ImportResult:
        """Restore from pasted text; the envelope must carry ``logs``."""
        return import_backup(text, self.entries, self.settings, require_logs=True)

    def app_config(self) -> AppConfig:
        return self.kv.load_app_config()

    def save_app_config(self, config: AppConfig) -> None:
        self.kv.save_app_config(config)

    def enable_notifications(self, enabled: bool = True) -> None:
        config = self.kv.load_app_config()
        self.kv.save_app_config(
            AppConfig(export_dir=config.export_dir, notifications_enabled=enabled)
        )

    def pending_notifications(self) -> list[Notification]:
        if not self.kv.load_app_config().notifications_enabled:
            return []
        return pending_notifications(
            self.entries.list_all(), self.settings.load(), self.now()
        )

    def calendar_reminder_url(self) -> str:
        return calendar_reminder_url(self.now())

    def greeting(self) -> str:
        return greeting(self.settings.load(), self.now())

    def motivational_quote(self) -> str:
        return motivational_quote(self._rng)

    def _parse_form_day(self, day: str | date | None) -> date:
        if day is None or (isinstance(day, str) and not day.strip()):
            return self.today()
        try:
            return parse_day(day)
        except ValueError as exc:
            raise InvalidEntryError(f"Fecha invalida: {day!r}") from exc

    @staticmethod
    def _parse_form_weight(weight: str | float | None) -> float | None:
        if weight is None:
            return None
        if isinstance(weight, str):
            text = weight.strip()
            if not text:
                return None
            try:
                value = float(text)
            except ValueError as exc:
                raise InvalidEntryError(
                    "Ingresa un peso valido o deja el campo vacio."
                ) from exc
        else:
            value = float(weight)
        if not math.isfinite(value) or value <= 0:
            raise InvalidEntryError("Ingresa un peso valido o deja el campo vacio.")
        return value
