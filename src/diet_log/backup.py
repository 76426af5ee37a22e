"""Exportacion e importacion: backup JSON completo y CSV de registros."""

from __future__ import annotations

import csv
import io
import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from dateutil import parser as date_parser
from dateutil import tz

from diet_log.errors import MalformedBackupError, NoDataError
from diet_log.metrics import calories_for_entry
from diet_log.model import LogEntry, UserSettings
from diet_log.storage import SETTINGS_KEY, EntryStore, SettingsStore

logger = logging.getLogger(__name__)

BACKUP_VERSION = 1

CSV_HEADER: tuple[str, ...] = (
    "Date",
    "Weight (kg)",
    "Activity",
    "Duration (min)",
    "Calories",
    "Notes",
)

_BOM = "\ufeff"


@dataclass(frozen=True)
class ImportResult:
    """Resumen de una restauracion para mostrar al usuario."""

    total_entries: int
    applied_records: int
    settings_replaced: bool
    exported_at: datetime | None = None


def export_backup(
    entries: Sequence[LogEntry],
    settings: UserSettings,
    exported_at: datetime | None = None,
) -> str:
    """Serialize entries and settings into the versioned backup envelope.

    Args:
        entries: Store snapshot.
        settings: Current user settings.
        exported_at: Timestamp to record (default: now, UTC).

    Returns:
        Indented JSON text.
    """
    stamp = exported_at or datetime.now(tz=tz.tzutc())
    data = {
        "version": BACKUP_VERSION,
        "exportedAt": format_timestamp(stamp),
        "userSettings": settings.to_dict(),
        "logs": [e.to_dict() for e in entries],
    }
    return json.dumps(data, indent=2, ensure_ascii=False)


def format_timestamp(stamp: datetime) -> str:
    """ISO-8601 UTC con milisegundos y sufijo ``Z``."""
    if stamp.tzinfo is None:
        stamp = stamp.replace(tzinfo=tz.tzutc())
    utc = stamp.astimezone(tz.tzutc()).replace(tzinfo=None)
    return utc.isoformat(timespec="milliseconds") + "Z"


def export_csv(entries: Sequence[LogEntry], *, bom: bool = True) -> str:
    """Render entries as CSV in store order.

    Cells are quoted only when they need it, except notes, which are always
    quoted with doubled internal quotes.

    Raises:
        NoDataError: If there are no entries.
    """
    if not entries:
        raise NoDataError("No hay datos para exportar")

    lines = [_csv_line(CSV_HEADER)]
    for entry in entries:
        calories = calories_for_entry(entry, entries)
        cells = (
            entry.date.isoformat(),
            _format_number(entry.weight),
            entry.activity_type,
            _format_number(entry.duration_minutes),
            "" if calories is None else str(round(calories)),
        )
        note = entry.notes.replace('"', '""')
        lines.append(f'{_csv_line(cells)},"{note}"')
    content = "\n".join(lines)
    return _BOM + content if bom else content


def _csv_line(cells: Sequence[str]) -> str:
    buffer = io.StringIO()
    csv.writer(buffer, lineterminator="").writerow(cells)
    return buffer.getvalue()


def parse_backup(text: str) -> dict[str, Any]:
    """Parse backup text into its envelope mapping.

    Raises:
        MalformedBackupError: If the text is not a JSON object.
    """
    try:
        parsed = json.loads(text)
    except (json.JSONDecodeError, TypeError) as exc:
        raise MalformedBackupError(
            "El archivo de backup no es un JSON valido."
        ) from exc
    if not isinstance(parsed, dict):
        raise MalformedBackupError("El backup debe ser un objeto JSON.")
    return parsed


def import_backup(
    text: str,
    entry_store: EntryStore,
    settings_store: SettingsStore,
    *,
    require_logs: bool = False,
) -> ImportResult:
    """Restore a backup, merging logs by date and replacing settings.

    Nothing is written unless the envelope parses. Entries and settings are
    committed in one transaction.

    Args:
        text: Backup JSON text.
        entry_store: Store receiving the merged logs.
        settings_store: Store whose profile is overwritten.
        require_logs: Reject envelopes whose ``logs`` is missing or null (pasted
            text); an empty array is accepted.

    Returns:
        Import summary with the final entry count.

    Raises:
        MalformedBackupError: If the text is not a backup envelope.
    """
    envelope = parse_backup(text)
    if require_logs and envelope.get("logs") is None:
        raise MalformedBackupError("El texto no parece un backup valido.")

    settings: UserSettings | None = None
    raw_settings = envelope.get("userSettings")
    if isinstance(raw_settings, dict):
        settings = UserSettings.from_dict(raw_settings)
    elif raw_settings:
        logger.warning("Ignoring userSettings of type %s", type(raw_settings).__name__)

    logs = envelope.get("logs")
    applied = 0
    if isinstance(logs, list):
        extra = {}
        if settings is not None:
            extra[SETTINGS_KEY] = settings_store.serialized(settings)
        plan = entry_store.plan_merge(logs)
        entry_store.apply(plan, extra=extra)
        applied = plan.applied
    elif settings is not None:
        settings_store.save(settings)

    result = ImportResult(
        total_entries=len(entry_store),
        applied_records=applied,
        settings_replaced=settings is not None,
        exported_at=_parse_exported_at(envelope.get("exportedAt")),
    )
    logger.info(
        "Backup restored: %d records applied, %d entries total",
        result.applied_records,
        result.total_entries,
    )
    return result


def _parse_exported_at(value: object) -> datetime | None:
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return date_parser.isoparse(value)
    except ValueError:
        logger.debug("Unparseable exportedAt %r", value)
        return None


def _format_number(value: float | int | None) -> str:
    """Sin notacion cientifica ni ``.0`` sobrante; vacio si falta."""
    if value is None:
        return ""
    if isinstance(value, int):
        return str(value)
    if value.is_integer():
        return str(int(value))
    return format(value, "f").rstrip("0").rstrip(".")
