"""CLI del registro de dieta: carga de datos, tablero, exportar e importar."""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from diet_log.delivery import FileDelivery, StreamDelivery, deliver
from diet_log.display import history_text, summary_lines
from diet_log.errors import DietLogError
from diet_log.excel_writer import ExcelLayout, write_history_xlsx
from diet_log.model import ACTIVITY_TYPES, UserSettings
from diet_log.plotter import plot_weight_trend
from diet_log.tracker import DietTracker

DEFAULT_DB = Path.home() / ".diet_log" / "diet_log.sqlite3"


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed argparse namespace.
    """
    parser = argparse.ArgumentParser(
        description="Registro personal de peso y actividad."
    )
    parser.add_argument(
        "--db",
        default=str(DEFAULT_DB),
        help="Archivo SQLite (default: ~/.diet_log/diet_log.sqlite3).",
    )
    parser.add_argument("--verbose", action="store_true", help="Log en nivel DEBUG.")
    sub = parser.add_subparsers(dest="command", required=True)

    add = sub.add_parser("add", help="Agregar o reemplazar el registro de un dia.")
    add.add_argument("--date", default="", help="YYYY-MM-DD (default: hoy).")
    add.add_argument("--weight", default="", help="Peso en kg.")
    add.add_argument("--activity", default="", choices=["", *ACTIVITY_TYPES])
    add.add_argument("--duration", default="", help="Duracion en minutos.")
    add.add_argument("--notes", default="")

    delete = sub.add_parser("delete", help="Borrar el registro de un dia.")
    delete.add_argument("date", help="YYYY-MM-DD")
    delete.add_argument("--yes", action="store_true", help="No pedir confirmacion.")

    sub.add_parser("list", help="Mostrar historial (mas reciente primero).")
    sub.add_parser("summary", help="Mostrar tablero: peso, racha, calorias, BMI.")

    settings = sub.add_parser("settings", help="Guardar perfil de usuario.")
    settings.add_argument("--name", default="")
    settings.add_argument("--height", default="", help="Altura en cm.")
    settings.add_argument(
        "--weigh-in-day", default="", help="Dia de pesaje 0-6 (0 = domingo)."
    )
    settings.add_argument("--picture", default="", help="URL de la foto de perfil.")

    for name in ("export-json", "export-csv"):
        export = sub.add_parser(name, help=f"Exportar ({name.split('-')[1]}).")
        export.add_argument("--out-dir", default="", help="Directorio de salida.")
        export.add_argument(
            "--stdout", action="store_true", help="Escribir en la salida estandar."
        )

    xlsx = sub.add_parser("export-xlsx", help="Exportar historial a Excel.")
    xlsx.add_argument("out", help="Ruta del archivo .xlsx")

    chart = sub.add_parser("chart", help="Guardar grafico de peso como PNG.")
    chart.add_argument("out", help="Ruta del archivo .png")

    restore = sub.add_parser("import", help="Restaurar backup JSON (merge por fecha).")
    restore.add_argument("path", help="Archivo JSON, o '-' para leer stdin.")

    clear = sub.add_parser("clear", help="Borrar todos los datos.")
    clear.add_argument("--yes", action="store_true", help="No pedir confirmacion.")

    sub.add_parser("reminders", help="Avisos pendientes y enlace de calendario.")

    notif = sub.add_parser("notifications", help="Activar/desactivar avisos.")
    notif.add_argument("state", choices=["on", "off"])

    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the CLI.

    Returns:
        Exit code (0 on success, 1 on a reported error).
    """
    ns = parse_args(argv)
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        level=logging.DEBUG if ns.verbose else logging.WARNING,
    )
    tracker = DietTracker.open(Path(ns.db).expanduser())
    try:
        return _COMMANDS[ns.command](tracker, ns)
    except DietLogError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


def _cmd_add(tracker: DietTracker, ns: argparse.Namespace) -> int:
    entry = tracker.add_entry(
        day=ns.date,
        weight=ns.weight,
        activity_type=ns.activity,
        duration=ns.duration,
        notes=ns.notes,
    )
    print(f"OK: registro guardado para {entry.date.isoformat()}")
    return 0


def _cmd_delete(tracker: DietTracker, ns: argparse.Namespace) -> int:
    if not ns.yes and not _confirm(f"Borrar el registro del {ns.date}?"):
        print("Cancelado.")
        return 0
    if tracker.delete_day(ns.date):
        print(f"OK: registro del {ns.date} borrado")
    else:
        print(f"No hay registro para {ns.date}")
    return 0


def _cmd_list(tracker: DietTracker, _: argparse.Namespace) -> int:
    entries = tracker.entries.list_all()
    if not entries:
        print("Sin registros")
        return 0
    print(history_text(entries, limit=len(entries)))
    print(f"{len(entries)} registros")
    return 0


def _cmd_summary(tracker: DietTracker, _: argparse.Namespace) -> int:
    result = tracker.current_bmi()
    print(tracker.greeting())
    print(f'"{tracker.motivational_quote()}"')
    for line in summary_lines(tracker.summary()):
        print(line)
    if result is None:
        print("BMI: —")
    else:
        print(f"BMI: {result.value:.1f} ({result.category})")
    return 0


def _cmd_settings(tracker: DietTracker, ns: argparse.Namespace) -> int:
    saved = tracker.save_settings(
        UserSettings.from_dict(
            {
                "firstName": ns.name,
                "heightCm": ns.height,
                "weighInDay": ns.weigh_in_day,
                "profilePicUrl": ns.picture,
            }
        )
    )
    print(f"OK: perfil guardado ({saved.first_name or 'sin nombre'})")
    return 0


def _cmd_export(tracker: DietTracker, ns: argparse.Namespace) -> int:
    payload = (
        tracker.backup_payload()
        if ns.command == "export-json"
        else tracker.csv_payload()
    )
    if ns.stdout:
        sys.stdout.write(payload.content + "\n")
        return 0
    out_dir = ns.out_dir or tracker.app_config().export_dir or "exports"
    result = deliver(
        payload,
        [
            FileDelivery(Path(out_dir).expanduser()),
            StreamDelivery(sys.stdout),
        ],
    )
    print(f"OK: {result.detail}")
    return 0


def _cmd_export_xlsx(tracker: DietTracker, ns: argparse.Namespace) -> int:
    out_path = Path(ns.out).expanduser()
    write_history_xlsx(tracker.entries.list_all(), out_path, ExcelLayout())
    print(f"OK: Excel generado: {out_path}")
    return 0


def _cmd_chart(tracker: DietTracker, ns: argparse.Namespace) -> int:
    try:
        image = plot_weight_trend(tracker.entries.list_all())
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    out_path = Path(ns.out).expanduser()
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_bytes(image.getvalue())
    print(f"OK: grafico guardado en {out_path}")
    return 0


def _cmd_import(tracker: DietTracker, ns: argparse.Namespace) -> int:
    if ns.path == "-":
        result = tracker.import_pasted_text(sys.stdin.read())
    else:
        result = tracker.import_backup_file(Path(ns.path).expanduser())
    print(f"OK: restauracion completa, {result.total_entries} registros en total")
    return 0


def _cmd_clear(tracker: DietTracker, ns: argparse.Namespace) -> int:
    if not ns.yes and not _confirm("Borrar todo? No hay vuelta atras."):
        print("Cancelado.")
        return 0
    tracker.clear_all_data()
    print("OK: datos borrados")
    return 0


def _cmd_reminders(tracker: DietTracker, _: argparse.Namespace) -> int:
    for notification in tracker.pending_notifications():
        print(f"* {notification.title} {notification.body}")
    print(f"Calendario: {tracker.calendar_reminder_url()}")
    return 0


def _cmd_notifications(tracker: DietTracker, ns: argparse.Namespace) -> int:
    tracker.enable_notifications(ns.state == "on")
    print(f"OK: avisos {'activados' if ns.state == 'on' else 'desactivados'}")
    return 0


_COMMANDS = {
    "add": _cmd_add,
    "delete": _cmd_delete,
    "list": _cmd_list,
    "summary": _cmd_summary,
    "settings": _cmd_settings,
    "export-json": _cmd_export,
    "export-csv": _cmd_export,
    "export-xlsx": _cmd_export_xlsx,
    "chart": _cmd_chart,
    "import": _cmd_import,
    "clear": _cmd_clear,
    "reminders": _cmd_reminders,
    "notifications": _cmd_notifications,
}


def _confirm(question: str) -> bool:
    answer = input(f"{question} [s/N] ")
    return answer.strip().lower() in {"s", "si", "y", "yes"}


if __name__ == "__main__":
    raise SystemExit(main())
