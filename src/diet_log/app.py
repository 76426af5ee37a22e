"""App Kivy: formulario de registro, tablero, historial y backups."""

from __future__ import annotations

import traceback
from collections.abc import Callable
from pathlib import Path

from diet_log.delivery import (
    ClipboardDelivery,
    ExportPayload,
    FileDelivery,
    deliver,
)
from diet_log.display import history_text, summary_lines
from diet_log.errors import DietLogError
from diet_log.excel_writer import ExcelLayout, write_history_xlsx
from diet_log.model import ACTIVITY_TYPES, UserSettings
from diet_log.storage import AppConfig
from diet_log.tracker import DietTracker

DB_FILENAME = "diet_log.sqlite3"


def run_app() -> int:
    """Lanza la app Kivy."""
    from kivy.app import App
    from kivy.core.clipboard import Clipboard
    from kivy.core.window import Window
    from kivy.uix.boxlayout import BoxLayout
    from kivy.uix.button import Button
    from kivy.uix.filechooser import FileChooserListView
    from kivy.uix.label import Label
    from kivy.uix.popup import Popup
    from kivy.uix.spinner import Spinner
    from kivy.uix.textinput import TextInput

    class DietLogApp(App):
        """Main Kivy app."""

        def __init__(self, **kwargs: object) -> None:
            super().__init__(**kwargs)
            self.tracker = DietTracker.open(Path.cwd() / DB_FILENAME)
            self.inputs: dict[str, TextInput] = {}
            self.activity: Spinner | None = None
            self.dashboard: Label | None = None
            self.preview: TextInput | None = None
            self.status: Label | None = None
            self.greeting: Label | None = None

        def build(self) -> BoxLayout:
            Window.bind(on_key_down=self._on_key_down)

            root = BoxLayout(orientation="vertical", spacing=8, padding=10)
            self.greeting = Label(size_hint_y=None, height=30)
            root.add_widget(self.greeting)
            motivation = Label(
                text=self.tracker.motivational_quote(),
                italic=True,
                size_hint_y=None,
                height=26,
            )
            root.add_widget(motivation)

            form = BoxLayout(
                orientation="horizontal", spacing=6, size_hint_y=None, height=36
            )
            for key, hint, width in (
                ("date", "YYYY-MM-DD", 0.18),
                ("weight", "Peso (kg)", 0.12),
                ("duration", "Minutos", 0.1),
                ("notes", "Notas", 0.3),
            ):
                inp = TextInput(hint_text=hint, multiline=False, size_hint_x=width)
                self.inputs[key] = inp
                form.add_widget(inp)
            self.activity = Spinner(
                text="", values=("", *ACTIVITY_TYPES), size_hint_x=0.15
            )
            form.add_widget(self.activity)
            save_btn = Button(text="Guardar", size_hint_x=0.15)
            save_btn.bind(on_press=self._on_save_entry)
            form.add_widget(save_btn)
            root.add_widget(form)

            actions = BoxLayout(
                orientation="horizontal", spacing=6, size_hint_y=None, height=40
            )
            for text, handler in (
                ("Perfil", self._open_settings_popup),
                ("Backup JSON", self._on_export_json),
                ("Exportar CSV", self._on_export_csv),
                ("Exportar Excel", self._on_export_xlsx),
                ("Restaurar", self._open_import_popup),
                ("Borrar dia", self._on_delete_day),
                ("Borrar todo", self._on_clear_all),
                ("Salir", lambda *_args: self.stop()),
            ):
                btn = Button(text=text)
                btn.bind(on_press=handler)
                actions.add_widget(btn)
            root.add_widget(actions)

            self.status = Label(text="", size_hint_y=None, height=30)
            root.add_widget(self.status)
            self.dashboard = Label(text="", size_hint_y=None, height=120, halign="left")
            root.add_widget(self.dashboard)

            self.preview = TextInput(readonly=True, multiline=True, do_wrap=False)
            root.add_widget(self.preview)

            self._refresh_all()
            for notification in self.tracker.pending_notifications():
                self._set_status(f"{notification.title} {notification.body}")
            return root

        def _on_key_down(
            self,
            _window: object,
            keycode: int,
            _scancode: int,
            _text: str,
            _modifiers: list[str],
        ) -> bool:
            # Esc: salir de fullscreen o cerrar app.
            if keycode != 27:
                return False
            if Window.fullscreen:
                Window.fullscreen = False
            else:
                self.stop()
            return True

        def _on_save_entry(self, _: object) -> None:
            try:
                entry = self.tracker.add_entry(
                    day=self.inputs["date"].text,
                    weight=self.inputs["weight"].text,
                    activity_type=self.activity.text if self.activity else "",
                    duration=self.inputs["duration"].text,
                    notes=self.inputs["notes"].text,
                )
            except DietLogError as exc:
                self._set_status(str(exc))
                return
            for key in ("weight", "duration", "notes"):
                self.inputs[key].text = ""
            self._refresh_all()
            self._set_status(f"Guardado: {entry.date.isoformat()}")

        def _on_delete_day(self, _: object) -> None:
            day = self.inputs["date"].text.strip()
            if not day:
                self._set_status("Indica la fecha a borrar en el campo de fecha.")
                return
            self._confirm(
                f"Borrar el registro del {day}?",
                lambda: self._finish_delete(day),
            )

        def _finish_delete(self, day: str) -> None:
            try:
                removed = self.tracker.delete_day(day)
            except DietLogError as exc:
                self._set_status(str(exc))
                return
            self._refresh_all()
            self._set_status(
                "Registro borrado." if removed else f"No hay registro para {day}."
            )

        def _on_clear_all(self, _: object) -> None:
            self._confirm("Borrar todo? No hay vuelta atras.", self._finish_clear)

        def _finish_clear(self) -> None:
            self.tracker.clear_all_data()
            self._refresh_all()
            self._set_status("Datos borrados.")

        def _on_export_json(self, _: object) -> None:
            self._deliver(self.tracker.backup_payload)

        def _on_export_csv(self, _: object) -> None:
            self._deliver(self.tracker.csv_payload)

        def _on_export_xlsx(self, _: object) -> None:
            filename = f"DietTracker_Log_{self.tracker.today()}.xlsx"
            out_path = self._export_dir() / filename
            try:
                write_history_xlsx(
                    self.tracker.entries.list_all(), out_path, ExcelLayout()
                )
            except (DietLogError, OSError) as exc:
                self._set_status(str(exc))
                return
            self._set_status(f"Excel generado: {out_path}")

        def _deliver(self, build_payload: Callable[[], ExportPayload]) -> None:
            try:
                payload = build_payload()
                result = deliver(
                    payload,
                    [
                        FileDelivery(self._export_dir()),
                        ClipboardDelivery(Clipboard.copy),
                    ],
                )
            except DietLogError as exc:
                self._set_status(str(exc))
                return
            if result.strategy == "clipboard":
                self._set_status(
                    "No se pudo guardar el archivo; "
                    "los datos se copiaron al portapapeles."
                )
            else:
                self._set_status(f"Exportado: {result.detail}")

        def _export_dir(self) -> Path:
            config = self.tracker.app_config()
            if config.export_dir:
                return Path(config.export_dir).expanduser()
            return Path.cwd() / "exports"

        def _open_import_popup(self, _: object) -> None:
            chooser = FileChooserListView(path=str(Path.home()), filters=["*.json"])
            pasted = TextInput(
                hint_text="...o pega aqui el backup JSON", size_hint_y=0.3
            )
            buttons = BoxLayout(orientation="horizontal", size_hint_y=None, height=40)
            cancel_btn = Button(text="Cancelar")
            use_btn = Button(text="Restaurar")
            buttons.add_widget(cancel_btn)
            buttons.add_widget(use_btn)

            content = BoxLayout(orientation="vertical")
            content.add_widget(chooser)
            content.add_widget(pasted)
            content.add_widget(buttons)
            popup = Popup(
                title="Restaurar backup", content=content, size_hint=(0.9, 0.9)
            )
            cancel_btn.bind(on_press=lambda *_args: popup.dismiss())

            def apply_selection(*_: object) -> None:
                try:
                    if pasted.text.strip():
                        result = self.tracker.import_pasted_text(pasted.text)
                    elif chooser.selection:
                        selected = Path(chooser.selection[0])
                        result = self.tracker.import_backup_file(selected)
                    else:
                        return
                except (DietLogError, OSError) as exc:
                    self._show_error("restaurar", exc)
                    return
                popup.dismiss()
                self._refresh_all()
                self._set_status(
                    f"Restauracion completa: {result.total_entries} registros en total."
                )

            use_btn.bind(on_press=apply_selection)
            popup.open()

        def _open_settings_popup(self, _: object) -> None:
            current = self.tracker.settings.load()
            config = self.tracker.app_config()
            fields = {
                "firstName": ("Nombre", current.first_name),
                "heightCm": ("Altura (cm)", _text(current.height_cm)),
                "weighInDay": ("Dia de pesaje (0=dom)", _text(current.weigh_in_day)),
                "profilePicUrl": ("Foto (URL)", current.profile_pic_url),
                "exportDir": ("Path salida", config.export_dir),
            }
            inputs: dict[str, TextInput] = {}
            box = BoxLayout(orientation="vertical", spacing=6, padding=8)
            for key, (label, value) in fields.items():
                row = BoxLayout(orientation="horizontal", size_hint_y=None, height=36)
                row.add_widget(Label(text=label, size_hint_x=0.35))
                inp = TextInput(text=value, multiline=False)
                inputs[key] = inp
                row.add_widget(inp)
                box.add_widget(row)

            enabled = config.notifications_enabled
            notif_btn = Button(
                text="Desactivar avisos" if enabled else "Activar avisos",
                size_hint_y=None,
                height=36,
            )
            box.add_widget(notif_btn)
            footer = BoxLayout(orientation="horizontal", size_hint_y=None, height=42)
            cancel_btn = Button(text="Cancelar")
            save_btn = Button(text="Guardar")
            footer.add_widget(cancel_btn)
            footer.add_widget(save_btn)
            box.add_widget(footer)

            popup = Popup(title="Perfil", content=box, size_hint=(0.8, 0.8))
            cancel_btn.bind(on_press=lambda *_args: popup.dismiss())

            def toggle_notifications(*_: object) -> None:
                self.tracker.enable_notifications(not config.notifications_enabled)
                popup.dismiss()
                self._set_status("Preferencia de avisos guardada.")

            def save(*_: object) -> None:
                settings = UserSettings.from_dict(
                    {key: inputs[key].text for key in fields if key != "exportDir"}
                )
                self.tracker.save_settings(settings)
                latest = self.tracker.app_config()
                self.tracker.save_app_config(
                    AppConfig(
                        export_dir=inputs["exportDir"].text.strip(),
                        notifications_enabled=latest.notifications_enabled,
                    )
                )
                popup.dismiss()
                self._refresh_all()
                self._set_status("Perfil guardado.")

            notif_btn.bind(on_press=toggle_notifications)
            save_btn.bind(on_press=save)
            popup.open()

        def _confirm(self, question: str, on_yes: Callable[[], None]) -> None:
            box = BoxLayout(orientation="vertical", spacing=8, padding=8)
            box.add_widget(Label(text=question))
            footer = BoxLayout(orientation="horizontal", size_hint_y=None, height=42)
            no_btn = Button(text="Cancelar")
            yes_btn = Button(text="Si")
            footer.add_widget(no_btn)
            footer.add_widget(yes_btn)
            box.add_widget(footer)
            popup = Popup(title="Confirmar", content=box, size_hint=(0.6, 0.4))
            no_btn.bind(on_press=lambda *_args: popup.dismiss())

            def accept(*_: object) -> None:
                popup.dismiss()
                on_yes()

            yes_btn.bind(on_press=accept)
            popup.open()

        def _refresh_all(self) -> None:
            entries = self.tracker.entries.list_all()
            if self.greeting is not None:
                self.greeting.text = self.tracker.greeting()
            if self.dashboard is not None:
                lines = summary_lines(self.tracker.summary())
                result = self.tracker.current_bmi()
                if result is None:
                    lines.append("BMI: —")
                else:
                    lines.append(f"BMI: {result.value:.1f} ({result.category})")
                self.dashboard.text = "\n".join(lines)
            if self.preview is not None:
                self.preview.text = history_text(entries) or "Sin registros"

        def _set_status(self, text: str) -> None:
            if self.status is not None:
                self.status.text = text

        def _show_error(self, action: str, exc: Exception) -> None:
            error_type = type(exc).__name__
            self._set_status(f"Error al {action} ({error_type}): {exc}")
            if self.preview is not None:
                self.preview.text = traceback.format_exc()

    DietLogApp().run()
    return 0


def _text(value: object) -> str:
    return "" if value is None else str(value)
