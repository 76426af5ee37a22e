"""Generacion de Excel formateado con el historial de registros."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd
from openpyxl.styles import Alignment, Border, Font, Side

from diet_log.errors import NoDataError
from diet_log.metrics import entries_to_frame
from diet_log.model import LogEntry

_DIA_SEMANA: tuple[str, ...] = ("lun", "mar", "mie", "jue", "vie", "sab", "dom")


@dataclass(frozen=True)
class _Column:
    """Cabecera visible, ancho y formato numerico de una columna del historial."""

    header: str
    width: int
    number_format: str | None = None
    align: str = "center"


_COLUMNS: dict[str, _Column] = {
    "weekday": _Column("Día", 6),
    "date": _Column("Fecha", 12, "dd/mm/yyyy"),
    "weight": _Column("Peso (kg)", 10, "0.0"),
    "activity_type": _Column("Actividad", 12),
    "duration_minutes": _Column("Duración\n(min)", 10, "0"),
    "calories_kcal": _Column("Calorías\n(kcal)", 10, "#,##0"),
    "notes": _Column("Notas", 40, align="left"),
}

_THIN = Side(style="thin")
_BORDER = Border(left=_THIN, right=_THIN, top=_THIN, bottom=_THIN)


@dataclass(frozen=True)
class ExcelLayout:
    """Layout/formatting configuration for the history sheet."""

    sheet_name: str = "Historial"
    freeze_header: bool = True


def _weekday_label(value: object) -> str:
    """Convierte una fecha a etiqueta de 3 letras (lunes primero)."""
    try:
        if value is None or (isinstance(value, float) and pd.isna(value)):
            return ""
        return _DIA_SEMANA[pd.Timestamp(value).weekday()]
    except (ValueError, TypeError):
        return ""


def _export_frame(entries: Sequence[LogEntry]) -> pd.DataFrame:
    """Historial con columna de dia al frente y cabeceras legibles."""
    df = entries_to_frame(entries)
    df.insert(0, "weekday", df["date"].map(_weekday_label))
    df["date"] = pd.to_datetime(df["date"])
    df["calories_kcal"] = pd.to_numeric(df["calories_kcal"]).round(0)
    return df.rename(columns={key: col.header for key, col in _COLUMNS.items()})


def write_history_xlsx(
    entries: Sequence[LogEntry], out_path: Path, layout: ExcelLayout
) -> None:
    """Write a formatted Excel file with one row per entry, newest first.

    Args:
        entries: Store snapshot.
        out_path: Output path for the XLSX file.
        layout: Excel layout parameters.

    Raises:
        NoDataError: If there are no entries.
    """
    if not entries:
        raise NoDataError("No hay datos para exportar")
    out_path.parent.mkdir(parents=True, exist_ok=True)
    export_df = _export_frame(entries)

    with pd.ExcelWriter(out_path, engine="openpyxl") as writer:
        export_df.to_excel(writer, index=False, sheet_name=layout.sheet_name)
        ws = writer.book[layout.sheet_name]
        _format_sheet(ws)
        if layout.freeze_header:
            ws.freeze_panes = "A2"


def _column_for(header: object) -> _Column | None:
    """Busca la definicion de columna por su cabecera visible."""
    for column in _COLUMNS.values():
        if column.header == header:
            return column
    return None


def _format_sheet(ws: Any) -> None:
    """Apply borders, alignment, widths and number formats to a worksheet.

    Cabeceras desconocidas reciben solo borde y alineacion centrada.

    Args:
        ws: openpyxl worksheet.
    """
    for header_cell in ws[1]:
        column = _column_for(header_cell.value)
        align = column.align if column is not None else "center"
        body_alignment = Alignment(horizontal=align, vertical="center", wrap_text=True)
        header_cell.font = Font(bold=True)
        header_cell.alignment = Alignment(
            horizontal="center", vertical="center", wrap_text=True
        )
        header_cell.border = _BORDER

        letter = header_cell.column_letter
        for (cell,) in ws.iter_rows(
            min_row=2, min_col=header_cell.column, max_col=header_cell.column
        ):
            cell.alignment = body_alignment
            cell.border = _BORDER
            if column is not None and column.number_format is not None:
                cell.number_format = column.number_format
        if column is not None:
            ws.column_dimensions[letter].width = column.width
