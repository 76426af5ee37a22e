"""Entrega de exportaciones: archivo -> portapapeles -> salida manual."""

from __future__ import annotations

import logging
import os
import tempfile
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import TextIO

from diet_log.errors import DeliveryError, ExportDeliveryError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExportPayload:
    """Contenido exportado listo para entregar."""

    filename: str
    content: str
    media_type: str


@dataclass(frozen=True)
class DeliveryResult:
    """Which strategy delivered the payload, and where."""

    strategy: str
    detail: str


class DeliveryStrategy(ABC):
    """One way of handing an export to the user."""

    name: str = "strategy"

    @abstractmethod
    def deliver(self, payload: ExportPayload) -> str:
        """Deliver the payload.

        Returns:
            Human readable description of where it went.

        Raises:
            DeliveryError: If this strategy cannot deliver.
        """


class FileDelivery(DeliveryStrategy):
    """Writes the payload into a directory without leaving partial files."""

    name = "file"

    def __init__(self, directory: Path) -> None:
        self._directory = directory

    def deliver(self, payload: ExportPayload) -> str:
        target = self._directory / payload.filename
        tmp_name: str | None = None
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                newline="",
                dir=self._directory,
                prefix=".partial-",
                delete=False,
            ) as fh:
                tmp_name = fh.name
                fh.write(payload.content)
            os.replace(tmp_name, target)
        except OSError as exc:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise DeliveryError(f"cannot write {target}: {exc}") from exc
        return str(target)


class ClipboardDelivery(DeliveryStrategy):
    """Copies the payload text to the clipboard."""

    name = "clipboard"

    def __init__(self, copy: Callable[[str], None] | None) -> None:
        self._copy = copy

    def deliver(self, payload: ExportPayload) -> str:
        if self._copy is None:
            raise DeliveryError("clipboard not available")
        try:
            self._copy(payload.content)
        except (OSError, RuntimeError) as exc:
            raise DeliveryError(f"clipboard copy failed: {exc}") from exc
        return "copied to clipboard"


class StreamDelivery(DeliveryStrategy):
    """Last resort: print the content so the user can copy it by hand."""

    name = "manual"

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream

    def deliver(self, payload: ExportPayload) -> str:
        try:
            self._stream.write(payload.content + "\n")
            self._stream.flush()
        except (OSError, ValueError) as exc:
            raise DeliveryError(f"cannot write to stream: {exc}") from exc
        return "printed for manual copy"


def deliver(
    payload: ExportPayload, strategies: Sequence[DeliveryStrategy]
) -> DeliveryResult:
    """Try each strategy in order until one succeeds.

    Raises:
        ExportDeliveryError: When every strategy failed.
    """
    failures: list[tuple[str, str]] = []
    for strategy in strategies:
        try:
            detail = strategy.deliver(payload)
        except DeliveryError as exc:
            logger.warning("Delivery via %s failed: %s", strategy.name, exc)
            failures.append((strategy.name, str(exc)))
            continue
        logger.info("Delivered %s via %s", payload.filename, strategy.name)
        return DeliveryResult(strategy=strategy.name, detail=detail)
    raise ExportDeliveryError(failures)


def backup_filename(day: date) -> str:
    return f"diet_backup_{day.strftime('%d-%m-%y')}.json"


def csv_filename(day: date) -> str:
    return f"DietTracker_Log_{day.isoformat()}.csv"
