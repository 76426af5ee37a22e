"""Excepciones del dominio."""

from __future__ import annotations


class DietLogError(Exception):
    """Base class for errors reported to the user."""


class InvalidEntryError(DietLogError, ValueError):
    """Form input that cannot become a log entry."""


class MalformedBackupError(DietLogError, ValueError):
    """Backup text that is not a JSON envelope."""


class NoDataError(DietLogError, ValueError):
    """Export requested with no entries."""


class DeliveryError(DietLogError, RuntimeError):
    """A single export delivery strategy failed."""


class ExportDeliveryError(DietLogError, RuntimeError):
    """Every export delivery strategy failed."""

    def __init__(self, failures: list[tuple[str, str]]) -> None:
        self.failures = failures
        detail = "; ".join(f"{name}: {reason}" for name, reason in failures)
        super().__init__(f"No se pudo entregar la exportacion ({detail})")
