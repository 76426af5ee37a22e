from __future__ import annotations

import io
from datetime import date
from pathlib import Path

import pytest

from diet_log import delivery
from diet_log.delivery import (
    ClipboardDelivery,
    DeliveryStrategy,
    ExportPayload,
    FileDelivery,
    StreamDelivery,
    backup_filename,
    csv_filename,
    deliver,
)
from diet_log.errors import DeliveryError, ExportDeliveryError

PAYLOAD = ExportPayload(
    filename="diet_backup_05-03-24.json",
    content='{"version": 1}',
    media_type="application/json",
)


def test_filenames() -> None:
    assert backup_filename(date(2024, 3, 5)) == "diet_backup_05-03-24.json"
    assert csv_filename(date(2024, 3, 5)) == "DietTracker_Log_2024-03-05.csv"


class _Unavailable(DeliveryStrategy):
    name = "unavailable"

    def deliver(self, payload: ExportPayload) -> str:
        raise DeliveryError("not supported here")


def test_file_delivery_writes_payload(tmp_path: Path) -> None:
    out_dir = tmp_path / "exports"
    result = deliver(PAYLOAD, [_Unavailable(), FileDelivery(out_dir)])

    assert result.strategy == "file"
    target = out_dir / PAYLOAD.filename
    assert result.detail == str(target)
    assert target.read_text(encoding="utf-8") == PAYLOAD.content
    assert [p.name for p in out_dir.iterdir()] == [PAYLOAD.filename]


def test_file_failure_falls_back_to_clipboard(tmp_path: Path) -> None:
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("x", encoding="utf-8")
    copied: list[str] = []

    result = deliver(PAYLOAD, [FileDelivery(blocker), ClipboardDelivery(copied.append)])

    assert result.strategy == "clipboard"
    assert copied == [PAYLOAD.content]


def test_failed_write_leaves_no_partial_file(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    def _fail_replace(src: str, dst: object) -> None:
        raise OSError("disk full")

    monkeypatch.setattr(delivery.os, "replace", _fail_replace)

    with pytest.raises(DeliveryError):
        FileDelivery(tmp_path).deliver(PAYLOAD)
    assert list(tmp_path.iterdir()) == []


def test_all_strategies_failing_raises() -> None:
    with pytest.raises(ExportDeliveryError) as excinfo:
        deliver(PAYLOAD, [_Unavailable(), ClipboardDelivery(None)])
    assert [name for name, _ in excinfo.value.failures] == ["unavailable", "clipboard"]


def test_stream_delivery_prints_content() -> None:
    out = io.StringIO()
    result = deliver(PAYLOAD, [ClipboardDelivery(None), StreamDelivery(out)])
    assert result.strategy == "manual"
    assert out.getvalue() == PAYLOAD.content + "\n"
