"""Run report aggregation."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

from twd97_townships.common.constants import NOTE_COORDINATE_OUTLIER
from twd97_townships.common.fs import write_json
from twd97_townships.common.models import CoordinateRecord, RecordStatus


def summarise_records(records: Iterable[CoordinateRecord]) -> dict:
    counts = {
        "total": 0,
        "pending": 0,
        "processing": 0,
        "completed": 0,
        "error": 0,
        "outliers": 0,
    }
    townships: dict[str, int] = {}
    for record in records:
        counts["total"] += 1
        counts[record.status.value] += 1
        if NOTE_COORDINATE_OUTLIER in record.notes:
            counts["outliers"] += 1
        if record.status is RecordStatus.COMPLETED and record.township:
            townships[record.township] = townships.get(record.township, 0) + 1
    return {"counts": counts, "townships": dict(sorted(townships.items()))}


def run_status(counts: dict, *, classified: bool, cancelled: bool = False) -> str:
    if counts["total"] == 0:
        return "error"
    unresolved = counts["error"] + counts["pending"] + counts["processing"]
    if classified and unresolved == counts["total"]:
        return "error"
    if cancelled or (classified and unresolved > 0) or counts["outliers"] > 0:
        return "partial"
    return "success"


def write_run_summary(
    data_dir: Path,
    *,
    run_id: str,
    command: str,
    region: str,
    records: Iterable[CoordinateRecord],
    warnings: list[dict],
    failed_chunks: Iterable[int] = (),
    cancelled: bool = False,
    export_path: Path | None = None,
) -> Path:
    summary = summarise_records(records)
    classified = command == "classify"
    payload = {
        "run_id": run_id,
        "command": command,
        "region": region,
        "status": run_status(summary["counts"], classified=classified, cancelled=cancelled),
        "counts": summary["counts"],
        "townships": summary["townships"],
        "failed_chunks": list(failed_chunks),
        "cancelled": cancelled,
        "warning_count": len(warnings),
        "warnings": warnings,
        "export_path": str(export_path) if export_path is not None else None,
    }
    summary_path = data_dir / "out" / "reports" / "run_summary.json"
    write_json(summary_path, payload)
    return summary_path
