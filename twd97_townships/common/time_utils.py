"""UTC helpers for run metadata."""

from __future__ import annotations

from datetime import datetime, timezone


def utc_timestamp_iso() -> str:
    return datetime.now(tz=timezone.utc).isoformat(timespec="milliseconds")


def generate_run_id() -> str:
    now = datetime.now(tz=timezone.utc)
    # Sortable by start time, unique enough for a single operator.
    return now.strftime("run-%Y%m%dT%H%M%S%fZ")


def elapsed_ms(started: float, finished: float) -> int:
    return int(round((finished - started) * 1000))
