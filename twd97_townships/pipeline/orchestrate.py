"""Chunked township classification with fail-soft semantics."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Collection, Iterable, Protocol, Sequence

from twd97_townships.common.errors import ClassificationError, PipelineError
from twd97_townships.common.logging import LOGGER_NAMESPACE, log_event
from twd97_townships.common.models import CoordinateRecord, RecordStatus
from twd97_townships.common.time_utils import elapsed_ms

STAGE = "classify"

ProgressCallback = Callable[[int, tuple[CoordinateRecord, ...]], None]


class TownshipClassifier(Protocol):
    def classify(self, batch: Sequence[CoordinateRecord]) -> list[dict[str, Any]]: ...


@dataclass(frozen=True)
class BatchOutcome:
    records: tuple[CoordinateRecord, ...]
    processed: int
    failed_chunks: tuple[int, ...]
    cancelled: bool = False

    def count(self, status: RecordStatus) -> int:
        return sum(1 for record in self.records if record.status is status)

    @property
    def completed(self) -> int:
        return self.count(RecordStatus.COMPLETED)

    @property
    def failed(self) -> int:
        return self.count(RecordStatus.ERROR)


def chunked(items: Sequence[CoordinateRecord], size: int) -> list[Sequence[CoordinateRecord]]:
    if size < 1:
        raise ValueError("chunk size must be at least 1")
    return [items[start : start + size] for start in range(0, len(items), size)]


def _coerce_id(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def match_results(
    raw_results: Any,
    chunk_ids: Collection[int],
    valid_townships: Collection[str],
) -> dict[int, str]:
    """Keep the first valid township per submitted id; drop everything else."""
    if not isinstance(raw_results, list):
        raise ClassificationError(f"Classifier returned {type(raw_results).__name__}, expected list")

    matched: dict[int, str] = {}
    for item in raw_results:
        if not isinstance(item, dict):
            continue
        record_id = _coerce_id(item.get("id"))
        if record_id is None or record_id not in chunk_ids or record_id in matched:
            continue
        township = item.get("township")
        if not isinstance(township, str):
            continue
        township = township.strip()
        if township in valid_townships:
            matched[record_id] = township
    return matched


def _emit(on_progress: ProgressCallback | None, processed: int, working: list[CoordinateRecord]) -> None:
    if on_progress is not None:
        on_progress(processed, tuple(working))


def run_classification(
    records: Iterable[CoordinateRecord],
    classifier: TownshipClassifier,
    *,
    valid_townships: Collection[str],
    chunk_size: int,
    inter_chunk_delay_s: float,
    on_progress: ProgressCallback | None = None,
    sleep: Callable[[float], None] = time.sleep,
    cancel_event: threading.Event | None = None,
    logger: logging.Logger | None = None,
    run_id: str | None = None,
) -> BatchOutcome:
    """Classify records chunk by chunk, isolating failures to their chunk.

    Chunks run strictly one after another with a fixed pause between them.
    Results are matched back to records by id only. A classifier failure marks
    its whole chunk ``error``; a missing or out-of-vocabulary township marks
    just that record. Nothing raised by the classifier escapes this function.
    """
    logger = logger or logging.getLogger(f"{LOGGER_NAMESPACE}.{STAGE}")
    vocabulary = frozenset(valid_townships)
    # Monotonic status applies per pass, so every pass starts from pending.
    working = [record.for_new_pass() for record in records]
    position_by_id = {record.id: idx for idx, record in enumerate(working)}
    if len(position_by_id) != len(working):
        raise PipelineError("Record ids must be unique within a run")

    processed = 0
    failed_chunks: list[int] = []
    cancelled = False

    for chunk_index, chunk in enumerate(chunked(working, chunk_size)):
        if cancel_event is not None and cancel_event.is_set():
            cancelled = True
            break

        chunk_ids = [record.id for record in chunk]
        for record_id in chunk_ids:
            pos = position_by_id[record_id]
            working[pos] = working[pos].advance(RecordStatus.PROCESSING)
        _emit(on_progress, processed, working)

        if chunk_index > 0 and inter_chunk_delay_s > 0:
            sleep(inter_chunk_delay_s)
        if cancel_event is not None and cancel_event.is_set():
            # Cancelled during the pause; this chunk is never dispatched.
            for record_id in chunk_ids:
                pos = position_by_id[record_id]
                working[pos] = working[pos].advance(RecordStatus.ERROR)
            log_event(
                logger,
                "chunk cancelled",
                level=logging.WARNING,
                run_id=run_id,
                stage=STAGE,
                chunk=chunk_index,
                event="CHUNK_CANCELLED",
                status="error",
                rows_in=len(chunk_ids),
                rows_out=0,
                error_code="CANCELLED",
            )
            processed += len(chunk_ids)
            _emit(on_progress, processed, working)
            cancelled = True
            break

        log_event(
            logger,
            "chunk start",
            run_id=run_id,
            stage=STAGE,
            chunk=chunk_index,
            event="CHUNK_START",
            status="ok",
            rows_in=len(chunk_ids),
        )
        started = time.monotonic()
        batch = [working[position_by_id[record_id]] for record_id in chunk_ids]
        try:
            matched = match_results(classifier.classify(batch), set(chunk_ids), vocabulary)
        except Exception as exc:
            failed_chunks.append(chunk_index)
            for record_id in chunk_ids:
                pos = position_by_id[record_id]
                working[pos] = working[pos].advance(RecordStatus.ERROR)
            log_event(
                logger,
                f"chunk failed: {exc}",
                level=logging.WARNING,
                run_id=run_id,
                stage=STAGE,
                chunk=chunk_index,
                event="CHUNK_FAIL",
                status="error",
                duration_ms=elapsed_ms(started, time.monotonic()),
                rows_in=len(chunk_ids),
                rows_out=0,
                error_code=getattr(exc, "error_code", "UNEXPECTED_ERROR"),
            )
        else:
            for record_id in chunk_ids:
                pos = position_by_id[record_id]
                township = matched.get(record_id)
                if township is None:
                    working[pos] = working[pos].advance(RecordStatus.ERROR)
                else:
                    working[pos] = working[pos].advance(RecordStatus.COMPLETED, township=township)
            log_event(
                logger,
                "chunk end",
                run_id=run_id,
                stage=STAGE,
                chunk=chunk_index,
                event="CHUNK_END",
                status="ok" if len(matched) == len(chunk_ids) else "partial",
                duration_ms=elapsed_ms(started, time.monotonic()),
                rows_in=len(chunk_ids),
                rows_out=len(matched),
            )

        processed += len(chunk_ids)
        _emit(on_progress, processed, working)

    return BatchOutcome(
        records=tuple(working),
        processed=processed,
        failed_chunks=tuple(failed_chunks),
        cancelled=cancelled,
    )
