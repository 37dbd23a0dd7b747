"""CLI entrypoint for TWD97 coordinate conversion and township classification."""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from pathlib import Path

from twd97_townships.classify.gemini_client import GeminiTownshipClient
from twd97_townships.common.config_loader import load_region_config
from twd97_townships.common.constants import (
    COMMANDS,
    DEFAULT_REGION,
    EXIT_HARD_FAIL,
    EXIT_PARTIAL,
    EXIT_SUCCESS,
)
from twd97_townships.common.errors import PipelineError
from twd97_townships.common.fs import read_text_input
from twd97_townships.common.logging import build_logger, close_logger, log_event
from twd97_townships.common.models import CoordinateRecord, RecordStatus
from twd97_townships.common.time_utils import generate_run_id
from twd97_townships.pipeline.export import write_export_csv
from twd97_townships.pipeline.orchestrate import BatchOutcome, run_classification
from twd97_townships.pipeline.parse import parse_coordinates, parser_options
from twd97_townships.pipeline.projection import build_records
from twd97_townships.pipeline.reports import write_run_summary
from twd97_townships.pipeline.validate import flag_outliers, outlier_warnings


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("command", choices=COMMANDS)
    parser.add_argument("input", help="Text file with one TWD97 X/Y pair per line, or - for stdin")
    parser.add_argument("--region", default=DEFAULT_REGION)
    parser.add_argument("--run-id", default=None)
    parser.add_argument("--config-dir", default="./config")
    parser.add_argument("--overlay-config-dir", default=None)
    parser.add_argument("--data-dir", default="./data")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARN", "ERROR"])
    parser.add_argument("--no-grounding", action="store_true", help="Do not attach the web search tool")
    parser.add_argument("--strict", action="store_true", help="Treat any failed chunk as a hard failure")
    return parser.parse_args(argv)


def progress_logger(logger: logging.Logger, run_id: str, total: int):
    def _on_progress(processed: int, snapshot: tuple[CoordinateRecord, ...]) -> None:
        log_event(
            logger,
            f"progress {processed}/{total}",
            run_id=run_id,
            stage="classify",
            event="PROGRESS",
            status="ok",
            rows_in=total,
            rows_out=processed,
        )

    return _on_progress


def classify_records(
    records: list[CoordinateRecord],
    cfg: dict,
    args: argparse.Namespace,
    logger: logging.Logger,
    run_id: str,
) -> BatchOutcome:
    grounding = False if args.no_grounding else None
    cancel_event = threading.Event()
    # Ctrl-C stops scheduling new chunks; the chunk in flight still finishes.
    # Signal handlers can only be installed from the main thread.
    on_main_thread = threading.current_thread() is threading.main_thread()
    previous_handler = None
    if on_main_thread:
        previous_handler = signal.signal(signal.SIGINT, lambda *_args: cancel_event.set())
    try:
        with GeminiTownshipClient.from_config(cfg, grounding=grounding) as client:
            return run_classification(
                records,
                client,
                valid_townships=cfg["region"]["townships"],
                chunk_size=cfg["batch"]["chunk_size"],
                inter_chunk_delay_s=cfg["batch"]["inter_chunk_delay_ms"] / 1000,
                on_progress=progress_logger(logger, run_id, len(records)),
                cancel_event=cancel_event,
                logger=logger,
                run_id=run_id,
            )
    finally:
        if on_main_thread:
            signal.signal(signal.SIGINT, previous_handler)


def run_command(args: argparse.Namespace) -> int:
    run_id = args.run_id or generate_run_id()
    data_dir = Path(args.data_dir)
    overlay_config_dir = Path(args.overlay_config_dir) if args.overlay_config_dir else None

    logger = build_logger(run_id, data_dir=data_dir, level=args.log_level)
    try:
        return _run(args, run_id, data_dir, overlay_config_dir, logger)
    finally:
        close_logger(logger)


def _run(
    args: argparse.Namespace,
    run_id: str,
    data_dir: Path,
    overlay_config_dir: Path | None,
    logger: logging.Logger,
) -> int:
    try:
        cfg = load_region_config(Path(args.config_dir), args.region, overlay_config_dir=overlay_config_dir)
        text = read_text_input(args.input)
    except (PipelineError, OSError, UnicodeDecodeError) as exc:
        log_event(
            logger,
            f"startup failed: {exc}",
            level=logging.ERROR,
            run_id=run_id,
            stage="load",
            event="STAGE_FAIL",
            status="error",
            error_code=getattr(exc, "error_code", "IO_ERROR"),
        )
        return EXIT_HARD_FAIL

    pairs = parse_coordinates(text, **parser_options(cfg["parser"]))
    records = flag_outliers(build_records(pairs), cfg["region"]["bbox_wgs84"])
    warnings = outlier_warnings(records)
    log_event(
        logger,
        "coordinates converted",
        run_id=run_id,
        stage="convert",
        event="STAGE_END",
        status="ok" if records else "empty",
        rows_in=len(text.splitlines()),
        rows_out=len(records),
    )
    if not records:
        write_run_summary(
            data_dir,
            run_id=run_id,
            command=args.command,
            region=args.region,
            records=[],
            warnings=[{"code": "NO_COORDINATES"}],
        )
        return EXIT_PARTIAL

    failed_chunks: tuple[int, ...] = ()
    cancelled = False
    if args.command == "classify":
        log_event(logger, "stage start", run_id=run_id, stage="classify", event="STAGE_START", status="ok")
        try:
            outcome = classify_records(records, cfg, args, logger, run_id)
        except PipelineError as exc:
            log_event(
                logger,
                f"classification aborted: {exc}",
                level=logging.ERROR,
                run_id=run_id,
                stage="classify",
                event="STAGE_FAIL",
                status="error",
                error_code=exc.error_code,
            )
            return EXIT_HARD_FAIL
        records = list(outcome.records)
        failed_chunks = outcome.failed_chunks
        cancelled = outcome.cancelled
        log_event(
            logger,
            "stage end",
            run_id=run_id,
            stage="classify",
            event="STAGE_END",
            status="ok" if outcome.failed == 0 else "partial",
            rows_in=len(records),
            rows_out=outcome.completed,
        )

    export_path = data_dir / "out" / cfg["output"]["csv_filename"]
    write_export_csv(export_path, records)
    write_run_summary(
        data_dir,
        run_id=run_id,
        command=args.command,
        region=args.region,
        records=records,
        warnings=warnings,
        failed_chunks=failed_chunks,
        cancelled=cancelled,
        export_path=export_path,
    )

    if failed_chunks and args.strict:
        return EXIT_HARD_FAIL
    unresolved = any(record.status is not RecordStatus.COMPLETED for record in records)
    if args.command == "classify" and unresolved:
        return EXIT_PARTIAL
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    try:
        return run_command(args)
    except PipelineError:
        return EXIT_HARD_FAIL


if __name__ == "__main__":
    raise SystemExit(main())
