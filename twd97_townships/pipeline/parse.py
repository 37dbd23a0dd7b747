"""Best-effort extraction of TWD97 coordinate pairs from loose text."""

from __future__ import annotations

import math
import re
from typing import Iterable, Iterator

from twd97_townships.common.models import CoordinatePair

DEFAULT_HEADER_MARKERS = ("點位名稱", "X")
# Taiwan TM2 false easting/northing put every real point above these.
DEFAULT_MIN_EASTING = 100_000.0
DEFAULT_MIN_NORTHING = 1_000_000.0

_DELIMITERS = re.compile(r"[,\t\s]+")


def _finite_float(token: str) -> float | None:
    try:
        value = float(token)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value


def _is_header(line: str, header_markers: Iterable[str]) -> bool:
    return any(marker and marker in line for marker in header_markers)


def iter_coordinates(
    text: str,
    *,
    header_markers: Iterable[str] = DEFAULT_HEADER_MARKERS,
    min_easting: float = DEFAULT_MIN_EASTING,
    min_northing: float = DEFAULT_MIN_NORTHING,
) -> Iterator[CoordinatePair]:
    """Yield plausible (easting, northing) pairs in input order.

    The pair is read from the last two tokens of each line so leading columns
    such as point names are tolerated. Header lines, lines without two numbers
    and values outside the plausibility bounds are skipped without error.
    """
    markers = tuple(header_markers)
    for raw_line in text.strip().splitlines():
        line = raw_line.strip()
        if not line or _is_header(line, markers):
            continue

        parts = [part for part in _DELIMITERS.split(line) if part]
        if len(parts) < 2:
            continue

        x = _finite_float(parts[-2])
        y = _finite_float(parts[-1])
        if x is None or y is None:
            continue
        if x > min_easting and y > min_northing:
            yield CoordinatePair(x=x, y=y)


def parse_coordinates(text: str, **kwargs) -> list[CoordinatePair]:
    return list(iter_coordinates(text, **kwargs))


def parser_options(parser_config: dict) -> dict:
    """Map the ``parser`` config section onto ``iter_coordinates`` keywords."""
    return {
        "header_markers": tuple(parser_config.get("header_markers", DEFAULT_HEADER_MARKERS)),
        "min_easting": float(parser_config.get("min_easting", DEFAULT_MIN_EASTING)),
        "min_northing": float(parser_config.get("min_northing", DEFAULT_MIN_NORTHING)),
    }
