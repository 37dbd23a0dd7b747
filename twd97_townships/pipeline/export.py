"""One-shot CSV export of classified records."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

from twd97_townships.common.constants import MAPS_URL_TEMPLATE, UNKNOWN_TOWNSHIP
from twd97_townships.common.fs import write_csv
from twd97_townships.common.models import CoordinateRecord

EXPORT_HEADERS = [
    "ID",
    "TWD97_X",
    "TWD97_Y",
    "Latitude",
    "Longitude",
    "Township",
    "Maps Link",
]


def _format_planar(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def maps_link(lat: float, lng: float) -> str:
    return MAPS_URL_TEMPLATE.format(lat=repr(lat), lng=repr(lng))


def _serialize_row(record: CoordinateRecord) -> dict:
    return {
        "ID": record.id,
        "TWD97_X": _format_planar(record.original_x),
        "TWD97_Y": _format_planar(record.original_y),
        "Latitude": f"{record.lat:.7f}",
        "Longitude": f"{record.lng:.7f}",
        "Township": record.township or UNKNOWN_TOWNSHIP,
        "Maps Link": maps_link(record.lat, record.lng),
    }


def export_rows(records: Iterable[CoordinateRecord]) -> list[dict]:
    return [_serialize_row(record) for record in sorted(records, key=lambda record: record.id)]


def write_export_csv(path: Path, records: Iterable[CoordinateRecord]) -> Path:
    # BOM so spreadsheet apps detect UTF-8 township names.
    write_csv(path, EXPORT_HEADERS, export_rows(records), encoding="utf-8-sig")
    return path
