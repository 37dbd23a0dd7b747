"""Plausibility checks for converted coordinates."""

from __future__ import annotations

from typing import Iterable

from twd97_townships.common.constants import NOTE_COORDINATE_OUTLIER
from twd97_townships.common.models import CoordinateRecord


def _valid_lat_lon(lat: float, lon: float) -> bool:
    return -90 <= lat <= 90 and -180 <= lon <= 180


def _within_bbox(lat: float, lon: float, bbox: dict) -> bool:
    return (
        bbox["min_lat"] <= lat <= bbox["max_lat"]
        and bbox["min_lon"] <= lon <= bbox["max_lon"]
    )


def flag_outliers(records: Iterable[CoordinateRecord], bbox: dict) -> list[CoordinateRecord]:
    flagged = []
    for record in records:
        if not _valid_lat_lon(record.lat, record.lng) or not _within_bbox(record.lat, record.lng, bbox):
            record = record.with_note(NOTE_COORDINATE_OUTLIER)
        flagged.append(record)
    return flagged


def outlier_warnings(records: Iterable[CoordinateRecord]) -> list[dict]:
    return [
        {
            "code": NOTE_COORDINATE_OUTLIER,
            "id": record.id,
            "lat": record.lat,
            "lng": record.lng,
        }
        for record in records
        if NOTE_COORDINATE_OUTLIER in record.notes
    ]
