"""Data models used across the pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from typing import Any

from twd97_townships.common.errors import ContractError


class RecordStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


# Allowed forward moves within one processing pass.
_TRANSITIONS = {
    RecordStatus.PENDING: {RecordStatus.PROCESSING},
    RecordStatus.PROCESSING: {RecordStatus.COMPLETED, RecordStatus.ERROR},
    RecordStatus.COMPLETED: set(),
    RecordStatus.ERROR: set(),
}


@dataclass(frozen=True)
class CoordinatePair:
    """A planar TWD97 easting/northing pair."""

    x: float
    y: float


@dataclass(frozen=True)
class LatLng:
    lat: float
    lng: float


@dataclass(frozen=True)
class CoordinateRecord:
    id: int
    original_x: float
    original_y: float
    lat: float
    lng: float
    township: str | None = None
    status: RecordStatus = RecordStatus.PENDING
    notes: tuple[str, ...] = field(default_factory=tuple)

    def advance(self, status: RecordStatus, township: str | None = None) -> "CoordinateRecord":
        """Return a copy moved one step forward in the status lifecycle.

        Only ``completed`` may carry a township, and a township already set is
        never overwritten.
        """
        if status not in _TRANSITIONS[self.status]:
            raise ContractError(f"Record {self.id}: illegal status change {self.status.value} -> {status.value}")
        if township is not None:
            if status is not RecordStatus.COMPLETED:
                raise ContractError(f"Record {self.id}: township may only be set on completion")
            if self.township is not None:
                raise ContractError(f"Record {self.id}: township already set")
        return replace(self, status=status, township=township if township is not None else self.township)

    def for_new_pass(self) -> "CoordinateRecord":
        """Return a pending copy with no township, ready for another pass."""
        return replace(self, status=RecordStatus.PENDING, township=None)

    def with_note(self, note: str) -> "CoordinateRecord":
        if note in self.notes:
            return self
        return replace(self, notes=(*self.notes, note))

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["status"] = self.status.value
        payload["notes"] = list(self.notes)
        return payload
