from __future__ import annotations

from types import MappingProxyType
from typing import Any, Iterable, Mapping

from rankr.core.errors import ValidationError
from rankr.core.models import Record, RecordId, SortDirection


def sort_records(records: Iterable[Record], direction: SortDirection) -> list[Record]:
    """Order by rank in `direction`, newest `created_at` first among equal ranks."""
    ordered = sorted(records, key=lambda record: record.created_sort_key(), reverse=True)
    ordered.sort(key=lambda record: record.rank, reverse=direction == SortDirection.DESC)
    return ordered


class RecordStore:
    """Locally edited ordered list plus the baseline from the last successful fetch."""

    def __init__(self, sort_direction: SortDirection = SortDirection.ASC):
        self.sort_direction = sort_direction
        self._records: list[Record] = []
        self._baseline: Mapping[RecordId, Record] = MappingProxyType({})
        self._dirty: set[RecordId] = set()

    def __len__(self) -> int:
        return len(self._records)

    @property
    def records(self) -> tuple[Record, ...]:
        return tuple(self._records)

    @property
    def baseline(self) -> Mapping[RecordId, Record]:
        return self._baseline

    @property
    def dirty_ids(self) -> frozenset[RecordId]:
        return frozenset(self._dirty)

    def load(self, records: Iterable[Record]) -> None:
        ordered = sort_records(records, self.sort_direction)
        self._records = ordered
        self._baseline = MappingProxyType(
            {record.id: record for record in ordered if record.is_persisted}
        )
        self._dirty.clear()

    def clear(self) -> None:
        self.load([])

    def slice(self, start: int, stop: int | None) -> list[Record]:
        return self._records[start:stop]

    def at(self, index: int) -> Record:
        if not 0 <= index < len(self._records):
            raise ValidationError(f"index {index} out of range for {len(self._records)} records")
        return self._records[index]

    def index_of(self, record_id: RecordId) -> int:
        for index, record in enumerate(self._records):
            if record.id == record_id:
                return index
        raise ValidationError(f"unknown record id: {record_id!r}")

    def get(self, record_id: RecordId) -> Record:
        return self._records[self.index_of(record_id)]

    def local_update(self, record_id: RecordId, patch: Mapping[str, Any]) -> Record:
        index = self.index_of(record_id)
        current = self._records[index]
        fields = {key: value for key, value in patch.items() if key in {"rank", "payload", "created_at"}}
        unknown = set(patch) - set(fields)
        if unknown:
            payload = dict(current.payload)
            payload.update({key: patch[key] for key in unknown})
            fields["payload"] = payload
        updated = current.model_copy(update=fields)
        self._records[index] = updated
        self._dirty.add(record_id)
        return updated

    def swap_positions(self, first: int, second: int) -> None:
        self._records[first], self._records[second] = self._records[second], self._records[first]

    def rank_changes(self) -> list[Record]:
        """Persisted records whose rank differs from the baseline, in list order."""
        changed: list[Record] = []
        for record in self._records:
            if not record.is_persisted:
                continue
            original = self._baseline.get(record.id)
            if original is not None and original.rank != record.rank:
                changed.append(record)
        return changed

    def max_rank(self) -> int | None:
        if not self._records:
            return None
        return max(record.rank for record in self._records)
