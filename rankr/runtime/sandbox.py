from __future__ import annotations

import copy
import math
import threading
from datetime import UTC, datetime, timedelta
from typing import Any

from rankr.core.errors import NetworkError
from rankr.core.models import ListPage, Record, RecordId, SortDirection
from rankr.core.resources import RESOURCE_PRESETS, ResourcePreset
from rankr.runtime.gateway import extract_page, record_from_wire


class SandboxStore:
    """In-memory stand-in for the admin API, one row list per resource path."""

    def __init__(self, presets: tuple[ResourcePreset, ...] = RESOURCE_PRESETS):
        self._lock = threading.RLock()
        self._presets = {preset.path: preset for preset in presets}
        self._rows: dict[str, dict[int, dict[str, Any]]] = {preset.path: {} for preset in presets}
        self._next_id: dict[str, int] = {preset.path: 1 for preset in presets}

    def _table(self, preset: ResourcePreset) -> dict[int, dict[str, Any]]:
        table = self._rows.get(preset.path)
        if table is None:
            table = self._rows.setdefault(preset.path, {})
            self._next_id.setdefault(preset.path, 1)
            self._presets.setdefault(preset.path, preset)
        return table

    def seed(self, preset: ResourcePreset, count: int, *, start: datetime | None = None) -> list[dict[str, Any]]:
        start = start or datetime(2025, 1, 1, tzinfo=UTC)
        created: list[dict[str, Any]] = []
        for index in range(count):
            created.append(
                self.create(
                    preset,
                    {
                        "title": f"{preset.label} #{index + 1}",
                        preset.rank_field: index + 1,
                        preset.created_field: (start + timedelta(minutes=index)).isoformat(),
                    },
                )
            )
        return created

    def seed_all(self, count: int) -> None:
        for preset in self._presets.values():
            self.seed(preset, count)

    def _sorted_rows(self, preset: ResourcePreset) -> list[dict[str, Any]]:
        rows = list(self._table(preset).values())
        rows.sort(key=lambda row: str(row.get(preset.created_field) or ""), reverse=True)
        rows.sort(
            key=lambda row: int(row.get(preset.rank_field) or 0),
            reverse=preset.sort_direction == SortDirection.DESC,
        )
        return rows

    @staticmethod
    def _matches(row: dict[str, Any], search: str) -> bool:
        needle = search.lower()
        return any(isinstance(value, str) and needle in value.lower() for value in row.values())

    def list_rows(
        self,
        preset: ResourcePreset,
        page: int | None = None,
        limit: int | None = None,
        search: str | None = None,
    ) -> tuple[list[dict[str, Any]], int]:
        with self._lock:
            rows = self._sorted_rows(preset)
            if search:
                rows = [row for row in rows if self._matches(row, search)]
            total = len(rows)
            if page is not None and limit:
                start = (max(1, page) - 1) * limit
                rows = rows[start : start + limit]
            return copy.deepcopy(rows), total

    def get_row(self, preset: ResourcePreset, record_id: int) -> dict[str, Any]:
        with self._lock:
            return copy.deepcopy(self._table(preset)[record_id])

    def update_rank(self, preset: ResourcePreset, record_id: int, rank: int) -> dict[str, Any]:
        with self._lock:
            row = self._table(preset)[record_id]
            row[preset.rank_field] = int(rank)
            row["updatedAt"] = datetime.now(UTC).isoformat()
            return copy.deepcopy(row)

    def create(self, preset: ResourcePreset, payload: dict[str, Any]) -> dict[str, Any]:
        with self._lock:
            table = self._table(preset)
            record_id = self._next_id[preset.path]
            self._next_id[preset.path] = record_id + 1

            row = {key: value for key, value in payload.items() if key != preset.id_field}
            if row.get(preset.rank_field) is None:
                ranks = [int(item.get(preset.rank_field) or 0) for item in table.values()]
                row[preset.rank_field] = max(ranks, default=0) + 1
            row.setdefault(preset.created_field, datetime.now(UTC).isoformat())
            row[preset.id_field] = record_id
            table[record_id] = row
            return copy.deepcopy(row)

    def delete(self, preset: ResourcePreset, record_id: int) -> None:
        with self._lock:
            del self._table(preset)[record_id]


class SandboxGateway:
    """RemoteGateway over a SandboxStore; used by `--sandbox` runs and the tests."""

    def __init__(self, store: SandboxStore, preset: ResourcePreset):
        self.store = store
        self.preset = preset

    @staticmethod
    def _key(record_id: RecordId) -> int:
        try:
            return int(record_id)
        except (TypeError, ValueError) as exc:
            raise NetworkError(f"HTTP 404: record {record_id!r} not found", status_code=404) from exc

    def list(self, page: int | None, page_size: int | None, filter: str | None = None) -> ListPage:
        rows, total = self.store.list_rows(self.preset, page, page_size, filter)
        body: dict[str, Any] = {"success": True, "data": rows}
        if page is not None and page_size:
            body["pagination"] = {
                "totalItems": total,
                "totalPages": math.ceil(total / page_size),
                "currentPage": page,
                "pageSize": page_size,
            }
        return extract_page(body, self.preset, page, page_size)

    def update_rank(self, record_id: RecordId, rank: int) -> Record:
        try:
            row = self.store.update_rank(self.preset, self._key(record_id), rank)
        except KeyError as exc:
            raise NetworkError(f"HTTP 404: record {record_id!r} not found", status_code=404) from exc
        return record_from_wire(row, self.preset)

    def create(self, payload: dict[str, Any]) -> Record:
        return record_from_wire(self.store.create(self.preset, payload), self.preset)

    def delete(self, record_id: RecordId) -> None:
        try:
            self.store.delete(self.preset, self._key(record_id))
        except KeyError as exc:
            raise NetworkError(f"HTTP 404: record {record_id!r} not found", status_code=404) from exc
