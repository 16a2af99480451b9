from __future__ import annotations

import threading
import time
from collections import Counter
from typing import Any

import pytest

from rankr.core.errors import NetworkError
from rankr.core.models import ListPage, Record, RecordId
from rankr.core.resources import ResourcePreset, get_preset
from rankr.runtime.list_engine import ListEngine
from rankr.runtime.sandbox import SandboxGateway, SandboxStore


class RecordingGateway:
    """SandboxGateway wrapper that counts calls and fails on demand."""

    def __init__(self, store: SandboxStore, preset: ResourcePreset):
        self.inner = SandboxGateway(store, preset)
        self.store = store
        self.preset = preset
        self.calls: Counter[str] = Counter()
        self.list_args: list[tuple[int | None, int | None, str | None]] = []
        self.update_args: list[tuple[RecordId, int]] = []
        self.fail_update_ids: set[RecordId] = set()
        self.fail_delete_ids: set[RecordId] = set()
        self.fail_list = False
        self.hold_list = False
        self.hold_update_ids: set[RecordId] = set()
        self.release = threading.Event()
        self.fail_after_write = False
        self.landed = threading.Event()
        self._lock = threading.Lock()

    def _record(self, name: str) -> None:
        with self._lock:
            self.calls[name] += 1

    def list(self, page: int | None, page_size: int | None, filter: str | None = None) -> ListPage:
        self._record("list")
        self.list_args.append((page, page_size, filter))
        if self.hold_list:
            self.release.wait(timeout=5)
        if self.fail_list:
            raise NetworkError("HTTP 500: list failed", status_code=500)
        return self.inner.list(page, page_size, filter)

    def update_rank(self, record_id: RecordId, rank: int) -> Record:
        self._record("update_rank")
        with self._lock:
            self.update_args.append((record_id, rank))
        if record_id in self.hold_update_ids:
            self.release.wait(timeout=5)
        if record_id in self.fail_update_ids:
            if self.fail_after_write:
                # Let a successful write reach the event loop before this one fails.
                self.landed.wait(timeout=5)
                time.sleep(0.05)
            raise NetworkError(f"HTTP 500: update of {record_id} failed", status_code=500)
        record = self.inner.update_rank(record_id, rank)
        self.landed.set()
        return record

    def create(self, payload: dict[str, Any]) -> Record:
        self._record("create")
        return self.inner.create(payload)

    def delete(self, record_id: RecordId) -> None:
        self._record("delete")
        if record_id in self.fail_delete_ids:
            raise NetworkError(f"HTTP 500: delete of {record_id} failed", status_code=500)
        self.inner.delete(record_id)

    @property
    def network_calls(self) -> int:
        return sum(self.calls.values())


def build_gateway(preset_key: str = "main-banners", count: int = 25) -> RecordingGateway:
    preset = get_preset(preset_key)
    store = SandboxStore(presets=(preset,))
    store.seed(preset, count)
    return RecordingGateway(store, preset)


def build_engine(
    preset_key: str = "main-banners",
    count: int = 25,
    page_size: int | None = 10,
) -> tuple[ListEngine, RecordingGateway, list[tuple[str, str]]]:
    gateway = build_gateway(preset_key, count)
    notices: list[tuple[str, str]] = []
    engine = ListEngine.for_preset(
        gateway,
        gateway.preset,
        page_size=page_size,
        notify=lambda message, severity: notices.append((message, severity)),
    )
    return engine, gateway, notices


@pytest.fixture
def gateway() -> RecordingGateway:
    return build_gateway()


@pytest.fixture
def make_gateway():
    return build_gateway


@pytest.fixture
def make_engine():
    return build_engine
