from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Iterable

from rankr.core.errors import ConsistencyError, EngineBusyError, NetworkError, ValidationError
from rankr.core.models import (
    DeleteResult,
    HeaderState,
    LoadState,
    PageWindow,
    PaginationMode,
    Record,
    RecordId,
    SaveResult,
    SortDirection,
)
from rankr.core.resources import ResourcePreset
from rankr.runtime.bulk_editor import BulkRankEditor
from rankr.runtime.deleter import BulkDeleter
from rankr.runtime.gateway import RemoteGateway
from rankr.runtime.pagination import build_strategy
from rankr.runtime.reconciler import RankReconciler, as_network_error
from rankr.runtime.selection import SelectionManager
from rankr.runtime.store import RecordStore


logger = logging.getLogger(__name__)

Notifier = Callable[[str, str], None]

_SEVERITY_LEVELS = {
    "information": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def log_notifier(message: str, severity: str = "information") -> None:
    logger.log(_SEVERITY_LEVELS.get(severity, logging.INFO), message)


class ListEngine:
    """State of one list screen: records, paging, selection and the mutating actions.

    Every action that writes to the remote store ends with a refetch. A refetch that
    fails puts the engine in LOAD_ERROR and is reported through `notify`; it never
    hides the outcome of the action that triggered it.
    """

    def __init__(
        self,
        gateway: RemoteGateway,
        *,
        sort_direction: SortDirection = SortDirection.ASC,
        pagination: PaginationMode = PaginationMode.CLIENT_SLICE,
        page_size: int | None = 10,
        rank_field: str = "rank",
        notify: Notifier | None = None,
    ):
        self.gateway = gateway
        self.rank_field = rank_field
        self.notify = notify or log_notifier

        self.state = LoadState.IDLE
        self.busy = False
        self.last_error: Exception | None = None
        self.filter: str | None = None

        self._busy_action: str | None = None
        self._generation = 0
        self._closed = False
        self._detached: set[asyncio.Task[Any]] = set()

        self.store = RecordStore(sort_direction)
        self.strategy = build_strategy(pagination, gateway, page_size)
        self.selection = SelectionManager(lambda: [record.id for record in self.visible()])
        self.reconciler = RankReconciler(
            gateway=gateway,
            store=self.store,
            strategy=self.strategy,
            refresh=self.refresh,
            current_filter=lambda: self.filter,
        )
        self.editor = BulkRankEditor(
            gateway=gateway,
            store=self.store,
            strategy=self.strategy,
            refresh=self.refresh,
            detached=self._detached,
        )
        self.deleter = BulkDeleter(gateway=gateway, selection=self.selection, refresh=self.refresh)

    @classmethod
    def for_preset(
        cls,
        gateway: RemoteGateway,
        preset: ResourcePreset,
        *,
        page_size: int | None = 10,
        notify: Notifier | None = None,
    ) -> "ListEngine":
        return cls(
            gateway,
            sort_direction=preset.sort_direction,
            pagination=preset.pagination,
            page_size=page_size,
            rank_field=preset.rank_field,
            notify=notify,
        )

    @property
    def window(self) -> PageWindow:
        return self.strategy.window

    @property
    def page(self) -> int:
        return self.strategy.window.page

    @property
    def total_pages(self) -> int:
        return self.strategy.window.total_pages

    @property
    def records(self) -> tuple[Record, ...]:
        return self.store.records

    @property
    def closed(self) -> bool:
        return self._closed

    def visible(self) -> list[Record]:
        return self.strategy.visible(self.store)

    def to_absolute_index(self, row_index: int) -> int:
        return self.strategy.absolute_index(row_index)

    # Fetching

    async def _fetch(self, page: int) -> bool:
        self._generation += 1
        generation = self._generation
        self.state = LoadState.LOADING
        try:
            result = await self.strategy.fetch(page, self.filter)
        except Exception as exc:  # noqa: BLE001
            if self._is_stale(generation):
                logger.warning("discarding failed fetch superseded by a newer one: %s", exc)
                return False
            error = as_network_error(exc)
            self.state = LoadState.LOAD_ERROR
            self.last_error = error
            if error is exc:
                raise
            raise error from exc

        if self._is_stale(generation):
            logger.warning("discarding stale fetch result (generation %d)", generation)
            return False

        self.strategy.window = result.window
        self.store.load(result.items)
        self.selection.clear()
        self.state = LoadState.LOADED
        self.last_error = None
        return True

    def _is_stale(self, generation: int) -> bool:
        return self._closed or generation != self._generation

    async def load(self) -> bool:
        """Fetch the current page; raises NetworkError on failure."""
        self._ensure_open()
        return await self._fetch(self.strategy.window.page)

    async def refresh(self) -> None:
        if self._closed:
            return
        try:
            await self._fetch(self.strategy.window.page)
        except NetworkError as exc:
            self.notify(f"Reload failed: {exc}", "error")

    async def search(self, filter: str | None) -> bool:
        self._ensure_open()
        self.filter = filter or None
        self.selection.clear()
        return await self._fetch(1)

    async def change_page(self, page: int) -> bool:
        self._ensure_open()
        if page == self.strategy.window.page:
            return False
        self.strategy.validate_page(page)
        self.selection.clear()
        if self.strategy.fetches_on_page_change():
            return await self._fetch(page)
        self.strategy.window.page = page
        return True

    # Selection

    def toggle(self, record_id: RecordId) -> bool:
        return self.selection.toggle(record_id)

    def select_all(self, checked: bool) -> None:
        self.selection.select_all(checked)

    def header_state(self) -> HeaderState:
        return self.selection.header_state()

    @property
    def selected_ids(self) -> list[RecordId]:
        return self.selection.ordered_selection()

    # Mutations

    @asynccontextmanager
    async def _mutation(self, action: str) -> AsyncIterator[None]:
        self._ensure_idle()
        self.busy = True
        self._busy_action = action
        try:
            yield
        except (NetworkError, ConsistencyError) as exc:
            self.notify(str(exc), "error")
            raise
        finally:
            self.busy = False
            self._busy_action = None

    def _ensure_open(self) -> None:
        if self._closed:
            raise ValidationError("list engine is closed")

    def _ensure_idle(self) -> None:
        self._ensure_open()
        if self.busy:
            raise EngineBusyError(f"{self._busy_action} is still in progress")

    async def move_up(self, row_index: int) -> bool:
        async with self._mutation("moving"):
            return await self.reconciler.move_up(row_index)

    async def move_down(self, row_index: int) -> bool:
        async with self._mutation("moving"):
            return await self.reconciler.move_down(row_index)

    def set_rank(self, row_index: int, value: Any) -> Record:
        self._ensure_idle()
        return self.editor.set_rank(row_index, value)

    def pending_changes(self) -> list[Record]:
        return self.editor.pending_changes()

    async def save_all(self) -> SaveResult:
        async with self._mutation("saving"):
            result = await self.editor.save_all()
        if result.nothing_to_save:
            self.notify("Nothing to save", "information")
        else:
            self.notify(f"Saved {result.saved} rank change(s)", "information")
        return result

    async def delete_one(self, record_id: RecordId) -> DeleteResult:
        return await self.delete_many([record_id])

    async def delete_many(self, record_ids: Iterable[RecordId] | None = None) -> DeleteResult:
        ids = list(self.selected_ids if record_ids is None else record_ids)
        async with self._mutation("deleting"):
            result = await self.deleter.delete_many(ids)
        if result.failed:
            self.notify(f"Deleted {result.succeeded} of {result.total}; {result.failed} failed", "warning")
        elif result.succeeded:
            self.notify(f"Deleted {result.succeeded} record(s)", "information")
        return result

    def next_rank(self) -> int:
        if self.strategy.fetches_on_page_change():
            return self.strategy.window.total_items + 1
        highest = self.store.max_rank()
        return 1 if highest is None else highest + 1

    async def create(self, payload: dict[str, Any], rank: int | None = None) -> Record:
        async with self._mutation("creating"):
            body = dict(payload)
            body[self.rank_field] = self.next_rank() if rank is None else rank
            try:
                created = await asyncio.to_thread(self.gateway.create, body)
            except Exception as exc:  # noqa: BLE001
                await self.refresh()
                error = as_network_error(exc)
                if error is exc:
                    raise
                raise error from exc
            await self.refresh()
        return created

    # Lifecycle

    def close(self) -> None:
        """Unmount: results of fetches still in flight are dropped."""
        self._closed = True
        self.selection.clear()

    async def drain(self) -> None:
        """Wait for writes left running by an aborted bulk save."""
        if self._detached:
            await asyncio.gather(*list(self._detached), return_exceptions=True)
