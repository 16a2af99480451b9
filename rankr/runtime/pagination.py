from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from rankr.core.errors import ValidationError
from rankr.core.models import PageWindow, PaginationMode, Record
from rankr.runtime.gateway import RemoteGateway
from rankr.runtime.store import RecordStore


logger = logging.getLogger(__name__)


@dataclass
class FetchResult:
    items: list[Record]
    window: PageWindow


def to_absolute_index(page: int, page_size: int | None, row_index: int) -> int:
    if page_size is None:
        return row_index
    return (page - 1) * page_size + row_index


class PaginationStrategy:
    mode: PaginationMode

    def __init__(self, gateway: RemoteGateway, page_size: int | None):
        self.gateway = gateway
        self.window = PageWindow(page=1, page_size=page_size)

    @staticmethod
    def to_absolute_index(page: int, page_size: int | None, row_index: int) -> int:
        return to_absolute_index(page, page_size, row_index)

    def absolute_index(self, row_index: int) -> int:
        return to_absolute_index(self.window.page, self.window.page_size, row_index)

    def validate_page(self, page: int) -> None:
        if page < 1 or page > self.window.last_page:
            raise ValidationError(f"page {page} out of range 1..{self.window.last_page}")

    async def fetch(self, page: int, filter: str | None) -> FetchResult:
        raise NotImplementedError

    def visible(self, store: RecordStore) -> list[Record]:
        raise NotImplementedError

    def store_index(self, absolute: int, store: RecordStore) -> int | None:
        raise NotImplementedError

    def fetches_on_page_change(self) -> bool:
        raise NotImplementedError

    async def locate(self, absolute: int, store: RecordStore, filter: str | None) -> Record | None:
        raise NotImplementedError


class RemoteWindow(PaginationStrategy):
    """The server owns paging; every page change is a new request."""

    mode = PaginationMode.REMOTE_WINDOW

    def __init__(self, gateway: RemoteGateway, page_size: int):
        super().__init__(gateway, page_size)

    async def _list(self, page: int, filter: str | None) -> FetchResult:
        result = await asyncio.to_thread(self.gateway.list, page, self.window.page_size, filter)
        window = PageWindow(
            page=max(1, result.current_page),
            page_size=self.window.page_size,
            total_items=result.total_items,
            server_total_pages=result.total_pages,
        )
        return FetchResult(items=list(result.items), window=window)

    async def fetch(self, page: int, filter: str | None) -> FetchResult:
        result = await self._list(page, filter)
        last_page = result.window.last_page
        if not result.items and page > last_page:
            # The requested page was emptied (e.g. by a delete); fall back to the new last page.
            logger.debug("page %s is past the last page %s; refetching", page, last_page)
            result = await self._list(last_page, filter)
        return result

    def visible(self, store: RecordStore) -> list[Record]:
        return list(store.records)

    def store_index(self, absolute: int, store: RecordStore) -> int | None:
        index = absolute - self.window.offset
        if 0 <= index < len(store):
            return index
        return None

    def fetches_on_page_change(self) -> bool:
        return True

    async def locate(self, absolute: int, store: RecordStore, filter: str | None) -> Record | None:
        if not 0 <= absolute < self.window.total_items:
            return None
        index = self.store_index(absolute, store)
        if index is not None:
            return store.at(index)
        # Neighbor lives on another server page: read a one-row window at that position.
        result = await asyncio.to_thread(self.gateway.list, absolute + 1, 1, filter)
        return result.items[0] if result.items else None


class ClientSlice(PaginationStrategy):
    """One full fetch; pages are local slices of the loaded list."""

    mode = PaginationMode.CLIENT_SLICE

    async def fetch(self, page: int, filter: str | None) -> FetchResult:
        result = await asyncio.to_thread(self.gateway.list, None, None, filter)
        items = list(result.items)
        window = PageWindow(page=1, page_size=self.window.page_size, total_items=len(items))
        window.page = min(max(1, page), window.last_page)
        return FetchResult(items=items, window=window)

    def visible(self, store: RecordStore) -> list[Record]:
        start = self.window.offset
        stop = None if self.window.page_size is None else start + self.window.page_size
        return store.slice(start, stop)

    def store_index(self, absolute: int, store: RecordStore) -> int | None:
        if 0 <= absolute < len(store):
            return absolute
        return None

    def fetches_on_page_change(self) -> bool:
        return False

    async def locate(self, absolute: int, store: RecordStore, filter: str | None) -> Record | None:
        index = self.store_index(absolute, store)
        return None if index is None else store.at(index)


def build_strategy(mode: PaginationMode, gateway: RemoteGateway, page_size: int | None) -> PaginationStrategy:
    if mode == PaginationMode.REMOTE_WINDOW:
        if page_size is None:
            raise ValueError("remote window pagination requires a page size")
        return RemoteWindow(gateway, page_size)
    return ClientSlice(gateway, page_size)
