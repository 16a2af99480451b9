from __future__ import annotations

import math
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


RecordId = int | str


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class PaginationMode(str, Enum):
    REMOTE_WINDOW = "remote_window"
    CLIENT_SLICE = "client_slice"


class LoadState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    LOAD_ERROR = "load_error"


class Record(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: RecordId | None = Field(default=None, description="Remote identifier; empty or zero until persisted")
    rank: int = 0
    created_at: datetime | None = None
    payload: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_persisted(self) -> bool:
        return self.id not in (None, 0, "")

    def created_sort_key(self) -> float:
        if self.created_at is None:
            return float("-inf")
        return self.created_at.timestamp()


class ListPage(BaseModel):
    items: list[Record] = Field(default_factory=list)
    total_items: int = 0
    total_pages: int = 1
    current_page: int = 1


class PageWindow(BaseModel):
    page: int = Field(default=1, ge=1)
    page_size: int | None = Field(default=None, ge=1, description="None renders the whole list on one page")
    total_items: int = Field(default=0, ge=0)
    server_total_pages: int | None = None

    @property
    def total_pages(self) -> int:
        if self.server_total_pages is not None:
            return self.server_total_pages
        if self.page_size is None:
            return 1 if self.total_items else 0
        return math.ceil(self.total_items / self.page_size)

    @property
    def last_page(self) -> int:
        return max(1, self.total_pages)

    @property
    def offset(self) -> int:
        if self.page_size is None:
            return 0
        return (self.page - 1) * self.page_size


class HeaderState(BaseModel):
    checked: bool = False
    indeterminate: bool = False


class SaveResult(BaseModel):
    saved: int = 0
    nothing_to_save: bool = False
    saved_ids: list[RecordId] = Field(default_factory=list)


class DeleteResult(BaseModel):
    succeeded: int = 0
    failed: int = 0
    failed_ids: list[RecordId] = Field(default_factory=list)
    errors: dict[str, str] = Field(default_factory=dict)

    @property
    def total(self) -> int:
        return self.succeeded + self.failed
