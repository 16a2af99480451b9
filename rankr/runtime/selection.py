from __future__ import annotations

from typing import Callable, Iterable

from rankr.core.errors import ValidationError
from rankr.core.models import HeaderState, RecordId


class SelectionManager:
    """Multi-select over the rows currently on screen.

    The selection is always a subset of `visible_ids()`. Anything that changes the
    visible set calls `clear()`; nothing is carried across fetches or pages.
    """

    def __init__(self, visible_ids: Callable[[], Iterable[RecordId]]):
        self._visible_ids = visible_ids
        self._selected: set[RecordId] = set()

    def __len__(self) -> int:
        return len(self._selected)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._selected

    @property
    def selected(self) -> frozenset[RecordId]:
        return frozenset(self._selected)

    def ordered_selection(self) -> list[RecordId]:
        return [record_id for record_id in self._visible_ids() if record_id in self._selected]

    def toggle(self, record_id: RecordId) -> bool:
        if record_id in self._selected:
            self._selected.discard(record_id)
            return False
        if record_id not in set(self._visible_ids()):
            raise ValidationError(f"record {record_id!r} is not on the current page")
        self._selected.add(record_id)
        return True

    def select_all(self, checked: bool) -> None:
        if checked:
            self._selected = set(self._visible_ids())
        else:
            self._selected = set()

    def header_state(self) -> HeaderState:
        visible = set(self._visible_ids())
        selected = len(self._selected & visible)
        if not visible or selected == 0:
            return HeaderState(checked=False, indeterminate=False)
        if selected == len(visible):
            return HeaderState(checked=True, indeterminate=False)
        return HeaderState(checked=False, indeterminate=True)

    def clear(self) -> None:
        self._selected.clear()
