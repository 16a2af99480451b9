from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from rankr.core.errors import ConsistencyError, ValidationError
from rankr.core.models import Record, SaveResult
from rankr.runtime.concurrency import Call, FailFastError, gather_fail_fast
from rankr.runtime.gateway import RemoteGateway
from rankr.runtime.pagination import PaginationStrategy
from rankr.runtime.reconciler import as_network_error
from rankr.runtime.store import RecordStore


logger = logging.getLogger(__name__)


def coerce_rank(value: Any) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"rank must be an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise ValidationError(f"rank must be an integer, got {value!r}")


class BulkRankEditor:
    """Free-form local rank edits, saved together by diffing against the baseline."""

    def __init__(
        self,
        *,
        gateway: RemoteGateway,
        store: RecordStore,
        strategy: PaginationStrategy,
        refresh: Callable[[], Awaitable[None]],
        detached: set[asyncio.Task[Any]] | None = None,
    ):
        self.gateway = gateway
        self.store = store
        self.strategy = strategy
        self.refresh = refresh
        self.detached = detached

    def set_rank(self, row_index: int, value: Any) -> Record:
        rank = coerce_rank(value)
        visible = self.strategy.visible(self.store)
        if not 0 <= row_index < len(visible):
            raise ValidationError(f"row {row_index} out of range for {len(visible)} visible rows")
        # Duplicates and gaps are allowed between edits.
        return self.store.local_update(visible[row_index].id, {"rank": rank})

    def pending_changes(self) -> list[Record]:
        return self.store.rank_changes()

    async def save_all(self) -> SaveResult:
        changed = self.pending_changes()
        if not changed:
            return SaveResult(nothing_to_save=True)

        calls = [Call(record.id, self.gateway.update_rank, (record.id, record.rank)) for record in changed]
        try:
            await gather_fail_fast(calls, detached=self.detached)
        except FailFastError as exc:
            await self.refresh()
            if exc.applied_keys:
                logger.warning(
                    "bulk rank save aborted after %d of %d writes: %s (still in flight: %s)",
                    len(exc.applied_keys),
                    len(calls),
                    exc.error,
                    exc.pending_keys,
                )
                raise ConsistencyError(
                    f"Saving ranks failed partway ({exc.error}); some ranks were updated and others were not",
                    applied_ids=exc.applied_keys,
                    failed_ids=exc.failed_keys,
                ) from exc.error
            logger.warning("bulk rank save failed: %s", exc.error)
            raise as_network_error(exc.error)

        logger.info("saved %d rank changes", len(changed))
        await self.refresh()
        return SaveResult(saved=len(changed), saved_ids=[record.id for record in changed])
