from __future__ import annotations

import logging
from typing import Awaitable, Callable, Iterable

from rankr.core.models import DeleteResult, RecordId
from rankr.runtime.concurrency import Call, gather_settled
from rankr.runtime.gateway import RemoteGateway
from rankr.runtime.selection import SelectionManager


logger = logging.getLogger(__name__)


class BulkDeleter:
    """Fail-soft deletes: every call settles, results are tallied, then one refetch."""

    def __init__(
        self,
        *,
        gateway: RemoteGateway,
        selection: SelectionManager,
        refresh: Callable[[], Awaitable[None]],
    ):
        self.gateway = gateway
        self.selection = selection
        self.refresh = refresh

    async def delete_one(self, record_id: RecordId) -> DeleteResult:
        return await self.delete_many([record_id])

    async def delete_many(self, record_ids: Iterable[RecordId]) -> DeleteResult:
        ids = list(dict.fromkeys(record_ids))
        if not ids:
            return DeleteResult()

        outcomes = await gather_settled([Call(record_id, self.gateway.delete, (record_id,)) for record_id in ids])

        result = DeleteResult()
        for outcome in outcomes:
            if outcome.ok:
                result.succeeded += 1
                continue
            result.failed += 1
            result.failed_ids.append(outcome.key)
            result.errors[str(outcome.key)] = str(outcome.error)

        if result.failed:
            logger.warning("deleted %d of %d records; failed: %s", result.succeeded, len(ids), result.failed_ids)
        else:
            logger.info("deleted %d records", result.succeeded)

        await self.refresh()
        self.selection.clear()
        return result
