from __future__ import annotations

import logging
from typing import Awaitable, Callable

from rankr.core.errors import ConsistencyError, NetworkError, ValidationError
from rankr.runtime.concurrency import Call, gather_settled
from rankr.runtime.gateway import RemoteGateway
from rankr.runtime.pagination import PaginationStrategy
from rankr.runtime.store import RecordStore


logger = logging.getLogger(__name__)


def as_network_error(error: BaseException) -> NetworkError:
    if isinstance(error, NetworkError):
        return error
    wrapped = NetworkError(str(error) or error.__class__.__name__)
    wrapped.__cause__ = error
    return wrapped


class RankReconciler:
    """Adjacent swaps: optimistic local swap, two concurrent rank writes, then a refetch.

    Neighbors are resolved on the full ordering through the pagination strategy, so
    the last row of a page swaps with the first row of the next one.
    """

    def __init__(
        self,
        *,
        gateway: RemoteGateway,
        store: RecordStore,
        strategy: PaginationStrategy,
        refresh: Callable[[], Awaitable[None]],
        current_filter: Callable[[], str | None],
    ):
        self.gateway = gateway
        self.store = store
        self.strategy = strategy
        self.refresh = refresh
        self.current_filter = current_filter

    async def move_up(self, row_index: int) -> bool:
        return await self._move(row_index, -1)

    async def move_down(self, row_index: int) -> bool:
        return await self._move(row_index, 1)

    async def _move(self, row_index: int, step: int) -> bool:
        visible = self.strategy.visible(self.store)
        if not 0 <= row_index < len(visible):
            raise ValidationError(f"row {row_index} out of range for {len(visible)} visible rows")

        absolute = self.strategy.absolute_index(row_index)
        target = absolute + step
        if target < 0 or target >= self.strategy.window.total_items:
            return False

        current = visible[row_index]
        neighbor = await self.strategy.locate(target, self.store, self.current_filter())
        if neighbor is None:
            return False
        if not current.is_persisted or not neighbor.is_persisted:
            raise ValidationError("only persisted records can be reordered")

        current_rank, neighbor_rank = current.rank, neighbor.rank
        self._swap_locally(absolute, target, current_rank, neighbor_rank)

        outcomes = await gather_settled(
            [
                Call(current.id, self.gateway.update_rank, (current.id, neighbor_rank)),
                Call(neighbor.id, self.gateway.update_rank, (neighbor.id, current_rank)),
            ]
        )
        # Success picks up server-side renormalization; failure drops the optimistic swap.
        await self.refresh()

        failed = [outcome for outcome in outcomes if not outcome.ok]
        if not failed:
            logger.info("swapped %r (rank %s) with %r (rank %s)", current.id, current_rank, neighbor.id, neighbor_rank)
            return True

        if len(failed) == len(outcomes):
            logger.warning("swap of %r and %r failed: %s", current.id, neighbor.id, failed[0].error)
            raise as_network_error(failed[0].error)

        applied = [outcome.key for outcome in outcomes if outcome.ok]
        logger.warning("swap of %r and %r applied only to %r", current.id, neighbor.id, applied)
        raise ConsistencyError(
            f"Reorder was only partially saved ({failed[0].error}); the list was reloaded from the server",
            applied_ids=applied,
            failed_ids=[outcome.key for outcome in failed],
        ) from failed[0].error

    def _swap_locally(self, absolute: int, target: int, current_rank: int, neighbor_rank: int) -> None:
        current_index = self.strategy.store_index(absolute, self.store)
        neighbor_index = self.strategy.store_index(target, self.store)
        if current_index is None:
            return
        current = self.store.at(current_index)
        self.store.local_update(current.id, {"rank": neighbor_rank})
        if neighbor_index is None:
            return
        neighbor = self.store.at(neighbor_index)
        self.store.local_update(neighbor.id, {"rank": current_rank})
        self.store.swap_positions(current_index, neighbor_index)
