from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Hashable


logger = logging.getLogger(__name__)


@dataclass
class Call:
    key: Hashable
    func: Callable[..., Any]
    args: tuple[Any, ...] = ()


@dataclass
class Settled:
    key: Hashable
    result: Any = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(eq=False)
class FailFastError(Exception):
    """First failure of a fail-fast group, with what was known at that moment."""

    error: BaseException
    failed_keys: list[Hashable]
    applied_keys: list[Hashable]
    pending_keys: list[Hashable] = field(default_factory=list)

    def __str__(self) -> str:
        return str(self.error)


async def gather_settled(calls: list[Call]) -> list[Settled]:
    """Run blocking calls concurrently in threads and let every one of them finish."""
    results = await asyncio.gather(
        *(asyncio.to_thread(call.func, *call.args) for call in calls),
        return_exceptions=True,
    )
    outcomes: list[Settled] = []
    for call, result in zip(calls, results):
        if isinstance(result, BaseException):
            outcomes.append(Settled(key=call.key, error=result))
        else:
            outcomes.append(Settled(key=call.key, result=result))
    return outcomes


def _log_late_outcome(key: Hashable) -> Callable[[asyncio.Task[Any]], None]:
    def _callback(task: asyncio.Task[Any]) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning("in-flight call %r failed after the group was aborted: %s", key, error)
        else:
            logger.info("in-flight call %r completed after the group was aborted", key)

    return _callback


async def gather_fail_fast(
    calls: list[Call],
    detached: set[asyncio.Task[Any]] | None = None,
) -> dict[Hashable, Any]:
    """Run blocking calls concurrently and raise on the first failure.

    Calls still running when the first failure arrives are not cancelled: they keep
    running in their threads and, when `detached` is given, their tasks are added
    to it so the owner can await them later.
    """
    tasks = {asyncio.create_task(asyncio.to_thread(call.func, *call.args)): call.key for call in calls}
    if not tasks:
        return {}
    done, pending = await asyncio.wait(list(tasks), return_when=asyncio.FIRST_EXCEPTION)

    ordered_done = [task for task in tasks if task in done]
    failed = [task for task in ordered_done if task.exception() is not None]
    if not failed:
        return {tasks[task]: task.result() for task in ordered_done}

    for task in pending:
        task.add_done_callback(_log_late_outcome(tasks[task]))
        if detached is not None:
            detached.add(task)
            task.add_done_callback(detached.discard)

    raise FailFastError(
        error=failed[0].exception(),
        failed_keys=[tasks[task] for task in failed],
        applied_keys=[tasks[task] for task in ordered_done if task.exception() is None],
        pending_keys=[tasks[task] for task in tasks if task in pending],
    )
