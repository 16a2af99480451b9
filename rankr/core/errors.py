from __future__ import annotations

from typing import Any


class RankrError(RuntimeError):
    pass


class NetworkError(RankrError):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class SessionExpiredError(NetworkError):
    pass


class ConsistencyError(RankrError):
    """Some, but not all, of a group of concurrent remote writes were applied."""

    def __init__(self, message: str, *, applied_ids: list[Any], failed_ids: list[Any]):
        super().__init__(message)
        self.applied_ids = list(applied_ids)
        self.failed_ids = list(failed_ids)


class ValidationError(RankrError, ValueError):
    pass


class EngineBusyError(ValidationError):
    pass
