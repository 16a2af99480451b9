from __future__ import annotations

import json
import logging
import math
import urllib.error
import urllib.request
from datetime import datetime
from typing import Any, Protocol
from urllib.parse import quote, urlencode

from rankr.core.config import SessionContext
from rankr.core.errors import NetworkError, SessionExpiredError
from rankr.core.models import ListPage, Record, RecordId
from rankr.core.resources import ResourcePreset


logger = logging.getLogger(__name__)

_ITEM_KEYS = ("items", "articles", "list", "records", "results")


class RemoteGateway(Protocol):
    """Per-resource CRUD client. Calls are blocking; the engine runs them in worker threads."""

    def list(self, page: int | None, page_size: int | None, filter: str | None = None) -> ListPage: ...

    def update_rank(self, record_id: RecordId, rank: int) -> Record: ...

    def create(self, payload: dict[str, Any]) -> Record: ...

    def delete(self, record_id: RecordId) -> None: ...


def _parse_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None


def _safe_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def record_from_wire(row: dict[str, Any], preset: ResourcePreset) -> Record:
    payload = {
        key: value
        for key, value in row.items()
        if key not in {preset.id_field, preset.rank_field, preset.created_field}
    }
    return Record(
        id=row.get(preset.id_field),
        rank=_safe_int(row.get(preset.rank_field)),
        created_at=_parse_datetime(row.get(preset.created_field)),
        payload=payload,
    )


def extract_items(body: Any) -> list[dict[str, Any]]:
    if isinstance(body, list):
        return body
    if not isinstance(body, dict):
        return []

    data = body.get("data")
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in _ITEM_KEYS:
            if isinstance(data.get(key), list):
                return data[key]
        nested = data.get("data")
        if isinstance(nested, list):
            return nested
    for key in _ITEM_KEYS:
        if isinstance(body.get(key), list):
            return body[key]
    return []


def extract_page(body: Any, preset: ResourcePreset, page: int | None, page_size: int | None) -> ListPage:
    items = [record_from_wire(row, preset) for row in extract_items(body) if isinstance(row, dict)]

    pagination: dict[str, Any] = {}
    if isinstance(body, dict):
        if isinstance(body.get("pagination"), dict):
            pagination = body["pagination"]
        elif isinstance(body.get("data"), dict) and "totalItems" in body["data"]:
            pagination = body["data"]

    total_items = _safe_int(pagination.get("totalItems", len(items))) if pagination else len(items)
    if pagination and "totalPages" in pagination:
        total_pages = _safe_int(pagination["totalPages"])
    elif page_size:
        total_pages = math.ceil(total_items / page_size)
    else:
        total_pages = 1 if total_items else 0
    current_page = _safe_int(pagination.get("currentPage", page or 1)) if pagination else (page or 1)

    return ListPage(
        items=items,
        total_items=total_items,
        total_pages=total_pages,
        current_page=max(1, current_page),
    )


class HttpGateway:
    def __init__(
        self,
        base_url: str,
        preset: ResourcePreset,
        session: SessionContext,
        timeout_seconds: float = 30.0,
    ):
        self.base_url = base_url
        self.preset = preset
        self.session = session
        self.timeout_seconds = timeout_seconds

    def _request(self, method: str, path: str, payload: dict[str, Any] | None = None) -> Any:
        url = f"{self.base_url.rstrip('/')}{path}"
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        headers.update(self.session.auth_headers())
        data = None
        if payload is not None:
            data = json.dumps(payload).encode("utf-8")

        logger.debug("%s %s", method, url)
        request = urllib.request.Request(url=url, data=data, headers=headers, method=method)
        try:
            with urllib.request.urlopen(request, timeout=self.timeout_seconds) as response:
                body = response.read().decode("utf-8")
        except urllib.error.HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="replace")
            logger.warning("%s %s failed with HTTP %s", method, url, exc.code)
            if exc.code == 401:
                raise SessionExpiredError(
                    f"HTTP 401: session '{self.session.storage_key}' is expired or invalid", status_code=401
                ) from exc
            raise NetworkError(f"HTTP {exc.code}: {detail}", status_code=exc.code) from exc
        except urllib.error.URLError as exc:
            logger.warning("%s %s connection error: %s", method, url, exc)
            raise NetworkError(f"Connection error: {exc}") from exc
        except TimeoutError as exc:
            raise NetworkError(f"Timed out after {self.timeout_seconds}s: {method} {url}") from exc

        if not body:
            return None
        try:
            parsed = json.loads(body)
        except json.JSONDecodeError as exc:
            raise NetworkError(f"Malformed JSON from {method} {url}") from exc

        if isinstance(parsed, dict) and parsed.get("success") is False:
            raise NetworkError(str(parsed.get("message") or f"{self.preset.label}: request rejected"))
        return parsed

    def _record_path(self, record_id: RecordId) -> str:
        return f"{self.preset.path}/{quote(str(record_id), safe='')}"

    @staticmethod
    def _single_row(body: Any) -> dict[str, Any]:
        if isinstance(body, dict) and isinstance(body.get("data"), dict):
            return body["data"]
        if isinstance(body, dict):
            return body
        return {}

    def list(self, page: int | None, page_size: int | None, filter: str | None = None) -> ListPage:
        params: dict[str, Any] = {}
        if page is not None:
            params["page"] = page
        if page_size is not None:
            params["limit"] = page_size
        if filter:
            params["search"] = filter
        query = f"?{urlencode(params)}" if params else ""
        body = self._request("GET", f"{self.preset.path}{query}")
        return extract_page(body, self.preset, page, page_size)

    def update_rank(self, record_id: RecordId, rank: int) -> Record:
        body = self._request(
            "PUT",
            self._record_path(record_id),
            {self.preset.id_field: record_id, self.preset.rank_field: rank},
        )
        row = self._single_row(body)
        if not row:
            return Record(id=record_id, rank=rank)
        return record_from_wire(row, self.preset)

    def create(self, payload: dict[str, Any]) -> Record:
        body = self._request("POST", self.preset.path, payload)
        return record_from_wire(self._single_row(body), self.preset)

    def delete(self, record_id: RecordId) -> None:
        self._request("DELETE", self._record_path(record_id))
