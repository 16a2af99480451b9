from __future__ import annotations

import math
from typing import Any, Callable

from fastapi import APIRouter, Body, HTTPException

from rankr.core.resources import RESOURCE_PRESETS, ResourcePreset
from rankr.runtime.sandbox import SandboxStore


def _envelope(data: Any, **extra: Any) -> dict[str, Any]:
    return {"success": True, "data": data, **extra}


def build_resource_router(
    *,
    store: SandboxStore,
    presets: tuple[ResourcePreset, ...] = RESOURCE_PRESETS,
) -> APIRouter:
    router = APIRouter()

    def _list_handler(preset: ResourcePreset) -> Callable[..., dict[str, Any]]:
        def list_records(page: int | None = None, limit: int | None = None, search: str | None = None) -> dict[str, Any]:
            if page is not None and page < 1:
                raise HTTPException(status_code=400, detail="page must be >= 1")
            if limit is not None and limit < 1:
                raise HTTPException(status_code=400, detail="limit must be >= 1")
            rows, total = store.list_rows(preset, page, limit, search)
            if page is None or limit is None:
                return _envelope(rows)
            return _envelope(
                rows,
                pagination={
                    "totalItems": total,
                    "totalPages": math.ceil(total / limit),
                    "currentPage": page,
                    "pageSize": limit,
                },
            )

        return list_records

    def _create_handler(preset: ResourcePreset) -> Callable[..., dict[str, Any]]:
        def create_record(payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
            rank = payload.get(preset.rank_field)
            if rank is not None:
                try:
                    payload[preset.rank_field] = int(rank)
                except (TypeError, ValueError) as exc:
                    raise HTTPException(status_code=400, detail=f"{preset.rank_field} must be an integer") from exc
            return _envelope(store.create(preset, payload))

        return create_record

    def _update_handler(preset: ResourcePreset) -> Callable[..., dict[str, Any]]:
        def update_record(record_id: int, payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
            if preset.rank_field not in payload:
                raise HTTPException(status_code=400, detail=f"{preset.rank_field} is required")
            try:
                rank = int(payload[preset.rank_field])
            except (TypeError, ValueError) as exc:
                raise HTTPException(status_code=400, detail=f"{preset.rank_field} must be an integer") from exc
            try:
                row = store.update_rank(preset, record_id, rank)
            except KeyError as exc:
                raise HTTPException(status_code=404, detail=f"{preset.label}: record {record_id} not found") from exc
            return _envelope(row)

        return update_record

    def _delete_handler(preset: ResourcePreset) -> Callable[..., dict[str, Any]]:
        def delete_record(record_id: int) -> dict[str, Any]:
            try:
                store.delete(preset, record_id)
            except KeyError as exc:
                raise HTTPException(status_code=404, detail=f"{preset.label}: record {record_id} not found") from exc
            return _envelope({"id": record_id, "deleted": True})

        return delete_record

    for preset in presets:
        tags = [preset.key]
        router.add_api_route(preset.path, _list_handler(preset), methods=["GET"], tags=tags)
        router.add_api_route(preset.path, _create_handler(preset), methods=["POST"], tags=tags)
        router.add_api_route(f"{preset.path}/{{record_id}}", _update_handler(preset), methods=["PUT"], tags=tags)
        router.add_api_route(f"{preset.path}/{{record_id}}", _delete_handler(preset), methods=["DELETE"], tags=tags)

    return router
