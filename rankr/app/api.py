from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI

from rankr.core.config import Settings, get_settings
from rankr.core.resources import RESOURCE_PRESETS
from rankr.app.routes import build_resource_router
from rankr.runtime.sandbox import SandboxStore


def build_app(settings: Settings | None = None, store: SandboxStore | None = None) -> FastAPI:
    settings = settings or get_settings()
    if store is None:
        store = SandboxStore()
        store.seed_all(settings.sandbox_seed_count)

    app = FastAPI(title="rankr sandbox", version="0.1.0")
    app.state.store = store
    # Same prefix layout as the real admin API, e.g. http://host:3000/api/banner/main
    app.include_router(build_resource_router(store=store), prefix="/api")

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok", "time": datetime.now(UTC).isoformat()}

    @app.get("/presets")
    def list_presets() -> list[dict[str, Any]]:
        return [
            {
                "key": preset.key,
                "label": preset.label,
                "path": f"/api{preset.path}",
                "rank_field": preset.rank_field,
                "sort_direction": preset.sort_direction.value,
                "pagination": preset.pagination.value,
            }
            for preset in RESOURCE_PRESETS
        ]

    return app
