from fastapi.testclient import TestClient

from rankr.app.api import build_app
from rankr.core.config import Settings
from rankr.core.resources import RESOURCE_PRESETS, get_preset
from rankr.runtime.sandbox import SandboxStore


def _build_client(seed_count: int = 12) -> tuple[TestClient, SandboxStore]:
    settings = Settings(_env_file=None, RANKR_SANDBOX_SEED_COUNT=seed_count)
    store = SandboxStore()
    store.seed_all(settings.sandbox_seed_count)
    return TestClient(build_app(settings, store)), store


def test_health_and_presets() -> None:
    client, _ = _build_client()
    assert client.get("/health").json()["status"] == "ok"

    presets = client.get("/presets").json()
    assert [item["key"] for item in presets] == [preset.key for preset in RESOURCE_PRESETS]
    assert presets[0]["path"] == "/api/banner/main"


def test_list_without_paging_returns_everything_in_rank_order() -> None:
    client, _ = _build_client()
    body = client.get("/api/banner/main").json()
    assert body["success"] is True
    assert "pagination" not in body
    assert [row["position"] for row in body["data"]] == list(range(1, 13))


def test_list_with_paging_returns_pagination_block() -> None:
    client, _ = _build_client()
    body = client.get("/api/admin/home/sections", params={"page": 2, "limit": 5}).json()
    assert body["pagination"] == {"totalItems": 12, "totalPages": 3, "currentPage": 2, "pageSize": 5}
    assert [row["displayOrder"] for row in body["data"]] == [6, 7, 8, 9, 10]


def test_descending_preset_lists_highest_rank_first() -> None:
    client, _ = _build_client(seed_count=3)
    body = client.get("/api/banner/bottom").json()
    assert [row["position"] for row in body["data"]] == [3, 2, 1]


def test_search_filters_string_fields() -> None:
    client, _ = _build_client()
    body = client.get("/api/guidelines", params={"search": "#1"}).json()
    assert sorted(row["title"] for row in body["data"]) == [
        "Guideline posts #1",
        "Guideline posts #10",
        "Guideline posts #11",
        "Guideline posts #12",
    ]


def test_put_updates_rank_field() -> None:
    client, store = _build_client()
    resp = client.put("/api/companies/1", json={"id": 1, "displayOrder": 40})
    assert resp.status_code == 200
    assert resp.json()["data"]["displayOrder"] == 40
    assert store.get_row(get_preset("casino-companies"), 1)["displayOrder"] == 40


def test_put_requires_rank_field_and_known_id() -> None:
    client, _ = _build_client()
    assert client.put("/api/companies/1", json={"id": 1}).status_code == 400
    assert client.put("/api/companies/1", json={"displayOrder": "high"}).status_code == 400
    assert client.put("/api/companies/999", json={"displayOrder": 1}).status_code == 404


def test_post_assigns_id_and_default_rank() -> None:
    client, _ = _build_client(seed_count=2)
    created = client.post("/api/guidelines", json={"title": "New post"}).json()["data"]
    assert created["position"] == 3
    assert created["title"] == "New post"
    assert created["id"] > 2
    assert "createdAt" in created


def test_delete_then_delete_again_is_404() -> None:
    client, _ = _build_client()
    assert client.delete("/api/crypto-transfers/admin/1").json()["data"] == {"id": 1, "deleted": True}
    assert client.delete("/api/crypto-transfers/admin/1").status_code == 404


def test_invalid_paging_values_are_rejected() -> None:
    client, _ = _build_client()
    assert client.get("/api/banner/main", params={"page": 0, "limit": 5}).status_code == 400
