from __future__ import annotations

from dataclasses import dataclass

from rankr.core.models import PaginationMode, SortDirection


@dataclass(frozen=True)
class ResourcePreset:
    key: str
    label: str
    path: str
    rank_field: str
    sort_direction: SortDirection
    pagination: PaginationMode
    id_field: str = "id"
    created_field: str = "createdAt"
    notes: str = ""


# Ascending and descending rank orderings are both in use; product has not said why.
RESOURCE_PRESETS: tuple[ResourcePreset, ...] = (
    ResourcePreset(
        key="main-banners",
        label="Main banners",
        path="/banner/main",
        rank_field="position",
        sort_direction=SortDirection.ASC,
        pagination=PaginationMode.CLIENT_SLICE,
        notes="Hero carousel on the landing page.",
    ),
    ResourcePreset(
        key="company-banners",
        label="Company banners",
        path="/banner/company",
        rank_field="position",
        sort_direction=SortDirection.ASC,
        pagination=PaginationMode.CLIENT_SLICE,
    ),
    ResourcePreset(
        key="bottom-banners",
        label="Bottom banners",
        path="/banner/bottom",
        rank_field="position",
        sort_direction=SortDirection.DESC,
        pagination=PaginationMode.REMOTE_WINDOW,
        notes="Server paginated; highest position renders first.",
    ),
    ResourcePreset(
        key="mini-banners",
        label="Mini banners",
        path="/banner/mini",
        rank_field="position",
        sort_direction=SortDirection.DESC,
        pagination=PaginationMode.CLIENT_SLICE,
    ),
    ResourcePreset(
        key="guidelines",
        label="Guideline posts",
        path="/guidelines",
        rank_field="position",
        sort_direction=SortDirection.ASC,
        pagination=PaginationMode.CLIENT_SLICE,
    ),
    ResourcePreset(
        key="casino-companies",
        label="Casino companies",
        path="/companies",
        rank_field="displayOrder",
        sort_direction=SortDirection.ASC,
        pagination=PaginationMode.CLIENT_SLICE,
    ),
    ResourcePreset(
        key="casino-recommendations",
        label="Casino recommendation bundles",
        path="/casino-recommends",
        rank_field="displayOrder",
        sort_direction=SortDirection.ASC,
        pagination=PaginationMode.CLIENT_SLICE,
    ),
    ResourcePreset(
        key="remittance-partners",
        label="Remittance partners",
        path="/crypto-transfers/admin",
        rank_field="displayOrder",
        sort_direction=SortDirection.ASC,
        pagination=PaginationMode.CLIENT_SLICE,
    ),
    ResourcePreset(
        key="home-sections",
        label="Home sections",
        path="/admin/home/sections",
        rank_field="displayOrder",
        sort_direction=SortDirection.ASC,
        pagination=PaginationMode.REMOTE_WINDOW,
        notes="Server paginated with search.",
    ),
)

PRESET_BY_KEY = {preset.key: preset for preset in RESOURCE_PRESETS}


def get_preset(key: str) -> ResourcePreset:
    try:
        return PRESET_BY_KEY[key]
    except KeyError as exc:
        known = ", ".join(sorted(PRESET_BY_KEY))
        raise KeyError(f"unknown resource '{key}' (known: {known})") from exc
