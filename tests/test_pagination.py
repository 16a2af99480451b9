import pytest

from rankr.core.errors import ValidationError
from rankr.core.models import LoadState, PageWindow, PaginationMode
from rankr.runtime.pagination import ClientSlice, RemoteWindow, build_strategy, to_absolute_index


def test_absolute_index_translation() -> None:
    assert to_absolute_index(3, 10, 2) == 22
    assert to_absolute_index(1, 10, 0) == 0
    assert to_absolute_index(4, None, 7) == 7


def test_page_window_totals() -> None:
    assert PageWindow(page_size=10, total_items=25).total_pages == 3
    assert PageWindow(page_size=10, total_items=0).last_page == 1
    assert PageWindow(page=3, page_size=10, total_items=25).offset == 20
    assert PageWindow(page_size=None, total_items=4).total_pages == 1
    assert PageWindow(page_size=10, total_items=25, server_total_pages=5).total_pages == 5


def test_remote_window_requires_page_size(gateway) -> None:
    with pytest.raises(ValueError):
        build_strategy(PaginationMode.REMOTE_WINDOW, gateway, None)
    assert isinstance(build_strategy(PaginationMode.CLIENT_SLICE, gateway, None), ClientSlice)
    assert isinstance(build_strategy(PaginationMode.REMOTE_WINDOW, gateway, 10), RemoteWindow)


@pytest.mark.asyncio
async def test_client_slice_page_change_never_fetches(make_engine) -> None:
    engine, gateway, _ = make_engine("main-banners")
    await engine.load()
    assert gateway.calls["list"] == 1
    assert gateway.list_args == [(None, None, None)]

    assert await engine.change_page(2)
    assert await engine.change_page(3)
    assert await engine.change_page(1)

    assert gateway.calls["list"] == 1
    assert engine.page == 1


@pytest.mark.asyncio
async def test_client_slice_visible_rows_follow_page(make_engine) -> None:
    engine, _, _ = make_engine("main-banners")
    await engine.load()
    await engine.change_page(3)

    visible = engine.visible()
    assert [record.rank for record in visible] == [21, 22, 23, 24, 25]
    assert engine.to_absolute_index(2) == 22


@pytest.mark.asyncio
async def test_remote_window_fetches_once_per_page_change(make_engine) -> None:
    engine, gateway, _ = make_engine("home-sections")
    await engine.load()
    assert gateway.list_args == [(1, 10, None)]
    assert engine.total_pages == 3

    assert await engine.change_page(2)
    assert await engine.change_page(3)

    assert gateway.calls["list"] == 3
    assert gateway.list_args[1:] == [(2, 10, None), (3, 10, None)]
    assert [record.rank for record in engine.visible()] == [21, 22, 23, 24, 25]


@pytest.mark.asyncio
async def test_same_page_is_a_no_op_and_out_of_range_page_raises(make_engine) -> None:
    engine, gateway, _ = make_engine("home-sections")
    await engine.load()

    assert await engine.change_page(1) is False
    with pytest.raises(ValidationError):
        await engine.change_page(4)
    with pytest.raises(ValidationError):
        await engine.change_page(0)
    assert gateway.calls["list"] == 1


@pytest.mark.asyncio
async def test_page_change_clears_selection(make_engine) -> None:
    engine, _, _ = make_engine("main-banners")
    await engine.load()
    engine.select_all(True)
    assert len(engine.selected_ids) == 10

    await engine.change_page(2)

    assert engine.selected_ids == []
    assert engine.header_state().checked is False


@pytest.mark.asyncio
async def test_search_resets_to_first_page_and_filters(make_engine) -> None:
    engine, gateway, _ = make_engine("home-sections")
    await engine.load()
    await engine.change_page(2)

    await engine.search("#2")

    assert gateway.list_args[-1] == (1, 10, "#2")
    assert engine.page == 1
    assert engine.state == LoadState.LOADED
    # "#2" matches #2 and #20..#25
    assert engine.window.total_items == 7
