from __future__ import annotations

import argparse
import asyncio
import subprocess
import sys
from typing import Any

from rankr.core.errors import RankrError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="rankr: reorder, re-rank and bulk-delete admin list records")
    parser.add_argument("--api-base-url", default=None, help="Admin API base URL (default from env RANKR_API_BASE_URL)")
    parser.add_argument("--token", default=None, help="Bearer token (default from env RANKR_API_TOKEN)")
    parser.add_argument("--page-size", type=int, default=None)
    parser.add_argument(
        "--sandbox",
        action="store_true",
        help="Work against a freshly seeded in-memory store instead of the admin API",
    )
    subparsers = parser.add_subparsers(dest="command", required=False)

    api_parser = subparsers.add_parser("api", help="Run the sandbox admin API")
    api_parser.add_argument("--host", default=None)
    api_parser.add_argument("--port", type=int, default=None)

    subparsers.add_parser("resources", help="List the known resource presets")

    list_parser = subparsers.add_parser("list", help="Print one page of a resource")
    list_parser.add_argument("resource", help="Resource preset key (see `rankr resources`)")
    list_parser.add_argument("--page", type=int, default=1)
    list_parser.add_argument("--search", default=None)

    move_parser = subparsers.add_parser("move", help="Swap a row with its neighbor in the full ordering")
    move_parser.add_argument("resource")
    move_parser.add_argument("row", type=int, help="Row number on the page, as printed by `rankr list`")
    move_parser.add_argument("direction", choices=["up", "down"])
    move_parser.add_argument("--page", type=int, default=1)
    move_parser.add_argument("--search", default=None)

    ranks_parser = subparsers.add_parser("set-ranks", help="Set ranks on a page and save them together")
    ranks_parser.add_argument("resource")
    ranks_parser.add_argument("assignments", nargs="+", help="ID=RANK pairs, e.g. 12=1 7=2")
    ranks_parser.add_argument("--page", type=int, default=1)

    delete_parser = subparsers.add_parser("delete", help="Delete records by id")
    delete_parser.add_argument("resource")
    delete_parser.add_argument("ids", nargs="+")

    test_parser = subparsers.add_parser("test", help="Run all tests with pytest")
    test_parser.add_argument(
        "pytest_args",
        nargs=argparse.REMAINDER,
        help="Optional extra pytest args; use `--` before args (e.g. rankr test -- -k pagination)",
    )

    return parser


def run_tests(args: argparse.Namespace) -> int:
    cmd = [sys.executable, "-m", "pytest"]
    if args.pytest_args:
        cmd.extend(arg for arg in args.pytest_args if arg != "--")
    print("Running:", " ".join(cmd))
    return subprocess.call(cmd)


def parse_assignments(values: list[str]) -> list[tuple[str, str]]:
    pairs: list[tuple[str, str]] = []
    for value in values:
        record_id, sep, rank = value.partition("=")
        if not sep or not record_id.strip() or not rank.strip():
            raise argparse.ArgumentTypeError(f"expected ID=RANK, got {value!r}")
        pairs.append((record_id.strip(), rank.strip()))
    return pairs


def _coerce_id(value: str) -> Any:
    return int(value) if value.isdigit() else value


def build_engine(args: argparse.Namespace):
    from rankr.core.config import get_settings
    from rankr.core.resources import get_preset
    from rankr.runtime.gateway import HttpGateway
    from rankr.runtime.list_engine import ListEngine
    from rankr.runtime.sandbox import SandboxGateway, SandboxStore

    settings = get_settings()
    preset = get_preset(args.resource)
    if args.sandbox:
        store = SandboxStore()
        store.seed(preset, settings.sandbox_seed_count)
        gateway = SandboxGateway(store, preset)
    else:
        gateway = HttpGateway(
            args.api_base_url or settings.api_base_url,
            preset,
            settings.session_context(args.token),
            timeout_seconds=settings.request_timeout_seconds,
        )
    page_size = args.page_size or settings.default_page_size
    return ListEngine.for_preset(gateway, preset, page_size=page_size)


def print_page(engine) -> None:
    window = engine.window
    print(f"page {window.page}/{window.last_page}  ({window.total_items} records)")
    for row, record in enumerate(engine.visible()):
        title = record.payload.get("title") or record.payload.get("name") or ""
        print(f"{row + 1:>4}  id={record.id!s:<8} rank={record.rank:<6} {title}")


async def _open_page(engine, page: int, search: str | None = None) -> None:
    if search:
        await engine.search(search)
    else:
        await engine.load()
    await engine.change_page(page)


async def run_list(args: argparse.Namespace) -> int:
    engine = build_engine(args)
    await _open_page(engine, args.page, args.search)
    print_page(engine)
    return 0


async def run_move(args: argparse.Namespace) -> int:
    engine = build_engine(args)
    await _open_page(engine, args.page, args.search)
    row = args.row - 1
    if args.direction == "up":
        moved = await engine.move_up(row)
    else:
        moved = await engine.move_down(row)
    if not moved:
        print(f"Row {args.row} is already at the {'top' if args.direction == 'up' else 'bottom'}; nothing moved")
    print_page(engine)
    return 0


async def run_set_ranks(args: argparse.Namespace) -> int:
    engine = build_engine(args)
    await _open_page(engine, args.page)
    rows = {str(record.id): row for row, record in enumerate(engine.visible())}
    for record_id, rank in parse_assignments(args.assignments):
        if record_id not in rows:
            print(f"Record {record_id} is not on page {engine.page}", file=sys.stderr)
            return 1
        engine.set_rank(rows[record_id], rank)
    result = await engine.save_all()
    if result.nothing_to_save:
        print("Nothing to save")
    else:
        print(f"Saved {result.saved} rank change(s)")
    print_page(engine)
    return 0


async def run_delete(args: argparse.Namespace) -> int:
    engine = build_engine(args)
    await engine.load()
    result = await engine.delete_many([_coerce_id(value) for value in args.ids])
    print(f"Deleted {result.succeeded} of {result.total}")
    for record_id in result.failed_ids:
        print(f"  failed {record_id}: {result.errors.get(str(record_id), '')}", file=sys.stderr)
    return 0 if not result.failed else 1


def run_resources() -> int:
    from rankr.core.resources import RESOURCE_PRESETS

    for preset in RESOURCE_PRESETS:
        print(
            f"{preset.key:<24} {preset.path:<26} {preset.rank_field:<13} "
            f"{preset.sort_direction.value:<5} {preset.pagination.value}"
        )
    return 0


_ENGINE_COMMANDS = {
    "list": run_list,
    "move": run_move,
    "set-ranks": run_set_ranks,
    "delete": run_delete,
}


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    from rankr.core.config import configure_logging, get_settings

    configure_logging(get_settings().log_level)

    if args.command == "api":
        import uvicorn

        settings = get_settings()
        host = args.host or settings.sandbox_host
        port = args.port or settings.sandbox_port
        uvicorn.run("rankr.app.api:build_app", factory=True, host=host, port=port, log_level="info")
        return

    if args.command == "resources":
        raise SystemExit(run_resources())

    if args.command in _ENGINE_COMMANDS:
        try:
            code = asyncio.run(_ENGINE_COMMANDS[args.command](args))
        except (RankrError, KeyError, argparse.ArgumentTypeError) as exc:
            message = exc.args[0] if isinstance(exc, KeyError) and exc.args else exc
            print(f"Error: {message}", file=sys.stderr)
            raise SystemExit(1) from exc
        raise SystemExit(code)

    if args.command == "test":
        raise SystemExit(run_tests(args))

    parser.print_help()


if __name__ == "__main__":
    main()
