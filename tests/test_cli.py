import argparse

import pytest

from rankr import cli


def test_parser_accepts_global_flags_before_command() -> None:
    args = cli.build_parser().parse_args(["--sandbox", "--page-size", "5", "move", "main-banners", "3", "down", "--page", "2"])
    assert args.sandbox is True
    assert args.page_size == 5
    assert (args.command, args.resource, args.row, args.direction, args.page) == ("move", "main-banners", 3, "down", 2)


def test_parse_assignments() -> None:
    assert cli.parse_assignments(["12=1", " 7 = 2 "]) == [("12", "1"), ("7", "2")]
    with pytest.raises(argparse.ArgumentTypeError):
        cli.parse_assignments(["12"])


def test_resources_command_lists_every_preset(capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["resources"])
    assert excinfo.value.code == 0
    out = capsys.readouterr().out
    assert "main-banners" in out
    assert "/admin/home/sections" in out


def test_list_against_sandbox(capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--sandbox", "--page-size", "5", "list", "bottom-banners", "--page", "2"])
    assert excinfo.value.code == 0
    out = capsys.readouterr().out
    assert out.splitlines()[0].startswith("page 2/")
    assert len(out.splitlines()) == 6


def test_move_against_sandbox(capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--sandbox", "--page-size", "5", "move", "main-banners", "1", "up"])
    assert excinfo.value.code == 0
    assert "nothing moved" in capsys.readouterr().out


def test_set_ranks_against_sandbox(capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--sandbox", "set-ranks", "guidelines", "1=30", "2=31"])
    assert excinfo.value.code == 0
    assert "Saved 2 rank change(s)" in capsys.readouterr().out


def test_delete_with_unknown_id_exits_non_zero(capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--sandbox", "delete", "guidelines", "1", "999"])
    assert excinfo.value.code == 1
    captured = capsys.readouterr()
    assert "Deleted 1 of 2" in captured.out
    assert "failed 999" in captured.err


def test_unknown_resource_exits_with_error(capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--sandbox", "list", "nope"])
    assert excinfo.value.code == 1
    assert "unknown resource 'nope'" in capsys.readouterr().err


def test_out_of_range_page_exits_with_error(capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--sandbox", "list", "main-banners", "--page", "99"])
    assert excinfo.value.code == 1
    assert "out of range" in capsys.readouterr().err
