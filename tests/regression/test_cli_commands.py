"""End-to-end checks of the ls/export/version commands through ``export.cli.main``."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from export import __version__
from export.cli import main
from tests.helpers.store_builder import composer_payload, composer_row, create_store, local_ms


@pytest.fixture()
def scenario_db(tmp_path: Path) -> Path:
    rows = [
        composer_row("abc", composer_payload("Fix the build", created_ms=local_ms(2024, 1, 5, 10))),
        ("inlineDiffsData", "[]"),
    ]
    return create_store(tmp_path / "state.vscdb", rows)


def test_ls_json_lists_single_session(scenario_db: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["ls", "-db", str(scenario_db), "-json"]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["success"] is True
    assert payload["total"] == 1
    assert payload["sessions"] == [
        {
            "id": "abc",
            "title": "Fix the build",
            "start_time": "2024-01-05 10:00:00",
            "end_time": "2024-01-05 10:00:09",
        }
    ]


def test_ls_text_table(scenario_db: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["ls", "--db", str(scenario_db)]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[0].split() == ["HASH", "START", "TIME", "END", "TIME", "TITLE"]
    assert set(lines[1]) == {"-"}
    assert lines[2].split() == ["abc", "2024-01-05", "2024-01-05", "Fix", "the", "build"]
    assert lines[-1] == "Found 1 session(s)"


def test_export_time_filters_end_to_end(scenario_db: Path, tmp_path: Path, capsys) -> None:
    out_in = tmp_path / "in"
    assert main(
        ["export", "-db", str(scenario_db), "-out", str(out_in), "-json",
         "-start-after", "2024-01-01", "-start-before", "2024-02-01"]
    ) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["total"] == 1
    assert len(list(out_in.iterdir())) == 1

    out_late = tmp_path / "late"
    assert main(["export", "-db", str(scenario_db), "-out", str(out_late), "-json", "-start-after", "2024-02-01"]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["total"] == 0
    assert payload["sessions"] == []
    assert list(out_late.iterdir()) == []


def test_export_sort_flag_accepts_go_style_value(scenario_db: Path, tmp_path: Path, capsys) -> None:
    out = tmp_path / "out"
    assert main(["export", "-db", str(scenario_db), "-out", str(out), "-sort-desc=false", "-byname"]) == 0
    captured = capsys.readouterr().out
    assert f"Wrote {out / 'Fix the build.md'}" in captured
    assert captured.rstrip().endswith(f"Exported 1 session(s) to {out}")


def test_export_unknown_id_fails_without_writing(scenario_db: Path, tmp_path: Path, capsys) -> None:
    out = tmp_path / "out"
    assert main(["export", "nope", "-db", str(scenario_db), "-out", str(out)]) == 1
    assert "Session 'nope' was not found." in capsys.readouterr().err
    assert not out.exists()

    assert main(["export", "nope", "-db", str(scenario_db), "-out", str(out), "-json"]) == 1
    payload = json.loads(capsys.readouterr().out)
    assert payload["success"] is False
    assert payload["total"] == 0


def test_invalid_time_argument_is_fatal(scenario_db: Path, tmp_path: Path, capsys) -> None:
    out = tmp_path / "out"
    assert main(["export", "-db", str(scenario_db), "-out", str(out), "-start-after", "01/02/2024", "-json"]) == 1
    payload = json.loads(capsys.readouterr().out)
    assert payload == {"sessions": [], "total": 0, "success": False, "error": payload["error"]}
    assert "Invalid time format" in payload["error"]
    assert not out.exists()


def test_missing_database_is_reported(tmp_path: Path, capsys) -> None:
    assert main(["ls", "-db", str(tmp_path / "absent.vscdb")]) == 1
    assert "Database file does not exist" in capsys.readouterr().err


def test_default_database_path_is_used(capsys) -> None:
    assert main(["ls", "-json"]) == 1
    payload = json.loads(capsys.readouterr().out)
    assert payload["success"] is False
    assert "missing" in payload["error"]


def test_version_and_help(capsys) -> None:
    assert main(["version", "-json"]) == 0
    assert json.loads(capsys.readouterr().out)["version"] == __version__
    assert main(["version"]) == 0
    assert capsys.readouterr().out.strip() == f"cursor2md {__version__}"
    for argv in ([], ["help"], ["frobnicate"]):
        assert main(argv) == 0
        assert "usage:" in capsys.readouterr().out


def test_bare_sort_flag_does_not_swallow_session_id(scenario_db: Path, tmp_path: Path, capsys) -> None:
    out = tmp_path / "out"
    assert main(["export", "-db", str(scenario_db), "-out", str(out), "-sort-desc", "abc", "-json"]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["total"] == 1
    assert payload["sessions"][0]["id"] == "abc"
    assert [path.name for path in out.iterdir()] == ["1-Fix the build.md"]


def test_explicit_sort_value_must_be_boolean(scenario_db: Path, tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["export", "-db", str(scenario_db), "-out", str(tmp_path / "out"), "--sort-desc=maybe"])
    assert excinfo.value.code == 2


def test_verbose_export_explains_filtered_sessions(scenario_db: Path, tmp_path: Path, capsys) -> None:
    out = tmp_path / "out"
    assert main(["export", "-db", str(scenario_db), "-out", str(out), "-start-after", "2024-02-01", "-verbose"]) == 0
    err = capsys.readouterr().err
    assert (
        "Skipped composerData:abc (Fix the build): "
        "start time 2024-01-05 10:00:00 is before 2024-02-01 00:00:00"
    ) in err
    assert "Skipped inlineDiffsData: placeholder entry" in err

    assert main(["export", "-db", str(scenario_db), "-out", str(out), "-start-after", "2024-02-01"]) == 0
    assert capsys.readouterr().err == ""


def test_ls_reports_unreadable_records(tmp_path: Path, capsys) -> None:
    rows = [
        composer_row("abc", composer_payload("Fix the build", created_ms=local_ms(2024, 1, 5, 10))),
        ("composerData:broken", "{\"name\": "),
    ]
    db_path = create_store(tmp_path / "state.vscdb", rows)

    assert main(["ls", "-db", str(db_path), "-json"]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["total"] == 1
    assert len(payload["warnings"]) == 1
    assert payload["warnings"][0].startswith("Skipped composerData:broken: invalid JSON")

    assert main(["ls", "-db", str(db_path)]) == 0
    captured = capsys.readouterr()
    assert "Skipped 1 record(s) that could not be read or written" in captured.err
    assert captured.out.rstrip().endswith("Found 1 session(s)")

    assert main(["ls", "-db", str(db_path), "-verbose"]) == 0
    assert "Warning: Skipped composerData:broken: invalid JSON" in capsys.readouterr().err
