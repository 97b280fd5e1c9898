import os
import subprocess
import sys
from pathlib import Path
from typing import List

import pytest


def repo_root() -> Path:
    return Path(__file__).resolve().parents[2]


CLI_CASES = [
    (
        "export_cli_module",
        [sys.executable, "-m", "export.cli", "help"],
        ["ls", "export", "version"],
    ),
    (
        "export_subcommand_help",
        [sys.executable, "-m", "export.cli", "export", "--help"],
        ["-db", "-out", "-sort-desc", "-byname", "-start-after", "-end-before", "-json"],
    ),
    (
        "ls_subcommand_help",
        [sys.executable, "-m", "export.cli", "ls", "--help"],
        ["-db", "-json", "-verbose"],
    ),
    (
        "cursor2md_script",
        [sys.executable, str(repo_root() / "src" / "cursor2md.py")],
        ["ls", "export"],
    ),
]


@pytest.mark.parametrize("label, command, expected_flags", CLI_CASES)
def test_cli_help_runs(label: str, command: List[str], expected_flags: List[str]) -> None:
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(repo_root() / "src"), env.get("PYTHONPATH")]))
    result = subprocess.run(
        command,
        cwd=repo_root(),
        env=env,
        capture_output=True,
        text=True,
        check=False,
    )
    assert result.returncode == 0, f"{label} help command failed: {result.stderr}"
    stdout_lower = result.stdout.lower()
    for flag in expected_flags:
        assert flag in stdout_lower, f"{label} help output missing flag {flag}"
