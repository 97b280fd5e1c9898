"""Script entry point preserving the historical ``cursor2md`` command name."""

from __future__ import annotations

import export.cli as _cli

main = _cli.main
run = _cli.run

__all__ = ["main", "run"]


if __name__ == "__main__":
    run()
