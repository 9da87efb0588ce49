"""Replace long dashes with plain hyphens in the list content of a README."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Iterable, Sequence


def fix_dashes(lines: Iterable[str]) -> list[str]:
    """Replace " — " with " - " on every line after the "## Applications" heading."""
    fixed: list[str] = []
    within_content = False
    for line in lines:
        if within_content:
            fixed.append(line.replace(" — ", " - "))
        else:
            if line.startswith("## Applications"):
                within_content = True
            fixed.append(line)
    return fixed


def _split_lines(text: str) -> list[str]:
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Clean up the dashes in a README file.")
    parser.add_argument("readme", nargs="?", default="README.md", help="file to rewrite in place")
    args = parser.parse_args(argv)

    path = Path(args.readme)
    with path.open(encoding="utf-8", newline="") as handle:
        contents = handle.read()
    fixed = fix_dashes(_split_lines(contents))
    path.write_bytes("\n".join(fixed).encode("utf-8"))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())