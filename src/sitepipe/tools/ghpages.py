# tools/ghpages.py
from __future__ import annotations

from pathlib import Path
from typing import List

from ..actions import ShellAction


def publish(
    directory: str = "dist",
    *,
    branch: str | None = None,
    message: str | None = None,
    cwd: str | Path | None = None,
) -> ShellAction:
    """Push `directory` to the gh-pages branch with the gh-pages CLI."""
    argv: List[str] = ["gh-pages", "-d", directory]
    if branch:
        argv.extend(["-b", branch])
    if message:
        argv.extend(["-m", message])
    return ShellAction(argv, cwd=cwd)
