# tools/jekyll.py
from __future__ import annotations

from pathlib import Path

from ..actions import ShellAction


def build(
    dest: str = "dist",
    *,
    env: str = "production",
    source: str | None = None,
    cwd: str | Path | None = None,
    bundle: bool = False,
) -> ShellAction:
    """
    Build the site with Jekyll into `dest`.

    Equivalent to `JEKYLL_ENV=production jekyll build -d dist`.
    """
    argv = ["jekyll", "build", "-d", dest]
    if source:
        argv.extend(["-s", source])
    if bundle:
        argv = ["bundle", "exec", *argv]
    return ShellAction(argv, cwd=cwd, env={"JEKYLL_ENV": env})
