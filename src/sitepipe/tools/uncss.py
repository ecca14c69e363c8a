# tools/uncss.py
# Remove unused selectors from a stylesheet with the uncss CLI.
from __future__ import annotations

import glob
import json
import os
import tempfile
from pathlib import Path
from typing import List, Sequence

from ..actions import ShellAction
from ..errors import ActionFailure

# code blocks and highlighted tokens are injected client-side
DEFAULT_IGNORE = ("/code/", "/pre/", "/^.token/")


class PruneAction:
    """
    Run uncss over the HTML files matching `html` and write the pruned
    stylesheet to `dest` (the stylesheet itself by default).

    Globs are expanded when the action runs, so the HTML may be produced
    by an earlier task. Returns the pruned CSS.
    """

    def __init__(
        self,
        stylesheet: str,
        html: Sequence[str],
        ignore: Sequence[str],
        *,
        dest: str | None = None,
        htmlroot: str = "dist",
        cwd: str | Path | None = None,
        timeout: float | None = None,
    ):
        self.stylesheet = stylesheet
        self.html = list(html)
        self.ignore = list(ignore)
        self.dest = dest or stylesheet
        self.htmlroot = htmlroot
        self.cwd = Path(cwd or ".")
        self.timeout = timeout

    def describe(self) -> str:
        return f"uncss {self.stylesheet} over {', '.join(self.html)} -> {self.dest}"

    def html_files(self) -> List[str]:
        files: List[str] = []
        for pattern in self.html:
            files.extend(sorted(glob.glob(str(self.cwd / pattern), recursive=True)))
        # keep first occurrence
        return list(dict.fromkeys(files))

    def _stylesheet_ref(self) -> str:
        # uncss resolves stylesheets against --htmlroot
        try:
            rel = Path(self.stylesheet).relative_to(self.htmlroot)
        except ValueError:
            return self.stylesheet
        return "/" + rel.as_posix()

    def argv(self, files: List[str], rc_path: str) -> List[str]:
        return [
            "uncss",
            "--noBanner",
            "--uncssrc", rc_path,
            "--htmlroot", self.htmlroot,
            "--stylesheets", self._stylesheet_ref(),
            *files,
        ]

    def __call__(self) -> str:
        files = self.html_files()
        if not files:
            raise ActionFailure(task="", message=f"no HTML files match {self.html}")

        # regex ignores only survive through an uncssrc file
        fd, rc_path = tempfile.mkstemp(prefix="sitepipe-uncss-", suffix=".json")
        try:
            with os.fdopen(fd, "w") as fh:
                json.dump({"ignore": self.ignore}, fh)
            css = ShellAction(self.argv(files, rc_path), cwd=self.cwd, timeout=self.timeout)()
        finally:
            os.unlink(rc_path)

        out = self.cwd / self.dest
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(css)
        return css

    def __repr__(self) -> str:
        return f"PruneAction({self.describe()!r})"


def prune(
    stylesheet: str = "dist/assets/main.css",
    html: Sequence[str] = ("dist/**/*.html",),
    ignore: Sequence[str] = DEFAULT_IGNORE,
    **kwargs,
) -> PruneAction:
    return PruneAction(stylesheet, html, ignore, **kwargs)
