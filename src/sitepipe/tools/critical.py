# tools/critical.py
# Above-the-fold CSS extraction with the `critical` CLI.
from __future__ import annotations

from pathlib import Path
from typing import List, Sequence

from ..actions import ShellAction


class ExtractAction:
    """
    Run critical for one page and one viewport.

    With inline=True the output is the page with its critical CSS inlined,
    otherwise it is the CSS fragment alone. The output is returned and,
    when `target` is set, written there too. Several viewports means
    several tasks.
    """

    def __init__(
        self,
        src: str,
        *,
        base: str,
        css: Sequence[str],
        width: int,
        height: int,
        inline: bool,
        target: str | None,
        timeout: float | None,
        cwd: str | Path | None = None,
    ):
        self.src = src
        self.base = base
        self.css = list(css)
        self.width = width
        self.height = height
        self.inline = inline
        self.target = target
        self.timeout = timeout
        self.cwd = Path(cwd or ".")

    @property
    def argv(self) -> List[str]:
        argv = [
            "critical", self.src,
            "--base", self.base,
            "--width", str(self.width),
            "--height", str(self.height),
        ]
        for sheet in self.css:
            argv.extend(["--css", sheet])
        if self.inline:
            argv.append("--inline")
        return argv

    def describe(self) -> str:
        out = f" -> {self.target}" if self.target else ""
        return f"critical {self.src} @ {self.width}x{self.height}{out}"

    def __call__(self) -> str:
        output = ShellAction(self.argv, cwd=self.cwd, timeout=self.timeout)()
        if self.target:
            dest = self.cwd / self.target
            dest.parent.mkdir(parents=True, exist_ok=True)
            dest.write_text(output)
        return output

    def __repr__(self) -> str:
        return f"ExtractAction({self.describe()!r})"


def extract(
    src: str = "index.html",
    *,
    base: str = "dist/",
    css: Sequence[str] = ("dist/assets/main.css",),
    width: int = 320,
    height: int = 480,
    inline: bool = True,
    target: str | None = None,
    timeout: float | None = 30.0,
    cwd: str | Path | None = None,
) -> ExtractAction:
    return ExtractAction(
        src,
        base=base,
        css=css,
        width=width,
        height=height,
        inline=inline,
        target=target,
        timeout=timeout,
        cwd=cwd,
    )
