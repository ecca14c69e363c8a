# actions.py
# An action is anything a task can call with no arguments: it returns an
# output on success and raises on failure. Shell commands and in-process
# library calls look the same to the runner.
from __future__ import annotations

import os
import shlex
import subprocess
from pathlib import Path
from typing import Any, Callable, Dict, List, Sequence, Union

from .errors import ActionFailure

Action = Callable[[], Any]

TOOL_HINTS = {
    "jekyll": "Install Jekyll (gem install jekyll bundler) or fix PATH.",
    "bundle": "Install Bundler (gem install bundler) or fix PATH.",
    "uncss": "Install uncss (npm install -g uncss) or fix PATH.",
    "critical": "Install critical (npm install -g critical) or fix PATH.",
    "gh-pages": "Install gh-pages (npm install -g gh-pages) or fix PATH.",
    "npm": "Install Node.js (includes npm) or fix PATH.",
    "node": "Install Node.js or fix PATH.",
}

# keep failure payloads readable
OUTPUT_TAIL = 4000


def describe_action(action: Action) -> str:
    """Human readable one-liner for plans and error messages."""
    describe = getattr(action, "describe", None)
    if callable(describe):
        return describe()
    return getattr(action, "__qualname__", None) or repr(action)


class ShellAction:
    """
    Run an external command.

    `cmd` may be a string (run through the shell) or an argv list
    (run directly). Returns the captured stdout.
    """

    def __init__(
        self,
        cmd: Union[str, Sequence[str]],
        *,
        cwd: str | Path | None = None,
        env: Dict[str, str] | None = None,
        timeout: float | None = None,
        shell: bool | None = None,
    ):
        self.cmd = cmd if isinstance(cmd, str) else list(cmd)
        self.cwd = cwd
        self.env = {k: str(v) for k, v in (env or {}).items()}
        self.timeout = timeout
        self.shell = isinstance(cmd, str) if shell is None else shell

    @property
    def argv(self) -> List[str]:
        return shlex.split(self.cmd) if isinstance(self.cmd, str) else list(self.cmd)

    @property
    def tool(self) -> str:
        argv = self.argv
        return argv[0] if argv else ""

    def describe(self) -> str:
        cmd = self.cmd if isinstance(self.cmd, str) else shlex.join(self.cmd)
        if self.env:
            prefix = " ".join(f"{k}={v}" for k, v in self.env.items())
            cmd = f"{prefix} {cmd}"
        return cmd

    def _hint(self) -> str:
        return TOOL_HINTS.get(self.tool, f"Install {self.tool} or fix PATH.")

    def __call__(self) -> str:
        cwd = Path(self.cwd or ".").resolve()
        if not cwd.exists():
            raise ActionFailure(task="", message=f"cwd not found: {cwd}")

        env = os.environ.copy()
        env.update(self.env)

        try:
            proc = subprocess.run(
                self.cmd,
                shell=self.shell,
                cwd=str(cwd),
                env=env,
                text=True,
                capture_output=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise ActionFailure(
                task="",
                message=f"{self.tool} is not available. {self._hint()}",
            ) from e
        except subprocess.TimeoutExpired as e:
            raise ActionFailure(
                task="",
                message=f"timed out after {self.timeout}s: {self.describe()}",
            ) from e

        if proc.returncode != 0:
            message = f"command failed: {self.describe()}"
            # 127 is the shell's "command not found"
            if proc.returncode == 127:
                message = f"{message}. {self._hint()}"
            raise ActionFailure(
                task="",
                message=message,
                exit_code=proc.returncode,
                stdout=proc.stdout[-OUTPUT_TAIL:],
                stderr=proc.stderr[-OUTPUT_TAIL:],
            )

        return proc.stdout

    def __repr__(self) -> str:
        return f"ShellAction({self.describe()!r})"


class CallAction:
    """In-process library call: fn(*args, **kwargs)."""

    def __init__(self, fn: Callable[..., Any], *args: Any, **kwargs: Any):
        self.fn = fn
        self.args = args
        self.kwargs = kwargs

    def describe(self) -> str:
        name = getattr(self.fn, "__qualname__", None) or repr(self.fn)
        return f"{name}()"

    def __call__(self) -> Any:
        return self.fn(*self.args, **self.kwargs)

    def __repr__(self) -> str:
        return f"CallAction({self.describe()!r})"


def sh(cmd: Union[str, Sequence[str]], **kwargs: Any) -> ShellAction:
    """Create a shell action."""
    return ShellAction(cmd, **kwargs)


def call(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> CallAction:
    """Create an in-process action."""
    return CallAction(fn, *args, **kwargs)
