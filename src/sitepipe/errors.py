# errors.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .model import RunReport


class SitepipeError(Exception):
    """Base class for everything sitepipe raises on purpose."""


class ConfigurationError(SitepipeError):
    """Raised before any action runs: the pipeline itself is wrong."""


# ----------------------------------------------------------------------
# Configuration-time
# ----------------------------------------------------------------------

@dataclass(eq=False)
class DuplicateTaskError(ConfigurationError):
    name: str

    def __str__(self) -> str:
        return f"Duplicate task name: {self.name!r} is already registered"


@dataclass(eq=False)
class UnknownDependencyError(ConfigurationError):
    task: str
    missing: list[str]
    known: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        return (
            f"Task {self.task!r} needs missing task(s) {self.missing}. "
            f"Known tasks: {sorted(self.known)}"
        )


@dataclass(eq=False)
class UnknownTaskError(ConfigurationError):
    name: str
    known: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        return f"Unknown task {self.name!r}. Known tasks: {sorted(self.known)}"


@dataclass(eq=False)
class CyclicDependencyError(ConfigurationError):
    tasks: list[str]

    def __str__(self) -> str:
        return f"Dependency cycle detected between tasks: {self.tasks}"


# ----------------------------------------------------------------------
# Run-time
# ----------------------------------------------------------------------

@dataclass(eq=False)
class ActionFailure(SitepipeError):
    """
    An action reported an error.

    stdout/stderr hold the tail of the captured output when the action
    was an external command.
    """
    task: str
    message: str
    exit_code: int | None = None
    stdout: str = ""
    stderr: str = ""

    def __str__(self) -> str:
        prefix = f"[{self.task}] " if self.task else ""
        if self.exit_code is not None:
            return f"{prefix}{self.message} (exit={self.exit_code})"
        return f"{prefix}{self.message}"


@dataclass(eq=False)
class PipelineError(SitepipeError):
    """Aggregate failure of a run: every failing task and its error."""
    target: str
    failures: dict[str, ActionFailure]
    report: "RunReport | None" = None

    def __str__(self) -> str:
        lines = [f"Pipeline for {self.target!r} failed ({len(self.failures)} task(s))"]
        for name, err in self.failures.items():
            lines.append(f"  {name}: {err.message}")
        if self.report is not None and self.report.skipped:
            lines.append(f"  skipped: {', '.join(self.report.skipped)}")
        return "\n".join(lines)
