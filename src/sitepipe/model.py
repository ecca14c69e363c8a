# model.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .actions import Action


class TaskState(str, Enum):
    """Lifecycle of a task inside a single run."""
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    # never started because a dependency failed
    SKIPPED = "skipped"

    @property
    def terminal(self) -> bool:
        return self in (TaskState.SUCCEEDED, TaskState.FAILED, TaskState.SKIPPED)


@dataclass(frozen=True)
class Task:
    """
    A named unit of work.

    `needs` lists the tasks that must succeed BEFORE this one runs,
    in declaration order.
    """
    name: str
    needs: List[str]
    action: "Action"
    description: str | None = None


@dataclass
class TaskResult:
    """Outcome of one task within one run."""
    name: str
    state: TaskState = TaskState.PENDING
    output: Any = None
    error: Optional[BaseException] = None
    duration: float | None = None

    @property
    def ok(self) -> bool:
        return self.state is TaskState.SUCCEEDED


@dataclass
class RunReport:
    """Per-task results of a run, in topological order."""
    target: str
    results: dict[str, TaskResult] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return all(r.ok for r in self.results.values())

    def _names(self, state: TaskState) -> list[str]:
        return [name for name, r in self.results.items() if r.state is state]

    @property
    def succeeded(self) -> list[str]:
        return self._names(TaskState.SUCCEEDED)

    @property
    def failed(self) -> list[str]:
        return self._names(TaskState.FAILED)

    @property
    def skipped(self) -> list[str]:
        return self._names(TaskState.SKIPPED)

    def states(self) -> dict[str, TaskState]:
        return {name: r.state for name, r in self.results.items()}
