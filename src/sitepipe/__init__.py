from .actions import sh, call, ShellAction, CallAction
from .errors import (
    ActionFailure,
    CyclicDependencyError,
    DuplicateTaskError,
    PipelineError,
    UnknownDependencyError,
    UnknownTaskError,
)
from .model import RunReport, Task, TaskResult, TaskState
from .pipeline import Pipeline
from .runner import load_pipeline, run

__all__ = [
    "sh", "call", "ShellAction", "CallAction",
    "ActionFailure", "CyclicDependencyError", "DuplicateTaskError", "PipelineError",
    "UnknownDependencyError", "UnknownTaskError",
    "RunReport", "Task", "TaskResult", "TaskState",
    "Pipeline", "load_pipeline", "run",
]
