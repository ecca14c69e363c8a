# runner.py
from __future__ import annotations

import os
import runpy
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple

from .actions import describe_action
from .errors import ActionFailure, PipelineError
from .model import RunReport, Task, TaskResult, TaskState
from .pipeline import Pipeline
from .ui.console import Console, get_console


# ----------------------------------------------------------------------
# Pipeline loading (local file)
# ----------------------------------------------------------------------

def load_pipeline(path: str | Path) -> Pipeline:
    """
    Load a pipeline from a python file path.

    The file must define either:
      - pipeline() -> Pipeline
      - PIPELINE = Pipeline(...)
    """
    pl_path = Path(path).expanduser().resolve()
    if not pl_path.exists():
        raise FileNotFoundError(f"Pipeline file not found: {pl_path}")
    if pl_path.suffix != ".py":
        raise ValueError(f"Pipeline must be a .py file, got: {pl_path.name}")

    module_name = f"sitepipe_pipeline_{pl_path.stem}"
    globals_dict = runpy.run_path(str(pl_path), run_name=module_name)

    pipeline = None
    if "pipeline" in globals_dict and callable(globals_dict["pipeline"]):
        pipeline = globals_dict["pipeline"]()
    elif "PIPELINE" in globals_dict:
        pipeline = globals_dict["PIPELINE"]

    if not isinstance(pipeline, Pipeline):
        raise TypeError(
            "Pipeline file must return/define a Pipeline. "
            "Define pipeline() -> Pipeline or PIPELINE = Pipeline()."
        )

    return pipeline


# ----------------------------------------------------------------------
# Execution primitives
# ----------------------------------------------------------------------

class _StateTable:
    """Task states for one run. Every transition goes through the lock."""

    def __init__(self, report: RunReport):
        self._report = report
        self._lock = threading.Lock()

    def get(self, name: str) -> TaskState:
        with self._lock:
            return self._report.results[name].state

    def set(self, name: str, state: TaskState, **fields: Any) -> None:
        with self._lock:
            result = self._report.results[name]
            result.state = state
            for k, v in fields.items():
                setattr(result, k, v)

    def skip_pending(self, names: Set[str]) -> List[str]:
        """Mark still-pending tasks as skipped; returns the ones changed."""
        changed: List[str] = []
        with self._lock:
            for name in names:
                result = self._report.results[name]
                if result.state is TaskState.PENDING:
                    result.state = TaskState.SKIPPED
                    changed.append(name)
        return sorted(changed)


def _invoke(task: Task, states: _StateTable, console: Console) -> Tuple[Any, Optional[ActionFailure], float]:
    """
    Run one task's action in a worker thread.
    Returns (output, failure, duration); failures are returned, not raised.
    """
    states.set(task.name, TaskState.RUNNING)
    console.print_task_started(task.name)
    console.print_debug(f"{task.name}: {describe_action(task.action)}")

    start = time.monotonic()
    try:
        output = task.action()
    except ActionFailure as e:
        if not e.task:
            e.task = task.name
        return None, e, time.monotonic() - start
    except Exception as e:
        failure = ActionFailure(task=task.name, message=f"{type(e).__name__}: {e}")
        failure.__cause__ = e
        return None, failure, time.monotonic() - start

    return output, None, time.monotonic() - start


def default_workers() -> int:
    c = os.cpu_count() or 2
    return max(1, c - 1)


# ----------------------------------------------------------------------
# Public API
# ----------------------------------------------------------------------

def run(
    pipeline: Pipeline,
    target: str,
    *,
    max_workers: int | None = None,
    console: Console | None = None,
) -> RunReport:
    """
    Run `target` and everything it transitively needs, each exactly once.

    - The closure is ordered up front: configuration errors (unknown
      target or dependency, cycles) are raised before any action runs.
    - Independent tasks run concurrently on a thread pool.
    - A failed task's dependents are skipped; unrelated tasks still run.
    - Raises PipelineError if any task failed, otherwise returns the report.
    """
    console = console or get_console()
    order = pipeline.topo_order(target)

    report = RunReport(target=target, results={n: TaskResult(name=n) for n in order})
    states = _StateTable(report)

    # dep -> dependents, and unmet deps per task, within the closure
    waiting: Dict[str, Set[str]] = {n: set(pipeline.get(n).needs) for n in order}
    dependents: Dict[str, List[str]] = {n: [] for n in order}
    for n in order:
        for dep in pipeline.get(n).needs:
            dependents[dep].append(n)

    ready: List[str] = [n for n in order if not waiting[n]]
    failures: Dict[str, ActionFailure] = {}
    in_flight: Dict[Future, str] = {}

    if max_workers is None:
        max_workers = default_workers()

    console.print_run_started(target=target, task_count=len(order))

    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="sitepipe") as pool:
        while ready or in_flight:
            # schedule all currently ready
            while ready:
                name = ready.pop(0)
                fut = pool.submit(_invoke, pipeline.get(name), states, console)
                in_flight[fut] = name

            if not in_flight:
                break

            # wait for at least one completion, then loop to schedule newly-ready tasks
            done, _ = wait(list(in_flight), return_when=FIRST_COMPLETED)
            for fut in done:
                name = in_flight.pop(fut)
                output, failure, duration = fut.result()

                if failure is None:
                    states.set(name, TaskState.SUCCEEDED, output=output, duration=duration)
                    console.print_task_succeeded(name, duration)
                    # unlock dependents only on success
                    for nxt in dependents[name]:
                        waiting[nxt].discard(name)
                        if not waiting[nxt] and states.get(nxt) is TaskState.PENDING:
                            ready.append(nxt)
                    continue

                states.set(name, TaskState.FAILED, error=failure, duration=duration)
                failures[name] = failure
                console.print_task_failed(name, failure)

                for skipped in states.skip_pending(pipeline.dependents(name, within=order)):
                    console.print_task_skipped(skipped, reason=f"needs {name}")

    if failures:
        raise PipelineError(target=target, failures=failures, report=report)

    return report
