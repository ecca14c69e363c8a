"""Console output formatting utilities for sitepipe."""

from __future__ import annotations

import sys
import threading
from typing import Iterable, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..errors import ActionFailure
    from ..model import RunReport, Task


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False, stream=None, err_stream=None):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
            stream: Where normal output goes (defaults to sys.stdout at print time)
            err_stream: Where errors go (defaults to sys.stderr at print time)
        """
        self.debug = debug
        self._stream = stream
        self._err_stream = err_stream
        # tasks report from worker threads
        self._lock = threading.Lock()

    def _out(self, *lines: str, err: bool = False) -> None:
        if err:
            target = self._err_stream or sys.stderr
        else:
            target = self._stream or sys.stdout
        with self._lock:
            for line in lines:
                print(line, file=target)

    def print_header(self, title: str) -> None:
        """Print a section header."""
        self._out(f"\n{title}", "-" * len(title))

    def print_run_started(self, target: str, task_count: int) -> None:
        """Print run start information."""
        self._out("\nRUN STARTED", f"Target: {target}", f"Tasks: {task_count}", "")

    def print_task_started(self, name: str) -> None:
        self._out(f"TASK STARTED: {name}")

    def print_task_succeeded(self, name: str, duration: Optional[float] = None) -> None:
        if duration is None:
            self._out(f"TASK DONE: {name}")
        else:
            self._out(f"TASK DONE: {name} ({duration:.1f}s)")

    def print_task_failed(self, name: str, failure: "ActionFailure") -> None:
        """
        Print failure message.

        In debug mode the captured stdout/stderr tail of an external
        command is printed as well.
        """
        lines = [f"TASK FAILED: {name}"]
        if failure.exit_code is not None:
            lines.append(f"Exit code: {failure.exit_code}")
        lines.append(f"Error: {failure.message.splitlines()[0] if failure.message else 'Unknown error'}")
        if self.debug:
            if failure.stdout:
                lines.append(f"--- stdout ---\n{failure.stdout.rstrip()}")
            if failure.stderr:
                lines.append(f"--- stderr ---\n{failure.stderr.rstrip()}")
        elif failure.stderr.strip():
            lines.append(f"stderr: {failure.stderr.strip().splitlines()[-1]}")
        self._out(*lines, err=True)

    def print_task_skipped(self, name: str, reason: str) -> None:
        self._out(f"TASK SKIPPED: {name} ({reason})")

    def print_plan(self, target: str, levels: list[list[str]]) -> None:
        """Print the execution levels for a target."""
        self._out(f"\nPLAN: {target}")
        for idx, level in enumerate(levels, start=1):
            self._out(f"  Stage {idx}: {', '.join(level)}")

    def print_tasks(self, tasks: Iterable["Task"]) -> None:
        """Print registered tasks with their dependencies."""
        self.print_header("TASKS")
        for task in tasks:
            needs = f" <- {', '.join(task.needs)}" if task.needs else ""
            desc = f"  # {task.description}" if task.description else ""
            self._out(f"  {task.name}{needs}{desc}")

    def print_results(self, report: "RunReport") -> None:
        """Print final results summary."""
        lines = ["", "=" * 40, "RESULTS", "=" * 40]
        for name, result in report.results.items():
            lines.append(f"  {name}: {result.state.value.upper()}")
        self._out(*lines)

    def print_outputs(self, report: "RunReport") -> None:
        """Print the text each succeeded task returned (command stdout, CSS, HTML)."""
        for name, result in report.results.items():
            if result.ok and isinstance(result.output, str) and result.output.strip():
                self._out(f"\n--- {name} output ---", result.output.rstrip())

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        lines = [f"\nERROR: {title}", message]
        if details:
            lines.extend(f"  {detail}" for detail in details)
        if suggestion:
            lines.append(f"\n{suggestion}")
        self._out(*lines, err=True)

    def print_exception(self, exc: BaseException) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            self._out("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)), err=True)
        else:
            self._out(f"Error: {exc}", err=True)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        self._out(message)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            self._out(f"[DEBUG] {message}", err=True)


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
