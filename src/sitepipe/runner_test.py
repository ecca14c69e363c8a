from __future__ import annotations

import io
import threading
from collections import Counter

import pytest

from sitepipe.actions import call
from sitepipe.errors import ActionFailure, CyclicDependencyError, PipelineError, UnknownTaskError
from sitepipe.model import TaskState
from sitepipe.pipeline import Pipeline
from sitepipe.runner import load_pipeline, run
from sitepipe.ui.console import Console


@pytest.fixture
def console():
    return Console(stream=io.StringIO(), err_stream=io.StringIO())


class Recorder:
    """Counts calls and records start/finish events across threads."""

    def __init__(self):
        self.calls = Counter()
        self.events: list[tuple[str, str]] = []
        self._lock = threading.Lock()

    def action(self, name, *, fail=False, output=None):
        def fn():
            with self._lock:
                self.calls[name] += 1
                self.events.append(("start", name))
            if fail:
                raise RuntimeError(f"{name} broke")
            with self._lock:
                self.events.append(("end", name))
            return output if output is not None else name
        return fn

    def index(self, kind, name):
        return self.events.index((kind, name))


def test_diamond_runs_every_task_once(console):
    rec = Recorder()
    p = Pipeline()
    p.register("a", [], rec.action("a"))
    p.register("b", ["a"], rec.action("b"))
    p.register("c", ["a"], rec.action("c"))
    p.register("d", ["b", "c"], rec.action("d"))

    report = run(p, "d", max_workers=4, console=console)

    assert report.ok
    assert rec.calls == Counter({"a": 1, "b": 1, "c": 1, "d": 1})
    assert list(report.results) == ["a", "b", "c", "d"]
    assert report.results["d"].output == "d"
    # nothing starts before its dependencies finished
    assert rec.index("end", "a") < rec.index("start", "b")
    assert rec.index("end", "a") < rec.index("start", "c")
    assert rec.index("end", "b") < rec.index("start", "d")
    assert rec.index("end", "c") < rec.index("start", "d")


def test_cycle_runs_nothing(console):
    rec = Recorder()
    p = Pipeline(forward_refs=True)
    p.register("start", ["a"], rec.action("start"))
    p.register("a", ["b"], rec.action("a"))
    p.register("b", ["a"], rec.action("b"))
    p.register("leaf", [], rec.action("leaf"))

    with pytest.raises(CyclicDependencyError) as exc:
        run(p, "start", console=console)

    # start only waits on the cycle, it is not part of it
    assert exc.value.tasks == ["a", "b"]
    assert sum(rec.calls.values()) == 0


def test_failed_dependency_skips_dependents(console):
    rec = Recorder()
    p = Pipeline()
    p.register("build", [], rec.action("build", fail=True))
    p.register("uncss", ["build"], rec.action("uncss"))
    p.register("deploy", ["uncss"], rec.action("deploy"))

    with pytest.raises(PipelineError) as exc:
        run(p, "deploy", console=console)

    err = exc.value
    assert list(err.failures) == ["build"]
    assert isinstance(err.failures["build"], ActionFailure)
    assert isinstance(err.failures["build"].__cause__, RuntimeError)
    assert rec.calls["uncss"] == 0
    assert rec.calls["deploy"] == 0
    assert err.report.states() == {
        "build": TaskState.FAILED,
        "uncss": TaskState.SKIPPED,
        "deploy": TaskState.SKIPPED,
    }
    assert "build" in str(err)


def test_unrelated_branch_still_completes(console):
    rec = Recorder()
    p = Pipeline()
    p.register("broken", [], rec.action("broken", fail=True))
    p.register("fine", [], rec.action("fine"))
    p.register("after-fine", ["fine"], rec.action("after-fine"))
    p.register("all", ["broken", "after-fine"], rec.action("all"))

    with pytest.raises(PipelineError) as exc:
        run(p, "all", max_workers=2, console=console)

    states = exc.value.report.states()
    assert states["fine"] is TaskState.SUCCEEDED
    assert states["after-fine"] is TaskState.SUCCEEDED
    assert states["all"] is TaskState.SKIPPED
    assert rec.calls["all"] == 0


def test_action_failure_keeps_exit_code(console):
    def fail():
        raise ActionFailure(task="", message="command failed: jekyll build", exit_code=3)

    p = Pipeline()
    p.register("build", [], call(fail))

    with pytest.raises(PipelineError) as exc:
        run(p, "build", console=console)

    failure = exc.value.failures["build"]
    assert failure.task == "build"
    assert failure.exit_code == 3


def test_independent_tasks_run_concurrently(console):
    barrier = threading.Barrier(2, timeout=5)

    def meet():
        barrier.wait()

    p = Pipeline()
    p.register("left", [], call(meet))
    p.register("right", [], call(meet))
    p.register("both", ["left", "right"], call(lambda: "done"))

    report = run(p, "both", max_workers=2, console=console)
    assert report.ok


def test_run_only_touches_target_closure(console):
    rec = Recorder()
    p = Pipeline()
    p.register("a", [], rec.action("a"))
    p.register("b", ["a"], rec.action("b"))
    p.register("c", ["a"], rec.action("c"))

    report = run(p, "b", console=console)

    assert set(report.results) == {"a", "b"}
    assert rec.calls["c"] == 0


def test_fresh_run_reattempts_failed_task(console):
    attempts = Counter()

    def flaky():
        attempts["a"] += 1
        if attempts["a"] == 1:
            raise RuntimeError("first try fails")
        return "ok"

    def fresh():
        p = Pipeline()
        p.register("a", [], call(flaky))
        p.register("b", ["a"], call(lambda: "b"))
        p.register("c", ["a"], call(lambda: "c"))
        return p

    with pytest.raises(PipelineError):
        run(fresh(), "a", console=console)

    report = run(fresh(), "c", console=console)
    assert report.ok
    assert attempts["a"] == 2


def test_same_pipeline_can_run_twice(console):
    rec = Recorder()
    p = Pipeline()
    p.register("a", [], rec.action("a"))

    run(p, "a", console=console)
    run(p, "a", console=console)
    assert rec.calls["a"] == 2


def test_unknown_target(console):
    with pytest.raises(UnknownTaskError):
        run(Pipeline(), "deploy", console=console)


def test_report_records_duration(console):
    p = Pipeline()
    p.register("a", [], call(lambda: 42))
    result = run(p, "a", console=console).results["a"]
    assert result.output == 42
    assert result.duration is not None and result.duration >= 0


def test_progress_goes_to_console():
    out, err = io.StringIO(), io.StringIO()
    p = Pipeline()
    p.register("ok", [], call(lambda: None))
    p.register("bad", ["ok"], call(lambda: 1 / 0))

    with pytest.raises(PipelineError):
        run(p, "bad", console=Console(stream=out, err_stream=err))

    assert "TASK DONE: ok" in out.getvalue()
    assert "TASK FAILED: bad" in err.getvalue()
    assert "ZeroDivisionError" in err.getvalue()


def test_load_pipeline_function(tmp_path):
    path = tmp_path / "site_pipeline.py"
    path.write_text(
        "from sitepipe import Pipeline, call\n"
        "def pipeline():\n"
        "    p = Pipeline()\n"
        "    p.register('build', [], call(lambda: 'built'))\n"
        "    return p\n"
    )
    assert load_pipeline(path).names == ["build"]


def test_load_pipeline_constant(tmp_path):
    path = tmp_path / "const_pipeline.py"
    path.write_text(
        "from sitepipe import Pipeline, call\n"
        "PIPELINE = Pipeline()\n"
        "PIPELINE.register('build', [], call(print))\n"
    )
    assert "build" in load_pipeline(path)


def test_load_pipeline_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_pipeline(tmp_path / "missing.py")

    txt = tmp_path / "pipeline.txt"
    txt.write_text("")
    with pytest.raises(ValueError):
        load_pipeline(txt)

    wrong = tmp_path / "wrong_pipeline.py"
    wrong.write_text("PIPELINE = ['build']\n")
    with pytest.raises(TypeError):
        load_pipeline(wrong)
