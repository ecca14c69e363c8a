from __future__ import annotations

import pytest

from sitepipe.actions import CallAction, call
from sitepipe.errors import (
    CyclicDependencyError,
    DuplicateTaskError,
    UnknownDependencyError,
    UnknownTaskError,
)
from sitepipe.pipeline import Pipeline


def noop():
    return None


def make(graph: dict[str, list[str]], *, forward_refs: bool = False) -> Pipeline:
    p = Pipeline(forward_refs=forward_refs)
    for name, needs in graph.items():
        p.register(name, needs, call(noop))
    return p


def test_duplicate_keeps_first_registration():
    p = Pipeline()
    first = call(noop)
    p.register("build", [], first)

    with pytest.raises(DuplicateTaskError) as exc:
        p.register("build", [], call(noop))

    assert exc.value.name == "build"
    assert p.get("build").action is first
    assert len(p) == 1


def test_unknown_dependency_rejected_at_register():
    p = make({"build": []})
    with pytest.raises(UnknownDependencyError) as exc:
        p.register("deploy", ["build", "uncss"], call(noop))
    assert exc.value.missing == ["uncss"]
    assert "deploy" not in p


def test_self_dependency_is_a_cycle():
    p = Pipeline()
    with pytest.raises(CyclicDependencyError):
        p.register("loop", ["loop"], call(noop))


def test_repeated_needs_are_collapsed():
    p = make({"a": []})
    task = p.register("b", ["a", "a"], call(noop))
    assert task.needs == ["a"]


def test_action_must_be_callable():
    with pytest.raises(ValueError):
        Pipeline().register("x", [], "jekyll build")


def test_forward_refs_resolve_at_validate():
    p = make({"deploy": ["uncss"], "uncss": ["build"], "build": []}, forward_refs=True)
    p.validate()
    assert p.topo_order("deploy") == ["build", "uncss", "deploy"]


def test_forward_refs_unknown_reported_by_validate():
    p = make({"deploy": ["nope"]}, forward_refs=True)
    with pytest.raises(UnknownDependencyError):
        p.validate()
    with pytest.raises(UnknownDependencyError):
        p.closure("deploy")


def test_cycle_detected_with_stuck_names():
    p = make({"a": ["c"], "b": ["a"], "c": ["b"], "d": []}, forward_refs=True)
    with pytest.raises(CyclicDependencyError) as exc:
        p.topo_order("a")
    assert exc.value.tasks == ["a", "b", "c"]

    with pytest.raises(CyclicDependencyError):
        p.validate()

    # d has no cycle in reach
    assert p.topo_order("d") == ["d"]


def test_closure_only_reaches_dependencies():
    p = make({"a": [], "b": ["a"], "c": ["a"]})
    assert p.closure("b") == ["a", "b"]
    assert p.closure("a") == ["a"]


def test_levels_group_independent_tasks():
    p = make({"build": [], "uncss": ["build"], "critical": ["uncss"], "deploy": ["uncss"], "all": ["critical", "deploy"]})
    assert p.levels("all") == [["build"], ["uncss"], ["critical", "deploy"], ["all"]]


def test_unknown_target():
    with pytest.raises(UnknownTaskError):
        make({"a": []}).closure("missing")


def test_dependents_are_transitive():
    p = make({"a": [], "b": ["a"], "c": ["b"], "d": []})
    assert p.dependents("a") == {"b", "c"}
    assert p.dependents("a", within=["a", "b"]) == {"b"}


def test_task_decorator_registers_call_action():
    p = make({"build": []})

    @p.task(needs=["build"])
    def write_report():
        """Summarize the build."""
        return "report"

    task = p.get("write-report")
    assert isinstance(task.action, CallAction)
    assert task.needs == ["build"]
    assert task.description == "Summarize the build."
    assert task.action() == "report"


def test_pipelines_are_independent():
    one = make({"a": []})
    two = Pipeline()
    assert "a" in one
    assert "a" not in two


def test_single_name_needs_is_one_dependency():
    p = make({"build": []})
    task = p.register("deploy", "build", call(noop))
    assert task.needs == ["build"]


def test_cycle_error_leaves_out_downstream_tasks():
    p = make({"deploy": ["uncss"], "uncss": ["build"], "build": ["uncss"], "notify": ["deploy"]}, forward_refs=True)
    with pytest.raises(CyclicDependencyError) as exc:
        p.topo_order("notify")
    assert exc.value.tasks == ["build", "uncss"]
