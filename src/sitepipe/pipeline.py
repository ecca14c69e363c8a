# pipeline.py
from __future__ import annotations

from collections import deque
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Set, Tuple

from .actions import Action, CallAction
from .errors import (
    CyclicDependencyError,
    DuplicateTaskError,
    UnknownDependencyError,
    UnknownTaskError,
)
from .model import Task


class Pipeline:
    """
    A set of named tasks and their dependency graph.

    By default a task may only need tasks registered before it, which makes
    cycles impossible to declare. With forward_refs=True dependency names
    are resolved later, in validate() or when a target is planned.

        p = Pipeline()
        p.register("build", [], sh("jekyll build -d dist"))
        p.register("deploy", ["build"], sh("gh-pages -d dist"))
    """

    def __init__(self, *, forward_refs: bool = False):
        self.forward_refs = forward_refs
        self._tasks: Dict[str, Task] = {}

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(
        self,
        name: str,
        needs: Iterable[str] = (),
        action: Optional[Action] = None,
        *,
        description: str | None = None,
    ) -> Task:
        if not isinstance(name, str) or not name:
            raise ValueError(f"Task name must be a non-empty string, got {name!r}")
        if action is None or not callable(action):
            raise ValueError(f"Task {name!r} needs a callable action, got {action!r}")
        if name in self._tasks:
            raise DuplicateTaskError(name)

        # a bare name means one dependency, not its characters
        if isinstance(needs, str):
            needs = [needs]
        # dedupe, keep first-seen order
        deps = list(dict.fromkeys(needs))

        if name in deps:
            raise CyclicDependencyError([name])

        if not self.forward_refs:
            missing = [d for d in deps if d not in self._tasks]
            if missing:
                raise UnknownDependencyError(task=name, missing=missing, known=list(self._tasks))

        task = Task(name=name, needs=deps, action=action, description=description)
        self._tasks[name] = task
        return task

    def task(
        self,
        name: str | None = None,
        *,
        needs: Iterable[str] = (),
        description: str | None = None,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """
        Decorator form of register() for in-process actions.

            @p.task(needs=["build"])
            def report():
                ...

        The task name defaults to the function name with '_' -> '-'.
        """
        def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
            task_name = name or fn.__name__.replace("_", "-")
            doc = description
            if doc is None and fn.__doc__:
                doc = fn.__doc__.strip().splitlines()[0]
            self.register(task_name, needs, CallAction(fn), description=doc)
            return fn
        return decorator

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def __contains__(self, name: object) -> bool:
        return name in self._tasks

    def __iter__(self) -> Iterator[Task]:
        return iter(self._tasks.values())

    def __len__(self) -> int:
        return len(self._tasks)

    @property
    def names(self) -> List[str]:
        return list(self._tasks)

    def get(self, name: str) -> Task:
        try:
            return self._tasks[name]
        except KeyError:
            raise UnknownTaskError(name, known=list(self._tasks)) from None

    # ------------------------------------------------------------------
    # Graph
    # ------------------------------------------------------------------

    def closure(self, target: str) -> List[str]:
        """target plus every task it transitively needs (DFS order, deps first)."""
        self.get(target)

        seen: Set[str] = set()
        out: List[str] = []
        stack: List[Tuple[str, bool]] = [(target, False)]

        while stack:
            name, expanded = stack.pop()
            if expanded:
                out.append(name)
                continue
            if name in seen:
                continue
            seen.add(name)

            task = self._tasks[name]
            missing = [d for d in task.needs if d not in self._tasks]
            if missing:
                raise UnknownDependencyError(task=name, missing=missing, known=list(self._tasks))

            stack.append((name, True))
            for dep in reversed(task.needs):
                if dep not in seen:
                    stack.append((dep, False))

        return out

    def _graph(self, names: Iterable[str]) -> Tuple[Dict[str, List[str]], Dict[str, int]]:
        """Edges dep -> dependents and in-degrees, restricted to `names`."""
        name_set = set(names)
        adj: Dict[str, List[str]] = {n: [] for n in name_set}
        indeg: Dict[str, int] = {n: 0 for n in name_set}

        for n in name_set:
            for dep in self._tasks[n].needs:
                if dep in name_set:
                    adj[dep].append(n)
                    indeg[n] += 1

        return adj, indeg

    def _levels(self, names: List[str]) -> List[List[str]]:
        adj, indeg = self._graph(names)
        q = deque(sorted(n for n, d in indeg.items() if d == 0))

        levels: List[List[str]] = []
        processed = 0

        while q:
            level: List[str] = []
            for _ in range(len(q)):
                node = q.popleft()
                level.append(node)
                processed += 1

                for child in sorted(adj[node]):
                    indeg[child] -= 1
                    if indeg[child] == 0:
                        q.append(child)

            levels.append(level)

        if processed != len(indeg):
            stuck = {n for n, d in indeg.items() if d > 0}
            raise CyclicDependencyError(self._on_cycle(stuck, adj))

        return levels

    @staticmethod
    def _on_cycle(stuck: Set[str], adj: Dict[str, List[str]]) -> List[str]:
        """
        Drop stuck tasks that are only downstream of a cycle: peel off
        tasks with no stuck dependents until none are left to peel.
        """
        remaining = set(stuck)
        while True:
            leaves = {n for n in remaining if not any(c in remaining for c in adj[n])}
            if not leaves:
                return sorted(remaining)
            remaining -= leaves

    def levels(self, target: str) -> List[List[str]]:
        """
        Topological "levels" of target's closure.
        Tasks inside one level have no ordering between them.
        """
        return self._levels(self.closure(target))

    def topo_order(self, target: str) -> List[str]:
        return [name for level in self.levels(target) for name in level]

    def dependents(self, name: str, within: Iterable[str] | None = None) -> Set[str]:
        """Every task that transitively needs `name`."""
        scope = set(self._tasks if within is None else within)
        adj, _ = self._graph(scope)

        out: Set[str] = set()
        q = deque(adj.get(name, []))
        while q:
            n = q.popleft()
            if n in out:
                continue
            out.add(n)
            q.extend(adj[n])
        return out

    def validate(self) -> None:
        """
        Check the whole pipeline: every dependency resolves and the graph
        is acyclic. Raises a ConfigurationError subclass otherwise.
        """
        for task in self._tasks.values():
            missing = [d for d in task.needs if d not in self._tasks]
            if missing:
                raise UnknownDependencyError(task=task.name, missing=missing, known=list(self._tasks))
        self._levels(list(self._tasks))

    def __repr__(self) -> str:
        return f"Pipeline({self.names!r})"
