"""Depth-first post-order scheduling of targets.

Prerequisites are visited strictly in the order they were written, one at a
time, and every target is emitted once even when several targets depend on it.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterator

from ..core.errors import CyclicDependencyError, UnknownTargetError
from .graph import DependencyGraph
from .model import ExecutionPlan, PlanStep

_VISITING = 1
_VISITED = 2


def schedule(graph: DependencyGraph, root: str, cwd: Path) -> list[str]:
    state: dict[str, int] = {}
    stack: list[str] = []
    frames: list[tuple[str, Iterator[str]]] = []
    order: list[str] = []

    def enter(name: str, needed_by: str | None) -> None:
        mark = state.get(name)
        if mark == _VISITED:
            return
        if mark == _VISITING:
            start = stack.index(name)
            raise CyclicDependencyError([*stack[start:], name])
        if graph.is_leaf(name):
            if not graph.is_phony(name) and not (cwd / name).exists():
                raise UnknownTargetError(name, needed_by)
            state[name] = _VISITED
            return
        state[name] = _VISITING
        stack.append(name)
        frames.append((name, iter(graph.prerequisites(name))))

    enter(root, None)
    while frames:
        name, pending = frames[-1]
        prereq = next(pending, None)
        if prereq is not None:
            enter(prereq, name)
            continue
        frames.pop()
        stack.pop()
        state[name] = _VISITED
        order.append(name)
    return order


def build_plan(graph: DependencyGraph, root: str, cwd: Path) -> ExecutionPlan:
    steps = tuple(
        PlanStep(target=name, commands=tuple(graph.rules[name].commands)) for name in schedule(graph, root, cwd)
    )
    return ExecutionPlan(root=root, steps=steps)
