from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from ..core.errors import CyclicDependencyError, MakefileParseError, UnknownTargetError
from .model import ParsedMakefile, TargetRule
from .parser import split_words
from .variables import VariableTable


@dataclass
class DependencyGraph:
    rules: dict[str, TargetRule] = field(default_factory=dict)
    phony: list[str] = field(default_factory=list)
    redefined: list[str] = field(default_factory=list)

    @property
    def nodes(self) -> list[str]:
        seen: dict[str, None] = {}
        for name, rule in self.rules.items():
            seen.setdefault(name, None)
            for prereq in rule.prerequisites:
                seen.setdefault(prereq, None)
        return list(seen)

    @property
    def edges(self) -> list[tuple[str, str]]:
        return [(name, prereq) for name, rule in self.rules.items() for prereq in rule.prerequisites]

    @property
    def first_target(self) -> str | None:
        return next((name for name in self.rules if not name.startswith(".")), None)

    def prerequisites(self, name: str) -> list[str]:
        rule = self.rules.get(name)
        return list(rule.prerequisites) if rule else []

    def is_leaf(self, name: str) -> bool:
        return name not in self.rules

    def is_phony(self, name: str) -> bool:
        return name in self.phony

    def as_mapping(self) -> dict[str, list[str]]:
        return {name: list(rule.prerequisites) for name, rule in self.rules.items()}


def _expand_name(table: VariableTable, rule: TargetRule, where: str | None) -> str:
    name = table.expand(rule.name).strip()
    if not name:
        raise MakefileParseError(f"target {rule.name!r} expands to an empty name", rule.line_number, where)
    if len(name.split()) > 1:
        raise MakefileParseError(
            f"target {rule.name!r} expands to several names: {name!r}", rule.line_number, where
        )
    return name


def build_graph(parsed: ParsedMakefile, table: VariableTable) -> DependencyGraph:
    """Expand target and prerequisite names and connect them.

    Prerequisites without a rule become leaf nodes. Self references are
    rejected here; longer cycles are found by the scheduler.
    """
    where = str(parsed.path) if parsed.path is not None else None
    graph = DependencyGraph(phony=[])
    for raw in parsed.phony:
        for name in split_words(table.expand(raw), parsed.delimiter):
            if name not in graph.phony:
                graph.phony.append(name)
    for rule in parsed.rules.values():
        name = _expand_name(table, rule, where)
        prerequisites: list[str] = []
        for raw in rule.prerequisites:
            for prereq in split_words(table.expand(raw), parsed.delimiter):
                if prereq == name:
                    raise CyclicDependencyError([name, name])
                if prereq not in prerequisites:
                    prerequisites.append(prereq)
        expanded = TargetRule(
            name=name,
            prerequisites=prerequisites,
            commands=list(rule.commands),
            help_text=rule.help_text,
            line_number=rule.line_number,
            is_phony=rule.is_phony or name in graph.phony,
        )
        existing = graph.rules.get(name)
        if existing is None:
            graph.rules[name] = expanded
        elif existing.merge(expanded):
            graph.redefined.append(name)
    graph.redefined = list(dict.fromkeys([*parsed.redefined, *graph.redefined]))
    return graph


def resolve_target(graph: DependencyGraph, requested: str | None, cwd: Path) -> str:
    if requested is None:
        first = graph.first_target
        if first is None:
            raise UnknownTargetError("")
        return first
    if requested in graph.rules or graph.is_phony(requested):
        return requested
    if (cwd / requested).exists():
        return requested
    raise UnknownTargetError(requested)


def render_tree(graph: dict[str, list[str]], root: str, prefix: str = "", seen: set[str] | None = None) -> list[str]:
    lines: list[str] = []
    pending: list[tuple[str, str, frozenset[str]]] = [(root, prefix, frozenset(seen or ()))]
    while pending:
        name, line_prefix, ancestors = pending.pop()
        if name in ancestors:
            lines.append(f"{line_prefix}{name} (cycle)")
            continue
        lines.append(f"{line_prefix}{name}")
        deps = graph.get(name, [])
        child_prefix = line_prefix.replace("├─ ", "│  ").replace("└─ ", "   ")
        inner = ancestors | {name}
        # pushed in reverse so the first prerequisite is rendered first
        for i in reversed(range(len(deps))):
            branch = "└─ " if i == len(deps) - 1 else "├─ "
            pending.append((deps[i], child_prefix + branch, inner))
    return lines
