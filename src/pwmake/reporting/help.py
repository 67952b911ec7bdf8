from __future__ import annotations

from dataclasses import dataclass

from ..makefile.graph import DependencyGraph

HIDDEN_PREFIXES = (".", "_")


@dataclass(frozen=True)
class HelpRow:
    name: str
    help: str
    phony: bool


def is_hidden(name: str) -> bool:
    return name.startswith(HIDDEN_PREFIXES)


def help_rows(graph: DependencyGraph) -> list[HelpRow]:
    return [
        HelpRow(name=name, help=rule.help_text, phony=rule.is_phony or graph.is_phony(name))
        for name, rule in graph.rules.items()
        if not is_hidden(name)
    ]


def render_help(rows: list[HelpRow]) -> str:
    if not rows:
        return "no targets"
    width = max(len("target"), *(len(row.name) for row in rows))
    lines = [f"{'target'.ljust(width)}  synopsis", f"{'-' * width}  {'-' * len('synopsis')}"]
    lines.extend(f"{row.name.ljust(width)}  {row.help}".rstrip() for row in rows)
    return "\n".join(lines)


def help_payload(rows: list[HelpRow], file: str) -> dict[str, object]:
    return {
        "schema_name": "pwmake.help.v1",
        "schema_version": 1,
        "tool": "pwmake",
        "status": "ok",
        "file": file,
        "targets": [{"name": row.name, "help": row.help, "phony": row.phony} for row in rows],
    }
