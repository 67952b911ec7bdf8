from __future__ import annotations

from ..makefile.graph import DependencyGraph, render_tree


def graph_lines(graph: DependencyGraph, root: str) -> list[str]:
    return render_tree(graph.as_mapping(), root)


def graph_payload(graph: DependencyGraph, root: str) -> dict[str, object]:
    return {
        "schema_name": "pwmake.graph.v1",
        "schema_version": 1,
        "tool": "pwmake",
        "status": "ok",
        "root": root,
        "graph": graph.as_mapping(),
        "tree": graph_lines(graph, root),
    }
