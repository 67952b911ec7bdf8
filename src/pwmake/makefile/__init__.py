"""Makefile parsing, dependency graph and scheduling."""
from .graph import DependencyGraph, build_graph, render_tree, resolve_target
from .model import CommandLine, ExecutionPlan, ExpansionMode, ParsedMakefile, PlanStep, TargetRule, Variable
from .parser import DEFAULT_MAKEFILE, load_makefile, parse_makefile
from .scheduler import build_plan, schedule
from .variables import VariableTable, automatic_variables, parse_assignments

__all__ = [
    "CommandLine",
    "DEFAULT_MAKEFILE",
    "DependencyGraph",
    "ExecutionPlan",
    "ExpansionMode",
    "ParsedMakefile",
    "PlanStep",
    "TargetRule",
    "Variable",
    "VariableTable",
    "automatic_variables",
    "build_graph",
    "build_plan",
    "load_makefile",
    "parse_assignments",
    "parse_makefile",
    "render_tree",
    "resolve_target",
    "schedule",
]
