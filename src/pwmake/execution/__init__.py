"""Command execution: context, runners and the plan executor."""
from .context import ExecutionContext
from .executor import CommandOutcome, ExpandedCommand, execute_plan, expand_plan
from .runners import RUNNER_NAMES, CommandRunner, PythonRunner, ShellRunner, make_runner

__all__ = [
    "CommandOutcome",
    "CommandRunner",
    "ExecutionContext",
    "ExpandedCommand",
    "PythonRunner",
    "RUNNER_NAMES",
    "ShellRunner",
    "execute_plan",
    "expand_plan",
    "make_runner",
]
