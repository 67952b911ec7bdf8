from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import TextIO

from ..core.context import RunContext
from ..core.errors import CommandExecutionError, CommandFailure
from ..core.logging import log_event
from ..makefile.graph import DependencyGraph
from ..makefile.model import ExecutionPlan
from ..makefile.variables import VariableTable, automatic_variables
from .context import ExecutionContext
from .runners import CommandRunner

ERROR_ACTIONS = ("stop", "continue")


@dataclass(frozen=True)
class ExpandedCommand:
    target: str
    text: str
    suppress_echo: bool
    line_number: int


@dataclass(frozen=True)
class CommandOutcome:
    command: ExpandedCommand
    code: int
    duration_ms: int


def expand_plan(plan: ExecutionPlan, graph: DependencyGraph, table: VariableTable) -> list[ExpandedCommand]:
    """Expand every command of the plan up front, so an expansion error stops the run before anything executes."""
    expanded: list[ExpandedCommand] = []
    for step in plan.steps:
        automatic = automatic_variables(step.target, graph.prerequisites(step.target))
        for command in step.commands:
            expanded.append(
                ExpandedCommand(
                    target=step.target,
                    text=table.expand(command.text, automatic),
                    suppress_echo=command.suppress_echo,
                    line_number=command.line_number,
                )
            )
    return expanded


def execute_plan(
    plan: ExecutionPlan,
    graph: DependencyGraph,
    table: VariableTable,
    runner: CommandRunner,
    ctx: ExecutionContext,
    run_ctx: RunContext | None = None,
    error_action: str = "stop",
    out: TextIO | None = None,
    err: TextIO | None = None,
) -> list[CommandOutcome]:
    if error_action not in ERROR_ACTIONS:
        raise ValueError(f"unknown error action: {error_action}")
    out = out or sys.stdout
    err = err or sys.stderr
    outcomes: list[CommandOutcome] = []
    failures: list[CommandFailure] = []
    for command in expand_plan(plan, graph, table):
        if not command.suppress_echo:
            out.write(command.text + "\n")
            out.flush()
        result = runner.run(command.text, ctx)
        if not result.streamed:
            _forward(result.stdout, out)
            _forward(result.stderr, err)
        outcomes.append(CommandOutcome(command=command, code=result.code, duration_ms=result.duration_ms))
        if run_ctx is not None:
            log_event(
                run_ctx,
                "info",
                "executor",
                "run-command",
                target=command.target,
                line=command.line_number,
                code=result.code,
                duration_ms=result.duration_ms,
            )
        if result.ok:
            continue
        failure = CommandFailure(target=command.target, command=command.text, code=result.code)
        if error_action == "stop":
            raise CommandExecutionError([failure])
        failures.append(failure)
        if run_ctx is not None:
            log_event(run_ctx, "warning", "executor", "command-failed", target=command.target, code=result.code)
    if failures:
        raise CommandExecutionError(failures)
    return outcomes


def _forward(text: str, sink: TextIO) -> None:
    if text:
        sink.write(text)
        sink.flush()
