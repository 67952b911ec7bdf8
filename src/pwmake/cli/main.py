from __future__ import annotations

import argparse
import os
import sys
from dataclasses import replace
from pathlib import Path

from .. import __version__
from ..config.loader import MakeConfig, load_config
from ..core.context import RunContext
from ..core.errors import ConfigError, ScriptError
from ..core.exit_codes import ERR_INTERNAL, OK
from ..core.logging import log_event
from ..execution.context import ExecutionContext
from ..execution.executor import ERROR_ACTIONS, execute_plan, expand_plan
from ..execution.runners import RUNNER_NAMES, make_runner
from ..makefile.graph import DependencyGraph, build_graph, resolve_target
from ..makefile.model import ParsedMakefile
from ..makefile.parser import load_makefile
from ..makefile.scheduler import build_plan
from ..makefile.variables import VariableTable, parse_assignments
from ..reporting.dryrun import DryRunReport, dry_run_payload, render_dry_run
from ..reporting.graph import graph_lines, graph_payload
from ..reporting.help import help_payload, help_rows, render_help
from .output import emit, render_error


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="pwmake",
        description="Run Makefile-style targets in dependency order.",
    )
    p.add_argument("--version", action="version", version=f"pwmake {__version__}")
    p.add_argument("target", nargs="?", help="target to run (default: first rule in the file)")
    p.add_argument("-t", "--target", dest="target_opt", help="target to run; same as the positional argument")
    p.add_argument("-f", "--file", help="makefile path (default: Makefile)")
    p.add_argument("-C", "--directory", help="change to this directory before reading the makefile")
    p.add_argument(
        "-V",
        "--variables",
        action="append",
        metavar="NAME=VALUE[,NAME=VALUE]",
        help="override file variables; repeat the flag or separate pairs with commas",
    )
    p.add_argument("--param", help="value of the predefined ${param} variable")
    p.add_argument(
        "--params",
        action="append",
        metavar="VALUE",
        help="append a value to the predefined ${params} / ${params[N]} variables; repeat for more",
    )
    p.add_argument("--delimiter", help="prerequisite separator on target lines (default: whitespace)")
    p.add_argument("--target-delimiter", help="separator between target and prerequisites (default: ':')")
    p.add_argument("--error-action", choices=list(ERROR_ACTIONS), help="stop at the first failing command or continue")
    p.add_argument(
        "--force-trailing-comment-stripping",
        action="store_true",
        default=None,
        help="also strip '#' comments from command lines",
    )
    p.add_argument("--shell", choices=list(RUNNER_NAMES), help="command runner: sh (default) or in-process python")
    mode = p.add_mutually_exclusive_group()
    mode.add_argument("-H", "--target-help", action="store_true", help="list targets and their ## help text")
    mode.add_argument("-n", "--dry-run", action="store_true", help="print the resolved plan without running it")
    mode.add_argument("--graph", action="store_true", help="print the dependency tree of the target")
    p.add_argument("--format", choices=["text", "json"], default=None, help="output format for reports and errors")
    p.add_argument("--json", action="store_true", help="shorthand for --format json")
    p.add_argument("--log-json", action="store_true", default=None, help="emit structured logs as JSON lines")
    p.add_argument("--run-id", help="run identifier used in logs")
    vg = p.add_mutually_exclusive_group()
    vg.add_argument("--verbose", action="store_true", help="enable verbose diagnostics")
    vg.add_argument("--quiet", action="store_true", help="only emit errors")
    return p


def _requested_target(ns: argparse.Namespace) -> str | None:
    if ns.target and ns.target_opt and ns.target != ns.target_opt:
        raise ConfigError(f"conflicting targets: {ns.target!r} and {ns.target_opt!r}")
    return ns.target_opt or ns.target


def _resolve_config(ctx: RunContext, ns: argparse.Namespace) -> MakeConfig:
    config = load_config(ctx.cwd, os.environ).with_overrides(
        file=ns.file,
        shell=ns.shell,
        error_action=ns.error_action,
        delimiter=ns.delimiter,
        target_delimiter=ns.target_delimiter,
        force_trailing_comment_stripping=ns.force_trailing_comment_stripping,
        log_json=ns.log_json,
    )
    log_event(ctx, "debug", "config", "loaded", source=config.source, file=config.file, shell=config.shell)
    return config


def _load(ctx: RunContext, ns: argparse.Namespace, config: MakeConfig) -> tuple[ParsedMakefile, VariableTable, DependencyGraph]:
    try:
        overrides = parse_assignments(ns.variables or [])
    except ValueError as exc:
        raise ConfigError(f"invalid --variables: {exc}") from exc
    path = ctx.cwd / config.file
    parsed = load_makefile(
        path,
        delimiter=config.delimiter,
        target_delimiter=config.target_delimiter,
        force_comment_stripping=config.force_trailing_comment_stripping,
    )
    table = VariableTable(
        overrides=overrides,
        param=ns.param,
        params=ns.params,
        max_depth=config.max_expansion_depth,
        on_unresolved=lambda name: log_event(ctx, "warning", "variables", "undefined-variable", name=name),
    )
    table.declare_all(parsed.variables)
    graph = build_graph(parsed, table)
    for name in graph.redefined:
        log_event(ctx, "warning", "parser", "recipe-overridden", target=name)
    log_event(
        ctx,
        "info",
        "parser",
        "parsed",
        file=parsed.display_path,
        rules=len(parsed.rules),
        variables=len(parsed.variables),
        phony=len(parsed.phony),
    )
    return parsed, table, graph


def run(ctx: RunContext, ns: argparse.Namespace) -> int:
    config = _resolve_config(ctx, ns)
    if config.log_json and not ctx.log_json:
        ctx = replace(ctx, log_json=True)
    parsed, table, graph = _load(ctx, ns, config)

    if ns.target_help:
        rows = help_rows(graph)
        if ctx.as_json:
            emit(help_payload(rows, parsed.display_path), True)
        else:
            print(render_help(rows))
        return OK

    root = resolve_target(graph, _requested_target(ns), ctx.cwd)
    if ns.graph:
        if ctx.as_json:
            emit(graph_payload(graph, root), True)
        else:
            print("\n".join(graph_lines(graph, root)))
        return OK

    plan = build_plan(graph, root, ctx.cwd)
    log_event(ctx, "info", "scheduler", "planned", target=root, order=",".join(plan.targets))
    if ns.dry_run:
        report = DryRunReport(
            file=parsed.display_path,
            target=root,
            overrides=dict(table.overrides),
            variables=table.snapshot(),
            phony=list(graph.phony),
            parsed=parsed,
            targets=plan.targets,
            commands=expand_plan(plan, graph, table),
        )
        if ctx.as_json:
            emit(dry_run_payload(report), True)
        else:
            print(render_dry_run(report))
        return OK

    if not plan.command_lines():
        print(f"pwmake: nothing to be done for '{root}'")
        return OK
    runner = make_runner(config.shell, config.shell_path, stream=True)
    execute_plan(
        plan,
        graph,
        table,
        runner,
        ExecutionContext.from_cwd(ctx.cwd),
        run_ctx=ctx,
        error_action=config.error_action,
    )
    log_event(ctx, "info", "executor", "done", target=root, targets=len(plan.targets))
    return OK


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    ns = parser.parse_args(argv)
    fmt = "json" if ns.json else (ns.format or "text")
    ctx = RunContext.from_args(
        ns.run_id,
        ns.directory,
        fmt,
        verbose=ns.verbose,
        quiet=ns.quiet,
        log_json=ns.log_json,
    )
    try:
        if not ctx.cwd.is_dir():
            raise ConfigError(f"no such directory: {ctx.cwd}")
        log_event(ctx, "info", "cli", "start", cwd=str(ctx.cwd), fmt=ctx.output_format)
        return run(ctx, ns)
    except ScriptError as exc:
        print(render_error(as_json=ctx.as_json, message=str(exc), code=exc.code, kind=exc.kind), file=sys.stderr)
        return exc.code
    except Exception as exc:  # pragma: no cover
        print(
            render_error(as_json=ctx.as_json, message=f"internal error: {exc}", code=ERR_INTERNAL, kind="internal_error"),
            file=sys.stderr,
        )
        return ERR_INTERNAL


if __name__ == "__main__":
    raise SystemExit(main())
