"""Pluggable command runners.

A runner receives a fully expanded command line and the execution context and
returns a `CommandResult`. Runners never raise for a failing command; the
executor decides what a non-zero code means.
"""

from __future__ import annotations

import io
import re
import shlex
import sys
import time
from contextlib import redirect_stderr, redirect_stdout
from typing import Any, Protocol

from ..core.process import CommandResult, run_command, stream_command
from .context import ExecutionContext

SHELL_META_RE = re.compile(r"[;&|<>$`()*?\[\]{}\n]")
EXPORT_RE = re.compile(r"^(?P<name>[A-Za-z_][A-Za-z0-9_]*)=(?P<value>.*)$")
RUNNER_NAMES = ("sh", "python")


class CommandRunner(Protocol):
    def run(self, command: str, ctx: ExecutionContext) -> CommandResult: ...


class ShellRunner:
    """Run each line with `<shell> -c`, keeping `cd` and `export` in the context.

    With `stream=True` output reaches the process stdout/stderr while the
    command runs and the result is marked as already forwarded.
    """

    def __init__(self, shell: str = "/bin/sh", stream: bool = False) -> None:
        self.shell = shell
        self.stream = stream

    def run(self, command: str, ctx: ExecutionContext) -> CommandResult:
        builtin = self._builtin(command, ctx)
        if builtin is not None:
            return builtin
        argv = [self.shell, "-c", command]
        if self.stream:
            return stream_command(argv, ctx.cwd, ctx.environ(), sys.stdout, sys.stderr)
        return run_command(argv, ctx.cwd, ctx.environ())

    def _builtin(self, command: str, ctx: ExecutionContext) -> CommandResult | None:
        words = _simple_words(command)
        if not words:
            return None
        if words[0] == "cd" and len(words) <= 2:
            try:
                ctx.chdir(words[1] if len(words) == 2 else None)
            except FileNotFoundError as exc:
                return CommandResult(code=1, stdout="", stderr=f"cd: {exc}\n", duration_ms=0)
            return CommandResult(code=0, stdout="", stderr="", duration_ms=0)
        if words[0] == "export" and len(words) > 1:
            found = [EXPORT_RE.match(word) for word in words[1:]]
            pairs = [match for match in found if match is not None]
            if len(pairs) != len(found):
                return None
            for match in pairs:
                ctx.export(match.group("name"), match.group("value"))
            return CommandResult(code=0, stdout="", stderr="", duration_ms=0)
        return None


class PythonRunner:
    """Execute each line as Python source in one namespace shared by the whole run."""

    def __init__(self) -> None:
        self.namespace: dict[str, Any] = {"__name__": "__pwmake__"}

    def run(self, command: str, ctx: ExecutionContext) -> CommandResult:
        self.namespace["ctx"] = ctx
        out = io.StringIO()
        err = io.StringIO()
        code = 0
        started = time.monotonic()
        try:
            code_obj = compile(command, "<pwmake>", "exec")
            with redirect_stdout(out), redirect_stderr(err):
                exec(code_obj, self.namespace)
        except SystemExit as exc:
            code = exc.code if isinstance(exc.code, int) else (0 if exc.code is None else 1)
        except Exception as exc:  # the failure is reported through the result code
            code = 1
            err.write(f"{type(exc).__name__}: {exc}\n")
        return CommandResult(
            code=code,
            stdout=out.getvalue(),
            stderr=err.getvalue(),
            duration_ms=int((time.monotonic() - started) * 1000),
        )


def _simple_words(command: str) -> list[str]:
    if SHELL_META_RE.search(command):
        return []
    try:
        return shlex.split(command)
    except ValueError:
        return []


def make_runner(name: str, shell_path: str | None = None, stream: bool = False) -> CommandRunner:
    if name == "python":
        return PythonRunner()
    if name == "sh":
        return ShellRunner(shell_path or "/bin/sh", stream=stream)
    raise ValueError(f"unknown runner: {name}")
