from __future__ import annotations

import os
import subprocess
import sys
import textwrap
from pathlib import Path

from pwmake.core.process import CommandResult
from pwmake.execution.context import ExecutionContext

ROOT = Path(__file__).resolve().parents[1]

SCENARIO_MAKEFILE = """\
file := a
all: ${file}.txt
    echo built ${file}
a.txt:
    echo making a.txt
"""

PHONY_MAKEFILE = """\
.PHONY: clean
all: build ## build everything
    echo all
build:
    echo build
clean: ## remove artifacts
    echo cleaning
_internal:
    echo hidden
"""


def dedent(text: str) -> str:
    return textwrap.dedent(text).lstrip("\n")


def write_makefile(directory: Path, text: str, name: str = "Makefile") -> Path:
    path = directory / name
    path.write_text(dedent(text), encoding="utf-8")
    return path


class RecordingRunner:
    """Fake runner: records commands and fails the ones listed in `fail_on`."""

    def __init__(self, fail_on: set[str] | None = None, outputs: dict[str, str] | None = None) -> None:
        self.fail_on = set(fail_on or ())
        self.outputs = dict(outputs or {})
        self.commands: list[str] = []
        self.cwds: list[Path] = []

    def run(self, command: str, ctx: ExecutionContext) -> CommandResult:
        self.commands.append(command)
        self.cwds.append(ctx.cwd)
        if command in self.fail_on:
            return CommandResult(code=1, stdout="", stderr=f"boom: {command}\n", duration_ms=0)
        return CommandResult(code=0, stdout=self.outputs.get(command, ""), stderr="", duration_ms=0)


def run_pwmake(*args: str, cwd: Path) -> subprocess.CompletedProcess[str]:
    env = os.environ.copy()
    env["PYTHONPATH"] = os.pathsep.join([str(ROOT / "src"), env.get("PYTHONPATH", "")]).rstrip(os.pathsep)
    env.setdefault("RUN_ID", "pytest-run")
    return subprocess.run(
        [sys.executable, "-m", "pwmake", *args],
        cwd=cwd,
        env=env,
        text=True,
        capture_output=True,
        check=False,
    )
