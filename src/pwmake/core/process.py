from __future__ import annotations

import subprocess
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import IO, TextIO, cast


@dataclass(frozen=True)
class CommandResult:
    code: int
    stdout: str
    stderr: str
    duration_ms: int
    streamed: bool = False

    @property
    def ok(self) -> bool:
        return self.code == 0


def run_command(cmd: list[str], cwd: Path, env: dict[str, str] | None = None) -> CommandResult:
    started = time.monotonic()
    proc = subprocess.run(cmd, cwd=cwd, env=env, text=True, capture_output=True, check=False)
    duration_ms = int((time.monotonic() - started) * 1000)
    return CommandResult(
        code=proc.returncode,
        stdout=proc.stdout or "",
        stderr=proc.stderr or "",
        duration_ms=duration_ms,
    )


def _pump(pipe: IO[str], sink: TextIO, chunks: list[str]) -> None:
    with pipe:
        for line in iter(pipe.readline, ""):
            chunks.append(line)
            sink.write(line)
            sink.flush()


def stream_command(
    cmd: list[str],
    cwd: Path,
    env: dict[str, str] | None,
    out: TextIO,
    err: TextIO,
) -> CommandResult:
    """Like `run_command`, but copies output to `out`/`err` line by line while the command runs."""
    started = time.monotonic()
    proc = subprocess.Popen(
        cmd,
        cwd=cwd,
        env=env,
        text=True,
        bufsize=1,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
    )
    stdout_chunks: list[str] = []
    stderr_chunks: list[str] = []
    pumps = [
        threading.Thread(target=_pump, args=(cast(IO[str], proc.stdout), out, stdout_chunks), daemon=True),
        threading.Thread(target=_pump, args=(cast(IO[str], proc.stderr), err, stderr_chunks), daemon=True),
    ]
    for pump in pumps:
        pump.start()
    code = proc.wait()
    for pump in pumps:
        pump.join()
    return CommandResult(
        code=code,
        stdout="".join(stdout_chunks),
        stderr="".join(stderr_chunks),
        duration_ms=int((time.monotonic() - started) * 1000),
        streamed=True,
    )
