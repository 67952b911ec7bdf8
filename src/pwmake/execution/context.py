from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from ..core.env import environ_copy


@dataclass
class ExecutionContext:
    """Working directory and environment overlay owned by a single run.

    Runners read and update this object instead of the process state, so a
    `cd` in one command line is seen by the following ones.
    """

    cwd: Path
    env: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_cwd(cls, cwd: Path, env: dict[str, str] | None = None) -> "ExecutionContext":
        return cls(cwd=cwd.resolve(), env=dict(env or {}))

    def environ(self) -> dict[str, str]:
        merged = environ_copy()
        merged.update(self.env)
        merged["PWD"] = str(self.cwd)
        return merged

    def chdir(self, target: str | None) -> Path:
        raw = target or self.env.get("HOME") or os.path.expanduser("~")
        path = (self.cwd / os.path.expanduser(raw)).resolve()
        if not path.is_dir():
            raise FileNotFoundError(f"no such directory: {raw}")
        self.cwd = path
        return path

    def export(self, name: str, value: str) -> None:
        self.env[name] = value
