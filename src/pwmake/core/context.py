from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from .clock import utc_stamp
from .env import getenv, getenv_flag

OutputFormat = Literal["text", "json"]


@dataclass(frozen=True)
class RunContext:
    run_id: str
    cwd: Path
    output_format: OutputFormat
    verbose: bool
    quiet: bool
    log_json: bool

    @property
    def as_json(self) -> bool:
        return self.output_format == "json"

    @classmethod
    def from_args(
        cls,
        run_id: str | None,
        cwd: str | Path | None = None,
        output_format: OutputFormat = "text",
        verbose: bool = False,
        quiet: bool = False,
        log_json: bool | None = None,
    ) -> "RunContext":
        resolved_cwd = Path(cwd).resolve() if cwd else Path.cwd().resolve()
        resolved_run_id = run_id or getenv("RUN_ID") or f"pwmake-{utc_stamp()}"
        env_log_json = getenv_flag("PWMAKE_LOG_JSON")
        resolved_log_json = log_json if log_json is not None else bool(env_log_json)
        return cls(
            run_id=resolved_run_id,
            cwd=resolved_cwd,
            output_format=output_format,
            verbose=verbose,
            quiet=quiet,
            log_json=resolved_log_json,
        )
