"""pwmake core package."""
from .clock import utc_now_iso
from .context import RunContext
from .errors import ScriptError
from .logging import log_event
from .process import CommandResult, run_command
from .serialize import dumps_json

__all__ = [
    "CommandResult",
    "RunContext",
    "ScriptError",
    "dumps_json",
    "log_event",
    "run_command",
    "utc_now_iso",
]
