from __future__ import annotations

from dataclasses import dataclass

from .exit_codes import ERR_COMMAND, ERR_CONFIG, ERR_CYCLE, ERR_EXPANSION, ERR_PARSE, ERR_UNKNOWN_TARGET


@dataclass
class ScriptError(Exception):
    message: str
    code: int
    kind: str = "generic_error"

    def __str__(self) -> str:
        return self.message


class ConfigError(ScriptError):
    def __init__(self, message: str) -> None:
        super().__init__(message, ERR_CONFIG, "config_error")


class MakefileParseError(ScriptError):
    """Malformed makefile line; raised before any command runs."""

    def __init__(self, message: str, line_number: int | None = None, path: str | None = None) -> None:
        self.line_number = line_number
        self.path = path
        super().__init__(_located(message, line_number, path), ERR_PARSE, "parse_error")


class OrphanCommandError(MakefileParseError):
    def __init__(self, text: str, line_number: int, path: str | None = None) -> None:
        super().__init__(f"command line before any target: {text.strip()!r}", line_number, path)
        self.kind = "orphan_command"


class CyclicDependencyError(ScriptError):
    def __init__(self, cycle: list[str]) -> None:
        self.cycle = list(cycle)
        super().__init__(f"circular dependency: {' -> '.join(self.cycle)}", ERR_CYCLE, "cyclic_dependency")


class UnknownTargetError(ScriptError):
    def __init__(self, target: str, needed_by: str | None = None) -> None:
        self.target = target
        self.needed_by = needed_by
        if not target:
            message = "no targets defined"
        elif needed_by:
            message = f"no rule to make target '{target}', needed by '{needed_by}'"
        else:
            message = f"no rule to make target '{target}'"
        super().__init__(message, ERR_UNKNOWN_TARGET, "unknown_target")


class ExpansionOverflowError(ScriptError):
    def __init__(self, variable: str, max_depth: int) -> None:
        self.variable = variable
        self.max_depth = max_depth
        super().__init__(
            f"variable expansion exceeded depth {max_depth} while expanding '{variable}' (self reference?)",
            ERR_EXPANSION,
            "expansion_overflow",
        )


@dataclass
class CommandFailure:
    target: str
    command: str
    code: int


class CommandExecutionError(ScriptError):
    def __init__(self, failures: list[CommandFailure]) -> None:
        self.failures = list(failures)
        first = self.failures[0]
        message = f"command failed in target '{first.target}' (exit {first.code}): {first.command}"
        if len(self.failures) > 1:
            message = f"{message}\n{len(self.failures) - 1} more command(s) failed"
        super().__init__(message, ERR_COMMAND, "command_failed")


def _located(message: str, line_number: int | None, path: str | None) -> str:
    where = path or "<makefile>"
    if line_number is None:
        return f"{where}: {message}"
    return f"{where}:{line_number}: {message}"


__all__ = [
    "CommandExecutionError",
    "CommandFailure",
    "ConfigError",
    "CyclicDependencyError",
    "ExpansionOverflowError",
    "MakefileParseError",
    "OrphanCommandError",
    "ScriptError",
    "UnknownTargetError",
]
