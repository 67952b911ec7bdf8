"""Data model shared by the parser, graph builder, scheduler and executor."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class ExpansionMode(str, Enum):
    IMMEDIATE = "immediate"
    DEFERRED = "deferred"

    @classmethod
    def from_operator(cls, operator: str) -> "ExpansionMode":
        return cls.IMMEDIATE if operator == ":=" else cls.DEFERRED


@dataclass(frozen=True)
class Variable:
    name: str
    raw_value: str
    mode: ExpansionMode
    line_number: int = 0


@dataclass(frozen=True)
class CommandLine:
    text: str
    suppress_echo: bool = False
    line_number: int = 0

    def render(self) -> str:
        return f"@{self.text}" if self.suppress_echo else self.text


@dataclass
class TargetRule:
    name: str
    prerequisites: list[str] = field(default_factory=list)
    commands: list[CommandLine] = field(default_factory=list)
    help_text: str = ""
    line_number: int = 0
    is_phony: bool = False

    def merge(self, other: "TargetRule") -> bool:
        """Fold a later definition of the same target into this one.

        Prerequisites are appended without duplicates. A later recipe replaces
        the current one; returns True when that happened over a non-empty recipe.
        """
        for prereq in other.prerequisites:
            if prereq not in self.prerequisites:
                self.prerequisites.append(prereq)
        replaced = False
        if other.commands:
            replaced = bool(self.commands)
            self.commands = list(other.commands)
        if other.help_text:
            self.help_text = other.help_text
        self.is_phony = self.is_phony or other.is_phony
        return replaced


@dataclass
class ParsedMakefile:
    path: Path | None
    variables: list[Variable] = field(default_factory=list)
    rules: dict[str, TargetRule] = field(default_factory=dict)
    phony: list[str] = field(default_factory=list)
    redefined: list[str] = field(default_factory=list)
    delimiter: str = " "

    @property
    def first_target(self) -> str | None:
        # dot-prefixed special targets are never the default goal
        return next((name for name in self.rules if not name.startswith(".")), None)

    @property
    def display_path(self) -> str:
        return str(self.path) if self.path is not None else "<makefile>"


@dataclass(frozen=True)
class PlanStep:
    target: str
    commands: tuple[CommandLine, ...]


@dataclass(frozen=True)
class ExecutionPlan:
    root: str
    steps: tuple[PlanStep, ...]

    @property
    def targets(self) -> list[str]:
        return [step.target for step in self.steps]

    def command_lines(self) -> list[tuple[str, CommandLine]]:
        return [(step.target, command) for step in self.steps for command in step.commands]
