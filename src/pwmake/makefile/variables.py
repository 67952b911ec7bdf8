"""Variable table with immediate (`:=`) and deferred (`=`) expansion.

Every variable is referenced as `${name}`. Bare `$name` is reserved for the
built-ins (`$param`, `$params`, `$params[N]`, `$@`, `$<`, `$^`); any other `$`
sequence is left untouched so shell syntax such as `$HOME` or `$(date)` passes
through to the command runner.
"""

from __future__ import annotations

import re
from typing import Callable, Mapping, Sequence

from ..core.errors import ExpansionOverflowError
from .model import ExpansionMode, Variable

DEFAULT_MAX_DEPTH = 100

BRACE_REF_RE = re.compile(r"\$\{([^{}\s]+)\}")
BARE_REF_RE = re.compile(r"\$(params\[\d+\]|params|param|[@<^])(?![A-Za-z0-9_\[])")
PARAMS_INDEX_RE = re.compile(r"^params\[(\d+)\]$")
REFERENCE_RE = re.compile(f"{BRACE_REF_RE.pattern}|{BARE_REF_RE.pattern}")

AUTOMATIC_NAMES = ("@", "<", "^")


class VariableTable:
    def __init__(
        self,
        overrides: Mapping[str, str] | None = None,
        param: str | None = None,
        params: Sequence[str] | None = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
        on_unresolved: Callable[[str], None] | None = None,
    ) -> None:
        self.overrides: dict[str, str] = dict(overrides or {})
        self.param = param
        self.params: list[str] = list(params or [])
        self.max_depth = max_depth
        self._declared: dict[str, Variable] = {}
        self._values: dict[str, str] = {}
        self.unresolved: list[str] = []
        self.on_unresolved = on_unresolved

    def declare(self, name: str, raw_value: str, mode: ExpansionMode = ExpansionMode.DEFERRED, line_number: int = 0) -> None:
        variable = Variable(name=name, raw_value=raw_value, mode=mode, line_number=line_number)
        if mode is ExpansionMode.IMMEDIATE:
            self._values[name] = self.expand(raw_value)
        else:
            self._values.pop(name, None)
        self._declared[name] = variable

    def declare_all(self, variables: Sequence[Variable]) -> None:
        for variable in variables:
            self.declare(variable.name, variable.raw_value, variable.mode, variable.line_number)

    def expand(self, text: str, automatic: Mapping[str, str] | None = None) -> str:
        return self._expand(text, automatic or {}, 0, None)

    def value(self, name: str, automatic: Mapping[str, str] | None = None) -> str:
        return self._resolve(name, automatic or {}, 0)

    def snapshot(self) -> dict[str, str]:
        """Effective value of every declared and overridden variable, in declaration order."""
        values: dict[str, str] = {}
        for name in self._declared:
            values[name] = self.value(name)
        for name in self.overrides:
            values.setdefault(name, self.overrides[name])
        return values

    def _lookup(self, name: str, automatic: Mapping[str, str]) -> tuple[str, bool] | None:
        """Return `(text, needs_expansion)` following override precedence, or None."""
        if name in self.overrides:
            return self.overrides[name], False
        builtin = self._builtin(name)
        if builtin is not None:
            return builtin, False
        if name in automatic:
            return automatic[name], False
        variable = self._declared.get(name)
        if variable is None:
            return None
        if variable.mode is ExpansionMode.IMMEDIATE:
            return self._values.get(name, ""), False
        return variable.raw_value, True

    def _builtin(self, name: str) -> str | None:
        if name == "param":
            return self.param if self.param is not None else ""
        if name == "params":
            return " ".join(self.params)
        match = PARAMS_INDEX_RE.match(name)
        if match:
            index = int(match.group(1))
            return self.params[index] if index < len(self.params) else ""
        return None

    def _resolve(self, name: str, automatic: Mapping[str, str], depth: int) -> str:
        found = self._lookup(name, automatic)
        if found is None:
            # automatic variables outside of a recipe are simply empty
            if name not in self.unresolved and name not in AUTOMATIC_NAMES:
                self.unresolved.append(name)
                if self.on_unresolved is not None:
                    self.on_unresolved(name)
            return ""
        text, needs_expansion = found
        if not needs_expansion:
            return text
        return self._expand(text, automatic, depth + 1, name)

    def _expand(self, text: str, automatic: Mapping[str, str], depth: int, owner: str | None) -> str:
        if "$" not in text:
            return text
        if depth > self.max_depth:
            raise ExpansionOverflowError(owner or text, self.max_depth)

        def _replace(match: re.Match[str]) -> str:
            name = match.group(1) or match.group(2)
            return self._resolve(name, automatic, depth)

        return REFERENCE_RE.sub(_replace, text)


def automatic_variables(target: str, prerequisites: Sequence[str]) -> dict[str, str]:
    return {
        "@": target,
        "<": prerequisites[0] if prerequisites else "",
        "^": " ".join(prerequisites),
    }


def parse_assignments(items: Sequence[str]) -> dict[str, str]:
    """Parse `name=value` items; each item may hold several comma separated pairs."""
    pairs: dict[str, str] = {}
    for item in items:
        for chunk in _split_pairs(item):
            if "=" not in chunk:
                raise ValueError(f"expected name=value, got {chunk!r}")
            name, value = chunk.split("=", 1)
            name = name.strip()
            if not name:
                raise ValueError(f"empty variable name in {chunk!r}")
            pairs[name] = value.strip()
    return pairs


def _split_pairs(item: str) -> list[str]:
    chunks: list[str] = []
    for piece in item.split(","):
        if chunks and "=" not in piece:
            chunks[-1] = f"{chunks[-1]},{piece}"
        elif piece.strip():
            chunks.append(piece)
    return chunks
