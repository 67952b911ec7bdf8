from __future__ import annotations

import re
from pathlib import Path

from ..core.errors import ConfigError, MakefileParseError, OrphanCommandError
from .lines import is_indented, join_continuations, split_help, strip_comment, unquote
from .model import CommandLine, ExpansionMode, ParsedMakefile, TargetRule, Variable

DEFAULT_MAKEFILE = "Makefile"
VARIABLE_RE = re.compile(r"^(?P<name>[A-Za-z_][A-Za-z0-9_.-]*)\s*(?P<op>:=|=)\s*(?P<value>.*)$")


def split_words(text: str, delimiter: str = " ") -> list[str]:
    if delimiter == " ":
        return text.split()
    return [word.strip() for word in text.split(delimiter) if word.strip()]


class _RuleParser:
    def __init__(
        self,
        path: Path | None,
        delimiter: str,
        target_delimiter: str,
        force_comment_stripping: bool,
    ) -> None:
        if not target_delimiter:
            raise ConfigError("target delimiter must not be empty")
        self.parsed = ParsedMakefile(path=path, delimiter=delimiter)
        self.delimiter = delimiter
        self.target_delimiter = target_delimiter
        self.force_comment_stripping = force_comment_stripping
        self.phony_re = re.compile(rf"^\.PHONY\s*{re.escape(target_delimiter)}(?P<names>.*)$")
        self.current: TargetRule | None = None
        self.seen_rule = False

    @property
    def where(self) -> str | None:
        return str(self.parsed.path) if self.parsed.path is not None else None

    def feed(self, number: int, line: str) -> None:
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            return
        if is_indented(line):
            self._command(number, stripped)
            return
        phony = self.phony_re.match(stripped)
        if phony:
            self._commit()
            for name in split_words(strip_comment(phony.group("names")), self.delimiter):
                if name not in self.parsed.phony:
                    self.parsed.phony.append(name)
            return
        variable = VARIABLE_RE.match(stripped)
        if variable and self.target_delimiter not in variable.group("name"):
            if self.seen_rule:
                raise MakefileParseError(
                    f"variable declaration after the first rule: {stripped!r}", number, self.where
                )
            self.parsed.variables.append(
                Variable(
                    name=variable.group("name"),
                    raw_value=unquote(strip_comment(variable.group("value"))),
                    mode=ExpansionMode.from_operator(variable.group("op")),
                    line_number=number,
                )
            )
            return
        self._target(number, stripped)

    def finish(self) -> ParsedMakefile:
        self._commit()
        for name, rule in self.parsed.rules.items():
            rule.is_phony = rule.is_phony or name in self.parsed.phony
        return self.parsed

    def _target(self, number: int, text: str) -> None:
        body, help_text = split_help(text)
        body = strip_comment(body)
        name, sep, rest = body.partition(self.target_delimiter)
        if not sep:
            raise MakefileParseError(
                f"expected a target line containing {self.target_delimiter!r}: {text!r}", number, self.where
            )
        name = name.strip()
        if not name:
            raise MakefileParseError(f"target line without a target name: {text!r}", number, self.where)
        if len(name.split()) > 1:
            raise MakefileParseError(f"multiple targets per rule are not supported: {name!r}", number, self.where)
        self._commit()
        self.seen_rule = True
        self.current = TargetRule(
            name=name,
            prerequisites=split_words(rest, self.delimiter),
            help_text=help_text,
            line_number=number,
        )

    def _command(self, number: int, text: str) -> None:
        if self.current is None:
            raise OrphanCommandError(text, number, self.where)
        if self.force_comment_stripping:
            text = text.split("#", 1)[0].rstrip()
            if not text:
                return
        suppress = text.startswith("@")
        if suppress:
            text = text[1:].lstrip()
        self.current.commands.append(CommandLine(text=text, suppress_echo=suppress, line_number=number))

    def _commit(self) -> None:
        rule, self.current = self.current, None
        if rule is None:
            return
        existing = self.parsed.rules.get(rule.name)
        if existing is None:
            self.parsed.rules[rule.name] = rule
            return
        if existing.merge(rule):
            self.parsed.redefined.append(rule.name)


def parse_makefile(
    text: str,
    path: Path | None = None,
    delimiter: str = " ",
    target_delimiter: str = ":",
    force_comment_stripping: bool = False,
) -> ParsedMakefile:
    parser = _RuleParser(path, delimiter, target_delimiter, force_comment_stripping)
    for number, line in join_continuations(text.lstrip("\ufeff").splitlines()):
        parser.feed(number, line)
    return parser.finish()


def load_makefile(
    path: Path,
    delimiter: str = " ",
    target_delimiter: str = ":",
    force_comment_stripping: bool = False,
) -> ParsedMakefile:
    if not path.is_file():
        raise ConfigError(f"makefile not found: {path}")
    text = path.read_text(encoding="utf-8-sig")
    return parse_makefile(
        text,
        path=path,
        delimiter=delimiter,
        target_delimiter=target_delimiter,
        force_comment_stripping=force_comment_stripping,
    )
