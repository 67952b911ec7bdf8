"""Physical line handling: continuation joining and comment splitting."""

from __future__ import annotations

import re
from typing import Iterable, Iterator

# `\` and the backtick are consumed; a trailing pipe stays part of the command.
DROP_MARKER_RE = re.compile(r"\s*[\\`]$")
KEEP_MARKER_RE = re.compile(r"\|$")
HELP_RE = re.compile(r"(?:^|\s)##(.*)$")


def _continuation(line: str) -> tuple[str, bool]:
    stripped = line.rstrip()
    dropped = DROP_MARKER_RE.search(stripped)
    if dropped:
        return stripped[: dropped.start()], True
    if KEEP_MARKER_RE.search(stripped):
        return stripped, True
    return line, False


def join_continuations(lines: Iterable[str]) -> Iterator[tuple[int, str]]:
    """Yield `(first_line_number, logical_line)` pairs.

    The indentation of the first physical line is kept so a continued command
    line is still classified as a command line.
    """
    pending: str | None = None
    start = 0
    for number, raw in enumerate(lines, start=1):
        line = raw.rstrip("\r\n")
        if pending is None:
            start = number
            text, more = _continuation(line)
        else:
            piece, more = _continuation(line.lstrip())
            text = f"{pending} {piece}".rstrip() if piece else pending
        if more:
            pending = text
            continue
        pending = None
        yield start, text
    if pending is not None:
        yield start, pending


def strip_comment(text: str) -> str:
    """Drop an end-of-line `#` comment that is not inside quotes."""
    quote: str | None = None
    for index, char in enumerate(text):
        if quote:
            if char == quote:
                quote = None
            continue
        if char in {"'", '"'}:
            quote = char
        elif char == "#":
            return text[:index].rstrip()
    return text.rstrip()


def split_help(text: str) -> tuple[str, str]:
    match = HELP_RE.search(text)
    if not match:
        return text, ""
    return text[: match.start()].rstrip(), match.group(1).strip()


def is_indented(text: str) -> bool:
    return bool(text) and text[0] in {" ", "\t"}


def unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        return value[1:-1]
    return value
