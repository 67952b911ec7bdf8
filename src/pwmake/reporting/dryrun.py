"""Read-only view of everything a run would do, without running it."""

from __future__ import annotations

from dataclasses import dataclass

from ..execution.executor import ExpandedCommand
from ..makefile.model import ParsedMakefile


@dataclass(frozen=True)
class DryRunReport:
    file: str
    target: str
    overrides: dict[str, str]
    variables: dict[str, str]
    phony: list[str]
    parsed: ParsedMakefile
    targets: list[str]
    commands: list[ExpandedCommand]


def _section(title: str, lines: list[str]) -> list[str]:
    return [f"######## {title} ##########", *(lines or ["(none)"]), ""]


def _rule_lines(parsed: ParsedMakefile) -> list[str]:
    lines: list[str] = []
    for rule in parsed.rules.values():
        head = f"{rule.name}: {' '.join(rule.prerequisites)}".rstrip()
        if rule.help_text:
            head = f"{head} ## {rule.help_text}"
        lines.append(head)
        lines.extend(f"    {command.render()}" for command in rule.commands)
    return lines


def render_dry_run(report: DryRunReport) -> str:
    lines: list[str] = [f"# file: {report.file}", f"# target: {report.target}", ""]
    lines += _section("overrides", [f"{k}={v}" for k, v in report.overrides.items()])
    lines += _section("variables", [f"{k}={v}" for k, v in report.variables.items()])
    lines += _section("phonies", list(report.phony))
    lines += _section("rules", _rule_lines(report.parsed))
    lines += _section("topological sorted targets", list(report.targets))
    lines += _section(
        "topological sorted commands",
        [f"@{c.text}" if c.suppress_echo else c.text for c in report.commands],
    )
    return "\n".join(lines).rstrip("\n")


def dry_run_payload(report: DryRunReport) -> dict[str, object]:
    return {
        "schema_name": "pwmake.dryrun.v1",
        "schema_version": 1,
        "tool": "pwmake",
        "status": "ok",
        "file": report.file,
        "target": report.target,
        "overrides": dict(report.overrides),
        "variables": dict(report.variables),
        "phony": list(report.phony),
        "rules": [
            {
                "name": rule.name,
                "prerequisites": list(rule.prerequisites),
                "commands": [command.render() for command in rule.commands],
                "help": rule.help_text,
                "line": rule.line_number,
            }
            for rule in report.parsed.rules.values()
        ],
        "targets": list(report.targets),
        "commands": [
            {"target": c.target, "command": c.text, "suppress_echo": c.suppress_echo} for c in report.commands
        ],
    }
