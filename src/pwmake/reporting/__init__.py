"""Help, dry-run and graph reporters."""
from .dryrun import DryRunReport, dry_run_payload, render_dry_run
from .graph import graph_lines, graph_payload
from .help import HelpRow, help_payload, help_rows, render_help

__all__ = [
    "DryRunReport",
    "HelpRow",
    "dry_run_payload",
    "graph_lines",
    "graph_payload",
    "help_payload",
    "help_rows",
    "render_dry_run",
    "render_help",
]
