"""User-facing output for the skills-install CLI."""

import click

from skills_install.skills.models import ReconcileResult
from skills_install.skills.reporter import ReconcileReporter, ReportEvent


def user_output(message: str = "") -> None:
    """Write a user-facing line to stderr."""
    click.echo(message, err=True)


def format_summary(result: ReconcileResult) -> str:
    return (
        f"Skills: {result.installed} installed, {result.skipped} skipped, "
        f"{result.removed} removed, {result.failed} failed"
    )


class ConsoleReporter(ReconcileReporter):
    """Prints reconciliation progress.

    Verbose mode prints one line per action. Otherwise only failures and the
    final summary line are printed.
    """

    def __init__(self, *, verbose: bool) -> None:
        self._verbose = verbose

    def phase(self, title: str) -> None:
        if self._verbose:
            user_output()
            user_output(title)

    def event(self, event: ReportEvent) -> None:
        if event.kind == "failed":
            user_output(click.style("  [error] ", fg="red") + f"{event.source}: {event.detail}")
            return
        if not self._verbose:
            return

        if event.kind == "source":
            user_output(f"  -> {event.detail}")
        elif event.kind == "installed":
            user_output(click.style("     + ", fg="green") + event.detail)
        elif event.kind == "removed":
            user_output(f"  <- removing {event.detail} (from {event.source})")
        elif event.kind == "skipped":
            user_output(click.style(f"     = unchanged ({event.detail[:12]})", dim=True))
        elif event.kind in ("warning", "empty"):
            indent = "     " if event.source is not None else ""
            user_output(indent + click.style("[warn] ", fg="yellow") + event.detail)

    def summary(self, result: ReconcileResult) -> None:
        if self._verbose:
            user_output()
        user_output(format_summary(result))
