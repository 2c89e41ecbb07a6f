"""Reporting interface for reconciliation progress.

The reconciler never prints. Each per-source task buffers ReportEvents and
the aggregating thread replays them into a ReconcileReporter, so lines from
concurrent sources are never interleaved.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Literal

from skills_install.skills.models import ReconcileResult

EventKind = Literal[
    "source",
    "installed",
    "removed",
    "skipped",
    "empty",
    "failed",
    "warning",
]


@dataclass(frozen=True)
class ReportEvent:
    """One discrete reconciliation action.

    source is the identifier of the source the event belongs to, or None for
    run-level events (state file, update hook).
    """

    kind: EventKind
    source: str | None
    detail: str


class ReconcileReporter(ABC):
    """Receives reconciliation events in a single thread."""

    @abstractmethod
    def phase(self, title: str) -> None:
        """A new reconciliation phase has started."""
        ...

    @abstractmethod
    def event(self, event: ReportEvent) -> None:
        ...

    @abstractmethod
    def summary(self, result: ReconcileResult) -> None:
        """The run has finished."""
        ...
