"""Data models for skill reconciliation."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

# Replication strategy used when propagating canonical entries to agent dirs
InstallMode = Literal["symlink", "copy"]

WILDCARD = "*"


@dataclass(frozen=True)
class Skill:
    """A directory with a valid SKILL.md marker file."""

    name: str
    description: str
    source_path: Path


@dataclass(frozen=True)
class SkillFilter:
    """Include/exclude filter applied to discovered skill names.

    An include set of None (wildcard) or an empty include set means no include
    filtering. Exclusions always apply. Matching is case-insensitive.
    """

    include: frozenset[str] | None
    exclude: frozenset[str]

    @classmethod
    def everything(cls) -> "SkillFilter":
        return cls(include=None, exclude=frozenset())

    def matches(self, name: str) -> bool:
        lowered = name.lower()
        if lowered in {e.lower() for e in self.exclude}:
            return False
        if not self.include:
            return True
        return lowered in {i.lower() for i in self.include}

    def apply(self, skills: list[Skill]) -> list[Skill]:
        """Return the skills passing the filter, preserving discovery order."""
        return [skill for skill in skills if self.matches(skill.name)]


@dataclass(frozen=True)
class SourceSpec:
    """One desired source from the manifest.

    agents is None for the wildcard target (every known agent).
    """

    identifier: str
    agents: tuple[str, ...] | None
    skill_filter: SkillFilter
    full_depth: bool


@dataclass(frozen=True)
class SourceRecord:
    """What the last successful run installed for one source."""

    skills: tuple[str, ...]
    agents: tuple[str, ...]
    commit_hash: str | None


@dataclass(frozen=True)
class FetchedSource:
    """A source resolved to a local directory.

    cleanup_dir is set when the directory is a temporary clone the caller
    must remove once processing completes.
    """

    path: Path
    commit_hash: str | None
    cleanup_dir: Path | None


@dataclass(frozen=True)
class UnchangedSource:
    """Remote head matches the cached commit; downstream work can be skipped."""

    commit_hash: str


# --- Per-source outcomes of the Fetch+Install phase ---


@dataclass(frozen=True)
class InstalledOutcome:
    record: SourceRecord


@dataclass(frozen=True)
class SkippedOutcome:
    """Cache hit; the prior record is carried forward unmodified."""

    record: SourceRecord


@dataclass(frozen=True)
class EmptyOutcome:
    """No skills remained after filtering; no record entry is written."""


@dataclass(frozen=True)
class FailedOutcome:
    """Processing failed. prior_record is carried forward when present."""

    error: str
    prior_record: SourceRecord | None


SourceOutcome = InstalledOutcome | SkippedOutcome | EmptyOutcome | FailedOutcome


@dataclass(frozen=True)
class ReconcileResult:
    """Aggregate result of one reconciliation run."""

    installed: int
    skipped: int
    removed: int
    failed: int
    state: dict[str, SourceRecord] = field(default_factory=dict)
    state_written: bool = True
    failed_sources: tuple[str, ...] = ()

    @property
    def success(self) -> bool:
        return self.failed == 0
