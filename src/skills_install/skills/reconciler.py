"""Reconcile declared skill sources against installed skills.

One run moves strictly through these phases:

1. Load: read the previous state record (unreadable state counts as empty)
2. Prune: remove skills of sources that are no longer declared
3. Fetch+Install: process every declared source concurrently
4. Persist: overwrite the state record with the rebuilt mapping
5. PostUpdate: optionally run the external update command

Per-source failures are isolated: they never abort sibling sources, and the
previous record for a failed source is carried forward unchanged.
"""

import logging
import shutil
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path

from skills_install.core.exceptions import StateError
from skills_install.core.manifest import Manifest
from skills_install.gateway.update_hook.abc import UpdateHook
from skills_install.skills.discovery import discover_skills
from skills_install.skills.fetcher import SourceFetcher
from skills_install.skills.models import (
    EmptyOutcome,
    FailedOutcome,
    InstalledOutcome,
    InstallMode,
    ReconcileResult,
    SkippedOutcome,
    SourceOutcome,
    SourceRecord,
    SourceSpec,
    UnchangedSource,
)
from skills_install.skills.reporter import EventKind, ReconcileReporter, ReportEvent
from skills_install.skills.state import load_state, save_state
from skills_install.skills.sync import SkillSync, sanitize_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceTaskResult:
    """Message returned by one per-source task to the aggregating thread."""

    identifier: str
    outcome: SourceOutcome
    installed_count: int
    events: list[ReportEvent] = field(default_factory=list)


class Reconciler:
    """Drives one reconciliation pass over a manifest."""

    def __init__(
        self,
        *,
        fetcher: SourceFetcher,
        sync: SkillSync,
        reporter: ReconcileReporter,
        max_workers: int | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._sync = sync
        self._reporter = reporter
        self._max_workers = max_workers

    def run(
        self, manifest: Manifest, *, force: bool, update_hook: UpdateHook | None
    ) -> ReconcileResult:
        """Execute all phases and return the aggregate result.

        Args:
            manifest: Desired state
            force: Bypass the remote-commit cache and re-clone every remote source
            update_hook: External update command, run only if manifest.auto_update
        """
        old_state = self._load(manifest.state_file)
        removed = self._prune(old_state, manifest.sources)

        self._reporter.phase("Installing declared skills...")
        results = self._fetch_and_install(manifest, old_state, force=force)

        new_state: dict[str, SourceRecord] = {}
        installed = skipped = 0
        failed_sources: list[str] = []
        for source in manifest.sources:
            result = results[source.identifier]
            outcome = result.outcome
            if isinstance(outcome, InstalledOutcome):
                new_state[source.identifier] = outcome.record
                installed += result.installed_count
            elif isinstance(outcome, SkippedOutcome):
                new_state[source.identifier] = outcome.record
                skipped += 1
            elif isinstance(outcome, FailedOutcome):
                failed_sources.append(source.identifier)
                if outcome.prior_record is not None:
                    new_state[source.identifier] = outcome.prior_record

        state_written = self._persist(manifest.state_file, new_state)

        if manifest.auto_update and update_hook is not None:
            self._post_update(update_hook)

        result = ReconcileResult(
            installed=installed,
            skipped=skipped,
            removed=removed,
            failed=len(failed_sources),
            state=new_state,
            state_written=state_written,
            failed_sources=tuple(failed_sources),
        )
        self._reporter.summary(result)
        return result

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def _load(self, state_file: Path) -> dict[str, SourceRecord]:
        try:
            return load_state(state_file)
        except StateError as e:
            self._warn(f"ignoring unreadable state file {state_file}: {e}")
            return {}

    def _prune(self, old_state: dict[str, SourceRecord], sources: tuple[SourceSpec, ...]) -> int:
        desired = {source.identifier for source in sources}
        stale = [identifier for identifier in old_state if identifier not in desired]
        if not stale:
            return 0

        # Entries still recorded for a declared source stay on disk
        kept_names = {
            sanitize_name(name)
            for identifier, record in old_state.items()
            if identifier in desired
            for name in record.skills
        }

        self._reporter.phase("Removing skills from dropped sources...")
        removed = 0
        for identifier in stale:
            for name in old_state[identifier].skills:
                if sanitize_name(name) in kept_names:
                    logger.debug("Keeping %s: still provided by a declared source", name)
                    continue
                self._reporter.event(ReportEvent(kind="removed", source=identifier, detail=name))
                for error in self._sync.remove(name):
                    self._warn(error, source=identifier)
                removed += 1
        return removed

    def _fetch_and_install(
        self, manifest: Manifest, old_state: dict[str, SourceRecord], *, force: bool
    ) -> dict[str, SourceTaskResult]:
        results: dict[str, SourceTaskResult] = {}
        if not manifest.sources:
            return results

        max_workers = self._max_workers or len(manifest.sources)
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = [
                executor.submit(
                    self._process_source,
                    source,
                    old_state.get(source.identifier),
                    manifest.mode,
                    force,
                )
                for source in manifest.sources
            ]
            for future in as_completed(futures):
                result = future.result()
                for event in result.events:
                    self._reporter.event(event)
                results[result.identifier] = result
        return results

    def _persist(self, state_file: Path, state: dict[str, SourceRecord]) -> bool:
        try:
            save_state(state_file, state)
        except OSError as e:
            self._warn(f"failed to write state file {state_file}: {e}")
            return False
        return True

    def _post_update(self, update_hook: UpdateHook) -> None:
        self._reporter.phase("Updating all skills...")
        try:
            update_hook.run()
        except RuntimeError as e:
            self._warn(f"skills update failed: {e}")

    # ------------------------------------------------------------------
    # Per-source task (runs on a worker thread)
    # ------------------------------------------------------------------

    def _process_source(
        self,
        source: SourceSpec,
        prior: SourceRecord | None,
        mode: InstallMode,
        force: bool,
    ) -> SourceTaskResult:
        events: list[ReportEvent] = [
            ReportEvent(kind="source", source=source.identifier, detail=source.identifier)
        ]
        try:
            outcome, installed_count = self._install_source(source, prior, mode, force, events)
        except Exception as e:
            logger.debug("Source %s failed", source.identifier, exc_info=True)
            events.append(ReportEvent(kind="failed", source=source.identifier, detail=str(e)))
            outcome, installed_count = FailedOutcome(error=str(e), prior_record=prior), 0
        return SourceTaskResult(
            identifier=source.identifier,
            outcome=outcome,
            installed_count=installed_count,
            events=events,
        )

    def _install_source(
        self,
        source: SourceSpec,
        prior: SourceRecord | None,
        mode: InstallMode,
        force: bool,
        events: list[ReportEvent],
    ) -> tuple[SourceOutcome, int]:
        identifier = source.identifier

        def emit(kind: EventKind, detail: str) -> None:
            events.append(ReportEvent(kind=kind, source=identifier, detail=detail))

        fetched = self._fetcher.fetch(
            identifier,
            cached_commit=prior.commit_hash if prior is not None else None,
            force=force,
        )

        if isinstance(fetched, UnchangedSource):
            if prior is None:
                raise RuntimeError(f"{identifier}: unchanged signal without a cached record")
            emit("skipped", fetched.commit_hash)
            return SkippedOutcome(record=prior), 0

        try:
            discovered = discover_skills(fetched.path, full_depth=source.full_depth)
            selected = source.skill_filter.apply(discovered)
            if not selected:
                emit("empty", "no skills found")
                return EmptyOutcome(), 0

            installed_names: list[str] = []
            agents: list[str] = []
            warnings_seen: set[str] = set()
            for skill in selected:
                report = self._sync.install(skill, source.agents, mode)
                installed_names.append(skill.name)
                agents = report.agents
                emit("installed", skill.name)
                for warning in report.warnings:
                    if warning not in warnings_seen:
                        warnings_seen.add(warning)
                        emit("warning", warning)
        finally:
            if fetched.cleanup_dir is not None:
                shutil.rmtree(fetched.cleanup_dir, ignore_errors=True)

        record = SourceRecord(
            skills=tuple(installed_names),
            agents=tuple(agents),
            commit_hash=fetched.commit_hash,
        )
        return InstalledOutcome(record=record), len(installed_names)

    def _warn(self, message: str, *, source: str | None = None) -> None:
        logger.debug("warning: %s", message)
        self._reporter.event(ReportEvent(kind="warning", source=source, detail=message))
