"""Tests for the reconciliation phases using fake gateways."""

import os
from pathlib import Path

import pytest

from skills_install.core.agents import build_agent_dirs, default_canonical_dir
from skills_install.core.manifest import Manifest
from skills_install.gateway.git.fake import FakeGit
from skills_install.gateway.update_hook.fake import FakeUpdateHook
from skills_install.skills.fetcher import SourceFetcher
from skills_install.skills.models import ReconcileResult, Skill, SourceRecord, SourceSpec
from skills_install.skills import reconciler as reconciler_module
from skills_install.skills.reconciler import Reconciler
from skills_install.skills.state import load_state, save_state
from skills_install.skills.sync import SkillSync
from tests.fakes.reporter import FakeReporter
from tests.test_utils.skill_builders import make_source, write_skill

ALPHA_URL = "https://github.com/owner/alpha.git"
BETA_URL = "https://github.com/owner/beta.git"
BROKEN_URL = "https://github.com/owner/broken.git"
GAMMA_URL = "https://github.com/owner/gamma.git"


def _remote(tmp_path: Path, repo: str, *skill_names: str) -> Path:
    root = tmp_path / "remotes" / repo
    root.mkdir(parents=True, exist_ok=True)
    for name in skill_names:
        write_skill(root / "skills" / name, name)
    return root


def _reconciler(
    tmp_path: Path, git: FakeGit, reporter: FakeReporter, *, max_workers: int | None = None
) -> Reconciler:
    home = tmp_path / "home"
    temp_root = tmp_path / "tmp"
    temp_root.mkdir(exist_ok=True)
    return Reconciler(
        fetcher=SourceFetcher(git=git, cwd=tmp_path, home=home, temp_root=temp_root),
        sync=SkillSync(
            canonical_dir=default_canonical_dir(home), agent_dirs=build_agent_dirs(home, {})
        ),
        reporter=reporter,
        max_workers=max_workers,
    )


def _manifest(
    tmp_path: Path,
    *sources: SourceSpec,
    auto_update: bool = False,
    state_file: Path | None = None,
) -> Manifest:
    return Manifest(
        mode="symlink",
        auto_update=auto_update,
        state_file=state_file or tmp_path / "state" / "managed.json",
        skills_bin=None,
        canonical_dir=None,
        sources=sources,
    )


def _run(
    tmp_path: Path,
    git: FakeGit,
    manifest: Manifest,
    *,
    force: bool = False,
    update_hook: FakeUpdateHook | None = None,
    max_workers: int | None = None,
) -> tuple[ReconcileResult, FakeReporter]:
    reporter = FakeReporter()
    result = _reconciler(tmp_path, git, reporter, max_workers=max_workers).run(
        manifest, force=force, update_hook=update_hook
    )
    return result, reporter


@pytest.fixture
def git(tmp_path: Path) -> FakeGit:
    return FakeGit(
        remote_heads={ALPHA_URL: "aaa111", BETA_URL: "bbb222", GAMMA_URL: "ccc333"},
        remote_trees={
            ALPHA_URL: _remote(tmp_path, "alpha", "one", "two"),
            BETA_URL: _remote(tmp_path, "beta", "three"),
            GAMMA_URL: _remote(tmp_path, "gamma", "four"),
        },
        clone_raises={BROKEN_URL: RuntimeError("Failed to clone: authentication required")},
    )


class TestInstall:
    def test_first_run_installs_and_records(self, tmp_path: Path, git: FakeGit) -> None:
        manifest = _manifest(tmp_path, make_source("owner/alpha"))

        result, reporter = _run(tmp_path, git, manifest)

        assert result.success
        assert (result.installed, result.skipped, result.removed, result.failed) == (2, 0, 0, 0)
        assert result.state == {
            "owner/alpha": SourceRecord(
                skills=("one", "two"), agents=("claude-code",), commit_hash="aaa111"
            )
        }
        assert load_state(manifest.state_file) == result.state
        assert reporter.details("installed") == ["one", "two"]
        home = tmp_path / "home"
        assert (home / ".agents" / "skills" / "one" / "SKILL.md").is_file()
        assert (home / ".claude" / "skills" / "two").is_symlink()

    def test_temporary_clones_are_removed(self, tmp_path: Path, git: FakeGit) -> None:
        _run(tmp_path, git, _manifest(tmp_path, make_source("owner/alpha")))

        assert list((tmp_path / "tmp").iterdir()) == []

    def test_state_follows_manifest_order(self, tmp_path: Path, git: FakeGit) -> None:
        manifest = _manifest(
            tmp_path,
            make_source("owner/gamma"),
            make_source("owner/alpha"),
            make_source("owner/beta"),
        )

        result, _ = _run(tmp_path, git, manifest)

        assert list(result.state) == ["owner/gamma", "owner/alpha", "owner/beta"]
        assert list(load_state(manifest.state_file)) == list(result.state)

    def test_wildcard_agents_recorded_as_every_known_agent(
        self, tmp_path: Path, git: FakeGit
    ) -> None:
        manifest = _manifest(tmp_path, make_source("owner/beta", agents=None))

        result, _ = _run(tmp_path, git, manifest)

        assert result.state["owner/beta"].agents == tuple(build_agent_dirs(tmp_path / "home", {}))

    def test_empty_filter_result_writes_no_record(self, tmp_path: Path, git: FakeGit) -> None:
        manifest = _manifest(
            tmp_path, make_source("owner/alpha", include=frozenset({"does-not-exist"}))
        )

        result, reporter = _run(tmp_path, git, manifest)

        assert result.success
        assert result.installed == 0
        assert result.state == {}
        assert reporter.details("empty") == ["no skills found"]

    def test_exclusion_is_applied(self, tmp_path: Path, git: FakeGit) -> None:
        manifest = _manifest(tmp_path, make_source("owner/alpha", exclude=frozenset({"ONE"})))

        result, _ = _run(tmp_path, git, manifest)

        assert result.state["owner/alpha"].skills == ("two",)


class TestIdempotence:
    def test_second_run_skips_unchanged_remote(self, tmp_path: Path, git: FakeGit) -> None:
        manifest = _manifest(tmp_path, make_source("owner/alpha"), make_source("owner/beta"))
        _run(tmp_path, git, manifest)
        first_state = manifest.state_file.read_text(encoding="utf-8")

        result, reporter = _run(tmp_path, git, manifest)

        assert (result.installed, result.skipped, result.removed, result.failed) == (0, 2, 0, 0)
        assert manifest.state_file.read_text(encoding="utf-8") == first_state
        assert sorted(reporter.details("skipped")) == ["aaa111", "bbb222"]
        assert git.cloned_urls.count(ALPHA_URL) == 1

    def test_new_remote_commit_reinstalls(self, tmp_path: Path, git: FakeGit) -> None:
        manifest = _manifest(tmp_path, make_source("owner/alpha"))
        _run(tmp_path, git, manifest)
        moved = FakeGit(
            remote_heads={ALPHA_URL: "fff999"},
            remote_trees={ALPHA_URL: tmp_path / "remotes" / "alpha"},
        )

        result, _ = _run(tmp_path, moved, manifest)

        assert result.installed == 2
        assert result.state["owner/alpha"].commit_hash == "fff999"

    def test_force_reclones_unchanged_remote(self, tmp_path: Path, git: FakeGit) -> None:
        manifest = _manifest(tmp_path, make_source("owner/alpha"))
        _run(tmp_path, git, manifest)

        result, _ = _run(tmp_path, git, manifest, force=True)

        assert (result.installed, result.skipped) == (2, 0)
        assert git.cloned_urls == [ALPHA_URL, ALPHA_URL]

    def test_narrowed_filter_on_cache_hit_keeps_previous_record(
        self, tmp_path: Path, git: FakeGit
    ) -> None:
        _run(tmp_path, git, _manifest(tmp_path, make_source("owner/alpha")))
        narrowed = _manifest(tmp_path, make_source("owner/alpha", include=frozenset({"one"})))

        result, _ = _run(tmp_path, git, narrowed)

        assert result.skipped == 1
        assert result.state["owner/alpha"].skills == ("one", "two")
        assert (tmp_path / "home" / ".agents" / "skills" / "two").exists()

    def test_local_sources_are_never_cache_skipped(self, tmp_path: Path) -> None:
        local = tmp_path / "local-skills"
        write_skill(local / "mine", "mine")
        git = FakeGit(local_commits={local.resolve(): "def456"})
        manifest = _manifest(tmp_path, make_source(str(local)))
        _run(tmp_path, git, manifest)

        result, _ = _run(tmp_path, git, manifest)

        assert (result.installed, result.skipped) == (1, 0)
        assert result.state[str(local)].commit_hash == "def456"
        assert git.ls_remote_calls == []


class TestPrune:
    def test_dropped_source_skills_are_removed(self, tmp_path: Path, git: FakeGit) -> None:
        both = _manifest(tmp_path, make_source("owner/alpha"), make_source("owner/beta"))
        _run(tmp_path, git, both)

        result, reporter = _run(tmp_path, git, _manifest(tmp_path, make_source("owner/alpha")))

        home = tmp_path / "home"
        assert result.removed == 1
        assert reporter.details("removed") == ["three"]
        assert "Removing skills from dropped sources..." in reporter.phases
        assert not (home / ".agents" / "skills" / "three").exists()
        assert not (home / ".claude" / "skills" / "three").is_symlink()
        assert list(result.state) == ["owner/alpha"]
        assert (home / ".agents" / "skills" / "one").exists()

    def test_names_still_recorded_for_declared_source_are_kept(
        self, tmp_path: Path, git: FakeGit
    ) -> None:
        manifest = _manifest(tmp_path, make_source("owner/alpha"))
        first, _ = _run(tmp_path, git, manifest)
        state = dict(first.state)
        state["old/source"] = SourceRecord(
            skills=("one",), agents=("claude-code",), commit_hash="0ld"
        )
        save_state(manifest.state_file, state)

        result, _ = _run(tmp_path, git, manifest)

        assert result.removed == 0
        assert (tmp_path / "home" / ".agents" / "skills" / "one").exists()
        assert "old/source" not in result.state

    def test_kept_names_compare_by_directory_name(self, tmp_path: Path, git: FakeGit) -> None:
        """A stale record spelling a name differently still maps to the same entry."""
        manifest = _manifest(tmp_path, make_source("owner/alpha"))
        first, _ = _run(tmp_path, git, manifest)
        state = dict(first.state)
        state["old/source"] = SourceRecord(
            skills=("ONE",), agents=("claude-code",), commit_hash="0ld"
        )
        save_state(manifest.state_file, state)

        result, _ = _run(tmp_path, git, manifest)

        home = tmp_path / "home"
        assert result.skipped == 1
        assert result.removed == 0
        assert (home / ".agents" / "skills" / "one" / "SKILL.md").is_file()
        assert (home / ".claude" / "skills" / "one").resolve().is_dir()

    def test_no_prune_phase_without_stale_sources(self, tmp_path: Path, git: FakeGit) -> None:
        _, reporter = _run(tmp_path, git, _manifest(tmp_path, make_source("owner/alpha")))

        assert "Removing skills from dropped sources..." not in reporter.phases


class TestFailureIsolation:
    @pytest.mark.parametrize("max_workers", [None, 1])
    def test_failing_source_does_not_abort_siblings(
        self, tmp_path: Path, git: FakeGit, max_workers: int | None
    ) -> None:
        manifest = _manifest(
            tmp_path,
            make_source("owner/alpha"),
            make_source("owner/broken"),
            make_source("owner/gamma"),
        )

        result, reporter = _run(tmp_path, git, manifest, max_workers=max_workers)

        assert not result.success
        assert (result.installed, result.failed) == (3, 1)
        assert result.failed_sources == ("owner/broken",)
        assert list(result.state) == ["owner/alpha", "owner/gamma"]
        [message] = reporter.details("failed")
        assert "failed to clone" in message
        assert reporter.summaries == [result]

    def test_failure_carries_prior_record_forward(self, tmp_path: Path, git: FakeGit) -> None:
        manifest = _manifest(tmp_path, make_source("owner/alpha"))
        first, _ = _run(tmp_path, git, manifest)
        failing = FakeGit(
            remote_heads={ALPHA_URL: "new000"},
            clone_raises={ALPHA_URL: RuntimeError("network unreachable")},
        )

        result, _ = _run(tmp_path, failing, manifest)

        assert result.failed == 1
        assert result.state["owner/alpha"] == first.state["owner/alpha"]
        assert load_state(manifest.state_file)["owner/alpha"].commit_hash == "aaa111"

    def test_failure_after_clone_removes_clone_and_keeps_record(
        self, tmp_path: Path, git: FakeGit, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        manifest = _manifest(tmp_path, make_source("owner/alpha"))
        first, _ = _run(tmp_path, git, manifest)
        moved = FakeGit(
            remote_heads={ALPHA_URL: "new000"},
            remote_trees={ALPHA_URL: tmp_path / "remotes" / "alpha"},
        )

        def fail_discovery(root: Path, *, full_depth: bool) -> list[Skill]:
            raise OSError("read error in clone")

        monkeypatch.setattr(reconciler_module, "discover_skills", fail_discovery)

        result, reporter = _run(tmp_path, moved, manifest)

        assert moved.cloned_urls == [ALPHA_URL]
        assert result.failed == 1
        assert reporter.details("failed") == ["read error in clone"]
        assert list((tmp_path / "tmp").iterdir()) == []
        assert result.state["owner/alpha"] == first.state["owner/alpha"]

    def test_missing_local_source_fails_only_that_source(
        self, tmp_path: Path, git: FakeGit
    ) -> None:
        manifest = _manifest(tmp_path, make_source("./missing"), make_source("owner/beta"))

        result, reporter = _run(tmp_path, git, manifest)

        assert result.failed_sources == ("./missing",)
        assert "owner/beta" in result.state
        assert "local path does not exist" in reporter.details("failed")[0]

    def test_symlink_failure_falls_back_without_failing(
        self, tmp_path: Path, git: FakeGit, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def fail_symlink(*args: object, **kwargs: object) -> None:
            raise OSError("symlinks not supported")

        monkeypatch.setattr(os, "symlink", fail_symlink)

        result, reporter = _run(tmp_path, git, _manifest(tmp_path, make_source("owner/alpha")))

        assert result.success
        assert result.installed == 2
        # Reported once per source, not once per skill
        assert reporter.details("warning") == ["claude-code: symlink failed, fell back to copy"]
        entry = tmp_path / "home" / ".claude" / "skills" / "one"
        assert entry.is_dir()
        assert not entry.is_symlink()

    def test_unknown_agent_is_a_warning(self, tmp_path: Path, git: FakeGit) -> None:
        manifest = _manifest(tmp_path, make_source("owner/beta", agents=("bogus", "cursor")))

        result, reporter = _run(tmp_path, git, manifest)

        assert result.success
        assert reporter.details("warning") == ["unknown agent: bogus"]
        assert result.state["owner/beta"].agents == ("cursor",)


class TestStateFile:
    def test_unreadable_state_is_treated_as_empty(self, tmp_path: Path, git: FakeGit) -> None:
        manifest = _manifest(tmp_path, make_source("owner/beta"))
        manifest.state_file.parent.mkdir(parents=True)
        manifest.state_file.write_text("not json", encoding="utf-8")

        result, reporter = _run(tmp_path, git, manifest)

        assert result.success
        assert result.installed == 1
        assert any("ignoring unreadable state file" in w for w in reporter.details("warning"))
        assert list(load_state(manifest.state_file)) == ["owner/beta"]

    def test_state_write_failure_is_a_warning(self, tmp_path: Path, git: FakeGit) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory", encoding="utf-8")
        manifest = _manifest(
            tmp_path, make_source("owner/beta"), state_file=blocker / "managed.json"
        )

        result, reporter = _run(tmp_path, git, manifest)

        assert result.success
        assert not result.state_written
        assert any("failed to write state file" in w for w in reporter.details("warning"))


class TestUpdateHook:
    def test_runs_after_persist(self, tmp_path: Path, git: FakeGit) -> None:
        hook = FakeUpdateHook()
        manifest = _manifest(tmp_path, make_source("owner/beta"), auto_update=True)

        _, reporter = _run(tmp_path, git, manifest, update_hook=hook)

        assert hook.run_count == 1
        assert reporter.phases[-1] == "Updating all skills..."

    def test_failure_is_a_warning(self, tmp_path: Path, git: FakeGit) -> None:
        hook = FakeUpdateHook(raises=RuntimeError("exit status 1"))
        manifest = _manifest(tmp_path, make_source("owner/beta"), auto_update=True)

        result, reporter = _run(tmp_path, git, manifest, update_hook=hook)

        assert result.success
        assert reporter.details("warning") == ["skills update failed: exit status 1"]

    def test_not_run_when_auto_update_disabled(self, tmp_path: Path, git: FakeGit) -> None:
        hook = FakeUpdateHook()

        _run(tmp_path, git, _manifest(tmp_path, make_source("owner/beta")), update_hook=hook)

        assert hook.run_count == 0
