"""Tests for FakeGit behavior relied on by the reconciler tests."""

from pathlib import Path

import pytest

from skills_install.gateway.git.fake import FakeGit

URL = "https://github.com/owner/repo.git"


def test_clone_copies_tree_and_records_head(tmp_path: Path) -> None:
    tree = tmp_path / "tree"
    tree.mkdir()
    (tree / "file.txt").write_text("content", encoding="utf-8")
    target = tmp_path / "target"
    target.mkdir()
    git = FakeGit(remote_heads={URL: "abc123"}, remote_trees={URL: tree})

    git.clone_shallow(URL, target)

    assert (target / "file.txt").read_text(encoding="utf-8") == "content"
    assert git.get_head_commit(target) == "abc123"
    assert git.cloned == [(URL, target)]


def test_unknown_remote_raises() -> None:
    git = FakeGit()

    with pytest.raises(RuntimeError, match="repository not found"):
        git.get_remote_head(URL)
    assert git.ls_remote_calls == [URL]


def test_configured_clone_failure(tmp_path: Path) -> None:
    git = FakeGit(clone_raises={URL: RuntimeError("denied")})

    with pytest.raises(RuntimeError, match="denied"):
        git.clone_shallow(URL, tmp_path / "target")
    assert git.cloned_urls == [URL]
