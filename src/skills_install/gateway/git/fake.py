"""Fake implementation of git operations for testing."""

import shutil
from pathlib import Path

from skills_install.gateway.git.abc import Git


class FakeGit(Git):
    """In-memory fake implementation of git operations.

    This fake accepts pre-configured state in its constructor and tracks
    mutations for test assertions.

    Constructor Injection:
    ---------------------
    - remote_heads: Mapping of clone URL -> remote HEAD commit
    - remote_trees: Mapping of clone URL -> directory whose contents a clone copies
    - ls_remote_raises: Exception to raise from get_remote_head()
    - clone_raises: Mapping of clone URL -> exception to raise from clone_shallow()
    - local_commits: Mapping of local directory -> HEAD commit

    Mutation Tracking:
    -----------------
    - ls_remote_calls: URLs passed to get_remote_head()
    - cloned: (url, target) tuples from clone_shallow()
    """

    def __init__(
        self,
        *,
        remote_heads: dict[str, str] | None = None,
        remote_trees: dict[str, Path] | None = None,
        ls_remote_raises: Exception | None = None,
        clone_raises: dict[str, Exception] | None = None,
        local_commits: dict[Path, str] | None = None,
    ) -> None:
        self._remote_heads = remote_heads or {}
        self._remote_trees = remote_trees or {}
        self._ls_remote_raises = ls_remote_raises
        self._clone_raises = clone_raises or {}
        self._local_commits = dict(local_commits or {})

        self._ls_remote_calls: list[str] = []
        self._cloned: list[tuple[str, Path]] = []

    def get_remote_head(self, url: str) -> str:
        """Return the configured remote head, or raise if unknown."""
        self._ls_remote_calls.append(url)
        if self._ls_remote_raises is not None:
            raise self._ls_remote_raises
        head = self._remote_heads.get(url)
        if head is None:
            raise RuntimeError(f"Failed to query remote HEAD of '{url}': repository not found")
        return head

    def clone_shallow(self, url: str, target: Path) -> None:
        """Copy the configured tree into target and record the clone."""
        self._cloned.append((url, target))
        if url in self._clone_raises:
            raise self._clone_raises[url]
        tree = self._remote_trees.get(url)
        if tree is None:
            raise RuntimeError(f"Failed to clone '{url}': repository not found")
        shutil.copytree(tree, target, dirs_exist_ok=True)
        head = self._remote_heads.get(url)
        if head is not None:
            self._local_commits[target] = head

    def get_head_commit(self, repo_dir: Path) -> str | None:
        return self._local_commits.get(repo_dir)

    @property
    def ls_remote_calls(self) -> list[str]:
        """Read-only access to queried URLs for test assertions."""
        return list(self._ls_remote_calls)

    @property
    def cloned(self) -> list[tuple[str, Path]]:
        """Read-only access to clones for test assertions.

        Returns list of (url, target) tuples.
        """
        return list(self._cloned)

    @property
    def cloned_urls(self) -> list[str]:
        return [url for url, _ in self._cloned]
