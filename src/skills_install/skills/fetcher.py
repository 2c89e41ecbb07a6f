"""Resolve a source identifier to a local directory.

Remote sources are shallow-cloned into a temporary directory unless the
remote HEAD still matches the commit recorded by the previous run. Local
sources are always used in place and never cache-skipped.
"""

import logging
import os
import re
import shutil
import tempfile
from pathlib import Path

from skills_install.core.exceptions import SourceFetchError
from skills_install.gateway.git.abc import Git
from skills_install.skills.models import FetchedSource, UnchangedSource

logger = logging.getLogger(__name__)

_SHORTHAND_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$")
_REMOTE_PREFIXES = ("http://", "https://", "git@", "ssh://", "git://", "file://")
_LOCAL_PREFIXES = ("/", "./", "../", "~")

CLONE_DIR_PREFIX = "skills-install-"


def is_remote_url(identifier: str) -> bool:
    return identifier.startswith(_REMOTE_PREFIXES)


def is_shorthand(identifier: str) -> bool:
    """Check for owner/repo shorthand."""
    return _SHORTHAND_PATTERN.match(identifier) is not None


def clone_url_for(identifier: str) -> str:
    """Derive a clone URL; owner/repo shorthand maps to GitHub over HTTPS."""
    if is_remote_url(identifier):
        return identifier
    repo = identifier.removesuffix(".git")
    return f"https://github.com/{repo}.git"


def resolve_local_path(identifier: str, *, cwd: Path, home: Path) -> Path:
    if identifier == "~" or identifier.startswith("~/"):
        return (home / identifier[2:]).resolve()
    if identifier.startswith("~"):
        # ~user/... names another account's home directory
        expanded = os.path.expanduser(identifier)
        if expanded != identifier:
            return Path(expanded).resolve()
    return (cwd / identifier).resolve()


def is_local_identifier(identifier: str, *, cwd: Path, home: Path) -> bool:
    """Decide whether identifier names a local directory.

    Explicit path forms are always local. An owner/repo-shaped string is local
    only when it happens to resolve to an existing directory. Anything that is
    neither a URL nor shorthand is treated as a (possibly missing) local path.
    """
    if is_remote_url(identifier):
        return False
    if identifier in (".", "..") or identifier.startswith(_LOCAL_PREFIXES):
        return True
    if is_shorthand(identifier):
        return resolve_local_path(identifier, cwd=cwd, home=home).is_dir()
    return True


class SourceFetcher:
    """Fetches sources through the git gateway.

    Temporary clone directories are created under temp_root; the caller owns
    FetchedSource.cleanup_dir and must remove it when done.
    """

    def __init__(self, *, git: Git, cwd: Path, home: Path, temp_root: Path | None) -> None:
        self._git = git
        self._cwd = cwd
        self._home = home
        self._temp_root = temp_root

    def fetch(
        self, identifier: str, *, cached_commit: str | None, force: bool
    ) -> FetchedSource | UnchangedSource:
        """Resolve identifier, or signal that it is unchanged since cached_commit.

        Raises:
            SourceFetchError: If a local path is missing or a clone fails
        """
        if is_local_identifier(identifier, cwd=self._cwd, home=self._home):
            return self._fetch_local(identifier)
        return self._fetch_remote(identifier, cached_commit=cached_commit, force=force)

    def _fetch_local(self, identifier: str) -> FetchedSource:
        path = resolve_local_path(identifier, cwd=self._cwd, home=self._home)
        if not path.is_dir():
            raise SourceFetchError(identifier, f"local path does not exist: {path}")
        return FetchedSource(
            path=path,
            commit_hash=self._git.get_head_commit(path),
            cleanup_dir=None,
        )

    def _fetch_remote(
        self, identifier: str, *, cached_commit: str | None, force: bool
    ) -> FetchedSource | UnchangedSource:
        url = clone_url_for(identifier)

        if cached_commit is not None and not force:
            try:
                remote_head = self._git.get_remote_head(url)
            except RuntimeError as e:
                # Not fatal: fall through to a full clone
                logger.debug("Remote check failed for %s, cloning: %s", identifier, e)
            else:
                if remote_head == cached_commit:
                    return UnchangedSource(commit_hash=remote_head)

        clone_dir = Path(tempfile.mkdtemp(prefix=CLONE_DIR_PREFIX, dir=self._temp_root))
        try:
            self._git.clone_shallow(url, clone_dir)
        except RuntimeError as e:
            shutil.rmtree(clone_dir, ignore_errors=True)
            raise SourceFetchError(identifier, f"failed to clone {url}: {e}") from e

        return FetchedSource(
            path=clone_dir,
            commit_hash=self._git.get_head_commit(clone_dir),
            cleanup_dir=clone_dir,
        )
