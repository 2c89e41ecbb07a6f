"""Production implementation of git operations using subprocess."""

import subprocess
from pathlib import Path

from skills_install.core.subprocess_utils import (
    copied_env_for_git_subprocess,
    run_subprocess_with_context,
)
from skills_install.gateway.git.abc import Git

# Remote introspection is cheap; a slow answer is treated as a cache miss.
GIT_LS_REMOTE_TIMEOUT = 15

# Shallow clones of skill repositories are small.
GIT_CLONE_TIMEOUT = 30


class RealGit(Git):
    """Real implementation of git operations using subprocess."""

    def __init__(
        self,
        *,
        ls_remote_timeout: float = GIT_LS_REMOTE_TIMEOUT,
        clone_timeout: float = GIT_CLONE_TIMEOUT,
    ) -> None:
        self._ls_remote_timeout = ls_remote_timeout
        self._clone_timeout = clone_timeout

    def get_remote_head(self, url: str) -> str:
        """Query the remote HEAD via `git ls-remote`."""
        result = run_subprocess_with_context(
            cmd=["git", "ls-remote", url, "HEAD"],
            operation_context=f"query remote HEAD of '{url}'",
            cwd=None,
            timeout=self._ls_remote_timeout,
            env=copied_env_for_git_subprocess(),
        )
        # Output format: "<hash>\tHEAD"
        for line in result.stdout.splitlines():
            parts = line.split()
            if len(parts) == 2 and parts[1] == "HEAD":
                return parts[0]
        raise RuntimeError(f"Failed to query remote HEAD of '{url}': no HEAD ref advertised")

    def clone_shallow(self, url: str, target: Path) -> None:
        """Clone with --depth 1 --single-branch."""
        run_subprocess_with_context(
            cmd=[
                "git",
                "clone",
                "--depth",
                "1",
                "--single-branch",
                "--quiet",
                url,
                str(target),
            ],
            operation_context=f"clone '{url}'",
            cwd=None,
            timeout=self._clone_timeout,
            env=copied_env_for_git_subprocess(),
        )

    def get_head_commit(self, repo_dir: Path) -> str | None:
        """Read HEAD via `git rev-parse`; None outside a repository."""
        try:
            result = subprocess.run(
                ["git", "rev-parse", "HEAD"],
                cwd=repo_dir,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError:
            return None
        if result.returncode != 0:
            return None
        commit = result.stdout.strip()
        return commit or None
