"""Application context with dependency injection."""

import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path

from skills_install.core.agents import AgentDirs, build_agent_dirs
from skills_install.gateway.git.abc import Git
from skills_install.gateway.git.real import RealGit
from skills_install.gateway.update_hook.abc import UpdateHook
from skills_install.gateway.update_hook.real import RealUpdateHook


@dataclass(frozen=True)
class SkillsContext:
    """Immutable context holding all dependencies for a reconciliation run.

    Created at CLI entry point and threaded through the application.
    Frozen to prevent accidental modification at runtime.
    """

    git: Git
    update_hook_factory: Callable[[Path], UpdateHook]
    agent_dirs: AgentDirs
    home: Path
    cwd: Path  # Base for relative local source paths
    environ: Mapping[str, str]
    temp_root: Path | None  # Parent of temporary clones; None uses the system default

    @staticmethod
    def for_test(
        *,
        git: Git,
        home: Path,
        cwd: Path,
        update_hook_factory: Callable[[Path], UpdateHook] | None = None,
        environ: Mapping[str, str] | None = None,
        temp_root: Path | None = None,
    ) -> "SkillsContext":
        """Create a context rooted at a test home directory.

        Agent directories are resolved against home with no environment
        overrides unless environ is given.

        Example:
            >>> from skills_install.gateway.git.fake import FakeGit
            >>> ctx = SkillsContext.for_test(git=FakeGit(), home=tmp_path, cwd=tmp_path)
        """
        from skills_install.gateway.update_hook.fake import FakeUpdateHook

        resolved_environ = environ if environ is not None else {}
        return SkillsContext(
            git=git,
            update_hook_factory=(
                update_hook_factory
                if update_hook_factory is not None
                else lambda _skills_bin: FakeUpdateHook()
            ),
            agent_dirs=build_agent_dirs(home, resolved_environ),
            home=home,
            cwd=cwd,
            environ=resolved_environ,
            temp_root=temp_root,
        )


def create_context() -> SkillsContext:
    """Create the production context from the real environment."""
    home = Path.home()
    return SkillsContext(
        git=RealGit(),
        update_hook_factory=RealUpdateHook,
        agent_dirs=build_agent_dirs(home, os.environ),
        home=home,
        cwd=Path.cwd(),
        environ=os.environ,
        temp_root=None,
    )
