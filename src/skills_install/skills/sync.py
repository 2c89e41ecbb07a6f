"""Materialize skills into the canonical store and propagate them to agents.

Every installed skill has exactly one copy in the canonical store. Agent
directories receive either a relative symlink to that copy or a full copy of
it, depending on the install mode. Agent entries are derived and disposable.
"""

import logging
import os
import re
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from skills_install.core.agents import AgentDirs, resolve_agents
from skills_install.skills.models import InstallMode, Skill

logger = logging.getLogger(__name__)

# Files that are never copied out of a source skill directory
EXCLUDED_NAMES: frozenset[str] = frozenset(["README.md", "metadata.json", ".git"])

_UNSAFE_CHARS = re.compile(r"[^a-z0-9._]+")
_EDGE_CHARS = re.compile(r"^[.\-]+|[.\-]+$")
_MAX_NAME_LENGTH = 255


def sanitize_name(name: str) -> str:
    """Map a skill name to a safe directory name."""
    sanitized = _EDGE_CHARS.sub("", _UNSAFE_CHARS.sub("-", name.lower()))
    return sanitized[:_MAX_NAME_LENGTH] or "unnamed-skill"


def remove_path(path: Path) -> None:
    """Remove a file, symlink, or directory tree. Missing paths are ignored."""
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.is_dir():
        shutil.rmtree(path)


def copy_skill_tree(source_dir: Path, target_dir: Path) -> None:
    """Recursively copy source_dir into target_dir, dereferencing symlinks.

    Skips EXCLUDED_NAMES and any entry whose name starts with an underscore.
    """
    target_dir.mkdir(parents=True, exist_ok=True)
    for entry in sorted(source_dir.iterdir(), key=lambda p: p.name):
        if entry.name in EXCLUDED_NAMES or entry.name.startswith("_"):
            continue
        target = target_dir / entry.name
        if entry.is_dir():
            copy_skill_tree(entry, target)
        elif entry.exists():
            shutil.copy2(entry, target)
        else:
            logger.warning("Skipping dangling symlink %s", entry)


def link_points_to(link_path: Path, target: Path) -> bool:
    """Check whether link_path is a symlink resolving to target."""
    if not link_path.is_symlink():
        return False
    existing = (link_path.parent / os.readlink(link_path)).resolve()
    return existing == target.resolve()


def create_relative_symlink(target: Path, link_path: Path) -> bool:
    """Create or repair a relative symlink at link_path pointing at target.

    An existing link to the same target is left untouched. Anything else
    occupying link_path is removed first.

    Returns:
        True if the link is in place, False if it could not be created
    """
    if link_points_to(link_path, target):
        return True

    try:
        remove_path(link_path)
        link_path.parent.mkdir(parents=True, exist_ok=True)
        relative = os.path.relpath(target.resolve(), link_path.parent.resolve())
        os.symlink(relative, link_path, target_is_directory=True)
    except OSError as e:
        logger.debug("Symlink %s -> %s failed: %s", link_path, target, e)
        return False
    return True


@dataclass
class InstallReport:
    """What happened when one skill was installed."""

    skill_name: str
    agents: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


class SkillSync:
    """Owns the canonical store and writes managed entries into agent dirs."""

    def __init__(self, *, canonical_dir: Path, agent_dirs: AgentDirs) -> None:
        self._canonical_dir = canonical_dir
        self._agent_dirs = agent_dirs

    @property
    def canonical_dir(self) -> Path:
        return self._canonical_dir

    def canonical_path(self, skill_name: str) -> Path:
        return self._canonical_dir / sanitize_name(skill_name)

    def _is_canonical_location(self, agent_dir: Path) -> bool:
        return agent_dir.resolve() == self._canonical_dir.resolve()

    def materialize(self, skill: Skill) -> Path:
        """Replace the canonical entry for skill with a fresh copy of its source."""
        canonical = self.canonical_path(skill.name)
        if canonical.exists() and canonical.resolve() == skill.source_path.resolve():
            # Source already lives in the store; clearing it would destroy it
            return canonical
        remove_path(canonical)
        copy_skill_tree(skill.source_path, canonical)
        return canonical

    def install(
        self, skill: Skill, agents: tuple[str, ...] | None, mode: InstallMode
    ) -> InstallReport:
        """Materialize skill and propagate it to every resolved agent.

        Args:
            skill: The discovered skill
            agents: Requested agent identifiers, or None for every known agent
            mode: "symlink" or "copy"
        """
        report = InstallReport(skill_name=skill.name)
        canonical = self.materialize(skill)

        known, unknown = resolve_agents(agents, self._agent_dirs)
        for agent in unknown:
            report.warnings.append(f"unknown agent: {agent}")

        entry_name = sanitize_name(skill.name)
        for agent in known:
            agent_dir = self._agent_dirs[agent]
            if self._is_canonical_location(agent_dir):
                report.agents.append(agent)
                continue
            warning = self._propagate(canonical, agent_dir / entry_name, mode)
            if warning is not None:
                report.warnings.append(f"{agent}: {warning}")
            report.agents.append(agent)

        return report

    def _propagate(self, canonical: Path, target: Path, mode: InstallMode) -> str | None:
        if mode == "symlink":
            if create_relative_symlink(canonical, target):
                return None
            try:
                remove_path(target)
                copy_skill_tree(canonical, target)
            except OSError as e:
                logger.debug("Copy fallback for %s failed: %s", target, e)
                return "symlink and copy both failed"
            return "symlink failed, fell back to copy"

        remove_path(target)
        copy_skill_tree(canonical, target)
        return None

    def remove(self, skill_name: str) -> list[str]:
        """Remove the canonical entry and every agent entry for skill_name.

        Best-effort: failures are collected and returned, never raised.
        """
        entry_name = sanitize_name(skill_name)
        paths = [self._canonical_dir / entry_name]
        paths.extend(agent_dir / entry_name for agent_dir in self._agent_dirs.values())

        errors: list[str] = []
        for path in paths:
            try:
                remove_path(path)
            except OSError as e:
                errors.append(f"failed to remove {path}: {e}")
        return errors
