"""Discover skills in a fetched source tree.

A skill is a directory that directly contains a SKILL.md whose frontmatter
has both `name` and `description`.
"""

import logging
from pathlib import Path

from skills_install.skills.frontmatter import parse_skill_frontmatter
from skills_install.skills.models import Skill

logger = logging.getLogger(__name__)

SKILL_MARKER = "SKILL.md"

# Version-control metadata and dependency caches are never descended into
SKIPPED_DIR_NAMES: frozenset[str] = frozenset(
    [
        ".git",
        ".hg",
        ".svn",
        "node_modules",
        "__pycache__",
        ".venv",
    ]
)


def read_skill(directory: Path) -> Skill | None:
    """Read the skill defined directly in directory, if any.

    Returns None when there is no SKILL.md or its frontmatter is invalid.
    Invalid frontmatter is logged, never raised.
    """
    marker = directory / SKILL_MARKER
    if not marker.is_file():
        return None

    try:
        content = marker.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        logger.warning("Skipping %s: not valid UTF-8", marker)
        return None

    result = parse_skill_frontmatter(content)
    if result.metadata is None:
        logger.warning("Skipping %s: %s", marker, result.error)
        return None

    return Skill(
        name=result.metadata["name"],
        description=result.metadata["description"],
        source_path=directory,
    )


def _child_directories(directory: Path) -> list[Path]:
    # Symlinked directories are not followed
    children = [
        child
        for child in directory.iterdir()
        if child.is_dir() and not child.is_symlink() and child.name not in SKIPPED_DIR_NAMES
    ]
    return sorted(children, key=lambda p: p.name)


def discover_skills(root: Path, *, full_depth: bool) -> list[Skill]:
    """Walk root depth-first and return every skill found, in discovery order.

    With full_depth False, a directory that is itself a skill is not descended
    into; its siblings are still visited. With full_depth True every directory
    is visited. The first skill seen with a given name wins; later duplicates
    are dropped.
    """
    skills: list[Skill] = []
    seen_names: set[str] = set()

    def visit(directory: Path) -> None:
        skill = read_skill(directory)
        if skill is not None:
            if skill.name in seen_names:
                logger.debug("Dropping duplicate skill %r at %s", skill.name, directory)
            else:
                seen_names.add(skill.name)
                skills.append(skill)
            if not full_depth:
                return

        for child in _child_directories(directory):
            visit(child)

    visit(root)
    return skills
