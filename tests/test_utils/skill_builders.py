"""Helpers for building skill directories on disk."""

from pathlib import Path

from skills_install.skills.models import SkillFilter, SourceSpec


def write_skill(
    directory: Path,
    name: str,
    *,
    description: str = "A test skill",
    body: str = "# Instructions\n",
) -> Path:
    """Create directory with a valid SKILL.md and return it."""
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "SKILL.md").write_text(
        f"---\nname: {name}\ndescription: {description}\n---\n\n{body}",
        encoding="utf-8",
    )
    return directory


def make_source(
    identifier: str,
    *,
    agents: tuple[str, ...] | None = ("claude-code",),
    include: frozenset[str] | None = None,
    exclude: frozenset[str] = frozenset(),
    full_depth: bool = True,
) -> SourceSpec:
    return SourceSpec(
        identifier=identifier,
        agents=agents,
        skill_filter=SkillFilter(include=include, exclude=exclude),
        full_depth=full_depth,
    )
