"""Known agent identifiers and their global skill directories.

The table is built once from the home directory and environment and then
treated as a read-only lookup. Nothing here mutates process state.
"""

from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType

from skills_install.skills.models import WILDCARD

AgentDirs = Mapping[str, Path]


def default_canonical_dir(home: Path) -> Path:
    """Directory holding the single authoritative copy of every skill."""
    return home / ".agents" / "skills"


def build_agent_dirs(home: Path, environ: Mapping[str, str]) -> AgentDirs:
    """Resolve every known agent's skill directory.

    Honors XDG_CONFIG_HOME, CLAUDE_CONFIG_DIR and CODEX_HOME overrides.
    """
    config_home = (
        Path(environ["XDG_CONFIG_HOME"]) if environ.get("XDG_CONFIG_HOME") else home / ".config"
    )
    claude_home = (
        Path(environ["CLAUDE_CONFIG_DIR"]) if environ.get("CLAUDE_CONFIG_DIR") else home / ".claude"
    )
    codex_home = Path(environ["CODEX_HOME"]) if environ.get("CODEX_HOME") else home / ".codex"

    dirs = {
        "opencode": config_home / "opencode" / "skills",
        "claude-code": claude_home / "skills",
        "cursor": home / ".cursor" / "skills",
        "codex": codex_home / "skills",
        "gemini-cli": home / ".gemini" / "skills",
        "github-copilot": home / ".copilot" / "skills",
        "amp": config_home / "agents" / "skills",
        "antigravity": home / ".gemini" / "antigravity" / "skills",
        "cline": home / ".cline" / "skills",
        "goose": config_home / "goose" / "skills",
        "roo": home / ".roo" / "skills",
        "windsurf": home / ".codeium" / "windsurf" / "skills",
        "trae": home / ".trae" / "skills",
        "kilo": home / ".kilocode" / "skills",
        "kiro-cli": home / ".kiro" / "skills",
        "droid": home / ".factory" / "skills",
    }
    return MappingProxyType(dirs)


def resolve_agents(
    requested: tuple[str, ...] | None, agent_dirs: AgentDirs
) -> tuple[list[str], list[str]]:
    """Split requested agents into known and unknown identifiers.

    None (the wildcard) expands to every known agent in table order.

    Returns:
        Tuple of (known, unknown) agent identifiers, duplicates removed
    """
    if requested is None or WILDCARD in requested:
        return list(agent_dirs), []

    known: list[str] = []
    unknown: list[str] = []
    for agent in requested:
        bucket = known if agent in agent_dirs else unknown
        if agent not in bucket:
            bucket.append(agent)
    return known, unknown
