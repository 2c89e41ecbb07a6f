"""Load and normalize the desired-state manifest.

The manifest is produced by the configuration layer. JSON is the native
format; a `.toml` suffix selects TOML. Field names follow the JSON form:

    {
      "mode": "symlink",
      "autoUpdate": true,
      "stateFile": "~/.local/state/skills-nix/managed.json",
      "skillsBin": "/path/to/skills",
      "defaultAgents": ["*"],
      "sources": [
        "owner/repo",
        {"source": "./local", "agents": ["claude-code"],
         "skills": {"include": ["a"], "exclude": []}, "fullDepth": false}
      ]
    }
"""

import json
import os
import re
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import cast

import tomli

from skills_install.core.exceptions import ManifestError
from skills_install.skills.models import WILDCARD, InstallMode, SkillFilter, SourceSpec

DEFAULT_STATE_FILE = "~/.local/state/skills-nix/managed.json"
DEFAULT_MODE: InstallMode = "symlink"
VALID_MODES: tuple[InstallMode, ...] = ("symlink", "copy")

_ENV_PLACEHOLDER = re.compile(r"\$\{(\w+)\}|\$(\w+)")


@dataclass(frozen=True)
class Manifest:
    """Desired state for one reconciliation run."""

    mode: InstallMode
    auto_update: bool
    state_file: Path
    skills_bin: Path | None
    canonical_dir: Path | None
    sources: tuple[SourceSpec, ...]


def expand_path(value: str, *, home: Path, environ: Mapping[str, str]) -> Path:
    """Expand `~` and `$VAR`/`${VAR}` placeholders.

    Unknown variables are left in place, matching os.path.expandvars.
    """

    def substitute(match: re.Match[str]) -> str:
        name = match.group(1) or match.group(2)
        return environ.get(name, match.group(0))

    expanded = _ENV_PLACEHOLDER.sub(substitute, value)
    if expanded == "~" or expanded.startswith("~/"):
        expanded = str(home) + expanded[1:]
    return Path(expanded)


def _string_list(value: object, *, field_name: str) -> list[str]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ManifestError(f"'{field_name}' must be a list of strings")
    return cast(list[str], value)


def parse_skill_filter(value: object) -> SkillFilter:
    """Normalize the per-source `skills` field.

    Accepts None, "*", a list of names to include, or {include, exclude}.
    """
    if value is None or value == WILDCARD:
        return SkillFilter.everything()
    if isinstance(value, list):
        include = _string_list(value, field_name="skills")
        return SkillFilter(include=_include_set(include), exclude=frozenset())
    if isinstance(value, dict):
        include = _string_list(value.get("include", []), field_name="skills.include")
        exclude = _string_list(value.get("exclude", []), field_name="skills.exclude")
        return SkillFilter(include=_include_set(include), exclude=frozenset(exclude))
    raise ManifestError("'skills' must be a list, an object, or \"*\"")


def _include_set(include: list[str]) -> frozenset[str] | None:
    if WILDCARD in include:
        return None
    return frozenset(include)


def _parse_agents(value: object, default_agents: tuple[str, ...] | None) -> tuple[str, ...] | None:
    if value is None or value == []:
        return default_agents
    if value == WILDCARD:
        return None
    agents = _string_list(value, field_name="agents")
    if WILDCARD in agents:
        return None
    return tuple(agents)


def parse_source(entry: object, *, default_agents: tuple[str, ...] | None) -> SourceSpec:
    if isinstance(entry, str):
        entry = {"source": entry}
    if not isinstance(entry, dict):
        raise ManifestError("Each source must be a string or an object")

    identifier = entry.get("source")
    if not isinstance(identifier, str) or not identifier:
        raise ManifestError("Each source needs a non-empty 'source' string")

    # "skill" is the older per-source include list
    skills_value = entry.get("skills", entry.get("skill"))
    full_depth = entry.get("fullDepth", True)
    if not isinstance(full_depth, bool):
        raise ManifestError(f"'fullDepth' for {identifier!r} must be a boolean")

    try:
        return SourceSpec(
            identifier=identifier,
            agents=_parse_agents(entry.get("agents"), default_agents),
            skill_filter=parse_skill_filter(skills_value),
            full_depth=full_depth,
        )
    except ManifestError as e:
        raise ManifestError(f"Source {identifier!r}: {e}") from e


def parse_manifest(data: object, *, home: Path, environ: Mapping[str, str]) -> Manifest:
    """Build a Manifest from decoded JSON/TOML data.

    Raises:
        ManifestError: If the data is structurally invalid
    """
    if not isinstance(data, dict):
        raise ManifestError("Manifest must be an object")

    mode = data.get("mode", DEFAULT_MODE)
    if mode not in VALID_MODES:
        raise ManifestError(f"Invalid mode {mode!r}; expected one of {', '.join(VALID_MODES)}")

    auto_update = data.get("autoUpdate", True)
    if not isinstance(auto_update, bool):
        raise ManifestError("'autoUpdate' must be a boolean")

    state_file = data.get("stateFile") or DEFAULT_STATE_FILE
    skills_bin = data.get("skillsBin")
    canonical_dir = data.get("canonicalDir")
    for field_name, value in (
        ("stateFile", state_file),
        ("skillsBin", skills_bin),
        ("canonicalDir", canonical_dir),
    ):
        if value is not None and not isinstance(value, str):
            raise ManifestError(f"'{field_name}' must be a string")

    default_agents = _parse_agents(data.get("defaultAgents"), None)

    # "skills" is the older name of the sources list
    raw_sources = data.get("sources", data.get("skills", []))
    if not isinstance(raw_sources, list):
        raise ManifestError("'sources' must be a list")
    sources = tuple(parse_source(entry, default_agents=default_agents) for entry in raw_sources)

    seen: set[str] = set()
    for source in sources:
        if source.identifier in seen:
            raise ManifestError(f"Duplicate source {source.identifier!r}")
        seen.add(source.identifier)

    return Manifest(
        mode=mode,
        auto_update=auto_update,
        state_file=expand_path(state_file, home=home, environ=environ),
        skills_bin=expand_path(skills_bin, home=home, environ=environ) if skills_bin else None,
        canonical_dir=(
            expand_path(canonical_dir, home=home, environ=environ) if canonical_dir else None
        ),
        sources=sources,
    )


def load_manifest(
    path: Path, *, home: Path | None = None, environ: Mapping[str, str] | None = None
) -> Manifest:
    """Read and parse the manifest file at path.

    Raises:
        ManifestError: If the file is missing, unparsable, or invalid
    """
    if not path.is_file():
        raise ManifestError(f"Manifest not found: {path}")

    try:
        if path.suffix == ".toml":
            with open(path, "rb") as f:
                data = tomli.load(f)
        else:
            data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError, tomli.TOMLDecodeError) as e:
        raise ManifestError(f"Cannot parse manifest {path}: {e}") from e

    return parse_manifest(
        data,
        home=home if home is not None else Path.home(),
        environ=environ if environ is not None else os.environ,
    )
