"""State file I/O for the managed-skills record.

The file is a JSON object keyed by source identifier:

    {"owner/repo": {"skills": [...], "agents": [...], "commitHash": "abc" | null}}
"""

import json
import os
import tempfile
from pathlib import Path

from skills_install.core.exceptions import StateError
from skills_install.skills.models import SourceRecord


def _record_from_json(identifier: str, data: object) -> SourceRecord:
    if not isinstance(data, dict):
        raise StateError(f"State entry for {identifier!r} is not an object")
    skills = data.get("skills", [])
    agents = data.get("agents", [])
    commit_hash = data.get("commitHash")
    if not isinstance(skills, list) or not all(isinstance(s, str) for s in skills):
        raise StateError(f"State entry for {identifier!r} has invalid 'skills'")
    if not isinstance(agents, list) or not all(isinstance(a, str) for a in agents):
        raise StateError(f"State entry for {identifier!r} has invalid 'agents'")
    if commit_hash is not None and not isinstance(commit_hash, str):
        raise StateError(f"State entry for {identifier!r} has invalid 'commitHash'")
    return SourceRecord(skills=tuple(skills), agents=tuple(agents), commit_hash=commit_hash)


def parse_state(content: str) -> dict[str, SourceRecord]:
    """Parse state file content.

    Raises:
        StateError: If content is not a valid state record
    """
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise StateError(f"Invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise StateError("State file is not a JSON object")
    return {identifier: _record_from_json(identifier, entry) for identifier, entry in data.items()}


def serialize_state(state: dict[str, SourceRecord]) -> str:
    data = {
        identifier: {
            "skills": list(record.skills),
            "agents": list(record.agents),
            "commitHash": record.commit_hash,
        }
        for identifier, record in state.items()
    }
    return json.dumps(data, indent=2) + "\n"


def load_state(path: Path) -> dict[str, SourceRecord]:
    """Load the state record.

    Returns an empty mapping if the file does not exist.

    Raises:
        StateError: If the file exists but cannot be read or parsed
    """
    if not path.exists():
        return {}
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise StateError(f"Cannot read {path}: {e}") from e
    return parse_state(content)


def save_state(path: Path, state: dict[str, SourceRecord]) -> None:
    """Overwrite the state record, creating parent directories as needed.

    Content is written to a sibling temp file and renamed into place so a
    crash never leaves a truncated record.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(serialize_state(state))
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
