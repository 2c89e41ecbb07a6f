"""Minimal frontmatter parsing for SKILL.md files.

Only the leading block delimited by `---` lines is read, and each interior
line is treated as a flat `key: value` pair. This is deliberately not a YAML
parser: nested mappings and lists are skipped, and a multi-line `name` or
`description` is rejected rather than guessed at.
"""

import re
from dataclasses import dataclass

_BLOCK_PATTERN = re.compile(r"\A---[ \t]*\n(.*?)\n---[ \t]*(?:\n|\Z)", re.DOTALL)
_KEY_VALUE_PATTERN = re.compile(r"^(\w[\w-]*)\s*:\s*(.*)$")

# YAML block scalar indicators; their value continues on following lines
_BLOCK_SCALAR_INDICATORS = frozenset(["|", ">", "|-", ">-", "|+", ">+"])

REQUIRED_KEYS = ("name", "description")


@dataclass(frozen=True)
class FrontmatterParseResult:
    """Result of parsing frontmatter from SKILL.md content.

    Attributes:
        metadata: Flat key/value mapping, or None if parsing failed.
        error: Error message if parsing failed, None otherwise.
    """

    metadata: dict[str, str] | None
    error: str | None

    @property
    def is_valid(self) -> bool:
        """Return True if frontmatter was parsed and has all required keys."""
        return self.metadata is not None


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


def _failure(error: str) -> FrontmatterParseResult:
    return FrontmatterParseResult(metadata=None, error=error)


def parse_skill_frontmatter(content: str) -> FrontmatterParseResult:
    """Parse the leading metadata block of a SKILL.md file.

    Handles these cases:
    - No leading `---` block: returns error
    - Multi-line `name` or `description` value: returns error
    - Missing or empty `name`/`description`: returns error
    - Otherwise: returns the flat key/value mapping
    """
    match = _BLOCK_PATTERN.match(content.replace("\r\n", "\n"))
    if match is None:
        return _failure("No frontmatter found")

    metadata: dict[str, str] = {}
    current_key: str | None = None
    for line in match.group(1).split("\n"):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue

        if line[0] in (" ", "\t"):
            # Continuation of the previous key (nested mapping, list, folded text)
            if current_key in REQUIRED_KEYS:
                return _failure(f"Multi-line value for '{current_key}' is not supported")
            continue

        kv = _KEY_VALUE_PATTERN.match(line)
        if kv is None:
            current_key = None
            continue

        key, raw_value = kv.group(1), kv.group(2).strip()
        current_key = key
        if key in REQUIRED_KEYS and raw_value in _BLOCK_SCALAR_INDICATORS:
            return _failure(f"Multi-line value for '{key}' is not supported")
        if key not in metadata:
            metadata[key] = _strip_quotes(raw_value)

    missing = [key for key in REQUIRED_KEYS if not metadata.get(key)]
    if missing:
        return _failure(f"Missing required keys: {', '.join(missing)}")

    return FrontmatterParseResult(metadata=metadata, error=None)
