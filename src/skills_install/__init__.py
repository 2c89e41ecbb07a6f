"""skills-install: declarative agent skill reconciliation.

Clones or reads declared skill sources, installs their skills into a
canonical store, and links or copies them into each agent's skill directory.
See `skills-install --help` for details.
"""

from skills_install.cli.cli import cli


def main() -> None:
    """CLI entry point used by the `skills-install` console script."""
    cli()
