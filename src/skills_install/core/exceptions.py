"""Exception types raised by skills-install."""


class SkillsInstallError(Exception):
    """Base class for skills-install errors."""


class ManifestError(SkillsInstallError):
    """Manifest is missing, unparsable, or structurally invalid.

    Fatal to the whole run: raised before any reconciliation phase starts.
    """


class SourceFetchError(SkillsInstallError):
    """A source could not be resolved to a local directory.

    Fatal to the affected source only.
    """

    def __init__(self, identifier: str, reason: str) -> None:
        self.identifier = identifier
        self.reason = reason
        super().__init__(reason)


class StateError(SkillsInstallError):
    """The persisted state record could not be parsed."""
