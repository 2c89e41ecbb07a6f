"""Production implementation of the update hook using subprocess."""

from pathlib import Path

from skills_install.core.subprocess_utils import run_subprocess_with_context
from skills_install.gateway.update_hook.abc import UpdateHook

UPDATE_HOOK_TIMEOUT = 60


class RealUpdateHook(UpdateHook):
    """Runs `<skills_bin> update` with a bounded timeout."""

    def __init__(self, skills_bin: Path, *, timeout: float = UPDATE_HOOK_TIMEOUT) -> None:
        self._skills_bin = skills_bin
        self._timeout = timeout

    @property
    def skills_bin(self) -> Path:
        return self._skills_bin

    def run(self) -> None:
        run_subprocess_with_context(
            cmd=[str(self._skills_bin), "update"],
            operation_context=f"run '{self._skills_bin} update'",
            cwd=None,
            timeout=self._timeout,
            env=None,
        )
