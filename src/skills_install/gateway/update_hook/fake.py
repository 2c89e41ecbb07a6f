"""Fake update hook for testing."""

from skills_install.gateway.update_hook.abc import UpdateHook


class FakeUpdateHook(UpdateHook):
    """Records invocations; raises the configured exception if set."""

    def __init__(self, *, raises: Exception | None = None) -> None:
        self._raises = raises
        self._run_count = 0

    def run(self) -> None:
        self._run_count += 1
        if self._raises is not None:
            raise self._raises

    @property
    def run_count(self) -> int:
        """Number of times run() was called. For test assertions only."""
        return self._run_count
