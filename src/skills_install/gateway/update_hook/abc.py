"""Abstract base class for the external update command."""

from abc import ABC, abstractmethod


class UpdateHook(ABC):
    """Opaque external command run after state has been persisted.

    Its output is not parsed; only success or failure matters.
    """

    @abstractmethod
    def run(self) -> None:
        """Invoke the update command.

        Raises:
            RuntimeError: If the command fails, times out, or cannot be started
        """
        ...
