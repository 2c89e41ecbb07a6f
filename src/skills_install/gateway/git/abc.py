"""Abstract base class for the git operations used by the source fetcher."""

from abc import ABC, abstractmethod
from pathlib import Path


class Git(ABC):
    """Abstract interface for git operations.

    All implementations (real, fake) must implement this interface.
    """

    @abstractmethod
    def get_remote_head(self, url: str) -> str:
        """Query the commit hash of a remote's HEAD without cloning.

        Args:
            url: Clone URL of the remote repository

        Returns:
            Full commit hash of the remote HEAD

        Raises:
            RuntimeError: If the remote cannot be queried or has no HEAD
        """
        ...

    @abstractmethod
    def clone_shallow(self, url: str, target: Path) -> None:
        """Shallow, single-branch clone of url into target.

        Args:
            url: Clone URL of the remote repository
            target: Directory to clone into

        Raises:
            RuntimeError: If the clone fails or times out
        """
        ...

    @abstractmethod
    def get_head_commit(self, repo_dir: Path) -> str | None:
        """Get the HEAD commit hash of a local checkout.

        Returns:
            The commit hash, or None if repo_dir is not a git repository
        """
        ...
