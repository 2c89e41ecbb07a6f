"""Helpers for integration tests that run a real git binary."""

import shutil
import subprocess
from pathlib import Path

import pytest


def init_git_repo(repo_path: Path, default_branch: str = "main") -> str:
    """Initialize a git repository, commit everything in it, and return HEAD."""
    subprocess.run(["git", "init", "--quiet", "-b", default_branch], cwd=repo_path, check=True)
    subprocess.run(["git", "config", "user.email", "test@example.com"], cwd=repo_path, check=True)
    subprocess.run(["git", "config", "user.name", "Test User"], cwd=repo_path, check=True)
    subprocess.run(["git", "config", "commit.gpgsign", "false"], cwd=repo_path, check=True)
    return commit_all(repo_path, "Initial commit")


def commit_all(repo_path: Path, message: str) -> str:
    subprocess.run(["git", "add", "--all"], cwd=repo_path, check=True)
    subprocess.run(
        ["git", "commit", "--quiet", "--allow-empty", "-m", message], cwd=repo_path, check=True
    )
    result = subprocess.run(
        ["git", "rev-parse", "HEAD"], cwd=repo_path, capture_output=True, text=True, check=True
    )
    return result.stdout.strip()


@pytest.fixture(autouse=True)
def _require_git() -> None:
    if shutil.which("git") is None:
        pytest.skip("git binary not available")
