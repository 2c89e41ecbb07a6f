"""Subprocess helpers that attach operation context to failures."""

import os
import subprocess
from collections.abc import Mapping
from pathlib import Path


def copied_env_for_git_subprocess() -> dict[str, str]:
    """Copy the current environment with interactive git prompts disabled.

    Without this a clone of a private or missing repository can block forever
    waiting for credentials.
    """
    env = os.environ.copy()
    env["GIT_TERMINAL_PROMPT"] = "0"
    return env


def run_subprocess_with_context(
    *,
    cmd: list[str],
    operation_context: str,
    cwd: Path | None,
    timeout: float | None,
    env: Mapping[str, str] | None,
) -> subprocess.CompletedProcess[str]:
    """Run a command, raising RuntimeError with context on failure.

    Args:
        cmd: Command and arguments
        operation_context: Human readable description used in error messages
        cwd: Working directory, or None for the current directory
        timeout: Seconds before the command is killed, or None for no limit
        env: Environment for the child process, or None to inherit

    Returns:
        The completed process with captured text output

    Raises:
        RuntimeError: If the command exits non-zero, times out, or cannot be started
    """
    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=timeout,
            env=dict(env) if env is not None else None,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        raise RuntimeError(f"Failed to {operation_context}: timed out after {timeout}s") from e
    except OSError as e:
        raise RuntimeError(f"Failed to {operation_context}: {e}") from e

    if result.returncode != 0:
        detail = result.stderr.strip() or result.stdout.strip() or f"exit code {result.returncode}"
        raise RuntimeError(f"Failed to {operation_context}: {detail}")

    return result
