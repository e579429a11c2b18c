"""
git.py - Thin git interface used by the consistency validator.

Every command runs as a subprocess with a timeout. A non-zero exit status
raises GitCommandError carrying the command and git's stderr.

Usage:
    from assetry.validator.git import GitRepository

    repo = GitRepository(cache_dir)
    repo.fetch_tags()
    tags = repo.list_tags()
    changed = repo.diff_names("roles/golang/assistant/v0.1.0", "roles/golang/assistant")
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 120.0


class GitCommandError(Exception):
    """Raised when a git command exits non-zero (or cannot run)."""

    def __init__(self, args: List[str], stderr: str):
        self.args_list = list(args)
        self.stderr = stderr.strip()
        super().__init__(f"git {' '.join(args)}: {self.stderr or 'failed'}")


def git_available() -> bool:
    """True if a git executable is on PATH."""
    return shutil.which("git") is not None


def _run_git_command(
    args: List[str],
    cwd: Optional[Path] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> Tuple[bool, str, str]:
    """Run a git command and return (success, stdout, stderr).

    Args:
        args: Git command arguments (without 'git' prefix).
        cwd: Working directory for the command.
        timeout: Command timeout in seconds.
    """
    try:
        result = subprocess.run(
            ["git"] + args,
            cwd=str(cwd) if cwd is not None else None,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
        return result.returncode == 0, result.stdout, result.stderr
    except subprocess.TimeoutExpired:
        return False, "", f"Git command timed out after {timeout}s"
    except FileNotFoundError:
        return False, "", "Git not found in PATH"
    except OSError as e:
        return False, "", f"Git command failed: {e}"


class GitRepository:
    """A local git working tree."""

    def __init__(self, path: Path, timeout: float = DEFAULT_TIMEOUT):
        self.path = Path(path)
        self.timeout = timeout

    def _git(self, *args: str) -> str:
        success, stdout, stderr = _run_git_command(list(args), self.path, self.timeout)
        if not success:
            raise GitCommandError(list(args), stderr)
        return stdout

    @property
    def is_repository(self) -> bool:
        return (self.path / ".git").exists()

    @classmethod
    def clone(cls, url: str, path: Path, timeout: float = DEFAULT_TIMEOUT) -> "GitRepository":
        """Clone *url* into *path* (whose parent must exist)."""
        args = ["clone", url, str(path)]
        success, _, stderr = _run_git_command(args, Path(path).parent, timeout)
        if not success:
            raise GitCommandError(args, stderr)
        logger.debug("Cloned %s into %s", url, path)
        return cls(path, timeout)

    def checkout(self, branch: str) -> None:
        self._git("checkout", branch)

    def pull(self) -> None:
        self._git("pull")

    def fetch_tags(self, remote: str = "origin") -> None:
        self._git("fetch", "--tags", remote)

    def current_branch(self) -> str:
        return self._git("branch", "--show-current").strip()

    def is_clean(self) -> bool:
        """True if the working tree has no uncommitted changes."""
        return self._git("status", "--porcelain").strip() == ""

    def list_tags(self) -> List[str]:
        return [line.strip() for line in self._git("tag", "--list").splitlines() if line.strip()]

    def diff_names(self, tag: str, path: str) -> List[str]:
        """Files under *path* changed between *tag* and HEAD."""
        out = self._git("diff", "--name-only", f"{tag}..HEAD", "--", path)
        return [line for line in out.splitlines() if line.strip()]
