"""Git operations for flakebot."""

import os
import subprocess
from typing import Iterable, List

from .errors import GitError


class GitManager:
    """Manages git operations in a repository checkout."""

    def __init__(self, repo_path="."):
        self.repo_path = os.fspath(repo_path)

    def _git(self, *args: str) -> subprocess.CompletedProcess:
        return subprocess.run(
            ["git", *args],
            cwd=self.repo_path,
            capture_output=True,
            text=True,
            check=True,
        )

    def get_current_commit(self) -> str:
        """Get the current git commit hash."""
        try:
            return self._git("rev-parse", "HEAD").stdout.strip()
        except subprocess.CalledProcessError as e:
            raise GitError(f"Failed to read HEAD in {self.repo_path}") from e

    def has_uncommitted_changes(self) -> bool:
        """Check if there are uncommitted changes."""
        try:
            result = self._git("status", "--porcelain")
        except subprocess.CalledProcessError as e:
            raise GitError(f"Failed to read status of {self.repo_path}") from e
        return bool(result.stdout.strip())

    def commit_files(self, message: str, paths: Iterable[str]) -> str:
        """
        Stage exactly the given files and commit them.

        The first line of the message becomes the subject, the remaining
        lines the body.

        Args:
            message: Commit message
            paths: Files relative to the repository root

        Returns:
            Hash of the new commit
        """
        files: List[str] = list(paths)
        if not files:
            raise GitError("Failed to commit changes: no files given")

        headline, _, body = message.strip().partition("\n")
        message_args = ["-m", headline.strip()]
        if body.strip():
            message_args += ["-m", body.strip()]
        try:
            self._git("add", "--", *files)
            self._git("commit", *message_args, "--", *files)
        except subprocess.CalledProcessError as e:
            raise GitError(f"Failed to commit changes: {e.stderr.strip()}") from e
        return self.get_current_commit()
