"""Diff source implementations."""

import logging
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path

from diffnote.models.diff import FileStat

logger = logging.getLogger(__name__)


class DiffSourceError(Exception):
    """Raised when a diff could not be produced."""


class NotAGitRepoError(DiffSourceError):
    """Raised when the path is not inside a git working tree."""

    def __init__(self, path: Path):
        super().__init__(f"Not a git repository: {path}")
        self.path = path


@dataclass
class DiffInput:
    """Raw diff text plus per-file counts, as the engine consumes them."""

    raw_diff: str
    files: list[FileStat] | None = field(default=None)


class DiffSource(ABC):
    """Abstract base class for diff sources."""

    @abstractmethod
    def get_diff(self) -> DiffInput:
        """Fetch and return the diff."""

    @abstractmethod
    def get_description(self) -> str:
        """Human-readable description of the diff source."""


class FileDiffSource(DiffSource):
    """A diff saved to a file. Counts are left to the parser."""

    def __init__(self, path: Path, encoding: str = "utf-8"):
        self.path = path
        self.encoding = encoding

    def get_diff(self) -> DiffInput:
        try:
            return DiffInput(raw_diff=self.path.read_text(encoding=self.encoding))
        except OSError as e:
            raise DiffSourceError(f"Could not read diff file {self.path}: {e}") from e

    def get_description(self) -> str:
        return str(self.path)


def parse_numstat(output: str) -> list[FileStat]:
    """Parse ``git diff --numstat -z`` output.

    Binary files report ``-`` for both counts and get zeros. Renames carry
    an empty path field followed by the old and new paths; the new path
    is kept.
    """
    stats = []
    tokens = output.split("\0")
    i = 0
    while i < len(tokens):
        record = tokens[i]
        i += 1
        if not record:
            continue
        parts = record.split("\t", 2)
        if len(parts) != 3:
            logger.debug("Skipping unexpected numstat record: %r", record)
            continue
        added, deleted, path = parts
        if not path:
            # Rename: old path, then new path
            if i + 1 >= len(tokens):
                break
            path = tokens[i + 1]
            i += 2
        stats.append(
            FileStat(
                path=path,
                additions=int(added) if added.isdigit() else 0,
                deletions=int(deleted) if deleted.isdigit() else 0,
            )
        )
    return stats


class GitDiffSource(DiffSource):
    """Working tree of a repository compared against a base ref."""

    def __init__(self, repo_path: Path, base: str = "HEAD"):
        self.repo_path = repo_path
        self.base = base

    def _git(self, *args: str) -> str:
        try:
            result = subprocess.run(
                ["git", "-C", str(self.repo_path), *args],
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                check=True,
            )
        except FileNotFoundError as e:
            raise DiffSourceError("git executable not found") from e
        except subprocess.CalledProcessError as e:
            message = (e.stderr or "").strip() or f"git {args[0]} failed"
            raise DiffSourceError(message) from e
        return result.stdout

    def get_diff(self) -> DiffInput:
        """Get the raw diff and per-file counts against the base ref.

        Raises:
            NotAGitRepoError: If ``repo_path`` is not a git working tree
            DiffSourceError: If git fails
        """
        if not self.repo_path.is_dir():
            raise NotAGitRepoError(self.repo_path)
        try:
            inside = self._git("rev-parse", "--is-inside-work-tree").strip()
        except DiffSourceError:
            raise NotAGitRepoError(self.repo_path) from None
        if inside != "true":
            raise NotAGitRepoError(self.repo_path)

        # --no-ext-diff bypasses external diff tools configured by the user
        diff_args = ("diff", "--no-ext-diff", "--no-color", "-M")
        numstat = self._git(*diff_args, "--numstat", "-z", self.base, "--")
        raw_diff = self._git(*diff_args, self.base, "--")
        files = parse_numstat(numstat)
        logger.debug("Diff of %s against %s: %d file(s)", self.repo_path, self.base, len(files))
        return DiffInput(raw_diff=raw_diff, files=files)

    def get_description(self) -> str:
        return f"{self.repo_path} against {self.base}"
