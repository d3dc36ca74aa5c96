"""
Pytest configuration and shared fixtures.
"""
from pathlib import Path

import pytest


def file_diff(path: str, additions: int = 1, deletions: int = 0) -> str:
    """Build a git-style diff for one modified file with a single hunk."""
    lines = [
        f"diff --git a/{path} b/{path}",
        "index 1111111..2222222 100644",
        f"--- a/{path}",
        f"+++ b/{path}",
        f"@@ -1,{deletions + 1} +1,{additions + 1} @@",
        " unchanged",
    ]
    lines += [f"-old {i}" for i in range(deletions)]
    lines += [f"+new {i}" for i in range(additions)]
    return "\n".join(lines) + "\n"


@pytest.fixture
def make_diff():
    """Build a multi-file diff from paths (or (path, additions, deletions) tuples)."""

    def build(*files) -> str:
        parts = []
        for item in files:
            if isinstance(item, str):
                parts.append(file_diff(item))
            else:
                parts.append(file_diff(*item))
        return "".join(parts)

    return build


@pytest.fixture
def make_repo():
    """Create a directory that looks like a git working tree."""

    def create(path: Path) -> Path:
        git_dir = path / ".git"
        git_dir.mkdir(parents=True)
        (git_dir / "HEAD").write_text("ref: refs/heads/main\n")
        return path

    return create


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()
