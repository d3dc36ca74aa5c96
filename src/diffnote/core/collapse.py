"""Initial expand/collapse policy for files in a diff."""

import re
from collections.abc import Iterable, Mapping

# Default number of files to expand initially
DEFAULT_EXPANDED_COUNT = 10

# Default threshold for auto-collapsing large files (total lines changed)
DEFAULT_LARGE_FILE_THRESHOLD = 500

# Lock files and other generated files that are collapsed by default
AUTO_COLLAPSE_PATTERNS = [
    # JavaScript/Node
    re.compile(r"package-lock\.json$"),
    re.compile(r"yarn\.lock$"),
    re.compile(r"pnpm-lock\.yaml$"),
    re.compile(r"npm-shrinkwrap\.json$"),
    # Ruby
    re.compile(r"Gemfile\.lock$"),
    # Rust
    re.compile(r"Cargo\.lock$"),
    # PHP
    re.compile(r"composer\.lock$"),
    # Python
    re.compile(r"Pipfile\.lock$"),
    re.compile(r"poetry\.lock$"),
    re.compile(r"pdm\.lock$"),
    re.compile(r"uv\.lock$"),
    # .NET
    re.compile(r"packages\.lock\.json$"),
    # Go
    re.compile(r"go\.sum$"),
    # Elixir
    re.compile(r"mix\.lock$"),
    # Swift/iOS
    re.compile(r"Podfile\.lock$"),
    re.compile(r"Package\.resolved$"),
    # Generic lock files
    re.compile(r"\.lock$"),
    re.compile(r"\.lockb$"),
]


def is_generated_file(path: str) -> bool:
    """Check if a path looks like a lock file or other generated file."""
    return any(pattern.search(path) for pattern in AUTO_COLLAPSE_PATTERNS)


def should_auto_collapse(path: str, total_changes: int, threshold: int = DEFAULT_LARGE_FILE_THRESHOLD) -> bool:
    """Check if a file should start collapsed, by name or by size."""
    return is_generated_file(path) or total_changes > threshold


def initial_expanded_files(
    paths: Iterable[str],
    total_changes: Mapping[str, int],
    threshold: int = DEFAULT_LARGE_FILE_THRESHOLD,
    quota: int = DEFAULT_EXPANDED_COUNT,
) -> set[str]:
    """Pick the files to expand when a diff is first shown.

    Walks ``paths`` in diff order and expands every file that is not
    auto-collapsed until ``quota`` files are expanded. Auto-collapsed files
    never count toward the quota.
    """
    expanded: set[str] = set()
    for path in paths:
        if len(expanded) >= quota:
            break
        if should_auto_collapse(path, total_changes.get(path, 0), threshold):
            continue
        expanded.add(path)
    return expanded
