"""Concurrent discovery of git repositories under one or more roots.

Each root is walked by its own asyncio task. Walkers push what they find
into a shared queue; a single consumer deduplicates, keeps a name-sorted
catalog and yields one event per newly accepted repository. Because only
the consumer touches the catalog, the dedup check and the sorted insert
happen at one serialized point.
"""

import asyncio
import bisect
import logging
import os
from collections.abc import AsyncIterator, Iterable
from dataclasses import dataclass
from pathlib import Path

from diffnote.models.repository import DiscoveredRepository, ScanRoot

logger = logging.getLogger(__name__)

IGNORED_DIRS = frozenset(
    {
        "node_modules",
        ".git",
        "dist",
        "build",
        ".next",
        ".cache",
        "coverage",
        "vendor",
        "__pycache__",
        ".venv",
        "venv",
    }
)


class DiscoveryError(Exception):
    """Raised when a scan could not run at all."""


@dataclass(frozen=True)
class RepoFound:
    """A newly accepted repository."""

    repository: DiscoveredRepository


@dataclass(frozen=True)
class ScanCompleted:
    """Terminal marker: every root was exhausted."""

    total: int


@dataclass(frozen=True)
class ScanFailed:
    """Terminal marker: the scan itself failed."""

    message: str


ScanEvent = RepoFound | ScanCompleted | ScanFailed


def is_git_repository(path: Path) -> bool:
    """Check whether a directory is the top of a git working tree.

    Accepts a ``.git`` directory with a ``HEAD`` file, or a ``.git`` file
    pointing elsewhere (worktrees and submodules).
    """
    git_path = path / ".git"
    try:
        if git_path.is_dir():
            return (git_path / "HEAD").is_file()
        if git_path.is_file():
            with open(git_path, encoding="utf-8", errors="replace") as f:
                return f.read(8) == "gitdir: "
    except OSError:
        return False
    return False


def list_child_directories(path: Path) -> list[Path]:
    """List subdirectories worth descending into, sorted by name.

    Symlinks are not followed. Unreadable directories raise ``OSError``.
    """
    children = []
    with os.scandir(path) as entries:
        for entry in entries:
            name = entry.name
            if name in IGNORED_DIRS or name.startswith("."):
                continue
            try:
                if entry.is_dir(follow_symlinks=False):
                    children.append(Path(entry.path))
            except OSError:
                continue
    children.sort(key=lambda p: p.name)
    return children


class RepositoryCatalog:
    """Scan-scoped set of accepted repositories, kept sorted by name."""

    def __init__(self) -> None:
        self._seen: set[str] = set()
        self._items: list[DiscoveredRepository] = []

    def accept(self, repo: DiscoveredRepository) -> bool:
        """Add a repository unless its path was already seen."""
        if repo.path in self._seen:
            return False
        self._seen.add(repo.path)
        bisect.insort(self._items, repo, key=lambda r: (r.name.lower(), r.path))
        return True

    @property
    def repositories(self) -> list[DiscoveredRepository]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)


async def walk_root(root: ScanRoot) -> AsyncIterator[DiscoveredRepository]:
    """Depth-first walk of one root, yielding repositories as found.

    The root is depth 0. Directories deeper than ``root.max_depth`` are
    skipped. A repository is not descended into. Unreadable directories
    are treated as empty.
    """
    stack: list[tuple[Path, int]] = [(root.path, 0)]
    while stack:
        path, depth = stack.pop()
        if depth > root.max_depth:
            continue

        if await asyncio.to_thread(is_git_repository, path):
            yield DiscoveredRepository.from_path(path)
            continue

        if depth == root.max_depth:
            continue

        try:
            children = await asyncio.to_thread(list_child_directories, path)
        except OSError as e:
            logger.debug("Skipping unreadable directory %s: %s", path, e)
            continue

        # Reversed so the stack pops children in name order
        stack.extend((child, depth + 1) for child in reversed(children))


_ROOT_DONE = object()


async def _pump(root: ScanRoot, queue: asyncio.Queue) -> None:
    try:
        async for repo in walk_root(root):
            await queue.put(repo)
    finally:
        await queue.put(_ROOT_DONE)


def _normalize_roots(roots: Iterable[Path | str], max_depth: int) -> list[ScanRoot]:
    if max_depth < 0:
        raise DiscoveryError(f"max depth must not be negative, got {max_depth}")
    normalized = []
    seen = set()
    for root in roots:
        path = Path(os.path.abspath(os.path.expanduser(str(root))))
        if path not in seen:
            seen.add(path)
            normalized.append(ScanRoot(path=path, max_depth=max_depth))
    return normalized


async def scan_repositories(roots: Iterable[Path | str], max_depth: int) -> AsyncIterator[ScanEvent]:
    """Discover repositories under all roots concurrently.

    Yields a ``RepoFound`` for each repository the first time its path is
    seen, in acceptance order, then exactly one ``ScanCompleted`` or
    ``ScanFailed``. Closing the generator early cancels every walker and
    nothing else is emitted.

    Args:
        roots: Directories to scan
        max_depth: Maximum depth below each root that is still examined
    """
    try:
        scan_roots = _normalize_roots(roots, max_depth)
    except DiscoveryError as e:
        yield ScanFailed(message=str(e))
        return

    catalog = RepositoryCatalog()
    queue: asyncio.Queue = asyncio.Queue()
    tasks = [asyncio.create_task(_pump(root, queue), name=f"scan:{root.path}") for root in scan_roots]
    logger.debug("Scanning %d root(s) to depth %d", len(tasks), max_depth)

    try:
        remaining = len(tasks)
        while remaining:
            item = await queue.get()
            if item is _ROOT_DONE:
                remaining -= 1
                continue
            if catalog.accept(item):
                yield RepoFound(repository=item)

        if tasks:
            await asyncio.wait(tasks)
        failures = [t.exception() for t in tasks if t.exception() is not None]
        if failures:
            logger.error("Repository scan failed: %s", failures[0])
            yield ScanFailed(message=str(failures[0]) or "Failed to scan repositories")
            return

        logger.info("Found %d repositories", len(catalog))
        yield ScanCompleted(total=len(catalog))
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


async def discover_repositories(roots: Iterable[Path | str], max_depth: int) -> list[DiscoveredRepository]:
    """Run a full scan and return the repositories sorted by name.

    Raises:
        DiscoveryError: If the scan failed
    """
    catalog = RepositoryCatalog()
    async for event in scan_repositories(roots, max_depth):
        if isinstance(event, RepoFound):
            catalog.accept(event.repository)
        elif isinstance(event, ScanFailed):
            raise DiscoveryError(event.message)
    return catalog.repositories
