"""Concurrent per-file content hydration."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable

from diffnote.core.engine import DiffCorrelationEngine, UnknownFileError
from diffnote.models.diff import ParsedFileDiff

logger = logging.getLogger(__name__)

# Matches the size of the highlighter worker pool
DEFAULT_CONCURRENCY = 4

FileLoader = Callable[[ParsedFileDiff], Awaitable[object]]


class FileHydrator:
    """Loads heavy per-file content and marks files loaded as each finishes.

    Files hydrate concurrently. Each completion is a single
    ``mark_file_loaded`` call, so the order they finish in does not matter.
    A failed file keeps its loading placeholder; the others carry on.
    """

    def __init__(
        self,
        engine: DiffCorrelationEngine,
        loader: FileLoader,
        concurrency: int = DEFAULT_CONCURRENCY,
    ):
        self.engine = engine
        self.loader = loader
        self._semaphore = asyncio.Semaphore(concurrency)
        self.failed: dict[str, BaseException] = {}

    async def hydrate_file(self, path: str) -> bool:
        """Hydrate one file. Returns True if it was marked loaded."""
        generation = self.engine.generation
        try:
            parsed = self.engine.file(path)
        except UnknownFileError:
            logger.debug("Skipping load for %s, not in the current diff", path)
            return False

        async with self._semaphore:
            try:
                await self.loader(parsed)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning("Failed to load %s: %s", path, e)
                self.failed[path] = e
                return False

        if self.engine.generation != generation:
            # The diff was replaced while this file was loading
            logger.debug("Dropping stale load result for %s", path)
            return False

        self.failed.pop(path, None)
        return self.engine.mark_file_loaded(path)

    async def hydrate(self, paths: Iterable[str] | None = None) -> set[str]:
        """Hydrate several files concurrently.

        Args:
            paths: Files to load; defaults to the currently expanded files

        Returns:
            Paths that were newly marked loaded
        """
        if paths is None:
            paths = [f.path for f in self.engine.files if self.engine.is_expanded(f.path)]
        paths = [p for p in paths if not self.engine.is_loaded(p)]

        results = await asyncio.gather(*(self.hydrate_file(p) for p in paths))
        return {path for path, loaded in zip(paths, results) if loaded}
