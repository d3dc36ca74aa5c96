"""File watcher for comment store hot reload."""

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path

from watchfiles import Change, awatch

logger = logging.getLogger(__name__)


class StoreWatcher:
    """Watches the comment store file for changes made by other sessions.

    When the file is modified externally, triggers the change callback.
    Ignores writes made by this process (tracked via ``mark_our_save``).
    """

    def __init__(
        self,
        store_path: Path,
        on_change: Callable[[], None],
        debounce_ms: int = 500,
    ):
        """Initialize the watcher.

        Args:
            store_path: Path to the comment store YAML file
            on_change: Callback to invoke when the file changes externally
            debounce_ms: Debounce time in milliseconds
        """
        self.store_path = Path(store_path)
        self.on_change = on_change
        self.debounce_ms = debounce_ms
        self._task: asyncio.Task | None = None
        self._stop_event = asyncio.Event()
        self._last_save_mtime: float | None = None

    def mark_our_save(self, path: Path | None = None) -> None:
        """Mark that we just saved the file.

        Call this after saving to prevent triggering reload for our own changes.
        """
        if self.store_path.exists():
            self._last_save_mtime = self.store_path.stat().st_mtime

    def is_external_change(self, change_type: Change, changed_path: str) -> bool:
        """Check whether a watchfiles change is an external write to the store."""
        if Path(changed_path) != self.store_path:
            return False
        if change_type not in (Change.modified, Change.added):
            return False
        if self.store_path.exists():
            current_mtime = self.store_path.stat().st_mtime
            if self._last_save_mtime is not None and current_mtime == self._last_save_mtime:
                # This was our own save, ignore
                return False
        return True

    async def _watch_loop(self) -> None:
        """Main watch loop."""
        self.store_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            async for changes in awatch(
                self.store_path.parent,
                debounce=self.debounce_ms,
                stop_event=self._stop_event,
            ):
                if any(self.is_external_change(change_type, path) for change_type, path in changes):
                    logger.debug("Comment store changed externally: %s", self.store_path)
                    self.on_change()
        except asyncio.CancelledError:
            pass

    def start(self) -> None:
        """Start watching the file."""
        if self._task is None or self._task.done():
            self._stop_event.clear()
            self._task = asyncio.create_task(self._watch_loop())

    def stop(self) -> None:
        """Stop watching the file."""
        self._stop_event.set()
        if self._task and not self._task.done():
            self._task.cancel()
        self._task = None

    @property
    def is_running(self) -> bool:
        """Check if the watcher is running."""
        return self._task is not None and not self._task.done()
