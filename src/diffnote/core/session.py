"""Review session: ties the comment store to the correlation engine."""

import logging
from pathlib import Path

from diffnote.core.engine import DiffCorrelationEngine
from diffnote.core.store import CommentStore, CommentStoreError
from diffnote.core.watcher import StoreWatcher
from diffnote.models.authoring import FileComment, HunkComment, LineComment, NoTarget, RangeComment
from diffnote.models.comment import Comment, CommentStatus

logger = logging.getLogger(__name__)


class ReviewSession:
    """Comment mutations for one review session.

    Every mutation goes to the store first. Only after the store confirms
    is the comment list re-fetched and the engine's index rebuilt; the
    view is never updated optimistically. Authoring target changes stay on
    the engine and never wait for the store.
    """

    def __init__(self, store: CommentStore, engine: DiffCorrelationEngine, session_id: str):
        self.store = store
        self.engine = engine
        self.session_id = session_id
        self._watcher: StoreWatcher | None = None

    def refresh(self) -> list[Comment]:
        """Re-fetch the session's comments and rebuild the engine index."""
        comments = self.store.list(self.session_id)
        self.engine.set_comments(comments)
        return comments

    def submit(self, content: str) -> Comment:
        """Save a comment for the active authoring target, then close it.

        Raises:
            CommentStoreError: If nothing is being authored or the store fails.
                The authoring target stays open on failure.
        """
        target = self.engine.target
        if isinstance(target, NoTarget):
            raise CommentStoreError("No comment is being written")

        if isinstance(target, FileComment):
            fields = {"line_start": None, "line_end": None}
        elif isinstance(target, LineComment):
            fields = {"line_start": target.line, "line_end": None, "side": target.side}
        elif isinstance(target, (RangeComment, HunkComment)):
            fields = {"line_start": target.line_start, "line_end": target.line_end, "side": target.side}
        else:
            raise CommentStoreError(f"Unsupported authoring target: {target!r}")

        comment = self.store.create(self.session_id, file_path=target.file, content=content, **fields)
        self.engine.close_authoring()
        self.refresh()
        return comment

    def edit(self, comment_id: str, content: str) -> None:
        self.store.update(comment_id, content)
        self.refresh()

    def remove(self, comment_id: str) -> None:
        self.store.delete(comment_id)
        self.refresh()

    def set_status(self, comment_id: str, status: CommentStatus) -> None:
        self.store.set_status(comment_id, status)
        self.refresh()

    def pending(self) -> list[Comment]:
        """Comments not yet delivered (queued or staged)."""
        return [c for c in self.store.list(self.session_id) if c.is_pending]

    # Hot reload

    def watch(self, debounce_ms: int = 500) -> StoreWatcher:
        """Start re-fetching whenever another process writes the store.

        Must be called from a running event loop.
        """
        if self._watcher is None:
            self._watcher = StoreWatcher(Path(self.store.path), on_change=self._on_store_changed, debounce_ms=debounce_ms)
            self.store.on_save = self._watcher.mark_our_save
        self._watcher.start()
        return self._watcher

    def unwatch(self) -> None:
        if self._watcher is not None:
            self._watcher.stop()

    def _on_store_changed(self) -> None:
        try:
            self.refresh()
        except CommentStoreError as e:
            logger.warning("Could not reload comments: %s", e)
