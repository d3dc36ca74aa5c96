"""Diff/comment correlation engine.

Turns a raw diff, per-file change counts and the current comment set into
the view state a renderer needs: which files are expanded, which have
finished hydrating, what each file has selected, and which comment (if
any) is being written.

All mutations are plain synchronous methods. They are meant to be called
from a single event loop thread, so each one applies atomically and in
order.
"""

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum

from diffnote.core.collapse import DEFAULT_EXPANDED_COUNT, DEFAULT_LARGE_FILE_THRESHOLD, initial_expanded_files
from diffnote.core.comment_index import CommentIndex, build_comment_index
from diffnote.core.diff_loader import parse_diff
from diffnote.models.authoring import (
    NO_TARGET,
    AuthoringTarget,
    FileComment,
    HunkComment,
    LineComment,
    NoTarget,
    RangeComment,
    SelectedRange,
)
from diffnote.models.comment import Comment, Side
from diffnote.models.diff import FileStat, ParsedFileDiff

logger = logging.getLogger(__name__)

# How long a hover click is ignored after a multi-line drag ends. The
# mouse-up that finishes a drag also lands on the hover affordance.
CLICK_SUPPRESSION_SECONDS = 0.1


class EngineStatus(Enum):
    """Lifecycle of the view state for one diff."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"


class UnknownFileError(KeyError):
    """Raised when a mutation names a file that is not in the current diff."""


@dataclass
class ViewState:
    """Mutable view state for the active diff."""

    expanded_files: set[str] = field(default_factory=set)
    loaded_files: set[str] = field(default_factory=set)
    selected_lines: dict[str, SelectedRange] = field(default_factory=dict)
    target: AuthoringTarget = NO_TARGET


@dataclass(frozen=True)
class Indicator:
    """Marker for existing comments at one line."""

    line: int
    side: Side
    comments: tuple[Comment, ...]


class DiffCorrelationEngine:
    """Derives and maintains per-file view state for one diff at a time."""

    def __init__(
        self,
        raw_diff: str = "",
        files: Iterable[FileStat] | None = None,
        comments: Iterable[Comment] | None = None,
        large_file_threshold: int | None = None,
        expand_quota: int = DEFAULT_EXPANDED_COUNT,
        on_transition: Callable[[EngineStatus], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the engine and load the first diff.

        Args:
            raw_diff: Raw unified diff text
            files: Per-file addition/deletion counts for the collapse policy
            comments: Existing comments to index
            large_file_threshold: Total changes above which a file starts collapsed
            expand_quota: Maximum number of files expanded initially
            on_transition: Called with each new status
            clock: Monotonic clock in seconds, used for click suppression
        """
        self.large_file_threshold = (
            large_file_threshold if large_file_threshold is not None else DEFAULT_LARGE_FILE_THRESHOLD
        )
        self.expand_quota = expand_quota
        self.on_transition = on_transition
        self._clock = clock

        self._status = EngineStatus.UNINITIALIZED
        self._generation = 0
        self._files: list[ParsedFileDiff] = []
        self._by_path: dict[str, ParsedFileDiff] = {}
        self._stats: dict[str, FileStat] = {}
        self._index = CommentIndex()
        self._state = ViewState()
        self._suppress_clicks_until: float | None = None

        self.reset(raw_diff, files=files, comments=comments or [])

    # Lifecycle

    def reset(
        self,
        raw_diff: str,
        files: Iterable[FileStat] | None = None,
        comments: Iterable[Comment] | None = None,
    ) -> None:
        """Load a new diff, discarding all view state for the previous one.

        Args:
            raw_diff: Raw unified diff text
            files: New per-file counts; derived from the parsed diff when omitted
            comments: New comment set; the current one is kept when omitted
        """
        self._generation += 1
        self._state = ViewState()
        self._suppress_clicks_until = None
        self._transition(EngineStatus.UNINITIALIZED)

        self._files = parse_diff(raw_diff)
        self._by_path = {}
        for parsed in self._files:
            self._by_path.setdefault(parsed.path, parsed)
        self._stats = {stat.path: stat for stat in files} if files is not None else {}

        if comments is not None:
            self.set_comments(comments)

        if not self._files:
            # Nothing to expand, so there is no initialization step
            self._transition(EngineStatus.READY)
            return

        self._transition(EngineStatus.INITIALIZING)
        self._state.expanded_files = initial_expanded_files(
            (f.path for f in self._files),
            {path: self._total_changes(path) for path in self._by_path},
            threshold=self.large_file_threshold,
            quota=self.expand_quota,
        )
        self._transition(EngineStatus.READY)

    def _transition(self, status: EngineStatus) -> None:
        self._status = status
        logger.debug("Diff view %s (generation %d)", status.value, self._generation)
        if self.on_transition is not None:
            self.on_transition(status)

    def _total_changes(self, path: str) -> int:
        stat = self._stats.get(path)
        if stat is not None:
            return stat.total_changes
        return self._by_path[path].total_changes

    def _require_file(self, path: str) -> ParsedFileDiff:
        try:
            return self._by_path[path]
        except KeyError:
            raise UnknownFileError(path) from None

    # Queries

    @property
    def status(self) -> EngineStatus:
        return self._status

    @property
    def generation(self) -> int:
        """Incremented on every reset; lets async work detect a stale diff."""
        return self._generation

    @property
    def files(self) -> list[ParsedFileDiff]:
        return list(self._files)

    @property
    def has_changes(self) -> bool:
        return bool(self._files)

    def file(self, path: str) -> ParsedFileDiff:
        return self._require_file(path)

    @property
    def expanded_files(self) -> frozenset[str]:
        return frozenset(self._state.expanded_files)

    @property
    def loaded_files(self) -> frozenset[str]:
        return frozenset(self._state.loaded_files)

    def is_expanded(self, path: str) -> bool:
        return path in self._state.expanded_files

    def is_loaded(self, path: str) -> bool:
        return path in self._state.loaded_files

    def selection(self, path: str) -> SelectedRange | None:
        return self._state.selected_lines.get(path)

    @property
    def target(self) -> AuthoringTarget:
        return self._state.target

    @property
    def comment_index(self) -> CommentIndex:
        return self._index

    def file_comments(self, path: str) -> list[Comment]:
        """File-level comments for a file."""
        return self._index.file_level(path)

    def indicators(self, path: str) -> list[Indicator]:
        """Comment indicators for a file, ordered by line.

        While a line, range or hunk comment is being written on this file,
        indicators at its first and last line are left out; the authoring
        surface is shown there instead.
        """
        hidden: set[int] = set()
        target = self._state.target
        if target.file == path and target.lines is not None:
            hidden.update(target.lines)

        indicators = []
        for line in self._index.lines(path):
            if line in hidden:
                continue
            comments = self._index.at(path, line)
            indicators.append(Indicator(line=line, side=comments[0].side, comments=tuple(comments)))
        return indicators

    # Mutations

    def set_comments(self, comments: Iterable[Comment]) -> None:
        """Replace the comment set and rebuild the index from scratch."""
        self._index = build_comment_index(comments)

    def toggle_file_expanded(self, path: str) -> bool:
        """Flip a file between expanded and collapsed. Returns the new state."""
        self._require_file(path)
        if path in self._state.expanded_files:
            self._collapse(path)
            return False
        self._state.expanded_files.add(path)
        return True

    def expand_file(self, path: str) -> None:
        self._require_file(path)
        self._state.expanded_files.add(path)

    def collapse_all(self) -> None:
        """Collapse every file. Loaded state and comments are untouched."""
        for path in list(self._state.expanded_files):
            self._collapse(path)

    def _collapse(self, path: str) -> None:
        self._state.expanded_files.discard(path)
        # The authoring surface cannot outlive its file's expansion
        if self._state.target.file == path:
            self._state.target = NO_TARGET
            self._state.selected_lines.pop(path, None)

    def set_selection(self, path: str, selection: SelectedRange | None) -> None:
        """Record the end of a drag selection on a file.

        A range replaces that file's selection and opens a range comment on
        it. A multi-line range also suppresses hover clicks for a moment.
        ``None`` clears the file's selection only.
        """
        self._require_file(path)
        if selection is None:
            self._state.selected_lines.pop(path, None)
            return

        if selection.is_multi_line:
            self._suppress_clicks_until = self._clock() + CLICK_SUPPRESSION_SECONDS
        else:
            self._suppress_clicks_until = None

        self._state.selected_lines[path] = selection
        self._open(
            RangeComment(
                file=path,
                line_start=selection.low,
                line_end=selection.high,
                side=selection.side or Side.NEW,
            )
        )

    def _clicks_suppressed(self) -> bool:
        if self._suppress_clicks_until is None:
            return False
        if self._clock() < self._suppress_clicks_until:
            return True
        self._suppress_clicks_until = None
        return False

    def open_line_comment(self, path: str, line: int, side: Side = Side.NEW) -> bool:
        """Open a single-line comment from the hover affordance.

        Returns False when the click was swallowed because a multi-line
        drag just finished.
        """
        self._require_file(path)
        if self._clicks_suppressed():
            logger.debug("Ignoring line click on %s:%d right after a drag", path, line)
            return False
        self._open(LineComment(file=path, line=line, side=side))
        return True

    def open_file_comment(self, path: str) -> None:
        self._require_file(path)
        self._open(FileComment(file=path))

    def open_hunk_comment(self, path: str, hunk_index: int) -> HunkComment:
        """Open a comment covering the lines a hunk actually changed."""
        parsed = self._require_file(path)
        if not 0 <= hunk_index < len(parsed.hunks):
            raise IndexError(f"{path} has no hunk {hunk_index}")
        start, end = parsed.hunks[hunk_index].changed_line_range()
        target = HunkComment(file=path, line_start=start, line_end=end, side=Side.NEW)
        self._open(target)
        return target

    def _open(self, target: AuthoringTarget) -> None:
        self._state.expanded_files.add(target.file)
        self._state.target = target

    def close_authoring(self) -> None:
        """Dismiss the authoring surface and clear selections on every file."""
        self._state.target = NO_TARGET
        self._state.selected_lines.clear()

    def mark_file_loaded(self, path: str) -> bool:
        """Record that a file's content finished hydrating.

        Idempotent. Returns True the first time a file is marked.
        """
        if path not in self._by_path:
            logger.debug("Ignoring load for %s, not in the current diff", path)
            return False
        if path in self._state.loaded_files:
            return False
        self._state.loaded_files.add(path)
        return True

    @property
    def has_target(self) -> bool:
        return not isinstance(self._state.target, NoTarget)
