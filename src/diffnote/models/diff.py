"""Diff data models - frozen wrappers around unidiff types."""

from dataclasses import dataclass, field
from enum import Enum

from unidiff import Hunk as UnidiffHunk
from unidiff import PatchedFile
from unidiff.constants import DEV_NULL


class ChangeKind(Enum):
    """How a file changed between the two sides of a diff."""

    ADDED = "added"
    DELETED = "deleted"
    RENAMED_PURE = "renamed-pure"
    RENAMED_CHANGED = "renamed-changed"
    MODIFIED = "modified"


@dataclass(frozen=True)
class ContextBlock:
    """A run of contiguous unchanged lines."""

    lines: tuple[str, ...] = ()


@dataclass(frozen=True)
class ChangeBlock:
    """A group of removed lines paired with the lines that replaced them."""

    deletions: tuple[str, ...] = ()
    additions: tuple[str, ...] = ()


ContentBlock = ContextBlock | ChangeBlock


@dataclass(frozen=True)
class Hunk:
    """A contiguous block of changes.

    The nominal ``addition_start``/``addition_lines`` include surrounding
    context, so they rarely match the lines that actually changed. Use
    :meth:`changed_line_range` for that.
    """

    addition_start: int
    addition_lines: int
    deletion_start: int
    deletion_lines: int
    context: str = ""
    blocks: tuple[ContentBlock, ...] = ()

    @property
    def additions(self) -> int:
        """Count of added lines."""
        return sum(len(b.additions) for b in self.blocks if isinstance(b, ChangeBlock))

    @property
    def deletions(self) -> int:
        """Count of removed lines."""
        return sum(len(b.deletions) for b in self.blocks if isinstance(b, ChangeBlock))

    def changed_line_range(self) -> tuple[int, int]:
        """Get the first and last added line on the new side.

        Walks the blocks from the nominal addition start, advancing over
        context and added lines. Falls back to the nominal range when the
        hunk has no additions at all, collapsed to its start line when that
        range is empty.
        """
        line_no = self.addition_start
        first: int | None = None
        last: int | None = None

        for block in self.blocks:
            if isinstance(block, ContextBlock):
                line_no += len(block.lines)
            elif block.additions:
                if first is None:
                    first = line_no
                line_no += len(block.additions)
                last = line_no - 1

        if first is None or last is None:
            # A pure deletion has no new-side lines; never return end < start
            end = max(self.addition_start, self.addition_start + self.addition_lines - 1)
            return self.addition_start, end
        return first, last

    @classmethod
    def from_unidiff(cls, hunk: UnidiffHunk) -> "Hunk":
        """Create a Hunk from a unidiff Hunk, grouping lines into blocks."""
        blocks: list[ContentBlock] = []
        context: list[str] = []
        deletions: list[str] = []
        additions: list[str] = []

        def flush_context() -> None:
            if context:
                blocks.append(ContextBlock(lines=tuple(context)))
                context.clear()

        def flush_change() -> None:
            if deletions or additions:
                blocks.append(ChangeBlock(deletions=tuple(deletions), additions=tuple(additions)))
                deletions.clear()
                additions.clear()

        for line in hunk:
            value = line.value.rstrip("\n")
            if line.is_context:
                flush_change()
                context.append(value)
            elif line.is_removed:
                flush_context()
                # A removal after additions starts a new pair
                if additions:
                    flush_change()
                deletions.append(value)
            elif line.is_added:
                flush_context()
                additions.append(value)
            # "\ No newline at end of file" markers carry no content

        flush_context()
        flush_change()

        return cls(
            addition_start=hunk.target_start,
            addition_lines=hunk.target_length,
            deletion_start=hunk.source_start,
            deletion_lines=hunk.source_length,
            context=(hunk.section_header or "").strip(),
            blocks=tuple(blocks),
        )


def _strip_prefix(path: str | None, prefix: str) -> str | None:
    if not path or path == DEV_NULL:
        return None
    if path.startswith(prefix):
        return path[len(prefix):]
    return path


@dataclass(frozen=True)
class ParsedFileDiff:
    """A single file's parsed diff. Recomputed on every parse, never mutated."""

    path: str
    change_kind: ChangeKind
    previous_path: str | None = None
    hunks: tuple[Hunk, ...] = field(default_factory=tuple)
    is_binary: bool = False

    @property
    def additions(self) -> int:
        return sum(h.additions for h in self.hunks)

    @property
    def deletions(self) -> int:
        return sum(h.deletions for h in self.hunks)

    @property
    def total_changes(self) -> int:
        return self.additions + self.deletions

    @classmethod
    def from_unidiff(cls, patched_file: PatchedFile) -> "ParsedFileDiff":
        """Create a ParsedFileDiff from a unidiff PatchedFile."""
        hunks = tuple(Hunk.from_unidiff(h) for h in patched_file)

        if patched_file.is_added_file:
            kind = ChangeKind.ADDED
        elif patched_file.is_removed_file:
            kind = ChangeKind.DELETED
        elif patched_file.is_rename:
            kind = ChangeKind.RENAMED_CHANGED if hunks else ChangeKind.RENAMED_PURE
        else:
            kind = ChangeKind.MODIFIED

        old_path = _strip_prefix(patched_file.source_file, "a/")
        new_path = _strip_prefix(patched_file.target_file, "b/")
        path = new_path or old_path or patched_file.path

        previous_path = None
        if kind in (ChangeKind.RENAMED_PURE, ChangeKind.RENAMED_CHANGED):
            previous_path = old_path

        return cls(
            path=path,
            change_kind=kind,
            previous_path=previous_path,
            hunks=hunks,
            is_binary=patched_file.is_binary_file,
        )


@dataclass(frozen=True)
class FileStat:
    """Per-file change counts supplied alongside the raw diff."""

    path: str
    additions: int = 0
    deletions: int = 0

    @property
    def total_changes(self) -> int:
        return self.additions + self.deletions
