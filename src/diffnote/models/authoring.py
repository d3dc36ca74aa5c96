"""Comment authoring targets and line selections.

At most one authoring target is active at a time. Each shape is its own
frozen dataclass so a range can never exist without a file, and a file
comment can never carry lines.
"""

from dataclasses import dataclass

from diffnote.models.comment import Side


@dataclass(frozen=True)
class NoTarget:
    """No comment is being written."""

    @property
    def file(self) -> None:
        return None

    @property
    def lines(self) -> tuple[int, int] | None:
        return None


@dataclass(frozen=True)
class LineComment:
    """Comment on a single line, opened from the hover affordance."""

    file: str
    line: int
    side: Side = Side.NEW

    @property
    def lines(self) -> tuple[int, int]:
        return (self.line, self.line)


@dataclass(frozen=True)
class RangeComment:
    """Comment on a dragged line range."""

    file: str
    line_start: int
    line_end: int
    side: Side = Side.NEW

    @property
    def lines(self) -> tuple[int, int]:
        return (self.line_start, self.line_end)


@dataclass(frozen=True)
class FileComment:
    """Comment on the file as a whole."""

    file: str

    @property
    def lines(self) -> None:
        return None


@dataclass(frozen=True)
class HunkComment:
    """Comment on the changed lines of one hunk."""

    file: str
    line_start: int
    line_end: int
    side: Side = Side.NEW

    @property
    def lines(self) -> tuple[int, int]:
        return (self.line_start, self.line_end)


AuthoringTarget = NoTarget | LineComment | RangeComment | FileComment | HunkComment

NO_TARGET = NoTarget()


@dataclass(frozen=True)
class SelectedRange:
    """A drag selection as reported by the renderer.

    ``start`` is where the drag began, so it may be greater than ``end``.
    """

    start: int
    end: int
    side: Side | None = None

    @property
    def low(self) -> int:
        return min(self.start, self.end)

    @property
    def high(self) -> int:
        return max(self.start, self.end)

    @property
    def is_multi_line(self) -> bool:
        return self.start != self.end
