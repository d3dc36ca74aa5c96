"""Comment data models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from uuid import uuid4


class Side(Enum):
    """Which side of the diff a line belongs to."""

    OLD = "old"
    NEW = "new"


class CommentStatus(Enum):
    """Lifecycle of a review comment."""

    QUEUED = "queued"
    STAGED = "staged"
    SENT = "sent"
    RESOLVED = "resolved"

    @property
    def is_pending(self) -> bool:
        """Queued and staged comments have not been delivered yet."""
        return self in (CommentStatus.QUEUED, CommentStatus.STAGED)


@dataclass
class Comment:
    """A review comment, owned by the comment store."""

    session_id: str
    file_path: str
    content: str
    line_start: int | None = None  # None = file-level comment
    line_end: int | None = None  # Inclusive end of range (None = single line)
    side: Side = Side.NEW
    status: CommentStatus = CommentStatus.QUEUED
    sent_at: datetime | None = None
    id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    @property
    def is_file_level(self) -> bool:
        return self.line_start is None

    @property
    def is_range(self) -> bool:
        """Check if this comment covers more than one line."""
        return (
            self.line_start is not None
            and self.line_end is not None
            and self.line_start != self.line_end
        )

    @property
    def is_pending(self) -> bool:
        return self.status.is_pending

    @property
    def line_range(self) -> tuple[int, int] | None:
        """Get the line range as (start, end) tuple, or None for file-level."""
        if self.line_start is None:
            return None
        end = self.line_end if self.line_end is not None else self.line_start
        return (min(self.line_start, end), max(self.line_start, end))

    @property
    def location_short(self) -> str:
        """Get short location string for inline display."""
        if self.line_start is None:
            return "file"
        elif self.is_range:
            start, end = self.line_range
            return f"L{start}-{end}"
        else:
            return f"L{self.line_start}"
