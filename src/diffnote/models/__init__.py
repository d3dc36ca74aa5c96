"""Data models for diffnote."""

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
from diffnote.models.comment import Comment, CommentStatus, Side
from diffnote.models.diff import ChangeBlock, ChangeKind, ContextBlock, FileStat, Hunk, ParsedFileDiff
from diffnote.models.repository import DiscoveredRepository, ScanRoot

__all__ = [
    "NO_TARGET",
    "AuthoringTarget",
    "FileComment",
    "HunkComment",
    "LineComment",
    "NoTarget",
    "RangeComment",
    "SelectedRange",
    "Comment",
    "CommentStatus",
    "Side",
    "ChangeBlock",
    "ChangeKind",
    "ContextBlock",
    "FileStat",
    "Hunk",
    "ParsedFileDiff",
    "DiscoveredRepository",
    "ScanRoot",
]
