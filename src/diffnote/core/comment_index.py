"""Line-indexed lookup of comments."""

from collections.abc import Iterable

from diffnote.models.comment import Comment


class CommentIndex:
    """Comments grouped by file path, then by line.

    A comment is indexed at ``line_start`` and, when a range ends on a
    different line, at ``line_end`` as well. Lines in between are not
    indexed: the index places indicators, it does not describe coverage.
    File-level comments live under the ``None`` key.
    """

    def __init__(self) -> None:
        self._files: dict[str, dict[int | None, list[Comment]]] = {}

    def add(self, comment: Comment) -> None:
        file_map = self._files.setdefault(comment.file_path, {})

        if comment.line_start is None:
            file_map.setdefault(None, []).append(comment)
            return

        self._add_at(file_map, comment.line_start, comment)
        if comment.line_end is not None and comment.line_end != comment.line_start:
            self._add_at(file_map, comment.line_end, comment)

    @staticmethod
    def _add_at(file_map: dict[int | None, list[Comment]], line: int, comment: Comment) -> None:
        bucket = file_map.setdefault(line, [])
        if not any(c.id == comment.id for c in bucket):
            bucket.append(comment)

    def files(self) -> list[str]:
        return list(self._files)

    def lines(self, file_path: str) -> list[int]:
        """Indexed line numbers for a file, ascending. Excludes file-level."""
        return sorted(k for k in self._files.get(file_path, {}) if k is not None)

    def at(self, file_path: str, line: int | None) -> list[Comment]:
        return list(self._files.get(file_path, {}).get(line, []))

    def file_level(self, file_path: str) -> list[Comment]:
        return self.at(file_path, None)

    def has_file_level(self, file_path: str) -> bool:
        return None in self._files.get(file_path, {})

    def for_file(self, file_path: str) -> dict[int | None, list[Comment]]:
        """Copy of the line map for one file."""
        return {k: list(v) for k, v in self._files.get(file_path, {}).items()}

    def __contains__(self, file_path: object) -> bool:
        return file_path in self._files

    def __len__(self) -> int:
        return len(self._files)


def build_comment_index(comments: Iterable[Comment]) -> CommentIndex:
    """Build a fresh index. Callers rebuild after every store mutation."""
    index = CommentIndex()
    for comment in comments:
        index.add(comment)
    return index
