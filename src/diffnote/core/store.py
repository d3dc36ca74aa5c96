"""YAML file backed comment store.

Comments for every review session live in one YAML file. Each operation
re-reads the file before changing it and writes it back atomically, so
several processes can share a store; nobody should assume their view is
the latest one, and callers re-fetch after every mutation.
"""

import logging
import os
import tempfile
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

import yaml

from diffnote.models.comment import Comment, CommentStatus, Side

logger = logging.getLogger(__name__)


class CommentStoreError(Exception):
    """Raised when the store cannot complete a mutation or read."""


class CommentNotFoundError(CommentStoreError):
    """Raised when no comment has the given id."""

    def __init__(self, comment_id: str):
        super().__init__(f"Comment not found: {comment_id}")
        self.comment_id = comment_id


# Custom string class to force literal block style in YAML
class LiteralStr(str):
    """String subclass that forces literal block style (|) in YAML output."""
    pass


class LiteralDumper(yaml.SafeDumper):
    """YAML Dumper that uses literal block style for LiteralStr and multiline strings."""
    pass


def _str_representer(dumper, data):
    """Use literal block style for LiteralStr and multiline strings."""
    if isinstance(data, LiteralStr) or "\n" in data:
        return dumper.represent_scalar("tag:yaml.org,2002:str", data, style="|")
    return dumper.represent_scalar("tag:yaml.org,2002:str", data)


LiteralDumper.add_representer(str, _str_representer)
LiteralDumper.add_representer(LiteralStr, _str_representer)


def comment_to_dict(comment: Comment) -> dict:
    """Convert a comment to a serializable dict.

    ``session_id`` is omitted; comments are nested under their session.
    """
    return {
        "id": comment.id,
        "file_path": comment.file_path,
        "line_start": comment.line_start,
        "line_end": comment.line_end,
        "side": comment.side.value,
        "status": comment.status.value,
        "content": LiteralStr(comment.content) if "\n" in comment.content else comment.content,
        "sent_at": comment.sent_at.isoformat() if comment.sent_at else None,
        "created_at": comment.created_at.isoformat(),
        "updated_at": comment.updated_at.isoformat(),
    }


def comment_from_dict(data: dict, session_id: str) -> Comment:
    """Restore a comment from a dict.

    Timestamps and status may be missing when the file was edited by hand.
    """
    now = datetime.now()
    created_at = datetime.fromisoformat(data["created_at"]) if data.get("created_at") else now
    updated_at = datetime.fromisoformat(data["updated_at"]) if data.get("updated_at") else created_at
    kwargs = {
        "session_id": session_id,
        "file_path": data["file_path"],
        "content": data.get("content") or "",
        "line_start": data.get("line_start"),
        "line_end": data.get("line_end"),
        "side": Side(data.get("side", "new")),
        "status": CommentStatus(data.get("status", "queued")),
        "sent_at": datetime.fromisoformat(data["sent_at"]) if data.get("sent_at") else None,
        "created_at": created_at,
        "updated_at": updated_at,
    }
    if data.get("id"):
        kwargs["id"] = data["id"]
    return Comment(**kwargs)


def _sort_key(comment: Comment) -> tuple:
    # File-level comments first, then by line
    line = comment.line_start if comment.line_start is not None else -1
    return (comment.file_path, line, comment.created_at)


class CommentStore:
    """Create, update, delete and list review comments in a YAML file."""

    def __init__(self, path: Path, on_save: Callable[[Path], None] | None = None):
        """Initialize the store.

        Args:
            path: YAML file holding all sessions' comments; created on first write
            on_save: Called with the path after every successful write
        """
        self.path = Path(path)
        self.on_save = on_save

    # Persistence

    def _load(self) -> dict[str, list[dict]]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise CommentStoreError(f"Could not read comment store {self.path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict) or not isinstance(data.get("sessions", {}), dict):
            raise CommentStoreError(f"Comment store {self.path} is not a valid store file")
        return {sid: list(items or []) for sid, items in (data.get("sessions") or {}).items()}

    def _save(self, sessions: dict[str, list[dict]]) -> None:
        content = yaml.dump(
            {"sessions": sessions},
            Dumper=LiteralDumper,
            default_flow_style=False,
            allow_unicode=True,
            sort_keys=False,
        )
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(content)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise CommentStoreError(f"Could not write comment store {self.path}: {e}") from e

        if self.on_save is not None:
            self.on_save(self.path)

    @staticmethod
    def _find(sessions: dict[str, list[dict]], comment_id: str) -> tuple[str, dict]:
        for session_id, items in sessions.items():
            for item in items:
                if item.get("id") == comment_id:
                    return session_id, item
        raise CommentNotFoundError(comment_id)

    # Contract

    def create(
        self,
        session_id: str,
        *,
        file_path: str,
        content: str,
        line_start: int | None = None,
        line_end: int | None = None,
        side: Side = Side.NEW,
        status: CommentStatus = CommentStatus.QUEUED,
    ) -> Comment:
        """Create a comment and persist it.

        A reversed range is normalized so ``line_start <= line_end``.

        Raises:
            CommentStoreError: If the fields are invalid or the write fails
        """
        if not content or not content.strip():
            raise CommentStoreError("Comment content must not be empty")
        if line_start is None and line_end is not None:
            raise CommentStoreError("A comment with an end line needs a start line")
        if line_start is not None and line_end is not None and line_end < line_start:
            line_start, line_end = line_end, line_start

        comment = Comment(
            session_id=session_id,
            file_path=file_path,
            content=content,
            line_start=line_start,
            line_end=line_end,
            side=side,
            status=status,
        )
        sessions = self._load()
        sessions.setdefault(session_id, []).append(comment_to_dict(comment))
        self._save(sessions)
        logger.debug("Created comment %s on %s %s", comment.id, file_path, comment.location_short)
        return comment

    def update(self, comment_id: str, content: str) -> None:
        """Replace a comment's content."""
        if not content or not content.strip():
            raise CommentStoreError("Comment content must not be empty")
        sessions = self._load()
        _, item = self._find(sessions, comment_id)
        item["content"] = LiteralStr(content) if "\n" in content else content
        item["updated_at"] = datetime.now().isoformat()
        self._save(sessions)

    def delete(self, comment_id: str) -> None:
        sessions = self._load()
        session_id, item = self._find(sessions, comment_id)
        sessions[session_id].remove(item)
        self._save(sessions)
        logger.debug("Deleted comment %s", comment_id)

    def list(self, session_id: str) -> list[Comment]:
        """All comments of a session, by file then line (file-level first)."""
        items = self._load().get(session_id, [])
        try:
            comments = [comment_from_dict(item, session_id) for item in items]
        except (KeyError, ValueError, TypeError) as e:
            raise CommentStoreError(f"Corrupt comment in {self.path}: {e}") from e
        return sorted(comments, key=_sort_key)

    def get(self, comment_id: str) -> Comment:
        sessions = self._load()
        session_id, item = self._find(sessions, comment_id)
        return comment_from_dict(item, session_id)

    def set_status(self, comment_id: str, status: CommentStatus) -> None:
        """Move a comment through its lifecycle. Moving to sent stamps ``sent_at``."""
        sessions = self._load()
        _, item = self._find(sessions, comment_id)
        now = datetime.now().isoformat()
        item["status"] = status.value
        if status == CommentStatus.SENT:
            item["sent_at"] = now
        item["updated_at"] = now
        self._save(sessions)
