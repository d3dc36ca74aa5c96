"""Newline-delimited JSON encoding of discovery scan events.

Wire format, one object per line:

    {"type": "repo", "data": {"path": "...", "name": "..."}}
    {"type": "done", "total": 3}
    {"type": "error", "message": "..."}
"""

import codecs
import json
import logging
from dataclasses import dataclass, field

from diffnote.core.discovery import RepoFound, ScanCompleted, ScanEvent, ScanFailed
from diffnote.models.repository import DiscoveredRepository

logger = logging.getLogger(__name__)

CONTENT_TYPE = "application/x-ndjson"


def event_to_dict(event: ScanEvent) -> dict:
    """Convert a scan event to its wire dict."""
    if isinstance(event, RepoFound):
        return {"type": "repo", "data": event.repository.to_dict()}
    if isinstance(event, ScanCompleted):
        return {"type": "done", "total": event.total}
    if isinstance(event, ScanFailed):
        return {"type": "error", "message": event.message or "Failed to scan repositories"}
    raise TypeError(f"Not a scan event: {event!r}")


def encode_event(event: ScanEvent) -> str:
    """Encode a scan event as one newline-terminated JSON line."""
    return json.dumps(event_to_dict(event), ensure_ascii=False) + "\n"


def event_from_dict(data: dict) -> ScanEvent | None:
    """Restore a scan event from its wire dict, or None if it has no known shape."""
    kind = data.get("type")
    if kind == "repo":
        repo = data.get("data")
        if isinstance(repo, dict) and isinstance(repo.get("path"), str) and isinstance(repo.get("name"), str):
            return RepoFound(repository=DiscoveredRepository(path=repo["path"], name=repo["name"]))
    elif kind == "done":
        total = data.get("total")
        if isinstance(total, int):
            return ScanCompleted(total=total)
    elif kind == "error":
        return ScanFailed(message=str(data.get("message") or "Failed to scan repositories"))
    return None


class NdjsonDecoder:
    """Incremental decoder for a chunked NDJSON stream.

    Chunks may split lines (and UTF-8 sequences) anywhere. Lines that are
    blank, not JSON, or not a known event are dropped without ending the
    stream.
    """

    def __init__(self) -> None:
        self._buffer = ""
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def feed(self, chunk: bytes | str) -> list[ScanEvent]:
        """Add a chunk and return every event completed by it."""
        if isinstance(chunk, bytes):
            chunk = self._utf8.decode(chunk)
        self._buffer += chunk
        *lines, self._buffer = self._buffer.split("\n")
        return [event for event in map(self._parse_line, lines) if event is not None]

    def close(self) -> list[ScanEvent]:
        """Flush whatever is left once the stream ends."""
        self._buffer += self._utf8.decode(b"", final=True)
        remainder, self._buffer = self._buffer, ""
        event = self._parse_line(remainder)
        return [event] if event is not None else []

    @staticmethod
    def _parse_line(line: str) -> ScanEvent | None:
        if not line.strip():
            return None
        try:
            data = json.loads(line)
        except json.JSONDecodeError:
            logger.debug("Discarding malformed scan line: %r", line[:200])
            return None
        if not isinstance(data, dict):
            return None
        return event_from_dict(data)


@dataclass
class RepositoryFeed:
    """Consumer-side view of a streamed scan.

    Repositories stay sorted by name as they arrive. An error stops the
    loading state but keeps everything found so far.
    """

    repositories: list[DiscoveredRepository] = field(default_factory=list)
    loading: bool = True
    error: str | None = None
    total: int | None = None
    _seen: set[str] = field(default_factory=set, repr=False)

    def apply(self, event: ScanEvent) -> None:
        if isinstance(event, RepoFound):
            repo = event.repository
            if repo.path in self._seen:
                return
            self._seen.add(repo.path)
            self.repositories.append(repo)
            self.repositories.sort(key=lambda r: (r.name.lower(), r.path))
        elif isinstance(event, ScanCompleted):
            self.total = event.total
            self.loading = False
        elif isinstance(event, ScanFailed):
            self.error = event.message
            self.loading = False

    def apply_all(self, events: list[ScanEvent]) -> None:
        for event in events:
            self.apply(event)

    def filter(self, text: str) -> list[DiscoveredRepository]:
        """Repositories whose name or path contains ``text`` (case-insensitive)."""
        needle = text.strip().lower()
        if not needle:
            return list(self.repositories)
        return [r for r in self.repositories if needle in r.name.lower() or needle in r.path.lower()]
