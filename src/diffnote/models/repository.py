"""Repository discovery data models."""

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class ScanRoot:
    """A directory to search for repositories, and how deep to go."""

    path: Path
    max_depth: int


@dataclass(frozen=True)
class DiscoveredRepository:
    """A git repository found on disk. ``path`` is the unique key."""

    path: str
    name: str

    @classmethod
    def from_path(cls, path: Path) -> "DiscoveredRepository":
        return cls(path=str(path), name=path.name or str(path))

    def to_dict(self) -> dict:
        return {"path": self.path, "name": self.name}
