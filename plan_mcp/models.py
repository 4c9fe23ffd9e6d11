"""Data models for project plan documents."""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Literal


Category = Literal["sprint", "doc", "code", "opinion", "core"]
RecordCategory = Literal["doc", "code", "opinion"]

# Filters accepted by list_files; "all" disables filtering
LIST_FILTERS = ("all", "sprint", "doc", "code", "opinion")
RECORD_CATEGORIES = ("doc", "code", "opinion")
CATEGORIES = ("sprint", "doc", "code", "opinion", "core")

CATEGORY_ORDER = {"sprint": 0, "doc": 1, "code": 2, "opinion": 3, "all": 4}
UNKNOWN_ORDER = 5


@dataclass
class DocumentRecord:
    """A markdown file in the managed directory, read fresh from disk.

    Attributes:
        name: File name
        path: Absolute path
        category: Category derived from the file name
        line_count: Number of newline-separated segments
        byte_size: Size on disk in bytes
        last_modified: Modification time (UTC)
    """
    name: str
    path: Path
    category: Category
    line_count: int
    byte_size: int
    last_modified: datetime

    @property
    def sort_key(self) -> tuple[int, str]:
        return (CATEGORY_ORDER.get(self.category, UNKNOWN_ORDER), self.name)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "path": str(self.path),
            "category": self.category,
            "line_count": self.line_count,
            "byte_size": self.byte_size,
            "last_modified": self.last_modified.isoformat(),
        }


@dataclass
class ProjectStatus:
    """Summary of the managed directory."""
    has_core: bool
    total_count: int
    counts_by_category: dict[str, int] = field(default_factory=dict)
    last_updated: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "has_project_plan": self.has_core,
            "total_files": self.total_count,
            "files_by_type": dict(self.counts_by_category),
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
        }
