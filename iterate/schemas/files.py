from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class FileStatus(str, Enum):
    """Enum for file change statuses."""

    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"
    RENAMED = "renamed"


class FileChange(BaseModel):
    """Represents one file touched by a change event."""

    model_config = ConfigDict(frozen=True)

    file_path: str
    status: FileStatus
    additions: int = 0
    deletions: int = 0
    changes: int = 0
    patch: Optional[str] = None  # Absent for binary or very large diffs
    old_file_path: Optional[str] = None  # For renamed files


class FileEntry(BaseModel):
    """A stored file together with its revision marker."""

    path: str
    content: str
    sha: str


class ContentSnapshot(BaseModel):
    """The three content states of a changed file, fetched once per event."""

    model_config = ConfigDict(frozen=True)

    test_file_path: str
    current: Optional[str] = None
    base: Optional[str] = None
    test: Optional[str] = None
