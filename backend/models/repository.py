"""Repository content data models."""
from dataclasses import dataclass
from enum import Enum
from typing import Optional

class EntryKind(str, Enum):
    """Kind of entry returned by a repository directory listing."""
    FILE = "file"
    DIRECTORY = "dir"

@dataclass
class FileEntry:
    """Represents one entry of a repository directory listing."""
    path: str  # Repository-relative, never empty
    kind: EntryKind
    content_id: str  # Git blob/tree sha, stable per content version
    name: str = ""
    size: Optional[int] = None

    @property
    def is_file(self) -> bool:
        return self.kind == EntryKind.FILE

@dataclass
class SourceFile:
    """Decoded text of one repository file, owned by a single ingestion run."""
    content_id: str
    path: str
    raw_text: str
