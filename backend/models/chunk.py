"""Chunk data models."""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

@dataclass
class Chunk:
    """Represents a line-aligned slice of a source file, the unit of embedding."""
    parent_content_id: str
    index: int  # 0-based position within the parent file
    text: str
    total_chunks: int
    path: str = ""
    token_count: int = 0

    @property
    def chunk_id(self) -> str:
        """Stable record id: "{parent_content_id}-chunk-{index}"."""
        return f"{self.parent_content_id}-chunk-{self.index}"

@dataclass
class VectorRecord:
    """Persisted (id, vector, metadata) triple."""
    id: str
    values: List[float]
    metadata: Dict[str, Any] = field(default_factory=dict)

@dataclass
class QueryResult:
    """Snippet returned by similarity search."""
    text: str
    score: float  # Cosine similarity, higher is more relevant

@dataclass
class VectorMatch:
    """Raw nearest-neighbour hit as returned by the vector store."""
    id: str
    score: Optional[float]
    metadata: Dict[str, Any] = field(default_factory=dict)
