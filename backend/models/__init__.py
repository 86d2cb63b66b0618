"""Data models for the TalkToCode service."""
from .repository import EntryKind, FileEntry, SourceFile
from .chunk import Chunk, VectorRecord, VectorMatch, QueryResult
from .api import IngestRequest, IngestResponse, QueryRequest, QueryResponse, QueryResultItem, ErrorResponse

__all__ = [
    "EntryKind",
    "FileEntry",
    "SourceFile",
    "Chunk",
    "VectorRecord",
    "VectorMatch",
    "QueryResult",
    "IngestRequest",
    "IngestResponse",
    "QueryRequest",
    "QueryResponse",
    "QueryResultItem",
    "ErrorResponse",
]
