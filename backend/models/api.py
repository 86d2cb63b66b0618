"""Request and response bodies for the HTTP API."""
from typing import List, Optional
from pydantic import BaseModel

class IngestRequest(BaseModel):
    """Body of POST /ingest. Fields are validated by the endpoint to return 400s."""
    username: Optional[str] = None
    repo: Optional[str] = None

class IngestResponse(BaseModel):
    message: str
    files_processed: int = 0
    chunks: int = 0
    vectors_upserted: int = 0
    embedding_failures: int = 0

class QueryRequest(BaseModel):
    """Body of POST /query."""
    question: Optional[str] = None

class QueryResultItem(BaseModel):
    text: str
    score: float

class QueryResponse(BaseModel):
    """Either message + results, or a soft error such as "No matches found."."""
    message: Optional[str] = None
    results: Optional[List[QueryResultItem]] = None
    error: Optional[str] = None

class ErrorResponse(BaseModel):
    error: str
