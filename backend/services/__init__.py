"""Services for the TalkToCode ingestion and retrieval pipeline."""
from .content_fetcher import (
    GitHubContentFetcher,
    ContentFetchError,
    RateLimitedError,
    UnauthorizedError,
    RepositoryNotFoundError,
)
from .chunking_engine import ChunkingEngine, split_text, load_tokenizer
from .embedding_model import EmbeddingModel
from .embedding_generator import EmbeddingGenerator, EmbeddingResult
from .vector_store import VectorStore, build_vector_records, dedupe_records
from .retrieval_engine import RetrievalEngine, QueryEmbeddingError
from .ingestion_pipeline import IngestionPipeline, IngestionReport, IngestionError

__all__ = ['GitHubContentFetcher', 'ContentFetchError', 'RateLimitedError', 'UnauthorizedError', 'RepositoryNotFoundError', 'ChunkingEngine', 'split_text', 'load_tokenizer', 'EmbeddingModel', 'EmbeddingGenerator', 'EmbeddingResult', 'VectorStore', 'build_vector_records', 'dedupe_records', 'RetrievalEngine', 'QueryEmbeddingError', 'IngestionPipeline', 'IngestionReport', 'IngestionError']
