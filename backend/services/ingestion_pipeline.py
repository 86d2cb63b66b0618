"""End-to-end ingestion of a repository into the vector store."""
import time
import logging
from dataclasses import dataclass

from services.content_fetcher import GitHubContentFetcher, ContentFetchError
from services.chunking_engine import ChunkingEngine
from services.embedding_generator import EmbeddingGenerator
from services.vector_store import VectorStore
from config import INGEST_RECURSIVE

logger = logging.getLogger(__name__)


class IngestionError(Exception):
    """Ingestion produced nothing to persist or could not reach an upstream service."""


@dataclass
class IngestionReport:
    """Counts describing one completed ingestion run."""
    owner: str
    repo: str
    files_listed: int = 0
    files_fetched: int = 0
    chunks: int = 0
    embedding_failures: int = 0
    vectors_upserted: int = 0
    elapsed_ms: int = 0

    @property
    def files_skipped(self) -> int:
        return self.files_listed - self.files_fetched


class IngestionPipeline:
    """Fetch -> chunk -> embed -> upsert for one repository at a time."""

    def __init__(
        self,
        fetcher: GitHubContentFetcher,
        chunking_engine: ChunkingEngine,
        embedding_generator: EmbeddingGenerator,
        vector_store: VectorStore,
        recursive: bool = INGEST_RECURSIVE
    ):
        """
        Args:
            fetcher: Shared content fetcher
            chunking_engine: Chunker configured with the maximum chunk size
            embedding_generator: Bounded concurrent embedder
            vector_store: Shared vector store
            recursive: Descend into subdirectories instead of reading only the root
        """
        self.fetcher = fetcher
        self.chunking_engine = chunking_engine
        self.embedding_generator = embedding_generator
        self.vector_store = vector_store
        self.recursive = recursive

    def ingest(self, owner: str, repo: str) -> IngestionReport:
        """
        Re-embed every fetched file of a repository and upsert the vectors.

        Individual files or chunks that fail are left out; the run fails only
        when there is nothing left to persist.

        Args:
            owner: Repository owner
            repo: Repository name

        Returns:
            IngestionReport for the run, including partial failures

        Raises:
            IngestionError: If the fetch fails or no vector survives
        """
        start_time = time.time()
        report = IngestionReport(owner=owner, repo=repo)
        logger.info(f"Ingesting {owner}/{repo} (recursive={self.recursive})")

        # Step 1: Fetch file list and contents
        try:
            entries = self.fetcher.list_files(owner, repo, recursive=self.recursive)
        except ContentFetchError as e:
            logger.error(
                f"Failed to list {owner}/{repo}: {e}",
                extra={"extra": {"owner": owner, "repo": repo, "status": e.status_code}}
            )
            raise IngestionError(f"Failed to fetch repository contents: {e}") from e

        report.files_listed = len(entries)
        sources = self.fetcher.fetch_source_files(owner, repo, entries)
        report.files_fetched = len(sources)

        if not sources:
            raise IngestionError(f"No readable files found in {owner}/{repo}")

        # Step 2: Chunk
        chunks = self.chunking_engine.chunk_files(sources)
        report.chunks = len(chunks)
        if not chunks:
            raise IngestionError(f"Files in {owner}/{repo} produced no chunks")

        # Step 3: Embed (waits for every chunk to settle)
        results = self.embedding_generator.embed([chunk.text for chunk in chunks])
        report.embedding_failures = sum(1 for result in results if not result.ok)

        if report.embedding_failures == len(results):
            raise IngestionError("No embeddings were generated")

        for chunk, result in zip(chunks, results):
            if not result.ok:
                logger.warning(
                    f"Chunk {chunk.index} of {chunk.path} not embedded: {result.error}",
                    extra={"extra": {"path": chunk.path, "chunk_index": chunk.index}}
                )

        # Step 4: Upsert surviving records in one batch
        try:
            report.vectors_upserted = self.vector_store.upsert_chunks(chunks, results)
        except ValueError as e:
            raise IngestionError(str(e)) from e
        except RuntimeError as e:
            raise IngestionError(f"Failed to store vectors: {e}") from e

        report.elapsed_ms = int((time.time() - start_time) * 1000)
        logger.info(
            f"Ingested {owner}/{repo}: {report.files_fetched}/{report.files_listed} files, "
            f"{report.chunks} chunks, {report.vectors_upserted} vectors, "
            f"{report.embedding_failures} embedding failures in {report.elapsed_ms}ms"
        )
        return report
