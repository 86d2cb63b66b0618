"""Vector store implementation using Supabase pgvector."""
import logging
from typing import Dict, List, Optional
from supabase import create_client, Client
from models.chunk import Chunk, VectorRecord, VectorMatch
from services.embedding_generator import EmbeddingResult
from config import SUPABASE_URL, SUPABASE_KEY, VECTOR_TABLE, VECTOR_NAMESPACE

logger = logging.getLogger(__name__)

# Expected schema (dimension must equal EMBEDDING_DIMENSION):
#
# CREATE EXTENSION IF NOT EXISTS vector;
#
# CREATE TABLE code_chunks (
#   namespace text NOT NULL,
#   id text NOT NULL,
#   embedding vector(768) NOT NULL,
#   metadata jsonb NOT NULL DEFAULT '{}'::jsonb,
#   PRIMARY KEY (namespace, id)
# );
#
# CREATE OR REPLACE FUNCTION match_code_chunks(
#   query_embedding vector(768),
#   match_count int,
#   match_namespace text
# )
# RETURNS TABLE (id text, metadata jsonb, similarity float)
# LANGUAGE sql STABLE
# AS $$
#   SELECT code_chunks.id,
#          code_chunks.metadata,
#          1 - (code_chunks.embedding <=> query_embedding) AS similarity
#   FROM code_chunks
#   WHERE code_chunks.namespace = match_namespace
#   ORDER BY code_chunks.embedding <=> query_embedding
#   LIMIT match_count;
# $$;


def build_vector_records(chunks: List[Chunk], results: List[EmbeddingResult]) -> List[VectorRecord]:
    """
    Pair chunks with their embeddings and keep only the usable ones.

    Args:
        chunks: Chunks in embedding order
        results: Embedding results aligned with chunks by position

    Returns:
        One VectorRecord per chunk whose embedding succeeded with a non-empty vector

    Raises:
        ValueError: If chunks and results are not aligned
    """
    if len(chunks) != len(results):
        raise ValueError(
            f"Chunks and embedding results are misaligned ({len(chunks)} vs {len(results)})"
        )

    records = []
    for chunk, result in zip(chunks, results):
        if not result.ok:
            logger.debug(f"Dropping {chunk.chunk_id} ({chunk.path}): {result.error}")
            continue

        records.append(VectorRecord(
            id=chunk.chunk_id,
            values=result.vector,
            metadata={
                "text": chunk.text,
                "path": chunk.path,
                "chunk_index": chunk.index,
                "total_chunks": chunk.total_chunks,
                "token_count": chunk.token_count,
            }
        ))

    dropped = len(chunks) - len(records)
    if dropped:
        logger.warning(f"Discarded {dropped} of {len(chunks)} chunks without a valid embedding")

    return records


def dedupe_records(records: List[VectorRecord]) -> List[VectorRecord]:
    """
    Collapse records sharing an id, keeping the last one.

    Files with identical content share a blob sha and therefore chunk ids;
    Postgres rejects an upsert statement that touches the same row twice.
    """
    unique: Dict[str, VectorRecord] = {}
    for record in records:
        previous = unique.pop(record.id, None)
        if previous is not None:
            logger.warning(
                f"Duplicate record id {record.id}: {record.metadata.get('path')} "
                f"replaces {previous.metadata.get('path')}",
                extra={"extra": {
                    "id": record.id,
                    "path": record.metadata.get("path"),
                    "replaced_path": previous.metadata.get("path"),
                }}
            )
        unique[record.id] = record
    return list(unique.values())


class VectorStore:
    """Store chunk embeddings and enable similarity search using Supabase pgvector."""

    def __init__(
        self,
        supabase_url: str = SUPABASE_URL,
        supabase_key: str = SUPABASE_KEY,
        table_name: str = VECTOR_TABLE,
        namespace: str = VECTOR_NAMESPACE
    ):
        """
        Initialize the vector store with Supabase client.

        Args:
            supabase_url: Supabase project URL
            supabase_key: Supabase API key
            table_name: Name of the table holding the vectors
            namespace: Partition written to and searched

        Raises:
            ValueError: If Supabase credentials are missing
        """
        if not supabase_url or not supabase_key:
            raise ValueError("SUPABASE_URL and SUPABASE_KEY environment variables are required")

        if not namespace:
            raise ValueError("namespace cannot be empty")

        self.table_name = table_name
        self.namespace = namespace

        # Initialize Supabase client
        self.client: Client = create_client(supabase_url, supabase_key)

        logger.info(f"Initialized VectorStore with table: {table_name}, namespace: {namespace}")

    def upsert_chunks(self, chunks: List[Chunk], results: List[EmbeddingResult]) -> int:
        """
        Persist every chunk that has a valid embedding in one batch.

        Args:
            chunks: Chunks in embedding order
            results: Embedding results aligned with chunks

        Returns:
            Number of records written

        Raises:
            ValueError: If no chunk survived filtering
            RuntimeError: If database operation fails
        """
        records = build_vector_records(chunks, results)
        if not records:
            raise ValueError("No valid vectors to upsert")

        return self.upsert_records(records)

    def upsert_records(self, records: List[VectorRecord]) -> int:
        """
        Insert records, replacing any existing record with the same id.

        Args:
            records: Records to write

        Returns:
            Number of records written

        Raises:
            ValueError: If records list is empty
            RuntimeError: If database operation fails
        """
        if not records:
            raise ValueError("Records list cannot be empty")

        rows = [
            {
                "namespace": self.namespace,
                "id": record.id,
                "embedding": record.values,
                "metadata": record.metadata,
            }
            for record in dedupe_records(records)
        ]

        try:
            self.client.table(self.table_name).upsert(rows, on_conflict="namespace,id").execute()
        except Exception as e:
            error_msg = f"Failed to upsert records to vector store: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg)

        logger.info(f"Upserted {len(rows)} records into namespace {self.namespace}")
        return len(rows)

    def search(
        self,
        query_embedding: List[float],
        top_k: int = 5
    ) -> List[VectorMatch]:
        """
        Find the records most similar to query_embedding by cosine similarity.

        Args:
            query_embedding: Embedding vector for user query
            top_k: Number of records to retrieve

        Returns:
            Matches with metadata, most similar first

        Raises:
            ValueError: If query_embedding is empty or top_k is invalid
            RuntimeError: If database operation fails
        """
        if not query_embedding:
            raise ValueError("Query embedding cannot be empty")

        if top_k <= 0:
            raise ValueError("top_k must be positive")

        try:
            response = self.client.rpc(
                "match_code_chunks",
                {
                    "query_embedding": query_embedding,
                    "match_count": top_k,
                    "match_namespace": self.namespace
                }
            ).execute()
        except Exception as e:
            error_msg = f"Failed to search vector store: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg)

        matches = []
        for row in response.data or []:
            similarity: Optional[float] = row.get("similarity")
            matches.append(VectorMatch(
                id=row.get("id", ""),
                score=float(similarity) if similarity is not None else None,
                metadata=row.get("metadata") or {}
            ))

        logger.debug(f"Found {len(matches)} matches in namespace {self.namespace}")
        return matches

    def count(self) -> int:
        """
        Get the number of records in this namespace.

        Returns:
            Number of records stored

        Raises:
            RuntimeError: If database operation fails
        """
        try:
            response = (
                self.client.table(self.table_name)
                .select("id", count="exact")
                .eq("namespace", self.namespace)
                .execute()
            )
            return response.count if response.count is not None else 0
        except Exception as e:
            error_msg = f"Failed to count records in vector store: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg)
