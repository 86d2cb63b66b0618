"""Retrieval engine for orchestrating query embedding and similarity search."""
import logging
from typing import List
from models.chunk import QueryResult
from services.vector_store import VectorStore
from services.embedding_model import EmbeddingModel

logger = logging.getLogger(__name__)

NO_TEXT_AVAILABLE = "No text available"


class QueryEmbeddingError(Exception):
    """The question could not be turned into a usable vector."""


class RetrievalEngine:
    """Answer a question with the stored snippets nearest to it."""

    def __init__(self, vector_store: VectorStore, embedding_model: EmbeddingModel):
        """
        Initialize the retrieval engine.

        Args:
            vector_store: VectorStore instance for similarity search
            embedding_model: The same EmbeddingModel used for ingestion
        """
        self.vector_store = vector_store
        self.embedding_model = embedding_model
        logger.info("Initialized RetrievalEngine")

    def query(self, question: str, top_k: int = 5) -> List[QueryResult]:
        """
        Retrieve the top_k stored snippets most similar to question.

        Args:
            question: Natural-language question
            top_k: Maximum number of results

        Returns:
            Results ordered by descending score as returned by the store;
            empty when the store has no matches

        Raises:
            ValueError: If question is empty or top_k is not positive
            QueryEmbeddingError: If the question cannot be embedded
            RuntimeError: If the similarity search fails
        """
        if not question or not question.strip():
            raise ValueError("Question cannot be empty")

        if top_k <= 0:
            raise ValueError("top_k must be positive")

        logger.debug(f"Embedding question: {question[:100]}...")
        try:
            query_embedding = self.embedding_model.embed_text(question)
        except (ValueError, RuntimeError) as e:
            logger.error(f"Failed to embed question: {str(e)}")
            raise QueryEmbeddingError("Failed to generate embedding for the question.") from e

        if not query_embedding:
            logger.error("Embedding model returned an empty vector for the question")
            raise QueryEmbeddingError("Failed to generate embedding for the question.")

        logger.debug(f"Searching for top {top_k} matches")
        matches = self.vector_store.search(query_embedding, top_k=top_k)

        if not matches:
            logger.info("No matches found for question")
            return []

        results = [
            QueryResult(
                text=match.metadata["text"] if match.metadata.get("text") is not None else NO_TEXT_AVAILABLE,
                score=match.score if match.score is not None else 0.0
            )
            for match in matches
        ]

        logger.info(
            f"Retrieved {len(results)} matches (top score: {results[0].score:.3f})"
        )
        return results
