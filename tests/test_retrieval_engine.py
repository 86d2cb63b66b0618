"""Unit tests for RetrievalEngine."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from unittest.mock import Mock
from services.retrieval_engine import RetrievalEngine, QueryEmbeddingError, NO_TEXT_AVAILABLE
from models.chunk import QueryResult, VectorMatch


class TestRetrievalEngine:
    """Test suite for RetrievalEngine class."""

    @pytest.fixture
    def mock_vector_store(self):
        """Create a mock VectorStore."""
        return Mock()

    @pytest.fixture
    def mock_embedding_model(self):
        """Create a mock EmbeddingModel."""
        model = Mock()
        model.embed_text.return_value = [0.1] * 768
        return model

    @pytest.fixture
    def retrieval_engine(self, mock_vector_store, mock_embedding_model):
        """Create a RetrievalEngine instance with mocks."""
        return RetrievalEngine(mock_vector_store, mock_embedding_model)

    def test_initialization(self, retrieval_engine, mock_vector_store, mock_embedding_model):
        """Test that RetrievalEngine initializes correctly."""
        assert retrieval_engine.vector_store == mock_vector_store
        assert retrieval_engine.embedding_model == mock_embedding_model

    def test_query_empty_question(self, retrieval_engine, mock_embedding_model):
        with pytest.raises(ValueError, match="Question cannot be empty"):
            retrieval_engine.query("")

        with pytest.raises(ValueError, match="Question cannot be empty"):
            retrieval_engine.query("   ")

        mock_embedding_model.embed_text.assert_not_called()

    def test_query_invalid_top_k(self, retrieval_engine):
        with pytest.raises(ValueError, match="top_k must be positive"):
            retrieval_engine.query("what is this?", top_k=0)

    def test_query_no_matches(self, retrieval_engine, mock_embedding_model, mock_vector_store):
        """An empty namespace is an empty result, not an error."""
        mock_vector_store.search.return_value = []

        result = retrieval_engine.query("explain the parser")

        assert result == []
        mock_embedding_model.embed_text.assert_called_once_with("explain the parser")
        mock_vector_store.search.assert_called_once_with([0.1] * 768, top_k=5)

    def test_query_maps_matches_in_store_order(self, retrieval_engine, mock_vector_store):
        mock_vector_store.search.return_value = [
            VectorMatch(id="a-chunk-0", score=0.92, metadata={"text": "def parse(tokens):\n"}),
            VectorMatch(id="b-chunk-1", score=0.71, metadata={"text": "class Lexer:\n"}),
            VectorMatch(id="c-chunk-0", score=0.40, metadata={"text": "README\n"}),
        ]

        results = retrieval_engine.query("explain the parser", top_k=3)

        assert results == [
            QueryResult(text="def parse(tokens):\n", score=0.92),
            QueryResult(text="class Lexer:\n", score=0.71),
            QueryResult(text="README\n", score=0.40),
        ]
        assert [r.score for r in results] == sorted((r.score for r in results), reverse=True)

    def test_query_defaults_for_missing_fields(self, retrieval_engine, mock_vector_store):
        mock_vector_store.search.return_value = [
            VectorMatch(id="a-chunk-0", score=None, metadata={"text": "kept"}),
            VectorMatch(id="b-chunk-0", score=0.5, metadata={}),
        ]

        results = retrieval_engine.query("anything")

        assert results[0] == QueryResult(text="kept", score=0.0)
        assert results[1] == QueryResult(text=NO_TEXT_AVAILABLE, score=0.5)
        assert NO_TEXT_AVAILABLE == "No text available"

    def test_query_fewer_records_than_k(self, retrieval_engine, mock_vector_store):
        mock_vector_store.search.return_value = [
            VectorMatch(id="only-chunk-0", score=0.8, metadata={"text": "only one"}),
        ]

        results = retrieval_engine.query("question", top_k=5)

        assert len(results) == 1

    def test_query_embedding_failure(self, retrieval_engine, mock_embedding_model, mock_vector_store):
        mock_embedding_model.embed_text.side_effect = RuntimeError("Rate limit exceeded")

        with pytest.raises(QueryEmbeddingError, match="Failed to generate embedding"):
            retrieval_engine.query("explain the parser")

        mock_vector_store.search.assert_not_called()

    def test_query_empty_embedding(self, retrieval_engine, mock_embedding_model, mock_vector_store):
        mock_embedding_model.embed_text.return_value = []

        with pytest.raises(QueryEmbeddingError):
            retrieval_engine.query("explain the parser")

        mock_vector_store.search.assert_not_called()

    def test_query_search_failure_propagates(self, retrieval_engine, mock_vector_store):
        mock_vector_store.search.side_effect = RuntimeError("Failed to search vector store: boom")

        with pytest.raises(RuntimeError, match="Failed to search"):
            retrieval_engine.query("explain the parser")
