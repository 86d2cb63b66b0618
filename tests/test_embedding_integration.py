"""Integration tests for embedding with the real API (optional)."""
import sys
from pathlib import Path
import pytest

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from services.embedding_model import EmbeddingModel
from services.embedding_generator import EmbeddingGenerator
from config import HUGGINGFACE_API_KEY, EMBEDDING_DIMENSION


@pytest.mark.skipif(
    not HUGGINGFACE_API_KEY,
    reason="HUGGINGFACE_API_KEY not set"
)
class TestEmbeddingIntegration:
    """Integration tests with real Hugging Face API."""

    def test_real_embed_text(self):
        """Test embedding a single code snippet with real API."""
        model = EmbeddingModel()

        result = model.embed_text("def parse(tokens):\n    return Parser(tokens).run()\n")

        assert len(result) == EMBEDDING_DIMENSION
        assert all(isinstance(x, float) for x in result)

    def test_real_generator_partial_failure(self):
        """Blank chunks fail locally while real ones embed."""
        generator = EmbeddingGenerator(EmbeddingModel(), max_workers=2)

        results = generator.embed(["import os\n", "   \n", "class Lexer:\n    pass\n"])

        assert [r.ok for r in results] == [True, False, True]
        assert len(results[2].vector) == EMBEDDING_DIMENSION

    def test_real_warmup(self):
        """Test model warmup with real API."""
        model = EmbeddingModel()

        result = model.warmup()

        assert result is True
