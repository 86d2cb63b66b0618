"""Concurrent, failure-isolating embedding of many texts."""
import logging
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import List, Optional

from services.embedding_model import EmbeddingModel
from config import EMBEDDING_MAX_CONCURRENCY

logger = logging.getLogger(__name__)


@dataclass
class EmbeddingResult:
    """Outcome of embedding one text: a vector or the reason it failed."""
    index: int
    vector: Optional[List[float]] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and bool(self.vector)


class EmbeddingGenerator:
    """Embed texts one request each through a bounded worker pool."""

    def __init__(self, embedding_model: EmbeddingModel, max_workers: int = EMBEDDING_MAX_CONCURRENCY):
        """
        Args:
            embedding_model: Shared embedding client
            max_workers: Upper bound on in-flight embedding calls
        """
        if max_workers <= 0:
            raise ValueError("max_workers must be positive")

        self.embedding_model = embedding_model
        self.max_workers = max_workers

    def embed(self, texts: List[str]) -> List[EmbeddingResult]:
        """
        Embed every text independently.

        Results line up with texts by position regardless of completion
        order. A failing text produces a failed result and never affects
        its siblings; the call returns only after every attempt settled.

        Args:
            texts: Texts to embed

        Returns:
            One EmbeddingResult per input text, in input order
        """
        results: List[Optional[EmbeddingResult]] = [None] * len(texts)

        pending = []
        for idx, text in enumerate(texts):
            if not text or not text.strip():
                # Rejected locally, no backend call
                results[idx] = EmbeddingResult(index=idx, error="Text cannot be empty")
            else:
                pending.append(idx)

        if pending:
            with ThreadPoolExecutor(max_workers=min(self.max_workers, len(pending))) as executor:
                futures = {executor.submit(self._embed_one, idx, texts[idx]): idx for idx in pending}
                wait(futures)

            for future, idx in futures.items():
                results[idx] = future.result()

        failed = [r for r in results if not r.ok]
        for result in failed:
            logger.debug(
                f"Embedding failed for item {result.index}: {result.error}",
                extra={"extra": {"chunk_position": result.index}}
            )
        logger.info(f"Embedded {len(texts) - len(failed)}/{len(texts)} texts ({len(failed)} failed)")

        return results

    def _embed_one(self, idx: int, text: str) -> EmbeddingResult:
        try:
            vector = self.embedding_model.embed_text(text)
        except Exception as e:
            return EmbeddingResult(index=idx, error=str(e) or e.__class__.__name__)

        if not vector:
            return EmbeddingResult(index=idx, error="Empty embedding returned")
        return EmbeddingResult(index=idx, vector=vector)
