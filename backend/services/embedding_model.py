"""Embedding model integration with Hugging Face Inference API."""
import time
import logging
from typing import Any, List, Optional
import httpx
import numpy as np
from config import HUGGINGFACE_API_KEY, EMBEDDING_MODEL, EMBEDDING_DIMENSION

logger = logging.getLogger(__name__)


class EmbeddingModel:
    """Wrapper for Hugging Face Inference API embedding model."""

    def __init__(
        self,
        api_key: str = HUGGINGFACE_API_KEY,
        model_name: str = EMBEDDING_MODEL,
        dimension: Optional[int] = EMBEDDING_DIMENSION,
        max_retries: int = 5,
        initial_delay: float = 5.0,
        timeout: float = 120.0
    ):
        """
        Initialize the embedding model client.

        One instance is shared by ingestion and query so that both sides
        embed with the same model over the same connection pool.

        Args:
            api_key: Hugging Face API key
            model_name: Model identifier (default: sentence-transformers/all-mpnet-base-v2)
            dimension: Expected vector length, None to accept any length
            max_retries: Maximum number of retry attempts for 503 errors
            initial_delay: Initial delay in seconds for exponential backoff
            timeout: Request timeout in seconds
        """
        if not api_key:
            raise ValueError("HUGGINGFACE_API_KEY environment variable is required")

        self.api_key = api_key
        self.model_name = model_name
        self.dimension = dimension
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.timeout = timeout
        self.api_url = (
            f"https://router.huggingface.co/hf-inference/models/{model_name}"
            "/pipeline/feature-extraction"
        )

        # Thread-safe, reused by every worker of the embedding pool
        self.client = httpx.Client(
            timeout=timeout,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json"
            }
        )

        logger.info(f"Initialized EmbeddingModel with model: {model_name}")

    def close(self) -> None:
        self.client.close()

    def embed_text(self, text: str) -> List[float]:
        """
        Generate embedding for a single text string.

        Args:
            text: Text to embed

        Returns:
            Embedding vector as list of floats

        Raises:
            ValueError: If text is empty
            RuntimeError: If API request fails after all retries
        """
        if not text or not text.strip():
            raise ValueError("Text cannot be empty")

        return self._to_vector(self._request(text))

    def _to_vector(self, embeddings: Any) -> List[float]:
        """
        Reduce the API response for one input to a single vector.

        Sentence-transformer models answer with one vector per input; plain
        transformer models answer with one vector per token, which is mean-pooled.
        """
        try:
            array = np.asarray(embeddings, dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise RuntimeError(f"Unexpected embedding response: {str(e)}")

        if array.ndim == 3 and array.shape[0] == 1:
            array = array[0].mean(axis=0)
        elif array.ndim == 2 and array.shape[0] == 1:
            array = array[0]

        if array.ndim != 1 or array.size == 0:
            raise RuntimeError(f"Unexpected embedding response shape {array.shape}")

        if not np.all(np.isfinite(array)):
            raise RuntimeError("Embedding response contains non-finite values")

        if self.dimension and array.shape[0] != self.dimension:
            raise RuntimeError(
                f"Embedding dimension mismatch: expected {self.dimension}, got {array.shape[0]}"
            )

        return array.tolist()

    def _request(self, text: str) -> Any:
        """
        POST one input to the feature-extraction endpoint.

        Free tier models sleep when idle and answer 503 for 15-20s while
        loading. Those responses and transport errors are retried with
        exponential backoff; rate limiting and auth failures are not.

        Raises:
            RuntimeError: If the request is rejected or every attempt failed
        """
        payload = {
            "inputs": [text],
            "truncate": True,  # Inputs over the model's token window are cut server-side
            "options": {"wait_for_model": True}
        }

        delay = self.initial_delay
        last_error = None

        for attempt in range(1, self.max_retries + 1):
            started = time.time()
            try:
                response = self.client.post(self.api_url, json=payload)
            except httpx.TimeoutException:
                last_error = f"Request timeout after {self.timeout}s"
            except httpx.RequestError as e:
                last_error = f"Network error: {str(e)}"
            else:
                if response.status_code == 429:
                    logger.error("Rate limit exceeded for Hugging Face API")
                    raise RuntimeError("Rate limit exceeded. Please try again later.")
                if response.status_code == 401:
                    logger.error("Authentication failed for Hugging Face API")
                    raise RuntimeError("Invalid API key")
                if response.status_code == 503:
                    last_error = f"Model failed to load after {self.max_retries} attempts"
                elif response.status_code != 200:
                    error_msg = f"API request failed with status {response.status_code}: {response.text}"
                    logger.error(error_msg)
                    raise RuntimeError(error_msg)
                else:
                    elapsed = time.time() - started
                    if elapsed > 10.0:
                        logger.info(f"Model loading delay detected: {elapsed:.1f}s (attempt {attempt})")
                    else:
                        logger.debug(f"Embedded {len(text)} chars in {elapsed:.2f}s")
                    try:
                        return response.json()
                    except ValueError as e:
                        raise RuntimeError(f"Unexpected embedding response: {str(e)}")

            if attempt < self.max_retries:
                logger.warning(f"{last_error} on attempt {attempt}/{self.max_retries}, retrying in {delay}s")
                time.sleep(delay)
                delay = min(delay * 2, 60.0)

        error_msg = f"Failed to generate embeddings after {self.max_retries} attempts. Last error: {last_error}"
        logger.error(error_msg)
        raise RuntimeError(error_msg)

    def warmup(self) -> bool:
        """
        Warm up the model with a dummy query to avoid cold start delays.

        This is useful to call at startup to ensure the model is loaded
        before processing real user queries.

        Returns:
            True if warmup successful, False otherwise
        """
        try:
            logger.info("Warming up embedding model...")
            start_time = time.time()

            # Use a simple dummy text
            self.embed_text("warmup query")

            elapsed = time.time() - start_time
            logger.info(f"Model warmup completed in {elapsed:.1f}s")
            return True

        except Exception as e:
            logger.error(f"Model warmup failed: {str(e)}")
            return False
