"""
Embedding generation module for the retrieval layer using Google Gemini.

This module handles text-to-vector conversion for catalog activities and
search queries. Uses text-embedding-004 (768 dimensions).
"""

import logging
from typing import List, Optional
import google.generativeai as genai

from tarana.rag.errors import EmbeddingProviderError, MalformedInputError
from tarana.rag.retry import RetryPolicy

logger = logging.getLogger(__name__)


class EmbeddingModel:
    """
    Wrapper for the Gemini embedding API.

    Features:
    - API-based embeddings (no heavy model downloads)
    - Separate task types for indexing and retrieval
    - 768-dimensional embeddings, validated on every response
    - Optional retry policy (defaults to a single attempt)
    """

    EMBEDDING_DIMENSION = 768
    INPUT_TYPE = "retrieval_document"  # For indexing
    QUERY_INPUT_TYPE = "retrieval_query"  # For retrieval

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: Optional[str] = None,
        retry_policy: Optional[RetryPolicy] = None
    ):
        """Configure the Gemini client (loads API key from settings when not given)."""
        from tarana.config import settings

        api_key = api_key or settings.gemini_api_key
        if not api_key:
            raise EmbeddingProviderError(
                "Embedding model not initialized - missing GEMINI_API_KEY"
            )

        self._model_name = model_name or settings.embedding_model
        self.retry_policy = retry_policy or RetryPolicy(
            max_attempts=settings.embedding_max_attempts,
            base_delay=settings.embedding_retry_base_delay,
            retry_on=(EmbeddingProviderError,)
        )

        logger.info(f"Initializing Gemini embeddings with model: {self._model_name}")
        genai.configure(api_key=api_key)

    async def embed_text(self, text: str, input_type: str = INPUT_TYPE) -> List[float]:
        """
        Generate embedding for a single text.

        Args:
            text: Input text to embed
            input_type: "retrieval_document" for indexing, "retrieval_query" for search

        Returns:
            List of 768 float values

        Raises:
            MalformedInputError: If text is not a string or is blank
            EmbeddingProviderError: If the API call fails or the response is malformed
        """
        if not isinstance(text, str):
            raise MalformedInputError("Text to embed must be a string")
        if not text.strip():
            raise MalformedInputError("Cannot embed empty text")

        return await self.retry_policy.run(
            lambda: self._embed_once(text, input_type),
            description="Embedding request"
        )

    async def _embed_once(self, text: str, input_type: str) -> List[float]:
        try:
            response = await genai.embed_content_async(
                model=self._model_name,
                content=text,
                task_type=input_type
            )
        except Exception as e:
            logger.error(f"Failed to generate embedding: {e}")
            raise EmbeddingProviderError(f"Embedding generation failed: {e}") from e

        # SDK returns {"embedding": [floats]}
        values = response.get("embedding") if isinstance(response, dict) else None
        if not isinstance(values, list) or len(values) != self.EMBEDDING_DIMENSION:
            logger.error(f"Embedding response malformed: {type(values).__name__}")
            raise EmbeddingProviderError("Embedding response malformed")

        return [float(v) for v in values]

    async def embed_batch(self, texts: List[str], input_type: str = INPUT_TYPE) -> List[List[float]]:
        """
        Generate embeddings for multiple texts, preserving order.

        Raises:
            MalformedInputError: If the list is empty or any entry is blank
        """
        if not texts:
            raise MalformedInputError("Cannot embed empty list of texts")

        embeddings = []
        for text in texts:
            embeddings.append(await self.embed_text(text, input_type=input_type))
        return embeddings

    @property
    def dimension(self) -> int:
        """Return embedding dimension."""
        return self.EMBEDDING_DIMENSION

    @property
    def model_name(self) -> str:
        """Return model name."""
        return self._model_name


# Global singleton instance
_embedding_model: Optional[EmbeddingModel] = None


def get_embedding_model() -> EmbeddingModel:
    """
    Get global embedding model instance.

    Returns:
        Singleton EmbeddingModel instance

    Raises:
        EmbeddingProviderError: If GEMINI_API_KEY is not configured
    """
    global _embedding_model
    if _embedding_model is None:
        _embedding_model = EmbeddingModel()
    return _embedding_model
