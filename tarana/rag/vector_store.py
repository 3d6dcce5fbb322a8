"""
Vector store operations for activity retrieval using Supabase pgvector.

This module handles the itinerary_embeddings table:
- Upserting activity embeddings with metadata
- Similarity search through the match_activity_embeddings RPC (cosine)
- Folding batched search results into a title -> similarity map
"""

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from tarana.models.activity import SimilarityResult
from tarana.rag.cache import SimilarityCache
from tarana.rag.embeddings import EmbeddingModel, get_embedding_model
from tarana.rag.errors import MalformedInputError, StoreUnavailableError
from tarana.utils.database import SupabaseClient

logger = logging.getLogger(__name__)

Query = Union[str, Sequence[str]]


class VectorStore:
    """
    Interface to Supabase pgvector for storing and searching activity embeddings.

    The Supabase client may be None (credentials absent). In that state
    searches return an empty list and writes raise StoreUnavailableError.
    """

    TABLE_NAME = "itinerary_embeddings"
    MATCH_FUNCTION = "match_activity_embeddings"

    def __init__(
        self,
        client: Any = None,
        embedding_model: Optional[EmbeddingModel] = None,
        cache: Optional[SimilarityCache] = None
    ):
        """Initialize vector store with a Supabase client, embedding model and cache."""
        self.supabase = client
        self._embedding_model = embedding_model
        self.cache = cache if cache is not None else SimilarityCache()
        self._warned_unavailable = False

    @property
    def is_available(self) -> bool:
        return self.supabase is not None

    @property
    def embedding_model(self) -> EmbeddingModel:
        # Resolved lazily so an unconfigured store can still answer searches with []
        if self._embedding_model is None:
            self._embedding_model = get_embedding_model()
        return self._embedding_model

    async def upsert_activity(
        self,
        activity_id: str,
        text: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Upsert (insert or overwrite) the embedding row for an activity.

        activity_id is the unique key; a second upsert with the same id replaces
        the stored embedding and metadata.

        Args:
            activity_id: Caller-supplied unique key (currently the activity title)
            text: Text to embed
            metadata: Display metadata stored alongside the vector

        Returns:
            Upserted row

        Raises:
            StoreUnavailableError: If the admin client is missing or the write is rejected
            MalformedInputError: If activity_id or text is empty
            EmbeddingProviderError: If embedding generation fails
        """
        if self.supabase is None:
            logger.error("Supabase admin client is not initialized for upsert_activity")
            raise StoreUnavailableError("Supabase admin client not available")
        if not isinstance(activity_id, str) or not activity_id.strip():
            raise MalformedInputError("activity_id must be a non-empty string")
        if not isinstance(text, str):
            raise MalformedInputError("Text for embedding must be a string")

        embedding = await self.embedding_model.embed_text(text, input_type=EmbeddingModel.INPUT_TYPE)

        row = {
            "activity_id": activity_id,
            "embedding": embedding,
            "metadata": metadata or {},
        }

        try:
            response = self.supabase.table(self.TABLE_NAME)\
                .upsert(row, on_conflict="activity_id")\
                .execute()
        except Exception as e:
            logger.error(f"Failed to upsert embedding for activity_id={activity_id}: {e}")
            raise StoreUnavailableError(f"Store rejected upsert for {activity_id}: {e}") from e

        logger.info(f"Upserted embedding for activity_id={activity_id}")
        if response.data:
            return response.data[0]
        return row

    async def get_activity(self, activity_id: str) -> Optional[Dict[str, Any]]:
        """
        Retrieve a stored row by activity_id.

        Returns:
            Row data or None if not found

        Raises:
            StoreUnavailableError: If the admin client is missing or the read fails
        """
        if self.supabase is None:
            raise StoreUnavailableError("Supabase admin client not available")

        try:
            response = self.supabase.table(self.TABLE_NAME)\
                .select("*")\
                .eq("activity_id", activity_id)\
                .execute()
        except Exception as e:
            logger.error(f"Failed to read activity_id={activity_id}: {e}")
            raise StoreUnavailableError(f"Store rejected read for {activity_id}: {e}") from e

        if response.data:
            return response.data[0]
        return None

    async def search(self, query: Query, match_count: int = 5) -> List[SimilarityResult]:
        """
        Perform similarity search for one query or a batch of sub-queries.

        A list fans out to one independent search per element; results are
        concatenated in input order with no cross-query de-duplication. A
        string is served from the cache when a fresh entry exists for
        (query, match_count).

        Args:
            query: Free-text query or list of sub-queries
            match_count: Results per query (default 5)

        Returns:
            Similarity results ordered by descending similarity per query.
            Empty when the store client is not initialized.

        Raises:
            MalformedInputError: Non-string query, blank text or invalid match_count
            EmbeddingProviderError: Query embedding failed
            StoreUnavailableError: The RPC was rejected
        """
        if self.supabase is None:
            if not self._warned_unavailable:
                logger.warning("Supabase admin client is not initialized; searches return no results")
                self._warned_unavailable = True
            return []

        if isinstance(match_count, bool) or not isinstance(match_count, int) or match_count < 1:
            raise MalformedInputError("match_count must be a positive integer")

        if isinstance(query, (list, tuple)):
            batches = await asyncio.gather(
                *(self._search_one(q, match_count) for q in query)
            )
            return [result for batch in batches for result in batch]

        return await self._search_one(query, match_count)

    async def _search_one(self, query: str, match_count: int) -> List[SimilarityResult]:
        if not isinstance(query, str):
            raise MalformedInputError("Query must be a string")
        if not query.strip():
            raise MalformedInputError("Query must not be empty")

        return await self.cache.get_or_load(
            (query, match_count),
            lambda: self._remote_search(query, match_count)
        )

    async def _remote_search(self, query: str, match_count: int) -> List[SimilarityResult]:
        query_embedding = await self.embedding_model.embed_text(
            query, input_type=EmbeddingModel.QUERY_INPUT_TYPE
        )

        try:
            response = self.supabase.rpc(
                self.MATCH_FUNCTION,
                {
                    "query_embedding": query_embedding,
                    "match_count": match_count
                }
            ).execute()
        except Exception as e:
            logger.error(f"Similarity search failed for query={query!r}: {e}")
            raise StoreUnavailableError(f"Similarity search failed: {e}") from e

        results = [SimilarityResult(**row) for row in (response.data or [])]
        results.sort(key=lambda r: r.similarity, reverse=True)
        results = results[:match_count]

        logger.info(f"Found {len(results)} similar activities for query={query!r}")
        return results


ResultBatches = Union[Iterable[SimilarityResult], Iterable[Iterable[SimilarityResult]]]


def to_score_map(results: ResultBatches) -> Dict[str, float]:
    """
    Fold similarity results into a title -> similarity map.

    Accepts a flat list or a list of per-query result lists. The title is
    metadata["title"] falling back to activity_id; when the same title shows
    up more than once the highest similarity wins.
    """
    score_map: Dict[str, float] = {}

    for item in results:
        batch = [item] if isinstance(item, SimilarityResult) else item
        for result in batch:
            title = result.title
            if title in score_map:
                score_map[title] = max(score_map[title], result.similarity)
            else:
                score_map[title] = result.similarity

    return score_map


# Global singleton instance
_vector_store: Optional[VectorStore] = None


def get_vector_store() -> VectorStore:
    """
    Get global VectorStore instance.

    Returns:
        Singleton VectorStore instance (client may be None if unconfigured)
    """
    global _vector_store
    if _vector_store is None:
        from tarana.config import settings
        _vector_store = VectorStore(
            client=SupabaseClient.get_client(),
            cache=SimilarityCache(
                ttl_seconds=settings.vector_cache_ttl_seconds,
                max_entries=settings.vector_cache_max_entries
            )
        )
    return _vector_store
