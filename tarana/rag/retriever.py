"""
High-level retrieval logic for itinerary generation.

This module provides the entry points used by the agent layer and the
maintenance tooling:
- Indexing catalog activities into the vector store
- Retrieving ranked activities for a free-text request

Retrieval runs a fixed linear pipeline:
QUERY_RECEIVED -> EXPANDED -> CANDIDATES_FETCHED -> SCORED -> FILTERED -> RANKED
The first hard failure propagates; there is no partial-result recovery.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

from pydantic import BaseModel, Field

from tarana.models.activity import Activity
from tarana.models.context import SearchContext
from tarana.rag.errors import MalformedInputError
from tarana.rag.filters import ActivityFilter, PeakHoursFilter, WeatherFilter
from tarana.rag.scoring import MultiDimensionalScorer, ScoredActivity, ScorerConfig
from tarana.rag.vector_store import VectorStore, get_vector_store

logger = logging.getLogger(__name__)

QueryExpander = Callable[[str, SearchContext], List[str]]


class RetrievalStage(str, Enum):
    QUERY_RECEIVED = "query_received"
    EXPANDED = "expanded"
    CANDIDATES_FETCHED = "candidates_fetched"
    SCORED = "scored"
    FILTERED = "filtered"
    RANKED = "ranked"


class RetrievalResult(BaseModel):
    """Ranked activities handed to prompt construction"""
    query: str
    sub_queries: List[str]
    stage: RetrievalStage
    candidates_fetched: int = 0
    activities: List[ScoredActivity] = Field(default_factory=list)


class IndexReport(BaseModel):
    """Outcome of a catalog (re)index run"""
    total: int
    indexed: int
    failed: int
    failed_ids: List[str] = Field(default_factory=list)


def expand_queries(prompt: str, context: SearchContext) -> List[str]:
    """
    Default sub-query expansion.

    Produces the prompt enriched with all interests, plus one sub-query per
    interest ("indoor" is appended on rainy days). "Random" means no interest
    preference and is ignored.

    Example:
        >>> expand_queries("slow day", SearchContext(interests=["Food & Culinary", "Adventure"]))
        ['slow day Food & Culinary Adventure', 'slow day Food & Culinary', 'slow day Adventure']
    """
    interests = [i for i in context.interests if i and i != "Random"]
    queries = [" ".join([prompt, *interests])]

    suffix = " indoor" if context.weather_condition.lower() == "rainy" else ""
    for interest in interests:
        queries.append(f"{prompt} {interest}{suffix}")

    unique = []
    for q in queries:
        if q not in unique:
            unique.append(q)
    return unique


class ActivityRetriever:
    """
    High-level interface for retrieval operations.

    Combines the vector store, the multi-dimensional scorer and the
    external-signal filters into simple workflows.
    """

    def __init__(
        self,
        vector_store: Optional[VectorStore] = None,
        scorer: Optional[MultiDimensionalScorer] = None,
        filters: Optional[Sequence[ActivityFilter]] = None,
        expander: QueryExpander = expand_queries
    ):
        """Initialize retriever with vector store, scorer, filters and query expander."""
        self.vector_store = vector_store or get_vector_store()
        self.scorer = scorer or MultiDimensionalScorer()
        self.filters = list(filters) if filters is not None else []
        self.expander = expander

    async def retrieve(
        self,
        query: str,
        context: Optional[SearchContext] = None,
        match_count: int = 30
    ) -> RetrievalResult:
        """
        Retrieve ranked activities for a free-text request.

        This is the main entry point for the agent layer.

        Args:
            query: User's free-text request
            context: Interests, weather, budget, group size, etc.
            match_count: Nearest neighbors fetched per sub-query

        Returns:
            RetrievalResult with ranked activities (best first)

        Raises:
            MalformedInputError, EmbeddingProviderError, StoreUnavailableError
        """
        if not isinstance(query, str) or not query.strip():
            raise MalformedInputError("Query must be a non-empty string")

        context = context or SearchContext()
        result = RetrievalResult(query=query, sub_queries=[], stage=RetrievalStage.QUERY_RECEIVED)
        self._log_stage(result)

        result.sub_queries = self.expander(query, context)
        result.stage = RetrievalStage.EXPANDED
        self._log_stage(result)

        candidates = await self.vector_store.search(result.sub_queries, match_count)
        result.candidates_fetched = len(candidates)
        result.stage = RetrievalStage.CANDIDATES_FETCHED
        self._log_stage(result)

        ranked = self.scorer.rank(query, candidates, context)
        result.stage = RetrievalStage.SCORED
        self._log_stage(result)

        for activity_filter in self.filters:
            ranked = await activity_filter.apply(ranked, context)
        result.stage = RetrievalStage.FILTERED
        self._log_stage(result)

        result.activities = ranked
        result.stage = RetrievalStage.RANKED
        self._log_stage(result)

        if ranked:
            logger.info(f"Retrieved {len(ranked)} ranked activities for query={query!r}")
        else:
            logger.info(f"No activities matched query={query!r}")

        return result

    @staticmethod
    def _log_stage(result: RetrievalResult) -> None:
        logger.debug(
            f"Retrieval stage={result.stage.value} query={result.query!r} "
            f"sub_queries={len(result.sub_queries)} candidates={result.candidates_fetched}"
        )

    async def index_activity(self, activity: Activity) -> Dict[str, Any]:
        """
        Embed and upsert one catalog activity.

        The title doubles as activity_id, so two activities sharing a title
        overwrite each other.
        """
        return await self.vector_store.upsert_activity(
            activity_id=activity.title,
            text=activity.embedding_text(),
            metadata=activity.to_metadata()
        )

    async def index_catalog(self, activities: Sequence[Activity]) -> IndexReport:
        """
        (Re)index a catalog of activities.

        Every activity is attempted; failures are logged and counted rather
        than aborting the batch.
        """
        outcomes = await asyncio.gather(
            *(self.index_activity(activity) for activity in activities),
            return_exceptions=True
        )

        failed_ids = []
        for activity, outcome in zip(activities, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"Failed to embed activity {activity.title!r}: {outcome}")
                failed_ids.append(activity.title)

        report = IndexReport(
            total=len(activities),
            indexed=len(activities) - len(failed_ids),
            failed=len(failed_ids),
            failed_ids=failed_ids
        )
        logger.info(f"Indexed {report.indexed}/{report.total} activities")
        return report


# Global singleton instance
_retriever: Optional[ActivityRetriever] = None


def get_retriever() -> ActivityRetriever:
    """
    Get global ActivityRetriever instance.

    Returns:
        Singleton ActivityRetriever with weather and peak-hours filters
    """
    global _retriever
    if _retriever is None:
        from tarana.config import settings
        _retriever = ActivityRetriever(
            scorer=MultiDimensionalScorer(ScorerConfig(timezone=settings.local_timezone)),
            filters=[WeatherFilter(), PeakHoursFilter(timezone=settings.local_timezone)]
        )
    return _retriever
