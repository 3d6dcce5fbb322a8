"""
Retrieval module for Tarana itinerary generation.

This module finds catalog activities that fit a traveller's free-text
request and ranks them before they are handed to prompt construction.

Main components:
- embeddings: Text-to-vector conversion using Gemini embeddings (768 dims)
- vector_store: Supabase pgvector operations (upsert, cached search)
- scoring: Multi-dimensional ranking (vector, content, fuzzy, context, time, diversity)
- filters: Weather / peak hours / traffic filters
- retriever: High-level workflows (index catalog, retrieve ranked activities)

Usage:
    # Reindex the catalog
    from tarana.rag import get_retriever
    retriever = get_retriever()
    report = await retriever.index_catalog(activities)

    # Retrieve ranked activities
    result = await retriever.retrieve(
        "quiet place to relax",
        SearchContext(interests=["Nature & Scenery"], weather_condition="clear")
    )
"""

from tarana.rag.errors import (
    RetrievalError,
    EmbeddingProviderError,
    StoreUnavailableError,
    MalformedInputError
)

from tarana.rag.embeddings import (
    EmbeddingModel,
    get_embedding_model
)

from tarana.rag.cache import SimilarityCache

from tarana.rag.vector_store import (
    VectorStore,
    get_vector_store,
    to_score_map
)

from tarana.rag.scoring import (
    MultiDimensionalScorer,
    ScorerConfig,
    ScoringWeights,
    ScoredActivity
)

from tarana.rag.filters import (
    ActivityFilter,
    WeatherFilter,
    PeakHoursFilter,
    TrafficFilter
)

from tarana.rag.retriever import (
    ActivityRetriever,
    RetrievalResult,
    RetrievalStage,
    IndexReport,
    expand_queries,
    get_retriever
)

__all__ = [
    # Errors
    "RetrievalError",
    "EmbeddingProviderError",
    "StoreUnavailableError",
    "MalformedInputError",

    # Embeddings
    "EmbeddingModel",
    "get_embedding_model",

    # Vector Store
    "SimilarityCache",
    "VectorStore",
    "get_vector_store",
    "to_score_map",

    # Scoring
    "MultiDimensionalScorer",
    "ScorerConfig",
    "ScoringWeights",
    "ScoredActivity",

    # Filters
    "ActivityFilter",
    "WeatherFilter",
    "PeakHoursFilter",
    "TrafficFilter",

    # Retriever (main interface)
    "ActivityRetriever",
    "RetrievalResult",
    "RetrievalStage",
    "IndexReport",
    "expand_queries",
    "get_retriever",
]
