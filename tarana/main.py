"""
Tarana retrieval API - activity search for AI itinerary generation

ENDPOINTS:
- /activities/search: ranked catalog activities for a free-text request
  (consumed by the agent / prompt-construction layer)
- /reindex: (re)embed catalog activities into the vector store
  (maintenance, guarded by X-Admin-Token)

Embeddings come from Gemini, vectors live in Supabase pgvector; both are
called with the service-role credential and must stay server side.
"""
import hmac
import logging
from typing import Optional
from fastapi import FastAPI, HTTPException, Depends, Header
from .schemas.request import SearchActivitiesRequest, ReindexRequest
from .schemas.response import SearchActivitiesResponse, ReindexResponse, RankedActivity, ErrorResponse
from .rag.errors import EmbeddingProviderError, MalformedInputError, StoreUnavailableError
from .rag.retriever import ActivityRetriever, RetrievalResult, get_retriever
from .middleware.timeout import CustomTimeoutMiddleware
from .config import settings

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Tarana Retrieval API",
    description="Activity retrieval and ranking for AI itinerary generation",
    version="1.0.0"
)

# Upstream calls carry no timeout of their own; bound the whole request
app.add_middleware(CustomTimeoutMiddleware, timeout_seconds=settings.request_timeout_seconds)


def retriever_dependency() -> ActivityRetriever:
    """Resolve the shared retriever (overridden in tests)"""
    return get_retriever()


def reindex_secret_dependency() -> Optional[str]:
    return settings.reindex_secret


def _error(status_code: int, error: str, message: str, details: Optional[dict] = None) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail={
            "error": error,
            "message": message,
            "details": details or {}
        }
    )


def _to_ranked(result: RetrievalResult, limit: int) -> SearchActivitiesResponse:
    activities = []
    for scored in result.activities[:limit]:
        breakdown = scored.scores.model_dump()
        breakdown.pop("composite", None)
        activities.append(RankedActivity(
            activity_id=scored.activity_id,
            title=scored.activity.title,
            desc=scored.activity.desc,
            tags=scored.activity.tags,
            time=scored.activity.time,
            image=scored.activity.image,
            similarity=scored.similarity,
            score=scored.scores.composite,
            confidence=scored.confidence,
            breakdown=breakdown,
            reasoning=scored.reasoning
        ))
    return SearchActivitiesResponse(
        query=result.query,
        sub_queries=result.sub_queries,
        candidates_fetched=result.candidates_fetched,
        activities=activities
    )


@app.get("/")
async def root():
    """Health check endpoint"""
    return {"status": "ok", "message": "Tarana Retrieval API is running"}


@app.get("/health")
async def health():
    """Health check endpoint"""
    return {"status": "healthy"}


@app.post(
    "/activities/search",
    response_model=SearchActivitiesResponse,
    responses={
        400: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        503: {"model": ErrorResponse}
    }
)
async def search_activities(
    request: SearchActivitiesRequest,
    retriever: ActivityRetriever = Depends(retriever_dependency)
):
    """
    Retrieve ranked activities for a free-text request

    Args:
        request: Query, ranking context and result budget
        retriever: Shared ActivityRetriever

    Returns:
        SearchActivitiesResponse with ranked activities (best first)

    Raises:
        HTTPException: 400 malformed input, 502 embedding provider failure,
            503 vector store unavailable
    """
    try:
        result = await retriever.retrieve(
            request.query,
            request.context,
            match_count=request.match_count
        )
        return _to_ranked(result, request.limit)

    except MalformedInputError as e:
        raise _error(400, "MalformedInputError", e.message)

    except EmbeddingProviderError as e:
        logger.error(f"Embedding provider failed during search: {e}")
        raise _error(502, "EmbeddingProviderError", "Embedding provider failed", {"original_error": e.message})

    except StoreUnavailableError as e:
        logger.error(f"Vector store unavailable during search: {e}")
        raise _error(503, "StoreUnavailableError", "Vector store unavailable", {"original_error": e.message})


@app.post(
    "/reindex",
    response_model=ReindexResponse,
    responses={
        401: {"model": ErrorResponse},
        503: {"model": ErrorResponse}
    }
)
async def reindex(
    request: ReindexRequest,
    x_admin_token: str = Header(default=""),
    retriever: ActivityRetriever = Depends(retriever_dependency),
    reindex_secret: Optional[str] = Depends(reindex_secret_dependency)
):
    """
    Re-embed and upsert catalog activities

    Requires X-Admin-Token to match REINDEX_SECRET. Individual activity
    failures are counted, not raised.

    Returns:
        ReindexResponse with total / indexed / failed counts
    """
    if not reindex_secret:
        logger.error("REINDEX_SECRET is not set. Aborting reindex.")
        raise _error(401, "Unauthorized", "Reindexing is not configured")

    if not hmac.compare_digest(x_admin_token.encode("utf-8"), reindex_secret.encode("utf-8")):
        raise _error(401, "Unauthorized", "Invalid admin token")

    if not retriever.vector_store.is_available:
        raise _error(503, "StoreUnavailableError", "Vector store unavailable")

    report = await retriever.index_catalog(request.activities)
    return ReindexResponse(total=report.total, indexed=report.indexed, failed=report.failed)
