"""Response schemas for API endpoints"""
from typing import Dict, List, Optional
from pydantic import BaseModel, Field


class RankedActivity(BaseModel):
    """Ranked activity returned to the agent layer"""
    activity_id: str = Field(..., description="Stored activity key")
    title: str = Field(..., description="Activity title")
    desc: str = Field("", description="Activity description")
    tags: List[str] = Field(default_factory=list, description="Activity tags")
    time: str = Field("", description="Ideal visiting window")
    image: str = Field("", description="Image URL")
    similarity: float = Field(..., description="Vector similarity to the request")
    score: float = Field(..., description="Final weighted ranking score (0-1)")
    confidence: float = Field(..., description="Confidence in the ranking (0-1)")
    breakdown: Dict[str, float] = Field(default_factory=dict, description="Per-dimension scores")
    reasoning: List[str] = Field(default_factory=list, description="Why this activity ranked here")


class SearchActivitiesResponse(BaseModel):
    """Response for /activities/search"""
    query: str = Field(..., description="Original request")
    sub_queries: List[str] = Field(..., description="Expanded sub-queries sent to the vector store")
    candidates_fetched: int = Field(..., description="Raw nearest-neighbor hits before ranking")
    activities: List[RankedActivity] = Field(default_factory=list, description="Ranked activities, best first")


class ReindexResponse(BaseModel):
    """Response for /reindex"""
    total: int
    indexed: int
    failed: int


class ErrorResponse(BaseModel):
    """Error response"""
    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Error message")
    details: Optional[dict] = Field(None, description="Additional error details")
