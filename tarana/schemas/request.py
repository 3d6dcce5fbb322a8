"""Request schemas for API endpoints"""
from typing import List
from pydantic import BaseModel, Field, field_validator
from ..models.activity import Activity
from ..models.context import SearchContext


class SearchActivitiesRequest(BaseModel):
    """Request body for /activities/search"""
    query: str = Field(..., min_length=1, max_length=500, description="Free-text request from the traveller")
    context: SearchContext = Field(default_factory=SearchContext, description="Ranking context")
    match_count: int = Field(30, ge=1, le=100, description="Nearest neighbors fetched per sub-query")
    limit: int = Field(10, ge=1, le=50, description="Maximum ranked activities returned")

    @field_validator("query")
    @classmethod
    def query_not_blank(cls, v):
        """Reject whitespace-only queries"""
        if not v.strip():
            raise ValueError("Query cannot be blank")
        return v.strip()


class ReindexRequest(BaseModel):
    """Request body for /reindex"""
    activities: List[Activity] = Field(..., min_length=1, description="Catalog activities to (re)index")
