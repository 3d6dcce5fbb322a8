"""Search context supplied by the agent layer"""
from datetime import datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, Field


class SearchContext(BaseModel):
    """User constraints and situational signals used for ranking"""
    interests: List[str] = Field(default_factory=list, description="e.g. 'Nature & Scenery', 'Food & Culinary'")
    weather_condition: str = Field("default", description="rainy, clear, cloudy, cold, ...")
    time_of_day: Literal["morning", "afternoon", "evening", "anytime"] = "anytime"
    budget: Literal["budget", "mid-range", "luxury"] = "mid-range"
    group_size: int = Field(1, ge=1)
    duration_days: int = Field(1, ge=1)
    current_time: Optional[datetime] = Field(
        None,
        description="Reference time for peak-hours checks (defaults to now in the local timezone)"
    )
