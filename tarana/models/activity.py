"""Activity and embedding models matching the itinerary_embeddings table"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, field_validator

EMBEDDING_DIMENSION = 768


class Activity(BaseModel):
    """Catalog activity as written into embedding metadata"""
    title: str = Field(..., min_length=1, description="Display title (also used as activity_id)")
    desc: str = Field("", description="Free-text description")
    tags: List[str] = Field(default_factory=list, description="Tags such as 'Indoor-Friendly'")
    time: str = Field("", description="Ideal visiting window (e.g. '8:00 AM - 10:00 AM')")
    peak_hours: Optional[str] = Field(None, description="Congested windows, e.g. '10 am - 11 am / 4 pm - 6 pm'")
    type: Optional[str] = Field(None, description="Activity category (Food, Nature, ...)")
    image: str = Field("", description="Image URL")

    @classmethod
    def from_metadata(cls, activity_id: str, metadata: Optional[Dict[str, Any]]) -> "Activity":
        """Build an Activity from stored metadata, falling back to activity_id for the title"""
        metadata = metadata or {}
        tags = metadata.get("tags") or []
        return cls(
            title=metadata.get("title") or activity_id,
            desc=metadata.get("desc") or "",
            tags=[str(t) for t in tags] if isinstance(tags, list) else [],
            time=metadata.get("time") or "",
            peak_hours=metadata.get("peak_hours") or metadata.get("peakHours"),
            type=metadata.get("type"),
            image=metadata.get("image") or "",
        )

    def embedding_text(self) -> str:
        """Text sent to the embedding provider when indexing"""
        return f"{self.title}. {self.desc}"

    def to_metadata(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "desc": self.desc,
            "tags": self.tags,
            "time": self.time,
            "image": self.image,
            "peak_hours": self.peak_hours,
            "type": self.type,
        }


class ActivityEmbedding(BaseModel):
    """Row of the itinerary_embeddings table"""
    id: Optional[str] = None
    activity_id: str
    embedding: List[float]
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None

    @field_validator("embedding")
    @classmethod
    def validate_dimension(cls, v):
        if len(v) != EMBEDDING_DIMENSION:
            raise ValueError(f"Embedding must have {EMBEDDING_DIMENSION} dimensions, got {len(v)}")
        return v


class SimilarityResult(BaseModel):
    """One nearest-neighbor hit returned by match_activity_embeddings"""
    activity_id: str
    similarity: float = Field(..., description="Cosine similarity in [-1, 1]")
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("similarity")
    @classmethod
    def clamp_similarity(cls, v):
        # pgvector float rounding can land just outside the cosine range
        return max(-1.0, min(1.0, v))

    @field_validator("metadata", mode="before")
    @classmethod
    def default_metadata(cls, v):
        return v or {}

    @property
    def title(self) -> str:
        return self.metadata.get("title") or self.activity_id
