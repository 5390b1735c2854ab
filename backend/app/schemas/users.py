"""
Member directory schemas.
"""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class MemberResponse(BaseModel):
    """Public view of a group member (no email)."""

    id: UUID
    username: str
    display_name: str | None = None
    avatar_url: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MemberStatsResponse(BaseModel):
    """Watch/rating totals for one member."""

    user_id: UUID
    movies_watched: int
    ratings_given: int
    avg_rating: float
