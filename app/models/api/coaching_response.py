# app/models/api/coaching_response.py
from datetime import datetime

from app.models.api.base import CamelModel


class CoachResponse(CamelModel):
    """Response for POST /api/coaching/generate-response"""

    message: str
    error: str | None = None


class CoachingSessionResponse(CamelModel):
    id: int
    title: str
    created_at: datetime
    updated_at: datetime


class CoachingMessageResponse(CamelModel):
    id: int
    session_id: int
    content: str
    is_user_message: bool
    created_at: datetime


class CoachingTopicResponse(CamelModel):
    id: int
    title: str
    description: str
    icon: str


class CoachingContentResponse(CamelModel):
    id: int
    topic_id: int
    title: str
    content: str
    order: int


class CoachingTopicDetailResponse(CamelModel):
    """Response for GET /api/coaching/topics/{id}"""

    topic: CoachingTopicResponse
    contents: list[CoachingContentResponse]
