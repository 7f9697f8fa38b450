# app/models/api/message_response.py
from datetime import datetime

from app.models.api.base import CamelModel


class RefineMessageResponse(CamelModel):
    """Response for POST /api/messages/refine (error only present on fallback)"""

    refined_message: str
    error: str | None = None


class RefineAllVibesResponse(CamelModel):
    """Response for POST /api/messages/refine-all-vibes"""

    refined_messages: dict[str, str]
    error: str | None = None


class VibeResponse(CamelModel):
    id: str
    name: str
    description: str


class PartnerMessageResponse(CamelModel):
    id: int
    sender_id: str
    recipient_id: str
    content: str
    vibe: str | None = None
    original_content: str | None = None
    created_at: datetime
