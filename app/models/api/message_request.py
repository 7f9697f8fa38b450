# app/models/api/message_request.py
from pydantic import Field

from app.models.api.base import CamelModel


class RefineMessageRequest(CamelModel):
    """Request for POST /api/messages/refine"""

    message: str = Field(..., description="Original message text")
    vibe: str = Field(..., description="Vibe id, e.g. 'playful'")


class RefineAllVibesRequest(CamelModel):
    """Request for POST /api/messages/refine-all-vibes"""

    message: str = Field(..., description="Original message text")


class SendMessageRequest(CamelModel):
    """Request for POST /api/messages"""

    content: str = Field(..., min_length=1, max_length=4000)
    vibe: str | None = None
    original_content: str | None = None
