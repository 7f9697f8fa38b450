# app/models/api/coaching_request.py
from typing import Literal

from pydantic import Field

from app.models.api.base import CamelModel


class HistoryItem(CamelModel):
    """One turn of client-held conversation history."""

    content: str
    is_user_message: bool


class GenerateCoachResponseRequest(CamelModel):
    """Request for POST /api/coaching/generate-response"""

    message: str
    conversation_history: list[HistoryItem] = Field(default_factory=list)
    mode: Literal["ai", "rules"] = Field(
        "ai", description="'rules' selects the keyword-based coach that never calls the model"
    )


class CreateCoachingSessionRequest(CamelModel):
    """Request for POST /api/coaching/sessions"""

    title: str = Field("New coaching session", min_length=1, max_length=200)


class CreateCoachingMessageRequest(CamelModel):
    """Request for POST /api/coaching/sessions/{id}/messages"""

    content: str
    is_user_message: bool = True
