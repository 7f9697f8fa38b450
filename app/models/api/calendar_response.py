# app/models/api/calendar_response.py
from datetime import datetime

from app.models.api.base import CamelModel


class CalendarEventResponse(CamelModel):
    """Calendar event as returned to the web client."""

    id: int
    creator_id: str
    title: str
    description: str | None = None
    location: str | None = None
    start_time: datetime
    end_time: datetime
    all_day: bool
    visibility: str
    is_task: bool
    created_at: datetime
