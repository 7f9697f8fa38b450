# app/models/domain/calendar_domain.py
"""
Calendar Domain Models
Shared calendar events with the bits of business logic the radar needs.
"""

from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, Field

STRESS_KEYWORDS = ("meeting", "deadline", "important", "urgent")


def _utcnow() -> datetime:
    return datetime.now(UTC)


class CalendarEvent(BaseModel):
    """Domain model for calendar events with business logic."""

    id: int
    creator_id: str
    title: str
    description: str | None = None
    location: str | None = None
    start_time: datetime
    end_time: datetime
    all_day: bool = False
    visibility: Literal["private", "partner", "public"] = "partner"
    is_task: bool = False
    created_at: datetime = Field(default_factory=_utcnow)

    def start_at_utc(self) -> datetime:
        start_time = self.start_time
        if start_time.tzinfo is None:
            start_time = start_time.replace(tzinfo=UTC)
        return start_time

    def starts_between(self, window_start: datetime, window_end: datetime) -> bool:
        """Check if the event starts inside [window_start, window_end]."""
        return window_start <= self.start_at_utc() <= window_end

    def is_stressful(self) -> bool:
        """Check if the title reads like a high-pressure commitment."""
        title = self.title.lower()
        return any(keyword in title for keyword in STRESS_KEYWORDS)

    def visible_to_partner(self) -> bool:
        return self.visibility in ("partner", "public")

    def start_date_label(self) -> str:
        return self.start_at_utc().strftime("%Y-%m-%d")
