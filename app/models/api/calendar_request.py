# app/models/api/calendar_request.py
from datetime import datetime
from typing import Literal

from pydantic import Field, model_validator

from app.models.api.base import CamelModel


class CreateEventRequest(CamelModel):
    """Request for POST /api/calendar/events"""

    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    location: str | None = None
    start_time: datetime
    end_time: datetime
    all_day: bool = False
    visibility: Literal["private", "partner", "public"] = "partner"
    is_task: bool = False

    @model_validator(mode="after")
    def _check_time_order(self) -> "CreateEventRequest":
        if self.end_time < self.start_time:
            raise ValueError("endTime must not be before startTime")
        return self
