# app/models/api/radar_response.py
from datetime import datetime
from typing import Literal

from app.models.api.base import CamelModel
from app.models.domain.radar_domain import RadarInsight


class RadarInsightResponse(CamelModel):
    """One element of GET /api/relationship-radar"""

    type: Literal["message_tone", "calendar_stress", "relationship_health", "communication_tip"]
    title: str
    description: str
    severity: Literal["low", "medium", "high"]
    action_item: str | None = None
    created_at: datetime

    @classmethod
    def from_insight(cls, insight: RadarInsight) -> "RadarInsightResponse":
        return cls(
            type=insight.kind.value,
            title=insight.title,
            description=insight.description,
            severity=insight.severity.value,
            action_item=insight.action_item,
            created_at=insight.produced_at,
        )
