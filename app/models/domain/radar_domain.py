"""
Relationship radar domain models.

Insights are transient: recomputed on every request and never stored.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum


class RadarInsightKind(str, Enum):
    MESSAGE_TONE = "message_tone"
    CALENDAR_STRESS = "calendar_stress"
    RELATIONSHIP_HEALTH = "relationship_health"
    COMMUNICATION_TIP = "communication_tip"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def parse(cls, value: object, default: "Severity") -> "Severity":
        """Lenient parse of model output; anything unknown maps to ``default``."""
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                return default
        return default


@dataclass(frozen=True, slots=True)
class RadarInsight:
    kind: RadarInsightKind
    title: str
    description: str
    severity: Severity
    action_item: str | None = None
    produced_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True, slots=True)
class CalendarStressMetrics:
    """Local metrics computed over the upcoming week before asking the model."""

    window_event_count: int
    events_per_day: float
    all_day_events: int
    stressful_events: int
