"""
Coaching Domain Models
Sessions and turns of the coach conversation.

A session's turns are append-only; the dialogue engine reads them and
produces a new utterance but never edits history in place.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class ConversationTurn:
    """One utterance in a coaching conversation."""

    speaker: Literal["user", "coach"]
    text: str
    occurred_at: datetime

    @classmethod
    def from_user(cls, text: str, occurred_at: datetime | None = None) -> "ConversationTurn":
        return cls(speaker="user", text=text, occurred_at=occurred_at or _utcnow())

    @classmethod
    def from_coach(cls, text: str, occurred_at: datetime | None = None) -> "ConversationTurn":
        return cls(speaker="coach", text=text, occurred_at=occurred_at or _utcnow())


class DialogueOutcome(str, Enum):
    """Terminal state of one coach reply."""

    SUCCESS = "success"
    UNAVAILABLE = "unavailable"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class CoachReply:
    text: str
    outcome: DialogueOutcome
    failure_reason: str | None = None

    @property
    def used_fallback(self) -> bool:
        return self.outcome is not DialogueOutcome.SUCCESS


class CoachingSession(BaseModel):
    id: int
    user_id: str
    title: str
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class CoachingMessage(BaseModel):
    id: int
    session_id: int
    content: str
    is_user_message: bool
    created_at: datetime = Field(default_factory=_utcnow)

    def to_turn(self) -> ConversationTurn:
        return ConversationTurn(
            speaker="user" if self.is_user_message else "coach",
            text=self.content,
            occurred_at=self.created_at,
        )


class CoachingTopic(BaseModel):
    """A guided lesson track in the coaching library."""

    id: int
    title: str
    description: str
    icon: str


class CoachingContent(BaseModel):
    id: int
    topic_id: int
    title: str
    content: str
    order: int
