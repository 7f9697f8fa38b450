from datetime import UTC, datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class MaritalStatus(str, Enum):
    SINGLE = "single"
    DATING = "dating"
    ENGAGED = "engaged"
    MARRIED = "married"
    DIVORCED = "divorced"
    WIDOWED = "widowed"


class RelationshipCondition(str, Enum):
    CRITICAL = "critical"
    STABLE = "stable"
    IMPROVING = "improving"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class UserProfile(BaseModel):
    """Stored user (account + partner link + onboarding answers)."""

    model_config = ConfigDict(extra="allow")

    user_id: str
    email: str | None = None
    first_name: str | None = None
    nickname: str | None = None
    partner_id: str | None = None
    partner_nickname: str | None = None
    invite_code: str | None = None

    marital_status: MaritalStatus | None = None
    relationship_condition: RelationshipCondition | None = None
    onboarding_completed: bool = False

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class UserProfileContext(BaseModel):
    """
    Read-only snapshot of the bits of a profile the coach and radar care about.
    Neither consumer mutates it.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str | None = None
    self_alias: str | None = None
    partner_alias: str | None = None
    relationship_condition: RelationshipCondition | None = None
    marital_status: MaritalStatus | None = None

    @classmethod
    def from_profile(cls, profile: UserProfile | None) -> "UserProfileContext":
        if profile is None:
            return cls()
        return cls(
            user_id=profile.user_id,
            self_alias=profile.nickname or profile.first_name,
            partner_alias=profile.partner_nickname,
            relationship_condition=profile.relationship_condition,
            marital_status=profile.marital_status,
        )


class PartnerMessage(BaseModel):
    """A message sent between partners."""

    id: int
    sender_id: str
    recipient_id: str
    content: str
    vibe: str | None = None
    original_content: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)


class Activity(BaseModel):
    id: int
    user_id: str
    type: str
    description: str
    created_at: datetime = Field(default_factory=_utcnow)


class Notification(BaseModel):
    id: int
    user_id: str
    type: Literal["message", "activity", "coaching", "partner", "system", "calendar"]
    title: str
    content: str
    read: bool = False
    related_id: int | None = None
    created_at: datetime = Field(default_factory=_utcnow)
