# app/models/api/user_response.py
from datetime import datetime

from app.models.api.base import CamelModel
from app.models.domain.user_domain import MaritalStatus, RelationshipCondition


class UserProfileResponse(CamelModel):
    """The caller's own profile."""

    user_id: str
    email: str | None = None
    first_name: str | None = None
    nickname: str | None = None
    partner_id: str | None = None
    partner_nickname: str | None = None
    marital_status: MaritalStatus | None = None
    relationship_condition: RelationshipCondition | None = None
    onboarding_completed: bool
    updated_at: datetime


class InviteCodeResponse(CamelModel):
    invite_code: str


class ActivityResponse(CamelModel):
    id: int
    type: str
    description: str
    created_at: datetime


class NotificationResponse(CamelModel):
    id: int
    type: str
    title: str
    content: str
    read: bool
    related_id: int | None = None
    created_at: datetime
