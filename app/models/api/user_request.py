# app/models/api/user_request.py
from pydantic import Field

from app.models.api.base import CamelModel
from app.models.domain.user_domain import MaritalStatus, RelationshipCondition


class OnboardingRequest(CamelModel):
    """Request body for POST /api/onboarding"""

    marital_status: MaritalStatus
    relationship_condition: RelationshipCondition


class NicknameUpdateRequest(CamelModel):
    """Request body for PUT /api/users/nicknames"""

    nickname: str | None = Field(None, max_length=50)
    partner_nickname: str | None = Field(None, max_length=50)


class AcceptInviteRequest(CamelModel):
    """Request body for POST /api/users/accept-invite"""

    invite_code: str = Field(..., min_length=1)
