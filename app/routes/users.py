"""
users.py
--------
Purpose:
    Profile, onboarding, partner linking, activity feed and notifications.

Usage:
    1. GET  /api/users/me                     - Current profile
    2. POST /api/onboarding                   - Save marital status + relationship condition
    3. PUT  /api/users/nicknames              - Set own / partner nickname
    4. POST /api/users/invite                 - Issue a single-use partner invite code
    5. POST /api/users/accept-invite          - Connect with the invite's owner
    6. GET  /api/activities                   - Recent activity, newest first
    7. GET  /api/notifications                - Notifications, newest first
    8. POST /api/notifications/{id}/read      - Mark one notification read
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.dependencies import get_current_user, get_store
from app.infrastructure.observability.logging import get_logger
from app.models.api.user_request import (
    AcceptInviteRequest,
    NicknameUpdateRequest,
    OnboardingRequest,
)
from app.models.api.user_response import (
    ActivityResponse,
    InviteCodeResponse,
    NotificationResponse,
    UserProfileResponse,
)
from app.models.domain.user_domain import UserProfile
from app.services.store import InMemoryStore, NotFoundError, StoreError

router = APIRouter(prefix="/api", tags=["users"])
logger = get_logger(__name__)


@router.get("/users/me", response_model=UserProfileResponse)
async def get_me(user: UserProfile = Depends(get_current_user)):
    return user


@router.post("/onboarding", response_model=UserProfileResponse)
async def complete_onboarding(
    request: OnboardingRequest,
    user: UserProfile = Depends(get_current_user),
    store: InMemoryStore = Depends(get_store),
):
    """
    Store the onboarding answers and mark onboarding complete.

    Returns:
        UserProfileResponse: The updated profile

    Raises:
        401: Invalid authentication token
        422: Unknown marital status or relationship condition
    """
    updated = await store.update_user(
        user.user_id,
        marital_status=request.marital_status,
        relationship_condition=request.relationship_condition,
        onboarding_completed=True,
    )
    await store.create_activity(
        user.user_id, "onboarding", "Completed relationship profile setup"
    )

    logger.info(
        "Onboarding completed",
        user_id=user.user_id,
        marital_status=request.marital_status.value,
        relationship_condition=request.relationship_condition.value,
    )
    return updated


@router.put("/users/nicknames", response_model=UserProfileResponse)
async def update_nicknames(
    request: NicknameUpdateRequest,
    user: UserProfile = Depends(get_current_user),
    store: InMemoryStore = Depends(get_store),
):
    changes = request.model_dump(exclude_unset=True)
    if not changes:
        return user

    updated = await store.update_user(user.user_id, **changes)
    logger.info("Nicknames updated", user_id=user.user_id, fields=sorted(changes))
    return updated


@router.post("/users/invite", response_model=InviteCodeResponse)
async def create_invite(
    user: UserProfile = Depends(get_current_user),
    store: InMemoryStore = Depends(get_store),
):
    """
    Issue an invite code the partner can redeem.

    Raises:
        400: Caller already has a partner connected
    """
    if user.partner_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Partner already connected"
        )

    code = await store.create_invite_code(user.user_id)
    logger.info("Invite code issued", user_id=user.user_id)
    return InviteCodeResponse(invite_code=code)


@router.post("/users/accept-invite", response_model=UserProfileResponse)
async def accept_invite(
    request: AcceptInviteRequest,
    user: UserProfile = Depends(get_current_user),
    store: InMemoryStore = Depends(get_store),
):
    """
    Redeem a partner's invite code.

    Raises:
        400: Caller already has a partner, used their own code, or the
             code's owner has since connected with someone else
        404: Unknown invite code
    """
    if user.partner_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Partner already connected"
        )

    try:
        inviter = await store.accept_invite(user.user_id, request.invite_code.strip())
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except StoreError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    for uid in (user.user_id, inviter.user_id):
        await store.create_activity(uid, "partner", "Connected with your partner")
    await store.create_notification(
        inviter.user_id,
        "partner",
        "Partner connected",
        "Your partner accepted your invite.",
    )

    logger.info("Partners linked via invite", user_id=user.user_id, partner_id=inviter.user_id)
    return await store.get_user(user.user_id)


@router.get("/activities", response_model=list[ActivityResponse])
async def list_activities(
    limit: int = Query(20, ge=1, le=100),
    user: UserProfile = Depends(get_current_user),
    store: InMemoryStore = Depends(get_store),
):
    return await store.list_activities(user.user_id, limit=limit)


@router.get("/notifications", response_model=list[NotificationResponse])
async def list_notifications(
    unread_only: bool = Query(False, alias="unreadOnly"),
    user: UserProfile = Depends(get_current_user),
    store: InMemoryStore = Depends(get_store),
):
    return await store.list_notifications(user.user_id, unread_only=unread_only)


@router.post("/notifications/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: int,
    user: UserProfile = Depends(get_current_user),
    store: InMemoryStore = Depends(get_store),
):
    try:
        return await store.mark_notification_read(user.user_id, notification_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
