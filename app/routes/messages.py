"""
messages.py
-----------
Purpose:
    Partner messaging and vibe refinement endpoints.

Usage:
    1. GET  /api/vibes                        - List the vibe catalog
    2. POST /api/messages/refine              - Rewrite a draft in one vibe
    3. POST /api/messages/refine-all-vibes    - Rewrite a draft in every vibe (one model call)
    4. GET  /api/messages                     - Conversation with the connected partner
    5. POST /api/messages                     - Send a (possibly refined) message

Refinement never fails the request because of the model: fallbacks return
200 with the original text and an `error` note. Only bad input is a 400.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from app.dependencies import get_current_user, get_message_refiner, get_store
from app.infrastructure.observability.logging import get_logger
from app.models.api.message_request import (
    RefineAllVibesRequest,
    RefineMessageRequest,
    SendMessageRequest,
)
from app.models.api.message_response import (
    PartnerMessageResponse,
    RefineAllVibesResponse,
    RefineMessageResponse,
    VibeResponse,
)
from app.models.domain.user_domain import UserProfile
from app.models.domain.vibe_domain import VIBE_CATALOG
from app.services.message_refiner import MessageAliases, MessageRefiner
from app.services.store import InMemoryStore

router = APIRouter(prefix="/api", tags=["messages"])
logger = get_logger(__name__)

_FALLBACK_NOTES = {
    "not configured": "AI message refinement is not configured.",
    "rate limited": "AI message refinement is rate limited right now.",
    "quota exceeded": "AI message refinement quota has been exceeded.",
    "provider error": "AI message refinement failed.",
    "incomplete response": "Some vibes could not be generated.",
}


def fallback_note(failure_reason: str | None, plural: bool = False) -> str | None:
    """User-facing note for a refinement fallback; None when no fallback happened."""
    if failure_reason is None:
        return None
    lead = _FALLBACK_NOTES.get(failure_reason, "AI message refinement failed.")
    return f"{lead} Using original message{'s' if plural else ''} instead."


def aliases_for(user: UserProfile) -> MessageAliases:
    return MessageAliases(sender=user.nickname, recipient=user.partner_nickname)


@router.get("/vibes", response_model=list[VibeResponse])
async def list_vibes(user: UserProfile = Depends(get_current_user)):
    return [
        VibeResponse(id=vibe.id, name=vibe.display_name, description=vibe.description)
        for vibe in VIBE_CATALOG
    ]


@router.post("/messages/refine", response_model=RefineMessageResponse, response_model_exclude_none=True)
async def refine_message(
    request: RefineMessageRequest,
    user: UserProfile = Depends(get_current_user),
    refiner: MessageRefiner = Depends(get_message_refiner),
):
    """
    Rewrite a draft message in a single vibe.

    Raises:
        400: Empty message or unknown vibe id
    """
    if not request.message.strip() or not request.vibe.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Message and vibe are required"
        )
    if request.vibe not in VIBE_CATALOG:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unknown vibe: {request.vibe}"
        )

    result = await refiner.refine_one(request.message, request.vibe, aliases_for(user))

    logger.info(
        "Refine request handled",
        user_id=user.user_id,
        vibe=request.vibe,
        used_fallback=result.used_fallback,
    )
    return RefineMessageResponse(
        refined_message=result.refined_text,
        error=fallback_note(result.failure_reason) if result.used_fallback else None,
    )


@router.post(
    "/messages/refine-all-vibes",
    response_model=RefineAllVibesResponse,
    response_model_exclude_none=True,
)
async def refine_message_all_vibes(
    request: RefineAllVibesRequest,
    user: UserProfile = Depends(get_current_user),
    refiner: MessageRefiner = Depends(get_message_refiner),
):
    """
    Rewrite a draft message in every catalog vibe.

    Raises:
        400: Empty message
    """
    if not request.message.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Message text is required"
        )

    result = await refiner.refine_all(request.message, aliases_for(user))

    logger.info(
        "Refine-all request handled",
        user_id=user.user_id,
        vibes=len(result.variants),
        used_fallback=result.used_fallback,
    )
    return RefineAllVibesResponse(
        refined_messages=result.variants,
        error=fallback_note(result.failure_reason, plural=True) if result.used_fallback else None,
    )


@router.get("/messages", response_model=list[PartnerMessageResponse])
async def list_messages(
    user: UserProfile = Depends(get_current_user),
    store: InMemoryStore = Depends(get_store),
):
    if not user.partner_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No partner connected")

    return await store.list_messages(user.user_id, user.partner_id)


@router.post(
    "/messages", response_model=PartnerMessageResponse, status_code=status.HTTP_201_CREATED
)
async def send_message(
    request: SendMessageRequest,
    user: UserProfile = Depends(get_current_user),
    store: InMemoryStore = Depends(get_store),
):
    """
    Persist a message to the connected partner. A vibe-tagged message also
    records an activity and notifies the partner.

    Raises:
        400: No partner connected, or unknown vibe id
    """
    if not user.partner_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No partner connected")

    vibe = None
    if request.vibe:
        definition = VIBE_CATALOG.get(request.vibe)
        if definition is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unknown vibe: {request.vibe}"
            )
        vibe = definition.id

    message = await store.create_message(
        sender_id=user.user_id,
        recipient_id=user.partner_id,
        content=request.content,
        vibe=vibe,
        original_content=request.original_content,
    )

    if vibe:
        await store.create_activity(
            user.user_id,
            "message",
            f"Message sent to {user.partner_nickname or 'your partner'} with a {vibe} tone",
        )
    await store.create_notification(
        user.partner_id,
        "message",
        f"New message from {user.nickname or user.first_name or 'your partner'}",
        request.content[:120],
        related_id=message.id,
    )

    return message
