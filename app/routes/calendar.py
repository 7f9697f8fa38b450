"""
Calendar API Routes
Shared partner calendar: the caller's own events plus events their partner shares.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from app.dependencies import get_current_user, get_store
from app.infrastructure.observability.logging import get_logger
from app.models.api.calendar_request import CreateEventRequest
from app.models.api.calendar_response import CalendarEventResponse
from app.models.domain.user_domain import UserProfile
from app.services.store import InMemoryStore, StoreError

logger = get_logger(__name__)

router = APIRouter(prefix="/api/calendar", tags=["calendar"])


@router.get("/events", response_model=list[CalendarEventResponse])
async def list_events(
    user: UserProfile = Depends(get_current_user),
    store: InMemoryStore = Depends(get_store),
):
    """List own and partner-shared events, soonest first."""
    return await store.list_calendar_events(user.user_id)


@router.post("/events", response_model=CalendarEventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
    request: CreateEventRequest,
    user: UserProfile = Depends(get_current_user),
    store: InMemoryStore = Depends(get_store),
):
    """Create a calendar event; shared events notify the partner."""
    try:
        event = await store.create_calendar_event(
            user.user_id,
            request.title,
            request.start_time,
            request.end_time,
            description=request.description,
            location=request.location,
            all_day=request.all_day,
            visibility=request.visibility,
            is_task=request.is_task,
        )
    except StoreError as e:
        logger.warning("Calendar event rejected", user_id=user.user_id, error=str(e))
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    await store.create_activity(user.user_id, "calendar", f"Added event: {event.title}")
    if user.partner_id and event.visible_to_partner():
        await store.create_notification(
            user.partner_id,
            "calendar",
            "New shared event",
            f"{event.title} on {event.start_date_label()}",
            related_id=event.id,
        )

    logger.info(
        "Calendar event created",
        user_id=user.user_id,
        event_id=event.id,
        visibility=event.visibility,
    )
    return event
