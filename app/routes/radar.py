"""
Relationship Radar API Route
Aggregated relationship insights for the authenticated user.
"""

from fastapi import APIRouter, Depends

from app.dependencies import get_current_user, get_radar_service, get_store
from app.infrastructure.observability.logging import get_logger
from app.models.api.radar_response import RadarInsightResponse
from app.models.domain.user_domain import UserProfile, UserProfileContext
from app.services.relationship_radar import RelationshipRadarService
from app.services.store import InMemoryStore

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["radar"])


@router.get("/relationship-radar", response_model=list[RadarInsightResponse])
async def get_relationship_radar(
    user: UserProfile = Depends(get_current_user),
    store: InMemoryStore = Depends(get_store),
    radar: RelationshipRadarService = Depends(get_radar_service),
):
    """
    Run the radar analyses over the caller's partner conversation and calendar.

    Always 200: when no analysis contributes, the list holds a single
    onboarding insight.
    """
    messages = (
        await store.list_messages(user.user_id, user.partner_id) if user.partner_id else []
    )
    events = await store.list_calendar_events(user.user_id)

    insights = await radar.generate_insights(
        UserProfileContext.from_profile(user), messages, events
    )
    return [RadarInsightResponse.from_insight(insight) for insight in insights]
