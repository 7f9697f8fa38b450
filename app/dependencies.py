"""
dependencies.py
---------------
Purpose:
    FastAPI dependencies handing request handlers the process-wide gateway and
    store, and the per-request services built on top of them.

Notes:
    - The gateway and store are created once in the app lifespan and kept on
      app.state; nothing here constructs a provider client.
    - Tests swap any of these through app.dependency_overrides.
"""

from fastapi import Depends, HTTPException, Request, status

from app.auth.verify import auth_dependency
from app.config import settings
from app.infrastructure.observability.logging import get_logger
from app.models.domain.user_domain import UserProfile
from app.services.coaching.dialogue_engine import CoachDialogueEngine
from app.services.coaching.keyword_responder import KeywordCoachResponder
from app.services.message_refiner import MessageRefiner
from app.services.openai_service import TextGenerationGateway
from app.services.relationship_radar import RelationshipRadarService
from app.services.store import InMemoryStore

logger = get_logger(__name__)


def get_gateway(request: Request) -> TextGenerationGateway:
    return request.app.state.gateway


def get_store(request: Request) -> InMemoryStore:
    return request.app.state.store


def get_message_refiner(
    gateway: TextGenerationGateway = Depends(get_gateway),
) -> MessageRefiner:
    return MessageRefiner.from_settings(gateway, settings)


def get_coach_engine(
    gateway: TextGenerationGateway = Depends(get_gateway),
) -> CoachDialogueEngine:
    return CoachDialogueEngine.from_settings(gateway, settings)


def get_keyword_responder() -> KeywordCoachResponder:
    return KeywordCoachResponder()


def get_radar_service(
    gateway: TextGenerationGateway = Depends(get_gateway),
) -> RelationshipRadarService:
    return RelationshipRadarService.from_settings(gateway, settings)


async def get_current_user(
    claims: dict = Depends(auth_dependency),
    store: InMemoryStore = Depends(get_store),
) -> UserProfile:
    """Resolve the authenticated caller, provisioning a profile on first sight."""
    user_id = claims.get("sub")
    if not user_id:
        logger.error("No user ID in JWT claims")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token: missing user ID"
        )
    return await store.ensure_user(str(user_id), claims.get("email"))
