"""
coaching.py
-----------
Purpose:
    Relationship coach chat: stateless reply generation, persisted sessions
    and the guided topic library.

Usage:
    1. POST /api/coaching/generate-response         - Next coach reply for client-held history
    2. GET  /api/coaching/sessions                  - Caller's sessions, most recent first
    3. POST /api/coaching/sessions                  - Start a session
    4. GET  /api/coaching/sessions/{id}/messages    - Turns of a session
    5. POST /api/coaching/sessions/{id}/messages    - Append a turn; a user turn schedules the coach reply
    6. GET  /api/coaching/topics                    - Coaching library topics
    7. GET  /api/coaching/topics/{id}               - One topic with its ordered lesson steps

Notes:
    - Coach replies for sessions are produced in a background task after the
      user's turn is returned, so the client polls the messages endpoint.
    - Model failures never surface as errors; the engine degrades to a
      supportive canned reply and `error` explains why.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status

from app.dependencies import (
    get_coach_engine,
    get_current_user,
    get_keyword_responder,
    get_store,
)
from app.infrastructure.observability.logging import get_logger
from app.models.api.coaching_request import (
    CreateCoachingMessageRequest,
    CreateCoachingSessionRequest,
    GenerateCoachResponseRequest,
)
from app.models.api.coaching_response import (
    CoachingContentResponse,
    CoachingMessageResponse,
    CoachingSessionResponse,
    CoachingTopicDetailResponse,
    CoachingTopicResponse,
    CoachResponse,
)
from app.models.domain.coaching_domain import ConversationTurn
from app.models.domain.user_domain import UserProfile, UserProfileContext
from app.services.coaching.dialogue_engine import CoachDialogueEngine
from app.services.coaching.keyword_responder import KeywordCoachResponder
from app.services.store import InMemoryStore, NotFoundError

router = APIRouter(prefix="/api/coaching", tags=["coaching"])
logger = get_logger(__name__)

_FALLBACK_NOTES = {
    "not configured": "AI coaching is not configured.",
    "rate limited": "AI coaching is rate limited right now.",
    "quota exceeded": "AI coaching quota has been exceeded.",
    "provider error": "AI coaching is temporarily unavailable.",
}


@router.post("/generate-response", response_model=CoachResponse, response_model_exclude_none=True)
async def generate_response(
    request: GenerateCoachResponseRequest,
    user: UserProfile = Depends(get_current_user),
    engine: CoachDialogueEngine = Depends(get_coach_engine),
    responder: KeywordCoachResponder = Depends(get_keyword_responder),
):
    """
    Produce the coach's next utterance.

    Returns:
        CoachResponse: Reply text, with `error` only when a fallback was used

    Raises:
        400: Empty message
    """
    if not request.message.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Message text is required"
        )

    if request.mode == "rules":
        return CoachResponse(message=responder.respond(request.message))

    history = [
        ConversationTurn.from_user(item.content)
        if item.is_user_message
        else ConversationTurn.from_coach(item.content)
        for item in request.conversation_history
    ]
    reply = await engine.generate_reply(
        request.message, history, UserProfileContext.from_profile(user)
    )

    logger.info(
        "Coach response generated",
        user_id=user.user_id,
        outcome=reply.outcome.value,
        history_turns=len(history),
    )
    return CoachResponse(
        message=reply.text,
        error=_FALLBACK_NOTES.get(reply.failure_reason, "AI coaching is temporarily unavailable.")
        if reply.used_fallback
        else None,
    )


@router.get("/sessions", response_model=list[CoachingSessionResponse])
async def list_sessions(
    user: UserProfile = Depends(get_current_user),
    store: InMemoryStore = Depends(get_store),
):
    return await store.list_coaching_sessions(user.user_id)


@router.post(
    "/sessions", response_model=CoachingSessionResponse, status_code=status.HTTP_201_CREATED
)
async def create_session(
    request: CreateCoachingSessionRequest,
    user: UserProfile = Depends(get_current_user),
    store: InMemoryStore = Depends(get_store),
):
    title = request.title.strip() or "New coaching session"
    session = await store.create_coaching_session(user.user_id, title)
    await store.create_activity(
        user.user_id, "coaching", f"Started coaching session: {session.title}"
    )
    return session


@router.get("/sessions/{session_id}/messages", response_model=list[CoachingMessageResponse])
async def list_session_messages(
    session_id: int,
    user: UserProfile = Depends(get_current_user),
    store: InMemoryStore = Depends(get_store),
):
    """
    Raises:
        404: Session missing or owned by someone else
    """
    try:
        await store.get_coaching_session(user.user_id, session_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return await store.list_coaching_messages(session_id)


@router.post(
    "/sessions/{session_id}/messages",
    response_model=CoachingMessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_session_message(
    session_id: int,
    request: CreateCoachingMessageRequest,
    background_tasks: BackgroundTasks,
    user: UserProfile = Depends(get_current_user),
    store: InMemoryStore = Depends(get_store),
    engine: CoachDialogueEngine = Depends(get_coach_engine),
):
    """
    Append a turn to a session. A user turn schedules the coach's reply.

    Raises:
        400: Empty content
        404: Session missing or owned by someone else
    """
    if not request.content.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Message content is required"
        )

    try:
        await store.get_coaching_session(user.user_id, session_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    message = await store.create_coaching_message(
        session_id, request.content, request.is_user_message
    )

    if request.is_user_message:
        background_tasks.add_task(
            reply_in_session,
            store,
            engine,
            session_id,
            UserProfileContext.from_profile(user),
        )

    return message


@router.get("/topics", response_model=list[CoachingTopicResponse])
async def list_topics(
    user: UserProfile = Depends(get_current_user),
    store: InMemoryStore = Depends(get_store),
):
    return await store.list_coaching_topics()


@router.get("/topics/{topic_id}", response_model=CoachingTopicDetailResponse)
async def get_topic(
    topic_id: str,
    user: UserProfile = Depends(get_current_user),
    store: InMemoryStore = Depends(get_store),
):
    """
    Raises:
        400: Topic id is not a number
        404: Unknown topic
    """
    try:
        parsed_id = int(topic_id)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid topic ID")

    try:
        topic = await store.get_coaching_topic(parsed_id)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Topic not found")

    contents = await store.list_coaching_contents(topic.id)
    return CoachingTopicDetailResponse(
        topic=CoachingTopicResponse.model_validate(topic),
        contents=[CoachingContentResponse.model_validate(c) for c in contents],
    )


async def reply_in_session(
    store: InMemoryStore,
    engine: CoachDialogueEngine,
    session_id: int,
    profile: UserProfileContext,
) -> None:
    """Generate and persist the coach's answer to the latest user turn of a session."""
    turns = [message.to_turn() for message in await store.list_coaching_messages(session_id)]
    if not turns or turns[-1].speaker != "user":
        logger.info("No pending user turn; skipping coach reply", session_id=session_id)
        return

    latest, history = turns[-1], turns[:-1]
    reply = await engine.generate_reply(latest.text, history, profile)

    try:
        coach_message = await store.create_coaching_message(session_id, reply.text, False)
    except NotFoundError:
        logger.warning("Session vanished before coach reply was stored", session_id=session_id)
        return

    if profile.user_id:
        await store.create_notification(
            profile.user_id,
            "coaching",
            "Your coach replied",
            reply.text[:120],
            related_id=coach_message.id,
        )

    logger.info(
        "Session coach reply stored",
        session_id=session_id,
        outcome=reply.outcome.value,
        used_fallback=reply.used_fallback,
    )
