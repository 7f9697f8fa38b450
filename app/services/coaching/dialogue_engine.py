"""
Coach Dialogue Engine
Produces the next coach utterance from the running conversation.

Each call ends in exactly one of three states:
    UNAVAILABLE  no credential configured; a fixed prompt-for-detail string
    ERROR        the call failed (or came back empty); credential problems get a
                 fixed reassurance, anything else a random pick from a pool
    SUCCESS      the model's trimmed text
Nothing is carried from one call to the next.
"""

import random
from collections.abc import Sequence

from app.infrastructure.observability.logging import get_logger, log_ai_fallback
from app.models.domain.coaching_domain import CoachReply, ConversationTurn, DialogueOutcome
from app.models.domain.user_domain import UserProfileContext
from app.services.message_refiner import describe_failure
from app.services.openai_service import (
    CompletionOptions,
    GatewayErr,
    GatewayErrorKind,
    TextGenerationGateway,
)

logger = get_logger(__name__)

HISTORY_LIMIT = 10

COACH_PERSONA = (
    "You are a compassionate, professional relationship coach. You help partners "
    "understand each other, communicate with kindness, and work through difficult moments. "
    "Listen carefully, reflect back what you hear, ask one thoughtful follow-up question "
    "at a time, and offer practical, gentle suggestions. Do not diagnose, take sides, or "
    "give legal or medical advice. If someone describes abuse or is in danger, encourage "
    "them to contact local emergency services or a qualified professional."
)

UNAVAILABLE_RESPONSE = (
    "Thank you for sharing that with me. I'd like to understand your situation better. "
    "Could you tell me a little more about what's been happening and how it's making you feel?"
)

CREDENTIAL_ERROR_RESPONSE = (
    "I hear you, and what you're going through matters. I'm having a little trouble "
    "gathering my thoughts right now, but I'm still here with you. Take a breath and "
    "tell me what feels most important to talk about."
)

SUPPORTIVE_FOLLOW_UPS: tuple[str, ...] = (
    "That sounds really meaningful. What do you think is at the heart of how you're feeling?",
    "I appreciate you opening up about this. How has your partner responded when this has come up before?",
    "It makes sense that this is on your mind. What would a good outcome look like for you?",
    "Thank you for trusting me with this. When did you first notice things feeling this way?",
    "That's a lot to carry. What kind of support would help you most right now?",
    "I can tell you care about this relationship. What's one small step that might feel manageable this week?",
)


class CoachDialogueEngine:
    """AI-backed coach with a deterministic local fallback."""

    def __init__(
        self,
        gateway: TextGenerationGateway,
        *,
        rng: random.Random | None = None,
        temperature: float = 0.7,
        max_tokens: int = 500,
        fallback_pool: Sequence[str] = SUPPORTIVE_FOLLOW_UPS,
    ):
        if len(fallback_pool) < 5:
            raise ValueError("fallback_pool needs at least 5 responses")
        self.gateway = gateway
        self.rng = rng or random.Random()
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.fallback_pool = tuple(fallback_pool)

    @classmethod
    def from_settings(
        cls, gateway: TextGenerationGateway, settings, rng: random.Random | None = None
    ) -> "CoachDialogueEngine":
        return cls(
            gateway,
            rng=rng,
            temperature=settings.COACH_TEMPERATURE,
            max_tokens=settings.COACH_MAX_TOKENS,
        )

    async def next_utterance(
        self,
        latest_user_text: str,
        history: Sequence[ConversationTurn],
        profile: UserProfileContext | None = None,
    ) -> str:
        reply = await self.generate_reply(latest_user_text, history, profile)
        return reply.text

    async def generate_reply(
        self,
        latest_user_text: str,
        history: Sequence[ConversationTurn],
        profile: UserProfileContext | None = None,
    ) -> CoachReply:
        """Run one pass of the reply state machine."""
        if not self.gateway.configured:
            log_ai_fallback("coach", "not configured", outcome=DialogueOutcome.UNAVAILABLE.value)
            return CoachReply(
                text=UNAVAILABLE_RESPONSE,
                outcome=DialogueOutcome.UNAVAILABLE,
                failure_reason=describe_failure(
                    GatewayErr(GatewayErrorKind.UNCONFIGURED, "not configured")
                ),
            )

        system_prompt = self._build_system_prompt(profile or UserProfileContext())
        user_prompt = self._build_user_prompt(latest_user_text, history)

        result = await self.gateway.complete(
            user_prompt,
            system_prompt=system_prompt,
            options=CompletionOptions(
                json_mode=False, temperature=self.temperature, max_tokens=self.max_tokens
            ),
        )

        if isinstance(result, GatewayErr):
            return self._error_reply(result)

        text = result.text.strip()
        if not text:
            return self._error_reply(GatewayErr(GatewayErrorKind.PROVIDER_ERROR, "empty response"))

        logger.info(
            "Coach reply generated",
            outcome=DialogueOutcome.SUCCESS.value,
            history_turns=min(len(history), HISTORY_LIMIT),
            reply_length=len(text),
        )
        return CoachReply(text=text, outcome=DialogueOutcome.SUCCESS)

    def _error_reply(self, error: GatewayErr) -> CoachReply:
        if error.is_credential_issue:
            text = CREDENTIAL_ERROR_RESPONSE
        else:
            text = self.rng.choice(self.fallback_pool)

        reason = describe_failure(error)
        log_ai_fallback(
            "coach",
            reason,
            outcome=DialogueOutcome.ERROR.value,
            credential_issue=error.is_credential_issue,
        )
        return CoachReply(text=text, outcome=DialogueOutcome.ERROR, failure_reason=reason)

    def _build_system_prompt(self, profile: UserProfileContext) -> str:
        context_lines = []
        if profile.self_alias:
            context_lines.append(f"- The person you are talking with goes by {profile.self_alias}.")
        if profile.partner_alias:
            context_lines.append(f"- Their partner goes by {profile.partner_alias}.")
        if profile.marital_status:
            context_lines.append(f"- Relationship status: {profile.marital_status.value}.")
        if profile.relationship_condition:
            context_lines.append(
                f"- They describe the relationship as currently {profile.relationship_condition.value}."
            )

        if not context_lines:
            return COACH_PERSONA
        return COACH_PERSONA + "\n\nWhat you know about this person:\n" + "\n".join(context_lines)

    def _build_user_prompt(self, latest_user_text: str, history: Sequence[ConversationTurn]) -> str:
        recent = list(history)[-HISTORY_LIMIT:]
        transcript = "\n".join(
            f"{'User' if turn.speaker == 'user' else 'Coach'}: {turn.text}" for turn in recent
        )

        parts = []
        if transcript:
            parts.append(f"Conversation so far:\n{transcript}")
        parts.append(f"User: {latest_user_text}")
        parts.append(
            "Respond as the coach with a warm, concise reply (2-4 sentences) that "
            "acknowledges their feelings and invites them to keep going."
        )
        return "\n\n".join(parts)
