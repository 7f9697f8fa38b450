"""
Relationship Radar
Derives a short, ranked list of insights from recent messages, the upcoming
calendar and the relationship condition the user reported at onboarding.

Three analyses fan out concurrently and fan back in before aggregation. Each
one is its own failure domain: a skip, a gateway failure or an unexpected
error all mean "no contribution", never a failed request. The result list is
never empty.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from datetime import UTC, datetime, timedelta
from typing import Any

from app.infrastructure.observability.logging import get_logger, log_ai_fallback
from app.models.domain.calendar_domain import CalendarEvent
from app.models.domain.radar_domain import (
    CalendarStressMetrics,
    RadarInsight,
    RadarInsightKind,
    Severity,
)
from app.models.domain.user_domain import PartnerMessage, RelationshipCondition, UserProfileContext
from app.services.openai_service import CompletionOptions, GatewayErr, TextGenerationGateway

logger = get_logger(__name__)

MESSAGE_WINDOW = 10
TIP_MESSAGE_WINDOW = 5
CALENDAR_WINDOW_DAYS = 7

CONDITION_SEVERITY: dict[RelationshipCondition, Severity] = {
    RelationshipCondition.CRITICAL: Severity.HIGH,
    RelationshipCondition.STABLE: Severity.MEDIUM,
    RelationshipCondition.IMPROVING: Severity.LOW,
}

DEFAULT_INSIGHT_TITLE = "Building Your Relationship Profile"
DEFAULT_INSIGHT_DESCRIPTION = (
    "As you use the app more, we'll provide personalized insights about your relationship dynamics."
)
DEFAULT_INSIGHT_ACTION = "Complete your profile and begin messaging to get started."

_JSON_SHAPE = (
    'Respond with a JSON object with the keys "title" (short headline), "insight" '
    '(one or two sentences), "severity" (one of "low", "medium", "high") and '
    '"actionTip" (one concrete suggestion).'
)


def _text(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


class RelationshipRadarService:
    """Fan-out / fan-in aggregation of the three radar analyses."""

    def __init__(
        self,
        gateway: TextGenerationGateway,
        *,
        clock: Callable[[], datetime] | None = None,
        temperature: float = 0.7,
        tip_temperature: float = 0.8,
        max_tokens: int = 400,
    ):
        self.gateway = gateway
        self.clock = clock or (lambda: datetime.now(UTC))
        self.temperature = temperature
        self.tip_temperature = tip_temperature
        self.max_tokens = max_tokens

    @classmethod
    def from_settings(cls, gateway: TextGenerationGateway, settings) -> "RelationshipRadarService":
        return cls(
            gateway,
            temperature=settings.RADAR_TEMPERATURE,
            tip_temperature=settings.RADAR_TIP_TEMPERATURE,
            max_tokens=settings.RADAR_MAX_TOKENS,
        )

    async def generate_insights(
        self,
        profile: UserProfileContext,
        recent_messages: Sequence[PartnerMessage],
        recent_calendar_events: Sequence[CalendarEvent],
    ) -> list[RadarInsight]:
        """
        Run the message-tone, calendar-stress and communication-tip analyses
        concurrently and assemble their insights.

        Returns:
            Insights in fixed order (tone, calendar, tip), or the single default
            onboarding insight when none of the analyses contributed.
        """
        results = await asyncio.gather(
            self._guarded("message_tone", self._analyze_messages(profile, recent_messages)),
            self._guarded("calendar_stress", self._analyze_calendar(profile, recent_calendar_events)),
            self._guarded(
                "communication_tip", self._generate_communication_tip(profile, recent_messages)
            ),
        )

        insights = [insight for insight in results if insight is not None]
        if not insights:
            log_ai_fallback("radar", "no insights", user_id=profile.user_id)
            return [self._default_insight()]

        logger.info(
            "Radar insights generated",
            user_id=profile.user_id,
            kinds=[insight.kind.value for insight in insights],
        )
        return insights

    async def _guarded(
        self, analysis: str, operation: Awaitable[RadarInsight | None]
    ) -> RadarInsight | None:
        try:
            return await operation
        except Exception as e:
            logger.error(
                "Radar analysis failed",
                analysis=analysis,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None

    async def _complete_json(
        self, system_prompt: str, user_prompt: str, temperature: float
    ) -> dict[str, Any] | None:
        result = await self.gateway.complete(
            user_prompt,
            system_prompt=system_prompt,
            options=CompletionOptions(
                json_mode=True, temperature=temperature, max_tokens=self.max_tokens
            ),
        )
        if isinstance(result, GatewayErr):
            return None
        return result.payload or {}

    # ------------------------------------------------------------------
    # Message tone
    # ------------------------------------------------------------------
    async def _analyze_messages(
        self, profile: UserProfileContext, messages: Sequence[PartnerMessage]
    ) -> RadarInsight | None:
        if not messages:
            return None

        recent = list(messages)[-MESSAGE_WINDOW:]
        self_name = profile.self_alias or "User"
        partner_name = profile.partner_alias or "Partner"
        transcript = "\n".join(
            f"{self_name if message.sender_id == profile.user_id else partner_name}: {message.content}"
            for message in recent
        )

        result = await self._complete_json(
            "You are a relationship analyst that examines message tone and content to identify "
            "patterns. Look for emotional cues, tone shifts, and potential communication issues.",
            f"Analyze these recent messages between partners {self_name} and {partner_name} and "
            "identify any significant tone patterns or emotional cues that might suggest "
            "communication challenges or opportunities for improvement.\n\n"
            f"{transcript}\n\n"
            "Provide a brief insight about communication patterns and a specific actionable tip. "
            f"{_JSON_SHAPE}",
            self.temperature,
        )
        if result is None:
            return None

        return RadarInsight(
            kind=RadarInsightKind.MESSAGE_TONE,
            title=_text(result.get("title"), "Message Tone Analysis"),
            description=_text(
                result.get("insight"),
                "Analysis of your recent conversations revealed patterns in communication style.",
            ),
            severity=Severity.parse(result.get("severity"), Severity.MEDIUM),
            action_item=_text(
                result.get("actionTip"),
                "Consider being more explicit about your feelings in your messages.",
            ),
            produced_at=self.clock(),
        )

    # ------------------------------------------------------------------
    # Calendar stress
    # ------------------------------------------------------------------
    def calendar_window(self, events: Sequence[CalendarEvent]) -> list[CalendarEvent]:
        """Events starting within the next seven days, soonest first."""
        now = self.clock()
        window_end = now + timedelta(days=CALENDAR_WINDOW_DAYS)
        upcoming = [event for event in events if event.starts_between(now, window_end)]
        return sorted(upcoming, key=lambda event: event.start_at_utc())

    def calendar_metrics(self, window_events: Sequence[CalendarEvent]) -> CalendarStressMetrics:
        return CalendarStressMetrics(
            window_event_count=len(window_events),
            events_per_day=round(len(window_events) / CALENDAR_WINDOW_DAYS, 2),
            all_day_events=sum(1 for event in window_events if event.all_day),
            stressful_events=sum(1 for event in window_events if event.is_stressful()),
        )

    async def _analyze_calendar(
        self, profile: UserProfileContext, events: Sequence[CalendarEvent]
    ) -> RadarInsight | None:
        window_events = self.calendar_window(events)
        if not window_events:
            return None

        metrics = self.calendar_metrics(window_events)
        listing = "\n".join(
            f"- {event.title} ({event.start_date_label()})" for event in window_events
        )

        result = await self._complete_json(
            "You are a relationship wellness assistant that analyzes calendar patterns to identify "
            "potential stress factors that might affect a relationship.",
            f"Analyze these calendar events for {profile.self_alias or 'the user'} and determine "
            "if they suggest a busy or stressful period that might impact relationship health.\n\n"
            f"Events per day: {metrics.events_per_day}\n"
            f"All-day events: {metrics.all_day_events}\n"
            f"Important upcoming events: {metrics.stressful_events}\n\n"
            f"Upcoming events:\n{listing}\n\n"
            "Provide a brief insight about schedule stress level and a specific tip for "
            f"maintaining relationship connection during busy periods. {_JSON_SHAPE}",
            self.temperature,
        )
        if result is None:
            return None

        return RadarInsight(
            kind=RadarInsightKind.CALENDAR_STRESS,
            title=_text(result.get("title"), "Calendar Analysis"),
            description=_text(
                result.get("insight"),
                "Your schedule shows some potential stress factors that might affect your relationship.",
            ),
            severity=Severity.parse(result.get("severity"), Severity.MEDIUM),
            action_item=_text(
                result.get("actionTip"),
                "Consider setting aside dedicated time for your relationship this week.",
            ),
            produced_at=self.clock(),
        )

    # ------------------------------------------------------------------
    # Communication tip
    # ------------------------------------------------------------------
    async def _generate_communication_tip(
        self, profile: UserProfileContext, messages: Sequence[PartnerMessage]
    ) -> RadarInsight | None:
        condition = profile.relationship_condition
        if condition is None:
            return None

        if messages:
            recent = "\n".join(message.content for message in list(messages)[-TIP_MESSAGE_WINDOW:])
            message_context = f"Their recent messages include:\n{recent}"
        else:
            message_context = "No recent messages are available."

        result = await self._complete_json(
            "You are a relationship coach that provides specific, actionable communication tips "
            "based on relationship condition and message history.",
            f"Generate a personalized communication tip for {profile.self_alias or 'a user'} whose "
            f'relationship is currently in a "{condition.value}" state.\n\n'
            f"{message_context}\n\n"
            'Provide a brief, specific communication tip with the title "Heads Up!" that would be '
            f"helpful for someone in a {condition.value} relationship. Make it feel gentle and "
            'supportive, not prescriptive. Respond with a JSON object with the keys "title", '
            '"tip" and "actionItem".',
            self.tip_temperature,
        )
        if result is None:
            return None

        return RadarInsight(
            kind=RadarInsightKind.COMMUNICATION_TIP,
            title=_text(result.get("title"), "Heads Up!"),
            description=_text(
                result.get("tip"), "Remember to prioritize connection in your communication."
            ),
            # Driven by the reported condition, never by model output
            severity=CONDITION_SEVERITY[condition],
            action_item=_text(
                result.get("actionItem"),
                "Try leading with warmth rather than logic in your next conversation.",
            ),
            produced_at=self.clock(),
        )

    def _default_insight(self) -> RadarInsight:
        return RadarInsight(
            kind=RadarInsightKind.RELATIONSHIP_HEALTH,
            title=DEFAULT_INSIGHT_TITLE,
            description=DEFAULT_INSIGHT_DESCRIPTION,
            severity=Severity.LOW,
            action_item=DEFAULT_INSIGHT_ACTION,
            produced_at=self.clock(),
        )
