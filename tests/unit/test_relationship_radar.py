import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from app.models.domain.calendar_domain import CalendarEvent
from app.models.domain.radar_domain import RadarInsightKind, Severity
from app.models.domain.user_domain import (
    PartnerMessage,
    RelationshipCondition,
    UserProfileContext,
)
from app.services.openai_service import GatewayErr, GatewayErrorKind, GatewayOk
from app.services.relationship_radar import (
    DEFAULT_INSIGHT_TITLE,
    RelationshipRadarService,
)

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


class RoutingGateway:
    """Answers each radar analysis by recognising its system prompt."""

    configured = True

    def __init__(self, tone=None, calendar=None, tip=None):
        self.responses = {"tone": tone, "calendar": calendar, "tip": tip}
        self.calls: list[str] = []
        self.last_prompts: dict[str, str] = {}

    async def complete(self, user_prompt, *, system_prompt=None, options=None):
        if "message tone" in system_prompt:
            analysis = "tone"
        elif "calendar patterns" in system_prompt:
            analysis = "calendar"
        else:
            analysis = "tip"
        self.calls.append(analysis)
        self.last_prompts[analysis] = user_prompt

        response = self.responses[analysis]
        if isinstance(response, Exception):
            raise response
        if response is None:
            return GatewayErr(GatewayErrorKind.PROVIDER_ERROR, "api error (500)")
        return GatewayOk(text="{}", payload=response)


class BarrierGateway(RoutingGateway):
    """Holds every call until all three analyses are waiting on the model at once."""

    def __init__(self, expected, **responses):
        super().__init__(**responses)
        self.expected = expected
        self.in_flight = 0
        self.peak_in_flight = 0
        self.all_waiting = asyncio.Event()

    async def complete(self, user_prompt, *, system_prompt=None, options=None):
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        if self.in_flight >= self.expected:
            self.all_waiting.set()
        try:
            # Sequential analyses never reach the barrier and time out here
            await asyncio.wait_for(self.all_waiting.wait(), timeout=1.0)
        finally:
            self.in_flight -= 1
        return await super().complete(user_prompt, system_prompt=system_prompt, options=options)


def _profile(condition=RelationshipCondition.STABLE):
    return UserProfileContext(
        user_id="user-123",
        self_alias="Sammy",
        partner_alias="Alex",
        relationship_condition=condition,
    )


def _messages(count):
    return [
        PartnerMessage(
            id=i,
            sender_id="user-123" if i % 2 else "partner-456",
            recipient_id="partner-456" if i % 2 else "user-123",
            content=f"message {i}",
            created_at=NOW - timedelta(minutes=count - i),
        )
        for i in range(1, count + 1)
    ]


def _event(event_id, title, starts_in, all_day=False):
    start = NOW + starts_in
    return CalendarEvent(
        id=event_id,
        creator_id="user-123",
        title=title,
        start_time=start,
        end_time=start + timedelta(hours=1),
        all_day=all_day,
    )


def _radar(gateway):
    return RelationshipRadarService(gateway, clock=lambda: NOW)


TONE = {
    "title": "Warm exchanges",
    "insight": "Lots of kindness.",
    "severity": "LOW",
    "actionTip": "Keep it up.",
}
CALENDAR = {
    "title": "Busy week",
    "insight": "Packed days.",
    "severity": "high",
    "actionTip": "Plan a date.",
}
TIP = {
    "title": "Heads Up!",
    "tip": "Lead with warmth.",
    "actionItem": "Start with a compliment.",
    "severity": "low",
}


@pytest.mark.asyncio
async def test_all_analyses_contribute_in_fixed_order():
    gateway = RoutingGateway(tone=TONE, calendar=CALENDAR, tip=TIP)
    events = [_event(1, "Team meeting", timedelta(days=1))]

    insights = await _radar(gateway).generate_insights(_profile(), _messages(3), events)

    assert [insight.kind for insight in insights] == [
        RadarInsightKind.MESSAGE_TONE,
        RadarInsightKind.CALENDAR_STRESS,
        RadarInsightKind.COMMUNICATION_TIP,
    ]
    tone, calendar, tip = insights
    assert tone.title == "Warm exchanges"
    assert tone.severity is Severity.LOW
    assert tone.action_item == "Keep it up."
    assert calendar.severity is Severity.HIGH
    assert tip.description == "Lead with warmth."
    assert tip.action_item == "Start with a compliment."
    assert all(insight.produced_at == NOW for insight in insights)


@pytest.mark.asyncio
async def test_analyses_wait_on_the_model_concurrently():
    gateway = BarrierGateway(expected=3, tone=TONE, calendar=CALENDAR, tip=TIP)
    events = [_event(1, "Team meeting", timedelta(days=1))]

    insights = await _radar(gateway).generate_insights(_profile(), _messages(3), events)

    assert gateway.peak_in_flight == 3
    assert [insight.kind for insight in insights] == [
        RadarInsightKind.MESSAGE_TONE,
        RadarInsightKind.CALENDAR_STRESS,
        RadarInsightKind.COMMUNICATION_TIP,
    ]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "condition, severity",
    [
        (RelationshipCondition.CRITICAL, Severity.HIGH),
        (RelationshipCondition.STABLE, Severity.MEDIUM),
        (RelationshipCondition.IMPROVING, Severity.LOW),
    ],
)
async def test_tip_severity_follows_condition_not_model(condition, severity):
    gateway = RoutingGateway(tip=TIP)

    insights = await _radar(gateway).generate_insights(_profile(condition), [], [])

    assert [insight.kind for insight in insights] == [RadarInsightKind.COMMUNICATION_TIP]
    assert insights[0].severity is severity


@pytest.mark.asyncio
async def test_no_inputs_yields_single_default_insight():
    gateway = RoutingGateway()

    insights = await _radar(gateway).generate_insights(_profile(condition=None), [], [])

    assert len(insights) == 1
    assert insights[0].kind is RadarInsightKind.RELATIONSHIP_HEALTH
    assert insights[0].severity is Severity.LOW
    assert insights[0].title == DEFAULT_INSIGHT_TITLE
    assert gateway.calls == []


@pytest.mark.asyncio
async def test_all_failures_yield_single_default_insight():
    gateway = RoutingGateway()
    events = [_event(1, "Dinner", timedelta(days=2))]

    insights = await _radar(gateway).generate_insights(_profile(), _messages(4), events)

    assert sorted(gateway.calls) == ["calendar", "tip", "tone"]
    assert [insight.kind for insight in insights] == [RadarInsightKind.RELATIONSHIP_HEALTH]


@pytest.mark.asyncio
async def test_one_failing_analysis_does_not_block_others():
    gateway = RoutingGateway(tone=TONE, calendar=RuntimeError("boom"), tip=TIP)
    events = [_event(1, "Dinner", timedelta(days=2))]

    insights = await _radar(gateway).generate_insights(_profile(), _messages(2), events)

    assert [insight.kind for insight in insights] == [
        RadarInsightKind.MESSAGE_TONE,
        RadarInsightKind.COMMUNICATION_TIP,
    ]


@pytest.mark.asyncio
async def test_missing_payload_fields_use_defaults():
    gateway = RoutingGateway(tone={"severity": "extreme"})

    insights = await _radar(gateway).generate_insights(_profile(condition=None), _messages(1), [])

    (tone,) = insights
    assert tone.title == "Message Tone Analysis"
    assert tone.severity is Severity.MEDIUM
    assert tone.action_item


@pytest.mark.asyncio
async def test_message_prompt_uses_last_ten_messages_with_aliases():
    gateway = RoutingGateway(tone=TONE)

    await _radar(gateway).generate_insights(_profile(condition=None), _messages(15), [])

    prompt = gateway.last_prompts["tone"]
    assert "message 5" not in prompt
    assert "message 6" in prompt
    assert "message 15" in prompt
    assert "Sammy: message 15" in prompt
    assert "Alex: message 14" in prompt


@pytest.mark.asyncio
async def test_tip_prompt_uses_last_five_messages():
    gateway = RoutingGateway(tip=TIP)

    await _radar(gateway).generate_insights(_profile(), _messages(8), [])

    prompt = gateway.last_prompts["tip"]
    assert "message 3" not in prompt
    assert "message 4" in prompt
    assert "message 8" in prompt


def test_calendar_window_is_next_seven_days_sorted():
    radar = _radar(RoutingGateway())
    events = [
        _event(1, "Later this week", timedelta(days=3)),
        _event(2, "Yesterday", timedelta(days=-1)),
        _event(3, "Tomorrow morning", timedelta(hours=20)),
        _event(4, "Next month", timedelta(days=30)),
        _event(5, "Tomorrow evening", timedelta(hours=30)),
    ]

    window = radar.calendar_window(events)

    assert [event.id for event in window] == [3, 5, 1]


def test_calendar_metrics_count_stress_and_all_day_events():
    radar = _radar(RoutingGateway())
    events = [
        _event(1, "Project DEADLINE", timedelta(days=1)),
        _event(2, "Urgent call", timedelta(days=2)),
        _event(3, "Offsite", timedelta(days=3), all_day=True),
        _event(4, "Movie night", timedelta(days=4)),
    ]

    metrics = radar.calendar_metrics(radar.calendar_window(events))

    assert metrics.window_event_count == 4
    assert metrics.events_per_day == round(4 / 7, 2)
    assert metrics.all_day_events == 1
    assert metrics.stressful_events == 2


@pytest.mark.asyncio
async def test_calendar_outside_window_is_skipped():
    gateway = RoutingGateway(calendar=CALENDAR)
    events = [_event(1, "Next month", timedelta(days=30))]

    insights = await _radar(gateway).generate_insights(_profile(condition=None), [], events)

    assert "calendar" not in gateway.calls
    assert insights[0].kind is RadarInsightKind.RELATIONSHIP_HEALTH
