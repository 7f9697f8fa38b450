# app/services/store.py
"""
In-memory Store
Users, partner messages, activities, notifications, coaching sessions, the
coaching library and calendar events.

All records live in process memory. Id allocation and writes go through one
asyncio.Lock so concurrent requests never hand out the same id.
"""

import asyncio
import secrets
from datetime import UTC, datetime, timedelta
from typing import Any

from app.infrastructure.observability.logging import get_logger
from app.models.domain.calendar_domain import CalendarEvent
from app.models.domain.coaching_domain import (
    CoachingContent,
    CoachingMessage,
    CoachingSession,
    CoachingTopic,
)
from app.models.domain.user_domain import (
    Activity,
    MaritalStatus,
    Notification,
    PartnerMessage,
    RelationshipCondition,
    UserProfile,
)

logger = get_logger(__name__)

COACHING_LIBRARY_TOPICS = [
    (
        "communication",
        "Communication Skills",
        "Learn how to communicate more effectively with your partner",
        "fa-comments",
    ),
    (
        "conflict",
        "Resolving Conflicts",
        "Learn effective strategies to address disagreements constructively",
        "fa-heart-broken",
    ),
    ("intimacy", "Building Intimacy", "Deepen your connection and strengthen your bond", "fa-star"),
    (
        "goals",
        "Shared Goals",
        "Work together to achieve your relationship goals",
        "fa-balance-scale",
    ),
    ("quality_time", "Quality Time", "Make the most of your time together", "fa-calendar-check"),
]

COACHING_LIBRARY_CONTENTS = {
    "conflict": [
        (
            "Introduction",
            "Conflicts are natural in any relationship. The key is not to avoid them, but to "
            "address them in a way that strengthens your connection rather than weakening it.",
        ),
        (
            "Choose the right time",
            "Avoid discussing sensitive topics when either of you is tired, hungry, or stressed. "
            "Set aside a specific time when you're both calm.",
        ),
        (
            'Use "I" statements',
            'Instead of saying "You always..." try "I feel..." This reduces defensiveness and '
            "opens up communication.",
        ),
        (
            "Listen actively",
            "Give your full attention, maintain eye contact, and paraphrase to ensure "
            "understanding before responding.",
        ),
        (
            "Practice Exercise",
            "Try this simple exercise with your partner to improve conflict resolution skills:\n"
            "1. Each person writes down a minor recent disagreement\n"
            '2. Take turns discussing using "I" statements\n'
            "3. Practice active listening without interruption\n"
            "4. Look for compromise solutions together",
        ),
    ],
}


class StoreError(Exception):
    """Base exception for store errors."""

    def __init__(self, message: str, recoverable: bool = True):
        super().__init__(message)
        self.recoverable = recoverable


class NotFoundError(StoreError):
    """Raised when a referenced record does not exist (or is not the caller's)."""


class InMemoryStore:
    def __init__(self):
        self._lock = asyncio.Lock()
        self._counters: dict[str, int] = {}
        self._users: dict[str, UserProfile] = {}
        self._messages: dict[int, PartnerMessage] = {}
        self._activities: dict[int, Activity] = {}
        self._notifications: dict[int, Notification] = {}
        self._sessions: dict[int, CoachingSession] = {}
        self._coaching_messages: dict[int, CoachingMessage] = {}
        self._events: dict[int, CalendarEvent] = {}
        self._topics: dict[int, CoachingTopic] = {}
        self._contents: dict[int, CoachingContent] = {}

    def _next_id(self, kind: str) -> int:
        self._counters[kind] = self._counters.get(kind, 0) + 1
        return self._counters[kind]

    # =================================================================
    # USERS
    # =================================================================
    async def get_user(self, user_id: str) -> UserProfile | None:
        return self._users.get(user_id)

    async def ensure_user(self, user_id: str, email: str | None = None) -> UserProfile:
        """Return the stored user, creating an empty profile on first sight."""
        async with self._lock:
            user = self._users.get(user_id)
            if user is None:
                user = UserProfile(user_id=user_id, email=email)
                self._users[user_id] = user
                logger.info("User provisioned", user_id=user_id)
            return user

    async def update_user(self, user_id: str, **changes: Any) -> UserProfile:
        async with self._lock:
            user = self._users.get(user_id)
            if user is None:
                raise NotFoundError(f"User {user_id} not found")
            updated = user.model_copy(update={**changes, "updated_at": datetime.now(UTC)})
            self._users[user_id] = updated
            return updated

    async def connect_partners(self, user_id: str, partner_id: str) -> None:
        async with self._lock:
            self._link_partners(user_id, partner_id)
        logger.info("Partners connected", user_id=user_id, partner_id=partner_id)

    def _link_partners(self, user_id: str, partner_id: str) -> None:
        # Caller holds the lock. Outstanding invite codes of both users die with the link.
        if user_id == partner_id:
            raise StoreError("A user cannot partner with themselves", recoverable=False)
        for uid in (user_id, partner_id):
            if uid not in self._users:
                raise NotFoundError(f"User {uid} not found")
        now = datetime.now(UTC)
        self._users[user_id] = self._users[user_id].model_copy(
            update={"partner_id": partner_id, "invite_code": None, "updated_at": now}
        )
        self._users[partner_id] = self._users[partner_id].model_copy(
            update={"partner_id": user_id, "invite_code": None, "updated_at": now}
        )

    async def create_invite_code(self, user_id: str) -> str:
        code = secrets.token_urlsafe(6)
        await self.update_user(user_id, invite_code=code)
        return code

    async def accept_invite(self, user_id: str, invite_code: str) -> UserProfile:
        """Connect ``user_id`` with the owner of ``invite_code``; the code is single-use."""
        async with self._lock:
            inviter = next(
                (user for user in self._users.values() if user.invite_code == invite_code), None
            )
            if inviter is None:
                raise NotFoundError("Invalid invite code")
            if inviter.user_id == user_id:
                raise StoreError("You cannot connect with yourself", recoverable=False)
            if inviter.partner_id:
                raise StoreError("This invite code's owner is already connected", recoverable=False)
            redeemer = self._users.get(user_id)
            if redeemer is not None and redeemer.partner_id:
                raise StoreError("You are already connected with a partner", recoverable=False)

            self._link_partners(user_id, inviter.user_id)
            inviter = self._users[inviter.user_id]

        logger.info("Invite accepted", user_id=user_id, partner_id=inviter.user_id)
        return inviter

    # =================================================================
    # PARTNER MESSAGES
    # =================================================================
    async def list_messages(self, user_a: str, user_b: str) -> list[PartnerMessage]:
        """Messages exchanged between two users, oldest first."""
        pair = {user_a, user_b}
        messages = [
            message
            for message in self._messages.values()
            if {message.sender_id, message.recipient_id} == pair
        ]
        return sorted(messages, key=lambda message: (message.created_at, message.id))

    async def create_message(
        self,
        sender_id: str,
        recipient_id: str,
        content: str,
        vibe: str | None = None,
        original_content: str | None = None,
    ) -> PartnerMessage:
        async with self._lock:
            message = PartnerMessage(
                id=self._next_id("message"),
                sender_id=sender_id,
                recipient_id=recipient_id,
                content=content,
                vibe=vibe,
                original_content=original_content,
            )
            self._messages[message.id] = message
        logger.info("Message stored", message_id=message.id, vibe=vibe, content_length=len(content))
        return message

    # =================================================================
    # ACTIVITIES & NOTIFICATIONS
    # =================================================================
    async def create_activity(self, user_id: str, type: str, description: str) -> Activity:
        async with self._lock:
            activity = Activity(
                id=self._next_id("activity"), user_id=user_id, type=type, description=description
            )
            self._activities[activity.id] = activity
        return activity

    async def list_activities(self, user_id: str, limit: int | None = None) -> list[Activity]:
        """Activities for a user, newest first."""
        activities = sorted(
            (activity for activity in self._activities.values() if activity.user_id == user_id),
            key=lambda activity: (activity.created_at, activity.id),
            reverse=True,
        )
        return activities[:limit] if limit else activities

    async def create_notification(
        self,
        user_id: str,
        type: str,
        title: str,
        content: str,
        related_id: int | None = None,
    ) -> Notification:
        async with self._lock:
            notification = Notification(
                id=self._next_id("notification"),
                user_id=user_id,
                type=type,
                title=title,
                content=content,
                related_id=related_id,
            )
            self._notifications[notification.id] = notification
        return notification

    async def list_notifications(self, user_id: str, unread_only: bool = False) -> list[Notification]:
        notifications = [
            notification
            for notification in self._notifications.values()
            if notification.user_id == user_id and not (unread_only and notification.read)
        ]
        return sorted(notifications, key=lambda n: (n.created_at, n.id), reverse=True)

    async def mark_notification_read(self, user_id: str, notification_id: int) -> Notification:
        async with self._lock:
            notification = self._notifications.get(notification_id)
            if notification is None or notification.user_id != user_id:
                raise NotFoundError(f"Notification {notification_id} not found")
            updated = notification.model_copy(update={"read": True})
            self._notifications[notification_id] = updated
            return updated

    # =================================================================
    # COACHING SESSIONS
    # =================================================================
    async def create_coaching_session(self, user_id: str, title: str) -> CoachingSession:
        async with self._lock:
            session = CoachingSession(id=self._next_id("session"), user_id=user_id, title=title)
            self._sessions[session.id] = session
        logger.info("Coaching session created", session_id=session.id, user_id=user_id)
        return session

    async def list_coaching_sessions(self, user_id: str) -> list[CoachingSession]:
        sessions = [s for s in self._sessions.values() if s.user_id == user_id]
        return sorted(sessions, key=lambda s: (s.updated_at, s.id), reverse=True)

    async def get_coaching_session(self, user_id: str, session_id: int) -> CoachingSession:
        session = self._sessions.get(session_id)
        if session is None or session.user_id != user_id:
            raise NotFoundError(f"Coaching session {session_id} not found")
        return session

    async def list_coaching_messages(self, session_id: int) -> list[CoachingMessage]:
        """Turns of a session in the order they were appended."""
        messages = [m for m in self._coaching_messages.values() if m.session_id == session_id]
        return sorted(messages, key=lambda m: m.id)

    async def create_coaching_message(
        self, session_id: int, content: str, is_user_message: bool
    ) -> CoachingMessage:
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise NotFoundError(f"Coaching session {session_id} not found")
            message = CoachingMessage(
                id=self._next_id("coaching_message"),
                session_id=session_id,
                content=content,
                is_user_message=is_user_message,
            )
            self._coaching_messages[message.id] = message
            self._sessions[session_id] = session.model_copy(update={"updated_at": message.created_at})
        return message

    # =================================================================
    # COACHING LIBRARY
    # =================================================================
    async def create_coaching_topic(self, title: str, description: str, icon: str) -> CoachingTopic:
        async with self._lock:
            topic = CoachingTopic(
                id=self._next_id("topic"), title=title, description=description, icon=icon
            )
            self._topics[topic.id] = topic
        return topic

    async def list_coaching_topics(self) -> list[CoachingTopic]:
        return sorted(self._topics.values(), key=lambda topic: topic.id)

    async def get_coaching_topic(self, topic_id: int) -> CoachingTopic:
        topic = self._topics.get(topic_id)
        if topic is None:
            raise NotFoundError(f"Coaching topic {topic_id} not found")
        return topic

    async def create_coaching_content(
        self, topic_id: int, title: str, content: str, order: int
    ) -> CoachingContent:
        async with self._lock:
            if topic_id not in self._topics:
                raise NotFoundError(f"Coaching topic {topic_id} not found")
            item = CoachingContent(
                id=self._next_id("content"),
                topic_id=topic_id,
                title=title,
                content=content,
                order=order,
            )
            self._contents[item.id] = item
        return item

    async def list_coaching_contents(self, topic_id: int) -> list[CoachingContent]:
        """Lesson steps of a topic by their ``order``."""
        contents = [c for c in self._contents.values() if c.topic_id == topic_id]
        return sorted(contents, key=lambda c: (c.order, c.id))

    async def load_coaching_library(self) -> None:
        """Install the built-in coaching topics once per store."""
        if self._topics:
            return

        topics = {}
        for key, title, description, icon in COACHING_LIBRARY_TOPICS:
            topics[key] = await self.create_coaching_topic(title, description, icon)
        for key, steps in COACHING_LIBRARY_CONTENTS.items():
            for order, (title, content) in enumerate(steps, start=1):
                await self.create_coaching_content(topics[key].id, title, content, order)
        logger.info("Coaching library loaded", topics=len(self._topics), contents=len(self._contents))

    # =================================================================
    # CALENDAR
    # =================================================================
    async def create_calendar_event(
        self,
        creator_id: str,
        title: str,
        start_time: datetime,
        end_time: datetime,
        **details: Any,
    ) -> CalendarEvent:
        if end_time < start_time:
            raise StoreError("Event end time is before its start time", recoverable=False)
        async with self._lock:
            event = CalendarEvent(
                id=self._next_id("event"),
                creator_id=creator_id,
                title=title,
                start_time=start_time,
                end_time=end_time,
                **details,
            )
            self._events[event.id] = event
        return event

    async def list_calendar_events(self, user_id: str) -> list[CalendarEvent]:
        """Own events plus the partner's shared events, by start time."""
        user = self._users.get(user_id)
        partner_id = user.partner_id if user else None
        events = [
            event
            for event in self._events.values()
            if event.creator_id == user_id
            or (partner_id and event.creator_id == partner_id and event.visible_to_partner())
        ]
        return sorted(events, key=lambda event: event.start_at_utc())

    # =================================================================
    # SAMPLE DATA
    # =================================================================
    async def seed_sample_data(self) -> None:
        """Load two connected demo partners so a fresh dev server has something to show."""
        if self._users:
            logger.info("Sample data already exists, skipping initialization")
            return

        john = await self.ensure_user("demo-john", "john@example.com")
        jane = await self.ensure_user("demo-jane", "jane@example.com")
        await self.update_user(
            john.user_id,
            first_name="John",
            nickname="Johnny",
            partner_nickname="Janie",
            marital_status=MaritalStatus.MARRIED,
            relationship_condition=RelationshipCondition.STABLE,
            onboarding_completed=True,
        )
        await self.update_user(jane.user_id, first_name="Jane", nickname="Janie", partner_nickname="Johnny")
        await self.connect_partners(john.user_id, jane.user_id)

        await self.create_message(
            jane.user_id,
            john.user_id,
            "Hey, I was wondering if you'd like to go out for dinner tonight? I found this new place downtown.",
        )
        await self.create_message(
            john.user_id,
            jane.user_id,
            "That sounds wonderful! I'd love to try the new place. What time were you thinking?",
            vibe="excited",
            original_content="Sounds good. What time?",
        )
        await self.create_message(jane.user_id, john.user_id, "How about 7:30? I can make a reservation.")

        tomorrow = datetime.now(UTC).replace(hour=18, minute=0, second=0, microsecond=0) + timedelta(days=1)
        await self.create_calendar_event(
            john.user_id, "Date night", tomorrow, tomorrow + timedelta(hours=2), visibility="partner"
        )
        await self.create_calendar_event(
            john.user_id,
            "Project deadline",
            tomorrow + timedelta(days=2),
            tomorrow + timedelta(days=2, hours=1),
            visibility="private",
        )

        session = await self.create_coaching_session(john.user_id, "Getting started")
        await self.create_coaching_message(
            session.id, "Welcome! What would you like to work on in your relationship?", False
        )
        logger.info("Sample data initialized", users=len(self._users))
