from datetime import UTC, datetime, timedelta

import pytest

from app.services.store import InMemoryStore, NotFoundError, StoreError


async def _couple(store):
    await store.ensure_user("user-123", "user@example.com")
    await store.ensure_user("partner-456", "partner@example.com")
    await store.connect_partners("user-123", "partner-456")


@pytest.mark.asyncio
async def test_ensure_user_is_idempotent():
    store = InMemoryStore()

    first = await store.ensure_user("user-123", "user@example.com")
    await store.update_user("user-123", nickname="Sammy")
    second = await store.ensure_user("user-123")

    assert first.user_id == second.user_id
    assert second.nickname == "Sammy"
    assert second.email == "user@example.com"


@pytest.mark.asyncio
async def test_update_unknown_user_raises():
    store = InMemoryStore()

    with pytest.raises(NotFoundError):
        await store.update_user("ghost", nickname="Boo")


@pytest.mark.asyncio
async def test_connect_partners_links_both_sides():
    store = InMemoryStore()
    await _couple(store)

    assert (await store.get_user("user-123")).partner_id == "partner-456"
    assert (await store.get_user("partner-456")).partner_id == "user-123"


@pytest.mark.asyncio
async def test_invite_code_is_single_use():
    store = InMemoryStore()
    await store.ensure_user("inviter")
    await store.ensure_user("invitee")
    await store.ensure_user("latecomer")

    code = await store.create_invite_code("inviter")
    inviter = await store.accept_invite("invitee", code)

    assert inviter.user_id == "inviter"
    assert (await store.get_user("invitee")).partner_id == "inviter"
    assert (await store.get_user("inviter")).invite_code is None
    with pytest.raises(NotFoundError):
        await store.accept_invite("latecomer", code)


@pytest.mark.asyncio
async def test_cannot_accept_own_invite():
    store = InMemoryStore()
    await store.ensure_user("solo")
    code = await store.create_invite_code("solo")

    with pytest.raises(StoreError) as exc:
        await store.accept_invite("solo", code)

    assert exc.value.recoverable is False


@pytest.mark.asyncio
async def test_stale_invite_code_dies_when_owner_partners_elsewhere():
    store = InMemoryStore()
    for uid in ("a", "b", "c"):
        await store.ensure_user(uid)
    stale_code = await store.create_invite_code("a")
    b_code = await store.create_invite_code("b")

    await store.accept_invite("a", b_code)

    assert (await store.get_user("a")).invite_code is None
    with pytest.raises(NotFoundError):
        await store.accept_invite("c", stale_code)
    assert (await store.get_user("a")).partner_id == "b"
    assert (await store.get_user("b")).partner_id == "a"
    assert (await store.get_user("c")).partner_id is None


@pytest.mark.asyncio
async def test_invite_from_already_partnered_owner_rejected():
    store = InMemoryStore()
    for uid in ("a", "b", "c"):
        await store.ensure_user(uid)
    await store.connect_partners("a", "b")
    # A code set directly on the profile still cannot relink its connected owner
    await store.update_user("a", invite_code="leftover")

    with pytest.raises(StoreError) as exc:
        await store.accept_invite("c", "leftover")

    assert not isinstance(exc.value, NotFoundError)
    assert (await store.get_user("b")).partner_id == "a"
    assert (await store.get_user("c")).partner_id is None


@pytest.mark.asyncio
async def test_connect_partners_clears_outstanding_invite_codes():
    store = InMemoryStore()
    await store.ensure_user("a")
    await store.ensure_user("b")
    await store.create_invite_code("a")
    await store.create_invite_code("b")

    await store.connect_partners("a", "b")

    assert (await store.get_user("a")).invite_code is None
    assert (await store.get_user("b")).invite_code is None


@pytest.mark.asyncio
async def test_messages_are_scoped_to_the_couple_and_ordered():
    store = InMemoryStore()
    await _couple(store)
    await store.ensure_user("stranger")

    await store.create_message("user-123", "partner-456", "first")
    await store.create_message("stranger", "user-123", "spam")
    await store.create_message("partner-456", "user-123", "second", vibe="playful")

    messages = await store.list_messages("user-123", "partner-456")

    assert [message.content for message in messages] == ["first", "second"]
    assert messages[1].vibe == "playful"
    assert len({message.id for message in messages}) == 2


@pytest.mark.asyncio
async def test_coaching_session_ownership_is_enforced():
    store = InMemoryStore()
    session = await store.create_coaching_session("user-123", "Talking more")

    assert (await store.get_coaching_session("user-123", session.id)).title == "Talking more"
    with pytest.raises(NotFoundError):
        await store.get_coaching_session("someone-else", session.id)
    with pytest.raises(NotFoundError):
        await store.get_coaching_session("user-123", 999)


@pytest.mark.asyncio
async def test_coaching_messages_append_in_order_and_touch_session():
    store = InMemoryStore()
    session = await store.create_coaching_session("user-123", "Session")

    await store.create_coaching_message(session.id, "hi coach", True)
    await store.create_coaching_message(session.id, "hi there", False)

    turns = [message.to_turn() for message in await store.list_coaching_messages(session.id)]
    assert [(turn.speaker, turn.text) for turn in turns] == [
        ("user", "hi coach"),
        ("coach", "hi there"),
    ]
    refreshed = await store.get_coaching_session("user-123", session.id)
    assert refreshed.updated_at >= session.updated_at


@pytest.mark.asyncio
async def test_coaching_message_for_missing_session_raises():
    store = InMemoryStore()

    with pytest.raises(NotFoundError):
        await store.create_coaching_message(42, "hello", True)


@pytest.mark.asyncio
async def test_calendar_lists_own_and_shared_partner_events():
    store = InMemoryStore()
    await _couple(store)
    start = datetime(2026, 3, 3, 18, 0, tzinfo=UTC)

    await store.create_calendar_event("user-123", "Mine", start, start + timedelta(hours=1))
    await store.create_calendar_event(
        "partner-456", "Shared", start - timedelta(hours=2), start, visibility="partner"
    )
    await store.create_calendar_event(
        "partner-456", "Private", start, start + timedelta(hours=1), visibility="private"
    )

    events = await store.list_calendar_events("user-123")

    assert [event.title for event in events] == ["Shared", "Mine"]


@pytest.mark.asyncio
async def test_calendar_event_end_before_start_rejected():
    store = InMemoryStore()
    start = datetime(2026, 3, 3, 18, 0, tzinfo=UTC)

    with pytest.raises(StoreError):
        await store.create_calendar_event("user-123", "Backwards", start, start - timedelta(hours=1))


@pytest.mark.asyncio
async def test_notifications_mark_read_and_filter():
    store = InMemoryStore()
    first = await store.create_notification("user-123", "message", "One", "body")
    await store.create_notification("user-123", "coaching", "Two", "body")

    await store.mark_notification_read("user-123", first.id)

    unread = await store.list_notifications("user-123", unread_only=True)
    assert [notification.title for notification in unread] == ["Two"]
    with pytest.raises(NotFoundError):
        await store.mark_notification_read("someone-else", first.id)


@pytest.mark.asyncio
async def test_activities_newest_first_with_limit():
    store = InMemoryStore()
    for i in range(5):
        await store.create_activity("user-123", "message", f"activity {i}")

    activities = await store.list_activities("user-123", limit=2)

    assert [activity.description for activity in activities] == ["activity 4", "activity 3"]


@pytest.mark.asyncio
async def test_seed_sample_data_runs_once():
    store = InMemoryStore()

    await store.seed_sample_data()
    await store.seed_sample_data()

    john = await store.get_user("demo-john")
    assert john.partner_id == "demo-jane"
    assert len(await store.list_messages("demo-john", "demo-jane")) == 3
    assert len(await store.list_coaching_sessions("demo-john")) == 1


@pytest.mark.asyncio
async def test_coaching_library_loads_once_with_ordered_contents():
    store = InMemoryStore()

    await store.load_coaching_library()
    await store.load_coaching_library()

    topics = await store.list_coaching_topics()
    assert len(topics) == 5
    conflict = next(t for t in topics if t.title == "Resolving Conflicts")
    contents = await store.list_coaching_contents(conflict.id)
    assert [c.order for c in contents] == [1, 2, 3, 4, 5]
    assert contents[0].title == "Introduction"


@pytest.mark.asyncio
async def test_unknown_coaching_topic_raises():
    store = InMemoryStore()

    with pytest.raises(NotFoundError):
        await store.get_coaching_topic(42)
    with pytest.raises(NotFoundError):
        await store.create_coaching_content(42, "Orphan", "No topic", 1)
