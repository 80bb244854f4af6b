"""Tests for the in-memory session registry."""

import asyncio
from datetime import timedelta

import pytest

from procurement_agent.agent.session_store import SessionStore
from procurement_agent.models import ConversationMessage, ResolvedContext, Role, utcnow


@pytest.fixture
def store():
    return SessionStore()


def test_get_or_create_returns_same_session(store):
    first = store.get_or_create("abc")
    second = store.get_or_create("abc")

    assert first is second
    assert len(store) == 1
    assert first.messages == []
    assert first.resolved_context == ResolvedContext()


def test_get_does_not_create(store):
    assert store.get("missing") is None
    assert "missing" not in store


def test_reset(store):
    session = store.get_or_create("abc")
    session.add_message(ConversationMessage(role=Role.USER, text="hi"))

    assert store.reset("abc") is True
    assert store.reset("abc") is False
    assert store.get_or_create("abc").messages == []


def test_evict_idle(store):
    old = store.get_or_create("old")
    store.get_or_create("fresh")
    old.last_activity = utcnow() - timedelta(hours=13)

    evicted = store.evict_idle(timedelta(hours=12))

    assert evicted == ["old"]
    assert store.list_sessions() == ["fresh"]


@pytest.mark.asyncio
async def test_evict_skips_locked_sessions(store):
    async with store.session("busy") as session:
        session.last_activity = utcnow() - timedelta(days=2)
        assert store.evict_idle(timedelta(hours=1)) == []
    assert "busy" in store


def test_messages_kept_in_timestamp_order(store):
    session = store.get_or_create("order")
    now = utcnow()
    late = ConversationMessage(role=Role.AGENT, text="late", timestamp=now)
    early = ConversationMessage(role=Role.USER, text="early", timestamp=now - timedelta(seconds=5))
    tie = ConversationMessage(role=Role.USER, text="tie", timestamp=now)

    session.add_message(late)
    session.add_message(early)
    session.add_message(tie)

    assert [m.text for m in session.messages] == ["early", "late", "tie"]


def test_recent_messages(store):
    session = store.get_or_create("recent")
    for i in range(15):
        session.add_message(ConversationMessage(role=Role.USER, text=str(i)))

    recent = session.recent_messages(10)
    assert [m.text for m in recent] == [str(i) for i in range(5, 15)]
    assert session.recent_messages(0) == []


@pytest.mark.asyncio
async def test_same_session_is_serialized(store):
    order = []

    async def work(name: str, delay: float):
        async with store.session("shared"):
            order.append(f"{name}-start")
            await asyncio.sleep(delay)
            order.append(f"{name}-end")

    await asyncio.gather(work("first", 0.05), work("second", 0))

    assert order == ["first-start", "first-end", "second-start", "second-end"]


@pytest.mark.asyncio
async def test_distinct_sessions_run_concurrently(store):
    order = []

    async def work(session_id: str, delay: float):
        async with store.session(session_id):
            order.append(f"{session_id}-start")
            await asyncio.sleep(delay)
            order.append(f"{session_id}-end")

    await asyncio.gather(work("a", 0.05), work("b", 0))

    assert order.index("b-start") < order.index("a-end")


@pytest.mark.asyncio
async def test_concurrent_creation_yields_one_session(store):
    sessions = []

    async def grab():
        async with store.session("race") as session:
            sessions.append(session)

    await asyncio.gather(*(grab() for _ in range(10)))

    assert len(store) == 1
    assert all(s is sessions[0] for s in sessions)
