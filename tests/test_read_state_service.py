"""Tests for read-state transitions and their effect on unread counters."""

import pytest


@pytest.mark.asyncio
async def test_mark_as_read_flips_other_role_messages(engine, installer_a, admin) -> None:
    conversation, first = await engine.chat.start_conversation(installer_a, "Hello")
    reply = await engine.chat.send_message(conversation["_id"], admin, "Hi")

    updated = await engine.read_state.mark_as_read(conversation["_id"], "admin")

    assert updated == 1
    statuses = {m["_id"]: m["status"] for m in engine.chat.get_messages(conversation["_id"])}
    assert statuses[first["_id"]] == "read"
    assert statuses[reply["_id"]] == "delivered"
    listed = await engine.chat.list_conversations("admin", "admin-1")
    assert listed[0]["unread_count"] == 0


@pytest.mark.asyncio
async def test_mark_as_read_twice_is_a_noop(engine, installer_a) -> None:
    conversation, _ = await engine.chat.start_conversation(installer_a, "Hello")

    assert await engine.read_state.mark_as_read(conversation["_id"], "admin") == 1
    assert await engine.read_state.mark_as_read(conversation["_id"], "admin") == 0


@pytest.mark.asyncio
async def test_mark_as_read_unknown_conversation(engine) -> None:
    assert await engine.read_state.mark_as_read("missing", "admin") == 0


@pytest.mark.asyncio
async def test_mark_as_read_publishes_event(engine, installer_a, admin) -> None:
    conversation, _ = await engine.chat.start_conversation(installer_a, "Hello")
    await engine.chat.send_message(conversation["_id"], admin, "Hi")
    events = []
    engine.hub.on("messages_read", events.append)

    await engine.read_state.mark_as_read(conversation["_id"], "installer")

    assert len(events) == 1
    assert events[0]["conversation_id"] == conversation["_id"]
    assert events[0]["installer_id"] == "inst-1"
    assert events[0]["viewer_type"] == "installer"
    assert len(events[0]["message_ids"]) == 1


@pytest.mark.asyncio
async def test_delivered_never_overrides_read(engine, installer_a) -> None:
    conversation, message = await engine.chat.start_conversation(installer_a, "Hello")
    await engine.read_state.mark_as_read(conversation["_id"], "admin")

    assert engine.read_state.mark_delivered(conversation["_id"], message["_id"]) is False
    assert engine.chat.get_messages(conversation["_id"])[0]["status"] == "read"
