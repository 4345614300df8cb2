"""Tests for the ordered, append-only message store."""

from datetime import datetime, timedelta, timezone

import pytest
from bson import ObjectId

from portal_chat.database.store import MemoryStore
from portal_chat.models.message import MessageStatus
from portal_chat.repositories.message_repository import MessageRepository

T0 = datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc)


def _message(**extra) -> dict:
    doc = {
        "sender_id": "inst-1",
        "sender_name": "Ali Khan",
        "sender_type": "installer",
        "body": "Hello",
        "timestamp": T0,
    }
    doc.update(extra)
    return doc


@pytest.fixture()
def repo() -> MessageRepository:
    return MessageRepository(MemoryStore())


def test_append_assigns_id_and_initial_status(repo: MessageRepository) -> None:
    stored, created = repo.append("c1", _message())

    assert created is True
    assert ObjectId.is_valid(stored["_id"])
    assert stored["conversation_id"] == "c1"
    assert stored["status"] == MessageStatus.SENT.value
    assert stored["kind"] == "text"
    assert stored["attachments"] == []
    assert repo.dirty is True


def test_append_ignores_caller_status(repo: MessageRepository) -> None:
    stored, _ = repo.append("c1", _message(status="read"))
    assert stored["status"] == "sent"


def test_append_same_id_is_idempotent(repo: MessageRepository) -> None:
    repo.append("c1", _message(_id="m1"))
    again, created = repo.append("c1", _message(_id="m1", body="Hello again"))

    assert created is False
    assert again["body"] == "Hello"
    assert [m["_id"] for m in repo.list("c1")] == ["m1"]


def test_id_used_in_another_conversation_is_refused(repo: MessageRepository) -> None:
    repo.append("c1", _message(_id="m1"))

    with pytest.raises(ValueError):
        repo.append("c2", _message(_id="m1"))

    assert repo.list("c2") == []
    assert [m["_id"] for m in repo.list("c1")] == ["m1"]


def test_deleted_ids_can_be_reused(repo: MessageRepository) -> None:
    repo.append("c1", _message(_id="m1"))
    repo.delete_conversation("c1")

    _, created = repo.append("c2", _message(_id="m1"))
    assert created is True


def test_list_orders_by_timestamp_then_id(repo: MessageRepository) -> None:
    repo.append("c1", _message(_id="b", timestamp=T0 + timedelta(seconds=1)))
    repo.append("c1", _message(_id="c", timestamp=T0))
    repo.append("c1", _message(_id="a", timestamp=T0))

    assert [m["_id"] for m in repo.list("c1")] == ["a", "c", "b"]
    assert repo.latest("c1")["_id"] == "b"


def test_unknown_conversation_reads_empty(repo: MessageRepository) -> None:
    assert repo.list("missing") == []
    assert repo.latest("missing") is None
    assert repo.count_unread("missing", "admin") == 0
    assert repo.set_status("missing", lambda m: True, MessageStatus.READ) == []
    assert repo.delete_conversation("missing") == 0


def test_list_returns_copies(repo: MessageRepository) -> None:
    repo.append("c1", _message(_id="m1"))
    repo.list("c1")[0]["status"] = "read"
    assert repo.get("c1", "m1")["status"] == "sent"


def test_status_only_moves_forward(repo: MessageRepository) -> None:
    repo.append("c1", _message(_id="m1"))

    changed = repo.set_status("c1", lambda m: True, MessageStatus.READ)
    assert [m["_id"] for m in changed] == ["m1"]

    assert repo.set_status("c1", lambda m: True, MessageStatus.DELIVERED) == []
    assert repo.set_status("c1", lambda m: True, MessageStatus.READ) == []
    assert repo.get("c1", "m1")["status"] == "read"


def test_set_status_respects_predicate(repo: MessageRepository) -> None:
    repo.append("c1", _message(_id="m1"))
    repo.append("c1", _message(_id="m2", sender_type="admin", sender_id="admin-1"))

    repo.set_status("c1", lambda m: m["sender_type"] != "admin", MessageStatus.READ)

    assert repo.get("c1", "m1")["status"] == "read"
    assert repo.get("c1", "m2")["status"] == "sent"
    assert repo.count_unread("c1", "admin") == 0
    assert repo.count_unread("c1", "installer") == 1


@pytest.mark.asyncio
async def test_merge_moves_messages_and_skips_known_ids() -> None:
    def stored(message_id: str, conversation_id: str, seconds: int) -> dict:
        return {**_message(_id=message_id, timestamp=T0 + timedelta(seconds=seconds)), "conversation_id": conversation_id, "status": "sent"}

    # state written before ids were checked across conversations
    store = MemoryStore(
        {
            "messages-by-conversation": {
                "old": [stored("m1", "old", 0), stored("shared", "old", 2)],
                "new": [stored("shared", "new", 2), stored("m3", "new", 3)],
            }
        }
    )
    repo = MessageRepository(store)
    await repo.load()

    moved = repo.merge("old", "new")

    assert moved == 1
    assert [m["_id"] for m in repo.list("new")] == ["m1", "shared", "m3"]
    assert all(m["conversation_id"] == "new" for m in repo.list("new"))
    assert repo.list("old") == []
    with pytest.raises(ValueError):
        repo.append("other", _message(_id="m1"))


def test_delete_conversation_drops_every_message(repo: MessageRepository) -> None:
    repo.append("c1", _message())
    repo.append("c1", _message())

    assert repo.delete_conversation("c1") == 2
    assert repo.list("c1") == []


@pytest.mark.asyncio
async def test_save_and_load_round_trip() -> None:
    store = MemoryStore()
    repo = MessageRepository(store)
    repo.append("c1", _message(_id="m1"))
    await repo.save()
    assert repo.dirty is False

    reloaded = MessageRepository(store)
    await reloaded.load()
    assert [m["_id"] for m in reloaded.list("c1")] == ["m1"]
