from unittest.mock import AsyncMock, MagicMock

import pytest

from portal_chat.database.store import MemoryStore, MongoStore


@pytest.mark.asyncio
async def test_memory_store_missing_key_is_none() -> None:
    store = MemoryStore()
    assert await store.load("conversations") is None


@pytest.mark.asyncio
async def test_memory_store_copies_values() -> None:
    store = MemoryStore()
    value = {"c1": [{"_id": "m1"}]}
    await store.save("messages-by-conversation", value)
    value["c1"].append({"_id": "m2"})

    loaded = await store.load("messages-by-conversation")
    assert loaded == {"c1": [{"_id": "m1"}]}
    loaded["c1"].clear()
    assert await store.load("messages-by-conversation") == {"c1": [{"_id": "m1"}]}


@pytest.mark.asyncio
async def test_mongo_store_reads_value_field() -> None:
    collection = MagicMock()
    collection.find_one = AsyncMock(return_value={"_id": "conversations", "value": [{"_id": "c1"}]})
    store = MongoStore({"engine_state": collection})

    assert await store.load("conversations") == [{"_id": "c1"}]
    collection.find_one.assert_awaited_once_with({"_id": "conversations"})


@pytest.mark.asyncio
async def test_mongo_store_missing_document_is_none() -> None:
    collection = MagicMock()
    collection.find_one = AsyncMock(return_value=None)
    store = MongoStore({"chat_state": collection}, collection_name="chat_state")

    assert await store.load("admin-notifications") is None


@pytest.mark.asyncio
async def test_mongo_store_upserts_whole_blob() -> None:
    collection = MagicMock()
    collection.replace_one = AsyncMock()
    store = MongoStore({"engine_state": collection})

    await store.save("conversations", [{"_id": "c1"}])

    collection.replace_one.assert_awaited_once_with(
        {"_id": "conversations"},
        {"_id": "conversations", "value": [{"_id": "c1"}]},
        upsert=True,
    )
