import pytest

from relay.store import MemoryStore, NullStore, StoredMessage


def _message(message_id: str, room: str = "general", text: str = "hi") -> StoredMessage:
    return StoredMessage(
        message_id=message_id,
        room=room,
        sender="alice",
        content=text,
        timestamp="2024-01-01T00:00:00+00:00",
    )


async def test_history_keeps_order_and_limit():
    store = MemoryStore()
    for i in range(5):
        await store.save_message(_message(f"m{i}"))
    await store.save_message(_message("t0", room="tech"))

    history = await store.load_history("general", limit=3)

    assert [m.message_id for m in history] == ["m2", "m3", "m4"]
    assert await store.load_history("general", limit=0) == []
    assert await store.load_history("ghost") == []


async def test_mark_read_is_deduplicated():
    store = MemoryStore()
    await store.save_message(_message("m1"))

    await store.mark_read("m1", "bob")
    await store.mark_read("m1", "bob")
    await store.mark_read("unknown", "bob")

    message = await store.get_message("m1")
    assert [mark.username for mark in message.read_by] == ["bob"]


async def test_user_status():
    store = MemoryStore()
    await store.set_user_status("alice", "online")
    await store.set_user_status("bob", "online")
    await store.set_user_status("bob", "offline")

    assert [u.username for u in await store.online_users()] == ["alice"]
    assert (await store.get_user("bob")).status == "offline"

    with pytest.raises(ValueError):
        await store.set_user_status("alice", "away")


async def test_null_store_keeps_nothing():
    store = NullStore()
    await store.save_message(_message("m1"))
    await store.mark_read("m1", "bob")
    await store.set_user_status("alice", "online")

    assert await store.load_history("general") == []
