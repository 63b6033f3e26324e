from unittest import mock

import pytest

from socialhub.realtime import socketio as realtime_socketio


@pytest.fixture
def emit(monkeypatch):
    fake = mock.AsyncMock()
    monkeypatch.setattr(realtime_socketio.sio, "emit", fake)
    return fake


@pytest.fixture
def bound(relationships, broadcaster, emit):
    realtime_socketio.bind(relationships, broadcaster)
    yield relationships, broadcaster
    realtime_socketio.unbind()


def _emitted(emit, sid):
    return [c.args[0] for c in emit.await_args_list if c.kwargs.get("to") == sid]


async def test_connected_session_receives_its_own_changes(bound, emit):
    relationships, broadcaster = bound
    alice = await relationships.create_user("Alice", "alice@example.com")
    group = await relationships.create_group("Readers")
    await realtime_socketio.connect("sid-1", {}, None)

    ack = await realtime_socketio.join("sid-1", {"userId": alice.id, "groupId": group.id})
    await broadcaster.drain()

    assert ack["ok"] is True
    assert ack["data"]["group"]["members"] == [alice.id]
    assert ack["data"]["user"]["groups"] == [group.id]
    assert _emitted(emit, "sid-1") == ["groupUpdated"]


async def test_every_session_sees_a_like(bound, emit):
    relationships, broadcaster = bound
    author = await relationships.create_user("Author", "author@example.com")
    fan = await relationships.create_user("Fan", "fan@example.com")
    post = await relationships.create_post("Hello", author.id)
    await realtime_socketio.connect("sid-1", {}, None)
    await realtime_socketio.connect("sid-2", {}, None)

    ack = await realtime_socketio.like("sid-1", {"userId": fan.id, "postId": post.id})
    await broadcaster.drain()

    assert ack["data"]["post"]["liked_by"] == [fan.id]
    assert _emitted(emit, "sid-1") == ["postLiked"]
    assert _emitted(emit, "sid-2") == ["postLiked"]


async def test_post_message_and_new_post(bound, emit):
    relationships, broadcaster = bound
    author = await relationships.create_user("Author", "author@example.com")
    group = await relationships.create_group("Readers")
    await realtime_socketio.connect("sid-1", {}, None)

    post_ack = await realtime_socketio.new_post(
        "sid-1", {"authorId": author.id, "content": "Hi group", "groupId": group.id}
    )
    comment_ack = await realtime_socketio.post_message(
        "sid-1", {"authorId": author.id, "targetId": post_ack["data"]["id"], "content": "first"}
    )
    chat_ack = await realtime_socketio.post_message(
        "sid-1",
        {"authorId": author.id, "targetId": group.id, "content": "hello", "targetKind": "group"},
    )
    await broadcaster.drain()

    assert post_ack["data"]["group_id"] == group.id
    assert comment_ack["data"]["target_kind"] == "post"
    assert chat_ack["data"]["target_kind"] == "group"
    assert _emitted(emit, "sid-1") == ["postCreated", "commentAdded", "newMessage"]


async def test_failures_are_acked_and_not_broadcast(bound, emit):
    relationships, broadcaster = bound
    alice = await relationships.create_user("Alice", "alice@example.com")
    await realtime_socketio.connect("sid-1", {}, None)

    missing = await realtime_socketio.join("sid-1", {"userId": alice.id, "groupId": "bad-id"})
    incomplete = await realtime_socketio.like("sid-1", {"userId": alice.id})
    not_an_object = await realtime_socketio.new_post("sid-1", "hello")
    await broadcaster.drain()

    assert missing == {"ok": False, "error": "not_found", "detail": missing["detail"]}
    assert incomplete["error"] == "validation_failed"
    assert not_an_object["error"] == "validation_failed"
    assert (await relationships.get_user(alice.id)).groups == []
    emit.assert_not_awaited()


async def test_disconnect_stops_delivery(bound, emit):
    relationships, broadcaster = bound
    await realtime_socketio.connect("sid-1", {}, None)
    await realtime_socketio.disconnect("sid-1")

    await realtime_socketio.new_post(
        "sid-2", {"authorId": (await relationships.create_user("A", "a@example.com")).id, "content": "x"}
    )
    await broadcaster.drain()

    assert not broadcaster.is_connected("sid-1")
    emit.assert_not_awaited()


async def test_handlers_require_binding():
    with pytest.raises(RuntimeError):
        await realtime_socketio.connect("sid-1", {}, None)


async def test_malformed_target_kind_is_a_validation_failure(bound, emit):
    relationships, broadcaster = bound
    author = await relationships.create_user("Author", "author@example.com")
    group = await relationships.create_group("Readers")
    await realtime_socketio.connect("sid-1", {}, None)

    ack = await realtime_socketio.post_message(
        "sid-1",
        {"authorId": author.id, "targetId": group.id, "content": "hi", "targetKind": "user"},
    )
    await broadcaster.drain()

    assert ack["ok"] is False
    assert ack["error"] == "validation_failed"
    emit.assert_not_awaited()
