import pytest

from socialhub.entities import EntityKind
from socialhub.errors import DuplicateEmail, NotFound, ValidationFailure


async def _user(relationships, name="Alice", email=None):
    return await relationships.create_user(name, email or f"{name.lower()}@example.com")


async def test_create_user_rejects_duplicate_email(relationships):
    await relationships.create_user("Alice", "alice@example.com")

    with pytest.raises(DuplicateEmail):
        await relationships.create_user("Alice Again", "Alice@Example.com ")

    users = await relationships.list_users()
    assert [u.name for u in users] == ["Alice"]


async def test_create_user_validates_fields(relationships):
    with pytest.raises(ValidationFailure):
        await relationships.create_user("", "nobody@example.com")
    with pytest.raises(ValidationFailure):
        await relationships.create_user("Nobody", "not-an-email")


async def test_readers_scenario(relationships):
    u1 = await _user(relationships, "Alice")
    u2 = await _user(relationships, "Bob")
    g1 = await relationships.create_group("Readers", "Books")

    group, user = await relationships.join_group(u1.id, g1.id)
    assert group.members == [u1.id]
    assert user.groups == [g1.id]

    group, user = await relationships.join_group(u1.id, g1.id)
    assert group.members == [u1.id]
    assert user.groups == [g1.id]

    with pytest.raises(NotFound):
        await relationships.join_group(u2.id, "bad-id")

    assert (await relationships.get_group(g1.id)).members == [u1.id]
    assert (await relationships.get_user(u2.id)).groups == []


async def test_join_with_unknown_user_leaves_group_untouched(relationships):
    g1 = await relationships.create_group("Readers")

    with pytest.raises(NotFound) as exc_info:
        await relationships.join_group("ghost", g1.id)

    assert exc_info.value.kind == "user"
    assert (await relationships.get_group(g1.id)).members == []


async def test_liked_post_scenario(relationships):
    u1 = await _user(relationships, "Alice")
    u2 = await _user(relationships, "Bob")
    post = await relationships.create_post("Hello readers", u1.id)
    assert post.liked_by == []

    liked, user = await relationships.like_post(u2.id, post.id)
    assert liked.liked_by == [u2.id]
    assert user.liked_posts == [post.id]

    liked, user = await relationships.like_post(u2.id, post.id)
    assert liked.liked_by == [u2.id]
    assert user.liked_posts == [post.id]

    assert (await relationships.get_user(u1.id)).liked_posts == []


async def test_like_unknown_post_leaves_user_untouched(relationships):
    u1 = await _user(relationships, "Alice")

    with pytest.raises(NotFound):
        await relationships.like_post(u1.id, "missing")

    assert (await relationships.get_user(u1.id)).liked_posts == []


async def test_membership_is_bidirectional_across_many_joins(relationships):
    users = [await _user(relationships, f"user{i}") for i in range(3)]
    groups = [await relationships.create_group(f"group{i}") for i in range(2)]

    for user in users:
        for group in groups:
            await relationships.join_group(user.id, group.id)
            await relationships.join_group(user.id, group.id)

    for group in groups:
        stored = await relationships.get_group(group.id)
        assert sorted(stored.members) == sorted(u.id for u in users)
        for member_id in stored.members:
            assert group.id in (await relationships.get_user(member_id)).groups


async def test_create_post_requires_existing_author_and_group(relationships, memory_store):
    author = await _user(relationships)

    with pytest.raises(NotFound):
        await relationships.create_post("text", "ghost")
    with pytest.raises(NotFound):
        await relationships.create_post("text", author.id, group_id="ghost")

    assert await memory_store.find(EntityKind.POST) == []


async def test_create_post_in_group(relationships):
    author = await _user(relationships)
    group = await relationships.create_group("Readers")

    post = await relationships.create_post("In the group", author.id, group.id)

    assert post.group_id == group.id
    assert [p.id for p in await relationships.list_posts(group_id=group.id)] == [post.id]


async def test_create_message_resolves_target_kind(relationships):
    author = await _user(relationships)
    group = await relationships.create_group("Readers")
    post = await relationships.create_post("A post", author.id)

    comment = await relationships.create_message("Nice post", author.id, post.id)
    chat = await relationships.create_message("Hi all", author.id, group.id)

    assert (comment.target_kind, comment.target_id) == ("post", post.id)
    assert (chat.target_kind, chat.target_id) == ("group", group.id)


async def test_create_message_rejects_dangling_references(relationships, memory_store):
    author = await _user(relationships)
    group = await relationships.create_group("Readers")

    with pytest.raises(NotFound):
        await relationships.create_message("hi", "ghost", group.id)
    with pytest.raises(NotFound):
        await relationships.create_message("hi", author.id, "ghost")
    with pytest.raises(NotFound):
        # A group id is not a valid post target
        await relationships.create_message("hi", author.id, group.id, "post")

    assert await memory_store.find(EntityKind.MESSAGE) == []


async def test_list_messages_oldest_first(relationships):
    author = await _user(relationships)
    group = await relationships.create_group("Readers")
    for text in ("first", "second", "third"):
        await relationships.create_message(text, author.id, group.id, "group")

    messages = await relationships.list_messages(group.id, "group")

    assert [m.content for m in messages] == ["first", "second", "third"]

    with pytest.raises(NotFound):
        await relationships.list_messages("ghost", "group")


async def test_list_members_returns_user_records(relationships):
    alice = await _user(relationships, "Alice")
    bob = await _user(relationships, "Bob")
    group = await relationships.create_group("Readers")
    await relationships.join_group(bob.id, group.id)
    await relationships.join_group(alice.id, group.id)

    members = await relationships.list_members(group.id)

    assert [m.name for m in members] == ["Bob", "Alice"]


async def test_returned_entities_are_detached(relationships):
    user = await _user(relationships)
    user.groups.append("not-saved")

    assert (await relationships.get_user(user.id)).groups == []


async def test_create_message_rejects_unknown_target_kind(relationships, memory_store):
    author = await _user(relationships)
    group = await relationships.create_group("Readers")

    with pytest.raises(ValidationFailure):
        await relationships.create_message("hi", author.id, group.id, "user")
    with pytest.raises(ValidationFailure):
        await relationships.list_messages(group.id, "user")

    assert await memory_store.find(EntityKind.MESSAGE) == []


async def test_create_user_profile_defaults_and_validation(relationships):
    plain = await _user(relationships, "Plain")
    assert (plain.profile.bio, plain.profile.avatar) == ("", "")

    with pytest.raises(ValidationFailure):
        await relationships.create_user("Odd", "odd@example.com", {"bio": "x", "mood": "happy"})
