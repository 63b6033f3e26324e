"""SQL document store against a throwaway SQLite database."""
from datetime import datetime, timezone

import pytest
from sqlalchemy.dialects import mysql
from sqlalchemy.schema import CreateTable

from socialhub.entities import EntityKind, Group
from socialhub.errors import DuplicateEmail, NotFound, UniqueConstraintViolation, ValidationFailure
from socialhub.models import GroupRow, MessageRow, PostRow, UserRow
from socialhub.relationships import RelationshipStore


async def test_create_and_find_by_id(sql_store):
    user = await sql_store.create(EntityKind.USER, {"name": "Alice", "email": "alice@example.com"})

    found = await sql_store.find_by_id(EntityKind.USER, user.id)

    assert found.id == user.id
    assert found.email == "alice@example.com"
    assert found.groups == [] and found.liked_posts == []
    assert await sql_store.find_by_id(EntityKind.USER, "missing") is None


async def test_create_rejects_invalid_fields(sql_store):
    with pytest.raises(ValidationFailure):
        await sql_store.create(EntityKind.USER, {"name": "Alice", "email": "nope"})

    assert await sql_store.find(EntityKind.USER) == []


async def test_unique_email_index(sql_store):
    await sql_store.create(EntityKind.USER, {"name": "Alice", "email": "alice@example.com"})

    with pytest.raises(UniqueConstraintViolation):
        await sql_store.create(EntityKind.USER, {"name": "Clone", "email": "alice@example.com"})


async def test_save_persists_list_fields(sql_store):
    group = await sql_store.create(EntityKind.GROUP, {"name": "Readers"})
    group.members = ["u1", "u2"]

    assert await sql_store.save(group) is True

    stored = await sql_store.find_by_id(EntityKind.GROUP, group.id)
    assert stored.members == ["u1", "u2"]


async def test_save_of_missing_document_returns_false(sql_store):
    assert await sql_store.save(Group(name="Nowhere")) is False


async def test_find_filters_and_orders(sql_store):
    author = await sql_store.create(EntityKind.USER, {"name": "A", "email": "a@example.com"})
    for text in ("one", "two", "three"):
        await sql_store.create(
            EntityKind.POST, {"content": text, "author_id": author.id, "group_id": None}
        )

    newest = await sql_store.find(EntityKind.POST, order_by="created_at", descending=True, limit=2)
    by_author = await sql_store.find(EntityKind.POST, {"author_id": author.id})

    assert [p.content for p in newest] == ["three", "two"]
    assert len(by_author) == 3
    assert await sql_store.find(EntityKind.POST, {"author_id": "nobody"}) == []


async def test_readers_scenario_on_sql(sql_store):
    hub = RelationshipStore(sql_store)
    alice = await hub.create_user("Alice", "alice@example.com")
    bob = await hub.create_user("Bob", "bob@example.com")
    group = await hub.create_group("Readers")

    await hub.join_group(alice.id, group.id)
    await hub.join_group(alice.id, group.id)
    with pytest.raises(NotFound):
        await hub.join_group(bob.id, "bad-id")
    with pytest.raises(DuplicateEmail):
        await hub.create_user("Alice 2", "ALICE@example.com")

    assert (await hub.get_group(group.id)).members == [alice.id]
    assert (await hub.get_user(alice.id)).groups == [group.id]
    assert (await hub.get_user(bob.id)).groups == []


async def test_timestamp_ties_are_ordered_by_id(sql_store):
    author = await sql_store.create(EntityKind.USER, {"name": "A", "email": "a@example.com"})
    same_instant = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)
    for post_id in ("p-c", "p-a", "p-b"):
        await sql_store.create(
            EntityKind.POST,
            {"id": post_id, "content": post_id, "author_id": author.id, "created_at": same_instant},
        )

    oldest_first = await sql_store.find(EntityKind.POST, order_by="created_at")
    newest_first = await sql_store.find(EntityKind.POST, order_by="created_at", descending=True)

    assert [p.id for p in oldest_first] == ["p-a", "p-b", "p-c"]
    assert [p.id for p in newest_first] == ["p-c", "p-b", "p-a"]


def test_mysql_timestamps_keep_microseconds():
    for row_cls in (UserRow, GroupRow, PostRow, MessageRow):
        ddl = str(CreateTable(row_cls.__table__).compile(dialect=mysql.dialect()))
        assert "created_at DATETIME(6) NOT NULL" in ddl, row_cls.__name__


async def test_profile_survives_relation_updates(sql_store):
    hub = RelationshipStore(sql_store)
    alice = await hub.create_user("Alice", "alice@example.com", {"bio": "Reads sci-fi", "avatar": "a.png"})
    group = await hub.create_group("Readers")

    await hub.join_group(alice.id, group.id)

    stored = await hub.get_user(alice.id)
    assert stored.profile.bio == "Reads sci-fi"
    assert stored.profile.avatar == "a.png"
    assert stored.groups == [group.id]
