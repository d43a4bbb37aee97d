"""Tests for the raw-document collection used before the typed client knows a model."""
from datetime import datetime, timezone

import pytest
from bson import ObjectId

from panelgen.runtime.raw import RawCollection
from panelgen.runtime.sanitize import normalize_document, sanitize_create_data


def test_sanitize_create_data():
    data = sanitize_create_data({
        "id": "x", "_id": "y", "createdAt": 1, "updatedAt": 2,
        "isVisible": True, "iconType": "star", "title": "A",
    })

    assert data == {"is_visible": True, "icon_type": "star", "title": "A", "isPublished": False}
    assert sanitize_create_data({"isPublished": True})["isPublished"] is True
    assert sanitize_create_data({"isPublished": "yes"})["isPublished"] is False
    assert sanitize_create_data(["not", "a", "dict"]) == {"isPublished": False}


def test_normalize_document():
    oid = ObjectId()
    assert normalize_document({"_id": oid, "a": 1}) == {"id": str(oid), "a": 1}
    assert normalize_document(None) is None


@pytest.mark.asyncio
async def test_insert_then_find_many_returns_newest_first(fake_db):
    cases = RawCollection(fake_db, "casess")

    first = await cases.insert({"title": "first"})
    second = await cases.insert({"title": "second", "id": "ignored"})
    docs, total = await cases.find_many()

    assert total == 2
    assert [d["title"] for d in docs] == ["second", "first"]
    assert docs[0]["id"] == second["id"]
    assert docs[0]["isPublished"] is False
    assert isinstance(docs[0]["created_at"], datetime)
    assert first["id"] != second["id"]


@pytest.mark.asyncio
async def test_find_many_paginates(fake_db):
    cases = RawCollection(fake_db, "casess")
    for i in range(5):
        await cases.insert({"n": i})

    page, total = await cases.find_many(skip=2, take=2)

    assert total == 5
    assert [d["n"] for d in page] == [2, 1]


@pytest.mark.asyncio
async def test_string_timestamps_are_normalized(fake_db):
    fake_db.collections["casess"] = [
        {"_id": ObjectId(), "title": "old", "created_at": "2020-01-01T00:00:00Z"},
        {"_id": ObjectId(), "title": "no timestamps"},
    ]
    cases = RawCollection(fake_db, "casess")

    docs, _ = await cases.find_many()

    assert docs[0]["title"] == "no timestamps"
    assert docs[1]["created_at"] == datetime(2020, 1, 1, tzinfo=timezone.utc)
    assert all(isinstance(d["updated_at"], datetime) for d in docs)


@pytest.mark.asyncio
async def test_update_keeps_dollar_strings_literal(fake_db):
    cases = RawCollection(fake_db, "casess")
    created = await cases.insert({"title": "a"})

    updated = await cases.update(created["id"], {"title": "$title", "isPublished": True})

    assert updated["title"] == "$title"
    assert updated["isPublished"] is True
    assert updated["created_at"] == created["created_at"]


@pytest.mark.asyncio
async def test_invalid_ids_are_not_found(fake_db):
    cases = RawCollection(fake_db, "casess")

    assert await cases.find_one("not-an-object-id") is None
    assert await cases.update("not-an-object-id", {"title": "x"}) is None
    assert await cases.delete("not-an-object-id") is False
    assert await cases.delete(str(ObjectId())) is False


@pytest.mark.asyncio
async def test_replace_all_and_delete(fake_db):
    items = RawCollection(fake_db, "itemss")
    await items.insert({"label": "stale"})

    replaced = await items.replace_all([{"label": "a", "id": "x"}, {"label": "b"}])

    assert sorted(d["label"] for d in replaced) == ["a", "b"]
    assert await items.count() == 2
    assert await items.delete(replaced[0]["id"]) is True
    assert await items.count() == 1


@pytest.mark.asyncio
async def test_singleton_document(fake_db):
    menu = RawCollection(fake_db, "menus")

    created = await menu.ensure_first({"items": []})
    again = await menu.ensure_first({"items": []})
    stored = await menu.upsert_first({"items": [{"label": "Home"}]})

    assert created["items"] == []
    assert again["id"] == created["id"]
    assert stored["items"] == [{"label": "Home"}]
    assert len(fake_db.collections["menus"]) == 1
