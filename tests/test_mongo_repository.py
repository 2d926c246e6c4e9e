"""
MongoDB backend specifics: id conversion, stored shapes and indexes.
"""

from datetime import datetime, timezone as dt_timezone

import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from core.repositories.mongo import export, to_object_id


@pytest.fixture
def repository(mongo_repository):
    return mongo_repository


@pytest.fixture
def alice(repository):
    return repository.save_user({
        "username": "alice",
        "firstName": "Alice",
        "lastName": "Liddell",
        "email": "alice@example.com",
        "password": "x",
    })


class TestIdConversion:

    def test_to_object_id(self):
        oid = ObjectId()
        assert to_object_id(oid) is oid
        assert to_object_id(str(oid)) == oid
        assert to_object_id("alice") is None
        assert to_object_id(None) is None

    def test_export_renames_and_stringifies(self):
        oid, other = ObjectId(), ObjectId()
        naive = datetime(2024, 3, 1, 8, 30)
        record = export({
            "_id": oid,
            "followers": [other],
            "createdAt": naive,
            "comments": [{"_id": other, "text": "x"}],
        })
        assert record == {
            "id": str(oid),
            "followers": [str(other)],
            "createdAt": naive.replace(tzinfo=dt_timezone.utc),
            "comments": [{"id": str(other), "text": "x"}],
        }

    def test_export_none(self):
        assert export(None) is None


class TestStoredShapes:
    """What actually lands in the collections."""

    def test_user_references_are_object_ids(self, repository, alice):
        bob = repository.save_user({"username": "bob", "firstName": "B", "lastName": "B", "email": "b@x.io"})
        repository.add_following(alice["id"], bob["id"])

        raw = repository.users.find_one({"username": "alice"})
        assert raw["following"] == [ObjectId(bob["id"])]
        assert "id" not in raw

    def test_chat_participants_are_sorted_object_ids(self, repository, alice):
        bob = repository.save_user({"username": "bob", "firstName": "B", "lastName": "B", "email": "b@x.io"})
        chat = repository.create_chat([bob["id"], alice["id"]])

        raw = repository.chats.find_one({"_id": ObjectId(chat["id"])})
        assert [str(participant) for participant in raw["participants"]] == sorted([alice["id"], bob["id"]])

    def test_returned_datetimes_are_aware(self, repository, alice):
        assert repository.get_user("alice")["createdAt"].tzinfo is not None


class TestIndexes:

    def test_duplicate_username_rejected(self, repository, alice):
        with pytest.raises(DuplicateKeyError):
            repository.save_user({"username": "alice", "firstName": "A", "lastName": "B", "email": "other@x.io"})

    def test_duplicate_email_rejected(self, repository, alice):
        with pytest.raises(DuplicateKeyError):
            repository.save_user({"username": "alice2", "firstName": "A", "lastName": "B",
                                  "email": "alice@example.com"})


class TestInvalidIds:
    """Malformed ids behave like missing records."""

    def test_reads(self, repository, alice):
        assert repository.get_user_by_id("not-an-object-id") is None
        assert repository.get_post("not-an-object-id") is None
        assert repository.get_chat_by_id("not-an-object-id") is None
        assert repository.get_posts_by_user("not-an-object-id") == []
        assert repository.get_chats_for_user("not-an-object-id") == []

    def test_writes(self, repository, alice):
        repository.add_follower(alice["id"], "not-an-object-id")
        repository.block_user("not-an-object-id", alice["id"])
        assert repository.get_user("alice")["followers"] == []
        assert repository.delete_post("not-an-object-id", "alice") is False
        assert repository.mark_messages_as_read("not-an-object-id", alice["id"]) == 0

    def test_create_chat_rejects_invalid_participants(self, repository, alice):
        with pytest.raises(ValueError):
            repository.create_chat([alice["id"], "bob"])
