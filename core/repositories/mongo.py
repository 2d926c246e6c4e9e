"""
MongoDB Repository
==================

Document-store implementation of the persistence facade.

Collections: ``users``, ``posts`` (comments embedded), ``chats`` and
``messages``. References between documents are ``ObjectId`` values in the
database and plain strings once they leave this module. Likes, follows and
blocks use ``$addToSet``/``$pull`` so concurrent toggles do not clobber
each other; the chat ``lastMessage`` snapshot is a separate write after the
message insert.
"""

import logging
import re
from datetime import datetime, timezone as dt_timezone
from typing import Iterable, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, DESCENDING, MongoClient, ReturnDocument

from . import documents
from .base import BaseRepository

logger = logging.getLogger(__name__)

ID_LIST_FIELDS = ("followers", "following", "blockedUsers", "likes")
IMMUTABLE_USER_FIELDS = ("id", "_id", "username")
FRIEND_PROJECTION = {field: 1 for field in documents.FRIEND_FIELDS if field != "id"}


def to_object_id(value) -> Optional[ObjectId]:
    """``ObjectId`` for ``value``, or None when it is not a valid id."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def exact_ignoring_case(value: str):
    return re.compile(f"^{re.escape(value)}$", re.IGNORECASE)


def _object_ids(values: Iterable) -> List[ObjectId]:
    converted = []
    for value in values or []:
        oid = to_object_id(value)
        if oid is not None:
            converted.append(oid)
    return converted


def _to_storage(value):
    """Aware datetimes become naive UTC, which is how BSON dates are read."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(dt_timezone.utc).replace(tzinfo=None)
        return value
    if isinstance(value, list):
        return [_to_storage(item) for item in value]
    if isinstance(value, dict):
        return {key: _to_storage(item) for key, item in value.items()}
    return value


def _from_storage(value):
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=dt_timezone.utc)
        return value
    if isinstance(value, list):
        return [_from_storage(item) for item in value]
    if isinstance(value, dict):
        exported = {}
        if "_id" in value:
            exported["id"] = str(value["_id"])
        for key, item in value.items():
            if key != "_id":
                exported[key] = _from_storage(item)
        return exported
    return value


def export(document: Optional[dict]) -> Optional[dict]:
    """Repository-level record for a raw MongoDB document."""
    if document is None:
        return None
    return _from_storage(document)


class MongoRepository(BaseRepository):
    """Persistence facade backed by a pymongo ``Database``."""

    backend_name = "mongo"

    def __init__(self, database, clock=None):
        super().__init__(clock)
        self.db = database
        self.users = database["users"]
        self.posts = database["posts"]
        self.chats = database["chats"]
        self.messages = database["messages"]
        self.ensure_indexes()

    @classmethod
    def from_uri(cls, uri: str, db_name: Optional[str] = None, **kwargs) -> "MongoRepository":
        client = MongoClient(uri, tz_aware=True)
        if db_name:
            database = client[db_name]
        else:
            database = client.get_default_database(default="bhabo_db")
        logger.info("MongoDB client ready for database %s", database.name)
        return cls(database, **kwargs)

    def ensure_indexes(self) -> None:
        self.users.create_index("username", unique=True)
        self.users.create_index("email", unique=True)
        self.posts.create_index([("userId", ASCENDING), ("createdAt", DESCENDING)])
        self.chats.create_index("participants")
        self.messages.create_index([("chatId", ASCENDING), ("timestamp", ASCENDING)])

    def _storage_now(self) -> datetime:
        return _to_storage(self.now())

    # ── Users: read ───────────────────────────────────────────────────

    def get_user(self, username):
        if not username:
            return None
        return export(self.users.find_one({"username": username}))

    def get_user_by_id(self, user_id):
        oid = to_object_id(user_id)
        if oid is None:
            return None
        return export(self.users.find_one({"_id": oid}))

    def find_user_by_identifier(self, identifier):
        if not identifier:
            return None
        return export(self.users.find_one({
            "$or": [{"username": identifier}, {"email": exact_ignoring_case(identifier)}],
        }))

    def get_all_users(self):
        return [documents.participant_view(export(user)) for user in self.users.find()]

    def search_users(self, query):
        pattern = documents.fuzzy_pattern(query)
        cursor = self.users.find({"$or": [{"username": pattern}, {"displayName": pattern}]})
        return [documents.public_view(export(user)) for user in cursor]

    def _list_by_presence(self, current_user_id, is_online, gender_preference, limit):
        if limit <= 0:
            return []
        query = {"isOnline": is_online}
        oid = to_object_id(current_user_id)
        if oid is not None:
            query["_id"] = {"$ne": oid}
        if gender_preference:
            query["gender"] = documents.opposite_gender(gender_preference)
        cursor = self.users.find(query, FRIEND_PROJECTION).limit(limit)
        return [documents.friend_summary(export(user)) for user in cursor]

    def is_user_blocked(self, user_id, target_id):
        oid, target = to_object_id(user_id), to_object_id(target_id)
        if oid is None or target is None:
            return False
        user = self.users.find_one({"_id": oid}, {"blockedUsers": 1})
        return bool(user) and target in (user.get("blockedUsers") or [])

    # ── Users: write ──────────────────────────────────────────────────

    def save_user(self, user):
        record = documents.apply_user_defaults(dict(user), self.now())
        record.pop("id", None)
        for key in ("followers", "following", "blockedUsers"):
            record[key] = _object_ids(record[key])
        record = _to_storage(record)
        self.users.insert_one(record)
        return export(record)

    def update_user(self, user_id, fields):
        oid = to_object_id(user_id)
        if oid is None:
            return None
        current = self.users.find_one({"_id": oid})
        if current is None:
            return None

        changes = {key: value for key, value in fields.items() if key not in IMMUTABLE_USER_FIELDS}
        for key in ID_LIST_FIELDS:
            if key in changes:
                changes[key] = _object_ids(changes[key])
        merged = documents.ensure_display_name({**current, **changes})
        changes["displayName"] = merged["displayName"]

        updated = self.users.find_one_and_update(
            {"_id": oid},
            {"$set": _to_storage(changes)},
            return_document=ReturnDocument.AFTER,
        )
        return export(updated)

    def update_profile_fields(self, user_id, fields):
        changes = {key: fields[key] for key in documents.PROFILE_FIELDS if fields.get(key) is not None}
        return self.update_user(user_id, changes)

    def _add_to_set(self, user_id, field, member_id):
        oid, member = to_object_id(user_id), to_object_id(member_id)
        if oid is None or member is None:
            return
        self.users.update_one({"_id": oid}, {"$addToSet": {field: member}})

    def _pull(self, user_id, field, member_id):
        oid, member = to_object_id(user_id), to_object_id(member_id)
        if oid is None or member is None:
            return
        self.users.update_one({"_id": oid}, {"$pull": {field: member}})

    def add_follower(self, target_id, follower_id):
        self._add_to_set(target_id, "followers", follower_id)

    def remove_follower(self, target_id, follower_id):
        self._pull(target_id, "followers", follower_id)

    def add_following(self, follower_id, target_id):
        self._add_to_set(follower_id, "following", target_id)

    def remove_following(self, follower_id, target_id):
        self._pull(follower_id, "following", target_id)

    def block_user(self, blocker_id, target_id):
        self._add_to_set(blocker_id, "blockedUsers", target_id)

    def unblock_user(self, blocker_id, target_id):
        self._pull(blocker_id, "blockedUsers", target_id)

    def update_user_online_status(self, user_id, is_online):
        oid = to_object_id(user_id)
        if oid is None:
            return
        self.users.update_one({"_id": oid}, {"$set": {"isOnline": bool(is_online)}})

    # ── Posts ─────────────────────────────────────────────────────────

    def _attach_authors(self, records: List[dict]) -> List[dict]:
        ids = _object_ids({record.get("userId") for record in records if record.get("userId")})
        authors = {}
        if ids:
            for user in self.users.find({"_id": {"$in": ids}}):
                authors[str(user["_id"])] = documents.author_summary(export(user))
        for record in records:
            record["author"] = authors.get(record.get("userId"))
        return records

    def save_post(self, username, post):
        record = {key: value for key, value in post.items() if key not in ("id", "author")}
        record.setdefault("username", username)
        record["userId"] = to_object_id(record.get("userId"))
        record["content"] = record.get("content") or ""
        record["imageUrl"] = record.get("imageUrl") or None
        record["likes"] = _object_ids(record.get("likes"))
        record["comments"] = list(record.get("comments") or [])
        record.setdefault("createdAt", self.now())
        record = _to_storage(record)
        self.posts.insert_one(record)
        return export(record)

    def get_post(self, post_id):
        oid = to_object_id(post_id)
        if oid is None:
            return None
        post = export(self.posts.find_one({"_id": oid}))
        if post is None:
            return None
        return self._attach_authors([post])[0]

    def get_posts_by_user(self, user_id):
        oid = to_object_id(user_id)
        if oid is None:
            return []
        cursor = self.posts.find({"userId": oid}).sort([("createdAt", DESCENDING), ("_id", DESCENDING)])
        return [export(post) for post in cursor]

    def search_posts(self, query):
        pattern = documents.fuzzy_pattern(query)
        cursor = self.posts.find({
            "$or": [
                {"content": pattern},
                {"imageUrl": {"$exists": True, "$nin": [None, ""]}},
            ],
        }).sort([("createdAt", DESCENDING), ("_id", DESCENDING)])
        return [export(post) for post in cursor]

    def get_feed_posts(self, current_user_id, skip=0, limit=10):
        if limit <= 0:
            return []
        oid = to_object_id(current_user_id)
        viewer = self.users.find_one({"_id": oid}) if oid is not None else None

        query = {}
        if viewer and viewer.get("following"):
            query["userId"] = {"$in": viewer["following"]}
        elif viewer and viewer.get("blockedUsers"):
            query["userId"] = {"$nin": viewer["blockedUsers"]}

        cursor = (
            self.posts.find(query)
            .sort([("createdAt", DESCENDING), ("_id", DESCENDING)])
            .skip(max(skip, 0))
            .limit(limit)
        )
        return self._attach_authors([export(post) for post in cursor])

    def _update_post(self, post_id, update) -> Optional[dict]:
        oid = to_object_id(post_id)
        if oid is None:
            return None
        updated = self.posts.find_one_and_update(
            {"_id": oid},
            update,
            return_document=ReturnDocument.AFTER,
        )
        return export(updated)

    def _update_likes(self, post_id, user_id, operator) -> Optional[dict]:
        member = to_object_id(user_id)
        if member is None:
            oid = to_object_id(post_id)
            return export(self.posts.find_one({"_id": oid})) if oid is not None else None
        return self._update_post(post_id, {operator: {"likes": member}})

    def like_post(self, post_id, user_id):
        return self._update_likes(post_id, user_id, "$addToSet")

    def unlike_post(self, post_id, user_id):
        return self._update_likes(post_id, user_id, "$pull")

    def add_comment_to_post(self, post_id, comment):
        entry = {
            "_id": ObjectId(),
            "userId": to_object_id(comment.get("userId")),
            "username": comment.get("username"),
            "text": comment.get("text"),
            "createdAt": self._storage_now(),
        }
        return self._update_post(post_id, {"$push": {"comments": entry}})

    def get_comments_for_post(self, post_id):
        oid = to_object_id(post_id)
        if oid is None:
            return []
        post = self.posts.find_one({"_id": oid}, {"comments": 1})
        if not post:
            return []
        comments = export(post).get("comments") or []
        comments.sort(key=lambda comment: comment["createdAt"])
        return self._attach_authors(comments)

    def delete_post(self, post_id, username):
        oid = to_object_id(post_id)
        if oid is None:
            return False
        result = self.posts.delete_one({"_id": oid, "username": username})
        return result.deleted_count > 0

    # ── Chats & messages ──────────────────────────────────────────────

    def _expand_participants(self, chats: List[dict]) -> List[dict]:
        ids = _object_ids({pid for chat in chats for pid in chat.get("participants") or []})
        views = {}
        if ids:
            for user in self.users.find({"_id": {"$in": ids}}):
                views[str(user["_id"])] = documents.participant_view(export(user))
        for chat in chats:
            chat["participants"] = [
                views[pid] for pid in chat.get("participants") or [] if pid in views
            ]
        return chats

    def create_chat(self, participant_ids):
        pair = documents.canonical_pair(participant_ids)
        oids = _object_ids(pair)
        if len(oids) != len(pair):
            raise ValueError(f"Invalid participant ids: {pair!r}")

        chat = self.chats.find_one({"participants": {"$all": oids, "$size": len(oids)}})
        if chat is None:
            now = self._storage_now()
            chat = {"participants": oids, "lastMessage": None, "createdAt": now, "updatedAt": now}
            self.chats.insert_one(chat)
            logger.debug("Created chat %s for %s", chat["_id"], pair)
        return export(chat)

    def get_chat_by_id(self, chat_id):
        oid = to_object_id(chat_id)
        if oid is None:
            return None
        chat = export(self.chats.find_one({"_id": oid}))
        if chat is None:
            return None
        return self._expand_participants([chat])[0]

    def get_chats_for_user(self, user_id):
        oid = to_object_id(user_id)
        if oid is None:
            return []
        chats = [export(chat) for chat in self.chats.find({"participants": oid})]
        self._expand_participants(chats)
        chats.sort(key=documents.chat_activity, reverse=True)
        return chats

    @staticmethod
    def _export_message(message: dict) -> dict:
        record = export(message)
        record["type"] = record.get("type") or "text"
        record.setdefault("mediaUrl", None)
        return record

    def add_message_to_chat(self, chat_id, sender_id, receiver_id, content,
                            message_type="text", media_url=None):
        chat_oid = to_object_id(chat_id)
        if chat_oid is None or self.chats.find_one({"_id": chat_oid}, {"_id": 1}) is None:
            return None

        message = {
            "chatId": chat_oid,
            "senderId": to_object_id(sender_id),
            "receiverId": to_object_id(receiver_id),
            "content": content,
            "type": message_type or "text",
            "mediaUrl": media_url,
            "timestamp": self._storage_now(),
            "read": False,
        }
        self.messages.insert_one(message)
        self.chats.update_one(
            {"_id": chat_oid},
            {"$set": {
                "lastMessage": documents.build_last_message(message),
                "updatedAt": message["timestamp"],
            }},
        )
        return self._export_message(message)

    def get_messages_in_chat(self, chat_id, skip=0, limit=20, since=None):
        chat_oid = to_object_id(chat_id)
        if chat_oid is None:
            return []

        since = documents.coerce_datetime(since)
        if since is not None:
            cursor = self.messages.find({
                "chatId": chat_oid,
                "timestamp": {"$gt": _to_storage(since)},
            }).sort([("timestamp", ASCENDING), ("_id", ASCENDING)])
            return [self._export_message(message) for message in cursor]

        if limit <= 0:
            return []
        cursor = (
            self.messages.find({"chatId": chat_oid})
            .sort([("timestamp", DESCENDING), ("_id", DESCENDING)])
            .skip(max(skip, 0))
            .limit(limit)
        )
        return [self._export_message(message) for message in reversed(list(cursor))]

    def mark_messages_as_read(self, chat_id, user_id):
        chat_oid, reader = to_object_id(chat_id), to_object_id(user_id)
        if chat_oid is None or reader is None:
            return 0

        result = self.messages.update_many(
            {"chatId": chat_oid, "receiverId": reader, "read": False},
            {"$set": {"read": True}},
        )

        chat = self.chats.find_one({"_id": chat_oid}, {"lastMessage": 1})
        last_message = chat.get("lastMessage") if chat else None
        if last_message and last_message.get("sender") != reader and last_message.get("read") is False:
            self.chats.update_one({"_id": chat_oid}, {"$set": {"lastMessage.read": True}})
        return result.modified_count
