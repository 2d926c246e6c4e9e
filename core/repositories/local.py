"""
Local File Repository
=====================

Flat-file implementation of the persistence facade, one pretty-printed JSON
document per entity under ``LOCAL_DIR``::

    users/<username>.json
    posts/<username>/<postId>.json
    chats/<chatId>.json
    messages/<chatId>/<messageId>.json

A user's id is its handle. Posts, chats, messages and comments get UUID4 hex ids.
Only names made of word characters and dashes are ever turned into paths;
anything else is treated as not found.

Every write replaces the whole file, so concurrent writers to the same
entity are last-writer-wins.
"""

import json
import logging
import re
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Tuple

from django.core.serializers.json import DjangoJSONEncoder

from . import documents
from .base import BaseRepository

logger = logging.getLogger(__name__)

SAFE_NAME = re.compile(r"^[\w-]+$")

DATETIME_FIELDS = (
    "createdAt",
    "updatedAt",
    "timestamp",
    "birthday",
    "verificationCodeExpires",
    "resetPasswordCodeExpires",
)
IMMUTABLE_USER_FIELDS = ("id", "_id", "username")

POST_REQUIRED = ("createdAt",)
CHAT_REQUIRED = ("createdAt",)
MESSAGE_REQUIRED = ("timestamp",)


class MalformedRecord(ValueError):
    """A file that parsed as JSON but is not a usable record."""


def is_safe_name(name) -> bool:
    return isinstance(name, str) and bool(SAFE_NAME.match(name))


def _lenient_datetime(value, owner, field):
    try:
        return documents.coerce_datetime(value)
    except ValueError:
        logger.warning("Dropping unparseable %s on %s: %r", field, owner, value)
        return None


def hydrate(record: dict, required: Tuple[str, ...] = ()) -> dict:
    """
    Turn the ISO strings of a freshly parsed document back into datetimes.

    A missing or unparseable field named in ``required`` raises
    MalformedRecord; any other bad timestamp is logged and set to None.
    Comments without a usable ``createdAt`` are dropped.
    """
    if "_id" in record and "id" not in record:
        record["id"] = str(record.pop("_id"))
    owner = record.get("id") or record.get("username") or "record"
    for field in required:
        if record.get(field) is None:
            raise MalformedRecord(f"missing {field}")
        try:
            record[field] = documents.coerce_datetime(record[field])
        except ValueError as exc:
            raise MalformedRecord(f"invalid {field}: {record[field]!r}") from exc
    for field in DATETIME_FIELDS:
        if field in record and field not in required:
            record[field] = _lenient_datetime(record[field], owner, field)
    last_message = record.get("lastMessage")
    if isinstance(last_message, dict) and "timestamp" in last_message:
        last_message["timestamp"] = _lenient_datetime(last_message["timestamp"], owner, "lastMessage.timestamp")
    if "comments" in record:
        comments = []
        for comment in record.get("comments") or []:
            if not isinstance(comment, dict):
                logger.warning("Dropping malformed comment on %s", owner)
                continue
            if "_id" in comment and "id" not in comment:
                comment["id"] = str(comment.pop("_id"))
            comment["createdAt"] = _lenient_datetime(comment.get("createdAt"), owner, "comment createdAt")
            if comment["createdAt"] is None:
                logger.warning("Dropping comment %s on %s without createdAt", comment.get("id"), owner)
                continue
            comments.append(comment)
        record["comments"] = comments
    return record


class LocalFileRepository(BaseRepository):
    """Persistence facade backed by a directory of JSON files."""

    backend_name = "local"

    def __init__(self, root, clock=None):
        super().__init__(clock)
        self.root = Path(root)
        self.users_dir = self.root / "users"
        self.posts_dir = self.root / "posts"
        self.chats_dir = self.root / "chats"
        self.messages_dir = self.root / "messages"
        for directory in (self.users_dir, self.posts_dir, self.chats_dir, self.messages_dir):
            directory.mkdir(parents=True, exist_ok=True)

    # ── File helpers ──────────────────────────────────────────────────

    @staticmethod
    def _write(path: Path, record: dict) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(path.name + ".tmp")
        tmp.write_text(json.dumps(record, indent=2, cls=DjangoJSONEncoder), encoding="utf-8")
        tmp.replace(path)

    @staticmethod
    def _read(path: Path, required: Tuple[str, ...] = ()) -> dict:
        """
        Parse ``path``.

        Raises ``json.JSONDecodeError``/``UnicodeDecodeError`` when the file
        is not JSON and MalformedRecord when it is not a usable record.
        """
        record = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(record, dict):
            raise MalformedRecord("expected a JSON object")
        return hydrate(record, required)

    def _load(self, path: Path, context: str, required: Tuple[str, ...] = ()) -> Optional[dict]:
        if not path.is_file():
            return None
        try:
            return self._read(path, required)
        except (OSError, ValueError) as exc:
            logger.warning("Skipping malformed %s file %s: %s", context, path, exc)
            return None

    def _scan(self, directory: Path, context: str,
              required: Tuple[str, ...] = ()) -> Iterator[Tuple[Path, dict]]:
        if not directory.is_dir():
            return
        for path in sorted(directory.glob("*.json")):
            record = self._load(path, context, required)
            if record is not None:
                yield path, record

    # ── Users: read ───────────────────────────────────────────────────

    def _user_path(self, username) -> Optional[Path]:
        if not is_safe_name(username):
            return None
        return self.users_dir / f"{username}.json"

    def get_user(self, username):
        path = self._user_path(username)
        if path is None or not path.is_file():
            return None
        try:
            user = self._read(path)
        except (json.JSONDecodeError, UnicodeDecodeError, MalformedRecord) as exc:
            logger.error("User file %s is unparseable, resetting it: %s", path, exc)
            user = documents.placeholder_user(username, self.now())
            self._write(path, user)
            return user
        except OSError as exc:
            logger.warning("Could not read user file %s: %s", path, exc)
            return None
        user["id"] = username
        return user

    def get_user_by_id(self, user_id):
        return self.get_user(user_id)

    def find_user_by_identifier(self, identifier):
        if not identifier:
            return None
        user = self.get_user(identifier)
        if user is not None:
            return user
        email = identifier.lower()
        for _, record in self._scan(self.users_dir, "user"):
            if (record.get("email") or "").lower() == email:
                return record
        return None

    def _all_users(self) -> List[dict]:
        return [record for _, record in self._scan(self.users_dir, "user")]

    def get_all_users(self):
        return [documents.participant_view(user) for user in self._all_users()]

    def search_users(self, query):
        pattern = documents.fuzzy_pattern(query)
        return [
            documents.public_view(user)
            for user in self._all_users()
            if documents.fuzzy_match(pattern, user.get("username"), user.get("displayName"))
        ]

    def _list_by_presence(self, current_user_id, is_online, gender_preference, limit):
        if limit <= 0:
            return []
        wanted_gender = documents.opposite_gender(gender_preference) if gender_preference else None
        selected = []
        for user in self._all_users():
            if user.get("id") == current_user_id:
                continue
            if bool(user.get("isOnline")) != is_online:
                continue
            if wanted_gender and user.get("gender") != wanted_gender:
                continue
            selected.append(documents.friend_summary(user))
            if len(selected) >= limit:
                break
        return selected

    def is_user_blocked(self, user_id, target_id):
        user = self.get_user_by_id(user_id)
        return bool(user) and target_id in (user.get("blockedUsers") or [])

    # ── Users: write ──────────────────────────────────────────────────

    def save_user(self, user):
        record = documents.apply_user_defaults(dict(user), self.now())
        path = self._user_path(record.get("username"))
        if path is None:
            raise ValueError(f"Invalid username: {record.get('username')!r}")
        record["id"] = record["username"]
        self._write(path, record)
        return record

    def update_user(self, user_id, fields):
        user = self.get_user_by_id(user_id)
        if user is None:
            return None
        for key, value in fields.items():
            if key not in IMMUTABLE_USER_FIELDS:
                user[key] = value
        documents.ensure_display_name(user)
        self._write(self._user_path(user_id), user)
        return user

    def update_profile_fields(self, user_id, fields):
        changes = {key: fields[key] for key in documents.PROFILE_FIELDS if fields.get(key) is not None}
        return self.update_user(user_id, changes)

    def _modify_set(self, user_id, field, member_id, present: bool) -> None:
        user = self.get_user_by_id(user_id)
        if user is None:
            return
        members = list(user.get(field) or [])
        if present and member_id not in members:
            members.append(member_id)
        elif not present and member_id in members:
            members = [member for member in members if member != member_id]
        else:
            return
        user[field] = members
        self._write(self._user_path(user_id), user)

    def add_follower(self, target_id, follower_id):
        self._modify_set(target_id, "followers", follower_id, True)

    def remove_follower(self, target_id, follower_id):
        self._modify_set(target_id, "followers", follower_id, False)

    def add_following(self, follower_id, target_id):
        self._modify_set(follower_id, "following", target_id, True)

    def remove_following(self, follower_id, target_id):
        self._modify_set(follower_id, "following", target_id, False)

    def block_user(self, blocker_id, target_id):
        self._modify_set(blocker_id, "blockedUsers", target_id, True)

    def unblock_user(self, blocker_id, target_id):
        self._modify_set(blocker_id, "blockedUsers", target_id, False)

    def update_user_online_status(self, user_id, is_online):
        user = self.get_user_by_id(user_id)
        if user is None:
            return
        user["isOnline"] = bool(is_online)
        self._write(self._user_path(user_id), user)

    # ── Posts ─────────────────────────────────────────────────────────

    def _all_posts(self) -> List[dict]:
        posts = []
        for author_dir in sorted(self.posts_dir.iterdir()):
            if author_dir.is_dir():
                posts.extend(record for _, record in self._scan(author_dir, "post", POST_REQUIRED))
        return posts

    @staticmethod
    def _newest_first(records: List[dict]) -> List[dict]:
        return sorted(records, key=lambda record: record["createdAt"], reverse=True)

    def _attach_authors(self, records: List[dict]) -> List[dict]:
        authors = {}
        for record in records:
            user_id = record.get("userId")
            if user_id not in authors:
                authors[user_id] = documents.author_summary(self.get_user_by_id(user_id))
            record["author"] = authors[user_id]
        return records

    def _find_post_path(self, post_id) -> Optional[Path]:
        if not is_safe_name(post_id):
            return None
        for author_dir in sorted(self.posts_dir.iterdir()):
            candidate = author_dir / f"{post_id}.json"
            if candidate.is_file():
                return candidate
        return None

    def _modify_post(self, post_id, mutate: Callable[[dict], None]) -> Optional[dict]:
        path = self._find_post_path(post_id)
        if path is None:
            return None
        post = self._load(path, "post", POST_REQUIRED)
        if post is None:
            return None
        mutate(post)
        self._write(path, post)
        return post

    def save_post(self, username, post):
        if not is_safe_name(username):
            raise ValueError(f"Invalid username: {username!r}")
        record = {key: value for key, value in post.items() if key != "author"}
        record["id"] = documents.new_id()
        record.setdefault("username", username)
        record["content"] = record.get("content") or ""
        record["imageUrl"] = record.get("imageUrl") or None
        record["likes"] = list(record.get("likes") or [])
        record["comments"] = list(record.get("comments") or [])
        record.setdefault("createdAt", self.now())
        self._write(self.posts_dir / username / f"{record['id']}.json", record)
        return record

    def get_post(self, post_id):
        path = self._find_post_path(post_id)
        if path is None:
            return None
        post = self._load(path, "post", POST_REQUIRED)
        if post is None:
            return None
        return self._attach_authors([post])[0]

    def get_posts_by_user(self, user_id):
        return self._newest_first([post for post in self._all_posts() if post.get("userId") == user_id])

    def search_posts(self, query):
        pattern = documents.fuzzy_pattern(query)
        return self._newest_first([
            post for post in self._all_posts()
            if documents.fuzzy_match(pattern, post.get("content")) or documents.has_media(post)
        ])

    def get_feed_posts(self, current_user_id, skip=0, limit=10):
        if limit <= 0:
            return []
        viewer = self.get_user_by_id(current_user_id)
        following = (viewer or {}).get("following") or []
        blocked = (viewer or {}).get("blockedUsers") or []

        posts = self._all_posts()
        if following:
            posts = [post for post in posts if post.get("userId") in following]
        elif blocked:
            posts = [post for post in posts if post.get("userId") not in blocked]

        skip = max(skip, 0)
        page = self._newest_first(posts)[skip:skip + limit]
        return self._attach_authors(page)

    def like_post(self, post_id, user_id):
        def mutate(post):
            if user_id not in post["likes"]:
                post["likes"].append(user_id)
        return self._modify_post(post_id, mutate)

    def unlike_post(self, post_id, user_id):
        def mutate(post):
            post["likes"] = [liker for liker in post.get("likes") or [] if liker != user_id]
        return self._modify_post(post_id, mutate)

    def add_comment_to_post(self, post_id, comment):
        entry = {
            "id": documents.new_id(),
            "userId": comment.get("userId"),
            "username": comment.get("username"),
            "text": comment.get("text"),
            "createdAt": self.now(),
        }

        def mutate(post):
            post.setdefault("comments", []).append(entry)
        return self._modify_post(post_id, mutate)

    def get_comments_for_post(self, post_id):
        path = self._find_post_path(post_id)
        post = self._load(path, "post", POST_REQUIRED) if path else None
        if post is None:
            return []
        comments = sorted(post.get("comments") or [], key=lambda comment: comment["createdAt"])
        return self._attach_authors(comments)

    def delete_post(self, post_id, username):
        if not (is_safe_name(post_id) and is_safe_name(username)):
            return False
        path = self.posts_dir / username / f"{post_id}.json"
        if not path.is_file():
            return False
        path.unlink()
        return True

    # ── Chats & messages ──────────────────────────────────────────────

    def _chat_path(self, chat_id) -> Optional[Path]:
        if not is_safe_name(chat_id):
            return None
        return self.chats_dir / f"{chat_id}.json"

    def _load_chat(self, chat_id) -> Optional[dict]:
        path = self._chat_path(chat_id)
        if path is None or not path.is_file():
            return None
        try:
            chat = self._read(path)
        except (json.JSONDecodeError, UnicodeDecodeError, MalformedRecord) as exc:
            logger.error("Chat file %s is unparseable, resetting it: %s", path, exc)
            now = self.now()
            chat = {"id": chat_id, "participants": [], "lastMessage": None,
                    "createdAt": now, "updatedAt": now}
            self._write(path, chat)
        except OSError as exc:
            logger.warning("Could not read chat file %s: %s", path, exc)
            return None
        chat["id"] = chat_id
        return chat

    def _expand_participants(self, chat: dict) -> dict:
        views = []
        for participant_id in chat.get("participants") or []:
            user = self.get_user_by_id(participant_id)
            if user is not None:
                views.append(documents.participant_view(user))
        chat["participants"] = views
        return chat

    def create_chat(self, participant_ids):
        pair = documents.canonical_pair(participant_ids)
        for _, chat in self._scan(self.chats_dir, "chat"):
            if sorted(chat.get("participants") or []) == pair:
                return chat

        now = self.now()
        chat = {
            "id": documents.new_id(),
            "participants": pair,
            "lastMessage": None,
            "createdAt": now,
            "updatedAt": now,
        }
        self._write(self._chat_path(chat["id"]), chat)
        logger.debug("Created chat %s for %s", chat["id"], pair)
        return chat

    def get_chat_by_id(self, chat_id):
        chat = self._load_chat(chat_id)
        if chat is None:
            return None
        return self._expand_participants(chat)

    def get_chats_for_user(self, user_id):
        chats = [
            self._expand_participants(chat)
            for _, chat in self._scan(self.chats_dir, "chat", CHAT_REQUIRED)
            if user_id in (chat.get("participants") or [])
        ]
        chats.sort(key=documents.chat_activity, reverse=True)
        return chats

    def _messages(self, chat_id) -> List[Tuple[Path, dict]]:
        if not is_safe_name(chat_id):
            return []
        entries = list(self._scan(self.messages_dir / chat_id, "message", MESSAGE_REQUIRED))
        entries.sort(key=lambda entry: entry[1]["timestamp"])
        return entries

    def add_message_to_chat(self, chat_id, sender_id, receiver_id, content,
                            message_type="text", media_url=None):
        chat = self._load_chat(chat_id)
        if chat is None:
            return None

        message = {
            "id": documents.new_id(),
            "chatId": chat_id,
            "senderId": sender_id,
            "receiverId": receiver_id,
            "content": content,
            "type": message_type or "text",
            "mediaUrl": media_url,
            "timestamp": self.now(),
            "read": False,
        }
        self._write(self.messages_dir / chat_id / f"{message['id']}.json", message)

        chat["lastMessage"] = documents.build_last_message(message)
        chat["updatedAt"] = message["timestamp"]
        self._write(self._chat_path(chat_id), chat)
        return message

    def get_messages_in_chat(self, chat_id, skip=0, limit=20, since=None):
        messages = [message for _, message in self._messages(chat_id)]
        since = documents.coerce_datetime(since)
        if since is not None:
            return [message for message in messages if message["timestamp"] > since]
        return documents.page_from_newest(messages, skip, limit)

    def mark_messages_as_read(self, chat_id, user_id):
        flipped = 0
        for path, message in self._messages(chat_id):
            if message.get("receiverId") == user_id and not message.get("read"):
                message["read"] = True
                self._write(path, message)
                flipped += 1

        chat = self._load_chat(chat_id)
        last_message = chat.get("lastMessage") if chat else None
        if last_message and last_message.get("sender") != user_id and last_message.get("read") is False:
            last_message["read"] = True
            self._write(self._chat_path(chat_id), chat)
        return flipped
