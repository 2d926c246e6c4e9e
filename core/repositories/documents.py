"""
Record Shaping
==============

Helpers shared by both persistence backends so they hand identical
dictionaries to the service layer: defaults, public views, author
summaries, fuzzy matching and message paging.

Records are plain ``dict`` objects keyed the way they are stored
(``username``, ``displayName``, ``createdAt``, …) with a string ``id``.
"""

import re
import uuid
from datetime import datetime, timezone as dt_timezone
from typing import Iterable, Optional

from django.utils.dateparse import parse_date, parse_datetime

DEFAULT_PROFILE_PICTURE = "/images/default_profile.png"

GENDERS = ("Male", "Female", "Other")
MESSAGE_TYPES = ("text", "image", "video", "voice")

# Never leave the repository layer through a public view
SECRET_FIELDS = (
    "password",
    "email",
    "verificationCode",
    "verificationCodeExpires",
    "resetPasswordCode",
    "resetPasswordCodeExpires",
)

PROFILE_FIELDS = ("firstName", "lastName", "displayName", "bio", "profilePicture")
AUTHOR_FIELDS = ("id", "username", "displayName", "profilePicture")
FRIEND_FIELDS = ("id", "username", "displayName", "profilePicture", "isOnline", "gender")

_MEDIA_PLACEHOLDERS = {
    "image": "Image",
    "video": "Video",
    "voice": "Voice Message",
}


def new_id() -> str:
    return uuid.uuid4().hex


def to_millis(value: datetime) -> datetime:
    """Drop sub-millisecond precision (the resolution MongoDB stores)."""
    return value.replace(microsecond=value.microsecond // 1000 * 1000)


def coerce_datetime(value) -> Optional[datetime]:
    """
    Accept a datetime or an ISO-8601 string and return an aware datetime.

    Raises ValueError for strings that are not timestamps.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = parse_datetime(str(value))
        if parsed is None:
            day = parse_date(str(value))
            if day is None:
                raise ValueError(f"Invalid timestamp: {value!r}")
            parsed = datetime(day.year, day.month, day.day)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt_timezone.utc)
    return parsed


# ── Users ─────────────────────────────────────────────────────────────


def default_display_name(user: dict) -> str:
    return f"{user.get('firstName') or ''} {user.get('lastName') or ''}"


def ensure_display_name(user: dict) -> dict:
    """``displayName`` falls back to "first last" whenever it is blank."""
    if not (user.get("displayName") or "").strip():
        user["displayName"] = default_display_name(user)
    return user


def apply_user_defaults(user: dict, now: datetime) -> dict:
    """Fill the fields a freshly stored user must always carry."""
    ensure_display_name(user)
    if not user.get("profilePicture"):
        user["profilePicture"] = DEFAULT_PROFILE_PICTURE
    user.setdefault("bio", "")
    user.setdefault("isVerified", False)
    if user.get("isOnline") is None:
        user["isOnline"] = False
    if user.get("isTyping") is None:
        user["isTyping"] = False
    for key in ("followers", "following", "blockedUsers"):
        if not user.get(key):
            user[key] = []
    user.setdefault("createdAt", now)
    return user


def placeholder_user(username: str, now: datetime) -> dict:
    """Stand-in written over a user record that can no longer be parsed."""
    return {
        "id": username,
        "username": username,
        "firstName": "",
        "lastName": "",
        "displayName": "",
        "email": "",
        "birthday": now,
        "gender": "Other",
        "password": "",
        "profilePicture": DEFAULT_PROFILE_PICTURE,
        "bio": "",
        "isVerified": False,
        "verificationCode": None,
        "verificationCodeExpires": None,
        "resetPasswordCode": None,
        "resetPasswordCodeExpires": None,
        "followers": [],
        "following": [],
        "isOnline": False,
        "isTyping": False,
        "blockedUsers": [],
        "createdAt": now,
    }


def public_view(user: Optional[dict], *hidden: str) -> Optional[dict]:
    """Copy of ``user`` without credential, verification and reset secrets."""
    if user is None:
        return None
    stripped = set(SECRET_FIELDS).union(hidden)
    return {key: value for key, value in user.items() if key not in stripped}


def participant_view(user: Optional[dict]) -> Optional[dict]:
    return public_view(user, "blockedUsers")


def _pick(user: Optional[dict], fields: Iterable[str]) -> Optional[dict]:
    if user is None:
        return None
    return {key: user.get(key) for key in fields}


def author_summary(user: Optional[dict]) -> Optional[dict]:
    return _pick(user, AUTHOR_FIELDS)


def friend_summary(user: Optional[dict]) -> Optional[dict]:
    return _pick(user, FRIEND_FIELDS)


def opposite_gender(preference: str) -> str:
    return "Female" if preference == "Male" else "Male"


# ── Search ────────────────────────────────────────────────────────────


def fuzzy_pattern(query: str) -> "re.Pattern":
    """
    Subsequence matcher: every query character, in order, with any gap.

    ``"bb"`` matches ``"bhabo_bob"``; ``"ob"`` does not match ``"bo"``.
    """
    return re.compile(".*".join(re.escape(char) for char in query), re.IGNORECASE)


def fuzzy_match(pattern: "re.Pattern", *values) -> bool:
    return any(value and pattern.search(str(value)) for value in values)


def has_media(post: dict) -> bool:
    return bool(post.get("imageUrl"))


# ── Chats ─────────────────────────────────────────────────────────────


def canonical_pair(participant_ids: Iterable[str]) -> list:
    return sorted(str(participant) for participant in participant_ids)


def last_message_preview(content: Optional[str], message_type: str) -> str:
    if content:
        return content
    return _MEDIA_PLACEHOLDERS.get(message_type, "Media")


def build_last_message(message: dict) -> dict:
    """Snapshot of ``message`` kept on its chat."""
    return {
        "sender": message["senderId"],
        "content": last_message_preview(message.get("content"), message["type"]),
        "type": message["type"],
        "timestamp": message["timestamp"],
        "read": False,
    }


def chat_activity(chat: dict) -> datetime:
    last_message = chat.get("lastMessage")
    if last_message and last_message.get("timestamp"):
        return last_message["timestamp"]
    return chat["createdAt"]


def page_from_newest(messages: list, skip: int, limit: int) -> list:
    """
    Slice an oldest-first list by counting back from the newest entry.

    For ten messages, ``skip=2, limit=3`` returns the 6th to 8th.
    """
    end = max(len(messages) - max(skip, 0), 0)
    start = max(end - max(limit, 0), 0)
    return messages[start:end]
