"""
Repository Contract
===================

The persistence facade every service talks to. Two implementations exist:

* ``core.repositories.mongo.MongoRepository``: MongoDB collections
* ``core.repositories.local.LocalFileRepository``: one JSON file per entity

Both must satisfy the same pre/postconditions; the suite in
``tests/test_repository_*.py`` runs against each of them.

Conventions shared by all methods:

* Identifiers are strings. The file store uses the handle as a user id and
  UUIDs for everything else; MongoDB uses ``str(ObjectId)``.
* Records are dicts with an ``id`` key and aware ``datetime`` values.
* "Not found" is ``None`` / ``[]`` / ``False``, never an exception.
* Follow, block and like mutators are idempotent set operations.

Usage:
    from core.repositories import get_repository

    repo = get_repository()
    user = repo.get_user("alice")
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, List, Optional

from django.utils import timezone

from . import documents


class BaseRepository(ABC):
    """Abstract persistence facade."""

    backend_name = "abstract"

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or timezone.now

    def now(self) -> datetime:
        """Current time at storage resolution."""
        return documents.to_millis(self._clock())

    # ── Users: read ───────────────────────────────────────────────────

    @abstractmethod
    def get_user(self, username: str) -> Optional[dict]:
        """Full user record by handle, or None."""

    @abstractmethod
    def get_user_by_id(self, user_id: str) -> Optional[dict]:
        """Full user record by id, or None."""

    @abstractmethod
    def find_user_by_identifier(self, identifier: str) -> Optional[dict]:
        """User whose handle or email equals ``identifier``, or None."""

    def get_public_user(self, username: str) -> Optional[dict]:
        """User by handle with secrets stripped, or None."""
        return documents.public_view(self.get_user(username))

    @abstractmethod
    def get_all_users(self) -> List[dict]:
        """Every user as a participant view (no secrets, no block list)."""

    @abstractmethod
    def search_users(self, query: str) -> List[dict]:
        """Public views of users whose handle or display name fuzzy-matches."""

    def get_online_users(self, current_user_id: str, gender_preference: Optional[str] = None,
                         limit: int = 10) -> List[dict]:
        """
        Online users other than ``current_user_id``.

        With a ``gender_preference`` the *opposite* gender is selected:
        ``"Male"`` yields women, anything else yields men.
        """
        return self._list_by_presence(current_user_id, True, gender_preference, limit)

    def get_offline_users(self, current_user_id: str, gender_preference: Optional[str] = None,
                          limit: int = 10) -> List[dict]:
        """Offline counterpart of ``get_online_users``."""
        return self._list_by_presence(current_user_id, False, gender_preference, limit)

    @abstractmethod
    def _list_by_presence(self, current_user_id: str, is_online: bool,
                          gender_preference: Optional[str], limit: int) -> List[dict]:
        """Friend summaries filtered by presence and (opposite) gender."""

    @abstractmethod
    def is_user_blocked(self, user_id: str, target_id: str) -> bool:
        """True if ``user_id`` has ``target_id`` in its block list."""

    # ── Users: write ──────────────────────────────────────────────────

    @abstractmethod
    def save_user(self, user: dict) -> dict:
        """
        Store a new user and return it with defaults and ``id`` filled.

        Uniqueness of handle and email is checked by the caller.
        """

    @abstractmethod
    def update_user(self, user_id: str, fields: dict) -> Optional[dict]:
        """Merge ``fields`` into the user; returns the updated user or None."""

    @abstractmethod
    def update_profile_fields(self, user_id: str, fields: dict) -> Optional[dict]:
        """Update only firstName/lastName/displayName/bio/profilePicture."""

    @abstractmethod
    def add_follower(self, target_id: str, follower_id: str) -> None:
        """Add ``follower_id`` to ``target_id``'s followers."""

    @abstractmethod
    def remove_follower(self, target_id: str, follower_id: str) -> None:
        """Remove ``follower_id`` from ``target_id``'s followers."""

    @abstractmethod
    def add_following(self, follower_id: str, target_id: str) -> None:
        """Add ``target_id`` to ``follower_id``'s following."""

    @abstractmethod
    def remove_following(self, follower_id: str, target_id: str) -> None:
        """Remove ``target_id`` from ``follower_id``'s following."""

    @abstractmethod
    def update_user_online_status(self, user_id: str, is_online: bool) -> None:
        """Set the presence flag."""

    @abstractmethod
    def block_user(self, blocker_id: str, target_id: str) -> None:
        """Add ``target_id`` to the blocker's block list."""

    @abstractmethod
    def unblock_user(self, blocker_id: str, target_id: str) -> None:
        """Remove ``target_id`` from the blocker's block list."""

    # ── Posts ─────────────────────────────────────────────────────────

    @abstractmethod
    def save_post(self, username: str, post: dict) -> dict:
        """Store a new post for ``username`` and return it with its ``id``."""

    @abstractmethod
    def get_post(self, post_id: str) -> Optional[dict]:
        """Post with its author summary under ``author``, or None."""

    @abstractmethod
    def get_posts_by_user(self, user_id: str) -> List[dict]:
        """Posts authored by ``user_id``, newest first."""

    @abstractmethod
    def search_posts(self, query: str) -> List[dict]:
        """
        Posts whose content fuzzy-matches ``query``, plus every post that
        carries an image regardless of the query. Newest first.
        """

    @abstractmethod
    def get_feed_posts(self, current_user_id: str, skip: int = 0, limit: int = 10) -> List[dict]:
        """
        Home feed, newest first, then ``[skip:skip + limit]``.

        If the viewer follows anyone only followees' posts are shown,
        otherwise every post except those by users the viewer blocked.
        """

    @abstractmethod
    def like_post(self, post_id: str, user_id: str) -> Optional[dict]:
        """Add ``user_id`` to likes; the post, or None if it is gone."""

    @abstractmethod
    def unlike_post(self, post_id: str, user_id: str) -> Optional[dict]:
        """Remove ``user_id`` from likes; the post, or None if it is gone."""

    @abstractmethod
    def add_comment_to_post(self, post_id: str, comment: dict) -> Optional[dict]:
        """Append ``{userId, username, text}`` with a new id and timestamp."""

    @abstractmethod
    def get_comments_for_post(self, post_id: str) -> List[dict]:
        """Comments oldest first, each with its author summary."""

    @abstractmethod
    def delete_post(self, post_id: str, username: str) -> bool:
        """Delete the post; False if it did not exist."""

    # ── Chats & messages ──────────────────────────────────────────────

    @abstractmethod
    def create_chat(self, participant_ids: List[str]) -> dict:
        """Return the chat for this participant pair, creating it if needed."""

    @abstractmethod
    def get_chat_by_id(self, chat_id: str) -> Optional[dict]:
        """Chat with participants expanded to participant views, or None."""

    @abstractmethod
    def get_chats_for_user(self, user_id: str) -> List[dict]:
        """Chats including ``user_id``, most recent activity first."""

    @abstractmethod
    def add_message_to_chat(self, chat_id: str, sender_id: str, receiver_id: str,
                            content: Optional[str], message_type: str = "text",
                            media_url: Optional[str] = None) -> Optional[dict]:
        """
        Store a message and refresh the chat's ``lastMessage`` snapshot.

        Returns None if the chat does not exist.
        """

    @abstractmethod
    def get_messages_in_chat(self, chat_id: str, skip: int = 0, limit: int = 20,
                             since=None) -> List[dict]:
        """
        Messages oldest first.

        With ``since`` every message strictly newer than it is returned and
        ``skip``/``limit`` are ignored. Without it the page is counted back
        from the newest message (see ``documents.page_from_newest``).
        """

    @abstractmethod
    def mark_messages_as_read(self, chat_id: str, user_id: str) -> int:
        """
        Flag every unread message addressed to ``user_id`` as read and the
        chat's ``lastMessage`` too when someone else sent it. Returns the
        number of messages flipped.
        """
