"""
Chat Services
=============

One-to-one conversations: chat lookup, text and media messages, message
pages and blocking. Messages are polled; nothing here pushes.
"""

from typing import List, Optional, Tuple

from core.exceptions import AuthorizationError, BlockedError, NotFoundError, ValidationError
from core.services import BaseService

MEDIA_TYPE_PREFIXES = (
    ("image/", "image"),
    ("video/", "video"),
    ("audio/", "voice"),
)


def media_type_for(mime_type: Optional[str]) -> str:
    """Message type for an upload's MIME type."""
    for prefix, message_type in MEDIA_TYPE_PREFIXES:
        if (mime_type or "").lower().startswith(prefix):
            return message_type
    raise ValidationError(
        "Invalid file type. Only common image, video, and audio formats are allowed.",
        field="mediaFile",
    )


class ChatService(BaseService):
    """Business logic for chats, messages and the block list."""

    # ── Blocking ──────────────────────────────────────────────────────

    def has_blocked(self, user_id: str, target_id: str) -> bool:
        """True if ``user_id`` has blocked ``target_id``."""
        return self.repository.is_user_blocked(user_id, target_id)

    def is_blocked_by(self, user_id: str, blocker_id: str) -> bool:
        """True if ``blocker_id`` has blocked ``user_id``."""
        return self.repository.is_user_blocked(blocker_id, user_id)

    def _ensure_not_blocked(self, sender_id: str, receiver_id: str) -> None:
        if self.has_blocked(sender_id, receiver_id):
            raise BlockedError("You have blocked this user. Unblock to send messages.")
        if self.is_blocked_by(sender_id, receiver_id):
            raise BlockedError("You are blocked by this user and cannot send messages.")

    def toggle_block(self, blocker_id: str, target_username: str) -> bool:
        """Block or unblock ``target_username``; returns the new blocked state."""
        target = self.repository.get_user(target_username)
        if not target:
            raise NotFoundError("Target user not found.", resource="user")
        if target["id"] == blocker_id:
            raise ValidationError("Cannot block/unblock yourself.")

        if self.has_blocked(blocker_id, target["id"]):
            self.repository.unblock_user(blocker_id, target["id"])
            self.logger.info("%s unblocked %s", blocker_id, target_username)
            return False

        self.repository.block_user(blocker_id, target["id"])
        self.logger.info("%s blocked %s", blocker_id, target_username)
        return True

    # ── Chats ─────────────────────────────────────────────────────────

    def create_or_get_chat(self, sender_id: str, receiver_id: str) -> dict:
        return self.repository.create_chat([sender_id, receiver_id])

    def get_chat_list(self, user_id: str) -> List[dict]:
        return self.repository.get_chats_for_user(user_id)

    def _participant_chat(self, chat_id: str, user_id: str, message: str) -> Tuple[dict, Optional[str]]:
        """The chat and the other participant's id, if ``user_id`` takes part."""
        chat = self.repository.get_chat_by_id(chat_id)
        participant_ids = [participant["id"] for participant in (chat or {}).get("participants") or []]
        if user_id not in participant_ids:
            raise AuthorizationError(message)
        other_ids = [participant_id for participant_id in participant_ids if participant_id != user_id]
        return chat, other_ids[0] if other_ids else None

    def _receiver_for(self, chat_id: str, sender_id: str, message: str) -> str:
        _, receiver_id = self._participant_chat(chat_id, sender_id, message)
        if receiver_id is None:
            raise ValidationError("Could not determine receiver for this chat.")
        self._ensure_not_blocked(sender_id, receiver_id)
        return receiver_id

    # ── Messages ──────────────────────────────────────────────────────

    def start_chat(self, sender_id: str, receiver_username: str, content: str) -> Tuple[dict, dict]:
        """
        Open (or reuse) the chat with ``receiver_username`` and send the first
        message.

        Returns:
            (chat, message)
        """
        if not receiver_username:
            raise ValidationError("Receiver username is required.", field="receiverUsername")
        if not (content or "").strip():
            raise ValidationError("Message content is required.", field="content")

        receiver = self.repository.get_user(receiver_username)
        if not receiver:
            raise NotFoundError("Receiver user not found.", resource="user")
        if receiver["id"] == sender_id:
            raise ValidationError("Cannot start a chat with yourself.")
        self._ensure_not_blocked(sender_id, receiver["id"])

        chat = self.create_or_get_chat(sender_id, receiver["id"])
        message = self.repository.add_message_to_chat(chat["id"], sender_id, receiver["id"], content, "text")
        self.logger.info("Chat %s started by %s", chat["id"], sender_id)
        return chat, message

    def send_message(self, chat_id: str, sender_id: str, content: str) -> dict:
        if not (content or "").strip():
            raise ValidationError("Message content is required.", field="content")
        receiver_id = self._receiver_for(chat_id, sender_id, "Unauthorized to send message in this chat.")
        return self.repository.add_message_to_chat(chat_id, sender_id, receiver_id, content, "text")

    def send_media(self, chat_id: str, sender_id: str, media_url: str, mime_type: str,
                   content: Optional[str] = None) -> dict:
        """Send an already stored upload; its MIME type decides the message type."""
        if not media_url:
            raise ValidationError("No media file uploaded.", field="mediaFile")
        message_type = media_type_for(mime_type)
        receiver_id = self._receiver_for(chat_id, sender_id, "Unauthorized to send media in this chat.")
        return self.repository.add_message_to_chat(
            chat_id, sender_id, receiver_id, content or "", message_type, media_url,
        )

    def get_messages(self, chat_id: str, user_id: str, skip: int = 0, limit: int = 20,
                     since=None) -> List[dict]:
        """
        A page of messages (or everything newer than ``since``), after which
        every message addressed to ``user_id`` counts as read.
        """
        _, other_id = self._participant_chat(chat_id, user_id, "Unauthorized access to chat.")
        if other_id is not None:
            if self.has_blocked(user_id, other_id):
                raise BlockedError("You have blocked this user.")
            if self.is_blocked_by(user_id, other_id):
                raise BlockedError("You are blocked by this user.")

        try:
            messages = self.repository.get_messages_in_chat(chat_id, skip, limit, since)
        except ValueError as exc:
            raise ValidationError("Invalid timestamp.", field="timestamp") from exc
        self.repository.mark_messages_as_read(chat_id, user_id)
        return messages
