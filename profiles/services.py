"""
Profile Services
================

Own and public profile assembly, profile edits, the follow graph and
presence flags.
"""

from typing import Optional

from core.exceptions import NotFoundError, ValidationError
from core.media import remove_media_file
from core.repositories.documents import DEFAULT_PROFILE_PICTURE, public_view
from core.services import BaseService

from .serializers import ProfileUpdateSerializer


def post_summary(post: dict) -> dict:
    return {
        "id": post["id"],
        "content": post.get("content"),
        "imageUrl": post.get("imageUrl"),
        "likesCount": len(post.get("likes") or []),
        "commentsCount": len(post.get("comments") or []),
        "createdAt": post.get("createdAt"),
    }


class ProfileService(BaseService):
    """Profile reads and edits for the signed-in user and for visitors."""

    def _require_user(self, user_id: str, message: str = "User not found.") -> dict:
        user = self.repository.get_user_by_id(user_id)
        if not user:
            raise NotFoundError(message, resource="user")
        return user

    def get_my_profile(self, user_id: str) -> dict:
        """Own profile: everything but secrets (email included), counts and posts."""
        user = self._require_user(user_id)
        posts = self.repository.get_posts_by_user(user["id"])

        profile = public_view(user)
        profile["email"] = user.get("email")
        profile["followersCount"] = len(user.get("followers") or [])
        profile["followingCount"] = len(user.get("following") or [])
        profile["postCount"] = len(posts)
        profile["posts"] = posts
        return profile

    def update_my_profile(self, user_id: str, data: dict) -> dict:
        """
        Apply a partial profile edit.

        ``profilePicture`` replaces the picture with an already stored upload;
        ``removePicture`` resets it to the default. Either way the previous
        file is deleted unless it is the default picture.
        """
        payload = self.validate(ProfileUpdateSerializer, data)
        user = self._require_user(user_id, "User not found for update.")

        changes = {key: payload[key] for key in ("firstName", "lastName", "displayName", "bio") if key in payload}
        old_picture = user.get("profilePicture")
        if payload.get("removePicture"):
            changes["profilePicture"] = DEFAULT_PROFILE_PICTURE
        elif payload.get("profilePicture"):
            changes["profilePicture"] = payload["profilePicture"]

        updated = self.repository.update_profile_fields(user["id"], changes)
        if updated is None:
            raise NotFoundError("User not found for update.", resource="user")

        new_picture = changes.get("profilePicture")
        if new_picture and old_picture and old_picture != new_picture and old_picture != DEFAULT_PROFILE_PICTURE:
            remove_media_file(old_picture)

        self.logger.info("Profile updated for %s", updated["username"])
        profile = public_view(updated)
        profile["email"] = updated.get("email")
        return profile

    # ── Follow graph ──────────────────────────────────────────────────

    def toggle_follow(self, follower_id: str, target_username: str, follow: bool) -> str:
        """
        Follow or unfollow ``target_username`` on behalf of ``follower_id``.

        Returns ``"followed"`` or ``"unfollowed"``.
        """
        follower = self._require_user(follower_id, "Follower user not found.")
        target = self.repository.get_user(target_username)
        if not target:
            raise NotFoundError("Target user not found.", resource="user")
        if follower["id"] == target["id"]:
            raise ValidationError("Cannot follow/unfollow yourself.")

        if follow:
            self.repository.add_following(follower["id"], target["id"])
            self.repository.add_follower(target["id"], follower["id"])
            self.logger.info("%s followed %s", follower["username"], target["username"])
            return "followed"

        self.repository.remove_following(follower["id"], target["id"])
        self.repository.remove_follower(target["id"], follower["id"])
        self.logger.info("%s unfollowed %s", follower["username"], target["username"])
        return "unfollowed"

    def get_public_profile_data(self, username: str, current_user_id: Optional[str] = None) -> dict:
        """
        Public profile of ``username`` as seen by ``current_user_id``.

        Counts are recomputed from the stored sets on every call.
        """
        user = self.repository.get_public_user(username)
        if not user:
            raise NotFoundError("User not found.", resource="user")

        posts = self.repository.get_posts_by_user(user["id"])
        is_following = False
        if current_user_id:
            viewer = self.repository.get_user_by_id(current_user_id)
            is_following = bool(viewer) and user["id"] in (viewer.get("following") or [])

        return {
            "userId": user["id"],
            "username": user["username"],
            "firstName": user.get("firstName"),
            "lastName": user.get("lastName"),
            "displayName": user.get("displayName"),
            "profilePicture": user.get("profilePicture"),
            "bio": user.get("bio"),
            "followersCount": len(user.get("followers") or []),
            "followingCount": len(user.get("following") or []),
            "postCount": len(posts),
            "posts": [post_summary(post) for post in posts],
            "isVerified": user.get("isVerified", False),
            "isFollowing": is_following,
        }

    # ── Presence ──────────────────────────────────────────────────────

    def set_online(self, user_id: str, is_online: bool) -> None:
        self.repository.update_user_online_status(user_id, is_online)

    def set_typing(self, user_id: str, is_typing: bool) -> None:
        if self.repository.update_user(user_id, {"isTyping": bool(is_typing)}) is None:
            raise NotFoundError("User not found.", resource="user")

    def get_typing_status(self, viewer_id: str, target_username: str) -> bool:
        """Whether the target is typing; always False if it blocked the viewer."""
        target = self.repository.get_user(target_username)
        if not target:
            raise NotFoundError("Target user not found.", resource="user")
        if self.repository.is_user_blocked(target["id"], viewer_id):
            return False
        return bool(target.get("isTyping"))
