"""
Post Services
=============

Post creation, the home feed, likes, comments and deletion.
"""

from typing import List, Optional, Tuple

from core.exceptions import AuthorizationError, NotFoundError
from core.media import remove_media_file
from core.services import BaseService

from .serializers import CommentSerializer, PostCreateSerializer


class PostService(BaseService):
    """Business logic for posts and their embedded likes and comments."""

    def create_post(self, user_id: str, username: str, content: Optional[str] = None,
                    image_url: Optional[str] = None) -> dict:
        """
        Store a new post.

        Raises:
            ValidationError: neither ``content`` nor ``image_url`` given
        """
        payload = self.validate(PostCreateSerializer, {"content": content, "imageUrl": image_url})
        post = self.repository.save_post(username, {
            "userId": user_id,
            "username": username,
            "content": payload.get("content") or "",
            "imageUrl": payload.get("imageUrl") or None,
            "likes": [],
            "comments": [],
            "createdAt": self.now(),
        })
        self.logger.info("Post %s created by %s", post["id"], username)
        return post

    def get_feed_posts(self, user_id: str, skip: int = 0, limit: int = 10) -> List[dict]:
        return self.repository.get_feed_posts(user_id, skip, limit)

    def get_post(self, post_id: str) -> dict:
        post = self.repository.get_post(post_id)
        if not post:
            raise NotFoundError("Post not found.", resource="post")
        return post

    def toggle_like(self, post_id: str, user_id: str) -> Tuple[dict, bool]:
        """
        Like the post, or unlike it if ``user_id`` already likes it.

        Returns:
            (updated post, whether the user now likes it)
        """
        post = self.get_post(post_id)
        if user_id in (post.get("likes") or []):
            updated, is_liked = self.repository.unlike_post(post_id, user_id), False
        else:
            updated, is_liked = self.repository.like_post(post_id, user_id), True
        if updated is None:
            raise NotFoundError("Post not found.", resource="post")
        return updated, is_liked

    def add_comment(self, post_id: str, user_id: str, username: str, text: str) -> dict:
        """Append a comment and return it."""
        payload = self.validate(CommentSerializer, {"text": text})
        updated = self.repository.add_comment_to_post(post_id, {
            "userId": user_id,
            "username": username,
            "text": payload["text"],
        })
        if updated is None:
            raise NotFoundError("Post not found.", resource="post")
        return updated["comments"][-1]

    def get_comments(self, post_id: str) -> List[dict]:
        return self.repository.get_comments_for_post(post_id)

    def delete_post(self, post_id: str, user_id: str) -> bool:
        """
        Delete a post owned by ``user_id`` together with its media file.

        Raises:
            NotFoundError: no such post
            AuthorizationError: the post belongs to someone else
        """
        post = self.get_post(post_id)
        if post.get("userId") != user_id:
            raise AuthorizationError("You are not authorized to delete this post.")

        if post.get("imageUrl"):
            remove_media_file(post["imageUrl"])

        deleted = self.repository.delete_post(post_id, post["username"])
        if deleted:
            self.logger.info("Post %s deleted by %s", post_id, post["username"])
        return deleted
