"""
Search Services
===============

Combined user/post search and the "find friends" lists.
"""

from typing import List, Optional

from core.exceptions import NotFoundError, ValidationError
from core.repositories.documents import has_media
from core.services import BaseService

PREFERRED_LIMIT = 5
OTHERS_LIMIT = 5
PARTITION_LIMIT = 10


def _unique_by_id(users: List[dict]) -> List[dict]:
    seen = set()
    unique = []
    for user in users:
        if user["id"] not in seen:
            seen.add(user["id"])
            unique.append(user)
    return unique


class SearchService(BaseService):

    def perform_search(self, query: str) -> dict:
        """
        Fuzzy search over users and posts.

        Posts are split into ``imagePosts`` and ``textPosts``; every post with
        media is part of the result whatever the query.
        """
        if not query or not query.strip():
            raise ValidationError("Search query is required.", field="q")

        users = self.repository.search_users(query)
        posts = self.repository.search_posts(query)
        return {
            "users": users,
            "imagePosts": [post for post in posts if has_media(post)],
            "textPosts": [post for post in posts if not has_media(post)],
        }

    @staticmethod
    def gender_preference_for(gender: Optional[str]) -> Optional[str]:
        """
        Value handed to the presence listings.

        The listings select the opposite of the value they get, so a woman's
        preference is ``"Female"`` (yielding men) and a man's ``"Male"``.
        """
        if gender in ("Male", "Female"):
            return gender
        return None

    def _partition(self, lister, user_id: str, preference: Optional[str]) -> List[dict]:
        preferred = lister(user_id, preference, PREFERRED_LIMIT) if preference else []
        others = lister(user_id, None, OTHERS_LIMIT)
        return _unique_by_id(preferred + others)[:PARTITION_LIMIT]

    def get_find_friends_users(self, user_id: str) -> dict:
        """
        Online and offline suggestions for ``user_id``, opposite gender first.

        Each partition holds up to five preferred users followed by up to
        five others, de-duplicated.
        """
        user = self.repository.get_user_by_id(user_id)
        if not user:
            raise NotFoundError("User not found.", resource="user")

        preference = self.gender_preference_for(user.get("gender"))
        return {
            "onlineUsers": self._partition(self.repository.get_online_users, user["id"], preference),
            "offlineUsers": self._partition(self.repository.get_offline_users, user["id"], preference),
        }
