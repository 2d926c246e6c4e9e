"""
User operations of the persistence facade, run against both backends.

Run with: python -m pytest tests/test_repository_users.py -v
"""

from core.repositories.documents import DEFAULT_PROFILE_PICTURE, SECRET_FIELDS


class TestUserLookup:
    """Reads by handle, id and identifier."""

    def test_save_user_fills_defaults(self, make_user):
        user = make_user("alice", displayName="")
        assert user["id"]
        assert user["displayName"] == "Alice Tester"
        assert user["profilePicture"] == DEFAULT_PROFILE_PICTURE
        assert user["followers"] == []
        assert user["following"] == []
        assert user["blockedUsers"] == []
        assert user["isOnline"] is False
        assert user["createdAt"].tzinfo is not None

    def test_get_user_by_handle_and_id(self, repository, make_user):
        user = make_user("alice")
        assert repository.get_user("alice")["id"] == user["id"]
        assert repository.get_user_by_id(user["id"])["username"] == "alice"

    def test_missing_user_is_none(self, repository):
        assert repository.get_user("nobody") is None
        assert repository.get_user_by_id("nobody") is None
        assert repository.get_public_user("nobody") is None

    def test_find_by_handle_or_email(self, repository, make_user):
        user = make_user("alice", email="alice@example.com")
        assert repository.find_user_by_identifier("alice")["id"] == user["id"]
        assert repository.find_user_by_identifier("alice@example.com")["id"] == user["id"]
        assert repository.find_user_by_identifier("ALICE@example.com")["id"] == user["id"]
        assert repository.find_user_by_identifier("bob@example.com") is None

    def test_find_by_mixed_case_stored_email(self, repository, make_user):
        user = make_user("alice", email="Alice@Example.com")
        assert repository.find_user_by_identifier("alice@example.com")["id"] == user["id"]
        assert repository.find_user_by_identifier("ALICE@EXAMPLE.COM")["id"] == user["id"]
        assert repository.find_user_by_identifier("alice.example.com") is None

    def test_public_user_has_no_secrets(self, repository, make_user):
        make_user("alice", verificationCode="123456")
        public = repository.get_public_user("alice")
        assert public["username"] == "alice"
        for field in SECRET_FIELDS:
            assert field not in public

    def test_get_all_users_hides_block_lists(self, repository, make_user):
        make_user("alice")
        make_user("bob")
        users = repository.get_all_users()
        assert sorted(user["username"] for user in users) == ["alice", "bob"]
        assert all("password" not in user and "blockedUsers" not in user for user in users)


class TestUserUpdates:
    """Partial updates and the display name rule."""

    def test_update_user_merges_fields(self, repository, make_user):
        user = make_user("alice")
        updated = repository.update_user(user["id"], {"bio": "hello", "isTyping": True})
        assert updated["bio"] == "hello"
        assert updated["isTyping"] is True
        assert repository.get_user("alice")["bio"] == "hello"

    def test_update_user_missing_is_none(self, repository):
        assert repository.update_user("ghost", {"bio": "x"}) is None

    def test_update_cannot_rename(self, repository, make_user):
        user = make_user("alice")
        repository.update_user(user["id"], {"username": "mallory"})
        assert repository.get_user("alice") is not None
        assert repository.get_user("mallory") is None

    def test_blank_display_name_falls_back(self, repository, make_user):
        user = make_user("alice", displayName="Queen A")
        updated = repository.update_profile_fields(user["id"], {"displayName": "   "})
        assert updated["displayName"] == "Alice Tester"

    def test_update_profile_fields_ignores_other_keys(self, repository, make_user):
        user = make_user("alice")
        updated = repository.update_profile_fields(user["id"], {
            "bio": "new bio",
            "isVerified": False,
            "email": "evil@example.com",
        })
        assert updated["bio"] == "new bio"
        assert updated["isVerified"] is True
        assert updated["email"] == "alice@example.com"

    def test_online_status(self, repository, make_user):
        user = make_user("alice")
        repository.update_user_online_status(user["id"], True)
        assert repository.get_user("alice")["isOnline"] is True
        repository.update_user_online_status(user["id"], False)
        assert repository.get_user("alice")["isOnline"] is False


class TestFollowGraph:
    """Follower/following sets are idempotent."""

    def test_add_follower_twice_is_noop(self, repository, make_user):
        alice, bob = make_user("alice"), make_user("bob")
        repository.add_follower(alice["id"], bob["id"])
        repository.add_follower(alice["id"], bob["id"])
        assert repository.get_user("alice")["followers"] == [bob["id"]]

    def test_add_following_twice_is_noop(self, repository, make_user):
        alice, bob = make_user("alice"), make_user("bob")
        repository.add_following(alice["id"], bob["id"])
        repository.add_following(alice["id"], bob["id"])
        assert repository.get_user("alice")["following"] == [bob["id"]]

    def test_remove_absent_relation_is_noop(self, repository, make_user):
        alice, bob = make_user("alice"), make_user("bob")
        repository.remove_follower(alice["id"], bob["id"])
        repository.remove_following(alice["id"], bob["id"])
        user = repository.get_user("alice")
        assert user["followers"] == []
        assert user["following"] == []

    def test_remove_relation(self, repository, make_user):
        alice, bob = make_user("alice"), make_user("bob")
        repository.add_following(alice["id"], bob["id"])
        repository.remove_following(alice["id"], bob["id"])
        assert repository.get_user("alice")["following"] == []


class TestBlocking:

    def test_block_is_idempotent(self, repository, make_user):
        alice, bob = make_user("alice"), make_user("bob")
        repository.block_user(alice["id"], bob["id"])
        repository.block_user(alice["id"], bob["id"])
        assert repository.get_user("alice")["blockedUsers"] == [bob["id"]]
        assert repository.is_user_blocked(alice["id"], bob["id"]) is True
        assert repository.is_user_blocked(bob["id"], alice["id"]) is False

    def test_unblock(self, repository, make_user):
        alice, bob = make_user("alice"), make_user("bob")
        repository.block_user(alice["id"], bob["id"])
        repository.unblock_user(alice["id"], bob["id"])
        repository.unblock_user(alice["id"], bob["id"])
        assert repository.is_user_blocked(alice["id"], bob["id"]) is False

    def test_unknown_user_blocks_nobody(self, repository, make_user):
        bob = make_user("bob")
        assert repository.is_user_blocked("ghost", bob["id"]) is False


class TestUserSearch:
    """Case-insensitive subsequence matching on handle and display name."""

    def test_subsequence_match(self, repository, make_user):
        make_user("bhabo_bob")
        make_user("carol")
        results = repository.search_users("bb")
        assert [user["username"] for user in results] == ["bhabo_bob"]

    def test_match_on_display_name_ignores_case(self, repository, make_user):
        make_user("x1", displayName="Maria Lopez")
        assert [user["username"] for user in repository.search_users("MLZ")] == ["x1"]

    def test_order_matters(self, repository, make_user):
        make_user("bo_user", displayName="bo")
        assert repository.search_users("ob") == []

    def test_regex_characters_are_literal(self, repository, make_user):
        make_user("alice")
        assert repository.search_users(".*") == []

    def test_results_are_public_views(self, repository, make_user):
        make_user("alice")
        (user,) = repository.search_users("alice")
        assert "password" not in user
        assert "email" not in user


class TestPresenceListings:
    """Online/offline listings and the opposite-gender filter."""

    def test_online_users_exclude_self(self, repository, make_user):
        alice = make_user("alice", isOnline=True)
        make_user("bob", isOnline=True)
        make_user("carol", isOnline=False)
        online = repository.get_online_users(alice["id"])
        assert [user["username"] for user in online] == ["bob"]
        assert set(online[0]) == {"id", "username", "displayName", "profilePicture", "isOnline", "gender"}

    def test_offline_users(self, repository, make_user):
        alice = make_user("alice")
        make_user("bob", isOnline=True)
        make_user("carol")
        assert [user["username"] for user in repository.get_offline_users(alice["id"])] == ["carol"]

    def test_male_filter_selects_women(self, repository, make_user):
        viewer = make_user("viewer")
        make_user("anna", gender="Female", isOnline=True)
        make_user("ben", gender="Male", isOnline=True)
        online = repository.get_online_users(viewer["id"], "Male")
        assert [user["username"] for user in online] == ["anna"]

    def test_other_filters_select_men(self, repository, make_user):
        viewer = make_user("viewer")
        make_user("anna", gender="Female")
        make_user("ben", gender="Male")
        make_user("olly", gender="Other")
        assert [user["username"] for user in repository.get_offline_users(viewer["id"], "Female")] == ["ben"]
        assert [user["username"] for user in repository.get_offline_users(viewer["id"], "Other")] == ["ben"]

    def test_limit(self, repository, make_user):
        viewer = make_user("viewer")
        for index in range(4):
            make_user(f"user{index}")
        assert len(repository.get_offline_users(viewer["id"], limit=3)) == 3
        assert repository.get_offline_users(viewer["id"], limit=0) == []
