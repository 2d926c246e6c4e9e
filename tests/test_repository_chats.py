"""
Chat and message operations of the persistence facade, run against both
backends.
"""

import pytest


@pytest.fixture
def pair(make_user):
    return make_user("alice"), make_user("bob")


@pytest.fixture
def chat(repository, pair):
    alice, bob = pair
    return repository.create_chat([alice["id"], bob["id"]])


def send(repository, chat, sender, receiver, content="hi", **kwargs):
    return repository.add_message_to_chat(chat["id"], sender["id"], receiver["id"], content, **kwargs)


class TestChatIdentity:

    def test_same_chat_in_either_order(self, repository, pair):
        alice, bob = pair
        first = repository.create_chat([alice["id"], bob["id"]])
        second = repository.create_chat([bob["id"], alice["id"]])
        assert first["id"] == second["id"]
        assert first["participants"] == sorted([alice["id"], bob["id"]])

    def test_distinct_pairs_get_distinct_chats(self, repository, pair, make_user):
        alice, bob = pair
        carol = make_user("carol")
        assert repository.create_chat([alice["id"], bob["id"]])["id"] != \
            repository.create_chat([alice["id"], carol["id"]])["id"]

    def test_get_chat_expands_participants(self, repository, chat):
        loaded = repository.get_chat_by_id(chat["id"])
        assert sorted(participant["username"] for participant in loaded["participants"]) == ["alice", "bob"]
        for participant in loaded["participants"]:
            assert "password" not in participant
            assert "blockedUsers" not in participant
        assert loaded["lastMessage"] is None

    def test_missing_chat(self, repository, pair):
        alice, bob = pair
        assert repository.get_chat_by_id("no-such-chat") is None
        assert repository.add_message_to_chat("no-such-chat", alice["id"], bob["id"], "hi") is None
        assert repository.get_messages_in_chat("no-such-chat") == []


class TestMessages:

    def test_append_updates_last_message(self, repository, chat, pair):
        alice, bob = pair
        message = send(repository, chat, alice, bob, "hello")
        assert message["type"] == "text"
        assert message["read"] is False
        assert message["mediaUrl"] is None

        loaded = repository.get_chat_by_id(chat["id"])
        assert loaded["lastMessage"]["sender"] == alice["id"]
        assert loaded["lastMessage"]["content"] == "hello"
        assert loaded["lastMessage"]["timestamp"] == message["timestamp"]
        assert loaded["updatedAt"] == message["timestamp"]

    def test_media_placeholder_in_last_message(self, repository, chat, pair):
        alice, bob = pair
        send(repository, chat, alice, bob, "", message_type="voice", media_url="/images/chat_media/a.ogg")
        assert repository.get_chat_by_id(chat["id"])["lastMessage"]["content"] == "Voice Message"

    def test_page_counts_back_from_newest(self, repository, chat, pair):
        alice, bob = pair
        for index in range(1, 11):
            send(repository, chat, alice, bob, f"m{index}")

        page = repository.get_messages_in_chat(chat["id"], skip=2, limit=3)
        assert [message["content"] for message in page] == ["m6", "m7", "m8"]

    def test_default_page_is_latest_twenty(self, repository, chat, pair):
        alice, bob = pair
        for index in range(1, 26):
            send(repository, chat, alice, bob, f"m{index}")

        page = repository.get_messages_in_chat(chat["id"])
        assert len(page) == 20
        assert page[0]["content"] == "m6"
        assert page[-1]["content"] == "m25"

    def test_skip_past_the_start(self, repository, chat, pair):
        alice, bob = pair
        send(repository, chat, alice, bob, "only")
        assert repository.get_messages_in_chat(chat["id"], skip=5, limit=3) == []

    def test_since_returns_newer_messages_ascending(self, repository, chat, pair):
        alice, bob = pair
        messages = [send(repository, chat, alice, bob, f"m{index}") for index in range(1, 6)]

        newer = repository.get_messages_in_chat(chat["id"], skip=3, limit=1, since=messages[1]["timestamp"])
        assert [message["content"] for message in newer] == ["m3", "m4", "m5"]

    def test_since_accepts_iso_strings(self, repository, chat, pair):
        alice, bob = pair
        first = send(repository, chat, alice, bob, "m1")
        send(repository, chat, alice, bob, "m2")
        newer = repository.get_messages_in_chat(chat["id"], since=first["timestamp"].isoformat())
        assert [message["content"] for message in newer] == ["m2"]


class TestReadState:

    def test_mark_read_flips_messages_to_reader(self, repository, chat, pair):
        alice, bob = pair
        send(repository, chat, alice, bob, "to bob")
        send(repository, chat, bob, alice, "to alice")
        send(repository, chat, alice, bob, "to bob again")

        assert repository.mark_messages_as_read(chat["id"], bob["id"]) == 2
        messages = repository.get_messages_in_chat(chat["id"])
        assert [message["read"] for message in messages] == [True, False, True]
        assert repository.get_chat_by_id(chat["id"])["lastMessage"]["read"] is True

    def test_own_last_message_stays_unread(self, repository, chat, pair):
        alice, bob = pair
        send(repository, chat, alice, bob, "hello")
        assert repository.mark_messages_as_read(chat["id"], alice["id"]) == 0
        assert repository.get_chat_by_id(chat["id"])["lastMessage"]["read"] is False


class TestChatList:

    def test_most_recent_activity_first(self, repository, make_user):
        alice, bob, carol, dave = (make_user(name) for name in ("alice", "bob", "carol", "dave"))
        with_bob = repository.create_chat([alice["id"], bob["id"]])
        with_carol = repository.create_chat([alice["id"], carol["id"]])
        repository.create_chat([bob["id"], dave["id"]])
        repository.add_message_to_chat(with_bob["id"], bob["id"], alice["id"], "newest")

        chats = repository.get_chats_for_user(alice["id"])
        assert [chat["id"] for chat in chats] == [with_bob["id"], with_carol["id"]]
        assert all(isinstance(participant, dict) for participant in chats[0]["participants"])

    def test_no_chats(self, repository, make_user):
        assert repository.get_chats_for_user(make_user("loner")["id"]) == []
