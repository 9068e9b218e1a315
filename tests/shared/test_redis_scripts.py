"""Lua scripts of the Redis store, executed by an in-process fake Redis."""

import fakeredis
import pytest
from shared.store.redis_adapter import RedisStore


@pytest.fixture()
def client():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture()
def store(client):
    return RedisStore(client)


class TestSetWithTags:
    def test_indexes_key_under_every_tag(self, client, store):
        assert store.set("k", "v", ttl=30, tag_keys=["tag:a", "tag:b"], tag_ttl=330) is True

        assert client.get("k") == "v"
        assert client.smembers("tag:a") == {"k"}
        assert client.smembers("tag:b") == {"k"}

    def test_tag_expiry_is_extended_never_shortened(self, client, store):
        store.set("long", "1", ttl=30, tag_keys=["tag:t"], tag_ttl=600)
        store.set("short", "2", ttl=10, tag_keys=["tag:t"], tag_ttl=60)

        assert client.ttl("tag:t") > 60

    def test_if_absent_refuses_a_live_key(self, client, store):
        assert store.set("k", "first", ttl=30, tag_keys=["tag:a"], only_if_absent=True) is True
        assert store.set("k", "second", ttl=30, tag_keys=["tag:b"], only_if_absent=True) is False

        assert client.get("k") == "first"
        assert client.exists("tag:b") == 0

    def test_if_absent_without_tags(self, client, store):
        assert store.set("k", "first", ttl=30, only_if_absent=True) is True
        assert store.set("k", "second", ttl=30, only_if_absent=True) is False
        assert client.get("k") == "first"


class TestInvalidateTag:
    def test_removes_members_and_the_tag(self, client, store):
        store.set("a", "1", ttl=30, tag_keys=["tag:t"], tag_ttl=60)
        store.set("b", "2", ttl=30, tag_keys=["tag:t"], tag_ttl=60)
        store.set("c", "3", ttl=30, tag_keys=["tag:other"], tag_ttl=60)

        assert store.invalidate_tag("tag:t") == 2
        assert client.get("a") is None
        assert client.get("b") is None
        assert client.exists("tag:t") == 0
        assert client.get("c") == "3"

    def test_unknown_tag(self, store):
        assert store.invalidate_tag("tag:none") == 0


class TestSlideWindow:
    def test_admits_up_to_limit(self, store):
        results = [store.slide_window("w", 10_000, 1_000, 3, f"m{n}") for n in range(4)]

        assert [r.admitted for r in results] == [True, True, True, False]
        assert [r.count for r in results] == [0, 1, 2, 3]

    def test_entries_leave_the_window(self, store):
        for n in range(3):
            store.slide_window("w", 10_000 + n, 1_000, 3, f"m{n}")

        result = store.slide_window("w", 11_001, 1_000, 3, "late")
        assert result.admitted is True
        assert result.count == 2

    def test_window_key_expires_with_inactivity(self, client, store):
        store.slide_window("w", 10_000, 60_000, 3, "m")
        assert 0 < client.pttl("w") <= 60_000
