from unittest.mock import MagicMock

import redis

from cache import PROMOTION_TTL, CacheClient, canonicalize


def test_derive_key_ignores_parameter_order():
    first = CacheClient.derive_key("products:list", {"page": 1, "filters": {"brand": "a", "featured": True}})
    second = CacheClient.derive_key("products:list", {"filters": {"featured": True, "brand": "a"}, "page": 1})
    assert first == second
    assert first.startswith("products:list:")


def test_derive_key_drops_none_and_distinguishes_values():
    assert CacheClient.derive_key("brands:list", {"page": 1, "search": None}) == CacheClient.derive_key(
        "brands:list", {"page": 1}
    )
    assert CacheClient.derive_key("brands:list", {"page": 1}) != CacheClient.derive_key("brands:list", {"page": 2})


def test_canonicalize_sorts_nested_keys():
    assert list(canonicalize({"b": {"z": 1, "a": 2}, "a": [{"d": 1, "c": None}]})) == ["a", "b"]
    assert canonicalize({"a": [{"d": 1, "c": None}]}) == {"a": [{"d": 1}]}


def test_read_through_populates_once(cache, redis_client):
    loader = MagicMock(return_value={"data": [1, 2]})

    assert cache.read_through("brands:list:abc", loader) == {"data": [1, 2]}
    assert cache.read_through("brands:list:abc", loader) == {"data": [1, 2]}

    loader.assert_called_once()
    assert redis_client.exists("test:brands:list:abc")
    assert 0 < redis_client.ttl("test:brands:list:abc") <= 60


def test_read_through_honours_ttl(cache, redis_client):
    cache.read_through("campaigns:list:x", lambda: {"data": []}, PROMOTION_TTL)
    assert redis_client.ttl("test:campaigns:list:x") > 60


def test_none_is_not_cached(cache, redis_client):
    assert cache.read_through("products:missing:x", lambda: None) is None
    assert not redis_client.exists("test:products:missing:x")


def test_pattern_invalidation_only_touches_matching_keys(cache, redis_client):
    cache.set("products:list:one", {"a": 1})
    cache.set("products:list:two", {"a": 2})
    cache.set("products:5f0c:detail", {"a": 3})
    cache.set("brands:list:one", {"a": 4})

    assert cache.invalidate("products:list:*") == 2

    assert cache.get("products:list:one") is None
    assert cache.get("products:5f0c:detail") == {"a": 3}
    assert cache.get("brands:list:one") == {"a": 4}


def test_exact_key_invalidation(cache):
    cache.set("brands:1:x", {"a": 1})
    assert cache.invalidate("brands:1:x") == 1
    assert cache.get("brands:1:x") is None


def test_store_failures_degrade_to_loader():
    broken = MagicMock()
    broken.get.side_effect = redis.exceptions.ConnectionError("down")
    broken.setex.side_effect = redis.exceptions.ConnectionError("down")
    broken.scan_iter.side_effect = redis.exceptions.ConnectionError("down")
    broken.ping.side_effect = redis.exceptions.ConnectionError("down")
    cache = CacheClient(broken, namespace="test")

    assert cache.read_through("brands:list:x", lambda: {"data": []}) == {"data": []}
    assert cache.invalidate("brands:list:*") == 0
    assert cache.ping() is False


def test_unreadable_entry_is_a_miss(cache, redis_client):
    redis_client.set("test:brands:list:bad", "{not json")
    assert cache.get("brands:list:bad") is None
