"""Tests for the Redis cache service."""
import json
from unittest.mock import MagicMock

import redis

from pos_api.utils.cache import CacheService


def make_cache():
    client = MagicMock()
    return CacheService(client=client, ttl=60, enabled=True), client


def test_set_and_get_round_trip_through_json():
    cache, client = make_cache()

    assert cache.set("product", "p1", {"id": "p1", "price": 2.5}) is True
    client.setex.assert_called_once_with("product:p1", 60, json.dumps({"id": "p1", "price": 2.5}))

    client.get.return_value = json.dumps({"id": "p1", "price": 2.5})
    assert cache.get("product", "p1") == {"id": "p1", "price": 2.5}
    client.get.assert_called_with("product:p1")


def test_redis_errors_read_as_misses():
    cache, client = make_cache()
    client.get.side_effect = redis.ConnectionError("down")
    client.setex.side_effect = redis.ConnectionError("down")
    client.delete.side_effect = redis.ConnectionError("down")

    assert cache.get("product", "p1") is None
    assert cache.set("product", "p1", {"id": "p1"}) is False
    assert cache.delete("product", "p1") is False


def test_delete_pattern():
    cache, client = make_cache()
    client.scan_iter.return_value = iter(["product:a", "product:b"])
    client.delete.return_value = 2

    assert cache.delete_pattern("product:*") == 2
    client.delete.assert_called_once_with("product:a", "product:b")


def test_disabled_cache_never_touches_redis():
    client = MagicMock()
    cache = CacheService(client=client, enabled=False)

    assert cache.get("product", "p1") is None
    assert cache.set("product", "p1", {}) is False
    assert cache.delete_pattern("product:*") == 0
    client.get.assert_not_called()
    client.setex.assert_not_called()
