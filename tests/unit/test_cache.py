"""
Unit tests for the Redis state cache
"""
import json
from unittest.mock import MagicMock

import pytest
import redis

from painel_ml.cache.redis_cache import RedisCache


@pytest.fixture
def redis_client():
    return MagicMock()


@pytest.fixture
def cache(redis_client):
    cache = RedisCache("redis://localhost:6379/15", default_ttl=60)
    cache.client = redis_client
    return cache


class TestRedisCache:
    """Test namespaced JSON values"""

    def test_set_serializes_with_ttl(self, cache, redis_client):
        assert cache.set("oauth_state", "abc", {"verifier": "v"}, ttl=600) is True

        redis_client.setex.assert_called_once_with("painel:oauth_state:abc", 600, json.dumps({"verifier": "v"}))

    def test_set_uses_default_ttl(self, cache, redis_client):
        cache.set("ns", "k", 1)
        assert redis_client.setex.call_args.args[1] == 60

    def test_set_unserializable(self, cache, redis_client):
        assert cache.set("ns", "k", object()) is False
        redis_client.setex.assert_not_called()

    def test_set_redis_down(self, cache, redis_client):
        redis_client.setex.side_effect = redis.ConnectionError("down")
        assert cache.set("ns", "k", 1) is False

    def test_get(self, cache, redis_client):
        redis_client.get.return_value = '{"a": 1}'
        assert cache.get("ns", "k") == {"a": 1}
        redis_client.get.assert_called_once_with("painel:ns:k")

    def test_get_miss_and_errors(self, cache, redis_client):
        redis_client.get.return_value = None
        assert cache.get("ns", "k") is None

        redis_client.get.return_value = "not json"
        assert cache.get("ns", "k") is None

        redis_client.get.side_effect = redis.ConnectionError("down")
        assert cache.get("ns", "k") is None

    def test_pop_reads_and_deletes(self, cache, redis_client):
        pipe = redis_client.pipeline.return_value
        pipe.execute.return_value = ['{"verifier": "v"}', 1]

        assert cache.pop("oauth_state", "abc") == {"verifier": "v"}
        pipe.get.assert_called_once_with("painel:oauth_state:abc")
        pipe.delete.assert_called_once_with("painel:oauth_state:abc")

    def test_pop_missing(self, cache, redis_client):
        redis_client.pipeline.return_value.execute.return_value = [None, 0]
        assert cache.pop("ns", "k") is None

    def test_ping(self, cache, redis_client):
        redis_client.ping.return_value = True
        assert cache.ping() is True

        redis_client.ping.side_effect = redis.ConnectionError("down")
        assert cache.ping() is False
