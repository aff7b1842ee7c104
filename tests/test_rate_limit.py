import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from app.relationship.errors import RateLimitedError
from app.relationship.rate_limit import FriendRequestRateLimiter
from app.relationship.service import RelationshipService
from app.relationship.types import ViewerLabel


class FakePipeline:
    def __init__(self, redis_client):
        self.redis = redis_client
        self.commands = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def incr(self, key):
        self.commands.append(("incr", key))
        return self

    def expire(self, key, seconds, nx=False):
        self.commands.append(("expire", key, seconds, nx))
        return self

    def ttl(self, key):
        self.commands.append(("ttl", key))
        return self

    async def execute(self):
        results = []
        for name, *args in self.commands:
            results.append(self.redis.apply(name, *args))
        self.commands = []
        return results


class FakeRedis:
    """The slice of redis.asyncio.Redis the limiter touches."""

    def __init__(self, failing_expires=0):
        self.values = {}
        self.ttls = {}
        self.failing_expires = failing_expires

    def pipeline(self, transaction=True):
        return FakePipeline(self)

    def apply(self, name, key, *args):
        if name == "incr":
            self.values[key] = self.values.get(key, 0) + 1
            return self.values[key]
        if name == "expire":
            if self.failing_expires:
                # INCR already applied when the connection drops
                self.failing_expires -= 1
                raise RedisTimeoutError("timed out")
            seconds, nx = args
            if nx and key in self.ttls:
                return False
            self.ttls[key] = seconds
            return True
        return self.ttls.get(key, -1)


class DownRedis:
    def pipeline(self, transaction=True):
        raise RedisConnectionError("connection refused")



def limiter_for(redis_client, limit=3):
    async def get_redis():
        return redis_client

    return FriendRequestRateLimiter(get_redis, limit)


async def test_allows_up_to_limit_then_blocks():
    redis_client = FakeRedis()
    limiter = limiter_for(redis_client, limit=2)

    first = await limiter.hit("alice")
    second = await limiter.hit("alice")
    third = await limiter.hit("alice")

    assert (first.allowed, first.remaining) == (True, 1)
    assert (second.allowed, second.remaining) == (True, 0)
    assert third.allowed is False
    assert third.retry_after == 86400
    assert redis_client.ttls == {"ratelimit:send_friend_request:alice": 86400}


async def test_limits_are_per_user():
    limiter = limiter_for(FakeRedis(), limit=1)

    assert (await limiter.hit("alice")).allowed
    assert (await limiter.hit("bob")).allowed
    assert not (await limiter.hit("alice")).allowed


async def test_redis_failure_fails_open():
    result = await limiter_for(DownRedis()).hit("alice")

    assert result.allowed is True


async def test_service_rejects_sends_over_limit(coordinator, projector):
    service = RelationshipService(coordinator, projector, limiter_for(FakeRedis(), limit=2))

    await service.send("alice", "bob")
    await service.send("alice", "carol")
    with pytest.raises(RateLimitedError) as exc_info:
        await service.send("alice", "dave")

    assert exc_info.value.status_code == 429
    assert exc_info.value.label is ViewerLabel.NONE
    assert exc_info.value.details["limit"] == 2
    assert await service.status("alice", "dave") is ViewerLabel.NONE


async def test_only_sends_are_limited(coordinator, projector):
    service = RelationshipService(coordinator, projector, limiter_for(FakeRedis(), limit=1))

    await service.send("alice", "bob")
    await service.cancel("alice", "bob")
    await service.block("alice", "carol")
    await service.unblock("alice", "carol")

    with pytest.raises(RateLimitedError):
        await service.send("alice", "bob")


async def test_lost_expire_is_repaired_on_next_hit():
    redis_client = FakeRedis(failing_expires=1)
    limiter = limiter_for(redis_client, limit=2)

    first = await limiter.hit("alice")
    results = [await limiter.hit("alice") for _ in range(3)]

    # The failed hit fails open, and the next one still sets the window
    assert first.allowed is True
    assert redis_client.ttls["ratelimit:send_friend_request:alice"] == 86400
    assert results[-1].allowed is False
    assert results[-1].retry_after == 86400


async def test_window_does_not_slide():
    redis_client = FakeRedis()
    limiter = limiter_for(redis_client, limit=5)
    key = "ratelimit:send_friend_request:alice"

    await limiter.hit("alice")
    redis_client.ttls[key] = 100
    await limiter.hit("alice")

    assert redis_client.ttls[key] == 100
