"""Redis-backed storage of per-client request events for sliding window rate limiting

Redis layout (keys are namespaced by RedisKeySchema):
    ratelimit:<client id>     ZSET   one member per event, scored by epoch second
    ratelimit:clients         ZSET   client id -> epoch second of its latest event

The clients index lets purge() sweep the events of every client without
scanning the keyspace. Redis drops sorted sets once they become empty, so a
client whose events all left the window disappears entirely.
"""

import uuid

from beartype import beartype

from shortlinks.dao.base import RateLimitBaseDAO
from shortlinks.dao.redis.mixins import RedisClientMixin
from shortlinks.dao.redis.helpers import handle_redis_errors
from shortlinks.utils.timestamps import to_epoch


class RateLimitRedisDAO(RedisClientMixin, RateLimitBaseDAO):
    """Redis-based Data Access Object (DAO) for rate limit events

    Example:
        >>> dao = RateLimitRedisDAO(redis_host="localhost", prefix="shortlinks:test")
        >>> dao.record('203.0.113.7', at='2025-10-15 12:00:00')
        >>> dao.count('203.0.113.7', since='2025-10-15 11:00:00')
        1
    """

    @handle_redis_errors
    @beartype
    def count(self, client_id: str, since: str, **kwargs) -> int:
        """Count events of a client strictly newer than `since`"""
        return int(self.redis.zcount(self.keys.rate_limit_key(client_id), f'({to_epoch(since)}', '+inf'))

    @handle_redis_errors
    @beartype
    def record(self, client_id: str, at: str, **kwargs) -> None:
        """Store one event of a client and refresh its entry in the clients index

        Members carry a random suffix so events recorded within the same second
        are all counted.
        """
        score = to_epoch(at)
        member = f'{score}:{uuid.uuid4().hex}'
        with self.redis.pipeline(transaction=True) as pipe:
            pipe.zadd(self.keys.rate_limit_key(client_id), {member: score})
            pipe.zadd(self.keys.rate_limit_clients_key(), {client_id: score})
            pipe.execute()

    @handle_redis_errors
    @beartype
    def purge(self, before: str, **kwargs) -> int:
        """Delete events strictly older than `before` for every known client

        Returns:
            int: Number of deleted events.
        """
        cutoff = f'({to_epoch(before)}'
        clients_key = self.keys.rate_limit_clients_key()
        clients = self.redis.zrange(clients_key, 0, -1)
        if not clients:
            return 0

        with self.redis.pipeline(transaction=False) as pipe:
            for client_id in clients:
                pipe.zremrangebyscore(self.keys.rate_limit_key(client_id), '-inf', cutoff)
            pipe.zremrangebyscore(clients_key, '-inf', cutoff)
            *removed, _ = pipe.execute()
        return sum(int(n) for n in removed)

    @handle_redis_errors
    @beartype
    def oldest(self, client_id: str, since: str, **kwargs) -> int | None:
        """Epoch second of the oldest event of a client strictly newer than `since`"""
        # fmt: off
        entries = self.redis.zrangebyscore(self.keys.rate_limit_key(client_id),
                                           f'({to_epoch(since)}', '+inf',
                                           start=0, num=1, withscores=True)
        # fmt: on
        return int(entries[0][1]) if entries else None
