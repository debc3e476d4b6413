"""Shared Redis client wiring for the link and rate limit DAOs

Both DAOs of a Lambda share one client (and therefore one connection pool):
the first DAO is built from the `redis` configuration section, the second one
receives the first DAO's client through `redis_client`.

    link_dao = LinkRedisDAO(redis_host='cache', redis_port=6379, prefix='shortlinks:prod')
    rate_limit_dao = RateLimitRedisDAO(redis_client=link_dao.redis, prefix='shortlinks:prod')
"""

from typing import Optional

import redis

from shortlinks.dao.redis.redis_key_schema import RedisKeySchema
from shortlinks.dao.redis.helpers import redis_location
from shortlinks.dao.exceptions import DataStoreError


DEFAULT_SOCKET_TIMEOUT = 5.0


class RedisClientMixin:
    """Redis client and key schema of a Redis-backed DAO.

    Attributes:
        redis (redis.Redis):
            Client used for every command of the DAO.
        keys (RedisKeySchema):
            Namespaced key names of links, visits and rate limit events.
    """

    def __init__(
        self,
        redis_host: Optional[str] = 'localhost',
        redis_port: Optional[int] = 6379,
        redis_db: Optional[int] = 0,
        redis_decode_responses: Optional[bool] = True,
        redis_username: Optional[str] = None,
        redis_password: Optional[str] = None,
        redis_socket_timeout: Optional[float] = DEFAULT_SOCKET_TIMEOUT,
        redis_client: Optional[redis.Redis] = None,
        prefix: Optional[str] = None,
    ):
        """Connect the DAO to Redis and PING it once

        `redis_*` arguments mirror the keys of the `redis` configuration
        section and are ignored when `redis_client` is given. Ports and
        database indexes may arrive as strings from YAML or AppConfig.

        Raises:
            DataStoreError:
                If Redis doesn't answer the initial PING.
        """
        if redis_client is None:
            redis_client = redis.Redis(
                host=redis_host,
                port=int(redis_port),
                db=int(redis_db),
                decode_responses=redis_decode_responses,
                username=redis_username,
                password=redis_password,
                socket_timeout=redis_socket_timeout,
            )
        self.redis = redis_client
        self.keys = RedisKeySchema(prefix=prefix)

        self._healthcheck()

    def _healthcheck(self, raise_error: bool = True) -> bool:
        """PING Redis; report an unreachable server as DataStoreError or False"""
        try:
            return bool(self.redis.ping())
        except (redis.exceptions.ConnectionError, redis.exceptions.TimeoutError) as e:
            if not raise_error:
                return False
            raise DataStoreError(
                f"Can't connect to Redis at {redis_location(self.redis)}. Check the provided configuration parameters."
            ) from e
