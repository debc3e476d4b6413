"""Data Access Object (DAO) implementation for managing short links in Redis

This module provides a Redis-based implementation of LinkBaseDAO for CRUD-like
operations with LinkModel instances and their visit history.

Responsibilities:
    - Insert and retrieve links from Redis;
    - Guarantee shortcode uniqueness under concurrent writers (WATCH + MULTI/EXEC);
    - Record visits atomically together with the link's visit counter;
    - Aggregate visit history for link statistics;
    - Translate Redis failures into DAO exceptions.

Redis layout (keys are namespaced by RedisKeySchema):
    links:<shortcode>                 HASH   link fields
    links:<shortcode>:visits          LIST   JSON visit entries, newest first
    links:<shortcode>:visitors        SET    distinct visitor IPs
    links:<shortcode>:visits:daily    HASH   YYYY-MM-DD -> visit count

Classes:
    LinkRedisDAO:
        DAO for storing and retrieving LinkModel in a Redis datastore.

Example:
    >>> from shortlinks.models import LinkModel, VisitModel
    >>> from shortlinks.dao.redis import LinkRedisDAO

    >>> dao = LinkRedisDAO(prefix="app:dev")

    >>> link = LinkModel(
    ...     shortcode="abc123",
    ...     target="https://example.com/page",
    ...     created_at="2025-10-15 12:00:00",
    ...     creator_ip="203.0.113.7",
    ... )
    >>> dao.insert(link)
    <LinkRedisDAO>

    >>> dao.record_visit(VisitModel("abc123", "2025-10-15 12:01:00", "198.51.100.4", "curl/8.5"))
    1
    >>> dao.unique_visitors("abc123")
    1
"""

import json
import logging

import redis
from beartype import beartype

from shortlinks.models import LinkModel, VisitModel, DailyVisitsModel
from shortlinks.dao.base import LinkBaseDAO
from shortlinks.dao.redis.mixins import RedisClientMixin
from shortlinks.dao.redis.helpers import handle_redis_errors
from shortlinks.dao.exceptions import DataStoreError, LinkAlreadyExistsError, LinkNotFoundError, LinkUsageLimitReachedError
from shortlinks.utils.timestamps import day_of


logger = logging.getLogger(__name__)

# Optimistic locking attempts before record_visit() gives up under contention
MAX_WATCH_RETRIES = 5


class LinkRedisDAO(RedisClientMixin, LinkBaseDAO):
    """Redis-based Data Access Object (DAO) for managing short links

    This class implements the LinkBaseDAO interface using Redis as a data store.

    Attributes (see RedisClientMixin):
        redis (redis.Redis):
            Redis client used to communicate with the Redis datastore.
        keys (RedisKeySchema):
            Key schema helper for generating namespaced Redis keys.

    Example:
        >>> dao = LinkRedisDAO(redis_host="localhost", prefix="shortlinks:test")
        >>> dao.exists("abc123")
        False
    """

    @handle_redis_errors
    @beartype
    def insert(self, link: LinkModel, **kwargs) -> 'LinkRedisDAO':
        """Insert a link into Redis

        The existence check and the write are bound together with WATCH/MULTI:
        if another client creates the same key after the check, EXEC aborts and
        the insert fails with LinkAlreadyExistsError instead of overwriting.

        Args:
            link (LinkModel):
                LinkModel instance to be stored.
            **kwargs:
                Optional keyword arguments (for future use).

        Returns:
            LinkRedisDAO: self (for method chaining)

        Raises:
            LinkAlreadyExistsError:
                If a link with the same shortcode already exists.
            DataStoreError:
                If a Redis issue occurs during the transaction.
        """
        link_key = self.keys.link_key(link.shortcode)

        with self.redis.pipeline(transaction=True) as pipe:
            try:
                pipe.watch(link_key)
                if pipe.exists(link_key):
                    raise LinkAlreadyExistsError(f"Link with code '{link.shortcode}' already exists.")
                pipe.multi()
                pipe.hset(link_key, mapping=_serialize_link(link))
                pipe.execute()
            except redis.exceptions.WatchError as e:
                raise LinkAlreadyExistsError(f"Link with code '{link.shortcode}' already exists.") from e
        return self

    @handle_redis_errors
    @beartype
    def get(self, shortcode: str, **kwargs) -> LinkModel:
        """Retrieve a stored link by shortcode

        Args:
            shortcode (str):
                The shortcode identifier of the link.
            **kwargs:
                Optional keyword arguments (for future use).

        Returns:
            LinkModel:
                The retrieved LinkModel instance if found.

        Raises:
            LinkNotFoundError:
                If the link does not exist in Redis.
            DataStoreError:
                If Redis connectivity issues occur.
        """
        fields = self.redis.hgetall(self.keys.link_key(shortcode))
        if not fields:
            raise LinkNotFoundError(f"Link with code '{shortcode}' not found.")
        return _deserialize_link(fields)

    @handle_redis_errors
    @beartype
    def exists(self, shortcode: str, **kwargs) -> bool:
        return bool(self.redis.exists(self.keys.link_key(shortcode)))

    @handle_redis_errors
    @beartype
    def record_visit(self, visit: VisitModel, max_uses: int | None = None, **kwargs) -> int:
        """Atomically count a visit and append it to the link's history

        NOTE: The counter increment and the history writes are executed as one
              MULTI/EXEC transaction, so `visit_count` and the number of stored
              visits can't diverge. The link hash is WATCHed while its counter is
              re-checked against `max_uses`, which closes the window where two
              concurrent resolutions of a single-use link both pass the check:

              (lambda 1): HMGET links:<shortcode> visit_count is_active  => 0
              (lambda 2): HMGET links:<shortcode> visit_count is_active  => 0
              (lambda 2): MULTI / HINCRBY ... / EXEC                     => 1
              (lambda 1): MULTI / HINCRBY ... / EXEC                     => aborted (WatchError)
              (lambda 1): retry -> HMGET ... => 1 >= max_uses            => LinkUsageLimitReachedError

        Args:
            visit (VisitModel):
                The visit to be recorded.
            max_uses (int | None):
                Refuse the visit if the counter already reached this value.

        Returns:
            int:
                The link's visit counter after the increment.

        Raises:
            LinkNotFoundError:
                If the link doesn't exist or is inactive.
            LinkUsageLimitReachedError:
                If the counter reached max_uses.
            DataStoreError:
                If Redis issues occur or contention outlasts MAX_WATCH_RETRIES.
        """
        link_key = self.keys.link_key(visit.shortcode)
        entry = json.dumps(
            {
                'visited_at': visit.visited_at,
                'visitor_ip': visit.visitor_ip,
                'user_agent': visit.user_agent,
            }
        )

        for attempt in range(1, MAX_WATCH_RETRIES + 1):
            with self.redis.pipeline(transaction=True) as pipe:
                try:
                    pipe.watch(link_key)
                    visit_count, is_active = pipe.hmget(link_key, 'visit_count', 'is_active')
                    if visit_count is None or is_active != '1':
                        raise LinkNotFoundError(f"Link with code '{visit.shortcode}' not found.")
                    if max_uses is not None and int(visit_count) >= max_uses:
                        raise LinkUsageLimitReachedError(f"Link with code '{visit.shortcode}' reached its usage limit.")

                    pipe.multi()
                    pipe.hincrby(link_key, 'visit_count', 1)
                    pipe.lpush(self.keys.link_visits_key(visit.shortcode), entry)
                    pipe.sadd(self.keys.link_visitors_key(visit.shortcode), visit.visitor_ip)
                    pipe.hincrby(self.keys.link_daily_visits_key(visit.shortcode), day_of(visit.visited_at), 1)
                    new_visit_count, *_ = pipe.execute()
                except redis.exceptions.WatchError:
                    logger.debug(
                        'Concurrent modification while recording visit. Retrying.',
                        extra={'shortcode': visit.shortcode, 'attempt': attempt},
                    )
                    continue
                else:
                    return int(new_visit_count)

        raise DataStoreError(f"Couldn't record visit for link '{visit.shortcode}' after {MAX_WATCH_RETRIES} attempts.")

    @handle_redis_errors
    @beartype
    def visits_by_day(self, shortcode: str, since: str, **kwargs) -> list[DailyVisitsModel]:
        """Visits grouped by calendar day for all days >= since (YYYY-MM-DD), ascending"""
        daily = self.redis.hgetall(self.keys.link_daily_visits_key(shortcode))
        return [DailyVisitsModel(day=day, visits=int(visits)) for day, visits in sorted(daily.items()) if day >= since]

    @handle_redis_errors
    @beartype
    def last_visits(self, shortcode: str, limit: int = 10, **kwargs) -> list[VisitModel]:
        """Most recent `limit` visits, newest first"""
        if limit <= 0:
            return []
        entries = self.redis.lrange(self.keys.link_visits_key(shortcode), 0, limit - 1)
        return [VisitModel(shortcode=shortcode, **json.loads(entry)) for entry in entries]

    @handle_redis_errors
    @beartype
    def unique_visitors(self, shortcode: str, **kwargs) -> int:
        return int(self.redis.scard(self.keys.link_visitors_key(shortcode)))

    @handle_redis_errors
    @beartype
    def delete(self, shortcode: str, **kwargs) -> bool:
        """Delete a link and all of its visit keys in one transaction

        Returns:
            bool: True if the link existed before deletion.
        """
        link_key = self.keys.link_key(shortcode)
        with self.redis.pipeline(transaction=True) as pipe:
            pipe.exists(link_key)
            pipe.delete(
                link_key,
                self.keys.link_visits_key(shortcode),
                self.keys.link_visitors_key(shortcode),
                self.keys.link_daily_visits_key(shortcode),
            )
            existed, _ = pipe.execute()
        return bool(existed)


def _serialize_link(link: LinkModel) -> dict[str, str | int]:
    return {
        'shortcode': link.shortcode,
        'target': link.target,
        'created_at': link.created_at,
        'creator_ip': link.creator_ip,
        'expires_at': link.expires_at or '',
        'max_uses': '' if link.max_uses is None else link.max_uses,
        'visit_count': link.visit_count,
        'is_active': '1' if link.is_active else '0',
    }


def _deserialize_link(fields: dict[str, str]) -> LinkModel:
    max_uses = fields.get('max_uses')
    return LinkModel(
        shortcode=fields['shortcode'],
        target=fields['target'],
        created_at=fields['created_at'],
        creator_ip=fields['creator_ip'],
        expires_at=fields.get('expires_at') or None,
        max_uses=int(max_uses) if max_uses else None,
        visit_count=int(fields.get('visit_count', 0)),
        is_active=fields.get('is_active', '1') == '1',
    )
