"""Sliding window rate limiting of link creation per client

The limiter counts a client's events within the trailing window (not fixed
calendar buckets). Events live in the data store, so every worker sees the
same counts.

Usage pattern:
    limiter.check(client_ip)     # before any mutating work
    ...                          # create the link
    limiter.record(client_ip)    # only after the link was persisted

A failed creation therefore doesn't consume rate budget.
"""

import logging
from datetime import timedelta

from shortlinks.constants import Defaults
from shortlinks.dao.base import RateLimitBaseDAO
from shortlinks.exceptions import RateLimitExceededError
from shortlinks.utils.timestamps import format_timestamp, to_epoch, utcnow


logger = logging.getLogger(__name__)


class RateLimiter:
    """Allow at most `max_requests` events per client within `window_seconds`.

    Attributes:
        dao (RateLimitBaseDAO):
            Storage of per-client events.
        max_requests (int):
            Ceiling of events per client within the window.
        window_seconds (int):
            Length of the sliding window.

    Example:
        >>> limiter = RateLimiter(RateLimitRedisDAO(...), max_requests=30, window_seconds=3600)
        >>> limiter.check('203.0.113.7')
        >>> limiter.record('203.0.113.7')
    """

    def __init__(
        self,
        dao: RateLimitBaseDAO,
        max_requests: int = Defaults.RATE_LIMIT_REQUESTS,
        window_seconds: int = Defaults.RATE_LIMIT_WINDOW,
    ):
        self.dao = dao
        self.max_requests = max_requests
        self.window_seconds = window_seconds

    def check(self, client_id: str) -> None:
        """Fail if the client already used up its budget within the window

        Stale events of all clients are purged first to bound storage growth.

        Raises:
            RateLimitExceededError:
                If the client has `max_requests` or more events newer than
                `now - window`. `retry_after` holds the seconds until the
                oldest of them leaves the window.
            DataStoreError:
                If the data store fails.
        """
        now = utcnow()
        window_start = format_timestamp(now - timedelta(seconds=self.window_seconds))

        purged = self.dao.purge(before=window_start)
        if purged:
            logger.debug('Purged stale rate limit entries.', extra={'purged': purged})

        count = self.dao.count(client_id, since=window_start)
        if count < self.max_requests:
            return

        oldest = self.dao.oldest(client_id, since=window_start)
        retry_after = self.window_seconds
        if oldest is not None:
            retry_after = max(1, oldest + self.window_seconds - to_epoch(format_timestamp(now)))

        logger.info(
            'Client exceeded link creation rate limit.',
            extra={'clientId': client_id, 'count': count, 'retryAfter': retry_after},
        )
        raise RateLimitExceededError(
            f'Rate limit of {self.max_requests} shortened URLs per {_describe(self.window_seconds)} exceeded. Try again later.',
            retry_after=retry_after,
        )

    def record(self, client_id: str) -> None:
        self.dao.record(client_id, at=format_timestamp(utcnow()))


def _describe(seconds: int) -> str:
    if seconds % 3600 == 0:
        hours = seconds // 3600
        return 'hour' if hours == 1 else f'{hours} hours'
    if seconds % 60 == 0:
        minutes = seconds // 60
        return 'minute' if minutes == 1 else f'{minutes} minutes'
    return f'{seconds} seconds'
