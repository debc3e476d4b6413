"""Unit tests for the LinkRedisDAO

Test coverage includes:

1. Insertion behavior
   - Validates inserting a link stores all hash fields under WATCH/MULTI.
   - Confirms existing shortcodes and concurrent writers raise LinkAlreadyExistsError.
   - Ensures invalid types raise TypeError or BeartypeCallHintParamViolation.
   - Confirms Redis connection errors raise DataStoreError.

2. Retrieval behavior
   - Ensures fetching a stored link returns a populated LinkModel.
   - Confirms missing keys raise LinkNotFoundError.
   - Ensures exists() reflects the presence of the link hash.

3. Visit recording
   - Ensures the counter, visit log, visitor set and daily bucket are written in one transaction.
   - Confirms usage limits, missing and inactive links are rejected before any write.
   - Confirms concurrent modifications are retried, then surface as DataStoreError.

4. Aggregations
   - Validates visits by day filtering and ordering.
   - Validates last visits decoding and limits.
   - Validates unique visitor counting.

5. Deletion
   - Ensures all keys of a link are deleted and existence is reported.
"""

import json
import re
from unittest.mock import call

import pytest
import redis
from beartype.roar import BeartypeCallHintParamViolation

from shortlinks.models import LinkModel, VisitModel, DailyVisitsModel
from shortlinks.dao.exceptions import DataStoreError, LinkAlreadyExistsError, LinkNotFoundError, LinkUsageLimitReachedError
from shortlinks.dao.redis import LinkRedisDAO
from shortlinks.dao.redis.link_redis_dao import MAX_WATCH_RETRIES


LINK_KEY = 'testapp:test:links:abc123'
VISITS_KEY = 'testapp:test:links:abc123:visits'
VISITORS_KEY = 'testapp:test:links:abc123:visitors'
DAILY_KEY = 'testapp:test:links:abc123:visits:daily'


# -------------------------------
# Fixtures
# -------------------------------


@pytest.fixture
def dao(redis_client, app_prefix):
    """Create a LinkRedisDAO instance backed by the mocked Redis client."""
    return LinkRedisDAO(redis_client=redis_client, prefix=app_prefix)


@pytest.fixture
def link():
    return LinkModel(
        shortcode='abc123',
        target='https://example.com/page',
        created_at='2025-10-15 12:00:00',
        creator_ip='203.0.113.7',
        max_uses=3,
    )


@pytest.fixture
def visit():
    return VisitModel(
        shortcode='abc123',
        visited_at='2025-10-15 12:30:00',
        visitor_ip='198.51.100.4',
        user_agent='curl/8.5',
    )


@pytest.fixture
def link_hash():
    return {
        'shortcode': 'abc123',
        'target': 'https://example.com/page',
        'created_at': '2025-10-15 12:00:00',
        'creator_ip': '203.0.113.7',
        'expires_at': '2025-12-31 00:00:00',
        'max_uses': '',
        'visit_count': '7',
        'is_active': '1',
    }


# -------------------------------
# 1. Insertion behavior
# -------------------------------


def test_insert_link(dao, redis_client, link):
    """Ensure a new link is written as one hash under an optimistic lock."""
    result = dao.insert(link)

    assert result is dao
    redis_client.watch.assert_called_once_with(LINK_KEY)
    redis_client.multi.assert_called_once()
    redis_client.hset.assert_called_once_with(
        LINK_KEY,
        mapping={
            'shortcode': 'abc123',
            'target': 'https://example.com/page',
            'created_at': '2025-10-15 12:00:00',
            'creator_ip': '203.0.113.7',
            'expires_at': '',
            'max_uses': 3,
            'visit_count': 0,
            'is_active': '1',
        },
    )
    redis_client.execute.assert_called_once()


def test_insert_link_which_already_exists(dao, redis_client, link):
    """Ensure duplicate shortcodes raise LinkAlreadyExistsError without writing."""
    redis_client.exists.return_value = True

    with pytest.raises(LinkAlreadyExistsError, match=re.escape("Link with code 'abc123' already exists.")):
        dao.insert(link)
    redis_client.hset.assert_not_called()


def test_insert_link_claimed_concurrently(dao, redis_client, link):
    """Ensure a concurrent writer aborting EXEC raises LinkAlreadyExistsError."""
    redis_client.execute.side_effect = redis.exceptions.WatchError('Watched variable changed.')

    with pytest.raises(LinkAlreadyExistsError):
        dao.insert(link)


def test_insert_link_with_invalid_type(dao):
    """Ensure inserting invalid types raises TypeError or Beartype error."""
    with pytest.raises((TypeError, BeartypeCallHintParamViolation)):
        dao.insert('https://example.com/notamodel')


def test_insert_link_with_redis_connection_error(dao, redis_client, link):
    """Ensure Redis connection errors during insert raise DataStoreError."""
    redis_client.execute.side_effect = redis.exceptions.ConnectionError('Connection error')

    with pytest.raises(DataStoreError, match="Can't connect to Redis at 203.0.113.1:18000/5."):
        dao.insert(link)


# -------------------------------
# 2. Retrieval behavior
# -------------------------------


def test_get_link(dao, redis_client, link_hash):
    """Ensure a stored link hash is decoded into a LinkModel."""
    redis_client.hgetall.return_value = link_hash

    link = dao.get('abc123')

    redis_client.hgetall.assert_called_once_with(LINK_KEY)
    assert link == LinkModel(
        shortcode='abc123',
        target='https://example.com/page',
        created_at='2025-10-15 12:00:00',
        creator_ip='203.0.113.7',
        expires_at='2025-12-31 00:00:00',
        max_uses=None,
        visit_count=7,
        is_active=True,
    )


def test_get_inactive_link(dao, redis_client, link_hash):
    """Ensure the soft deactivation flag survives a round trip through Redis."""
    redis_client.hgetall.return_value = link_hash | {'is_active': '0', 'max_uses': '10', 'expires_at': ''}

    link = dao.get('abc123')

    assert link.is_active is False
    assert link.max_uses == 10
    assert link.expires_at is None


def test_get_link_which_does_not_exist(dao, redis_client):
    """Ensure missing links raise LinkNotFoundError."""
    redis_client.hgetall.return_value = {}

    with pytest.raises(LinkNotFoundError, match=re.escape("Link with code 'zzzzzz' not found.")):
        dao.get('zzzzzz')


def test_get_link_with_invalid_type(dao):
    with pytest.raises((TypeError, BeartypeCallHintParamViolation)):
        dao.get(123)


@pytest.mark.parametrize('reply, expected', [(1, True), (0, False)])
def test_exists(dao, redis_client, reply, expected):
    """Ensure exists() reflects the presence of the link hash."""
    redis_client.exists.return_value = reply
    assert dao.exists('abc123') is expected
    redis_client.exists.assert_called_once_with(LINK_KEY)


# -------------------------------
# 3. Visit recording
# -------------------------------


def test_record_visit(dao, redis_client, visit):
    """Ensure a visit updates counter, log, visitors and daily bucket atomically."""
    redis_client.hmget.return_value = ['2', '1']
    redis_client.execute.return_value = [3, 3, 1, 1]

    visit_count = dao.record_visit(visit, max_uses=5)

    assert visit_count == 3
    redis_client.watch.assert_called_once_with(LINK_KEY)
    redis_client.hmget.assert_called_once_with(LINK_KEY, 'visit_count', 'is_active')
    redis_client.multi.assert_called_once()
    redis_client.hincrby.assert_has_calls(
        [
            call(LINK_KEY, 'visit_count', 1),
            call(DAILY_KEY, '2025-10-15', 1),
        ]
    )
    redis_client.lpush.assert_called_once_with(VISITS_KEY, json.dumps({'visited_at': '2025-10-15 12:30:00', 'visitor_ip': '198.51.100.4', 'user_agent': 'curl/8.5'}))
    redis_client.sadd.assert_called_once_with(VISITORS_KEY, '198.51.100.4')
    redis_client.execute.assert_called_once()


def test_record_visit_without_usage_limit(dao, redis_client, visit):
    """Ensure links without max_uses accept any number of visits."""
    redis_client.hmget.return_value = ['1000000', '1']
    redis_client.execute.return_value = [1000001, 1, 1, 1]

    assert dao.record_visit(visit) == 1000001


def test_record_visit_when_uses_exhausted(dao, redis_client, visit):
    """Ensure a link at its usage limit refuses the visit before MULTI."""
    redis_client.hmget.return_value = ['1', '1']

    with pytest.raises(LinkUsageLimitReachedError):
        dao.record_visit(visit, max_uses=1)
    redis_client.multi.assert_not_called()
    redis_client.hincrby.assert_not_called()


@pytest.mark.parametrize('reply', [[None, None], ['4', '0']])
def test_record_visit_for_missing_or_inactive_link(dao, redis_client, visit, reply):
    """Ensure deleted or deactivated links refuse the visit."""
    redis_client.hmget.return_value = reply

    with pytest.raises(LinkNotFoundError):
        dao.record_visit(visit)
    redis_client.multi.assert_not_called()


def test_record_visit_retries_on_concurrent_modification(dao, redis_client, visit):
    """Ensure an aborted transaction is retried with a fresh read."""
    redis_client.hmget.return_value = ['0', '1']
    redis_client.execute.side_effect = [redis.exceptions.WatchError('Watched variable changed.'), [1, 1, 1, 1]]

    assert dao.record_visit(visit, max_uses=1) == 1
    assert redis_client.watch.call_count == 2
    assert redis_client.hmget.call_count == 2


def test_record_visit_rechecks_usage_limit_on_retry(dao, redis_client, visit):
    """Ensure a concurrent visit consuming the last use is seen on retry."""
    redis_client.hmget.side_effect = [['0', '1'], ['1', '1']]
    redis_client.execute.side_effect = redis.exceptions.WatchError('Watched variable changed.')

    with pytest.raises(LinkUsageLimitReachedError):
        dao.record_visit(visit, max_uses=1)
    assert redis_client.execute.call_count == 1


def test_record_visit_gives_up_under_contention(dao, redis_client, visit):
    """Ensure persistent contention surfaces as DataStoreError."""
    redis_client.hmget.return_value = ['0', '1']
    redis_client.execute.side_effect = redis.exceptions.WatchError('Watched variable changed.')

    with pytest.raises(DataStoreError, match="Couldn't record visit for link 'abc123'"):
        dao.record_visit(visit)
    assert redis_client.execute.call_count == MAX_WATCH_RETRIES


def test_record_visit_with_redis_timeout(dao, redis_client, visit):
    """Ensure Redis timeouts during visit recording raise DataStoreError."""
    redis_client.hmget.side_effect = redis.exceptions.TimeoutError('Timeout')

    with pytest.raises(DataStoreError, match="Can't connect to Redis"):
        dao.record_visit(visit)


def test_record_visit_with_invalid_type(dao):
    with pytest.raises((TypeError, BeartypeCallHintParamViolation)):
        dao.record_visit({'shortcode': 'abc123'})


# -------------------------------
# 4. Aggregations
# -------------------------------


def test_visits_by_day(dao, redis_client):
    """Ensure daily buckets older than `since` are dropped and the rest sorted by day."""
    redis_client.hgetall.return_value = {
        '2025-10-15': '1',
        '2025-09-01': '5',
        '2025-10-14': '2',
        '2025-09-15': '4',
    }

    result = dao.visits_by_day('abc123', since='2025-09-15')

    redis_client.hgetall.assert_called_once_with(DAILY_KEY)
    assert result == [
        DailyVisitsModel(day='2025-09-15', visits=4),
        DailyVisitsModel(day='2025-10-14', visits=2),
        DailyVisitsModel(day='2025-10-15', visits=1),
    ]


def test_visits_by_day_without_visits(dao, redis_client):
    redis_client.hgetall.return_value = {}
    assert dao.visits_by_day('abc123', since='2025-09-15') == []


def test_last_visits(dao, redis_client):
    """Ensure the newest visits are read from the head of the visit log."""
    redis_client.lrange.return_value = [
        json.dumps({'visited_at': '2025-10-15 12:31:00', 'visitor_ip': '198.51.100.5', 'user_agent': 'Mozilla/5.0'}),
        json.dumps({'visited_at': '2025-10-15 12:30:00', 'visitor_ip': '198.51.100.4', 'user_agent': 'curl/8.5'}),
    ]

    result = dao.last_visits('abc123', limit=2)

    redis_client.lrange.assert_called_once_with(VISITS_KEY, 0, 1)
    assert result == [
        VisitModel('abc123', '2025-10-15 12:31:00', '198.51.100.5', 'Mozilla/5.0'),
        VisitModel('abc123', '2025-10-15 12:30:00', '198.51.100.4', 'curl/8.5'),
    ]


def test_last_visits_with_zero_limit(dao, redis_client):
    assert dao.last_visits('abc123', limit=0) == []
    redis_client.lrange.assert_not_called()


def test_unique_visitors(dao, redis_client):
    redis_client.scard.return_value = 2
    assert dao.unique_visitors('abc123') == 2
    redis_client.scard.assert_called_once_with(VISITORS_KEY)


# -------------------------------
# 5. Deletion
# -------------------------------


@pytest.mark.parametrize('reply, expected', [([1, 4], True), ([0, 0], False)])
def test_delete(dao, redis_client, reply, expected):
    """Ensure the link and all its visit keys are deleted together."""
    redis_client.execute.return_value = reply

    assert dao.delete('abc123') is expected
    redis_client.pipeline.assert_called_once_with(transaction=True)
    redis_client.delete.assert_called_once_with(LINK_KEY, VISITS_KEY, VISITORS_KEY, DAILY_KEY)
