"""Unit tests for the RateLimitRedisDAO

Test coverage includes:

1. Counting
   - Ensures only events strictly newer than `since` are counted.

2. Recording
   - Ensures an event is added to the client's sorted set and the clients index together.

3. Purging
   - Ensures stale events are swept for every indexed client.
   - Confirms an empty index short-circuits.

4. Oldest in-window event
   - Ensures the oldest event score is returned (or None).

5. Error handling
   - Confirms Redis failures raise DataStoreError.
"""

from unittest.mock import MagicMock, call, patch

import pytest
import redis
from beartype.roar import BeartypeCallHintParamViolation

from shortlinks.dao.exceptions import DataStoreError
from shortlinks.dao.redis import RateLimitRedisDAO


CLIENT_KEY = 'testapp:test:ratelimit:203.0.113.7'
CLIENTS_KEY = 'testapp:test:ratelimit:clients'

# Epoch seconds of '2025-10-15 11:00:00' and '2025-10-15 12:00:00' (UTC)
ELEVEN_OCLOCK = 1760526000
NOON = 1760529600


@pytest.fixture
def dao(redis_client, app_prefix):
    return RateLimitRedisDAO(redis_client=redis_client, prefix=app_prefix)


# -------------------------------
# 1. Counting
# -------------------------------


def test_count(dao, redis_client):
    """Ensure the window start is exclusive."""
    redis_client.zcount.return_value = 3

    assert dao.count('203.0.113.7', since='2025-10-15 11:00:00') == 3
    redis_client.zcount.assert_called_once_with(CLIENT_KEY, f'({ELEVEN_OCLOCK}', '+inf')


def test_count_with_invalid_type(dao):
    with pytest.raises((TypeError, BeartypeCallHintParamViolation)):
        dao.count('203.0.113.7', since=ELEVEN_OCLOCK)


# -------------------------------
# 2. Recording
# -------------------------------


def test_record(dao, redis_client):
    """Ensure each event gets a unique member scored by its epoch second."""
    with patch('shortlinks.dao.redis.rate_limit_redis_dao.uuid.uuid4', return_value=MagicMock(hex='f00d')):
        dao.record('203.0.113.7', at='2025-10-15 12:00:00')

    redis_client.pipeline.assert_called_once_with(transaction=True)
    redis_client.zadd.assert_has_calls(
        [
            call(CLIENT_KEY, {f'{NOON}:f00d': NOON}),
            call(CLIENTS_KEY, {'203.0.113.7': NOON}),
        ]
    )
    redis_client.execute.assert_called_once()


def test_record_events_within_same_second(dao, redis_client):
    """Ensure two events in the same second are stored as distinct members."""
    dao.record('203.0.113.7', at='2025-10-15 12:00:00')
    dao.record('203.0.113.7', at='2025-10-15 12:00:00')

    client_members = [c.args[1] for c in redis_client.zadd.call_args_list if c.args[0] == CLIENT_KEY]
    assert len(client_members) == 2
    assert client_members[0].keys() != client_members[1].keys()


# -------------------------------
# 3. Purging
# -------------------------------


def test_purge(dao, redis_client):
    """Ensure stale events of every indexed client are removed."""
    redis_client.zrange.return_value = ['203.0.113.7', '198.51.100.4']
    redis_client.execute.return_value = [2, 1, 1]

    removed = dao.purge(before='2025-10-15 11:00:00')

    assert removed == 3
    redis_client.zrange.assert_called_once_with(CLIENTS_KEY, 0, -1)
    redis_client.pipeline.assert_called_once_with(transaction=False)
    redis_client.zremrangebyscore.assert_has_calls(
        [
            call(CLIENT_KEY, '-inf', f'({ELEVEN_OCLOCK}'),
            call('testapp:test:ratelimit:198.51.100.4', '-inf', f'({ELEVEN_OCLOCK}'),
            call(CLIENTS_KEY, '-inf', f'({ELEVEN_OCLOCK}'),
        ]
    )


def test_purge_without_clients(dao, redis_client):
    redis_client.zrange.return_value = []

    assert dao.purge(before='2025-10-15 11:00:00') == 0
    redis_client.pipeline.assert_not_called()


# -------------------------------
# 4. Oldest in-window event
# -------------------------------


def test_oldest(dao, redis_client):
    redis_client.zrangebyscore.return_value = [(f'{ELEVEN_OCLOCK + 60}:f00d', float(ELEVEN_OCLOCK + 60))]

    assert dao.oldest('203.0.113.7', since='2025-10-15 11:00:00') == ELEVEN_OCLOCK + 60
    redis_client.zrangebyscore.assert_called_once_with(CLIENT_KEY, f'({ELEVEN_OCLOCK}', '+inf', start=0, num=1, withscores=True)


def test_oldest_without_events(dao, redis_client):
    redis_client.zrangebyscore.return_value = []
    assert dao.oldest('203.0.113.7', since='2025-10-15 11:00:00') is None


# -------------------------------
# 5. Error handling
# -------------------------------


def test_count_with_redis_connection_error(dao, redis_client):
    redis_client.zcount.side_effect = redis.exceptions.ConnectionError('Connection error')

    with pytest.raises(DataStoreError, match="Can't connect to Redis at 203.0.113.1:18000/5."):
        dao.count('203.0.113.7', since='2025-10-15 11:00:00')


def test_purge_with_redis_command_error(dao, redis_client):
    redis_client.zrange.return_value = ['203.0.113.7']
    redis_client.execute.side_effect = redis.exceptions.ResponseError('OOM command not allowed')

    with pytest.raises(DataStoreError, match='Redis command failed'):
        dao.purge(before='2025-10-15 11:00:00')
