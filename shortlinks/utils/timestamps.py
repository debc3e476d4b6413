"""UTC timestamp helpers

All persisted timestamps use the 'YYYY-MM-DD HH:MM:SS' format in UTC. Fixed width
and zero padding make lexicographic comparison of two timestamps equivalent to
chronological comparison, which expiry and rate limiting checks rely on.

Functions:
    utcnow() -> datetime
        Current UTC time truncated to whole seconds.
    format_timestamp(dt: datetime) -> str
        Render a datetime as a UTC timestamp string.
    parse_timestamp(value: str) -> datetime
        Parse a timestamp string back into an aware UTC datetime.
    now_timestamp() -> str
        Current UTC time as a timestamp string.
    to_epoch(value: str) -> int
        Epoch seconds of a timestamp string.
    day_of(value: str) -> str
        Calendar day ('YYYY-MM-DD') of a timestamp string.

Example:
    >>> format_timestamp(datetime(2025, 10, 15, 9, 5, 0, tzinfo=UTC))
    '2025-10-15 09:05:00'
    >>> to_epoch('1970-01-01 00:01:00')
    60
"""

from datetime import datetime, UTC


TIMESTAMP_FORMAT = '%Y-%m-%d %H:%M:%S'


def utcnow() -> datetime:
    return datetime.now(UTC).replace(microsecond=0)


def format_timestamp(dt: datetime) -> str:
    """Render a datetime as 'YYYY-MM-DD HH:MM:SS' in UTC

    Naive datetimes are assumed to already be in UTC. Years are zero-padded
    to four digits.

    Raises:
        OverflowError:
            If converting an aware datetime to UTC leaves the supported range.
    """
    if dt.tzinfo is not None:
        dt = dt.astimezone(UTC)
    return f'{dt.year:04d}-{dt:%m-%d %H:%M:%S}'


def parse_timestamp(value: str) -> datetime:
    return datetime.strptime(value, TIMESTAMP_FORMAT).replace(tzinfo=UTC)


def now_timestamp() -> str:
    return format_timestamp(utcnow())


def to_epoch(value: str) -> int:
    return int(parse_timestamp(value).timestamp())


def day_of(value: str) -> str:
    return value[: len('YYYY-MM-DD')]
