"""Abstract base class for rate limit data access objects (DAOs).

This interface defines the contract for storing per-client request events
used by a sliding window rate limiter, across different storage systems.

Example:
    Typical usage with a datastore-specific implementation:

        >>> from shortlinks.dao.redis import RateLimitRedisDAO
        >>> dao = RateLimitRedisDAO(...)

        >>> dao.record('203.0.113.7', at='2025-10-15 12:00:00')
        >>> dao.count('203.0.113.7', since='2025-10-15 11:00:00')
        1
"""

from abc import ABC, abstractmethod


class RateLimitBaseDAO(ABC):
    """Interface for per-client request event data access objects (DAOs)

    Timestamps are 'YYYY-MM-DD HH:MM:SS' UTC strings.

    Methods:
        count(client_id: str, since: str, **kwargs) -> int:
            Count events of a client strictly newer than `since`.

        record(client_id: str, at: str, **kwargs) -> None:
            Store one event of a client.

        purge(before: str, **kwargs) -> int:
            Delete events of all clients strictly older than `before`.

        oldest(client_id: str, since: str, **kwargs) -> int | None:
            Epoch second of the oldest event of a client newer than `since`.

    All methods raise DataStoreError on connection, read or write failure.
    """

    @abstractmethod
    def count(self, client_id: str, since: str, **kwargs) -> int:
        pass

    @abstractmethod
    def record(self, client_id: str, at: str, **kwargs) -> None:
        pass

    @abstractmethod
    def purge(self, before: str, **kwargs) -> int:
        """Delete stale events of all clients.

        NOTE: Implementations must sweep every client, not only the one being
              checked, so that storage stays bounded by the active window.

        Returns:
            int: Number of deleted events, when the data store reports it.
        """
        pass

    @abstractmethod
    def oldest(self, client_id: str, since: str, **kwargs) -> int | None:
        pass
