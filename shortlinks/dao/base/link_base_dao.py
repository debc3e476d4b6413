"""Abstract base class for short link data access objects (DAOs).

This class establishes a consistent contract for all link DAO implementations,
regardless of the underlying storage mechanism (e.g., Redis, DynamoDB, PostgreSQL).

Responsibilities:
    - Provide an interface for inserting and retrieving LinkModel objects.
    - Record visits atomically together with the link's visit counter.
    - Expose read-only visit aggregates for link statistics.
    - Standardize error handling across multiple data store implementations.

Example:
    Typical usage with a datastore-specific implementation:

        >>> from shortlinks.models import LinkModel, VisitModel
        >>> from shortlinks.dao.redis import LinkRedisDAO

        >>> dao = LinkRedisDAO(...)

        >>> link = LinkModel(
        ...     shortcode='a1b2c3',
        ...     target='https://example.com/blog/article-123',
        ...     created_at='2025-10-15 12:00:00',
        ...     creator_ip='203.0.113.7',
        ... )
        >>> dao.insert(link)

        >>> dao.record_visit(VisitModel('a1b2c3', '2025-10-15 12:01:00', '198.51.100.4', 'curl/8.5'))
        1

        >>> dao.get('a1b2c3').visit_count
        1
"""

from abc import ABC, abstractmethod

from shortlinks.models import LinkModel, VisitModel, DailyVisitsModel


class LinkBaseDAO(ABC):
    """Interface for short link data access objects (DAOs).

    Methods:
        insert(link: LinkModel, **kwargs) -> LinkBaseDAO:
            Insert a new LinkModel into the data store.
            Raises LinkAlreadyExistsError if the shortcode is already taken,
            including when a concurrent writer claims it first.

        get(shortcode: str, **kwargs) -> LinkModel:
            Retrieve a LinkModel by shortcode.
            Raises LinkNotFoundError if the entry does not exist.

        exists(shortcode: str, **kwargs) -> bool:
            Check whether a shortcode is taken.

        record_visit(visit: VisitModel, max_uses: int | None, **kwargs) -> int:
            Atomically increment the link's visit counter and append the visit.

        visits_by_day(shortcode: str, since: str, **kwargs) -> list[DailyVisitsModel]:
            Visits grouped by calendar day, ascending, for days >= since.

        last_visits(shortcode: str, limit: int, **kwargs) -> list[VisitModel]:
            Most recent visits, newest first.

        unique_visitors(shortcode: str, **kwargs) -> int:
            Number of distinct visitor IPs.

        delete(shortcode: str, **kwargs) -> bool:
            Delete a link together with its whole visit history.

    All methods raise DataStoreError on connection, read or write failure.

    Subclassing:
        Datastore-specific implementations (e.g., LinkRedisDAO) must extend
        this class and implement all abstract methods.
    """

    @abstractmethod
    def insert(self, link: LinkModel, **kwargs) -> 'LinkBaseDAO':
        """Insert a new LinkModel into the data store.

        The uniqueness check and the write must be a single atomic step, so two
        concurrent inserts of the same shortcode never both succeed.

        Args:
            link (LinkModel):
                The LinkModel instance to be inserted.

            **kwargs:
                Additional keyword arguments, used by data store.

        Returns:
            LinkBaseDAO: self (for method chaining)

        Raises:
            LinkAlreadyExistsError:
                If a LinkModel with the same shortcode already exists.

            DataStoreError:
                If there is an error in the data store.
        """
        pass

    @abstractmethod
    def get(self, shortcode: str, **kwargs) -> LinkModel:
        """Retrieve a LinkModel from the data store by its shortcode.

        Args:
            shortcode (str):
                The shortcode of the LinkModel to be retrieved.

            **kwargs:
                Additional keyword arguments, used by data store.

        Returns:
            LinkModel: The stored LinkModel instance.

        Raises:
            LinkNotFoundError:
                If no LinkModel with the given shortcode exists.

            DataStoreError:
                If there is an error in the data store.
        """
        pass

    @abstractmethod
    def exists(self, shortcode: str, **kwargs) -> bool:
        pass

    @abstractmethod
    def record_visit(self, visit: VisitModel, max_uses: int | None = None, **kwargs) -> int:
        """Record a successful resolution of a link.

        Increments the link's visit counter and appends the visit to the link's
        history as one atomic transaction: either both are persisted or neither is.

        Args:
            visit (VisitModel):
                The visit to be recorded.

            max_uses (int | None):
                If given, the visit is refused when the link's visit counter
                already reached this value at the time of the write.

            **kwargs:
                Additional keyword arguments, used by data store.

        Returns:
            int: The link's visit counter after the increment.

        Raises:
            LinkNotFoundError:
                If the link doesn't exist or has been deactivated.

            LinkUsageLimitReachedError:
                If max_uses was reached by a concurrent resolution.

            DataStoreError:
                If there is an error in the data store. Nothing is persisted.
        """
        pass

    @abstractmethod
    def visits_by_day(self, shortcode: str, since: str, **kwargs) -> list[DailyVisitsModel]:
        pass

    @abstractmethod
    def last_visits(self, shortcode: str, limit: int = 10, **kwargs) -> list[VisitModel]:
        pass

    @abstractmethod
    def unique_visitors(self, shortcode: str, **kwargs) -> int:
        pass

    @abstractmethod
    def delete(self, shortcode: str, **kwargs) -> bool:
        """Delete a link and cascade to all of its visits.

        Returns:
            bool: True if the link existed, False otherwise.
        """
        pass
