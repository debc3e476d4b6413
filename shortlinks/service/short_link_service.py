"""Short link lifecycle: create, resolve and report statistics

Create:
    rate limit check -> URL validation -> parameter parsing -> shortcode
    generation -> insert -> rate limit record

Resolve:
    lookup -> inactive? (not found) -> expired? -> uses exhausted?
    -> record visit (atomic) -> target URL

Stats:
    lookup -> visits by day + last visits + unique visitors
    (reported regardless of the link's active or expired state)

Every check runs before the first mutating store call, so a rejected request
leaves no trace in the data store.
"""

import logging
import urllib.parse
from datetime import timedelta
from typing import Any
from collections.abc import Mapping

from shortlinks.constants import Limits
from shortlinks.dao.base import LinkBaseDAO
from shortlinks.dao.redis import LinkRedisDAO, RateLimitRedisDAO
from shortlinks.dao.exceptions import LinkAlreadyExistsError, LinkNotFoundError, LinkUsageLimitReachedError
from shortlinks.exceptions import BadConfigurationError, GenerationExhaustedError, LinkExpiredError, LinkUsesExhaustedError, ValidationError
from shortlinks.models import LinkModel, VisitModel
from shortlinks.service.rate_limiter import RateLimiter
from shortlinks.service.settings import ServiceSettings
from shortlinks.types import LambdaConfiguration
from shortlinks.utils.config import app_prefix
from shortlinks.utils.shortener import generate_shortcode
from shortlinks.utils.timestamps import day_of, format_timestamp, utcnow
from shortlinks.utils.validators import URLValidator, parse_code_length, parse_expires_at, parse_max_uses


logger = logging.getLogger(__name__)

# Inserts retried when a concurrent writer claims the generated shortcode first
MAX_INSERT_ATTEMPTS = 3


class ShortLinkService:
    """Orchestrate short link creation, resolution and statistics.

    The service keeps no state of its own between calls: all shared state lives
    in the data store behind the DAOs it is given.

    Attributes:
        link_dao (LinkBaseDAO):
            Storage of links and their visit history.
        rate_limiter (RateLimiter):
            Per-client link creation limiter.
        settings (ServiceSettings):
            Service limits and defaults.
        validator (URLValidator):
            Target URL admissibility checks.

    Example:
        >>> service = ShortLinkService(link_dao, RateLimiter(rate_limit_dao))
        >>> link = service.create({'url': 'https://example.com/page'}, '203.0.113.7', 'https://sho.rt')
        >>> link['shortUrl']
        'https://sho.rt/aB3xZ9'
        >>> service.resolve('aB3xZ9', '198.51.100.4', 'curl/8.5')
        'https://example.com/page'
    """

    def __init__(
        self,
        link_dao: LinkBaseDAO,
        rate_limiter: RateLimiter,
        settings: ServiceSettings | None = None,
        validator: URLValidator | None = None,
    ):
        self.link_dao = link_dao
        self.rate_limiter = rate_limiter
        self.settings = settings or ServiceSettings()
        self.validator = validator or URLValidator(self.settings.malicious_patterns)

    @classmethod
    def from_config(cls, config: LambdaConfiguration) -> 'ShortLinkService':
        """Build a Redis-backed service from a Lambda configuration

        Both DAOs share one Redis client (and its connection pool).

        Args:
            config (dict):
                Lambda configuration as returned by `load_config()`:
                {'redis': {host, port, db, ...}, 'service': {...}}

        Raises:
            BadConfigurationError:
                If the configuration lacks the Redis section or holds invalid settings.
            DataStoreError:
                If Redis can't be reached.
        """
        if not isinstance(config.get('redis'), dict):
            raise BadConfigurationError("Configuration has no 'redis' section.")

        settings = ServiceSettings.from_config(config)
        redis_config = {f'redis_{k}': v for k, v in config['redis'].items()}

        link_dao = LinkRedisDAO(**redis_config, prefix=app_prefix())
        rate_limit_dao = RateLimitRedisDAO(redis_client=link_dao.redis, prefix=app_prefix())
        rate_limiter = RateLimiter(
            rate_limit_dao,
            max_requests=settings.rate_limit_max_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )
        return cls(link_dao, rate_limiter, settings=settings)

    def create(self, params: Mapping[str, Any], creator_ip: str, base_url: str) -> dict[str, Any]:
        """Shorten a URL

        Args:
            params (Mapping[str, Any]):
                Request parameters:
                    url         str   Target URL (required)
                    expiresAt   str   ISO 8601 date or date-time (optional)
                    maxUses     int   Maximum number of redirects, >= 1 (optional)
                    codeLength  int   Shortcode length, min 5, default 6 (optional)
            creator_ip (str):
                Client address of the creator; rate limited per address.
            base_url (str):
                Public base URL the short URL is built upon.

        Returns:
            dict: {code, shortUrl, originalUrl, createdAt, expiresAt, maxUses}

        Raises:
            RateLimitExceededError:
                If the creator exceeded its budget.
            ValidationError:
                If the URL or a parameter is not admissible.
            GenerationExhaustedError:
                If no unique shortcode could be claimed.
            DataStoreError:
                If the data store fails.
        """
        self.rate_limiter.check(creator_ip)

        url = params.get('url')
        if not isinstance(url, str) or not url:
            raise ValidationError("The 'url' field is required.")
        self.validator.validate(url, own_host=self.settings.own_host or _hostname(base_url))

        now = utcnow()
        expires_at = parse_expires_at(params.get('expiresAt'), now=now)
        max_uses = parse_max_uses(params.get('maxUses'))
        code_length = parse_code_length(params.get('codeLength'), default=self.settings.code_length)

        link = self._insert_with_unique_shortcode(
            code_length,
            target=url,
            created_at=format_timestamp(now),
            creator_ip=creator_ip,
            expires_at=expires_at,
            max_uses=max_uses,
        )

        self.rate_limiter.record(creator_ip)
        logger.info('Link created.', extra={'shortcode': link.shortcode, 'creatorIp': creator_ip})

        return {
            'code': link.shortcode,
            'shortUrl': _short_url(base_url, link.shortcode),
            'originalUrl': link.target,
            'createdAt': link.created_at,
            'expiresAt': link.expires_at,
            'maxUses': link.max_uses,
        }

    def resolve(self, shortcode: str, visitor_ip: str, user_agent: str) -> str:
        """Resolve a shortcode to its target URL and record the visit

        Raises:
            LinkNotFoundError:
                If the link doesn't exist or has been deactivated.
            LinkExpiredError:
                If the link's expiration time has passed.
            LinkUsesExhaustedError:
                If the link reached its maximum number of uses.
            DataStoreError:
                If the visit couldn't be recorded (nothing is persisted).
        """
        link = self.link_dao.get(shortcode)
        if not link.is_active:
            raise LinkNotFoundError(f"Link with code '{shortcode}' not found.")

        now = format_timestamp(utcnow())
        if link.is_expired(now):
            raise LinkExpiredError('The short link has expired.')
        if link.uses_exhausted():
            raise LinkUsesExhaustedError('The short link reached its usage limit.')

        visit = VisitModel(
            shortcode=shortcode,
            visited_at=now,
            visitor_ip=visitor_ip,
            user_agent=(user_agent or '')[: Limits.MAX_USER_AGENT_LENGTH],
        )
        try:
            visit_count = self.link_dao.record_visit(visit, max_uses=link.max_uses)
        except LinkUsageLimitReachedError as e:
            raise LinkUsesExhaustedError('The short link reached its usage limit.') from e

        logger.debug('Visit recorded.', extra={'shortcode': shortcode, 'visitCount': visit_count})
        return link.target

    def stats(self, shortcode: str, base_url: str) -> dict[str, Any]:
        """Report usage statistics of a link

        Returns:
            dict: {code, shortUrl, originalUrl, createdAt, expiresAt, maxUses,
                   isActive, totalVisits, uniqueVisitors, visitsByDay, lastVisits}

        Raises:
            LinkNotFoundError:
                If the link doesn't exist.
            DataStoreError:
                If the data store fails.
        """
        link = self.link_dao.get(shortcode)

        since = day_of(format_timestamp(utcnow() - timedelta(days=self.settings.stats_days)))
        visits_by_day = self.link_dao.visits_by_day(shortcode, since=since)
        last_visits = self.link_dao.last_visits(shortcode, limit=self.settings.last_visits_limit)
        unique_visitors = self.link_dao.unique_visitors(shortcode)

        return {
            'code': link.shortcode,
            'shortUrl': _short_url(base_url, link.shortcode),
            'originalUrl': link.target,
            'createdAt': link.created_at,
            'expiresAt': link.expires_at,
            'maxUses': link.max_uses,
            'isActive': link.is_active,
            'totalVisits': link.visit_count,
            'uniqueVisitors': unique_visitors,
            'visitsByDay': [{'day': daily.day, 'visits': daily.visits} for daily in visits_by_day],
            'lastVisits': [
                {'visitedAt': visit.visited_at, 'visitorIp': visit.visitor_ip, 'userAgent': visit.user_agent}
                for visit in last_visits
            ],
        }

    def _insert_with_unique_shortcode(self, code_length: int, **fields: Any) -> LinkModel:
        """Generate a free shortcode and insert the link under it

        The generator only checks for existence; a concurrent writer can still
        claim the same shortcode before our insert. The insert then fails with
        LinkAlreadyExistsError and a fresh shortcode is generated.
        """
        for attempt in range(1, MAX_INSERT_ATTEMPTS + 1):
            link = LinkModel(shortcode=generate_shortcode(self.link_dao, code_length), **fields)
            try:
                self.link_dao.insert(link)
            except LinkAlreadyExistsError:
                logger.warning(
                    'Shortcode claimed concurrently. Retrying.',
                    extra={'shortcode': link.shortcode, 'attempt': attempt},
                )
                continue
            return link

        raise GenerationExhaustedError(f'Could not claim a unique shortcode after {MAX_INSERT_ATTEMPTS} attempts.')


def _short_url(base_url: str, shortcode: str) -> str:
    return f'{base_url.rstrip("/")}/{shortcode}'


def _hostname(url: str) -> str | None:
    try:
        return urllib.parse.urlsplit(url).hostname
    except ValueError:
        return None
