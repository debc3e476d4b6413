from dataclasses import dataclass, field
from typing import Any, Optional

from shortlinks.constants import Defaults, Limits
from shortlinks.exceptions import BadConfigurationError


@dataclass(frozen=True)
class ServiceSettings:
    """Tunable limits of the short link service.

    Attributes:
        own_host (Optional[str]):
            Host the shortener is served from. If None, the host of each
            request's base URL is used for the redirect loop check.
        code_length (int):
            Default shortcode length when the client doesn't request one.
        rate_limit_max_requests (int):
            Link creations allowed per client within the window.
        rate_limit_window_seconds (int):
            Sliding rate limit window length.
        malicious_patterns (tuple[str, ...]):
            Regular expressions rejected anywhere in a target URL.
        last_visits_limit (int):
            Number of most recent visits reported by link statistics.
        stats_days (int):
            Number of past days covered by visits-by-day statistics.
    """

    own_host: Optional[str] = None
    code_length: int = Defaults.CODE_LENGTH
    rate_limit_max_requests: int = Defaults.RATE_LIMIT_REQUESTS
    rate_limit_window_seconds: int = Defaults.RATE_LIMIT_WINDOW
    malicious_patterns: tuple[str, ...] = field(default=Defaults.MALICIOUS_PATTERNS)
    last_visits_limit: int = Defaults.LAST_VISITS_LIMIT
    stats_days: int = Defaults.STATS_DAYS

    def __post_init__(self):
        if not Limits.MIN_CODE_LENGTH <= self.code_length <= Limits.MAX_CODE_LENGTH:
            raise BadConfigurationError(
                f'code_length must be between {Limits.MIN_CODE_LENGTH} and {Limits.MAX_CODE_LENGTH} (given value: {self.code_length}).'
            )
        for name in ('rate_limit_max_requests', 'rate_limit_window_seconds', 'stats_days'):
            if getattr(self, name) < 1:
                raise BadConfigurationError(f'{name} must be a positive integer (given value: {getattr(self, name)}).')
        if self.last_visits_limit < 0:
            raise BadConfigurationError(f'last_visits_limit must not be negative (given value: {self.last_visits_limit}).')

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> 'ServiceSettings':
        """Build settings from the 'service' section of a Lambda configuration

        Example:
            >>> ServiceSettings.from_config({'service': {'rate_limit': {'max_requests': 5}}})
            ServiceSettings(own_host=None, code_length=6, rate_limit_max_requests=5, ...)
        """
        service = config.get('service') or {}
        rate_limit = service.get('rate_limit') or {}
        try:
            return cls(
                own_host=service.get('own_host') or None,
                code_length=int(service.get('code_length', Defaults.CODE_LENGTH)),
                rate_limit_max_requests=int(rate_limit.get('max_requests', Defaults.RATE_LIMIT_REQUESTS)),
                rate_limit_window_seconds=int(rate_limit.get('window_seconds', Defaults.RATE_LIMIT_WINDOW)),
                malicious_patterns=_patterns(service.get('malicious_patterns', Defaults.MALICIOUS_PATTERNS)),
                last_visits_limit=int(service.get('last_visits_limit', Defaults.LAST_VISITS_LIMIT)),
                stats_days=int(service.get('stats_days', Defaults.STATS_DAYS)),
            )
        except (TypeError, ValueError, AttributeError) as e:
            raise BadConfigurationError(f'Invalid service configuration: {e}') from e


def _patterns(value: Any) -> tuple[str, ...]:
    if not isinstance(value, (list, tuple)) or not all(isinstance(pattern, str) for pattern in value):
        raise BadConfigurationError(f'malicious_patterns must be a list of strings (given value: {value!r}).')
    return tuple(value)
