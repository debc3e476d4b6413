from shortlinks.service.settings import ServiceSettings
from shortlinks.service.rate_limiter import RateLimiter
from shortlinks.service.short_link_service import ShortLinkService


__all__ = [
    'ServiceSettings',
    'RateLimiter',
    'ShortLinkService',
]
