from shortlinks.dao.base.link_base_dao import LinkBaseDAO
from shortlinks.dao.base.rate_limit_base_dao import RateLimitBaseDAO


__all__ = [
    'LinkBaseDAO',
    'RateLimitBaseDAO',
]
