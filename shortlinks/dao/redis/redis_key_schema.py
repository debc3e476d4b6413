import functools
from collections.abc import Callable


__all__ = ['RedisKeySchema']  # hide internal decorator prefix_key from imports


def prefix_key(func: Callable) -> Callable:
    @functools.wraps(func)
    def wrapper(self, *args, **kwargs) -> str:
        key = func(self, *args, **kwargs)
        return f'{self.prefix}:{key}' if self.prefix is not None else key

    return wrapper


class RedisKeySchema:
    """Provide standardized Redis keys for storing data models.

    An optional prefix can be provided to namespace all generated keys.
    It is highly encouraged to set a custom prefix for each app and environment,
    e.g. "shortlinks:prod" or "shortlinks:dev".
    """

    def __init__(self, prefix: str | None = None):
        if prefix is not None and not isinstance(prefix, str):
            raise TypeError(f'Prefix must be of type string (given type: {type(prefix)}).')

        self.prefix = prefix

    @prefix_key
    def link_key(self, shortcode: str) -> str:
        return f'links:{shortcode}'

    @prefix_key
    def link_visits_key(self, shortcode: str) -> str:
        return f'links:{shortcode}:visits'

    @prefix_key
    def link_visitors_key(self, shortcode: str) -> str:
        return f'links:{shortcode}:visitors'

    @prefix_key
    def link_daily_visits_key(self, shortcode: str) -> str:
        return f'links:{shortcode}:visits:daily'

    @prefix_key
    def rate_limit_key(self, client_id: str) -> str:
        return f'ratelimit:{client_id}'

    @prefix_key
    def rate_limit_clients_key(self) -> str:
        return 'ratelimit:clients'
