from shortlinks.utils.config import app_env, app_name, app_prefix, load_config
from shortlinks.utils.helpers import (
    base_url,
    get_short_url,
    get_client_ip,
    get_user_agent,
    get_request_params,
    require_environment,
    guarantee_500_response,
)
from shortlinks.utils.shortener import generate_shortcode
from shortlinks.utils.validators import URLValidator
from shortlinks.utils.logging import initialize_logging


__all__ = [
    'generate_shortcode',
    'URLValidator',
    'app_env',
    'app_name',
    'app_prefix',
    'load_config',
    'base_url',
    'get_short_url',
    'get_client_ip',
    'get_user_agent',
    'get_request_params',
    'require_environment',
    'guarantee_500_response',
    'initialize_logging',
]
