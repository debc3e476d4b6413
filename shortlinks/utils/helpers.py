"""Helper utilities for AWS lambda functions.

Functions:
    base_url() -> str
        Extract correct public base URL from API Gateway event
    get_short_url() -> str
        Get string representation of short URL for a given shortcode
    get_header() -> str | None
        Case-insensitive lookup of a request header
    get_client_ip() -> str
        Resolve the client's IP address from forwarding headers
    get_user_agent() -> str
        Extract the client's User-Agent
    get_request_params() -> dict
        Merge query string parameters with the JSON request body
    require_environment(*names: str) -> Callable
        Decorator: Ensure required environment variables are present
    guarantee_500_response(handler) -> Callable
        Decorator: Convert any uncaught exception into an HTTP 500 response

Example:
    Typical usage inside a Lambda handler:

        >>> from shortlinks.utils.helpers import base_url
        >>> event = {
        ...     "requestContext": {
        ...         "domainName": "abc123.execute-api.us-east-1.amazonaws.com",
        ...         "stage": "Prod"
        ...     }
        ... }
        >>> base_url(event)
        'https://abc123.execute-api.us-east-1.amazonaws.com/Prod'

        >>> base_url({})
        'http://localhost:3000'
"""

import os
import json
import base64
import binascii
import logging
import functools
import ipaddress
from typing import Any
from collections.abc import Callable

from shortlinks.constants import UNKNOWN_CLIENT_IP, UNKNOWN_INTERNAL_SERVER_ERROR
from shortlinks.exceptions import MissingEnvironmentVariableError, ValidationError
from shortlinks.types import LambdaEvent, RequestParams
from shortlinks.utils.responses import error_response
from shortlinks.utils.runtime import running_locally


logger = logging.getLogger(__name__)

# Headers inspected for the real client address, in order of preference
CLIENT_IP_HEADERS = ('X-Forwarded-For', 'X-Real-IP')
LOCAL_HOSTS = frozenset({'localhost', '127.0.0.1'})


def base_url(event: LambdaEvent) -> str:
    """Extract public base URL from API Gateway event

    Works seamlessly with both custom and default AWS API Gateway domains.
    If a custom domain is configured, the stage name is omitted.
    If using the default AWS execute-api domain, the stage name is included.

    Args:
        event (dict): API Gateway event object passed to Lambda handler

    Returns:
        str: Base URL, e.g.:
             - "https://sho.rt"
             - "https://abc123.execute-api.us-east-1.amazonaws.com/Prod"
    """
    request_context = event.get('requestContext') or {}
    domain = request_context.get('domainName', '')
    stage = request_context.get('stage', '')

    if domain and domain.split(':')[0] in LOCAL_HOSTS:
        # Local invocation with an explicit host (sam local start-api)
        return f'http://{domain}'
    elif domain and 'execute-api' not in domain:
        # If the domain is a custom domain (no execute-api), skip stage
        return f'https://{domain}'
    elif domain:
        # Otherwise include the stage (for AWS default domains)
        return f'https://{domain}/{stage}'
    else:
        # Fallback: local invocation (SAM CLI, tests, etc.)
        return 'http://localhost:3000'


def get_short_url(shortcode: str, event: LambdaEvent) -> str:
    """Get string representation of shortened URL

    Args:
        shortcode (str): shortcode
        event (dict): API Gateway event object passed to Lambda handler

    Returns:
        str: short url string representation
    """
    return f'{base_url(event).rstrip("/")}/{shortcode}'


def get_header(event: LambdaEvent, name: str) -> str | None:
    headers = event.get('headers') or {}
    name = name.lower()
    for key, value in headers.items():
        if key.lower() == name:
            return value
    return None


def get_client_ip(event: LambdaEvent) -> str:
    """Resolve the client's IP address

    Checks X-Forwarded-For (first address of the list), then X-Real-IP, then the
    source IP reported by API Gateway. Candidates which don't parse as an IP
    address are skipped.

    Returns:
        str: Client IP address, '0.0.0.0' if none could be determined.

    Example:
        >>> get_client_ip({'headers': {'X-Forwarded-For': '203.0.113.7, 10.0.0.1'}})
        '203.0.113.7'
    """
    request_context = event.get('requestContext') or {}
    candidates = [get_header(event, header) for header in CLIENT_IP_HEADERS]
    candidates.append((request_context.get('identity') or {}).get('sourceIp'))
    candidates.append((request_context.get('http') or {}).get('sourceIp'))

    for candidate in candidates:
        if not candidate:
            continue
        address = candidate.split(',')[0].strip()
        try:
            ipaddress.ip_address(address)
        except ValueError:
            continue
        return address
    return UNKNOWN_CLIENT_IP


def get_user_agent(event: LambdaEvent) -> str:
    user_agent = get_header(event, 'User-Agent')
    if user_agent is None:
        user_agent = ((event.get('requestContext') or {}).get('identity') or {}).get('userAgent')
    return user_agent or ''


def get_request_params(event: LambdaEvent) -> RequestParams:
    """Merge query string parameters with the JSON request body

    The body takes precedence over the query string on key collisions.

    Raises:
        ValidationError:
            If the body is not a valid JSON object.

    Example:
        >>> event = {'queryStringParameters': {'url': 'a', 'maxUses': '2'}, 'body': '{"url": "b"}'}
        >>> get_request_params(event)
        {'url': 'b', 'maxUses': '2'}
    """
    params = dict(event.get('queryStringParameters') or {})

    body = event.get('body')
    if not body:
        return params

    try:
        if event.get('isBase64Encoded'):
            body = base64.b64decode(body).decode('utf-8')
        payload = json.loads(body)
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ValidationError('Request body is not valid JSON.') from e

    if payload is None:
        return params
    if not isinstance(payload, dict):
        raise ValidationError('Request body must be a JSON object.')
    return params | payload


def require_environment(*names: str) -> Callable:
    """Decorator ensuring required environment variables are present.

    Args:
        *names (str):
            Names of required environment variables.

    Raises:
        MissingEnvironmentVariableError:
            If any required environment variable is missing or empty.

    Example:
        >>> @require_environment('APPCONFIG_APP_ID', 'APPCONFIG_ENV_ID')
        ... def my_function():
        ...     pass
        >>> my_function()
        MissingEnvironmentVariableError: Missing required environment variables: 'APPCONFIG_APP_ID', 'APPCONFIG_ENV_ID'
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            missing = [name for name in names if not os.environ.get(name)]
            if missing:
                missing_list = ', '.join(f"'{name}'" for name in missing)
                raise MissingEnvironmentVariableError(f'Missing required environment variables: {missing_list}')
            return func(*args, **kwargs)

        return wrapper

    return decorator


def guarantee_500_response(handler: Callable[[LambdaEvent, Any], dict]) -> Callable[[LambdaEvent, Any], dict]:
    """Decorator: respond with HTTP 500 instead of crashing the Lambda

    Any exception escaping the handler is logged and converted into a generic
    500 response, so no internal details leak to the client. When running
    locally the exception is re-raised to ease debugging.
    """

    @functools.wraps(handler)
    def wrapper(event: LambdaEvent, context: Any) -> dict:
        try:
            return handler(event, context)
        except Exception:
            if running_locally():
                raise
            logger.exception('Unhandled exception in Lambda handler. Responding with 500.', extra={'event': UNKNOWN_INTERNAL_SERVER_ERROR})
            return error_response(500, error_code=UNKNOWN_INTERNAL_SERVER_ERROR)

    return wrapper
