"""API Gateway (Lambda proxy) response builders

Success:   { "success": true,  "data": { ... } }
Error:     { "success": false, "error": { "code": 4xx, "message": "...", "errorCode": "..." } }
Redirect:  HTTP 301 with Location header

Functions:
    success_response(data, status_code=200) -> dict
    error_response(status_code, message=None, error_code=None, headers=None) -> dict
    redirect_response(location, status_code=301) -> dict
    status_code_for(error) -> int
    response_for_error(error) -> dict
"""

import json
from typing import Any

from shortlinks.dao.exceptions import LinkNotFoundError
from shortlinks.exceptions import (
    LinkGoneError,
    RateLimitExceededError,
    ShortLinksError,
    ValidationError,
)
from shortlinks.types import LambdaResponse


JSON_HEADERS = {'Content-Type': 'application/json; charset=utf-8'}

DEFAULT_MESSAGES = {
    400: 'Bad Request',
    404: 'Not Found',
    410: 'Gone',
    429: 'Too Many Requests',
    500: 'Internal Server Error',
}

# Most specific classes first; anything else is a server error
ERROR_STATUS_CODES: tuple[tuple[type[Exception], int], ...] = (
    (ValidationError, 400),
    (LinkNotFoundError, 404),
    (LinkGoneError, 410),
    (RateLimitExceededError, 429),
)


def success_response(data: Any, status_code: int = 200) -> LambdaResponse:
    return {
        'statusCode': status_code,
        'headers': dict(JSON_HEADERS),
        'body': json.dumps({'success': True, 'data': data}, ensure_ascii=False),
    }


def error_response(
    status_code: int,
    message: str | None = None,
    error_code: str | None = None,
    headers: dict[str, str] | None = None,
) -> LambdaResponse:
    error = {'code': status_code, 'message': message or DEFAULT_MESSAGES.get(status_code, 'Error')}
    if error_code:
        error['errorCode'] = error_code
    return {
        'statusCode': status_code,
        'headers': JSON_HEADERS | (headers or {}),
        'body': json.dumps({'success': False, 'error': error}, ensure_ascii=False),
    }


def redirect_response(location: str, status_code: int = 301) -> LambdaResponse:
    return {
        'statusCode': status_code,
        'headers': {'Location': location},
        'body': '',
    }


def status_code_for(error: Exception) -> int:
    for error_class, status_code in ERROR_STATUS_CODES:
        if isinstance(error, error_class):
            return status_code
    return 500


def response_for_error(error: ShortLinksError) -> LambdaResponse:
    """Render an application error with the status code of its class

    Client errors carry the error's own message. Server errors (5xx) only
    expose a generic message; details belong in the logs.
    """
    status_code = status_code_for(error)
    message = str(error) if status_code < 500 else None

    headers = None
    if isinstance(error, RateLimitExceededError) and error.retry_after is not None:
        headers = {'Retry-After': str(error.retry_after)}

    return error_response(status_code, message=message, error_code=error.error_code, headers=headers)
