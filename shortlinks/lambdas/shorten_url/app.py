import logging

from shortlinks.exceptions import (
    GenerationExhaustedError,
    RateLimitExceededError,
    ShortLinksError,
    ValidationError,
)
from shortlinks.service import ShortLinkService
from shortlinks.types import LambdaEvent, LambdaContext, LambdaResponse
from shortlinks.utils import load_config, base_url, get_client_ip, get_request_params, guarantee_500_response
from shortlinks.utils.responses import success_response, response_for_error
from shortlinks.lambdas.shorten_url.constants import (
    LINK_CREATED,
    INVALID_REQUEST,
    RATE_LIMIT_EXCEEDED,
    GENERATION_EXHAUSTED,
    SERVICE_UNAVAILABLE,
)


logger = logging.getLogger(__name__)

# Built on first invocation and reused by warm Lambda containers
_service: ShortLinkService | None = None


def get_service() -> ShortLinkService:
    global _service
    if _service is None:
        _service = ShortLinkService.from_config(load_config('shorten_url'))
    return _service


@guarantee_500_response
def lambda_handler(event: LambdaEvent, context: LambdaContext) -> LambdaResponse:
    """Handle incoming API Gateway requests to shorten URLs

    This Lambda handler follows this procedure to shorten URLs:
    - Step 1: Extract client IP and request parameters (query string + JSON body)
    - Step 2: Create the short link (rate limit, validation, shortcode, insert)
    - Step 3: Respond to client with 201 created

    HTTP responses:
        201: Successful URL shortening
            data: {code, shortUrl, originalUrl, createdAt, expiresAt, maxUses}
        400: Bad client request
            error: invalid JSON body, missing/invalid URL or parameters
        429: Too many link creation requests
            headers:
                Retry-After: seconds until the client may retry
        500: Internal server error
            error: generic message (details are logged)

    Args:
        event (LambdaEvent):
            API Gateway event payload in Lambda Proxy format.
        context (LambdaContext):
            AWS Lambda context object containing runtime information.

    Returns:
        LambdaResponse:
            API Gateway-compatible response including statusCode, headers, and body.

    Example:
        >>> event = {'body': '{"url": "https://example.com/page"}'}
        >>> response = lambda_handler(event, None)
        >>> response['statusCode']
        201
        >>> json.loads(response['body'])['data']['shortUrl']
        'http://localhost:3000/aB3xZ9'
    """
    # 1- Extract client IP and request parameters
    creator_ip = get_client_ip(event)

    try:
        params = get_request_params(event)

        # 2- Create the short link
        link = get_service().create(params, creator_ip=creator_ip, base_url=base_url(event))
    except ValidationError as error:
        logger.info(
            'Invalid shorten request. Responding with 400.',
            extra={'event': INVALID_REQUEST, 'reason': str(error), 'creatorIp': creator_ip},
        )
        return response_for_error(error)
    except RateLimitExceededError as error:
        logger.info(
            'Link creation rate limit exceeded. Responding with 429.',
            extra={'event': RATE_LIMIT_EXCEEDED, 'creatorIp': creator_ip, 'retryAfter': error.retry_after},
        )
        return response_for_error(error)
    except GenerationExhaustedError as error:
        logger.error(
            'Shortcode space exhausted. Responding with 500.',
            extra={'event': GENERATION_EXHAUSTED, 'reason': str(error)},
        )
        return response_for_error(error)
    except ShortLinksError as error:
        logger.exception(
            'Short link service unavailable. Responding with 500.',
            extra={'event': SERVICE_UNAVAILABLE, 'error': error.__class__.__name__},
        )
        return response_for_error(error)

    # 3- Respond with the newly created link
    logger.info(
        'Link created. Responding with 201.',
        extra={'event': LINK_CREATED, 'shortcode': link['code'], 'creatorIp': creator_ip},
    )
    return success_response(link, status_code=201)
