import logging

from shortlinks.dao.exceptions import LinkNotFoundError
from shortlinks.exceptions import LinkExpiredError, LinkUsesExhaustedError, ShortLinksError
from shortlinks.service import ShortLinkService
from shortlinks.types import LambdaEvent, LambdaContext, LambdaResponse
from shortlinks.utils import load_config, get_client_ip, get_user_agent, guarantee_500_response
from shortlinks.utils.responses import error_response, redirect_response, response_for_error
from shortlinks.utils.shortener import is_shortcode
from shortlinks.lambdas.redirect_url.constants import (
    MISSING_SHORTCODE,
    LINK_NOT_FOUND,
    LINK_EXPIRED,
    LINK_USES_EXHAUSTED,
    REDIRECT_SUCCESS,
    SERVICE_UNAVAILABLE,
)


logger = logging.getLogger(__name__)

# Built on first invocation and reused by warm Lambda containers
_service: ShortLinkService | None = None


def get_service() -> ShortLinkService:
    global _service
    if _service is None:
        _service = ShortLinkService.from_config(load_config('redirect_url'))
    return _service


@guarantee_500_response
def lambda_handler(event: LambdaEvent, context: LambdaContext) -> LambdaResponse:
    """Handle incoming API Gateway requests to redirect short URLs

    This Lambda handler follows this procedure to redirect URLs:
    - Step 1: Extract shortcode from request path
    - Step 2: Resolve the link and record the visit (atomic)
    - Step 3: Redirect client to target URL

    HTTP responses:
        301: Successful redirect
            headers:
                Location: target URL destination
        400: Bad client request
            error: missing shortcode in path parameters
        404: Not found
            error: link doesn't exist or was deactivated
        410: Gone
            error: link expired or reached its usage limit
        500: Internal server error
            error: generic message (details are logged)

    Example:
        >>> event = {'pathParameters': {'shortcode': 'aB3xZ9'}}
        >>> response = lambda_handler(event, None)
        >>> response['statusCode']
        301
        >>> response['headers']['Location']
        'https://example.com/page'
    """
    # 1- Extract shortcode from request's path
    shortcode = (event.get('pathParameters') or {}).get('shortcode')
    if not shortcode:
        logger.info('Missing "shortcode" in path. Responding with 400.', extra={'event': MISSING_SHORTCODE})
        return error_response(400, message="Missing 'shortcode' in path.", error_code=MISSING_SHORTCODE)
    if not is_shortcode(shortcode):
        logger.info('Malformed shortcode in path. Responding with 404.', extra={'event': LINK_NOT_FOUND})
        return response_for_error(LinkNotFoundError(f"Link with code '{shortcode}' not found."))

    # 2- Resolve the link and record the visit
    try:
        target_url = get_service().resolve(shortcode, visitor_ip=get_client_ip(event), user_agent=get_user_agent(event))
    except LinkNotFoundError as error:
        logger.info(
            'Link not found. Responding with 404.',
            extra={'event': LINK_NOT_FOUND, 'shortcode': shortcode},
        )
        return response_for_error(error)
    except LinkExpiredError as error:
        logger.info(
            'Link expired. Responding with 410.',
            extra={'event': LINK_EXPIRED, 'shortcode': shortcode},
        )
        return response_for_error(error)
    except LinkUsesExhaustedError as error:
        logger.info(
            'Link reached its usage limit. Responding with 410.',
            extra={'event': LINK_USES_EXHAUSTED, 'shortcode': shortcode},
        )
        return response_for_error(error)
    except ShortLinksError as error:
        logger.exception(
            'Short link service unavailable. Responding with 500.',
            extra={'event': SERVICE_UNAVAILABLE, 'shortcode': shortcode, 'error': error.__class__.__name__},
        )
        return response_for_error(error)

    # 3- Redirect client to target URL
    logger.info(
        'Redirecting client to target URL. Responding with 301.',
        extra={'event': REDIRECT_SUCCESS, 'shortcode': shortcode},
    )
    return redirect_response(target_url)
