import logging

from shortlinks.dao.exceptions import LinkNotFoundError
from shortlinks.exceptions import ShortLinksError
from shortlinks.service import ShortLinkService
from shortlinks.types import LambdaEvent, LambdaContext, LambdaResponse
from shortlinks.utils import load_config, base_url, guarantee_500_response
from shortlinks.utils.responses import error_response, success_response, response_for_error
from shortlinks.utils.shortener import is_shortcode
from shortlinks.lambdas.link_stats.constants import (
    MISSING_SHORTCODE,
    LINK_NOT_FOUND,
    STATS_SUCCESS,
    SERVICE_UNAVAILABLE,
)


logger = logging.getLogger(__name__)

# Built on first invocation and reused by warm Lambda containers
_service: ShortLinkService | None = None


def get_service() -> ShortLinkService:
    global _service
    if _service is None:
        _service = ShortLinkService.from_config(load_config('link_stats'))
    return _service


@guarantee_500_response
def lambda_handler(event: LambdaEvent, context: LambdaContext) -> LambdaResponse:
    """Handle incoming API Gateway requests for link statistics

    Statistics are reported for inactive and expired links too.

    HTTP responses:
        200: Statistics
            data: {code, shortUrl, originalUrl, createdAt, expiresAt, maxUses, isActive,
                   totalVisits, uniqueVisitors, visitsByDay, lastVisits}
        400: Missing shortcode in path parameters
        404: Link doesn't exist
        500: Internal server error
    """
    # 1- Extract shortcode from request's path
    shortcode = (event.get('pathParameters') or {}).get('shortcode')
    if not shortcode:
        logger.info('Missing "shortcode" in path. Responding with 400.', extra={'event': MISSING_SHORTCODE})
        return error_response(400, message="Missing 'shortcode' in path.", error_code=MISSING_SHORTCODE)

    # 2- Aggregate link statistics
    try:
        if not is_shortcode(shortcode):
            raise LinkNotFoundError(f"Link with code '{shortcode}' not found.")
        stats = get_service().stats(shortcode, base_url=base_url(event))
    except LinkNotFoundError as error:
        logger.info('Link not found. Responding with 404.', extra={'event': LINK_NOT_FOUND, 'shortcode': shortcode})
        return response_for_error(error)
    except ShortLinksError as error:
        logger.exception(
            'Short link service unavailable. Responding with 500.',
            extra={'event': SERVICE_UNAVAILABLE, 'shortcode': shortcode, 'error': error.__class__.__name__},
        )
        return response_for_error(error)

    # 3- Respond with statistics
    logger.info('Link statistics served. Responding with 200.', extra={'event': STATS_SUCCESS, 'shortcode': shortcode})
    return success_response(stats)
