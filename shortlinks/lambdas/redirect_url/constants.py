# Event codes for structured logging (and client error codes where applicable)
MISSING_SHORTCODE = 'MISSING_SHORTCODE'
LINK_NOT_FOUND = 'LINK_NOT_FOUND'
LINK_EXPIRED = 'LINK_EXPIRED'
LINK_USES_EXHAUSTED = 'LINK_USES_EXHAUSTED'
REDIRECT_SUCCESS = 'REDIRECT_SUCCESS'
SERVICE_UNAVAILABLE = 'SERVICE_UNAVAILABLE'
