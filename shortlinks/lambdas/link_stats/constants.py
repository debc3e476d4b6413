# Event codes for structured logging (and client error codes where applicable)
MISSING_SHORTCODE = 'MISSING_SHORTCODE'
LINK_NOT_FOUND = 'LINK_NOT_FOUND'
STATS_SUCCESS = 'STATS_SUCCESS'
SERVICE_UNAVAILABLE = 'SERVICE_UNAVAILABLE'
