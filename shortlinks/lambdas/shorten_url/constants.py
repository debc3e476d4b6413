# Event codes for structured logging (and client error codes where applicable)
LINK_CREATED = 'LINK_CREATED'
INVALID_REQUEST = 'INVALID_REQUEST'
RATE_LIMIT_EXCEEDED = 'RATE_LIMIT_EXCEEDED'
GENERATION_EXHAUSTED = 'GENERATION_EXHAUSTED'
SERVICE_UNAVAILABLE = 'SERVICE_UNAVAILABLE'
