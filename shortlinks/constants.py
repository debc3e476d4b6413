from enum import StrEnum


class TTL:
    """TTL durations in seconds."""

    # Sliding window for link creation rate limiting (1 hour in seconds)
    ONE_HOUR = 3_600
    ONE_DAY = 86_400


class Defaults:
    """Default service limits."""

    CODE_LENGTH = 6  # Default shortcode length
    RATE_LIMIT_REQUESTS = 30  # Max link creations per client per window
    RATE_LIMIT_WINDOW = TTL.ONE_HOUR
    LAST_VISITS_LIMIT = 10  # Number of visits returned by link stats
    STATS_DAYS = 30  # Days covered by visits-by-day aggregation
    MALICIOUS_PATTERNS = ('phishing', 'malware')


class Limits:
    """Hard limits on client supplied values."""

    MIN_CODE_LENGTH = 5
    MAX_CODE_LENGTH = 32
    MAX_URL_LENGTH = 2048
    MAX_USER_AGENT_LENGTH = 512


class ENV:
    """Environment variable names."""

    class App(StrEnum):
        APP_ENV = 'APP_ENV'
        APP_NAME = 'APP_NAME'
        AWS_SAM_LOCAL = 'AWS_SAM_LOCAL'
        LOG_LEVEL = 'LOG_LEVEL'
        CONFIG_FILE = 'SHORTLINKS_CONFIG_FILE'

    class AppConfig(StrEnum):
        APP_ID = 'APPCONFIG_APP_ID'
        ENV_ID = 'APPCONFIG_ENV_ID'
        PROFILE_ID = 'APPCONFIG_PROFILE_ID'


# Sentinel client address when no valid IP can be extracted from a request
UNKNOWN_CLIENT_IP = '0.0.0.0'  # noqa: S104

# Error codes
UNKNOWN_INTERNAL_SERVER_ERROR = 'UNKNOWN_INTERNAL_SERVER_ERROR'
