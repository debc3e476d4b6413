class ShortLinksError(Exception):
    """Base exception for all application-specific errors."""

    error_code = 'app:shortlinks_error'


class ConfigurationError(ShortLinksError):
    """Base exception for all configuration errors."""

    error_code = 'config:configuration_error'


class MissingEnvironmentVariableError(ConfigurationError):
    """Raised when a required environment variable is missing."""

    error_code = 'config:missing_environment_variable_error'


class BadConfigurationError(ConfigurationError):
    """Raised when the application is configured with invalid parameters."""

    error_code = 'config:bad_configuration_error'


class ServiceError(ShortLinksError):
    """Base exception for failures of short link operations."""

    error_code = 'service:service_error'


class ValidationError(ServiceError):
    """Raised when a client supplied URL or parameter is not admissible."""

    error_code = 'service:validation_error'


class RateLimitExceededError(ServiceError):
    """Raised when a client exceeded its link creation budget."""

    error_code = 'service:rate_limit_exceeded_error'

    def __init__(self, message: str = '', retry_after: int | None = None):
        super().__init__(message)
        self.retry_after = retry_after


class GenerationExhaustedError(ServiceError):
    """Raised when no unique shortcode could be generated."""

    error_code = 'service:generation_exhausted_error'


class LinkGoneError(ServiceError):
    """Base exception for links which exist but can no longer be resolved."""

    error_code = 'service:link_gone_error'


class LinkExpiredError(LinkGoneError):
    """Raised when resolving a link past its expiration time."""

    error_code = 'service:link_expired_error'


class LinkUsesExhaustedError(LinkGoneError):
    """Raised when resolving a link which reached its maximum number of uses."""

    error_code = 'service:link_uses_exhausted_error'


class InfrastructureError(ShortLinksError):
    """Base exception for all infrastructure (AWS) errors."""

    error_code = 'infra:infrastructure_error'


class AppConfigError(InfrastructureError):
    """Raised when AppConfig can't be reached or responds with erroneous data."""

    error_code = 'infra:appconfig_error'
