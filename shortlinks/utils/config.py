"""Utility functions for application configuration management.

This module provides a standardized interface for Lambda functions to
access configuration data stored in **AWS AppConfig**. Each environment
(`APP_ENV`) has a dedicated AppConfig *Environment* within the shared
AppConfig *Application* identified by `APP_NAME`. Configuration data is
stored as a JSON document under a configuration profile and deployed to
the corresponding environment.

The configuration JSON follows this structure:

    {
        "build": 12,
        "active_backend": "redis",
        "service": {
            "code_length": 6,
            "rate_limit": {"max_requests": 30, "window_seconds": 3600},
            "malicious_patterns": ["phishing", "malware"]
        },
        "configs": {
            "shorten_url": {
                "redis": { ... },
                "service": { ... per-lambda overrides ... }
            },
            "redirect_url": {
                "redis": { ... }
            },
            "link_stats": {
                "redis": { ... }
            }
        }
    }

Each Lambda loads its own section (e.g., `"shorten_url"`) from this
document, together with the shared `"service"` settings.

When running locally, the same document can be provided as a YAML file
referenced by `SHORTLINKS_CONFIG_FILE`.

Functions:
    app_env() -> str
        Return the current application environment (`APP_ENV`) value,
        defaulting to `'local'`.

    app_name() -> str | None
        Return the application name (`APP_NAME`), or None if not set.

    app_prefix() -> str | None
        Return application prefix for DAOs, or None if `APP_NAME` is not set.

    lambda_config(document: dict, lambda_name: str) -> dict
        Extract a Lambda's configuration from a full configuration document.

    load_config(lambda_name: str) -> dict
        Load configuration for a given Lambda from AWS AppConfig (or a local
        YAML file) and return it as a Python dictionary.

Example:
    Typical usage inside a Lambda handler:

        >>> from shortlinks.utils.config import load_config
        >>> config = load_config('shorten_url')
        >>> print(config['redis']['host'])
        redis-15501.host.docker.internal
        >>> print(config['service']['rate_limit']['max_requests'])
        30
"""

import os
import json
import logging
import functools
from pathlib import Path
from collections.abc import Callable

import boto3
import yaml
from botocore.exceptions import BotoCoreError, ClientError

from shortlinks.constants import ENV
from shortlinks.exceptions import AppConfigError, BadConfigurationError
from shortlinks.types import AppConfig, LambdaConfiguration
from shortlinks.utils.helpers import require_environment
from shortlinks.utils.runtime import running_locally


logger = logging.getLogger(__name__)


def app_env() -> str:
    """Return the current application environment by reading 'APP_ENV'

    Example:
        >>> os.environ['APP_ENV'] = 'dev'
        >>> app_env()
        'dev'
    """
    return os.environ.get(ENV.App.APP_ENV, 'local').lower()


def app_name() -> str | None:
    return os.environ.get(ENV.App.APP_NAME)


def app_prefix() -> str | None:
    """Return application prefix for DAOs

    Returns:
        str: app prefix as <app name>:<app env>.
             None if APP_NAME is not set.

    Example:
        >>> os.environ['APP_NAME'] = 'shortlinks'
        >>> os.environ['APP_ENV'] = 'local'
        >>> app_prefix()
        'shortlinks:local'
    """
    return None if app_name() is None else f'{app_name()}:{app_env()}'


def lambda_config(document: AppConfig, lambda_name: str) -> LambdaConfiguration:
    """Extract a Lambda's configuration from a full configuration document

    Returns:
        dict: {<active backend>: {...}, 'service': {...}} where the service
              section is the shared one overlaid with the Lambda's overrides.

    Raises:
        BadConfigurationError:
            If the document lacks the active backend or the Lambda's section.
    """
    try:
        backend = document['active_backend']
        section = document['configs'][lambda_name]
        backend_config = section[backend]
        service = dict(document.get('service') or {}) | dict(section.get('service') or {})
    except (KeyError, TypeError, AttributeError) as e:
        raise BadConfigurationError(f"Configuration document has no usable section for '{lambda_name}'.") from e

    return {backend: backend_config, 'service': service}


def _load_local_config_file(func: Callable) -> Callable:
    """Decorator: load configuration from a local YAML file when running locally

    Behavior:
        - If the application is running locally and `SHORTLINKS_CONFIG_FILE` is
          set, read the configuration document from that YAML file.
        - Else, call the wrapped function (which pulls from AWS AppConfig via boto3).
    """

    @functools.wraps(func)
    def wrapper(lambda_name: str) -> LambdaConfiguration:
        config_file = os.getenv(ENV.App.CONFIG_FILE)
        if not running_locally() or not config_file:
            return func(lambda_name)

        logger.debug('Trying to load configuration from local file.', extra={'configFile': config_file, 'lambdaName': lambda_name})
        try:
            with Path(config_file).open(encoding='utf-8') as f:
                document = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise BadConfigurationError(f"Can't read configuration file '{config_file}'.") from e

        data = lambda_config(document, lambda_name)
        logger.debug('Loaded configuration from local file.', extra={'lambdaName': lambda_name, 'build': document.get('build')})
        return data

    return wrapper


@_load_local_config_file
@require_environment(ENV.AppConfig.APP_ID, ENV.AppConfig.ENV_ID, ENV.AppConfig.PROFILE_ID)
def load_config(lambda_name: str) -> LambdaConfiguration:
    """Load configuration for a given Lambda from AWS AppConfig

    Fetches the AppConfig JSON once and returns the section relevant
    to the requested Lambda function (e.g., 'shorten_url', 'redirect_url').

    Environment variables required:
        APPCONFIG_APP_ID       – AppConfig Application ID
        APPCONFIG_ENV_ID       – AppConfig Environment ID
        APPCONFIG_PROFILE_ID   – AppConfig Configuration Profile ID

    Args:
        lambda_name (str):
            Name of the Lambda (e.g., "shorten_url" or "redirect_url").

    Returns:
        dict: The lambda's config section as a Python dictionary.

    Raises:
        MissingEnvironmentVariableError:
            If any of the AppConfig environment variables is missing.
        AppConfigError:
            If AppConfig can't be reached or returns an invalid document.
        BadConfigurationError:
            If the document has no section for the Lambda.
    """
    logger.debug('Trying to load AppConfig from AWS AppConfig.', extra={'lambdaName': lambda_name})

    try:
        appconfig = boto3.client('appconfigdata')

        # Start an AppConfig data session
        session_token = appconfig.start_configuration_session(
            ApplicationIdentifier=os.environ[ENV.AppConfig.APP_ID],
            EnvironmentIdentifier=os.environ[ENV.AppConfig.ENV_ID],
            ConfigurationProfileIdentifier=os.environ[ENV.AppConfig.PROFILE_ID],
        )['InitialConfigurationToken']

        # Fetch the configuration
        response = appconfig.get_latest_configuration(ConfigurationToken=session_token)
        content = response['Configuration'].read()
        document = json.loads(content.decode('utf-8'))
    except (BotoCoreError, ClientError) as e:
        raise AppConfigError("Can't fetch configuration from AWS AppConfig.") from e
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise AppConfigError('AWS AppConfig returned a malformed configuration document.') from e

    data = lambda_config(document, lambda_name)
    logger.debug('Loaded AppConfig from AWS AppConfig.', extra={'lambdaName': lambda_name, 'build': document.get('build')})
    return data
