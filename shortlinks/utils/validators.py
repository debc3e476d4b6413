"""Admissibility checks for URLs and link creation parameters

No network access is performed: every check is syntactic or lexical.

Classes:
    URLValidator
        Validate candidate target URLs before they are shortened.

Functions:
    parse_expires_at(value, now) -> str | None
    parse_max_uses(value) -> int | None
    parse_code_length(value, default) -> int

Example:
    >>> validator = URLValidator()
    >>> validator.validate('https://example.com/page', own_host='sho.rt')
    >>> validator.validate('http://localhost/x')
    Traceback (most recent call last):
        ...
    shortlinks.exceptions.ValidationError: URLs pointing to local or reserved addresses can't be shortened.
"""

import re
import ipaddress
import urllib.parse
from datetime import datetime, UTC
from collections.abc import Iterable
from typing import Any

from shortlinks.constants import Defaults, Limits
from shortlinks.exceptions import BadConfigurationError, ValidationError
from shortlinks.utils.timestamps import format_timestamp


ALLOWED_SCHEMES = frozenset({'http', 'https'})
BLOCKED_HOSTS = frozenset({'localhost', '127.0.0.1', '::1', '0.0.0.0'})  # noqa: S104

_HOST_LABEL = re.compile(r'^[a-z0-9]([a-z0-9-]*[a-z0-9])?$')
# Integer, hex, octal and shortened dotted IPv4 forms accepted by inet_aton
_NUMERIC_HOST = re.compile(r'^((0x[0-9a-f]*|[0-9]+)\.){0,3}(0x[0-9a-f]*|[0-9]+)$')
_INTEGER = re.compile(r'^[+-]?\d+$')


class URLValidator:
    """Validate candidate target URLs.

    Checks run in order and each one fails with its own reason:
        1. URL is not empty (after trimming whitespace)
        2. URL is at most 2048 characters long
        3. URL is a well-formed absolute URL
        4. Scheme is http or https (case-insensitive)
        5. Host is not a local address (localhost, 127.0.0.1, ::1, 0.0.0.0)
        6. IP literal hosts are not in private or reserved ranges
        7. Host is not the shortener's own host (avoid redirect loops)
        8. URL doesn't match any malicious content pattern

    Attributes:
        malicious_patterns (tuple[re.Pattern, ...]):
            Case-insensitive patterns searched anywhere in the URL.
    """

    def __init__(self, malicious_patterns: Iterable[str] = Defaults.MALICIOUS_PATTERNS):
        try:
            self.malicious_patterns = tuple(re.compile(pattern, re.IGNORECASE) for pattern in malicious_patterns)
        except re.error as e:
            raise BadConfigurationError(f'Invalid malicious URL pattern: {e}') from e

    def validate(self, url: str, own_host: str | None = None) -> None:
        """Validate a URL, raising ValidationError with a human-readable reason

        Args:
            url (str):
                Candidate target URL.
            own_host (str | None):
                Host (optionally with port) the shortener is served from.

        Raises:
            ValidationError:
                If any check fails.
        """
        if not isinstance(url, str) or not url.strip():
            raise ValidationError('URL must not be empty.')

        if len(url) > Limits.MAX_URL_LENGTH:
            raise ValidationError(f'URL exceeds the maximum allowed length ({Limits.MAX_URL_LENGTH} characters).')

        scheme, host = _split_absolute_url(url)

        if scheme not in ALLOWED_SCHEMES:
            raise ValidationError(f"Only http and https URLs are allowed (given scheme: '{scheme}').")

        if host in BLOCKED_HOSTS:
            raise ValidationError("URLs pointing to local or reserved addresses can't be shortened.")

        ip = _ip_address(host)
        if ip is not None and not ip.is_global:
            raise ValidationError("URLs pointing to private or reserved IP ranges can't be shortened.")

        if own_host and host == _normalize_host(own_host):
            raise ValidationError("URLs pointing to this shortener can't be shortened (redirect loop).")

        if any(pattern.search(url) for pattern in self.malicious_patterns):
            raise ValidationError('URL was rejected for security reasons.')


def _split_absolute_url(url: str) -> tuple[str, str]:
    """Return the lowercase (scheme, host) of a well-formed absolute URL"""
    malformed = ValidationError(f"URL '{url}' is not well-formed.")

    if any(ch.isspace() or ord(ch) < 32 for ch in url):
        raise malformed
    try:
        components = urllib.parse.urlsplit(url)
        components.port  # noqa: B018 (raises ValueError on invalid ports)
    except ValueError as e:
        raise malformed from e

    host = (components.hostname or '').rstrip('.')
    if not components.scheme or not host:
        raise malformed
    if _ip_address(host) is None:
        if _NUMERIC_HOST.match(host) or not all(_HOST_LABEL.match(label) for label in host.split('.')):
            raise malformed

    return components.scheme.lower(), host


def _ip_address(host: str) -> ipaddress.IPv4Address | ipaddress.IPv6Address | None:
    try:
        return ipaddress.ip_address(host)
    except ValueError:
        return None


def _normalize_host(host: str) -> str:
    """Lowercase hostname of 'host', 'host:port' or a full URL"""
    try:
        hostname = urllib.parse.urlsplit(host if '://' in host else f'//{host}').hostname
    except ValueError:
        hostname = None
    return (hostname or host).lower().rstrip('.')


def _parse_int(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"'{name}' must be an integer.")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and _INTEGER.match(value.strip()):
        return int(value.strip())
    raise ValidationError(f"'{name}' must be an integer.")


def parse_expires_at(value: Any, now: datetime | None = None) -> str | None:
    """Parse the optional 'expiresAt' parameter into a UTC timestamp string

    Accepts ISO 8601 dates ('2025-12-31') and date-times ('2025-12-31T18:00:00+02:00').
    Naive values are interpreted as UTC. The result must be strictly later than `now`.

    Raises:
        ValidationError:
            If the value is not a date string or not in the future.
    """
    if value is None or value == '':
        return None
    if not isinstance(value, str):
        raise ValidationError("'expiresAt' must be a date string (YYYY-MM-DD or ISO 8601).")

    try:
        expires_at = datetime.fromisoformat(value.strip())
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=UTC)
        expires_at = expires_at.replace(microsecond=0)
        timestamp = format_timestamp(expires_at)
    except (ValueError, OverflowError) as e:
        raise ValidationError(f"Invalid date format in 'expiresAt': '{value}'.") from e

    now = (now or datetime.now(UTC)).replace(microsecond=0)
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    if expires_at <= now:
        raise ValidationError('Expiration date must be in the future.')
    return timestamp


def parse_max_uses(value: Any) -> int | None:
    if value is None or value == '':
        return None
    max_uses = _parse_int(value, 'maxUses')
    if max_uses < 1:
        raise ValidationError("'maxUses' must be an integer greater than or equal to 1.")
    return max_uses


def parse_code_length(value: Any, default: int = Defaults.CODE_LENGTH) -> int:
    """Parse the optional 'codeLength' parameter

    Values below the minimum are raised to it, values above the maximum are rejected.
    """
    if value is None or value == '':
        return max(Limits.MIN_CODE_LENGTH, default)
    length = _parse_int(value, 'codeLength')
    if length > Limits.MAX_CODE_LENGTH:
        raise ValidationError(f"'codeLength' must not exceed {Limits.MAX_CODE_LENGTH}.")
    return max(Limits.MIN_CODE_LENGTH, length)
