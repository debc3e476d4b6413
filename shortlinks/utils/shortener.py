"""Shortcode generation utility

This module generates short, random, unique shortcodes for links.

Functions:
    random_shortcode(length):
        Draw a random Base62 string from a cryptographically secure source.
    generate_shortcode(lookup, length=6):
        Generate a shortcode not yet taken according to `lookup`.
    is_shortcode(value):
        Tell whether a string could be a shortcode issued by this module.

Example:
    >>> from shortlinks.utils import generate_shortcode
    >>> generate_shortcode(dao, length=6)
    'aB3xZ9'
"""

import re
import secrets
import string
from typing import Protocol

from shortlinks.constants import Defaults, Limits
from shortlinks.exceptions import GenerationExhaustedError


ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits
BASE = len(ALPHABET)  # 26 uppercase + 26 lowercase + 10 digits

# Random draws at the requested length before escalating to a longer code
MAX_GENERATION_ATTEMPTS = 10
FALLBACK_LENGTH_INCREMENT = 2

SHORTCODE_PATTERN = re.compile(f'[A-Za-z0-9]{{1,{Limits.MAX_CODE_LENGTH + FALLBACK_LENGTH_INCREMENT}}}')


class ShortcodeLookup(Protocol):
    """Anything able to tell whether a shortcode is already taken (e.g. a LinkBaseDAO)."""

    def exists(self, shortcode: str) -> bool: ...


def random_shortcode(length: int) -> str:
    return ''.join(secrets.choice(ALPHABET) for _ in range(length))


def generate_shortcode(lookup: ShortcodeLookup, length: int = Defaults.CODE_LENGTH) -> str:
    """Generate a random shortcode which is not taken yet.

    Each attempt draws `length` characters uniformly from the Base62 alphabet
    (A-Z, a-z, 0-9) using `secrets`. A taken shortcode is a collision and
    triggers a new draw, up to MAX_GENERATION_ATTEMPTS draws. If every draw
    collided, one last draw is made FALLBACK_LENGTH_INCREMENT characters
    longer, which keeps codes short in the common case while bounding the
    worst-case number of lookups.

    Args:
        lookup (ShortcodeLookup):
            Object answering `exists(shortcode)`; the generator itself has no
            persistence dependency.

        length (int, optional):
            Requested shortcode length, raised to the 5-character minimum.
            Defaults to 6.

    Returns:
        str: A shortcode for which `lookup.exists()` returned False.

    Raises:
        TypeError:
            If length is not an integer.
        GenerationExhaustedError:
            If the fallback draw collided too.

    NOTE:
        - A free shortcode may still be claimed by a concurrent writer before
          it's inserted. Inserts must fail on conflict and callers must retry.
    """
    if not isinstance(length, int) or isinstance(length, bool):
        raise TypeError(f'Length must be of type integer (given type: {type(length)}).')
    length = max(Limits.MIN_CODE_LENGTH, length)

    for _ in range(MAX_GENERATION_ATTEMPTS):
        shortcode = random_shortcode(length)
        if not lookup.exists(shortcode):
            return shortcode

    shortcode = random_shortcode(length + FALLBACK_LENGTH_INCREMENT)
    if not lookup.exists(shortcode):
        return shortcode

    raise GenerationExhaustedError(f'Could not generate a unique shortcode of length {length} or {length + FALLBACK_LENGTH_INCREMENT}.')


def is_shortcode(value: str | None) -> bool:
    """Tell whether `value` has the shape of a generated shortcode

    Example:
        >>> is_shortcode('aB3xZ9')
        True
        >>> is_shortcode('aB3x:visits')
        False
    """
    return isinstance(value, str) and SHORTCODE_PATTERN.fullmatch(value) is not None
