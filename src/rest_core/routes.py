"""
Route parameter substitution for rest_core.

Request paths and query strings may contain named placeholders such as
``/users/{id}``. They are substituted at execution time from a flat
sequence of name/value pairs and never written back into the template.
"""

import re
from typing import Sequence
from urllib.parse import quote_plus

from .exceptions import InvalidArgumentError


def encode_value(value: str) -> str:
    """Percent-encode a value the way HTML forms do (spaces become '+')."""
    return quote_plus(value, safe="*")


def encode_query(name: str, value: str) -> str:
    """Render one ``name=value`` query pair with the value percent-encoded."""
    return f"{name}={encode_value(value)}"


def _placeholder(name: str) -> "re.Pattern[str]":
    # Matches {name} and its percent-encoded form %7Bname%7D
    return re.compile(r"(?:%7[Bb]|\{)" + re.escape(name) + r"(?:%7[Dd]|\})")


def substitute_routes(template: str, routes: Sequence[str]) -> str:
    """
    Replace route placeholders in a URL template.

    ``routes`` is a flat sequence ``name1, value1, name2, value2, ...``.
    Every occurrence of each name is replaced with its percent-encoded
    value. Placeholders without a matching name are left untouched.

    Args:
        template: URL or query template
        routes: Even-length sequence of names and values

    Returns:
        The template with placeholders substituted

    Raises:
        InvalidArgumentError: If routes has an odd number of items
    """
    if len(routes) % 2 != 0:
        raise InvalidArgumentError(
            f"Even number of route parameters expected [{len(routes)}]"
        )

    url = template
    for i in range(0, len(routes), 2):
        replacement = encode_value(str(routes[i + 1]))
        url = _placeholder(str(routes[i])).sub(lambda _: replacement, url)
    return url
