"""Helpers converting between domain names and parser identifiers.

Field-map parsers are commonly named after the site they extract from:
``example.com`` is handled by ``exampleCom``. These conversions are lossy:
identifiers containing acronyms or consecutive capitals do not map back to
the original domain, and alias-table entries never round-trip.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from urllib.parse import urlparse

_SEGMENT_START = re.compile(r"\.([a-z])", re.IGNORECASE)
_INNER_CAPITAL = re.compile(r"(?<!^)([A-Z])")


def get_domain(url: str) -> str:
    """Return the host of ``url`` without a leading ``www.``.

    Examples:
        >>> get_domain("https://www.example.com/page?id=1")
        'example.com'
    """
    host = urlparse(url).hostname or ""
    return host.removeprefix("www.")


def domain_to_identifier(
    domain: str, aliases: Mapping[str, str] | None = None
) -> str:
    """Convert a domain to an identifier.

    Alias entries take precedence. Otherwise the domain is split on ``.``
    and every segment after the first is capitalized.

    Examples:
        >>> domain_to_identifier("example.com")
        'exampleCom'
        >>> domain_to_identifier("shop.example.co.uk")
        'shopExampleCoUk'
        >>> domain_to_identifier("example.com", {"example.com": "Example"})
        'Example'
    """
    if aliases and domain in aliases:
        return aliases[domain]
    return _SEGMENT_START.sub(lambda match: match.group(1).upper(), domain)


def identifier_to_domain(identifier: str) -> str:
    """Convert an identifier back to a domain.

    A ``.`` is inserted before every capital letter except a leading one,
    then the result is lowercased.

    Examples:
        >>> identifier_to_domain("exampleCom")
        'example.com'
        >>> identifier_to_domain("ExampleCom")
        'example.com'
    """
    return _INNER_CAPITAL.sub(r".\1", identifier).lower()
