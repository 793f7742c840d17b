"""Sanitized identifier derivation for account resources.

Policies, groups, service users and boundaries are keyed in the persisted
representation by an identifier derived from their display name. Both the
downloader and hand-written YAML rely on this function producing the same
value for the same name, so it is part of the Shared Kernel.
"""

from __future__ import annotations

import hashlib
import re
import unicodedata

# Lower-to-upper transitions ("myGroup") and acronym ends ("HTTPServer")
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")
_TOKEN_SEPARATOR = re.compile(r"[^A-Za-z0-9]+")

_FALLBACK_PREFIX = "id"
_FALLBACK_HASH_LENGTH = 16


def _transliterate(name: str) -> str:
    """Fold a unicode string to its closest ASCII form.

    Characters without an ASCII base letter (e.g. CJK) are dropped.
    """
    decomposed = unicodedata.normalize("NFKD", name)
    return "".join(
        c for c in decomposed if not unicodedata.combining(c) and c.isascii()
    )


def _tokens(name: str) -> list[str]:
    tokens: list[str] = []
    for chunk in _TOKEN_SEPARATOR.split(_transliterate(name)):
        if not chunk:
            continue
        tokens.extend(part for part in _CAMEL_BOUNDARY.split(chunk) if part)
    return tokens


def sanitize(name: str) -> str:
    """Derive a stable, YAML and filesystem safe identifier from a display name.

    The result consists of lower-case ASCII letters, digits and single dashes.
    Composite tokens are split on camel-case boundaries so that
    ``"MyGroup"`` and ``"my group"`` both produce ``"my-group"``.

    Names without any usable character still produce a non-empty, deterministic
    identifier built from a SHA256 digest of the input.

    Two different names may sanitize to the same identifier. No suffix is
    appended in that case; callers building maps keyed by the result decide
    how to resolve the collision.

    Args:
        name: The display name of a resource. Any unicode string.

    Returns:
        The sanitized identifier.

    Example:
        >>> sanitize("Test policy - Tenant")
        'test-policy-tenant'
        >>> sanitize("Ünïcödé Group")
        'unicode-group'
    """
    tokens = _tokens(name)
    if tokens:
        return "-".join(token.lower() for token in tokens)

    digest = hashlib.sha256(name.encode()).hexdigest()[:_FALLBACK_HASH_LENGTH]
    return f"{_FALLBACK_PREFIX}-{digest}"
