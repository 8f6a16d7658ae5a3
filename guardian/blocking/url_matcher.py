"""
URL normalization and block-pattern matching.

A candidate matches an entry when the normalized forms are equal, when
either contains the other (subdomains and paths), or when the entry has an
explicit ``*`` glob that matches the normalized candidate. Globs never see
the scheme or a leading ``www.``, so every spelling of a URL matches alike
and results can be cached per normalized URL.
"""

from __future__ import annotations

import logging
import re
from typing import Any
from urllib.parse import urlparse

from .models import BlockEntry

logger = logging.getLogger(__name__)

_PREFIX = re.compile(r"^(?:https?://|www\.)+")

_URL_RE = re.compile(
    r"^https?://(www\.)?[-a-zA-Z0-9@:%._+~#=]{1,256}\.[a-zA-Z0-9()]{1,6}\b"
    r"([-a-zA-Z0-9()@:%_+.~#?&/=]*)$"
)
_DOMAIN_RE = re.compile(
    r"^(?:[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?\.)+[a-zA-Z]{2,}$"
)


def normalize(raw: Any) -> str:
    """
    Canonical form used as the block-list key: lowercase, no scheme, no
    leading ``www.``, no trailing slash. Invalid input yields "".
    """
    if not isinstance(raw, str):
        return ""
    url = _PREFIX.sub("", raw.strip().lower())
    return url.rstrip("/")


def is_valid_url(raw: str) -> bool:
    try:
        parsed = urlparse(raw)
    except ValueError:
        return False
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return False
    return bool(_URL_RE.match(raw))


def is_valid_domain(raw: str) -> bool:
    return bool(_DOMAIN_RE.match(raw))


def create_pattern(url: str) -> str:
    """Default pattern covering the domain and all its subdomains."""
    return f"*://*.{normalize(url)}/*"


def glob_to_regex(pattern: str) -> re.Pattern:
    """Translate a ``*`` glob into an anchored, case-insensitive regex."""
    body = ".*".join(re.escape(part) for part in pattern.split("*"))
    return re.compile(f"^{body}$", re.IGNORECASE)


def matches(candidate: Any, entry: BlockEntry) -> bool:
    normalized = normalize(candidate)
    if not normalized or not entry.url:
        return False

    if normalized == entry.url:
        return True

    # subdomains and paths
    if entry.url in normalized or normalized in entry.url:
        return True

    if entry.pattern and entry.pattern != create_pattern(entry.url):
        try:
            regex = glob_to_regex(entry.pattern)
        except re.error:
            logger.debug("Unusable block pattern %r on entry %s", entry.pattern, entry.id)
            return False
        return bool(regex.match(normalized))

    return False
