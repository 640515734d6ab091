"""Identifier normalization for harvested hrefs."""

from __future__ import annotations

from urllib.parse import urljoin, urlsplit

ALLOWED_SCHEMES = ("http", "https")


def normalize_identifier(base_url: str, href: object) -> str | None:
    """Resolve `href` against `base_url`; None for empty or non-http(s) values."""
    if not isinstance(href, str) or not href.strip():
        return None
    resolved = urljoin(base_url or "", href.strip())
    parts = urlsplit(resolved)
    if parts.scheme not in ALLOWED_SCHEMES or not parts.netloc:
        return None
    return resolved
