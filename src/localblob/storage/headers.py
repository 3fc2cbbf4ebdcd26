"""Derivation of Content-Disposition, Cache-Control and Content-Type values."""

from __future__ import annotations

import mimetypes
import posixpath
import re

ONE_YEAR_IN_SECONDS = 365 * 24 * 60 * 60
FIVE_MINUTES_IN_SECONDS = 5 * 60
DEFAULT_CONTENT_TYPE = "application/octet-stream"

# ASCII digits only, no surrounding whitespace
_INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")


def create_content_disposition(pathname: str) -> str:
    """Build an inline Content-Disposition naming the pathname's base name."""
    filename = posixpath.basename(pathname)
    return f'inline; filename="{filename}"'


def attachment_disposition(content_disposition: str) -> str:
    """Turn an inline disposition into an attachment one (download links)."""
    if not content_disposition:
        return "attachment"
    return content_disposition.replace("inline", "attachment", 1)


def parse_max_age(max_age: str | None) -> int:
    """Parse a requested max-age, falling back to one year.

    Only an optionally signed run of ASCII digits is an integer; anything
    else (empty, padded, fractional, non-ASCII digits) resolves to the
    default. Parsable values, negative ones included, are kept as sent.
    """
    raw = max_age or ""
    if not _INTEGER_PATTERN.fullmatch(raw):
        return ONE_YEAR_IN_SECONDS
    return int(raw)


def create_cache_control(max_age: str | None) -> str:
    """Build the Cache-Control value for a new object.

    The shared (edge) max-age is capped at five minutes regardless of the
    client max-age.
    """
    resolved = parse_max_age(max_age)
    edge = min(resolved, FIVE_MINUTES_IN_SECONDS)
    return f"public, max-age={resolved}, s-maxage={edge}"


def resolve_content_type(
    explicit: str | None,
    request_content_type: str | None,
    pathname: str,
) -> str:
    """Pick the content type for an upload.

    Priority:
    1. Explicit content type (x-content-type header)
    2. Media type of the request Content-Type header, parameters stripped
    3. Guess from the pathname extension
    4. application/octet-stream
    """
    if explicit and explicit.strip():
        return explicit.strip()

    if request_content_type:
        media_type = request_content_type.split(";", 1)[0].strip().lower()
        if media_type:
            return media_type

    guessed, _ = mimetypes.guess_type(pathname)
    if guessed:
        return guessed

    return DEFAULT_CONTENT_TYPE
