"""Public URL construction and random pathname suffixes.

URLs have the shape:
    {base_url}/public/{store}/{pathname}
    {base_url}/public/{store}/{pathname}?download=1
"""

from __future__ import annotations

import posixpath
import secrets
import string
from dataclasses import dataclass

PUBLIC_BASE_PATH = "/public"
DOWNLOAD_QUERY = "download=1"

RANDOM_SUFFIX_LENGTH = 30
RANDOM_SUFFIX_ALPHABET = string.digits + string.ascii_uppercase + string.ascii_lowercase


def generate_random_token(length: int = RANDOM_SUFFIX_LENGTH) -> str:
    """Generate a token drawn from the 62-symbol alphanumeric alphabet."""
    return "".join(secrets.choice(RANDOM_SUFFIX_ALPHABET) for _ in range(length))


def normalize_pathname(pathname: str) -> str:
    """Collapse empty and "." segments so one object has exactly one name.

    "a//b.txt" and "./a/b.txt" both become "a/b.txt". A leading "/", ".."
    segments and a trailing "/" are kept as-is for the content store to
    reject. A name made only of "." segments normalizes to "".
    """
    if not pathname or pathname.endswith("/"):
        return pathname

    leading = "/" if pathname.startswith("/") else ""
    segments = [segment for segment in pathname.split("/") if segment not in ("", ".")]
    return leading + "/".join(segments)


def add_random_suffix(pathname: str, token: str | None = None) -> str:
    """Insert "-<token>" before the final extension of the last path segment.

    Only the last segment is inspected, and only its final extension, so
    "a.png/b.png" becomes "a.png/b-<token>.png" and "x.tar.gz" becomes
    "x.tar-<token>.gz". Names without an extension get the token appended.

    Args:
        pathname: Logical pathname as requested by the caller.
        token: Token to insert. Generated when None.

    Returns:
        The suffixed pathname.
    """
    if token is None:
        token = generate_random_token()

    directory, base = posixpath.split(pathname)
    root, ext = posixpath.splitext(base)
    suffixed = f"{root}-{token}{ext}"

    return posixpath.join(directory, suffixed) if directory else suffixed


@dataclass(frozen=True)
class AddressScheme:
    """Builds store-scoped public URLs from a base URL.

    Attributes:
        base_url: Scheme, host and port of the server (no trailing slash).
    """

    base_url: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))

    def public_url(self, store: str, pathname: str) -> str:
        return f"{self.base_url}{PUBLIC_BASE_PATH}/{store}/{pathname.lstrip('/')}"

    def download_url(self, store: str, pathname: str) -> str:
        return f"{self.public_url(store, pathname)}?{DOWNLOAD_QUERY}"

    def store_prefix(self, store: str) -> str:
        """Key prefix shared by every object of a store.

        Ends with "/" so that store "a" never matches keys of store "ab".
        """
        return f"{self.base_url}{PUBLIC_BASE_PATH}/{store}/"

    def url_for_request_path(self, path: str) -> str:
        """Rebuild the public URL for a "/public/..." request path."""
        return f"{self.base_url}/{path.lstrip('/')}"
