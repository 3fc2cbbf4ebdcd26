"""localblob runtime settings.

All settings come from environment variables; unparsable values fall back
to defaults.

Environment Variables:
    LOCALBLOB_ENV: "dev" enables debug logging and index statement tracing
        (default: "production")
    LOCALBLOB_DATA_DIR: Root data directory holding content/ and index/
        (default: OS temp dir / blob_fs)
    LOCALBLOB_CONTENT_DIR: Content root, overriding {data_dir}/content
    LOCALBLOB_SCHEME: URL scheme of public URLs (default: "http")
    LOCALBLOB_HOST: Host of public URLs and bind host (default: "localhost")
    LOCALBLOB_PORT: Port of public URLs and bind port (default: 3001)
    LOCALBLOB_BASE_URL: Overrides the "{scheme}://{host}:{port}" base URL
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

LOCALBLOB_ENV_ENV = "LOCALBLOB_ENV"
LOCALBLOB_DATA_DIR_ENV = "LOCALBLOB_DATA_DIR"
LOCALBLOB_CONTENT_DIR_ENV = "LOCALBLOB_CONTENT_DIR"
LOCALBLOB_SCHEME_ENV = "LOCALBLOB_SCHEME"
LOCALBLOB_HOST_ENV = "LOCALBLOB_HOST"
LOCALBLOB_PORT_ENV = "LOCALBLOB_PORT"
LOCALBLOB_BASE_URL_ENV = "LOCALBLOB_BASE_URL"

DEFAULT_ENV = "production"
DEFAULT_SCHEME = "http"
DEFAULT_HOST = "localhost"
DEFAULT_PORT = 3001


def _get_env_str(key: str, default: str = "") -> str:
    """Get string from environment variable."""
    value = os.environ.get(key, "").strip()
    return value or default


def _get_env_int(key: str, default: int) -> int:
    raw = os.environ.get(key, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


@dataclass(frozen=True)
class Settings:
    """Resolved runtime configuration.

    Attributes:
        env: Deployment mode; "dev" turns on diagnostics.
        data_dir: Root data directory.
        scheme: URL scheme of public URLs.
        host: Host of public URLs.
        port: Port of public URLs and of the HTTP listener.
        base_url: Base of every public URL (no trailing slash).
        content_root: Explicit content root; None means {data_dir}/content.
    """

    env: str
    data_dir: Path
    scheme: str
    host: str
    port: int
    base_url: str
    content_root: Path | None = None

    @property
    def is_dev(self) -> bool:
        return self.env == "dev"

    @property
    def content_dir(self) -> Path:
        if self.content_root is not None:
            return self.content_root
        return self.data_dir / "content"

    @property
    def index_dir(self) -> Path:
        return self.data_dir / "index"


def load_settings(
    *,
    data_dir: str | Path | None = None,
    host: str | None = None,
    port: int | None = None,
) -> Settings:
    """Load settings from the environment, with optional explicit overrides.

    Explicit arguments (from the CLI) win over environment variables.
    """
    env = _get_env_str(LOCALBLOB_ENV_ENV, DEFAULT_ENV).lower()

    if data_dir is None:
        raw_dir = _get_env_str(LOCALBLOB_DATA_DIR_ENV)
        data_dir = Path(raw_dir) if raw_dir else Path(tempfile.gettempdir()) / "blob_fs"

    scheme = _get_env_str(LOCALBLOB_SCHEME_ENV, DEFAULT_SCHEME).lower()
    host = host or _get_env_str(LOCALBLOB_HOST_ENV, DEFAULT_HOST)
    port = port or _get_env_int(LOCALBLOB_PORT_ENV, DEFAULT_PORT)

    base_url = _get_env_str(LOCALBLOB_BASE_URL_ENV) or f"{scheme}://{host}:{port}"
    content_root = _get_env_str(LOCALBLOB_CONTENT_DIR_ENV)

    return Settings(
        env=env,
        data_dir=Path(data_dir),
        scheme=scheme,
        host=host,
        port=port,
        base_url=base_url.rstrip("/"),
        content_root=Path(content_root) if content_root else None,
    )
