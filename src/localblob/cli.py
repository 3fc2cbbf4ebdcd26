"""localblob CLI - run the local blob storage server.

Usage:
    python -m localblob serve [--data-dir PATH] [--host HOST] [--port PORT]

Exit codes:
    0: Server stopped cleanly
    1: Startup failed
"""

from __future__ import annotations

import argparse
import logging
import sys

from localblob.settings import Settings, load_settings

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(settings: Settings) -> None:
    """Configure root logging; debug output only in dev mode."""
    level = logging.DEBUG if settings.is_dev else logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)


def cmd_serve(args: argparse.Namespace) -> int:
    """Open the stores and serve the API until interrupted."""
    settings = load_settings(data_dir=args.data_dir, host=args.host, port=args.port)
    configure_logging(settings)

    from localblob.api.main import create_app
    from localblob.storage.errors import ObjectStorageError

    try:
        app = create_app(settings=settings)
    except ObjectStorageError as e:
        logger.error("Failed to open storage under %s: %s", settings.data_dir, e)
        return 1

    logger.info("Using data dir: %s", settings.data_dir)

    import uvicorn

    bind_host = args.bind or settings.host
    uvicorn.run(
        app,
        host=bind_host,
        port=settings.port,
        log_level="debug" if settings.is_dev else "info",
    )
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="localblob",
        description="Local emulator of a cloud blob storage service",
    )
    subparsers = parser.add_subparsers(dest="command")

    serve = subparsers.add_parser("serve", help="Run the HTTP server")
    serve.add_argument(
        "--data-dir",
        type=str,
        default=None,
        help="Directory for content and index (default: $LOCALBLOB_DATA_DIR or temp dir)",
    )
    serve.add_argument(
        "--host",
        type=str,
        default=None,
        help="Host used in public URLs (default: $LOCALBLOB_HOST or localhost)",
    )
    serve.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to listen on and use in public URLs (default: $LOCALBLOB_PORT or 3001)",
    )
    serve.add_argument(
        "--bind",
        type=str,
        default=None,
        help="Interface to bind to (default: the public host)",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "serve":
        return cmd_serve(args)

    return 0


if __name__ == "__main__":
    sys.exit(main())
