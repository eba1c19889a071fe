"""Quillpad - block-based note editor service.

Serves the editing core to a host surface over JSON-RPC (``POST /rpc``).

Usage:
    quillpad                Start the server (default)
    quillpad --help         Show this help message
    quillpad-notes          Command line access to the notes store

Environment Variables:
    QUILLPAD_HOST               Server host (default: 127.0.0.1)
    QUILLPAD_PORT               Server port (default: 8020)
    QUILLPAD_DATA_DIR           Where notes.db and the log live
    QUILLPAD_SAVE_DEBOUNCE_MS   Delay between the last edit and the save (default: 500)
    QUILLPAD_LOG_LEVEL          Logging level (default: INFO)
"""

from __future__ import annotations

import argparse

import uvicorn

from . import __version__
from .logging_setup import configure_logging
from .settings import settings


def main() -> None:
    """Main entry point for the quillpad server."""
    parser = argparse.ArgumentParser(
        prog="quillpad",
        description="Quillpad - block-based note editor service",
        epilog="""
Examples:
  quillpad                     Start the server on the default port
  quillpad --port 8030         Start on a custom port
  quillpad --reload            Auto-reload on code changes (development)
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--host",
        default=settings.host,
        help=f"Server host (default: {settings.host})",
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=settings.port,
        help=f"Server port (default: {settings.port})",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload (for development)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=settings.log_level.upper(),
        help=f"Logging level (default: {settings.log_level})",
    )
    parser.add_argument(
        "--version", "-V",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    args = parser.parse_args()

    configure_logging(args.log_level)

    print(f"Starting quillpad on {args.host}:{args.port}")
    print("Press Ctrl+C to stop\n")

    uvicorn.run(
        "quillpad.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level.lower(),
    )


if __name__ == "__main__":
    main()
