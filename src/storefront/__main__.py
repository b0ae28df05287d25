"""Storefront auth entry point.

  storefront serve [--host H] [--port P] [--dev]
  storefront check-config
"""

import argparse
import asyncio
import logging
import sys

from storefront import __version__
from storefront.config import get_settings
from storefront.logging_setup import setup_logging

logger = logging.getLogger(__name__)


def check_config() -> int:
    """Print which settings are present and whether configuration resolves."""
    from storefront.api.health import config_checks
    from storefront.auth.config import resolve_oauth_config
    from storefront.auth.errors import AuthError

    settings = get_settings()
    print(f"Environment: {settings.environment}")
    for name, present in config_checks(settings).items():
        print(f"  {'OK ' if present else '-- '} {name}")

    try:
        config = asyncio.run(resolve_oauth_config(settings))
    except AuthError as exc:
        print(f"\nConfiguration invalid: {exc.message}")
        return 1

    print(f"\nConfiguration OK. Redirect URI: {config.redirect_uri}")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="storefront",
        description="Storefront customer authentication service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  storefront                         Start the server (same as 'serve')
  storefront serve --port 3000       Start on a custom port
  storefront serve --dev             Start with auto-reload
  storefront check-config            Validate OAuth settings and exit
""",
    )
    parser.add_argument("--version", "-v", action="version", version=f"%(prog)s {__version__}")

    sub = parser.add_subparsers(dest="command")
    serve = sub.add_parser("serve", help="Run the HTTP server")
    serve.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve.add_argument("--port", "-p", type=int, default=8000, help="Port (default: 8000)")
    serve.add_argument("--dev", action="store_true", help="Auto-reload on source changes")
    sub.add_parser("check-config", help="Validate OAuth configuration")

    args = parser.parse_args()
    settings = get_settings()
    setup_logging(level="DEBUG" if getattr(args, "dev", False) else settings.log_level)

    if args.command == "check-config":
        sys.exit(check_config())

    from storefront.api.serve import run_server

    run_server(
        host=getattr(args, "host", "127.0.0.1"),
        port=getattr(args, "port", 8000),
        dev=getattr(args, "dev", False),
    )


if __name__ == "__main__":
    main()
